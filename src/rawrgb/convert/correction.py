from __future__ import annotations

import numpy as np


def subtract_darkness(grid: np.ndarray, darkness_level: float) -> np.ndarray:
    """Subtract the black level, saturating at zero instead of wrapping."""
    arr = np.asarray(grid)
    if darkness_level < 0:
        raise ValueError(f"darkness level must be non-negative, got {darkness_level}")
    if darkness_level == 0:
        return arr.copy()

    if float(darkness_level).is_integer() and np.issubdtype(arr.dtype, np.integer):
        shifted = arr.astype(np.int64) - int(darkness_level)
        return np.clip(shifted, 0, None).astype(arr.dtype)
    return np.maximum(arr.astype(np.float64) - float(darkness_level), 0.0)
