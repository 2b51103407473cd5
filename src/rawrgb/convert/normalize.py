from __future__ import annotations

import numpy as np


OUTPUT_MAX = 65535


def normalize(channels: np.ndarray, darkness_level: float, saturation_level: float) -> np.ndarray:
    """Scale dark-corrected values so (saturation - darkness) maps to 65535.

    Rounds half up and clamps to the uint16 range.
    """
    span = float(saturation_level) - float(darkness_level)
    if span <= 0:
        raise ValueError(
            f"saturation level {saturation_level} must exceed darkness level {darkness_level}"
        )
    scaled = np.asarray(channels, dtype=np.float64) * OUTPUT_MAX / span
    out = np.clip(np.floor(scaled + 0.5), 0, OUTPUT_MAX).astype(np.uint16)
    out.setflags(write=False)
    return out
