from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

import numpy as np


@dataclass
class CaptureInfo:
    exposure_s: float | None = None
    f_number: float | None = None
    iso: float | None = None
    timestamp: str | None = None

    @property
    def complete(self) -> bool:
        return None not in (self.exposure_s, self.f_number, self.iso, self.timestamp)


@dataclass
class RawFrame:
    grid: np.ndarray
    bit_depth: int
    source_path: Path | None = None
    cfa_pattern: str | None = None
    capture: CaptureInfo | None = None

    def __post_init__(self) -> None:
        grid = np.asarray(self.grid)
        if grid.ndim != 2:
            raise ValueError(f"raw frame must be a 2-D grid, got shape {grid.shape}")
        if not np.issubdtype(grid.dtype, np.unsignedinteger):
            raise ValueError(f"raw frame must hold unsigned integers, got {grid.dtype}")
        grid = grid.view()
        grid.setflags(write=False)
        self.grid = grid
