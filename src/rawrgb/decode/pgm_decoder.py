from __future__ import annotations

from pathlib import Path

import numpy as np

from .base import DecodeError, UnsupportedFormatError
from .types import RawFrame


def read_pgm(path: Path) -> RawFrame:
    import cv2

    if not path.is_file():
        raise DecodeError(f"cannot read {path}: file not found")

    grid = cv2.imread(str(path), cv2.IMREAD_UNCHANGED)
    if grid is None:
        raise DecodeError(f"OpenCV could not decode {path}")
    if grid.ndim != 2:
        raise UnsupportedFormatError(f"{path} is not a single-channel image (shape {grid.shape})")
    if grid.dtype not in (np.uint8, np.uint16):
        raise UnsupportedFormatError(f"unsupported PGM sample type {grid.dtype} in {path}")

    bit_depth = 8 * grid.dtype.itemsize
    return RawFrame(grid=grid.astype(np.uint16, copy=False), bit_depth=bit_depth, source_path=path)


class PgmDecoder:
    """Reads single-channel raw dumps already written as binary PGM."""

    def decode(self, path: Path) -> RawFrame:
        return read_pgm(path)

    __call__ = decode
