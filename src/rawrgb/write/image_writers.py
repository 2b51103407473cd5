from __future__ import annotations

import os
from pathlib import Path
from typing import Callable

import numpy as np

from rawrgb.config import OutputFormat


def write_npy(path: Path, rgb: np.ndarray) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("wb") as f:
        np.save(f, np.asarray(rgb, dtype=np.uint16), allow_pickle=False)


def write_tiff16(path: Path, rgb: np.ndarray) -> None:
    try:
        import tifffile  # type: ignore
    except Exception as exc:  # pragma: no cover - optional dependency
        raise RuntimeError("tifffile is required for TIFF output. Install with: pip install tifffile") from exc

    path.parent.mkdir(parents=True, exist_ok=True)
    tifffile.imwrite(str(path), np.asarray(rgb, dtype=np.uint16), photometric="rgb", compression=None)


def _write_cv2(path: Path, rgb: np.ndarray) -> None:
    import cv2

    if rgb.ndim != 3 or rgb.shape[2] != 3:
        raise ValueError(f"expected HxWx3 RGB image, got {rgb.shape}")
    path.parent.mkdir(parents=True, exist_ok=True)
    bgr = cv2.cvtColor(np.ascontiguousarray(rgb, dtype=np.uint16), cv2.COLOR_RGB2BGR)
    if not cv2.imwrite(str(path), bgr):
        raise OSError(f"OpenCV could not write {path}")


def write_png16(path: Path, rgb: np.ndarray) -> None:
    _write_cv2(path, rgb)


def write_ppm16(path: Path, rgb: np.ndarray) -> None:
    """Binary P6 portable pixmap with 16-bit samples."""
    _write_cv2(path, rgb)


_WRITERS: dict[OutputFormat, Callable[[Path, np.ndarray], None]] = {
    OutputFormat.NPY: write_npy,
    OutputFormat.PPM: write_ppm16,
    OutputFormat.TIFF: write_tiff16,
    OutputFormat.PNG: write_png16,
}


def write_image(path: Path, rgb: np.ndarray, fmt: OutputFormat) -> Path:
    """Write a normalized image atomically: a temp sibling is renamed into place."""
    writer = _WRITERS.get(fmt)
    if writer is None:
        raise ValueError(f"no writer for output format {fmt.value!r}")
    if rgb.ndim != 3 or rgb.shape[2] != 3:
        raise ValueError(f"expected HxWx3 RGB image, got {rgb.shape}")

    # Temp name keeps the extension since OpenCV picks the encoder from it.
    tmp = path.with_name(f".{path.stem}.partial{path.suffix}")
    try:
        writer(tmp, rgb)
        os.replace(tmp, path)
    finally:
        if tmp.exists():
            tmp.unlink()
    return path
