from __future__ import annotations

from datetime import datetime
from pathlib import Path
from typing import Any

import numpy as np

from .base import DecodeError, MissingDependencyError
from .types import CaptureInfo, RawFrame


try:
    import rawpy  # type: ignore
except Exception:  # pragma: no cover - dependency is optional
    rawpy = None


def _safe_meta(raw: Any, key: str) -> float | None:
    meta = getattr(raw, "metadata", None) or getattr(raw, "other", None)
    value = getattr(meta, key, None)
    if value in (None, 0):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _capture_info(raw: Any) -> CaptureInfo:
    stamp = _safe_meta(raw, "timestamp")
    timestamp = None
    if stamp is not None:
        timestamp = datetime.fromtimestamp(stamp).strftime("%Y:%m:%d %H:%M:%S")
    return CaptureInfo(
        exposure_s=_safe_meta(raw, "shutter"),
        f_number=_safe_meta(raw, "aperture"),
        iso=_safe_meta(raw, "iso_speed"),
        timestamp=timestamp,
    )


def _cfa_pattern(raw: Any) -> str | None:
    pattern = getattr(raw, "raw_pattern", None)
    desc = getattr(raw, "color_desc", None)
    if pattern is None or desc is None:
        return None
    try:
        letters = desc.decode("ascii") if isinstance(desc, bytes) else str(desc)
        return "".join(letters[int(v)] for v in np.array(pattern).flatten())
    except Exception:
        return None


def _bit_depth(raw: Any, grid: np.ndarray) -> int:
    white = getattr(raw, "white_level", None)
    if white:
        return max(1, int(white).bit_length())
    return max(1, int(grid.max()).bit_length()) if grid.size else 16


class LibRawDecoder:
    """Undemosaiced sensor data via rawpy (LibRaw backend)."""

    def __init__(self) -> None:
        if rawpy is None:
            raise MissingDependencyError("rawpy is required for in-process raw decode: pip install rawpy")

    def decode(self, path: Path) -> RawFrame:
        try:
            with rawpy.imread(str(path)) as raw:
                grid = np.array(raw.raw_image_visible, dtype=np.uint16, copy=True)
                if grid.ndim != 2:
                    raise DecodeError(f"unexpected raw shape for {path}: {grid.shape}")
                return RawFrame(
                    grid=grid,
                    bit_depth=_bit_depth(raw, grid),
                    source_path=path,
                    cfa_pattern=_cfa_pattern(raw),
                    capture=_capture_info(raw),
                )
        except MissingDependencyError:
            raise
        except DecodeError:
            raise
        except Exception as exc:
            raise DecodeError(f"decode failed for {path}: {exc}") from exc

    __call__ = decode
