from __future__ import annotations

from pathlib import Path
from typing import Any
import json
import shutil
import subprocess

from .types import CaptureInfo


def _ratio_like_to_float(value: Any) -> float | None:
    if value is None:
        return None

    # exifread often stores values as a list-like container.
    if isinstance(value, (list, tuple)) and len(value) > 0:
        value = value[0]
    values = getattr(value, "values", None)
    if isinstance(values, (list, tuple)) and len(values) > 0:
        value = values[0]

    if hasattr(value, "num") and hasattr(value, "den"):
        den = float(getattr(value, "den", 0) or 0)
        if den == 0.0:
            return None
        return float(getattr(value, "num", 0)) / den

    try:
        return float(value)
    except Exception:
        return None


def _positive(value: float | None) -> float | None:
    if value is not None and value <= 0:
        return None
    return value


def _text(value: Any) -> str | None:
    if value is None:
        return None
    text = str(getattr(value, "printable", value)).strip()
    return text or None


def _extract_with_exifread(path: Path) -> CaptureInfo:
    try:
        import exifread  # type: ignore
    except Exception:
        return CaptureInfo()

    try:
        with path.open("rb") as f:
            tags = exifread.process_file(f, details=False)
    except Exception:
        return CaptureInfo()

    return CaptureInfo(
        exposure_s=_positive(_ratio_like_to_float(tags.get("EXIF ExposureTime"))),
        f_number=_positive(_ratio_like_to_float(tags.get("EXIF FNumber"))),
        iso=_positive(
            _ratio_like_to_float(tags.get("EXIF ISOSpeedRatings") or tags.get("EXIF PhotographicSensitivity"))
        ),
        timestamp=_text(tags.get("EXIF DateTimeDigitized") or tags.get("Image DateTime")),
    )


def _extract_with_exiftool(path: Path) -> CaptureInfo:
    exiftool = shutil.which("exiftool")
    if exiftool is None:
        return CaptureInfo()

    try:
        proc = subprocess.run(
            [
                exiftool,
                "-j",
                "-n",
                "-ISO",
                "-ExposureTime",
                "-FNumber",
                "-CreateDate",
                str(path),
            ],
            capture_output=True,
            text=True,
            check=False,
        )
        if proc.returncode != 0:
            return CaptureInfo()

        rows = json.loads(proc.stdout)
        if not rows:
            return CaptureInfo()
        row = rows[0]

        return CaptureInfo(
            exposure_s=_positive(_ratio_like_to_float(row.get("ExposureTime"))),
            f_number=_positive(_ratio_like_to_float(row.get("FNumber"))),
            iso=_positive(_ratio_like_to_float(row.get("ISO"))),
            timestamp=_text(row.get("CreateDate")),
        )
    except Exception:
        return CaptureInfo()


def merge_capture_info(primary: CaptureInfo | None, fallback: CaptureInfo) -> CaptureInfo:
    if primary is None:
        return fallback
    return CaptureInfo(
        exposure_s=primary.exposure_s if primary.exposure_s is not None else fallback.exposure_s,
        f_number=primary.f_number if primary.f_number is not None else fallback.f_number,
        iso=primary.iso if primary.iso is not None else fallback.iso,
        timestamp=primary.timestamp if primary.timestamp is not None else fallback.timestamp,
    )


def extract_capture_info(path: Path, known: CaptureInfo | None = None) -> CaptureInfo:
    """Exposure time, F number, ISO and capture time of a raw file.

    Values already known (e.g. from the decoder) win. Missing ones are looked up
    with exifread first and exiftool second; anything still missing stays None.
    """
    info = known or CaptureInfo()
    if info.complete:
        return info

    # exifread does not reliably handle ISO BMFF RAW containers such as .CR3.
    if path.suffix.lower() in {".cr2", ".dng", ".nef", ".arw", ".rw2", ".orf", ".pef", ".raf"}:
        info = merge_capture_info(info, _extract_with_exifread(path))
        if info.complete:
            return info

    return merge_capture_info(info, _extract_with_exiftool(path))
