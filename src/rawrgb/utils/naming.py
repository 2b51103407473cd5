from __future__ import annotations

from datetime import datetime
from pathlib import Path
import re

from rawrgb.config import OutputFormat
from rawrgb.decode.types import CaptureInfo
from rawrgb.errors import MetadataUnavailable


_TIMESTAMP_FORMATS = ("%Y:%m:%d %H:%M:%S", "%Y-%m-%d %H:%M:%S", "%Y-%m-%dT%H:%M:%S")


def _compact_timestamp(value: str) -> str:
    text = value.strip()
    # Drop sub-second and timezone tails such as ".123" or "+02:00".
    text = re.split(r"[.+Z]", text, maxsplit=1)[0]
    for fmt in _TIMESTAMP_FORMATS:
        try:
            return datetime.strptime(text, fmt).strftime("%Y%m%d_%H%M%S")
        except ValueError:
            continue
    return text.replace(":", "").replace("-", "").replace(" ", "_").replace("T", "_")


def info_name_fields(info: CaptureInfo | None) -> list[str]:
    """Name parts for exposure (ms), F number, ISO and capture time."""
    if info is None or not info.complete:
        missing = [] if info is None else [
            key for key in ("exposure_s", "f_number", "iso", "timestamp") if getattr(info, key) is None
        ]
        detail = ", ".join(missing) if missing else "no capture metadata"
        raise MetadataUnavailable(f"capture info incomplete ({detail})")

    return [
        f"EXP{1000.0 * float(info.exposure_s):.0f}",
        f"F{float(info.f_number):.1f}",
        f"ISO{int(round(float(info.iso)))}",
        _compact_timestamp(str(info.timestamp)),
    ]


def build_output_name(
    source: Path,
    fmt: OutputFormat,
    suffix: str = "",
    info_fields: list[str] | None = None,
) -> str:
    parts = [source.stem, *(info_fields or [])]
    if suffix:
        parts.append(suffix)
    return "_".join(parts) + fmt.extension


def output_path_for(
    source: Path,
    fmt: OutputFormat,
    suffix: str = "",
    info_fields: list[str] | None = None,
    output_dir: Path | None = None,
) -> Path:
    folder = output_dir if output_dir is not None else source.parent
    return folder / build_output_name(source, fmt, suffix=suffix, info_fields=info_fields)
