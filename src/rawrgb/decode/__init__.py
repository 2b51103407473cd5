from .base import DecodeError, DecodeFn, MissingDependencyError, UnsupportedFormatError
from .exif_metadata import extract_capture_info
from .registry import get_decoder
from .types import CaptureInfo, RawFrame

__all__ = [
    "CaptureInfo",
    "DecodeError",
    "DecodeFn",
    "MissingDependencyError",
    "RawFrame",
    "UnsupportedFormatError",
    "extract_capture_info",
    "get_decoder",
]
