from __future__ import annotations

from .base import DecodeFn, UnsupportedFormatError
from .dcraw_decoder import DcrawDecoder
from .libraw_decoder import LibRawDecoder
from .pgm_decoder import PgmDecoder


def get_decoder(name: str, keep_intermediate: bool = False) -> DecodeFn:
    """Decoder callable (path -> RawFrame) for a configured backend name."""
    key = name.lower()
    if key == "libraw":
        return LibRawDecoder().decode
    if key == "dcraw":
        return DcrawDecoder(keep_intermediate=keep_intermediate).decode
    if key == "pgm":
        return PgmDecoder().decode
    raise UnsupportedFormatError(f"unknown decoder backend {name!r}")
