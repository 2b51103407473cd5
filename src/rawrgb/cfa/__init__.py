from .extract import extract_channels
from .interpolate import interpolate_channels
from .patterns import CFALayout, get_layout, layout_from_pattern

__all__ = [
    "CFALayout",
    "extract_channels",
    "get_layout",
    "interpolate_channels",
    "layout_from_pattern",
]
