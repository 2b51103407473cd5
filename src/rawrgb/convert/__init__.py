from .correction import subtract_darkness
from .normalize import OUTPUT_MAX, normalize
from .pipeline import RawConverter

__all__ = ["OUTPUT_MAX", "RawConverter", "normalize", "subtract_darkness"]
