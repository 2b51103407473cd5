from __future__ import annotations

from pathlib import Path
from typing import Callable

from .types import RawFrame


class DecodeError(RuntimeError):
    pass


class UnsupportedFormatError(DecodeError):
    pass


class MissingDependencyError(DecodeError):
    pass


DecodeFn = Callable[[Path], RawFrame]
