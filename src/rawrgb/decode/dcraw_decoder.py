from __future__ import annotations

import logging
from pathlib import Path
import shutil
import subprocess

from .base import DecodeError, MissingDependencyError
from .pgm_decoder import read_pgm
from .types import RawFrame


logger = logging.getLogger(__name__)


class DcrawDecoder:
    """Runs ``dcraw -4 -D`` to dump the undemosaiced sensor data as a 16-bit PGM.

    The PGM lands beside the source file and is removed after reading unless
    ``keep_intermediate`` is set.
    """

    def __init__(self, keep_intermediate: bool = False, executable: str = "dcraw") -> None:
        resolved = shutil.which(executable)
        if resolved is None:
            raise MissingDependencyError(f"{executable} was not found on PATH")
        self._dcraw = resolved
        self.keep_intermediate = keep_intermediate

    def decode(self, path: Path) -> RawFrame:
        if not path.is_file():
            raise DecodeError(f"raw file not found: {path}")

        proc = subprocess.run(
            [self._dcraw, "-4", "-D", str(path)],
            capture_output=True,
            text=True,
            check=False,
        )
        if proc.returncode != 0:
            raise DecodeError(f"dcraw failed for {path}: {proc.stderr.strip() or proc.returncode}")

        pgm_path = path.with_suffix(".pgm")
        try:
            frame = read_pgm(pgm_path)
        finally:
            if not self.keep_intermediate and pgm_path.exists():
                pgm_path.unlink()
            elif self.keep_intermediate:
                logger.debug("kept intermediate %s", pgm_path)

        return RawFrame(grid=frame.grid, bit_depth=frame.bit_depth, source_path=path)

    __call__ = decode
