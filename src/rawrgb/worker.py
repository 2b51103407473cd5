from __future__ import annotations

from dataclasses import dataclass
import logging
from pathlib import Path
import threading

import numpy as np

from rawrgb.config import AppConfig, OutputConfig
from rawrgb.convert import RawConverter
from rawrgb.decode import CaptureInfo, DecodeError, DecodeFn, RawFrame, extract_capture_info
from rawrgb.errors import MetadataUnavailable, OutputCollision
from rawrgb.utils.naming import info_name_fields, output_path_for
from rawrgb.write import write_image


logger = logging.getLogger(__name__)


@dataclass
class FrameResult:
    source_path: Path
    image: np.ndarray
    output_path: Path | None = None
    capture: CaptureInfo | None = None


def _decode(decoder: DecodeFn, path: Path) -> RawFrame:
    try:
        return decoder(path)
    except DecodeError:
        raise
    except Exception as exc:
        raise DecodeError(f"decode failed for {path}: {exc}") from exc


class FrameProcessor:
    """Decode, convert and (optionally) persist one raw file.

    With ``exclusive_outputs`` every output path may be written only once per
    processor; a second frame aiming at the same path raises ``OutputCollision``.
    """

    def __init__(
        self,
        config: AppConfig,
        output: OutputConfig,
        decoder: DecodeFn,
        exclusive_outputs: bool = False,
    ) -> None:
        self.config = config
        self.output = output
        self.decoder = decoder
        self.converter = RawConverter(config.conversion)
        self._claimed: set[Path] | None = set() if exclusive_outputs else None
        self._lock = threading.Lock()

    def process(self, source_path: Path, with_capture: bool = False) -> FrameResult:
        logger.debug("decoding %s", source_path)
        frame = _decode(self.decoder, source_path)

        image = self.converter.convert(frame)
        result = FrameResult(source_path=source_path, image=image)
        rename = self.output.persist and self.output.rename_with_info
        if with_capture or rename:
            result.capture = extract_capture_info(source_path, known=frame.capture)
        if not self.output.persist:
            return result

        info_fields = self._info_fields(source_path, result.capture) if rename else None
        out_path = output_path_for(
            source_path,
            self.output.format,
            suffix=self.output.suffix,
            info_fields=info_fields,
            output_dir=self.output.output_dir,
        )
        self._claim(out_path, source_path)
        result.output_path = write_image(out_path, image, self.output.format)
        logger.info("wrote %s", out_path)
        return result

    def _claim(self, out_path: Path, source_path: Path) -> None:
        if self._claimed is None:
            return
        with self._lock:
            if out_path in self._claimed:
                raise OutputCollision(f"{out_path} is already the output of another frame; not writing {source_path}")
            self._claimed.add(out_path)

    def _info_fields(self, source_path: Path, capture: CaptureInfo | None) -> list[str] | None:
        try:
            return info_name_fields(capture)
        except MetadataUnavailable as exc:
            logger.warning("can not extract capturing info for %s: %s", source_path.name, exc)
            return None
