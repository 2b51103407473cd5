from __future__ import annotations

from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from dataclasses import dataclass, field, replace
import glob
import logging
from pathlib import Path
import threading
from typing import Iterable

import numpy as np

from rawrgb.config import AppConfig, resolve_output_policy
from rawrgb.decode import CaptureInfo, DecodeFn, get_decoder
from rawrgb.utils.params import format_params
from rawrgb.worker import FrameProcessor


logger = logging.getLogger(__name__)


@dataclass
class ConversionResult:
    source_path: Path
    image: np.ndarray
    output_path: Path | None = None
    capture: CaptureInfo | None = None


@dataclass
class FrameFailure:
    source_path: Path
    error: str
    error_type: str


@dataclass
class BatchReport:
    outputs: list[Path] = field(default_factory=list)
    failures: list[FrameFailure] = field(default_factory=list)
    skipped: list[Path] = field(default_factory=list)
    cancelled: bool = False

    @property
    def ok(self) -> bool:
        return not self.failures and not self.cancelled


def expand_inputs(pattern: str | Path) -> list[Path]:
    """Files matching a path or wildcard pattern, sorted by name."""
    text = str(Path(pattern).expanduser())
    if glob.has_magic(text):
        matches = [Path(p) for p in sorted(glob.glob(text)) if Path(p).is_file()]
    else:
        matches = [Path(text)] if Path(text).is_file() else []
    if not matches:
        raise FileNotFoundError(f"file {pattern} is not found")
    return [p.resolve() for p in matches]


def _decoder_for(config: AppConfig, decoder: DecodeFn | None) -> DecodeFn:
    if decoder is not None:
        return decoder
    return get_decoder(config.decoder, keep_intermediate=config.output.keep_intermediate)


def convert_file(
    config: AppConfig,
    input_path: Path,
    decoder: DecodeFn | None = None,
    with_capture: bool = False,
) -> ConversionResult:
    """Convert one raw file and return the normalized image.

    Writes the result only when the output config asks for it. With ``with_capture``
    the result also carries the exposure, F number, ISO and capture time; fields the
    file does not provide stay None. Any conversion error propagates.
    """
    output = resolve_output_policy(config.output, batch=False)
    if config.verbose:
        logger.info("\n%s", format_params(replace(config, output=output)))

    processor = FrameProcessor(config, output, _decoder_for(config, decoder))
    frame = processor.process(Path(input_path), with_capture=with_capture)
    return ConversionResult(
        source_path=frame.source_path,
        image=frame.image,
        output_path=frame.output_path,
        capture=frame.capture,
    )


def _run_frame(processor: FrameProcessor, path: Path, index: int, total: int) -> Path | None:
    logger.info("processing %s... (%d/%d)", path.name, index, total)
    return processor.process(path).output_path


def convert_batch(
    config: AppConfig,
    inputs: Iterable[Path],
    decoder: DecodeFn | None = None,
    cancel_event: threading.Event | None = None,
) -> BatchReport:
    """Convert many raw files, persisting every result.

    No images are returned. A failing frame is logged and recorded in the report
    and the remaining frames still run. A frame whose output path was already
    written by another frame of the batch fails with ``OutputCollision`` instead of
    overwriting it. Once ``cancel_event`` is set no new frame starts; frames
    already written stay valid.
    """
    paths = [Path(p) for p in inputs]
    output = resolve_output_policy(config.output, batch=True)
    logger.info("\n%s", format_params(replace(config, output=output)))

    processor = FrameProcessor(config, output, _decoder_for(config, decoder), exclusive_outputs=True)
    report = BatchReport()
    total = len(paths)
    pending_paths = list(enumerate(paths, start=1))

    with ThreadPoolExecutor(max_workers=config.max_workers) as pool:
        running: dict[Future[Path | None], Path] = {}

        def submit_next() -> None:
            while pending_paths and len(running) < config.max_workers:
                if cancel_event is not None and cancel_event.is_set():
                    return
                index, path = pending_paths.pop(0)
                running[pool.submit(_run_frame, processor, path, index, total)] = path

        submit_next()
        while running:
            done, _ = wait(running, return_when=FIRST_COMPLETED)
            for future in done:
                path = running.pop(future)
                try:
                    out = future.result()
                except Exception as exc:
                    logger.exception("failed to convert %s: %s", path, exc)
                    report.failures.append(FrameFailure(path, str(exc), type(exc).__name__))
                    continue
                if out is not None:
                    report.outputs.append(out)
            submit_next()

    if pending_paths:
        report.cancelled = True
        report.skipped = [path for _, path in pending_paths]
        logger.warning("batch cancelled; %d frame(s) not started", len(report.skipped))

    logger.info("done: %d written, %d failed", len(report.outputs), len(report.failures))
    return report
