from __future__ import annotations

import logging

import numpy as np

from rawrgb.cfa import extract_channels, interpolate_channels, layout_from_pattern
from rawrgb.config import ConversionConfig
from rawrgb.decode.types import RawFrame

from .correction import subtract_darkness
from .normalize import normalize


logger = logging.getLogger(__name__)


def _warn_clipping(grid: np.ndarray, saturation_level: float, frame: RawFrame, threshold: float = 0.01) -> None:
    if grid.size == 0:
        return
    clipped = float(np.mean(grid >= saturation_level))
    if clipped > threshold:
        logger.warning("%.2f%% of samples at or above saturation in %s", clipped * 100.0, frame.source_path)


def _warn_bit_depth(config: ConversionConfig, frame: RawFrame) -> None:
    if frame.grid.size == 0:
        return
    peak = int(frame.grid.max())
    ceiling = 2**config.bit_depth - 1
    if peak > ceiling:
        logger.warning(
            "samples up to %d exceed the configured %d-bit range in %s (decoder reports %d-bit data)",
            peak,
            config.bit_depth,
            frame.source_path,
            frame.bit_depth,
        )


def _warn_layout_mismatch(config: ConversionConfig, frame: RawFrame) -> None:
    detected = layout_from_pattern(frame.cfa_pattern)
    if detected is not None and detected is not config.cfa:
        logger.warning(
            "configured CFA %s differs from decoder-reported %s for %s",
            config.cfa.value,
            detected.value,
            frame.source_path,
        )


class RawConverter:
    """Dark correction, channel extraction and normalization of one raw frame."""

    def __init__(self, config: ConversionConfig) -> None:
        self.config = config

    def convert(self, frame: RawFrame) -> np.ndarray:
        cfg = self.config
        _warn_layout_mismatch(cfg, frame)
        _warn_bit_depth(cfg, frame)
        _warn_clipping(frame.grid, cfg.saturation_level, frame)

        corrected = subtract_darkness(frame.grid, cfg.darkness_level)
        if cfg.interpolate:
            channels = interpolate_channels(corrected, cfg.cfa)
        else:
            channels = extract_channels(corrected, cfg.cfa)
        return normalize(channels, cfg.darkness_level, cfg.saturation_level)
