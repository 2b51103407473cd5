from __future__ import annotations

import logging

import cv2
import numpy as np

from .extract import _as_grid, check_tile_coverage, trim_to_multiple
from .patterns import CFALayout, get_layout


logger = logging.getLogger(__name__)

_BAYER_CODES = {
    CFALayout.RGGB: cv2.COLOR_BayerRGGB2RGB,
    CFALayout.BGGR: cv2.COLOR_BayerBGGR2RGB,
    CFALayout.GRBG: cv2.COLOR_BayerGRBG2RGB,
    CFALayout.GBRG: cv2.COLOR_BayerGBRG2RGB,
}

_XTRANS_WINDOWS = (3, 5, 7)


def _to_uint16(grid: np.ndarray) -> np.ndarray:
    if grid.dtype == np.uint16:
        return np.ascontiguousarray(grid)
    return np.clip(grid, 0, 65535).astype(np.uint16)


def _demosaic_bayer(grid: np.ndarray, layout: CFALayout) -> np.ndarray:
    mosaic = _to_uint16(trim_to_multiple(grid, 2))
    return cv2.cvtColor(mosaic, _BAYER_CODES[layout])


def _window_sum(values: np.ndarray, size: int) -> np.ndarray:
    kernel = np.ones((size, size), dtype=np.float64)
    return cv2.filter2D(values, cv2.CV_64F, kernel, borderType=cv2.BORDER_CONSTANT)


def _demosaic_xtrans(grid: np.ndarray, layout: CFALayout) -> np.ndarray:
    height, width = grid.shape
    reps = (-(-height // 6), -(-width // 6))
    channel_map = np.tile(layout.tile, reps)[:height, :width]
    values = grid.astype(np.float64)

    out = np.zeros((height, width, 3), dtype=np.float64)
    for channel in range(3):
        mask = (channel_map == channel).astype(np.float64)
        plane = values * mask
        estimate = np.zeros_like(values)
        missing = np.ones(values.shape, dtype=bool)
        for size in _XTRANS_WINDOWS:
            total = _window_sum(plane, size)
            count = _window_sum(mask, size)
            fill = missing & (count > 0.5)
            estimate[fill] = total[fill] / count[fill]
            missing &= ~fill
            if not missing.any():
                break
        out[..., channel] = np.where(mask > 0, values, estimate)

    return np.clip(np.floor(out + 0.5), 0, 65535).astype(np.uint16)


def interpolate_channels(grid: np.ndarray, layout: CFALayout | str) -> np.ndarray:
    """Full-resolution RGB from a mosaic.

    Bayer layouts use OpenCV's bilinear demosaic on the even-trimmed grid. X-Trans
    runs a normalized convolution over same-channel neighbours, which is slow.
    """
    layout = get_layout(layout)
    arr = _as_grid(grid)
    check_tile_coverage(arr, layout)
    if layout.is_bayer:
        return _demosaic_bayer(arr, layout)

    logger.warning("interpolation for X-Trans CFA is slow (%dx%d grid)", arr.shape[1], arr.shape[0])
    return _demosaic_xtrans(arr, layout)
