from __future__ import annotations

import numpy as np

from rawrgb.errors import InsufficientData

from .patterns import BLUE, GREEN, RED, CFALayout, get_layout


def _as_grid(grid: np.ndarray) -> np.ndarray:
    arr = np.asarray(grid)
    if arr.ndim != 2:
        raise ValueError(f"expected a 2-D mosaic grid, got shape {arr.shape}")
    return arr


def check_tile_coverage(grid: np.ndarray, layout: CFALayout) -> None:
    height, width = grid.shape
    size = layout.tile_size
    if height < size or width < size:
        raise InsufficientData(
            f"{width}x{height} grid is smaller than one {size}x{size} {layout.value} tile"
        )


def trim_to_multiple(grid: np.ndarray, step: int) -> np.ndarray:
    """Drop trailing rows/columns so both dimensions are multiples of step."""
    height, width = grid.shape
    return grid[: height - height % step, : width - width % step]


def _truncating_mean(total: np.ndarray, count: np.ndarray | int, dtype: np.dtype) -> np.ndarray:
    if np.issubdtype(dtype, np.integer):
        return (total // count).astype(dtype)
    return np.trunc(total / count).astype(dtype)


def _widen(arr: np.ndarray) -> np.ndarray:
    if np.issubdtype(arr.dtype, np.integer):
        return arr.astype(np.int64)
    return arr.astype(np.float64)


def _extract_bayer(grid: np.ndarray, layout: CFALayout) -> np.ndarray:
    grid = trim_to_multiple(grid, 2)
    offsets = layout.offsets
    (r,) = offsets["R"]
    g1, g2 = offsets["G"]
    (b,) = offsets["B"]

    red = grid[r[0]::2, r[1]::2]
    green1 = grid[g1[0]::2, g1[1]::2]
    green2 = grid[g2[0]::2, g2[1]::2]
    blue = grid[b[0]::2, b[1]::2]

    # Green is the truncated mean of the two green sites of each quad.
    green = _truncating_mean(_widen(green1) + green2, 2, grid.dtype)
    return np.stack([red, green, blue], axis=-1)


def _extract_xtrans(grid: np.ndarray, layout: CFALayout) -> np.ndarray:
    grid = trim_to_multiple(grid, 3)
    height, width = grid.shape
    tile = layout.tile
    reps = (-(-height // 6), -(-width // 6))
    channel_map = np.tile(tile, reps)[:height, :width]

    values = _widen(grid)
    out = np.empty((height // 3, width // 3, 3), dtype=grid.dtype)
    for channel in (RED, GREEN, BLUE):
        mask = channel_map == channel
        # Each 3x3 block aligned to the tile origin holds 2 R, 5 G and 2 B samples.
        total = np.where(mask, values, 0).reshape(height // 3, 3, width // 3, 3).sum(axis=(1, 3))
        count = mask.reshape(height // 3, 3, width // 3, 3).sum(axis=(1, 3))
        out[..., channel] = _truncating_mean(total, count, grid.dtype)
    return out


def extract_channels(grid: np.ndarray, layout: CFALayout | str) -> np.ndarray:
    """Split a mosaic into per-channel planes without interpolation.

    Standard 2x2 layouts give a floor(H/2) x floor(W/2) x 3 image, built from the
    stride-2 subsamples at each tile offset. X-Trans gives floor(H/3) x floor(W/3) x 3,
    one pixel per 3x3 block. Trailing odd rows/columns are dropped, never leading ones.
    """
    layout = get_layout(layout)
    arr = _as_grid(grid)
    check_tile_coverage(arr, layout)
    if layout.is_bayer:
        return _extract_bayer(arr, layout)
    return _extract_xtrans(arr, layout)
