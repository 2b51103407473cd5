from __future__ import annotations

from enum import Enum

import numpy as np

from rawrgb.errors import InvalidLayout


RED, GREEN, BLUE = 0, 1, 2
CHANNEL_NAMES = ("R", "G", "B")

# (row, col) of R, G1, G2, B inside the 2x2 tile.
_BAYER_OFFSETS: dict[str, tuple[tuple[int, int], ...]] = {
    "RGGB": ((0, 0), (0, 1), (1, 0), (1, 1)),
    "BGGR": ((1, 1), (0, 1), (1, 0), (0, 0)),
    "GBRG": ((1, 0), (0, 0), (1, 1), (0, 1)),
    "GRBG": ((0, 1), (0, 0), (1, 1), (1, 0)),
}

# Fujifilm X-Trans tile, same phase as dcraw's xtrans_abs table.
_XTRANS_TILE = (
    (1, 1, 0, 1, 1, 2),
    (1, 1, 2, 1, 1, 0),
    (2, 0, 1, 0, 2, 1),
    (1, 1, 2, 1, 1, 0),
    (1, 1, 0, 1, 1, 2),
    (0, 2, 1, 2, 0, 1),
)

_ALIASES = {"XTRANS": "XTrans", "X-TRANS": "XTrans", "X_TRANS": "XTrans"}


def _bayer_tile(name: str) -> np.ndarray:
    r, g1, g2, b = _BAYER_OFFSETS[name]
    tile = np.empty((2, 2), dtype=np.uint8)
    tile[r] = RED
    tile[g1] = GREEN
    tile[g2] = GREEN
    tile[b] = BLUE
    return tile


def _build_tiles() -> dict[str, np.ndarray]:
    tiles = {name: _bayer_tile(name) for name in _BAYER_OFFSETS}
    tiles["XTrans"] = np.array(_XTRANS_TILE, dtype=np.uint8)
    for tile in tiles.values():
        tile.setflags(write=False)
    return tiles


_TILES = _build_tiles()


class CFALayout(str, Enum):
    RGGB = "RGGB"
    BGGR = "BGGR"
    GRBG = "GRBG"
    GBRG = "GBRG"
    XTRANS = "XTrans"

    @property
    def is_bayer(self) -> bool:
        return self is not CFALayout.XTRANS

    @property
    def tile(self) -> np.ndarray:
        """Channel index (0=R, 1=G, 2=B) of every cell in one repeating tile."""
        return _TILES[self.value]

    @property
    def tile_size(self) -> int:
        return int(self.tile.shape[0])

    @property
    def offsets(self) -> dict[str, list[tuple[int, int]]]:
        out: dict[str, list[tuple[int, int]]] = {name: [] for name in CHANNEL_NAMES}
        if self.is_bayer:
            r, g1, g2, b = _BAYER_OFFSETS[self.value]
            out["R"].append(r)
            out["G"].extend([g1, g2])
            out["B"].append(b)
            return out
        for (row, col), channel in np.ndenumerate(self.tile):
            out[CHANNEL_NAMES[channel]].append((int(row), int(col)))
        return out


def get_layout(name: str | CFALayout) -> CFALayout:
    if isinstance(name, CFALayout):
        return name
    if not isinstance(name, str):
        raise InvalidLayout(f"CFA layout must be a string, got {type(name).__name__}")

    key = name.strip().upper()
    key = _ALIASES.get(key, key)
    try:
        return CFALayout(key)
    except ValueError:
        valid = ", ".join(layout.value for layout in CFALayout)
        raise InvalidLayout(f"unknown CFA layout {name!r}; expected one of: {valid}") from None


def layout_from_pattern(pattern: str | None) -> CFALayout | None:
    """Map a decoder pattern string ("RGGB", or 36 letters for X-Trans) to a layout."""
    if not pattern:
        return None
    letters = pattern.strip().upper()
    if len(letters) == 4:
        return CFALayout.__members__.get(letters)
    if len(letters) == 36:
        expected = "".join(CHANNEL_NAMES[c] for c in _TILES["XTrans"].flatten())
        if letters == expected:
            return CFALayout.XTRANS
    return None
