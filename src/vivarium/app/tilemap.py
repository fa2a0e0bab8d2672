"""Tile map decoding for the host loop.

Maps are JSON documents of the form::

    {"width": 100, "map": "~#100#~.98#", "legend": {"#": "wall", "~": [0, 0, 1]}}

``map`` is run-length encoded: ``~`` followed by a tile symbol and a decimal
count expands to that many tiles, every other character is a single tile. The
simulation core only consumes the play-area size; the legend is handed to
whatever draws the tiles.
"""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Tuple

logger = logging.getLogger(__name__)

RgbColor = Tuple[float, float, float]

RUN_MARKER = "~"
DEFAULT_TILE_SIZE = 8
UNKNOWN_TILE_COLOR: RgbColor = (0.5, 0.5, 0.5)
DEFAULT_LEGEND: Dict[str, RgbColor] = {
    "#": (0.2, 0.2, 0.2),
    ".": (0.8, 0.8, 0.8),
}


class TileMapError(ValueError):
    pass


@dataclass
class TileMap:
    width: int
    height: int
    tiles: str
    legend: Dict[str, RgbColor] = field(default_factory=lambda: dict(DEFAULT_LEGEND))

    def tile_at(self, x: int, y: int) -> str:
        if not (0 <= x < self.width and 0 <= y < self.height):
            raise IndexError(f"tile ({x}, {y}) outside {self.width}x{self.height} map")
        return self.tiles[y * self.width + x]

    def color_of(self, symbol: str) -> RgbColor | None:
        return self.legend.get(symbol)

    def play_area(self, tile_size: int = DEFAULT_TILE_SIZE) -> tuple[float, float]:
        return (float(self.width * tile_size), float(self.height * tile_size))


def decode_rle(data: str) -> str:
    output: list[str] = []
    i = 0
    length = len(data)
    while i < length:
        if data[i] == RUN_MARKER and i + 2 < length:
            tile = data[i + 1]
            i += 2
            start = i
            while i < length and "0" <= data[i] <= "9":
                i += 1
            if start == i:
                raise TileMapError(f"run for {tile!r} at offset {start - 2} has no count")
            output.append(tile * int(data[start:i]))
        else:
            output.append(data[i])
            i += 1
    return "".join(output)


def _legend_color(symbol: str, value: object) -> RgbColor:
    if isinstance(value, (list, tuple)) and len(value) == 3:
        try:
            r, g, b = (float(channel) for channel in value)
        except (TypeError, ValueError) as exc:
            raise TileMapError(f"legend colour for {symbol!r} is not numeric: {value!r}") from exc
        return (r, g, b)
    return UNKNOWN_TILE_COLOR


def load_map(text: str) -> TileMap:
    try:
        root = json.loads(text)
    except json.JSONDecodeError as exc:
        raise TileMapError(f"map is not valid JSON: {exc}") from exc
    if not isinstance(root, dict):
        raise TileMapError("map document must be a JSON object")
    try:
        encoded = root["map"]
        width = int(root["width"])
    except KeyError as exc:
        raise TileMapError(f"map document is missing {exc.args[0]!r}") from exc
    except (TypeError, ValueError) as exc:
        raise TileMapError(f"map width is not an integer: {root.get('width')!r}") from exc
    if not isinstance(encoded, str):
        raise TileMapError("map data must be a string")
    if width <= 0:
        raise TileMapError(f"map width must be positive, got {width}")

    tiles = decode_rle(encoded)
    if len(tiles) % width != 0:
        raise TileMapError(f"decoded {len(tiles)} tiles, not a multiple of width {width}")

    legend = dict(DEFAULT_LEGEND)
    for symbol, value in (root.get("legend") or {}).items():
        if not symbol:
            raise TileMapError("legend symbols must be non-empty")
        key = symbol[0]
        if key not in legend:
            legend[key] = _legend_color(key, value)

    tile_map = TileMap(width=width, height=len(tiles) // width, tiles=tiles, legend=legend)
    logger.debug("decoded %dx%d tile map with %d legend entries", tile_map.width, tile_map.height, len(legend))
    return tile_map


def load_map_file(path: Path) -> TileMap:
    tile_map = load_map(Path(path).read_text())
    logger.info("Loaded tile map %s (%dx%d)", path, tile_map.width, tile_map.height)
    return tile_map
