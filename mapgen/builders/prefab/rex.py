# mapgen/builders/prefab/rex.py
"""Reader and writer for REXPaint ``.xp`` layered images.

An ``.xp`` file is gzip-compressed little-endian data: a version, a layer
count, then for each layer its width, height and ``width*height`` cells in
column-major order. A cell is a 32-bit glyph code followed by RGB
foreground and RGB background bytes.
"""
import gzip
import zlib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Final, List, Sequence, Union

import numpy as np
import structlog

from mapgen.errors import RexFormatError

log = structlog.get_logger()

XP_CELL_DTYPE: Final[np.dtype] = np.dtype(
    [("glyph", "<i4"), ("fg", "u1", (3,)), ("bg", "u1", (3,))]
)
XP_VERSION: Final[int] = -1
TRANSPARENT_BG: Final[tuple[int, int, int]] = (255, 0, 255)
_INT32: Final[np.dtype] = np.dtype("<i4")


@dataclass
class XpLayer:
    width: int
    height: int
    cells: np.ndarray = field(repr=False)

    @classmethod
    def blank(cls, width: int, height: int) -> "XpLayer":
        cells = np.zeros(width * height, dtype=XP_CELL_DTYPE)
        cells["glyph"] = ord(" ")
        cells["bg"] = TRANSPARENT_BG
        return cls(width, height, cells)

    def _offset(self, x: int, y: int) -> int:
        return x * self.height + y

    def glyphs(self) -> np.ndarray:
        """``(height, width)`` array of glyph codes."""
        return self.cells["glyph"].reshape(self.width, self.height).T

    def set_glyph(self, x: int, y: int, glyph: Union[int, str]) -> None:
        code = ord(glyph) if isinstance(glyph, str) else glyph
        self.cells["glyph"][self._offset(x, y)] = code

    def get_glyph(self, x: int, y: int) -> int:
        return int(self.cells["glyph"][self._offset(x, y)])


@dataclass
class XpFile:
    layers: List[XpLayer] = field(default_factory=list)
    version: int = XP_VERSION

    @classmethod
    def from_rows(cls, rows: Sequence[str]) -> "XpFile":
        """Single-layer image with one row of text per map row."""
        height = len(rows)
        width = max((len(row) for row in rows), default=0)
        layer = XpLayer.blank(width, height)
        for y, row in enumerate(rows):
            for x, ch in enumerate(row):
                layer.set_glyph(x, y, ch)
        return cls([layer])

    @classmethod
    def from_bytes(cls, data: bytes) -> "XpFile":
        try:
            raw = gzip.decompress(data)
        except (OSError, EOFError, zlib.error) as e:
            log.error("REX data is not valid gzip", error=str(e))
            raise RexFormatError(f"REX data is not valid gzip: {e}") from e

        offset = 0

        def read_ints(count: int) -> np.ndarray:
            nonlocal offset
            end = offset + count * _INT32.itemsize
            if end > len(raw):
                raise RexFormatError("Truncated REX header")
            values = np.frombuffer(raw, dtype=_INT32, count=count, offset=offset)
            offset = end
            return values

        version, layer_count = (int(v) for v in read_ints(2))
        if layer_count < 0:
            raise RexFormatError(f"Invalid REX layer count {layer_count}")
        layers = []
        for layer_number in range(layer_count):
            width, height = (int(v) for v in read_ints(2))
            if width < 0 or height < 0:
                raise RexFormatError(f"Invalid REX layer size {width}x{height}")
            n_cells = width * height
            end = offset + n_cells * XP_CELL_DTYPE.itemsize
            if end > len(raw):
                log.error("Truncated REX layer", layer=layer_number, expected=end, size=len(raw))
                raise RexFormatError(f"Truncated REX layer {layer_number}")
            cells = np.frombuffer(raw, dtype=XP_CELL_DTYPE, count=n_cells, offset=offset).copy()
            offset = end
            layers.append(XpLayer(width, height, cells))
        log.debug("REX image decoded", version=version, layers=len(layers))
        return cls(layers, version)

    @classmethod
    def from_path(cls, path: Union[str, Path]) -> "XpFile":
        path = Path(path)
        if not path.is_file():
            log.error("REX file not found", path=str(path))
            raise FileNotFoundError(f"REX file not found: {path}")
        return cls.from_bytes(path.read_bytes())

    def to_bytes(self) -> bytes:
        chunks = [np.array([self.version, len(self.layers)], dtype=_INT32).tobytes()]
        for layer in self.layers:
            chunks.append(np.array([layer.width, layer.height], dtype=_INT32).tobytes())
            chunks.append(layer.cells.astype(XP_CELL_DTYPE).tobytes())
        return gzip.compress(b"".join(chunks))
