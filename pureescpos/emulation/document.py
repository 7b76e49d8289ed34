"""
Structured document model produced by the ESC/POS parser.

Every element is a frozen dataclass holding a snapshot of the formatting
context at the moment it was emitted, so later state changes can never
reach back into elements already appended to a DocumentModel.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Iterator, Tuple, Type, TypeVar, Union

__all__ = [
    "Alignment",
    "CutKind",
    "HriPosition",
    "Symbology",
    "QrErrorCorrection",
    "TextRun",
    "RasterImage",
    "Barcode",
    "QrCode",
    "Cut",
    "DocumentElement",
    "DocumentModel",
]


class Alignment(Enum):
    LEFT = "left"
    CENTER = "center"
    RIGHT = "right"


class CutKind(Enum):
    PARTIAL = "partial"
    FULL = "full"


class HriPosition(Enum):
    NONE = "none"
    ABOVE = "above"
    BELOW = "below"
    BOTH = "both"


class Symbology(Enum):
    UPC_A = "upc_a"
    UPC_E = "upc_e"
    EAN13 = "ean13"
    EAN8 = "ean8"
    CODE39 = "code39"
    ITF = "itf"
    CODABAR = "codabar"
    CODE93 = "code93"
    CODE128 = "code128"


class QrErrorCorrection(Enum):
    L = "L"
    M = "M"
    Q = "Q"
    H = "H"


@dataclass(frozen=True)
class TextRun:
    """A run of decoded text sharing one formatting context."""

    content: str
    bold: bool = False
    alignment: Alignment = Alignment.LEFT
    size: Tuple[int, int] = (1, 1)
    line_break: bool = False


@dataclass(frozen=True)
class RasterImage:
    """GS v 0 raster bit image, row-major with 1 bit per pixel (MSB first)."""

    width_px: int
    height_px: int
    bitmap: bytes
    mode: int = 0

    @property
    def width_bytes(self) -> int:
        return self.width_px // 8

    def pixel(self, x: int, y: int) -> bool:
        """Return True when the dot at (x, y) is printed."""
        if not (0 <= x < self.width_px and 0 <= y < self.height_px):
            raise IndexError(
                f"Pixel ({x}, {y}) outside {self.width_px}x{self.height_px}"
            )
        byte = self.bitmap[y * self.width_bytes + x // 8]
        return bool(byte & (0x80 >> (x % 8)))


@dataclass(frozen=True)
class Barcode:
    symbology: Symbology
    data: bytes
    module_width: int = 3
    height: int = 162
    hri: HriPosition = HriPosition.NONE
    hri_font: int = 0
    alignment: Alignment = Alignment.LEFT

    def hri_text(self) -> str:
        """Human readable text for the barcode.

        CODE128 data carries code set selectors ({A, {B, {C) and function
        characters ({1 to {4) that are not printed; "{{" is a literal brace.
        """
        text = self.data.decode("latin-1")
        if self.symbology is not Symbology.CODE128:
            return text
        out = []
        i = 0
        while i < len(text):
            ch = text[i]
            if ch == "{" and i + 1 < len(text):
                nxt = text[i + 1]
                if nxt == "{":
                    out.append("{")
                    i += 2
                    continue
                if nxt in "ABC1234":
                    i += 2
                    continue
            out.append(ch)
            i += 1
        return "".join(out)


@dataclass(frozen=True)
class QrCode:
    payload: bytes
    model: int = 2
    module_size: int = 3
    error_correction: QrErrorCorrection = QrErrorCorrection.L
    alignment: Alignment = Alignment.LEFT


@dataclass(frozen=True)
class Cut:
    kind: CutKind = CutKind.FULL


DocumentElement = Union[TextRun, RasterImage, Barcode, QrCode, Cut]

E = TypeVar("E", TextRun, RasterImage, Barcode, QrCode, Cut)


class DocumentModel:
    """Ordered, immutable sequence of document elements for one job."""

    __slots__ = ("_elements",)

    def __init__(self, elements: Iterable[DocumentElement] = ()) -> None:
        self._elements: Tuple[DocumentElement, ...] = tuple(elements)

    @property
    def elements(self) -> Tuple[DocumentElement, ...]:
        return self._elements

    def __iter__(self) -> Iterator[DocumentElement]:
        return iter(self._elements)

    def __len__(self) -> int:
        return len(self._elements)

    def __getitem__(self, index: int) -> DocumentElement:
        return self._elements[index]

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, DocumentModel):
            return NotImplemented
        return self._elements == other._elements

    def __hash__(self) -> int:
        return hash(self._elements)

    def of_type(self, kind: Type[E]) -> Tuple[E, ...]:
        """Elements of one variant, in emission order."""
        return tuple(e for e in self._elements if isinstance(e, kind))

    def text_runs(self) -> Tuple[TextRun, ...]:
        return self.of_type(TextRun)

    def text(self) -> str:
        """Plain text of all runs, with a newline for every line break."""
        parts = []
        for run in self.text_runs():
            parts.append(run.content)
            if run.line_break:
                parts.append("\n")
        return "".join(parts)

    def has_visible_output(self) -> bool:
        """True when the job would put anything on paper."""
        for element in self._elements:
            if isinstance(element, TextRun):
                if element.content.strip():
                    return True
            else:
                return True
        return False

    def __repr__(self) -> str:
        return f"DocumentModel(elements={len(self._elements)})"
