"""Mutable formatting context threaded through the decoding of one job."""

from dataclasses import dataclass, field
from typing import Tuple

from ..emulation.codepages import DEFAULT_CODEPAGE
from ..emulation.document import Alignment, HriPosition, QrErrorCorrection

MIN_SIZE_MULTIPLIER = 1
MAX_SIZE_MULTIPLIER = 8


def clamp_multiplier(value: int) -> int:
    return max(MIN_SIZE_MULTIPLIER, min(MAX_SIZE_MULTIPLIER, value))


@dataclass
class BarcodeConfig:
    """Settings applied to the next GS k barcode (GS h / GS w / GS H / GS f)."""

    height: int = 162
    module_width: int = 3
    hri: HriPosition = HriPosition.NONE
    hri_font: int = 0


@dataclass
class QrConfig:
    """QR symbol settings and the payload stored by GS ( k fn 80."""

    model: int = 2
    module_size: int = 3
    error_correction: QrErrorCorrection = QrErrorCorrection.L
    payload: bytearray = field(default_factory=bytearray)


@dataclass
class ParserState:
    alignment: Alignment = Alignment.LEFT
    bold: bool = False
    width_mult: int = 1
    height_mult: int = 1
    codepage: int = int(DEFAULT_CODEPAGE)
    default_codepage: int = int(DEFAULT_CODEPAGE)
    barcode: BarcodeConfig = field(default_factory=BarcodeConfig)
    qr: QrConfig = field(default_factory=QrConfig)

    @classmethod
    def initial(cls, default_codepage: int = int(DEFAULT_CODEPAGE)) -> "ParserState":
        codepage = int(default_codepage)
        return cls(codepage=codepage, default_codepage=codepage)

    @property
    def size(self) -> Tuple[int, int]:
        return (self.width_mult, self.height_mult)

    def set_size(self, width: int, height: int) -> None:
        self.width_mult = clamp_multiplier(width)
        self.height_mult = clamp_multiplier(height)

    def reset(self) -> None:
        """ESC @: back to power-on defaults, keeping the configured code page."""
        fresh = ParserState.initial(self.default_codepage)
        self.__dict__.update(fresh.__dict__)
