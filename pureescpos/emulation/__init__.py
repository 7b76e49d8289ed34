"""Emulation package: code page tables and the printed document model."""

from .codepages import Codepage, CodepageTable, parse_codepage
from .document import (
    Alignment,
    Barcode,
    Cut,
    CutKind,
    DocumentModel,
    HriPosition,
    QrCode,
    QrErrorCorrection,
    RasterImage,
    Symbology,
    TextRun,
)

__all__ = [
    "Codepage",
    "CodepageTable",
    "parse_codepage",
    "Alignment",
    "Barcode",
    "Cut",
    "CutKind",
    "DocumentModel",
    "HriPosition",
    "QrCode",
    "QrErrorCorrection",
    "RasterImage",
    "Symbology",
    "TextRun",
]
