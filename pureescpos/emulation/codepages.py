"""
Single-byte code page tables for ESC/POS text decoding.

ESC t n selects the character code table used for bytes 0x80-0xFF. Each
supported selector maps to a 256-entry table derived once from the standard
library codec; bytes the codec leaves undefined decode to a placeholder.

The AUTO default decodes a text run as UTF-8 when it is valid UTF-8 and
with the Windows-1252 table otherwise. It is a decoding mode only and can
never be chosen by ESC t.
"""

import logging
from enum import IntEnum
from typing import Dict, Optional, Tuple

logger = logging.getLogger(__name__)

PLACEHOLDER = "�"


class Codepage(IntEnum):
    """ESC t selectors with a decoding table, plus the AUTO mode."""

    AUTO = -1
    CP437 = 0
    CP850 = 2
    CP860 = 3
    CP863 = 4
    CP865 = 5
    WPC1252 = 16
    CP866 = 17
    CP852 = 18
    CP858 = 19


# Python codec name for each supported selector
_CODEC_NAMES: Dict[Codepage, str] = {
    Codepage.CP437: "cp437",
    Codepage.CP850: "cp850",
    Codepage.CP860: "cp860",
    Codepage.CP863: "cp863",
    Codepage.CP865: "cp865",
    Codepage.WPC1252: "cp1252",
    Codepage.CP866: "cp866",
    Codepage.CP852: "cp852",
    Codepage.CP858: "cp858",
}

DEFAULT_CODEPAGE = Codepage.AUTO

# Table used by AUTO for runs that are not valid UTF-8
AUTO_FALLBACK = Codepage.WPC1252


def _build_table(codec: str) -> Tuple[str, ...]:
    """Build the byte-to-character table for a codec."""
    table = []
    for b in range(256):
        try:
            table.append(bytes([b]).decode(codec))
        except UnicodeDecodeError:
            # cp1252 leaves 0x81, 0x8D, 0x8F, 0x90 and 0x9D undefined
            table.append(PLACEHOLDER)
    return tuple(table)


_TABLES: Dict[Codepage, Tuple[str, ...]] = {
    cp: _build_table(codec) for cp, codec in _CODEC_NAMES.items()
}

# Selectors ESC t can choose, in selector order
TABLE_CODEPAGES: Tuple[Codepage, ...] = tuple(_TABLES)


def parse_codepage(value: object) -> Codepage:
    """Convert a selector number or name ("cp850", "WPC1252", "16", "auto")
    to a Codepage.

    Raises:
        ValueError: If the value names no supported code page.
    """
    if isinstance(value, Codepage):
        return value
    if isinstance(value, int):
        return Codepage(value)
    text = str(value).strip()
    if text.isdigit():
        return Codepage(int(text))
    key = text.upper().replace("-", "").replace("_", "")
    aliases = {
        "WINDOWS1252": "WPC1252",
        "CP1252": "WPC1252",
        "1252": "WPC1252",
        "UTF8": "AUTO",
    }
    key = aliases.get(key, key)
    try:
        return Codepage[key]
    except KeyError:
        raise ValueError(f"Unsupported code page '{value}'") from None


class CodepageTable:
    """Lookup of decoding tables keyed by ESC t selector.

    Unknown selectors decode with the default, so decoding has no failure
    mode. Table code pages yield one character per input byte; AUTO yields
    one character per UTF-8 sequence when the run is valid UTF-8.
    """

    def __init__(self, default: Codepage = DEFAULT_CODEPAGE) -> None:
        self.default = Codepage(default)

    @staticmethod
    def is_supported(codepage_id: int) -> bool:
        try:
            return Codepage(codepage_id) in _TABLES
        except ValueError:
            return False

    def resolve(self, codepage_id: Optional[int]) -> Codepage:
        """Return the selector itself when supported, otherwise the default."""
        if codepage_id is not None and self.is_supported(codepage_id):
            return Codepage(codepage_id)
        return self.default

    def name(self, codepage_id: Optional[int]) -> str:
        codepage = self.resolve(codepage_id)
        if codepage is Codepage.AUTO:
            return "utf-8"
        return _CODEC_NAMES[codepage]

    def table(self, codepage_id: Optional[int]) -> Tuple[str, ...]:
        codepage = self.resolve(codepage_id)
        if codepage is Codepage.AUTO:
            codepage = AUTO_FALLBACK
        return _TABLES[codepage]

    def decode(self, codepage_id: Optional[int], data: bytes) -> str:
        """Decode bytes with the table for codepage_id."""
        if not data:
            return ""
        if self.resolve(codepage_id) is Codepage.AUTO:
            try:
                return data.decode("utf-8")
            except UnicodeDecodeError:
                pass  # not UTF-8, use the fallback table
        table = self.table(codepage_id)
        return "".join(table[b] for b in data)

    def __repr__(self) -> str:
        return f"CodepageTable(default={self.default.name})"
