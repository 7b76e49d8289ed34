"""
ESC/POS command decoder.

CommandDecoder recognises exactly one command (or one run of text) at an
offset and reports how many bytes it covers together with the effect it has
on the document. Sub-decoders are looked up by opcode in per-prefix handler
tables; every read goes through BaseParser, so a command whose declared
length runs past the end of the job surfaces as a single TruncationError
that decode_one converts into a truncated DecodeResult.
"""

import logging
from dataclasses import dataclass
from typing import Callable, Dict, Optional, Union

from ..emulation.codepages import CodepageTable
from ..emulation.document import (
    Alignment,
    Barcode,
    Cut,
    CutKind,
    DocumentElement,
    HriPosition,
    QrCode,
    QrErrorCorrection,
    RasterImage,
    Symbology,
)
from ..exceptions import TruncationError
from .parser import BaseParser
from .state import ParserState
from .utils import (
    CR,
    DLE,
    DLE_FIXED_PARAMS,
    ESC,
    ESC_ALIGN,
    ESC_BIT_IMAGE,
    ESC_BOLD,
    ESC_CODEPAGE,
    ESC_DOUBLE_STRIKE,
    ESC_FIXED_PARAMS,
    ESC_FULL_CUT,
    ESC_INIT,
    ESC_PARTIAL_CUT,
    ESC_PRINT_MODE,
    FS,
    FS_FIXED_PARAMS,
    GS,
    GS_BARCODE,
    GS_BARCODE_HEIGHT,
    GS_BARCODE_WIDTH,
    GS_CUT,
    GS_EXTENDED,
    GS_FIXED_PARAMS,
    GS_GRAPHICS_LONG,
    GS_HRI_FONT,
    GS_HRI_POSITION,
    GS_RASTER,
    GS_SIZE,
    HT,
    LF,
    QR_CN,
    QR_FN_ERROR_CORRECTION,
    QR_FN_MODEL,
    QR_FN_MODULE_SIZE,
    QR_FN_PRINT,
    QR_FN_STORE,
    QR_STORE_MODE,
    command_name,
)

logger = logging.getLogger(__name__)

StateMutation = Callable[[ParserState], None]


@dataclass(frozen=True)
class EmitText:
    """Raw text bytes, decoded later with the active code page."""

    data: bytes
    line_break: bool = False


@dataclass(frozen=True)
class MutateState:
    apply: StateMutation
    description: str


@dataclass(frozen=True)
class EmitElement:
    """A finished element; `after` runs on the state once it is appended."""

    element: DocumentElement
    after: Optional[StateMutation] = None


@dataclass(frozen=True)
class Ignore:
    reason: str
    unknown: bool = False


Effect = Union[EmitText, MutateState, EmitElement, Ignore]


@dataclass(frozen=True)
class DecodeResult:
    consumed: int
    effect: Effect
    truncated: bool = False


class PartialCommandError(TruncationError):
    """Truncated command that still produced a usable effect."""

    def __init__(self, message: str, effect: Effect, context=None):
        super().__init__(message, context=context)
        self.effect = effect


Handler = Callable[[BaseParser, ParserState], Effect]

_ALIGNMENTS = {
    0: Alignment.LEFT,
    1: Alignment.CENTER,
    2: Alignment.RIGHT,
    48: Alignment.LEFT,
    49: Alignment.CENTER,
    50: Alignment.RIGHT,
}

_HRI_POSITIONS = {
    0: HriPosition.NONE,
    1: HriPosition.ABOVE,
    2: HriPosition.BELOW,
    3: HriPosition.BOTH,
}

_FULL_CUT_MODES = frozenset({0, 48, 65, 97, 103})
_PARTIAL_CUT_MODES = frozenset({1, 49, 66, 98, 104})

# GS k m: function A (NUL terminated) and function B (length prefixed)
_SYMBOLOGY_A = {
    0: Symbology.UPC_A,
    1: Symbology.UPC_E,
    2: Symbology.EAN13,
    3: Symbology.EAN8,
    4: Symbology.CODE39,
    5: Symbology.ITF,
    6: Symbology.CODABAR,
}
_SYMBOLOGY_B = {
    65: Symbology.UPC_A,
    66: Symbology.UPC_E,
    67: Symbology.EAN13,
    68: Symbology.EAN8,
    69: Symbology.CODE39,
    70: Symbology.ITF,
    71: Symbology.CODABAR,
    72: Symbology.CODE93,
    73: Symbology.CODE128,
}
_FUNCTION_B_START = 65

_QR_ERROR_CORRECTION = {
    48: QrErrorCorrection.L,
    49: QrErrorCorrection.M,
    50: QrErrorCorrection.Q,
    51: QrErrorCorrection.H,
}

_QR_MAX_MODULE_SIZE = 16
_RASTER_SUBCOMMAND = 0x30  # GS v 0
_GRAPHICS_LONG_SUBCOMMAND = 0x4C  # GS 8 L
_QR_FUNCTION_TYPE = 0x6B  # GS ( k


def _is_text_byte(byte: int) -> bool:
    return byte >= 0x20 or byte == HT


class CommandDecoder:
    """Decode one ESC/POS command or text run at a time."""

    def __init__(self, codepages: Optional[CodepageTable] = None) -> None:
        self.codepages = codepages or CodepageTable()

        self._esc_handlers: Dict[int, Handler] = {
            ESC_INIT: self._handle_init,
            ESC_BOLD: self._handle_bold,
            ESC_DOUBLE_STRIKE: self._handle_bold,
            ESC_PRINT_MODE: self._handle_print_mode,
            ESC_ALIGN: self._handle_align,
            ESC_CODEPAGE: self._handle_codepage,
            ESC_BIT_IMAGE: self._handle_bit_image,
            ESC_FULL_CUT: lambda cursor, state: EmitElement(Cut(CutKind.FULL)),
            ESC_PARTIAL_CUT: lambda cursor, state: EmitElement(Cut(CutKind.PARTIAL)),
        }
        self._gs_handlers: Dict[int, Handler] = {
            GS_SIZE: self._handle_size,
            GS_EXTENDED: self._handle_extended,
            GS_GRAPHICS_LONG: self._handle_graphics_long,
            GS_CUT: self._handle_cut,
            GS_RASTER: self._handle_raster,
            GS_HRI_POSITION: self._handle_hri_position,
            GS_HRI_FONT: self._handle_hri_font,
            GS_BARCODE_HEIGHT: self._handle_barcode_height,
            GS_BARCODE_WIDTH: self._handle_barcode_width,
            GS_BARCODE: self._handle_barcode,
        }
        self._handlers: Dict[int, Dict[int, Handler]] = {
            ESC: self._esc_handlers,
            GS: self._gs_handlers,
            FS: {},
            DLE: {},
        }
        self._fixed_params: Dict[int, Dict[int, int]] = {
            ESC: ESC_FIXED_PARAMS,
            GS: GS_FIXED_PARAMS,
            FS: FS_FIXED_PARAMS,
            DLE: DLE_FIXED_PARAMS,
        }

    def decode_one(self, data: bytes, offset: int, state: ParserState) -> DecodeResult:
        """Decode the command or text run starting at `offset`.

        The state is only read here; mutations are returned as effects for
        the caller to apply in order.

        Raises:
            ValueError: If offset does not point inside data.
        """
        if not 0 <= offset < len(data):
            raise ValueError(f"Offset {offset} outside buffer of {len(data)} bytes")

        cursor = BaseParser(data, offset)
        byte = data[offset]
        try:
            if byte in self._handlers:
                effect = self._decode_command(cursor, state)
            elif byte == LF:
                cursor.read_byte()
                effect = EmitText(b"", line_break=True)
            elif byte == CR:
                cursor.read_byte()
                effect = Ignore("carriage return")
            elif _is_text_byte(byte):
                effect = self._decode_text(cursor)
            else:
                cursor.read_byte()
                effect = Ignore(f"control byte 0x{byte:02x}")
        except PartialCommandError as e:
            logger.debug("Partial command at offset %d: %s", offset, e)
            return DecodeResult(len(data) - offset, e.effect, truncated=True)
        except TruncationError as e:
            logger.debug("Truncated command at offset %d: %s", offset, e)
            return DecodeResult(
                len(data) - offset,
                Ignore(f"truncated command at offset {offset}"),
                truncated=True,
            )
        return DecodeResult(cursor.pos - offset, effect)

    def _decode_text(self, cursor: BaseParser) -> EmitText:
        start = cursor.pos
        while True:
            nxt = cursor.peek_byte()
            if nxt is None or not _is_text_byte(nxt):
                break
            cursor.read_byte()
        end = cursor.pos
        # The run absorbs its line terminator (CR, LF or CR LF)
        while cursor.peek_byte() == CR:
            cursor.read_byte()
        line_break = False
        if cursor.peek_byte() == LF:
            cursor.read_byte()
            line_break = True
        return EmitText(cursor.slice(start, end), line_break=line_break)

    def _decode_command(self, cursor: BaseParser, state: ParserState) -> Effect:
        prefix = cursor.read_byte()
        opcode = cursor.read_byte()
        handler = self._handlers[prefix].get(opcode)
        if handler is not None:
            return handler(cursor, state)
        fixed = self._fixed_params[prefix].get(opcode)
        name = command_name(prefix, opcode)
        if fixed is not None:
            cursor.skip(fixed)
            return Ignore(f"{name} has no rendering effect")
        return Ignore(f"unknown command {name}", unknown=True)

    # ESC commands

    def _handle_init(self, cursor: BaseParser, state: ParserState) -> Effect:
        return MutateState(lambda s: s.reset(), "initialize printer")

    def _handle_bold(self, cursor: BaseParser, state: ParserState) -> Effect:
        bold = bool(cursor.read_byte() & 0x01)

        def apply(s: ParserState) -> None:
            s.bold = bold

        return MutateState(apply, f"bold={bold}")

    def _handle_print_mode(self, cursor: BaseParser, state: ParserState) -> Effect:
        n = cursor.read_byte()
        bold = bool(n & 0x08)
        height = 2 if n & 0x10 else 1
        width = 2 if n & 0x20 else 1

        def apply(s: ParserState) -> None:
            s.bold = bold
            s.set_size(width, height)

        return MutateState(apply, f"print mode 0x{n:02x}")

    def _handle_align(self, cursor: BaseParser, state: ParserState) -> Effect:
        alignment = _ALIGNMENTS.get(cursor.read_byte(), Alignment.LEFT)

        def apply(s: ParserState) -> None:
            s.alignment = alignment

        return MutateState(apply, f"alignment={alignment.value}")

    def _handle_codepage(self, cursor: BaseParser, state: ParserState) -> Effect:
        n = cursor.read_byte()
        supported = self.codepages.is_supported(n)
        if not supported:
            logger.debug("Unsupported code page %d, using default", n)

        def apply(s: ParserState) -> None:
            s.codepage = n if supported else s.default_codepage

        return MutateState(apply, f"codepage={n}")

    def _handle_bit_image(self, cursor: BaseParser, state: ParserState) -> Effect:
        mode = cursor.read_byte()
        columns = cursor.read_u16()
        # 24-dot modes carry three bytes per column
        length = columns * 3 if mode in (32, 33) else columns
        cursor.skip(length)
        return Ignore(f"ESC * bit image, {length} bytes")

    # GS commands

    def _handle_size(self, cursor: BaseParser, state: ParserState) -> Effect:
        n = cursor.read_byte()
        width = (n & 0x0F) + 1
        height = ((n >> 4) & 0x0F) + 1

        def apply(s: ParserState) -> None:
            s.set_size(width, height)

        return MutateState(apply, f"size={width}x{height}")

    def _handle_cut(self, cursor: BaseParser, state: ParserState) -> Effect:
        mode = cursor.read_byte()
        if mode >= 65:
            cursor.read_byte()  # feed amount
        if mode in _PARTIAL_CUT_MODES:
            return EmitElement(Cut(CutKind.PARTIAL))
        if mode not in _FULL_CUT_MODES:
            logger.debug("GS V with unexpected mode %d treated as full cut", mode)
        return EmitElement(Cut(CutKind.FULL))

    def _handle_raster(self, cursor: BaseParser, state: ParserState) -> Effect:
        if cursor.read_byte() != _RASTER_SUBCOMMAND:
            return Ignore("unknown command GS v", unknown=True)
        mode = cursor.read_byte()
        width_bytes = cursor.read_u16()
        height = cursor.read_u16()
        expected = width_bytes * height
        if expected == 0:
            return Ignore("empty raster image")
        if cursor.remaining() >= expected:
            bitmap = cursor.read_fixed(expected)
            return EmitElement(RasterImage(width_bytes * 8, height, bitmap, mode))

        rows = cursor.remaining() // width_bytes
        context = {"expected": expected, "available": cursor.remaining()}
        effect: Effect
        if rows:
            bitmap = cursor.read_fixed(rows * width_bytes)
            effect = EmitElement(RasterImage(width_bytes * 8, rows, bitmap, mode))
        else:
            effect = Ignore("raster image without a complete row")
        raise PartialCommandError("Raster image truncated", effect, context=context)

    def _handle_hri_position(self, cursor: BaseParser, state: ParserState) -> Effect:
        n = cursor.read_byte()
        # Both 0..3 and ASCII '0'..'3' select the position
        position = _HRI_POSITIONS.get(n if n < 48 else n - 48, HriPosition.NONE)

        def apply(s: ParserState) -> None:
            s.barcode.hri = position

        return MutateState(apply, f"hri={position.value}")

    def _handle_hri_font(self, cursor: BaseParser, state: ParserState) -> Effect:
        font = cursor.read_byte() & 0x01

        def apply(s: ParserState) -> None:
            s.barcode.hri_font = font

        return MutateState(apply, f"hri font={font}")

    def _handle_barcode_height(self, cursor: BaseParser, state: ParserState) -> Effect:
        height = max(cursor.read_byte(), 1)

        def apply(s: ParserState) -> None:
            s.barcode.height = height

        return MutateState(apply, f"barcode height={height}")

    def _handle_barcode_width(self, cursor: BaseParser, state: ParserState) -> Effect:
        width = max(cursor.read_byte(), 1)

        def apply(s: ParserState) -> None:
            s.barcode.module_width = width

        return MutateState(apply, f"barcode module width={width}")

    def _handle_barcode(self, cursor: BaseParser, state: ParserState) -> Effect:
        m = cursor.read_byte()
        if m >= _FUNCTION_B_START:
            data = cursor.read_fixed(cursor.read_byte())
            symbology = _SYMBOLOGY_B.get(m)
        else:
            data = cursor.read_until(0x00)
            symbology = _SYMBOLOGY_A.get(m)
        if symbology is None:
            return Ignore(f"unknown barcode type {m}", unknown=True)
        config = state.barcode
        return EmitElement(
            Barcode(
                symbology=symbology,
                data=bytes(data),
                module_width=config.module_width,
                height=config.height,
                hri=config.hri,
                hri_font=config.hri_font,
                alignment=state.alignment,
            )
        )

    def _handle_graphics_long(self, cursor: BaseParser, state: ParserState) -> Effect:
        if cursor.read_byte() != _GRAPHICS_LONG_SUBCOMMAND:
            return Ignore("unknown command GS 8", unknown=True)
        length = cursor.read_u32()
        cursor.skip(length)
        return Ignore(f"GS 8 L graphics, {length} bytes")

    def _handle_extended(self, cursor: BaseParser, state: ParserState) -> Effect:
        """GS ( fn pL pH: self-describing block of pL + 256 * pH bytes."""
        function_type = cursor.read_byte()
        body = cursor.read_fixed(cursor.read_u16())
        if function_type == _QR_FUNCTION_TYPE and len(body) >= 2 and body[0] == QR_CN:
            return self._handle_qr(body[1], body[2:], state)
        return Ignore(f"GS ( 0x{function_type:02x} block, {len(body)} bytes")

    def _handle_qr(self, fn: int, params: bytes, state: ParserState) -> Effect:
        if fn == QR_FN_MODEL and params:
            n1 = params[0]
            # 49..51 select models 1, 2 and micro QR
            model = n1 - 48 if 49 <= n1 <= 51 else n1

            def set_model(s: ParserState) -> None:
                s.qr.model = model

            return MutateState(set_model, f"qr model={model}")

        if fn == QR_FN_MODULE_SIZE and params:
            size = max(1, min(_QR_MAX_MODULE_SIZE, params[0]))

            def set_size(s: ParserState) -> None:
                s.qr.module_size = size

            return MutateState(set_size, f"qr module size={size}")

        if fn == QR_FN_ERROR_CORRECTION and params:
            level = _QR_ERROR_CORRECTION.get(params[0])
            if level is None:
                return Ignore(f"unsupported QR error correction {params[0]}")

            def set_level(s: ParserState) -> None:
                s.qr.error_correction = level

            return MutateState(set_level, f"qr error correction={level.value}")

        if fn == QR_FN_STORE and params and params[0] == QR_STORE_MODE:
            chunk = bytes(params[1:])

            def store(s: ParserState) -> None:
                s.qr.payload.extend(chunk)

            return MutateState(store, f"qr store {len(chunk)} bytes")

        if fn == QR_FN_PRINT:
            qr = state.qr
            if not qr.payload:
                return Ignore("QR print without stored data")

            def clear(s: ParserState) -> None:
                s.qr.payload.clear()

            element = QrCode(
                payload=bytes(qr.payload),
                model=qr.model,
                module_size=qr.module_size,
                error_correction=qr.error_correction,
                alignment=state.alignment,
            )
            return EmitElement(element, after=clear)

        return Ignore(f"QR function {fn} has no rendering effect")
