"""ESC/POS protocol constants and diagnostic helpers."""

# Command prefixes
ESC = 0x1B
GS = 0x1D
FS = 0x1C
DLE = 0x10

# C0 controls with text semantics
HT = 0x09
LF = 0x0A
CR = 0x0D

# ESC opcodes
ESC_INIT = 0x40  # ESC @
ESC_BOLD = 0x45  # ESC E n
ESC_DOUBLE_STRIKE = 0x47  # ESC G n
ESC_PRINT_MODE = 0x21  # ESC ! n
ESC_ALIGN = 0x61  # ESC a n
ESC_CODEPAGE = 0x74  # ESC t n
ESC_BIT_IMAGE = 0x2A  # ESC * m nL nH d1...dk
ESC_FULL_CUT = 0x69  # ESC i
ESC_PARTIAL_CUT = 0x6D  # ESC m

# GS opcodes
GS_SIZE = 0x21  # GS ! n
GS_EXTENDED = 0x28  # GS ( fn pL pH ...
GS_GRAPHICS_LONG = 0x38  # GS 8 L p1 p2 p3 p4 ...
GS_CUT = 0x56  # GS V m [n]
GS_RASTER = 0x76  # GS v 0 m xL xH yL yH d...
GS_HRI_POSITION = 0x48  # GS H n
GS_HRI_FONT = 0x66  # GS f n
GS_BARCODE_HEIGHT = 0x68  # GS h n
GS_BARCODE_WIDTH = 0x77  # GS w n
GS_BARCODE = 0x6B  # GS k m ...

# GS ( k function codes for QR (cn = 49)
QR_CN = 0x31
QR_FN_MODEL = 0x41
QR_FN_MODULE_SIZE = 0x43
QR_FN_ERROR_CORRECTION = 0x45
QR_FN_STORE = 0x50
QR_FN_PRINT = 0x51
QR_STORE_MODE = 0x30

# Commands without rendering effect, keyed by opcode: number of parameter
# bytes. They are consumed so their parameters never leak into text.
ESC_FIXED_PARAMS = {
    0x20: 1,  # ESC SP n  right-side character spacing
    0x24: 2,  # ESC $ nL nH  absolute print position
    0x25: 1,  # ESC % n  user-defined character set
    0x2D: 1,  # ESC - n  underline
    0x32: 0,  # ESC 2  default line spacing
    0x33: 1,  # ESC 3 n  line spacing
    0x3D: 1,  # ESC = n  peripheral device
    0x4A: 1,  # ESC J n  print and feed dots
    0x4D: 1,  # ESC M n  character font
    0x52: 1,  # ESC R n  international character set
    0x56: 1,  # ESC V n  90 degree rotation
    0x5C: 2,  # ESC \ nL nH  relative print position
    0x63: 2,  # ESC c n m  panel / sensor settings
    0x64: 1,  # ESC d n  print and feed lines
    0x70: 3,  # ESC p m t1 t2  drawer kick pulse
    0x72: 1,  # ESC r n  print color
    0x7B: 1,  # ESC { n  upside-down
}

GS_FIXED_PARAMS = {
    0x3A: 0,  # GS :  macro definition start/end
    0x42: 1,  # GS B n  reverse printing
    0x49: 1,  # GS I n  transmit printer ID
    0x4C: 2,  # GS L nL nH  left margin
    0x50: 2,  # GS P x y  motion units
    0x57: 2,  # GS W nL nH  print area width
    0x61: 1,  # GS a n  automatic status back
    0x62: 1,  # GS b n  smoothing
    0x72: 1,  # GS r n  transmit status
}

FS_FIXED_PARAMS = {
    0x21: 1,  # FS ! n  kanji print mode
    0x26: 0,  # FS &  kanji mode on
    0x2D: 1,  # FS - n  kanji underline
    0x2E: 0,  # FS .  kanji mode off
    0x70: 2,  # FS p n m  print NV bit image
}

DLE_FIXED_PARAMS = {
    0x04: 1,  # DLE EOT n  real-time status
    0x05: 1,  # DLE ENQ n  real-time request
    0x14: 3,  # DLE DC4 fn m t  real-time pulse
}

PREFIX_NAMES = {ESC: "ESC", GS: "GS", FS: "FS", DLE: "DLE"}


def command_name(prefix: int, opcode: int) -> str:
    """Mnemonic such as "ESC a" or "GS 0x99" for log messages."""
    name = PREFIX_NAMES.get(prefix, f"0x{prefix:02x}")
    if 0x21 <= opcode <= 0x7E:
        return f"{name} {chr(opcode)}"
    return f"{name} 0x{opcode:02x}"


def hex_dump(data: bytes, width: int = 16) -> str:
    """Offset-prefixed hex listing used by diagnostic views.

    >>> hex_dump(b"AB")
    '0000: 41 42 \\n'
    """
    lines = []
    for offset in range(0, len(data), width):
        chunk = data[offset : offset + width]
        lines.append(f"{offset:04x}: " + "".join(f"{b:02x} " for b in chunk) + "\n")
    return "".join(lines)
