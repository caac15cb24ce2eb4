# encoding.py: machine constants, 32-bit wraparound, cell text codec
import re
from typing import Optional

WORD_BITS = 32
WORD_BYTES = 4
WORD_MASK = (1 << WORD_BITS) - 1
SIGN_BIT = 1 << (WORD_BITS - 1)

MIN_WORD = -(1 << (WORD_BITS - 1))
MAX_WORD = (1 << (WORD_BITS - 1)) - 1

NUM_REGISTERS = 10          # index 0 is the program counter
FIRST_GP_REGISTER = 1
LAST_GP_REGISTER = NUM_REGISTERS - 1

MEMORY_SIZE = 64            # cells
STORAGE_SIZE = 64           # cells
MAX_LABELS = 16
MAX_JUMPS = 1000

_CELL_INT = re.compile(r"^\s*([+-]?[0-9]+)\s*$")


def to_twos_complement(val: int) -> int:
    return val & WORD_MASK


def from_twos_complement(bits: int) -> int:
    bits &= WORD_MASK
    if bits & SIGN_BIT:
        return -(((~bits) & WORD_MASK) + 1)
    else:
        return bits


def wrap32(val: int) -> int:
    """Reduce an arbitrary int to signed 32-bit, wrapping like unsigned hardware."""
    return from_twos_complement(to_twos_complement(val))


def trunc_divmod(a: int, b: int):
    """C-style division: quotient truncated toward zero, remainder follows the dividend."""
    q = abs(a) // abs(b)
    if (a < 0) != (b < 0):
        q = -q
    return q, a - q * b


def parse_decimal(text: str) -> int:
    """
    Decimal text with an optional sign, reduced to signed 32 bits. Digits are
    folded in 9-digit chunks modulo 2**32, so runs of any length convert.
    """
    negative = text.startswith("-")
    digits = text.lstrip("+-")
    value = 0
    for i in range(0, len(digits), 9):
        chunk = digits[i:i + 9]
        value = (value * 10 ** len(chunk) + int(chunk)) & WORD_MASK
    return wrap32(-value if negative else value)


def parse_cell(text: Optional[str]) -> Optional[int]:
    """Decode a cell's decimal text, or None when it holds no integer."""
    if text is None:
        return None
    m = _CELL_INT.match(text)
    if not m:
        return None
    return parse_decimal(m.group(1))


def format_cell(value: int) -> str:
    return str(wrap32(value))
