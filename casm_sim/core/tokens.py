# tokens.py: token kinds, line-view tokens and the mnemonic table
import enum
from typing import Dict, NamedTuple

from .encoding import parse_decimal


class TokenType(enum.Enum):
    # Punctuation
    EQUAL = "="
    L_BRACKET = "["
    R_BRACKET = "]"
    AT = "@"
    DOLLAR = "$"
    COMMA = ","

    # Memory / storage
    LOAD = "LOAD"
    STORE = "STORE"
    READ = "READ"
    WRITE = "WRITE"

    # Arithmetic
    ADD = "ADD"
    SUB = "SUB"
    MUL = "MUL"
    DIV = "DIV"
    INC = "INC"

    HALT = "HALT"

    # Branches
    BR = "BR"
    BLT = "BLT"
    BGT = "BGT"
    BLEQ = "BLEQ"
    BGEQ = "BGEQ"
    BEQ = "BEQ"
    BNEQ = "BNEQ"

    LABEL_REF = "LABEL_REF"
    REGISTER = "REGISTER"
    NUMBER = "NUMBER"

    END = "END"


PUNCTUATION: Dict[str, TokenType] = {
    "=": TokenType.EQUAL,
    "[": TokenType.L_BRACKET,
    "]": TokenType.R_BRACKET,
    "@": TokenType.AT,
    "$": TokenType.DOLLAR,
    ",": TokenType.COMMA,
}

# Keyed on the normalised identifier: first character as written, rest upper-cased.
MNEMONICS: Dict[str, TokenType] = {
    t.value: t for t in (
        TokenType.LOAD, TokenType.STORE, TokenType.READ, TokenType.WRITE,
        TokenType.ADD, TokenType.SUB, TokenType.MUL, TokenType.DIV, TokenType.INC,
        TokenType.HALT,
        TokenType.BR, TokenType.BLT, TokenType.BGT, TokenType.BLEQ,
        TokenType.BGEQ, TokenType.BEQ, TokenType.BNEQ,
    )
}

ARITHMETIC = frozenset({TokenType.ADD, TokenType.SUB, TokenType.MUL, TokenType.DIV})

CONDITIONAL_BRANCHES = {
    TokenType.BLT: lambda a, b: a < b,
    TokenType.BGT: lambda a, b: a > b,
    TokenType.BLEQ: lambda a, b: a <= b,
    TokenType.BGEQ: lambda a, b: a >= b,
    TokenType.BEQ: lambda a, b: a == b,
    TokenType.BNEQ: lambda a, b: a != b,
}


def classify_identifier(word: str) -> TokenType:
    """REGISTER, an opcode, or LABEL_REF for a letter-led identifier."""
    if len(word) == 2 and word[0] == "R" and "0" <= word[1] <= "9":
        return TokenType.REGISTER
    return MNEMONICS.get(word[0] + word[1:].upper(), TokenType.LABEL_REF)


class Token(NamedTuple):
    """A view onto ``line[start:start + length]``; the text is never copied in."""
    type: TokenType
    line: str
    start: int
    length: int

    @property
    def text(self) -> str:
        return self.line[self.start:self.start + self.length]

    @property
    def number(self) -> int:
        return parse_decimal(self.text)

    @property
    def register_index(self) -> int:
        return int(self.text[1])

    def describe(self) -> str:
        return f"{self.type.name} '{self.text}'"

    def __repr__(self):
        return f"Token({self.type.name}, {self.text!r}, col={self.start})"
