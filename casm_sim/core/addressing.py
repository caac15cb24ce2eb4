# addressing.py: token cursor and the addressing-mode resolver shared by LOAD/STORE/READ/WRITE
import enum
from typing import FrozenSet, List, Optional

from .cells import CellArray
from .encoding import WORD_BYTES
from .errors import CasmSyntaxError
from .state import MachineState
from .tokens import Token, TokenType


class TokenCursor:
    def __init__(self, tokens: List[Token]):
        self.tokens = tokens
        self.cur = 0

    def at_end(self) -> bool:
        return self.cur >= len(self.tokens)

    def peek(self) -> Optional[Token]:
        return None if self.at_end() else self.tokens[self.cur]

    def peek_type(self) -> TokenType:
        tok = self.peek()
        return TokenType.END if tok is None else tok.type

    def advance(self) -> Optional[Token]:
        tok = self.peek()
        if tok is not None:
            self.cur += 1
        return tok

    def consume(self, token_type: TokenType) -> Token:
        tok = self.peek()
        if tok is None or tok.type is not token_type:
            raise CasmSyntaxError(f"Expected {token_type.name} but found {describe(tok)}")
        self.cur += 1
        return tok

    def expect_end(self):
        if not self.at_end():
            raise CasmSyntaxError(f"Expected END but found {describe(self.peek())}")


def describe(tok: Optional[Token]) -> str:
    return "END" if tok is None else tok.describe()


class Mode(enum.Enum):
    DIRECT = "Rn"
    IMMEDIATE = "=N"
    INDEXED = "[N, Rn]"
    INDIRECT = "@Rn"
    RELATIVE = "$Rn"


LEADING_TOKEN = {
    TokenType.REGISTER: Mode.DIRECT,
    TokenType.EQUAL: Mode.IMMEDIATE,
    TokenType.L_BRACKET: Mode.INDEXED,
    TokenType.AT: Mode.INDIRECT,
    TokenType.DOLLAR: Mode.RELATIVE,
}

LOAD_MODES = frozenset(Mode)
STORE_MODES = frozenset({Mode.DIRECT, Mode.INDEXED, Mode.RELATIVE})
STORAGE_MODES = frozenset({Mode.DIRECT, Mode.INDEXED})


class Resolver:
    """
    Resolves the operand after ``Rd,`` to a value (LOAD/READ) or a target
    address (STORE/WRITE) against ``region``. Indirect pointers are always
    read from memory.
    """

    def __init__(self, state: MachineState, cursor: TokenCursor, region: CellArray):
        self.state = state
        self.cursor = cursor
        self.region = region

    # ---------- operand pieces ----------
    def register_index(self) -> int:
        return self.cursor.consume(TokenType.REGISTER).register_index

    def register_value(self) -> int:
        return self.state.get_register(self.register_index())

    def number(self) -> int:
        return self.cursor.consume(TokenType.NUMBER).number

    def mode(self, allowed: FrozenSet[Mode]) -> Mode:
        tok = self.cursor.peek()
        mode = LEADING_TOKEN.get(self.cursor.peek_type())
        if mode is None or mode not in allowed:
            forms = ", ".join(m.value for m in Mode if m in allowed)
            raise CasmSyntaxError(f"Unexpected token {describe(tok)}; expected one of {forms}")
        return mode

    # ---------- forms ----------
    def _indexed(self) -> int:
        self.cursor.consume(TokenType.L_BRACKET)
        base = self.number()
        self.cursor.consume(TokenType.COMMA)
        offset = self.register_value()
        self.cursor.consume(TokenType.R_BRACKET)
        return base + offset

    def _indirect(self) -> int:
        self.cursor.consume(TokenType.AT)
        return self.state.memory.read_word(self.register_value())

    def _relative(self) -> int:
        self.cursor.consume(TokenType.DOLLAR)
        offset = self.register_value()
        # PC already points past the executing instruction
        return offset + WORD_BYTES * (self.state.pc - 1)

    def resolve_address(self, allowed: FrozenSet[Mode] = STORE_MODES) -> int:
        mode = self.mode(allowed)
        if mode is Mode.DIRECT:
            address = self.register_value()
        elif mode is Mode.INDEXED:
            address = self._indexed()
        elif mode is Mode.INDIRECT:
            address = self._indirect()
        elif mode is Mode.RELATIVE:
            address = self._relative()
        else:
            raise CasmSyntaxError(f"{mode.value} does not name an address")
        self.region.check_address(address)
        return address

    def resolve_value(self, allowed: FrozenSet[Mode] = LOAD_MODES) -> int:
        mode = self.mode(allowed)
        if mode is Mode.DIRECT:
            return self.register_value()
        if mode is Mode.IMMEDIATE:
            self.cursor.consume(TokenType.EQUAL)
            return self.number()
        address = self.resolve_address(allowed)
        return self.region.read_word(address)
