# lexer.py: per-line tokenizer (whitespace, ';' comments, punctuation, numbers, identifiers)
from typing import List

from .errors import LexicalError
from .tokens import PUNCTUATION, Token, TokenType, classify_identifier

WHITESPACE = " \t\r\n"
COMMENT = ";"


def _is_digit(c: str) -> bool:
    return "0" <= c <= "9"


def _is_alpha(c: str) -> bool:
    return ("a" <= c <= "z") or ("A" <= c <= "Z")


class LineScanner:
    """Single-use cursor over one line of program text."""

    def __init__(self, line: str):
        self.line = line
        self.start = 0
        self.cur = 0
        self.tokens: List[Token] = []

    # ---------- cursor ----------
    def at_end(self) -> bool:
        return self.cur >= len(self.line) or self.line[self.cur] in ("\n", COMMENT)

    def peek(self) -> str:
        return self.line[self.cur]

    def advance(self) -> str:
        self.cur += 1
        return self.line[self.cur - 1]

    def add_token(self, token_type: TokenType):
        self.tokens.append(Token(token_type, self.line, self.start, self.cur - self.start))
        self.start = self.cur

    # ---------- scanners ----------
    def skip_whitespace(self):
        while not self.at_end() and self.peek() in WHITESPACE:
            self.cur += 1
        self.start = self.cur

    def scan_number(self):
        while not self.at_end() and _is_digit(self.peek()):
            self.advance()
        self.add_token(TokenType.NUMBER)

    def scan_identifier(self):
        while not self.at_end():
            c = self.peek()
            if not (_is_digit(c) or _is_alpha(c) or c == "_"):
                break
            self.advance()
        self.add_token(classify_identifier(self.line[self.start:self.cur]))

    def scan(self) -> List[Token]:
        while True:
            self.skip_whitespace()
            if self.at_end():
                break
            c = self.advance()
            if c in PUNCTUATION:
                self.add_token(PUNCTUATION[c])
            elif _is_digit(c):
                self.scan_number()
            elif _is_alpha(c):
                self.scan_identifier()
            else:
                raise LexicalError(f"Unexpected character {c!r} at column {self.start}")
        return self.tokens


def tokenize_line(line: str) -> List[Token]:
    return LineScanner(line).scan()


def format_tokens(tokens: List[Token]) -> str:
    return " ".join(f"{t.type.name}({t.text})" for t in tokens)
