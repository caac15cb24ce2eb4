# cells.py: word-addressed cell arrays backing Memory and Storage
from typing import List, Optional

from .encoding import WORD_BYTES, format_cell, parse_cell
from .errors import AddressError, GarbageReadError


class CellArray:
    """
    Fixed number of 4-byte cells, addressed by byte address. Each cell holds
    optional text; only cells holding a decimal integer can be read as words.
    """

    def __init__(self, name: str, size: int):
        self.name = name
        self.size = size
        self._cells: List[Optional[str]] = [None] * size

    @property
    def bound(self) -> int:
        return self.size * WORD_BYTES

    def check_address(self, address: int) -> int:
        """Return the cell index for ``address`` or raise AddressError."""
        if address % WORD_BYTES != 0:
            raise AddressError(
                f"Expected {self.name} address to be multiple of {WORD_BYTES}: {address}"
            )
        if address < 0 or address >= self.bound:
            raise AddressError(
                f"{self.name.capitalize()} address {address} out of range [0, {self.bound})"
            )
        return address // WORD_BYTES

    # --- raw text (program lines, pre-seeded data) ---
    def read_text(self, address: int) -> Optional[str]:
        return self._cells[self.check_address(address)]

    def write_text(self, address: int, text: Optional[str]):
        self._cells[self.check_address(address)] = text

    # --- integer words ---
    def read_word(self, address: int) -> int:
        value = parse_cell(self._cells[self.check_address(address)])
        if value is None:
            raise GarbageReadError(f"Garbage contained at {self.name} address: {address}")
        return value

    def write_word(self, address: int, value: int):
        self._cells[self.check_address(address)] = format_cell(value)

    def clear(self):
        self._cells = [None] * self.size

    def cells(self) -> List[Optional[str]]:
        return list(self._cells)

    def __len__(self):
        return self.size

    def __getitem__(self, index: int) -> Optional[str]:
        return self._cells[index]
