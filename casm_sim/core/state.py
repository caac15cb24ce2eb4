# state.py: MachineState (registers, memory, storage, flags, sticky error, jump counters)
from typing import Dict, List, Optional

from .cells import CellArray
from .encoding import (
    FIRST_GP_REGISTER,
    LAST_GP_REGISTER,
    MEMORY_SIZE,
    NUM_REGISTERS,
    STORAGE_SIZE,
    wrap32,
)
from .errors import CasmError, RegisterRangeError

PC = 0


class MachineState:
    """
    Everything the engine mutates. Registers are signed 32-bit; index 0 is the
    program counter (a line index), 1..9 are general purpose.

    Holds at most one error. ``fail`` keeps the first error recorded and drops
    later ones until ``reset``.
    """

    def __init__(self, memory_size: int = MEMORY_SIZE, storage_size: int = STORAGE_SIZE):
        self.registers: List[int] = [0] * NUM_REGISTERS
        self.memory = CellArray("memory", memory_size)
        self.storage = CellArray("storage", storage_size)
        self.labels: Dict[str, int] = {}
        self.label_jumps: Dict[str, int] = {}
        self.jump_count: int = 0
        self.halted: bool = False
        self.error: Optional[CasmError] = None
        self.error_pc: Optional[int] = None

    def reset(self):
        self.registers = [0] * NUM_REGISTERS
        self.memory.clear()
        self.storage.clear()
        self.labels = {}
        self.label_jumps = {}
        self.jump_count = 0
        self.halted = False
        self.error = None
        self.error_pc = None

    # -----------------------------------------------------------------------
    # Registers
    # -----------------------------------------------------------------------
    @property
    def pc(self) -> int:
        return self.registers[PC]

    @pc.setter
    def pc(self, value: int):
        self.registers[PC] = wrap32(value)

    @staticmethod
    def _check_register(index: int):
        if not (FIRST_GP_REGISTER <= index <= LAST_GP_REGISTER):
            raise RegisterRangeError(
                f"Register index {index} out of range [{FIRST_GP_REGISTER}, {LAST_GP_REGISTER}]"
            )

    def get_register(self, index: int) -> int:
        self._check_register(index)
        return self.registers[index]

    def set_register(self, index: int, value: int):
        self._check_register(index)
        self.registers[index] = wrap32(value)

    # -----------------------------------------------------------------------
    # Sticky error / flags
    # -----------------------------------------------------------------------
    def fail(self, error: CasmError, pc: Optional[int] = None) -> CasmError:
        if self.error is None:
            self.error = error
            self.error_pc = pc
        return self.error

    @property
    def error_message(self) -> Optional[str]:
        return None if self.error is None else self.error.message

    @property
    def can_continue(self) -> bool:
        return not self.halted and self.error is None

    def record_jump(self, label: str, target: int):
        self.jump_count += 1
        self.label_jumps[label] = 1 + self.label_jumps.get(label, 0)
        self.pc = target
