# cpu.py: instruction dispatcher and program driver (load / step / run) over MachineState
import time
from typing import Callable, List, Optional, Sequence

from .addressing import LOAD_MODES, STORAGE_MODES, STORE_MODES, Resolver, TokenCursor
from .cells import CellArray
from .encoding import (
    LAST_GP_REGISTER,
    MAX_JUMPS,
    MAX_LABELS,
    MEMORY_SIZE,
    STORAGE_SIZE,
    WORD_BYTES,
    trunc_divmod,
    wrap32,
)
from .errors import (
    CasmError,
    CasmSyntaxError,
    DivisionByZeroError,
    GarbageInstructionError,
    ProgramTooLargeError,
    RunawayLoopError,
    UnresolvedLabelError,
)
from .lexer import format_tokens, tokenize_line
from .observe import TraceSink
from .preprocess import preprocess
from .state import MachineState
from .tokens import ARITHMETIC, CONDITIONAL_BRANCHES, TokenType


class Machine:
    """
    Line-oriented VM. Every visit to a line re-tokenizes its text, so programs
    may overwrite their own instructions with STORE.

    Entry points never raise CasmError: failures are recorded on ``state.error``
    (first error wins) and reported through the boolean results.
      - load(program) -> bool
      - step()        -> bool   can execution continue
      - run()         -> bool   halted cleanly
    """

    def __init__(
        self,
        memory_size: int = MEMORY_SIZE,
        storage_size: int = STORAGE_SIZE,
        max_labels: int = MAX_LABELS,
        max_jumps: int = MAX_JUMPS,
        verbose: bool = False,
    ):
        self.state = MachineState(memory_size, storage_size)
        self.max_labels = max_labels
        self.max_jumps = max_jumps
        self.verbose = verbose
        self.program: List[str] = []

        # Observability
        self.trace_sink = None          # type: Optional[TraceSink]
        self._anomaly_rules: List[Callable] = []
        self.metrics = {}
        self._reset_metrics()
        self._step_info = {}

    def _reset_metrics(self):
        self.metrics = {
            "instr_count": 0,
            "by_opcode": {},            # op_name -> count
            "jumps": 0,
            "errors": 0,
        }

    # -----------------------------------------------------------------------
    # Read access for consumers
    # -----------------------------------------------------------------------
    @property
    def registers(self) -> List[int]:
        return self.state.registers

    @property
    def memory(self) -> CellArray:
        return self.state.memory

    @property
    def storage(self) -> CellArray:
        return self.state.storage

    @property
    def halted(self) -> bool:
        return self.state.halted

    @property
    def error(self) -> Optional[str]:
        return self.state.error_message

    # -----------------------------------------------------------------------
    # Entry points
    # -----------------------------------------------------------------------
    def load(self, program: Sequence[str]) -> bool:
        """Reset all state, resolve labels and copy the program into memory from address 0."""
        st = self.state
        st.reset()
        self._reset_metrics()
        self.program = list(program)
        try:
            pre = preprocess(self.program, self.max_labels)
            if len(pre.lines) > st.memory.size:
                raise ProgramTooLargeError(
                    f"Program has {len(pre.lines)} lines but memory holds {st.memory.size}"
                )
            st.labels = pre.labels
            st.label_jumps = {name: 0 for name in pre.labels}
            for index, line in enumerate(pre.lines):
                st.memory.write_text(index * WORD_BYTES, line)
        except CasmError as e:
            self._record_error(e)
            return False
        if self.verbose:
            print(f"DEBUG: loaded {len(self.program)} lines, labels={st.labels}")
        return True

    def step(self) -> bool:
        st = self.state
        if not st.can_continue:
            return False

        pc = st.pc
        line = None
        self._step_info = {"op_name": None}
        try:
            st.pc = pc + 1
            line = st.memory.read_text(pc * WORD_BYTES)
            if line is None:
                raise GarbageInstructionError("Expected instruction but found garbage")
            self.execute_line(line)
        except CasmError as e:
            self._record_error(e, pc)

        self._emit_trace(pc, line)
        return st.can_continue

    def run(self, max_steps: Optional[int] = None) -> bool:
        st = self.state
        steps = 0
        while self.step():
            steps += 1
            if st.jump_count >= self.max_jumps:
                self._record_error(RunawayLoopError(self._runaway_message()), self._last_pc)
                break
            if max_steps is not None and steps >= max_steps:
                break
        return st.halted and st.error is None

    # -----------------------------------------------------------------------
    # Dispatcher (one line)
    # -----------------------------------------------------------------------
    def execute_line(self, line: str):
        """Tokenize and execute one instruction line. Raises CasmError."""
        tokens = tokenize_line(line)
        if self.verbose:
            print(f"DEBUG: pc={self.state.pc - 1} {format_tokens(tokens)}")
        if not tokens:
            self._step_info["op_name"] = "NOP"
            return

        cursor = TokenCursor(tokens)
        op = cursor.advance().type
        self._step_info["op_name"] = op.name

        if op is TokenType.LOAD:
            self._execute_load(cursor, self.state.memory, LOAD_MODES)
        elif op is TokenType.STORE:
            self._execute_store(cursor, self.state.memory, STORE_MODES)
        elif op is TokenType.READ:
            self._execute_load(cursor, self.state.storage, STORAGE_MODES)
        elif op is TokenType.WRITE:
            self._execute_store(cursor, self.state.storage, STORAGE_MODES)
        elif op in ARITHMETIC:
            self._execute_math(op, cursor)
        elif op is TokenType.INC:
            rd = self._dest_register(cursor)
            self.state.set_register(rd, self.state.get_register(rd) + 1)
        elif op is TokenType.HALT:
            self.state.halted = True
        elif op is TokenType.BR:
            self._jump(self._label_target(cursor))
        elif op in CONDITIONAL_BRANCHES:
            self._execute_branch(op, cursor)
        else:
            raise CasmSyntaxError(f"Unexpected token {tokens[0].describe()}; expected an instruction")

        cursor.expect_end()

    # -----------------------------------------------------------------------
    # Executors
    # -----------------------------------------------------------------------
    def _dest_register(self, cursor: TokenCursor) -> int:
        index = cursor.consume(TokenType.REGISTER).register_index
        self.state.get_register(index)
        return index

    def _source_value(self, cursor: TokenCursor) -> int:
        return self.state.get_register(self._dest_register(cursor))

    def _execute_load(self, cursor: TokenCursor, region: CellArray, modes):
        rd = self._dest_register(cursor)
        cursor.consume(TokenType.COMMA)
        value = Resolver(self.state, cursor, region).resolve_value(modes)
        self.state.set_register(rd, value)

    def _execute_store(self, cursor: TokenCursor, region: CellArray, modes):
        value = self._source_value(cursor)
        cursor.consume(TokenType.COMMA)
        address = Resolver(self.state, cursor, region).resolve_address(modes)
        previous = region[address // WORD_BYTES]
        region.write_word(address, value)
        self._step_info.update(store_region=region.name, store_address=address, store_prev=previous)

    def _execute_math(self, op: TokenType, cursor: TokenCursor):
        ra = self._dest_register(cursor)
        cursor.consume(TokenType.COMMA)
        rb = self._dest_register(cursor)
        a = self.state.get_register(ra)
        b = self.state.get_register(rb)
        if op is TokenType.ADD:
            self.state.set_register(ra, a + b)
        elif op is TokenType.SUB:
            self.state.set_register(ra, a - b)
        elif op is TokenType.MUL:
            self.state.set_register(ra, a * b)
        elif op is TokenType.DIV:
            if b == 0:
                raise DivisionByZeroError(f"Division by zero: R{ra} / R{rb}")
            quotient, remainder = trunc_divmod(a, b)
            # quotient is written last so DIV Rn, Rn leaves the quotient
            self.state.set_register(rb, remainder)
            self.state.set_register(ra, wrap32(quotient))

    def _label_target(self, cursor: TokenCursor):
        name = cursor.consume(TokenType.LABEL_REF).text
        if name not in self.state.labels:
            raise UnresolvedLabelError(f"Unknown label: {name}")
        return name, self.state.labels[name]

    def _execute_branch(self, op: TokenType, cursor: TokenCursor):
        a = self._source_value(cursor)
        cursor.consume(TokenType.COMMA)
        b = self._source_value(cursor)
        cursor.consume(TokenType.COMMA)
        target = self._label_target(cursor)
        if CONDITIONAL_BRANCHES[op](a, b):
            self._jump(target)

    def _jump(self, target):
        name, line_index = target
        self.state.record_jump(name, line_index)
        self.metrics["jumps"] += 1
        self._step_info["jump_label"] = name

    # -----------------------------------------------------------------------
    # Diagnostics
    # -----------------------------------------------------------------------
    @property
    def _last_pc(self) -> int:
        return self._step_info.get("pc", self.state.pc - 1)

    def _record_error(self, error: CasmError, pc: Optional[int] = None):
        if self.state.error is None:
            self.metrics["errors"] += 1
        self.state.fail(error, pc)

    def _runaway_message(self) -> str:
        st = self.state
        breakdown = ", ".join(f"{name}={count}" for name, count in st.label_jumps.items() if count)
        return f"Infinite loop detected after {st.jump_count} jumps ({breakdown or 'no labels'})"

    def format_error(self) -> str:
        st = self.state
        if st.error is None:
            return ""
        if st.error_pc is None:
            return f"Error: {st.error.message}"
        out = f"Error on line 0x{st.error_pc * WORD_BYTES:X}: {st.error.message}"
        if 0 <= st.error_pc < st.memory.size and st.memory[st.error_pc]:
            out += "\n" + st.memory[st.error_pc]
        return out

    def format_registers(self) -> str:
        lines = [f"PC: {self.state.pc}"]
        for i in range(1, LAST_GP_REGISTER + 1):
            lines.append(f"R{i}: {self.state.registers[i]}")
        return "\n".join(lines)

    # -----------------------------------------------------------------------
    # Observability
    # -----------------------------------------------------------------------
    def set_trace_sink(self, sink):
        self.trace_sink = sink

    def add_anomaly_rule(self, rule_callable):
        """rule(event_dict) -> list[str] of triggered rule IDs"""
        self._anomaly_rules.append(rule_callable)

    def _emit_trace(self, pc: int, line: Optional[str]):
        st = self.state
        info = self._step_info
        info["pc"] = pc
        op_name = info.get("op_name") or "?"

        self.metrics["instr_count"] += 1
        self.metrics["by_opcode"][op_name] = 1 + self.metrics["by_opcode"].get(op_name, 0)

        if not self.trace_sink:
            return

        label = info.get("jump_label")
        event = {
            "ts": time.time(),
            "pc": pc,
            "line": line,
            "op_name": op_name,
            "registers": list(st.registers),
            "jump_count": st.jump_count,
            "jump_label": label,
            "label_jumps": st.label_jumps.get(label) if label else None,
            "store_region": info.get("store_region"),
            "store_address": info.get("store_address"),
            "store_prev": info.get("store_prev"),
            "halted": st.halted,
            "error": st.error_message,
            "anomalies": [],
        }

        for rule in self._anomaly_rules:
            try:
                hits = rule(event) or []
            except Exception as e:
                if self.verbose:
                    print(f"DEBUG: anomaly rule {rule!r} failed: {e}")
                continue
            event["anomalies"].extend(hits)

        self.trace_sink.emit(event)
