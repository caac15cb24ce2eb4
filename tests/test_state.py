# tests/test_state.py
import pytest

from casm_sim.core.cells import CellArray
from casm_sim.core.encoding import parse_cell, parse_decimal, trunc_divmod, wrap32
from casm_sim.core.errors import (
    AddressError,
    GarbageReadError,
    LexicalError,
    RegisterRangeError,
    UnresolvedLabelError,
)
from casm_sim.core.state import MachineState


# ---------- encoding ----------

def test_wrap32():
    assert wrap32(2**31) == -2**31
    assert wrap32(2**32 + 5) == 5
    assert wrap32(-2**31 - 1) == 2**31 - 1


def test_trunc_divmod_follows_c():
    assert trunc_divmod(10, 5) == (2, 0)
    assert trunc_divmod(-7, 2) == (-3, -1)
    assert trunc_divmod(7, -2) == (-3, 1)


@pytest.mark.parametrize("text,value", [
    ("28", 28), (" -4 ", -4), ("+3", 3), ("21\n", 21),
    (None, None), ("", None), ("LOAD R1, =8", None), ("1.5", None),
])
def test_parse_cell(text, value):
    assert parse_cell(text) == value


@pytest.mark.parametrize("text,value", [
    ("4294967301", 5),
    ("2147483648", -2**31),
    ("-2147483649", 2**31 - 1),
    ("9" * 5000, -1),
    ("1" + "0" * 5000 + "42", 42),
])
def test_parse_decimal_wraps_any_length(text, value):
    assert parse_decimal(text) == value


def test_parse_cell_accepts_long_digit_runs():
    assert parse_cell("0" * 6000 + "17") == 17
    assert parse_cell("\u0661\u0662") is None


# ---------- cells ----------

def test_every_valid_address_round_trips():
    cells = CellArray("memory", 64)
    for addr in range(0, 256, 4):
        cells.write_word(addr, addr * 3 - 100)
    for addr in range(0, 256, 4):
        assert cells.read_word(addr) == addr * 3 - 100


@pytest.mark.parametrize("addr", [2, 13, -4, 256, 1000])
def test_invalid_addresses(addr):
    cells = CellArray("memory", 64)
    with pytest.raises(AddressError) as exc:
        cells.write_word(addr, 1)
    assert str(addr) in str(exc.value)


def test_out_of_range_message_names_bound():
    with pytest.raises(AddressError, match=r"\[0, 256\)"):
        CellArray("storage", 64).read_word(256)


def test_garbage_reads():
    cells = CellArray("memory", 4)
    with pytest.raises(GarbageReadError, match="memory address: 4"):
        cells.read_word(4)
    cells.write_text(8, "HALT")
    with pytest.raises(GarbageReadError):
        cells.read_word(8)
    assert cells.read_text(8) == "HALT"


def test_write_word_stores_decimal_text():
    cells = CellArray("storage", 4)
    cells.write_word(12, -17)
    assert cells[3] == "-17"
    assert cells.read_word(12) == -17


# ---------- registers ----------

def test_register_round_trip():
    st = MachineState()
    for r in range(1, 10):
        st.set_register(r, r * 1000 - 4000)
    for r in range(1, 10):
        assert st.get_register(r) == r * 1000 - 4000


@pytest.mark.parametrize("index", [0, 10, -1])
def test_register_out_of_range_rejected(index):
    st = MachineState()
    st.set_register(1, 77)
    before = list(st.registers)
    with pytest.raises(RegisterRangeError):
        st.set_register(index, 5)
    assert st.registers == before


def test_register_values_wrap():
    st = MachineState()
    st.set_register(2, 2**31 - 1 + 1)
    assert st.get_register(2) == -2**31


# ---------- sticky error ----------

def test_first_error_wins():
    st = MachineState()
    first = LexicalError("first")
    st.fail(first, pc=3)
    st.fail(UnresolvedLabelError("second"), pc=5)
    assert st.error is first
    assert st.error_message == "first"
    assert st.error_pc == 3
    assert not st.can_continue


def test_reset_clears_everything():
    st = MachineState()
    st.set_register(4, 9)
    st.pc = 7
    st.memory.write_word(0, 1)
    st.storage.write_word(4, 2)
    st.labels = {"a": 1}
    st.record_jump("a", 1)
    st.halted = True
    st.fail(LexicalError("boom"))
    st.reset()
    fresh = MachineState()
    assert st.registers == fresh.registers
    assert st.memory.cells() == fresh.memory.cells()
    assert st.storage.cells() == fresh.storage.cells()
    assert not st.halted and st.jump_count == 0
    assert st.labels == {} and st.label_jumps == {}
    assert st.error is None and st.error_pc is None


def test_record_jump_counts():
    st = MachineState()
    st.record_jump("top", 2)
    st.record_jump("top", 2)
    st.record_jump("end", 9)
    assert st.jump_count == 3
    assert st.label_jumps == {"top": 2, "end": 1}
    assert st.pc == 9
