# tests/test_addressing.py
import pytest

from casm_sim.core.addressing import (
    LOAD_MODES,
    STORAGE_MODES,
    STORE_MODES,
    Resolver,
    TokenCursor,
)
from casm_sim.core.errors import AddressError, CasmSyntaxError, GarbageReadError, RegisterRangeError
from casm_sim.core.lexer import tokenize_line
from casm_sim.core.state import MachineState
from casm_sim.core.tokens import TokenType


def resolver(state, operand, region=None):
    cursor = TokenCursor(tokenize_line(operand))
    return Resolver(state, cursor, state.memory if region is None else region), cursor


@pytest.fixture
def state():
    st = MachineState()
    st.set_register(1, 8)
    st.set_register(4, 80)
    st.memory.write_text(28, "21")
    st.memory.write_text(80, "28")
    st.memory.write_text(88, "5")
    return st


# ---------- cursor ----------

def test_cursor_consume_and_end():
    cur = TokenCursor(tokenize_line("R1, R2"))
    assert cur.consume(TokenType.REGISTER).text == "R1"
    assert cur.consume(TokenType.COMMA).text == ","
    with pytest.raises(CasmSyntaxError, match="Expected COMMA but found REGISTER 'R2'"):
        cur.consume(TokenType.COMMA)
    cur.advance()
    assert cur.at_end() and cur.peek_type() is TokenType.END
    with pytest.raises(CasmSyntaxError, match="Expected NUMBER but found END"):
        cur.consume(TokenType.NUMBER)
    cur.expect_end()


def test_cursor_expect_end_with_leftovers():
    cur = TokenCursor(tokenize_line("R1 R2"))
    cur.advance()
    with pytest.raises(CasmSyntaxError, match="Expected END"):
        cur.expect_end()


# ---------- value forms ----------

def test_direct_value(state):
    r, cur = resolver(state, "R1")
    assert r.resolve_value() == 8
    assert cur.at_end()


def test_immediate_value(state):
    r, _ = resolver(state, "=1234")
    assert r.resolve_value() == 1234


def test_indexed_value(state):
    r, cur = resolver(state, "[72, R1]")
    assert r.resolve_value() == 28
    assert resolver(state, "[72, R1]")[0].resolve_address() == 80
    assert cur.at_end()


def test_indirect_value(state):
    # value at address (value at 80) -> value at 28
    r, _ = resolver(state, "@R4")
    assert r.resolve_value() == 21


def test_relative_value(state):
    state.pc = 6           # executing line index 5, address 20
    r, _ = resolver(state, "$R1")
    assert r.resolve_value() == 21
    assert resolver(state, "$R1")[0].resolve_address() == 28


def test_relative_address_points_at_executing_instruction():
    st = MachineState()
    st.pc = 4              # line index 3 is executing
    st.set_register(2, 0)
    r, _ = resolver(st, "$R2")
    assert r.resolve_address() == 12


def test_indexed_displacement_commutes(state):
    state.set_register(2, 40)
    state.set_register(3, 48)
    a, _ = resolver(state, "[40, R2]")
    b, _ = resolver(state, "[32, R3]")
    assert a.resolve_address() == b.resolve_address() == 80


# ---------- address forms ----------

def test_direct_address_uses_register_value(state):
    r, _ = resolver(state, "R4")
    assert r.resolve_address() == 80


def test_store_rejects_immediate_and_indirect(state):
    for operand in ("=8", "@R4"):
        r, _ = resolver(state, operand)
        with pytest.raises(CasmSyntaxError, match="Unexpected token"):
            r.resolve_address(STORE_MODES)


def test_storage_forms_are_direct_and_indexed_only(state):
    for operand in ("$R1", "@R1", "=4"):
        r, _ = resolver(state, operand, state.storage)
        with pytest.raises(CasmSyntaxError):
            r.resolve_value(STORAGE_MODES)
    r, _ = resolver(state, "[16, R1]", state.storage)
    assert r.resolve_address(STORAGE_MODES) == 24


def test_load_accepts_all_forms(state):
    state.pc = 6
    for operand in ("R1", "=1", "[72,R1]", "@R4", "$R1"):
        r, _ = resolver(state, operand)
        r.resolve_value(LOAD_MODES)


# ---------- failures ----------

def test_misaligned_address(state):
    r, _ = resolver(state, "[2, R1]")
    with pytest.raises(AddressError, match="multiple of 4: 10"):
        r.resolve_value()


def test_address_past_region_bound(state):
    r, _ = resolver(state, "[248, R1]")
    with pytest.raises(AddressError, match="256"):
        r.resolve_value()


def test_reading_garbage(state):
    r, _ = resolver(state, "[0, R1]")
    with pytest.raises(GarbageReadError, match="address: 8"):
        r.resolve_value()


def test_register_zero_is_rejected(state):
    r, _ = resolver(state, "R0")
    with pytest.raises(RegisterRangeError):
        r.resolve_value()


def test_malformed_indexed(state):
    r, _ = resolver(state, "[72 R1]")
    with pytest.raises(CasmSyntaxError, match="Expected COMMA"):
        r.resolve_value()
    r, _ = resolver(state, "[72, R1")
    with pytest.raises(CasmSyntaxError, match="Expected R_BRACKET but found END"):
        r.resolve_value()


def test_missing_operand(state):
    r, _ = resolver(state, "")
    with pytest.raises(CasmSyntaxError, match="END"):
        r.resolve_value()
