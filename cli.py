# cli.py: command-line interface for the CASM line VM
# Provides commands to run a program file and to inspect how its lines tokenize.

import argparse
import json
import sys
from pathlib import Path
from typing import List, Optional, Tuple

# Local module imports
from casm_sim.core.cells import CellArray
from casm_sim.core.cpu import Machine
from casm_sim.core.encoding import MAX_JUMPS
from casm_sim.core.errors import CasmError
from casm_sim.core.lexer import format_tokens, tokenize_line
from casm_sim.core.observe import TraceSink
from casm_sim.core.preprocess import split_label, strip_line_ending
from casm_sim.tools.anomaly_rules import rule_hot_label, rule_self_modifying_store


# -----------------------------------------------------------------------------
# Utilities
# -----------------------------------------------------------------------------

def read_program(path: Path) -> Optional[List[str]]:
    """Program lines, or None (after printing why) when the file is unreadable."""
    try:
        return path.read_text(encoding="utf-8").splitlines()
    except (OSError, UnicodeDecodeError) as e:
        print(f"Error: cannot read program '{path}': {e}")
        return None


def parse_assignment(text: str) -> Tuple[int, str]:
    """'ADDR=VALUE' -> (byte address, cell text)"""
    addr, sep, value = text.partition("=")
    if not sep:
        raise argparse.ArgumentTypeError(f"expected ADDR=VALUE, got '{text}'")
    try:
        return int(addr, 0), value
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid address in '{text}'")


def dump_cells(cells: CellArray):
    for i, text in enumerate(cells.cells()):
        if text is not None:
            print(f"{cells.name[0].upper()}[{i * 4:3d}]: {text}")


# -----------------------------------------------------------------------------
# Command handlers
# -----------------------------------------------------------------------------

def cmd_run(args: argparse.Namespace) -> int:
    src = Path(args.source)
    program = read_program(src)
    if program is None:
        return 2

    machine = Machine(max_jumps=args.max_jumps, verbose=args.verbose)

    # Trace configuration
    if args.trace_file:
        machine.set_trace_sink(TraceSink(path=args.trace_file))
        machine.add_anomaly_rule(rule_hot_label)
        machine.add_anomaly_rule(rule_self_modifying_store)
        print(f"Tracing to '{args.trace_file}'")

    if not machine.load(program):
        print(machine.format_error())
        return 1

    try:
        for addr, value in args.memory or []:
            machine.memory.write_text(addr, value)
        for addr, value in args.storage or []:
            machine.storage.write_text(addr, value)
    except CasmError as e:
        print(f"Error: {e}")
        return 2

    ok = machine.run()
    if machine.trace_sink:
        print(f"Trace: {machine.trace_sink.emitted} events written")
    if not ok and machine.error:
        print(machine.format_error())

    print(machine.format_registers())

    if args.dump_memory:
        dump_cells(machine.memory)
    if args.dump_storage:
        dump_cells(machine.storage)

    # Dump metrics if requested
    if args.trace_metrics:
        Path(args.trace_metrics).write_text(json.dumps(machine.metrics, indent=2), encoding="utf-8")
        print(f"Metrics saved to '{args.trace_metrics}'")

    return 0 if ok else 1


def cmd_tokens(args: argparse.Namespace) -> int:
    src = Path(args.source)
    program = read_program(src)
    if program is None:
        return 2
    rc = 0
    for index, raw in enumerate(program):
        label, rest = split_label(strip_line_ending(raw))
        prefix = f"{index * 4:04X}"
        if label:
            prefix += f" {label}:"
        try:
            print(f"{prefix} {format_tokens(tokenize_line(rest))}")
        except CasmError as e:
            print(f"{prefix} <{e.kind}> {e}")
            rc = 1
    return rc


# -----------------------------------------------------------------------------
# Argument parsing
# -----------------------------------------------------------------------------

def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(description="CASM line VM")
    sub = p.add_subparsers(dest="cmd", required=True)

    # run
    pr = sub.add_parser("run", help="Load and run a program file (one instruction per line)")
    pr.add_argument("source", help="Program source file")
    pr.add_argument("--max-jumps", type=int, default=MAX_JUMPS, help="Abort after this many taken jumps")
    pr.add_argument("--memory", type=parse_assignment, action="append", metavar="ADDR=VALUE",
                    help="Pre-set a memory cell after loading (repeatable)")
    pr.add_argument("--storage", type=parse_assignment, action="append", metavar="ADDR=VALUE",
                    help="Pre-set a storage cell after loading (repeatable)")
    pr.add_argument("--verbose", action="store_true", help="Print tokens of every executed line")
    pr.add_argument("--dump-memory", action="store_true", help="Print non-empty memory cells after run")
    pr.add_argument("--dump-storage", action="store_true", help="Print non-empty storage cells after run")
    pr.add_argument("--trace-file", help="Write JSONL trace to file")
    pr.add_argument("--trace-metrics", help="Write metrics JSON to file")

    # tokens
    pt = sub.add_parser("tokens", help="Print the tokens of every line")
    pt.add_argument("source", help="Program source file")

    return p


# -----------------------------------------------------------------------------
# Main
# -----------------------------------------------------------------------------

def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.cmd == "run":
        return cmd_run(args)
    elif args.cmd == "tokens":
        return cmd_tokens(args)
    else:
        parser.error("Unknown command")
        return 2


if __name__ == "__main__":
    sys.exit(main())
