# casm_sim/tools/trace_analyse.py
import sys
from collections import Counter

from ..core.observe import read_trace


def analyze(path: str) -> dict:
    ops = Counter()
    labels = Counter()
    anomalies = Counter()
    steps = 0
    last_error = None
    halted = False

    for ev in read_trace(path):
        steps += 1
        ops[ev.get("op_name", "?")] += 1
        if ev.get("jump_label"):
            labels[ev["jump_label"]] += 1
        for a in ev.get("anomalies", []) or []:
            anomalies[a] += 1
        if ev.get("error"):
            last_error = ev["error"]
        halted = bool(ev.get("halted"))

    return {
        "steps": steps,
        "ops": dict(ops),
        "jumps_by_label": dict(labels),
        "anomalies": dict(anomalies),
        "halted": halted,
        "error": last_error,
    }


def print_summary(summary: dict):
    print("Steps:", summary["steps"])
    print("Top opcodes:", Counter(summary["ops"]).most_common(10))
    print("Jumps by label:", summary["jumps_by_label"])
    print("Anomalies:", Counter(summary["anomalies"]).most_common())
    print("Halted:", summary["halted"])
    if summary["error"]:
        print("Error:", summary["error"])


if __name__ == "__main__":
    if len(sys.argv) < 2:
        print("Usage: python -m casm_sim.tools.trace_analyse <trace.jsonl>")
        sys.exit(2)
    print_summary(analyze(sys.argv[1]))
