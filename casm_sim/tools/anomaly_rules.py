# tools/anomaly_rules.py
from ..core.encoding import parse_cell


def rule_hot_label(event, threshold=100):
    n = event.get("label_jumps")
    return ["hot_label"] if (n is not None and n > threshold) else []


def rule_self_modifying_store(event):
    # a memory STORE that replaced a cell whose text was not a number (an instruction)
    if event.get("store_region") != "memory":
        return []
    prev = event.get("store_prev")
    if prev is None or not prev.strip():
        return []
    return ["self_modifying_store"] if parse_cell(prev) is None else []
