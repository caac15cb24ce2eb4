# preprocess.py: label pass over a whole program (definitions -> line indexes)
import re
from typing import Dict, List, NamedTuple, Sequence

from .encoding import MAX_LABELS
from .errors import DuplicateLabelError, ReservedLabelError, TooManyLabelsError
from .tokens import TokenType, classify_identifier

LABEL_DEF = re.compile(r"^\s*([A-Za-z][A-Za-z0-9_]*):")


class Preprocessed(NamedTuple):
    labels: Dict[str, int]
    lines: List[str]


def strip_line_ending(line: str) -> str:
    return line.rstrip("\r\n")


def split_label(line: str):
    """Return (label or None, instruction-only remainder) for one line."""
    m = LABEL_DEF.match(line)
    if not m:
        return None, line
    return m.group(1), line[m.end():].lstrip()


def preprocess(program: Sequence[str], max_labels: int = MAX_LABELS) -> Preprocessed:
    """
    Extract leading ``Name:`` definitions, mapping each name to its line index,
    and return the program with the definitions removed.
    """
    labels: Dict[str, int] = {}
    lines: List[str] = []
    for index, raw in enumerate(program):
        label, rest = split_label(strip_line_ending(raw))
        if label is not None:
            if classify_identifier(label) is not TokenType.LABEL_REF:
                raise ReservedLabelError(f"[line {index}] Label name is reserved: {label}")
            if label in labels:
                raise DuplicateLabelError(f"[line {index}] Duplicate label: {label}")
            if len(labels) >= max_labels:
                raise TooManyLabelsError(f"[line {index}] Too many labels (max {max_labels})")
            labels[label] = index
        lines.append(rest)
    return Preprocessed(labels, lines)
