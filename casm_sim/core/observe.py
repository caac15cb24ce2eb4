# core/observe.py
import json
from typing import Any, Dict, Iterator, Optional


class TraceSink:
    """
    Receives one event per executed line. Events are appended as JSON lines to
    ``path`` and/or handed to ``collector`` (any list-like), whichever is set.
    Every event is serialised first, so a collector only ever sees events that
    would also fit in a trace file.
    """

    def __init__(self, path: Optional[str] = None, collector: Optional[list] = None):
        self.path = path
        self.collector = collector
        self.emitted = 0

    def emit(self, event: Dict[str, Any]):
        line = json.dumps(event, separators=(",", ":"))
        if self.path:
            with open(self.path, "a", encoding="utf-8") as f:
                f.write(line + "\n")
        if self.collector is not None:
            self.collector.append(event)
        self.emitted += 1


def read_trace(path: str) -> Iterator[Dict[str, Any]]:
    """Yield events from a JSONL trace file, skipping blank lines."""
    with open(path, "r", encoding="utf-8") as f:
        for line in f:
            if line.strip():
                yield json.loads(line)
