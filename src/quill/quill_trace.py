"""Quill trace watchers.

Install one on a QuillVM with set_trace_watcher() to receive a line for every
instruction before it runs.
"""

import sys
from typing import List, TextIO


class QuillStdoutTraceWatcher:
    """Writes each trace line to a stream, stdout unless another stream is given."""

    def __init__(self, stream: TextIO | None = None) -> None:
        self.stream = stream

    def on_trace(self, message: str) -> None:
        stream = self.stream if self.stream is not None else sys.stdout
        stream.write(message + "\n")


class QuillBufferingTraceWatcher:
    """Keeps trace lines in memory so a run can be inspected afterwards."""

    def __init__(self) -> None:
        self.traces: List[str] = []

    def on_trace(self, message: str) -> None:
        self.traces.append(message)

    def get_traces(self) -> List[str]:
        """Return a copy of the lines collected so far."""
        return self.traces.copy()

    def clear(self) -> None:
        self.traces.clear()
