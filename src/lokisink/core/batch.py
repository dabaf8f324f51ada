"""
In-memory accumulation of log lines between flushes.
"""

from __future__ import annotations

import threading
import time
from typing import Mapping, NamedTuple, Tuple, Union

Tags = Mapping[str, str]


class LogEntry(NamedTuple):
    """One pushed value: ``[<unix-nanos>, <line>]`` on the wire."""

    timestamp: str
    line: str

    @classmethod
    def now(cls, line: bytes | str) -> LogEntry:
        if isinstance(line, (bytes, bytearray, memoryview)):
            text = bytes(line).decode("utf-8", errors="replace")
        else:
            text = line
        return cls(str(time.time_ns()), text)


Batch = Tuple[LogEntry, ...]
LineLike = Union[bytes, bytearray, memoryview, str]


class BatchBuffer:
    """Ordered, append-only buffer of `LogEntry` items.

    Append, snapshot and clear share one lock, so a line appended while a
    flush is in flight lands after the snapshot and survives the clear.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._entries: list[LogEntry] = []

    def append(self, line: LineLike) -> int:
        """Append ``line``; return its size in bytes (UTF-8 for ``str``)."""
        entry = LogEntry.now(line)
        with self._lock:
            self._entries.append(entry)
        if isinstance(line, str):
            return len(line.encode("utf-8", errors="surrogatepass"))
        return memoryview(line).nbytes

    def snapshot(self) -> Batch:
        with self._lock:
            return tuple(self._entries)

    def clear(self, count: int | None = None) -> None:
        """Drop the oldest ``count`` entries, or all of them."""
        with self._lock:
            if count is None:
                self._entries.clear()
            else:
                del self._entries[:count]

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
