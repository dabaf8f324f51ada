"""
Push payload serialization.

Builds the Loki push document with orjson, exposes the bytes through a
`SerializedView`, and gzip-compresses it for the request body.
"""

from __future__ import annotations

import gzip
import io
from dataclasses import dataclass
from typing import Any, Iterable, Mapping

import orjson

from .batch import LogEntry
from .errors import (
    ErrorCategory,
    ErrorSeverity,
    SerializationError,
    create_error_context,
)


@dataclass
class SerializedView:
    """A lightweight container exposing zero-copy friendly views."""

    data: bytes

    @property
    def view(self) -> memoryview:
        return memoryview(self.data)

    def __bytes__(self) -> bytes:
        return self.data

    def __len__(self) -> int:
        return len(self.data)


def build_push_payload(
    tags: Mapping[str, str],
    entries: Iterable[LogEntry],
) -> dict[str, Any]:
    """Return ``{"streams": [{"stream": tags, "values": [[ts, line], ...]}]}``."""
    return {
        "streams": [
            {
                "stream": dict(tags),
                "values": [[entry.timestamp, entry.line] for entry in entries],
            }
        ]
    }


def serialize_push_payload(
    tags: Mapping[str, str],
    entries: Iterable[LogEntry],
) -> SerializedView:
    payload = build_push_payload(tags, entries)
    try:
        data = orjson.dumps(payload)
    except TypeError as e:
        context = create_error_context(
            ErrorCategory.SERIALIZATION,
            ErrorSeverity.HIGH,
            component="serialization",
        )
        raise SerializationError(
            "Push payload serialization failed",
            error_context=context,
            cause=e,
        ) from e
    return SerializedView(data=data)


def gzip_compress(view: SerializedView, *, compresslevel: int = 9) -> bytes:
    """Compress serialized bytes through a streaming gzip writer."""
    buf = io.BytesIO()
    try:
        with gzip.GzipFile(fileobj=buf, mode="wb", compresslevel=compresslevel) as gz:
            gz.write(view.view)
    except (OSError, ValueError) as e:
        context = create_error_context(
            ErrorCategory.SERIALIZATION,
            ErrorSeverity.HIGH,
            component="compression",
        )
        raise SerializationError(
            "Push payload compression failed",
            error_context=context,
            cause=e,
        ) from e
    return buf.getvalue()


def encode_push_body(
    tags: Mapping[str, str],
    entries: Iterable[LogEntry],
) -> bytes:
    """Serialize and compress in one step; nothing touches the network."""
    return gzip_compress(serialize_push_payload(tags, entries))
