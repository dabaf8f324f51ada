from __future__ import annotations

import gzip
import json

import pytest

from lokisink.core.batch import LogEntry
from lokisink.core.errors import ErrorCategory, SerializationError
from lokisink.core.serialization import (
    SerializedView,
    build_push_payload,
    encode_push_body,
    gzip_compress,
    serialize_push_payload,
)


def test_build_push_payload_single_stream() -> None:
    entries = [LogEntry("1", "l1"), LogEntry("2", "l2")]

    payload = build_push_payload({"service": "x"}, entries)

    assert payload == {
        "streams": [{"stream": {"service": "x"}, "values": [["1", "l1"], ["2", "l2"]]}]
    }


def test_serialize_push_payload_is_compact_json() -> None:
    view = serialize_push_payload({"a": "b"}, [LogEntry("10", 'say "hi"\n')])

    assert bytes(view) == (
        b'{"streams":[{"stream":{"a":"b"},"values":[["10","say \\"hi\\"\\n"]]}]}'
    )
    assert len(view) == len(view.view)


def test_encode_push_body_is_gzip() -> None:
    body = encode_push_body({}, [LogEntry("5", "line")])

    assert body[:2] == b"\x1f\x8b"
    assert json.loads(gzip.decompress(body)) == {
        "streams": [{"stream": {}, "values": [["5", "line"]]}]
    }


def test_gzip_compress_round_trips_large_payload() -> None:
    data = b"x" * 100_000

    out = gzip_compress(SerializedView(data))

    assert len(out) < len(data)
    assert gzip.decompress(out) == data


def test_surrogates_raise_serialization_error() -> None:
    with pytest.raises(SerializationError) as excinfo:
        serialize_push_payload({}, [LogEntry("1", "\udc80")])

    assert excinfo.value.category is ErrorCategory.SERIALIZATION
    assert isinstance(excinfo.value.cause, TypeError)
