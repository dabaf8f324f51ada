"""
Public entrypoints for lokisink.

A buffering write-syncer that forwards log lines to Grafana Loki's push API.

Example:
    ```python
    import httpx
    from lokisink import new_loki_sink

    sink = new_loki_sink(httpx.AsyncClient())(
        "loki://logs:3100/?UNSAFE_secure=false", {"service": "api"}
    )
    sink.write(b'{"level": "info", "msg": "started"}')
    await sink.sync()
    await sink.close()
    ```
"""

from __future__ import annotations

from ._version import __version__
from .core.batch import BatchBuffer, LogEntry
from .core.endpoint import resolve_base_endpoint
from .core.errors import (
    ConfigurationError,
    DeliveryError,
    LokiSinkError,
    PushRejectedError,
    SerializationError,
    SinkClosedError,
    SinkWriteError,
)
from .core.settings import LokiSinkConfig, Settings, load_settings
from .metrics.metrics import MetricsCollector
from .sinks.loki import LokiWriteSyncer, new_loki_sink

VERSION = __version__

__all__ = [
    "BatchBuffer",
    "ConfigurationError",
    "DeliveryError",
    "LogEntry",
    "LokiSinkConfig",
    "LokiSinkError",
    "LokiWriteSyncer",
    "MetricsCollector",
    "PushRejectedError",
    "SerializationError",
    "Settings",
    "SinkClosedError",
    "SinkWriteError",
    "VERSION",
    "__version__",
    "load_settings",
    "new_loki_sink",
    "resolve_base_endpoint",
]
