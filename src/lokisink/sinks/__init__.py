from __future__ import annotations

from .loki import PUSH_HEADERS, LokiWriteSyncer, new_loki_sink

__all__ = ["LokiWriteSyncer", "PUSH_HEADERS", "new_loki_sink"]
