"""
Loki write-syncer.

Buffers log lines in memory and, on an explicit `sync()`, pushes everything
accumulated since the last confirmed push as one gzip-compressed JSON request
to ``<base>/loki/api/v1/push``. Lines are dropped from the buffer only after
Loki answers 204; any failure leaves them in place for the next `sync()`.

There is no retry, timer or background task: when to flush and whether to
retry is the caller's decision.
"""

from __future__ import annotations

import asyncio
import time
from types import MappingProxyType
from typing import Any, Callable, Mapping

import httpx

from ..core import diagnostics
from ..core.batch import Batch, BatchBuffer, LineLike
from ..core.endpoint import push_url, resolve_base_endpoint, resolve_credentials
from ..core.errors import (
    DeliveryError,
    PushRejectedError,
    SerializationError,
    SinkClosedError,
    SinkWriteError,
)
from ..core.serialization import encode_push_body
from ..core.settings import (
    LokiSinkConfig,
    Settings,
    load_settings,
    parse_sink_config,
)
from ..metrics.metrics import MetricsCollector

__all__ = ["LokiWriteSyncer", "new_loki_sink", "PUSH_HEADERS"]

PUSH_HEADERS: Mapping[str, str] = MappingProxyType(
    {
        "Content-Type": "application/json",
        "Content-Encoding": "gzip",
    }
)

_COMPONENT = "loki-sink"


class LokiWriteSyncer:
    """Buffering sink that pushes batches to Loki on demand.

    ``write()`` never blocks and never fails. ``sync()`` sends one request
    for the whole backlog. ``close()`` cancels an in-flight push and closes
    the HTTP client if this sink created it; a client passed in by the
    caller is left open.

    Concurrent ``sync()`` calls are serialized. Lines written while a push is
    in flight are kept for the next one.
    """

    name = "loki"

    def __init__(
        self,
        config: LokiSinkConfig | dict | None = None,
        *,
        client: httpx.AsyncClient | None = None,
        metrics: MetricsCollector | None = None,
        **kwargs: Any,
    ) -> None:
        cfg = parse_sink_config(LokiSinkConfig, config, **kwargs)
        self._config = cfg
        self._endpoint = resolve_base_endpoint(cfg.url)
        self._push_url = push_url(self._endpoint)
        self._auth = resolve_credentials(cfg.url)
        self._tags: Mapping[str, str] = MappingProxyType(dict(cfg.tags))
        self._buffer = BatchBuffer()
        self._metrics = metrics
        self._owns_client = client is None
        if client is None:
            client = httpx.AsyncClient(timeout=cfg.timeout_seconds)
        self._client = client
        self._flush_lock = asyncio.Lock()
        self._inflight: set[asyncio.Future[httpx.Response]] = set()
        self._closed = False
        self._last_status: int | None = None
        self._last_error: str | None = None

    @classmethod
    def from_settings(
        cls,
        settings: Settings | None = None,
        *,
        client: httpx.AsyncClient | None = None,
    ) -> LokiWriteSyncer:
        """Build a sink from ``LOKISINK_*`` environment settings."""
        settings = settings if settings is not None else load_settings()
        metrics = MetricsCollector(enabled=settings.core.enable_metrics)
        return cls(settings.loki.to_sink_config(), client=client, metrics=metrics)

    @property
    def endpoint(self) -> httpx.URL:
        return self._endpoint

    @property
    def push_url(self) -> str:
        return self._push_url

    @property
    def tags(self) -> Mapping[str, str]:
        return self._tags

    @property
    def pending(self) -> int:
        """Number of lines waiting for a confirmed push."""
        return len(self._buffer)

    @property
    def closed(self) -> bool:
        return self._closed

    def snapshot(self) -> Batch:
        return self._buffer.snapshot()

    def write(self, data: LineLike) -> int:
        """Buffer one line; return its size in bytes.

        After `close()` the line is dropped, a warning is emitted and 0 is
        returned.
        """
        if self._closed:
            diagnostics.warn(
                _COMPONENT,
                "write after close dropped",
                endpoint=self._push_url,
                _rate_limit_key="loki-sink-write-after-close",
            )
            return 0
        return self._buffer.append(data)

    async def sync(self) -> None:
        """Push the backlog; raise on any failure without clearing it."""
        if self._closed:
            raise SinkClosedError("sync() called on a closed Loki sink")
        async with self._flush_lock:
            if self._closed:
                raise SinkClosedError("sync() called on a closed Loki sink")
            await self._push(self._buffer.snapshot())

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        pending = [task for task in self._inflight if not task.done()]
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
        if self._owns_client:
            await self._client.aclose()
        diagnostics.debug(
            _COMPONENT,
            "sink closed",
            endpoint=self._push_url,
            cancelled=len(pending),
            unsent=len(self._buffer),
        )

    async def health_check(self) -> bool:
        return self._last_error is None and self._last_status == 204

    async def __aenter__(self) -> LokiWriteSyncer:
        return self

    async def __aexit__(self, exc_type: Any, exc: Any, tb: Any) -> None:
        await self.close()

    async def _push(self, batch: Batch) -> None:
        try:
            body = encode_push_body(self._tags, batch)
        except SerializationError as exc:
            await self._fail("serialization", exc, entries=len(batch))
            raise

        try:
            request = self._client.build_request(
                "POST", self._push_url, content=body, headers=dict(PUSH_HEADERS)
            )
        except (httpx.InvalidURL, httpx.HTTPError, ValueError, TypeError) as exc:
            await self._fail("request", exc, entries=len(batch))
            raise SinkWriteError(
                f"Failed to build push request for {self._push_url}",
                sink_name=self.name,
                cause=exc,
            ) from exc

        started = time.perf_counter()
        task = asyncio.ensure_future(
            self._client.send(request, auth=self._auth or httpx.USE_CLIENT_DEFAULT)
        )
        self._inflight.add(task)
        try:
            response = await task
        except asyncio.CancelledError:
            if not (self._closed and task.cancelled()):
                raise
            await self._fail("cancelled", None, entries=len(batch))
            raise SinkClosedError("push cancelled: Loki sink closed") from None
        except httpx.HTTPError as exc:
            if self._closed:
                await self._fail("cancelled", exc, entries=len(batch))
                raise SinkClosedError(
                    "push aborted: Loki sink closed", cause=exc
                ) from exc
            await self._fail("transport", exc, entries=len(batch))
            raise DeliveryError(
                f"Failed to deliver {len(batch)} entries to {self._push_url}: {exc}",
                sink_name=self.name,
                cause=exc,
            ) from exc
        finally:
            self._inflight.discard(task)

        self._last_status = response.status_code
        if response.status_code != 204:
            text = response.text
            diagnostics.warn(
                _COMPONENT,
                "push rejected",
                status_code=response.status_code,
                endpoint=self._push_url,
                entries=len(batch),
                body=text[:256],
            )
            self._last_error = f"HTTP {response.status_code}"
            if self._metrics is not None:
                await self._metrics.record_flush_failure(reason="rejected")
            raise PushRejectedError(response.status_code, text, sink_name=self.name)

        self._buffer.clear(len(batch))
        self._last_error = None
        if self._metrics is not None:
            await self._metrics.record_flush_success(
                len(batch), duration_seconds=time.perf_counter() - started
            )

    async def _fail(
        self, reason: str, exc: BaseException | None, *, entries: int
    ) -> None:
        self._last_error = str(exc) if exc is not None else reason
        diagnostics.warn(
            _COMPONENT,
            "push failed",
            reason=reason,
            endpoint=self._push_url,
            entries=entries,
            error=self._last_error,
            _rate_limit_key=f"loki-sink-{reason}",
        )
        if self._metrics is not None:
            await self._metrics.record_flush_failure(reason=reason)


def new_loki_sink(
    client: httpx.AsyncClient | None = None,
) -> Callable[..., LokiWriteSyncer]:
    """Return a factory ``(url, tags=None) -> LokiWriteSyncer`` bound to ``client``.

    Example:
        factory = new_loki_sink(client)
        sink = factory("loki://logs:3100/?UNSAFE_secure=false", {"service": "api"})
    """

    def factory(
        url: str | httpx.URL, tags: Mapping[str, str] | None = None
    ) -> LokiWriteSyncer:
        return LokiWriteSyncer(client=client, url=str(url), tags=tags)

    return factory
