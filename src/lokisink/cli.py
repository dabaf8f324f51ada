"""
Command line entry point: ship stdin lines to Loki.

    some-app | lokisink push --url loki://logs:3100/?UNSAFE_secure=false \
        --tag service=some-app
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from typing import IO, Sequence

import httpx

from .core.errors import ConfigurationError, LokiSinkError
from .core.settings import LokiSinkConfig, Settings, load_settings, parse_sink_config
from .metrics.metrics import MetricsCollector
from .sinks.loki import LokiWriteSyncer

EXIT_OK = 0
EXIT_FLUSH_FAILED = 1
EXIT_CONFIG = 2


def _parse_tag(raw: str) -> tuple[str, str]:
    key, sep, value = raw.partition("=")
    if not sep or not key:
        raise argparse.ArgumentTypeError(f"expected key=value, got {raw!r}")
    return key, value


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="lokisink")
    sub = parser.add_subparsers(dest="command", required=True)

    push = sub.add_parser("push", help="push stdin lines to Loki")
    push.add_argument("--url", help="Loki URL (default: LOKISINK_LOKI__URL)")
    push.add_argument(
        "--tag",
        action="append",
        type=_parse_tag,
        default=[],
        metavar="KEY=VALUE",
        help="stream label; repeatable, overrides LOKISINK_LOKI__TAGS keys",
    )
    push.add_argument(
        "--batch-lines",
        type=int,
        default=100,
        help="flush after this many lines (default: 100)",
    )
    push.add_argument("--timeout", type=float, default=None, help="request timeout")
    return parser


def _sink_config(args: argparse.Namespace, settings: Settings) -> LokiSinkConfig:
    url = args.url or settings.loki.url
    if not url:
        raise ConfigurationError("no Loki URL: pass --url or set LOKISINK_LOKI__URL")
    tags = dict(settings.loki.tags)
    tags.update(dict(args.tag))
    return parse_sink_config(
        LokiSinkConfig,
        url=url,
        tags=tags,
        timeout_seconds=args.timeout or settings.loki.timeout_seconds,
    )


async def _pump(
    sink: LokiWriteSyncer, stream: IO[bytes], batch_lines: int
) -> int:
    sent = 0
    async with sink:
        for raw in stream:
            sink.write(raw.rstrip(b"\r\n"))
            if sink.pending >= batch_lines:
                await sink.sync()
                sent += 1
        if sink.pending:
            await sink.sync()
            sent += 1
    return sent


def main(
    argv: Sequence[str] | None = None,
    *,
    stdin: IO[bytes] | None = None,
    client: httpx.AsyncClient | None = None,
) -> int:
    args = build_parser().parse_args(argv)
    if args.batch_lines < 1:
        sys.stderr.write("lokisink: --batch-lines must be >= 1\n")
        return EXIT_CONFIG

    try:
        settings = load_settings()
        cfg = _sink_config(args, settings)
        sink = LokiWriteSyncer(
            cfg,
            client=client,
            metrics=MetricsCollector(enabled=settings.core.enable_metrics),
        )
    except ConfigurationError as exc:
        sys.stderr.write(f"lokisink: {exc}\n")
        return EXIT_CONFIG

    stream = stdin if stdin is not None else sys.stdin.buffer
    try:
        asyncio.run(_pump(sink, stream, args.batch_lines))
    except LokiSinkError as exc:
        sys.stderr.write(f"lokisink: flush failed: {exc}\n")
        return EXIT_FLUSH_FAILED
    return EXIT_OK


if __name__ == "__main__":
    raise SystemExit(main())
