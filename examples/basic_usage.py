"""
Basic usage example for lokisink.

Buffers a few JSON log lines and pushes them to a local Loki. Flushing and
retrying are the caller's job: the sink keeps unsent lines after a failure,
so calling `sync()` again resends the whole backlog.

    docker run -p 3100:3100 grafana/loki
    python examples/basic_usage.py
"""

import asyncio
import json
import time

import httpx

from lokisink import LokiSinkError, new_loki_sink


async def main() -> None:
    async with httpx.AsyncClient(timeout=5.0) as client:
        sink = new_loki_sink(client)(
            "loki://localhost:3100/?UNSAFE_secure=false",
            {"service": "example", "env": "dev"},
        )
        async with sink:
            for i in range(3):
                line = {"ts": time.time(), "level": "info", "msg": f"event {i}"}
                sink.write(json.dumps(line).encode())

            for attempt in range(3):
                try:
                    await sink.sync()
                    break
                except LokiSinkError as exc:
                    print(f"push attempt {attempt + 1} failed: {exc}")
                    await asyncio.sleep(2**attempt)

            print(f"unsent lines: {sink.pending}")


if __name__ == "__main__":
    asyncio.run(main())
