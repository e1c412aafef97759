#!/usr/bin/env python
"""
Example: Print posts from the filtered stream until N frames arrive or Ctrl+C.

Usage:
    python examples/filtered_stream.py --limit 10

Requirements:
    X_BEARER_TOKEN in the environment or .env, with stream rules already set up.
"""

from __future__ import annotations

import argparse
import asyncio
import signal
import sys

from x_transport.config import ConfigManager
from x_transport.exceptions import CancellationError, XTransportError
from x_transport.factory import XExecutorFactory
from x_transport.models import RequestDescriptor, StreamFrame

API_BASE = "https://api.twitter.com"


async def stream(limit: int) -> int:
    executor = XExecutorFactory.create_from_config(ConfigManager(), supports_compression=True)
    received = 0

    async def on_frame(frame: StreamFrame) -> None:
        nonlocal received
        if frame.is_keep_alive:
            return
        payload = frame.json()
        print(payload.get("data", {}).get("text", payload))
        received += 1
        if received >= limit:
            frame.close_stream()

    executor.stream_callback = on_frame

    cancel = asyncio.Event()
    asyncio.get_running_loop().add_signal_handler(signal.SIGINT, cancel.set)

    descriptor = RequestDescriptor.build(
        API_BASE, "/2/tweets/search/stream", {"tweet.fields": "created_at,author_id"}
    )
    try:
        await executor.start_stream(descriptor, cancel=cancel)
    except CancellationError:
        print("Stream cancelled")
    print(f"Received {received} posts")
    return 0


def main() -> int:
    parser = argparse.ArgumentParser(description="Read the X filtered stream")
    parser.add_argument("--limit", type=int, default=10, help="Stop after this many posts")
    args = parser.parse_args()

    try:
        return asyncio.run(stream(args.limit))
    except XTransportError as e:
        print(f"X API error: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
