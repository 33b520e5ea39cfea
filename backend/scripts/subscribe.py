"""Example stream subscriber.

    python scripts/subscribe.py --type all
    python scripts/subscribe.py --block 19928855 --type sender --address 0x32be...
    python scripts/subscribe.py --range 500-2000
"""

import argparse
import asyncio
import json
import sys
from typing import Any, Dict, Sequence

import websockets


def build_request(args: argparse.Namespace) -> Dict[str, Any]:
    request: Dict[str, Any] = {}
    if args.block is not None:
        request["blockId"] = args.block
    if args.type is not None:
        request["type"] = args.type
    if args.address is not None:
        request["address"] = args.address
    if args.range is not None:
        request["range"] = args.range
    return request


async def subscribe(args: argparse.Namespace) -> int:
    request = build_request(args)
    received = 0
    async with websockets.connect(args.url, ping_interval=20, ping_timeout=20) as ws:
        print(f"Connected to {args.url}, subscribing with {request}")
        await ws.send(json.dumps({"event": "subscribe", "data": request}))
        while args.limit is None or received < args.limit:
            try:
                raw = await asyncio.wait_for(ws.recv(), timeout=args.idle_timeout)
            except asyncio.TimeoutError:
                print(f"No events for {args.idle_timeout:.0f}s, stream finished")
                break
            message = json.loads(raw)
            if message["event"] == "error":
                print(f"Error: {message['data']['message']}")
                return 1
            received += 1
            print(json.dumps(message["data"], indent=2))
    print(f"Received {received} transactions")
    return 0


def parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Subscribe to a filtered block transaction stream.")
    parser.add_argument("--url", default="ws://localhost:3000/ws/stream", help="Stream WebSocket URL.")
    parser.add_argument("--block", help="Block number (decimal or 0x hex). Defaults to latest.")
    parser.add_argument("--type", choices=["all", "sender", "receiver"], help="Address filter type.")
    parser.add_argument("--address", help="Address for sender/receiver/all filters.")
    parser.add_argument("--range", help="USD bucket: 0-100, 100-500, 500-2000, 2000-5000, >5000.")
    parser.add_argument("--limit", type=int, help="Stop after this many transactions.")
    parser.add_argument("--idle-timeout", type=float, default=10.0, help="Seconds without events before exiting.")
    return parser.parse_args(argv)


def main(argv: Sequence[str] | None = None) -> None:
    args = parse_args(argv if argv is not None else sys.argv[1:])
    sys.exit(asyncio.run(subscribe(args)))


if __name__ == "__main__":
    main()
