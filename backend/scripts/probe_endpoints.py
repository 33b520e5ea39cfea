import argparse
import asyncio
import json
import logging
import sys
import time
from pathlib import Path
from typing import Dict, List, Optional, Sequence

sys.path.append(str(Path(__file__).resolve().parents[1]))

from ethstream.config import settings  # noqa: E402
from ethstream.exceptions import EthStreamError  # noqa: E402
from ethstream.models.blockchain import hex_to_int  # noqa: E402
from ethstream.services.datasource.rpc import EndpointPool, RPCClient  # noqa: E402
from ethstream.services.node_discovery import NodeDiscovery  # noqa: E402

logger = logging.getLogger(__name__)


async def _probe(url: str, timeout: float) -> Dict[str, object]:
    client = RPCClient(EndpointPool([url]), timeout=timeout)
    started = time.perf_counter()
    height: Optional[int] = None
    error: Optional[str] = None
    try:
        height = hex_to_int(await client.call("eth_blockNumber", []))
    except EthStreamError as exc:
        error = str(exc)
    finally:
        await client.aclose()
    return {
        "url": url,
        "ok": error is None,
        "height": height,
        "latency_ms": (time.perf_counter() - started) * 1000,
        "error": error,
    }


async def run_probe(args: argparse.Namespace) -> List[Dict[str, object]]:
    urls: List[str] = list(args.url or [])
    if not urls:
        discovery = NodeDiscovery(
            EndpointPool(),
            node_list_url=settings.node_list_url,
            seed_urls=settings.rpc_urls,
            timeout=settings.node_list_timeout,
        )
        urls = await discovery.discover()

    if not urls:
        print("No endpoints configured or discovered.")
        return []

    semaphore = asyncio.Semaphore(args.concurrency)

    async def bounded(url: str) -> Dict[str, object]:
        async with semaphore:
            return await _probe(url, args.timeout)

    results = await asyncio.gather(*(bounded(url) for url in urls))
    results.sort(key=lambda item: (not item["ok"], item["latency_ms"]))

    tip = max((r["height"] for r in results if r["height"] is not None), default=None)
    print(f"\n{'Endpoint':<60} {'Height':>10} {'Lag':>5} {'Latency(ms)':>12}")
    print("-" * 90)
    for item in results:
        if item["ok"]:
            lag = tip - item["height"] if tip is not None else 0
            print(f"{item['url']:<60} {item['height']:>10} {lag:>5} {item['latency_ms']:>12.1f}")
        else:
            print(f"{item['url']:<60} {'FAIL':>10} {'-':>5} {item['latency_ms']:>12.1f}  {item['error']}")

    healthy = sum(1 for r in results if r["ok"])
    print(f"\n{healthy}/{len(results)} endpoints answered eth_blockNumber")

    if args.json:
        print("\nJSON results:")
        print(json.dumps(results, indent=2))
    return results


def parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Probe Ethereum JSON-RPC endpoints with eth_blockNumber.")
    parser.add_argument("--url", action="append", help="Endpoint to probe (repeatable). Defaults to discovery.")
    parser.add_argument("--timeout", type=float, default=10.0, help="Per-request timeout in seconds.")
    parser.add_argument("--concurrency", type=int, default=10, help="Endpoints probed in parallel.")
    parser.add_argument("--json", action="store_true", help="Print JSON results in addition to the table.")
    return parser.parse_args(argv)


def main(argv: Sequence[str] | None = None) -> None:
    logging.basicConfig(level=logging.ERROR)
    args = parse_args(argv if argv is not None else sys.argv[1:])
    asyncio.run(run_probe(args))


if __name__ == "__main__":
    main()
