"""Shared fixtures: fake JSON-RPC nodes and sample blocks"""

import json
from typing import Any, Callable, Dict, List, Optional, Tuple

import httpx
import pytest

from ethstream.models.blockchain import Transaction

BLOCK_NUMBER = "0x124abf7"
BLOCK_HASH = "0x" + "ab" * 32
DEAD = "0xdead00000000000000000000000000000000beef"
ALICE = "0xa11ce00000000000000000000000000000000001"
BOB = "0xb0b0000000000000000000000000000000000002"
CAROL = "0xca201000000000000000000000000000000000003"

WEI_PER_ETH = 10**18

Behaviour = Callable[[httpx.Request, Dict[str, Any]], httpx.Response]


def raw_tx(index: int, sender: str, receiver: Optional[str], value_wei: int = 0, gas_price_wei: int = 20_000_000_000) -> Dict[str, Any]:
    """Transaction dict as a node returns it inside a full block"""
    return {
        "from": sender,
        "to": receiver,
        "value": hex(value_wei),
        "gasPrice": hex(gas_price_wei),
        "hash": "0x" + f"{index:064x}",
        "blockNumber": BLOCK_NUMBER,
        "blockHash": BLOCK_HASH,
        "nonce": hex(index),
        "input": "0x",
    }


def make_tx(index: int, sender: str, receiver: Optional[str], value_wei: int = 0) -> Transaction:
    return Transaction.model_validate(raw_tx(index, sender, receiver, value_wei))


def raw_block(transactions: List[Dict[str, Any]], number: str = BLOCK_NUMBER) -> Dict[str, Any]:
    return {"number": number, "hash": BLOCK_HASH, "transactions": transactions}


def sample_block_transactions() -> List[Dict[str, Any]]:
    """Five transactions, exactly two sent by DEAD"""
    return [
        raw_tx(1, ALICE, BOB, value_wei=WEI_PER_ETH),
        raw_tx(2, DEAD, ALICE, value_wei=2 * WEI_PER_ETH),
        raw_tx(3, BOB, CAROL, value_wei=3 * 10**16),
        raw_tx(4, DEAD, None, value_wei=0),
        raw_tx(5, CAROL, DEAD, value_wei=5 * 10**15),
    ]


# Node behaviours


def answer(results: Dict[str, Any]) -> Behaviour:
    def _respond(request: httpx.Request, body: Dict[str, Any]) -> httpx.Response:
        return httpx.Response(200, json={"jsonrpc": "2.0", "id": body["id"], "result": results[body["method"]]})

    return _respond


def connect_error() -> Behaviour:
    def _respond(request: httpx.Request, body: Dict[str, Any]) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    return _respond


def http_status(code: int) -> Behaviour:
    def _respond(request: httpx.Request, body: Dict[str, Any]) -> httpx.Response:
        return httpx.Response(code, text="upstream unavailable")

    return _respond


def not_json() -> Behaviour:
    def _respond(request: httpx.Request, body: Dict[str, Any]) -> httpx.Response:
        return httpx.Response(200, text="<html>rate limited</html>")

    return _respond


def rpc_error(code: Any, message: Any) -> Behaviour:
    def _respond(request: httpx.Request, body: Dict[str, Any]) -> httpx.Response:
        return httpx.Response(
            200,
            json={"jsonrpc": "2.0", "id": body["id"], "error": {"code": code, "message": message}},
        )

    return _respond


class FakeNodes:
    """
    httpx transport standing in for a set of JSON-RPC nodes keyed by host.

    Every request is recorded as ``(host, method, params)``.
    """

    def __init__(self, behaviours: Dict[str, Behaviour]):
        self.behaviours = behaviours
        self.calls: List[Tuple[str, str, List[Any]]] = []
        self.transport = httpx.MockTransport(self._handle)

    def _handle(self, request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        host = request.url.host
        self.calls.append((host, body["method"], body["params"]))
        return self.behaviours[host](request, body)

    @property
    def hosts_called(self) -> List[str]:
        return [host for host, _, _ in self.calls]


def url(host: str) -> str:
    return f"https://{host}/rpc"


class FakeSink:
    """Collects emitted events; optionally disconnects after N events"""

    def __init__(self, disconnect_after: Optional[int] = None):
        self.events: List[Tuple[str, Dict[str, Any]]] = []
        self.disconnect_after = disconnect_after
        self._disconnected = False

    @property
    def disconnected(self) -> bool:
        return self._disconnected

    def disconnect(self) -> None:
        self._disconnected = True

    async def emit(self, event: str, payload: Dict[str, Any]) -> None:
        self.events.append((event, payload))
        if self.disconnect_after is not None and len(self.events) >= self.disconnect_after:
            self._disconnected = True

    def of(self, event: str) -> List[Dict[str, Any]]:
        return [payload for name, payload in self.events if name == event]


@pytest.fixture
def block_results() -> Dict[str, Any]:
    return {
        "eth_blockNumber": BLOCK_NUMBER,
        "eth_getBlockByNumber": raw_block(sample_block_transactions()),
    }
