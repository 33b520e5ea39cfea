"""Tests for the per-subscription stream state machine"""

from decimal import Decimal
from types import SimpleNamespace

import pytest

from conftest import (
    BLOCK_HASH,
    BLOCK_NUMBER,
    DEAD,
    FakeNodes,
    FakeSink,
    answer,
    connect_error,
    rpc_error,
    url,
)
from ethstream.services.block_fetcher import BlockFetcher
from ethstream.services.datasource.rpc import EndpointPool, RPCClient
from ethstream.services import stream_dispatcher
from ethstream.services.stream_dispatcher import DispatcherState, StreamDispatcher


def _dispatcher(nodes: FakeNodes, sink: FakeSink, hosts=None, emit_interval: float = 0.0) -> StreamDispatcher:
    hosts = list(nodes.behaviours) if hosts is None else hosts
    rpc = RPCClient(EndpointPool([url(h) for h in hosts]), transport=nodes.transport)
    return StreamDispatcher(BlockFetcher(rpc), sink, exchange_rate=Decimal("5000"), emit_interval=emit_interval)


@pytest.fixture
def sleeps(monkeypatch):
    """Record cadence delays instead of waiting"""
    recorded = []

    async def _fake_sleep(delay, *args, **kwargs):
        recorded.append(delay)

    monkeypatch.setattr(stream_dispatcher, "asyncio", SimpleNamespace(sleep=_fake_sleep))
    return recorded


class TestStreamDispatcher:
    """End-to-end subscription scenarios against fake nodes"""

    @pytest.mark.asyncio
    async def test_all_filter_streams_whole_block_at_fixed_cadence(self, block_results, sleeps):
        nodes = FakeNodes({"a": connect_error(), "b": answer(block_results), "c": answer(block_results)})
        sink = FakeSink()
        dispatcher = _dispatcher(nodes, sink, emit_interval=1.0)

        state = await dispatcher.run({"type": "all"})

        assert state is DispatcherState.DONE
        assert [name for name, _ in sink.events] == ["transaction"] * 5
        hashes = [payload["transactionHash"] for payload in sink.of("transaction")]
        assert hashes == [tx["hash"] for tx in block_results["eth_getBlockByNumber"]["transactions"]]
        assert sleeps == [1.0] * 4

    @pytest.mark.asyncio
    async def test_transaction_payload_decodes_wei(self, block_results):
        nodes = FakeNodes({"a": answer(block_results)})
        sink = FakeSink()

        await _dispatcher(nodes, sink).run({"type": "all"})

        first = sink.of("transaction")[0]
        assert first == {
            "senderAddress": block_results["eth_getBlockByNumber"]["transactions"][0]["from"],
            "receiverAddress": block_results["eth_getBlockByNumber"]["transactions"][0]["to"],
            "blockNumber": BLOCK_NUMBER,
            "blockHash": BLOCK_HASH,
            "transactionHash": block_results["eth_getBlockByNumber"]["transactions"][0]["hash"],
            "gasPriceInWei": 20_000_000_000,
            "valueInWei": 10**18,
        }

    @pytest.mark.asyncio
    async def test_sender_filter_emits_only_matches(self, block_results):
        nodes = FakeNodes({"a": answer(block_results)})
        sink = FakeSink()

        state = await _dispatcher(nodes, sink).run({"type": "sender", "address": DEAD})

        assert state is DispatcherState.DONE
        assert len(sink.events) == 2
        assert all(payload["senderAddress"] == DEAD for payload in sink.of("transaction"))

    @pytest.mark.asyncio
    async def test_value_range_filter(self, block_results):
        nodes = FakeNodes({"a": answer(block_results)})
        sink = FakeSink()

        await _dispatcher(nodes, sink).run({"range": ">5000"})

        assert [p["valueInWei"] for p in sink.of("transaction")] == [10**18, 2 * 10**18]

    @pytest.mark.asyncio
    async def test_empty_pool_emits_single_error(self):
        nodes = FakeNodes({})
        sink = FakeSink()

        state = await _dispatcher(nodes, sink, hosts=[]).run({"type": "all"})

        assert state is DispatcherState.ERRORED
        assert sink.events == [("error", {"message": "No Ethereum nodes available"})]

    @pytest.mark.asyncio
    async def test_disconnect_mid_stream_stops_without_error(self, block_results, sleeps):
        nodes = FakeNodes({"a": answer(block_results)})
        sink = FakeSink(disconnect_after=1)
        dispatcher = _dispatcher(nodes, sink, emit_interval=1.0)

        state = await dispatcher.run({"type": "all"})

        assert state is DispatcherState.DONE
        assert [name for name, _ in sink.events] == ["transaction"]
        assert dispatcher.emitted == 1

    @pytest.mark.asyncio
    async def test_invalid_filter_never_reaches_network(self):
        nodes = FakeNodes({"a": answer({})})
        sink = FakeSink()

        state = await _dispatcher(nodes, sink).run({"type": "sender"})

        assert state is DispatcherState.ERRORED
        assert nodes.calls == []
        assert len(sink.of("error")) == 1

    @pytest.mark.asyncio
    async def test_invalid_block_identifier_never_reaches_network(self):
        nodes = FakeNodes({"a": answer({})})
        sink = FakeSink()

        state = await _dispatcher(nodes, sink).run({"blockId": "tomorrow", "type": "all"})

        assert state is DispatcherState.ERRORED
        assert nodes.calls == []
        assert "tomorrow" in sink.of("error")[0]["message"]

    @pytest.mark.asyncio
    async def test_boolean_block_id_is_not_block_one(self, block_results):
        nodes = FakeNodes({"a": answer(block_results)})
        sink = FakeSink()

        state = await _dispatcher(nodes, sink).run({"blockId": True, "type": "all"})

        assert state is DispatcherState.ERRORED
        assert nodes.calls == []
        assert sink.events == [("error", {"message": "Invalid block identifier: True"})]

    @pytest.mark.asyncio
    async def test_fractional_block_id_is_invalid_block_identifier(self, block_results):
        nodes = FakeNodes({"a": answer(block_results)})
        sink = FakeSink()

        state = await _dispatcher(nodes, sink).run({"blockId": 1.5, "type": "all"})

        assert state is DispatcherState.ERRORED
        assert nodes.calls == []
        assert sink.events == [("error", {"message": "Invalid block identifier: 1.5"})]

    @pytest.mark.asyncio
    async def test_invalid_range_surfaces_error(self):
        nodes = FakeNodes({"a": answer({})})
        sink = FakeSink()

        await _dispatcher(nodes, sink).run({"range": "5-10"})

        assert nodes.calls == []
        assert sink.events == [("error", {"message": "Invalid range: '5-10'"})]

    @pytest.mark.asyncio
    async def test_non_object_payload_is_invalid_filter(self):
        sink = FakeSink()

        state = await _dispatcher(FakeNodes({}), sink, hosts=[]).run(["all"])

        assert state is DispatcherState.ERRORED
        assert len(sink.of("error")) == 1

    @pytest.mark.asyncio
    async def test_rpc_error_forwards_upstream_message(self):
        nodes = FakeNodes({"a": rpc_error(-32000, "header not found"), "b": answer({})})
        sink = FakeSink()

        state = await _dispatcher(nodes, sink).run({"blockId": 5, "type": "all"})

        assert state is DispatcherState.ERRORED
        assert sink.events == [("error", {"message": "RPC error: header not found"})]
        assert [host for host, _, _ in nodes.calls] == ["a"]

    @pytest.mark.asyncio
    async def test_exhausted_pool_emits_single_error(self):
        nodes = FakeNodes({"a": connect_error(), "b": connect_error()})
        sink = FakeSink()

        state = await _dispatcher(nodes, sink).run({"type": "all"})

        assert state is DispatcherState.ERRORED
        assert [name for name, _ in sink.events] == ["error"]
        assert len(nodes.calls) == 2

    @pytest.mark.asyncio
    async def test_disconnect_during_fetch_discards_block(self, block_results):
        sink = FakeSink()

        def _answer_then_drop(request, body):
            sink.disconnect()
            return answer(block_results)(request, body)

        nodes = FakeNodes({"a": _answer_then_drop})

        state = await _dispatcher(nodes, sink).run({"type": "all"})

        assert state is DispatcherState.DONE
        assert sink.events == []

    @pytest.mark.asyncio
    async def test_block_alias_from_legacy_clients(self, block_results):
        nodes = FakeNodes({"a": answer(block_results)})
        sink = FakeSink()

        await _dispatcher(nodes, sink).run({"block": "19128311", "type": "all"})

        assert nodes.calls[0][1:] == ("eth_getBlockByNumber", [hex(19128311), True])

    @pytest.mark.asyncio
    async def test_role_keyed_address_from_legacy_clients(self, block_results):
        nodes = FakeNodes({"a": answer(block_results)})
        sink = FakeSink()

        state = await _dispatcher(nodes, sink).run({"block": "19128311", "type": "sender", "sender": DEAD})

        assert state is DispatcherState.DONE
        assert [payload["senderAddress"] for payload in sink.of("transaction")] == [DEAD, DEAD]

    @pytest.mark.asyncio
    async def test_dispatcher_is_single_use(self, block_results):
        nodes = FakeNodes({"a": answer(block_results)})
        dispatcher = _dispatcher(nodes, FakeSink())
        await dispatcher.run({"type": "all"})

        with pytest.raises(RuntimeError):
            await dispatcher.run({"type": "all"})
