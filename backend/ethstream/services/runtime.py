"""Process-wide wiring of the streaming services"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Optional

import httpx
from starlette.requests import HTTPConnection

from ethstream.config import Settings
from ethstream.services.block_fetcher import BlockFetcher
from ethstream.services.datasource.rpc import EndpointPool, RPCClient
from ethstream.services.node_discovery import NodeDiscovery
from ethstream.services.stream_dispatcher import StreamDispatcher, TransactionSink

logger = logging.getLogger(__name__)


@dataclass
class StreamRuntime:
    """Services built once at startup and shared by every connection"""

    settings: Settings
    pool: EndpointPool
    rpc: RPCClient
    block_fetcher: BlockFetcher
    discovery: NodeDiscovery
    _discovery_task: Optional[asyncio.Task] = field(default=None, init=False)

    @classmethod
    def build(
        cls,
        settings: Settings,
        rpc_transport: Optional[httpx.AsyncBaseTransport] = None,
        discovery_transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> "StreamRuntime":
        pool = EndpointPool(settings.rpc_urls)
        rpc = RPCClient(pool, timeout=settings.rpc_request_timeout, transport=rpc_transport)
        discovery = NodeDiscovery(
            pool,
            node_list_url=settings.node_list_url,
            seed_urls=settings.rpc_urls,
            refresh_interval=settings.node_refresh_interval,
            timeout=settings.node_list_timeout,
            transport=discovery_transport,
        )
        return cls(
            settings=settings,
            pool=pool,
            rpc=rpc,
            block_fetcher=BlockFetcher(rpc),
            discovery=discovery,
        )

    def new_dispatcher(self, sink: TransactionSink) -> StreamDispatcher:
        return StreamDispatcher(
            self.block_fetcher,
            sink,
            exchange_rate=self.settings.eth_to_usd,
            emit_interval=self.settings.stream_emit_interval,
        )

    def start(self) -> None:
        if self.settings.node_discovery_enabled and self._discovery_task is None:
            self._discovery_task = asyncio.create_task(self.discovery.run_forever())
            logger.info(f"Node discovery started (every {self.settings.node_refresh_interval}s)")

    async def close(self) -> None:
        if self._discovery_task is not None:
            self._discovery_task.cancel()
            try:
                await self._discovery_task
            except asyncio.CancelledError:
                pass
            self._discovery_task = None
        await self.rpc.aclose()


def get_runtime(conn: HTTPConnection) -> StreamRuntime:
    """FastAPI dependency returning the runtime attached at startup"""
    return conn.app.state.runtime
