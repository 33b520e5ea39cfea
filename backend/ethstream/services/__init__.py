"""Services for EthStream backend"""

from .block_fetcher import BlockFetcher
from .stream_dispatcher import StreamDispatcher
from .runtime import StreamRuntime

__all__ = ["BlockFetcher", "StreamDispatcher", "StreamRuntime"]
