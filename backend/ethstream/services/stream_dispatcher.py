"""Per-subscription fetch -> filter -> paced emission"""

import asyncio
import logging
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Optional, Protocol

from pydantic import ValidationError

from ethstream.exceptions import EthStreamError, InvalidFilterError
from ethstream.models.api import ErrorEvent, SubscribeRequest, TransactionEvent
from ethstream.models.blockchain import Transaction
from ethstream.services.block_fetcher import BlockFetcher, parse_block_identifier
from ethstream.services.transaction_filter import apply_filter, resolve_filter

logger = logging.getLogger(__name__)

TRANSACTION_EVENT = "transaction"
ERROR_EVENT = "error"


class DispatcherState(str, Enum):
    """Subscription lifecycle"""

    IDLE = "idle"
    FETCHING = "fetching"
    STREAMING = "streaming"
    DONE = "done"
    ERRORED = "errored"


class TransactionSink(Protocol):
    """Outbound side of a client connection"""

    @property
    def disconnected(self) -> bool: ...

    async def emit(self, event: str, payload: Dict[str, Any]) -> None: ...


class StreamDispatcher:
    """
    Drives one subscription from request to terminal state.

    A dispatcher is single use: create a fresh one per subscribe request.
    Validation runs before any network call, every failure becomes exactly
    one ``error`` event, and a disconnect while streaming simply ends the
    stream.
    """

    def __init__(
        self,
        block_fetcher: BlockFetcher,
        sink: TransactionSink,
        exchange_rate: Decimal,
        emit_interval: float = 1.0,
    ):
        self.block_fetcher = block_fetcher
        self.sink = sink
        self.exchange_rate = exchange_rate
        self.emit_interval = emit_interval
        self.state = DispatcherState.IDLE
        self.emitted = 0

    async def run(self, payload: Any) -> DispatcherState:
        """
        Handle one subscribe payload and return the terminal state.

        Never raises for subscription failures; those are reported to the
        sink as an ``error`` event.
        """
        if self.state is not DispatcherState.IDLE:
            raise RuntimeError(f"Dispatcher already used (state={self.state.value})")

        try:
            request = self._parse_request(payload)
            tx_filter = resolve_filter(request)
            parse_block_identifier(request.block_id)

            self.state = DispatcherState.FETCHING
            block = await self.block_fetcher.get_block(request.block_id)

            if self.sink.disconnected:
                logger.debug("Subscriber left while fetching; discarding block %s", block.number)
                self.state = DispatcherState.DONE
                return self.state

            transactions = apply_filter(block.transactions, tx_filter, self.exchange_rate)
            logger.info(
                "Streaming %d of %d transactions from block %s (%s)",
                len(transactions),
                len(block.transactions),
                block.number,
                type(tx_filter).__name__,
            )
            self.state = DispatcherState.STREAMING
            await self._stream(transactions)
            self.state = DispatcherState.DONE

        except EthStreamError as exc:
            logger.warning(f"Subscription failed in state {self.state.value}: {exc}")
            await self._fail(exc.message)
        except Exception as exc:
            logger.error(f"Unexpected subscription error: {exc}", exc_info=True)
            await self._fail("Internal server error")

        return self.state

    def _parse_request(self, payload: Any) -> SubscribeRequest:
        if isinstance(payload, SubscribeRequest):
            return payload
        if not isinstance(payload, dict):
            raise InvalidFilterError("Invalid subscription request: expected an object")
        try:
            return SubscribeRequest.model_validate(payload)
        except ValidationError as exc:
            raise InvalidFilterError(f"Invalid subscription request: {exc.errors()[0]['msg']}") from exc

    async def _stream(self, transactions: List[Transaction]) -> None:
        for index, tx in enumerate(transactions):
            if index > 0 and self.emit_interval > 0:
                await asyncio.sleep(self.emit_interval)
            if self.sink.disconnected:
                logger.info(f"Subscriber disconnected after {self.emitted}/{len(transactions)} transactions")
                return
            event = TransactionEvent.from_transaction(tx)
            await self.sink.emit(TRANSACTION_EVENT, event.payload())
            self.emitted += 1

    async def _fail(self, message: str) -> None:
        self.state = DispatcherState.ERRORED
        await self.sink.emit(ERROR_EVENT, ErrorEvent(message=message).model_dump())
