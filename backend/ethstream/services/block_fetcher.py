"""Resolve block identifiers into full blocks via JSON-RPC"""

import logging
from typing import Optional, Union

from pydantic import ValidationError

from ethstream.exceptions import BlockNotFoundError, EthStreamError, InvalidBlockIdentifierError
from ethstream.models.blockchain import Block, hex_to_int
from ethstream.services.datasource.rpc import RPCClient

logger = logging.getLogger(__name__)

BlockIdentifier = Union[str, int, None]


def parse_block_identifier(identifier: BlockIdentifier) -> Optional[int]:
    """
    Validate a client supplied block identifier.

    Accepts ints, decimal strings and 0x-prefixed hex strings. Returns None
    for "latest" (identifier omitted).

    Raises:
        InvalidBlockIdentifierError: for anything that is not a non-negative
            block number
    """
    if identifier is None:
        return None

    if isinstance(identifier, bool):
        raise InvalidBlockIdentifierError(f"Invalid block identifier: {identifier!r}")

    if isinstance(identifier, int):
        number = identifier
    elif isinstance(identifier, str):
        text = identifier.strip()
        try:
            if text.lower().startswith("0x"):
                number = int(text, 16)
            else:
                number = int(text, 10)
        except ValueError:
            raise InvalidBlockIdentifierError(f"Invalid block identifier: {identifier!r}") from None
    else:
        raise InvalidBlockIdentifierError(f"Invalid block identifier: {identifier!r}")

    if number < 0:
        raise InvalidBlockIdentifierError(f"Invalid block identifier: {identifier!r}")
    return number


class BlockFetcher:
    """Fetches blocks with embedded transaction bodies"""

    def __init__(self, rpc: RPCClient):
        self.rpc = rpc

    async def get_latest_block_number(self) -> int:
        result = await self.rpc.call("eth_blockNumber", [])
        try:
            return hex_to_int(result)
        except (TypeError, ValueError):
            raise EthStreamError(f"Unexpected eth_blockNumber result: {result!r}") from None

    async def get_block(self, identifier: BlockIdentifier = None) -> Block:
        """
        Fetch a block by number, or the latest block when identifier is None.

        The identifier is validated before any request is sent.
        """
        number = parse_block_identifier(identifier)
        if number is None:
            number = await self.get_latest_block_number()
            logger.debug(f"Resolved latest block to {number}")

        raw = await self.rpc.call("eth_getBlockByNumber", [hex(number), True])
        if raw is None:
            raise BlockNotFoundError(number)

        try:
            block = Block.model_validate(raw)
        except ValidationError as exc:
            logger.warning(f"Malformed block {number} from node: {exc}")
            raise EthStreamError(f"Malformed block data for block {number}") from exc

        logger.info(f"Fetched block {number} with {len(block.transactions)} transactions")
        return block
