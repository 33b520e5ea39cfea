"""Errors raised while resolving and streaming a subscription"""

from typing import Optional


class EthStreamError(Exception):
    """Base class for failures surfaced to a subscriber as an ``error`` event"""

    @property
    def message(self) -> str:
        return str(self)


class PoolEmptyError(EthStreamError):
    """No JSON-RPC endpoints are configured"""

    def __init__(self, message: str = "No Ethereum nodes available"):
        super().__init__(message)


class PoolExhaustedError(EthStreamError):
    """Every endpoint failed at the transport level for one call"""

    def __init__(self, method: str, attempts: int, last_error: Optional[str] = None):
        self.method = method
        self.attempts = attempts
        self.last_error = last_error
        detail = f": {last_error}" if last_error else ""
        super().__init__(f"All {attempts} nodes failed for {method}{detail}")


class RPCError(EthStreamError):
    """The node rejected the request at the JSON-RPC level"""

    def __init__(self, code: int, message: str):
        self.code = code
        self.rpc_message = message
        super().__init__(f"RPC error: {message}")


class InvalidFilterError(EthStreamError):
    pass


class InvalidBlockIdentifierError(EthStreamError):
    pass


class InvalidRangeError(EthStreamError):
    pass


class BlockNotFoundError(EthStreamError):
    """The node has no block with the requested number (yet)"""

    def __init__(self, block_number: int):
        self.block_number = block_number
        super().__init__(f"Block {block_number} not found")
