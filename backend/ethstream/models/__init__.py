"""Data models for EthStream"""

from .blockchain import Block, Transaction, hex_to_int
from .rpc import JSONRPCErrorObject, JSONRPCRequest, JSONRPCResponse
from .api import (
    ClientMessage,
    ErrorEvent,
    NodePoolResponse,
    StreamMessage,
    SubscribeRequest,
    TransactionEvent,
)

__all__ = [
    "Block",
    "Transaction",
    "hex_to_int",
    "JSONRPCErrorObject",
    "JSONRPCRequest",
    "JSONRPCResponse",
    "ClientMessage",
    "ErrorEvent",
    "NodePoolResponse",
    "StreamMessage",
    "SubscribeRequest",
    "TransactionEvent",
]
