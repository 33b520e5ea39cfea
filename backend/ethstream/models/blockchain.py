"""Ethereum block and transaction models"""

from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field


def hex_to_int(value: str) -> int:
    """Decode a node's 0x-prefixed quantity into an int"""
    return int(value, 16)


class Transaction(BaseModel):
    """Ethereum transaction as embedded in ``eth_getBlockByNumber(..., true)``"""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    sender: str = Field(..., alias="from", description="Sender address")
    receiver: Optional[str] = Field(None, alias="to", description="Receiver address (None for contract creation)")
    value: str = Field(default="0x0", description="Value in wei (hex)")
    gas_price: str = Field(default="0x0", alias="gasPrice", description="Gas price in wei (hex)")
    hash: str = Field(..., description="Transaction hash")
    block_number: Optional[str] = Field(None, alias="blockNumber", description="Containing block number (hex)")
    block_hash: Optional[str] = Field(None, alias="blockHash", description="Containing block hash")

    @property
    def value_wei(self) -> int:
        return hex_to_int(self.value)

    @property
    def gas_price_wei(self) -> int:
        return hex_to_int(self.gas_price)


class Block(BaseModel):
    """Ethereum block with full transaction bodies"""

    model_config = ConfigDict(frozen=True)

    number: str = Field(..., description="Block number (hex)")
    hash: str = Field(..., description="Block hash")
    transactions: List[Transaction] = Field(default_factory=list, description="Transactions in block order")

    @property
    def height(self) -> int:
        return hex_to_int(self.number)
