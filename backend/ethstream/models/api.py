"""API request, event and response models"""

from typing import Any, Dict, List, Optional
from pydantic import AliasChoices, BaseModel, ConfigDict, Field, model_validator

from .blockchain import Transaction


# Request Models


class SubscribeRequest(BaseModel):
    """Subscription request sent by a client over the stream socket"""

    model_config = ConfigDict(extra="ignore")

    # Kept raw; parse_block_identifier decides what is a valid block number
    block_id: Any = Field(
        None,
        validation_alias=AliasChoices("blockId", "block", "block_id"),
        description="Block number; absent means latest",
    )
    type: Optional[str] = Field(None, description="One of all, sender, receiver")
    address: Optional[str] = Field(None, description="Address for sender/receiver/all filters")
    range: Optional[str] = Field(None, description="USD value bucket, exclusive with type")

    @model_validator(mode="before")
    @classmethod
    def _role_keyed_address(cls, data: Any) -> Any:
        """Accept {"type": "sender", "sender": "0x.."} as older clients send it"""
        if isinstance(data, dict) and data.get("address") is None:
            role = data.get("type")
            if role in ("sender", "receiver") and data.get(role) is not None:
                return {**data, "address": data[role]}
        return data


class ClientMessage(BaseModel):
    """Inbound socket frame"""

    event: str = Field(..., description="Event name, e.g. subscribe")
    data: Any = Field(default=None, description="Event payload")


# Event Models


class TransactionEvent(BaseModel):
    """Payload of a ``transaction`` event"""

    model_config = ConfigDict(populate_by_name=True)

    sender_address: str = Field(..., alias="senderAddress")
    receiver_address: Optional[str] = Field(None, alias="receiverAddress")
    block_number: Optional[str] = Field(None, alias="blockNumber")
    block_hash: Optional[str] = Field(None, alias="blockHash")
    transaction_hash: str = Field(..., alias="transactionHash")
    gas_price_in_wei: int = Field(..., alias="gasPriceInWei")
    value_in_wei: int = Field(..., alias="valueInWei")

    @classmethod
    def from_transaction(cls, tx: Transaction) -> "TransactionEvent":
        return cls(
            sender_address=tx.sender,
            receiver_address=tx.receiver,
            block_number=tx.block_number,
            block_hash=tx.block_hash,
            transaction_hash=tx.hash,
            gas_price_in_wei=tx.gas_price_wei,
            value_in_wei=tx.value_wei,
        )

    def payload(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True)


class ErrorEvent(BaseModel):
    """Payload of an ``error`` event"""

    message: str


class StreamMessage(BaseModel):
    """Outbound socket frame"""

    event: str
    data: Dict[str, Any]


# Response Models


class NodePoolResponse(BaseModel):
    """Current view of the endpoint pool"""

    size: int = Field(..., description="Number of endpoints in rotation")
    cursor: int = Field(..., description="Index of the next endpoint to be used")
    endpoints: List[str] = Field(default_factory=list, description="Endpoint URLs in rotation order")
