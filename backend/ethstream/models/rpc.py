"""JSON-RPC 2.0 wire models"""

from typing import Any, List, Optional, Union
from pydantic import BaseModel, Field


class JSONRPCRequest(BaseModel):
    """Request body posted to a node"""

    jsonrpc: str = "2.0"
    method: str = Field(..., description="JSON-RPC method name")
    params: List[Any] = Field(default_factory=list, description="Positional parameters")
    id: int = Field(..., description="Correlation id")


class JSONRPCErrorObject(BaseModel):
    """Protocol-level error returned by a node"""

    code: int = Field(default=0, description="JSON-RPC error code")
    message: str = Field(default="", description="Error message")
    data: Optional[Any] = None


class JSONRPCResponse(BaseModel):
    """Response body; carries either ``result`` or ``error``"""

    jsonrpc: str = "2.0"
    id: Optional[Union[int, str]] = None
    result: Optional[Any] = None
    error: Optional[JSONRPCErrorObject] = None
