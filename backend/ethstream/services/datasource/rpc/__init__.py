"""
JSON-RPC datasource package.

Exposes the endpoint pool and the failover client. Higher-level services
should import from this package rather than individual submodules.
"""

from .endpoint_pool import EndpointPool, dedupe_endpoints
from .client import RPCClient

__all__ = [
    "EndpointPool",
    "RPCClient",
    "dedupe_endpoints",
]
