"""Endpoint pool inspection and discovery refresh"""

import logging

from fastapi import APIRouter, Depends, HTTPException

from ethstream.models.api import NodePoolResponse
from ethstream.services.runtime import StreamRuntime, get_runtime

logger = logging.getLogger(__name__)

router = APIRouter()


def _pool_view(runtime: StreamRuntime) -> NodePoolResponse:
    endpoints = runtime.pool.snapshot()
    return NodePoolResponse(size=len(endpoints), cursor=runtime.pool.cursor, endpoints=list(endpoints))


@router.get("/nodes", response_model=NodePoolResponse)
async def list_nodes(runtime: StreamRuntime = Depends(get_runtime)):
    """Return the endpoints currently in rotation."""
    return _pool_view(runtime)


@router.post("/nodes/refresh", response_model=NodePoolResponse)
async def refresh_nodes(runtime: StreamRuntime = Depends(get_runtime)):
    """Run one discovery cycle now and return the resulting pool."""
    try:
        await runtime.discovery.refresh()
    except Exception as exc:
        logger.error("Error refreshing node pool: %s", exc)
        raise HTTPException(status_code=502, detail="Failed to refresh node pool") from exc
    return _pool_view(runtime)
