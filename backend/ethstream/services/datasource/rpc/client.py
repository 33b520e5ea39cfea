from __future__ import annotations

import itertools
import logging
import time
from typing import Any, Optional, Sequence

import httpx
from pydantic import ValidationError

from ethstream.exceptions import PoolEmptyError, PoolExhaustedError, RPCError
from ethstream.models.rpc import JSONRPCErrorObject, JSONRPCRequest, JSONRPCResponse

from .endpoint_pool import EndpointPool

logger = logging.getLogger(__name__)


class _TransportFailure(Exception):
    """An attempt that did not yield a usable JSON-RPC body"""


def _coerce_error(raw: Any) -> JSONRPCErrorObject:
    """Best-effort read of an ``error`` member that may not follow the JSON-RPC shape"""
    try:
        return JSONRPCErrorObject.model_validate(raw)
    except ValidationError:
        pass
    if not isinstance(raw, dict):
        return JSONRPCErrorObject(message=str(raw))
    try:
        code = int(raw.get("code", 0))
    except (TypeError, ValueError):
        code = 0
    message = raw.get("message")
    return JSONRPCErrorObject(code=code, message=str(message) if message is not None else str(raw))


class RPCClient:
    """
    Issues JSON-RPC calls against the endpoint pool with bounded failover.

    Each call gets one attempt per endpoint currently in the pool. Transport
    failures move on to the next endpoint; a JSON-RPC ``error`` body is the
    node rejecting the request itself and is raised straight away.
    """

    def __init__(
        self,
        pool: EndpointPool,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._pool = pool
        self._ids = itertools.count(1)
        self._client = httpx.AsyncClient(
            timeout=httpx.Timeout(timeout),
            headers={"Content-Type": "application/json", "Accept": "application/json"},
            transport=transport,
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _post(self, endpoint: str, request: JSONRPCRequest) -> JSONRPCResponse:
        try:
            response = await self._client.post(endpoint, json=request.model_dump())
            response.raise_for_status()
            body = response.json()
        except httpx.HTTPStatusError as exc:
            raise _TransportFailure(f"HTTP {exc.response.status_code}") from exc
        except httpx.HTTPError as exc:
            raise _TransportFailure(f"{type(exc).__name__}: {exc}") from exc
        except ValueError as exc:
            raise _TransportFailure("response body is not JSON") from exc

        if not isinstance(body, dict):
            raise _TransportFailure("response body is not a JSON object")
        if body.get("error") is not None:
            # The node answered; a rejection is final even when oddly shaped
            return JSONRPCResponse(error=_coerce_error(body["error"]))
        if "result" not in body:
            raise _TransportFailure("response carries neither result nor error")
        try:
            return JSONRPCResponse.model_validate(body)
        except ValidationError as exc:
            raise _TransportFailure(f"malformed JSON-RPC response: {exc.error_count()} errors") from exc

    async def call(self, method: str, params: Sequence[Any] = ()) -> Any:
        attempts_allowed = self._pool.size()
        if attempts_allowed == 0:
            raise PoolEmptyError()

        request = JSONRPCRequest(method=method, params=list(params), id=next(self._ids))
        last_error: Optional[str] = None

        for attempt in range(1, attempts_allowed + 1):
            endpoint = await self._pool.next()
            started = time.perf_counter()
            try:
                data = await self._post(endpoint, request)
            except _TransportFailure as exc:
                last_error = str(exc)
                logger.warning(
                    "Node %s failed for %s (attempt %d/%d, %.2fs): %s - trying next node",
                    endpoint,
                    method,
                    attempt,
                    attempts_allowed,
                    time.perf_counter() - started,
                    exc,
                )
                continue

            if data.error is not None:
                logger.info("Node %s rejected %s: [%s] %s", endpoint, method, data.error.code, data.error.message)
                raise RPCError(data.error.code, data.error.message)

            if attempt > 1:
                logger.debug("Completed %s via %s after %d attempts", method, endpoint, attempt)
            return data.result

        logger.error("All %d nodes failed for %s", attempts_allowed, method)
        raise PoolExhaustedError(method, attempts_allowed, last_error)
