"""WebSocket API for streaming filtered block transactions"""

import asyncio
import json
import logging
from typing import Any, Dict, Set

from fastapi import APIRouter, WebSocket, WebSocketDisconnect
from pydantic import ValidationError

from ethstream.models.api import ClientMessage, ErrorEvent, StreamMessage
from ethstream.services.runtime import get_runtime
from ethstream.services.stream_dispatcher import ERROR_EVENT

logger = logging.getLogger(__name__)

router = APIRouter()

SUBSCRIBE_EVENT = "subscribe"


class WebSocketSink:
    """Delivers events to one client socket and tracks whether it is gone"""

    def __init__(self, websocket: WebSocket):
        self.websocket = websocket
        self._disconnected = False
        self._send_lock = asyncio.Lock()

    @property
    def disconnected(self) -> bool:
        return self._disconnected

    def mark_disconnected(self) -> None:
        self._disconnected = True

    async def emit(self, event: str, payload: Dict[str, Any]) -> None:
        if self._disconnected:
            return
        message = StreamMessage(event=event, data=payload).model_dump()
        async with self._send_lock:
            try:
                await self.websocket.send_json(message)
            except (WebSocketDisconnect, RuntimeError) as e:
                logger.debug(f"Dropping {event} event, socket closed: {e}")
                self._disconnected = True


@router.websocket("/stream")
async def websocket_stream(websocket: WebSocket):
    """
    WebSocket endpoint for block transaction streams

    Clients connect to ws://localhost:3000/ws/stream and send:
    ```json
    {"event": "subscribe", "data": {"blockId": "19928855", "type": "sender", "address": "0x..."}}
    ```
    Matching transactions arrive one per interval as
    `{"event": "transaction", "data": {...}}`; a failed subscription gets a
    single `{"event": "error", "data": {"message": "..."}}`.
    """
    await websocket.accept()
    runtime = get_runtime(websocket)
    sink = WebSocketSink(websocket)
    subscriptions: Set[asyncio.Task] = set()
    logger.info("Stream client connected")

    try:
        while True:
            frame = await websocket.receive()
            if frame["type"] == "websocket.disconnect":
                raise WebSocketDisconnect(frame.get("code", 1000))
            raw = frame.get("text")
            try:
                if raw is None:
                    raise ValueError("binary frames are not supported")
                message = ClientMessage.model_validate(json.loads(raw))
            except (ValueError, ValidationError):
                await sink.emit(ERROR_EVENT, ErrorEvent(message="Malformed message").model_dump())
                continue

            if message.event != SUBSCRIBE_EVENT:
                await sink.emit(ERROR_EVENT, ErrorEvent(message=f"Unknown event: {message.event}").model_dump())
                continue

            dispatcher = runtime.new_dispatcher(sink)
            task = asyncio.create_task(dispatcher.run(message.data))
            subscriptions.add(task)
            task.add_done_callback(subscriptions.discard)

    except WebSocketDisconnect:
        logger.info("Stream client disconnected")

    finally:
        sink.mark_disconnected()
        if subscriptions:
            # In-flight fetches finish on their own and see the disconnect
            await asyncio.gather(*subscriptions)
