from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from softdeploy.services.event_bus import EXECUTIONS_CHANNEL, EventBus

router = APIRouter(tags=["websocket"])


async def _stream_channel(websocket: WebSocket, channel: str, initial_payload: Optional[dict] = None) -> None:
    event_bus: EventBus = websocket.app.state.event_bus
    logger = websocket.app.state.logger
    await websocket.accept()
    queue = await event_bus.get_queue(channel)
    logger.info("WebSocket client connected to %s", channel)
    try:
        if initial_payload is not None:
            await websocket.send_json(initial_payload)
        while True:
            event = await queue.get()
            await websocket.send_json(event)
    except WebSocketDisconnect:
        logger.info("WebSocket client disconnected from %s", channel)
    finally:
        await event_bus.unsubscribe(channel, queue)


@router.websocket("/ws")
async def root_ws(websocket: WebSocket) -> None:
    await _stream_channel(websocket, EXECUTIONS_CHANNEL, {"type": "connected"})


@router.websocket("/ws/executions")
async def executions_ws(websocket: WebSocket) -> None:
    await _stream_channel(websocket, EXECUTIONS_CHANNEL, {"type": "connected"})
