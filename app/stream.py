"""Live snapshot streaming over Server-Sent Events and WebSocket."""

from __future__ import annotations

import asyncio
import json
import logging
from contextlib import aclosing, suppress
from typing import AsyncIterator, Optional

from fastapi import APIRouter, Depends, Query, WebSocket
from fastapi.responses import StreamingResponse
from starlette.websockets import WebSocketDisconnect

from app.api import get_gateway
from services.streaming import StreamingGateway, StreamSession

logger = logging.getLogger(__name__)

router = APIRouter()


def _format_event(message: dict) -> str:
    return f"data: {json.dumps(message)}\n\n"


@router.get(
    "/stream/sensors",
    summary="Server-Sent Events stream of sensor snapshots.",
    response_class=StreamingResponse,
)
async def stream_sensors(
    limit: Optional[int] = Query(
        default=None, ge=1, description="Close the stream after this many messages."
    ),
    gateway: StreamingGateway = Depends(get_gateway),
) -> StreamingResponse:
    async def event_source() -> AsyncIterator[str]:
        session = gateway.open_session("sse")
        sent = 0
        async with aclosing(gateway.stream(session)) as messages:
            async for message in messages:
                yield _format_event(message)
                sent += 1
                if limit is not None and sent >= limit:
                    session.close()
                    break

    return StreamingResponse(
        event_source(),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "Connection": "keep-alive"},
    )


async def _watch_disconnect(websocket: WebSocket, session: StreamSession) -> None:
    try:
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                break
    except (WebSocketDisconnect, RuntimeError):
        pass
    finally:
        session.close()


@router.websocket("/ws/sensors")
async def websocket_sensors(
    websocket: WebSocket,
    gateway: StreamingGateway = Depends(get_gateway),
) -> None:
    await websocket.accept()
    session = gateway.open_session("websocket")
    watcher = asyncio.create_task(_watch_disconnect(websocket, session))
    try:
        async with aclosing(gateway.stream(session)) as messages:
            async for message in messages:
                try:
                    await websocket.send_json(message)
                except Exception as exc:  # noqa: BLE001
                    logger.warning(
                        "Stream transport failed",
                        extra={"session_id": session.session_id, "reason": str(exc)},
                    )
                    session.close()
                    break
    finally:
        session.close()
        watcher.cancel()
        with suppress(asyncio.CancelledError):
            await watcher
