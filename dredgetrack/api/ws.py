"""WebSocket endpoint for dashboard observers.

On connect the observer receives the current position (if any fix has
arrived) and the full mark list, then every subsequent event. Incoming
messages are ignored; the socket is read only to notice closure.
"""

from __future__ import annotations

from fastapi import APIRouter, WebSocket, WebSocketDisconnect
from starlette.websockets import WebSocketState

router = APIRouter()


class WebSocketObserver:
    """Adapts a Starlette WebSocket to the hub's Observer port."""

    def __init__(self, websocket: WebSocket) -> None:
        self._ws = websocket

    @property
    def is_open(self) -> bool:
        return (self._ws.client_state == WebSocketState.CONNECTED
                and self._ws.application_state == WebSocketState.CONNECTED)

    async def send_text(self, data: str) -> None:
        await self._ws.send_text(data)


@router.websocket("/ws")
async def observer_socket(websocket: WebSocket) -> None:
    from dredgetrack.main import get_hub, get_registry, get_store

    await websocket.accept()

    def position_snapshot() -> list[dict]:
        state = get_store().current()
        if state is None:
            return []
        return [{"type": "position", "data": state.to_dict()}]

    hub = get_hub()
    sub = await get_registry().subscribe(WebSocketObserver(websocket), initial=position_snapshot)
    try:
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                break
    except WebSocketDisconnect:
        pass
    finally:
        hub.unregister(sub)
