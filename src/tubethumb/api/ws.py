"""WebSocket routes for streaming lookup progress."""
from __future__ import annotations

import asyncio

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from tubethumb.domain.lookups import LookupPhase
from tubethumb.services.orchestrator import Orchestrator

router: APIRouter = APIRouter()

POLL_INTERVAL_SEC: float = 0.2


@router.websocket("/ws/lookups/{lookup_id}")
async def ws_lookup_progress(websocket: WebSocket, lookup_id: str) -> None:
    """Stream the cosmetic progress of a lookup until it settles.

    Notes
    -----
    - Message types:
      - ``{"type":"progress", ...snapshot}`` while the lookup is in flight.
      - ``{"type":"final", ...snapshot}`` once settled (or superseded), then the socket closes.
      - ``{"type":"error","error": str}`` for an unknown lookup id.
    - Progress is sampled every ``POLL_INTERVAL_SEC``; the lookup itself is not
      affected when the client disconnects.
    """

    await websocket.accept()
    orchestrator: Orchestrator = websocket.app.state.orchestrator

    try:
        while True:
            session = orchestrator.get_session(lookup_id)
            if session is None:
                await websocket.send_json({"type": "error", "error": "Lookup not found"})
                break
            snap = orchestrator.snapshot(session).model_dump(mode="json")
            if session.phase is LookupPhase.SETTLED:
                await websocket.send_json({"type": "final", **snap})
                break
            await websocket.send_json({"type": "progress", **snap})
            await asyncio.sleep(POLL_INTERVAL_SEC)
    except WebSocketDisconnect:
        return
    await websocket.close()
