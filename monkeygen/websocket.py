import json
import logging
from collections import defaultdict
from fastapi import WebSocket, WebSocketDisconnect

from monkeygen.models.schemas import ProgressState, VariationOutcome

logger = logging.getLogger(__name__)


class ConnectionManager:
    """Studio session id -> open websockets watching that session's runs."""

    def __init__(self):
        self.active_connections: dict[str, set[WebSocket]] = defaultdict(set)

    async def connect(self, websocket: WebSocket, session_id: str):
        await websocket.accept()
        self.active_connections[session_id].add(websocket)
        logger.debug(f"Websocket joined {session_id} ({len(self.active_connections[session_id])} open)")

    def disconnect(self, websocket: WebSocket, session_id: str):
        watchers = self.active_connections.get(session_id)
        if watchers is None:
            return
        watchers.discard(websocket)
        if not watchers:
            self.active_connections.pop(session_id, None)

    async def send_to_session(self, session_id: str, event: str, data: dict = None):
        """Push one ``{"event", "data"}`` frame to every watcher of a session."""
        watchers = self.active_connections.get(session_id)
        if not watchers:
            return

        frame = json.dumps({"event": event, "data": data})
        for websocket in list(watchers):
            try:
                await websocket.send_text(frame)
            except Exception as e:
                # Closed without a disconnect frame; stop sending to it
                logger.debug(f"Dropping websocket for {session_id}: {e}")
                self.disconnect(websocket, session_id)

    async def broadcast_progress(self, session_id: str, progress: ProgressState):
        """Broadcast a progress update."""
        await self.send_to_session(
            session_id,
            "progress",
            {
                "completed": progress.completed,
                "total": progress.total,
                "percent": progress.percent,
                "status": progress.status,
            },
        )

    async def broadcast_outcome(self, session_id: str, outcome: VariationOutcome):
        """Broadcast a resolved gallery item."""
        await self.send_to_session(
            session_id,
            "outcome",
            {
                "index": outcome.index,
                "status": outcome.status.value,
                "prompt": outcome.prompt,
                "imageSrc": outcome.image.src if outcome.image else None,
                "error": outcome.error,
            },
        )

    async def broadcast_log(self, session_id: str, message: str, level: str = "info", step: str = None):
        """Broadcast a log line for the activity feed."""
        await self.send_to_session(
            session_id,
            "log",
            {"message": message, "level": level, "step": step},
        )

    async def broadcast_error(self, session_id: str, error: str):
        """Broadcast a run-level error."""
        await self.send_to_session(
            session_id,
            "error",
            {"error": error},
        )

    async def broadcast_complete(self, session_id: str, result: dict = None):
        """Broadcast completion."""
        await self.send_to_session(
            session_id,
            "complete",
            result,
        )


manager = ConnectionManager()


async def websocket_endpoint(websocket: WebSocket, session_id: str):
    """WebSocket endpoint for real-time run updates."""
    await manager.connect(websocket, session_id)
    try:
        while True:
            data = await websocket.receive_text()
            try:
                message = json.loads(data)
            except json.JSONDecodeError:
                logger.debug(f"Ignoring non-JSON websocket message for {session_id}")
                continue
            if isinstance(message, dict) and message.get("type") == "ping":
                await websocket.send_text(json.dumps({"event": "pong"}))
    except WebSocketDisconnect:
        manager.disconnect(websocket, session_id)
    except Exception as e:
        logger.warning(f"Websocket for {session_id} closed on error: {e}")
        manager.disconnect(websocket, session_id)
