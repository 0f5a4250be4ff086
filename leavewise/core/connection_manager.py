"""
WebSocket connections per employee, used to push notification events.
"""
import asyncio
import logging
from typing import Dict, Set

from fastapi import WebSocket
from fastapi.websockets import WebSocketDisconnect

logger = logging.getLogger(__name__)


class ConnectionManager:
    """
    Tracks open WebSocket connections keyed by employee id.
    """
    def __init__(self) -> None:
        self.active_connections: Dict[int, Set[WebSocket]] = {}
        self._tasks: Set[asyncio.Task] = set()

    async def connect(self, employee_id: int, websocket: WebSocket) -> None:
        await websocket.accept()
        self.active_connections.setdefault(employee_id, set()).add(websocket)
        logger.debug("WebSocket connected: employee_id=%s", employee_id)

    def disconnect(self, employee_id: int, websocket: WebSocket) -> None:
        conns = self.active_connections.get(employee_id)
        if not conns:
            return
        conns.discard(websocket)
        if not conns:
            self.active_connections.pop(employee_id, None)
        logger.debug("WebSocket disconnected: employee_id=%s", employee_id)

    def is_connected(self, employee_id: int) -> bool:
        return bool(self.active_connections.get(employee_id))

    async def send_to_employee(self, employee_id: int, message: dict) -> None:
        conns = list(self.active_connections.get(employee_id, []))
        to_remove: list = []

        for ws in conns:
            try:
                await ws.send_json(message)
            except WebSocketDisconnect:
                to_remove.append(ws)
            except Exception as e:
                logger.warning("WebSocket push failed: employee_id=%s error=%s", employee_id, e)
                to_remove.append(ws)

        for ws in to_remove:
            self.disconnect(employee_id, ws)

    def push(self, employee_id: int, message: dict) -> None:
        """
        Schedule send_to_employee from synchronous service code.
        Best effort: without a running event loop (scripts, unit tests) the push is skipped.
        """
        if not self.is_connected(employee_id):
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.debug("No running event loop; skipping push to employee_id=%s", employee_id)
            return
        task = loop.create_task(self.send_to_employee(employee_id, message))
        # The loop only keeps weak references to tasks
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)


manager = ConnectionManager()
