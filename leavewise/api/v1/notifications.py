"""
Notification endpoints and the real-time push channel
"""
import logging
from fastapi import APIRouter, Depends, Query, WebSocket, WebSocketDisconnect, status
from sqlalchemy.orm import Session
from leavewise.core.connection_manager import manager as connection_manager
from leavewise.core.deps import get_db, get_current_user, employee_from_token
from leavewise.models.employee import Employee
from leavewise.schemas.notification import NotificationOut, NotificationListResponse
from leavewise.services.notification_service import (
    list_notifications,
    unread_count,
    mark_read,
    mark_all_read,
)

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("", response_model=NotificationListResponse)
async def list_notifications_endpoint(
    unread_only: bool = Query(False),
    limit: int = Query(50, ge=1, le=200),
    db: Session = Depends(get_db),
    current_user: Employee = Depends(get_current_user)
):
    """The caller's notifications, newest first, with the unread count"""
    return NotificationListResponse(
        items=[
            NotificationOut.model_validate(n)
            for n in list_notifications(db, current_user.id, unread_only=unread_only, limit=limit)
        ],
        unread_count=unread_count(db, current_user.id),
    )


@router.post("/read-all")
async def mark_all_read_endpoint(
    db: Session = Depends(get_db),
    current_user: Employee = Depends(get_current_user)
):
    return {"updated": mark_all_read(db, current_user.id)}


@router.post("/{notification_id}/read", response_model=NotificationOut)
async def mark_read_endpoint(
    notification_id: int,
    db: Session = Depends(get_db),
    current_user: Employee = Depends(get_current_user)
):
    return mark_read(db, notification_id, current_user.id)


@router.websocket("/ws")
async def notifications_ws(
    websocket: WebSocket,
    token: str = Query(...),
    db: Session = Depends(get_db),
):
    """
    Push channel: events are sent as {"type": "notification", ...} JSON frames.
    Authenticate with ?token=<access token>; invalid tokens are closed with 1008.
    """
    employee = employee_from_token(db, token)
    if employee is None:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return
    employee_id = employee.id
    db.close()

    await connection_manager.connect(employee_id, websocket)
    try:
        while True:
            # Clients may send pings; nothing else is expected
            await websocket.receive_text()
    except WebSocketDisconnect:
        pass
    finally:
        connection_manager.disconnect(employee_id, websocket)
