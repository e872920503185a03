# store_api/routers/notifications.py
from fastapi import APIRouter, Depends, Query, status
from sqlmodel import Session

from store_api.core.auth import require_admin, require_auth
from store_api.database import get_session
from store_api.models.user import User
from store_api.repositories.notification_repo import NotificationRepository
from store_api.repositories.user_repo import UserRepository
from store_api.schemas.notification import (
    NotificationCreate,
    NotificationPage,
    NotificationRead,
    UnreadCount,
)
from store_api.services.notification_service import NotificationService

router = APIRouter(prefix="/notifications", tags=["Notifications"])

service = NotificationService(NotificationRepository())
user_repo = UserRepository()


@router.get("", response_model=NotificationPage)
def list_notifications(
    session: Session = Depends(get_session),
    current_user: User = Depends(require_auth),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
):
    """
    Own notifications, newest first. Admins also see store-wide
    broadcasts (new orders, low stock).
    """
    return service.list_for_user(session, current_user, page, limit)


@router.get("/unread-count", response_model=UnreadCount)
def unread_count(
    session: Session = Depends(get_session),
    current_user: User = Depends(require_auth),
):
    return service.unread_count(session, current_user)


@router.put("/mark-all-read")
def mark_all_read(
    session: Session = Depends(get_session),
    current_user: User = Depends(require_auth),
) -> dict[str, int | str]:
    updated = service.mark_all_as_read(session, current_user)
    return {"message": "All notifications marked as read", "updated": updated}


@router.put("/{notification_id}/read", response_model=NotificationRead)
def mark_read(
    notification_id: int,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_auth),
):
    return service.mark_as_read(session, current_user, notification_id)


@router.delete("/{notification_id}")
def delete_notification(
    notification_id: int,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_auth),
) -> dict[str, str]:
    service.delete(session, current_user, notification_id)
    return {"message": "Notification deleted successfully"}


@router.post(
    "",
    response_model=NotificationRead,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_admin)],
)
def create_notification(
    payload: NotificationCreate,
    session: Session = Depends(get_session),
):
    """
    Send a notification to one user (admin only). It is pushed live when
    the user is connected.
    """
    recipient = user_repo.get_by_id(session, payload.user_id)
    return service.create_manual(session, payload, recipient)
