# store_api/repositories/notification_repo.py
import uuid

from sqlalchemy import func, or_
from sqlmodel import Session, select

from store_api.models.notification import Notification


class NotificationRepository:
    """
    Data access layer for notifications.

    Admin "inbox" = rows addressed to the admin plus broadcast rows
    (user_id IS NULL).
    """

    def _visible_to(self, user_id: uuid.UUID, is_admin: bool):
        if is_admin:
            return or_(Notification.user_id == user_id, Notification.user_id.is_(None))
        return Notification.user_id == user_id

    def add(self, session: Session, notification: Notification) -> Notification:
        """
        Insert without committing; notifications are written inside the
        transaction of the event that triggered them.
        """
        session.add(notification)
        session.flush()
        return notification

    def list_for_user(
        self,
        session: Session,
        user_id: uuid.UUID,
        is_admin: bool,
        skip: int = 0,
        limit: int = 10,
    ) -> list[Notification]:
        stmt = (
            select(Notification)
            .where(self._visible_to(user_id, is_admin))
            .order_by(Notification.created_at.desc(), Notification.id.desc())
            .offset(skip)
            .limit(limit)
        )
        return session.exec(stmt).all()

    def count_for_user(
        self,
        session: Session,
        user_id: uuid.UUID,
        is_admin: bool,
        unread_only: bool = False,
    ) -> int:
        stmt = (
            select(func.count())
            .select_from(Notification)
            .where(self._visible_to(user_id, is_admin))
        )
        if unread_only:
            stmt = stmt.where(Notification.is_read == False)  # noqa: E712
        return int(session.exec(stmt).one() or 0)

    def get_visible(
        self,
        session: Session,
        notification_id: int,
        user_id: uuid.UUID,
        is_admin: bool,
    ) -> Notification | None:
        stmt = select(Notification).where(
            Notification.id == notification_id,
            self._visible_to(user_id, is_admin),
        )
        return session.exec(stmt).first()

    def mark_all_read(self, session: Session, user_id: uuid.UUID, is_admin: bool) -> int:
        stmt = (
            select(Notification)
            .where(self._visible_to(user_id, is_admin))
            .where(Notification.is_read == False)  # noqa: E712
        )
        rows = session.exec(stmt).all()
        for row in rows:
            row.is_read = True
            session.add(row)
        session.commit()
        return len(rows)

    def save(self, session: Session, notification: Notification) -> Notification:
        session.add(notification)
        session.commit()
        session.refresh(notification)
        return notification

    def delete(self, session: Session, notification: Notification) -> None:
        session.delete(notification)
        session.commit()
