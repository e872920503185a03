# store_api/services/user_service.py
import logging
import uuid

from fastapi import HTTPException, status
from sqlmodel import Session

from store_api.models.user import User
from store_api.repositories.user_repo import UserRepository
from store_api.schemas.user import UserCreate, UserUpdate, UserRoleUpdate, UserStatusUpdate

logger = logging.getLogger(__name__)


class UserService:
    """
    Profiles and roles.

    Identity (id, email) comes from Supabase and is never edited here.
    A student number belongs to one profile at most.
    """

    def __init__(self, repo: UserRepository):
        self.repo = repo

    def _apply_profile(
        self,
        session: Session,
        user: User,
        name: str | None,
        student_id: str | None,
    ) -> User:
        if student_id is not None and student_id != user.student_id:
            owner = self.repo.get_by_student_id(session, student_id)
            if owner is not None and owner.id != user.id:
                raise HTTPException(
                    status_code=status.HTTP_409_CONFLICT,
                    detail="Student ID is already registered to another account",
                )
            user.student_id = student_id
        if name is not None:
            user.name = name
        return self.repo.update(session, user)

    # ----- Self profile -----

    def create_me(
        self,
        session: Session,
        current_user: User,
        payload: UserCreate,
    ) -> User:
        """
        Profile completion after sign-up.

        `email`, when sent, must match the token email.
        """
        if payload.email and payload.email != current_user.email:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Email cannot be changed",
            )
        return self._apply_profile(session, current_user, payload.name, payload.student_id)

    def update_me(
        self,
        session: Session,
        current_user: User,
        payload: UserUpdate,
    ) -> User:
        return self._apply_profile(session, current_user, payload.name, payload.student_id)

    # ----- Admin operations -----

    def list_users(
        self,
        session: Session,
        skip: int,
        limit: int,
        role: str | None = None,
        is_active: bool | None = None,
    ) -> list[User]:
        return self.repo.list(session, skip=skip, limit=limit, role=role, is_active=is_active)

    def get_user(self, session: Session, user_id: uuid.UUID) -> User:
        user = self.repo.get_by_id(session, user_id)
        if not user:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="User not found",
            )
        return user

    def update_role(
        self,
        session: Session,
        actor: User,
        user_id: uuid.UUID,
        payload: UserRoleUpdate,
    ) -> User:
        """
        Promote or demote an account. An admin cannot demote themselves,
        which keeps at least one admin able to undo role changes.
        """
        user = self.get_user(session, user_id)
        if user.id == actor.id and payload.role != "admin":
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="You cannot remove your own admin role",
            )
        if user.role != payload.role:
            logger.info("Role of %s changed %s -> %s by %s", user.id, user.role, payload.role, actor.id)
        user.role = payload.role
        return self.repo.update(session, user)

    def set_active(
        self,
        session: Session,
        actor: User,
        user_id: uuid.UUID,
        payload: UserStatusUpdate,
    ) -> User:
        user = self.get_user(session, user_id)
        if user.id == actor.id and not payload.is_active:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="You cannot deactivate your own account",
            )
        if user.is_active != payload.is_active:
            logger.info(
                "User %s %s by %s",
                user.id,
                "activated" if payload.is_active else "deactivated",
                actor.id,
            )
        user.is_active = payload.is_active
        return self.repo.update(session, user)
