# store_api/routers/users.py
import uuid

from fastapi import APIRouter, Depends
from sqlmodel import Session

from store_api.core.auth import require_auth, require_admin
from store_api.database import get_session
from store_api.models.user import User
from store_api.repositories.user_repo import UserRepository
from store_api.schemas.user import (
    Role,
    UserCreate,
    UserRead,
    UserRoleUpdate,
    UserStatusUpdate,
    UserUpdate,
)
from store_api.services.user_service import UserService

router = APIRouter(prefix="/users", tags=["Users"])

service = UserService(UserRepository())


# -------- Own profile --------


@router.get("/me", response_model=UserRead)
def read_me(current_user: User = Depends(require_auth)):
    return current_user


@router.post("/me", response_model=UserRead)
def complete_me(
    payload: UserCreate,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_auth),
):
    """
    Finish sign-up by setting `name` and `student_id`.

    The row itself already exists: it is created from the token on the
    first authenticated request.
    """
    return service.create_me(session, current_user, payload)


@router.patch("/me", response_model=UserRead)
def update_me(
    payload: UserUpdate,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_auth),
):
    return service.update_me(session, current_user, payload)


# -------- Account management (admin) --------


@router.get("", response_model=list[UserRead], dependencies=[Depends(require_admin)])
def list_users(
    session: Session = Depends(get_session),
    skip: int = 0,
    limit: int = 50,
    role: Role | None = None,
    is_active: bool | None = None,
):
    return service.list_users(session, skip, limit, role, is_active)


@router.get("/{user_id}", response_model=UserRead, dependencies=[Depends(require_admin)])
def get_user(user_id: uuid.UUID, session: Session = Depends(get_session)):
    return service.get_user(session, user_id)


@router.patch("/{user_id}/role", response_model=UserRead)
def change_role(
    user_id: uuid.UUID,
    payload: UserRoleUpdate,
    session: Session = Depends(get_session),
    admin: User = Depends(require_admin),
):
    """
    Promote a student to staff or back. Admins cannot demote themselves.
    """
    return service.update_role(session, admin, user_id, payload)


@router.patch("/{user_id}/status", response_model=UserRead)
def change_status(
    user_id: uuid.UUID,
    payload: UserStatusUpdate,
    session: Session = Depends(get_session),
    admin: User = Depends(require_admin),
):
    """
    Activate or deactivate an account. A deactivated account keeps its
    orders but every authenticated request (and socket) gets 403.
    """
    return service.set_active(session, admin, user_id, payload)
