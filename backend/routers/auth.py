"""
Authentication Router - the caller's session and role

Sign-up, sign-in and token issuing belong to the identity provider; this
service only consumes its bearer tokens.
"""
from fastapi import APIRouter, Depends
import logging

from dependencies import get_role_service
from models.user import Role, Session, SessionInfo
from services.role_service import RoleService
from utils.jwt_handler import get_current_user

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/me", response_model=SessionInfo)
def get_current_session(
    session: Session = Depends(get_current_user),
    roles: RoleService = Depends(get_role_service)
):
    """Current session with its resolved role (least privilege on lookup failure)"""
    role = roles.resolve(session.user_id)
    return SessionInfo(
        user_id=session.user_id,
        email=session.email,
        locale=session.locale,
        role=role,
        is_admin=role is Role.ADMIN
    )
