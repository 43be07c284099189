"""Account deletion routes."""

import structlog
from fastapi import APIRouter, Depends

from mealplanner.core.auth import AuthenticatedUser, require_admin, require_auth
from mealplanner.db.base import get_session_factory
from mealplanner.schemas.accounts import DeleteUserResponse
from mealplanner.services.account_service import AccountService

logger = structlog.get_logger(__name__)

router = APIRouter()


@router.delete("/users/me", response_model=DeleteUserResponse)
async def delete_own_account(user: AuthenticatedUser = Depends(require_auth)):
    """Delete the caller's account and all data that depends on it."""
    service = AccountService(get_session_factory())
    return await service.delete_user(user.user_id)


@router.delete("/admin/users/{user_id}", response_model=DeleteUserResponse)
async def delete_user(user_id: str, admin: AuthenticatedUser = Depends(require_admin)):
    logger.info("admin_user_delete", admin_id=admin.user_id, user_id=user_id)
    service = AccountService(get_session_factory())
    return await service.delete_user(user_id)
