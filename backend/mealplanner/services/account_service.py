"""AccountService: user deletion with database-enforced cascades."""

import structlog
from fastapi import HTTPException
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from mealplanner.db.lifecycle import count_dependents
from mealplanner.db.models.user import User
from mealplanner.schemas.accounts import DeleteUserResponse
from mealplanner.services.entitlement_service import invalidate_entitlements

logger = structlog.get_logger(__name__)


class AccountService:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    async def delete_user(self, user_id: str) -> DeleteUserResponse:
        """Delete a user and everything that depends on it.

        Dependent rows are removed (or their reference nulled) by the ON DELETE
        rules in the schema. The counts are taken inside the same transaction
        just before the delete, so they describe exactly what the delete touched.

        Raises:
            HTTPException(404): user not found
        """
        async with self.session_factory() as session:
            async with session.begin():
                result = await session.execute(select(User.role).where(User.id == user_id))
                role = result.scalar_one_or_none()
                if role is None:
                    raise HTTPException(status_code=404, detail="User not found")

                removed = await count_dependents(session, "users", user_id)
                await session.execute(delete(User).where(User.id == user_id))

        if role == "trainer":
            await invalidate_entitlements(user_id)

        logger.info(
            "user_deleted",
            user_id=user_id,
            role=role,
            removed={k: v for k, v in removed.items() if v},
        )
        return DeleteUserResponse(user_id=user_id, removed=removed)
