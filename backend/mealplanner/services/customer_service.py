"""CustomerService: trainer <-> customer relationships under the customer quota."""

import structlog
from fastapi import HTTPException
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from mealplanner.db.models.trainer_customer import TrainerCustomer
from mealplanner.db.models.user import User
from mealplanner.domain.entitlements import UsageCounter
from mealplanner.schemas.planning import CustomerListResponse, CustomerResponse
from mealplanner.services.usage_tracker import UsageTracker

logger = structlog.get_logger(__name__)


def _to_response(user: User, link: TrainerCustomer) -> CustomerResponse:
    return CustomerResponse(
        customer_id=user.id,
        email=user.email,
        name=user.name,
        status=link.status,
        linked_at=link.created_at,
    )


class CustomerService:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    async def add_customer(self, trainer_id: str, email: str, name: str | None = None) -> CustomerResponse:
        """Link a customer to the trainer, creating the customer account if needed.

        The customer quota is consumed in the same transaction as the link, so
        a failed insert never burns quota and a denied quota never links.

        Raises:
            QuotaExceededError: trainer is at their customer ceiling
            HTTPException(409): customer already linked, or email belongs to a non-customer
        """
        email = email.strip().lower()
        async with self.session_factory() as session:
            async with session.begin():
                result = await session.execute(select(User).where(User.email == email))
                customer = result.scalar_one_or_none()

                if customer is not None and customer.role != "customer":
                    raise HTTPException(status_code=409, detail="Email belongs to a non-customer account")

                if customer is not None:
                    existing = await session.execute(
                        select(TrainerCustomer).where(
                            TrainerCustomer.trainer_id == trainer_id,
                            TrainerCustomer.customer_id == customer.id,
                        )
                    )
                    if existing.scalar_one_or_none() is not None:
                        raise HTTPException(status_code=409, detail="Customer already linked")

                await UsageTracker(session).enforce(trainer_id, UsageCounter.CUSTOMERS)

                if customer is None:
                    customer = User(email=email, name=name, role="customer")
                    session.add(customer)
                    await session.flush()

                link = TrainerCustomer(trainer_id=trainer_id, customer_id=customer.id, status="active")
                session.add(link)
                await session.flush()

            logger.info("customer_added", trainer_id=trainer_id, customer_id=customer.id)
            return _to_response(customer, link)

    async def list_customers(self, trainer_id: str) -> CustomerListResponse:
        async with self.session_factory() as session:
            result = await session.execute(
                select(User, TrainerCustomer)
                .join(TrainerCustomer, TrainerCustomer.customer_id == User.id)
                .where(TrainerCustomer.trainer_id == trainer_id)
                .order_by(TrainerCustomer.created_at)
            )
            return CustomerListResponse(
                customers=[_to_response(user, link) for user, link in result.all()]
            )

    async def remove_customer(self, trainer_id: str, customer_id: str) -> None:
        """Unlink a customer. Usage counters are not decremented."""
        async with self.session_factory() as session:
            result = await session.execute(
                select(TrainerCustomer).where(
                    TrainerCustomer.trainer_id == trainer_id,
                    TrainerCustomer.customer_id == customer_id,
                )
            )
            link = result.scalar_one_or_none()
            if link is None:
                raise HTTPException(status_code=404, detail="Customer not found")
            await session.delete(link)
            await session.commit()
            logger.info("customer_removed", trainer_id=trainer_id, customer_id=customer_id)

    async def is_linked(self, session: AsyncSession, trainer_id: str, customer_id: str) -> bool:
        result = await session.execute(
            select(TrainerCustomer.id).where(
                TrainerCustomer.trainer_id == trainer_id,
                TrainerCustomer.customer_id == customer_id,
            )
        )
        return result.scalar_one_or_none() is not None
