"""Shared test fixtures for all test groups.

Tests run against a throwaway SQLite file by default (foreign keys on, so the
ON DELETE rules fire). Point TEST_DATABASE_URL at a PostgreSQL database to run
the same suite against the production dialect.
"""

import os

os.environ.setdefault("JWT_SECRET", "test-jwt-secret-for-the-mealplanner-suite-0123456789")

import pytest
from fakeredis import FakeAsyncRedis
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from mealplanner.db.base import Base, create_engine
from mealplanner.db.models.subscription import TrainerSubscription
from mealplanner.db.models.user import User
from mealplanner.domain.tiers import SubscriptionStatus, Tier


@pytest.fixture
def database_url(tmp_path) -> str:
    return os.getenv("TEST_DATABASE_URL") or f"sqlite+aiosqlite:///{tmp_path / 'mealplanner_test.db'}"


@pytest.fixture
async def engine(database_url: str) -> AsyncEngine:
    """Create the schema and point the global session factory at it.

    Services call get_session_factory(), so the module globals are set for the
    duration of the test and reset afterwards.
    """
    import mealplanner.db.base as db_mod
    import mealplanner.db.models  # noqa: F401

    engine = create_engine(database_url)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)

    db_mod._engine = engine
    db_mod._session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    from mealplanner.db.seed import seed_meal_types

    await seed_meal_types()

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    db_mod._engine = None
    db_mod._session_factory = None
    await engine.dispose()


@pytest.fixture
def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    from mealplanner.db.base import get_session_factory

    return get_session_factory()


@pytest.fixture
async def db_session(session_factory) -> AsyncSession:
    async with session_factory() as session:
        yield session


@pytest.fixture
async def fake_redis():
    """Fake Redis installed as the shared client, so the entitlement cache is live."""
    import mealplanner.db.redis as redis_mod

    client = FakeAsyncRedis(decode_responses=True)
    redis_mod._redis = client
    yield client
    redis_mod._redis = None
    await client.flushall()
    await client.aclose()


@pytest.fixture
def create_user(session_factory):
    """Factory fixture: ``await create_user(role="customer")`` -> User."""
    counter = {"n": 0}

    async def _create(role: str = "trainer", email: str | None = None, name: str | None = None) -> User:
        counter["n"] += 1
        user = User(
            email=email or f"{role}{counter['n']}@example.com",
            name=name or f"{role.title()} {counter['n']}",
            role=role,
        )
        async with session_factory() as session:
            session.add(user)
            await session.commit()
        return user

    return _create


@pytest.fixture
def subscribe(session_factory):
    """Factory fixture: give a trainer a subscription row."""

    async def _subscribe(
        trainer_id: str,
        tier: Tier | str = Tier.STARTER,
        status: SubscriptionStatus | str = SubscriptionStatus.ACTIVE,
        **fields,
    ) -> TrainerSubscription:
        subscription = TrainerSubscription(
            trainer_id=trainer_id,
            tier=Tier(tier),
            status=SubscriptionStatus(status),
            **fields,
        )
        async with session_factory() as session:
            session.add(subscription)
            await session.commit()
        return subscription

    return _subscribe


@pytest.fixture
def create_trainer(create_user, subscribe):
    """Factory fixture: trainer with an optional subscription. ``tier=None`` means none."""

    async def _create(
        tier: Tier | str | None = Tier.STARTER,
        status: SubscriptionStatus | str = SubscriptionStatus.ACTIVE,
        **fields,
    ) -> User:
        trainer = await create_user(role="trainer")
        if tier is not None:
            await subscribe(trainer.id, tier, status, **fields)
        return trainer

    return _create
