"""Service test fixtures — async DB, FastAPI test client, seeded tenants and a fake Stripe.

Invariants:
    - Every test gets a fresh in-memory SQLite database
    - get_db dependency overridden to use test DB session
    - db_manager patched so the readiness probe sees the test engine
    - Seeded admins are verified users that own an organization on the requested plan
    - FakeStripeGateway keeps the real signature check; every network call is canned

Design Decisions:
    - SQLite in-memory: fast, no external dependency, sufficient for route tests
      (PostgreSQL-specific features not exercised here)
    - Tenants seeded through create_user_profile, the same path sign-up and the
      checkout webhook use, so permissions and plan come out exactly as in production
    - Gateway overridden at the FastAPI dependency, not by monkeypatching stripe
"""

import uuid

import pytest
from sqlalchemy.ext.asyncio import (
    AsyncSession, create_async_engine, async_sessionmaker,
)
from httpx import ASGITransport, AsyncClient

from qoro.api.deps import get_stripe_gateway
from qoro.config import get_settings
from qoro.core.domain_types import PlanId, UserRole
from qoro.core.enforce_plan import default_permissions
from qoro.db.base import Base
from qoro.infrastructure.database import get_db, DatabaseSessionManager
from qoro.infrastructure.security import hash_password
from qoro.infrastructure.stripe_gateway import (
    StripeCustomer, StripeGateway, StripeSubscription,
)
import qoro.infrastructure.database as db_module
from qoro.main import app
from qoro.models.user import User
from qoro.services.auth_service import issue_access_token
from qoro.services.org_context import load_actor
from qoro.services.organization_service import create_user_profile

PASSWORD = "senha-segura-123"


@pytest.fixture
async def test_engine():
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:", echo=False,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
async def test_session_factory(test_engine):
    return async_sessionmaker(
        test_engine, class_=AsyncSession, expire_on_commit=False,
    )


@pytest.fixture
async def test_db(test_session_factory):
    async with test_session_factory() as session:
        yield session


@pytest.fixture
def settings():
    return get_settings()


@pytest.fixture
async def client(test_engine, test_session_factory):
    """FastAPI test client with DB dependency overridden."""
    async def override_get_db():
        async with test_session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db

    original_manager = db_module.db_manager
    fake_manager = DatabaseSessionManager.__new__(DatabaseSessionManager)
    fake_manager.engine = test_engine
    fake_manager._session_factory = test_session_factory
    db_module.db_manager = fake_manager

    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test",
    ) as c:
        yield c

    app.dependency_overrides.clear()
    db_module.db_manager = original_manager


# -- Seeded tenants ------------------------------------------------------------


@pytest.fixture
def create_admin(test_db):
    """Factory: verified admin owning a fresh organization on `plan`.

    Returns the resolved ActorContext.
    """
    async def _create(plan=PlanId.FREE, email=None, name="Ana Admin"):
        user = User(
            email=email or f"admin-{uuid.uuid4().hex[:8]}@example.com",
            name=name,
            password_hash=hash_password(PASSWORD),
            email_verified=True,
            permissions={},
        )
        test_db.add(user)
        await test_db.flush()
        await create_user_profile(
            test_db, user,
            organization_name=f"Empresa {name}",
            cnpj="12.345.678/0001-90",
            plan=plan,
        )
        await test_db.commit()
        actor = await load_actor(test_db, user.id)
        await test_db.commit()
        return actor

    return _create


@pytest.fixture
def add_member(test_db):
    """Factory: member user in the admin's organization."""
    async def _add(admin, email=None, name="Bruno Membro", permissions=None):
        user = User(
            email=email or f"member-{uuid.uuid4().hex[:8]}@example.com",
            name=name,
            password_hash=hash_password(PASSWORD),
            email_verified=True,
            organization_id=admin.organization_id,
            role=UserRole.MEMBER.value,
            permissions=(
                permissions if permissions is not None
                else default_permissions(admin.plan_id)
            ),
        )
        test_db.add(user)
        await test_db.commit()
        actor = await load_actor(test_db, user.id)
        await test_db.commit()
        return actor

    return _add


@pytest.fixture
async def free_actor(create_admin):
    return await create_admin(PlanId.FREE, name="Ana Free")


@pytest.fixture
async def growth_actor(create_admin):
    return await create_admin(PlanId.GROWTH, name="Ana Growth")


@pytest.fixture
async def performance_actor(create_admin):
    return await create_admin(PlanId.PERFORMANCE, name="Ana Performance")


@pytest.fixture
def auth_headers(settings):
    """Bearer header for an actor, minted like a real login."""
    def _headers(actor):
        user = User(id=actor.user_id, email=actor.email, name=actor.name)
        token = issue_access_token(user, settings)["access_token"]
        return {"Authorization": f"Bearer {token}"}

    return _headers


# -- Stripe --------------------------------------------------------------------


class FakeStripeGateway(StripeGateway):
    """StripeGateway with canned objects; construct_event stays real."""

    def __init__(self, webhook_secret: str):
        super().__init__("sk_test_fake", webhook_secret)
        self.customers: dict[str, StripeCustomer] = {}
        self.subscriptions: dict[str, StripeSubscription] = {}
        self.checkouts: list[dict] = []
        self.portals: list[dict] = []

    async def find_or_create_customer(self, *, email, name, user_id):
        for customer in self.customers.values():
            if customer.email == email:
                return customer
        customer = StripeCustomer(
            id=f"cus_{uuid.uuid4().hex[:10]}", email=email,
            metadata={"user_id": user_id},
        )
        self.customers[customer.id] = customer
        return customer

    async def retrieve_customer(self, customer_id):
        return self.customers[customer_id]

    async def retrieve_subscription(self, subscription_id):
        return self.subscriptions[subscription_id]

    async def create_checkout_session(
        self, *, customer_id, price_id, success_url, cancel_url, metadata,
    ):
        self.checkouts.append({
            "customer_id": customer_id, "price_id": price_id,
            "success_url": success_url, "cancel_url": cancel_url,
            "metadata": metadata,
        })
        return f"https://checkout.stripe.test/{len(self.checkouts)}"

    async def create_portal_session(self, *, customer_id, return_url):
        self.portals.append({"customer_id": customer_id, "return_url": return_url})
        return "https://billing.stripe.test/portal"


@pytest.fixture
def fake_stripe(settings):
    gateway = FakeStripeGateway(settings.stripe_webhook_secret)
    app.dependency_overrides[get_stripe_gateway] = lambda: gateway
    yield gateway
    app.dependency_overrides.pop(get_stripe_gateway, None)

