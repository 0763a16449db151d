import itertools
import uuid

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from oceantracker.application.container import ApplicationContainer
from oceantracker.application.create_shipment import (
    CreateShipmentUseCase,
    SendShipmentDTO,
)
from oceantracker.core.models import Actor, RoleEnum, Shipment
from oceantracker.infrastructure.db_schema import metadata
from oceantracker.infrastructure.unit_of_work import UnitOfWork
from oceantracker.presentation.app import build_api

TEST_JWT_SECRET = "test-secret"


@pytest.fixture()
def container(tmp_path) -> ApplicationContainer:
    container = ApplicationContainer()
    container.config.from_dict(
        {
            "infrastructure": {
                "db": {"dsn": f"sqlite+aiosqlite:///{tmp_path / 'oceantracker.db'}"},
                "auth": {"jwt_secret": TEST_JWT_SECRET, "algorithm": "HS256"},
            }
        }
    )
    return container


@pytest.fixture()
def session_factory(
    container: ApplicationContainer,
) -> async_sessionmaker[AsyncSession]:
    return container.infrastructure_container.session_factory()


@pytest.fixture()
def unit_of_work(session_factory: async_sessionmaker[AsyncSession]) -> UnitOfWork:
    return UnitOfWork(session_factory)


@pytest_asyncio.fixture(autouse=True)
async def setup_database(container: ApplicationContainer):
    engine = container.infrastructure_container.async_engine()
    async with engine.begin() as conn:
        await conn.run_sync(metadata.create_all)

    yield

    async with engine.begin() as conn:
        await conn.run_sync(metadata.drop_all)
    await engine.dispose()


@pytest.fixture()
def fast_api_app(container: ApplicationContainer):
    return build_api(container)


@pytest_asyncio.fixture()
async def test_async_client(fast_api_app) -> AsyncClient:
    async with AsyncClient(
        transport=ASGITransport(app=fast_api_app),
        base_url="http://test.com",
    ) as client:
        client.app = fast_api_app
        yield client


@pytest.fixture
def actor_factory():
    user_ids = itertools.count(1)

    def _create_actor(**kwargs) -> Actor:
        defaults = {
            "id": str(uuid.uuid4()),
            "user_id": f"{next(user_ids):04d}",
            "role": RoleEnum.USER,
            "name": "Test user",
        }
        defaults.update(kwargs)
        return Actor(**defaults)

    return _create_actor


@pytest.fixture
def admin(actor_factory) -> Actor:
    return actor_factory(role=RoleEnum.ADMIN, name="Ada Admin")


@pytest.fixture
def sender(actor_factory) -> Actor:
    return actor_factory(name="Sam Sender")


@pytest.fixture
def recipient(actor_factory) -> Actor:
    return actor_factory(name="Rita Recipient")


@pytest.fixture
def driver(actor_factory) -> Actor:
    return actor_factory(role=RoleEnum.DRIVER, user_id="D1", name="Jane Doe")


@pytest.fixture
def auth_headers(container: ApplicationContainer):
    def _headers(actor: Actor) -> dict[str, str]:
        token = container.infrastructure_container.token_decoder().encode(actor)
        return {"x-auth-token": token}

    return _headers


@pytest.fixture
def send_request_factory(recipient: Actor):
    def _create_request(**kwargs) -> SendShipmentDTO:
        defaults = {
            "item_types": ["Documents"],
            "recipient_id": recipient.user_id,
            "recipient_name": recipient.name,
            "recipient_email": "rita@example.com",
            "branch": "Colombo",
            "notes": "Handle with care",
        }
        defaults.update(kwargs)
        return SendShipmentDTO(**defaults)

    return _create_request


@pytest.fixture
def shipment_factory(
    unit_of_work: UnitOfWork, sender: Actor, send_request_factory
):
    use_case = CreateShipmentUseCase(unit_of_work=unit_of_work)

    async def _create_shipment(actor: Actor | None = None, **kwargs) -> Shipment:
        return await use_case(
            actor=actor or sender, shipment=send_request_factory(**kwargs)
        )

    return _create_shipment
