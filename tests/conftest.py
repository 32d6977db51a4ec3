from collections.abc import AsyncGenerator, Callable
from datetime import UTC, datetime, timedelta
from typing import Any
from unittest.mock import MagicMock
from uuid import UUID, uuid4

import pytest
import pytest_asyncio
from dotenv import load_dotenv
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

# Load environment variables from .env file
load_dotenv()

from clinic_queue.core.broadcast import QueueBroadcastClient
from clinic_queue.core.security import create_access_token
from clinic_queue.database import get_db
from clinic_queue.main import app
from clinic_queue.models import combined_metadata, rooms, user_clinic_roles
from clinic_queue.repositories.appointment_repository import AppointmentRepository
from clinic_queue.repositories.room_repository import RoomRepository
from clinic_queue.repositories.user_clinic_role_repository import UserClinicRoleRepository
from clinic_queue.schemas.clinic_users import Role

metadata = combined_metadata()

# In-memory database shared by every connection of one engine
TEST_DATABASE_URL = "sqlite+aiosqlite://"


@pytest_asyncio.fixture
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Create a fresh in-memory database and a session on it."""
    test_engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    async with test_engine.begin() as conn:
        await conn.run_sync(metadata.create_all)

    session_factory = async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)
    async with session_factory() as session:
        yield session

    await test_engine.dispose()


@pytest_asyncio.fixture
async def client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """Create a test HTTP client."""

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        yield db_session

    app.dependency_overrides[get_db] = override_get_db

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()


@pytest.fixture
def mock_redis() -> MagicMock:
    """Redis client double used by the broadcast client."""
    mock = MagicMock()
    mock.ping.return_value = True
    mock.publish.return_value = 1
    return mock


@pytest.fixture
def broadcast_client(mock_redis: MagicMock) -> QueueBroadcastClient:
    """Connected broadcast client backed by the Redis double."""
    client = QueueBroadcastClient(
        host="localhost",
        port=6379,
        redis_factory=MagicMock(return_value=mock_redis),
    )
    assert client.connect() is True
    return client


@pytest.fixture
def app_broadcast(broadcast_client: QueueBroadcastClient):
    """Install the broadcast client on the application as the lifespan would."""
    app.state.broadcast_client = broadcast_client
    yield broadcast_client
    app.state.broadcast_client = None


@pytest.fixture
def appointment_repo(db_session: AsyncSession) -> AppointmentRepository:
    return AppointmentRepository(db_session)


@pytest.fixture
def room_repo(db_session: AsyncSession) -> RoomRepository:
    return RoomRepository(db_session)


@pytest.fixture
def role_repo(db_session: AsyncSession) -> UserClinicRoleRepository:
    return UserClinicRoleRepository(db_session)


@pytest.fixture
def clinic_id() -> UUID:
    return uuid4()


@pytest.fixture
def other_clinic_id() -> UUID:
    return uuid4()


@pytest.fixture
def make_room(db_session: AsyncSession) -> Callable[..., Any]:
    """Factory inserting a room."""

    async def _make_room(clinic_id: UUID, name: str = "Room 1", status: str = "OPEN") -> dict:
        now = datetime.now(UTC)
        values = {
            "id": uuid4(),
            "clinic_id": clinic_id,
            "name": name,
            "status": status,
            "created_at": now,
            "updated_at": now,
        }
        await db_session.execute(rooms.insert().values(**values))
        await db_session.commit()
        return values

    return _make_room


@pytest.fixture
def grant_role(db_session: AsyncSession) -> Callable[..., Any]:
    """Factory inserting a user_clinic_roles row directly."""

    async def _grant_role(user_id: UUID, clinic_id: UUID, role: Role) -> None:
        now = datetime.now(UTC)
        await db_session.execute(
            user_clinic_roles.insert().values(
                user_id=user_id,
                clinic_id=clinic_id,
                role=role.value,
                created_at=now,
                updated_at=now,
            )
        )
        await db_session.commit()

    return _grant_role


def make_token(user_id: UUID, clinic_id: UUID | None = None) -> str:
    """Access token for a user, optionally bound to a clinic."""
    return create_access_token(
        data={"sub": str(user_id)},
        expires_delta=timedelta(minutes=30),
        clinic_id=clinic_id,
    )


@pytest.fixture
def headers_for() -> Callable[..., dict[str, str]]:
    """Factory building bearer and clinic headers for a user."""

    def _headers_for(user_id: UUID, clinic_id: UUID | None = None) -> dict[str, str]:
        headers = {"Authorization": f"Bearer {make_token(user_id)}"}
        if clinic_id is not None:
            headers["X-Clinic-ID"] = str(clinic_id)
        return headers

    return _headers_for


@pytest_asyncio.fixture
async def receptionist(clinic_id: UUID, grant_role) -> UUID:
    """A receptionist of the test clinic."""
    user_id = uuid4()
    await grant_role(user_id, clinic_id, Role.RECEPTIONIST)
    return user_id


@pytest_asyncio.fixture
async def clinic_admin(clinic_id: UUID, grant_role) -> UUID:
    """A clinic administrator of the test clinic."""
    user_id = uuid4()
    await grant_role(user_id, clinic_id, Role.CLINIC_ADMIN)
    return user_id


@pytest_asyncio.fixture
async def room(clinic_id: UUID, make_room) -> dict:
    """An open room of the test clinic."""
    return await make_room(clinic_id, name="Room A")
