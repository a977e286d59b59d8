import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import create_engine
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from transconnect import database
from transconnect.main import app
from transconnect.models import Base
from transconnect.models.base import utcnow
from transconnect.models.user import User, UserType
from transconnect.security import get_password_hash
from transconnect.websocket_manager import manager
from tests.utils import PASSWORD


@pytest.fixture
def session_factory(tmp_path, monkeypatch):
    """Fresh sqlite file per test, wired in place of the configured database."""
    db_file = tmp_path / "test.db"

    sync_engine = create_engine(f"sqlite:///{db_file}")
    Base.metadata.create_all(sync_engine)
    sync_engine.dispose()

    engine = create_async_engine(f"sqlite+aiosqlite:///{db_file}", poolclass=NullPool)
    factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    monkeypatch.setattr(database, "async_engine", engine)
    monkeypatch.setattr(database, "AsyncSessionLocal", factory)
    return factory


@pytest.fixture(autouse=True)
def reset_manager():
    manager.active_connections.clear()
    yield
    manager.active_connections.clear()
    manager.redis_client = None


@pytest_asyncio.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def client(session_factory):
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


@pytest.fixture
def make_user(session_factory):
    async def _make_user(
        first_name: str,
        user_type: UserType = UserType.CUSTOMER,
        **fields,
    ) -> User:
        fields.setdefault("email", f"{first_name.lower()}@example.com")
        fields.setdefault("last_seen", utcnow())
        async with session_factory() as session:
            user = User(
                first_name=first_name,
                user_type=user_type,
                password_hash=get_password_hash(PASSWORD),
                **fields,
            )
            session.add(user)
            await session.commit()
            await session.refresh(user)
            return user

    return _make_user
