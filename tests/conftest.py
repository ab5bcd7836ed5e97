import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from bradbury.app import create_app
from bradbury.auth import get_current_user
from bradbury.database import Base, get_session
from bradbury.local_store import LocalStore
from bradbury.remote import RemoteClient
import bradbury.models  # noqa: F401

TEST_DB_URL = "sqlite+aiosqlite://"  # in-memory
TEST_USER = "reader-1"

engine = create_async_engine(TEST_DB_URL, echo=False)
TestSession = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture(autouse=True)
async def setup_db():
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest.fixture
async def session():
    async with TestSession() as s:
        yield s


def _make_app(user_id: str | None = TEST_USER):
    app = create_app()

    async def override_session():
        async with TestSession() as s:
            yield s

    app.dependency_overrides[get_session] = override_session
    if user_id is not None:
        app.dependency_overrides[get_current_user] = lambda: user_id
    return app


@pytest.fixture
async def client():
    transport = ASGITransport(app=_make_app())
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c


@pytest.fixture
async def other_client():
    """A second signed-in user against the same database."""
    transport = ASGITransport(app=_make_app("reader-2"))
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c


@pytest.fixture
async def unauthenticated_client():
    transport = ASGITransport(app=_make_app(user_id=None))
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c


@pytest.fixture
def remote(client):
    return RemoteClient(client)


@pytest.fixture
async def local():
    store = LocalStore.from_url("sqlite+aiosqlite://")
    await store.open()
    yield store
    await store.close()


@pytest.fixture
async def client_as():
    """Build signed-in clients for arbitrary user ids."""
    clients = []

    def _make(user_id: str) -> AsyncClient:
        c = AsyncClient(transport=ASGITransport(app=_make_app(user_id)), base_url="http://test")
        clients.append(c)
        return c

    yield _make
    for c in clients:
        await c.aclose()
