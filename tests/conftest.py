"""
Pytest configuration and fixtures

Every test gets a fresh in-memory SQLite database standing in for MySQL and a
mongomock database standing in for MongoDB. Nothing is shared between tests.
"""
import os
import tempfile

# Settings are read at import time, so the environment must be in place first
_TMP_ROOT = tempfile.mkdtemp(prefix="fittrack-tests-")
os.environ["RELATIONAL_DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["DATABASE_MODE"] = "dual"
os.environ["LOG_DIR"] = os.path.join(_TMP_ROOT, "logs")
os.environ["UPLOADS_DIR"] = os.path.join(_TMP_ROOT, "uploads")
os.environ["REDIS_URL"] = ""
os.environ.setdefault("JWT_SECRET", "test-secret-key-for-testing-at-least-32-chars")

import httpx
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from mongomock_motor import AsyncMongoMockClient

from fittrack.core.security import decode_access_token
from fittrack.database import Base, build_engine, build_session_factory
from fittrack.enums import StoreMode
from fittrack.persistence import DataStores, Principal
from fittrack.schemas.auth_schemas import LoginRequest, RegisterRequest
from fittrack.services.analytics_service import AnalyticsService
from fittrack.services.user_service import UserService
from fittrack.services.who_api_service import WHOApiService
from fittrack.services.world_bank_api_service import WorldBankApiService

WHO_BASE = "https://who.test/api"
WORLD_BANK_BASE = "https://worldbank.test/v2"

TEST_PASSWORD = "secret123"


# ---------------------------------------------------------------------------
# Stores
# ---------------------------------------------------------------------------

@pytest_asyncio.fixture
async def session_factory():
    engine = build_engine("sqlite+aiosqlite:///:memory:")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield build_session_factory(engine)
    await engine.dispose()


@pytest.fixture
def mongo_db():
    return AsyncMongoMockClient()["fittrack_test"]


@pytest.fixture
def make_stores(mongo_db, session_factory):
    """Build DataStores in any mode over the same two test databases."""
    def factory(mode: StoreMode = StoreMode.DUAL) -> DataStores:
        return DataStores(mode, mongo_db, session_factory)
    return factory


@pytest.fixture
def stores(make_stores):
    return make_stores(StoreMode.DUAL)


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------

async def register_and_login(stores: DataStores, username: str = "anna"):
    await UserService.register(stores, RegisterRequest(
        username=username,
        email=f"{username}@example.com",
        password=TEST_PASSWORD,
        firstName="Anna",
        weight=62.5,
    ))
    login = await UserService.login(stores, LoginRequest(username=username, password=TEST_PASSWORD))
    principal = Principal.from_claims(decode_access_token(login["token"]))
    return login["token"], principal


@pytest_asyncio.fixture
async def user(stores):
    token, principal = await register_and_login(stores)
    return {"token": token, "principal": principal}


@pytest.fixture
def register_user(stores):
    """Register another account; returns (token, principal)."""
    async def factory(username: str):
        return await register_and_login(stores, username)
    return factory


@pytest.fixture
def principal(user):
    return user["principal"]


@pytest.fixture
def auth_headers(user):
    return {"Authorization": f"Bearer {user['token']}"}


# ---------------------------------------------------------------------------
# Statistics providers
# ---------------------------------------------------------------------------

def who_record(year, value, sex="SEX_BTSX", age="AGEGROUP_YEARS18-PLUS", country="POL"):
    return {
        "SpatialDim": country,
        "TimeDim": year,
        "Dim1": sex,
        "Dim2": age,
        "NumericValue": value,
    }


WHO_OBSERVATIONS = [
    who_record(2015, 20.0),
    who_record(2016, 21.0),
    who_record(2017, 22.5),
    who_record(2018, 23.0),
    # other sexes and age groups must be ignored
    who_record(2016, 99.0, sex="SEX_MLE"),
    who_record(2017, 99.0, age="AGEGROUP_YEARS10-19"),
]

WORLD_BANK_OBSERVATIONS = [
    {"date": "2018", "value": 6.3, "country": {"id": "PL", "value": "Poland"}},
    {"date": "2017", "value": 6.5, "country": {"id": "PL", "value": "Poland"}},
    {"date": "2016", "value": 6.4, "country": {"id": "PL", "value": "Poland"}},
    {"date": "2015", "value": 6.3, "country": {"id": "PL", "value": "Poland"}},
    {"date": "2014", "value": None, "country": {"id": "PL", "value": "Poland"}},
]


def statistics_handler(request: httpx.Request) -> httpx.Response:
    """Fake WHO GHO and World Bank endpoints."""
    path = request.url.path
    if request.url.host == "who.test":
        if path.endswith("/DIMENSION/COUNTRY/DimensionValues"):
            return httpx.Response(200, json={"value": [
                {"Code": "POL", "Title": "Poland"},
                {"Code": "DEU", "Title": "Germany"},
            ]})
        if path.endswith("/BROKEN"):
            return httpx.Response(503, json={"error": "unavailable"})
        return httpx.Response(200, json={"value": WHO_OBSERVATIONS})

    if request.url.host == "worldbank.test":
        if path.endswith("/country"):
            return httpx.Response(200, json=[
                {"page": 1, "pages": 1, "total": 3},
                [
                    {"id": "POL", "name": "Poland", "region": {"value": "Europe & Central Asia"}},
                    {"id": "FRA", "name": "France", "region": {"value": "Europe & Central Asia"}},
                    {"id": "DEU", "name": "Germany", "region": {"value": "Europe & Central Asia"}},
                ],
            ])
        return httpx.Response(200, json=[{"page": 1, "pages": 1}, WORLD_BANK_OBSERVATIONS])

    return httpx.Response(404)


@pytest.fixture
def statistics_transport():
    return httpx.MockTransport(statistics_handler)


@pytest.fixture
def analytics(statistics_transport):
    return AnalyticsService(
        who_client=WHOApiService(base_url=WHO_BASE, transport=statistics_transport),
        world_bank_client=WorldBankApiService(base_url=WORLD_BANK_BASE, transport=statistics_transport),
    )


# ---------------------------------------------------------------------------
# HTTP
# ---------------------------------------------------------------------------

@pytest_asyncio.fixture
async def client(stores, analytics):
    """ASGI client over the real app; the lifespan is skipped and app.state set here instead."""
    from fittrack.main import app

    app.state.stores = stores
    app.state.analytics = analytics
    transport = ASGITransport(app=app, raise_app_exceptions=False)
    async with AsyncClient(transport=transport, base_url="http://test") as http:
        yield http
