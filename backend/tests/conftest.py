"""
Pytest configuration and fixtures for the supplier import backend tests.

Provides common fixtures for testing:
- In-memory test database
- Signed Shopify session tokens and authenticated clients
- A supplier client backed by ``httpx.MockTransport``
- Sample supplier payloads
"""

import os
import sys
import time
import uuid
from typing import AsyncGenerator, Callable, Dict, List

# Settings are read at import time, so the test environment goes first
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("SHOPIFY_API_KEY", "test-api-key")
os.environ.setdefault("SHOPIFY_API_SECRET", "test-api-secret-for-testing-only")
os.environ.setdefault("LOG_LEVEL", "WARNING")

import httpx
import pytest
from httpx import ASGITransport, AsyncClient
from jose import jwt
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

# Add backend to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from app.main import app
from app.core.config import settings
from app.core.database import get_db
from app.models.database import Base
from app.services.host_limiter import HostConcurrencyLimiter
from app.services.supplier_client import SupplierClient, get_supplier_client

TEST_SHOP = "test-shop.myshopify.com"
OTHER_SHOP = "other-shop.myshopify.com"
SUPPLIER_URL = "https://supplier.example.com/api/products"


# ============ Database Fixtures ============


TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest.fixture
async def test_db() -> AsyncGenerator[AsyncSession, None]:
    """Create a test database session."""
    engine = create_async_engine(TEST_DATABASE_URL, echo=False, poolclass=StaticPool)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async_session = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    async with async_session() as session:
        yield session

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest.fixture
def override_get_db(test_db: AsyncSession):
    """Override the database dependency."""

    async def _get_db():
        yield test_db

    return _get_db


# ============ Supplier Fixtures ============


class SupplierStub:
    """
    Programmable stand-in for a supplier API.

    Assign ``handler`` to control responses; every request is recorded.
    """

    def __init__(self):
        self.requests: List[httpx.Request] = []
        self.handler: Callable = lambda request: httpx.Response(200, json=[])

    async def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        response = self.handler(request)
        if not isinstance(response, httpx.Response):
            response = await response
        return response

    def respond_json(self, payload, status_code: int = 200) -> None:
        self.handler = lambda request: httpx.Response(status_code, json=payload)

    @property
    def last_request(self) -> httpx.Request:
        return self.requests[-1]


@pytest.fixture
def supplier() -> SupplierStub:
    return SupplierStub()


@pytest.fixture
def supplier_client(supplier: SupplierStub) -> SupplierClient:
    """A supplier client that never leaves the process."""
    return SupplierClient(
        timeout=0.5,
        limiter=HostConcurrencyLimiter(max_per_host=0, acquire_timeout=0.5),
        transport=httpx.MockTransport(supplier),
    )


# ============ Auth Fixtures ============


def make_session_token(
    shop: str = TEST_SHOP,
    secret: str = None,
    audience: str = None,
    expires_in: int = 60,
    **overrides,
) -> str:
    """Sign a session token shaped like the ones Shopify App Bridge issues."""
    now = int(time.time())
    claims = {
        "iss": f"https://{shop}/admin",
        "dest": f"https://{shop}",
        "aud": audience or settings.shopify_api_key,
        "sub": "42",
        "exp": now + expires_in,
        "nbf": now - 5,
        "iat": now - 5,
        "jti": str(uuid.uuid4()),
        "sid": "session-id",
    }
    claims.update(overrides)
    return jwt.encode(claims, secret or settings.shopify_api_secret, algorithm="HS256")


@pytest.fixture
def token_factory() -> Callable[..., str]:
    """Sign session tokens with custom claims."""
    return make_session_token


@pytest.fixture
def session_token() -> str:
    return make_session_token()


@pytest.fixture
def auth_headers(session_token: str) -> Dict[str, str]:
    return {"Authorization": f"Bearer {session_token}"}


# ============ Client Fixtures ============


@pytest.fixture
async def client(override_get_db, supplier_client) -> AsyncGenerator[AsyncClient, None]:
    """Create a test client with overridden dependencies."""
    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_supplier_client] = lambda: supplier_client

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
async def authenticated_client(client: AsyncClient, auth_headers: Dict[str, str]) -> AsyncClient:
    """Create an authenticated test client."""
    client.headers.update(auth_headers)
    return client


# ============ Sample Data Fixtures ============


@pytest.fixture
def sample_products() -> List[Dict]:
    return [
        {
            "id": 1,
            "title": "Walnut Desk",
            "sku": "WD-001",
            "price": "249.00",
            "dimensions": {"width": 120, "depth": {"value": 60, "unit": "cm"}},
            "tags": ["office", "wood"],
            "discontinued": None,
        },
        {"id": 2, "title": "Oak Shelf", "sku": "OS-002", "price": "89.00"},
    ]


@pytest.fixture
def paginated_payload(sample_products) -> Dict:
    """Laravel-style paginated supplier response."""
    return {
        "current_page": 1,
        "data": sample_products,
        "per_page": 2,
        "total": 40,
        "next_page_url": f"{SUPPLIER_URL}?page=2",
        "prev_page_url": None,
    }
