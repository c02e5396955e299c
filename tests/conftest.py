"""
Pytest configuration and fixtures.

The app is pointed at an in-memory SQLite database before any app module
is imported; the schema is rebuilt for every test.
"""
import itertools
import os

import pytest

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["LOG_LEVEL"] = "WARNING"
os.environ["REALTIME_SEND_ON_CONNECT"] = "false"

from fastapi.testclient import TestClient  # noqa: E402
from sqlmodel import Session, SQLModel  # noqa: E402

from app.database import engine, get_session  # noqa: E402
from app.main import app  # noqa: E402
from app.models.product import Product  # noqa: E402
from app.repositories.cart_repo import CartRepository  # noqa: E402
from app.repositories.product_repo import ProductRepository  # noqa: E402
from app.services.cart_service import CartService  # noqa: E402
from app.services.catalog_query import CatalogQueryService  # noqa: E402
from app.services.product_service import ProductService  # noqa: E402
from app.services.session_service import SessionCartBinder  # noqa: E402


class RecordingPublisher:
    """Stands in for the broadcaster and remembers what was published."""

    def __init__(self):
        self.events: list[tuple[str, object]] = []

    def publish(self, event, data):
        self.events.append((event, data))
        return []


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture(autouse=True)
def reset_db():
    SQLModel.metadata.drop_all(engine)
    SQLModel.metadata.create_all(engine)
    yield


@pytest.fixture
def session():
    with Session(engine) as session:
        yield session


@pytest.fixture
def client(session):
    def _get_session_override():
        return session

    app.dependency_overrides[get_session] = _get_session_override
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def product_repo() -> ProductRepository:
    return ProductRepository()


@pytest.fixture
def cart_repo() -> CartRepository:
    return CartRepository()


@pytest.fixture
def publisher() -> RecordingPublisher:
    return RecordingPublisher()


@pytest.fixture
def product_service(product_repo, publisher) -> ProductService:
    return ProductService(product_repo, publisher=publisher)


@pytest.fixture
def cart_service(cart_repo, product_repo) -> CartService:
    return CartService(cart_repo, product_repo)


@pytest.fixture
def query_service(product_repo) -> CatalogQueryService:
    return CatalogQueryService(product_repo, max_limit=100)


@pytest.fixture
def binder(cart_repo) -> SessionCartBinder:
    return SessionCartBinder(cart_repo)


@pytest.fixture
def make_product(session, product_repo):
    """Insert a product straight into the store; fields can be overridden."""
    counter = itertools.count(1)

    def _make(**overrides) -> Product:
        n = next(counter)
        data = {
            "title": f"Product {n}",
            "description": f"Description for product {n}",
            "code": f"P{n:03d}",
            "price": 10.0 * n,
            "stock": 5,
            "category": "general",
        }
        data.update(overrides)
        return product_repo.create(session, Product(**data))

    return _make


@pytest.fixture
def product_payload() -> dict:
    """Sample product body for the HTTP and realtime APIs."""
    return {
        "title": "Mechanical keyboard",
        "description": "Hot-swappable 75% keyboard",
        "code": "KB-75",
        "price": 89.9,
        "stock": 12,
        "category": "peripherals",
        "thumbnails": ["kb-front.png"],
    }
