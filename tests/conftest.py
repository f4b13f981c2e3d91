import os

# before any storefront import: settings and the module-level engine read these
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("REDIS_URL", "redis://localhost:6379/15")

from datetime import datetime, timezone
from decimal import Decimal

import fakeredis
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event, func, select
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import storefront.data.models  # noqa: F401
from storefront.api.deps import get_product_client
from storefront.data.database import Base
from storefront.data.models import CartItemModel, CartModel, UserModel
from storefront.main import create_app
from storefront.services.lock_service import LockService
from storefront.services.merge_service import CartMergeService
from storefront.services.session_service import SessionService


class StubProductClient:
    """Stands in for the product service over HTTP."""

    def __init__(self, catalog):
        self.catalog = catalog
        self.calls = []

    def fetch_product(self, product_id: int) -> dict:
        self.calls.append(product_id)
        if product_id not in self.catalog:
            raise ValueError(f"Product {product_id} does not exist")
        return dict(self.catalog[product_id])


CATALOG = {
    1: {"id": 1, "price": Decimal("10.00"), "weight": Decimal("1.0"), "is_active": True},
    2: {"id": 2, "price": Decimal("25.50"), "weight": Decimal("0.5"), "is_active": True},
    3: {"id": 3, "price": Decimal("5.00"), "weight": Decimal("0"), "is_active": False},
}


@pytest.fixture()
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    # SQLite leaves foreign keys off unless asked, Postgres always enforces them
    @event.listens_for(engine, "connect")
    def _enforce_foreign_keys(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture()
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


@pytest.fixture()
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture()
def redis_client():
    return fakeredis.FakeRedis(server=fakeredis.FakeServer(), decode_responses=True)


@pytest.fixture()
def product_client():
    return StubProductClient(CATALOG)


@pytest.fixture()
def session_service(db, redis_client):
    return SessionService(db=db, client=redis_client)


@pytest.fixture()
def merge_service(db, redis_client, session_service):
    return CartMergeService(
        db=db,
        lock_service=LockService(redis_client),
        session_service=session_service,
    )


@pytest.fixture()
def app(session_factory, redis_client, product_client):
    app = create_app(session_factory=session_factory, redis_client=redis_client)
    app.dependency_overrides[get_product_client] = lambda: product_client
    return app


@pytest.fixture()
def client(app):
    return TestClient(app)


@pytest.fixture()
def make_user(db):
    def _make(user_id: int, name: str = "Jan"):
        db.add(UserModel(id=user_id, name=name))
        db.commit()
        return user_id

    return _make


@pytest.fixture()
def make_cart(db):
    """Create a cart with {product_id: quantity} lines, committed. Returns the cart id."""

    def _make(user_id=None, session_id=None, items=None, updated_at=None):
        now = updated_at or datetime.now(timezone.utc)
        cart = CartModel(user_id=user_id, session_id=session_id, updated_at=now)
        db.add(cart)
        db.flush()
        for product_id, quantity in (items or {}).items():
            db.add(
                CartItemModel(
                    cart_id=cart.id,
                    product_id=product_id,
                    quantity=quantity,
                    price=Decimal("10.00"),
                    updated_at=now,
                )
            )
        db.commit()
        return cart.id

    return _make


@pytest.fixture()
def fetch(session_factory):
    """Fresh-session readers, so assertions never see a stale identity map."""

    class _Fetch:
        def cart(self, cart_id):
            with session_factory() as s:
                return s.get(CartModel, cart_id)

        def carts(self):
            with session_factory() as s:
                return s.execute(select(CartModel).order_by(CartModel.id)).scalars().all()

        def items(self, cart_id):
            with session_factory() as s:
                return s.execute(
                    select(CartItemModel)
                    .where(CartItemModel.cart_id == cart_id)
                    .order_by(CartItemModel.product_id)
                ).scalars().all()

        def item_count(self):
            with session_factory() as s:
                return s.execute(select(func.count(CartItemModel.id))).scalar_one()

    return _Fetch()
