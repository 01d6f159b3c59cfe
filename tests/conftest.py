import asyncio
import os
from datetime import timedelta

os.environ.setdefault("JWT_SECRET", "test-secret")
os.environ["DB_TYPE"] = "sqlite"
os.environ["LOG_FILE"] = ""
os.environ["FIREBASE_PROJECT_ID"] = ""
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./test-storefront.db")

import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker

from storefront.core.db import Base, get_db
from storefront.models.product_models import Product
from storefront.models.promo_code_models import PromoCode
from storefront.models.user_models import User
from storefront.notifications.push_port import PushPort
from storefront.services.auth_service import create_token_for
from storefront.services.notification_service import NotificationDispatcher, get_dispatcher
from storefront.utils.datetime_utils import utcnow


class RecordingPushAdapter(PushPort):
    """Push adapter that records deliveries; chosen tokens fail or hang."""

    def __init__(self):
        self.ready = True
        self.sent = []
        self.failing_tokens = set()
        self.slow_tokens = set()

    @property
    def is_ready(self) -> bool:
        return self.ready

    async def send(self, device_token, message):
        if device_token in self.slow_tokens:
            await asyncio.sleep(5)
        if device_token in self.failing_tokens:
            raise RuntimeError("Requested entity was not found.")
        self.sent.append((device_token, message))
        return f"projects/test/messages/{len(self.sent)}"


@pytest.fixture
async def engine(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")

    @event.listens_for(engine.sync_engine, "connect")
    def enable_sqlite_foreign_keys(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, class_=AsyncSession, autoflush=False, expire_on_commit=False)


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def push():
    return RecordingPushAdapter()


@pytest.fixture
def dispatcher(push):
    return NotificationDispatcher(push, timeout=0.2)


@pytest.fixture
def make_product(db):
    async def _make(**overrides):
        values = dict(
            name="Linen Shirt",
            description="Relaxed fit linen shirt",
            price=25.0,
            category="shirts",
            stock=10,
        )
        values.update(overrides)
        product = Product(**values)
        db.add(product)
        await db.commit()
        await db.refresh(product)
        return product
    return _make


@pytest.fixture
def make_user(db):
    async def _make(username, role="user", fcm_token=None, **overrides):
        user = User(
            username=username,
            password_hash="x",
            role=role,
            fcm_token=fcm_token,
            **overrides,
        )
        db.add(user)
        await db.commit()
        await db.refresh(user)
        return user
    return _make


@pytest.fixture
def make_promo(db):
    async def _make(code="SAVE10", discount_type="percentage", discount_value=10, **overrides):
        now = utcnow()
        values = dict(
            code=code,
            description=f"{code} promo",
            discount_type=discount_type,
            discount_value=discount_value,
            minimum_purchase=0,
            start_date=now - timedelta(days=1),
            end_date=now + timedelta(days=1),
            used_count=0,
            is_active=True,
        )
        values.update(overrides)
        promo = PromoCode(**values)
        db.add(promo)
        await db.commit()
        await db.refresh(promo)
        return promo
    return _make


def auth_headers(user):
    return {"Authorization": f"Bearer {create_token_for(user)}"}


@pytest.fixture
def headers_for():
    return auth_headers


@pytest.fixture
async def client(session_factory, dispatcher):
    from main import app

    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_dispatcher] = lambda: dispatcher
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()
