"""
Pytest configuration e fixtures comuni.

I test usano un database SQLite in memoria (aiosqlite) con lo
schema creato da Base.metadata per ogni test; le API vengono
chiamate con httpx.AsyncClient sull'app ASGI, sostituendo get_db.
"""

import uuid
from datetime import date
from decimal import Decimal
from typing import AsyncGenerator
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from isp_billing.core.database import get_db
from isp_billing.core.security import create_client_token, create_staff_token, hash_password
from isp_billing.main import app
from isp_billing.models import Base, Client, Invoice, Service, User
from isp_billing.models.invoice import InvoiceStatus
from isp_billing.models.user import UserRole


# ============================================================
# Fixtures per AsyncSession Mock
# ============================================================


@pytest.fixture
def mock_db():
    """Crea un mock di AsyncSession."""
    db = AsyncMock(spec=AsyncSession)
    db.execute = AsyncMock()
    db.get = AsyncMock()
    db.add = MagicMock()
    db.commit = AsyncMock()
    db.rollback = AsyncMock()
    db.flush = AsyncMock()
    db.refresh = AsyncMock()
    db.delete = AsyncMock()
    return db


# ============================================================
# Database SQLite in memoria
# ============================================================


@pytest_asyncio.fixture
async def engine():
    """Engine aiosqlite condiviso da tutte le connessioni del test."""
    test_engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield test_engine
    await test_engine.dispose()


@pytest_asyncio.fixture
async def session_factory(engine):
    return async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@pytest_asyncio.fixture
async def db(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Sessione usata dai test per preparare i dati e chiamare i service."""
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def api(session_factory) -> AsyncGenerator[AsyncClient, None]:
    """Client HTTP sull'app, con get_db che punta al database di test."""

    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()


# ============================================================
# Factory dei dati
# ============================================================


@pytest.fixture
def make_user(db):
    """Crea un utente del personale con password bcrypt."""

    async def _make(
        username: str = "admin",
        password: str = "secret",
        role: str = UserRole.ADMIN.value,
        is_active: bool = True,
    ) -> User:
        user = User(
            username=username,
            hashed_password=hash_password(password),
            full_name=username.title(),
            role=role,
            is_active=is_active,
        )
        db.add(user)
        await db.commit()
        return user

    return _make


@pytest.fixture
def make_client(db):
    """Crea un cliente attivo."""

    async def _make(code: str = "CLI-001", name: str = "Juan Pérez", **kwargs) -> Client:
        client = Client(
            code=code,
            name=name,
            is_active=kwargs.pop("is_active", True),
            invoice_count=0,
            **kwargs,
        )
        db.add(client)
        await db.commit()
        return client

    return _make


@pytest.fixture
def make_service(db):
    """Crea un servizio del catalogo."""

    async def _make(name: str = "Internet 10 Mbps", price: str = "1000.00", category: str = "Internet") -> Service:
        service = Service(name=name, price=Decimal(price), category=category, is_active=True)
        db.add(service)
        await db.commit()
        return service

    return _make


@pytest.fixture
def make_invoice(db):
    """Crea una fattura Pendiente senza pagamenti."""

    async def _make(
        client: Client,
        amount: str = "1000.00",
        number: str | None = None,
        billing_month: date = date(2024, 3, 1),
        status: str = InvoiceStatus.PENDING.value,
    ) -> Invoice:
        invoice = Invoice(
            client_id=client.id,
            number=number or f"{uuid.uuid4().hex[:4]}-{client.code}",
            amount=Decimal(amount),
            status=status,
            billing_month=billing_month,
            category="Internet",
            service_links=[],
            payment_links=[],
        )
        db.add(invoice)
        await db.commit()
        await db.refresh(invoice, ["client", "service", "service_links", "payment_links"])
        return invoice

    return _make


# ============================================================
# Token
# ============================================================


def staff_headers(user: User) -> dict[str, str]:
    token, _ = create_staff_token(str(user.id), user.role, user.full_name, user.username)
    return {"Authorization": f"Bearer {token}"}


def client_headers(client: Client) -> dict[str, str]:
    token, _ = create_client_token(str(client.id), client.code, client.name)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def auth_staff():
    return staff_headers


@pytest.fixture
def auth_client():
    return client_headers
