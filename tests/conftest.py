"""Pytest configuration and shared fixtures."""
import os

# antes de importar o app: banco em memória e segredo de teste
os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ["ENVIRONMENT"] = "test"
os.environ["AUTH_SECRET"] = "test-auth-secret"
os.environ.pop("RESET_SECRET", None)

from typing import Optional

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.pool import StaticPool

from app.core.dependencies import get_db, get_mailer
from app.core.security import hash_password, issue_session_token
from app.db.base import Base
from app.db.session import build_engine
from app.main import app
from app.modules.rooms.models import Sala
from app.modules.users.models import Usuario

DEFAULT_PASSWORD = "secret123"


class FakeMailer:
    """Records every email instead of sending it."""

    def __init__(self):
        self.sent = []
        self.fail_with: Optional[Exception] = None

    def __call__(self, to: str, subject: str, html: str) -> bool:
        if self.fail_with:
            raise self.fail_with
        self.sent.append({"to": to, "subject": subject, "html": html})
        return True


@pytest_asyncio.fixture
async def engine():
    eng = build_engine("sqlite+aiosqlite://", poolclass=StaticPool)
    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield eng
    await eng.dispose()


@pytest_asyncio.fixture
async def session_factory(engine):
    return async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)


@pytest_asyncio.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def mailer():
    return FakeMailer()


@pytest_asyncio.fixture
async def client(session_factory, mailer):
    """ASGI client with the database and the mailer swapped for test doubles."""

    async def _get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_mailer] = lambda: mailer
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest.fixture
def make_user(session_factory):
    async def _make_user(
        email: str,
        tipo: str = "aluno",
        nome: str = "Fulano de Tal",
        password: Optional[str] = DEFAULT_PASSWORD,
        senha_hash: Optional[str] = None,
    ) -> Usuario:
        async with session_factory() as session:
            u = Usuario(
                nome=nome,
                email=email,
                tipo=tipo,
                senha_hash=senha_hash if senha_hash is not None else (hash_password(password) if password else None),
            )
            session.add(u)
            await session.commit()
            await session.refresh(u)
            return u

    return _make_user


@pytest.fixture
def make_room(session_factory):
    async def _make_room(nome_sala: str = "Sala 101", capacidade: int = 30) -> Sala:
        async with session_factory() as session:
            sala = Sala(nome_sala=nome_sala, capacidade=capacidade)
            session.add(sala)
            await session.commit()
            await session.refresh(sala)
            return sala

    return _make_room


def auth_headers(user) -> dict:
    return {"Authorization": f"Bearer {issue_session_token(user)}"}
