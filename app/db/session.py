# app/db/session.py
from pathlib import Path

from sqlalchemy import event
from sqlalchemy.engine.url import make_url
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine, async_sessionmaker

from app.core.config import settings


def _enable_sqlite_fks(dbapi_connection, connection_record):
    # SQLite só respeita ON DELETE CASCADE com a pragma ligada
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def _disable_driver_begin(dbapi_connection, connection_record):
    # o driver não emite mais BEGIN sozinho; quem abre a transação é _begin_immediate
    dbapi_connection.isolation_level = None


def _begin_immediate(conn):
    # trava de escrita já no início: checagem+insert de reserva ficam serializados
    conn.exec_driver_sql("BEGIN IMMEDIATE")


def _is_file_sqlite(url) -> bool:
    return url.get_backend_name() == "sqlite" and url.database not in (None, "", ":memory:")


def build_engine(db_url: str, **kwargs) -> AsyncEngine:
    eng = create_async_engine(db_url, echo=False, future=True, **kwargs)
    url = make_url(db_url)
    if url.get_backend_name() == "sqlite":
        event.listen(eng.sync_engine, "connect", _enable_sqlite_fks)
    if _is_file_sqlite(url):
        event.listen(eng.sync_engine, "connect", _disable_driver_begin)
        event.listen(eng.sync_engine, "begin", _begin_immediate)
    return eng


if settings.DATABASE_URL:
    _db_url = settings.DATABASE_URL
else:
    data_dir = (Path(__file__).resolve().parents[2] / "data")
    data_dir.mkdir(parents=True, exist_ok=True)
    db_file = data_dir / "reservas.db"
    # usar caminho POSIX para o SQLAlchemy
    _db_url = f"sqlite+aiosqlite:///{db_file.as_posix()}"

engine = build_engine(_db_url)
AsyncSessionLocal = async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)
