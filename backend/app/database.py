from __future__ import annotations

from pathlib import Path

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool


def _is_memory_url(database_url: str) -> bool:
    database = make_url(database_url).database
    return database in (None, "", ":memory:")


def get_engine(database_url: str) -> Engine:
    """Cria uma engine SQLAlchemy.

    Para SQLite em arquivo, garante que a pasta do banco exista. Bancos em
    memória usam `StaticPool` para que todas as sessões vejam os mesmos dados.

    Args:
        database_url: URL de conexão do banco de dados.

    Returns:
        Instância de engine SQLAlchemy.
    """

    url = make_url(database_url)
    if url.get_backend_name() != "sqlite":
        return create_engine(database_url, echo=False, future=True)

    if _is_memory_url(database_url):
        return create_engine(
            database_url,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
            future=True,
        )

    Path(url.database).expanduser().parent.mkdir(parents=True, exist_ok=True)
    return create_engine(
        database_url,
        connect_args={"check_same_thread": False},
        future=True,
    )


def get_session_factory(engine: Engine) -> sessionmaker[Session]:
    """Cria uma fábrica de sessões vinculada à engine.

    Args:
        engine: Engine já criada por `get_engine`.

    Returns:
        Um sessionmaker tipado para `Session`.
    """

    return sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)


__all__ = ["get_engine", "get_session_factory"]
