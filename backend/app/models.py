from __future__ import annotations

from enum import Enum
from typing import Any, Dict, Type

from sqlalchemy import JSON, String
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Base declarativa para todos os modelos ORM."""


class Collection(str, Enum):
    """Coleções independentes mantidas pelo sistema."""

    USERS = "users"
    ORDERS = "orders"
    CLICHES = "cliches"
    LOGS = "logs"


class _RecordTable:
    """Colunas comuns às tabelas chave-valor do banco local.

    Attributes:
        id: Identificador único do registro (chave).
        payload: Registro completo em formato JSON, gravado sem validação.
    """

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    payload: Mapped[Dict[str, Any]] = mapped_column(JSON, nullable=False)


class UserRecord(_RecordTable, Base):
    __tablename__ = "users"


class OrderRecord(_RecordTable, Base):
    __tablename__ = "orders"


class ClicheRecord(_RecordTable, Base):
    __tablename__ = "cliches"


class LogRecord(_RecordTable, Base):
    __tablename__ = "logs"


COLLECTION_MODELS: Dict[Collection, Type[_RecordTable]] = {
    Collection.USERS: UserRecord,
    Collection.ORDERS: OrderRecord,
    Collection.CLICHES: ClicheRecord,
    Collection.LOGS: LogRecord,
}


__all__ = [
    "Base",
    "Collection",
    "COLLECTION_MODELS",
    "UserRecord",
    "OrderRecord",
    "ClicheRecord",
    "LogRecord",
]
