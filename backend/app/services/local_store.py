from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Mapping, Optional

from sqlalchemy import delete, select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from ..database import get_engine, get_session_factory
from ..models import COLLECTION_MODELS, Base, Collection

logger = logging.getLogger(__name__)


class StorageInitError(Exception):
    """Falha fatal ao abrir o banco local do dispositivo."""


class LocalRecordStore:
    """Banco local do dispositivo com quatro coleções chave-valor.

    Cada coleção é uma tabela `(id, payload)`. Os registros são gravados
    exatamente como recebidos: validar é responsabilidade de quem chama.
    """

    def __init__(self, database_url: str) -> None:
        self._database_url = database_url
        self._engine: Optional[Engine] = None
        self._session_factory: Optional[sessionmaker[Session]] = None

    @property
    def database_url(self) -> str:
        return self._database_url

    @property
    def is_open(self) -> bool:
        return self._session_factory is not None

    def initialize(self) -> None:
        """Abre o banco e cria as coleções ausentes.

        Raises:
            StorageInitError: Se o banco não puder ser aberto.
        """

        try:
            engine = get_engine(self._database_url)
            Base.metadata.create_all(engine)
        except (SQLAlchemyError, OSError) as exc:
            raise StorageInitError(
                f"Não foi possível abrir o banco local ({self._database_url})."
            ) from exc

        self._engine = engine
        self._session_factory = get_session_factory(engine)
        logger.info(f"Banco local aberto: {self._database_url}")

    def _session(self) -> Session:
        if self._session_factory is None:
            raise StorageInitError("Banco de dados local não inicializado.")
        return self._session_factory()

    def get_all(self, collection: Collection) -> List[Dict[str, Any]]:
        """Retorna todos os registros de uma coleção, sem ordem definida."""

        model = COLLECTION_MODELS[collection]
        with self._session() as session:
            rows = session.execute(select(model)).scalars().all()
            return [dict(row.payload) for row in rows]

    def put(self, collection: Collection, record: Mapping[str, Any]) -> None:
        """Insere ou substitui um registro pelo seu id."""

        model = COLLECTION_MODELS[collection]
        with self._session() as session:
            session.merge(model(id=str(record["id"]), payload=dict(record)))
            session.commit()

    def delete(self, collection: Collection, record_id: str) -> None:
        """Remove um registro pelo id; não faz nada se ele não existir."""

        model = COLLECTION_MODELS[collection]
        with self._session() as session:
            session.execute(delete(model).where(model.id == record_id))
            session.commit()

    def replace_all(self, collections: Mapping[Collection, Iterable[Mapping[str, Any]]]) -> None:
        """Limpa as coleções informadas e grava os novos registros em uma transação."""

        with self._session() as session:
            for collection, records in collections.items():
                model = COLLECTION_MODELS[collection]
                session.execute(delete(model))
                for record in records:
                    session.merge(model(id=str(record["id"]), payload=dict(record)))
            session.commit()

    def close(self) -> None:
        if self._engine is not None:
            self._engine.dispose()
        self._engine = None
        self._session_factory = None


__all__ = ["LocalRecordStore", "StorageInitError"]
