from __future__ import annotations

import copy
import json
import logging
import threading
from pathlib import Path
from typing import Any, Dict, List, Mapping, Union

logger = logging.getLogger(__name__)

LOG_CAP = 1000
COLLECTIONS = ("users", "orders", "cliches", "logs")

NetworkData = Dict[str, List[Dict[str, Any]]]


class NetworkDatabase:
    """Arquivo JSON compartilhado pelos dispositivos da rede local.

    Todo o conteúdo fica em memória; cada alteração regrava o arquivo
    inteiro (arquivo temporário + rename) sob um lock.
    """

    def __init__(self, path: Union[str, Path], initial_data: Mapping[str, List[Dict[str, Any]]]) -> None:
        self.path = Path(path)
        self._initial = {name: list(initial_data.get(name, [])) for name in COLLECTIONS}
        self._data: NetworkData = copy.deepcopy(self._initial)
        self._lock = threading.Lock()

    def load(self) -> None:
        """Lê o arquivo; cria com os dados iniciais se ele não existir."""

        with self._lock:
            if not self.path.exists():
                self._data = copy.deepcopy(self._initial)
                self._save_locked()
                logger.info(f"Arquivo de dados criado: {self.path}")
                return
            try:
                with self.path.open("r", encoding="utf-8") as handle:
                    raw = json.load(handle)
                if not isinstance(raw, dict):
                    raise ValueError("conteúdo não é um objeto JSON")
            except (OSError, ValueError) as exc:
                logger.error(f"Erro ao ler {self.path}, recriando: {exc}")
                self._data = copy.deepcopy(self._initial)
                return
            self._data = {
                name: list(raw[name]) if isinstance(raw.get(name), list) else []
                for name in COLLECTIONS
            }

    def _save_locked(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        temp_path = self.path.with_name(f".{self.path.name}.tmp")
        with temp_path.open("w", encoding="utf-8") as handle:
            json.dump(self._data, handle, ensure_ascii=False, indent=2)
        temp_path.replace(self.path)

    def snapshot(self) -> NetworkData:
        with self._lock:
            return copy.deepcopy(self._data)

    def replace_users(self, users: List[Dict[str, Any]]) -> None:
        with self._lock:
            self._data["users"] = list(users)
            self._save_locked()

    def _upsert_locked(self, collection: str, record: Dict[str, Any]) -> None:
        records = self._data[collection]
        for index, existing in enumerate(records):
            if existing.get("id") == record.get("id"):
                records[index] = record
                break
        else:
            records.append(record)
        self._save_locked()

    def upsert_order(self, order: Dict[str, Any]) -> None:
        with self._lock:
            self._upsert_locked("orders", order)

    def delete_order(self, order_id: str) -> None:
        with self._lock:
            self._data["orders"] = [o for o in self._data["orders"] if o.get("id") != order_id]
            self._save_locked()

    def upsert_cliche(self, item: Dict[str, Any]) -> None:
        with self._lock:
            self._upsert_locked("cliches", item)

    def prepend_log(self, entry: Dict[str, Any]) -> None:
        """Insere no topo e mantém apenas as 1000 entradas mais recentes."""

        with self._lock:
            self._data["logs"] = [entry, *self._data["logs"]][:LOG_CAP]
            self._save_locked()


__all__ = ["NetworkDatabase", "LOG_CAP"]
