"""Serviço de armazenamento: fachada única usada pela interface.

Mantém em memória as quatro coleções (usuários, pedidos, clichês e logs) e
decide na inicialização de onde carregá-las:

- com servidor configurado e acessível, o cache vem de `GET /api/sync` e todas
  as alterações seguintes vão apenas para o servidor (modo remoto);
- sem servidor, ou se ele não responder, o cache vem do banco local e as
  alterações vão apenas para ele (modo local).

O modo é fixo durante a sessão. Toda alteração atualiza o cache na hora e
dispara a gravação em segundo plano (tarefa asyncio), sem desfazer o cache se
a gravação falhar. Falhas são registradas no log e repassadas aos ouvintes
cadastrados em `add_failure_listener`.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Coroutine, Iterable, List, Optional, Set, Union

import httpx
from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError

from ..config import Config, config as default_config
from ..models import Collection
from ..schemas import ActivityLog, ClicheItem, LogCategory, Order, Snapshot, User
from ..seed import BOOTSTRAP_ADMIN_ID, SeedError, build_bootstrap_admin, seed_bootstrap_admin
from .backup import backup_filename, build_backup, dump_backup, parse_backup
from .local_store import LocalRecordStore, StorageInitError
from .mirror_client import CONNECTION_TEST_TIMEOUT, MirrorError, RemoteMirrorClient, check_connection
from .settings_store import LocalSettings

logger = logging.getLogger(__name__)

LOG_CAP = 1000


class StorageMode(str, Enum):
    UNINITIALIZED = "uninitialized"
    LOCAL = "local"
    REMOTE = "remote"


class StorageNotReadyError(RuntimeError):
    """Serviço usado antes de `initialize()` ou fora de um loop asyncio."""


@dataclass(frozen=True)
class PersistenceFailure:
    """Gravação em segundo plano que não chegou ao destino."""

    operation: str
    target: str
    error: Exception


FailureListener = Callable[[PersistenceFailure], None]


def _newest_first(logs: Iterable[ActivityLog]) -> List[ActivityLog]:
    return sorted(logs, key=lambda entry: entry.timestamp, reverse=True)[:LOG_CAP]


def _index_of(records: List[Any], record_id: str) -> Optional[int]:
    for index, record in enumerate(records):
        if record.id == record_id:
            return index
    return None


@dataclass
class DataCache:
    users: List[User] = field(default_factory=list)
    orders: List[Order] = field(default_factory=list)
    cliches: List[ClicheItem] = field(default_factory=list)
    logs: List[ActivityLog] = field(default_factory=list)

    def apply_snapshot(self, snapshot: Snapshot) -> None:
        """Substitui apenas as coleções presentes no snapshot."""

        present = snapshot.model_fields_set
        if "users" in present:
            self.users = list(snapshot.users)
        if "orders" in present:
            self.orders = list(snapshot.orders)
        if "cliches" in present:
            self.cliches = list(snapshot.cliches)
        if "logs" in present:
            self.logs = list(snapshot.logs)[:LOG_CAP]


class StorageService:
    """Fachada de dados com cache em memória e persistência local ou remota."""

    def __init__(
        self,
        local_store: LocalRecordStore,
        mirror: RemoteMirrorClient,
        bootstrap_admin: Optional[User] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._local_store = local_store
        self._mirror = mirror
        self._mirror.on_failure = self._report_remote_failure
        self._bootstrap_admin = bootstrap_admin or build_bootstrap_admin()
        self._transport = transport
        self._cache = DataCache()
        self._mode = StorageMode.UNINITIALIZED
        self._pending: Set[asyncio.Task] = set()
        self._failure_listeners: List[FailureListener] = []

    @classmethod
    def from_settings(
        cls,
        settings: LocalSettings,
        app_config: Optional[Config] = None,
        database_url: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> "StorageService":
        """Monta o serviço a partir das preferências do dispositivo."""

        app_config = app_config or default_config
        store = LocalRecordStore(database_url or app_config.local_database_url)
        mirror = RemoteMirrorClient(
            settings.get_server_host(),
            port=app_config.remote_port,
            transport=transport,
        )
        return cls(store, mirror, build_bootstrap_admin(app_config), transport=transport)

    @property
    def mode(self) -> StorageMode:
        return self._mode

    @property
    def server_host(self) -> Optional[str]:
        return self._mirror.host

    @property
    def failure_listeners(self) -> List[FailureListener]:
        return list(self._failure_listeners)

    # Inicialização

    async def initialize(self) -> StorageMode:
        """Abre o banco local e carrega o cache do servidor ou do banco local.

        Raises:
            StorageInitError: Se o banco local não puder ser aberto.
        """

        if self._mode is not StorageMode.UNINITIALIZED:
            return self._mode

        try:
            self._local_store.initialize()
        except StorageInitError:
            logger.critical("Falha crítica ao inicializar o banco local.")
            raise

        if self._mirror.enabled:
            logger.info(f"Conectando ao servidor: {self._mirror.base_url}...")
            try:
                snapshot = await self._mirror.fetch_snapshot()
            except MirrorError as exc:
                logger.warning(f"Servidor indisponível. Usando dados locais. ({exc})")
            else:
                self._cache = DataCache()
                self._cache.apply_snapshot(snapshot)
                self._mode = StorageMode.REMOTE
                logger.info("Sincronizado com a rede local.")
                return self._mode

        self._load_local()
        self._mode = StorageMode.LOCAL
        logger.info(
            f"Dados locais carregados: {len(self._cache.users)} usuários, "
            f"{len(self._cache.orders)} pedidos, {len(self._cache.cliches)} clichês."
        )
        return self._mode

    def _load_local(self) -> None:
        store = self._local_store
        try:
            users = [User.model_validate(r) for r in store.get_all(Collection.USERS)]
            orders = [Order.model_validate(r) for r in store.get_all(Collection.ORDERS)]
            cliches = [ClicheItem.model_validate(r) for r in store.get_all(Collection.CLICHES)]
            logs = [ActivityLog.model_validate(r) for r in store.get_all(Collection.LOGS)]
        except SQLAlchemyError as exc:
            raise StorageInitError("Falha ao ler o banco local.") from exc
        except ValidationError as exc:
            raise StorageInitError("Registro corrompido no banco local.") from exc

        if not users:
            try:
                users = [seed_bootstrap_admin(store, self._bootstrap_admin)]
            except SeedError as exc:
                raise StorageInitError(str(exc)) from exc
            logger.info("Banco local vazio: administrador inicial criado.")

        self._cache = DataCache(
            users=users,
            orders=orders,
            cliches=cliches,
            logs=_newest_first(logs),
        )

    def _require_ready(self) -> None:
        if self._mode is StorageMode.UNINITIALIZED:
            raise StorageNotReadyError("Serviço de armazenamento não inicializado.")

    def _require_writable(self) -> None:
        """Alterações só são aceitas com o serviço pronto e um loop em execução.

        A checagem vem antes de mexer no cache: uma alteração recusada não
        deixa rastro.
        """

        self._require_ready()
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            raise StorageNotReadyError("Gravação sem loop asyncio em execução.") from None

    # Persistência em segundo plano

    def add_failure_listener(self, listener: FailureListener) -> None:
        self._failure_listeners.append(listener)

    def _notify(self, failure: PersistenceFailure) -> None:
        for listener in list(self._failure_listeners):
            try:
                listener(failure)
            except Exception:
                logger.exception(f"Ouvinte de falhas quebrou ao tratar {failure.operation}.")

    def _report_remote_failure(self, operation: str, exc: Exception) -> None:
        self._notify(PersistenceFailure(operation, "remote", exc))

    def _schedule(self, write: Coroutine[Any, Any, bool]) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            write.close()
            raise StorageNotReadyError(
                "Gravação sem loop asyncio em execução."
            ) from None
        task = loop.create_task(write)
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _write_local(self, operation: str, action: Callable[..., None], *args: Any) -> bool:
        try:
            action(*args)
        except (SQLAlchemyError, StorageInitError) as exc:
            logger.error(f"Falha ao gravar no banco local ({operation}): {exc}")
            self._notify(PersistenceFailure(operation, "local", exc))
            return False
        return True

    def _persist_put(self, operation: str, collection: Collection, record: Any) -> None:
        self._schedule(
            self._write_local(operation, self._local_store.put, collection, record.to_record())
        )

    def _persist_delete(self, operation: str, collection: Collection, record_id: str) -> None:
        self._schedule(
            self._write_local(operation, self._local_store.delete, collection, record_id)
        )

    async def drain(self) -> None:
        """Aguarda todas as gravações em andamento."""

        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    async def close(self) -> None:
        await self.drain()
        await self._mirror.aclose()
        self._local_store.close()
        self._mode = StorageMode.UNINITIALIZED

    # Usuários

    def get_users(self) -> List[User]:
        self._require_ready()
        return list(self._cache.users)

    def get_user(self, user_id: str) -> Optional[User]:
        self._require_ready()
        index = _index_of(self._cache.users, user_id)
        return None if index is None else self._cache.users[index]

    def authenticate(self, name: str, password: str) -> Optional[User]:
        """Nome sem diferenciar maiúsculas; senha exata."""

        self._require_ready()
        wanted = name.lower()
        for user in self._cache.users:
            if user.name.lower() == wanted and user.password == password:
                return user
        return None

    def _persist_users(self, operation: str, user: Optional[User] = None, deleted_id: Optional[str] = None) -> None:
        if self._mode is StorageMode.REMOTE:
            # A lista inteira é enviada: o servidor substitui a coleção.
            self._schedule(self._mirror.push_users(list(self._cache.users)))
        elif deleted_id is not None:
            self._persist_delete(operation, Collection.USERS, deleted_id)
        elif user is not None:
            self._persist_put(operation, Collection.USERS, user)

    def add_user(self, user: User) -> List[User]:
        self._require_writable()
        if _index_of(self._cache.users, user.id) is not None:
            raise ValueError(f"Já existe um usuário com id {user.id}.")
        self._cache.users = [*self._cache.users, user]
        self._persist_users("add_user", user=user)
        return list(self._cache.users)

    def update_user(self, user: User) -> List[User]:
        self._require_writable()
        index = _index_of(self._cache.users, user.id)
        if index is None:
            logger.warning(f"Usuário {user.id} não encontrado para atualização.")
            return list(self._cache.users)
        users = list(self._cache.users)
        users[index] = user
        self._cache.users = users
        self._persist_users("update_user", user=user)
        return list(self._cache.users)

    def delete_user(self, user_id: str) -> List[User]:
        self._require_writable()
        if user_id == BOOTSTRAP_ADMIN_ID:
            logger.warning("Tentativa de excluir o administrador inicial ignorada.")
            return list(self._cache.users)
        if _index_of(self._cache.users, user_id) is None:
            return list(self._cache.users)
        self._cache.users = [u for u in self._cache.users if u.id != user_id]
        self._persist_users("delete_user", deleted_id=user_id)
        return list(self._cache.users)

    # Pedidos

    def get_orders(self) -> List[Order]:
        self._require_ready()
        return list(self._cache.orders)

    def save_order(self, order: Order) -> List[Order]:
        """Insere ou atualiza um pedido; a data de criação original é mantida."""

        self._require_writable()
        orders = list(self._cache.orders)
        index = _index_of(orders, order.id)
        if index is None:
            orders.append(order)
        else:
            existing = orders[index]
            if order.created_at != existing.created_at:
                order = Order.model_validate(
                    {**order.model_dump(), "created_at": existing.created_at}
                )
            orders[index] = order
        self._cache.orders = orders

        if self._mode is StorageMode.REMOTE:
            self._schedule(self._mirror.push_order(order))
        else:
            self._persist_put("save_order", Collection.ORDERS, order)
        return list(self._cache.orders)

    def delete_order(self, order_id: str) -> List[Order]:
        self._require_writable()
        self._cache.orders = [o for o in self._cache.orders if o.id != order_id]
        if self._mode is StorageMode.REMOTE:
            self._schedule(self._mirror.delete_order(order_id))
        else:
            self._persist_delete("delete_order", Collection.ORDERS, order_id)
        return list(self._cache.orders)

    # Clichês

    def get_cliches(self) -> List[ClicheItem]:
        self._require_ready()
        return list(self._cache.cliches)

    def save_cliche(self, item: ClicheItem) -> List[ClicheItem]:
        self._require_writable()
        cliches = list(self._cache.cliches)
        index = _index_of(cliches, item.id)
        if index is None:
            cliches.append(item)
        else:
            cliches[index] = item
        self._cache.cliches = cliches

        if self._mode is StorageMode.REMOTE:
            self._schedule(self._mirror.push_cliche(item))
        else:
            self._persist_put("save_cliche", Collection.CLICHES, item)
        return list(self._cache.cliches)

    # Logs

    def get_logs(self) -> List[ActivityLog]:
        self._require_ready()
        return list(self._cache.logs)

    def add_log(
        self,
        action: str,
        details: str,
        user_name: str,
        category: Union[LogCategory, str] = LogCategory.INFO,
    ) -> ActivityLog:
        """Registra uma atividade no topo do histórico (limitado a 1000)."""

        self._require_writable()
        entry = ActivityLog(
            action=action,
            details=details,
            user_name=user_name,
            category=LogCategory(category),
        )
        self._cache.logs = [entry, *self._cache.logs][:LOG_CAP]

        if self._mode is StorageMode.REMOTE:
            self._schedule(self._mirror.push_log(entry))
        else:
            self._persist_put("add_log", Collection.LOGS, entry)
        return entry

    # Backup

    def create_backup(self) -> str:
        """Serializa o cache completo no formato de arquivo de backup."""

        self._require_ready()
        cache = self._cache
        return dump_backup(build_backup(cache.users, cache.orders, cache.cliches, cache.logs))

    def write_backup(self, directory: Union[str, Path]) -> Path:
        self._require_ready()
        cache = self._cache
        backup = build_backup(cache.users, cache.orders, cache.cliches, cache.logs)
        path = Path(directory) / backup_filename(backup.timestamp)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(dump_backup(backup), encoding="utf-8")
        logger.info(f"Backup gravado em {path}")
        return path

    async def restore_backup(self, source: Union[str, bytes, Path]) -> bool:
        """Substitui todos os dados pelo conteúdo de um backup.

        A validação acontece antes de qualquer alteração. Depois dela o cache é
        trocado por inteiro e os registros são regravados no destino ativo.

        Returns:
            True se todas as gravações do destino tiveram sucesso.

        Raises:
            BackupValidationError: Arquivo inválido (nada é alterado).
        """

        self._require_ready()
        content = source.read_bytes() if isinstance(source, Path) else source
        backup = parse_backup(content)

        users = list(backup.users)
        if _index_of(users, BOOTSTRAP_ADMIN_ID) is None:
            logger.warning("Backup sem o administrador inicial; registro recriado.")
            users.insert(0, self._bootstrap_admin)

        await self.drain()
        self._cache = DataCache(
            users=users,
            orders=list(backup.orders),
            cliches=list(backup.cliches),
            logs=_newest_first(backup.logs),
        )
        logger.info(
            f"Restaurando backup de {backup.timestamp.isoformat()} (versão {backup.version})."
        )

        if self._mode is StorageMode.REMOTE:
            ok = await self._mirror.push_users(list(self._cache.users))
            for order in list(self._cache.orders):
                ok = await self._mirror.push_order(order) and ok
            for item in list(self._cache.cliches):
                ok = await self._mirror.push_cliche(item) and ok
            if not ok:
                logger.error("Restauração incompleta no servidor: dados podem estar inconsistentes.")
            return ok

        return await self._write_local(
            "restore_backup",
            self._local_store.replace_all,
            {
                Collection.USERS: [u.to_record() for u in self._cache.users],
                Collection.ORDERS: [o.to_record() for o in self._cache.orders],
                Collection.CLICHES: [c.to_record() for c in self._cache.cliches],
                Collection.LOGS: [entry.to_record() for entry in self._cache.logs],
            },
        )

    # Rede

    async def background_sync(self) -> bool:
        """Recarrega o cache do servidor (somente no modo remoto)."""

        if self._mode is not StorageMode.REMOTE:
            return False
        try:
            snapshot = await self._mirror.fetch_snapshot()
        except MirrorError as exc:
            logger.debug(f"Sincronização em segundo plano falhou: {exc}")
            return False
        self._cache.apply_snapshot(snapshot)
        return True

    async def test_connection(self, host: str, timeout: float = CONNECTION_TEST_TIMEOUT) -> bool:
        return await check_connection(
            host, timeout=timeout, port=self._mirror.port, transport=self._transport
        )


async def reinitialize(
    service: StorageService,
    settings: LocalSettings,
    server_host: Optional[str],
    app_config: Optional[Config] = None,
    database_url: Optional[str] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> StorageService:
    """Troca o servidor configurado e recria o serviço do zero.

    Grava o novo endereço, encerra o serviço atual (aguardando as gravações
    pendentes) e devolve um serviço novo já inicializado.
    """

    settings.set_server_host(server_host)
    await service.close()
    fresh = StorageService.from_settings(
        settings,
        app_config=app_config,
        database_url=database_url,
        transport=transport,
    )
    for listener in service.failure_listeners:
        fresh.add_failure_listener(listener)
    await fresh.initialize()
    return fresh


__all__ = [
    "LOG_CAP",
    "StorageMode",
    "StorageNotReadyError",
    "PersistenceFailure",
    "StorageService",
    "reinitialize",
]
