from __future__ import annotations

import logging
from typing import Any, Callable, List, Optional

import httpx
from pydantic import ValidationError

from ..schemas import ActivityLog, ClicheItem, Order, Snapshot, User

logger = logging.getLogger(__name__)

DEFAULT_PORT = 3001
CONNECTION_TEST_TIMEOUT = 2.0

FailureHook = Callable[[str, Exception], None]


class MirrorError(Exception):
    """Erro base do cliente do servidor de rede."""


class MirrorDisabledError(MirrorError):
    """Nenhum endereço de servidor configurado."""


class MirrorUnavailableError(MirrorError):
    """Servidor inacessível ou resposta inválida."""


def server_base_url(host: str, port: int = DEFAULT_PORT) -> str:
    return f"http://{host}:{port}"


async def check_connection(
    host: str,
    timeout: float = CONNECTION_TEST_TIMEOUT,
    port: int = DEFAULT_PORT,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> bool:
    """Verifica se há um servidor respondendo em `host`.

    Usa um tempo limite rígido e nunca levanta exceção.
    """

    if not host:
        return False
    try:
        async with httpx.AsyncClient(
            base_url=server_base_url(host, port),
            timeout=timeout,
            transport=transport,
            trust_env=False,
        ) as client:
            response = await client.get("/api/status")
            return response.is_success
    except (httpx.HTTPError, httpx.InvalidURL) as exc:
        logger.info(f"Teste de conexão com {host} falhou: {exc}")
        return False


class RemoteMirrorClient:
    """Cliente HTTP do servidor JSON da rede local.

    Sem endereço configurado o cliente fica desativado: `fetch_snapshot`
    falha imediatamente e os envios não fazem nada.

    Os envios são "melhor esforço": erros de rede são registrados no log,
    repassados ao `on_failure` (se definido) e nunca propagados.
    """

    def __init__(
        self,
        host: Optional[str],
        port: int = DEFAULT_PORT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        on_failure: Optional[FailureHook] = None,
    ) -> None:
        self.host = host or None
        self.port = port
        self.on_failure = on_failure
        self._client: Optional[httpx.AsyncClient] = None
        self._invalid_host: Optional[httpx.InvalidURL] = None
        if self.host:
            try:
                # Sem timeout: só o teste de conexão tem limite de tempo.
                self._client = httpx.AsyncClient(
                    base_url=server_base_url(self.host, port),
                    timeout=None,
                    transport=transport,
                    trust_env=False,
                )
            except httpx.InvalidURL as exc:
                # Endereço digitado errado conta como servidor inacessível.
                logger.warning(f"Endereço de servidor inválido '{self.host}': {exc}")
                self._invalid_host = exc

    @property
    def enabled(self) -> bool:
        """Há um endereço de servidor configurado (válido ou não)."""
        return self.host is not None

    @property
    def base_url(self) -> Optional[str]:
        if not self.host:
            return None
        return server_base_url(self.host, self.port)

    async def fetch_snapshot(self) -> Snapshot:
        """Baixa o conjunto completo de dados do servidor.

        Raises:
            MirrorDisabledError: Sem endereço configurado.
            MirrorUnavailableError: Endereço inválido, falha de rede ou resposta inválida.
        """

        if self.host is None:
            raise MirrorDisabledError("Sem IP de servidor configurado.")
        if self._client is None:
            raise MirrorUnavailableError(
                f"Endereço de servidor inválido: {self._invalid_host}"
            ) from self._invalid_host
        try:
            response = await self._client.get("/api/sync")
            response.raise_for_status()
            return Snapshot.model_validate(response.json())
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            raise MirrorUnavailableError(f"Erro na rede: {exc}") from exc
        except (ValueError, ValidationError) as exc:
            raise MirrorUnavailableError(f"Resposta inválida do servidor: {exc}") from exc

    async def _send(self, operation: str, method: str, path: str, payload: Any = None) -> bool:
        if self._client is None:
            return False
        try:
            response = await self._client.request(method, path, json=payload)
            response.raise_for_status()
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            logger.error(f"Falha ao enviar para o servidor ({operation}): {exc}")
            if self.on_failure is not None:
                self.on_failure(operation, exc)
            return False
        return True

    async def push_users(self, users: List[User]) -> bool:
        """Envia a lista completa de usuários (substitui a do servidor)."""
        return await self._send(
            "push_users", "POST", "/api/users", [user.to_record() for user in users]
        )

    async def push_order(self, order: Order) -> bool:
        return await self._send("push_order", "POST", "/api/orders", order.to_record())

    async def delete_order(self, order_id: str) -> bool:
        return await self._send("delete_order", "DELETE", f"/api/orders/{order_id}")

    async def push_cliche(self, item: ClicheItem) -> bool:
        return await self._send("push_cliche", "POST", "/api/cliches", item.to_record())

    async def push_log(self, entry: ActivityLog) -> bool:
        return await self._send("push_log", "POST", "/api/logs", entry.to_record())

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()


__all__ = [
    "RemoteMirrorClient",
    "MirrorError",
    "MirrorDisabledError",
    "MirrorUnavailableError",
    "check_connection",
    "server_base_url",
    "DEFAULT_PORT",
]
