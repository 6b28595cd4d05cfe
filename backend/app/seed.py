from __future__ import annotations

from typing import Any, Dict, List, Optional

from sqlalchemy.exc import SQLAlchemyError

from .config import Config, config as default_config
from .models import Collection
from .schemas import DEFAULT_AVATAR, Role, User

# Administrador inicial: único registro que nunca pode ser excluído.
BOOTSTRAP_ADMIN_ID = "u1"


class SeedError(Exception):
    """Erro de alto nível para problemas durante o seed de dados."""


def build_bootstrap_admin(app_config: Optional[Config] = None) -> User:
    """Monta o registro do administrador inicial.

    Args:
        app_config: Configuração de onde vêm nome e senha. Usa a global se omitida.

    Returns:
        O usuário administrador protegido.
    """

    app_config = app_config or default_config
    return User(
        id=BOOTSTRAP_ADMIN_ID,
        name=app_config.bootstrap_admin_name,
        role=Role.ADMIN,
        password=app_config.bootstrap_admin_password,
        avatar=DEFAULT_AVATAR,
    )


def initial_network_data(admin: User) -> Dict[str, List[Dict[str, Any]]]:
    """Conteúdo inicial do arquivo de dados do servidor de rede."""

    return {
        "users": [admin.to_record()],
        "orders": [],
        "cliches": [],
        "logs": [],
    }


def seed_bootstrap_admin(store, admin: User) -> User:
    """Grava o administrador inicial no banco local.

    Args:
        store: `LocalRecordStore` já inicializado.
        admin: Registro a gravar.

    Raises:
        SeedError: Em caso de falha na gravação.
    """

    try:
        store.put(Collection.USERS, admin.to_record())
    except SQLAlchemyError as exc:
        raise SeedError("Falha ao gravar o administrador inicial.") from exc
    return admin


__all__ = [
    "BOOTSTRAP_ADMIN_ID",
    "SeedError",
    "build_bootstrap_admin",
    "initial_network_data",
    "seed_bootstrap_admin",
]
