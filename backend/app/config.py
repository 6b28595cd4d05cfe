from __future__ import annotations
import os
from typing import Optional


class Config:
    """Configurações centralizadas do aplicativo.

    Permite configuração via variáveis de ambiente para suportar
    diferentes ambientes (dev, prod, servidor de rede local, etc).
    """

    _instance: Optional["Config"] = None

    def __new__(cls) -> "Config":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._initialized = False
        return cls._instance

    def __init__(self) -> None:
        if self._initialized:
            return

        self._initialized = True

        # Servidor de rede local (espelho)
        self.host: str = os.getenv("API_HOST", "0.0.0.0")
        self.port: int = int(os.getenv("API_PORT", "3001"))
        self.network_db_file: str = os.getenv("NETWORK_DB_FILE", "data/network_db.json")

        # Pasta com a interface compilada servida pelo fallback
        self.dist_dir: str = os.getenv("DIST_DIR", "dist")

        # Banco local do dispositivo
        self.local_database_url: str = os.getenv(
            "LOCAL_DATABASE_URL",
            "sqlite+pysqlite:///data/local/crs_vision.db",
        )
        self.settings_file: str = os.getenv("SETTINGS_FILE", "data/local/settings.json")

        # Porta usada pelos clientes para falar com o servidor
        self.remote_port: int = int(os.getenv("REMOTE_PORT", "3001"))

        self.bootstrap_admin_name: str = os.getenv("BOOTSTRAP_ADMIN_NAME", "Administrador")
        self.bootstrap_admin_password: str = os.getenv("BOOTSTRAP_ADMIN_PASSWORD", "admin")


config = Config()


__all__ = ["config", "Config"]
