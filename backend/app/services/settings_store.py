from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Dict, Optional, Union

from ..config import config
from ..schemas import Theme

logger = logging.getLogger(__name__)

THEME_KEY = "theme"
SERVER_IP_KEY = "server_ip"
SAVED_USER_KEY = "saved_user_id"


class LocalSettings:
    """Preferências simples do dispositivo gravadas em um arquivo JSON.

    Guarda o tema, o endereço do servidor da rede e a sessão lembrada.
    Fica fora do banco de registros.
    """

    def __init__(self, path: Union[str, Path, None] = None) -> None:
        self.path = Path(path or config.settings_file).expanduser()
        self._values: Dict[str, str] = self._load()

    def _load(self) -> Dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            with self.path.open("r", encoding="utf-8") as handle:
                data = json.load(handle)
        except (OSError, json.JSONDecodeError) as exc:
            logger.warning(f"Preferências ilegíveis em {self.path}, usando padrões: {exc}")
            return {}
        if isinstance(data, dict):
            return {str(key): str(value) for key, value in data.items()}
        return {}

    def _write(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        temp_path = self.path.with_name(f".{self.path.name}.tmp")
        with temp_path.open("w", encoding="utf-8") as handle:
            json.dump(self._values, handle, ensure_ascii=False, indent=2)
        temp_path.replace(self.path)

    def get(self, key: str) -> Optional[str]:
        return self._values.get(key)

    def set(self, key: str, value: Optional[str]) -> None:
        if value:
            self._values[key] = value
        else:
            self._values.pop(key, None)
        self._write()

    # Tema

    def get_theme(self) -> Theme:
        try:
            return Theme(self._values.get(THEME_KEY, Theme.DARK.value))
        except ValueError:
            return Theme.DARK

    def set_theme(self, theme: Union[Theme, str]) -> None:
        self.set(THEME_KEY, Theme(theme).value)

    # Servidor da rede local

    def get_server_host(self) -> Optional[str]:
        return self.get(SERVER_IP_KEY)

    def set_server_host(self, host: Optional[str]) -> None:
        """Grava o endereço do servidor; vazio volta ao modo local."""
        self.set(SERVER_IP_KEY, (host or "").strip() or None)

    # Sessão lembrada

    def save_user_session(self, user_id: str) -> None:
        self.set(SAVED_USER_KEY, user_id)

    def get_saved_user_session(self) -> Optional[str]:
        return self.get(SAVED_USER_KEY)

    def clear_user_session(self) -> None:
        self.set(SAVED_USER_KEY, None)


__all__ = ["LocalSettings"]
