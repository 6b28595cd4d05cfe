from __future__ import annotations

from backend.app.config import config
from backend.app.schemas import Theme
from backend.app.services.settings_store import LocalSettings


def test_defaults_when_file_missing(settings: LocalSettings) -> None:
    assert settings.get_theme() is Theme.DARK
    assert settings.get_server_host() is None
    assert settings.get_saved_user_session() is None


def test_values_persist_in_file(tmp_path) -> None:
    path = tmp_path / "settings.json"
    first = LocalSettings(path)
    first.set_theme("light")
    first.set_server_host(" 192.168.0.20 ")
    first.save_user_session("u1")

    second = LocalSettings(path)
    assert second.get_theme() is Theme.LIGHT
    assert second.get_server_host() == "192.168.0.20"
    assert second.get_saved_user_session() == "u1"


def test_empty_host_clears_server(settings: LocalSettings) -> None:
    settings.set_server_host("10.0.0.5")
    settings.set_server_host("")

    assert settings.get_server_host() is None


def test_clear_user_session(settings: LocalSettings) -> None:
    settings.save_user_session("u2")
    settings.clear_user_session()

    assert settings.get_saved_user_session() is None


def test_unreadable_file_falls_back_to_defaults(tmp_path) -> None:
    path = tmp_path / "settings.json"
    path.write_text("{quebrado", encoding="utf-8")

    assert LocalSettings(path).get_theme() is Theme.DARK


def test_default_path_comes_from_config(tmp_path, monkeypatch) -> None:
    path = tmp_path / "padrao" / "settings.json"
    monkeypatch.setattr(config, "settings_file", str(path))

    LocalSettings().set_theme(Theme.LIGHT)

    assert path.exists()
    assert LocalSettings(path).get_theme() is Theme.LIGHT
