from __future__ import annotations

import json

import pytest
from fastapi.testclient import TestClient

from backend.app.config import config
from backend.app.services.network_db import LOG_CAP, NetworkDatabase


@pytest.fixture()
def client(server_app):
    with TestClient(server_app) as test_client:
        yield test_client


def _order(order_id: str = "o1", **overrides) -> dict:
    record = {
        "id": order_id,
        "ocNumber": "100",
        "client": "Acme",
        "description": "Caixas",
        "priority": "normal",
        "status": "pending",
        "dueDate": "2024-05-01",
        "createdAt": "2024-04-20T10:00:00Z",
        "salesperson": "Alice",
    }
    record.update(overrides)
    return record


def test_status(client: TestClient) -> None:
    response = client.get("/api/status")

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "online"
    assert body["version"] == "2.0.0"
    assert "serverTime" in body


def test_sync_starts_with_bootstrap_admin(client: TestClient) -> None:
    body = client.get("/api/sync").json()

    assert [u["id"] for u in body["users"]] == ["u1"]
    assert body["orders"] == [] and body["cliches"] == [] and body["logs"] == []


def test_users_are_replaced_entirely(client: TestClient) -> None:
    users = [
        {"id": "u1", "name": "Administrador", "role": "admin", "password": "admin"},
        {"id": "u2", "name": "Bob", "role": "salesperson", "password": "x"},
    ]

    assert client.post("/api/users", json=users).json() == {"success": True}
    assert client.post("/api/users", json=users[:1]).status_code == 200

    assert [u["id"] for u in client.get("/api/sync").json()["users"]] == ["u1"]


def test_order_upsert_and_delete(client: TestClient, network_db: NetworkDatabase) -> None:
    client.post("/api/orders", json=_order())
    client.post("/api/orders", json=_order(status="in-progress"))
    client.post("/api/orders", json=_order("o2", ocNumber="101"))

    orders = client.get("/api/sync").json()["orders"]
    assert [o["id"] for o in orders] == ["o1", "o2"]
    assert orders[0]["status"] == "in-progress"

    assert client.delete("/api/orders/o1").json() == {"success": True}
    assert [o["id"] for o in network_db.snapshot()["orders"]] == ["o2"]


def test_writes_reach_the_file(client: TestClient, network_db: NetworkDatabase) -> None:
    client.post(
        "/api/cliches",
        json={"id": "c1", "description": "Logo", "client": "Acme", "status": "sent"},
    )

    stored = json.loads(network_db.path.read_text(encoding="utf-8"))
    assert stored["cliches"][0]["id"] == "c1"


def test_invalid_body_is_rejected(client: TestClient) -> None:
    response = client.post("/api/orders", json=_order(status="completed"))

    assert response.status_code == 422
    assert client.get("/api/sync").json()["orders"] == []


def test_logs_are_prepended_and_capped(client: TestClient, network_db: NetworkDatabase) -> None:
    network_db._data["logs"] = [
        {"id": f"old-{i}", "action": "a", "userName": "b", "type": "info"} for i in range(LOG_CAP)
    ]

    client.post("/api/logs", json={"id": "new", "action": "Login", "userName": "Ana", "type": "info"})

    logs = client.get("/api/sync").json()["logs"]
    assert len(logs) == LOG_CAP
    assert logs[0]["id"] == "new"
    assert logs[-1]["id"] == f"old-{LOG_CAP - 2}"


def test_fallback_serves_placeholder_without_dist(client: TestClient, tmp_path, monkeypatch) -> None:
    monkeypatch.setattr(config, "dist_dir", str(tmp_path / "missing"))

    response = client.get("/pedidos")

    assert response.status_code == 200
    assert "CRS Vision" in response.text


def test_fallback_serves_assets_and_index(client: TestClient, tmp_path, monkeypatch) -> None:
    dist = tmp_path / "dist"
    (dist / "assets").mkdir(parents=True)
    (dist / "index.html").write_text("<html>app</html>", encoding="utf-8")
    (dist / "assets" / "main.js").write_text("console.log(1)", encoding="utf-8")
    (tmp_path / "secret.txt").write_text("segredo", encoding="utf-8")
    monkeypatch.setattr(config, "dist_dir", str(dist))

    assert client.get("/assets/main.js").text == "console.log(1)"
    assert client.get("/rota/do/app").text == "<html>app</html>"
    assert client.get("/..%2Fsecret.txt").text == "<html>app</html>"
