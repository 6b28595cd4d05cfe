from __future__ import annotations

import asyncio
from typing import List, Tuple

import httpx
import pytest

from backend.app.schemas import ActivityLog, ClicheItem, Order, Role, User
from backend.app.services.mirror_client import (
    MirrorDisabledError,
    MirrorUnavailableError,
    RemoteMirrorClient,
    check_connection,
)

HOST = "192.168.0.10"


def _failing_transport() -> httpx.MockTransport:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("conexão recusada", request=request)

    return httpx.MockTransport(handler)


def test_disabled_client_without_host() -> None:
    async def scenario() -> None:
        client = RemoteMirrorClient(None)
        assert not client.enabled
        with pytest.raises(MirrorDisabledError):
            await client.fetch_snapshot()
        assert await client.push_log(ActivityLog(action="a", user_name="b")) is False
        await client.aclose()

    asyncio.run(scenario())


def test_fetch_and_push_against_server(server_app, network_db) -> None:
    async def scenario() -> None:
        client = RemoteMirrorClient(HOST, transport=httpx.ASGITransport(app=server_app))
        order = Order(id="o1", oc_number="100", client="Acme", due_date="2024-05-01")
        users = [
            User(id="u1", name="Administrador", role=Role.ADMIN, password="admin"),
            User(id="u2", name="Bob", role=Role.SALESPERSON),
        ]

        assert await client.push_users(users)
        assert await client.push_order(order)
        assert await client.push_cliche(ClicheItem(id="c1", description="Logo", client="Acme"))
        assert await client.push_log(ActivityLog(id="l1", action="Login", user_name="Bob"))

        snapshot = await client.fetch_snapshot()
        assert [u.id for u in snapshot.users] == ["u1", "u2"]
        assert snapshot.orders[0].oc_number == "100"
        assert snapshot.cliches[0].id == "c1"
        assert snapshot.logs[0].id == "l1"

        assert await client.delete_order("o1")
        assert (await client.fetch_snapshot()).orders == []
        await client.aclose()

    asyncio.run(scenario())
    assert network_db.snapshot()["orders"] == []


def test_unreachable_server() -> None:
    failures: List[Tuple[str, Exception]] = []

    async def scenario() -> None:
        client = RemoteMirrorClient(
            HOST,
            transport=_failing_transport(),
            on_failure=lambda operation, exc: failures.append((operation, exc)),
        )
        with pytest.raises(MirrorUnavailableError):
            await client.fetch_snapshot()
        assert await client.delete_order("o1") is False
        await client.aclose()

    asyncio.run(scenario())
    assert [operation for operation, _ in failures] == ["delete_order"]


def test_invalid_snapshot_is_unavailable() -> None:
    transport = httpx.MockTransport(
        lambda request: httpx.Response(200, json={"users": [{"id": "x"}]})
    )

    async def scenario() -> None:
        client = RemoteMirrorClient(HOST, transport=transport)
        with pytest.raises(MirrorUnavailableError):
            await client.fetch_snapshot()
        await client.aclose()

    asyncio.run(scenario())


def test_check_connection(server_app) -> None:
    assert asyncio.run(check_connection(HOST, transport=httpx.ASGITransport(app=server_app)))
    assert not asyncio.run(check_connection(HOST, transport=_failing_transport()))
    assert not asyncio.run(check_connection(""))


@pytest.mark.parametrize("host", ["192.168.0.5:3001", "[::1"])
def test_check_connection_with_malformed_host(host: str) -> None:
    assert asyncio.run(check_connection(host)) is False


def test_malformed_host_counts_as_unavailable() -> None:
    async def scenario() -> None:
        client = RemoteMirrorClient("192.168.0.5:3001")
        assert client.enabled
        with pytest.raises(MirrorUnavailableError):
            await client.fetch_snapshot()
        assert await client.push_order(
            Order(oc_number="1", client="Acme", due_date="2024-05-01")
        ) is False
        await client.aclose()

    asyncio.run(scenario())
