from __future__ import annotations

from backend.app.schemas import Order, OrderStatus, Priority, Role, User
from backend.app.services.order_board import (
    board_counters,
    board_listing,
    search_orders,
    sort_orders,
    visible_orders,
)


def _order(order_id: str, **overrides) -> Order:
    fields = {
        "id": order_id,
        "oc_number": order_id.upper(),
        "client": "Acme",
        "due_date": "2024-05-10",
        "created_at": "2024-04-01",
    }
    fields.update(overrides)
    return Order(**fields)


def test_salesperson_sees_only_own_orders() -> None:
    orders = [_order("a", salesperson="Alice"), _order("b", salesperson="BOB ")]
    bob = User(name="bob", role=Role.SALESPERSON)

    assert [o.id for o in visible_orders(orders, bob)] == ["b"]


def test_operator_sees_every_order() -> None:
    orders = [_order("a", salesperson="Alice"), _order("b", salesperson="Bob")]
    operator = User(name="bob", role=Role.OPERATOR)

    assert len(visible_orders(orders, operator)) == 2


def test_search_matches_client_number_or_description() -> None:
    orders = [
        _order("a", client="Padaria Sol"),
        _order("b", oc_number="OC-778"),
        _order("c", description="Caixa de PIZZA"),
    ]

    assert [o.id for o in search_orders(orders, "sol")] == ["a"]
    assert [o.id for o in search_orders(orders, "oc-77")] == ["b"]
    assert [o.id for o in search_orders(orders, "pizza")] == ["c"]
    assert len(search_orders(orders, "")) == 3


def test_priority_then_due_date_ordering() -> None:
    orders = [
        _order("n", priority=Priority.NORMAL, due_date="2024-05-01"),
        _order("u2", priority=Priority.URGENT, due_date="2024-05-09"),
        _order("m", priority=Priority.MEDIUM, due_date="2024-05-02"),
        _order("u1", priority=Priority.URGENT, due_date="2024-05-03"),
    ]

    assert [o.id for o in sort_orders(orders)] == ["u1", "u2", "m", "n"]


def test_board_listing_and_counters() -> None:
    orders = [
        _order("a", salesperson="Bob", priority=Priority.URGENT, status=OrderStatus.IN_PROGRESS),
        _order("b", salesperson="Bob", client="Outro"),
        _order("c", salesperson="Alice", priority=Priority.URGENT),
    ]
    bob = User(name="Bob", role=Role.SALESPERSON)

    listing = board_listing(orders, bob, "acme")
    counters = board_counters(listing)

    assert [o.id for o in listing] == ["a"]
    assert (counters.total, counters.urgent, counters.in_progress) == (1, 1, 1)
