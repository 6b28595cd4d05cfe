"""Regras do quadro de pedidos: visibilidade, busca, ordenação e contadores.

Funções puras sobre as listas devolvidas por `StorageService.get_orders()`,
usadas pela tela do quadro de pedidos.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, List

from ..schemas import Order, OrderStatus, Priority, Role, User

PRIORITY_WEIGHT = {
    Priority.URGENT: 3,
    Priority.MEDIUM: 2,
    Priority.NORMAL: 1,
}


@dataclass(frozen=True)
class BoardCounters:
    total: int
    urgent: int
    in_progress: int


def visible_orders(orders: Iterable[Order], user: User) -> List[Order]:
    """Vendedores enxergam apenas os próprios pedidos; os demais veem todos."""

    if user.role is not Role.SALESPERSON:
        return list(orders)
    name = user.name.strip().lower()
    return [o for o in orders if o.salesperson.strip().lower() == name]


def search_orders(orders: Iterable[Order], term: str) -> List[Order]:
    """Busca por cliente, número da OC ou descrição (sem diferenciar maiúsculas)."""

    needle = term.lower()
    return [
        o
        for o in orders
        if needle in o.client.lower()
        or needle in o.oc_number.lower()
        or needle in o.description.lower()
    ]


def sort_orders(orders: Iterable[Order]) -> List[Order]:
    """Urgente, médio e normal; dentro da mesma prioridade, entrega mais próxima primeiro."""

    return sorted(orders, key=lambda o: (-PRIORITY_WEIGHT[o.priority], o.due_date))


def board_listing(orders: Iterable[Order], user: User, term: str = "") -> List[Order]:
    return sort_orders(search_orders(visible_orders(orders, user), term))


def board_counters(orders: Iterable[Order]) -> BoardCounters:
    listed = list(orders)
    return BoardCounters(
        total=len(listed),
        urgent=sum(1 for o in listed if o.priority is Priority.URGENT),
        in_progress=sum(1 for o in listed if o.status is OrderStatus.IN_PROGRESS),
    )


__all__ = [
    "BoardCounters",
    "visible_orders",
    "search_orders",
    "sort_orders",
    "board_listing",
    "board_counters",
]
