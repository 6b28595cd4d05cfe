"""Resumo mensal de desempenho por vendedor para o painel de análise.

Recebe os pedidos do cache (`StorageService.get_orders()`); não faz I/O.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from datetime import date
from typing import Iterable, List, Tuple

from ..schemas import Order, OrderStatus, Priority

VOLUME_TOP = 5

Ranking = List[Tuple[str, int]]


@dataclass(frozen=True)
class MonthlySummary:
    """Resumo de desempenho do mês corrente.

    Attributes:
        monthly_total: Pedidos com entrega no mês.
        completed: Pedidos do mês já concluídos.
        active: Pedidos pendentes ou em produção (todos os meses).
        urgency_ranking: Pedidos urgentes do mês por vendedor, do maior para o menor.
        volume_ranking: Os 5 vendedores com mais pedidos no mês.
        max_volume: Maior volume do ranking (1 quando vazio, para escalar barras).
    """

    monthly_total: int
    completed: int
    active: int
    urgency_ranking: Ranking = field(default_factory=list)
    volume_ranking: Ranking = field(default_factory=list)
    max_volume: int = 1


def _ranking(names: Iterable[str]) -> Ranking:
    # Counter.most_common mantém a ordem de inserção em caso de empate.
    return Counter(names).most_common()


def monthly_summary(orders: Iterable[Order], today: date) -> MonthlySummary:
    listed = list(orders)
    monthly = [
        o for o in listed
        if o.due_date.year == today.year and o.due_date.month == today.month
    ]
    active_statuses = (OrderStatus.PENDING, OrderStatus.IN_PROGRESS)

    urgency = _ranking(
        o.salesperson for o in monthly if o.priority is Priority.URGENT and o.salesperson
    )
    volume = _ranking(o.salesperson for o in monthly if o.salesperson)[:VOLUME_TOP]

    return MonthlySummary(
        monthly_total=len(monthly),
        completed=sum(1 for o in monthly if o.status is OrderStatus.COMPLETED),
        active=sum(1 for o in listed if o.status in active_statuses),
        urgency_ranking=urgency,
        volume_ranking=volume,
        max_volume=volume[0][1] if volume else 1,
    )


__all__ = ["MonthlySummary", "monthly_summary"]
