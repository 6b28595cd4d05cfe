"""Agenda semanal (segunda a sexta) montada a partir de `StorageService.get_orders()`."""

from __future__ import annotations

from datetime import date, timedelta
from typing import Dict, Iterable, List

from ..schemas import Order

WORK_DAYS = 5


def week_start(day: date) -> date:
    """Segunda-feira da semana que contém `day`."""
    return day - timedelta(days=day.weekday())


def work_week(start: date) -> List[date]:
    """Dias úteis (segunda a sexta) a partir de `start`."""
    return [start + timedelta(days=offset) for offset in range(WORK_DAYS)]


def shift_week(start: date, weeks: int) -> date:
    return start + timedelta(weeks=weeks)


def orders_for_day(orders: Iterable[Order], day: date) -> List[Order]:
    return [o for o in orders if o.due_date == day]


def build_week(orders: Iterable[Order], start: date) -> Dict[date, List[Order]]:
    """Agenda da semana: cada dia útil com os pedidos que vencem nele.

    Pedidos com entrega no fim de semana não aparecem.
    """

    listed = list(orders)
    return {day: orders_for_day(listed, day) for day in work_week(week_start(start))}


__all__ = ["week_start", "work_week", "shift_week", "orders_for_day", "build_week"]
