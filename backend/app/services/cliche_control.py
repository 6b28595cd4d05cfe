"""Transições e listagens de clichês.

A tela de clichês monta o registro aqui e grava com `StorageService.save_cliche()`.
"""

from __future__ import annotations

from datetime import date, datetime, time, timezone
from typing import Iterable, List, Union

from ..schemas import ClicheItem, ClicheStatus

# Data informada sem horário vira meio-dia UTC para não trocar de dia pelo fuso.
RECEIVE_TIME = time(12, 0, tzinfo=timezone.utc)


def new_cliche(description: str, client: str) -> ClicheItem:
    """Clichê recém-enviado à clicheria."""
    return ClicheItem(description=description, client=client, status=ClicheStatus.SENT)


def receive_cliche(item: ClicheItem, received_on: Union[date, datetime]) -> ClicheItem:
    """Marca o clichê como recebido.

    Raises:
        ValueError: Se o clichê já tiver sido recebido.
    """

    if item.status is ClicheStatus.RECEIVED:
        raise ValueError(f"Clichê {item.id} já foi recebido.")
    if not isinstance(received_on, datetime):
        received_on = datetime.combine(received_on, RECEIVE_TIME)
    return ClicheItem.model_validate(
        {**item.model_dump(), "status": ClicheStatus.RECEIVED, "received_date": received_on}
    )


def pending_cliches(items: Iterable[ClicheItem]) -> List[ClicheItem]:
    return [i for i in items if i.status is ClicheStatus.SENT]


def received_cliches(items: Iterable[ClicheItem]) -> List[ClicheItem]:
    """Clichês recebidos, o mais recente primeiro."""

    received = [i for i in items if i.status is ClicheStatus.RECEIVED]
    return sorted(received, key=lambda i: i.received_date, reverse=True)


__all__ = ["new_cliche", "receive_cliche", "pending_cliches", "received_cliches"]
