from __future__ import annotations

from typing import Any, Dict, List, Protocol

from .models import Event


class Clock(Protocol):
    def now_epoch(self) -> float: ...


class BatchSink(Protocol):
    def deliver(self, events: List[Event]) -> None:
        """Recebe um lote já retirado do buffer. Não deve bloquear."""
        ...


# -----------------------------
# Destino das linhas (BigQuery/HTTP/etc.)
# -----------------------------

Row = Dict[str, Any]


class RowSink(Protocol):
    def insert(self, dataset_id: str, table: str, rows: List[Row]) -> None:
        """Fire-and-forget: falhas são logadas pelo próprio sink."""
        ...
