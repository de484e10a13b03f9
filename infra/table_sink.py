from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import List

from domain.models import Event
from domain.ports import BatchSink, Clock, RowSink
from domain.tables import table_name_for

logger = logging.getLogger(__name__)


class DatedTableSink(BatchSink):
    """
    Converte o lote em linhas e insere na tabela do dia (UTC):
    dataset_id / table_prefix + ano + mês + dia.
    """

    def __init__(self, rows: RowSink, clock: Clock, *, dataset_id: str, table_prefix: str = "raw"):
        self.rows = rows
        self.clock = clock
        self.dataset_id = dataset_id
        self.table_prefix = table_prefix

    def current_table(self) -> str:
        now = datetime.fromtimestamp(self.clock.now_epoch(), tz=timezone.utc)
        return table_name_for(self.table_prefix, now)

    def deliver(self, events: List[Event]) -> None:
        if not events:
            return
        table = self.current_table()
        logger.info("Flushing %d rows of bandwidth data to table %s.%s", len(events), self.dataset_id, table)
        self.rows.insert(self.dataset_id, table, [ev.to_row() for ev in events])
