from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional


def table_name_for(prefix: str, when: Optional[datetime] = None) -> str:
    """
    Nome da tabela diária: prefixo + ano + mês + dia (UTC, sem zero à esquerda).
    Ex.: raw + 2024-03-07 -> "raw202437"
    """
    dt = when or datetime.now(tz=timezone.utc)
    if dt.tzinfo is not None:
        dt = dt.astimezone(timezone.utc)
    return f"{prefix}{dt.year}{dt.month}{dt.day}"
