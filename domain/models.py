from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional, Union


PROTOCOL_PATH = "/$protocol"
DEBUG_PATH = "/$debug"


class Operation(str, Enum):
    READ = "r"
    WRITE = "w"


@dataclass(frozen=True)
class Event:
    operation: Operation
    path: str
    size_bytes: int
    timestamp_seconds: float  # epoch (s), já ajustado pelo offset do servidor
    tag: Optional[str] = None

    def __post_init__(self) -> None:
        if self.size_bytes < 0:
            raise ValueError(f"size_bytes negativo: {self.size_bytes}")
        if not self.path or not self.path.startswith("/"):
            raise ValueError(f"path inválido: {self.path!r}")

    def to_row(self) -> Dict[str, Any]:
        row: Dict[str, Any] = {
            "op": self.operation.value,
            "path": self.path,
            "size": self.size_bytes,
            "time": self.timestamp_seconds,
        }
        if self.tag:
            row["tag"] = self.tag
        return row


@dataclass(frozen=True)
class ParsedEvent:
    """
    Evento extraído de uma linha, ainda sem timestamp e sem tag.
    """
    operation: Operation
    path: str
    size_bytes: int

    def stamp(self, timestamp_seconds: float, tag: Optional[str] = None) -> Event:
        return Event(
            operation=self.operation,
            path=self.path,
            size_bytes=self.size_bytes,
            timestamp_seconds=float(timestamp_seconds),
            tag=tag,
        )


@dataclass(frozen=True)
class OffsetUpdate:
    offset_ms: int


@dataclass(frozen=True)
class _Ignored:
    def __repr__(self) -> str:
        return "Ignored"


Ignored = _Ignored()

ClassificationResult = Union[OffsetUpdate, ParsedEvent, _Ignored]


@dataclass(frozen=True)
class WireSizeEstimate:
    # heurística de tamanho no fio; serve para comparar paths, não é contagem exata
    message_overhead_bytes: int = 16
    type_tag_overhead_bytes: int = 7


@dataclass(frozen=True)
class FlushPolicy:
    size_threshold_bytes: int = 100000
    forced_flush_interval_ms: int = 60000
    tag: Optional[str] = None
