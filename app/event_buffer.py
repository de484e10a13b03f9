from __future__ import annotations

import logging
import threading
from typing import List

from domain.models import Event, FlushPolicy
from domain.ports import BatchSink, Clock

logger = logging.getLogger(__name__)


class EventBuffer:
    """
    Acumula eventos e decide quando descarregar no sink.

    - push(): acumula; se o tamanho somado >= size_threshold_bytes, flush() na hora
    - flush_if_late(): chamado por um tick externo; faz flush se passou o intervalo
    - flush(): retira o lote inteiro e zera o buffer ANTES de entregar ao sink,
      então pushes concorrentes caem num lote novo (sem perda, sem duplicata)

    Falha na entrega só é logada; o lote não volta para o buffer.
    """

    def __init__(self, policy: FlushPolicy, sink: BatchSink, clock: Clock):
        self.policy = policy
        self.sink = sink
        self.clock = clock

        self._lock = threading.Lock()
        self._events: List[Event] = []
        self._size = 0
        self._last_flush_epoch = clock.now_epoch()

    @property
    def pending_count(self) -> int:
        with self._lock:
            return len(self._events)

    @property
    def pending_bytes(self) -> int:
        with self._lock:
            return self._size

    @property
    def last_flush_epoch(self) -> float:
        return self._last_flush_epoch

    def push(self, event: Event) -> None:
        with self._lock:
            self._events.append(event)
            self._size += event.size_bytes
            full = self._size >= self.policy.size_threshold_bytes
        if full:
            self.flush()

    def flush(self) -> None:
        self._last_flush_epoch = self.clock.now_epoch()
        batch = self._take()
        if not batch:
            return
        try:
            self.sink.deliver(batch)
        except Exception:
            # descarta o lote: reenfileirar pode virar loop de retry com o sink fora
            logger.exception("Error delivering %d bandwidth events; batch dropped", len(batch))

    def flush_if_late(self) -> None:
        try:
            elapsed_ms = (self.clock.now_epoch() - self._last_flush_epoch) * 1000.0
            if elapsed_ms >= self.policy.forced_flush_interval_ms:
                self.flush()
        except Exception:
            logger.exception("Unexpected error while checking for a late flush")

    def _take(self) -> List[Event]:
        with self._lock:
            batch = self._events
            self._events = []
            self._size = 0
            return batch
