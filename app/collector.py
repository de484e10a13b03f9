from __future__ import annotations

import logging
from typing import Optional

from domain.models import Event, FlushPolicy, OffsetUpdate, ParsedEvent
from domain.ports import BatchSink, Clock
from domain.server_time import ServerTimeOffset

from .classifier import LineClassifier
from .event_buffer import EventBuffer
from .ticker import PeriodicTicker

logger = logging.getLogger(__name__)


class BandwidthCollector:
    """
    Recebe linhas de debug do cliente (uma por chamada), transforma em eventos
    de leitura/escrita e acumula no EventBuffer.

    Uso:
        collector = BandwidthCollector(policy, sink, clock)
        collector.start()
        client.enable_logging(collector.collect_log)
    """

    def __init__(
        self,
        policy: FlushPolicy,
        sink: BatchSink,
        clock: Clock,
        *,
        classifier: Optional[LineClassifier] = None,
        server_time: Optional[ServerTimeOffset] = None,
    ):
        self.policy = policy
        self.clock = clock
        self.classifier = classifier or LineClassifier()
        # passe a mesma instância para coletores que devem compartilhar o offset
        self.server_time = server_time or ServerTimeOffset()
        self.buffer = EventBuffer(policy, sink, clock)

        self._ticker = PeriodicTicker(
            policy.forced_flush_interval_ms / 1000.0,
            self.buffer.flush_if_late,
            name="bandwidth-flush",
        )

    def start(self) -> None:
        self._ticker.start()

    def stop(self, *, flush: bool = True) -> None:
        self._ticker.stop()
        if flush:
            self.buffer.flush()

    def collect_log(self, line: str) -> None:
        try:
            result = self.classifier.classify(line)
            if isinstance(result, OffsetUpdate):
                self.server_time.update(result.offset_ms)
                return
            if not isinstance(result, ParsedEvent):
                return
            self.buffer.push(self._stamp(result))
        except Exception:
            logger.exception("Unexpected error while collecting bandwidth from line: %r", line)

    def _stamp(self, parsed: ParsedEvent) -> Event:
        ts = self.server_time.adjusted_epoch(self.clock.now_epoch())
        return parsed.stamp(ts, self.policy.tag)
