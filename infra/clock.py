from time import time

from domain.ports import Clock


class SystemClock(Clock):
    """Relógio local; epoch em segundos (float)."""

    def now_epoch(self) -> float:
        return time()
