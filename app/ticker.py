from __future__ import annotations

import logging
import threading
from typing import Callable, Optional

logger = logging.getLogger(__name__)


class PeriodicTicker:
    """
    Chama `fn` a cada `interval_sec` numa thread daemon até stop().
    """

    def __init__(self, interval_sec: float, fn: Callable[[], None], *, name: str = "ticker"):
        if interval_sec <= 0:
            raise ValueError(f"interval_sec deve ser > 0: {interval_sec}")
        self.interval_sec = float(interval_sec)
        self._fn = fn
        self._name = name
        self._stop = threading.Event()
        self._t: Optional[threading.Thread] = None

    def start(self) -> None:
        if self._t is not None:
            return
        self._stop.clear()
        self._t = threading.Thread(target=self._run, name=self._name, daemon=True)
        self._t.start()

    def stop(self) -> None:
        self._stop.set()
        if self._t is not None:
            self._t.join(timeout=5)
            self._t = None

    def _run(self) -> None:
        while not self._stop.wait(self.interval_sec):
            try:
                self._fn()
            except Exception:
                # um tick ruim não pode matar a thread
                logger.exception("Tick %s failed", self._name)
