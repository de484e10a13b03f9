from __future__ import annotations


class ServerTimeOffset:
    """
    Diferença (ms) entre o relógio do servidor e o local, como reportada
    pelo próprio stream de log.

    Compartilhado entre coletores apenas quando a mesma instância é passada
    para eles; cada valor novo sobrescreve o anterior.
    """

    def __init__(self, offset_ms: int = 0):
        self._offset_ms = int(offset_ms)

    @property
    def offset_ms(self) -> int:
        return self._offset_ms

    def update(self, offset_ms: int) -> None:
        self._offset_ms = int(offset_ms)

    def adjusted_epoch(self, now_epoch: float) -> float:
        return (now_epoch * 1000.0 + self._offset_ms) / 1000.0
