from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping, Optional

import yaml

from domain.models import FlushPolicy


@dataclass(frozen=True)
class SinkConfig:
    url: str
    token: Optional[str] = None
    # service account: arquivo JSON ou o conteúdo dele (tem prioridade sobre token)
    key_file: Optional[str] = None
    key: Optional[str] = None

    workers: int = 1
    queue_max: int = 1000
    timeout_sec: float = 10.0
    max_retries: int = 3


@dataclass(frozen=True)
class AppConfig:
    project_id: str
    dataset_id: str

    table_prefix: str = "raw"
    tag: Optional[str] = None
    size_flush_threshold: int = 100000
    forced_flush_interval_ms: int = 60000

    # None = dry run (só imprime os lotes)
    sink: Optional[SinkConfig] = None

    def flush_policy(self) -> FlushPolicy:
        return FlushPolicy(
            size_threshold_bytes=self.size_flush_threshold,
            forced_flush_interval_ms=self.forced_flush_interval_ms,
            tag=self.tag,
        )


def _req(d: Mapping[str, Any], path: str) -> Any:
    cur: Any = d
    for part in path.split("."):
        if not isinstance(cur, Mapping) or part not in cur:
            raise ValueError(f"Config inválida: campo obrigatório '{path}' ausente.")
        cur = cur[part]
    return cur


def _opt(d: Mapping[str, Any], path: str, default: Any) -> Any:
    cur: Any = d
    for part in path.split("."):
        if not isinstance(cur, Mapping) or part not in cur:
            return default
        cur = cur[part]
    return default if cur is None else cur


_DURATION_RE = re.compile(r"^\s*(\d+(?:\.\d+)?)\s*(ms|s|m|h|d)?\s*$", re.IGNORECASE)
_UNIT_MS = {"ms": 1, "s": 1000, "m": 60_000, "h": 3_600_000, "d": 86_400_000}


def to_millis(x: Any, path: str) -> int:
    """
    Aceita inteiro (ms) ou string com unidade: "500ms", "30s", "1m", "2h".
    """
    if isinstance(x, bool):
        raise ValueError(f"Config inválida: '{path}' deve ser uma duração.")
    if isinstance(x, (int, float)):
        ms = int(x)
    else:
        m = _DURATION_RE.match(str(x))
        if not m:
            raise ValueError(f"Config inválida: '{path}' não é uma duração válida: {x!r}")
        unit = (m.group(2) or "ms").lower()
        ms = int(float(m.group(1)) * _UNIT_MS[unit])
    if ms <= 0:
        raise ValueError(f"Config inválida: '{path}' deve ser > 0.")
    return ms


def _positive_int(x: Any, path: str) -> int:
    try:
        v = int(x)
    except (TypeError, ValueError) as e:
        raise ValueError(f"Config inválida: '{path}' deve ser inteiro: {x!r}") from e
    if v <= 0:
        raise ValueError(f"Config inválida: '{path}' deve ser > 0.")
    return v


def _sink_config(raw: Any) -> Optional[SinkConfig]:
    if not isinstance(raw, Mapping):
        return None
    url = _opt(raw, "url", "")
    if not url:
        return None

    token = _opt(raw, "token", None)
    key_file = _opt(raw, "key_file", None)
    key = _opt(raw, "key", None)
    if key is not None and not isinstance(key, str):
        raise ValueError("Config inválida: 'sink.key' deve ser o conteúdo JSON da chave (string).")

    return SinkConfig(
        url=str(url),
        token=str(token) if token else None,
        key_file=str(key_file) if key_file else None,
        key=key or None,
        workers=_positive_int(_opt(raw, "workers", 1), "sink.workers"),
        queue_max=_positive_int(_opt(raw, "queue_max", 1000), "sink.queue_max"),
        timeout_sec=float(_opt(raw, "timeout_sec", 10.0)),
        max_retries=int(_opt(raw, "max_retries", 3)),
    )


def parse_config(data: Mapping[str, Any]) -> AppConfig:
    project_id = _req(data, "project_id")
    dataset_id = _req(data, "dataset_id")

    tag = _opt(data, "tag", None)

    return AppConfig(
        project_id=str(project_id),
        dataset_id=str(dataset_id),
        table_prefix=str(_opt(data, "table_prefix", "raw")),
        tag=str(tag) if tag else None,
        size_flush_threshold=_positive_int(
            _opt(data, "size_flush_threshold", 100000), "size_flush_threshold"
        ),
        forced_flush_interval_ms=to_millis(
            _opt(data, "forced_flush_interval", 60000), "forced_flush_interval"
        ),
        sink=_sink_config(_opt(data, "sink", None)),
    )


def load_config(path: str = "config.yaml") -> AppConfig:
    p = Path(path)
    data = yaml.safe_load(p.read_text(encoding="utf-8")) or {}
    if not isinstance(data, Mapping):
        raise ValueError(f"Config inválida: '{path}' deve conter um mapa (dict).")
    return parse_config(data)
