from __future__ import annotations

import logging
import re
from typing import Callable, Dict, Optional

from domain.models import (
    DEBUG_PATH,
    PROTOCOL_PATH,
    ClassificationResult,
    Ignored,
    OffsetUpdate,
    Operation,
    ParsedEvent,
    WireSizeEstimate,
)

logger = logging.getLogger(__name__)


TIME_OFFSET_RE = re.compile(r"^event: /\.info/serverTimeOffset:value:(-?\d+)")
LOG_RE = re.compile(r"^p:\d+: ([^{]*)(\{.*)")
READ_RE = re.compile(r"^(from server:|handleServerMessage) (\w*)")
READ_PATH_RE = re.compile(r'^\{"p":"([^"]*)"')
WRITE_RE = re.compile(r'^\{"r":\d+,"a":"(\w+)","b":\{("p":"([^"]+))?"')

FROM_SERVER = "from server:"

# resolve o path de uma leitura a partir do payload; None = descartar
ReadPathResolver = Callable[[str, str], Optional[str]]
# resolve o path de uma escrita a partir do path capturado (pode faltar)
WritePathResolver = Callable[[str, Optional[str]], Optional[str]]


def _read_path_from_payload(payload: str, prefix: str) -> Optional[str]:
    m = READ_PATH_RE.match(payload)
    if not m:
        logger.warning("No path found in message: %s %s", prefix, payload)
        return None
    return "/" + m.group(1)


def _write_path_required(payload: str, path: Optional[str]) -> Optional[str]:
    if not path:
        logger.warning("No path found in message: %s", payload)
        return None
    if not path.startswith("/"):
        logger.warning("Path without leading / in message: %s", payload)
        return None
    return path


def _fixed(path: str) -> Callable[[str, object], str]:
    return lambda _payload, _extra: path


READ_RESOLVERS: Dict[str, ReadPathResolver] = {
    "d": _read_path_from_payload,   # data
    "m": _read_path_from_payload,   # child moved
    "": _fixed(PROTOCOL_PATH),      # resposta de request
    "sd": _fixed(DEBUG_PATH),       # debug info
}

WRITE_RESOLVERS: Dict[str, WritePathResolver] = {
    "m": _write_path_required,      # update
    "p": _write_path_required,      # set, remove, transaction
    "q": _fixed(PROTOCOL_PATH),     # listen
    "l": _fixed(PROTOCOL_PATH),     # outro tipo de listen
    "n": _fixed(PROTOCOL_PATH),     # unlisten
    "auth": _fixed(PROTOCOL_PATH),
    "s": _fixed(PROTOCOL_PATH),     # stats
}


class LineClassifier:
    """
    Classifica uma linha de debug do protocolo em leitura/escrita.

    Linhas malformadas ou de tipo desconhecido viram Ignored (com log);
    nunca levanta exceção por causa do conteúdo da linha.
    O offset de relógio não é escrito aqui: quem chama aplica o OffsetUpdate.
    """

    def __init__(
        self,
        sizes: WireSizeEstimate | None = None,
        *,
        read_resolvers: Dict[str, ReadPathResolver] | None = None,
        write_resolvers: Dict[str, WritePathResolver] | None = None,
    ):
        self.sizes = sizes or WireSizeEstimate()
        self._read_resolvers = dict(READ_RESOLVERS if read_resolvers is None else read_resolvers)
        self._write_resolvers = dict(WRITE_RESOLVERS if write_resolvers is None else write_resolvers)

    def classify(self, line: str) -> ClassificationResult:
        m = LOG_RE.match(line)
        if not m:
            offset = TIME_OFFSET_RE.match(line)
            if offset:
                return OffsetUpdate(offset_ms=int(offset.group(1)))
            return Ignored

        prefix, payload = m.group(1), m.group(2)
        if prefix:
            return self._parse_read(prefix, payload)
        return self._parse_write(payload)

    def _parse_read(self, prefix: str, payload: str) -> ClassificationResult:
        details = READ_RE.match(prefix)
        if not details:
            # redundante com outras linhas do log
            return Ignored

        message_type = _read_message_type(details)
        size = len(payload) + self.sizes.message_overhead_bytes
        if message_type:
            size += self.sizes.type_tag_overhead_bytes + len(message_type)

        resolver = self._read_resolvers.get(message_type)
        if resolver is None:
            logger.warning("Unknown read type: %s", message_type)
            return Ignored

        path = resolver(payload, prefix)
        if path is None:
            return Ignored
        return ParsedEvent(operation=Operation.READ, path=path, size_bytes=size)

    def _parse_write(self, payload: str) -> ClassificationResult:
        details = WRITE_RE.match(payload)
        if not details:
            logger.warning("Failed to match write log: %s", payload)
            return Ignored

        action, path = details.group(1), details.group(3)
        resolver = self._write_resolvers.get(action)
        if resolver is None:
            logger.warning("Unknown write type: %s", action)
            return Ignored

        resolved = resolver(payload, path)
        if resolved is None:
            return Ignored
        return ParsedEvent(
            operation=Operation.WRITE,
            path=resolved,
            size_bytes=len(payload) + self.sizes.message_overhead_bytes,
        )


def _read_message_type(details: re.Match) -> str:
    if details.group(1) == FROM_SERVER:
        return ""
    return details.group(2)
