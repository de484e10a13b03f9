from __future__ import annotations

import logging
import queue
import threading
import time
from dataclasses import dataclass
from typing import Dict, List, Optional

import httpx

from google.auth.credentials import Credentials
from google.auth.exceptions import GoogleAuthError
from google.auth.transport.requests import Request

from domain.ports import Row, RowSink

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://bigquery.googleapis.com/bigquery/v2"

# status que valem nova tentativa; o resto é erro definitivo
RETRY_STATUS = {408, 429, 500, 502, 503, 504}


@dataclass(frozen=True)
class InsertJob:
    dataset_id: str
    table: str
    rows: List[Row]


class HttpRowSink(RowSink):
    """
    Insere lotes de linhas via HTTP no formato tabledata.insertAll.

    insert() só enfileira e nunca bloqueia: com a fila cheia o lote é descartado.
    Workers fazem o POST com retry/backoff para falhas transitórias; se esgotar
    as tentativas, o lote é descartado e logado.

    Autenticação: `credentials` (google-auth, renovadas antes de expirar) ou um
    `token` fixo.
    """

    def __init__(
        self,
        project_id: str,
        *,
        base_url: str = DEFAULT_BASE_URL,
        token: Optional[str] = None,
        credentials: Optional[Credentials] = None,
        auth_request: Optional[Request] = None,
        workers: int = 1,
        queue_max: int = 1000,
        timeout_sec: float = 10.0,
        max_retries: int = 3,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self._project_id = project_id
        self._base_url = base_url.rstrip("/")
        self._token = token
        self._credentials = credentials
        self._auth_request = auth_request
        self._auth_lock = threading.Lock()
        self._timeout = timeout_sec
        self._max_retries = max_retries
        self._transport = transport

        self._q: queue.Queue[InsertJob | _Stop] = queue.Queue(maxsize=queue_max)
        self._workers = workers
        self._threads: list[threading.Thread] = []
        self._client: Optional[httpx.Client] = None
        self._started = False

        self._stats_lock = threading.Lock()
        self.total_batches = 0
        self.total_dropped = 0
        self.total_failed = 0
        self.total_sent = 0

    def start(self) -> None:
        if self._started:
            return
        self._client = httpx.Client(timeout=self._timeout, transport=self._transport)
        self._threads = []
        for i in range(self._workers):
            t = threading.Thread(target=self._worker, args=(i,), name=f"row-sink-{i}", daemon=True)
            t.start()
            self._threads.append(t)
        self._started = True

    def stop(self) -> None:
        if not self._started:
            return
        # os _Stop entram depois dos jobs pendentes (FIFO)
        for _ in self._threads:
            self._q.put(_Stop())
        for t in self._threads:
            t.join(timeout=self._timeout * (self._max_retries + 1))
        self._threads.clear()
        self._started = False
        if self._client:
            self._client.close()
            self._client = None

    def url_for(self, dataset_id: str, table: str) -> str:
        return (
            f"{self._base_url}/projects/{self._project_id}"
            f"/datasets/{dataset_id}/tables/{table}/insertAll"
        )

    def insert(self, dataset_id: str, table: str, rows: List[Row]) -> None:
        if not self._started:
            raise RuntimeError("HttpRowSink.insert called before start()")

        job = InsertJob(dataset_id=dataset_id, table=table, rows=list(rows))
        self._count("total_batches")

        # chamado dentro do flush(): não pode bloquear quem faz push
        try:
            self._q.put_nowait(job)
        except queue.Full:
            self._count("total_dropped")
            logger.error("Row sink queue full; dropping %d rows for %s", len(job.rows), table)

    def _auth_headers(self) -> Dict[str, str]:
        if self._credentials is not None:
            # workers compartilham as credenciais; só um renova por vez
            with self._auth_lock:
                if not self._credentials.valid:
                    if self._auth_request is None:
                        self._auth_request = Request()
                    self._credentials.refresh(self._auth_request)
                return {"Authorization": f"Bearer {self._credentials.token}"}
        if self._token:
            return {"Authorization": f"Bearer {self._token}"}
        return {}

    def _count(self, attr: str) -> None:
        with self._stats_lock:
            setattr(self, attr, getattr(self, attr) + 1)

    def _worker(self, wid: int) -> None:
        assert self._client is not None

        while True:
            item = self._q.get()
            try:
                if isinstance(item, _Stop):
                    return
                self._send(item)
            finally:
                self._q.task_done()

    def _send(self, job: InsertJob) -> None:
        assert self._client is not None
        url = self.url_for(job.dataset_id, job.table)
        payload = {"rows": [{"json": row} for row in job.rows]}

        attempt = 0
        while True:
            try:
                r = self._client.post(url, json=payload, headers=self._auth_headers())
                if r.status_code in RETRY_STATUS:
                    r.raise_for_status()
                if r.is_error:
                    # erro definitivo: não adianta repetir
                    self._count("total_failed")
                    logger.error(
                        "Error sending bandwidth data to %s: HTTP %d %s",
                        job.table, r.status_code, r.text,
                    )
                    return
                insert_errors = _insert_errors(r)
                if insert_errors:
                    self._count("total_failed")
                    logger.error("Error sending bandwidth data to %s: %s", job.table, insert_errors)
                    return
                self._count("total_sent")
                return
            except (httpx.HTTPError, GoogleAuthError) as e:
                attempt += 1
                if attempt > self._max_retries:
                    # gave up: reenfileirar com o sink fora do ar pode virar loop
                    self._count("total_failed")
                    logger.error(
                        "Error sending bandwidth data to %s after %d attempts: %s",
                        job.table, attempt, e,
                    )
                    return
                time.sleep(min(0.25 * (2 ** (attempt - 1)), 2.0))


def _insert_errors(r: httpx.Response) -> list:
    if not r.content:
        return []
    try:
        body = r.json()
    except ValueError:
        return []
    if not isinstance(body, dict):
        return []
    return list(body.get("insertErrors") or [])


class _Stop:
    pass
