import argparse
import logging
import sys
from typing import Iterable, Iterator

from google.auth.exceptions import GoogleAuthError

from config import AppConfig, load_config
from app.collector import BandwidthCollector
from infra.clock import SystemClock
from infra.credentials import load_service_account
from infra.http_row_sink import HttpRowSink
from infra.logging_config import setup_logging
from infra.sinks import PrintRowSink
from infra.table_sink import DatedTableSink

logger = logging.getLogger("fireband")


def build_row_sink(cfg: AppConfig):
    if cfg.sink is None:
        return PrintRowSink()
    credentials = load_service_account(cfg.sink.key_file, cfg.sink.key)
    return HttpRowSink(
        cfg.project_id,
        base_url=cfg.sink.url,
        token=cfg.sink.token,
        credentials=credentials,
        workers=cfg.sink.workers,
        queue_max=cfg.sink.queue_max,
        timeout_sec=cfg.sink.timeout_sec,
        max_retries=cfg.sink.max_retries,
    )


def iter_lines(stream: Iterable[str]) -> Iterator[str]:
    # CRLF: o \r não pode entrar no payload (contaria no tamanho)
    for line in stream:
        yield line.rstrip("\r\n")


def parse_args(argv=None) -> argparse.Namespace:
    p = argparse.ArgumentParser(
        description="Coleta tamanho de leituras/escritas a partir do log de debug do cliente."
    )
    p.add_argument("-c", "--config", default="config.yaml")
    p.add_argument("-i", "--input", default="-", help="arquivo de log ('-' = stdin)")
    p.add_argument("--log-file", default=None)
    p.add_argument("-v", "--verbose", action="store_true")
    return p.parse_args(argv)


def main(argv=None):
    args = parse_args(argv)
    setup_logging(logging.DEBUG if args.verbose else logging.INFO, args.log_file)

    try:
        cfg = load_config(args.config)
    except (OSError, ValueError) as e:
        raise SystemExit(str(e))

    logger.info(
        "[collector] dataset=%s prefix=%s tag=%s size_flush=%d forced_flush_ms=%d sink=%s",
        cfg.dataset_id, cfg.table_prefix, cfg.tag, cfg.size_flush_threshold,
        cfg.forced_flush_interval_ms, cfg.sink.url if cfg.sink else "dry-run",
    )

    # abre a entrada antes de subir ticker/sink: arquivo ausente não deixa nada rodando
    try:
        stream = sys.stdin if args.input == "-" else open(
            args.input, "r", encoding="utf-8", errors="replace"
        )
    except OSError as e:
        raise SystemExit(f"Não foi possível abrir a entrada: {e}")

    try:
        row_sink = build_row_sink(cfg)
    except (OSError, ValueError, GoogleAuthError) as e:
        if stream is not sys.stdin:
            stream.close()
        raise SystemExit(f"Credenciais inválidas: {e}")

    clock = SystemClock()
    if isinstance(row_sink, HttpRowSink):
        row_sink.start()

    collector = BandwidthCollector(
        cfg.flush_policy(),
        DatedTableSink(row_sink, clock, dataset_id=cfg.dataset_id, table_prefix=cfg.table_prefix),
        clock,
    )
    collector.start()

    try:
        for line in iter_lines(stream):
            collector.collect_log(line)
    except KeyboardInterrupt:
        pass
    finally:
        try:
            collector.stop()
        finally:
            try:
                if isinstance(row_sink, HttpRowSink):
                    row_sink.stop()
            finally:
                if stream is not sys.stdin:
                    stream.close()


if __name__ == "__main__":
    main()
