from __future__ import annotations

from collections import Counter
from typing import List

from domain.ports import Row, RowSink


class PrintRowSink(RowSink):
    """
    Sink de "dry run": não envia nada, só imprime um resumo do lote.
    Usado quando não há sink.url na config.
    """

    def __init__(self, top_n: int = 10):
        self.top_n = top_n

    def insert(self, dataset_id: str, table: str, rows: List[Row]) -> None:
        total = sum(int(r.get("size", 0)) for r in rows)
        by_path: Counter[str] = Counter()
        for r in rows:
            by_path[f"{r.get('op')} {r.get('path')}"] += int(r.get("size", 0))

        lines = [f"[{dataset_id}.{table}] rows={len(rows):,} bytes={total:,}"]
        if self.top_n > 0:
            lines.append("TOP paths by bytes: op path | bytes")
            for key, size in by_path.most_common(self.top_n):
                lines.append(f"  {key} | {size:>10,}")

        print("\n".join(lines) + "\n", flush=True)
