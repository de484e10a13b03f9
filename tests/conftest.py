"""
Shared fixtures: fake clock and recording sinks.
"""

import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))


class FakeClock:
    def __init__(self, now: float = 1_700_000_000.0):
        self.now = float(now)

    def now_epoch(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class RecordingBatchSink:
    def __init__(self):
        self.batches = []

    def deliver(self, events):
        self.batches.append(list(events))


class RecordingRowSink:
    def __init__(self):
        self.inserts = []

    def insert(self, dataset_id, table, rows):
        self.inserts.append((dataset_id, table, list(rows)))


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def batch_sink():
    return RecordingBatchSink()


@pytest.fixture
def row_sink():
    return RecordingRowSink()
