"""
Tests for YAML config loading.
"""

import pytest

from config import load_config, parse_config, to_millis


def write(tmp_path, text):
    p = tmp_path / "config.yaml"
    p.write_text(text, encoding="utf-8")
    return str(p)


class TestLoadConfig:
    """Defaults and overrides."""

    def test_defaults(self, tmp_path):
        cfg = load_config(write(tmp_path, "project_id: proj\ndataset_id: bw\n"))

        assert cfg.project_id == "proj"
        assert cfg.dataset_id == "bw"
        assert cfg.table_prefix == "raw"
        assert cfg.tag is None
        assert cfg.size_flush_threshold == 100000
        assert cfg.forced_flush_interval_ms == 60000
        assert cfg.sink is None

    def test_full_config(self, tmp_path):
        cfg = load_config(write(tmp_path, """
project_id: proj
dataset_id: bw
table_prefix: traffic
tag: mobile
size_flush_threshold: 5000
forced_flush_interval: 30s
sink:
  url: https://bq.example/v2
  token: abc
  workers: 2
  max_retries: 5
  key_file: /etc/fireband/sa.json
"""))

        assert cfg.table_prefix == "traffic"
        assert cfg.forced_flush_interval_ms == 30000
        assert cfg.sink.url == "https://bq.example/v2"
        assert cfg.sink.token == "abc"
        assert cfg.sink.workers == 2
        assert cfg.sink.max_retries == 5
        assert cfg.sink.key_file == "/etc/fireband/sa.json"
        assert cfg.sink.key is None

        policy = cfg.flush_policy()
        assert policy.size_threshold_bytes == 5000
        assert policy.forced_flush_interval_ms == 30000
        assert policy.tag == "mobile"

    @pytest.mark.parametrize("missing", ["project_id", "dataset_id"])
    def test_required_fields(self, missing):
        data = {"project_id": "p", "dataset_id": "d"}
        del data[missing]
        with pytest.raises(ValueError, match=missing):
            parse_config(data)

    def test_sink_without_url_is_dry_run(self):
        cfg = parse_config({"project_id": "p", "dataset_id": "d", "sink": {"workers": 3}})
        assert cfg.sink is None

    def test_non_positive_threshold_rejected(self):
        with pytest.raises(ValueError):
            parse_config({"project_id": "p", "dataset_id": "d", "size_flush_threshold": 0})


class TestDurations:
    """Interval parsing."""

    @pytest.mark.parametrize("raw,expected", [
        (60000, 60000),
        ("500ms", 500),
        ("30s", 30000),
        ("1m", 60000),
        ("1.5m", 90000),
        ("2h", 7200000),
        ("250", 250),
    ])
    def test_valid(self, raw, expected):
        assert to_millis(raw, "x") == expected

    @pytest.mark.parametrize("raw", ["soon", "-1s", 0, True])
    def test_invalid(self, raw):
        with pytest.raises(ValueError):
            to_millis(raw, "x")


class TestSinkCredentials:
    """Service-account key settings."""

    def test_inline_key(self):
        key = '{"type": "service_account"}'
        cfg = parse_config({"project_id": "p", "dataset_id": "d", "sink": {"url": "u", "key": key}})

        assert cfg.sink.key == key
        assert cfg.sink.key_file is None

    def test_key_must_be_json_text(self):
        with pytest.raises(ValueError, match="sink.key"):
            parse_config({"project_id": "p", "dataset_id": "d", "sink": {"url": "u", "key": {"type": "x"}}})
