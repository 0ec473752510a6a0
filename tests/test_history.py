"""Tests for run history persistence."""

import json
from datetime import UTC, datetime, timedelta
from pathlib import Path
from unittest.mock import patch

from src.sla.history import MAX_HISTORY_ENTRIES, RunHistoryStore, build_run_record
from src.sla.models import RunMetric, RunRecord, ValidationResult

_T0 = datetime(2025, 1, 15, 10, 0, tzinfo=UTC)


def _record(n: int) -> RunRecord:
    return RunRecord(
        id=f"run-{n}",
        timestamp=(_T0 + timedelta(minutes=n)).isoformat(),
        metrics={"P95 Response Time (ms)": RunMetric(actual=f"{100 + n}.00", threshold="<= 500", passed=True)},
        passed_count=1,
    )


class TestBuildRunRecord:
    def test_counts_and_metrics(self) -> None:
        results = [
            ValidationResult(metric="P95 Response Time (ms)", actual="600.00", threshold="<= 500", passed=False),
            ValidationResult(metric="Error Rate (%)", actual="0.50", threshold="<= 1", passed=True),
        ]
        record = build_run_record(results, profile="smoke", target_url="https://app.test", duration="12.00s", now=_T0)
        assert record.id.startswith(f"run-{int(_T0.timestamp() * 1000)}-")
        assert record.timestamp == _T0.isoformat()
        assert record.profile == "smoke"
        assert record.passed_count == 1
        assert record.failed_count == 1
        assert record.metrics["P95 Response Time (ms)"] == RunMetric(actual="600.00", threshold="<= 500", passed=False)

    def test_ids_unique_within_same_millisecond(self) -> None:
        first = build_run_record([], now=_T0)
        second = build_run_record([], now=_T0)
        assert first.id != second.id

    def test_defaults(self) -> None:
        record = build_run_record([])
        assert record.profile == "default"
        assert record.metrics == {}
        assert record.id.startswith("run-")


class TestRunHistoryStore:
    def test_missing_file_is_empty(self, tmp_path: Path) -> None:
        assert RunHistoryStore(tmp_path / "history.json").load() == []

    def test_append_and_reload(self, tmp_path: Path) -> None:
        store = RunHistoryStore(tmp_path / "reports" / "history.json")
        store.append(_record(1))
        history = store.append(_record(2))
        assert [r.id for r in history] == ["run-1", "run-2"]
        assert store.load() == history

    def test_file_is_json_list(self, tmp_path: Path) -> None:
        path = tmp_path / "history.json"
        RunHistoryStore(path).append(_record(1))
        raw = json.loads(path.read_text())
        assert isinstance(raw, list)
        assert raw[0]["id"] == "run-1"
        assert raw[0]["metrics"]["P95 Response Time (ms)"]["actual"] == "101.00"

    def test_eviction_at_cap(self, tmp_path: Path) -> None:
        store = RunHistoryStore(tmp_path / "history.json")
        for n in range(MAX_HISTORY_ENTRIES):
            store.append(_record(n))
        history = store.append(_record(MAX_HISTORY_ENTRIES))
        assert len(history) == MAX_HISTORY_ENTRIES
        assert history[0].id == "run-1"
        assert history[-1].id == f"run-{MAX_HISTORY_ENTRIES}"
        assert len(store.load()) == MAX_HISTORY_ENTRIES

    def test_corrupt_file_reads_empty(self, tmp_path: Path) -> None:
        path = tmp_path / "history.json"
        path.write_text("{corrupt")
        store = RunHistoryStore(path)
        assert store.load() == []
        assert [r.id for r in store.append(_record(1))] == ["run-1"]

    def test_undecodable_bytes_read_empty(self, tmp_path: Path) -> None:
        path = tmp_path / "history.json"
        path.write_bytes(b"\xff\xfe[garbage")
        store = RunHistoryStore(path)
        assert store.load() == []
        assert [r.id for r in store.append(_record(1))] == ["run-1"]
        assert [r.id for r in store.load()] == ["run-1"]

    def test_wrong_shape_reads_empty(self, tmp_path: Path) -> None:
        path = tmp_path / "history.json"
        path.write_text(json.dumps({"runs": []}))
        assert RunHistoryStore(path).load() == []

    def test_write_failure_returns_history(self, tmp_path: Path) -> None:
        store = RunHistoryStore(tmp_path / "history.json")
        with patch("src.sla.history.tempfile.mkstemp", side_effect=OSError("read-only")):
            history = store.append(_record(1))
        assert [r.id for r in history] == ["run-1"]
        assert not (tmp_path / "history.json").exists()

    def test_failed_replace_cleans_temp_file(self, tmp_path: Path) -> None:
        store = RunHistoryStore(tmp_path / "history.json")
        with patch("src.sla.history.os.replace", side_effect=OSError("disk full")):
            store.append(_record(1))
        assert list(tmp_path.glob("*.tmp")) == []
