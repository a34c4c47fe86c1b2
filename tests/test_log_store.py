import json
import logging

from runtime.store.log_store import ConsoleLogStore, LogStore


def test_events_are_appended_as_json_lines(tmp_path):
    store = LogStore(log_dir=str(tmp_path / "logs"))

    store.log_event("session_created", {"chat_id": "a", "thread_id": "thread_1"})
    store.log_event("exchange_completed", {"chat_id": "a", "run_id": "run_1"})

    [log_file] = list((tmp_path / "logs").glob("events_*.jsonl"))
    records = [json.loads(line) for line in log_file.read_text(encoding="utf-8").splitlines()]
    assert [r["event_type"] for r in records] == ["session_created", "exchange_completed"]
    assert records[1]["payload"] == {"chat_id": "a", "run_id": "run_1"}
    assert "timestamp" in records[0]


def test_console_store_uses_logging(caplog):
    with caplog.at_level(logging.INFO, logger="runtime.store.log_store"):
        ConsoleLogStore().log_event("unsupported_input", {"chat_id": "x"})

    assert "unsupported_input" in caplog.text
