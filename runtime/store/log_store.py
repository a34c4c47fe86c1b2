"""
Event logs for the ChatBridge runtime.

LogStore writes JSON lines to:

    <log_dir>/events_YYYY-MM-DD.jsonl

ConsoleLogStore forwards the same events to the standard logger; it is the
default sink when no data directory is used.
"""

import json
import logging
from datetime import datetime, timezone
from pathlib import Path


logger = logging.getLogger(__name__)


class ConsoleLogStore:
    """Log sink used during local development / testing."""

    def log_event(self, event_type: str, payload: dict) -> None:
        logger.info("[EVENT] %s: %s", event_type, payload)


class LogStore:
    """Append-only, date-partitioned JSONL event log."""

    def __init__(self, log_dir: str = "runtime/data/logs"):
        self.log_dir = Path(log_dir)

    def _log_path(self, now: datetime) -> Path:
        return self.log_dir / f"events_{now:%Y-%m-%d}.jsonl"

    def log_event(self, event_type: str, payload: dict) -> None:
        """Append an event to today's log file."""
        now = datetime.now(timezone.utc)
        record = {
            "timestamp": now.isoformat(),
            "event_type": event_type,
            "payload": payload,
        }

        self.log_dir.mkdir(parents=True, exist_ok=True)
        with self._log_path(now).open("a", encoding="utf-8") as f:
            f.write(json.dumps(record, ensure_ascii=False, default=str))
            f.write("\n")
