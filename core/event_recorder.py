# core/event_recorder.py
"""
Append-only audit log of person changes.

One JSON object per line in {LOG_DIR}/events.jsonl. Event types:
RUN_START, RUN_END, PERSON_CREATED, PERSON_UPDATED, PERSON_DELETED,
CLEANUP_FAILED.
"""
import datetime
import json
import logging
import os
import threading
from typing import Any, Dict

from core import config
from core.run_context import get_or_create_run_id

SCHEMA_VERSION = 1

logger = logging.getLogger(__name__)

_lock = threading.Lock()
_recorder = None


class EventRecorder:
    def __init__(self, log_dir: str | None = None):
        self.run_id = get_or_create_run_id()
        log_dir = log_dir or config.LOG_DIR
        os.makedirs(log_dir, exist_ok=True)
        self.log_path = os.path.join(log_dir, "events.jsonl")

    def record(self, event_type: str, payload: Dict[str, Any], actor: str = "user"):
        """
        Writes a structured, immutable event to the log.
        """
        entry = {
            "schema_version": SCHEMA_VERSION,
            "timestamp": datetime.datetime.now(datetime.timezone.utc).isoformat(),
            "run_id": self.run_id,
            "event_type": event_type,
            "actor": actor,
            "payload": payload,
        }

        try:
            with _lock:
                with open(self.log_path, "a", encoding="utf-8") as f:
                    f.write(json.dumps(entry, default=str) + "\n")
                    f.flush()
        except OSError as e:
            # Never fail a request because the audit write failed
            logger.warning(f"Event logging failed: {e}")


def get_event_recorder() -> EventRecorder:
    """Singleton accessor for the recorder."""
    global _recorder
    if _recorder is None:
        _recorder = EventRecorder()
    return _recorder
