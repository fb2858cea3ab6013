# core/run_context.py
import os
import datetime

from core import config


def _run_id_file() -> str:
    return os.path.join(config.DATA_DIR, "current_run_id.txt")


def get_or_create_run_id() -> str:
    """
    Retrieves the active run ID or creates a new one if none exists.
    Persists across app restarts so audit events group by deployment.
    """
    os.makedirs(config.DATA_DIR, exist_ok=True)
    path = _run_id_file()

    if os.path.exists(path):
        with open(path, "r") as f:
            content = f.read().strip()
            if content:
                return content

    run_id = f"run_{datetime.datetime.now(datetime.timezone.utc).strftime('%Y%m%d_%H%M%S')}"
    with open(path, "w") as f:
        f.write(run_id)

    return run_id
