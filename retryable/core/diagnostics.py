import json
import os
from dataclasses import dataclass
from datetime import datetime, timezone

from retryable import config


# === Step Logger ===
def log_step(step_name, message):
    """
    Append one entry to the JSON step log.
    Best-effort: a broken or unwritable log file must never fail a test run.
    """
    log_file = config.log_file()
    log_entry = {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "step": step_name,
        "message": message,
    }
    try:
        os.makedirs(os.path.dirname(log_file) or ".", exist_ok=True)
        logs = _load_logs(log_file)
        logs.append(log_entry)
        with open(log_file, "w", encoding="utf-8") as f:
            json.dump(logs, f, indent=2)
    except OSError:
        pass


def _load_logs(path):
    if not os.path.exists(path):
        return []
    with open(path, "r", encoding="utf-8") as f:
        try:
            logs = json.load(f)
        except ValueError:
            return []
    return logs if isinstance(logs, list) else []


# === Attachments ===
@dataclass(frozen=True)
class Attachment:
    """Developer-facing diagnostic kept on the test instance that produced it."""
    name: str
    text: str


def flake_attachment(policy, retry_count, description, location, expected) -> Attachment:
    text = "\n\n".join([
        "Flaky test failed.",
        f"Flakiness: {policy.describe()}",
        f"Retry count: {retry_count}",
        f"Description: {description}",
        f"Location: {location}",
        f"Expected: {expected}",
    ])
    return Attachment(name="Flaky test failed, queuing to re-run.", text=text)
