"""
Pipeline event logging (Tier 2 logging).

Appends one JSON object per line to the pipeline event log so that runs of the
planner and the repair loop can be followed across processes.

For detailed within-context logging (Tier 1), use quiver.utils.logger instead.

Usage:
    from quiver.utils.event_logging import log_pipeline_event

    log_pipeline_event(
        event_type="repair_iteration",
        run_name="MLEng_AcmeCorp",
        source="repair",
        iteration=2,
        violations=3,
    )
"""

import json
import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from quiver.utils.timestamp import now_exact

load_dotenv()
LOGS_PATH = Path(os.getenv("LOGS_PATH", "outs/logs"))
PIPELINE_EVENTS_FILE = Path(
    os.getenv("PIPELINE_EVENTS_FILE", str(LOGS_PATH / "pipeline_events.log"))
)


def log_pipeline_event(
    event_type: str,
    run_name: str,
    source: str,
    events_file: Optional[Path] = None,
    **extra_fields,
) -> None:
    """
    Append an event to the pipeline event log.

    Args:
        event_type: Kind of event (e.g. "plan_selected", "repair_iteration")
        run_name: Identifier of the resume run
        source: Emitting context ("targeting", "repair", "cli")
        events_file: Override for PIPELINE_EVENTS_FILE
        **extra_fields: Event-specific fields (must be JSON serializable)
    """
    events_file = events_file or PIPELINE_EVENTS_FILE
    events_file.parent.mkdir(parents=True, exist_ok=True)

    event = {
        "timestamp": now_exact(),
        "event_type": event_type,
        "run_name": run_name,
        "source": source,
        **extra_fields,
    }

    with open(events_file, "a", encoding="utf-8") as f:
        f.write(json.dumps(event) + "\n")


def get_recent_events(
    n: int = 10,
    run_name: Optional[str] = None,
    event_type: Optional[str] = None,
    events_file: Optional[Path] = None,
) -> list[dict]:
    """
    Return the last n events, optionally filtered by run name and event type.

    Malformed lines are skipped.
    """
    events_file = events_file or PIPELINE_EVENTS_FILE
    if not events_file.exists():
        return []

    events = []
    with open(events_file, encoding="utf-8") as f:
        for line in f:
            line = line.strip()
            if not line:
                continue
            try:
                event = json.loads(line)
            except json.JSONDecodeError:
                continue
            if run_name and event.get("run_name") != run_name:
                continue
            if event_type and event.get("event_type") != event_type:
                continue
            events.append(event)

    return events[-n:]
