import contextvars
import json
import os
from pathlib import Path
from typing import Any, Dict, Optional

from .logging import get_logger

# Path to the log file; can be overridden via EVENT_LOG_PATH env var or set_log_path.
_LOG_PATH: Optional[Path] = (
    Path(os.environ["EVENT_LOG_PATH"]) if os.environ.get("EVENT_LOG_PATH") else None
)

_current_turn_id: contextvars.ContextVar[Optional[str]] = contextvars.ContextVar(
    "current_turn_id", default=None
)

logger = get_logger("clinic.events")


def set_log_path(path: Optional[str | Path]) -> None:
    """Override the log file path; None disables the event log."""
    global _LOG_PATH
    _LOG_PATH = Path(path) if path else None


def get_log_path() -> Optional[Path]:
    """Return the current log file path."""
    return _LOG_PATH


def set_turn_id(turn_id: str) -> None:
    """Set the active turn identifier for subsequent events."""
    _current_turn_id.set(turn_id)


def log_event(event: str, data: Dict[str, Any], *, turn_id: Optional[str] = None) -> None:
    """Append an event to the log as a JSON line.

    Parameters
    ----------
    event:
        Type of the event (e.g., "turn", "booking_committed").
    data:
        JSON-serializable payload.
    turn_id:
        Optional explicit turn identifier. If omitted, the previously set
        turn id (via :func:`set_turn_id`) is used.
    """
    if _LOG_PATH is None:
        return
    tid = turn_id if turn_id is not None else _current_turn_id.get()
    record = {"turn_id": tid, "event": event, **data}
    try:
        _LOG_PATH.parent.mkdir(parents=True, exist_ok=True)
        with _LOG_PATH.open("a", encoding="utf-8") as f:
            json.dump(record, f, ensure_ascii=False, default=str)
            f.write("\n")
    except OSError as e:
        logger.warning(f"event log write failed for {event}: {e}")
