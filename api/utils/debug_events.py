from __future__ import annotations

import time
from collections import deque
from itertools import count
from threading import Lock
from typing import Any, Deque, Dict, List, Optional

from config import DEBUG_CONSOLE_ENABLED, DEBUG_EVENTS_MAX

_LOCK = Lock()
_EVENTS: Deque[Dict[str, Any]] = deque(maxlen=DEBUG_EVENTS_MAX)
_IDS = count(1)
_ENABLED = bool(DEBUG_CONSOLE_ENABLED)

LEVELS = ("debug", "info", "warn", "error")


def debug_enabled() -> bool:
    return _ENABLED


def set_debug_enabled(enabled: bool) -> None:
    global _ENABLED
    _ENABLED = bool(enabled)


def record_event(
    category: str,
    message: str,
    *,
    data: Optional[Dict[str, Any]] = None,
    request_id: Optional[str] = None,
    level: str = "info",
) -> Dict[str, Any]:
    if not _ENABLED:
        return {}
    with _LOCK:
        event = {
            "id": next(_IDS),
            "ts": time.time(),
            "level": level if level in LEVELS else "info",
            "category": category,
            "message": message,
            "request_id": request_id or "",
            "data": data or {},
        }
        _EVENTS.append(event)
    return event


def list_events(since_id: int = 0, request_id: Optional[str] = None) -> List[Dict[str, Any]]:
    with _LOCK:
        events = [e for e in _EVENTS if e["id"] > since_id]
    if request_id:
        events = [e for e in events if e["request_id"] == request_id]
    return events


def clear_events() -> None:
    with _LOCK:
        _EVENTS.clear()
