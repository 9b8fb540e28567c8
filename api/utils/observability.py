from __future__ import annotations

from typing import Any, Dict, Optional

from utils.debug_events import record_event


def log_event(
    category: str,
    message: str,
    *,
    user_id: Optional[str] = None,
    request_id: Optional[str] = None,
    level: str = "info",
    data: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    payload = dict(data or {})
    if user_id:
        payload["user_id"] = user_id
    return record_event(
        category,
        message,
        data=payload,
        request_id=request_id,
        level=level,
    )
