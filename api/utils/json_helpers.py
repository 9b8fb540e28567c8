from __future__ import annotations

import uuid
from typing import Any, Dict, Optional, Tuple

from flask import Response, g, jsonify, request


def request_id() -> str:
    rid = getattr(g, "request_id", None)
    if rid:
        return rid
    return request.headers.get("X-Request-Id") or str(uuid.uuid4())


def jerror(message: str, status: int = 400, code: str = "bad_request") -> Tuple[Response, int]:
    return jsonify({"error": message, "code": code, "request_id": request_id()}), status


def jok(data: Any, status: int = 200) -> Tuple[Response, int]:
    return jsonify({"ok": True, "data": data, "request_id": request_id()}), status


def jsuccess(extra: Optional[Dict[str, Any]] = None, status: int = 200) -> Tuple[Response, int]:
    body: Dict[str, Any] = {"success": True}
    if extra:
        body.update(extra)
    return jsonify(body), status
