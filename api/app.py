from __future__ import annotations

import time
import uuid
from typing import Optional

from flask import Flask, g, request, got_request_exception
from flask_cors import CORS

from config import FLASK_SECRET, SUPABASE_SERVICE_ROLE_KEY
from schemas.account import ServiceCredential
from services.account_service import AccountDeletionService
from utils.debug_events import debug_enabled, record_event
from utils.error_handlers import register_error_handlers

CORS_ALLOW_HEADERS = ["Content-Type", "Authorization", "X-Client-Info", "Apikey", "X-Request-Id"]


def build_deletion_service() -> AccountDeletionService:
    from clients.supabase_auth_client import SupabaseAuthClient
    from storage.account_data_store import build_account_data_store

    return AccountDeletionService(
        identity=SupabaseAuthClient(),
        data_store=build_account_data_store(),
        service_credential=ServiceCredential(SUPABASE_SERVICE_ROLE_KEY),
    )


def create_app(deletion_service: Optional[AccountDeletionService] = None) -> Flask:
    app = Flask(__name__)
    app.secret_key = FLASK_SECRET
    CORS(
        app,
        resources={r"/delete-account": {"origins": "*"}},
        methods=["POST", "OPTIONS"],
        allow_headers=CORS_ALLOW_HEADERS,
    )

    @app.before_request
    def _request_start():
        rid = request.headers.get("X-Request-Id") or str(uuid.uuid4())
        g.request_id = rid
        g.request_start_ts = time.time()
        record_event(
            "request",
            f"{request.method} {request.path} start",
            data={"method": request.method, "path": request.path},
            request_id=rid,
        )

    @app.after_request
    def _request_end(response):
        rid = getattr(g, "request_id", None)
        start_ts = getattr(g, "request_start_ts", None)
        duration_ms = int((time.time() - start_ts) * 1000) if start_ts else None
        response.headers["X-Request-Id"] = rid or response.headers.get("X-Request-Id", "")
        record_event(
            "request",
            f"{request.method} {request.path} end",
            data={"status": response.status_code, "duration_ms": duration_ms},
            request_id=rid,
        )
        return response

    def _log_exception(sender, exception, **extra):
        if not debug_enabled():
            return
        record_event(
            "error",
            f"{type(exception).__name__}",
            data={"error": str(exception), "path": request.path},
            request_id=getattr(g, "request_id", None),
            level="error",
        )

    got_request_exception.connect(_log_exception, app)

    # Register blueprints
    from routes.account import DELETION_SERVICE_KEY, account_bp
    from routes.debug import debug_bp
    from routes.meta import meta_bp

    app.register_blueprint(account_bp)
    app.register_blueprint(meta_bp)
    app.register_blueprint(debug_bp)

    app.extensions[DELETION_SERVICE_KEY] = deletion_service or build_deletion_service()

    register_error_handlers(app)
    return app
