from __future__ import annotations

from flask import Blueprint, current_app, g

from config import log
from utils.auth_helpers import session_credential_from_request
from utils.errors import ServiceError
from utils.json_helpers import jerror, jsuccess, request_id
from utils.observability import log_event

account_bp = Blueprint("account", __name__)

DELETION_SERVICE_KEY = "account_deletion"


def _deletion_service():
    return current_app.extensions[DELETION_SERVICE_KEY]


@account_bp.post("/delete-account")
def delete_account():
    """
    Permanently deletes the caller's owned data, then their auth identity.
    Header: Authorization: Bearer <access token>. No body; the user id is
    always taken from the token.
    """
    rid = getattr(g, "request_id", None) or request_id()
    try:
        credential = session_credential_from_request()
        _deletion_service().delete_account(credential, request_id=rid)
        return jsuccess()
    except ServiceError as e:
        log.warning("Account deletion failed (%s): %s", e.code, e.message)
        log_event("account", "deletion failed", request_id=rid, level="error", data={"code": e.code})
        return jerror(e.message, e.status, e.code)
    except Exception as e:
        log.exception("Unexpected error during account deletion")
        return jerror(str(e) or "Internal server error", 500, "internal_error")
