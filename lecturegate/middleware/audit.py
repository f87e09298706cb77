import logging
import time
from datetime import datetime, timezone
from typing import Awaitable, Callable, Optional

from fastapi import Request, Response
from firebase_admin import auth as admin_auth

from lecturegate.core.config import get_settings
from lecturegate.services.firebase_client import get_firebase_app, get_firestore_client

log = logging.getLogger("audit")

_db = None


def _db_client():
    global _db
    if _db is None:
        _db = get_firestore_client()
    return _db


def _extract_uid_from_auth_header(request: Request) -> Optional[str]:
    auth_header = request.headers.get("authorization")
    if not auth_header or not auth_header.startswith("Bearer "):
        return None
    token = auth_header.split(" ", 1)[1]
    try:
        decoded = admin_auth.verify_id_token(token, app=get_firebase_app())
        return decoded.get("uid")
    except Exception:
        return None  # best-effort only


async def audit_middleware(request: Request, call_next: Callable[[Request], Awaitable[Response]]) -> Response:
    started = time.perf_counter()
    status = 500
    try:
        response = await call_next(request)
        status = response.status_code
        return response
    finally:
        record = {
            "ts": datetime.now(timezone.utc).isoformat(),
            "method": request.method,
            "path": request.url.path,
            "status": status,
            "duration_ms": int((time.perf_counter() - started) * 1000),
            "ip": request.client.host if request.client else None,
        }

        if get_settings().AUDIT_TO_FIRESTORE:
            record["uid"] = _extract_uid_from_auth_header(request)
            try:
                _db_client().collection("audit_logs").add(record)
            except Exception as e:
                # Don't break requests on audit failures
                log.error("Firestore audit write failed: %s | record=%s", e, record)
        else:
            log.info("%s", record)
