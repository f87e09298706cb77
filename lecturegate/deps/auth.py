import logging
from typing import Any, Dict, Optional

from fastapi import Depends, Header, HTTPException
from firebase_admin import auth as admin_auth

from lecturegate.core.config import get_settings
from lecturegate.deps.services import get_gateway
from lecturegate.models.domain import Role, User
from lecturegate.services.firebase_client import get_firebase_app
from lecturegate.services.store_calls import call_store

log = logging.getLogger("auth")


def _bearer_token(authorization: Optional[str]) -> Optional[str]:
    if not authorization or not authorization.startswith("Bearer "):
        return None
    token = authorization.split(" ", 1)[1].strip()
    return token or None


def _verify_id_token(id_token: str) -> Dict[str, Any]:
    try:
        decoded = admin_auth.verify_id_token(
            id_token,
            app=get_firebase_app(),
            clock_skew_seconds=get_settings().TOKEN_CLOCK_SKEW_SECONDS,
        )
    except Exception as e:
        log.warning("verify_id_token failed: %s", e)
        raise HTTPException(status_code=401, detail="Invalid token")
    log.info("verified uid=%s email=%s", decoded.get("uid"), decoded.get("email"))
    return decoded


async def get_token_claims(authorization: Optional[str] = Header(default=None)) -> Dict[str, Any]:
    token = _bearer_token(authorization)
    if not token:
        log.warning("get_token_claims: missing/invalid Authorization header")
        raise HTTPException(status_code=401, detail="Missing token")
    return _verify_id_token(token)


async def get_optional_claims(
    authorization: Optional[str] = Header(default=None),
) -> Optional[Dict[str, Any]]:
    # No header means anonymous; a bad token is still rejected
    if authorization is None:
        return None
    token = _bearer_token(authorization)
    if not token:
        raise HTTPException(status_code=401, detail="Invalid token")
    return _verify_id_token(token)


async def _load_user(claims: Dict[str, Any], gateway) -> User:
    uid = claims["uid"]
    profile = await call_store(gateway.get_user, uid, timeout=get_settings().STORE_TIMEOUT_SECONDS)
    if profile is None:
        # signup default; privileged paths are re-verified against the store anyway
        return User(id=uid, email=claims.get("email"), role=Role.STUDENT)
    if not profile.email:
        profile.email = claims.get("email")
    return profile


async def get_current_user(
    claims: Dict[str, Any] = Depends(get_token_claims),
    gateway=Depends(get_gateway),
) -> User:
    return await _load_user(claims, gateway)


async def get_optional_user(
    claims: Optional[Dict[str, Any]] = Depends(get_optional_claims),
    gateway=Depends(get_gateway),
) -> Optional[User]:
    if claims is None:
        return None
    return await _load_user(claims, gateway)
