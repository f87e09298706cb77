"""Privilege verification for admin bypass paths.

Three independent layers must agree before a user counts as privileged:
the configured email allowlist, the ``users/{uid}/roles`` grant table and the
role claim held by Firebase Auth. Callers only ever see the final boolean.
"""
from __future__ import annotations

import logging
from typing import AbstractSet, Iterable, Optional

from lecturegate.core.config import Settings
from lecturegate.core.errors import PrivilegeVerificationMismatch, StoreUnavailable
from lecturegate.models.domain import PRIVILEGED_ROLES, Role
from lecturegate.services.store_calls import call_store

log = logging.getLogger("auth")


class PrivilegeVerifier:
    def __init__(self, gateway, settings: Settings) -> None:
        self.gateway = gateway
        self.settings = settings

    async def verify_privilege(
        self, user_id: Optional[str], allowed: AbstractSet[Role] = PRIVILEGED_ROLES
    ) -> bool:
        """Re-check every layer against the store right now. Never cached."""
        if not user_id:
            return False
        try:
            role = await self._check_layers(user_id, allowed)
        except PrivilegeVerificationMismatch as exc:
            log.warning(
                "security: privilege mismatch uid=%s layer=%s detail=%s",
                user_id,
                exc.layer,
                exc,
            )
            return False
        except StoreUnavailable as exc:
            log.warning("verify_privilege: store unavailable for uid=%s: %s", user_id, exc)
            return False
        log.info("verify_privilege: uid=%s verified as %s", user_id, role.value)
        return True

    async def _check_layers(self, user_id: str, allowed: Iterable[Role]) -> Role:
        timeout = self.settings.STORE_TIMEOUT_SECONDS
        allowed = set(allowed)

        claimed = await call_store(self.gateway.get_role, user_id, timeout=timeout)
        if claimed not in allowed:
            raise PrivilegeVerificationMismatch(
                "role_claim", f"claim={getattr(claimed, 'value', None)}"
            )

        grants = await call_store(self.gateway.list_role_grants, user_id, timeout=timeout)
        if claimed not in grants:
            raise PrivilegeVerificationMismatch(
                "role_table", f"claim={claimed.value} grants={sorted(g.value for g in grants)}"
            )

        email = await call_store(self.gateway.get_account_email, user_id, timeout=timeout)
        if (email or "").strip().lower() not in self.settings.privileged_emails:
            raise PrivilegeVerificationMismatch("allowlist", f"email={email!r}")

        return claimed
