from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Awaitable, Callable, Dict, Optional

from lecturegate.core.config import Settings
from lecturegate.core.errors import ACCESS_CHECK_MESSAGE, AccessCheckFailed, StoreUnavailable
from lecturegate.models.domain import PRIVILEGED_ROLES, Enrollment, Lesson, User
from lecturegate.services.privilege import PrivilegeVerifier
from lecturegate.services.store_calls import call_store

log = logging.getLogger("access")

EnrollmentLookup = Callable[[str, str], Awaitable[Optional[Enrollment]]]
PrivilegeCheck = Callable[[str], Awaitable[bool]]


class AccessDecision(str, Enum):
    GRANTED = "GRANTED"
    LOCKED = "LOCKED"
    ADMIN_OVERRIDE = "ADMIN_OVERRIDE"

    @property
    def renders_content(self) -> bool:
        return self is not AccessDecision.LOCKED


@dataclass(frozen=True)
class AccessVerdict:
    decision: AccessDecision
    reason: str
    message: Optional[str] = None

    @property
    def retryable(self) -> bool:
        return self.reason == "check_failed"


async def decide(
    user: Optional[User],
    content: Lesson,
    enrollment_lookup: EnrollmentLookup,
    verify_privilege: Optional[PrivilegeCheck] = None,
) -> AccessVerdict:
    """First matching rule wins: free, anonymous, privileged, enrolled, locked."""
    if not content.isLocked:
        return AccessVerdict(AccessDecision.GRANTED, "free")

    if user is None:
        return AccessVerdict(AccessDecision.LOCKED, "anonymous")

    if user.role in PRIVILEGED_ROLES:
        verified = bool(verify_privilege and await verify_privilege(user.id))
        if verified:
            log.info(
                "ADMIN_OVERRIDE uid=%s role=%s course=%s lesson=%s",
                user.id,
                user.role.value,
                content.courseId,
                content.id,
            )
            return AccessVerdict(AccessDecision.ADMIN_OVERRIDE, "privileged")
        # no bypass; an enrollment the user holds still counts below

    try:
        enrollment = await enrollment_lookup(user.id, content.courseId)
    except Exception as exc:
        log.warning(
            "access: enrollment lookup failed uid=%s course=%s: %s",
            user.id,
            content.courseId,
            exc,
            exc_info=True,
        )
        return AccessVerdict(AccessDecision.LOCKED, "check_failed", ACCESS_CHECK_MESSAGE)

    if enrollment is not None and enrollment.is_active:
        return AccessVerdict(AccessDecision.GRANTED, "enrolled")
    return AccessVerdict(AccessDecision.LOCKED, "not_enrolled")


class AccessPolicyEngine:
    """Wires :func:`decide` to the store with bounded, fail-closed lookups."""

    def __init__(self, gateway, verifier: PrivilegeVerifier, settings: Settings) -> None:
        self.gateway = gateway
        self.verifier = verifier
        self.settings = settings

    async def lookup_active_enrollment(self, user_id: str, course_id: str) -> Optional[Enrollment]:
        try:
            return await call_store(
                self.gateway.lookup_active_enrollment,
                user_id,
                course_id,
                timeout=self.settings.STORE_TIMEOUT_SECONDS,
            )
        except StoreUnavailable as exc:
            raise AccessCheckFailed(str(exc)) from exc

    async def verify_privilege(self, user_id: str) -> bool:
        verified = await self.verifier.verify_privilege(user_id)
        if not verified:
            log.warning("access: uid=%s claims a privileged role but verification failed; no bypass", user_id)
        return verified

    def request_scoped_lookup(self) -> EnrollmentLookup:
        """Memoise lookups for one request only (lesson listings hit the same course repeatedly)."""
        seen: Dict[tuple, Optional[Enrollment]] = {}

        async def _lookup(user_id: str, course_id: str) -> Optional[Enrollment]:
            key = (user_id, course_id)
            if key not in seen:
                seen[key] = await self.lookup_active_enrollment(user_id, course_id)
            return seen[key]

        return _lookup

    def request_scoped_privilege(self) -> PrivilegeCheck:
        seen: Dict[str, bool] = {}

        async def _verify(user_id: str) -> bool:
            if user_id not in seen:
                seen[user_id] = await self.verify_privilege(user_id)
            return seen[user_id]

        return _verify

    async def decide(
        self,
        user: Optional[User],
        content: Lesson,
        enrollment_lookup: Optional[EnrollmentLookup] = None,
        verify_privilege: Optional[PrivilegeCheck] = None,
    ) -> AccessVerdict:
        return await decide(
            user,
            content,
            enrollment_lookup or self.lookup_active_enrollment,
            verify_privilege or self.verify_privilege,
        )
