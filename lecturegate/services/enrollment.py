from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Optional

from lecturegate.core.config import Settings
from lecturegate.core.errors import (
    AdminAccessRequired,
    CourseNotFound,
    EnrollmentNotFound,
    EnrollmentWriteFailed,
    PaymentRequired,
    StoreUnavailable,
)
from lecturegate.models.domain import (
    Course,
    Enrollment,
    EnrollmentSource,
    EnrollmentStatus,
    Role,
)
from lecturegate.services.privilege import PrivilegeVerifier
from lecturegate.services.store_calls import call_store

log = logging.getLogger("enrollment")


@dataclass
class EnrollmentResult:
    created: bool
    enrollmentId: str
    courseId: str
    adminOverride: bool = False


@dataclass
class AutoEnrollResult:
    enrolledCourseIds: List[str] = field(default_factory=list)


class EnrollmentCoordinator:
    """Enrollment writes. Duplicate requests are successes; store failures leave nothing behind."""

    def __init__(self, gateway, verifier: PrivilegeVerifier, settings: Settings) -> None:
        self.gateway = gateway
        self.verifier = verifier
        self.settings = settings

    async def _store(self, fn, *args, **kwargs):
        return await call_store(fn, *args, timeout=self.settings.STORE_TIMEOUT_SECONDS, **kwargs)

    async def _require_course(self, course_id: str) -> Course:
        try:
            course = await self._store(self.gateway.get_course, course_id)
        except StoreUnavailable as exc:
            log.error("enroll: course=%s lookup failed: %s", course_id, exc)
            raise EnrollmentWriteFailed(str(exc)) from exc
        if course is None:
            raise CourseNotFound(course_id)
        return course

    async def _enroll(
        self,
        user_id: str,
        course_id: str,
        source: EnrollmentSource,
        granted_by: Optional[str] = None,
    ) -> EnrollmentResult:
        try:
            existing = await self._store(self.gateway.lookup_active_enrollment, user_id, course_id)
            if existing is not None:
                log.info("enroll: uid=%s already enrolled in course=%s", user_id, course_id)
                return EnrollmentResult(created=False, enrollmentId=existing.id, courseId=course_id)

            # the gateway re-checks inside its transaction, so a concurrent duplicate also lands here
            enrollment, created = await self._store(
                self.gateway.create_enrollment,
                user_id,
                course_id,
                source=source,
                granted_by=granted_by,
            )
        except StoreUnavailable as exc:
            log.error("enroll: uid=%s course=%s failed: %s", user_id, course_id, exc)
            raise EnrollmentWriteFailed(str(exc)) from exc

        if created:
            log.info(
                "enroll: uid=%s course=%s enrollment=%s source=%s",
                user_id,
                course_id,
                enrollment.id,
                source.value,
            )
        return EnrollmentResult(created=created, enrollmentId=enrollment.id, courseId=course_id)

    async def enroll(self, user_id: str, course_id: str) -> EnrollmentResult:
        """Self-service enrollment. Priced courses go through :meth:`approve_payment` instead."""
        course = await self._require_course(course_id)
        if not course.is_free:
            log.warning("enroll: uid=%s tried self-enrollment in paid course=%s", user_id, course_id)
            raise PaymentRequired(f"course {course_id} has price {course.price}")
        return await self._enroll(user_id, course_id, EnrollmentSource.FREE)

    async def auto_enroll_free(self, user_id: str) -> AutoEnrollResult:
        """Enroll the user into every free course they have no enrollment row for.

        The batch is one atomic write. On failure nothing was written, and a retry
        recomputes the delta from scratch.
        """
        try:
            free_ids = await self._store(self.gateway.list_free_courses)
            if not free_ids:
                return AutoEnrollResult()

            # any existing row counts, so a cancelled free course is not silently re-enrolled
            existing = await self._store(self.gateway.list_enrollments, user_id)
            existing_ids = {e.courseId for e in existing}
            to_enroll = [cid for cid in free_ids if cid not in existing_ids]
            if not to_enroll:
                return AutoEnrollResult()

            rows = [
                {"userId": user_id, "courseId": cid, "status": EnrollmentStatus.ACTIVE.value}
                for cid in to_enroll
            ]
            await self._store(self.gateway.bulk_create_enrollments, rows)
        except (StoreUnavailable, ValueError) as exc:
            log.error("auto_enroll_free: uid=%s failed: %s", user_id, exc)
            raise EnrollmentWriteFailed(str(exc)) from exc

        log.info("Auto-enrolled user %s in %s free courses", user_id, len(to_enroll))
        return AutoEnrollResult(enrolledCourseIds=to_enroll)

    async def _admin_grant(
        self,
        admin_user_id: str,
        course_id: str,
        target_user_id: str,
        source: EnrollmentSource,
    ) -> EnrollmentResult:
        if not await self.verifier.verify_privilege(admin_user_id, {Role.ADMIN}):
            raise AdminAccessRequired(f"uid={admin_user_id} failed admin verification")
        await self._require_course(course_id)
        return await self._enroll(target_user_id, course_id, source, granted_by=admin_user_id)

    async def admin_enroll(
        self,
        admin_user_id: str,
        course_id: str,
        student_user_id: Optional[str] = None,
    ) -> EnrollmentResult:
        target = student_user_id or admin_user_id
        result = await self._admin_grant(
            admin_user_id, course_id, target, EnrollmentSource.ADMIN_OVERRIDE
        )
        result.adminOverride = True
        if result.created:
            log.info(
                "[ADMIN BYPASS] admin=%s enrolled uid=%s in course=%s enrollment=%s",
                admin_user_id,
                target,
                course_id,
                result.enrollmentId,
            )
        return result

    async def approve_payment(
        self, admin_user_id: str, student_user_id: str, course_id: str
    ) -> EnrollmentResult:
        """Paid enrollment, created once a verified admin has approved the student's payment."""
        result = await self._admin_grant(
            admin_user_id, course_id, student_user_id, EnrollmentSource.PAID
        )
        if result.created:
            log.info(
                "payment approved: admin=%s uid=%s course=%s enrollment=%s",
                admin_user_id,
                student_user_id,
                course_id,
                result.enrollmentId,
            )
        return result

    async def cancel(self, enrollment_id: str, actor_id: str) -> Enrollment:
        try:
            enrollment = await self._store(self.gateway.get_enrollment, enrollment_id)
        except StoreUnavailable as exc:
            raise EnrollmentWriteFailed(str(exc)) from exc
        if enrollment is None:
            raise EnrollmentNotFound(enrollment_id)

        if enrollment.userId != actor_id:
            if not await self.verifier.verify_privilege(actor_id, {Role.ADMIN}):
                raise AdminAccessRequired(f"uid={actor_id} cannot cancel {enrollment_id}")

        if enrollment.status != EnrollmentStatus.CANCELLED.value:
            try:
                await self._store(
                    self.gateway.set_enrollment_status, enrollment_id, EnrollmentStatus.CANCELLED
                )
            except StoreUnavailable as exc:
                raise EnrollmentWriteFailed(str(exc)) from exc
            log.info("cancel: enrollment=%s cancelled by uid=%s", enrollment_id, actor_id)
        enrollment.status = EnrollmentStatus.CANCELLED.value
        return enrollment

    async def list_enrollments(self, user_id: str) -> List[Enrollment]:
        return await self._store(self.gateway.list_enrollments, user_id)

    async def active_enrollment(self, user_id: str, course_id: str) -> Optional[Enrollment]:
        return await self._store(self.gateway.lookup_active_enrollment, user_id, course_id)

    async def is_enrolled(self, user_id: str, course_id: str) -> bool:
        return await self.active_enrollment(user_id, course_id) is not None

    async def first_enrolled_course(self, user_id: str) -> Optional[str]:
        """Most recently purchased active course, used for the post-login redirect."""
        for enrollment in await self.list_enrollments(user_id):
            if enrollment.is_active:
                return enrollment.courseId
        return None
