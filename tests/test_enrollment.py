import logging

import pytest

from lecturegate.core.errors import (
    AdminAccessRequired,
    CourseNotFound,
    EnrollmentNotFound,
    EnrollmentWriteFailed,
    PaymentRequired,
)
from lecturegate.models.domain import EnrollmentSource, EnrollmentStatus


class TestEnroll:
    @pytest.fixture(autouse=True)
    def courses(self, gateway):
        gateway.add_course("c1", price=0)
        gateway.add_course("premium", price=4999)

    @pytest.mark.asyncio
    async def test_creates_once(self, gateway, coordinator, student):
        first = await coordinator.enroll(student.id, "c1")
        second = await coordinator.enroll(student.id, "c1")

        assert first.created is True
        assert second.created is False
        assert second.enrollmentId == first.enrollmentId
        assert len(gateway.active_rows(student.id, "c1")) == 1

    @pytest.mark.asyncio
    async def test_cancelled_row_allows_new_enrollment(self, gateway, coordinator, student):
        gateway.add_enrollment(student.id, "c1", status=EnrollmentStatus.CANCELLED.value)
        result = await coordinator.enroll(student.id, "c1")
        assert result.created is True
        assert gateway.enrollments[result.enrollmentId].source == EnrollmentSource.FREE.value

    @pytest.mark.asyncio
    async def test_write_failure_surfaces_generic_error(self, gateway, coordinator, student):
        gateway.failing.add("create_enrollment")
        with pytest.raises(EnrollmentWriteFailed) as excinfo:
            await coordinator.enroll(student.id, "c1")
        assert excinfo.value.retryable
        assert gateway.enrollments == {}

    @pytest.mark.asyncio
    async def test_paid_course_needs_payment_approval(self, gateway, coordinator, student):
        with pytest.raises(PaymentRequired) as excinfo:
            await coordinator.enroll(student.id, "premium")
        assert excinfo.value.status_code == 402
        assert gateway.enrollments == {}
        assert "create_enrollment" not in gateway.calls

    @pytest.mark.asyncio
    async def test_unknown_course(self, gateway, coordinator, student):
        with pytest.raises(CourseNotFound):
            await coordinator.enroll(student.id, "no-such-course")
        assert gateway.enrollments == {}

    @pytest.mark.asyncio
    async def test_course_lookup_failure(self, gateway, coordinator, student):
        gateway.failing.add("get_course")
        with pytest.raises(EnrollmentWriteFailed):
            await coordinator.enroll(student.id, "c1")
        assert gateway.enrollments == {}


class TestAutoEnrollFree:
    @pytest.mark.asyncio
    async def test_enrolls_only_missing_free_courses(self, gateway, coordinator, student, caplog):
        for cid in ("f1", "f2", "f3", "f4", "f5"):
            gateway.add_course(cid, price=0)
        gateway.add_course("paid", price=499)
        gateway.add_enrollment(student.id, "f1")
        gateway.add_enrollment(student.id, "f2")

        with caplog.at_level(logging.INFO, logger="enrollment"):
            result = await coordinator.auto_enroll_free(student.id)

        assert sorted(result.enrolledCourseIds) == ["f3", "f4", "f5"]
        assert "Auto-enrolled user student-1 in 3 free courses" in caplog.text
        for cid in ("f1", "f2", "f3", "f4", "f5"):
            assert len(gateway.active_rows(student.id, cid)) == 1
        assert gateway.active_rows(student.id, "paid") == []

        again = await coordinator.auto_enroll_free(student.id)
        assert again.enrolledCourseIds == []

    @pytest.mark.asyncio
    async def test_cancelled_free_course_is_not_re_enrolled(self, gateway, coordinator, student):
        gateway.add_course("f1", price=None)
        gateway.add_enrollment(student.id, "f1", status=EnrollmentStatus.CANCELLED.value)
        result = await coordinator.auto_enroll_free(student.id)
        assert result.enrolledCourseIds == []

    @pytest.mark.asyncio
    async def test_no_free_courses(self, gateway, coordinator, student):
        gateway.add_course("paid", price=100)
        result = await coordinator.auto_enroll_free(student.id)
        assert result.enrolledCourseIds == []
        assert "bulk_create_enrollments" not in gateway.calls

    @pytest.mark.asyncio
    async def test_batch_failure_writes_nothing(self, gateway, coordinator, student):
        for cid in ("f1", "f2"):
            gateway.add_course(cid, price=0)
        gateway.failing.add("bulk_create_enrollments")

        with pytest.raises(EnrollmentWriteFailed):
            await coordinator.auto_enroll_free(student.id)
        assert gateway.enrollments == {}

        gateway.failing.clear()
        retry = await coordinator.auto_enroll_free(student.id)
        assert sorted(retry.enrolledCourseIds) == ["f1", "f2"]


class TestAdminEnroll:
    @pytest.fixture(autouse=True)
    def courses(self, gateway):
        gateway.add_course("c9", price=4999)

    @pytest.mark.asyncio
    async def test_records_override_source(self, gateway, coordinator, admin, student, caplog):
        with caplog.at_level(logging.INFO, logger="enrollment"):
            result = await coordinator.admin_enroll(admin.id, "c9", student.id)

        row = gateway.enrollments[result.enrollmentId]
        assert result.created and result.adminOverride
        assert row.userId == student.id
        assert row.source == EnrollmentSource.ADMIN_OVERRIDE.value
        assert row.grantedBy == admin.id
        assert "[ADMIN BYPASS]" in caplog.text

    @pytest.mark.asyncio
    async def test_defaults_to_self(self, gateway, coordinator, admin):
        result = await coordinator.admin_enroll(admin.id, "c9")
        assert gateway.enrollments[result.enrollmentId].userId == admin.id

    @pytest.mark.asyncio
    async def test_unverified_caller_rejected(self, gateway, coordinator, teacher, student):
        with pytest.raises(AdminAccessRequired):
            await coordinator.admin_enroll(teacher.id, "c9", student.id)
        with pytest.raises(AdminAccessRequired):
            await coordinator.admin_enroll(student.id, "c9")
        assert gateway.enrollments == {}

    @pytest.mark.asyncio
    async def test_unknown_course(self, gateway, coordinator, admin, student):
        with pytest.raises(CourseNotFound):
            await coordinator.admin_enroll(admin.id, "no-such-course", student.id)
        assert gateway.enrollments == {}


class TestApprovePayment:
    @pytest.mark.asyncio
    async def test_admin_approval_creates_paid_enrollment(self, gateway, coordinator, admin, student):
        gateway.add_course("premium", price=4999)
        result = await coordinator.approve_payment(admin.id, student.id, "premium")

        row = gateway.enrollments[result.enrollmentId]
        assert result.created and not result.adminOverride
        assert row.userId == student.id
        assert row.source == EnrollmentSource.PAID.value
        assert row.grantedBy == admin.id

        again = await coordinator.approve_payment(admin.id, student.id, "premium")
        assert again.created is False
        assert again.enrollmentId == result.enrollmentId

    @pytest.mark.asyncio
    async def test_student_cannot_approve_own_payment(self, gateway, coordinator, student):
        gateway.add_course("premium", price=4999)
        with pytest.raises(AdminAccessRequired):
            await coordinator.approve_payment(student.id, student.id, "premium")
        assert gateway.enrollments == {}


class TestCancelAndReads:
    @pytest.mark.asyncio
    async def test_owner_cancels(self, gateway, coordinator, student):
        row = gateway.add_enrollment(student.id, "c1")
        cancelled = await coordinator.cancel(row.id, student.id)
        assert cancelled.status == EnrollmentStatus.CANCELLED.value
        assert gateway.active_rows(student.id, "c1") == []

    @pytest.mark.asyncio
    async def test_admin_cancels_for_student(self, gateway, coordinator, admin, student):
        row = gateway.add_enrollment(student.id, "c1")
        await coordinator.cancel(row.id, admin.id)
        assert gateway.enrollments[row.id].status == EnrollmentStatus.CANCELLED.value

    @pytest.mark.asyncio
    async def test_other_student_cannot_cancel(self, gateway, coordinator, student):
        other = gateway.add_user("student-2")
        row = gateway.add_enrollment(student.id, "c1")
        with pytest.raises(AdminAccessRequired):
            await coordinator.cancel(row.id, other.id)
        assert gateway.enrollments[row.id].is_active

    @pytest.mark.asyncio
    async def test_missing_enrollment(self, coordinator, student):
        with pytest.raises(EnrollmentNotFound):
            await coordinator.cancel("nope", student.id)

    @pytest.mark.asyncio
    async def test_first_enrolled_course_is_latest_active(self, gateway, coordinator, student):
        gateway.add_enrollment(student.id, "old")
        gateway.add_enrollment(student.id, "newer")
        gateway.add_enrollment(student.id, "newest", status=EnrollmentStatus.CANCELLED.value)
        assert await coordinator.first_enrolled_course(student.id) == "newer"

    @pytest.mark.asyncio
    async def test_first_enrolled_course_none(self, coordinator, student):
        assert await coordinator.first_enrolled_course(student.id) is None

    @pytest.mark.asyncio
    async def test_is_enrolled_ignores_cancelled(self, gateway, coordinator, student):
        gateway.add_course("c1", price=0)
        gateway.add_enrollment(student.id, "c1", status=EnrollmentStatus.CANCELLED.value)
        assert await coordinator.is_enrolled(student.id, "c1") is False
        await coordinator.enroll(student.id, "c1")
        assert await coordinator.is_enrolled(student.id, "c1") is True
