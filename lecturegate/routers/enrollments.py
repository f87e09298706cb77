from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends

from lecturegate.core.config import Settings, get_settings
from lecturegate.deps.auth import get_current_user
from lecturegate.deps.services import get_enrollment_coordinator
from lecturegate.models.domain import Enrollment, User
from lecturegate.models.dto import (
    AdminEnrollIn,
    AutoEnrollOut,
    EnrollIn,
    EnrollmentCheckOut,
    EnrollmentOut,
    EnrollmentResultOut,
    PaymentApprovalIn,
)
from lecturegate.services.enrollment import EnrollmentCoordinator, EnrollmentResult

router = APIRouter(prefix="/api/enrollments")
admin_router = APIRouter(prefix="/admin/enrollments")


def _serialize_enrollment(e: Enrollment) -> EnrollmentOut:
    return EnrollmentOut(
        id=e.id,
        courseId=e.courseId,
        status=e.status,
        purchasedAt=e.purchasedAt.isoformat() if e.purchasedAt else None,
        source=e.source,
    )


def _result_payload(result: EnrollmentResult, settings: Settings) -> EnrollmentResultOut:
    return EnrollmentResultOut(
        created=result.created,
        enrollmentId=result.enrollmentId,
        courseId=result.courseId,
        adminOverride=result.adminOverride,
        redirectTo=settings.lessons_target(result.courseId),
    )


@router.get("")
async def my_enrollments(
    user: User = Depends(get_current_user),
    coordinator: EnrollmentCoordinator = Depends(get_enrollment_coordinator),
) -> Dict[str, Any]:
    items = await coordinator.list_enrollments(user.id)
    first_active: Optional[str] = next((e.courseId for e in items if e.is_active), None)
    return {
        "items": [_serialize_enrollment(e) for e in items],
        "firstActiveCourseId": first_active,
    }


@router.get("/{courseId}", response_model=EnrollmentCheckOut)
async def check_enrollment(
    courseId: str,
    user: User = Depends(get_current_user),
    coordinator: EnrollmentCoordinator = Depends(get_enrollment_coordinator),
):
    enrollment = await coordinator.active_enrollment(user.id, courseId)
    return EnrollmentCheckOut(
        enrolled=enrollment is not None,
        enrollment=_serialize_enrollment(enrollment) if enrollment else None,
    )


@router.post("", response_model=EnrollmentResultOut)
async def enroll(
    body: EnrollIn,
    user: User = Depends(get_current_user),
    coordinator: EnrollmentCoordinator = Depends(get_enrollment_coordinator),
    settings: Settings = Depends(get_settings),
):
    result = await coordinator.enroll(user.id, body.courseId)
    return _result_payload(result, settings)


@router.post("/free", response_model=AutoEnrollOut)
async def enroll_free_courses(
    user: User = Depends(get_current_user),
    coordinator: EnrollmentCoordinator = Depends(get_enrollment_coordinator),
):
    result = await coordinator.auto_enroll_free(user.id)
    return AutoEnrollOut(enrolledCourseIds=result.enrolledCourseIds)


@router.post("/{enrollmentId}/cancel", response_model=EnrollmentOut)
async def cancel_enrollment(
    enrollmentId: str,
    user: User = Depends(get_current_user),
    coordinator: EnrollmentCoordinator = Depends(get_enrollment_coordinator),
):
    enrollment = await coordinator.cancel(enrollmentId, user.id)
    return _serialize_enrollment(enrollment)


@admin_router.post("", response_model=EnrollmentResultOut)
async def admin_enroll(
    body: AdminEnrollIn,
    user: User = Depends(get_current_user),
    coordinator: EnrollmentCoordinator = Depends(get_enrollment_coordinator),
    settings: Settings = Depends(get_settings),
):
    result = await coordinator.admin_enroll(user.id, body.courseId, body.studentId)
    return _result_payload(result, settings)


@admin_router.post("/payments", response_model=EnrollmentResultOut)
async def approve_payment(
    body: PaymentApprovalIn,
    user: User = Depends(get_current_user),
    coordinator: EnrollmentCoordinator = Depends(get_enrollment_coordinator),
    settings: Settings = Depends(get_settings),
):
    result = await coordinator.approve_payment(user.id, body.studentId, body.courseId)
    return _result_payload(result, settings)
