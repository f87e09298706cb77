"""Error taxonomy shared by the services and the HTTP boundary.

Services raise these; ``lecturegate.main`` converts them into JSON responses so
that low-level store exceptions never reach the client.
"""
from __future__ import annotations

ACCESS_CHECK_MESSAGE = "Unable to verify access, please retry."
ENROLLMENT_FAILED_MESSAGE = "Could not complete enrollment, please try again."


class LectureGateError(Exception):
    status_code = 500
    user_message = "Something went wrong."
    retryable = False

    def __init__(self, detail: str | None = None):
        super().__init__(detail or self.user_message)
        self.detail = detail


class StoreUnavailable(LectureGateError):
    """The external store raised or did not answer within the timeout."""

    status_code = 503
    user_message = "Service temporarily unavailable, please retry."
    retryable = True


class AccessCheckFailed(LectureGateError):
    status_code = 503
    user_message = ACCESS_CHECK_MESSAGE
    retryable = True


class PrivilegeVerificationMismatch(LectureGateError):
    """Privilege layers disagree. Logged as a security event, surfaced only as a denial."""

    status_code = 403
    user_message = "Access denied."

    def __init__(self, layer: str, detail: str | None = None):
        super().__init__(detail or f"privilege layer failed: {layer}")
        self.layer = layer


class AdminAccessRequired(LectureGateError):
    status_code = 403
    user_message = "Admin access required."


class PaymentRequired(LectureGateError):
    """Self-service enrollment is only open for free courses; paid access needs an approved payment."""

    status_code = 402
    user_message = "This course requires an approved payment."


class EnrollmentWriteFailed(LectureGateError):
    status_code = 503
    user_message = ENROLLMENT_FAILED_MESSAGE
    retryable = True


class EnrollmentNotFound(LectureGateError):
    status_code = 404
    user_message = "Enrollment not found."


class LessonNotFound(LectureGateError):
    status_code = 404
    user_message = "Lesson not found."


class CourseNotFound(LectureGateError):
    status_code = 404
    user_message = "Course not found."


class StaleViewRequest(LectureGateError):
    """A newer view request was issued for the same viewer; discard this result."""

    status_code = 409
    user_message = "A newer lesson was requested."
