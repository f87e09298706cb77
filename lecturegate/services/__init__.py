from .content_sources import ResolvedSource, SourceKind, resolve  # noqa: F401
from .access_policy import AccessDecision, AccessPolicyEngine, AccessVerdict, decide  # noqa: F401
from .privilege import PrivilegeVerifier  # noqa: F401
from .enrollment import AutoEnrollResult, EnrollmentCoordinator, EnrollmentResult  # noqa: F401
from .viewer import select  # noqa: F401
from .lesson_view import LessonViewService, ViewTracker  # noqa: F401
