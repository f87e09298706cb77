from functools import lru_cache

from fastapi import Depends

from lecturegate.core.config import Settings, get_settings
from lecturegate.services.access_policy import AccessPolicyEngine
from lecturegate.services.archive_metadata import ArchiveMetadataClient
from lecturegate.services.drafts import DraftStore
from lecturegate.services.enrollment import EnrollmentCoordinator
from lecturegate.services.firestore_gateway import FirestoreGateway
from lecturegate.services.lesson_view import LessonViewService, ViewTracker
from lecturegate.services.privilege import PrivilegeVerifier

view_tracker = ViewTracker()


@lru_cache(maxsize=1)
def get_gateway() -> FirestoreGateway:
    return FirestoreGateway()


def get_verifier(
    gateway=Depends(get_gateway), settings: Settings = Depends(get_settings)
) -> PrivilegeVerifier:
    return PrivilegeVerifier(gateway, settings)


def get_policy_engine(
    gateway=Depends(get_gateway),
    verifier: PrivilegeVerifier = Depends(get_verifier),
    settings: Settings = Depends(get_settings),
) -> AccessPolicyEngine:
    return AccessPolicyEngine(gateway, verifier, settings)


def get_enrollment_coordinator(
    gateway=Depends(get_gateway),
    verifier: PrivilegeVerifier = Depends(get_verifier),
    settings: Settings = Depends(get_settings),
) -> EnrollmentCoordinator:
    return EnrollmentCoordinator(gateway, verifier, settings)


def get_lesson_view_service(
    gateway=Depends(get_gateway),
    policy: AccessPolicyEngine = Depends(get_policy_engine),
    settings: Settings = Depends(get_settings),
) -> LessonViewService:
    return LessonViewService(gateway, policy, settings, view_tracker)


def get_archive_client(settings: Settings = Depends(get_settings)) -> ArchiveMetadataClient:
    return ArchiveMetadataClient(settings)


def get_draft_store(settings: Settings = Depends(get_settings)) -> DraftStore:
    return DraftStore(settings.DRAFTS_DIR)
