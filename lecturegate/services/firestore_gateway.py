from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, Set, Tuple

from firebase_admin import auth as admin_auth
from google.cloud.firestore_v1 import transactional

from lecturegate.models.domain import (
    Course,
    Enrollment,
    EnrollmentSource,
    EnrollmentStatus,
    LectureType,
    Lesson,
    Role,
    User,
)
from lecturegate.services.firebase_client import get_firebase_app, get_firestore_client

log = logging.getLogger("store")

USERS = "users"
COURSES = "courses"
LESSONS = "lessons"
ENROLLMENTS = "enrollments"

# Firestore caps a single batch/transaction at 500 writes
MAX_BATCH_WRITES = 500


def _to_datetime(value: Any) -> Optional[datetime]:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value
    if hasattr(value, "timestamp"):
        try:
            return datetime.fromtimestamp(value.timestamp(), tz=timezone.utc)
        except Exception:
            return None
    return None


def _enrollment_from_snap(snap) -> Enrollment:
    d = snap.to_dict() or {}
    return Enrollment(
        id=snap.id,
        userId=str(d.get("userId") or ""),
        courseId=str(d.get("courseId") or ""),
        status=str(d.get("status") or ""),
        purchasedAt=_to_datetime(d.get("purchasedAt")),
        source=d.get("source") or EnrollmentSource.PAID.value,
        grantedBy=d.get("grantedBy"),
    )


def _lesson_from_snap(snap) -> Lesson:
    d = snap.to_dict() or {}
    try:
        lecture_type = LectureType((d.get("lectureType") or "VIDEO").upper())
    except ValueError:
        lecture_type = LectureType.VIDEO
    return Lesson(
        id=snap.id,
        courseId=str(d.get("courseId") or ""),
        title=d.get("title") or "",
        videoUrl=d.get("videoUrl") or "",
        lectureType=lecture_type,
        # missing flag reads as unlocked, same as the admin upload default
        isLocked=bool(d.get("isLocked", False)),
        position=int(d.get("position") or 0),
        chapterId=d.get("chapterId"),
    )


def _enrollment_doc(
    user_id: str,
    course_id: str,
    now: datetime,
    source: EnrollmentSource,
    granted_by: Optional[str],
) -> Dict[str, Any]:
    return {
        "userId": user_id,
        "courseId": course_id,
        "status": EnrollmentStatus.ACTIVE.value,
        "purchasedAt": now,
        "source": source.value,
        "grantedBy": granted_by,
        "updatedAt": now,
    }


class FirestoreGateway:
    """External data/auth collaborator backed by Firestore and Firebase Auth.

    All methods are blocking; callers run them off the event loop with a timeout.
    """

    def __init__(self, db=None, firebase_app=None) -> None:
        self.db = db or get_firestore_client()
        self.firebase_app = firebase_app or get_firebase_app()

    # ---------------------------------------------------------------
    # Users and roles
    # ---------------------------------------------------------------

    def get_user(self, uid: str) -> Optional[User]:
        snap = self.db.collection(USERS).document(uid).get()
        if not snap.exists:
            return None
        d = snap.to_dict() or {}
        return User(
            id=snap.id,
            email=d.get("email"),
            role=Role.parse(d.get("role")) or Role.STUDENT,
            displayName=d.get("displayName"),
        )

    def get_role(self, uid: str) -> Optional[Role]:
        """Role from the Firebase Auth custom claim; independent of the profile document."""
        try:
            record = admin_auth.get_user(uid, app=self.firebase_app)
        except admin_auth.UserNotFoundError:
            return None
        claims = record.custom_claims or {}
        return Role.parse(claims.get("role"))

    def list_role_grants(self, uid: str) -> Set[Role]:
        grants: Set[Role] = set()
        for rdoc in self.db.collection(USERS).document(uid).collection("roles").stream():
            data = rdoc.to_dict() or {}
            role = Role.parse(data.get("role"))
            if role:
                grants.add(role)
        return grants

    def get_account_email(self, uid: str) -> Optional[str]:
        try:
            record = admin_auth.get_user(uid, app=self.firebase_app)
        except admin_auth.UserNotFoundError:
            return None
        return record.email

    # ---------------------------------------------------------------
    # Courses and lessons
    # ---------------------------------------------------------------

    def get_course(self, course_id: str) -> Optional[Course]:
        snap = self.db.collection(COURSES).document(course_id).get()
        if not snap.exists:
            return None
        d = snap.to_dict() or {}
        return Course(id=snap.id, title=d.get("title") or "", price=d.get("price"))

    def list_free_courses(self) -> List[str]:
        # price == 0 or missing/null; Firestore cannot filter on absent fields
        free: List[str] = []
        for snap in self.db.collection(COURSES).stream():
            d = snap.to_dict() or {}
            if not d.get("price"):
                free.append(snap.id)
        return free

    def get_lesson(self, lesson_id: str) -> Optional[Lesson]:
        snap = self.db.collection(LESSONS).document(lesson_id).get()
        if not snap.exists:
            return None
        return _lesson_from_snap(snap)

    def list_lessons(self, course_id: str) -> List[Lesson]:
        snaps = self.db.collection(LESSONS).where("courseId", "==", course_id).stream()
        lessons = [_lesson_from_snap(s) for s in snaps]
        lessons.sort(key=lambda l: l.position)
        return lessons

    # ---------------------------------------------------------------
    # Enrollments
    # ---------------------------------------------------------------

    def _active_query(self, user_id: str, course_id: str):
        return (
            self.db.collection(ENROLLMENTS)
            .where("userId", "==", user_id)
            .where("courseId", "==", course_id)
            .where("status", "==", EnrollmentStatus.ACTIVE.value)
            .limit(1)
        )

    def lookup_active_enrollment(self, user_id: str, course_id: str) -> Optional[Enrollment]:
        snaps = self._active_query(user_id, course_id).get()
        if not snaps:
            return None
        return _enrollment_from_snap(snaps[0])

    def get_enrollment(self, enrollment_id: str) -> Optional[Enrollment]:
        snap = self.db.collection(ENROLLMENTS).document(enrollment_id).get()
        if not snap.exists:
            return None
        return _enrollment_from_snap(snap)

    def list_enrollments(self, user_id: str) -> List[Enrollment]:
        snaps = self.db.collection(ENROLLMENTS).where("userId", "==", user_id).stream()
        items = [_enrollment_from_snap(s) for s in snaps]
        items.sort(
            key=lambda e: e.purchasedAt or datetime.min.replace(tzinfo=timezone.utc),
            reverse=True,
        )
        return items

    def create_enrollment(
        self,
        user_id: str,
        course_id: str,
        source: EnrollmentSource = EnrollmentSource.PAID,
        granted_by: Optional[str] = None,
    ) -> Tuple[Enrollment, bool]:
        """Create an active enrollment unless one exists; the check and write share a transaction."""
        query = self._active_query(user_id, course_id)
        new_ref = self.db.collection(ENROLLMENTS).document()

        @transactional
        def _create(transaction) -> Tuple[Enrollment, bool]:
            existing = list(transaction.get(query))
            if existing:
                return _enrollment_from_snap(existing[0]), False
            now = datetime.now(timezone.utc)
            transaction.set(new_ref, _enrollment_doc(user_id, course_id, now, source, granted_by))
            return (
                Enrollment(
                    id=new_ref.id,
                    userId=user_id,
                    courseId=course_id,
                    status=EnrollmentStatus.ACTIVE.value,
                    purchasedAt=now,
                    source=source.value,
                    grantedBy=granted_by,
                ),
                True,
            )

        return _create(self.db.transaction())

    def bulk_create_enrollments(
        self,
        rows: Iterable[Dict[str, str]],
        source: EnrollmentSource = EnrollmentSource.FREE,
    ) -> List[str]:
        rows = list(rows)
        if len(rows) > MAX_BATCH_WRITES:
            raise ValueError(f"batch of {len(rows)} exceeds {MAX_BATCH_WRITES} writes")

        now = datetime.now(timezone.utc)
        batch = self.db.batch()
        ids: List[str] = []
        for row in rows:
            ref = self.db.collection(ENROLLMENTS).document()
            batch.set(ref, _enrollment_doc(row["userId"], row["courseId"], now, source, None))
            ids.append(ref.id)
        # Single commit: either every row lands or none does
        batch.commit()
        log.info("bulk_create_enrollments: wrote %s rows", len(ids))
        return ids

    def set_enrollment_status(self, enrollment_id: str, status: EnrollmentStatus) -> bool:
        ref = self.db.collection(ENROLLMENTS).document(enrollment_id)
        if not ref.get().exists:
            return False
        ref.update({"status": status.value, "updatedAt": datetime.now(timezone.utc)})
        return True
