import itertools
import time
from datetime import datetime, timedelta, timezone

import pytest

from lecturegate.core.config import Settings
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
from lecturegate.services.access_policy import AccessPolicyEngine
from lecturegate.services.enrollment import EnrollmentCoordinator
from lecturegate.services.lesson_view import LessonViewService, ViewTracker
from lecturegate.services.privilege import PrivilegeVerifier

ADMIN_EMAIL = "owner@academy.test"


class FakeGateway:
    """In-memory stand-in for FirestoreGateway."""

    def __init__(self):
        self.users = {}
        self.claims = {}
        self.grants = {}
        self.emails = {}
        self.courses = {}
        self.lessons = {}
        self.enrollments = {}
        self.failing = set()
        self.delays = {}
        self.calls = []
        self._ids = itertools.count(1)
        self._clock = datetime(2024, 1, 1, tzinfo=timezone.utc)

    def _enter(self, name):
        self.calls.append(name)
        if name in self.delays:
            time.sleep(self.delays[name])
        if name in self.failing:
            raise RuntimeError(f"{name}: backend unavailable")

    def _now(self):
        self._clock += timedelta(minutes=1)
        return self._clock

    # seeding helpers ------------------------------------------------

    def add_user(self, uid, role=Role.STUDENT, email=None, claim=None, grants=None):
        email = email or f"{uid}@academy.test"
        self.users[uid] = User(id=uid, email=email, role=role)
        self.emails[uid] = email
        self.claims[uid] = role if claim is None else claim
        self.grants[uid] = set(grants) if grants is not None else {role}
        return self.users[uid]

    def add_course(self, course_id, price=None):
        self.courses[course_id] = Course(id=course_id, title=course_id.title(), price=price)

    def add_lesson(self, lesson_id, course_id, url, locked=False, position=0, lecture_type=LectureType.VIDEO):
        self.lessons[lesson_id] = Lesson(
            id=lesson_id,
            courseId=course_id,
            title=f"Lesson {lesson_id}",
            videoUrl=url,
            lectureType=lecture_type,
            isLocked=locked,
            position=position,
        )
        return self.lessons[lesson_id]

    def add_enrollment(self, uid, course_id, status=EnrollmentStatus.ACTIVE.value):
        eid = f"enr-{next(self._ids)}"
        self.enrollments[eid] = Enrollment(
            id=eid, userId=uid, courseId=course_id, status=status, purchasedAt=self._now()
        )
        return self.enrollments[eid]

    def active_rows(self, uid, course_id):
        return [
            e for e in self.enrollments.values()
            if e.userId == uid and e.courseId == course_id and e.is_active
        ]

    # gateway contract -----------------------------------------------

    def get_user(self, uid):
        self._enter("get_user")
        return self.users.get(uid)

    def get_role(self, uid):
        self._enter("get_role")
        return self.claims.get(uid)

    def list_role_grants(self, uid):
        self._enter("list_role_grants")
        return set(self.grants.get(uid, set()))

    def get_account_email(self, uid):
        self._enter("get_account_email")
        return self.emails.get(uid)

    def get_course(self, course_id):
        self._enter("get_course")
        return self.courses.get(course_id)

    def list_free_courses(self):
        self._enter("list_free_courses")
        return [c.id for c in self.courses.values() if not c.price]

    def get_lesson(self, lesson_id):
        self._enter("get_lesson")
        return self.lessons.get(lesson_id)

    def list_lessons(self, course_id):
        self._enter("list_lessons")
        return sorted(
            (l for l in self.lessons.values() if l.courseId == course_id),
            key=lambda l: l.position,
        )

    def lookup_active_enrollment(self, uid, course_id):
        self._enter("lookup_active_enrollment")
        rows = self.active_rows(uid, course_id)
        return rows[0] if rows else None

    def get_enrollment(self, enrollment_id):
        self._enter("get_enrollment")
        return self.enrollments.get(enrollment_id)

    def list_enrollments(self, uid):
        self._enter("list_enrollments")
        rows = [e for e in self.enrollments.values() if e.userId == uid]
        return sorted(rows, key=lambda e: e.purchasedAt, reverse=True)

    def create_enrollment(self, uid, course_id, source=EnrollmentSource.PAID, granted_by=None):
        self._enter("create_enrollment")
        rows = self.active_rows(uid, course_id)
        if rows:
            return rows[0], False
        eid = f"enr-{next(self._ids)}"
        enrollment = Enrollment(
            id=eid,
            userId=uid,
            courseId=course_id,
            purchasedAt=self._now(),
            source=source.value,
            grantedBy=granted_by,
        )
        self.enrollments[eid] = enrollment
        return enrollment, True

    def bulk_create_enrollments(self, rows, source=EnrollmentSource.FREE):
        self._enter("bulk_create_enrollments")
        ids = []
        for row in rows:
            eid = f"enr-{next(self._ids)}"
            self.enrollments[eid] = Enrollment(
                id=eid,
                userId=row["userId"],
                courseId=row["courseId"],
                status=row.get("status", EnrollmentStatus.ACTIVE.value),
                purchasedAt=self._now(),
                source=source.value,
            )
            ids.append(eid)
        return ids

    def set_enrollment_status(self, enrollment_id, status):
        self._enter("set_enrollment_status")
        if enrollment_id not in self.enrollments:
            return False
        self.enrollments[enrollment_id].status = status.value
        return True


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def settings(tmp_path):
    return Settings(
        PRIVILEGED_EMAILS=f"{ADMIN_EMAIL}, teacher@academy.test",
        STORE_TIMEOUT_SECONDS=0.5,
        DRAFTS_DIR=str(tmp_path / "drafts"),
    )


@pytest.fixture
def verifier(gateway, settings):
    return PrivilegeVerifier(gateway, settings)


@pytest.fixture
def policy(gateway, verifier, settings):
    return AccessPolicyEngine(gateway, verifier, settings)


@pytest.fixture
def coordinator(gateway, verifier, settings):
    return EnrollmentCoordinator(gateway, verifier, settings)


@pytest.fixture
def lesson_views(gateway, policy, settings):
    return LessonViewService(gateway, policy, settings, ViewTracker())


@pytest.fixture
def admin(gateway):
    return gateway.add_user("admin-1", role=Role.ADMIN, email=ADMIN_EMAIL)


@pytest.fixture
def teacher(gateway):
    return gateway.add_user("teacher-1", role=Role.TEACHER, email="teacher@academy.test")


@pytest.fixture
def student(gateway):
    return gateway.add_user("student-1")
