from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional


class Role(str, Enum):
    ADMIN = "admin"
    TEACHER = "teacher"
    STUDENT = "student"

    @classmethod
    def parse(cls, value) -> Optional["Role"]:
        if isinstance(value, Role):
            return value
        try:
            return cls((str(value or "")).strip().lower())
        except ValueError:
            return None


PRIVILEGED_ROLES = frozenset({Role.ADMIN, Role.TEACHER})


class EnrollmentStatus(str, Enum):
    ACTIVE = "active"
    CANCELLED = "cancelled"


class EnrollmentSource(str, Enum):
    PAID = "paid"
    FREE = "free_auto"
    ADMIN_OVERRIDE = "admin_override"


class LectureType(str, Enum):
    VIDEO = "VIDEO"
    PDF = "PDF"
    DPP = "DPP"
    NOTES = "NOTES"
    TEST = "TEST"


@dataclass
class User:
    id: str
    email: Optional[str] = None
    role: Role = Role.STUDENT
    displayName: Optional[str] = None


@dataclass
class Enrollment:
    id: str
    userId: str
    courseId: str
    status: str = EnrollmentStatus.ACTIVE.value
    purchasedAt: Optional[datetime] = None
    source: str = EnrollmentSource.PAID.value
    grantedBy: Optional[str] = None

    @property
    def is_active(self) -> bool:
        # pending/expired or anything unknown grants nothing
        return self.status == EnrollmentStatus.ACTIVE.value


@dataclass
class Course:
    id: str
    title: str = ""
    price: Optional[float] = None

    @property
    def is_free(self) -> bool:
        return not self.price


@dataclass
class Lesson:
    id: str
    courseId: str
    title: str = ""
    videoUrl: str = ""
    lectureType: LectureType = LectureType.VIDEO
    isLocked: bool = False
    position: int = 0
    chapterId: Optional[str] = None
