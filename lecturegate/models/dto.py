from typing import Dict, List, Optional

from pydantic import BaseModel, Field


class ViewerAction(BaseModel):
    kind: str = Field(..., description="open-external|download")
    url: str


class ViewerDirective(BaseModel):
    mode: str = Field(..., description="locked-prompt|inline-video|native-video|document|unsupported")
    player: Optional[str] = Field(None, description="youtube|vimeo|archive|html5|drive|pdf")
    src: Optional[str] = None
    externalId: Optional[str] = None
    showNotesPane: bool = False
    redirectTarget: Optional[str] = None
    maskOverlay: bool = False
    actions: List[ViewerAction] = []
    # Soft deterrents for native playback; not an access control.
    hints: Dict[str, str] = {}
    message: Optional[str] = None
    adminOverride: bool = False


class LessonViewOut(BaseModel):
    lessonId: str
    courseId: str
    title: str
    lectureType: str
    decision: str
    directive: ViewerDirective
    ticket: Optional[int] = None


class LessonRowOut(BaseModel):
    id: str
    title: str
    lectureType: str
    position: int
    chapterId: Optional[str] = None
    isLocked: bool
    decision: str


class CourseLessonsOut(BaseModel):
    courseId: str
    items: List[LessonRowOut]
    message: Optional[str] = None


class EnrollIn(BaseModel):
    courseId: str


class AdminEnrollIn(BaseModel):
    courseId: str
    studentId: Optional[str] = Field(None, description="defaults to the calling admin")


class PaymentApprovalIn(BaseModel):
    courseId: str
    studentId: str


class EnrollmentResultOut(BaseModel):
    created: bool
    enrollmentId: str
    courseId: str
    adminOverride: bool = False
    redirectTo: Optional[str] = None


class AutoEnrollOut(BaseModel):
    enrolledCourseIds: List[str] = []


class EnrollmentOut(BaseModel):
    id: str
    courseId: str
    status: str
    purchasedAt: Optional[str] = None
    source: Optional[str] = None


class EnrollmentCheckOut(BaseModel):
    enrolled: bool
    enrollment: Optional[EnrollmentOut] = None


class ArchiveDownloadOut(BaseModel):
    format: str
    size: Optional[str] = None
    url: str


class ArchiveMetadataOut(BaseModel):
    identifier: str
    available: bool
    title: str
    creator: Optional[str] = None
    description: Optional[str] = None
    embedUrl: str
    detailsUrl: str
    downloads: List[ArchiveDownloadOut] = []


class SelectionIn(BaseModel):
    courseId: Optional[str] = None
    title: Optional[str] = None


class NoteIn(BaseModel):
    content: str = ""


class ArchiveBookIn(BaseModel):
    identifier: str
    title: Optional[str] = None
    description: Optional[str] = None


class BooksIn(BaseModel):
    items: List[ArchiveBookIn] = []
