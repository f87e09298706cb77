from typing import Optional

from fastapi import APIRouter, Depends, Query

from lecturegate.deps.auth import get_optional_user
from lecturegate.deps.services import get_lesson_view_service
from lecturegate.models.domain import User
from lecturegate.models.dto import CourseLessonsOut, LessonRowOut, LessonViewOut
from lecturegate.services.access_policy import AccessDecision
from lecturegate.services.lesson_view import LessonViewService

router = APIRouter()


@router.get("/lessons/{lessonId}/viewer", response_model=LessonViewOut)
async def lesson_viewer(
    lessonId: str,
    viewerKey: Optional[str] = Query(None, description="per-tab key; newer requests supersede older ones"),
    user: Optional[User] = Depends(get_optional_user),
    service: LessonViewService = Depends(get_lesson_view_service),
):
    view = await service.view(user, lessonId, viewerKey)
    return LessonViewOut(
        lessonId=view.lesson.id,
        courseId=view.lesson.courseId,
        title=view.lesson.title,
        lectureType=view.lesson.lectureType.value,
        decision=view.verdict.decision.value,
        directive=view.directive,
        ticket=view.ticket.seq if view.ticket else None,
    )


@router.get("/courses/{courseId}/lessons", response_model=CourseLessonsOut)
async def course_lessons(
    courseId: str,
    user: Optional[User] = Depends(get_optional_user),
    service: LessonViewService = Depends(get_lesson_view_service),
):
    rows = await service.list_course_lessons(user, courseId)
    message = next((r.verdict.message for r in rows if r.verdict.message), None)
    return CourseLessonsOut(
        courseId=courseId,
        items=[
            LessonRowOut(
                id=r.lesson.id,
                title=r.lesson.title,
                lectureType=r.lesson.lectureType.value,
                position=r.lesson.position,
                chapterId=r.lesson.chapterId,
                isLocked=r.verdict.decision is AccessDecision.LOCKED,
                decision=r.verdict.decision.value,
            )
            for r in rows
        ],
        message=message,
    )
