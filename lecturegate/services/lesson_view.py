from __future__ import annotations

import itertools
import logging
import threading
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from lecturegate.core.config import Settings
from lecturegate.core.errors import (
    AccessCheckFailed,
    CourseNotFound,
    LessonNotFound,
    StaleViewRequest,
    StoreUnavailable,
)
from lecturegate.models.domain import Lesson, User
from lecturegate.models.dto import ViewerDirective
from lecturegate.services.access_policy import AccessPolicyEngine, AccessVerdict
from lecturegate.services.content_sources import ResolvedSource, resolve
from lecturegate.services.store_calls import call_store
from lecturegate.services import viewer

log = logging.getLogger("access")


@dataclass(frozen=True)
class ViewTicket:
    viewer_key: str
    lesson_id: str
    seq: int


class ViewTracker:
    """Remembers the newest lesson each viewer asked for.

    A result whose ticket is no longer the newest one for its viewer belongs to a
    lesson the viewer already navigated away from and must be dropped. Entries
    only live while their request is in flight.
    """

    def __init__(self) -> None:
        self._latest: Dict[str, Tuple[str, int]] = {}
        self._seq = itertools.count(1)
        self._lock = threading.Lock()

    def issue(self, viewer_key: str, lesson_id: str) -> ViewTicket:
        with self._lock:
            seq = next(self._seq)
            self._latest[viewer_key] = (lesson_id, seq)
        return ViewTicket(viewer_key, lesson_id, seq)

    def is_current(self, ticket: ViewTicket) -> bool:
        with self._lock:
            return self._latest.get(ticket.viewer_key) == (ticket.lesson_id, ticket.seq)

    def release(self, ticket: ViewTicket) -> None:
        with self._lock:
            if self._latest.get(ticket.viewer_key) == (ticket.lesson_id, ticket.seq):
                del self._latest[ticket.viewer_key]

    def __len__(self) -> int:
        with self._lock:
            return len(self._latest)


@dataclass
class LessonView:
    lesson: Lesson
    verdict: AccessVerdict
    resolved: ResolvedSource
    directive: ViewerDirective
    ticket: Optional[ViewTicket] = None


@dataclass
class LessonRow:
    lesson: Lesson
    verdict: AccessVerdict


class LessonViewService:
    def __init__(
        self,
        gateway,
        policy: AccessPolicyEngine,
        settings: Settings,
        tracker: Optional[ViewTracker] = None,
    ) -> None:
        self.gateway = gateway
        self.policy = policy
        self.settings = settings
        self.tracker = tracker or ViewTracker()

    async def _store(self, fn, *args):
        try:
            return await call_store(fn, *args, timeout=self.settings.STORE_TIMEOUT_SECONDS)
        except StoreUnavailable as exc:
            log.warning("lesson view: %s", exc)
            raise AccessCheckFailed(str(exc)) from exc

    def _ensure_current(self, ticket: Optional[ViewTicket]) -> None:
        if ticket is not None and not self.tracker.is_current(ticket):
            log.info(
                "discarding stale view viewer=%s lesson=%s seq=%s",
                ticket.viewer_key,
                ticket.lesson_id,
                ticket.seq,
            )
            raise StaleViewRequest(f"lesson {ticket.lesson_id} superseded")

    async def view(
        self,
        user: Optional[User],
        lesson_id: str,
        viewer_key: Optional[str] = None,
    ) -> LessonView:
        ticket = None
        # anonymous callers share no identity, so their keys cannot be told apart
        if viewer_key and user is not None:
            ticket = self.tracker.issue(f"{user.id}:{viewer_key}", lesson_id)
        try:
            return await self._view(user, lesson_id, ticket)
        finally:
            if ticket is not None:
                self.tracker.release(ticket)

    async def _view(self, user: Optional[User], lesson_id: str, ticket: Optional[ViewTicket]) -> LessonView:
        lesson = await self._store(self.gateway.get_lesson, lesson_id)
        if lesson is None:
            raise LessonNotFound(lesson_id)

        # the decision is complete before any viewer is chosen
        verdict = await self.policy.decide(user, lesson)
        self._ensure_current(ticket)

        resolved = resolve(lesson.videoUrl)
        directive = viewer.select(
            resolved, verdict.decision, lesson.courseId, self.settings.BUY_COURSE_ROUTE
        )
        if verdict.message:
            directive.message = verdict.message
        self._ensure_current(ticket)

        return LessonView(
            lesson=lesson,
            verdict=verdict,
            resolved=resolved,
            directive=directive,
            ticket=ticket,
        )

    async def list_course_lessons(self, user: Optional[User], course_id: str) -> List[LessonRow]:
        """Every row carries its own decision; list, gallery and modal views share it."""
        lessons = await self._store(self.gateway.list_lessons, course_id)
        if not lessons:
            course = await self._store(self.gateway.get_course, course_id)
            if course is None:
                raise CourseNotFound(course_id)
            return []

        lookup = self.policy.request_scoped_lookup()
        verify = self.policy.request_scoped_privilege()
        rows: List[LessonRow] = []
        for lesson in lessons:
            verdict = await self.policy.decide(user, lesson, lookup, verify)
            rows.append(LessonRow(lesson=lesson, verdict=verdict))
        return rows
