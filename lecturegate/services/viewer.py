"""Pick the viewer a resolved lesson source should be mounted with.

The directive for a locked decision is built before looking at the source kind,
so no per-kind branch can hand out an embed URL for content the user cannot see.

``VIDEO_DIRECT`` directives carry ``controlsList=nodownload`` and
``disableContextMenu`` hints. They only discourage casual saving; the media URL
itself is still delivered to the client.
"""
from __future__ import annotations

from typing import Callable, Dict

from lecturegate.models.dto import ViewerAction, ViewerDirective
from lecturegate.services.access_policy import AccessDecision
from lecturegate.services.content_sources import ResolvedSource, SourceKind

LOCKED_PROMPT = "locked-prompt"
INLINE_VIDEO = "inline-video"
NATIVE_VIDEO = "native-video"
DOCUMENT = "document"
UNSUPPORTED = "unsupported"

BUY_COURSE_ROUTE = "/buy-course"

LOCKED_MESSAGE = "This lecture is locked. Enroll in the course to unlock it."
UNSUPPORTED_MESSAGE = "Unsupported video format"


def _iframe_player(player: str) -> Callable[[ResolvedSource], ViewerDirective]:
    def build(resolved: ResolvedSource) -> ViewerDirective:
        return ViewerDirective(
            mode=INLINE_VIDEO,
            player=player,
            src=resolved.embedUrl,
            externalId=resolved.externalId,
            # Vimeo/Archive chrome gets masked like the Drive header
            maskOverlay=player != "youtube",
        )

    return build


def _native_video(resolved: ResolvedSource) -> ViewerDirective:
    return ViewerDirective(
        mode=NATIVE_VIDEO,
        player="html5",
        src=resolved.embedUrl,
        hints={"controlsList": "nodownload", "disableContextMenu": "true"},
    )


def _document(player: str) -> Callable[[ResolvedSource], ViewerDirective]:
    def build(resolved: ResolvedSource) -> ViewerDirective:
        actions = []
        if resolved.externalUrl:
            actions.append(ViewerAction(kind="open-external", url=resolved.externalUrl))
        if resolved.downloadUrl:
            actions.append(ViewerAction(kind="download", url=resolved.downloadUrl))
        return ViewerDirective(
            mode=DOCUMENT,
            player=player,
            src=resolved.embedUrl,
            externalId=resolved.externalId,
            maskOverlay=True,
            actions=actions,
        )

    return build


def _unsupported(resolved: ResolvedSource) -> ViewerDirective:
    return ViewerDirective(mode=UNSUPPORTED, message=UNSUPPORTED_MESSAGE)


BUILDERS: Dict[SourceKind, Callable[[ResolvedSource], ViewerDirective]] = {
    SourceKind.VIDEO_YOUTUBE: _iframe_player("youtube"),
    SourceKind.VIDEO_VIMEO: _iframe_player("vimeo"),
    SourceKind.VIDEO_ARCHIVE: _iframe_player("archive"),
    SourceKind.VIDEO_DIRECT: _native_video,
    SourceKind.DOCUMENT_DRIVE: _document("drive"),
    SourceKind.DOCUMENT_PDF: _document("pdf"),
    SourceKind.UNKNOWN: _unsupported,
}


def buy_course_target(course_id: str, buy_route: str = BUY_COURSE_ROUTE) -> str:
    return f"{buy_route}?id={course_id}"


def locked_prompt(course_id: str, buy_route: str = BUY_COURSE_ROUTE) -> ViewerDirective:
    return ViewerDirective(
        mode=LOCKED_PROMPT,
        redirectTarget=buy_course_target(course_id, buy_route),
        showNotesPane=False,
        message=LOCKED_MESSAGE,
    )


def select(
    resolved: ResolvedSource,
    decision: AccessDecision,
    course_id: str,
    buy_route: str = BUY_COURSE_ROUTE,
) -> ViewerDirective:
    if decision is AccessDecision.LOCKED:
        return locked_prompt(course_id, buy_route)

    directive = BUILDERS.get(resolved.kind, _unsupported)(resolved)
    directive.showNotesPane = resolved.kind.is_video
    directive.adminOverride = decision is AccessDecision.ADMIN_OVERRIDE
    return directive
