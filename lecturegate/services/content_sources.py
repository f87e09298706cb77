"""Classify stored lesson URLs into a source kind with embed/download URLs.

Classification is an ordered list of ``(predicate, classifier)`` rules; the first
predicate that matches decides. Order matters because patterns overlap, e.g. a
Drive link whose file name contains ``pdf`` must stay a Drive document.
No network access happens here.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import Callable, List, Optional, Tuple


class SourceKind(str, Enum):
    VIDEO_YOUTUBE = "VIDEO_YOUTUBE"
    VIDEO_VIMEO = "VIDEO_VIMEO"
    VIDEO_DIRECT = "VIDEO_DIRECT"
    VIDEO_ARCHIVE = "VIDEO_ARCHIVE"
    DOCUMENT_DRIVE = "DOCUMENT_DRIVE"
    DOCUMENT_PDF = "DOCUMENT_PDF"
    UNKNOWN = "UNKNOWN"

    @property
    def is_video(self) -> bool:
        return self.value.startswith("VIDEO_")

    @property
    def is_document(self) -> bool:
        return self.value.startswith("DOCUMENT_")


@dataclass(frozen=True)
class ResolvedSource:
    kind: SourceKind
    embedUrl: Optional[str] = None
    downloadUrl: Optional[str] = None
    externalId: Optional[str] = None
    externalUrl: Optional[str] = None
    rawUrl: str = ""


YOUTUBE_EMBED_HOST = "https://www.youtube-nocookie.com/embed"
YOUTUBE_EMBED_PARAMS = "modestbranding=1&rel=0&showinfo=0&iv_load_policy=3&playsinline=1"
VIMEO_PLAYER_HOST = "https://player.vimeo.com/video"
VIMEO_PLAYER_PARAMS = "title=0&byline=0&portrait=0&badge=0&dnt=1"
PDF_VIEWER_FRAGMENT = "#toolbar=0&navpanes=0"

_DRIVE_HOST = re.compile(r"(?:drive|docs)\.google\.com", re.IGNORECASE)
_DRIVE_PATH_ID = re.compile(r"/d/([a-zA-Z0-9_-]+)")
_DRIVE_QUERY_ID = re.compile(r"[?&]id=([a-zA-Z0-9_-]+)")

_YOUTUBE_URL_ID = re.compile(
    r"(?:youtube\.com/watch\?(?:[^#]*&)?v=|youtu\.be/|youtube\.com/embed/|youtube\.com/shorts/)([^&\n?#/]+)",
    re.IGNORECASE,
)
_YOUTUBE_ID = re.compile(r"^[a-zA-Z0-9_-]{11}$")

_VIMEO_ID = re.compile(r"vimeo\.com/(?:video/)?(\d+)", re.IGNORECASE)

_ARCHIVE_ID = re.compile(r"archive\.org/(?:details|embed)/([^/?#]+)", re.IGNORECASE)

_PDF_SUFFIX = re.compile(r"\.pdf($|\?)", re.IGNORECASE)
_MEDIA_SUFFIX = re.compile(r"\.(mp4|webm)($|\?)", re.IGNORECASE)


def extract_drive_id(url: str) -> Optional[str]:
    # path form wins over the query form
    for pattern in (_DRIVE_PATH_ID, _DRIVE_QUERY_ID):
        m = pattern.search(url)
        if m:
            return m.group(1)
    return None


def extract_youtube_id(url: str) -> Optional[str]:
    m = _YOUTUBE_URL_ID.search(url)
    if m and _YOUTUBE_ID.match(m.group(1)):
        return m.group(1)
    # A bare id only counts when it is the whole input
    if _YOUTUBE_ID.match(url):
        return url
    return None


def extract_archive_identifier(value: str) -> str:
    """Accept a bare Archive.org identifier or a details/embed URL."""
    value = (value or "").strip()
    m = _ARCHIVE_ID.search(value)
    return m.group(1) if m else value


def _is_drive(url: str) -> bool:
    if _DRIVE_PATH_ID.search(url):
        return True
    # the ?id= form is only trusted on Google hosts
    return bool(_DRIVE_HOST.search(url) and extract_drive_id(url))


def _drive(url: str) -> ResolvedSource:
    file_id = extract_drive_id(url)
    return ResolvedSource(
        kind=SourceKind.DOCUMENT_DRIVE,
        embedUrl=f"https://drive.google.com/file/d/{file_id}/preview",
        downloadUrl=f"https://drive.google.com/uc?export=download&id={file_id}",
        externalId=file_id,
        externalUrl=f"https://drive.google.com/file/d/{file_id}/view",
        rawUrl=url,
    )


def _youtube(url: str) -> ResolvedSource:
    video_id = extract_youtube_id(url)
    return ResolvedSource(
        kind=SourceKind.VIDEO_YOUTUBE,
        embedUrl=f"{YOUTUBE_EMBED_HOST}/{video_id}?{YOUTUBE_EMBED_PARAMS}",
        externalId=video_id,
        externalUrl=f"https://www.youtube.com/watch?v={video_id}",
        rawUrl=url,
    )


def _vimeo(url: str) -> ResolvedSource:
    video_id = _VIMEO_ID.search(url).group(1)
    return ResolvedSource(
        kind=SourceKind.VIDEO_VIMEO,
        embedUrl=f"{VIMEO_PLAYER_HOST}/{video_id}?{VIMEO_PLAYER_PARAMS}",
        externalId=video_id,
        externalUrl=f"https://vimeo.com/{video_id}",
        rawUrl=url,
    )


def _archive(url: str) -> ResolvedSource:
    identifier = extract_archive_identifier(url)
    return ResolvedSource(
        kind=SourceKind.VIDEO_ARCHIVE,
        embedUrl=url.replace("/details/", "/embed/"),
        downloadUrl=f"https://archive.org/download/{identifier}",
        externalId=identifier,
        externalUrl=f"https://archive.org/details/{identifier}",
        rawUrl=url,
    )


def _pdf(url: str) -> ResolvedSource:
    embed = url if "#" in url else f"{url}{PDF_VIEWER_FRAGMENT}"
    return ResolvedSource(
        kind=SourceKind.DOCUMENT_PDF,
        embedUrl=embed,
        downloadUrl=url,
        externalUrl=url,
        rawUrl=url,
    )


def _direct(url: str) -> ResolvedSource:
    return ResolvedSource(
        kind=SourceKind.VIDEO_DIRECT,
        embedUrl=url,
        downloadUrl=url,
        externalUrl=url,
        rawUrl=url,
    )


Rule = Tuple[Callable[[str], bool], Callable[[str], ResolvedSource]]

RULES: List[Rule] = [
    (_is_drive, _drive),
    (lambda u: extract_youtube_id(u) is not None, _youtube),
    (lambda u: bool(_VIMEO_ID.search(u)), _vimeo),
    (lambda u: bool(_ARCHIVE_ID.search(u)), _archive),
    (lambda u: bool(_PDF_SUFFIX.search(u)), _pdf),
    (lambda u: bool(_MEDIA_SUFFIX.search(u)), _direct),
]


def resolve(raw_url: Optional[str]) -> ResolvedSource:
    url = (raw_url or "").strip()
    if not url:
        return ResolvedSource(kind=SourceKind.UNKNOWN, rawUrl="")
    for matches, classify in RULES:
        if matches(url):
            return classify(url)
    return ResolvedSource(kind=SourceKind.UNKNOWN, rawUrl=url)
