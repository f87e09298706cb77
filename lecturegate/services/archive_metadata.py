"""Optional Archive.org metadata lookup for the book/video reader.

Failure of any kind degrades to an identifier-only result with a link to the
details page; resolution of the lesson itself never depends on this call.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import requests

from lecturegate.core.config import Settings

log = logging.getLogger("archive")

DOWNLOAD_FORMATS = ("pdf", "epub", "mobi", "txt", "djvu")


@dataclass
class ArchiveDownload:
    format: str
    url: str
    size: Optional[str] = None


@dataclass
class ArchiveMetadata:
    identifier: str
    available: bool
    title: str
    creator: Optional[str] = None
    description: Optional[str] = None
    downloads: List[ArchiveDownload] = field(default_factory=list)

    @property
    def embedUrl(self) -> str:
        return f"https://archive.org/embed/{self.identifier}"

    @property
    def detailsUrl(self) -> str:
        return f"https://archive.org/details/{self.identifier}"


def format_file_size(num_bytes: int) -> str:
    if num_bytes <= 0:
        return "0 B"
    units = ["B", "KB", "MB", "GB"]
    i = 0
    while num_bytes >= 1024 ** (i + 1) and i < len(units) - 1:
        i += 1
    value = round(num_bytes / (1024 ** i), 1)
    return f"{value:g} {units[i]}"


def _first_text(value: Any) -> Optional[str]:
    # metadata fields are either a string or a list of strings
    if isinstance(value, list):
        value = value[0] if value else None
    return str(value) if value else None


def _collect_downloads(identifier: str, files: List[Dict[str, Any]]) -> List[ArchiveDownload]:
    downloads: List[ArchiveDownload] = []
    seen = set()
    for f in files:
        fmt = (f.get("format") or "").lower()
        key = next((k for k in DOWNLOAD_FORMATS if k in fmt), None)
        if not key or key in seen or not f.get("name"):
            continue
        seen.add(key)
        size = None
        try:
            if f.get("size"):
                size = format_file_size(int(f["size"]))
        except (TypeError, ValueError):
            size = None
        downloads.append(
            ArchiveDownload(
                format=key,
                url=f"https://archive.org/download/{identifier}/{f['name']}",
                size=size,
            )
        )
    return downloads


def parse_metadata(identifier: str, payload: Any) -> ArchiveMetadata:
    if not isinstance(payload, dict):
        raise ValueError("unexpected metadata payload")
    meta = payload.get("metadata")
    if not isinstance(meta, dict) or not meta:
        raise ValueError("item not found")
    return ArchiveMetadata(
        identifier=identifier,
        available=True,
        title=_first_text(meta.get("title")) or identifier,
        creator=_first_text(meta.get("creator")),
        description=_first_text(meta.get("description")),
        downloads=_collect_downloads(identifier, payload.get("files") or []),
    )


class ArchiveMetadataClient:
    def __init__(self, settings: Settings, session: Optional[requests.Session] = None) -> None:
        self.settings = settings
        self.session = session or requests.Session()

    def fetch(self, identifier: str) -> ArchiveMetadata:
        identifier = (identifier or "").strip()
        fallback = ArchiveMetadata(identifier=identifier, available=False, title=identifier)
        if not identifier:
            return fallback

        url = f"{self.settings.ARCHIVE_METADATA_URL.rstrip('/')}/{identifier}"
        try:
            resp = self.session.get(url, timeout=self.settings.ARCHIVE_TIMEOUT_SECONDS)
            resp.raise_for_status()
            return parse_metadata(identifier, resp.json())
        except (requests.RequestException, ValueError) as exc:
            log.warning("archive metadata for %s unavailable: %s", identifier, exc)
            return fallback
