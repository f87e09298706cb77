"""Per-user convenience state kept on local disk.

Holds the last selected batch, draft note text per lesson and the Archive.org
bookmark list per lesson. Nothing here is authoritative: a missing or corrupt
file reads as empty, and a failed write is logged and dropped.
"""
from __future__ import annotations

import json
import logging
import os
import re
from pathlib import Path
from typing import Any, Dict, List, Optional

from lecturegate.services.content_sources import extract_archive_identifier

log = logging.getLogger("drafts")

SELECTION_KEY = "selected_batch"
_SAFE = re.compile(r"[^a-zA-Z0-9_.-]")


def _note_key(lesson_id: str) -> str:
    return f"lesson_note_{lesson_id}"


def _books_key(lesson_id: str) -> str:
    return f"lesson_archive_books_{lesson_id}"


class DraftStore:
    def __init__(self, root: str | os.PathLike) -> None:
        self.root = Path(root)

    def _path(self, user_id: str) -> Path:
        return self.root / f"{_SAFE.sub('_', user_id)}.json"

    def _load(self, user_id: str) -> Dict[str, Any]:
        path = self._path(user_id)
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return {}
        except (OSError, ValueError) as exc:
            log.warning("drafts: unreadable state for uid=%s: %s", user_id, exc)
            return {}
        return data if isinstance(data, dict) else {}

    def _put(self, user_id: str, key: str, value: Any) -> bool:
        data = self._load(user_id)
        if value is None:
            data.pop(key, None)
        else:
            data[key] = value
        path = self._path(user_id)
        tmp = path.with_suffix(".tmp")
        try:
            self.root.mkdir(parents=True, exist_ok=True)
            tmp.write_text(json.dumps(data), encoding="utf-8")
            os.replace(tmp, path)
        except OSError as exc:
            log.warning("drafts: could not save %s for uid=%s: %s", key, user_id, exc)
            return False
        return True

    # selected batch -------------------------------------------------

    def get_selection(self, user_id: str) -> Optional[Dict[str, Any]]:
        value = self._load(user_id).get(SELECTION_KEY)
        return value if isinstance(value, dict) and value.get("courseId") else None

    def set_selection(self, user_id: str, course_id: Optional[str], title: Optional[str] = None) -> bool:
        value = {"courseId": course_id, "title": title} if course_id else None
        return self._put(user_id, SELECTION_KEY, value)

    # notes ----------------------------------------------------------

    def get_note(self, user_id: str, lesson_id: str) -> str:
        value = self._load(user_id).get(_note_key(lesson_id))
        return value if isinstance(value, str) else ""

    def save_note(self, user_id: str, lesson_id: str, content: str) -> bool:
        return self._put(user_id, _note_key(lesson_id), content or None)

    # archive bookmarks ---------------------------------------------

    def get_books(self, user_id: str, lesson_id: str) -> List[Dict[str, Any]]:
        value = self._load(user_id).get(_books_key(lesson_id))
        if not isinstance(value, list):
            return []
        return [b for b in value if isinstance(b, dict) and b.get("identifier")]

    def save_books(self, user_id: str, lesson_id: str, books: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        cleaned: List[Dict[str, Any]] = []
        seen = set()
        for book in books:
            identifier = extract_archive_identifier(book.get("identifier") or "")
            if not identifier or identifier in seen:
                continue
            seen.add(identifier)
            cleaned.append(
                {
                    "identifier": identifier,
                    "title": (book.get("title") or "").strip() or None,
                    "description": (book.get("description") or "").strip() or None,
                }
            )
        self._put(user_id, _books_key(lesson_id), cleaned or None)
        return cleaned
