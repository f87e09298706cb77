import asyncio
from typing import Any, Dict

from fastapi import APIRouter, Depends

from lecturegate.deps.auth import get_current_user
from lecturegate.deps.services import get_draft_store
from lecturegate.models.domain import User
from lecturegate.models.dto import BooksIn, NoteIn, SelectionIn
from lecturegate.services.drafts import DraftStore

router = APIRouter(prefix="/api/drafts")


@router.get("/selection")
async def get_selection(user: User = Depends(get_current_user), store: DraftStore = Depends(get_draft_store)):
    return {"selection": await asyncio.to_thread(store.get_selection, user.id)}


@router.put("/selection")
async def put_selection(
    body: SelectionIn,
    user: User = Depends(get_current_user),
    store: DraftStore = Depends(get_draft_store),
) -> Dict[str, Any]:
    saved = await asyncio.to_thread(store.set_selection, user.id, body.courseId, body.title)
    return {"saved": saved, "selection": await asyncio.to_thread(store.get_selection, user.id)}


@router.get("/lessons/{lessonId}/note")
async def get_note(lessonId: str, user: User = Depends(get_current_user), store: DraftStore = Depends(get_draft_store)):
    return {"lessonId": lessonId, "content": await asyncio.to_thread(store.get_note, user.id, lessonId)}


@router.put("/lessons/{lessonId}/note")
async def put_note(
    lessonId: str,
    body: NoteIn,
    user: User = Depends(get_current_user),
    store: DraftStore = Depends(get_draft_store),
):
    saved = await asyncio.to_thread(store.save_note, user.id, lessonId, body.content)
    return {"lessonId": lessonId, "saved": saved}


@router.get("/lessons/{lessonId}/books")
async def get_books(lessonId: str, user: User = Depends(get_current_user), store: DraftStore = Depends(get_draft_store)):
    return {"lessonId": lessonId, "items": await asyncio.to_thread(store.get_books, user.id, lessonId)}


@router.put("/lessons/{lessonId}/books")
async def put_books(
    lessonId: str,
    body: BooksIn,
    user: User = Depends(get_current_user),
    store: DraftStore = Depends(get_draft_store),
):
    books = [b.model_dump() for b in body.items]
    items = await asyncio.to_thread(store.save_books, user.id, lessonId, books)
    return {"lessonId": lessonId, "items": items}
