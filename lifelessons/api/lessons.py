"""
Lesson API routes.

Static paths (/lessons/my, /lessons/public) are declared before /lessons/{lesson_id}.
"""
from typing import List
from fastapi import APIRouter, Depends, Query

from lifelessons.api.deps import get_ready_store
from lifelessons.core.database import StoreContext
from lifelessons.core.errors import ValidationError
from lifelessons.features.lessons import service as lesson_service
from lifelessons.models.lesson import (
    AccessUpdate,
    InsertedResponse,
    Lesson,
    LessonCreateRequest,
    LessonPage,
    LessonUpdateRequest,
    LikeRequest,
    LikeResponse,
    VisibilityUpdate,
)

router = APIRouter(prefix="/lessons", tags=["lessons"])
home_router = APIRouter(prefix="/home", tags=["lessons"])


@router.post("", response_model=InsertedResponse)
def create_lesson(body: LessonCreateRequest, store: StoreContext = Depends(get_ready_store)):
    lesson_id = lesson_service.create_lesson(store, body)
    return InsertedResponse(inserted_id=lesson_id)


@router.get("/my", response_model=List[Lesson])
def my_lessons(uid: str = Query(""), store: StoreContext = Depends(get_ready_store)):
    if not uid:
        raise ValidationError("uid required")
    return lesson_service.list_my(store, uid)


@router.get("/public", response_model=LessonPage)
def public_lessons(
    search: str = Query(""),
    category: str = Query(""),
    tone: str = Query(""),
    page: int = Query(1),
    limit: int = Query(lesson_service.DEFAULT_PAGE_SIZE),
    store: StoreContext = Depends(get_ready_store),
):
    return lesson_service.list_public(
        store, search=search, category=category, tone=tone, page=page, limit=limit
    )


@router.get("/{lesson_id}", response_model=Lesson)
def get_lesson(lesson_id: str, store: StoreContext = Depends(get_ready_store)):
    return lesson_service.get_lesson(store, lesson_id)


@router.patch("/{lesson_id}", response_model=Lesson)
def update_lesson(lesson_id: str, body: LessonUpdateRequest, store: StoreContext = Depends(get_ready_store)):
    return lesson_service.update_lesson(store, lesson_id, body)


@router.delete("/{lesson_id}")
def delete_lesson(lesson_id: str, store: StoreContext = Depends(get_ready_store)):
    lesson_service.delete_lesson(store, lesson_id)
    return {"success": True}


@router.patch("/{lesson_id}/visibility")
def set_visibility(lesson_id: str, body: VisibilityUpdate, store: StoreContext = Depends(get_ready_store)):
    lesson = lesson_service.set_visibility(store, lesson_id, body.visibility)
    return {"success": True, "visibility": lesson.visibility}


@router.patch("/{lesson_id}/access")
def set_access(lesson_id: str, body: AccessUpdate, store: StoreContext = Depends(get_ready_store)):
    lesson = lesson_service.set_access_level(store, lesson_id, body.access_level)
    return {"success": True, "accessLevel": lesson.access_level}


@router.patch("/{lesson_id}/like", response_model=LikeResponse)
def toggle_like(lesson_id: str, body: LikeRequest, store: StoreContext = Depends(get_ready_store)):
    return lesson_service.toggle_like(store, lesson_id, body.uid)


@router.get("/{lesson_id}/favorites-count")
def favorites_count(lesson_id: str, store: StoreContext = Depends(get_ready_store)):
    return {"favoritesCount": lesson_service.favorites_count(store, lesson_id)}


@router.get("/{lesson_id}/similar", response_model=List[Lesson])
def similar_lessons(lesson_id: str, store: StoreContext = Depends(get_ready_store)):
    return lesson_service.similar_lessons(store, lesson_id)


@home_router.get("/featured", response_model=List[Lesson])
def featured_lessons(store: StoreContext = Depends(get_ready_store)):
    return lesson_service.list_featured(store)
