from typing import List
from fastapi import APIRouter, Depends, Query

from lifelessons.api.deps import get_ready_store
from lifelessons.core.database import StoreContext
from lifelessons.core.errors import ValidationError
from lifelessons.features.favorites import service as favorite_service
from lifelessons.models.favorite import Favorite, FavoriteToggleRequest, FavoriteToggleResponse
from lifelessons.models.lesson import Lesson

router = APIRouter(prefix="/favorites", tags=["favorites"])


def _require_uid(uid: str) -> str:
    if not uid:
        raise ValidationError("uid required")
    return uid


@router.post("/toggle", response_model=FavoriteToggleResponse)
def toggle_favorite(body: FavoriteToggleRequest, store: StoreContext = Depends(get_ready_store)):
    saved = favorite_service.toggle_favorite(store, body.uid, body.lesson_id)
    return FavoriteToggleResponse(saved=saved)


@router.get("", response_model=List[Favorite])
def list_favorites(uid: str = Query(""), store: StoreContext = Depends(get_ready_store)):
    return favorite_service.list_favorites(store, _require_uid(uid))


@router.get("/lessons", response_model=List[Lesson])
def list_favorite_lessons(uid: str = Query(""), store: StoreContext = Depends(get_ready_store)):
    return favorite_service.list_favorite_lessons(store, _require_uid(uid))
