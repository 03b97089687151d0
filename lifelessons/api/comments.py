from typing import List
from fastapi import APIRouter, Depends, Query

from lifelessons.api.deps import get_ready_store
from lifelessons.core.database import StoreContext
from lifelessons.core.errors import ValidationError
from lifelessons.features.comments import service as comment_service
from lifelessons.models.comment import Comment, CommentCreateRequest
from lifelessons.models.lesson import InsertedResponse

router = APIRouter(prefix="/comments", tags=["comments"])


@router.get("", response_model=List[Comment])
def list_comments(lesson_id: str = Query("", alias="lessonId"), store: StoreContext = Depends(get_ready_store)):
    if not lesson_id:
        return []
    return comment_service.list_comments(store, lesson_id)


@router.post("", response_model=InsertedResponse)
def add_comment(body: CommentCreateRequest, store: StoreContext = Depends(get_ready_store)):
    comment_id = comment_service.add_comment(store, body)
    return InsertedResponse(inserted_id=comment_id)


@router.delete("/{comment_id}")
def delete_comment(comment_id: str, uid: str = Query(""), store: StoreContext = Depends(get_ready_store)):
    if not uid:
        raise ValidationError("uid required")
    comment_service.delete_comment(store, comment_id, uid)
    return {"success": True}
