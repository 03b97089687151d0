"""
Admin API routes (user and lesson moderation).

All routes require X-User-Id naming a user with role "admin".
"""
from typing import List, Optional
from fastapi import APIRouter, Depends, Query

from lifelessons.api.deps import get_ready_store, require_admin
from lifelessons.core.admin_auth import AdminActor
from lifelessons.core.database import StoreContext
from lifelessons.features.admin import service as admin_service
from lifelessons.features.lessons import service as lesson_service
from lifelessons.features.reports import service as report_service
from lifelessons.models.lesson import FeaturedUpdate, Lesson, ReviewedUpdate
from lifelessons.models.report import ReportedLesson
from lifelessons.models.user import AdminUser, RoleUpdateRequest, User

router = APIRouter(prefix="/admin", tags=["admin"])


def _parse_featured(featured: str) -> Optional[bool]:
    if featured == "true":
        return True
    if featured == "false":
        return False
    return None


@router.get("/users", response_model=List[AdminUser])
def list_users(actor: AdminActor = Depends(require_admin), store: StoreContext = Depends(get_ready_store)):
    return admin_service.list_users(store)


@router.patch("/users/role", response_model=User)
def set_role(
    body: RoleUpdateRequest,
    actor: AdminActor = Depends(require_admin),
    store: StoreContext = Depends(get_ready_store),
):
    return admin_service.set_role(store, body.uid, body.role, actor_uid=actor.uid)


@router.delete("/users/{uid}")
def delete_user(uid: str, actor: AdminActor = Depends(require_admin), store: StoreContext = Depends(get_ready_store)):
    admin_service.delete_user(store, uid, actor_uid=actor.uid)
    return {"success": True}


@router.get("/lessons", response_model=List[Lesson])
def list_lessons(
    search: str = Query(""),
    visibility: str = Query(""),
    access_level: str = Query("", alias="accessLevel"),
    featured: str = Query(""),
    actor: AdminActor = Depends(require_admin),
    store: StoreContext = Depends(get_ready_store),
):
    return lesson_service.list_for_admin(
        store,
        search=search,
        visibility=visibility,
        access_level=access_level,
        featured=_parse_featured(featured),
    )


@router.patch("/lessons/{lesson_id}/featured", response_model=Lesson)
def set_featured(
    lesson_id: str,
    body: FeaturedUpdate,
    actor: AdminActor = Depends(require_admin),
    store: StoreContext = Depends(get_ready_store),
):
    return lesson_service.set_featured(store, lesson_id, body.is_featured)


@router.patch("/lessons/{lesson_id}/reviewed", response_model=Lesson)
def set_reviewed(
    lesson_id: str,
    body: ReviewedUpdate,
    actor: AdminActor = Depends(require_admin),
    store: StoreContext = Depends(get_ready_store),
):
    return lesson_service.set_reviewed(store, lesson_id, body.is_reviewed)


@router.delete("/lessons/{lesson_id}")
def delete_lesson(lesson_id: str, actor: AdminActor = Depends(require_admin), store: StoreContext = Depends(get_ready_store)):
    lesson_service.delete_lesson(store, lesson_id)
    return {"success": True}


@router.get("/reported-lessons", response_model=List[ReportedLesson])
def reported_lessons(actor: AdminActor = Depends(require_admin), store: StoreContext = Depends(get_ready_store)):
    return report_service.reported_lessons(store)


@router.delete("/reported-lessons/{lesson_id}")
def dismiss_reports(lesson_id: str, actor: AdminActor = Depends(require_admin), store: StoreContext = Depends(get_ready_store)):
    removed = report_service.dismiss_reports(store, lesson_id)
    return {"success": True, "removed": removed}
