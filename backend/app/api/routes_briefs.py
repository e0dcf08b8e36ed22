from typing import Literal
from uuid import UUID

from fastapi import APIRouter, Depends, Query

from ..models.user import User
from ..schemas.briefs import (
    BriefGenerateRequest,
    BriefListOut,
    BriefOut,
    BriefPatchRequest,
    BriefRefreshRequest,
)
from ..services.handlers import BriefRequestHandlers
from .deps import get_brief_handlers, get_current_user, get_request_id

router = APIRouter(tags=["briefs"])


def _ok(data) -> dict:
    return {"success": True, "data": data}


def _brief(brief) -> dict:
    return {"brief": BriefOut.model_validate(brief).model_dump(mode="json")}


@router.post("/briefs/generate", status_code=201)
def generate_brief(
    payload: BriefGenerateRequest,
    user: User = Depends(get_current_user),
    handlers: BriefRequestHandlers = Depends(get_brief_handlers),
    request_id: str = Depends(get_request_id),
):
    brief = handlers.generate(
        user,
        payload.linkedin_url,
        payload.meeting_goal,
        payload.custom_goal,
        request_id=request_id,
    )
    return _ok(_brief(brief))


@router.post("/briefs/{brief_id}/refresh")
def refresh_brief(
    brief_id: UUID,
    payload: BriefRefreshRequest | None = None,
    user: User = Depends(get_current_user),
    handlers: BriefRequestHandlers = Depends(get_brief_handlers),
    request_id: str = Depends(get_request_id),
):
    payload = payload or BriefRefreshRequest()
    brief = handlers.refresh(
        user,
        brief_id,
        payload.meeting_goal,
        payload.custom_goal,
        request_id=request_id,
    )
    return _ok(_brief(brief))


@router.get("/briefs")
def list_briefs(
    page: int = Query(1, ge=1),
    limit: int | None = Query(None, ge=1),
    search: str | None = None,
    goal: str | None = None,
    saved: bool | None = None,
    sort: Literal["created_at", "profile_name"] = "created_at",
    order: Literal["asc", "desc"] = "desc",
    user: User = Depends(get_current_user),
    handlers: BriefRequestHandlers = Depends(get_brief_handlers),
):
    result = handlers.list(
        user,
        search=search,
        meeting_goal=(goal or "").strip() or None,
        is_saved=saved,
        page=page,
        limit=limit,
        sort=sort,
        order=order,
    )
    out = BriefListOut(
        briefs=[BriefOut.model_validate(b) for b in result.briefs],
        total=result.total,
        page=result.page,
        limit=result.limit,
        has_more=result.has_more,
    )
    return _ok(out.model_dump(mode="json"))


@router.get("/briefs/{brief_id}")
def get_brief(
    brief_id: UUID,
    user: User = Depends(get_current_user),
    handlers: BriefRequestHandlers = Depends(get_brief_handlers),
):
    return _ok(_brief(handlers.get(user, brief_id)))


@router.patch("/briefs/{brief_id}")
def patch_brief(
    brief_id: UUID,
    payload: BriefPatchRequest,
    user: User = Depends(get_current_user),
    handlers: BriefRequestHandlers = Depends(get_brief_handlers),
):
    return _ok(_brief(handlers.patch(user, brief_id, payload.is_saved)))


@router.delete("/briefs/{brief_id}")
def delete_brief(
    brief_id: UUID,
    user: User = Depends(get_current_user),
    handlers: BriefRequestHandlers = Depends(get_brief_handlers),
):
    handlers.delete(user, brief_id)
    return _ok({"message": "Brief deleted successfully"})
