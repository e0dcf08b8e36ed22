from fastapi import APIRouter, Depends

from ..models.user import User
from ..schemas.briefs import LinkedInConnectRequest, UsageStatsOut, UserOut
from ..services.handlers import BriefRequestHandlers, ProfileSyncHandler
from .deps import get_brief_handlers, get_current_user, get_profile_sync_handler, get_request_id

router = APIRouter(tags=["account"])


@router.get("/usage")
def get_usage(
    user: User = Depends(get_current_user),
    handlers: BriefRequestHandlers = Depends(get_brief_handlers),
):
    stats = handlers.usage_stats(user)
    out = UsageStatsOut(
        plan=stats.plan,
        limit=stats.limit,
        used=stats.used,
        remaining=stats.remaining,
        total_briefs=stats.total_briefs,
        period_start=stats.period_start,
    )
    return {"success": True, "data": out.model_dump(mode="json")}


@router.post("/user/linkedin")
def connect_linkedin(
    payload: LinkedInConnectRequest,
    user: User = Depends(get_current_user),
    sync: ProfileSyncHandler = Depends(get_profile_sync_handler),
    request_id: str = Depends(get_request_id),
):
    user = sync.connect(user, payload.linkedin_url, request_id=request_id)
    return {
        "success": True,
        "data": {
            "user": UserOut.model_validate(user).model_dump(mode="json"),
            "message": "LinkedIn profile connected successfully",
        },
    }


@router.post("/user/linkedin/sync")
def resync_linkedin(
    user: User = Depends(get_current_user),
    sync: ProfileSyncHandler = Depends(get_profile_sync_handler),
    request_id: str = Depends(get_request_id),
):
    user = sync.resync(user, request_id=request_id)
    return {
        "success": True,
        "data": {
            "user": UserOut.model_validate(user).model_dump(mode="json"),
            "message": "LinkedIn profile synced successfully",
        },
    }


@router.delete("/user/linkedin")
def disconnect_linkedin(
    user: User = Depends(get_current_user),
    sync: ProfileSyncHandler = Depends(get_profile_sync_handler),
):
    sync.disconnect(user)
    return {"success": True, "data": {"message": "LinkedIn profile disconnected"}}
