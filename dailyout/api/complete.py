from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from dailyout.api.deps import get_services
from dailyout.core.auth import get_current_user_id
from dailyout.core.container import Services

router = APIRouter(tags=["challenges"])


class CompleteRequest(BaseModel):
    note: Optional[str] = None


def _transition_response(stats, new_badges) -> dict:
    return {
        "ok": True,
        "current_streak": stats.current_streak,
        "longest_streak": stats.longest_streak,
        "comfort_score": stats.comfort_score,
        "new_badges": new_badges,
    }


@router.post("/api/complete")
def complete_today(
    req: Optional[CompleteRequest] = None,
    user_id: str = Depends(get_current_user_id),
    services: Services = Depends(get_services),
):
    note = req.note if req else None
    stats, new_badges = services.completion.complete(user_id, note=note)
    return _transition_response(stats, new_badges)


@router.post("/api/skip")
def skip_today(
    user_id: str = Depends(get_current_user_id),
    services: Services = Depends(get_services),
):
    stats, new_badges = services.completion.skip(user_id)
    return _transition_response(stats, new_badges)
