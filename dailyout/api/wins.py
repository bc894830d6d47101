from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from dailyout.api.deps import get_services
from dailyout.core.auth import get_current_user_id
from dailyout.core.container import Services

router = APIRouter(tags=["wins"])


class WinRequest(BaseModel):
    text: Optional[str] = None


@router.get("/api/wins")
def recent_wins(services: Services = Depends(get_services)):
    return [win.to_dict() for win in services.wins.recent()]


@router.post("/api/wins")
def post_win(
    req: WinRequest,
    user_id: str = Depends(get_current_user_id),
    services: Services = Depends(get_services),
):
    win = services.wins.create_win(user_id, req.text)
    return {"id": win.id}


@router.post("/api/wins/{win_id}/like")
def like_win(
    win_id: str,
    user_id: str = Depends(get_current_user_id),
    services: Services = Depends(get_services),
):
    services.wins.like_win(win_id, user_id)
    return {"ok": True}
