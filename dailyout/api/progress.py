from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from dailyout.api.deps import get_services
from dailyout.core.auth import get_current_user_id
from dailyout.core.container import Services
from dailyout.features.journal.service import parse_day

router = APIRouter(tags=["progress"])


class NoteRequest(BaseModel):
    note: Optional[str] = None


@router.get("/api/progress")
def get_progress(
    user_id: str = Depends(get_current_user_id),
    services: Services = Depends(get_services),
):
    return services.progress.view(user_id)


@router.patch("/api/progress/{day}/note")
def update_note(
    day: str,
    req: NoteRequest,
    user_id: str = Depends(get_current_user_id),
    services: Services = Depends(get_services),
):
    """Edit the note on a completed day, within the edit window. null or blank clears it."""
    assignment = services.completion.update_note(user_id, parse_day(day, "date"), req.note)
    return {"ok": True, "note": assignment.note}
