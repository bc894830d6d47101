from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from dailyout.api.deps import get_services
from dailyout.core.auth import get_current_user_id
from dailyout.core.container import Services

router = APIRouter(prefix="/api/journal", tags=["journal"])


class JournalCreateRequest(BaseModel):
    entry_date: Optional[str] = None
    content: Optional[str] = None


class JournalUpdateRequest(BaseModel):
    content: Optional[str] = None


@router.get("")
def list_entries(
    user_id: str = Depends(get_current_user_id),
    services: Services = Depends(get_services),
):
    return [entry.to_dict() for entry in services.journal.list_entries(user_id)]


@router.post("", status_code=201)
def create_entry(
    req: JournalCreateRequest,
    user_id: str = Depends(get_current_user_id),
    services: Services = Depends(get_services),
):
    entry = services.journal.create_entry(user_id, req.entry_date, req.content)
    return entry.to_dict()


@router.patch("/{entry_id}")
def update_entry(
    entry_id: str,
    req: JournalUpdateRequest,
    user_id: str = Depends(get_current_user_id),
    services: Services = Depends(get_services),
):
    return services.journal.update_entry(user_id, entry_id, req.content).to_dict()


@router.delete("/{entry_id}")
def delete_entry(
    entry_id: str,
    user_id: str = Depends(get_current_user_id),
    services: Services = Depends(get_services),
):
    services.journal.delete_entry(user_id, entry_id)
    return {"ok": True}
