from fastapi import APIRouter, Depends

from dailyout.api.deps import get_services
from dailyout.core.auth import get_current_user_id
from dailyout.core.container import Services

router = APIRouter(tags=["challenges"])


@router.get("/api/today")
def get_today(
    user_id: str = Depends(get_current_user_id),
    services: Services = Depends(get_services),
):
    """Today's challenge for the caller, assigned on first request of the day."""
    assignment = services.assignments.get_or_create_assignment(user_id)
    return {
        "assigned_date": assignment.assigned_date.isoformat(),
        "challenge": assignment.challenge.to_dict() if assignment.challenge else None,
        "status": assignment.status,
        "completed_at": assignment.completed_at.isoformat() if assignment.completed_at else None,
        "skipped_at": assignment.skipped_at.isoformat() if assignment.skipped_at else None,
        "note": assignment.note,
    }
