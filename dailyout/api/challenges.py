from typing import Optional

from fastapi import APIRouter, Depends, Query

from dailyout.api.deps import get_services
from dailyout.core.container import Services

router = APIRouter(tags=["challenges"])


@router.get("/api/challenges")
def list_challenges(
    active: Optional[bool] = Query(None),
    category: Optional[str] = Query(None),
    services: Services = Depends(get_services),
):
    """Public catalog listing, easiest first."""
    return [
        {
            "slug": c.slug,
            "category": c.category,
            "difficulty": c.difficulty,
            "text": c.text,
        }
        for c in services.catalog.list_challenges(active=active, category=category)
    ]
