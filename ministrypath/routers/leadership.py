"""
Leadership router: pastoral care roster, ministry candidates and analytics.
"""
from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from ..auth import require_role
from ..database import get_db
from ..models import User
from ..roles import LEADER, PASTOR
from ..services import LeadershipService, SurveyService

router = APIRouter(prefix="/leadership", tags=["leadership"])


@router.get("/pastoral-care")
async def pastoral_care(
    status: Optional[str] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    current_user: User = Depends(require_role(PASTOR)),
    db: Session = Depends(get_db)
):
    """
    Survey status of every active member.
    Only accessible by pastors and above.
    """
    try:
        return LeadershipService.pastoral_care_overview(db, status=status, page=page, limit=limit)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.get("/ministries/{ministry_id}/candidates")
async def ministry_candidates(
    ministry_id: str,
    current_user: User = Depends(require_role(LEADER)),
    db: Session = Depends(get_db)
):
    """Members ranked by how well they match one ministry."""
    ministry = SurveyService.get_catalog().ministry(ministry_id)
    if ministry is None:
        raise HTTPException(status_code=404, detail=f"Ministry '{ministry_id}' not found")

    candidates = LeadershipService.ministry_candidates(db, ministry_id)
    return {
        "ministry_id": ministry.id,
        "name": ministry.name,
        "category": ministry.category,
        "candidates": candidates,
        "total": len(candidates)
    }


@router.get("/analytics")
async def analytics(
    current_user: User = Depends(require_role(LEADER)),
    db: Session = Depends(get_db)
):
    """Aggregated survey outcomes across the congregation."""
    return LeadershipService.get_analytics(db)
