from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session
from ..database import get_db
from ..auth import get_current_user
from ..models import User
from .. import schemas
from ..services.survey_progress_service import SurveyProgressService
from ..logging_setup import logger
from fastapi_csrf_protect import CsrfProtect

router = APIRouter(prefix="/survey/progress", tags=["Survey Progress"])


@router.get("", response_model=schemas.SurveyProgressResponse)
async def get_progress(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Retrieve the saved survey progress for the user."""
    progress = SurveyProgressService.get_progress(db, current_user)
    if not progress:
        raise HTTPException(status_code=404, detail="No survey progress found")
    return progress


@router.post("", response_model=schemas.SurveyProgressResponse)
async def save_progress(
    progress_data: schemas.SurveyProgressSave,
    request: Request,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    csrf_protect: CsrfProtect = Depends()
):
    """Save answers so far and the member's place in the survey."""
    await csrf_protect.validate_csrf(request)
    progress = SurveyProgressService.save_progress(db, current_user, progress_data)
    logger.info(
        "survey_progress_saved",
        answered=len(progress.answers or {}),
        current_section=progress.current_section
    )
    return progress


@router.delete("")
async def delete_progress(
    request: Request,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    csrf_protect: CsrfProtect = Depends()
):
    """Discard saved progress so the survey can be started over."""
    await csrf_protect.validate_csrf(request)
    if not SurveyProgressService.delete_progress(db, current_user):
        raise HTTPException(status_code=404, detail="No survey progress found to delete")
    logger.info("survey_progress_deleted")
    return {"message": "Survey progress deleted successfully"}
