"""
API routers for the MinistryPath application.
"""
import json
from typing import Any
from fastapi import APIRouter, Depends, HTTPException, Response, Request
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session
from fastapi_cache.decorator import cache
from fastapi_cache.coder import JsonCoder
from fastapi_csrf_protect import CsrfProtect

from ..auth import get_current_user, create_access_token, ACCESS_TOKEN_EXPIRE_MINUTES
from ..database import get_db
from ..models import User
from .. import schemas
from ..services import AuthService, SurveyService
from ..limiter import limiter
from ..config import settings
from ..logging_setup import logger

router = APIRouter()


class SafeJsonCoder(JsonCoder):
    @classmethod
    def decode(cls, value: Any) -> Any:
        if isinstance(value, str):
            return json.loads(value)
        return super().decode(value)

# ============================================================================
# Security Routes
# ============================================================================

@router.get("/csrf-token")
async def get_csrf_token(csrf_protect: CsrfProtect = Depends()):
    """
    Endpoint to provide a CSRF token for SPAs.
    """
    csrf_token, signed_token = csrf_protect.generate_csrf_tokens()
    response = JSONResponse(content={"detail": "CSRF cookie set", "csrf_token": csrf_token})
    csrf_protect.set_csrf_cookie(signed_token, response)
    return response

# ============================================================================
# Authentication Routes
# ============================================================================

@router.post("/auth/dev-login", response_model=schemas.Token)
@limiter.limit("5/minute")
async def dev_login(
    request: Request,
    login_data: schemas.LoginRequest,
    response: Response,
    db: Session = Depends(get_db),
    csrf_protect: CsrfProtect = Depends()
):
    """
    Development login: issue a session token for any email.

    Accounts are created on first use. Disabled in production, where identity
    comes from the church's sign-in provider.
    """
    await csrf_protect.validate_csrf(request)
    if settings.ENV == "production":
        logger.warning("dev_login_blocked", user_email=login_data.email)
        raise HTTPException(
            status_code=403,
            detail="Dev login is strictly prohibited in production environments."
        )

    user = AuthService.get_or_create_user(db, login_data.email)
    AuthService.update_last_login(db, user)

    # sub must be a string for jose
    access_token = create_access_token(data={"sub": str(user.id), "email": user.email, "role": user.role})

    response.set_cookie(
        key="access_token",
        value=access_token,
        httponly=True,
        secure=request.url.scheme == "https",
        samesite="lax",
        max_age=ACCESS_TOKEN_EXPIRE_MINUTES * 60
    )

    logger.info("dev_login_successful", user_id=user.id, user_email=user.email)
    return {"access_token": access_token, "token_type": "bearer"}


@router.get("/auth/me", response_model=schemas.UserResponse)
async def get_current_user_info(current_user: User = Depends(get_current_user)):
    """Get the current authenticated user's information."""
    logger.info("fetch_user_info", user_role=current_user.role)
    return current_user


@router.post("/auth/logout")
async def logout(
    request: Request,
    response: Response,
    current_user: User = Depends(get_current_user),
    csrf_protect: CsrfProtect = Depends()
):
    """Logout the current user by clearing the access token cookie."""
    await csrf_protect.validate_csrf(request)
    response.delete_cookie(
        key="access_token",
        httponly=True,
        secure=request.url.scheme == "https",
        samesite="lax",
    )
    logger.info("user_logged_out")
    return {"message": "Successfully logged out"}

# ============================================================================
# Survey Routes (Protected)
# ============================================================================

@router.post("/survey/submit", response_model=schemas.SurveyResultResponse)
@limiter.limit("10/minute")
async def submit_survey(
    request: Request,
    survey_data: schemas.SurveySubmit,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    csrf_protect: CsrfProtect = Depends()
):
    """
    Score the member's survey and store the results.

    Uses the answers in the body, or the saved survey progress when the body
    has none. A retake replaces the previous results.
    """
    await csrf_protect.validate_csrf(request)
    try:
        result = SurveyService.submit_survey(db, current_user, answers=survey_data.answers)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    primary = [m["ministry_id"] for m in result.ministry_matches if m.get("is_primary")]
    logger.info(
        "survey_submitted",
        result_id=result.id,
        top_gift=result.spiritual_gifts[0]["gift"] if result.spiritual_gifts else None,
        personality_type=result.personality_profile.get("type"),
        primary_ministries=primary
    )
    return result


@router.get("/survey/results", response_model=schemas.SurveyResultResponse)
async def get_survey_results(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Get the member's current survey results."""
    result = SurveyService.get_results(db, current_user)
    if not result:
        raise HTTPException(status_code=404, detail="No survey results found")
    return result


@router.post("/survey/score", response_model=schemas.ScoringResult)
@limiter.limit("30/minute")
async def preview_score(
    request: Request,
    survey_data: schemas.SurveySubmit,
    current_user: User = Depends(get_current_user),
    csrf_protect: CsrfProtect = Depends()
):
    """Score an answer set without saving anything."""
    await csrf_protect.validate_csrf(request)
    return SurveyService.score(survey_data.answers)

# ============================================================================
# Public Routes
# ============================================================================

@router.get("/questions")
@cache(expire=3600, coder=SafeJsonCoder)
async def get_questions():
    """
    Get the survey sections and questions.

    Scoring weights are internal and left out of the response.
    """
    catalog = SurveyService.get_catalog()
    return {
        "version": catalog.version,
        "sections": [s.model_dump() for s in catalog.sections],
        "likert_options": [o.model_dump() for o in catalog.likert_options],
        "questions": [
            q.model_dump(include={"id", "section", "type", "text", "options", "help_text", "skill_verification"})
            for q in catalog.questions
        ]
    }


@router.get("/gifts")
@cache(expire=3600, coder=SafeJsonCoder)
async def get_gifts():
    """Get information about the spiritual gifts."""
    return [g.model_dump() for g in SurveyService.get_catalog().gifts]


@router.get("/ministries")
@cache(expire=3600, coder=SafeJsonCoder)
async def get_ministries():
    """Get the ministries members can be matched to."""
    return [m.model_dump() for m in SurveyService.get_catalog().ministries]
