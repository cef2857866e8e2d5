"""
Survey service module.

Contains business logic for survey operations, including:
- Scoring answer sets against the survey catalog
- Persisting and retrieving a member's results
"""
from datetime import datetime
from typing import Any, Dict, Optional
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from ..logging_setup import logger
from ..models import SurveyResult, User
from ..schemas import ScoringResult
from .catalog import ScoringCatalog, load_catalog
from .scoring_engine import score_answers
from .survey_progress_service import SurveyProgressService


class SurveyService:
    """Service class for survey-related business logic."""

    _catalog: Optional[ScoringCatalog] = None

    @classmethod
    def get_catalog(cls) -> ScoringCatalog:
        """
        Load the packaged survey catalog.
        Caches the result in a class variable; it is never mutated.
        """
        if cls._catalog is None:
            cls._catalog = load_catalog()
        return cls._catalog

    @classmethod
    def set_catalog(cls, catalog: Optional[ScoringCatalog]) -> None:
        """Swap the active catalog (None restores the packaged one on next use)."""
        cls._catalog = catalog

    @staticmethod
    def score(answers: Optional[Dict[str, Any]], catalog: Optional[ScoringCatalog] = None) -> ScoringResult:
        """Score an answer map without persisting anything."""
        return score_answers(answers or {}, catalog or SurveyService.get_catalog())

    @staticmethod
    def submit_survey(
        db: Session,
        user: User,
        answers: Optional[Dict[str, Any]] = None,
        catalog: Optional[ScoringCatalog] = None
    ) -> SurveyResult:
        """
        Score a completed survey and store it as the user's results.

        Args:
            db: Database session
            user: User submitting the survey
            answers: Full answer map; the saved progress is used when omitted
            catalog: Catalog override (defaults to the packaged one)

        Returns:
            The stored SurveyResult; a retake overwrites the earlier one

        Raises:
            ValueError: if there are no answers to score
        """
        if answers is None:
            progress = SurveyProgressService.get_progress(db, user)
            answers = dict(progress.answers) if progress and progress.answers else None
        if not answers:
            raise ValueError("No survey answers to score")

        catalog = catalog or SurveyService.get_catalog()
        scored = score_answers(answers, catalog)

        try:
            result = SurveyService._store_result(db, user, scored, answers, catalog)
        except IntegrityError:
            # Another submission created the row first; overwrite it
            db.rollback()
            logger.warning("survey_result_conflict", target_user_id=user.id)
            result = SurveyService._store_result(db, user, scored, answers, catalog)
        return result

    @staticmethod
    def _store_result(
        db: Session,
        user: User,
        scored: ScoringResult,
        answers: Dict[str, Any],
        catalog: ScoringCatalog
    ) -> SurveyResult:
        # Retakes update the existing row; the latest submission wins
        result = SurveyService.get_results(db, user)
        if result is None:
            result = SurveyResult(user_id=user.id)
            db.add(result)

        result.spiritual_gifts = [g.model_dump() for g in scored.spiritual_gifts]
        result.personality_profile = scored.personality_profile.model_dump()
        result.ministry_matches = [m.model_dump() for m in scored.ministry_matches]
        result.raw_answers = answers
        result.catalog_version = catalog.version
        result.completed_at = datetime.utcnow()

        SurveyProgressService.mark_complete(db, user)
        db.commit()
        db.refresh(result)
        return result

    @staticmethod
    def get_results(db: Session, user: User) -> Optional[SurveyResult]:
        """Return the user's current results, if they have completed the survey."""
        return db.query(SurveyResult).filter(SurveyResult.user_id == user.id).first()
