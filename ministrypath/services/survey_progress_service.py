from sqlalchemy.orm import Session
from ..models import SurveyProgress, User
from .. import schemas
from typing import Optional


class SurveyProgressService:
    @staticmethod
    def get_progress(db: Session, user: User) -> Optional[SurveyProgress]:
        """Retrieve the saved survey progress for a user."""
        return db.query(SurveyProgress).filter(SurveyProgress.user_id == user.id).first()

    @staticmethod
    def save_progress(
        db: Session,
        user: User,
        progress_data: schemas.SurveyProgressSave
    ) -> SurveyProgress:
        """
        Create or update a user's survey progress.

        The stored answer map is replaced by the one supplied; clients send
        everything answered so far. Saving again after a completed survey
        starts a retake.
        """
        progress = SurveyProgressService.get_progress(db, user)

        if not progress:
            progress = SurveyProgress(user_id=user.id)
            db.add(progress)

        progress.answers = dict(progress_data.answers)
        progress.current_section = progress_data.current_section
        progress.current_question = progress_data.current_question
        progress.is_complete = False

        db.commit()
        db.refresh(progress)
        return progress

    @staticmethod
    def mark_complete(db: Session, user: User) -> None:
        progress = SurveyProgressService.get_progress(db, user)
        if progress:
            progress.is_complete = True

    @staticmethod
    def delete_progress(db: Session, user: User) -> bool:
        """Delete a user's progress."""
        progress = SurveyProgressService.get_progress(db, user)
        if progress:
            db.delete(progress)
            db.commit()
            return True
        return False
