from datetime import datetime
from typing import Optional, Dict, Any
from sqlalchemy.orm import Session
from ..models import LogEntry, User


class AuditService:
    @staticmethod
    def log_action(
        db: Session,
        user: User,
        action: str,
        target_type: str,
        target_id: str,
        details: Optional[Dict[str, Any]] = None,
        level: str = "INFO"
    ) -> LogEntry:
        """
        Record an administrative action.

        The entry is added to the session but not committed, so it rolls back
        together with the action it describes.

        Args:
            db: Database session
            user: The user performing the action
            action: Event name (e.g. "user_role_changed")
            target_type: The type of entity being affected (e.g. "user")
            target_id: The ID of the target entity
            details: Additional context data
            level: Log level
        """
        log = LogEntry(
            timestamp=datetime.utcnow(),
            level=level,
            event=action,
            user_id=user.id,
            user_email=user.email,
            path=f"audit:{target_type}:{target_id}",
            method="AUDIT",
            context=details or {}
        )
        db.add(log)
        return log
