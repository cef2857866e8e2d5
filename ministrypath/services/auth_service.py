"""
Authentication service module.

Contains business logic for user accounts, including:
- User lookup and creation
- Last login tracking
"""
from datetime import datetime
from typing import Optional
from sqlalchemy.orm import Session
from ..models import User


class AuthService:
    """Service class for authentication-related business logic."""

    @staticmethod
    def get_or_create_user(
        db: Session,
        email: str,
        first_name: Optional[str] = None,
        last_name: Optional[str] = None
    ) -> User:
        """
        Find an existing user by email or create a new one.

        Emails are matched case-insensitively and stored lowercased.

        Returns:
            User object (existing or newly created)
        """
        email = email.strip().lower()
        user = db.query(User).filter(User.email == email).first()
        if not user:
            user = User(
                email=email,
                first_name=first_name,
                last_name=last_name,
                created_at=datetime.utcnow()
            )
            db.add(user)
            db.commit()
            db.refresh(user)
        return user

    @staticmethod
    def update_last_login(db: Session, user: User) -> None:
        """Update the user's last login timestamp."""
        user.last_login = datetime.utcnow()
        db.commit()
