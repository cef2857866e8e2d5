from sqlalchemy import Column, Integer, String, JSON, ForeignKey, DateTime, Boolean
from sqlalchemy.orm import relationship
from .database import Base
from datetime import datetime


class User(Base):
    """Church member or staff account."""
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String, unique=True, index=True, nullable=False)
    first_name = Column(String, nullable=True)
    last_name = Column(String, nullable=True)
    role = Column(String, default="attendee", nullable=False)
    is_archived = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)
    last_login = Column(DateTime, nullable=True)

    # Relationships
    survey_progress = relationship(
        "SurveyProgress", back_populates="user", uselist=False, cascade="all, delete-orphan"
    )
    survey_result = relationship(
        "SurveyResult", back_populates="user", uselist=False, cascade="all, delete-orphan"
    )

    @property
    def display_name(self) -> str:
        full = " ".join(part for part in (self.first_name, self.last_name) if part)
        return full or self.email


class SurveyProgress(Base):
    """In-flight survey answers, saved as the member works through the sections."""
    __tablename__ = "survey_progress"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), unique=True, nullable=False, index=True)
    current_section = Column(Integer, default=1, nullable=False)
    current_question = Column(Integer, default=0, nullable=False)
    answers = Column(JSON, default=dict, nullable=False)
    is_complete = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    user = relationship("User", back_populates="survey_progress")


class SurveyResult(Base):
    """Scored survey outcome. A retake overwrites the row."""
    __tablename__ = "survey_results"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), unique=True, nullable=False, index=True)
    spiritual_gifts = Column(JSON, nullable=False)
    personality_profile = Column(JSON, nullable=False)
    ministry_matches = Column(JSON, nullable=False)
    raw_answers = Column(JSON, nullable=False)
    catalog_version = Column(String, default="1.0", nullable=False)
    completed_at = Column(DateTime, default=datetime.utcnow, index=True)

    user = relationship("User", back_populates="survey_result")


class LogEntry(Base):
    """Model for storing application logs and errors in the database."""
    __tablename__ = "log_entries"

    id = Column(Integer, primary_key=True, index=True)
    timestamp = Column(DateTime, default=datetime.utcnow, index=True)
    level = Column(String, index=True)
    event = Column(String, index=True)

    # Contextual info
    user_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    user_email = Column(String, index=True, nullable=True)
    path = Column(String, index=True)
    method = Column(String)
    status_code = Column(Integer, nullable=True)
    request_id = Column(String, index=True, nullable=True)

    # Detailed data
    context = Column(JSON, nullable=True)
    exception = Column(String, nullable=True)

    # Relationships
    user = relationship("User")
