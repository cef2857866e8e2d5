"""
Service layer modules for the MinistryPath backend.
"""
from .auth_service import AuthService
from .audit_service import AuditService
from .catalog import CatalogError, ScoringCatalog, load_catalog
from .leadership_service import LeadershipService
from .survey_progress_service import SurveyProgressService
from .survey_service import SurveyService

__all__ = [
    "AuthService",
    "AuditService",
    "CatalogError",
    "ScoringCatalog",
    "load_catalog",
    "LeadershipService",
    "SurveyProgressService",
    "SurveyService",
]
