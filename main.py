"""
MinistryPath backend API.

Entry point that re-exports the application from the ministrypath package.
For deployment, use: uvicorn main:app --host 0.0.0.0 --port 8000
"""
from ministrypath.main import app

# Re-export for uvicorn
__all__ = ["app"]
