"""
App assembly entry point.

Re-exports the FastAPI `app` from `housing.api.main` so the service can be
started with `uvicorn app:app`.
"""

from housing.api.main import app  # noqa: F401
