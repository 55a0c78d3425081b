"""
Access to the long-lived BackendManager created during application startup.
"""

from src.models.manager import BackendManager


def get_backend_manager() -> BackendManager:
    """FastAPI dependency to get the backend manager from app state."""
    from ..main import app_state
    return app_state["backend_manager"]
