"""
Application factories for soapbridge.
"""

from .fastapi_factory import STATUS_BY_ERROR_CODE, create_bridge_app, status_for

__all__ = [
    "STATUS_BY_ERROR_CODE",
    "create_bridge_app",
    "status_for",
]
