"""
Pydantic data models package.

Contains the API response models.
"""

from .responses import ErrorResponse, ServiceInfo

__all__ = [
    "ErrorResponse",
    "ServiceInfo",
]
