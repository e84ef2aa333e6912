"""
API response models.
"""

from typing import Any, Dict, Optional

from pydantic import BaseModel, Field


class ErrorResponse(BaseModel):
    """
    Standard error response model.
    """
    
    error: str = Field(description="Error code")
    message: str = Field(description="Human-readable error message")
    details: Optional[Dict[str, Any]] = Field(
        default=None,
        description="Additional error details"
    )


class ServiceInfo(BaseModel):
    """Root endpoint payload."""
    
    service: str = Field(description="Service name")
    version: str = Field(description="Service version")
    description: str = Field(description="What the service does")
    calendars: int = Field(description="Number of configured calendar paths")
