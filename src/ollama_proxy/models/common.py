"""Common data models.

This module contains the base model and the response bodies shared by
both proxies.
"""

from typing import Optional

from pydantic import BaseModel as PydanticBaseModel, ConfigDict, Field


class BaseModel(PydanticBaseModel):
    """Base model with common configuration."""

    model_config = ConfigDict(
        # Use enum values instead of enum objects
        use_enum_values=True,
        # Validate assignment to model fields
        validate_assignment=True,
        # Allow population by field name and alias
        populate_by_name=True,
    )


class HealthResponse(BaseModel):
    """Health check response model."""

    status: str = Field(default="ok", description="Health status")
    message: str = Field(..., description="Proxy description")


class ErrorResponse(BaseModel):
    """Error body returned by both proxies."""

    error: str = Field(..., description="Error summary")
    message: Optional[str] = Field(None, description="Underlying error text")

    def to_payload(self) -> dict:
        return self.model_dump(exclude_none=True)
