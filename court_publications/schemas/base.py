"""Base schemas and common types for the court publications API."""

from pydantic import BaseModel, ConfigDict


# =============================================================================
# BASE SCHEMAS
# =============================================================================


class ApiBaseModel(BaseModel):
    """Base model with common configuration."""

    model_config = ConfigDict(
        from_attributes=True,  # Enable ORM mode
        populate_by_name=True,
        use_enum_values=True,
    )


# =============================================================================
# ERROR RESPONSES
# =============================================================================


class ErrorDetail(ApiBaseModel):
    """Detailed error information."""

    field: str | None = None
    message: str


class ErrorResponse(ApiBaseModel):
    """Standard error response format."""

    error: str
    message: str
    details: list[ErrorDetail] = []
