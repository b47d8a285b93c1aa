"""Base model classes for the Assessment Session Engine."""

from datetime import datetime
from typing import Optional
from uuid import uuid4

from pydantic import BaseModel as PydanticBaseModel, ConfigDict, Field


class BaseModel(PydanticBaseModel):
    """Base model with common functionality."""

    model_config = ConfigDict(validate_assignment=True, populate_by_name=True)


class FrozenModel(PydanticBaseModel):
    """Base model for values that must not change after creation."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)


class TimestampedModel(BaseModel):
    """Base model with timestamp fields."""

    created_at: datetime = Field(default_factory=datetime.now, description="Creation timestamp")
    updated_at: Optional[datetime] = Field(default=None, description="Last update timestamp")

    def update_timestamp(self) -> None:
        """Update the updated_at timestamp."""
        self.updated_at = datetime.now()


def new_identifier(prefix: str = "") -> str:
    """Generate a unique identifier with an optional prefix."""
    token = uuid4().hex
    return f"{prefix}_{token}" if prefix else token
