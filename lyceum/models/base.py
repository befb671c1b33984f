"""Base model classes for Lyceum."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class LyceumBaseModel(BaseModel):
    """Base model with common configuration for all Lyceum models."""

    model_config = ConfigDict(
        # Keep enum objects in memory, serialize values only when needed
        use_enum_values=False,
        # Allow population by field name or alias
        populate_by_name=True,
        # Validate assignment after model creation
        validate_assignment=True,
        extra='forbid',
    )


class StatsModel(LyceumBaseModel):
    """Base model for statistics responses."""

    generated_at: datetime = Field(
        default_factory=datetime.utcnow,
        description="When these statistics were generated"
    )
