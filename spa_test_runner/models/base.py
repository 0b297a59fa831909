"""Base model configuration for all run records."""

from datetime import UTC, datetime
from typing import Annotated

from pydantic import AfterValidator, BaseModel, ConfigDict


def as_utc(value: datetime) -> datetime:
    """Treat a naive timestamp as UTC."""
    return value.replace(tzinfo=UTC) if value.tzinfo is None else value


# Stored entries may come from older writers without an offset
UtcDatetime = Annotated[datetime, AfterValidator(as_utc)]


class Model(BaseModel):
    """Immutable base model shared by results, snapshots and summaries."""

    model_config = ConfigDict(frozen=True)
