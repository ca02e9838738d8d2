"""User memories and prior captures read by providers."""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field, field_validator

from screenlabel.models.common import _utc_now

# === Enums ===


class MemoryType(str, Enum):
    """Kind of user-provided memory."""

    ADDICTION = "addiction"
    PROJECT = "project"
    PREFERENCE = "preference"


class EventStatus(str, Enum):
    """Processing state of a stored capture."""

    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


# === Pydantic Models ===


class Memory(BaseModel):
    """A project, preference or tracked addiction the user told us about."""

    id: str
    type: MemoryType
    content: str
    description: str | None = None
    created_at: datetime = Field(default_factory=_utc_now)
    updated_at: datetime = Field(default_factory=_utc_now)


class CapturedEvent(BaseModel):
    """Read-only view of a previously stored capture."""

    id: str
    status: EventStatus = EventStatus.COMPLETED
    category: str | None = None
    project: str | None = None
    tags: list[str] = Field(default_factory=list)
    app_bundle_id: str | None = None
    app_name: str | None = None
    window_title: str | None = None
    url_host: str | None = None
    timestamp: datetime = Field(default_factory=_utc_now)

    @field_validator("tags", mode="before")
    @classmethod
    def _coerce_tags(cls, value: object) -> list[str]:
        """Accept None and skip blank entries."""
        if value is None:
            return []
        if not isinstance(value, list):
            raise ValueError("tags must be a list")
        return [str(v).strip() for v in value if str(v).strip()]


# === Dataclasses (lightweight internal types) ===


@dataclass
class AddictionOption:
    """A tracked addiction as presented to the model."""

    id: str
    name: str
    definition: str
