"""
Defines the base record model shared by every stored entity.

Records are plain pydantic models validated at the store boundary. Timestamps
are timezone-aware ``datetime`` values in memory and integer epoch
milliseconds once serialized, so both persistence substrates share one JSON
shape.
"""

from datetime import UTC, datetime, timedelta
from typing import Any

from pydantic import BaseModel, ConfigDict, field_serializer, field_validator


def utcnow() -> datetime:
    """Current time, truncated to millisecond precision so it survives a round trip."""
    now = datetime.now(UTC)
    return now.replace(microsecond=(now.microsecond // 1000) * 1000)


EPOCH = datetime(1970, 1, 1, tzinfo=UTC)
_ONE_MS = timedelta(milliseconds=1)


def to_epoch_millis(value: datetime) -> int:
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return (value - EPOCH) // _ONE_MS


def from_epoch_millis(value: int | float) -> datetime:
    return EPOCH + timedelta(milliseconds=value)


class RecordModel(BaseModel):
    """
    Base class for stored records.

    :ivar id: Unique identifier for the record.
    :type id: str
    :ivar created_at: Timestamp representing when the record was created.
    :type created_at: datetime
    """

    model_config = ConfigDict(extra="ignore", validate_assignment=True)

    id: str
    created_at: datetime

    @field_validator("*", mode="before")
    @classmethod
    def parse_epoch_timestamps(cls, value: Any, info):
        if info.field_name.endswith("_at") and isinstance(value, int | float) and not isinstance(value, bool):
            return from_epoch_millis(value)
        return value

    @field_validator("created_at")
    @classmethod
    def ensure_aware(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value

    @field_serializer("created_at", when_used="json")
    def serialize_created_at(self, value: datetime) -> int:
        return to_epoch_millis(value)

    def to_storage(self) -> dict[str, Any]:
        """JSON-ready representation with epoch-millisecond timestamps."""
        return self.model_dump(mode="json")

    @classmethod
    def from_storage(cls, raw: dict[str, Any]):
        return cls.model_validate(raw)
