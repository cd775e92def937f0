"""Persisted and wire shapes of the key store (camelCase JSON)."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ...domain.constants import DEFAULT_MESSAGE_TEMPLATE, DEFAULT_THRESHOLDS
from ...domain.entities import (
    HistoryAction,
    HistoryEvent,
    KeyRecord,
    NotificationConfig,
)


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


def _coerce_assignee(value: Any) -> Any:
    """Older files stored whatever the client sent, e.g. a bare number."""
    if isinstance(value, int | float):
        return str(value)
    return value


class HistoryEventModel(_CamelModel):
    """A single history line as stored and returned by the API."""

    action: HistoryAction | str
    timestamp: str
    assigned_to: str | None = Field(default=None, alias="assignedTo")

    lax_assignee = field_validator("assigned_to", mode="before")(_coerce_assignee)

    @classmethod
    def from_domain(cls, event: HistoryEvent) -> "HistoryEventModel":
        return cls(
            action=event.action,
            timestamp=event.timestamp,
            assigned_to=event.assigned_to,
        )

    def to_domain(self) -> HistoryEvent:
        return HistoryEvent(
            action=self.action,
            timestamp=self.timestamp,
            assigned_to=self.assigned_to,
        )


class KeyRecordModel(_CamelModel):
    """A key record as stored in the JSON file and returned by the API.

    Fields added after the first file format default to None here and are
    back-filled by the store on load.
    """

    id: int | None = None
    key: str
    in_use: bool = Field(default=False, alias="inUse")
    assigned_to: str | None = Field(default=None, alias="assignedTo")
    created_at: str | None = Field(default=None, alias="createdAt")
    last_used_at: str | None = Field(default=None, alias="lastUsedAt")
    history: list[HistoryEventModel] | None = None
    invalid: bool | None = None

    lax_assignee = field_validator("assigned_to", mode="before")(_coerce_assignee)

    @classmethod
    def from_domain(cls, record: KeyRecord) -> "KeyRecordModel":
        """Convert domain entity to persistence model."""
        return cls(
            id=record.id,
            key=record.key,
            in_use=record.in_use,
            assigned_to=record.assigned_to,
            created_at=record.created_at,
            last_used_at=record.last_used_at,
            history=[HistoryEventModel.from_domain(e) for e in record.history],
            invalid=record.invalid,
        )

    def to_domain(self, fallback_id: int, now: str) -> KeyRecord:
        """Convert persistence model to domain entity, filling missing fields."""
        return KeyRecord(
            id=self.id if self.id is not None else fallback_id,
            key=self.key,
            created_at=self.created_at or now,
            in_use=self.in_use,
            assigned_to=self.assigned_to,
            invalid=bool(self.invalid),
            last_used_at=self.last_used_at,
            history=[e.to_domain() for e in self.history or []],
        )


class NotificationConfigModel(_CamelModel):
    thresholds: list[int] = Field(default_factory=lambda: list(DEFAULT_THRESHOLDS))
    message_template: str = Field(
        default=DEFAULT_MESSAGE_TEMPLATE, alias="messageTemplate"
    )

    @classmethod
    def from_domain(cls, config: NotificationConfig) -> "NotificationConfigModel":
        return cls(
            thresholds=list(config.thresholds),
            message_template=config.message_template,
        )

    def to_domain(self) -> NotificationConfig:
        return NotificationConfig(
            thresholds=list(self.thresholds),
            message_template=self.message_template,
        )


class StoreDocument(_CamelModel):
    """Top-level layout of the store file."""

    last_warned: int | None = Field(default=None, alias="lastWarned")
    keys: list[KeyRecordModel] = Field(default_factory=list)
    telegram_config: NotificationConfigModel | None = Field(
        default=None, alias="telegramConfig"
    )
