"""Pure domain entities without infrastructure dependencies."""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import StrEnum

from .constants import (
    DEFAULT_MESSAGE_TEMPLATE,
    DEFAULT_THRESHOLDS,
    FREE_PLACEHOLDER,
    KEY_PATTERN,
)
from .exceptions import ValidationError


def utc_now_iso() -> str:
    """Current UTC time as ISO-8601 with milliseconds and a Z suffix."""
    return datetime.now(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def parse_timestamp(value: str) -> datetime:
    """Parse an ISO-8601 timestamp; naive values are taken as UTC."""
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed.astimezone(UTC)


def is_valid_key_format(key: object) -> bool:
    """Check a candidate against the canonical XXXXX-XXXXX-XXXXX-XXXXX-XXXXX format."""
    return isinstance(key, str) and KEY_PATTERN.fullmatch(key) is not None


class HistoryAction(StrEnum):
    FREE = "free"
    INUSE = "inuse"
    RELEASE = "release"


@dataclass(frozen=True)
class HistoryEvent:
    """One immutable line of a key's history."""

    action: HistoryAction | str
    timestamp: str
    assigned_to: str | None = None


@dataclass
class KeyRecord:
    """Core business entity representing an issued or issuable key."""

    id: int
    key: str
    created_at: str
    in_use: bool = False
    assigned_to: str | None = None
    invalid: bool = False
    last_used_at: str | None = None
    history: list[HistoryEvent] = field(default_factory=list)

    @property
    def is_available(self) -> bool:
        """A key is free when it is neither in use nor invalidated."""
        return not self.in_use and not self.invalid

    def hand_out(self) -> HistoryEvent:
        """Log that the key was shown to a client. Does not claim it."""
        event = HistoryEvent(HistoryAction.FREE, utc_now_iso())
        self.history.append(event)
        return event

    def claim(self, assigned_to: str | None = None) -> HistoryEvent:
        """Bind the key to an assignee and record the usage time."""
        now = utc_now_iso()
        self.in_use = True
        self.assigned_to = assigned_to or None
        self.last_used_at = now
        event = HistoryEvent(HistoryAction.INUSE, now, self.assigned_to)
        self.history.append(event)
        return event

    def release(self) -> HistoryEvent:
        """Return the key to the pool. Invalidation is left untouched."""
        self.in_use = False
        self.assigned_to = None
        event = HistoryEvent(HistoryAction.RELEASE, utc_now_iso())
        self.history.append(event)
        return event

    def invalidate(self) -> None:
        """Permanently exclude the key from free selection."""
        self.invalid = True


@dataclass
class NotificationConfig:
    """Low-stock thresholds (descending) and the message sent on a crossing."""

    thresholds: list[int] = field(default_factory=lambda: list(DEFAULT_THRESHOLDS))
    message_template: str = DEFAULT_MESSAGE_TEMPLATE

    def __post_init__(self):
        self.thresholds = normalize_thresholds(self.thresholds)

    def render(self, free: int) -> str:
        return self.message_template.replace(FREE_PLACEHOLDER, str(free))


@dataclass
class NotificationState:
    """Watermark of the most severe threshold already notified on.

    ``last_warned`` is None while no warning is active.
    """

    last_warned: int | None = None


def normalize_thresholds(thresholds: list[int]) -> list[int]:
    """Validate thresholds and return them de-duplicated in descending order.

    Raises:
        ValidationError: If a threshold is not a positive integer
    """
    for value in thresholds:
        if isinstance(value, bool) or not isinstance(value, int) or value < 1:
            raise ValidationError(
                f"Thresholds must be positive integers, got {value!r}",
                code="invalid_threshold",
            )
    return sorted(set(thresholds), reverse=True)
