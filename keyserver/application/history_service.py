"""Aggregations over per-key histories for the dashboard."""

from collections import Counter
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import UTC, datetime

from ..domain.entities import HistoryAction, HistoryEvent, KeyRecord, parse_timestamp

_EPOCH_FLOOR = datetime.min.replace(tzinfo=UTC)


def _moment(event: HistoryEvent) -> datetime | None:
    try:
        return parse_timestamp(event.timestamp)
    except (TypeError, ValueError):
        return None


@dataclass(frozen=True)
class GlobalHistoryEntry:
    """A history event tagged with the key it belongs to."""

    id: int
    key: str
    event: HistoryEvent


def global_history(records: Iterable[KeyRecord]) -> list[GlobalHistoryEntry]:
    """Every history event of every key, oldest first.

    Events with equal timestamps keep registry order, then per-key order.
    Deleted keys are gone from the registry, so their events are too.
    """
    entries = [
        GlobalHistoryEntry(record.id, record.key, event)
        for record in records
        for event in record.history
    ]
    # Unparseable legacy timestamps sort first
    return sorted(entries, key=lambda entry: _moment(entry.event) or _EPOCH_FLOOR)


def activation_stats(records: Iterable[KeyRecord]) -> dict[str, dict[str, int]]:
    """Count ``inuse`` events per UTC day (YYYY-MM-DD) and ISO week (YYYY-W##)."""
    per_day: Counter[str] = Counter()
    per_week: Counter[str] = Counter()

    for record in records:
        for event in record.history:
            if event.action != HistoryAction.INUSE:
                continue
            moment = _moment(event)
            if moment is None:
                continue
            iso_year, iso_week, _ = moment.isocalendar()
            per_day[moment.strftime("%Y-%m-%d")] += 1
            per_week[f"{iso_year}-W{iso_week:02d}"] += 1

    return {"perDay": dict(per_day), "perWeek": dict(per_week)}
