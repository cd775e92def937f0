"""Application service for the key lifecycle.

Keys are addressed by their key string. Every mutating operation persists the
full registry before it returns; operations that can change the number of free
keys re-run the low-stock notifier first.
"""

from collections.abc import Iterable
from typing import Final

from ..domain.entities import (
    HistoryEvent,
    KeyRecord,
    NotificationConfig,
    normalize_thresholds,
    utc_now_iso,
)
from ..domain.exceptions import (
    KeyNotFoundError,
    NoFreeKeyError,
    StoreIOError,
    ValidationError,
)
from ..infrastructure.notifications.telegram import Dispatcher
from ..infrastructure.storage.repositories import KeyRepository
from ..infrastructure.storage.store import KeyStore
from ..logging_config import get_logger
from ..logging_utils import log_key_action
from ..metrics import record_key_transition, record_keys_created
from .notifier import LowStockNotifier
from .validation import collect_candidates, has_valid_format

logger: Final = get_logger(__name__)


def _is_available(record: KeyRecord) -> bool:
    return record.is_available


class KeyService:
    """Key registry operations on top of a whole-document store."""

    def __init__(self, store: KeyStore, dispatcher: Dispatcher):
        self.repo = KeyRepository(store)
        self.notifier = LowStockNotifier(
            self.repo.state, self.repo.config, dispatcher
        )

    def startup(self) -> None:
        """Evaluate stock once after loading.

        A persisted watermark keeps an unchanged low stock from re-notifying.
        If it cannot be written, the server still starts; the next mutation
        writes it along with everything else.
        """
        if not self.notifier.evaluate(self.free_count()):
            return
        try:
            self.repo.flush()
        except StoreIOError as e:
            logger.error("Could not persist warning state at startup", error=str(e))

    def free_count(self) -> int:
        return self.repo.count(_is_available)

    def _commit(self, stock_changed: bool = True) -> None:
        if stock_changed:
            self.notifier.evaluate(self.free_count())
        self.repo.flush()

    def _get(self, key: str) -> KeyRecord:
        record = self.repo.find(key)
        if record is None:
            logger.warning("Key lookup failed - not found", key=key)
            raise KeyNotFoundError(key)
        return record

    def create_keys(self, candidates: str | Iterable[object] | None) -> list[KeyRecord]:
        """Add one or many keys.

        Invalid formats and strings already in the registry (including ones
        accepted earlier in the same call) are skipped.

        Raises:
            ValidationError: If nothing was supplied or nothing was accepted
        """
        created: list[KeyRecord] = []
        for candidate in collect_candidates(candidates):
            if not has_valid_format(candidate):
                continue
            if self.repo.find(candidate) is not None:
                logger.warning("Skipping key - already exists", key=candidate)
                continue
            created.append(self.repo.insert(candidate, utc_now_iso()))

        if not created:
            raise ValidationError("No valid key supplied", code="no_valid_key")

        self._commit()
        record_keys_created(len(created))
        for record in created:
            log_key_action("Key created", "create", record.key, key_id=record.id)
        return created

    def list_keys(
        self, in_use: bool | None = None, assigned_to: str | None = None
    ) -> list[KeyRecord]:
        """Records matching all given filters; absent filters match everything."""

        def matches(record: KeyRecord) -> bool:
            if in_use is not None and record.in_use != in_use:
                return False
            if assigned_to is not None and record.assigned_to != assigned_to:
                return False
            return True

        return self.repo.find_all(matches)

    def list_free(self) -> list[KeyRecord]:
        return self.repo.find_all(_is_available)

    def list_active(self) -> list[KeyRecord]:
        return self.repo.find_all(lambda r: r.in_use)

    def acquire_free(self) -> KeyRecord:
        """Hand out the oldest free key and log the exposure.

        This is a peek, not a reservation: the key stays free until it is
        marked in use, so repeated calls return the same key.

        Raises:
            NoFreeKeyError: If no key is both unused and valid
        """
        record = self.repo.find_first(_is_available)
        if record is None:
            logger.warning("No free key available")
            raise NoFreeKeyError()

        record.hand_out()
        self._commit(stock_changed=False)
        record_key_transition("free")
        log_key_action("Free key handed out", "free", record.key, key_id=record.id)
        return record

    def mark_in_use(self, key: str, assigned_to: str | None = None) -> KeyRecord:
        record = self._get(key)
        record.claim(assigned_to)
        self._commit()
        record_key_transition("inuse")
        log_key_action(
            "Key marked in use", "inuse", record.key, assigned_to=record.assigned_to
        )
        return record

    def release(self, key: str) -> KeyRecord:
        record = self._get(key)
        record.release()
        self._commit()
        record_key_transition("release")
        log_key_action("Key released", "release", record.key)
        return record

    def invalidate(self, key: str) -> KeyRecord:
        """Mark a key invalid. There is no way back."""
        record = self._get(key)
        record.invalidate()
        self._commit()
        record_key_transition("invalidate")
        log_key_action("Key invalidated", "invalidate", record.key)
        return record

    def delete(self, key: str) -> None:
        """Remove a key together with its history."""
        if not self.repo.delete(key):
            logger.warning("Key deletion failed - not found", key=key)
            raise KeyNotFoundError(key)
        self._commit()
        record_key_transition("delete")
        log_key_action("Key deleted", "delete", key)

    def get_history(self, key: str) -> list[HistoryEvent]:
        return list(self._get(key).history)

    def all_records(self) -> list[KeyRecord]:
        return self.repo.find_all()

    def get_notification_config(self) -> NotificationConfig:
        return self.repo.config

    def update_notification_config(
        self,
        thresholds: list[int] | None = None,
        message_template: str | None = None,
    ) -> NotificationConfig:
        """Change thresholds and/or the message template and persist them.

        New thresholds reset the watermark and are evaluated against the
        current stock straight away, so a warning fires if stock is already
        below one of them.

        Raises:
            ValidationError: If a threshold is not a positive integer or the
                template is empty
        """
        if message_template is not None and not message_template.strip():
            raise ValidationError(
                "Message template cannot be empty", code="invalid_template"
            )
        normalized = (
            normalize_thresholds(thresholds) if thresholds is not None else None
        )

        config = self.repo.config
        if message_template is not None:
            config.message_template = message_template
        if normalized is not None and normalized != config.thresholds:
            config.thresholds = normalized
            self.notifier.state.last_warned = None
            self._commit()
        else:
            self._commit(stock_changed=False)
        logger.info(
            "Notification config updated",
            thresholds=config.thresholds,
            message_template=config.message_template,
        )
        return config
