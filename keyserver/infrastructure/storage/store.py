"""Backing stores for the key registry.

The whole registry is one document: the key records, the low-stock watermark
and the notification config. Every save rewrites the whole document; there is
no merge, the last writer wins.
"""

import copy
import json
import os
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Protocol

from pydantic import ValidationError as PydanticValidationError

from ...domain.entities import (
    KeyRecord,
    NotificationConfig,
    NotificationState,
    utc_now_iso,
)
from ...domain.exceptions import StoreIOError, ValidationError
from ...logging_config import get_logger
from ...logging_utils import log_store_operation
from .models import KeyRecordModel, NotificationConfigModel, StoreDocument

logger = get_logger(__name__)


@dataclass
class StoreSnapshot:
    """Full in-memory state of the registry."""

    records: list[KeyRecord] = field(default_factory=list)
    next_id: int = 1
    state: NotificationState = field(default_factory=NotificationState)
    config: NotificationConfig = field(default_factory=NotificationConfig)


class KeyStore(Protocol):
    """Anything that can load and persist a whole registry snapshot."""

    def load(self) -> StoreSnapshot: ...

    def save(self, snapshot: StoreSnapshot) -> None: ...


def snapshot_to_document(snapshot: StoreSnapshot) -> dict[str, Any]:
    """Serialize a snapshot into the camelCase file layout."""
    document = StoreDocument(
        last_warned=snapshot.state.last_warned,
        keys=[KeyRecordModel.from_domain(r) for r in snapshot.records],
        telegram_config=NotificationConfigModel.from_domain(snapshot.config),
    )
    return document.model_dump(by_alias=True, mode="json")


def snapshot_from_document(raw: Any) -> StoreSnapshot:
    """Build a snapshot from any supported file layout.

    Supported layouts:
    - a bare array of key records (oldest format, no notification state)
    - ``{lastWarned, keys}`` without ``telegramConfig`` (default config)
    - ``{lastWarned, keys, telegramConfig}`` (current format)

    Records are validated one at a time; a malformed record is skipped with a
    warning and the rest of the registry is kept.

    Raises:
        StoreIOError: If the document has none of these shapes
    """
    if isinstance(raw, list):
        raw = {"lastWarned": None, "keys": raw}
    if not isinstance(raw, dict):
        raise StoreIOError(f"Unsupported store layout: {type(raw).__name__}")

    raw_keys = raw.get("keys", [])
    if not isinstance(raw_keys, list):
        raise StoreIOError(f"Unsupported keys layout: {type(raw_keys).__name__}")

    models = _records_from_raw(raw_keys)
    now = utc_now_iso()
    max_id = max((m.id for m in models if m.id is not None), default=0)
    records = []
    for model in models:
        if model.id is None:
            max_id += 1
            records.append(model.to_domain(max_id, now))
        else:
            records.append(model.to_domain(model.id, now))

    return StoreSnapshot(
        records=records,
        next_id=max_id + 1,
        state=NotificationState(last_warned=_last_warned_from_raw(raw)),
        config=_config_from_raw(raw.get("telegramConfig")),
    )


def _records_from_raw(raw_keys: list[Any]) -> list[KeyRecordModel]:
    models = []
    for position, item in enumerate(raw_keys):
        try:
            models.append(KeyRecordModel.model_validate(item))
        except PydanticValidationError as e:
            logger.warning(
                "Skipping malformed key record", position=position, error=str(e)
            )
    return models


def _last_warned_from_raw(raw: dict[str, Any]) -> int | None:
    try:
        document = StoreDocument.model_validate(
            {"lastWarned": raw.get("lastWarned")}
        )
    except PydanticValidationError as e:
        logger.warning("Ignoring malformed warning state", error=str(e))
        return None
    return document.last_warned


def _config_from_raw(raw_config: Any) -> NotificationConfig:
    if raw_config is None:
        return NotificationConfig()
    try:
        return NotificationConfigModel.model_validate(raw_config).to_domain()
    except (PydanticValidationError, ValidationError) as e:
        logger.warning("Ignoring malformed notification config", error=str(e))
        return NotificationConfig()


class JsonFileStore:
    """Registry persisted as one pretty-printed JSON file."""

    def __init__(self, path: str | Path):
        self.path = Path(path)

    def load(self) -> StoreSnapshot:
        """Read the backing file.

        Any read or parse failure yields an empty registry so the service can
        always start.
        """
        try:
            text = self.path.read_text(encoding="utf-8")
            snapshot = snapshot_from_document(json.loads(text))
        except (OSError, ValueError, StoreIOError) as e:
            log_store_operation(
                "load", str(self.path), success=False, error=str(e)
            )
            logger.warning(
                "Key store unreadable, starting with an empty registry",
                path=str(self.path),
                error=str(e),
            )
            return StoreSnapshot()

        log_store_operation(
            "load", str(self.path), success=True, records=len(snapshot.records)
        )
        return snapshot

    def save(self, snapshot: StoreSnapshot) -> None:
        """Rewrite the whole file via a temp file and rename.

        Raises:
            StoreIOError: If the file cannot be written
        """
        payload = json.dumps(
            snapshot_to_document(snapshot), indent=2, ensure_ascii=False
        )
        tmp_name = None
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with tempfile.NamedTemporaryFile(
                "w",
                encoding="utf-8",
                dir=self.path.parent,
                prefix=f".{self.path.name}.",
                suffix=".tmp",
                delete=False,
            ) as handle:
                tmp_name = handle.name
                handle.write(payload)
            os.replace(tmp_name, self.path)
        except OSError as e:
            if tmp_name and os.path.exists(tmp_name):
                os.unlink(tmp_name)
            log_store_operation("save", str(self.path), success=False, error=str(e))
            raise StoreIOError(f"Could not write {self.path}: {e}") from e

        log_store_operation(
            "save", str(self.path), success=True, records=len(snapshot.records)
        )


class InMemoryStore:
    """Store that keeps the last saved snapshot in memory."""

    def __init__(self, initial: StoreSnapshot | None = None):
        self._snapshot = copy.deepcopy(initial) if initial else StoreSnapshot()
        self.save_count = 0

    def load(self) -> StoreSnapshot:
        return copy.deepcopy(self._snapshot)

    def save(self, snapshot: StoreSnapshot) -> None:
        self._snapshot = copy.deepcopy(snapshot)
        self.save_count += 1
