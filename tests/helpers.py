"""Shared test helpers."""

import json
from pathlib import Path
from typing import Any


class RecordingDispatcher:
    """Dispatcher that keeps messages instead of sending them."""

    def __init__(self):
        self.messages: list[str] = []

    def dispatch(self, text: str) -> None:
        self.messages.append(text)


def make_key(index: int) -> str:
    return f"AAAAA-BBBBB-CCCCC-DDDDD-{index:05d}"


def make_record(index: int, **overrides: Any) -> dict[str, Any]:
    """A stored key record in the current file layout."""
    record = {
        "id": index + 1,
        "key": make_key(index),
        "inUse": False,
        "assignedTo": None,
        "createdAt": "2024-01-01T00:00:00.000Z",
        "lastUsedAt": None,
        "history": [],
        "invalid": False,
    }
    record.update(overrides)
    return record


def write_store(path: Path, content: Any) -> Path:
    path.write_text(json.dumps(content), encoding="utf-8")
    return path


def read_store(path: Path) -> Any:
    return json.loads(path.read_text(encoding="utf-8"))
