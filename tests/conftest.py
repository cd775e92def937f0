from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from keyserver.application.key_service import KeyService
from keyserver.config import Settings
from keyserver.infrastructure.storage.store import InMemoryStore, JsonFileStore
from keyserver.main import create_app
from tests.helpers import RecordingDispatcher


@pytest.fixture(name="db_path")
def db_path_fixture(tmp_path: Path) -> Path:
    return tmp_path / "db.json"


@pytest.fixture(name="dispatcher")
def dispatcher_fixture() -> RecordingDispatcher:
    return RecordingDispatcher()


@pytest.fixture(name="service")
def service_fixture(dispatcher: RecordingDispatcher) -> KeyService:
    """Service over an empty in-memory store."""
    return KeyService(InMemoryStore(), dispatcher)


@pytest.fixture(name="file_service")
def file_service_fixture(db_path: Path, dispatcher: RecordingDispatcher) -> KeyService:
    """Service over a JSON file in a temp directory."""
    return KeyService(JsonFileStore(db_path), dispatcher)


@pytest.fixture(name="app_settings")
def app_settings_fixture(tmp_path: Path, db_path: Path) -> Settings:
    return Settings(
        db_file=str(db_path),
        static_dir=str(tmp_path / "no-static"),
        telegram_bot_token=None,
        telegram_chat_id=None,
        log_to_file=False,
        log_file=None,
    )


@pytest.fixture(name="client")
def client_fixture(app_settings: Settings, dispatcher: RecordingDispatcher):
    """Test client whose app stores keys in a temp file."""
    app = create_app(app_settings, dispatcher=dispatcher)
    with TestClient(app) as client:
        yield client
