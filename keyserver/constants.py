"""Infrastructure and technical constants."""

from typing import Final

DEFAULT_PORT: Final = 3000
DEFAULT_METRICS_PORT: Final = 9464
DEFAULT_DB_FILE: Final = "db.json"
DEFAULT_LOG_FILE: Final = "logs/keyserver.log"
TELEGRAM_API_URL: Final = "https://api.telegram.org"
