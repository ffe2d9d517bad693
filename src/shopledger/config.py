"""Runtime settings read from the environment."""

import os
from dataclasses import dataclass, replace
from typing import Mapping, Optional

from shopledger.database.factories import DB_PATH_ENV

LOG_LEVEL_ENV = "SHOPLEDGER_LOG_LEVEL"
MAX_APPEND_RETRIES_ENV = "SHOPLEDGER_MAX_APPEND_RETRIES"

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass(frozen=True)
class LedgerSettings:
    """Settings shared by the CLI and the services it builds.

    ``db_path`` of None means the default location under the home directory.
    """

    db_path: Optional[str] = None
    log_level: str = "WARNING"
    max_append_retries: int = 3

    def __post_init__(self):
        if self.log_level not in LOG_LEVELS:
            raise ValueError(f"Invalid log level '{self.log_level}'. Use one of: {', '.join(LOG_LEVELS)}")
        if self.max_append_retries < 1:
            raise ValueError("max_append_retries must be at least 1")

    def with_overrides(self, **overrides) -> "LedgerSettings":
        """Return a copy with every non-None override applied."""
        return replace(self, **{k: v for k, v in overrides.items() if v is not None})


def load_settings(environ: Optional[Mapping[str, str]] = None) -> LedgerSettings:
    """Build settings from SHOPLEDGER_* environment variables.

    Raises:
        ValueError: If a variable holds an invalid value
    """
    environ = os.environ if environ is None else environ

    raw_retries = environ.get(MAX_APPEND_RETRIES_ENV, "3")
    try:
        max_append_retries = int(raw_retries)
    except ValueError:
        raise ValueError(f"{MAX_APPEND_RETRIES_ENV} must be an integer, got '{raw_retries}'")

    return LedgerSettings(
        db_path=environ.get(DB_PATH_ENV) or None,
        log_level=environ.get(LOG_LEVEL_ENV, "WARNING").upper(),
        max_append_retries=max_append_retries,
    )
