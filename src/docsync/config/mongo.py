"""MongoDB connection configuration."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Final

from .env import optional_env_var, optional_int_env_var, require_env_vars

DEFAULT_APP_NAME: Final[str] = "docsync"
DEFAULT_SERVER_SELECTION_TIMEOUT_MS: Final[int] = 5000


@dataclass(frozen=True, slots=True)
class MongoConfig:
    uri: str
    database: str
    app_name: str = DEFAULT_APP_NAME
    server_selection_timeout_ms: int = DEFAULT_SERVER_SELECTION_TIMEOUT_MS


def get_mongo_config() -> MongoConfig:
    values = require_env_vars(("DOCSYNC_MONGO_URI", "DOCSYNC_MONGO_DATABASE"))
    return MongoConfig(
        uri=values["DOCSYNC_MONGO_URI"],
        database=values["DOCSYNC_MONGO_DATABASE"],
        app_name=optional_env_var("DOCSYNC_MONGO_APP_NAME", DEFAULT_APP_NAME),
        server_selection_timeout_ms=optional_int_env_var(
            "DOCSYNC_MONGO_TIMEOUT_MS", DEFAULT_SERVER_SELECTION_TIMEOUT_MS
        ),
    )
