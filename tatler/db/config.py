from __future__ import annotations

import os
from dataclasses import dataclass

# Importing the app config loads .env before the defaults below are read.
from .. import config as _app_config  # noqa: F401


@dataclass(frozen=True)
class DatabaseConfig:
    uri: str = os.getenv("MONGODB_URI", "mongodb://localhost:27017")
    database: str = os.getenv("MONGODB_DB", "tatler_db")
    collection: str = "restaurants"
    server_selection_timeout_ms: int = 5000


DEFAULT_DATABASE_CONFIG = DatabaseConfig()
