from __future__ import annotations

import logging

from pymongo import MongoClient
from pymongo.collection import Collection
from pymongo.errors import PyMongoError

from .config import DEFAULT_DATABASE_CONFIG, DatabaseConfig

logger = logging.getLogger(__name__)


def connect(config: DatabaseConfig = DEFAULT_DATABASE_CONFIG) -> MongoClient:
    """
    Create a MongoClient and verify the server is reachable.

    Raises the driver error after logging it; callers treat a failed
    connection as fatal.
    """
    client: MongoClient = MongoClient(
        config.uri,
        tz_aware=True,
        serverSelectionTimeoutMS=config.server_selection_timeout_ms,
    )
    try:
        client.admin.command("ping")
    except PyMongoError:
        logger.error("MongoDB connection error (%s)", config.uri, exc_info=True)
        client.close()
        raise
    logger.info("MongoDB connected: %s/%s", config.uri, config.database)
    return client


def get_collection(
    client: MongoClient,
    config: DatabaseConfig = DEFAULT_DATABASE_CONFIG,
) -> Collection:
    return client[config.database][config.collection]
