"""MongoDB database configuration and connection management."""

from __future__ import annotations

import logging
import os
from typing import Optional

from pymongo import ASCENDING, MongoClient
from pymongo.database import Database

_LOGGER = logging.getLogger(__name__)

# Global MongoDB client instance
_client: Optional[MongoClient] = None
_database: Optional[Database] = None


def get_mongo_client() -> MongoClient:
    """Get or create MongoDB client instance."""
    global _client
    if _client is None:
        mongo_uri = os.getenv("MONGODB_URI", "mongodb://localhost:27017/")
        timeout_ms = int(os.getenv("MONGODB_TIMEOUT_MS", "5000"))
        _client = MongoClient(mongo_uri, serverSelectionTimeoutMS=timeout_ms)
    return _client


def get_database() -> Database:
    """Get the MongoDB database instance."""
    global _database
    if _database is None:
        client = get_mongo_client()
        db_name = os.getenv("MONGODB_DATABASE", "moviemate")
        _database = client[db_name]
    return _database


def create_indexes() -> None:
    """Create the indexes the account registry and event log rely on."""
    db = get_database()
    db.accounts.create_index([("email", ASCENDING)], unique=True)
    db.events.create_index([("user_id", ASCENDING)])
    _LOGGER.debug("Indexes ensured on %s", db.name)


def close_mongo_connection():
    """Close the MongoDB connection."""
    global _client, _database
    if _client is not None:
        _client.close()
        _client = None
        _database = None
