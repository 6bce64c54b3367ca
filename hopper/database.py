"""
HOPPER Database Module

Process-wide MongoDB and Redis handles. Which ones are opened depends on
the storage backend and on whether the realtime feed is enabled.
"""

import logging
from typing import Optional

import redis.asyncio as redis
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo import ASCENDING, DESCENDING, IndexModel

from hopper.config import settings
from hopper.models.membership import ACTIVE_MEMBERSHIP_STATUSES

logger = logging.getLogger(__name__)


# =============================================================================
# Indexes
# =============================================================================

INDEXES = {
    "rides": [
        IndexModel("ride_id", unique=True),
        IndexModel("owner_id"),
        IndexModel([("status", ASCENDING), ("date", ASCENDING)]),
    ],
    "memberships": [
        IndexModel("membership_id", unique=True),
        IndexModel([("ride_id", ASCENDING), ("status", ASCENDING)]),
        IndexModel([("user_id", ASCENDING), ("status", ASCENDING)]),
        # At most one pending/accepted request per (ride, user)
        IndexModel(
            [("ride_id", ASCENDING), ("user_id", ASCENDING)],
            unique=True,
            partialFilterExpression={"status": {"$in": list(ACTIVE_MEMBERSHIP_STATUSES)}},
            name="unique_active_membership",
        ),
    ],
    "profiles": [
        IndexModel("user_id", unique=True),
        IndexModel([("trust_score", DESCENDING)]),
        IndexModel([("rides_completed", DESCENDING)]),
    ],
    "referrals": [
        IndexModel("referral_id", unique=True),
        IndexModel("referee_id", unique=True),
        IndexModel([("referrer_id", ASCENDING), ("status", ASCENDING)]),
    ],
}


async def create_indexes(db: AsyncIOMotorDatabase) -> None:
    for collection, indexes in INDEXES.items():
        await db[collection].create_indexes(indexes)


# =============================================================================
# Connections
# =============================================================================

class Connections:
    """Holds the open clients; None until init_db() runs."""

    mongo_client: Optional[AsyncIOMotorClient] = None
    db: Optional[AsyncIOMotorDatabase] = None
    redis_client: Optional[redis.Redis] = None


connections = Connections()


def get_db() -> AsyncIOMotorDatabase:
    if connections.db is None:
        raise RuntimeError("Database not initialized")
    return connections.db


def get_redis() -> redis.Redis:
    if connections.redis_client is None:
        raise RuntimeError("Redis not initialized")
    return connections.redis_client


async def init_db():
    """Open the connections the configured backend needs."""
    if settings.storage_backend == "mongo":
        connections.mongo_client = AsyncIOMotorClient(settings.mongodb_uri)
        connections.db = connections.mongo_client[settings.mongodb_database]
        await create_indexes(connections.db)
        logger.info(f"MongoDB ready (database={settings.mongodb_database})")

    if settings.realtime_enabled:
        connections.redis_client = redis.from_url(
            settings.redis_url,
            decode_responses=True,
            health_check_interval=30,
            socket_connect_timeout=5,
        )
        logger.info("Redis client created for the realtime feed")


async def close_db():
    if connections.mongo_client:
        connections.mongo_client.close()
        connections.mongo_client = None
        connections.db = None
    if connections.redis_client:
        await connections.redis_client.aclose()
        connections.redis_client = None
