"""
Database Index Creation Script

Creates the MongoDB indexes the repository relies on, including the
partial unique index that blocks duplicate active join requests.
Run this script after deployment or when setting up a new database.
"""

import asyncio
import logging

from motor.motor_asyncio import AsyncIOMotorClient

from hopper.config import settings
from hopper.database import create_indexes as create_repository_indexes

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


async def create_indexes():
    """Create all necessary indexes for optimal query performance."""
    client = AsyncIOMotorClient(settings.mongodb_uri)
    db = client[settings.mongodb_database]

    logger.info(f"Creating indexes on {settings.mongodb_database}...")
    await create_repository_indexes(db)

    for name in ("rides", "memberships", "profiles", "referrals"):
        indexes = await db[name].index_information()
        logger.info(f"{name}: {', '.join(sorted(indexes))}")

    client.close()
    logger.info("Done.")


if __name__ == "__main__":
    asyncio.run(create_indexes())
