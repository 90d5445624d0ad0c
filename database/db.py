from motor.motor_asyncio import AsyncIOMotorClient
from pymongo import ASCENDING, DESCENDING, MongoClient

from config import settings
from logging_config import logger

# Async client for API operations
async_client = AsyncIOMotorClient(settings.mongo_connection_string)
async_db = async_client[settings.database_name]


def get_db():
    """Return the active async database handle."""
    return async_db


def get_sync_client():
    """Sync client for operator scripts that run outside the event loop; callers close it."""
    return MongoClient(settings.mongo_connection_string)


# Collections
def users_collection():
    return get_db().users

def requests_collection():
    return get_db().requests

def notifications_collection():
    return get_db().notifications


# Create indexes for better performance
async def create_indexes():
    # User indexes; emails are stored lower-cased so this enforces case-insensitive uniqueness
    await users_collection().create_index("email", unique=True)

    # Request indexes
    await requests_collection().create_index("user_id")
    await requests_collection().create_index([("created_at", DESCENDING)])

    # Notification indexes
    await notifications_collection().create_index([("user_id", ASCENDING), ("created_at", DESCENDING)])
    await notifications_collection().create_index("request_id")

# Initialize database
async def init_db():
    try:
        await create_indexes()
        logger.info("Database initialized successfully")
    except Exception as e:
        logger.error(f"Error initializing database: {e}")
