import logging

import certifi
from motor.motor_asyncio import AsyncIOMotorClient

from .config import get_settings

logger = logging.getLogger(__name__)

client: AsyncIOMotorClient = None
db = None


async def connect_db():
    global client, db
    settings = get_settings()
    if not settings.mongo_uri:
        logger.warning("MONGO_URI not set — reports are kept in memory")
        return

    kwargs = {"serverSelectionTimeoutMS": settings.mongo_timeout_ms}
    if settings.mongo_tls:
        # certifi bundle reliably verifies Atlas certificates
        kwargs.update(tls=True, tlsCAFile=certifi.where())

    client = AsyncIOMotorClient(settings.mongo_uri, **kwargs)
    try:
        database = client[settings.mongo_db_name]
        await database.reports.create_index("report_id", unique=True)
        await database.reports.create_index([("owner_id", 1), ("created_at", -1)])
        await database.reports.create_index("final_url")
    except Exception:
        client.close()
        client = None
        raise
    db = database
    logger.info("Connected to MongoDB: %s", settings.mongo_db_name)


async def close_db():
    global client, db
    if client:
        client.close()
        client = None
        db = None
        logger.info("MongoDB connection closed")


def get_db():
    return db
