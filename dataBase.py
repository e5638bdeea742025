import motor.motor_asyncio
import os
from dotenv import load_dotenv
from pymongo import ASCENDING, DESCENDING

# Load environment variables from .env
load_dotenv()

MONGO_URL = os.getenv("MONGO_URL", "mongodb://localhost:27017")
DATABASE_NAME = os.getenv("DATABASE_NAME", "bookswapdb")

client = motor.motor_asyncio.AsyncIOMotorClient(MONGO_URL)
db = client[DATABASE_NAME]


async def get_db():
    """FastAPI dependency returning the shared database handle."""
    return db


async def ensure_indexes(database) -> None:
    await database.users.create_index([("email", ASCENDING)], unique=True)
    await database.users.create_index([("username", ASCENDING)], unique=True)

    await database.books.create_index([("owner", ASCENDING)])
    await database.books.create_index([("genre", ASCENDING)])
    await database.books.create_index([("isAvailable", ASCENDING), ("isActive", ASCENDING)])
    await database.books.create_index([("createdAt", DESCENDING)])

    await database.swaps.create_index([("requester", ASCENDING), ("status", ASCENDING)])
    await database.swaps.create_index([("owner", ASCENDING), ("status", ASCENDING)])
    await database.swaps.create_index([("expiresAt", ASCENDING)])
    await database.swaps.create_index([("createdAt", DESCENDING)])

    await database.reviews.create_index(
        [("reviewer", ASCENDING), ("reviewee", ASCENDING), ("swap", ASCENDING)],
        unique=True,
    )
    await database.reviews.create_index([("reviewee", ASCENDING), ("isActive", ASCENDING)])

    await database.notifications.create_index([("user_id", ASCENDING), ("created_at", DESCENDING)])
