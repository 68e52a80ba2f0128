# database.py
from motor.motor_asyncio import AsyncIOMotorClient
from pymongo import ASCENDING
import os
from dotenv import load_dotenv
import logging

logger = logging.getLogger(__name__)

load_dotenv()
MONGODB_URI = os.getenv("MONGODB_URI", "mongodb://localhost:27017")
MONGODB_DB = os.getenv("MONGODB_DB", "etudiants_db")

client = AsyncIOMotorClient(MONGODB_URI)
db = client[MONGODB_DB]


def get_students_collection():
    """FastAPI dependency returning the ``etudiants`` collection."""
    return db.etudiants


async def init_db():
    # Email uniqueness lives in the store; (nom, prenom) is only indexed for the duplicate lookup.
    await db.etudiants.create_index("email", unique=True)
    await db.etudiants.create_index([("nom", ASCENDING), ("prenom", ASCENDING)])
    logger.info(f"Indexes ready on {MONGODB_DB}.etudiants")
