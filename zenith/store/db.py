from typing import Optional
from pymongo import MongoClient
from pymongo.database import Database

from ..utils.logging import get_logger

log = get_logger(__name__)


def get_database(uri: Optional[str]) -> Optional[Database]:
    """
    Returns the default database named in the connection string, or None when
    no URI is configured. MongoClient connects lazily, so this never blocks.
    """
    if not uri:
        log.warning("MONGODB_URI not set; portal store disabled")
        return None
    client = MongoClient(uri)
    return client.get_default_database("zenith")
