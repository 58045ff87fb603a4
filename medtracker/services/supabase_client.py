"""Supabase client for document store operations."""

from functools import lru_cache
from typing import Optional

from supabase import create_client, Client

from ..config import get_settings
from ..logging_config import get_logger

logger = get_logger(__name__)

STORE_TABLES = ("medications", "user_preferences")


@lru_cache(maxsize=1)
def get_supabase_client() -> Optional[Client]:
    """Get Supabase client instance."""
    settings = get_settings()

    if not settings.store_configured:
        logger.warning("Supabase credentials not configured")
        return None

    try:
        client = create_client(settings.supabase_url, settings.supabase_key)
        logger.info("Supabase client initialized successfully")
        return client
    except Exception as e:
        logger.error(f"Failed to initialize Supabase client: {e}")
        return None


async def verify_store_tables() -> bool:
    """Check the tables the reminder service reads and writes are reachable."""
    client = get_supabase_client()
    if not client:
        logger.error("Cannot verify tables: Supabase client not available")
        return False

    for table in STORE_TABLES:
        try:
            client.table(table).select('*').limit(1).execute()
        except Exception as e:
            logger.error(f"Table '{table}' is not accessible: {e}")
            return False

    logger.info("Database tables verified")
    return True
