"""Supabase client for database operations."""

from functools import lru_cache
from typing import Optional

from supabase import create_client, Client

from ..config import get_settings
from ..logging_config import get_logger

logger = get_logger(__name__)

REQUIRED_TABLES = (
    "medicines",
    "reminder_slots",
    "profiles",
    "calendar_tokens",
    "calendar_event_records",
)


@lru_cache(maxsize=1)
def get_supabase_client() -> Optional[Client]:
    """Get Supabase client instance."""
    settings = get_settings()

    if not settings.supabase_url or not settings.supabase_key:
        logger.warning("Supabase credentials not configured")
        return None

    try:
        client = create_client(settings.supabase_url, settings.supabase_key)
        logger.info("Supabase client initialized successfully")
        return client
    except Exception as e:
        logger.error(f"Failed to initialize Supabase client: {e}")
        return None


def verify_reminder_tables(client: Optional[Client] = None) -> bool:
    """Check that every table the reminder core reads is reachable.

    Tables are created from sql/schema.sql in the Supabase SQL editor.
    """
    client = client or get_supabase_client()
    if not client:
        logger.error("Cannot verify tables: Supabase client not available")
        return False

    missing = []
    for table in REQUIRED_TABLES:
        try:
            client.table(table).select("*").limit(1).execute()
        except Exception as e:
            logger.error(f"Table {table} is not accessible: {e}")
            missing.append(table)

    if missing:
        logger.warning(f"Missing reminder tables: {', '.join(missing)}")
        return False

    logger.info("Database tables verified")
    return True
