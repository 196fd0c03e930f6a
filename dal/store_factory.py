"""Pick the attendance store backend once at startup."""

from __future__ import annotations

import logging

from dal.attendance_dal import AttendanceStore, SQLiteAttendanceStore
from dal.supabase_attendance_dal import SupabaseAttendanceStore
from utils.app_config import AppConfig
from utils.database_init import DEMO_ATTENDEES, AsyncDatabaseInitializer

logger = logging.getLogger(__name__)


async def build_attendance_store(config: AppConfig) -> AttendanceStore:
    """Return the Supabase store when credentials are configured, else the local SQLite one."""
    if config.supabase_configured:
        try:
            store = SupabaseAttendanceStore.from_credentials(config.supabase_url, config.supabase_key)
        except Exception as exc:
            raise RuntimeError("Failed to initialize Supabase client") from exc
        logger.info("Using Supabase attendance store at %s", config.supabase_url)
        return store

    logger.warning("Supabase is not configured; using local SQLite attendance store.")
    initializer = AsyncDatabaseInitializer(
        config.database_dir,
        reset=config.database_reset,
        seed_attendees=DEMO_ATTENDEES if config.seed_demo_attendees else None,
    )
    await initializer.ensure_database()
    return SQLiteAttendanceStore(initializer)
