# app/crud/crud_contest.py
import logging
from typing import Any, Dict, Optional

import asyncpg

from app.crud.crud_user import DatabaseInteractionError

logger = logging.getLogger(__name__)


async def get_contest_by_vanity(db: asyncpg.Connection, vanity: str) -> Optional[Dict[str, Any]]:
    """Fetches a contest by its vanity slug (e.g. 'codeforces-round-100'), or None."""
    logger.debug(f"Fetching contest by vanity: {vanity}")
    query = """
        SELECT vanity, name, host, duration, start_time_unix, url
        FROM contests
        WHERE vanity = $1
    """
    try:
        row = await db.fetchrow(query, vanity)
    except Exception as e:
        logger.error(f"Error fetching contest {vanity}: {e}", exc_info=True)
        raise DatabaseInteractionError("Database error fetching contest.") from e

    if row is None:
        return None
    return {
        "vanity": row["vanity"],
        "name": row["name"],
        "host": row["host"],
        "duration": row["duration"],
        "startTimeUnix": row["start_time_unix"],
        "url": row["url"],
    }
