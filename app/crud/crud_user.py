# app/crud/crud_user.py
"""
User document store.

A user is one row in `users`: `uid` (unique), `role` and the profile document
as JSONB. Callers only ever see the flattened document,
`{**profile, "uid": ..., "role": ...}`; the internal id, password and
timestamps never leave this module.

Creation reports its two expected failure modes as a tagged
`UserStoreRejectedError` (see app.utils.error_classifier) rather than as
driver exceptions.
"""
import json
import logging
from typing import Any, Dict, List, Mapping, Optional

import asyncpg

from app.utils.error_classifier import StoreRejection, UserStoreRejectedError

logger = logging.getLogger(__name__)

ALREADY_EXISTS_STATUS = 200
REJECTED_STATUS = 400
ALREADY_EXISTS_MESSAGE = "User already exists"

# Never returned to callers even if they ended up inside the profile document
HIDDEN_PROFILE_KEYS = frozenset({"id", "password", "created_at", "updated_at", "last_updated"})
COLUMN_FIELDS = frozenset({"role", "password"})


# --- Custom Exceptions for User CRUD ---
class DatabaseInteractionError(Exception):
    """Generic error for unexpected DB issues during CRUD operations."""
    pass


# --- Helpers ---

def _load_profile(value: Any) -> Dict[str, Any]:
    # The pool registers a JSONB codec; plain connections hand back text
    if value is None:
        return {}
    if isinstance(value, (str, bytes)):
        return json.loads(value)
    return dict(value)


def _to_user(record: Mapping[str, Any]) -> Dict[str, Any]:
    profile = _load_profile(record["profile"])
    user = {key: value for key, value in profile.items() if key not in HIDDEN_PROFILE_KEYS}
    user["uid"] = record["uid"]
    user["role"] = record["role"]
    return user


def _affected_rows(status: str) -> int:
    """Row count from an asyncpg command tag such as 'UPDATE 1'."""
    try:
        return int(status.split(" ")[-1])
    except (AttributeError, ValueError, IndexError):
        logger.warning(f"Could not parse command status: {status!r}")
        return 0


# --- CRUD Functions ---

async def insert_user(
    db: asyncpg.Connection,
    document: Mapping[str, Any],
    role: str = "user",
) -> Dict[str, Any]:
    """
    Inserts a new user document keyed by `document["uid"]`.

    Raises UserStoreRejectedError with status 200 when the uid is taken and
    status 400 when Postgres refuses the row itself; anything else is wrapped
    in DatabaseInteractionError.
    """
    uid = document.get("uid")
    profile = {key: value for key, value in document.items() if key not in COLUMN_FIELDS}
    logger.info(f"Inserting user document for uid: {uid}")
    query = """
        INSERT INTO users (uid, role, profile, created_at, updated_at)
        VALUES ($1, $2, $3, NOW(), NOW())
        ON CONFLICT (uid) DO NOTHING
        RETURNING uid, role, profile
    """
    try:
        row = await db.fetchrow(query, uid, role, profile)
    except (asyncpg.exceptions.DataError, asyncpg.exceptions.IntegrityConstraintViolationError) as e:
        logger.warning(f"User document for uid {uid} rejected by the database: {e}")
        raise UserStoreRejectedError(StoreRejection(status=REJECTED_STATUS, message=str(e))) from e
    except Exception as e:
        logger.error(f"Unexpected error inserting user {uid}: {e}", exc_info=True)
        raise DatabaseInteractionError("Failed to create user record.") from e

    if row is None:
        logger.info(f"User {uid} already exists; insert skipped.")
        raise UserStoreRejectedError(StoreRejection(status=ALREADY_EXISTS_STATUS, message=ALREADY_EXISTS_MESSAGE))

    logger.info(f"User {uid} created.")
    return _to_user(row)


async def get_user_by_uid(db: asyncpg.Connection, uid: str) -> Optional[Dict[str, Any]]:
    """Return the flattened user document for `uid`, or None."""
    logger.debug(f"Fetching user by uid: {uid}")
    try:
        row = await db.fetchrow("SELECT uid, role, profile FROM users WHERE uid = $1", uid)
    except Exception as e:
        logger.error(f"Error fetching user by uid {uid}: {e}", exc_info=True)
        raise DatabaseInteractionError("Database error fetching user by uid.") from e
    return _to_user(row) if row else None


async def list_users(db: asyncpg.Connection) -> List[Dict[str, Any]]:
    """Every user, oldest first."""
    logger.debug("Listing all users")
    try:
        rows = await db.fetch("SELECT uid, role, profile FROM users ORDER BY created_at, id")
    except Exception as e:
        logger.error(f"Error listing users: {e}", exc_info=True)
        raise DatabaseInteractionError("Database error listing users.") from e
    return [_to_user(row) for row in rows]


async def update_user_fields(db: asyncpg.Connection, uid: str, fields: Mapping[str, Any]) -> Dict[str, Any]:
    """
    Sets `fields` on the user (role goes to its column, the rest is merged
    into the profile document) and stamps `last_updated`.

    Returns an update summary: acknowledged / matchedCount / modifiedCount.
    A uid that matches nothing is not an error, the counts are just 0.
    """
    fields = dict(fields)
    role = fields.pop("role", None)
    profile_patch = {key: value for key, value in fields.items() if key not in COLUMN_FIELDS}
    logger.info(f"Updating user {uid}: profile fields={sorted(profile_patch)}, role={role}")
    query = """
        UPDATE users
        SET role = COALESCE($2, role),
            profile = profile || $3::jsonb,
            last_updated = NOW(),
            updated_at = NOW()
        WHERE uid = $1
    """
    try:
        status = await db.execute(query, uid, role, profile_patch)
    except Exception as e:
        logger.error(f"Error updating user {uid}: {e}", exc_info=True)
        raise DatabaseInteractionError("Database error updating user.") from e

    count = _affected_rows(status)
    if count == 0:
        logger.warning(f"Update for user {uid} matched no rows.")
    return {"acknowledged": True, "matchedCount": count, "modifiedCount": count}


async def delete_user_by_uid(db: asyncpg.Connection, uid: str) -> Dict[str, Any]:
    """Deletes the user document; returns acknowledged / deletedCount."""
    logger.warning(f"Deleting user document for uid: {uid}")
    try:
        status = await db.execute("DELETE FROM users WHERE uid = $1", uid)
    except Exception as e:
        logger.error(f"Error deleting user {uid}: {e}", exc_info=True)
        raise DatabaseInteractionError("Database error deleting user.") from e

    count = _affected_rows(status)
    if count == 0:
        logger.warning(f"Attempted to delete user {uid}, but no document was found.")
    return {"acknowledged": True, "deletedCount": count}
