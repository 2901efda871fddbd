# app/services/identity.py
"""
Thin async wrapper over the Firebase Admin auth API (initialized in main.py).

The SDK is synchronous, so calls run in FastAPI's threadpool. SDK failures
are re-raised as IdentityProviderError carrying a Firebase-style error code
(`auth/email-already-exists`, `auth/user-not-found`, ...) so handlers can
branch on the code without importing firebase_admin.
"""
import logging
from typing import Any, Dict

from fastapi.concurrency import run_in_threadpool
from firebase_admin import auth as firebase_auth
from firebase_admin.exceptions import FirebaseError

logger = logging.getLogger(__name__)

EMAIL_ALREADY_EXISTS = "auth/email-already-exists"
USER_NOT_FOUND = "auth/user-not-found"
UID_ALREADY_EXISTS = "auth/uid-already-exists"
INVALID_ARGUMENT = "auth/invalid-argument"


class IdentityProviderError(Exception):
    """A Firebase Auth call failed."""

    def __init__(self, code: str, message: str):
        super().__init__(message)
        self.code = code
        self.message = message

    @property
    def diagnostic(self) -> str:
        return f"code:{self.code}, \n message:{self.message}"

    @property
    def error_info(self) -> Dict[str, Any]:
        return {"errorInfo": {"code": self.code, "message": self.message}}


def _to_provider_error(exc: Exception) -> IdentityProviderError:
    if isinstance(exc, firebase_auth.EmailAlreadyExistsError):
        code = EMAIL_ALREADY_EXISTS
    elif isinstance(exc, firebase_auth.UserNotFoundError):
        code = USER_NOT_FOUND
    elif isinstance(exc, firebase_auth.UidAlreadyExistsError):
        code = UID_ALREADY_EXISTS
    elif isinstance(exc, FirebaseError):
        code = "auth/" + str(exc.code).lower().replace("_", "-")
    else:
        # The SDK validates arguments locally and raises ValueError
        code = INVALID_ARGUMENT
    return IdentityProviderError(code, str(exc))


async def create_identity(email: str, display_name: str, password: str) -> Dict[str, Any]:
    """Creates the Firebase account and returns `{uid, email, displayName}`."""
    logger.info(f"Creating Firebase identity for {email}")
    try:
        record = await run_in_threadpool(
            firebase_auth.create_user,
            email=email,
            password=password,
            display_name=display_name,
        )
    except (FirebaseError, ValueError) as exc:
        error = _to_provider_error(exc)
        logger.warning(f"Firebase create_user failed for {email}: {error.code} - {error.message}")
        raise error from exc

    logger.info(f"Firebase identity created: {record.uid}")
    return {"uid": record.uid, "email": record.email, "displayName": record.display_name}


async def delete_identity(uid: str) -> None:
    logger.warning(f"Deleting Firebase identity {uid}")
    try:
        await run_in_threadpool(firebase_auth.delete_user, uid)
    except (FirebaseError, ValueError) as exc:
        error = _to_provider_error(exc)
        logger.warning(f"Firebase delete_user failed for {uid}: {error.code} - {error.message}")
        raise error from exc


def identity_claims(identity: Dict[str, Any]) -> Dict[str, Any]:
    """Identity record -> claims understood by the user-record builder."""
    return {
        "uid": identity.get("uid"),
        "email": identity.get("email"),
        "name": identity.get("displayName"),
    }
