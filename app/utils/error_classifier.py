# app/utils/error_classifier.py
"""
Maps the failure of a user-creation attempt onto the response it deserves.

The store does not raise typed errors for the two expected outcomes; it
rejects with a `StoreRejection(status, message)`:

* status 200 -> the user already exists  (Conflict, answered with HTTP 200)
* any other  -> the document was refused (Validation, message passed through)

Everything without a status (driver errors, timeouts, bugs) is Internal and
its text never reaches the caller.
"""
import enum
import logging
from dataclasses import dataclass
from typing import Any, Mapping, Optional

logger = logging.getLogger(__name__)

USER_EXISTS_MESSAGE = "User already exists."
INTERNAL_ERROR_MESSAGE = "Error creating user"
CONFLICT_STATUS = 200


class ErrorKind(str, enum.Enum):
    CONFLICT = "conflict"
    VALIDATION = "validation"
    INTERNAL = "internal"


_HTTP_STATUS = {
    ErrorKind.CONFLICT: 200,
    ErrorKind.VALIDATION: 400,
    ErrorKind.INTERNAL: 500,
}


@dataclass(frozen=True)
class StoreRejection:
    status: int
    message: str


class UserStoreRejectedError(Exception):
    """Raised by the store when it refuses a document; carries the rejection."""

    def __init__(self, rejection: StoreRejection):
        super().__init__(rejection.message)
        self.rejection = rejection


@dataclass(frozen=True)
class ClassifiedError:
    kind: ErrorKind
    message: str

    @property
    def status_code(self) -> int:
        return _HTTP_STATUS[self.kind]

    def to_content(self) -> dict:
        if self.kind is ErrorKind.CONFLICT:
            return {"message": self.message}
        return {"error": self.message}


def _as_rejection(failure: Any) -> Optional[StoreRejection]:
    if isinstance(failure, StoreRejection):
        return failure
    if isinstance(failure, UserStoreRejectedError):
        return failure.rejection

    if isinstance(failure, Mapping):
        status, message = failure.get("status"), failure.get("message")
    else:
        status, message = getattr(failure, "status", None), getattr(failure, "message", None)

    # bool is an int subclass; True is not a status
    if isinstance(status, bool) or not isinstance(status, (int, float)):
        return None
    return StoreRejection(status=status, message="" if message is None else str(message))


def classify(failure: Any) -> ClassifiedError:
    rejection = _as_rejection(failure)

    if rejection is None:
        logger.error(
            f"Unclassified failure while creating user: {failure!r}",
            exc_info=failure if isinstance(failure, BaseException) else False,
        )
        return ClassifiedError(ErrorKind.INTERNAL, INTERNAL_ERROR_MESSAGE)

    if rejection.status == CONFLICT_STATUS:
        return ClassifiedError(ErrorKind.CONFLICT, USER_EXISTS_MESSAGE)

    logger.warning(f"User store rejected document (status={rejection.status}): {rejection.message}")
    return ClassifiedError(ErrorKind.VALIDATION, rejection.message)
