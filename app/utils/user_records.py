# app/utils/user_records.py
"""
Builds the canonical user record from two sources:

* **claims**    - trusted identity attributes (decoded Firebase token, or the
                  record Firebase returned when an admin created the account);
* **overrides** - the untrusted request body.

`uid` and `email` only ever come from the claims. `name` and `username` are the
only body-overridable fields, and which side wins is decided by the
`MergePrecedence` the caller passes in. Every other profile field is copied
from the claims as-is; fields the claims do not carry stay unset on the
record (see `CanonicalUserRecord`).
"""
import enum
import logging
from typing import Any, Mapping, Optional, Union

from pydantic import ValidationError

from app.schemas.user import CanonicalUserRecord
from app.utils.social_links import validate_social_links

logger = logging.getLogger(__name__)

MISSING_FIELDS_MESSAGE = "Missing required fields"

OVERRIDABLE_FIELDS = ("username", "name")
CLAIMS_ONLY_FIELDS = (
    "picture",
    "resume",
    "email_verified",
    "email_show",
    "bio",
    "dateOfBirth",
    "phoneNumber",
    "github",
    "social",
    "codechef",
    "leetcode",
    "codeforces",
)


class MergePrecedence(str, enum.Enum):
    # Self-signup: whatever the user typed replaces the token value.
    OVERRIDE_WINS = "override-wins"
    # Admin provisioning: the Firebase record was just created from the same
    # input, so its displayName is authoritative; the body only fills gaps.
    CLAIMS_WINS_IF_PRESENT = "claims-wins-if-present"


class MissingFieldError(ValueError):
    """uid or email missing from the claims."""


class InvalidRecordError(ValueError):
    """A claims section does not have the expected shape."""

    def __init__(self, field: str):
        super().__init__(f"Invalid {field}")
        self.field = field


class InvalidSocialLinkError(ValueError):
    """A social platform URL failed validation."""

    def __init__(self, platform: str, reason: str):
        super().__init__(reason)
        self.platform = platform
        self.reason = reason


_ABSENT = object()


def _has_value(value: Any) -> bool:
    return value is not None and value != ""


def _pick(field: str, claims: Mapping[str, Any], overrides: Mapping[str, Any], precedence: MergePrecedence) -> Any:
    if precedence is MergePrecedence.OVERRIDE_WINS:
        sources = (overrides, claims)
    elif precedence is MergePrecedence.CLAIMS_WINS_IF_PRESENT:
        sources = (claims, overrides)
    else:  # pragma: no cover - enum is closed
        raise ValueError(f"Unknown merge precedence: {precedence!r}")

    for source in sources:
        if _has_value(source.get(field)):
            return source[field]
    # Neither side has a usable value; keep an explicit null/"" from the claims, else absent
    return claims[field] if field in claims else _ABSENT


def build_record(
    claims: Optional[Mapping[str, Any]],
    overrides: Optional[Mapping[str, Any]],
    precedence: Union[MergePrecedence, str],
) -> CanonicalUserRecord:
    """
    Merge `claims` and `overrides` into a validated `CanonicalUserRecord`.

    Raises MissingFieldError before doing anything else when the claims lack
    uid/email, InvalidRecordError for malformed sections and
    InvalidSocialLinkError for a bad social URL.
    """
    claims = claims or {}
    overrides = overrides or {}
    precedence = MergePrecedence(precedence)

    if not _has_value(claims.get("uid")) or not _has_value(claims.get("email")):
        raise MissingFieldError(MISSING_FIELDS_MESSAGE)

    candidate = {"uid": claims["uid"], "email": claims["email"]}

    for field in OVERRIDABLE_FIELDS:
        value = _pick(field, claims, overrides, precedence)
        if value is not _ABSENT:
            candidate[field] = value

    for field in CLAIMS_ONLY_FIELDS:
        if field in claims:
            candidate[field] = claims[field]

    try:
        record = CanonicalUserRecord(**candidate)
    except ValidationError as exc:
        errors = exc.errors()
        field = str(errors[0]["loc"][0]) if errors and errors[0].get("loc") else "user record"
        logger.warning(f"Rejected user record for uid {claims['uid']}: invalid '{field}'")
        raise InvalidRecordError(field) from exc

    result = validate_social_links(record.social)
    if not result.ok:
        raise InvalidSocialLinkError(result.platform, result.reason)

    return record
