# app/utils/dashboard.py
"""
Utilities for turning a stored user document into the response models
declared in `app/schemas/dashboard.py`.

This is the *owner's* view: values whose `showOnWebsite` flag is false are
still returned, the flag travels along as metadata. Do not reuse it for
anything public-facing.
"""
import logging
from typing import Any, Mapping, Optional

from app.schemas.dashboard import DashboardView

logger = logging.getLogger(__name__)

# Never part of any response, even if a projection let them through
INTERNAL_FIELDS = frozenset({"_id", "id", "__v", "password", "createdAt", "updatedAt", "created_at", "updated_at", "last_updated"})
# Projected into their own top-level sections
SECTION_FIELDS = frozenset({"github", "social", "codeforces", "codechef", "leetcode", "digitomize_rating"})
SHOWABLE_PERSONAL_FIELDS = ("bio", "phoneNumber", "dateOfBirth")
RATING_PLATFORMS = ("codeforces", "codechef", "leetcode")
# Used only when the record has no social section at all
DEFAULT_SOCIAL_PLATFORMS = ("linkedin", "instagram", "twitter")


class UserNotFoundError(Exception):
    """No stored record for the requested uid."""


class DashboardShapingError(Exception):
    """The stored record could not be turned into a response."""


def _showable(section: Any, value_key: str = "data") -> dict:
    """`{data, showOnWebsite}` with null/false defaults; tolerates a missing section."""
    if not isinstance(section, Mapping):
        return {"data": None, "showOnWebsite": False}
    flag = section.get("showOnWebsite")
    return {
        "data": section.get(value_key),
        "showOnWebsite": False if flag is None else flag,
    }


def _social(section: Any) -> dict:
    if isinstance(section, Mapping):
        return dict(section)
    return {platform: None for platform in DEFAULT_SOCIAL_PLATFORMS}


def project_dashboard(stored: Optional[Mapping[str, Any]]) -> dict:
    """
    Convert a stored user record into the dashboard JSON body.

    Parameters
    ----------
    stored
        Record returned by `crud_user.get_user_by_uid`, or None.

    Raises
    ------
    UserNotFoundError
        `stored` is None.
    DashboardShapingError
        Anything went wrong while building/serialising the view
        (e.g. a cyclic or non-serialisable value).
    """
    if stored is None:
        raise UserNotFoundError("User not found")

    try:
        record = dict(stored)

        personal_data = {
            key: value
            for key, value in record.items()
            if key not in INTERNAL_FIELDS and key not in SECTION_FIELDS and key not in SHOWABLE_PERSONAL_FIELDS
        }
        for field in SHOWABLE_PERSONAL_FIELDS:
            personal_data[field] = _showable(record.get(field))

        ratings = {platform: _showable(record.get(platform), value_key="username") for platform in RATING_PLATFORMS}
        ratings["digitomize_rating"] = record.get("digitomize_rating")

        view = DashboardView(
            personal_data=personal_data,
            github=_showable(record.get("github")),
            social=_social(record.get("social")),
            ratings=ratings,
        )
        body = view.model_dump(mode="json")
        # 0 and null are real values; a record without a rating gets no key at all
        if "digitomize_rating" not in record:
            del body["ratings"]["digitomize_rating"]
        return body
    except Exception as exc:
        logger.error(f"Failed to build dashboard for uid {stored.get('uid')!r}: {type(exc).__name__} - {exc}", exc_info=True)
        raise DashboardShapingError("Internal server error") from exc
