# app/utils/social_links.py
"""
Validation for the `social` profile section, a flat `{platform: url}` map.

Not every platform has to be filled in: `None` and empty strings are accepted.
Anything else must be an absolute URL (scheme *and* host). Reporting is
fail-fast: the first offending platform, in the map's own key order, wins.
"""
from dataclasses import dataclass
from typing import Any, Mapping, Optional

from pydantic import AnyUrl, TypeAdapter, ValidationError

_url_adapter = TypeAdapter(AnyUrl)


@dataclass(frozen=True)
class SocialLinksValidation:
    ok: bool
    platform: Optional[str] = None
    reason: Optional[str] = None


def is_absolute_url(value: str) -> bool:
    """True when `value` parses as a URL with both a scheme and a host."""
    try:
        url = _url_adapter.validate_python(value)
    except ValidationError:
        return False
    return bool(url.scheme and url.host)


def validate_social_links(social: Optional[Mapping[str, Any]]) -> SocialLinksValidation:
    if not social:
        return SocialLinksValidation(ok=True)

    for platform, url in social.items():
        if url is None or url == "":
            continue
        if not isinstance(url, str) or not is_absolute_url(url):
            return SocialLinksValidation(ok=False, platform=platform, reason=f"Invalid {platform} URL")

    return SocialLinksValidation(ok=True)
