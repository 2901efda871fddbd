# tests/records/test_user_records.py

import pytest

from app.utils.user_records import (InvalidRecordError, InvalidSocialLinkError, MergePrecedence,
                                    MissingFieldError, build_record)
from tests.utils import TEST_EMAIL, TEST_UID, make_claims

OVERRIDE_WINS = MergePrecedence.OVERRIDE_WINS
CLAIMS_WINS = MergePrecedence.CLAIMS_WINS_IF_PRESENT


# =====================================================
# Required identity fields
# =====================================================

@pytest.mark.parametrize("claims", [
    {"email": TEST_EMAIL},
    {"uid": TEST_UID},
    {"uid": TEST_UID, "email": ""},
    {"uid": "", "email": TEST_EMAIL},
    {"uid": TEST_UID, "email": None},
    {},
])
def test_missing_uid_or_email_is_rejected(claims):
    with pytest.raises(MissingFieldError):
        build_record(claims, {"username": "someone"}, OVERRIDE_WINS)


def test_none_claims_are_treated_as_empty():
    with pytest.raises(MissingFieldError):
        build_record(None, None, OVERRIDE_WINS)


def test_uid_and_email_never_come_from_overrides():
    record = build_record(make_claims(), {"uid": "spoofed", "email": "spoof@example.com"}, OVERRIDE_WINS)
    assert record.uid == TEST_UID
    assert record.email == TEST_EMAIL


# =====================================================
# Overridable fields (name, username)
# =====================================================

def test_override_wins_replaces_claims():
    record = build_record(make_claims(name="Token Name"), {"name": "Body Name", "username": "body_user"}, OVERRIDE_WINS)
    assert record.name == "Body Name"
    assert record.username == "body_user"


def test_override_wins_falls_back_to_claims_on_blank_override():
    record = build_record(make_claims(name="Token Name"), {"name": ""}, OVERRIDE_WINS)
    assert record.name == "Token Name"


def test_claims_win_when_present():
    record = build_record(make_claims(name="Firebase Name"), {"name": "Body Name"}, CLAIMS_WINS)
    assert record.name == "Firebase Name"


def test_claims_win_falls_back_to_override():
    record = build_record(make_claims(name=None), {"name": "Body Name"}, CLAIMS_WINS)
    assert record.name == "Body Name"


def test_precedence_accepts_enum_value_string():
    record = build_record(make_claims(name="Token Name"), {"name": "Body Name"}, "claims-wins-if-present")
    assert record.name == "Token Name"


def test_unknown_precedence_is_rejected():
    with pytest.raises(ValueError):
        build_record(make_claims(), {}, "whoever-shouts-loudest")


def test_fields_nobody_supplied_stay_unset():
    record = build_record({"uid": TEST_UID, "email": TEST_EMAIL}, {}, OVERRIDE_WINS)
    assert record.model_dump(exclude_unset=True) == {"uid": TEST_UID, "email": TEST_EMAIL}
    # The full dump still has every key
    assert record.model_dump()["username"] is None


def test_explicit_null_claim_is_kept():
    record = build_record({"uid": TEST_UID, "email": TEST_EMAIL, "name": None}, {}, OVERRIDE_WINS)
    assert "name" in record.model_fields_set
    assert record.name is None


# =====================================================
# Claims-only fields
# =====================================================

def test_profile_sections_copied_from_claims():
    claims = make_claims(
        picture="https://example.com/p.png",
        bio={"data": "hello", "showOnWebsite": True},
        codeforces={"username": "cf_user", "showOnWebsite": True, "rating": 1500},
        social={"twitter": "https://twitter.com/x"},
    )
    record = build_record(claims, {}, OVERRIDE_WINS)
    dumped = record.model_dump(exclude_unset=True)
    assert dumped["picture"] == "https://example.com/p.png"
    assert dumped["bio"] == {"data": "hello", "showOnWebsite": True}
    assert dumped["codeforces"] == {"username": "cf_user", "showOnWebsite": True, "rating": 1500}
    assert dumped["social"] == {"twitter": "https://twitter.com/x"}


def test_claims_only_fields_ignore_overrides():
    record = build_record(make_claims(), {"picture": "https://evil.example.com/p.png", "bio": {"data": "x"}}, OVERRIDE_WINS)
    assert "picture" not in record.model_fields_set
    assert "bio" not in record.model_fields_set


def test_unrelated_claims_are_dropped():
    record = build_record(make_claims(iss="https://securetoken.google.com/x", skills=["go"]), {}, OVERRIDE_WINS)
    dumped = record.model_dump(exclude_unset=True)
    assert "iss" not in dumped
    assert "skills" not in dumped


# =====================================================
# Shape / social validation
# =====================================================

def test_malformed_section_is_rejected():
    with pytest.raises(InvalidRecordError) as exc_info:
        build_record(make_claims(bio="not an object"), {}, OVERRIDE_WINS)
    assert exc_info.value.field == "bio"
    assert str(exc_info.value) == "Invalid bio"


def test_invalid_social_link_is_rejected():
    claims = make_claims(social={"linkedin": "https://linkedin.com/in/x", "twitter": "not-a-url"})
    with pytest.raises(InvalidSocialLinkError) as exc_info:
        build_record(claims, {}, OVERRIDE_WINS)
    assert exc_info.value.platform == "twitter"
    assert exc_info.value.reason == "Invalid twitter URL"


def test_missing_fields_checked_before_social_links():
    with pytest.raises(MissingFieldError):
        build_record({"uid": TEST_UID, "social": {"twitter": "bad"}}, {}, OVERRIDE_WINS)
