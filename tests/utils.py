# tests/utils.py
from typing import Any, Dict

TEST_UID = "firebase-uid-123"
TEST_EMAIL = "test@example.com"
TEST_NAME = "Test User"


def make_claims(**overrides) -> Dict[str, Any]:
    """Decoded-token claims for the default test caller."""
    claims = {"uid": TEST_UID, "email": TEST_EMAIL, "name": TEST_NAME}
    claims.update(overrides)
    return claims


def make_stored_user(**overrides) -> Dict[str, Any]:
    """A fully populated user document as returned by crud_user.get_user_by_uid."""
    user = {
        "uid": TEST_UID,
        "role": "user",
        "username": "testuser",
        "name": TEST_NAME,
        "email": TEST_EMAIL,
        "email_verified": True,
        "email_show": False,
        "picture": "https://example.com/avatar.png",
        "resume": "https://example.com/resume.pdf",
        "skills": ["JavaScript", "Python"],
        "education": [{"institute": "Test University", "degree": "B.Tech"}],
        "preferences": {"contest_notifs": {"codeforces": True}},
        "bio": {"data": "Test bio", "showOnWebsite": True},
        "dateOfBirth": {"data": "2000-01-01", "showOnWebsite": False},
        "phoneNumber": {"data": "+1234567890", "showOnWebsite": False},
        "github": {"data": "testuser", "showOnWebsite": True},
        "social": {
            "linkedin": "https://linkedin.com/in/testuser",
            "instagram": "https://instagram.com/testuser",
            "twitter": "https://twitter.com/testuser",
        },
        "codeforces": {"username": "cf_test", "rating": 1500, "attendedContestsCount": 10, "showOnWebsite": True},
        "codechef": {"username": "cc_test", "rating": 1800, "showOnWebsite": True},
        "leetcode": {"username": "lc_test", "rating": 2000, "showOnWebsite": False},
        "digitomize_rating": 1500,
    }
    user.update(overrides)
    return user


def make_contest(**overrides) -> Dict[str, Any]:
    """A contest as returned by crud_contest.get_contest_by_vanity."""
    contest = {
        "name": "Codeforces Round 100",
        "host": "codeforces.com",
        "vanity": "codeforces-round-100",
        "duration": 120,
        "startTimeUnix": 1672531200,  # 2023-01-01 00:00 UTC
        "url": "https://codeforces.com/contest/100",
    }
    contest.update(overrides)
    return contest


def make_user_row(profile: Dict[str, Any], uid: str = TEST_UID, role: str = "user") -> Dict[str, Any]:
    """Stand-in for an asyncpg.Record from the users table."""
    return {"uid": uid, "role": role, "profile": profile}
