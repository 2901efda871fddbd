# app/schemas/user.py
from typing import Any, Dict, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

UserRole = Literal["user", "admin"]

# --- Nested profile sections ---

class ShowableField(BaseModel):
    """A profile value plus the owner's choice about showing it publicly."""
    data: Optional[Any] = None
    showOnWebsite: Optional[bool] = None

    model_config = ConfigDict(extra="allow")

class PlatformHandle(BaseModel):
    """Competitive-programming handle (codeforces / codechef / leetcode)."""
    username: Optional[str] = None
    showOnWebsite: Optional[bool] = None

    # rating, badge, attendedContestsCount are filled in by the ratings updater
    model_config = ConfigDict(extra="allow")

# --- Canonical record (what gets persisted) ---

class CanonicalUserRecord(BaseModel):
    """
    The merged user document. Fields that neither source supplied stay *unset*;
    `model_dump()` still renders every key (as None) so the shape is stable,
    while `model_dump(exclude_unset=True)` gives exactly what was provided.
    """
    uid: str = Field(..., min_length=1)
    email: str = Field(..., min_length=1)
    username: Optional[str] = None
    name: Optional[str] = None
    picture: Optional[str] = None
    resume: Optional[str] = None
    email_verified: Optional[bool] = None
    email_show: Optional[bool] = None
    bio: Optional[ShowableField] = None
    dateOfBirth: Optional[ShowableField] = None
    phoneNumber: Optional[ShowableField] = None
    github: Optional[ShowableField] = None
    # Values are checked by the social-link validator, not by the type
    social: Optional[Dict[str, Any]] = None
    codechef: Optional[PlatformHandle] = None
    leetcode: Optional[PlatformHandle] = None
    codeforces: Optional[PlatformHandle] = None

    model_config = ConfigDict(extra="forbid")

# --- Request bodies ---

class RequestOverrides(BaseModel):
    """
    Untrusted body sent with a signup / admin-create request.

    Only `name` and `username` can override the token; they are type-checked
    when the record is built so a bad value comes back as a 400. The other
    sections are accepted as-is and never read.
    """
    username: Optional[Any] = None
    name: Optional[Any] = None
    picture: Optional[Any] = None
    resume: Optional[Any] = None
    email_show: Optional[Any] = None
    bio: Optional[Any] = None
    dateOfBirth: Optional[Any] = None
    phoneNumber: Optional[Any] = None
    github: Optional[Any] = None
    social: Optional[Any] = None
    codechef: Optional[Any] = None
    leetcode: Optional[Any] = None
    codeforces: Optional[Any] = None

    model_config = ConfigDict(extra="ignore")

# Blank / missing values are reported as 400 by the handler, so nothing is required here
class AdminUserCreate(RequestOverrides):
    email: Optional[Any] = None
    password: Optional[Any] = None

class AdminUserUpdate(BaseModel):
    uid: Optional[str] = Field(None, description="Firebase UID of the user to update")
    role: Optional[UserRole] = Field(None, description="New role")

class AdminUserDelete(BaseModel):
    uid: Optional[str] = Field(None, description="Firebase UID of the user to delete")

# --- Responses ---

class MessageResponse(BaseModel):
    message: str
