# app/schemas/token.py
from pydantic import BaseModel, EmailStr, Field
from typing import Optional

# Schema representing the claims extracted from a verified Firebase ID token.
# These are the *trusted* identity attributes fed into the user-record merge.
class FirebaseTokenData(BaseModel):
    uid: Optional[str] = Field(None, description="Firebase User ID")
    email: Optional[EmailStr] = Field(None, description="User's email address (if available in token)")
    name: Optional[str] = Field(None, description="User's display name (if available in token)")
    username: Optional[str] = Field(None, description="Username custom claim (if set)")
    picture: Optional[str] = Field(None, description="URL to user's profile picture (if available in token)")
    email_verified: Optional[bool] = Field(None, description="Whether the provider verified the email")

    # Custom claims (bio, social, codeforces, ...) ride along as extra fields
    model_config = {"extra": "allow"}

    def as_claims(self) -> dict:
        """Claims as a plain dict, keeping only what the token actually carried."""
        return self.model_dump(exclude_unset=True)
