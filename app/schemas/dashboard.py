# app/schemas/dashboard.py
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict


class DashboardField(BaseModel):
    """Normalised `{data, showOnWebsite}` pair; never missing in the dashboard."""
    data: Optional[Any] = None
    # Stored flag as-is; only a missing/null one becomes False
    showOnWebsite: Optional[Any] = False


class PersonalData(BaseModel):
    # Scalar / array profile fields (uid, name, skills, education, ...) pass through as extras
    model_config = ConfigDict(extra="allow")

    bio: DashboardField
    phoneNumber: DashboardField
    dateOfBirth: DashboardField


class Ratings(BaseModel):
    codeforces: DashboardField
    codechef: DashboardField
    leetcode: DashboardField
    digitomize_rating: Optional[Any] = None


class DashboardView(BaseModel):
    personal_data: PersonalData
    github: DashboardField
    social: Dict[str, Any]
    ratings: Ratings
