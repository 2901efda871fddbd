# app/schemas/notification.py
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class TopicCreate(BaseModel):
    key: Optional[str] = Field(None, description="Topic key, e.g. 'codeforces-notifs'")
    name: Optional[str] = Field(None, description="Human readable topic name")


class TopicSubscription(BaseModel):
    topicKey: Optional[str] = None


class ContestAlertRequest(BaseModel):
    topicKey: Optional[str] = None
    contestVanity: Optional[str] = None


class DeviceTokenUpdate(BaseModel):
    deviceID: Optional[str] = None

    # The handler echoes the body back verbatim
    model_config = ConfigDict(extra="allow")


class ContestAlert(BaseModel):
    """`contest` payload of the contest-alert workflow."""
    name: Optional[str] = None
    host: Optional[str] = None
    vanity: str
    time: str
    duration: str
    url: Optional[str] = None
