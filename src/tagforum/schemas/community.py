# src/tagforum/schemas/community.py
"""Community-related Pydantic schemas."""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class CommunityMemberInput(BaseModel):
    did: str = Field(..., min_length=1, max_length=256)
    role: Literal["admin", "member"] = "member"


class CommunityCreate(BaseModel):
    """Schema for creating a new community."""

    name: str = Field(..., min_length=1, max_length=256)
    hashtag: str = Field(..., min_length=1, max_length=100)
    description: str = ""
    rules: str = ""
    initial_members: list[CommunityMemberInput] = Field(default_factory=list)


class CommunityMemberResponse(BaseModel):
    member_did: str
    role: str
    joined_at: datetime

    model_config = ConfigDict(from_attributes=True)


class CommunitySummary(BaseModel):
    """Short community listing used by the owner view."""

    id: int
    name: str
    hashtag: str
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class CommunityResponse(BaseModel):
    """Schema for community information returned by the API."""

    id: int
    name: str
    hashtag: str
    description: str
    rules: str
    creator_did: str
    created_at: datetime
    updated_at: datetime
    members: list[CommunityMemberResponse] = Field(default_factory=list)

    model_config = ConfigDict(from_attributes=True)


class CommunityMembersResponse(BaseModel):
    members: list[str]
