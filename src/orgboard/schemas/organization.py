# src/orgboard/schemas/organization.py
"""Organization administration schemas."""

import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class OfficerPromote(BaseModel):
    """Seat an existing member as an officer."""

    member_id: uuid.UUID
    position: str = Field(..., min_length=1, max_length=100)


class OfficerResponse(BaseModel):
    user_id: uuid.UUID
    org_id: uuid.UUID
    position: str
    assigned_at: datetime

    model_config = ConfigDict(from_attributes=True)


class OrganizationDelete(BaseModel):
    """The caller re-types the organization code to confirm deletion."""

    confirmation_code: str = Field(..., min_length=1)


class LeaderboardEntry(BaseModel):
    rank: int
    user_id: uuid.UUID
    display_name: str
    points: int
    actions: int

    model_config = ConfigDict(from_attributes=True)
