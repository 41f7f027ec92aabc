# venue_backoffice/schemas/venue.py
from typing import Optional
from datetime import datetime

from pydantic import BaseModel, Field

from venue_backoffice.database.models import VenueState


class VenueBase(BaseModel):
    """Base schema for venue."""
    name: str = Field(min_length=1)
    address: Optional[str] = None
    city: str = Field(min_length=1)
    state: VenueState
    logo_url: Optional[str] = None


class VenueCreate(VenueBase):
    """Schema for creating a venue."""


class VenueUpdate(BaseModel):
    """Schema for updating a venue."""
    name: Optional[str] = Field(default=None, min_length=1)
    address: Optional[str] = None
    city: Optional[str] = Field(default=None, min_length=1)
    state: Optional[VenueState] = None
    logo_url: Optional[str] = None


class VenueResponse(VenueBase):
    """Schema for venue response."""
    id: str
    manager_id: Optional[str] = None
    created_at: Optional[datetime] = None
