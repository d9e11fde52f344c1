"""Itinerary database models"""
from datetime import date, datetime
from typing import Optional
from pydantic import BaseModel, Field, field_validator

from .catalog import Attraction, City


class Itinerary(BaseModel):
    """Itinerary model matching Supabase itineraries table schema"""
    id: str
    user_id: str = Field(..., description="Owner (Supabase auth user id)")
    city_id: str = Field(..., description="Foreign key to cities table")
    title: str = Field(..., min_length=1)
    start_date: date
    end_date: date
    created_at: Optional[datetime] = None
    city: Optional[City] = Field(None, description="Joined city row, when selected")

    class Config:
        from_attributes = True


class VisitRecord(BaseModel):
    """One itinerary_items row: an attraction placed on a trip day"""
    id: str
    itinerary_id: str = Field(..., description="Foreign key to itineraries table")
    attraction_id: str = Field(..., description="Foreign key to attractions table")
    visit_date: date
    visit_order: int = Field(..., ge=1, description="1-based position within the day")
    notes: str = ""
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True

    @field_validator("notes", mode="before")
    @classmethod
    def null_notes_to_empty(cls, v):
        return v or ""

    @property
    def is_transient(self) -> bool:
        """True for items created in memory and not yet saved"""
        return self.id.startswith("temp-")


class PlannedVisit(VisitRecord):
    """Visit record with its attraction resolved (join-fetch shape)"""
    attraction: Attraction
