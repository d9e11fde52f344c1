"""Request schemas for API endpoints"""
from datetime import date
from typing import List, Optional
from pydantic import BaseModel, Field, field_validator


class DateRange(BaseModel):
    """Date range for the trip (inclusive)"""
    start: date = Field(..., description="Trip start date")
    end: date = Field(..., description="Trip end date")

    @field_validator("end")
    @classmethod
    def end_not_before_start(cls, v, info):
        """Validate end date is not before start date"""
        if "start" in info.data and v < info.data["start"]:
            raise ValueError("End date cannot be before start date")
        return v


class PlannedStop(BaseModel):
    """Attraction picked while building a new trip"""
    attraction_id: str = Field(..., description="Attraction UUID")
    visit_date: Optional[date] = Field(
        None,
        description="Day of the visit; defaults to the trip start date"
    )
    notes: str = Field("", max_length=1000)


class CreateItineraryRequest(BaseModel):
    """
    Request body for POST /itineraries

    Stops land on their visit_date (or the first day) in the order given.
    """
    city_id: str = Field(..., description="City UUID")
    title: Optional[str] = Field(
        None,
        max_length=200,
        description="Itinerary title; defaults to 'Trip to <city>'"
    )
    dates: DateRange = Field(..., description="Trip date range")
    stops: List[PlannedStop] = Field(..., min_length=1, description="At least one attraction")

    class Config:
        json_schema_extra = {
            "example": {
                "city_id": "5b0a3c9e-2f1d-4c59-9a0e-1d7c2b6a8f10",
                "title": "Spring in Kyoto",
                "dates": {
                    "start": "2024-03-01",
                    "end": "2024-03-03"
                },
                "stops": [
                    {"attraction_id": "0f3c1a52-7d8b-4e2a-b0c4-6a9d5e1f2b3c"},
                    {"attraction_id": "9e8d7c6b-5a4f-4e3d-8c2b-1a0f9e8d7c6b", "visit_date": "2024-03-02"}
                ]
            }
        }


class AddVisitRequest(BaseModel):
    """Place an attraction on a trip day"""
    attraction_id: str
    visit_date: date
    notes: str = Field("", max_length=1000)


class MoveVisitRequest(BaseModel):
    """Move a visit to another trip day"""
    visit_date: date


class VisitInput(BaseModel):
    """One visit in a full replacement of an itinerary's items"""
    attraction_id: str
    visit_date: date
    visit_order: Optional[int] = Field(None, ge=1, description="Position within the day; list order if omitted")
    notes: str = Field("", max_length=1000)


class ReplaceVisitsRequest(BaseModel):
    """Request body for PUT /itineraries/{id}/items"""
    items: List[VisitInput] = Field(default_factory=list)
