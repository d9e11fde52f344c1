"""City and attraction catalog models"""
from typing import Optional
from pydantic import BaseModel, Field


class City(BaseModel):
    """City model matching Supabase cities table schema"""
    id: str
    name: str
    country: str
    description: Optional[str] = None
    latitude: Optional[float] = Field(None, ge=-90, le=90)
    longitude: Optional[float] = Field(None, ge=-180, le=180)
    best_time_to_visit: Optional[str] = None
    travel_advisory: Optional[str] = None
    image_url: Optional[str] = None

    class Config:
        from_attributes = True

    @property
    def has_coordinates(self) -> bool:
        return self.latitude is not None and self.longitude is not None


class Attraction(BaseModel):
    """Attraction model matching Supabase attractions table schema"""
    id: str
    city_id: str = Field(..., description="Foreign key to cities table")
    name: str
    category: str = Field(..., description="Category label (Museum, Landmark, ...)")
    description: Optional[str] = None
    latitude: float
    longitude: float
    estimated_duration_hours: float = Field(..., ge=0, description="Typical visit length in hours")

    class Config:
        from_attributes = True
