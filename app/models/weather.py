"""Weather payload models"""
from datetime import date
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field


class WeatherObservation(BaseModel):
    """
    Current conditions for a coordinate pair

    Serialized with camelCase keys, the flat shape browsers already consume.
    """
    model_config = ConfigDict(populate_by_name=True)

    temperature: float = Field(..., description="Degrees Celsius")
    feels_like: float = Field(..., alias="feelsLike")
    humidity: float
    description: str
    main: str
    icon: str
    wind_speed: float = Field(..., alias="windSpeed")
    city: str
    is_mock: bool = Field(default=False, exclude=True)


class DailyWeather(BaseModel):
    """Weather label for one trip day"""
    date: date
    label: str = Field(..., description="Short description (e.g. 'Partly cloudy', 'Warm')")
    source: str = Field(..., description="'forecast' or 'seasonal'")
    temperature_max: Optional[int] = None
    temperature_min: Optional[int] = None
    precipitation_probability: Optional[int] = None
