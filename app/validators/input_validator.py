"""Input validation for itinerary operations"""
from datetime import date
from typing import Iterable, Optional
from ..config import settings
from ..utils.dates import DateRange


class ItineraryValidationError(ValueError):
    """Raised when an itinerary or visit violates a planning rule"""
    def __init__(self, message: str, details: dict = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)


def validate_trip_dates(start_date: date, end_date: date) -> int:
    """
    Validate a trip's date span

    Args:
        start_date: Trip start date
        end_date: Trip end date (inclusive)

    Returns:
        Number of trip days

    Raises:
        ItineraryValidationError: If end precedes start or the trip is too long
    """
    if end_date < start_date:
        raise ItineraryValidationError(
            "End date cannot be before start date",
            {"start_date": start_date.isoformat(), "end_date": end_date.isoformat()}
        )

    days = len(DateRange(start_date, end_date))
    if days > settings.max_trip_days:
        raise ItineraryValidationError(
            f"Trip duration too long. Maximum is {settings.max_trip_days} days",
            {"duration_days": days, "max_days": settings.max_trip_days}
        )

    return days


def validate_visit_date(visit_date: date, start_date: date, end_date: date) -> None:
    """
    Ensure a visit falls within the trip span

    Raises:
        ItineraryValidationError: If the date is outside [start_date, end_date]
    """
    if visit_date not in DateRange(start_date, end_date):
        raise ItineraryValidationError(
            "Visit date must fall within the trip dates",
            {
                "visit_date": visit_date.isoformat(),
                "start_date": start_date.isoformat(),
                "end_date": end_date.isoformat()
            }
        )


def validate_title(title: Optional[str]) -> str:
    """
    Validate an itinerary title

    Returns:
        The stripped title

    Raises:
        ItineraryValidationError: If the title is blank or too long
    """
    if not title or title.strip() == "":
        raise ItineraryValidationError("Itinerary title cannot be empty")

    title = title.strip()
    if len(title) > settings.max_title_length:
        raise ItineraryValidationError(
            f"Itinerary title too long. Maximum is {settings.max_title_length} characters",
            {"length": len(title)}
        )
    return title


def validate_attractions_in_city(attraction_ids: Iterable[str], catalog_ids: Iterable[str], city_id: str) -> None:
    """
    Ensure every referenced attraction belongs to the itinerary's city

    Raises:
        ItineraryValidationError: Listing the unknown attraction ids
    """
    known = set(catalog_ids)
    unknown = sorted({a for a in attraction_ids if a not in known})
    if unknown:
        raise ItineraryValidationError(
            "Attractions do not belong to the selected city",
            {"city_id": city_id, "attraction_ids": unknown}
        )
