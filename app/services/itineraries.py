"""
Itinerary workflows: load, assemble, edit and save

Every entry point takes the request Session explicitly. Edits are applied
in memory by ItineraryAssembler and saved as a whole snapshot.
"""
import logging
from datetime import date
from typing import Dict, List, Optional

from ..models.catalog import Attraction, City
from ..models.itinerary import Itinerary
from ..models.session import Session
from ..schemas.request import AddVisitRequest, CreateItineraryRequest, ReplaceVisitsRequest
from ..schemas.response import ItineraryView
from ..tools.weather_api import WeatherAPI
from ..utils import database
from ..validators.input_validator import (
    validate_attractions_in_city,
    validate_title,
    validate_trip_dates,
    validate_visit_date,
)
from .itinerary_assembler import ItineraryAssembler

logger = logging.getLogger(__name__)


class NotFoundError(Exception):
    """Raised when a city, itinerary or visit does not exist (or is not the caller's)"""
    def __init__(self, resource: str, resource_id: str):
        self.resource = resource
        self.resource_id = resource_id
        self.message = f"{resource} not found or you don't have access to it"
        super().__init__(self.message)


async def load_catalog(city_id: str) -> Dict[str, Attraction]:
    """City attractions keyed by id, in name order"""
    rows = await database.list_attractions(city_id)
    return {row["id"]: Attraction.model_validate(row) for row in rows}


async def create_planned_itinerary(session: Session, request: CreateItineraryRequest) -> Itinerary:
    """
    Create an itinerary together with its first visits

    Args:
        session: Current request session
        request: City, dates, optional title and the chosen stops

    Returns:
        The created itinerary

    Raises:
        NotFoundError: If the city does not exist
        ItineraryValidationError: If dates, title or stops are invalid
    """
    city_row = await database.get_city(request.city_id)
    if not city_row:
        raise NotFoundError("City", request.city_id)
    city = City.model_validate(city_row)

    start, end = request.dates.start, request.dates.end
    validate_trip_dates(start, end)
    title = validate_title(request.title or f"Trip to {city.name}")

    catalog = await load_catalog(city.id)
    validate_attractions_in_city((s.attraction_id for s in request.stops), catalog.keys(), city.id)
    for stop in request.stops:
        validate_visit_date(stop.visit_date or start, start, end)

    row = await database.create_itinerary(
        session,
        city_id=city.id,
        title=title,
        start_date=start.isoformat(),
        end_date=end.isoformat()
    )
    itinerary = Itinerary.model_validate(row)
    logger.info(f"🧳 Created itinerary {itinerary.id} ({title}) for user {session.user_id}")

    assembler = ItineraryAssembler(itinerary)
    for stop in request.stops:
        assembler.add(catalog[stop.attraction_id], stop.visit_date or start, stop.notes)

    try:
        await save(assembler)
    except Exception:
        # Don't leave an empty trip behind
        logger.error(f"❌ Saving items of new itinerary {itinerary.id} failed, removing it")
        try:
            await database.delete_itinerary(session, itinerary.id)
        except Exception as cleanup_error:
            # The save error is the one the caller reports
            logger.error(f"❌ Could not remove itinerary {itinerary.id}: {cleanup_error}")
        raise

    return itinerary


async def list_itineraries(session: Session, limit: int = 50) -> List[Itinerary]:
    rows = await database.get_user_itineraries(session, limit)
    return [Itinerary.model_validate(row) for row in rows]


async def load_assembler(session: Session, itinerary_id: str) -> ItineraryAssembler:
    """
    Load an itinerary and its visits

    Raises:
        NotFoundError: If the itinerary is missing or owned by someone else
    """
    row = await database.get_itinerary_by_id(session, itinerary_id)
    if not row:
        raise NotFoundError("Itinerary", itinerary_id)

    items = await database.get_itinerary_items(itinerary_id)
    return ItineraryAssembler.from_rows(Itinerary.model_validate(row), items)


async def build_itinerary_view(session: Session, itinerary_id: str, weather_api: WeatherAPI) -> ItineraryView:
    """
    Everything the itinerary detail screen shows

    Days carry a weather label each; available_attractions lists the city's
    attractions that are not placed yet.
    """
    assembler = await load_assembler(session, itinerary_id)
    itinerary = assembler.itinerary
    city: Optional[City] = itinerary.city

    try:
        catalog = list((await load_catalog(itinerary.city_id)).values())
    except Exception as e:
        logger.warning(f"⚠️ Could not load attractions for city {itinerary.city_id}: {e}")
        catalog = []

    forecast = await weather_api.get_daily_weather(
        city.latitude if city else None,
        city.longitude if city else None,
        assembler.dates
    )
    labels: Dict[date, str] = {day: weather.label for day, weather in forecast.items()}

    return ItineraryView(
        itinerary=itinerary,
        city=city,
        days=assembler.days(labels),
        summary=assembler.trip_summary(),
        available_attractions=assembler.available_attractions(catalog)
    )


async def add_visit(session: Session, itinerary_id: str, request: AddVisitRequest) -> ItineraryAssembler:
    """Place a city attraction on a trip day and save"""
    assembler = await load_assembler(session, itinerary_id)
    catalog = await load_catalog(assembler.itinerary.city_id)
    validate_attractions_in_city([request.attraction_id], catalog.keys(), assembler.itinerary.city_id)

    assembler.add(catalog[request.attraction_id], request.visit_date, request.notes)
    await save(assembler)
    return assembler


async def move_visit(session: Session, itinerary_id: str, item_id: str, new_date: date) -> ItineraryAssembler:
    """Move a visit to another day and save"""
    assembler = await load_assembler(session, itinerary_id)
    try:
        assembler.move(item_id, new_date)
    except KeyError:
        raise NotFoundError("Visit", item_id)
    await save(assembler)
    return assembler


async def remove_visit(session: Session, itinerary_id: str, item_id: str) -> ItineraryAssembler:
    """Remove a visit and save"""
    assembler = await load_assembler(session, itinerary_id)
    try:
        assembler.remove(item_id)
    except KeyError:
        raise NotFoundError("Visit", item_id)
    await save(assembler)
    return assembler


async def replace_visits(session: Session, itinerary_id: str, request: ReplaceVisitsRequest) -> ItineraryAssembler:
    """
    Replace all visits with the submitted list

    Visits are ordered by date, then by visit_order (list order where it is
    omitted), and renumbered 1..n per day.
    """
    current = await load_assembler(session, itinerary_id)
    itinerary = current.itinerary
    catalog = await load_catalog(itinerary.city_id)
    validate_attractions_in_city((i.attraction_id for i in request.items), catalog.keys(), itinerary.city_id)

    ordered = sorted(
        enumerate(request.items),
        key=lambda pair: (
            pair[1].visit_date,
            pair[1].visit_order if pair[1].visit_order is not None else float("inf"),
            pair[0]
        )
    )

    assembler = ItineraryAssembler(itinerary)
    for _, item in ordered:
        assembler.add(catalog[item.attraction_id], item.visit_date, item.notes)

    await save(assembler)
    return assembler


async def save(assembler: ItineraryAssembler) -> None:
    """Persist the assembler's snapshot, replacing every stored item"""
    await database.replace_itinerary_items(assembler.itinerary.id, assembler.to_rows())
