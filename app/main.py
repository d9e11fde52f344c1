"""
Trip Planner Backend - destinations, attractions, weather and itineraries

ARCHITECTURE:
- Catalog (cities, attractions) and itineraries live in Supabase
- Itinerary edits are assembled in memory and saved as one snapshot
  (single transactional RPC, never a bare delete-then-insert)
- Weather: Open-Meteo daily forecast with seasonal fallback,
  OpenWeatherMap current conditions with mock fallback
- Supabase Auth JWTs become an explicit Session per request
"""
import logging
from collections import defaultdict
from datetime import date
from typing import AsyncIterator, Dict, List, Optional

from fastapi import FastAPI, HTTPException, Request, Depends, Query
from fastapi.middleware.cors import CORSMiddleware

from .config import settings
from .logging_config import configure_logging
from .middleware.auth import require_auth
from .middleware.timeout import CustomTimeoutMiddleware
from .models.catalog import Attraction, City
from .models.session import Session
from .models.weather import DailyWeather, WeatherObservation
from .schemas.request import (
    AddVisitRequest,
    CreateItineraryRequest,
    MoveVisitRequest,
    ReplaceVisitsRequest,
)
from .schemas.response import AttractionGroups, ErrorResponse, ItineraryListResponse, ItineraryView
from .services import itineraries as itinerary_service
from .services.itineraries import NotFoundError
from .tools.weather_api import WeatherAPI
from .utils import database
from .utils.dates import DateRange
from .utils.rate_limiter import InMemoryRateLimiter
from .validators.input_validator import ItineraryValidationError, validate_trip_dates

configure_logging()
logger = logging.getLogger(__name__)

app = FastAPI(
    title="Trip Planner API",
    description="Browse destinations, check the weather and plan multi-day itineraries",
    version="1.0.0"
)

weather_rate_limiter = InMemoryRateLimiter(requests_per_window=settings.weather_requests_per_minute)

app.add_middleware(CustomTimeoutMiddleware, timeout_seconds=settings.request_timeout_seconds)

allowed_origins_list = [origin.strip() for origin in settings.allowed_origins.split(",")]
app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins_list,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization"],
)


async def get_weather_api() -> AsyncIterator[WeatherAPI]:
    """Per-request WeatherAPI, closed after the response"""
    weather_api = WeatherAPI()
    try:
        yield weather_api
    finally:
        await weather_api.close()


def _error(status_code: int, error: str, message: str, details: Optional[dict] = None) -> HTTPException:
    return HTTPException(
        status_code=status_code,
        detail={
            "error": error,
            "message": message,
            "details": details or {}
        }
    )


def _itinerary_error(e: Exception, action: str) -> HTTPException:
    """Map service errors to HTTP errors"""
    if isinstance(e, NotFoundError):
        return _error(404, "NotFound", e.message, {"resource": e.resource, "id": e.resource_id})
    if isinstance(e, ItineraryValidationError):
        return _error(400, "ValidationError", e.message, e.details)
    logger.error(f"❌ Failed to {action}: {type(e).__name__}: {e}")
    return _error(500, "InternalServerError", f"Error {action}: {e}", {"original_error": str(e)})


@app.get("/")
async def root():
    """Health check endpoint"""
    return {"status": "ok", "message": "Trip Planner API is running"}


@app.get("/health")
async def health():
    """Health check endpoint"""
    return {"status": "healthy"}


# ============================================================================
# CATALOG ENDPOINTS
# ============================================================================

@app.get("/cities", response_model=List[City])
async def get_cities():
    """
    List destination cities, ordered by name

    A failed catalog load returns an empty list.
    """
    try:
        return [City.model_validate(row) for row in await database.list_cities()]
    except Exception as e:
        logger.warning(f"⚠️ Failed to load cities: {e}")
        return []


@app.get(
    "/cities/{city_id}",
    response_model=City,
    responses={404: {"model": ErrorResponse}}
)
async def get_city(city_id: str):
    """Get one city's details"""
    row = await database.get_city(city_id)
    if not row:
        raise _error(404, "NotFound", "City not found", {"id": city_id})
    return City.model_validate(row)


@app.get("/cities/{city_id}/attractions")
async def get_city_attractions(
    city_id: str,
    group_by: Optional[str] = Query(None, pattern="^category$", description="Set to 'category' to group")
):
    """
    List a city's attractions, ordered by name

    Args:
        city_id: City UUID
        group_by: 'category' returns {category: [attractions]} instead of a list
    """
    try:
        attractions = list((await itinerary_service.load_catalog(city_id)).values())
    except Exception as e:
        logger.warning(f"⚠️ Failed to load attractions for city {city_id}: {e}")
        attractions = []

    if group_by == "category":
        categories: Dict[str, List[Attraction]] = defaultdict(list)
        for attraction in attractions:
            categories[attraction.category].append(attraction)
        return AttractionGroups(city_id=city_id, categories=dict(categories))

    return attractions


@app.get(
    "/cities/{city_id}/forecast",
    response_model=List[DailyWeather],
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}}
)
async def get_city_forecast(
    city_id: str,
    start: date,
    end: date,
    weather_api: WeatherAPI = Depends(get_weather_api)
):
    """
    Weather label for every day from start to end (inclusive)

    Uses the live forecast where available and seasonal labels otherwise.
    """
    try:
        validate_trip_dates(start, end)
    except ItineraryValidationError as e:
        raise _error(400, "ValidationError", e.message, e.details)

    row = await database.get_city(city_id)
    if not row:
        raise _error(404, "NotFound", "City not found", {"id": city_id})
    city = City.model_validate(row)

    forecast = await weather_api.get_daily_weather(city.latitude, city.longitude, DateRange(start, end))
    return list(forecast.values())


# ============================================================================
# WEATHER ENDPOINTS
# ============================================================================

def _check_weather_rate_limit(req: Request) -> None:
    client_ip = req.client.host if req.client else "unknown"
    if not weather_rate_limiter.is_allowed(client_ip):
        retry_after = weather_rate_limiter.retry_after_seconds(client_ip)
        raise HTTPException(
            status_code=429,
            detail={
                "error": "RateLimitExceeded",
                "message": "Too many weather requests. Please try again shortly.",
                "details": {"retry_after_seconds": retry_after}
            },
            headers={"Retry-After": str(retry_after)}
        )


@app.get(
    "/weather",
    response_model=WeatherObservation,
    responses={429: {"model": ErrorResponse}}
)
async def get_weather(
    req: Request,
    lat: float = Query(..., ge=-90, le=90),
    lon: float = Query(..., ge=-180, le=180),
    weather_api: WeatherAPI = Depends(get_weather_api)
):
    """Current conditions at a coordinate pair (mock data if the provider is unavailable)"""
    _check_weather_rate_limit(req)
    return await weather_api.get_current_weather(lat, lon)


@app.get(
    "/weather/city",
    response_model=WeatherObservation,
    responses={429: {"model": ErrorResponse}}
)
async def get_weather_for_city(
    req: Request,
    name: str = Query(..., min_length=1, max_length=100),
    weather_api: WeatherAPI = Depends(get_weather_api)
):
    """Current conditions for a city name (mock data if lookup fails)"""
    _check_weather_rate_limit(req)
    return await weather_api.get_current_weather_by_city(name)


# ============================================================================
# ITINERARY ENDPOINTS
# ============================================================================

@app.post(
    "/itineraries",
    status_code=201,
    responses={
        400: {"model": ErrorResponse},
        401: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        500: {"model": ErrorResponse}
    }
)
async def create_itinerary(
    request: CreateItineraryRequest,
    session: Session = Depends(require_auth)
):
    """
    Save a new trip with its chosen attractions (PROTECTED - requires authentication)

    Returns:
        Success message with itinerary ID
    """
    try:
        itinerary = await itinerary_service.create_planned_itinerary(session, request)
    except Exception as e:
        raise _itinerary_error(e, "saving itinerary")

    return {
        "message": "Itinerary saved successfully",
        "itinerary_id": itinerary.id,
        "created_at": itinerary.created_at
    }


@app.get(
    "/itineraries",
    response_model=ItineraryListResponse,
    responses={401: {"model": ErrorResponse}}
)
async def list_itineraries(
    session: Session = Depends(require_auth),
    limit: int = Query(50, ge=1, le=200)
):
    """
    Saved itineraries of the authenticated user, newest first

    A failed load returns an empty list.
    """
    try:
        itineraries = await itinerary_service.list_itineraries(session, limit)
    except Exception as e:
        logger.warning(f"⚠️ Failed to load itineraries for user {session.user_id}: {e}")
        itineraries = []

    return ItineraryListResponse(itineraries=itineraries, count=len(itineraries))


@app.get(
    "/itineraries/{itinerary_id}",
    response_model=ItineraryView,
    responses={401: {"model": ErrorResponse}, 404: {"model": ErrorResponse}, 500: {"model": ErrorResponse}}
)
async def get_itinerary(
    itinerary_id: str,
    session: Session = Depends(require_auth),
    weather_api: WeatherAPI = Depends(get_weather_api)
):
    """Day-by-day view of an itinerary with weather, aggregates and addable attractions"""
    try:
        return await itinerary_service.build_itinerary_view(session, itinerary_id, weather_api)
    except Exception as e:
        raise _itinerary_error(e, "loading itinerary")


@app.delete(
    "/itineraries/{itinerary_id}",
    responses={401: {"model": ErrorResponse}, 404: {"model": ErrorResponse}, 500: {"model": ErrorResponse}}
)
async def delete_itinerary(
    itinerary_id: str,
    session: Session = Depends(require_auth)
):
    """Delete an itinerary and all of its visits"""
    try:
        deleted = await database.delete_itinerary(session, itinerary_id)
    except Exception as e:
        raise _itinerary_error(e, "deleting itinerary")

    if not deleted:
        raise _error(404, "NotFound", "Itinerary not found or you don't have access to it", {"id": itinerary_id})

    return {
        "message": "Itinerary deleted successfully",
        "itinerary_id": itinerary_id
    }


@app.put(
    "/itineraries/{itinerary_id}/items",
    response_model=ItineraryView,
    responses={400: {"model": ErrorResponse}, 401: {"model": ErrorResponse}, 404: {"model": ErrorResponse}, 500: {"model": ErrorResponse}}
)
async def replace_itinerary_items(
    itinerary_id: str,
    request: ReplaceVisitsRequest,
    session: Session = Depends(require_auth),
    weather_api: WeatherAPI = Depends(get_weather_api)
):
    """Save the edited list of visits as a whole"""
    try:
        await itinerary_service.replace_visits(session, itinerary_id, request)
        return await itinerary_service.build_itinerary_view(session, itinerary_id, weather_api)
    except Exception as e:
        raise _itinerary_error(e, "saving changes")


@app.post(
    "/itineraries/{itinerary_id}/items",
    response_model=ItineraryView,
    status_code=201,
    responses={400: {"model": ErrorResponse}, 401: {"model": ErrorResponse}, 404: {"model": ErrorResponse}, 500: {"model": ErrorResponse}}
)
async def add_itinerary_item(
    itinerary_id: str,
    request: AddVisitRequest,
    session: Session = Depends(require_auth),
    weather_api: WeatherAPI = Depends(get_weather_api)
):
    """Place an attraction at the end of a trip day"""
    try:
        await itinerary_service.add_visit(session, itinerary_id, request)
        return await itinerary_service.build_itinerary_view(session, itinerary_id, weather_api)
    except Exception as e:
        raise _itinerary_error(e, "saving changes")


@app.patch(
    "/itineraries/{itinerary_id}/items/{item_id}",
    response_model=ItineraryView,
    responses={400: {"model": ErrorResponse}, 401: {"model": ErrorResponse}, 404: {"model": ErrorResponse}, 500: {"model": ErrorResponse}}
)
async def move_itinerary_item(
    itinerary_id: str,
    item_id: str,
    request: MoveVisitRequest,
    session: Session = Depends(require_auth),
    weather_api: WeatherAPI = Depends(get_weather_api)
):
    """Move a visit to another day (it becomes that day's last stop)"""
    try:
        await itinerary_service.move_visit(session, itinerary_id, item_id, request.visit_date)
        return await itinerary_service.build_itinerary_view(session, itinerary_id, weather_api)
    except Exception as e:
        raise _itinerary_error(e, "saving changes")


@app.delete(
    "/itineraries/{itinerary_id}/items/{item_id}",
    response_model=ItineraryView,
    responses={401: {"model": ErrorResponse}, 404: {"model": ErrorResponse}, 500: {"model": ErrorResponse}}
)
async def remove_itinerary_item(
    itinerary_id: str,
    item_id: str,
    session: Session = Depends(require_auth),
    weather_api: WeatherAPI = Depends(get_weather_api)
):
    """Remove a visit from the itinerary"""
    try:
        await itinerary_service.remove_visit(session, itinerary_id, item_id)
        return await itinerary_service.build_itinerary_view(session, itinerary_id, weather_api)
    except Exception as e:
        raise _itinerary_error(e, "saving changes")
