"""Supabase database utility functions"""
import logging
from supabase import create_client, Client
from app.config import settings
from app.models.session import Session
from typing import Optional, Dict, Any, List

logger = logging.getLogger(__name__)


class SupabaseClient:
    """Singleton Supabase client wrapper"""
    _instance: Optional[Client] = None

    @classmethod
    def get_client(cls) -> Client:
        """Get or create Supabase client instance"""
        if cls._instance is None:
            cls._instance = create_client(
                supabase_url=settings.supabase_url,
                supabase_key=settings.supabase_key
            )
        return cls._instance


# Catalog operations
async def list_cities() -> List[Dict[str, Any]]:
    """
    Get every city in the catalog, ordered by name

    Returns:
        List of city rows
    """
    client = SupabaseClient.get_client()
    result = client.table('cities').select('*').order('name').execute()

    return result.data if result.data else []


async def get_city(city_id: str) -> Optional[Dict[str, Any]]:
    """
    Get a city by ID

    Args:
        city_id: City UUID

    Returns:
        City data if found, None otherwise
    """
    client = SupabaseClient.get_client()
    result = client.table('cities').select('*').eq('id', city_id).execute()

    if result.data:
        return result.data[0]
    return None


async def list_attractions(city_id: str) -> List[Dict[str, Any]]:
    """
    Get all attractions of a city, ordered by name

    Args:
        city_id: City UUID

    Returns:
        List of attraction rows
    """
    client = SupabaseClient.get_client()
    result = client.table('attractions')\
        .select('*')\
        .eq('city_id', city_id)\
        .order('name')\
        .execute()

    return result.data if result.data else []


# Itinerary operations
async def create_itinerary(
    session: Session,
    city_id: str,
    title: str,
    start_date: str,
    end_date: str
) -> Dict[str, Any]:
    """
    Create a new itinerary owned by the session user

    Args:
        session: Current request session
        city_id: City UUID (foreign key)
        title: Itinerary title
        start_date: Trip start date (ISO format)
        end_date: Trip end date (ISO format)

    Returns:
        Created itinerary data

    Raises:
        Exception: If itinerary creation fails
    """
    client = SupabaseClient.get_client()

    result = client.table('itineraries').insert({
        'user_id': session.user_id,
        'city_id': city_id,
        'title': title,
        'start_date': start_date,
        'end_date': end_date
    }).execute()

    if not result.data:
        raise Exception("Failed to create itinerary")

    return result.data[0]


async def get_user_itineraries(session: Session, limit: int = 50) -> List[Dict[str, Any]]:
    """
    Get all itineraries of the session user with their city, newest first

    Args:
        session: Current request session
        limit: Maximum number of itineraries to return

    Returns:
        List of itinerary data
    """
    client = SupabaseClient.get_client()
    result = client.table('itineraries')\
        .select('*, city:cities(*)')\
        .eq('user_id', session.user_id)\
        .order('created_at', desc=True)\
        .limit(limit)\
        .execute()

    return result.data if result.data else []


async def get_itinerary_by_id(session: Session, itinerary_id: str) -> Optional[Dict[str, Any]]:
    """
    Get a specific itinerary by ID (must belong to the session user)

    Args:
        session: Current request session
        itinerary_id: Itinerary UUID

    Returns:
        Itinerary data if found and owned by user, None otherwise
    """
    client = SupabaseClient.get_client()
    result = client.table('itineraries')\
        .select('*, city:cities(*)')\
        .eq('id', itinerary_id)\
        .eq('user_id', session.user_id)\
        .execute()

    if result.data:
        return result.data[0]
    return None


async def delete_itinerary(session: Session, itinerary_id: str) -> bool:
    """
    Delete an itinerary (must belong to the session user)

    Args:
        session: Current request session
        itinerary_id: Itinerary UUID

    Returns:
        True if deleted successfully, False if not found or unauthorized
    """
    client = SupabaseClient.get_client()

    itinerary = await get_itinerary_by_id(session, itinerary_id)
    if not itinerary:
        return False

    # itinerary_items rows go with it (ON DELETE CASCADE)
    client.table('itineraries')\
        .delete()\
        .eq('id', itinerary_id)\
        .eq('user_id', session.user_id)\
        .execute()

    logger.info(f"🗑️ Deleted itinerary {itinerary_id} for user {session.user_id}")
    return True


# Itinerary item operations
async def get_itinerary_items(itinerary_id: str) -> List[Dict[str, Any]]:
    """
    Get the items of an itinerary with each attraction joined inline

    Args:
        itinerary_id: Itinerary UUID

    Returns:
        Item rows ordered by visit date, then position within the day
    """
    client = SupabaseClient.get_client()
    result = client.table('itinerary_items')\
        .select('*, attraction:attractions(*)')\
        .eq('itinerary_id', itinerary_id)\
        .order('visit_date')\
        .order('visit_order')\
        .execute()

    return result.data if result.data else []


async def replace_itinerary_items(itinerary_id: str, rows: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """
    Replace every item of an itinerary with `rows`

    Runs as one Postgres function (see supabase/migrations), so the delete
    and the insert commit together; a failure leaves the old items in place.

    Args:
        itinerary_id: Itinerary UUID
        rows: itinerary_items rows (attraction_id, visit_date, visit_order, notes)

    Returns:
        The inserted rows

    Raises:
        Exception: If the replacement fails
    """
    client = SupabaseClient.get_client()
    result = client.rpc('replace_itinerary_items', {
        'p_itinerary_id': itinerary_id,
        'p_items': rows
    }).execute()

    logger.info(f"💾 Saved {len(rows)} items for itinerary {itinerary_id}")
    return result.data if result.data else []
