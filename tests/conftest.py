"""Shared fixtures: test settings, an in-memory Supabase stand-in and catalog data"""
import os
import re
import uuid
from datetime import date, datetime, timezone

# Settings are read at import time, so seed them before importing the app
os.environ.setdefault("SUPABASE_URL", "http://localhost:54321")
os.environ.setdefault("SUPABASE_KEY", "test-service-key")
os.environ.setdefault("JWT_SECRET_KEY", "test-jwt-secret")
os.environ["OPENWEATHER_API_KEY"] = ""

import pytest

from app.models.catalog import Attraction
from app.models.itinerary import Itinerary
from app.models.session import Session
from app.utils.database import SupabaseClient

JOIN_PATTERN = re.compile(r"(\w+):(\w+)\(\*\)")


class FakeResult:
    def __init__(self, data):
        self.data = data


class FakeQuery:
    """Just enough of the PostgREST query builder for app.utils.database"""

    def __init__(self, db: "FakeSupabase", table: str):
        self.db = db
        self.table_name = table
        self.action = "select"
        self.joins = []
        self.filters = []
        self.orders = []
        self.limit_count = None
        self.payload = None

    def select(self, columns: str = "*"):
        self.action = "select"
        self.joins = JOIN_PATTERN.findall(columns)
        return self

    def insert(self, payload):
        self.action = "insert"
        self.payload = payload
        return self

    def delete(self):
        self.action = "delete"
        return self

    def eq(self, column, value):
        self.filters.append((column, value))
        return self

    def order(self, column, desc=False):
        self.orders.append((column, desc))
        return self

    def limit(self, count):
        self.limit_count = count
        return self

    def _matches(self, row):
        return all(row.get(column) == value for column, value in self.filters)

    def execute(self):
        self.db.calls.append((self.table_name, self.action))
        rows = self.db.tables.setdefault(self.table_name, [])

        if self.action == "insert":
            payload = self.payload if isinstance(self.payload, list) else [self.payload]
            inserted = [self.db.stamp(dict(row)) for row in payload]
            rows.extend(inserted)
            return FakeResult([dict(row) for row in inserted])

        if self.action == "delete":
            removed = [row for row in rows if self._matches(row)]
            self.db.tables[self.table_name] = [row for row in rows if not self._matches(row)]
            return FakeResult(removed)

        selected = [dict(row) for row in rows if self._matches(row)]
        for column, desc in reversed(self.orders):
            selected.sort(key=lambda row: row.get(column) or "", reverse=desc)
        if self.limit_count is not None:
            selected = selected[:self.limit_count]
        for alias, table in self.joins:
            targets = {row["id"]: row for row in self.db.tables.get(table, [])}
            for row in selected:
                joined = targets.get(row.get(f"{alias}_id"))
                row[alias] = dict(joined) if joined else None
        return FakeResult(selected)


class FakeRpc:
    def __init__(self, db: "FakeSupabase", name: str, params: dict):
        self.db = db
        self.name = name
        self.params = params

    def execute(self):
        self.db.calls.append((self.name, "rpc"))
        if self.db.fail_rpc:
            raise RuntimeError("connection reset by peer")
        assert self.name == "replace_itinerary_items"
        itinerary_id = self.params["p_itinerary_id"]
        kept = [r for r in self.db.tables["itinerary_items"] if r["itinerary_id"] != itinerary_id]
        inserted = [
            self.db.stamp({**row, "itinerary_id": itinerary_id})
            for row in self.params["p_items"]
        ]
        self.db.tables["itinerary_items"] = kept + inserted
        return FakeResult([dict(row) for row in inserted])


class FakeSupabase:
    """In-memory tables behind the supabase-py call shapes we use"""

    def __init__(self):
        self.tables = {"cities": [], "attractions": [], "itineraries": [], "itinerary_items": []}
        self.calls = []
        self.fail_rpc = False

    def stamp(self, row):
        row.setdefault("id", str(uuid.uuid4()))
        row.setdefault("created_at", datetime.now(timezone.utc).isoformat())
        return row

    def table(self, name):
        return FakeQuery(self, name)

    def rpc(self, name, params):
        return FakeRpc(self, name, params)


CITY_ROWS = [
    {
        "id": "city-kyoto",
        "name": "Kyoto",
        "country": "Japan",
        "description": "Temples and gardens",
        "latitude": 35.0116,
        "longitude": 135.7681,
        "best_time_to_visit": "March to May",
        "travel_advisory": "None",
        "image_url": None
    },
    {
        "id": "city-lisbon",
        "name": "Lisbon",
        "country": "Portugal",
        "description": "Hills and trams",
        "latitude": 38.7223,
        "longitude": -9.1393,
        "best_time_to_visit": "Spring",
        "travel_advisory": "None",
        "image_url": None
    },
]

ATTRACTION_ROWS = [
    {
        "id": "attr-x",
        "city_id": "city-kyoto",
        "name": "Fushimi Inari",
        "category": "Shrine",
        "description": "Thousands of torii gates",
        "latitude": 34.9671,
        "longitude": 135.7727,
        "estimated_duration_hours": 2.0
    },
    {
        "id": "attr-y",
        "city_id": "city-kyoto",
        "name": "Arashiyama",
        "category": "Nature",
        "description": "Bamboo grove",
        "latitude": 35.0094,
        "longitude": 135.6668,
        "estimated_duration_hours": 3.0
    },
    {
        "id": "attr-z",
        "city_id": "city-kyoto",
        "name": "Kinkaku-ji",
        "category": "Shrine",
        "description": "Golden pavilion",
        "latitude": 35.0394,
        "longitude": 135.7292,
        "estimated_duration_hours": 1.5
    },
    {
        "id": "attr-belem",
        "city_id": "city-lisbon",
        "name": "Belem Tower",
        "category": "Landmark",
        "description": "Riverside fortress",
        "latitude": 38.6916,
        "longitude": -9.2160,
        "estimated_duration_hours": 1.0
    },
]


@pytest.fixture
def fake_db(monkeypatch):
    db = FakeSupabase()
    db.tables["cities"] = [dict(row) for row in CITY_ROWS]
    db.tables["attractions"] = [dict(row) for row in ATTRACTION_ROWS]
    monkeypatch.setattr(SupabaseClient, "_instance", db)
    return db


@pytest.fixture
def session():
    return Session(user_id="user-1", email="traveler@example.com", access_token="token")


@pytest.fixture
def attractions():
    return {row["id"]: Attraction.model_validate(row) for row in ATTRACTION_ROWS}


@pytest.fixture
def march_trip():
    """Three-day itinerary, 2024-03-01 to 2024-03-03"""
    return Itinerary(
        id="itin-1",
        user_id="user-1",
        city_id="city-kyoto",
        title="Trip to Kyoto",
        start_date=date(2024, 3, 1),
        end_date=date(2024, 3, 3)
    )
