"""
Itinerary assembly: day buckets, per-day ordinals and trip aggregates

Works purely in memory on one itinerary's visits. Loading and saving the
snapshot is the caller's job (see app.services.itineraries).
"""
import logging
from datetime import date
from typing import Any, Dict, Iterable, List, Mapping, Optional
from uuid import uuid4

from ..models.catalog import Attraction
from ..models.itinerary import Itinerary, PlannedVisit, VisitRecord
from ..schemas.response import DayPlan, DayStop, TripSummary
from ..utils.dates import DateLike, DateRange, parse_date
from ..utils.geo import haversine_km, route_distance_km
from ..validators.input_validator import validate_visit_date

logger = logging.getLogger(__name__)

NO_ACTIVITIES_LABEL = "No activities planned"


def day_label(stop_count: int, duration_hours: float) -> str:
    """Human summary of a day, e.g. '2 stops • 5.0h'"""
    if stop_count == 0:
        return NO_ACTIVITIES_LABEL
    plural = "s" if stop_count > 1 else ""
    return f"{stop_count} stop{plural} • {duration_hours:.1f}h"


class ItineraryAssembler:
    """
    Holds the visits of one itinerary and applies planner edits

    Args:
        itinerary: The itinerary whose span bounds every visit date
        visits: Existing visits, in overall list order
        compact_positions: Renumber the day a visit leaves (remove/move) so
            ordinals stay 1..n. False keeps the legacy gaps.
        unresolved: Stored records whose attraction could not be loaded;
            they keep their day positions and are saved unchanged
    """

    def __init__(
        self,
        itinerary: Itinerary,
        visits: Iterable[PlannedVisit] = (),
        compact_positions: bool = True,
        unresolved: Iterable[VisitRecord] = ()
    ):
        self.itinerary = itinerary
        self.dates = DateRange(itinerary.start_date, itinerary.end_date)
        self.compact_positions = compact_positions
        self._visits: List[PlannedVisit] = list(visits)
        # Rows whose attraction did not resolve: hidden from views, kept on save
        self._unresolved: List[VisitRecord] = list(unresolved)

    @classmethod
    def from_rows(
        cls,
        itinerary: Itinerary,
        rows: Iterable[Dict[str, Any]],
        compact_positions: bool = True
    ) -> "ItineraryAssembler":
        """
        Build from itinerary_items rows joined with their attraction

        Rows whose attraction does not resolve are left out of days and
        aggregates but are written back by to_rows().
        """
        visits = []
        unresolved = []
        for row in rows:
            if not row.get("attraction"):
                logger.warning(
                    f"⚠️ Item {row.get('id')} of itinerary {itinerary.id}: attraction not found, keeping it as is"
                )
                unresolved.append(VisitRecord.model_validate({k: v for k, v in row.items() if k != "attraction"}))
                continue
            visits.append(PlannedVisit.model_validate(row))
        return cls(itinerary, visits, compact_positions=compact_positions, unresolved=unresolved)

    @property
    def visits(self) -> List[PlannedVisit]:
        return list(self._visits)

    @property
    def unresolved(self) -> List[VisitRecord]:
        return list(self._unresolved)

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def get(self, item_id: str) -> PlannedVisit:
        for visit in self._visits:
            if visit.id == item_id:
                return visit
        raise KeyError(item_id)

    def visits_on(self, day: date, exclude: Optional[str] = None) -> List[PlannedVisit]:
        return [v for v in self._visits if v.visit_date == day and v.id != exclude]

    def _records_on(self, day: date, exclude: Optional[str] = None) -> List[VisitRecord]:
        """Every record holding a position on `day`, resolved or not"""
        return [r for r in self._visits + self._unresolved if r.visit_date == day and r.id != exclude]

    def group_by_date(self) -> Dict[date, List[PlannedVisit]]:
        """
        Bucket visits by date, each bucket sorted by visit_order

        Every date of the span is a key, including empty days. Visits dated
        outside the span get their own keys after the span, in date order.
        """
        grouped: Dict[date, List[PlannedVisit]] = {day: [] for day in self.dates}
        extra: Dict[date, List[PlannedVisit]] = {}
        for visit in self._visits:
            bucket = grouped if visit.visit_date in grouped else extra
            bucket.setdefault(visit.visit_date, []).append(visit)
        for day in sorted(extra):
            grouped[day] = extra[day]
        for bucket in grouped.values():
            bucket.sort(key=lambda v: v.visit_order)
        return grouped

    def available_attractions(self, catalog: Iterable[Attraction]) -> List[Attraction]:
        """Catalog attractions not placed anywhere in the itinerary yet"""
        used = {v.attraction_id for v in self._visits}
        return [a for a in catalog if a.id not in used]

    # ------------------------------------------------------------------
    # Edits
    # ------------------------------------------------------------------

    def add(self, attraction: Attraction, visit_date: DateLike, notes: str = "") -> PlannedVisit:
        """
        Append a visit at the end of the given day

        Raises:
            ItineraryValidationError: If the date is outside the trip span
        """
        visit_date = parse_date(visit_date)
        validate_visit_date(visit_date, self.dates.start, self.dates.end)

        visit = PlannedVisit(
            id=f"temp-{uuid4()}",
            itinerary_id=self.itinerary.id,
            attraction_id=attraction.id,
            visit_date=visit_date,
            visit_order=len(self._records_on(visit_date)) + 1,
            notes=notes,
            attraction=attraction
        )
        self._visits.append(visit)
        return visit

    def remove(self, item_id: str) -> PlannedVisit:
        """
        Drop a visit by id

        Raises:
            KeyError: If no visit has this id
        """
        visit = self.get(item_id)
        self._visits = [v for v in self._visits if v.id != item_id]
        if self.compact_positions:
            self._renumber(visit.visit_date)
        return visit

    def move(self, item_id: str, new_date: DateLike) -> PlannedVisit:
        """
        Move a visit to another day, placing it last on that day

        Raises:
            KeyError: If no visit has this id
            ItineraryValidationError: If the new date is outside the trip span
        """
        new_date = parse_date(new_date)
        validate_visit_date(new_date, self.dates.start, self.dates.end)
        visit = self.get(item_id)

        if self.compact_positions:
            self._renumber(visit.visit_date, exclude=item_id)

        moved = visit.model_copy(update={
            "visit_date": new_date,
            "visit_order": len(self._records_on(new_date, exclude=item_id)) + 1
        })
        self._replace(moved)
        return moved

    def _renumber(self, day: date, exclude: Optional[str] = None) -> None:
        for position, visit in enumerate(
            sorted(self._records_on(day, exclude=exclude), key=lambda r: r.visit_order),
            start=1
        ):
            if visit.visit_order != position:
                self._replace(visit.model_copy(update={"visit_order": position}))

    def _replace(self, updated: VisitRecord) -> None:
        self._visits = [updated if v.id == updated.id else v for v in self._visits]
        self._unresolved = [updated if r.id == updated.id else r for r in self._unresolved]

    # ------------------------------------------------------------------
    # Aggregates
    # ------------------------------------------------------------------

    def total_duration_hours(self) -> float:
        return sum(v.attraction.estimated_duration_hours for v in self._visits)

    def total_distance_km(self) -> float:
        """Distance between consecutive visits in list order, across days"""
        return route_distance_km(
            (v.attraction.latitude, v.attraction.longitude) for v in self._visits
        )

    def trip_summary(self) -> TripSummary:
        return TripSummary(
            stop_count=len(self._visits),
            total_duration_hours=self.total_duration_hours(),
            total_distance_km=self.total_distance_km()
        )

    def days(self, weather: Optional[Mapping[date, str]] = None) -> List[DayPlan]:
        """
        One DayPlan per bucket of group_by_date()

        Args:
            weather: Optional label per date
        """
        weather = weather or {}
        return [
            self._build_day(day_number, day, visits, weather.get(day))
            for day_number, (day, visits) in enumerate(self.group_by_date().items(), start=1)
        ]

    def day_summary(self, day: DateLike) -> DayPlan:
        day = parse_date(day)
        for plan in self.days():
            if plan.date == day:
                return plan
        raise KeyError(day)

    def _build_day(
        self,
        day_number: int,
        day: date,
        visits: List[PlannedVisit],
        weather: Optional[str]
    ) -> DayPlan:
        stops = []
        for index, visit in enumerate(visits):
            distance = None
            if index + 1 < len(visits):
                following = visits[index + 1].attraction
                distance = haversine_km(
                    visit.attraction.latitude, visit.attraction.longitude,
                    following.latitude, following.longitude
                )
            stops.append(DayStop(visit=visit, distance_to_next_km=distance))

        duration = sum(v.attraction.estimated_duration_hours for v in visits)
        return DayPlan(
            day_number=day_number,
            date=day,
            weather=weather,
            stop_count=len(visits),
            total_duration_hours=duration,
            label=day_label(len(visits), duration),
            stops=stops
        )

    # ------------------------------------------------------------------
    # Persistence mapping
    # ------------------------------------------------------------------

    def to_rows(self) -> List[Dict[str, Any]]:
        """itinerary_items rows for the current snapshot, without client-only fields"""
        return [
            {
                "itinerary_id": self.itinerary.id,
                "attraction_id": visit.attraction_id,
                "visit_date": visit.visit_date.isoformat(),
                "visit_order": visit.visit_order,
                "notes": visit.notes
            }
            for visit in self._visits + self._unresolved
        ]
