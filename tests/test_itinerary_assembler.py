from datetime import date

import pytest

from app.models.itinerary import PlannedVisit
from app.services.itinerary_assembler import NO_ACTIVITIES_LABEL, ItineraryAssembler, day_label
from app.utils.geo import haversine_km
from app.validators.input_validator import ItineraryValidationError

D1, D2, D3 = date(2024, 3, 1), date(2024, 3, 2), date(2024, 3, 3)


def orders_on(assembler, day):
    return [(v.attraction_id, v.visit_order) for v in assembler.group_by_date()[day]]


def test_empty_itinerary_has_every_day(march_trip):
    grouped = ItineraryAssembler(march_trip).group_by_date()

    assert list(grouped) == [D1, D2, D3]
    assert all(bucket == [] for bucket in grouped.values())


def test_add_assigns_next_position_on_date(march_trip, attractions):
    assembler = ItineraryAssembler(march_trip)

    first = assembler.add(attractions["attr-x"], D1)
    second = assembler.add(attractions["attr-y"], D1)
    other_day = assembler.add(attractions["attr-z"], D2)

    assert (first.visit_order, second.visit_order, other_day.visit_order) == (1, 2, 1)
    assert first.is_transient
    assert first.itinerary_id == "itin-1"


def test_add_outside_span_is_rejected(march_trip, attractions):
    assembler = ItineraryAssembler(march_trip)

    with pytest.raises(ItineraryValidationError):
        assembler.add(attractions["attr-x"], date(2024, 3, 4))


def test_add_allows_same_attraction_on_another_day(march_trip, attractions):
    assembler = ItineraryAssembler(march_trip)
    assembler.add(attractions["attr-x"], D1)
    assembler.add(attractions["attr-x"], D2)

    assert assembler.trip_summary().stop_count == 2


def test_move_to_occupied_day(march_trip, attractions):
    assembler = ItineraryAssembler(march_trip)
    moving = assembler.add(attractions["attr-x"], D1)
    assembler.add(attractions["attr-y"], D2)

    moved = assembler.move(moving.id, D2)

    assert moved.visit_order == 2
    assert moved.visit_date == D2
    assert assembler.group_by_date()[D1] == []
    assert orders_on(assembler, D2) == [("attr-y", 1), ("attr-x", 2)]


def test_move_renumbers_the_day_it_leaves(march_trip, attractions):
    assembler = ItineraryAssembler(march_trip)
    first = assembler.add(attractions["attr-x"], D1)
    assembler.add(attractions["attr-y"], D1)
    assembler.add(attractions["attr-z"], D1)

    assembler.move(first.id, D3)

    assert orders_on(assembler, D1) == [("attr-y", 1), ("attr-z", 2)]
    assert orders_on(assembler, D3) == [("attr-x", 1)]


def test_move_within_same_day_goes_last(march_trip, attractions):
    assembler = ItineraryAssembler(march_trip)
    assembler.add(attractions["attr-x"], D1)
    middle = assembler.add(attractions["attr-y"], D1)
    assembler.add(attractions["attr-z"], D1)

    assembler.move(middle.id, D1)

    assert orders_on(assembler, D1) == [("attr-x", 1), ("attr-z", 2), ("attr-y", 3)]


def test_remove_renumbers_remaining_visits(march_trip, attractions):
    assembler = ItineraryAssembler(march_trip)
    first = assembler.add(attractions["attr-x"], D1)
    assembler.add(attractions["attr-y"], D1)

    removed = assembler.remove(first.id)

    assert removed.attraction_id == "attr-x"
    assert orders_on(assembler, D1) == [("attr-y", 1)]


def test_legacy_mode_keeps_position_gaps(march_trip, attractions):
    assembler = ItineraryAssembler(march_trip, compact_positions=False)
    first = assembler.add(attractions["attr-x"], D1)
    second = assembler.add(attractions["attr-y"], D1)
    assembler.add(attractions["attr-z"], D1)

    assembler.remove(first.id)
    assembler.move(second.id, D2)

    assert orders_on(assembler, D1) == [("attr-z", 3)]


def test_unknown_visit_id_raises_key_error(march_trip):
    assembler = ItineraryAssembler(march_trip)

    with pytest.raises(KeyError):
        assembler.remove("missing")
    with pytest.raises(KeyError):
        assembler.move("missing", D2)


def test_move_outside_span_is_rejected(march_trip, attractions):
    assembler = ItineraryAssembler(march_trip)
    visit = assembler.add(attractions["attr-x"], D1)

    with pytest.raises(ItineraryValidationError):
        assembler.move(visit.id, date(2024, 2, 29))
    assert assembler.get(visit.id).visit_date == D1


def test_total_duration_ignores_grouping(march_trip, attractions):
    assembler = ItineraryAssembler(march_trip)
    assembler.add(attractions["attr-x"], D3)
    assembler.add(attractions["attr-y"], D1)
    assembler.add(attractions["attr-z"], D2)

    assert assembler.trip_summary().total_duration_hours == pytest.approx(6.5)


def test_total_distance_follows_list_order_across_days(march_trip, attractions):
    x, y, z = attractions["attr-x"], attractions["attr-y"], attractions["attr-z"]
    assembler = ItineraryAssembler(march_trip)
    assembler.add(x, D1)
    assembler.add(y, D2)
    assembler.add(z, D1)

    expected = (
        haversine_km(x.latitude, x.longitude, y.latitude, y.longitude)
        + haversine_km(y.latitude, y.longitude, z.latitude, z.longitude)
    )
    assert assembler.trip_summary().total_distance_km == pytest.approx(expected)


def test_day_distance_only_between_same_day_stops(march_trip, attractions):
    x, y = attractions["attr-x"], attractions["attr-y"]
    assembler = ItineraryAssembler(march_trip)
    assembler.add(x, D1)
    assembler.add(y, D1)
    assembler.add(attractions["attr-z"], D2)

    day_one, day_two, _ = assembler.days()

    assert day_one.stops[0].distance_to_next_km == pytest.approx(
        haversine_km(x.latitude, x.longitude, y.latitude, y.longitude)
    )
    assert day_one.stops[1].distance_to_next_km is None
    assert day_two.stops[0].distance_to_next_km is None


def test_three_day_trip_scenario(march_trip, attractions):
    assembler = ItineraryAssembler(march_trip)
    assembler.add(attractions["attr-x"], D1)
    assembler.add(attractions["attr-y"], D1)

    days = assembler.days({D1: "Mild", D2: "Pleasant"})

    assert [d.day_number for d in days] == [1, 2, 3]
    assert days[0].stop_count == 2
    assert days[0].total_duration_hours == pytest.approx(5.0)
    assert days[0].label == "2 stops • 5.0h"
    assert days[0].weather == "Mild"
    for day in days[1:]:
        assert day.stop_count == 0
        assert day.label == NO_ACTIVITIES_LABEL
    assert days[2].weather is None


def test_day_summary(march_trip, attractions):
    assembler = ItineraryAssembler(march_trip)
    assembler.add(attractions["attr-z"], D2)

    summary = assembler.day_summary("2024-03-02")

    assert summary.day_number == 2
    assert summary.label == "1 stop • 1.5h"


def test_day_label():
    assert day_label(0, 0) == "No activities planned"
    assert day_label(1, 2) == "1 stop • 2.0h"
    assert day_label(3, 6.25) == "3 stops • 6.2h"


def test_available_attractions_excludes_placed_ones(march_trip, attractions):
    catalog = [attractions["attr-x"], attractions["attr-y"], attractions["attr-z"]]
    assembler = ItineraryAssembler(march_trip)
    assembler.add(attractions["attr-y"], D2)

    assert [a.id for a in assembler.available_attractions(catalog)] == ["attr-x", "attr-z"]


def test_from_rows_sorts_within_day_and_sets_aside_missing_attractions(march_trip, attractions):
    rows = [
        {"id": "i-2", "itinerary_id": "itin-1", "attraction_id": "attr-y", "visit_date": "2024-03-01",
         "visit_order": 2, "notes": None, "attraction": attractions["attr-y"].model_dump()},
        {"id": "i-1", "itinerary_id": "itin-1", "attraction_id": "attr-x", "visit_date": "2024-03-01",
         "visit_order": 1, "notes": "early", "attraction": attractions["attr-x"].model_dump()},
        {"id": "i-3", "itinerary_id": "itin-1", "attraction_id": "gone", "visit_date": "2024-03-02",
         "visit_order": 1, "notes": "", "attraction": None},
    ]

    assembler = ItineraryAssembler.from_rows(march_trip, rows)

    assert [v.id for v in assembler.group_by_date()[D1]] == ["i-1", "i-2"]
    assert assembler.get("i-2").notes == ""
    assert len(assembler.visits) == 2
    assert [r.id for r in assembler.unresolved] == ["i-3"]
    assert assembler.trip_summary().stop_count == 2
    assert assembler.group_by_date()[D2] == []


def test_visits_outside_span_are_kept(march_trip, attractions):
    stray = PlannedVisit(
        id="i-9",
        itinerary_id="itin-1",
        attraction_id="attr-x",
        visit_date=date(2024, 3, 9),
        visit_order=1,
        attraction=attractions["attr-x"]
    )
    grouped = ItineraryAssembler(march_trip, [stray]).group_by_date()

    assert list(grouped) == [D1, D2, D3, date(2024, 3, 9)]


def test_visits_outside_span_follow_the_span_in_date_order(march_trip, attractions):
    strays = [
        PlannedVisit(
            id=item_id,
            itinerary_id="itin-1",
            attraction_id="attr-x",
            visit_date=day,
            visit_order=1,
            attraction=attractions["attr-x"]
        )
        for item_id, day in [("i-9", date(2024, 3, 9)), ("i-8", date(2024, 2, 20))]
    ]
    assembler = ItineraryAssembler(march_trip, strays)

    assert list(assembler.group_by_date()) == [D1, D2, D3, date(2024, 2, 20), date(2024, 3, 9)]
    assert [d.date for d in assembler.days()][3:] == [date(2024, 2, 20), date(2024, 3, 9)]


def test_to_rows_drops_client_only_fields(march_trip, attractions):
    assembler = ItineraryAssembler(march_trip)
    assembler.add(attractions["attr-x"], D1, notes="Go at sunrise")

    assert assembler.to_rows() == [{
        "itinerary_id": "itin-1",
        "attraction_id": "attr-x",
        "visit_date": "2024-03-01",
        "visit_order": 1,
        "notes": "Go at sunrise"
    }]


def test_missing_attraction_rows_are_saved_back_and_keep_their_position(march_trip, attractions):
    rows = [
        {"id": "i-1", "itinerary_id": "itin-1", "attraction_id": "attr-x", "visit_date": "2024-03-03",
         "visit_order": 1, "notes": "", "attraction": attractions["attr-x"].model_dump()},
        {"id": "i-2", "itinerary_id": "itin-1", "attraction_id": "hidden", "visit_date": "2024-03-03",
         "visit_order": 2, "notes": "keep me", "attraction": None},
    ]
    assembler = ItineraryAssembler.from_rows(march_trip, rows)

    added = assembler.add(attractions["attr-y"], D3)
    assembler.remove("i-1")

    assert added.visit_order == 3
    assert sorted((r["attraction_id"], r["visit_order"], r["notes"]) for r in assembler.to_rows()) == [
        ("attr-y", 2, ""),
        ("hidden", 1, "keep me"),
    ]
    assert assembler.day_summary(D3).stop_count == 1
