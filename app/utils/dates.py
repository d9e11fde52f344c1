"""Calendar date helpers for trip spans"""
from datetime import date, datetime, timedelta
from typing import Iterator, List, Union

DateLike = Union[date, str]


def parse_date(value: DateLike) -> date:
    """Accept a date or an ISO YYYY-MM-DD string (timestamps are truncated to the day)"""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(value[:10])


class DateRange:
    """
    Inclusive range of calendar days

    Iterating twice yields the same dates. An end before the start is an
    empty range, not an error.
    """

    def __init__(self, start: DateLike, end: DateLike):
        self.start = parse_date(start)
        self.end = parse_date(end)

    def __iter__(self) -> Iterator[date]:
        current = self.start
        while current <= self.end:
            yield current
            current += timedelta(days=1)

    def __len__(self) -> int:
        return max(0, (self.end - self.start).days + 1)

    def __contains__(self, value: object) -> bool:
        if not isinstance(value, (date, str)):
            return False
        day = parse_date(value)
        return self.start <= day <= self.end

    def __repr__(self) -> str:
        return f"DateRange({self.start.isoformat()}, {self.end.isoformat()})"


def expand_date_range(start: DateLike, end: DateLike) -> List[date]:
    """Every calendar date from start to end, inclusive"""
    return list(DateRange(start, end))
