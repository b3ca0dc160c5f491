"""Period filter over dated entities (reservations, sales)."""

from typing import Iterable, Protocol, TypeVar


class Dated(Protocol):
    date: str


T = TypeVar("T", bound=Dated)


def filter_by_date(collection: Iterable[T], start: str, end: str) -> list[T]:
    """
    Entities with ``start <= date <= end``, both bounds inclusive.

    ISO "YYYY-MM-DD" strings sort chronologically, so plain string
    comparison is used. No timezone conversion happens.
    """
    return [e for e in collection if start <= e.date <= end]
