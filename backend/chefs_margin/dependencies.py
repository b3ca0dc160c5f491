"""Dependency injection helpers for FastAPI."""

from datetime import date, timedelta
from typing import Optional

from fastapi import HTTPException, Query, Request, status
from pydantic import ValidationError

from chefs_margin.models.analysis import DateRange
from chefs_margin.services.analysis import AnalysisService
from chefs_margin.services.store import EntityStore

DEFAULT_PERIOD_DAYS = 7


def get_store(request: Request) -> EntityStore:
    """The application's single entity store."""
    return request.app.state.store


def get_analysis_service(request: Request) -> AnalysisService:
    return request.app.state.analysis_service


def get_period(
    start: Optional[str] = Query(None, description="YYYY-MM-DD, defaults to 7 days ago"),
    end: Optional[str] = Query(None, description="YYYY-MM-DD, defaults to today"),
) -> DateRange:
    """Dashboard period. Defaults to the last week, today included."""
    today = date.today()
    try:
        return DateRange(
            start=start or (today - timedelta(days=DEFAULT_PERIOD_DAYS)).isoformat(),
            end=end or today.isoformat(),
        )
    except ValidationError as e:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=f"Invalid period: {e.errors()[0]['msg']}",
        )


def get_optional_period(
    start: Optional[str] = Query(None, description="YYYY-MM-DD"),
    end: Optional[str] = Query(None, description="YYYY-MM-DD"),
) -> Optional[DateRange]:
    """Period filter for list endpoints; ``None`` when no bound is given."""
    if start is None and end is None:
        return None
    try:
        return DateRange(start=start or "0000-01-01", end=end or "9999-12-31")
    except ValidationError as e:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=f"Invalid period: {e.errors()[0]['msg']}",
        )
