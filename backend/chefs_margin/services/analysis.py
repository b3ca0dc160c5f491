"""
Chef's Margin - Margin Analysis Runner

At most one analysis runs at a time. A second trigger while one is in
flight is rejected, not queued. A failed call leaves the store untouched.
"""

import asyncio
import logging

from chefs_margin.core.exceptions import AnalysisError, AnalysisInProgressError
from chefs_margin.models.analysis import AIAnalysisResponse, AnalysisHistoryItem, DateRange
from chefs_margin.services.gateway import AIGateway, build_analysis_payload
from chefs_margin.services.period import filter_by_date
from chefs_margin.services.store import EntityStore

logger = logging.getLogger(__name__)


class AnalysisService:
    def __init__(self, gateway: AIGateway) -> None:
        self.gateway = gateway
        self._lock = asyncio.Lock()

    @property
    def running(self) -> bool:
        return self._lock.locked()

    @staticmethod
    def _record(
        store: EntityStore, result: AIAnalysisResponse, date_range: DateRange
    ) -> AnalysisHistoryItem:
        with store.lock:
            store.set_current_analysis(result)
            return store.history.record(result, date_range)

    async def run(self, store: EntityStore, date_range: DateRange) -> AnalysisHistoryItem:
        """
        Analyze the period and record the result.

        On success the result becomes the store's current analysis and is
        prepended to the history log.
        """
        if self._lock.locked():
            raise AnalysisInProgressError("An analysis is already running")

        async with self._lock:
            payload = build_analysis_payload(
                store.ingredients.all(),
                store.menu.all(),
                filter_by_date(store.reservations.all(), date_range.start, date_range.end),
                filter_by_date(store.sales.all(), date_range.start, date_range.end),
                date_range,
            )
            logger.info(f"Running margin analysis for {date_range.label}")
            try:
                result = await self.gateway.analyze(payload)
            except AnalysisError as e:
                logger.error(f"Margin analysis failed for {date_range.label}: {e}")
                raise

            # Blob writes are blocking I/O
            item = await asyncio.to_thread(self._record, store, result, date_range)
            logger.info(
                f"Analysis {item.id}: {len(result.alerts)} alerts, "
                f"{len(result.quick_actions)} quick actions"
            )
            return item
