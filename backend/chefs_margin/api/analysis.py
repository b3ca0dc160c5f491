"""
Chef's Margin - Margin Analysis API Routes
LLM analysis, history and quick actions
"""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status

from chefs_margin.dependencies import get_analysis_service, get_period, get_store
from chefs_margin.models.analysis import (
    ActionResult,
    AIAnalysisResponse,
    AnalysisHistoryItem,
    DateRange,
    QuickAction,
)
from chefs_margin.services.actions import execute_action
from chefs_margin.services.analysis import AnalysisService
from chefs_margin.services.store import EntityStore

router = APIRouter(prefix="/analysis", tags=["Margin Analysis"])


@router.post("/run", response_model=AnalysisHistoryItem, status_code=status.HTTP_201_CREATED)
async def run_analysis(
    period: DateRange = Depends(get_period),
    store: EntityStore = Depends(get_store),
    service: AnalysisService = Depends(get_analysis_service),
) -> AnalysisHistoryItem:
    """
    Send the period snapshot to the model and record the result.

    Returns 409 while another analysis is running and 502 if the model call
    fails; nothing is stored on failure.
    """
    return await service.run(store, period)


@router.get("/current", response_model=Optional[AIAnalysisResponse])
async def get_current(store: EntityStore = Depends(get_store)) -> Optional[AIAnalysisResponse]:
    return store.current_analysis


@router.get("/history", response_model=list[AnalysisHistoryItem])
async def list_history(store: EntityStore = Depends(get_store)) -> list[AnalysisHistoryItem]:
    """Past analyses, most recent first."""
    return store.history.all()


@router.get("/history/{item_id}", response_model=AnalysisHistoryItem)
async def get_history_item(item_id: str, store: EntityStore = Depends(get_store)) -> AnalysisHistoryItem:
    item = store.history.get(item_id)
    if not item:
        raise HTTPException(status_code=404, detail="Analysis not found")
    return item


@router.delete("/history/{item_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_history_item(item_id: str, store: EntityStore = Depends(get_store)) -> None:
    if not store.history.delete(item_id):
        raise HTTPException(status_code=404, detail="Analysis not found")


@router.post("/actions/execute", response_model=ActionResult)
def run_action(action: QuickAction, store: EntityStore = Depends(get_store)) -> ActionResult:
    """Apply a PRICE_UPDATE or get the mailto link of a SUPPLIER_EMAIL."""
    return execute_action(store, action)
