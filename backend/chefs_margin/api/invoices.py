"""
Chef's Margin - Invoice Scanning API Routes
Photo in, parsed lines out; confirmed lines merge into inventory
"""

from fastapi import APIRouter, Depends, File, HTTPException, Request, UploadFile

from chefs_margin.dependencies import get_store
from chefs_margin.models.analysis import InvoiceMergeResult, ParsedInvoice
from chefs_margin.services.invoice import apply_invoice
from chefs_margin.services.store import EntityStore

router = APIRouter(prefix="/invoices", tags=["Invoices"])


@router.post("/scan", response_model=ParsedInvoice)
async def scan_invoice(request: Request, file: UploadFile = File(...)) -> ParsedInvoice:
    """
    Parse an invoice photo. Nothing is stored until the (possibly edited)
    result is sent to ``/invoices/confirm``.
    """
    image = await file.read()
    if not image:
        raise HTTPException(status_code=400, detail="Empty upload")
    gateway = request.app.state.analysis_service.gateway
    return await gateway.parse_invoice(image, file.content_type or "image/jpeg")


@router.post("/confirm", response_model=InvoiceMergeResult)
def confirm_invoice(
    invoice: ParsedInvoice,
    store: EntityStore = Depends(get_store),
) -> InvoiceMergeResult:
    """Merge lines into ingredients by case-insensitive name, creating the rest."""
    return apply_invoice(store, invoice)
