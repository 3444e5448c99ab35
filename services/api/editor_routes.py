"""Invoice editor, save and print endpoints.

Editing is stateless on the server: the browser posts its current draft with
each edit and renders the draft that comes back.
"""

import logging
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, status

from services.api import metrics
from services.api.dependencies import backend, require_token
from services.editor import state
from services.editor.schema import (
    DraftRequest,
    InvoiceDraft,
    LineRequest,
    SelectItemRequest,
    TaxAmountRequest,
    TaxPercentRequest,
    UpdateLineRequest,
)
from services.printing.formatting import PrintableInvoice, build_printable_invoice

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/invoice", tags=["Invoices"])


def _recalculated(operation: str, draft: InvoiceDraft) -> InvoiceDraft:
    metrics.invoice_recalculations_total.labels(operation=operation).inc()
    return draft


def _load_invoice(token: str, invoice_id: int) -> dict[str, Any]:
    invoice = backend.get_invoice(token, invoice_id)
    if invoice is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Invoice not found")
    return invoice


@router.get("/editor", response_model=InvoiceDraft)
def new_invoice(token: str = Depends(require_token)) -> InvoiceDraft:
    """Start a new invoice with one empty line."""
    return state.new_draft()


@router.get("/editor/{invoice_id}", response_model=InvoiceDraft)
def edit_invoice(invoice_id: int, token: str = Depends(require_token)) -> InvoiceDraft:
    """Load an existing invoice into the editor.

    Raises:
        HTTPException: 404 if the backend has no such invoice
    """
    draft = state.draft_from_invoice(_load_invoice(token, invoice_id))
    return _recalculated("load", draft)


@router.post("/editor/lines/add", response_model=InvoiceDraft)
def add_line(body: DraftRequest, token: str = Depends(require_token)) -> InvoiceDraft:
    """Append an empty line."""
    draft = state.apply_add_line(state.normalize_draft(body.draft))
    return _recalculated("add_line", draft)


@router.post("/editor/lines/delete", response_model=InvoiceDraft)
def delete_line(body: LineRequest, token: str = Depends(require_token)) -> InvoiceDraft:
    """Remove a line; the last remaining line is kept."""
    draft = state.apply_delete_line(state.normalize_draft(body.draft), body.row_number)
    return _recalculated("delete_line", draft)


@router.post("/editor/lines/update", response_model=InvoiceDraft)
def update_line(body: UpdateLineRequest, token: str = Depends(require_token)) -> InvoiceDraft:
    """Edit description, quantity, rate or discount of a line."""
    draft = state.apply_line_update(
        state.normalize_draft(body.draft), body.row_number, **body.changes()
    )
    return _recalculated("update_line", draft)


@router.post("/editor/lines/select-item", response_model=InvoiceDraft)
def select_item(body: SelectItemRequest, token: str = Depends(require_token)) -> InvoiceDraft:
    """Fill a line from a catalog item."""
    catalog = backend.get_lookup_list(token)
    draft = state.apply_catalog_item(
        state.normalize_draft(body.draft), body.row_number, body.item_id, catalog
    )
    return _recalculated("select_item", draft)


@router.post("/editor/tax-percent", response_model=InvoiceDraft)
def change_tax_percent(
    body: TaxPercentRequest, token: str = Depends(require_token)
) -> InvoiceDraft:
    """Set the tax percentage; the tax amount follows."""
    draft = state.apply_tax_percent(state.normalize_draft(body.draft), body.tax_percent)
    return _recalculated("tax_percent", draft)


@router.post("/editor/tax-amount", response_model=InvoiceDraft)
def change_tax_amount(body: TaxAmountRequest, token: str = Depends(require_token)) -> InvoiceDraft:
    """Set the tax amount; the tax percentage follows."""
    draft = state.apply_tax_amount(state.normalize_draft(body.draft), body.tax_amount)
    return _recalculated("tax_amount", draft)


@router.post("/insertupdate")
def save_invoice(body: DraftRequest, token: str = Depends(require_token)) -> Any:
    """Validate a draft and submit it to the backend.

    Raises:
        HTTPException: 400 with the validation message if the draft is incomplete
    """
    draft = state.normalize_draft(body.draft)
    try:
        state.validate_for_save(draft)
    except state.DraftValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from e

    result = backend.fetch(
        "POST", "/invoice/insertupdate", token=token, json_body=state.build_save_payload(draft)
    )
    logger.info(f"Saved invoice {draft.invoice_id or '(new)'}")
    return result


@router.get("/print/{invoice_id}", response_model=PrintableInvoice)
def print_invoice(invoice_id: int, token: str = Depends(require_token)) -> PrintableInvoice:
    """Formatted invoice for the print page.

    Raises:
        HTTPException: 404 if the backend has no such invoice
    """
    invoice = _load_invoice(token, invoice_id)
    company = backend.get_company_info(token)
    return build_printable_invoice(invoice, company)
