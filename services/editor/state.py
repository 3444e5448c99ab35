"""Invoice editor state transitions.

Each function takes the current draft snapshot and returns a new one with the
totals engine applied. Drafts are never mutated in place.
"""

import logging
from collections.abc import Mapping, Sequence
from decimal import Decimal
from typing import Any

from services.editor.schema import InvoiceDraft
from services.totals import engine
from services.totals.schema import CatalogEntry, LineItem, coerce_number

logger = logging.getLogger(__name__)


class DraftValidationError(ValueError):
    """Raised when a draft cannot be submitted to the backend."""


def new_draft() -> InvoiceDraft:
    """Create the draft for a brand-new invoice."""
    return InvoiceDraft()


def draft_from_invoice(data: Mapping[str, Any]) -> InvoiceDraft:
    """Build a draft from an invoice returned by the backend.

    Line amounts and totals are recomputed from the loaded lines and tax
    percentage rather than trusted as loaded.

    Args:
        data: Invoice record from ``/invoice/getlist``

    Returns:
        Draft ready for editing
    """
    fields = dict(data)
    if not fields.get("lines"):
        fields["lines"] = [line.model_dump() for line in engine.new_line_items()]
    invoice_date = fields.get("invoiceDate")
    if isinstance(invoice_date, str):
        fields["invoiceDate"] = invoice_date.split("T")[0]
    fields.pop("totals", None)

    draft = InvoiceDraft.model_validate(fields)
    tax_percent = coerce_number(fields.get("taxPercentage"))
    lines = _refresh_amounts(draft.lines)
    return draft.model_copy(
        update={"lines": lines, "totals": engine.compute_document_totals(lines, tax_percent)}
    )


def normalize_draft(draft: InvoiceDraft) -> InvoiceDraft:
    """Re-derive line amounts and the subtotal of a draft received from a client.

    The tax percentage and tax amount are kept as sent, since either may be the
    one the user last edited.
    """
    lines = _refresh_amounts(draft.lines)
    sub_total = sum((line.amount for line in lines), engine.ZERO)
    totals = draft.totals.model_copy(
        update={
            "sub_total": sub_total,
            "invoice_amount": sub_total + draft.totals.tax_amount,
        }
    )
    return draft.model_copy(update={"lines": lines, "totals": totals})


def apply_line_update(draft: InvoiceDraft, row_number: int, **changes: Any) -> InvoiceDraft:
    """Edit fields of one line and recompute the totals."""
    lines = [
        engine.update_line(line, **changes) if line.row_number == row_number else line
        for line in draft.lines
    ]
    return _with_lines(draft, lines)


def apply_add_line(draft: InvoiceDraft) -> InvoiceDraft:
    """Append an empty line."""
    return _with_lines(draft, engine.add_line(draft.lines))


def apply_delete_line(draft: InvoiceDraft, row_number: int) -> InvoiceDraft:
    """Remove a line, keeping at least one."""
    return _with_lines(draft, engine.delete_line(draft.lines, row_number))


def apply_catalog_item(
    draft: InvoiceDraft,
    row_number: int,
    item_id: int,
    catalog: Sequence[CatalogEntry],
) -> InvoiceDraft:
    """Fill a line from the catalog entry with the given id.

    An id missing from the catalog leaves the draft unchanged.
    """
    entry = next((e for e in catalog if e.item_id == item_id), None)
    if entry is None:
        logger.info(f"Catalog item {item_id} not found, line {row_number} left unchanged")
        return draft

    lines = [
        engine.select_catalog_item(line, entry) if line.row_number == row_number else line
        for line in draft.lines
    ]
    return _with_lines(draft, lines)


def apply_tax_percent(draft: InvoiceDraft, tax_percent: Decimal) -> InvoiceDraft:
    """Store a new tax percentage and derive the tax amount from it."""
    totals = engine.on_tax_percent_changed(tax_percent, draft.lines)
    return draft.model_copy(update={"totals": totals})


def apply_tax_amount(draft: InvoiceDraft, tax_amount: Decimal) -> InvoiceDraft:
    """Store a new tax amount and derive the tax percentage from it."""
    totals = engine.on_tax_amount_changed(tax_amount, draft.totals.sub_total)
    return draft.model_copy(update={"totals": totals})


def validate_for_save(draft: InvoiceDraft) -> None:
    """Check the draft is complete enough to be saved.

    Raises:
        DraftValidationError: With a message suitable for the user
    """
    if not draft.customer_name.strip():
        raise DraftValidationError("Customer name is required")
    if not draft.invoice_date:
        raise DraftValidationError("Invoice date is required")
    if all(line.quantity <= 0 for line in draft.lines):
        raise DraftValidationError("At least one line item with quantity > 0 is required")


def build_save_payload(draft: InvoiceDraft) -> dict[str, Any]:
    """Build the ``/invoice/insertupdate`` body for a draft.

    Computed amounts and totals are left out; the backend derives its own.
    """
    return {
        "invoiceID": draft.invoice_id,
        "invoiceNo": draft.invoice_no or None,
        "invoiceDate": draft.invoice_date,
        "customerName": draft.customer_name.strip(),
        "address": draft.address.strip() or None,
        "city": draft.city.strip() or None,
        "notes": draft.notes.strip() or None,
        "taxPercentage": float(draft.totals.tax_percent),
        "lines": [
            {
                "rowNo": line.row_number,
                "itemID": line.item_id,
                "description": line.description,
                "quantity": float(line.quantity),
                "rate": float(line.rate),
                "discountPct": float(line.discount_percent),
            }
            for line in draft.lines
        ],
        "updatedOnPrev": None,
    }


def _refresh_amounts(lines: Sequence[LineItem]) -> list[LineItem]:
    return [line.model_copy(update={"amount": engine.compute_line_amount(line)}) for line in lines]


def _with_lines(draft: InvoiceDraft, lines: list[LineItem]) -> InvoiceDraft:
    # Line list changes are always driven by the stored tax percentage
    totals = engine.compute_document_totals(lines, draft.totals.tax_percent)
    return draft.model_copy(update={"lines": lines, "totals": totals})
