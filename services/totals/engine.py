"""Invoice totals engine.

Pure functions that keep line amounts, subtotal, tax and invoice amount
consistent. Nothing here holds state or performs I/O: callers pass the current
snapshot in and apply the returned values.

All arithmetic is done on ``Decimal`` and rounded half away from zero to two
places, so ``10.005`` becomes ``10.01`` rather than the ``10.00`` binary floats
would give.
"""

from collections.abc import Sequence
from decimal import ROUND_HALF_UP, Decimal
from typing import Any

from services.totals.schema import CatalogEntry, InvoiceTotals, LineItem

CENT = Decimal("0.01")
HUNDRED = Decimal("100")
ZERO = Decimal("0")

# Changing any of these requires the line amount to be recomputed
AMOUNT_FIELDS = frozenset({"quantity", "rate", "discount_percent"})


def round2(value: Decimal) -> Decimal:
    """Round to two decimals, half away from zero."""
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def compute_line_amount(line: LineItem) -> Decimal:
    """Compute a line's amount from its quantity, rate and discount.

    Inputs are not range-checked; the form layer constrains them.
    """
    base = line.quantity * line.rate
    discount = base * line.discount_percent / HUNDRED
    return round2(base - discount)


def compute_document_totals(lines: Sequence[LineItem], tax_percent: Decimal) -> InvoiceTotals:
    """Derive subtotal, tax amount and invoice amount.

    The subtotal is a plain sum of the already-rounded line amounts. Per-line
    rounding differences are deliberately not redistributed.

    Args:
        lines: Current invoice lines with their amounts populated
        tax_percent: Tax percentage driving the tax amount

    Returns:
        Totals carrying the given tax percentage
    """
    sub_total = sum((line.amount for line in lines), ZERO)
    tax_amount = round2(sub_total * tax_percent / HUNDRED)
    return InvoiceTotals(
        sub_total=sub_total,
        tax_percent=tax_percent,
        tax_amount=tax_amount,
        invoice_amount=sub_total + tax_amount,
    )


def on_tax_percent_changed(new_percent: Decimal, current_lines: Sequence[LineItem]) -> InvoiceTotals:
    """Recompute totals after the user edits the tax percentage."""
    return compute_document_totals(current_lines, new_percent)


def on_tax_amount_changed(new_amount: Decimal, current_sub_total: Decimal) -> InvoiceTotals:
    """Reconcile the tax percentage after the user edits the tax amount.

    The amount is kept exactly as entered. With a zero subtotal the percentage
    is forced to 0.

    Args:
        new_amount: Tax amount typed by the user
        current_sub_total: Subtotal of the current lines

    Returns:
        Totals with the derived tax percentage
    """
    if current_sub_total > ZERO:
        tax_percent = round2(new_amount * HUNDRED / current_sub_total)
    else:
        tax_percent = ZERO
    return InvoiceTotals(
        sub_total=current_sub_total,
        tax_percent=tax_percent,
        tax_amount=new_amount,
        invoice_amount=current_sub_total + new_amount,
    )


def update_line(line: LineItem, **changes: Any) -> LineItem:
    """Apply field changes to a line, refreshing its amount when needed.

    Args:
        line: Line to change
        **changes: New values keyed by LineItem field name

    Returns:
        Updated copy of the line
    """
    updated = line.model_copy(update=changes)
    if AMOUNT_FIELDS.intersection(changes):
        updated = updated.model_copy(update={"amount": compute_line_amount(updated)})
    return updated


def select_catalog_item(line: LineItem, catalog_entry: CatalogEntry) -> LineItem:
    """Fill a line from a catalog entry and recompute its amount."""
    return update_line(
        line,
        item_id=catalog_entry.item_id,
        description=catalog_entry.item_name,
        rate=catalog_entry.sale_rate,
        discount_percent=catalog_entry.discount_percent,
    )


def new_line_items() -> list[LineItem]:
    """Lines of a brand-new invoice: a single empty row."""
    return [LineItem(row_number=1)]


def add_line(lines: Sequence[LineItem]) -> list[LineItem]:
    """Append an empty line numbered after the highest existing row.

    Row numbers stay unique after deletions: with rows [1, 3] the new row is 4.
    """
    next_row = max((line.row_number for line in lines), default=0) + 1
    return [*lines, LineItem(row_number=next_row)]


def delete_line(lines: Sequence[LineItem], row_number: int) -> list[LineItem]:
    """Remove a line by row number.

    An invoice always keeps at least one line, so deleting the last remaining
    line is a no-op.
    """
    if len(lines) <= 1:
        return list(lines)
    return [line for line in lines if line.row_number != row_number]
