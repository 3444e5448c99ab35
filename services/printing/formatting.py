"""Printable invoice view.

Turns a loaded invoice and the company profile into display strings for the
print page. Amounts are recomputed with the totals engine so the printout
always agrees with the editor.
"""

from collections.abc import Mapping
from datetime import datetime
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from services.editor.state import draft_from_invoice
from services.totals.engine import ZERO, round2

DEFAULT_CURRENCY_SYMBOL = "$"


class PrintCompany(BaseModel):
    """Seller block of the printout."""

    name: str = ""
    address: str = ""
    city: str = ""
    zip: str = ""


class PrintLine(BaseModel):
    """One formatted invoice row."""

    model_config = ConfigDict(populate_by_name=True)

    row_number: int = Field(alias="rowNo")
    description: str
    quantity: str
    rate: str
    discount: str
    amount: str


class PrintableInvoice(BaseModel):
    """Everything the print page shows, already formatted."""

    model_config = ConfigDict(populate_by_name=True)

    company: PrintCompany
    invoice_no: str = Field(alias="invoiceNo")
    invoice_date: str = Field(alias="invoiceDate")
    customer_name: str = Field(alias="customerName")
    address: str
    city: str
    notes: str
    lines: list[PrintLine]
    sub_total: str = Field(alias="subTotal")
    tax_label: str | None = Field(alias="taxLabel")
    tax_amount: str | None = Field(alias="taxAmount")
    invoice_amount: str = Field(alias="invoiceAmount")


def format_currency(amount: Decimal, symbol: str = DEFAULT_CURRENCY_SYMBOL) -> str:
    """Format an amount with thousands separators and two decimals, e.g. ``$1,234.50``."""
    return f"{symbol}{round2(amount):,.2f}"


def format_percent(value: Decimal) -> str:
    """Format a percentage with two decimals, e.g. ``10.00%``."""
    return f"{round2(value):.2f}%"


def format_quantity(value: Decimal) -> str:
    """Format a quantity without trailing zeros, e.g. ``2`` or ``1.5``."""
    text = f"{value:f}"
    return text.rstrip("0").rstrip(".") if "." in text else text


def format_date(value: str) -> str:
    """Format an ISO date as ``October 19, 2026``.

    Values that are not ISO dates are returned unchanged.
    """
    try:
        parsed = datetime.fromisoformat(value)
    except (TypeError, ValueError):
        return value
    return f"{parsed:%B} {parsed.day}, {parsed.year}"


def build_printable_invoice(
    invoice: Mapping[str, Any], company: Mapping[str, Any]
) -> PrintableInvoice:
    """Build the print view of an invoice.

    Args:
        invoice: Invoice record from the backend
        company: Company profile from the backend

    Returns:
        Formatted printable invoice
    """
    symbol = company.get("currencySymbol") or DEFAULT_CURRENCY_SYMBOL
    draft = draft_from_invoice(invoice)
    totals = draft.totals

    show_tax = totals.tax_percent > ZERO
    return PrintableInvoice(
        company=PrintCompany(
            name=company.get("companyName") or "Company Name",
            address=company.get("address") or "",
            city=company.get("city") or "",
            zip=company.get("zip") or "",
        ),
        invoice_no=str(draft.invoice_no or ""),
        invoice_date=format_date(draft.invoice_date),
        customer_name=draft.customer_name,
        address=draft.address,
        city=draft.city,
        notes=draft.notes,
        lines=[
            PrintLine(
                row_number=line.row_number,
                description=line.description,
                quantity=format_quantity(line.quantity),
                rate=format_currency(line.rate, symbol),
                discount=format_percent(line.discount_percent),
                amount=format_currency(line.amount, symbol),
            )
            for line in draft.lines
        ],
        sub_total=format_currency(totals.sub_total, symbol),
        tax_label=f"Tax ({format_percent(totals.tax_percent)})" if show_tax else None,
        tax_amount=format_currency(totals.tax_amount, symbol) if show_tax else None,
        invoice_amount=format_currency(totals.invoice_amount, symbol),
    )
