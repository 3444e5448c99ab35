"""Invoice editor draft and request models.

The draft is the whole editor form as an immutable snapshot. The browser sends
it with every edit and receives the recomputed draft back.
"""

from datetime import date
from typing import Annotated, Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from services.totals.engine import new_line_items
from services.totals.schema import FormNumber, InvoiceTotals, LineItem


class InvoiceDraft(BaseModel):
    """Editor state for a new or existing invoice."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    invoice_id: int = Field(0, alias="invoiceID", description="0 for a new invoice")
    invoice_no: int = Field(0, alias="invoiceNo", description="0 until the backend assigns one")
    invoice_date: str = Field(
        default_factory=lambda: date.today().isoformat(), alias="invoiceDate"
    )
    customer_name: str = Field("", alias="customerName")
    address: str = ""
    city: str = ""
    notes: str = ""
    lines: list[LineItem] = Field(default_factory=new_line_items, min_length=1)
    totals: InvoiceTotals = Field(default_factory=InvoiceTotals)

    @field_validator("invoice_id", "invoice_no", mode="before")
    @classmethod
    def _null_number(cls, value: Any) -> Any:
        return 0 if value in (None, "") else value

    @field_validator("customer_name", "address", "city", "notes", "invoice_date", mode="before")
    @classmethod
    def _null_text(cls, value: Any) -> Any:
        return "" if value is None else value


class DraftRequest(BaseModel):
    """Edit request carrying only the current draft."""

    draft: InvoiceDraft


class LineRequest(DraftRequest):
    """Edit request targeting one line."""

    model_config = ConfigDict(populate_by_name=True)

    row_number: int = Field(alias="rowNo")


class UpdateLineRequest(LineRequest):
    """Changed fields of one line; omitted fields are left alone."""

    description: str | None = None
    quantity: Annotated[FormNumber, Field(ge=0)] | None = None
    rate: Annotated[FormNumber, Field(ge=0)] | None = None
    discount_percent: Annotated[FormNumber, Field(ge=0, le=100)] | None = Field(
        None, alias="discountPct"
    )

    def changes(self) -> dict[str, Any]:
        """Fields the user actually edited, keyed by LineItem field name."""
        return self.model_dump(
            include={"description", "quantity", "rate", "discount_percent"},
            exclude_none=True,
        )


class SelectItemRequest(LineRequest):
    """Catalog item chosen for a line."""

    item_id: int = Field(alias="itemID")


class TaxPercentRequest(DraftRequest):
    """Tax percentage typed by the user."""

    model_config = ConfigDict(populate_by_name=True)

    tax_percent: Annotated[FormNumber, Field(ge=0, le=100)] = Field(alias="taxPercentage")


class TaxAmountRequest(DraftRequest):
    """Tax amount typed by the user."""

    model_config = ConfigDict(populate_by_name=True)

    tax_amount: Annotated[FormNumber, Field(ge=0)] = Field(alias="taxAmount")
