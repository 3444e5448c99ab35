"""Invoice line and totals models.

Field names follow Python conventions; aliases match the backend API's
camelCase wire format so the same models can be read from and written to it.
Numbers that cannot be read (null, blank, text) are taken as 0.
"""

from decimal import Decimal, InvalidOperation
from typing import Annotated, Any

from pydantic import (
    BaseModel,
    BeforeValidator,
    ConfigDict,
    Field,
    PlainSerializer,
    field_validator,
)

# Decimals are kept exact internally and written as JSON numbers
Money = Annotated[Decimal, PlainSerializer(float, return_type=float, when_used="json")]


def coerce_number(value: Any) -> Decimal:
    """Parse a number from the backend or a form, falling back to 0 when it cannot be read."""
    if value is None or isinstance(value, bool):
        return Decimal("0")
    try:
        number = Decimal(str(value).strip())
    except InvalidOperation:
        return Decimal("0")
    return number if number.is_finite() else Decimal("0")


FormNumber = Annotated[Money, BeforeValidator(coerce_number)]


class LineItem(BaseModel):
    """One row of an invoice.

    ``amount`` is derived from quantity, rate and discount and is only ever set
    by the totals engine.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    row_number: int = Field(alias="rowNo", ge=1, description="Stable ordering key")
    item_id: int | None = Field(None, alias="itemID", description="Catalog item reference")
    description: str = ""
    quantity: FormNumber = Decimal("0")
    rate: FormNumber = Decimal("0")
    discount_percent: FormNumber = Field(Decimal("0"), alias="discountPct")
    amount: FormNumber = Decimal("0")

    @field_validator("description", mode="before")
    @classmethod
    def _null_description(cls, value: Any) -> Any:
        return "" if value is None else value


class CatalogEntry(BaseModel):
    """Sellable item from the backend lookup list."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    item_id: int = Field(alias="itemID")
    item_name: str = Field(alias="itemName")
    sale_rate: FormNumber = Field(Decimal("0"), alias="saleRate")
    discount_percent: FormNumber = Field(Decimal("0"), alias="discountPct")


class InvoiceTotals(BaseModel):
    """Document-level totals derived from the lines and the tax fields."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    sub_total: FormNumber = Field(Decimal("0"), alias="subTotal")
    tax_percent: FormNumber = Field(Decimal("0"), alias="taxPercentage")
    tax_amount: FormNumber = Field(Decimal("0"), alias="taxAmount")
    invoice_amount: FormNumber = Field(Decimal("0"), alias="invoiceAmount")
