"""Unit tests for the invoice totals engine.

Tests cover:
- Line amount calculation and rounding
- Document totals (round per line, then sum)
- Tax percentage / tax amount reconciliation
- Catalog selection and line edits
- Adding and deleting lines
"""

from decimal import Decimal

import pytest

from services.totals import engine
from services.totals.schema import CatalogEntry, InvoiceTotals, LineItem


def make_line(row: int = 1, quantity: str = "0", rate: str = "0", discount: str = "0") -> LineItem:
    """Create a line with its amount populated."""
    line = LineItem(
        row_number=row,
        quantity=Decimal(quantity),
        rate=Decimal(rate),
        discount_percent=Decimal(discount),
    )
    return line.model_copy(update={"amount": engine.compute_line_amount(line)})


class TestRound2:
    """Test two-decimal rounding."""

    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            ("10.005", "10.01"),
            ("53.973", "53.97"),
            ("0.125", "0.13"),
            ("-0.125", "-0.13"),
            ("2.5", "2.50"),
        ],
    )
    def test_rounds_half_away_from_zero(self, value: str, expected: str) -> None:
        """Halves should round away from zero, not to even."""
        assert engine.round2(Decimal(value)) == Decimal(expected)


class TestComputeLineAmount:
    """Test per-line amount calculation."""

    def test_quantity_rate_and_discount(self) -> None:
        """3 x 19.99 less 10% is 53.973, rounded to 53.97."""
        line = LineItem(
            row_number=1,
            quantity=Decimal("3"),
            rate=Decimal("19.99"),
            discount_percent=Decimal("10"),
        )
        assert engine.compute_line_amount(line) == Decimal("53.97")

    def test_no_discount(self) -> None:
        """Without discount the amount is quantity times rate."""
        line = LineItem(row_number=1, quantity=Decimal("2"), rate=Decimal("12.50"))
        assert engine.compute_line_amount(line) == Decimal("25.00")

    def test_full_discount(self) -> None:
        """A 100% discount gives a zero amount."""
        line = LineItem(
            row_number=1,
            quantity=Decimal("4"),
            rate=Decimal("9.99"),
            discount_percent=Decimal("100"),
        )
        assert engine.compute_line_amount(line) == Decimal("0")

    def test_empty_line(self) -> None:
        """A fresh line has a zero amount."""
        assert engine.compute_line_amount(LineItem(row_number=1)) == Decimal("0")

    def test_does_not_modify_line(self) -> None:
        """The computation is pure."""
        line = LineItem(row_number=1, quantity=Decimal("1"), rate=Decimal("5"))
        engine.compute_line_amount(line)
        assert line.amount == Decimal("0")


class TestComputeDocumentTotals:
    """Test subtotal, tax and invoice amount."""

    def test_subtotal_sums_rounded_line_amounts(self) -> None:
        """10.00 + 10.01 (from 10.005) gives 20.01."""
        lines = [make_line(1, "1", "10"), make_line(2, "1", "10.005")]

        assert [line.amount for line in lines] == [Decimal("10.00"), Decimal("10.01")]
        totals = engine.compute_document_totals(lines, Decimal("0"))
        assert totals.sub_total == Decimal("20.01")

    def test_subtotal_independent_of_line_order(self) -> None:
        """Reordering lines does not change the subtotal."""
        lines = [make_line(1, "3", "19.99", "10"), make_line(2, "1", "10.005"), make_line(3, "2", "7")]

        forward = engine.compute_document_totals(lines, Decimal("5"))
        backward = engine.compute_document_totals(list(reversed(lines)), Decimal("5"))
        assert forward == backward

    def test_tax_and_invoice_amount(self) -> None:
        """Tax is rounded from the subtotal; invoice amount adds it."""
        lines = [make_line(1, "1", "33.33")]

        totals = engine.compute_document_totals(lines, Decimal("7.5"))
        assert totals.sub_total == Decimal("33.33")
        assert totals.tax_amount == Decimal("2.50")
        assert totals.invoice_amount == Decimal("35.83")
        assert totals.tax_percent == Decimal("7.5")

    def test_no_lines(self) -> None:
        """An empty line list yields zero totals."""
        totals = engine.compute_document_totals([], Decimal("10"))
        assert totals.sub_total == 0
        assert totals.tax_amount == 0
        assert totals.invoice_amount == 0

    def test_idempotent(self) -> None:
        """Recomputing with unchanged inputs gives identical output."""
        lines = [make_line(1, "3", "19.99", "10"), make_line(2, "1.5", "8.25")]

        first = engine.compute_document_totals(lines, Decimal("12.5"))
        second = engine.compute_document_totals(lines, Decimal("12.5"))
        assert first == second


class TestTaxReconciliation:
    """Test the two tax field edit operations."""

    def test_tax_percent_changed(self) -> None:
        """10% of a 100.00 subtotal is 10.00, total 110.00."""
        lines = [make_line(1, "1", "60"), make_line(2, "2", "20")]

        totals = engine.on_tax_percent_changed(Decimal("10"), lines)
        assert totals.sub_total == Decimal("100")
        assert totals.tax_percent == Decimal("10")
        assert totals.tax_amount == Decimal("10.00")
        assert totals.invoice_amount == Decimal("110.00")

    def test_tax_amount_changed(self) -> None:
        """A 15.00 tax on 100.00 is 15%, total 115.00."""
        totals = engine.on_tax_amount_changed(Decimal("15"), Decimal("100"))
        assert totals.tax_percent == Decimal("15.00")
        assert totals.tax_amount == Decimal("15")
        assert totals.invoice_amount == Decimal("115.00")

    def test_tax_amount_changed_rounds_percent(self) -> None:
        """The derived percentage is rounded to two decimals."""
        totals = engine.on_tax_amount_changed(Decimal("10"), Decimal("30"))
        assert totals.tax_percent == Decimal("33.33")
        assert totals.invoice_amount == Decimal("40")

    def test_tax_amount_changed_zero_subtotal(self) -> None:
        """With nothing to tax the percentage is 0 and no error is raised."""
        totals = engine.on_tax_amount_changed(Decimal("5"), Decimal("0"))
        assert totals.tax_percent == Decimal("0")
        assert totals.tax_amount == Decimal("5")
        assert totals.invoice_amount == Decimal("5")

    def test_tax_amount_kept_as_given(self) -> None:
        """The entered amount is not re-rounded."""
        totals = engine.on_tax_amount_changed(Decimal("12.345"), Decimal("100"))
        assert totals.tax_amount == Decimal("12.345")


class TestLineEdits:
    """Test catalog selection and field updates."""

    def test_select_catalog_item(self) -> None:
        """Catalog data replaces description, rate and discount."""
        line = make_line(2, "3", "1", "0")
        entry = CatalogEntry(
            item_id=7,
            item_name="Widget",
            sale_rate=Decimal("19.99"),
            discount_percent=Decimal("10"),
        )

        updated = engine.select_catalog_item(line, entry)
        assert updated.item_id == 7
        assert updated.description == "Widget"
        assert updated.rate == Decimal("19.99")
        assert updated.discount_percent == Decimal("10")
        assert updated.quantity == Decimal("3")
        assert updated.amount == Decimal("53.97")
        assert updated.row_number == 2

    def test_update_quantity_recomputes_amount(self) -> None:
        """Numeric field edits refresh the amount immediately."""
        line = make_line(1, "1", "10")

        updated = engine.update_line(line, quantity=Decimal("4"))
        assert updated.amount == Decimal("40.00")

    def test_update_description_keeps_amount(self) -> None:
        """Text edits leave the amount alone."""
        line = make_line(1, "2", "10")

        updated = engine.update_line(line, description="Consulting")
        assert updated.description == "Consulting"
        assert updated.amount == Decimal("20.00")


class TestLineList:
    """Test adding and deleting lines."""

    def test_new_line_items(self) -> None:
        """A new invoice starts with one empty row."""
        lines = engine.new_line_items()
        assert len(lines) == 1
        assert lines[0].row_number == 1
        assert lines[0].item_id is None
        assert lines[0].amount == 0

    def test_add_line_uses_max_plus_one(self) -> None:
        """After deleting row 2 of [1, 2, 3] the next row is 4."""
        lines = [make_line(1), make_line(2), make_line(3)]

        remaining = engine.delete_line(lines, 2)
        assert [line.row_number for line in remaining] == [1, 3]

        extended = engine.add_line(remaining)
        assert [line.row_number for line in extended] == [1, 3, 4]

    def test_added_line_is_empty(self) -> None:
        """New lines have zero numbers and no catalog item."""
        new = engine.add_line([make_line(1, "2", "5")])[-1]
        assert new.quantity == 0
        assert new.rate == 0
        assert new.discount_percent == 0
        assert new.amount == 0
        assert new.item_id is None

    def test_add_line_to_empty_list(self) -> None:
        """An empty list gets row 1."""
        assert engine.add_line([])[0].row_number == 1

    def test_delete_last_line_is_noop(self) -> None:
        """The only line of an invoice cannot be removed."""
        lines = [make_line(1, "1", "10")]

        result = engine.delete_line(lines, 1)
        assert len(result) == 1
        assert result[0] == lines[0]

    def test_delete_unknown_row(self) -> None:
        """Deleting a missing row number changes nothing."""
        lines = [make_line(1), make_line(2)]
        assert engine.delete_line(lines, 9) == lines


def test_invoice_totals_wire_format() -> None:
    """Totals serialize with the backend's field names as JSON numbers."""
    totals = InvoiceTotals(
        sub_total=Decimal("100"),
        tax_percent=Decimal("10"),
        tax_amount=Decimal("10.00"),
        invoice_amount=Decimal("110.00"),
    )

    assert totals.model_dump(mode="json", by_alias=True) == {
        "subTotal": 100.0,
        "taxPercentage": 10.0,
        "taxAmount": 10.0,
        "invoiceAmount": 110.0,
    }
