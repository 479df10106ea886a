import pytest

from invoice_calculator import compute_totals, format_money, line_total, prefill_item, subtotal, tax, total
from schemas import InvoiceItem, ServiceRead

ITEMS = [
    InvoiceItem(description="Consultation", quantity=2, price=75),
    InvoiceItem(description="Vaccination", quantity=1, price=45),
]


def test_line_total():
    assert line_total(ITEMS[0]) == 150


def test_reference_invoice_totals():
    assert subtotal(ITEMS) == 195
    assert tax(ITEMS) == pytest.approx(15.6)
    assert total(ITEMS) == pytest.approx(210.6)


def test_totals_hold_together():
    totals = compute_totals(ITEMS)
    assert totals.total_amount == totals.subtotal + totals.tax_amount
    assert totals.tax_amount == totals.subtotal * 0.08


def test_empty_invoice_is_zero():
    assert subtotal([]) == 0
    assert total([]) == 0


def test_no_clamping_of_negative_or_zero_values():
    items = [
        InvoiceItem(description="Refund", quantity=1, price=-20),
        InvoiceItem(description="Free", quantity=0, price=100),
        InvoiceItem(description="X-Ray", quantity=1, price=150),
    ]
    assert subtotal(items) == 130


def test_custom_rate():
    assert tax(ITEMS, rate=0.1) == pytest.approx(19.5)
    assert compute_totals(ITEMS, rate=0).total_amount == 195


def test_full_precision_is_kept_until_display():
    items = [InvoiceItem(description="Pill", quantity=3, price=0.1)]
    sub = subtotal(items)
    assert sub != 0.3  # float arithmetic is kept as-is, not rounded
    assert format_money(sub) == "$0.30"


@pytest.mark.parametrize("amount, expected", [
    (210.6, "$210.60"),
    (15.600000000000001, "$15.60"),
    (1234.5, "$1,234.50"),
    (0, "$0.00"),
])
def test_format_money(amount, expected):
    assert format_money(amount) == expected


def test_prefill_item_from_service():
    service = ServiceRead(service_id=4, name="Dental Cleaning", price=200, category="Dental")
    item = prefill_item(service)
    assert item == InvoiceItem(service_id=4, description="Dental Cleaning", quantity=1, price=200)
