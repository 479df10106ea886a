"""Monetary totals for invoice line items.

Everything here works at full float precision. Rounding to cents happens only in
``format_money``, at the display boundary, so repeated edits of an invoice never
accumulate rounding error.
"""
from typing import Iterable

from schemas import InvoiceItem, InvoiceTotals, ServiceRead
from settings import TAX_RATE


def line_total(item) -> float:
    return item.quantity * item.price


def subtotal(items: Iterable) -> float:
    # No clamping: zero or negative quantities and prices are summed as given
    return sum((line_total(item) for item in items), 0.0)


def tax(items: Iterable, rate: float = TAX_RATE) -> float:
    return subtotal(items) * rate


def total(items: Iterable, rate: float = TAX_RATE) -> float:
    items = list(items)
    return subtotal(items) + tax(items, rate)


def compute_totals(items: Iterable, rate: float = TAX_RATE) -> InvoiceTotals:
    items = list(items)
    sub = subtotal(items)
    tax_amount = sub * rate
    return InvoiceTotals(subtotal=sub, tax_amount=tax_amount, total_amount=sub + tax_amount)


def format_money(amount: float) -> str:
    return f"${amount:,.2f}"


def prefill_item(service: ServiceRead, quantity: float = 1) -> InvoiceItem:
    """Line item filled in from a catalogue service."""
    return InvoiceItem(
        service_id=service.service_id,
        description=service.name,
        quantity=quantity,
        price=service.price,
    )
