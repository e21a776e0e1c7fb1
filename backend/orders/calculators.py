"""
Order financial calculators.

Pure functions and a thin OrderCalculator wrapper. Every place that derives a
tax or a total (order recalculation, payment processing, split bills, split
payments) goes through `compute_tax`, so Order and Payment rows can never
drift apart by a rounding step.

Usage:
    from orders.calculators import compute_tax
    breakdown = compute_tax(subtotal, discount, gst_percent)
    breakdown.tax == breakdown.cgst + breakdown.sgst  # always exact
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable, Optional

from payments.money import ZERO, percent_of, round_money, to_decimal, Number


@dataclass(frozen=True)
class TaxBreakdown:
    net_subtotal: Decimal
    tax: Decimal
    cgst: Decimal
    sgst: Decimal


def split_gst(tax: Number) -> tuple:
    """
    Split GST into its central and state halves.

    CGST is rounded; SGST takes the remainder, so cgst + sgst == tax exactly.
    """
    tax = round_money(tax)
    cgst = round_money(tax / 2)
    return cgst, tax - cgst


def compute_tax(subtotal: Number, discount: Number, gst_percent: Number) -> TaxBreakdown:
    """
    GST on the discounted subtotal.

    A discount at or above the subtotal (e.g. Complementary) leaves a zero net
    subtotal and therefore zero tax.
    """
    net_subtotal = max(round_money(subtotal) - round_money(discount), ZERO)
    tax = percent_of(net_subtotal, gst_percent)
    cgst, sgst = split_gst(tax)
    return TaxBreakdown(net_subtotal=net_subtotal, tax=tax, cgst=cgst, sgst=sgst)


def discount_from_input(
    subtotal: Number, value: Optional[Number], discount_type: str = "amount"
) -> Decimal:
    """
    Convert a cashier-entered discount into an amount.

    `discount_type` is "amount" (value is currency) or "percent" (value is a
    percentage of the subtotal). Negative inputs count as no discount.
    """
    value = to_decimal(value)
    if value <= 0:
        return ZERO
    if (discount_type or "amount").lower() == "percent":
        return percent_of(subtotal, value)
    return round_money(value)


def order_total(net_subtotal: Number, tax: Number, tip: Number) -> Decimal:
    return round_money(to_decimal(net_subtotal) + to_decimal(tax) + to_decimal(tip))


class OrderCalculator:
    """
    Calculator bound to one order: item subtotal and derived totals.

    Operates on the item rows passed in (or the order's non-cancelled items), so
    the caller controls which snapshot of items it is computing from.
    """

    def __init__(self, order, items: Optional[Iterable] = None):
        self.order = order
        self._items = items

    @property
    def items(self):
        if self._items is None:
            self._items = list(self.order.items.exclude(status=self.order.items.model.ItemStatus.CANCELLED))
        return self._items

    def calculate_subtotal(self) -> Decimal:
        """
        Sum of line subtotals (unit price x quantity) of non-cancelled items.
        """
        return round_money(sum((item.unit_price * item.quantity for item in self.items), ZERO))

    def calculate_totals(self, gst_percent: Number) -> dict:
        """
        Subtotal, tax and total from the current items and the order's
        ledger-derived discount and tip.
        """
        subtotal = self.calculate_subtotal()
        breakdown = compute_tax(subtotal, self.order.discount_amount, gst_percent)
        return {
            "subtotal": subtotal,
            "tax_amount": breakdown.tax,
            "cgst_amount": breakdown.cgst,
            "sgst_amount": breakdown.sgst,
            "net_subtotal": breakdown.net_subtotal,
            "total_amount": order_total(breakdown.net_subtotal, breakdown.tax, self.order.tip_amount),
        }
