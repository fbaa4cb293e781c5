"""Receipt tax calculation for Salon Billing"""
import logging
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, Optional

from .models import (
    LineItem,
    ReceiptTotals,
    Sale,
    TaxBreakdown,
    TaxComponent,
    TaxSettings,
    ZERO,
    percent_of,
    to_money,
)
from config import CURRENCY_SYMBOL

logger = logging.getLogger(__name__)

WHOLE_UNIT = Decimal('1')


class TaxCalculator:
    """
    Computes the tax and total breakdown printed on a receipt.

    Business Logic:
    ===============

    Services:
    - One service rate for the whole sale (the sale's own override, or the
      configured rate), applied to the sum of service lines

    Products:
    - Each product line is taxed at its own rate (explicit rate, else its
      tax category's rate)
    - Lines are grouped per rate; different rates are never merged

    Discount:
    - Subtracted once, sale-wide
    - Each tax component is taxed on its amount minus its proportional share
      of the discount

    CGST / SGST:
    - Every component is split by the configured ratio (0.5 for local GST),
      SGST takes the remainder so the halves always add back up exactly

    Total:
    - subtotal - discount + tax + tip, rounded to a whole currency unit
      (cash-friendly billing)
    - round_off is reported separately so the printed lines reconcile
    - Tip is never taxed
    """

    def __init__(self, settings: Optional[TaxSettings] = None):
        self.settings = settings or TaxSettings()

    def service_rate_for(self, sale: Sale) -> Decimal:
        if sale.service_tax_rate is not None:
            return sale.service_tax_rate
        return self.settings.service_rate

    def rate_for(self, item: LineItem, service_rate: Optional[Decimal] = None) -> Decimal:
        """Tax rate (%) applicable to a line item."""
        if not self.settings.enable_tax:
            return ZERO
        if item.kind == 'service':
            return service_rate if service_rate is not None else self.settings.service_rate
        if item.tax_rate is not None:
            return item.tax_rate
        return self.settings.rate_for_category(item.tax_category)

    def calculate_item_tax(self, item: LineItem, service_rate: Optional[Decimal] = None) -> TaxComponent:
        """
        Calculate tax for a single line, ignoring any sale-wide discount.

        Used for per-line display on receipts.
        """
        rate = self.rate_for(item, service_rate)
        return self._component(item.name, rate, item.total, to_money(percent_of(item.total, rate)))

    def compute_receipt_totals(self, sale: Sale) -> ReceiptTotals:
        """
        Calculate receipt totals for a sale.

        Args:
            sale: The sale to total

        Returns:
            ReceiptTotals with the tax breakdown and rounded total
        """
        subtotal = sale.subtotal
        discount = sale.total_discount

        breakdown = self._compute_breakdown(sale, subtotal, discount)
        tax = breakdown.total

        pre_round_total = subtotal - discount + tax + sale.tip
        total = pre_round_total.quantize(WHOLE_UNIT, rounding=ROUND_HALF_UP)

        logger.debug(
            "Sale %s: subtotal=%s discount=%s tax=%s tip=%s total=%s",
            sale.id, subtotal, discount, tax, sale.tip, total
        )

        return ReceiptTotals(
            sale_id=sale.id,
            subtotal=subtotal,
            discount=discount,
            tax=tax,
            tip=sale.tip,
            total=total,
            round_off=total - pre_round_total,
            breakdown=breakdown
        )

    def _compute_breakdown(self, sale: Sale, subtotal: Decimal, discount: Decimal) -> TaxBreakdown:
        breakdown = TaxBreakdown()
        if not self.settings.enable_tax:
            return breakdown

        service_items = sale.service_items
        if service_items:
            service_total = sum((item.total for item in service_items), ZERO)
            breakdown.service = self._taxed(
                'Service', self.service_rate_for(sale), service_total, subtotal, discount
            )

        buckets: Dict[Decimal, Decimal] = {}
        for item in sale.product_items:
            rate = self.rate_for(item)
            buckets[rate] = buckets.get(rate, ZERO) + item.total

        for rate in sorted(buckets):
            breakdown.products[rate] = self._taxed(
                f"Product @ {rate}%", rate, buckets[rate], subtotal, discount
            )

        return breakdown

    def _taxed(self, label: str, rate: Decimal, amount: Decimal,
               subtotal: Decimal, discount: Decimal) -> TaxComponent:
        taxable = amount
        if subtotal and discount:
            taxable = to_money(amount - discount * amount / subtotal)
        return self._component(label, rate, taxable, to_money(percent_of(taxable, rate)))

    def _component(self, label: str, rate: Decimal, taxable: Decimal, amount: Decimal) -> TaxComponent:
        ratio = self.settings.split_ratio
        if ratio is None:
            return TaxComponent(label=label, rate=rate, taxable_amount=taxable, amount=amount)
        cgst = amount * ratio
        return TaxComponent(
            label=label,
            rate=rate,
            taxable_amount=taxable,
            amount=amount,
            cgst=cgst,
            sgst=amount - cgst
        )

    def format_tax_breakdown(self, component: TaxComponent, currency_symbol: str = CURRENCY_SYMBOL) -> str:
        """Format a tax component for display, e.g. 'CGST (9.0%): ₹45.00 + SGST (9.0%): ₹45.00'."""
        if component.amount == 0:
            return 'No Tax'
        if not component.is_split:
            return f"Tax ({component.rate:.1f}%): {currency_symbol}{component.amount:.2f}"
        cgst_rate = component.rate * component.cgst / component.amount
        sgst_rate = component.rate - cgst_rate
        return (
            f"CGST ({cgst_rate:.1f}%): {currency_symbol}{component.cgst:.2f} + "
            f"SGST ({sgst_rate:.1f}%): {currency_symbol}{component.sgst:.2f}"
        )
