"""HTML receipt exporter for Salon Billing"""
import html
import logging
from decimal import Decimal
from pathlib import Path
from typing import Optional

from .models import ReceiptTotals, Sale, TaxComponent, to_money
from .tax import TaxCalculator
from config import BUSINESS_ADDRESS, BUSINESS_NAME, BUSINESS_PHONE, CURRENCY_SYMBOL

logger = logging.getLogger(__name__)


class ReceiptHTMLExporter:
    """
    Generates a printable HTML receipt preview for a sale.
    Styled for 80mm thermal printers.
    """

    HTML_TEMPLATE = """<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>{title}</title>
    <style>
        * {{
            margin: 0;
            padding: 0;
            box-sizing: border-box;
        }}

        body {{
            font-family: 'Courier New', monospace;
            font-size: 12px;
            background-color: #f5f5f5;
            padding: 20px;
        }}

        .receipt {{
            width: 80mm;
            margin: 0 auto;
            background-color: white;
            padding: 10px;
            box-shadow: 0 2px 5px rgba(0,0,0,0.1);
        }}

        .header {{
            text-align: center;
            margin-bottom: 10px;
        }}

        .business-name {{
            font-size: 16px;
            font-weight: bold;
        }}

        table {{
            width: 100%;
            border-collapse: collapse;
        }}

        td {{
            padding: 2px 0;
            vertical-align: top;
        }}

        .items td {{
            border-bottom: 1px dashed #ccc;
        }}

        .money {{
            text-align: right;
            white-space: nowrap;
        }}

        .tax-line td {{
            font-size: 11px;
            color: #555;
        }}

        .grand-total td {{
            font-size: 14px;
            font-weight: bold;
            border-top: 1px solid #333;
            padding-top: 4px;
        }}

        @media print {{
            body {{
                background-color: white;
                padding: 0;
            }}

            .receipt {{
                box-shadow: none;
            }}
        }}
    </style>
</head>
<body>
    <div class="receipt">
        <div class="header">
            <div class="business-name">{business_name}</div>
            <div>{business_address}</div>
            <div>{business_phone}</div>
            <div>Receipt #{sale_id} {sale_date}</div>
        </div>
        <table class="items">
{item_rows}
        </table>
        <table class="totals">
{total_rows}
        </table>
    </div>
</body>
</html>"""

    ITEM_ROW_TEMPLATE = """            <tr>
                <td>{name}{discount}</td>
                <td class="money">{quantity} x {unit_price}</td>
                <td class="money">{total}</td>
            </tr>"""

    TOTAL_ROW_TEMPLATE = """            <tr class="{css_class}">
                <td>{label}</td>
                <td class="money">{amount}</td>
            </tr>"""

    def __init__(self, calculator: Optional[TaxCalculator] = None,
                 currency_symbol: str = CURRENCY_SYMBOL):
        self.calculator = calculator or TaxCalculator()
        self.currency_symbol = currency_symbol

    def _format_money(self, value: Decimal) -> str:
        """Format money value."""
        value = to_money(value)
        if value < 0:
            return f"-{self.currency_symbol}{abs(value):,.2f}"
        return f"{self.currency_symbol}{value:,.2f}"

    def _total_row(self, label: str, amount: Decimal, css_class: str = "") -> str:
        return self.TOTAL_ROW_TEMPLATE.format(
            css_class=css_class,
            label=html.escape(label),
            amount=self._format_money(amount)
        )

    def _tax_rows(self, component: TaxComponent) -> list:
        label = "Service Tax" if component.label == 'Service' else "Product Tax"
        rows = [self._total_row(f"{label} ({component.rate}%)", component.amount)]
        if component.is_split:
            half_rate = component.rate * component.cgst / component.amount if component.amount else Decimal(0)
            rows.append(self._total_row(f"  CGST ({half_rate:.1f}%)", component.cgst, "tax-line"))
            rows.append(self._total_row(f"  SGST ({component.rate - half_rate:.1f}%)", component.sgst, "tax-line"))
        return rows

    def generate_html(self, sale: Sale, totals: Optional[ReceiptTotals] = None) -> str:
        """Generate the receipt HTML. Totals are computed when not given."""
        totals = totals or self.calculator.compute_receipt_totals(sale)

        item_rows = []
        for item in sale.items:
            discount = ""
            if item.discount:
                if item.discount_type == 'percentage':
                    discount = f" ({item.discount}% off)"
                else:
                    discount = f" ({self._format_money(item.discount)} off)"
            item_rows.append(self.ITEM_ROW_TEMPLATE.format(
                name=html.escape(item.name),
                discount=html.escape(discount),
                quantity=item.quantity,
                unit_price=self._format_money(item.unit_price),
                total=self._format_money(item.total)
            ))

        total_rows = [self._total_row("Subtotal", totals.subtotal)]
        if totals.discount:
            total_rows.append(self._total_row("Discount", -totals.discount))
        for component in totals.breakdown.components:
            total_rows.extend(self._tax_rows(component))
        if totals.tip:
            total_rows.append(self._total_row("Tip", totals.tip))
        if totals.round_off:
            total_rows.append(self._total_row("Round Off", totals.round_off))
        total_rows.append(self._total_row("Total", totals.total, "grand-total"))

        return self.HTML_TEMPLATE.format(
            title=html.escape(f"{BUSINESS_NAME} - Receipt {sale.id}"),
            business_name=html.escape(BUSINESS_NAME),
            business_address=html.escape(BUSINESS_ADDRESS),
            business_phone=html.escape(BUSINESS_PHONE),
            sale_id=html.escape(sale.id),
            sale_date=sale.sale_date.strftime('%d/%m/%Y') if sale.sale_date else "",
            item_rows="\n".join(item_rows),
            total_rows="\n".join(total_rows)
        )

    def export_html(self, sale: Sale, filepath: str) -> None:
        """Export receipt to HTML file."""
        content = self.generate_html(sale)

        Path(filepath).parent.mkdir(parents=True, exist_ok=True)
        with open(filepath, 'w', encoding='utf-8') as f:
            f.write(content)
        logger.info("Receipt %s saved to %s", sale.id, filepath)
