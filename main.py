"""Main entry point for Salon Billing"""
import argparse
import logging
import sys
from datetime import datetime
from pathlib import Path

from salon_billing.calculator import CommissionCalculator
from salon_billing.data_access import FileDataSource
from salon_billing.data_loader import DataLoader
from salon_billing.exceptions import BillingError
from salon_billing.html_exporter import ReceiptHTMLExporter
from salon_billing.report_generator import ReportGenerator
from salon_billing.tax import TaxCalculator
from config import CURRENCY_SYMBOL, LOG_FORMAT, LOG_LEVEL, STACK_ITEM_BASED_PROFILES

logger = logging.getLogger(__name__)


def _money(value) -> str:
    return f"{CURRENCY_SYMBOL}{value:,.2f}"


def run_commission(args) -> None:
    source = FileDataSource(args.sales, args.staff, args.profiles)
    calculator = CommissionCalculator(stack_item_based=not args.no_stacking)
    generator = ReportGenerator(source, calculator)

    start = DataLoader.parse_date(args.date_from)
    end = DataLoader.parse_date(args.date_to)
    results = generator.build(start, end)

    if args.output:
        output_path = args.output
    else:
        timestamp = datetime.now().strftime('%Y%m%d_%H%M%S')
        output_path = f"output/reports/commission_{timestamp}.xlsx"

    if Path(output_path).suffix.lower() == '.csv':
        generator.export_csv(output_path)
    else:
        generator.export_excel(output_path)
    print(f"Report saved to: {output_path}")

    # Print summary
    summary = calculator.calculate_summary(results)
    print(f"\n=== Summary ({generator.period_label()}) ===")
    print(f"Staff: {summary['staff_count']}")
    print(f"Total Revenue: {_money(summary['total_revenue'])}")
    print(f"Total Commission: {_money(summary['total_commission'])}")
    for result in results:
        note = "" if result.profile_breakdown else "  (no commission profile)"
        print(f"  {result.staff_name}: {_money(result.total_commission)} "
              f"on {_money(result.total_revenue)}{note}")


def run_receipt(args) -> None:
    source = FileDataSource(args.sales, args.staff)
    sale = source.get_sale(args.sale_id)
    if sale is None:
        raise BillingError(f"Sale {args.sale_id} not found in {args.sales}")

    calculator = TaxCalculator()
    totals = calculator.compute_receipt_totals(sale)

    print(f"=== Receipt {sale.id} ===")
    print(f"Subtotal: {_money(totals.subtotal)}")
    if totals.discount:
        print(f"Discount: -{_money(totals.discount)}")
    for component in totals.breakdown.components:
        print(f"{component.label} ({component.rate}%): {_money(component.amount)}"
              f"  [{calculator.format_tax_breakdown(component)}]")
    if totals.tip:
        print(f"Tip: {_money(totals.tip)}")
    if totals.round_off:
        print(f"Round Off: {_money(totals.round_off)}")
    print(f"Total: {_money(totals.total)}")

    if args.output:
        ReceiptHTMLExporter(calculator).export_html(sale, args.output)
        print(f"Receipt saved to: {args.output}")


def main(argv=None):
    parser = argparse.ArgumentParser(description='Salon receipt totals and staff commission reports')
    subparsers = parser.add_subparsers(dest='command', required=True)

    commission = subparsers.add_parser('commission', help='Generate the staff commission report')
    commission.add_argument('--sales', required=True, help='Sales export (JSON, CSV or Excel)')
    commission.add_argument('--staff', required=True, help='Staff directory (JSON)')
    commission.add_argument('--profiles', required=True, help='Commission profiles (JSON)')
    commission.add_argument('--from', dest='date_from', default=None, help='First sale date (YYYY-MM-DD)')
    commission.add_argument('--to', dest='date_to', default=None, help='Last sale date (YYYY-MM-DD)')
    commission.add_argument('--output', '-o', default=None, help='Output file path (.xlsx or .csv)')
    commission.add_argument('--no-stacking', action='store_true', default=not STACK_ITEM_BASED_PROFILES,
                            help='Pay only the best item-based profile per staff member')
    commission.set_defaults(func=run_commission)

    receipt = subparsers.add_parser('receipt', help='Show receipt totals for one sale')
    receipt.add_argument('--sales', required=True, help='Sales export (JSON, CSV or Excel)')
    receipt.add_argument('--staff', default=None, help='Staff directory (JSON), for name attribution')
    receipt.add_argument('--sale-id', required=True, help='Sale id or bill number')
    receipt.add_argument('--output', '-o', default=None, help='Write an HTML receipt preview here')
    receipt.set_defaults(func=run_receipt)

    args = parser.parse_args(argv)
    logging.basicConfig(level=LOG_LEVEL, format=LOG_FORMAT)

    try:
        args.func(args)
    except BillingError as e:
        logger.error("%s", e)
        sys.exit(1)


if __name__ == '__main__':
    main()
