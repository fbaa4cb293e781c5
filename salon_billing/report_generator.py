"""Staff commission report generation for Salon Billing"""
import logging
from datetime import date
from pathlib import Path
from typing import List, Optional

import pandas as pd
from openpyxl import Workbook
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side
from openpyxl.utils import get_column_letter

from .calculator import CommissionCalculator
from .data_access import DataSource
from .models import CommissionResult, to_money
from config import BUSINESS_NAME, EXCEL_STYLES

logger = logging.getLogger(__name__)


def _amount(value) -> float:
    return float(to_money(value))


class ReportGenerator:
    """
    Generates staff performance reports with commission totals.

    Records come from the injected DataSource; nothing is fetched from
    shared state.
    """

    COLUMNS = [
        'Staff', 'Total Revenue', 'Service Revenue', 'Product Revenue', 'Transactions',
        'Services', 'Products', 'Service Commission', 'Product Commission',
        'Total Commission', 'Commission %', 'Profiles'
    ]
    # First column holding a number, for alignment and number formats
    FIRST_NUMERIC_COLUMN = 2

    def __init__(self, source: DataSource, calculator: Optional[CommissionCalculator] = None):
        self.source = source
        self.calculator = calculator or CommissionCalculator()
        self.results: List[CommissionResult] = []
        self.start: Optional[date] = None
        self.end: Optional[date] = None

    def build(self, start: Optional[date] = None, end: Optional[date] = None) -> List[CommissionResult]:
        """Calculate commission for every staff member, highest earner first."""
        sales = self.source.list_sales(start, end)
        results = self.calculator.calculate_for_all_staff(
            sales, self.source.list_staff(), self.source.list_profiles(), start, end
        )
        self.results = self.calculator.rank(results)
        self.start, self.end = start, end
        logger.info("Built commission report for %d staff from %d sales", len(self.results), len(sales))
        return self.results

    @staticmethod
    def _profiles_cell(result: CommissionResult) -> str:
        if not result.profile_breakdown:
            return 'Not configured'
        parts = []
        for entry in result.profile_breakdown:
            if not entry.configured:
                parts.append(f"{entry.profile_name}: not configured")
            elif not entry.applied:
                parts.append(f"{entry.profile_name}: not applied")
            else:
                parts.append(f"{entry.profile_name}: {to_money(entry.commission)}")
        return '; '.join(parts)

    def to_dataframe(self) -> pd.DataFrame:
        """
        Convert results to a pandas DataFrame.
        """
        data = []
        for r in self.results:
            data.append({
                'Staff': r.staff_name,
                'Total Revenue': _amount(r.total_revenue),
                'Service Revenue': _amount(r.service_revenue),
                'Product Revenue': _amount(r.product_revenue),
                'Transactions': r.total_transactions,
                'Services': r.service_count,
                'Products': r.product_count,
                'Service Commission': _amount(r.service_commission),
                'Product Commission': _amount(r.product_commission),
                'Total Commission': _amount(r.total_commission),
                'Commission %': _amount(r.effective_commission_rate),
                'Profiles': self._profiles_cell(r)
            })

        return pd.DataFrame(data, columns=self.COLUMNS)

    def get_summary_row(self) -> dict:
        """Get summary row data."""
        summary = self.calculator.calculate_summary(self.results)
        return {
            'Staff': f"{summary['staff_count']} Staff",
            'Total Revenue': _amount(summary['total_revenue']),
            'Service Revenue': _amount(summary['service_revenue']),
            'Product Revenue': _amount(summary['product_revenue']),
            'Transactions': summary['total_transactions'],
            'Services': summary['service_count'],
            'Products': summary['product_count'],
            'Service Commission': _amount(summary['service_commission']),
            'Product Commission': _amount(summary['product_commission']),
            'Total Commission': _amount(summary['total_commission']),
            'Commission %': _amount(summary['effective_commission_rate']),
            'Profiles': ''
        }

    def period_label(self) -> str:
        if self.start and self.end:
            return f"{self.start.strftime('%d/%m/%Y')} - {self.end.strftime('%d/%m/%Y')}"
        if self.start:
            return f"From {self.start.strftime('%d/%m/%Y')}"
        if self.end:
            return f"Until {self.end.strftime('%d/%m/%Y')}"
        return "All time"

    def export_csv(self, filepath: str) -> None:
        """Export report with a summary row to CSV."""
        df = pd.concat([self.to_dataframe(), pd.DataFrame([self.get_summary_row()])], ignore_index=True)
        Path(filepath).parent.mkdir(parents=True, exist_ok=True)
        df.to_csv(filepath, index=False)
        logger.info("Commission report saved to %s", filepath)

    def export_excel(self, filepath: str) -> None:
        """
        Export report to Excel file.

        Args:
            filepath: Path to save the Excel file
        """
        wb = Workbook()
        ws = wb.active
        ws.title = "Staff Performance"

        # Styles
        header_fill = PatternFill(start_color=EXCEL_STYLES['header_bg_color'],
                                  end_color=EXCEL_STYLES['header_bg_color'],
                                  fill_type='solid')
        summary_fill = PatternFill(start_color=EXCEL_STYLES['summary_bg_color'],
                                   end_color=EXCEL_STYLES['summary_bg_color'],
                                   fill_type='solid')
        header_font = Font(name=EXCEL_STYLES['font_name'],
                           size=EXCEL_STYLES['font_size'],
                           bold=True)
        title_font = Font(name=EXCEL_STYLES['font_name'],
                          size=14,
                          bold=True)
        border = Border(
            left=Side(style='thin'),
            right=Side(style='thin'),
            top=Side(style='thin'),
            bottom=Side(style='thin')
        )

        # Title section
        ws['A1'] = BUSINESS_NAME
        ws['A1'].font = title_font
        ws['A2'] = "Staff Performance & Commission"
        ws['A2'].font = Font(size=12, bold=True)
        ws['A3'] = f"Period: {self.period_label()}"

        # Data starts at row 5
        df = self.to_dataframe()
        start_row = 5

        # Headers
        for col_idx, col_name in enumerate(df.columns, 1):
            cell = ws.cell(row=start_row, column=col_idx, value=col_name)
            cell.fill = header_fill
            cell.font = header_font
            cell.border = border
            cell.alignment = Alignment(horizontal='center')

        # Data rows
        for row_idx, row in enumerate(df.itertuples(index=False), 1):
            for col_idx, value in enumerate(row, 1):
                cell = ws.cell(row=start_row + row_idx, column=col_idx, value=value)
                cell.border = border
                self._format_numeric(cell, col_idx, value)

        # Summary row
        summary_row = start_row + len(df) + 1
        summary_data = self.get_summary_row()
        for col_idx, col_name in enumerate(df.columns, 1):
            cell = ws.cell(row=summary_row, column=col_idx, value=summary_data[col_name])
            cell.fill = summary_fill
            cell.font = Font(bold=True)
            cell.border = border
            self._format_numeric(cell, col_idx, summary_data[col_name])

        # Adjust column widths
        column_widths = [20, 14, 14, 14, 12, 10, 10, 16, 16, 16, 12, 40]
        for idx, width in enumerate(column_widths, 1):
            ws.column_dimensions[get_column_letter(idx)].width = width

        # Save
        Path(filepath).parent.mkdir(parents=True, exist_ok=True)
        wb.save(filepath)
        logger.info("Commission report saved to %s", filepath)

    def _format_numeric(self, cell, col_idx: int, value) -> None:
        if col_idx < self.FIRST_NUMERIC_COLUMN or col_idx == len(self.COLUMNS):
            return
        cell.alignment = Alignment(horizontal='right')
        if isinstance(value, float):
            cell.number_format = '#,##0.00'
