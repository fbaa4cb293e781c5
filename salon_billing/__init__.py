"""Receipt tax and staff commission calculations for salon billing"""
from .calculator import CommissionCalculator
from .exceptions import BillingError, ValidationError
from .models import (
    CommissionProfile,
    CommissionResult,
    LineItem,
    ReceiptTotals,
    Sale,
    StaffMember,
    TargetTier,
    TaxSettings,
)
from .tax import TaxCalculator

__all__ = [
    'BillingError',
    'CommissionCalculator',
    'CommissionProfile',
    'CommissionResult',
    'LineItem',
    'ReceiptTotals',
    'Sale',
    'StaffMember',
    'TargetTier',
    'TaxCalculator',
    'TaxSettings',
    'ValidationError',
]
