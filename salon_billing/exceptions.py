"""Exceptions raised by the billing engine"""


class BillingError(Exception):
    """Base class for billing errors"""


class ValidationError(BillingError, ValueError):
    """Malformed or out-of-range financial input"""
