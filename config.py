"""Configuration settings for Salon Billing"""
import os

# Business Information
BUSINESS_NAME = "Salon"
BUSINESS_PHONE = ""
BUSINESS_ADDRESS = ""
CURRENCY_SYMBOL = "₹"

# Tax settings (percentages)
ENABLE_TAX = True
DEFAULT_SERVICE_TAX_RATE = 5

# Product tax categories
PRODUCT_TAX_RATES = {
    'essential': 5,
    'intermediate': 12,
    'standard': 18,
    'luxury': 28,
    'exempt': 0
}
DEFAULT_PRODUCT_TAX_CATEGORY = 'standard'

# CGST/SGST split for local (intra-state) GST. None = single consolidated tax.
GST_SPLIT_RATIO = 0.5

# Legacy per-staff commission defaults (percent)
DEFAULT_SERVICE_COMMISSION_RATE = 5
DEFAULT_PRODUCT_COMMISSION_RATE = 3

# Sum every item-based profile assigned to a staff member
STACK_ITEM_BASED_PROFILES = os.environ.get('SALON_STACK_PROFILES', 'true').lower() != 'false'

# Sale statuses excluded from revenue and commission
EXCLUDED_SALE_STATUSES = ['cancelled']

# Logging
LOG_LEVEL = os.environ.get('SALON_LOG_LEVEL', 'INFO').upper()
LOG_FORMAT = '%(asctime)s %(levelname)s %(name)s: %(message)s'

# Excel styling
EXCEL_STYLES = {
    'header_bg_color': 'D3D3D3',  # Light gray
    'summary_bg_color': '00FFFF',  # Cyan
    'font_name': 'Arial',
    'font_size': 10
}
