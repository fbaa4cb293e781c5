"""Data loading utilities for Salon Billing"""
import json
import logging
from datetime import date, datetime
from typing import Any, Dict, Iterable, List, Optional

import pandas as pd

from .exceptions import ValidationError
from .models import CommissionProfile, LineItem, Sale, StaffMember, TargetTier, to_decimal

logger = logging.getLogger(__name__)

DATE_FORMATS = ['%Y-%m-%d', '%Y%m%d', '%d/%m/%Y', '%m/%d/%Y', '%d-%m-%Y']

# Qualifying item names used by the commission profile screens
QUALIFYING_ITEM_KINDS = {
    'service': 'service',
    'services': 'service',
    'product': 'product',
    'products': 'product',
}


def _clean(value: Any) -> Any:
    """Normalize missing values (None, NaN, NaT, blank strings) to None."""
    if value is None:
        return None
    if isinstance(value, str):
        return value.strip() or None
    try:
        if pd.isna(value):
            return None
    except (TypeError, ValueError):
        pass
    return value


def _first(record: Dict[str, Any], *keys: str) -> Any:
    for key in keys:
        value = _clean(record.get(key))
        if value is not None:
            return value
    return None


def _text(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    return str(value)


class DataLoader:
    """
    Load sales, staff and commission profiles from REST exports and spreadsheets.

    Records are checked against a strict schema. Staff attribution of a line
    item follows a fixed precedence:

    1. the item's staffId
    2. the item's staffName (mapped to an id through the staff directory
       when one is supplied)
    3. the sale's staffId
    4. the sale's staffName (mapped the same way)
    """

    @staticmethod
    def parse_date(value: Any) -> Optional[date]:
        value = _clean(value)
        if value is None:
            return None
        if isinstance(value, datetime):
            return value.date()
        if isinstance(value, date):
            return value

        text = str(value)
        try:
            return date.fromisoformat(text[:10])
        except ValueError:
            pass
        for fmt in DATE_FORMATS:
            try:
                return datetime.strptime(text, fmt).date()
            except ValueError:
                continue
        raise ValidationError(f"Unrecognized date: {value!r}")

    @staticmethod
    def _staff_lookup(staff: Optional[Iterable[StaffMember]]) -> Dict[str, str]:
        return {member.name.strip().lower(): member.id for member in staff or [] if member.name}

    @staticmethod
    def _resolve_staff(staff_id: Any, staff_name: Any, staff_by_name: Dict[str, str]) -> Optional[str]:
        if staff_id is not None:
            return _text(staff_id)
        if staff_name is not None:
            return staff_by_name.get(str(staff_name).strip().lower(), str(staff_name))
        return None

    @classmethod
    def item_from_record(cls, record: Dict[str, Any], sale_staff_id: Optional[str] = None,
                         staff_by_name: Optional[Dict[str, str]] = None) -> LineItem:
        """Build a LineItem from a REST sale item."""
        kind = _first(record, 'type', 'kind')
        if kind is None:
            raise ValidationError(f"Item {record.get('name')!r} has no type")
        price = _first(record, 'price', 'unitPrice', 'unit_price')
        if price is None:
            raise ValidationError(f"Item {record.get('name')!r} has no price")
        quantity = _first(record, 'quantity', 'qty')
        quantity = 1 if quantity is None else quantity

        staff_name = _first(record, 'staffName', 'staff_name')
        staff_id = cls._resolve_staff(
            _first(record, 'staffId', 'staff_id'), staff_name, staff_by_name or {}
        ) or sale_staff_id

        discount = _first(record, 'discount')
        discount_type = str(_first(record, 'discountType', 'discount_type') or 'fixed').lower()
        total = _first(record, 'total')
        if discount is None and total is not None:
            # A total below price x quantity carries an item discount
            gross = to_decimal(price, 'price') * to_decimal(quantity, 'quantity')
            implied = gross - to_decimal(total, 'total')
            if implied < 0:
                raise ValidationError(
                    f"Item {record.get('name')!r} total {total} exceeds price x quantity {gross}"
                )
            discount, discount_type = implied, 'fixed'

        return LineItem(
            kind=str(kind).lower(),
            name=str(_first(record, 'name') or ''),
            unit_price=price,
            quantity=quantity,
            staff_id=staff_id,
            staff_name=_text(staff_name),
            tax_rate=_first(record, 'taxRate', 'tax_rate'),
            tax_category=_first(record, 'taxCategory', 'tax_category'),
            discount=discount or 0,
            discount_type=discount_type
        )

    @classmethod
    def sale_from_record(cls, record: Dict[str, Any],
                         staff: Optional[Iterable[StaffMember]] = None) -> Sale:
        """Build a Sale from a REST sale record."""
        sale_id = _first(record, '_id', 'id', 'billNo', 'receiptNumber')
        if sale_id is None:
            raise ValidationError("Sale record has no id")
        staff_by_name = cls._staff_lookup(staff)
        sale_staff_name = _first(record, 'staffName', 'staff_name')
        sale_staff_id = cls._resolve_staff(
            _first(record, 'staffId', 'staff_id'), sale_staff_name, staff_by_name
        )

        items = [
            cls.item_from_record(item, sale_staff_id, staff_by_name)
            for item in record.get('items') or []
        ]

        discount = _first(record, 'discount') or 0
        discount_percent = _first(record, 'discountPercent', 'discount_percent') or 0
        if str(_first(record, 'discountType', 'discount_type') or '').lower() == 'percentage':
            discount, discount_percent = 0, discount

        return Sale(
            id=_text(sale_id),
            items=tuple(items),
            sale_date=cls.parse_date(_first(record, 'date', 'saleDate', 'sale_date')),
            customer_id=_text(_first(record, 'customerId', 'clientId', 'customer_id')),
            discount=discount,
            discount_percent=discount_percent,
            tip=_first(record, 'tip') or 0,
            status=str(_first(record, 'status') or 'completed').lower(),
            service_tax_rate=_first(record, 'serviceTaxRate', 'service_tax_rate'),
            staff_id=sale_staff_id,
            staff_name=_text(sale_staff_name)
        )

    @classmethod
    def sales_from_records(cls, records: Iterable[Dict[str, Any]],
                           staff: Optional[Iterable[StaffMember]] = None) -> List[Sale]:
        staff = list(staff or [])
        return [cls.sale_from_record(record, staff) for record in records]

    @staticmethod
    def staff_from_record(record: Dict[str, Any]) -> StaffMember:
        staff_id = _first(record, '_id', 'id')
        if staff_id is None:
            raise ValidationError(f"Staff record {record.get('name')!r} has no id")
        return StaffMember(
            id=_text(staff_id),
            name=str(_first(record, 'name') or ''),
            commission_profile_ids=frozenset(
                str(pid) for pid in record.get('commissionProfileIds') or []
            ),
            service_commission_rate=_first(record, 'serviceCommissionRate', 'service_commission_rate'),
            product_commission_rate=_first(record, 'productCommissionRate', 'product_commission_rate')
        )

    @staticmethod
    def profile_from_record(record: Dict[str, Any]) -> CommissionProfile:
        """
        Build a CommissionProfile from a REST profile record.

        Accepts both the flat shape (serviceRate, productRate, tiers of
        {threshold, rate}) and the profile-editor shape (itemRates,
        targetTiers of {from, to, value}).
        """
        profile_id = _first(record, '_id', 'id')
        profile_type = _first(record, 'type')
        if profile_id is None or profile_type is None:
            raise ValidationError(f"Commission profile {record.get('name')!r} needs an id and a type")
        profile_id = _text(profile_id)

        service_rate = _first(record, 'serviceRate', 'service_rate') or 0
        product_rate = _first(record, 'productRate', 'product_rate') or 0
        for item_rate in record.get('itemRates') or []:
            if str(item_rate.get('calculateBy', 'percent')).lower() != 'percent':
                logger.warning("Profile %s: ignoring fixed-amount item rate %s", profile_id, item_rate)
                continue
            kind = QUALIFYING_ITEM_KINDS.get(str(item_rate.get('itemType', '')).lower())
            if kind == 'service':
                service_rate = item_rate.get('rate', 0)
            elif kind == 'product':
                product_rate = item_rate.get('rate', 0)

        tiers = []
        for tier in record.get('tiers') or record.get('targetTiers') or []:
            if str(tier.get('calculateBy', 'percent')).lower() != 'percent':
                raise ValidationError(
                    f"Profile {profile_id}: fixed-amount target tier {tier} is not a commission rate"
                )
            tiers.append(TargetTier(threshold=tier.get('threshold', tier.get('from')),
                                    rate=tier.get('rate', tier.get('value')),
                                    ceiling=tier.get('ceiling', tier.get('to'))))

        is_active = bool(record.get('isActive', record.get('is_active', True)))
        raw_items = record.get('qualifyingItems') or []
        qualifying = {
            QUALIFYING_ITEM_KINDS[str(name).lower()]
            for name in raw_items
            if str(name).lower() in QUALIFYING_ITEM_KINDS
        }
        if raw_items and not qualifying:
            logger.warning(
                "Profile %s qualifies only unsupported items %s; deactivating", profile_id, raw_items
            )
            is_active = False

        return CommissionProfile(
            id=profile_id,
            name=str(_first(record, 'name') or profile_id),
            type=str(profile_type).lower(),
            service_rate=service_rate,
            product_rate=product_rate,
            tiers=tiers,
            cascading=bool(record.get('cascadingCommission', record.get('cascading', False))),
            qualifying_items=frozenset(qualifying),
            is_active=is_active
        )

    # ------------------------------------------------------------------
    # Files
    # ------------------------------------------------------------------

    @staticmethod
    def load_json(filepath: str) -> List[Dict[str, Any]]:
        """
        Load a list of records from a JSON file.

        Accepts a bare list or the API envelope {"success": true, "data": [...]}.
        """
        with open(filepath, 'r', encoding='utf-8') as f:
            data = json.load(f)
        if isinstance(data, dict):
            data = data.get('data', [])
        if not isinstance(data, list):
            raise ValidationError(f"{filepath}: expected a list of records")
        return data

    @classmethod
    def load_sales_json(cls, filepath: str, staff: Optional[Iterable[StaffMember]] = None) -> List[Sale]:
        sales = cls.sales_from_records(cls.load_json(filepath), staff)
        logger.info("Loaded %d sales from %s", len(sales), filepath)
        return sales

    @classmethod
    def load_staff_json(cls, filepath: str) -> List[StaffMember]:
        """
        Load staff members from a JSON file.

        Expected format:
        [
            {"_id": "s1", "name": "Asha", "commissionProfileIds": ["p1"]},
            ...
        ]
        """
        return [cls.staff_from_record(record) for record in cls.load_json(filepath)]

    @classmethod
    def load_profiles_json(cls, filepath: str) -> List[CommissionProfile]:
        return [cls.profile_from_record(record) for record in cls.load_json(filepath)]

    @classmethod
    def load_sales_from_excel(cls, filepath: str,
                              staff: Optional[Iterable[StaffMember]] = None) -> List[Sale]:
        """
        Load sales from an Excel sheet with one line item per row.

        Expected columns:
        - Sale ID
        - Date, Customer ID, Status, Discount, Discount Percent, Tip,
          Service Tax Rate (optional, read from the sale's first row)
        - Type (service/product), Name, Price, Quantity
        - Staff ID / Staff Name, Tax Rate, Tax Category,
          Item Discount, Item Discount Type (optional, per row)
        """
        return cls.sales_from_frame(pd.read_excel(filepath), staff)

    @classmethod
    def load_sales_from_csv(cls, filepath: str,
                            staff: Optional[Iterable[StaffMember]] = None) -> List[Sale]:
        """Load sales from a CSV file with the same columns as the Excel sheet."""
        return cls.sales_from_frame(pd.read_csv(filepath), staff)

    @classmethod
    def sales_from_frame(cls, df: pd.DataFrame,
                         staff: Optional[Iterable[StaffMember]] = None) -> List[Sale]:
        # Normalize column names
        df = df.copy()
        df.columns = df.columns.str.strip().str.lower().str.replace(' ', '_')
        if 'sale_id' not in df.columns:
            raise ValidationError("Sales sheet needs a 'Sale ID' column")

        records = []
        for sale_id, group in df.groupby('sale_id', sort=False):
            rows = group.to_dict('records')
            first = rows[0]
            records.append({
                'id': sale_id,
                'date': first.get('date'),
                'customerId': first.get('customer_id'),
                'status': first.get('status'),
                'discount': first.get('discount'),
                'discountPercent': first.get('discount_percent'),
                'tip': first.get('tip'),
                'serviceTaxRate': first.get('service_tax_rate'),
                'items': [
                    {
                        'type': _first(row, 'type', 'kind'),
                        'name': row.get('name'),
                        'price': _first(row, 'price', 'unit_price'),
                        'quantity': row.get('quantity'),
                        'staffId': row.get('staff_id'),
                        'staffName': row.get('staff_name'),
                        'taxRate': row.get('tax_rate'),
                        'taxCategory': row.get('tax_category'),
                        'discount': row.get('item_discount'),
                        'discountType': row.get('item_discount_type'),
                    }
                    for row in rows
                ]
            })

        sales = cls.sales_from_records(records, staff)
        logger.info("Loaded %d sales (%d rows) from sheet", len(sales), len(df))
        return sales
