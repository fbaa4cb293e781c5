"""Data models for Salon Billing"""
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Dict, FrozenSet, Iterable, List, Literal, Optional, Tuple

from .exceptions import ValidationError
from config import (
    DEFAULT_PRODUCT_COMMISSION_RATE,
    DEFAULT_PRODUCT_TAX_CATEGORY,
    DEFAULT_SERVICE_COMMISSION_RATE,
    DEFAULT_SERVICE_TAX_RATE,
    ENABLE_TAX,
    EXCLUDED_SALE_STATUSES,
    GST_SPLIT_RATIO,
    PRODUCT_TAX_RATES,
)

ItemKind = Literal['service', 'product']
SaleStatus = Literal['completed', 'partial', 'unpaid', 'cancelled', 'pending', 'overdue']
ProfileType = Literal['item_based', 'target_based']
DiscountType = Literal['fixed', 'percentage']

ITEM_KINDS = ('service', 'product')
SALE_STATUSES = ('completed', 'partial', 'unpaid', 'cancelled', 'pending', 'overdue')
PROFILE_TYPES = ('item_based', 'target_based')
DISCOUNT_TYPES = ('fixed', 'percentage')

ZERO = Decimal('0')
HUNDRED = Decimal('100')
CENT = Decimal('0.01')


def to_decimal(value, field_name: str = 'value') -> Decimal:
    """
    Coerce a number-like value to Decimal.

    Floats go through str() so 0.1 becomes Decimal('0.1') rather than its
    binary expansion. None and empty strings are treated as zero.
    """
    if isinstance(value, Decimal):
        result = value
    elif value is None or value == '':
        return ZERO
    elif isinstance(value, bool):
        raise ValidationError(f"{field_name} must be a number, got {value!r}")
    else:
        try:
            result = Decimal(str(value).strip().replace(',', ''))
        except (InvalidOperation, ValueError):
            raise ValidationError(f"{field_name} must be a number, got {value!r}") from None
    if not result.is_finite():
        raise ValidationError(f"{field_name} must be finite, got {value!r}")
    return result


def to_money(value: Decimal) -> Decimal:
    """Round to cents, half up."""
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def percent_of(amount: Decimal, rate: Decimal) -> Decimal:
    return amount * rate / HUNDRED


def _set(obj, name: str, value) -> None:
    # Coercion inside frozen dataclasses
    object.__setattr__(obj, name, value)


def _non_negative(value, field_name: str) -> Decimal:
    result = to_decimal(value, field_name)
    if result < 0:
        raise ValidationError(f"{field_name} cannot be negative, got {result}")
    return result


@dataclass(frozen=True)
class LineItem:
    """One sold line within a sale"""
    kind: ItemKind
    name: str
    unit_price: Decimal
    quantity: int = 1
    staff_id: Optional[str] = None
    staff_name: Optional[str] = None
    tax_rate: Optional[Decimal] = None  # Products only; None = use tax_category
    tax_category: Optional[str] = None
    discount: Decimal = ZERO
    discount_type: DiscountType = 'fixed'

    def __post_init__(self):
        if self.kind not in ITEM_KINDS:
            raise ValidationError(f"Item kind must be one of {ITEM_KINDS}, got {self.kind!r}")
        _set(self, 'unit_price', _non_negative(self.unit_price, 'unit_price'))

        quantity = to_decimal(self.quantity, 'quantity')
        if quantity != quantity.to_integral_value():
            raise ValidationError(f"Quantity must be a whole number, got {quantity}")
        if quantity < 1:
            raise ValidationError(f"Quantity must be positive, got {quantity}")
        _set(self, 'quantity', int(quantity))

        if self.tax_rate is not None:
            _set(self, 'tax_rate', _non_negative(self.tax_rate, 'tax_rate'))
        if self.tax_category is not None:
            _set(self, 'tax_category', str(self.tax_category).strip().lower() or None)

        if self.discount_type not in DISCOUNT_TYPES:
            raise ValidationError(f"Discount type must be one of {DISCOUNT_TYPES}, got {self.discount_type!r}")
        _set(self, 'discount', _non_negative(self.discount, 'discount'))
        if self.discount_type == 'percentage' and self.discount > HUNDRED:
            raise ValidationError(f"Percentage discount cannot exceed 100, got {self.discount}")
        if self.discount_amount > self.gross:
            raise ValidationError(
                f"Discount {self.discount_amount} exceeds line total {self.gross} for '{self.name}'"
            )

    @property
    def gross(self) -> Decimal:
        return self.unit_price * self.quantity

    @property
    def discount_amount(self) -> Decimal:
        if self.discount_type == 'percentage':
            return percent_of(self.gross, self.discount)
        return self.discount

    @property
    def total(self) -> Decimal:
        """Line total after the item-level discount."""
        return self.gross - self.discount_amount


@dataclass(frozen=True)
class Sale:
    """A completed point-of-sale transaction. Never mutated by the calculators."""
    id: str
    items: Tuple[LineItem, ...] = ()
    sale_date: Optional[date] = None
    customer_id: Optional[str] = None
    discount: Decimal = ZERO
    discount_percent: Decimal = ZERO
    tip: Decimal = ZERO
    status: SaleStatus = 'completed'
    service_tax_rate: Optional[Decimal] = None  # Overrides the configured service rate
    staff_id: Optional[str] = None
    staff_name: Optional[str] = None

    def __post_init__(self):
        items = tuple(self.items)
        for item in items:
            if not isinstance(item, LineItem):
                raise ValidationError(f"Sale {self.id} items must be LineItem, got {type(item).__name__}")
        _set(self, 'items', items)

        if self.status not in SALE_STATUSES:
            raise ValidationError(f"Sale status must be one of {SALE_STATUSES}, got {self.status!r}")

        _set(self, 'discount', _non_negative(self.discount, 'discount'))
        _set(self, 'discount_percent', _non_negative(self.discount_percent, 'discount_percent'))
        if self.discount_percent > HUNDRED:
            raise ValidationError(f"Discount percent cannot exceed 100, got {self.discount_percent}")
        _set(self, 'tip', _non_negative(self.tip, 'tip'))
        if self.service_tax_rate is not None:
            _set(self, 'service_tax_rate', _non_negative(self.service_tax_rate, 'service_tax_rate'))

        if self.total_discount > self.subtotal:
            raise ValidationError(
                f"Sale {self.id} discount {self.total_discount} exceeds subtotal {self.subtotal}"
            )

    @property
    def subtotal(self) -> Decimal:
        """Sum of item totals before the sale-wide discount."""
        return sum((item.total for item in self.items), ZERO)

    @property
    def total_discount(self) -> Decimal:
        return self.discount + percent_of(self.subtotal, self.discount_percent)

    @property
    def is_cancelled(self) -> bool:
        return self.status in EXCLUDED_SALE_STATUSES

    def in_period(self, start: Optional[date] = None, end: Optional[date] = None) -> bool:
        """True if the sale falls within [start, end]. Undated sales fall outside any bounded period."""
        if start is None and end is None:
            return True
        if self.sale_date is None:
            return False
        if start is not None and self.sale_date < start:
            return False
        return end is None or self.sale_date <= end

    @property
    def service_items(self) -> List[LineItem]:
        return [item for item in self.items if item.kind == 'service']

    @property
    def product_items(self) -> List[LineItem]:
        return [item for item in self.items if item.kind == 'product']


@dataclass(frozen=True)
class TargetTier:
    """
    Revenue threshold and the commission rate (%) it unlocks.

    ceiling, when set, caps the revenue band a cascading profile pays at
    this tier's rate. Without it the band runs up to the next threshold.
    """
    threshold: Decimal
    rate: Decimal
    ceiling: Optional[Decimal] = None

    def __post_init__(self):
        _set(self, 'threshold', _non_negative(self.threshold, 'threshold'))
        _set(self, 'rate', _non_negative(self.rate, 'rate'))
        if self.ceiling is not None:
            ceiling = to_decimal(self.ceiling, 'ceiling')
            if ceiling < self.threshold:
                raise ValidationError(f"Tier ceiling {ceiling} is below its threshold {self.threshold}")
            _set(self, 'ceiling', ceiling)


def _to_tier(value) -> TargetTier:
    if isinstance(value, TargetTier):
        return value
    if isinstance(value, dict):
        return TargetTier(threshold=value.get('threshold'), rate=value.get('rate'),
                          ceiling=value.get('ceiling'))
    return TargetTier(*value)


@dataclass
class CommissionProfile:
    """
    A named commission rule set assignable to staff.

    item_based profiles pay service_rate / product_rate (%) on attributed
    revenue. target_based profiles pick the tier with the highest threshold
    not exceeding period revenue and pay its rate on the whole revenue, or
    each band at its own rate when cascading is set.

    qualifying_items restricts the revenue the profile looks at; empty
    means all attributed revenue.
    """
    id: str
    name: str
    type: ProfileType
    service_rate: Decimal = ZERO
    product_rate: Decimal = ZERO
    tiers: List[TargetTier] = field(default_factory=list)
    cascading: bool = False
    qualifying_items: FrozenSet[str] = frozenset()
    is_active: bool = True

    def __post_init__(self):
        if self.type not in PROFILE_TYPES:
            raise ValidationError(f"Profile type must be one of {PROFILE_TYPES}, got {self.type!r}")
        self.service_rate = _non_negative(self.service_rate, 'service_rate')
        self.product_rate = _non_negative(self.product_rate, 'product_rate')

        self.tiers = [_to_tier(tier) for tier in self.tiers]
        for previous, current in zip(self.tiers, self.tiers[1:]):
            if current.threshold <= previous.threshold:
                raise ValidationError(
                    f"Profile {self.id} tier thresholds must be strictly increasing "
                    f"({previous.threshold} then {current.threshold})"
                )

        self.qualifying_items = frozenset(self.qualifying_items)
        unknown = self.qualifying_items - set(ITEM_KINDS)
        if unknown:
            raise ValidationError(f"Profile {self.id} has unknown qualifying items: {sorted(unknown)}")

    @property
    def scope(self) -> FrozenSet[str]:
        return self.qualifying_items or frozenset(ITEM_KINDS)

    def covers(self, kind: str) -> bool:
        return kind in self.scope


@dataclass
class StaffMember:
    """A staff member who can be credited with sold items"""
    id: str
    name: str = ""
    commission_profile_ids: FrozenSet[str] = frozenset()
    # Legacy per-staff rates (percent), used by the rate-based calculation
    service_commission_rate: Optional[Decimal] = None
    product_commission_rate: Optional[Decimal] = None

    def __post_init__(self):
        self.commission_profile_ids = frozenset(str(pid) for pid in self.commission_profile_ids)
        if self.service_commission_rate is not None:
            self.service_commission_rate = to_decimal(self.service_commission_rate, 'service_commission_rate')
        if self.product_commission_rate is not None:
            self.product_commission_rate = to_decimal(self.product_commission_rate, 'product_commission_rate')


@dataclass
class TaxSettings:
    """Business tax configuration. split_ratio None means a single consolidated tax."""
    enable_tax: bool = ENABLE_TAX
    service_rate: Decimal = DEFAULT_SERVICE_TAX_RATE
    category_rates: Dict[str, Decimal] = field(default_factory=lambda: dict(PRODUCT_TAX_RATES))
    default_category: str = DEFAULT_PRODUCT_TAX_CATEGORY
    split_ratio: Optional[Decimal] = GST_SPLIT_RATIO

    def __post_init__(self):
        self.service_rate = _non_negative(self.service_rate, 'service_rate')
        self.category_rates = {
            str(name).lower(): _non_negative(rate, f"{name} rate")
            for name, rate in self.category_rates.items()
        }
        if self.default_category not in self.category_rates:
            raise ValidationError(f"Unknown default tax category {self.default_category!r}")
        if self.split_ratio is not None:
            self.split_ratio = to_decimal(self.split_ratio, 'split_ratio')
            if not ZERO <= self.split_ratio <= 1:
                raise ValidationError(f"Split ratio must be between 0 and 1, got {self.split_ratio}")

    def rate_for_category(self, category: Optional[str]) -> Decimal:
        if category and category in self.category_rates:
            return self.category_rates[category]
        return self.category_rates[self.default_category]


@dataclass(frozen=True)
class TaxComponent:
    """Tax on one component of a receipt (services, or products at one rate)"""
    label: str
    rate: Decimal
    taxable_amount: Decimal
    amount: Decimal
    cgst: Optional[Decimal] = None
    sgst: Optional[Decimal] = None

    @property
    def is_split(self) -> bool:
        return self.cgst is not None


@dataclass
class TaxBreakdown:
    """Service tax plus product tax grouped by rate"""
    service: Optional[TaxComponent] = None
    products: Dict[Decimal, TaxComponent] = field(default_factory=dict)

    @property
    def components(self) -> List[TaxComponent]:
        components = [self.service] if self.service else []
        components.extend(self.products[rate] for rate in sorted(self.products))
        return components

    @property
    def service_tax(self) -> Decimal:
        return self.service.amount if self.service else ZERO

    @property
    def service_rate(self) -> Optional[Decimal]:
        return self.service.rate if self.service else None

    @property
    def product_tax_by_rate(self) -> Dict[Decimal, Decimal]:
        return {rate: component.amount for rate, component in self.products.items()}

    @property
    def total(self) -> Decimal:
        return sum((c.amount for c in self.components), ZERO)

    @property
    def cgst(self) -> Decimal:
        return sum((c.cgst for c in self.components if c.is_split), ZERO)

    @property
    def sgst(self) -> Decimal:
        return sum((c.sgst for c in self.components if c.is_split), ZERO)


@dataclass
class ReceiptTotals:
    """Result of receipt tax calculation for one sale"""
    sale_id: str
    subtotal: Decimal
    discount: Decimal
    tax: Decimal
    tip: Decimal
    total: Decimal  # Whole currency units
    round_off: Decimal
    breakdown: TaxBreakdown

    @property
    def pre_round_total(self) -> Decimal:
        return self.subtotal - self.discount + self.tax + self.tip

    def reconciles(self) -> bool:
        return self.pre_round_total + self.round_off == self.total


@dataclass
class ProfileBreakdown:
    """One profile's contribution to a staff member's commission"""
    profile_id: str
    profile_name: str
    profile_type: ProfileType
    commission: Decimal
    service_commission: Decimal
    product_commission: Decimal
    revenue: Decimal
    item_count: int
    rate: Optional[Decimal] = None  # Tier rate selected (target_based only)
    applied: bool = True  # False when stacking is disabled and another profile won
    configured: bool = True  # False for target_based profiles without tiers


@dataclass
class CommissionResult:
    """Commission owed to one staff member for a period"""
    staff_id: str
    staff_name: str
    service_revenue: Decimal = ZERO
    product_revenue: Decimal = ZERO
    service_count: int = 0
    product_count: int = 0
    total_transactions: int = 0
    service_commission: Decimal = ZERO
    product_commission: Decimal = ZERO
    total_commission: Decimal = ZERO
    effective_commission_rate: Decimal = ZERO  # Percent of total revenue
    profile_breakdown: List[ProfileBreakdown] = field(default_factory=list)
    missing_profile_ids: List[str] = field(default_factory=list)

    @property
    def total_revenue(self) -> Decimal:
        return self.service_revenue + self.product_revenue

    @property
    def average_commission_per_transaction(self) -> Decimal:
        if not self.total_transactions:
            return ZERO
        return self.total_commission / self.total_transactions


@dataclass
class RateCommissionConfig:
    """Legacy flat service/product commission rates (percent) with optional clamps"""
    service_rate: Decimal = DEFAULT_SERVICE_COMMISSION_RATE
    product_rate: Decimal = DEFAULT_PRODUCT_COMMISSION_RATE
    minimum_commission: Optional[Decimal] = None
    maximum_commission: Optional[Decimal] = None

    def __post_init__(self):
        self.service_rate = to_decimal(self.service_rate, 'service_rate')
        self.product_rate = to_decimal(self.product_rate, 'product_rate')
        if self.minimum_commission is not None:
            self.minimum_commission = to_decimal(self.minimum_commission, 'minimum_commission')
        if self.maximum_commission is not None:
            self.maximum_commission = to_decimal(self.maximum_commission, 'maximum_commission')

    def validate(self) -> List[str]:
        """Return a list of configuration errors; empty when valid."""
        errors = []
        if not ZERO <= self.service_rate <= HUNDRED:
            errors.append('Service commission rate must be between 0 and 100')
        if not ZERO <= self.product_rate <= HUNDRED:
            errors.append('Product commission rate must be between 0 and 100')
        if self.minimum_commission is not None and self.minimum_commission < 0:
            errors.append('Minimum commission must be positive')
        if self.maximum_commission is not None and self.maximum_commission < 0:
            errors.append('Maximum commission must be positive')
        if (self.minimum_commission is not None and self.maximum_commission is not None
                and self.minimum_commission > self.maximum_commission):
            errors.append('Minimum commission cannot be greater than maximum commission')
        return errors

    @classmethod
    def for_staff(cls, staff: StaffMember, defaults: Optional['RateCommissionConfig'] = None) -> 'RateCommissionConfig':
        """Staff-specific rates, falling back to defaults."""
        defaults = defaults or cls()
        return cls(
            service_rate=(staff.service_commission_rate
                          if staff.service_commission_rate is not None else defaults.service_rate),
            product_rate=(staff.product_commission_rate
                          if staff.product_commission_rate is not None else defaults.product_rate),
            minimum_commission=defaults.minimum_commission,
            maximum_commission=defaults.maximum_commission,
        )


def index_profiles(profiles: Iterable[CommissionProfile]) -> Dict[str, CommissionProfile]:
    return {profile.id: profile for profile in profiles}
