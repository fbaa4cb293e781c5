"""Commission calculation logic for Salon Billing"""
import logging
from datetime import date
from typing import Dict, Iterable, List, Mapping, Optional, Tuple, Union

from .exceptions import ValidationError
from .models import (
    CommissionProfile,
    CommissionResult,
    LineItem,
    ProfileBreakdown,
    RateCommissionConfig,
    Sale,
    StaffMember,
    TargetTier,
    ZERO,
    index_profiles,
    percent_of,
)
from config import STACK_ITEM_BASED_PROFILES

logger = logging.getLogger(__name__)

StaffRef = Union[StaffMember, str]
Profiles = Union[Mapping[str, CommissionProfile], Iterable[CommissionProfile]]


class CommissionCalculator:
    """
    Calculates staff commission from sales and assigned commission profiles.

    Business Logic:
    ===============

    Attribution:
    - Cancelled sales never count
    - Each line item is credited to the staff member on the item itself, so
      one sale can credit several staff members independently
    - Items with no staff member of their own go to the sale's staff member

    Item-based profiles:
    - commission = service revenue x service rate + product revenue x product rate
    - Several item-based profiles on one staff member stack additively unless
      stacking is disabled, in which case only the best one is paid

    Target-based profiles:
    - Period revenue picks the tier with the highest threshold not above it
    - That tier's rate is paid on the whole revenue (flat rate on total)
    - Cascading profiles pay each tier band at its own rate instead
    - A profile without tiers pays 0 and is flagged as not configured

    Profiles only look at their qualifying item kinds when they declare any.
    """

    def __init__(self, stack_item_based: bool = STACK_ITEM_BASED_PROFILES):
        self.stack_item_based = stack_item_based

    # ------------------------------------------------------------------
    # Attribution
    # ------------------------------------------------------------------

    def attributed_items(self, staff_id: str, sales: Iterable[Sale],
                         start: Optional[date] = None,
                         end: Optional[date] = None) -> List[Tuple[Sale, LineItem]]:
        """
        Line items credited to a staff member, from non-cancelled sales in the period.

        An item's own staff member wins; items without one fall back to the
        sale's staff member.
        """
        return [
            (sale, item)
            for sale in sales
            if not sale.is_cancelled and sale.in_period(start, end)
            for item in sale.items
            if (item.staff_id or sale.staff_id) == staff_id
        ]

    # ------------------------------------------------------------------
    # Profile-based commission
    # ------------------------------------------------------------------

    def calculate_for_staff(self, staff: StaffRef, sales: Iterable[Sale], profiles: Profiles,
                            start: Optional[date] = None,
                            end: Optional[date] = None) -> CommissionResult:
        """
        Calculate commission owed to one staff member for a period.

        Args:
            staff: The staff member (or a bare staff id, which has no profiles)
            sales: Sales to consider; cancelled ones are skipped
            profiles: All known commission profiles, as a list or an id mapping
            start: First sale date included (optional)
            end: Last sale date included (optional)

        Returns:
            CommissionResult with totals and a per-profile breakdown
        """
        staff = self._as_staff(staff)
        items = self.attributed_items(staff.id, sales, start, end)
        result = self._revenue_result(staff, items)

        profiles_by_id = self._index(profiles)
        assigned = []
        for profile_id in sorted(staff.commission_profile_ids):
            profile = profiles_by_id.get(profile_id)
            if profile is None:
                result.missing_profile_ids.append(profile_id)
            elif profile.is_active:
                assigned.append(profile)

        if result.missing_profile_ids:
            logger.warning(
                "Staff %s references unknown commission profiles: %s",
                staff.id, ", ".join(result.missing_profile_ids)
            )

        breakdown = [self._profile_commission(profile, items) for profile in assigned]
        if not self.stack_item_based:
            self._apply_best_item_based(breakdown)

        applied = [entry for entry in breakdown if entry.applied]
        result.service_commission = sum((e.service_commission for e in applied), ZERO)
        result.product_commission = sum((e.product_commission for e in applied), ZERO)
        result.total_commission = result.service_commission + result.product_commission
        result.effective_commission_rate = self._effective_rate(result)
        result.profile_breakdown = breakdown

        logger.debug(
            "Staff %s: revenue=%s commission=%s across %d profile(s)",
            staff.id, result.total_revenue, result.total_commission, len(breakdown)
        )
        return result

    def calculate_for_all_staff(self, sales: Iterable[Sale], staff_list: Iterable[StaffMember],
                                profiles: Profiles,
                                start: Optional[date] = None,
                                end: Optional[date] = None) -> List[CommissionResult]:
        """Calculate commission for every staff member independently, in staff-list order."""
        sales = list(sales)
        profiles_by_id = self._index(profiles)
        return [
            self.calculate_for_staff(staff, sales, profiles_by_id, start, end)
            for staff in staff_list
        ]

    @staticmethod
    def select_tier(revenue, tiers: List[TargetTier]) -> Optional[TargetTier]:
        """Tier with the highest threshold not exceeding revenue."""
        selected = None
        for tier in tiers:
            if tier.threshold <= revenue:
                selected = tier
        return selected

    def target_commission(self, revenue, profile: CommissionProfile):
        if not profile.cascading:
            tier = self.select_tier(revenue, profile.tiers)
            return percent_of(revenue, tier.rate) if tier else ZERO

        commission = ZERO
        for index, tier in enumerate(profile.tiers):
            if revenue <= tier.threshold:
                break
            upper = revenue
            if index + 1 < len(profile.tiers):
                upper = min(upper, profile.tiers[index + 1].threshold)
            if tier.ceiling is not None:
                upper = min(upper, tier.ceiling)
            commission += percent_of(upper - tier.threshold, tier.rate)
        return commission

    def _profile_commission(self, profile: CommissionProfile,
                            items: List[Tuple[Sale, LineItem]]) -> ProfileBreakdown:
        scoped = [item for _, item in items if profile.covers(item.kind)]
        service_base = sum((i.total for i in scoped if i.kind == 'service'), ZERO)
        product_base = sum((i.total for i in scoped if i.kind == 'product'), ZERO)
        revenue = service_base + product_base

        rate = None
        configured = True
        if profile.type == 'item_based':
            service_commission = percent_of(service_base, profile.service_rate)
            product_commission = percent_of(product_base, profile.product_rate)
        else:
            if not profile.tiers:
                configured = False
                logger.warning("Target-based profile %s (%s) has no tiers; paying 0", profile.id, profile.name)
            tier = self.select_tier(revenue, profile.tiers)
            rate = tier.rate if tier else ZERO
            if profile.cascading:
                commission = self.target_commission(revenue, profile)
                service_commission = commission * service_base / revenue if revenue else ZERO
                product_commission = commission - service_commission
            else:
                service_commission = percent_of(service_base, rate)
                product_commission = percent_of(product_base, rate)

        return ProfileBreakdown(
            profile_id=profile.id,
            profile_name=profile.name,
            profile_type=profile.type,
            commission=service_commission + product_commission,
            service_commission=service_commission,
            product_commission=product_commission,
            revenue=revenue,
            item_count=sum(i.quantity for i in scoped),
            rate=rate,
            configured=configured
        )

    @staticmethod
    def _apply_best_item_based(breakdown: List[ProfileBreakdown]) -> None:
        item_based = [e for e in breakdown if e.profile_type == 'item_based']
        if len(item_based) < 2:
            return
        best = min(item_based, key=lambda e: (-e.commission, e.profile_id))
        for entry in item_based:
            entry.applied = entry is best

    # ------------------------------------------------------------------
    # Legacy per-staff rates
    # ------------------------------------------------------------------

    def calculate_with_rates(self, staff: StaffRef, sales: Iterable[Sale],
                             config: Optional[RateCommissionConfig] = None,
                             start: Optional[date] = None,
                             end: Optional[date] = None) -> CommissionResult:
        """
        Calculate commission from flat service/product rates.

        Staff-specific rates win over the config's rates. Minimum and maximum
        commission clamp each sale's commission, so the total can differ from
        service + product commission.

        Raises:
            ValidationError: if the resulting rate configuration is invalid
        """
        staff = self._as_staff(staff)
        config = RateCommissionConfig.for_staff(staff, config)
        errors = config.validate()
        if errors:
            raise ValidationError("; ".join(errors))

        items = self.attributed_items(staff.id, sales, start, end)
        result = self._revenue_result(staff, items)

        per_sale: Dict[str, List[LineItem]] = {}
        for sale, item in items:
            per_sale.setdefault(sale.id, []).append(item)

        total = ZERO
        for sale_items in per_sale.values():
            service = percent_of(sum((i.total for i in sale_items if i.kind == 'service'), ZERO),
                                 config.service_rate)
            product = percent_of(sum((i.total for i in sale_items if i.kind == 'product'), ZERO),
                                 config.product_rate)
            result.service_commission += service
            result.product_commission += product

            sale_commission = service + product
            if config.minimum_commission and sale_commission < config.minimum_commission:
                sale_commission = config.minimum_commission
            if config.maximum_commission and sale_commission > config.maximum_commission:
                sale_commission = config.maximum_commission
            total += sale_commission

        result.total_commission = total
        result.effective_commission_rate = self._effective_rate(result)
        return result

    # ------------------------------------------------------------------
    # Summaries
    # ------------------------------------------------------------------

    @staticmethod
    def rank(results: List[CommissionResult]) -> List[CommissionResult]:
        """Results sorted by total commission, highest first."""
        return sorted(results, key=lambda r: r.total_commission, reverse=True)

    def calculate_summary(self, results: List[CommissionResult]) -> dict:
        """
        Calculate summary totals for a list of commission results.

        Args:
            results: List of CommissionResult objects

        Returns:
            Dictionary with summary totals
        """
        total_revenue = sum((r.total_revenue for r in results), ZERO)
        total_commission = sum((r.total_commission for r in results), ZERO)
        return {
            'staff_count': len(results),
            'total_revenue': total_revenue,
            'service_revenue': sum((r.service_revenue for r in results), ZERO),
            'product_revenue': sum((r.product_revenue for r in results), ZERO),
            'total_transactions': sum(r.total_transactions for r in results),
            'service_count': sum(r.service_count for r in results),
            'product_count': sum(r.product_count for r in results),
            'service_commission': sum((r.service_commission for r in results), ZERO),
            'product_commission': sum((r.product_commission for r in results), ZERO),
            'total_commission': total_commission,
            'effective_commission_rate': (
                total_commission / total_revenue * 100 if total_revenue else ZERO
            )
        }

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _as_staff(staff: StaffRef) -> StaffMember:
        if isinstance(staff, StaffMember):
            return staff
        return StaffMember(id=str(staff))

    @staticmethod
    def _index(profiles: Profiles) -> Mapping[str, CommissionProfile]:
        if isinstance(profiles, Mapping):
            return profiles
        return index_profiles(profiles)

    @staticmethod
    def _effective_rate(result: CommissionResult):
        if not result.total_revenue:
            return ZERO
        return result.total_commission / result.total_revenue * 100

    @staticmethod
    def _revenue_result(staff: StaffMember, items: List[Tuple[Sale, LineItem]]) -> CommissionResult:
        staff_name = staff.name
        if not staff_name:
            staff_name = next((i.staff_name for _, i in items if i.staff_name), staff.id)

        result = CommissionResult(staff_id=staff.id, staff_name=staff_name)
        for _, item in items:
            if item.kind == 'service':
                result.service_revenue += item.total
                result.service_count += item.quantity
            else:
                result.product_revenue += item.total
                result.product_count += item.quantity
        result.total_transactions = len({sale.id for sale, _ in items})
        return result
