"""Tests for the commission calculator"""
import pytest
import sys
from datetime import date
from decimal import Decimal
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from salon_billing.calculator import CommissionCalculator
from salon_billing.exceptions import ValidationError
from salon_billing.models import (
    CommissionProfile,
    LineItem,
    RateCommissionConfig,
    Sale,
    StaffMember,
)


def service(price, staff_id='s1', quantity=1, name='Haircut'):
    return LineItem(kind='service', name=name, unit_price=price, quantity=quantity, staff_id=staff_id)


def product(price, staff_id='s1', quantity=1, name='Shampoo'):
    return LineItem(kind='product', name=name, unit_price=price, quantity=quantity, staff_id=staff_id)


ITEM_10_5 = CommissionProfile(id='p1', name='Standard', type='item_based', service_rate=10, product_rate=5)
TARGET = CommissionProfile(
    id='t1', name='Monthly Target', type='target_based',
    tiers=[(0, 5), (1000, 8), (5000, 12)]
)


class TestCommissionCalculator:
    """Test cases for CommissionCalculator"""

    def setup_method(self):
        self.calc = CommissionCalculator()
        self.sales = [
            Sale(id='1', items=(service(1000),), sale_date=date(2026, 3, 2)),
            Sale(id='2', items=(product(200),), sale_date=date(2026, 3, 9)),
        ]

    def test_no_profiles_is_zero(self):
        """
        Test: Staff member without commission profiles
        Expected: zero commission, empty breakdown, revenue still reported
        """
        staff = StaffMember(id='s1', name='Asha')

        result = self.calc.calculate_for_staff(staff, self.sales, [ITEM_10_5])

        assert result.total_commission == 0
        assert result.service_commission == 0
        assert result.product_commission == 0
        assert result.profile_breakdown == []
        assert result.total_revenue == 1200

    def test_item_based_profile(self):
        """
        Test: Item-based profile, 10% services / 5% products
        Revenue: 1000 service, 200 product
        Expected: 100 + 10 = 110
        """
        staff = StaffMember(id='s1', name='Asha', commission_profile_ids={'p1'})

        result = self.calc.calculate_for_staff(staff, self.sales, [ITEM_10_5])

        assert result.service_commission == 100
        assert result.product_commission == 10
        assert result.total_commission == 110
        assert round(result.effective_commission_rate, 4) == Decimal('9.1667')
        assert len(result.profile_breakdown) == 1
        entry = result.profile_breakdown[0]
        assert entry.profile_id == 'p1'
        assert entry.commission == 110
        assert entry.revenue == 1200
        assert entry.item_count == 2

    def test_target_based_selects_highest_reached_tier(self):
        """
        Test: Tiers 0:5%, 1000:8%, 5000:12% with revenue 4500
        Expected: 8% flat on the whole revenue = 360
        """
        sales = [Sale(id='1', items=(service(4000), product(500)))]
        staff = StaffMember(id='s1', commission_profile_ids={'t1'})

        result = self.calc.calculate_for_staff(staff, sales, [TARGET])

        assert result.total_commission == 360
        assert result.service_commission == 320
        assert result.product_commission == 40
        assert result.profile_breakdown[0].rate == 8

    def test_target_threshold_is_inclusive(self):
        sales = [Sale(id='1', items=(service(5000),))]
        staff = StaffMember(id='s1', commission_profile_ids={'t1'})

        result = self.calc.calculate_for_staff(staff, sales, [TARGET])

        assert result.profile_breakdown[0].rate == 12
        assert result.total_commission == 600

    def test_revenue_below_first_tier_pays_nothing(self):
        profile = CommissionProfile(id='t2', name='High', type='target_based', tiers=[(1000, 10)])
        sales = [Sale(id='1', items=(service(500),))]
        staff = StaffMember(id='s1', commission_profile_ids={'t2'})

        result = self.calc.calculate_for_staff(staff, sales, [profile])

        assert result.total_commission == 0
        assert result.profile_breakdown[0].rate == 0

    def test_cascading_tiers_pay_each_band(self):
        """
        Test: Cascading tiers 0:5%, 1000:8%, 5000:12% with revenue 6000
        Expected: 1000 x 5% + 4000 x 8% + 1000 x 12% = 50 + 320 + 120 = 490
        """
        profile = CommissionProfile(
            id='c1', name='Cascading', type='target_based', cascading=True,
            tiers=[(0, 5), (1000, 8), (5000, 12)]
        )
        sales = [Sale(id='1', items=(service(3000), product(3000)))]
        staff = StaffMember(id='s1', commission_profile_ids={'c1'})

        result = self.calc.calculate_for_staff(staff, sales, [profile])

        assert result.total_commission == 490
        assert result.service_commission + result.product_commission == 490
        assert result.service_commission == 245

    def test_target_profile_without_tiers_pays_zero(self):
        """An empty tier list is a configuration gap, not an error"""
        profile = CommissionProfile(id='t0', name='Unfinished', type='target_based')
        sales = [Sale(id='1', items=(service(2000),))]
        staff = StaffMember(id='s1', commission_profile_ids={'t0'})

        result = self.calc.calculate_for_staff(staff, sales, [profile])

        assert result.total_commission == 0
        assert result.profile_breakdown[0].configured is False
        assert result.profile_breakdown[0].rate == 0

    def test_cancelled_sales_are_ignored(self):
        staff = StaffMember(id='s1', commission_profile_ids={'p1', 't1'})
        cancelled = Sale(id='3', items=(service(9000),), status='cancelled')

        with_cancelled = self.calc.calculate_for_staff(staff, self.sales + [cancelled], [ITEM_10_5, TARGET])
        without = self.calc.calculate_for_staff(staff, self.sales, [ITEM_10_5, TARGET])

        assert with_cancelled == without
        assert with_cancelled.total_transactions == 2

    def test_per_item_attribution(self):
        """One sale crediting two staff members counts independently for each"""
        sale = Sale(id='1', items=(service(1000, staff_id='s1'), service(400, staff_id='s2')), staff_id='s1')
        asha = StaffMember(id='s1', commission_profile_ids={'p1'})
        ravi = StaffMember(id='s2', commission_profile_ids={'p1'})

        results = self.calc.calculate_for_all_staff([sale], [asha, ravi], [ITEM_10_5])

        assert [r.staff_id for r in results] == ['s1', 's2']
        assert results[0].total_commission == 100
        assert results[1].total_commission == 40
        assert results[1].total_transactions == 1

    def test_items_without_staff_fall_back_to_sale_staff(self):
        """
        Test: Sale credited to s1, one item without a staff member and one for s2
        Expected: s1 earns on the unassigned item only, s2 keeps their own item
        """
        sale = Sale(id='1', staff_id='s1', items=(
            LineItem(kind='service', name='Cut', unit_price=1000),
            service(400, staff_id='s2'),
        ))
        asha = StaffMember(id='s1', commission_profile_ids={'p1'})
        ravi = StaffMember(id='s2', commission_profile_ids={'p1'})

        results = self.calc.calculate_for_all_staff([sale], [asha, ravi], [ITEM_10_5])

        assert results[0].service_revenue == 1000
        assert results[0].total_commission == 100
        assert results[1].service_revenue == 400
        assert results[1].total_commission == 40

    def test_cascading_band_stops_at_tier_ceiling(self):
        """
        Test: Cascading tiers 0-1000:5%, 2000+:10% with revenue 3000
        Expected: 1000 x 5% + 1000 x 10% = 150 (nothing paid between 1000 and 2000)
        """
        profile = CommissionProfile(
            id='c2', name='Gapped', type='target_based', cascading=True,
            tiers=[(0, 5, 1000), (2000, 10)]
        )
        sales = [Sale(id='1', items=(service(3000),))]
        staff = StaffMember(id='s1', commission_profile_ids={'c2'})

        result = self.calc.calculate_for_staff(staff, sales, [profile])

        assert result.total_commission == 150

    def test_item_based_profiles_stack(self):
        extra = CommissionProfile(id='p2', name='Bonus', type='item_based', service_rate=2)
        staff = StaffMember(id='s1', commission_profile_ids={'p1', 'p2'})

        result = self.calc.calculate_for_staff(staff, self.sales, [ITEM_10_5, extra])

        assert result.total_commission == 130
        assert [e.profile_id for e in result.profile_breakdown] == ['p1', 'p2']

    def test_stacking_disabled_pays_best_item_based_profile(self):
        calc = CommissionCalculator(stack_item_based=False)
        extra = CommissionProfile(id='p2', name='Bonus', type='item_based', service_rate=2)
        staff = StaffMember(id='s1', commission_profile_ids={'p1', 'p2'})

        result = calc.calculate_for_staff(staff, self.sales, [ITEM_10_5, extra])

        assert result.total_commission == 110
        applied = {e.profile_id: e.applied for e in result.profile_breakdown}
        assert applied == {'p1': True, 'p2': False}

    def test_qualifying_items_restrict_revenue(self):
        profile = CommissionProfile(
            id='pp', name='Product Incentive', type='item_based',
            service_rate=10, product_rate=5, qualifying_items={'product'}
        )
        staff = StaffMember(id='s1', commission_profile_ids={'pp'})

        result = self.calc.calculate_for_staff(staff, self.sales, [profile])

        assert result.total_commission == 10
        assert result.service_commission == 0
        assert result.profile_breakdown[0].revenue == 200

    def test_inactive_profile_is_skipped(self):
        profile = CommissionProfile(id='old', name='Old', type='item_based', service_rate=50, is_active=False)
        staff = StaffMember(id='s1', commission_profile_ids={'old'})

        result = self.calc.calculate_for_staff(staff, self.sales, [profile])

        assert result.total_commission == 0
        assert result.profile_breakdown == []

    def test_unknown_profile_ids_are_reported(self):
        staff = StaffMember(id='s1', commission_profile_ids={'p1', 'gone'})

        result = self.calc.calculate_for_staff(staff, self.sales, [ITEM_10_5])

        assert result.missing_profile_ids == ['gone']
        assert result.total_commission == 110

    def test_date_range(self):
        staff = StaffMember(id='s1', commission_profile_ids={'p1'})

        result = self.calc.calculate_for_staff(
            staff, self.sales, [ITEM_10_5], start=date(2026, 3, 5), end=date(2026, 3, 31)
        )

        assert result.service_revenue == 0
        assert result.product_revenue == 200
        assert result.total_commission == 10

    def test_staff_id_string(self):
        result = self.calc.calculate_for_staff('s1', self.sales, [ITEM_10_5])

        assert result.staff_id == 's1'
        assert result.total_revenue == 1200
        assert result.total_commission == 0

    def test_rank_and_summary(self):
        sales = [Sale(id='1', items=(service(1000, staff_id='s1'), service(3000, staff_id='s2')))]
        staff = [
            StaffMember(id='s1', name='Asha', commission_profile_ids={'p1'}),
            StaffMember(id='s2', name='Ravi', commission_profile_ids={'p1'}),
        ]

        results = self.calc.rank(self.calc.calculate_for_all_staff(sales, staff, [ITEM_10_5]))
        summary = self.calc.calculate_summary(results)

        assert [r.staff_name for r in results] == ['Ravi', 'Asha']
        assert summary['staff_count'] == 2
        assert summary['total_revenue'] == 4000
        assert summary['total_commission'] == 400
        assert summary['effective_commission_rate'] == 10


class TestRateBasedCommission:
    """Flat per-staff rates with optional per-sale clamps"""

    def setup_method(self):
        self.calc = CommissionCalculator()

    def test_staff_rates_override_defaults(self):
        staff = StaffMember(id='s1', service_commission_rate=20)
        sales = [Sale(id='1', items=(service(1000), product(100)))]

        result = self.calc.calculate_with_rates(staff, sales, RateCommissionConfig(service_rate=5, product_rate=10))

        assert result.service_commission == 200
        assert result.product_commission == 10
        assert result.total_commission == 210

    def test_minimum_commission_per_sale(self):
        staff = StaffMember(id='s1')
        sales = [
            Sale(id='1', items=(service(100),)),
            Sale(id='2', items=(service(1000),)),
        ]
        config = RateCommissionConfig(service_rate=5, product_rate=3, minimum_commission=20)

        result = self.calc.calculate_with_rates(staff, sales, config)

        # Sale 1 earns 5 -> raised to 20; sale 2 earns 50
        assert result.total_commission == 70
        assert result.service_commission == 55

    def test_invalid_rates_raise(self):
        staff = StaffMember(id='s1')
        config = RateCommissionConfig(service_rate=150, minimum_commission=50, maximum_commission=10)

        with pytest.raises(ValidationError):
            self.calc.calculate_with_rates(staff, [], config)

    def test_validate_lists_every_problem(self):
        config = RateCommissionConfig(service_rate=-1, product_rate=101,
                                      minimum_commission=50, maximum_commission=10)

        errors = config.validate()

        assert len(errors) == 3


if __name__ == '__main__':
    pytest.main([__file__, '-v'])
