"""Tests for injectable data sources"""
import json
import pytest
import sys
from datetime import date
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from salon_billing.data_access import FileDataSource, InMemoryDataSource
from salon_billing.exceptions import ValidationError
from salon_billing.models import CommissionProfile, LineItem, Sale, StaffMember


def make_sale(sale_id, day):
    item = LineItem(kind='service', name='Cut', unit_price=100, staff_id='s1')
    return Sale(id=sale_id, items=(item,), sale_date=date(2026, 4, day))


class TestInMemoryDataSource:

    def test_period_filter(self):
        source = InMemoryDataSource(sales=[make_sale('1', 1), make_sale('2', 20)])

        assert [s.id for s in source.list_sales()] == ['1', '2']
        assert [s.id for s in source.list_sales(start=date(2026, 4, 10))] == ['2']
        assert [s.id for s in source.list_sales(end=date(2026, 4, 10))] == ['1']

    def test_get_sale(self):
        source = InMemoryDataSource(sales=[make_sale('1', 1)])

        assert source.get_sale('1').id == '1'
        assert source.get_sale('missing') is None

    def test_subscribers_are_notified(self):
        source = InMemoryDataSource()
        changes = []
        unsubscribe = source.subscribe(changes.append)

        source.add_sales([make_sale('1', 1)])
        source.set_staff([StaffMember(id='s1')])
        source.set_profiles([CommissionProfile(id='p1', name='P', type='item_based')])
        unsubscribe()
        source.add_sales([make_sale('2', 2)])

        assert changes == ['sales', 'staff', 'profiles']
        assert len(source.list_sales()) == 2

    def test_returned_lists_are_copies(self):
        source = InMemoryDataSource(staff=[StaffMember(id='s1')])

        source.list_staff().clear()

        assert len(source.list_staff()) == 1


class TestFileDataSource:

    def write(self, path, records):
        path.write_text(json.dumps(records))
        return str(path)

    def test_reads_and_caches_json(self, tmp_path):
        sales = self.write(tmp_path / 'sales.json', [
            {'id': 'A', 'date': '2026-04-02', 'items': [
                {'name': 'Cut', 'type': 'service', 'price': 200, 'staffName': 'Asha'}]},
        ])
        staff = self.write(tmp_path / 'staff.json', [
            {'_id': 's1', 'name': 'Asha', 'commissionProfileIds': ['p1']}])
        profiles = self.write(tmp_path / 'profiles.json', [
            {'id': 'p1', 'name': 'Standard', 'type': 'item_based', 'serviceRate': 10}])

        source = FileDataSource(sales, staff, profiles)

        assert source.list_sales()[0].items[0].staff_id == 's1'
        assert source.list_profiles()[0].service_rate == 10

        (tmp_path / 'sales.json').write_text('[]')
        assert len(source.list_sales()) == 1

        changes = []
        source.subscribe(changes.append)
        source.reload()
        assert source.list_sales() == []
        assert changes == ['sales', 'staff', 'profiles']

    def test_optional_files(self, tmp_path):
        sales = self.write(tmp_path / 'sales.json', [])

        source = FileDataSource(sales)

        assert source.list_staff() == []
        assert source.list_profiles() == []

    def test_unsupported_sales_file(self, tmp_path):
        with pytest.raises(ValidationError):
            FileDataSource(str(tmp_path / 'sales.txt'))


if __name__ == '__main__':
    pytest.main([__file__, '-v'])
