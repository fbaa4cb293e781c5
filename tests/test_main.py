"""Tests for the command line entry point"""
import json
import pytest
import sys
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from main import main


class TestCommandLine:

    def setup_method(self):
        self.sales = [
            {'_id': 'B1', 'date': '2026-06-01', 'items': [
                {'name': 'Haircut', 'type': 'service', 'price': 1000, 'staffId': 's1'}]},
        ]
        self.staff = [{'_id': 's1', 'name': 'Asha', 'commissionProfileIds': ['p1']}]
        self.profiles = [{'id': 'p1', 'name': 'Standard', 'type': 'item_based', 'serviceRate': 10}]

    def write_files(self, tmp_path):
        paths = {}
        for name in ('sales', 'staff', 'profiles'):
            path = tmp_path / f'{name}.json'
            path.write_text(json.dumps(getattr(self, name)))
            paths[name] = str(path)
        return paths

    def test_commission_report(self, tmp_path, capsys):
        paths = self.write_files(tmp_path)
        output = tmp_path / 'commission.csv'

        main(['commission', '--sales', paths['sales'], '--staff', paths['staff'],
              '--profiles', paths['profiles'], '-o', str(output)])

        out = capsys.readouterr().out
        assert output.exists()
        assert 'Total Commission: ₹100.00' in out
        assert 'Asha: ₹100.00' in out

    def test_receipt(self, tmp_path, capsys):
        paths = self.write_files(tmp_path)
        output = tmp_path / 'B1.html'

        main(['receipt', '--sales', paths['sales'], '--sale-id', 'B1', '-o', str(output)])

        out = capsys.readouterr().out
        assert 'Total: ₹1,050.00' in out
        assert output.exists()

    def test_unknown_sale_exits_with_error(self, tmp_path):
        paths = self.write_files(tmp_path)

        with pytest.raises(SystemExit) as exc_info:
            main(['receipt', '--sales', paths['sales'], '--sale-id', 'missing'])

        assert exc_info.value.code == 1


if __name__ == '__main__':
    pytest.main([__file__, '-v'])
