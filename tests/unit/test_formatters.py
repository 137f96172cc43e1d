"""
Unit tests for formatting and number parsing helpers.
"""

import pytest
from datetime import date, datetime
from decimal import Decimal

from rera_quotes.models import ApprovalLevel
from rera_quotes.utils.formatters import approval_level_label, date_in, money_in, num_in, percent
from rera_quotes.utils.number_format import json_number, parse_amount, to_decimal


class TestIndianFormatting:

    @pytest.mark.parametrize('value, expected', [
        (0, '0'),
        (999, '999'),
        (1500, '1,500'),
        (215400, '2,15,400'),
        (12345678, '1,23,45,678'),
        (Decimal('-215400'), '-2,15,400'),
    ])
    def test_num_in(self, value, expected):
        assert num_in(value) == expected

    def test_num_in_decimals(self):
        assert num_in(1500.5, decimals=2) == '1,500.50'

    def test_money_in(self):
        assert money_in(215400) == '₹2,15,400'
        assert money_in(215400, symbol='Rs. ') == 'Rs. 2,15,400'
        assert money_in(-1000) == '-₹1,000'
        assert money_in(None) == '-'

    def test_percent(self):
        assert percent(25) == '25.0%'
        assert percent(Decimal('16.6667')) == '16.7%'
        assert percent(12.34, signed=True) == '+12.3%'
        assert percent(None) == '-'

    def test_date_in(self):
        assert date_in(date(2024, 3, 5)) == '05/03/2024'
        assert date_in(datetime(2024, 12, 31, 18, 30)) == '31/12/2024'
        assert date_in(None) == '-'

    def test_approval_level_label(self):
        assert approval_level_label(ApprovalLevel.SENIOR_MANAGER) == ApprovalLevel.SENIOR_MANAGER.label
        assert approval_level_label('senior_manager') == 'Senior Manager'


class TestNumberParsing:

    def test_to_decimal_avoids_float_drift(self):
        assert to_decimal(1.1) == Decimal('1.1')
        assert to_decimal(None) == Decimal('0')

    def test_to_decimal_rejects_garbage(self):
        with pytest.raises(ValueError):
            to_decimal('abc')
        with pytest.raises(ValueError):
            to_decimal(True)

    def test_parse_amount(self):
        assert parse_amount('75000', 'price') == Decimal('75000')
        with pytest.raises(ValueError, match='price cannot be negative'):
            parse_amount(-5, 'price')
        with pytest.raises(ValueError, match='price is required'):
            parse_amount('', 'price')
        with pytest.raises(ValueError, match='price must be numeric'):
            parse_amount('NaN', 'price')

    def test_json_number(self):
        assert json_number(Decimal('13200.00')) == 13200
        assert isinstance(json_number(Decimal('13200.00')), int)
        assert json_number(Decimal('12.5')) == 12.5
        assert json_number(None) is None
