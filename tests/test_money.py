"""Tests for cent-exact money helpers"""
import pytest
import sys
from decimal import Decimal
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from payroll.money import to_decimal, to_cents, from_cents, multiply_cents, divide_cents


class TestToDecimal:

    def test_float_has_no_binary_noise(self):
        assert to_decimal(0.1) == Decimal('0.1')

    def test_spreadsheet_text(self):
        assert to_decimal(' $1,240.50 ') == Decimal('1240.50')

    def test_garbage_rejected(self):
        with pytest.raises(ValueError):
            to_decimal('twelve')

    def test_non_finite_rejected(self):
        for value in ('inf', 'Infinity', '-inf', 'NaN', float('inf'), Decimal('Infinity')):
            with pytest.raises(ValueError):
                to_decimal(value)

    def test_bool_rejected(self):
        with pytest.raises(TypeError):
            to_decimal(True)


class TestCents:

    def test_round_half_up(self):
        assert to_cents('0.005') == 1
        assert to_cents('-0.005') == -1
        assert to_cents('2.675') == 268

    def test_from_cents(self):
        assert from_cents(12345) == Decimal('123.45')
        assert str(from_cents(100)) == '1.00'

    def test_multiply_and_divide(self):
        assert multiply_cents(1999, '0.33') == 660
        assert divide_cents(1000, 3) == 333
        assert divide_cents(500, 3) == 167
