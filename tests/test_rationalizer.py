from fractions import Fraction

import pytest

from flt import *
from flt.rationalizer import rationalize, simplest_fraction


@pytest.fixture
def context():
    with local_context(DecNum.DefaultContext) as context:
        yield context


class TestSimplestFraction:

    @pytest.mark.parametrize('low, high, result', (
        (Fraction(0), Fraction(1, 2), Fraction(0)),
        (Fraction(1, 3), Fraction(1, 2), Fraction(1, 2)),
        (Fraction(31, 100), Fraction(32, 100), Fraction(5, 16)),
        (Fraction(3), Fraction(7, 2), Fraction(3)),
        (Fraction(5, 2), Fraction(7, 2), Fraction(3)),
        (Fraction(22, 7), Fraction(22, 7), Fraction(22, 7)),
    ))
    def test_simplest_fraction(self, low, high, result):
        assert simplest_fraction(low, high) == result

    def test_invalid_interval(self):
        with pytest.raises(ValueError):
            simplest_fraction(Fraction(1), Fraction(0))
        with pytest.raises(ValueError):
            simplest_fraction(Fraction(-1), Fraction(1))

    def test_rationalize(self):
        assert rationalize(Fraction(-31, 100), Fraction(1, 200)) == Fraction(-4, 13)
        assert rationalize(Fraction(314159, 100000), 10) == Fraction(22, 7)
        with pytest.raises(ValueError):
            rationalize(Fraction(1, 3), 0)


class TestRationalize:

    def test_tolerance(self, context):
        pi = DecNum('3.14159265358979')
        assert pi.rationalize(Fraction(1, 100)) == Fraction(22, 7)
        assert pi.rationalize(DecNum('0.001')) == Fraction(201, 64)
        assert pi.rationalize(0.01) == Fraction(22, 7)

    def test_maximum_denominator(self, context):
        pi = DecNum('3.14159265358979')
        assert pi.rationalize(10) == Fraction(22, 7)
        assert pi.rationalize(1000) == Fraction(355, 113)

    def test_half_ulp(self, context):
        context3 = DecNum.make_context(precision=3)
        assert DecNum('0.333').rationalize(context=context3) == Fraction(1, 3)
        assert DecNum('-0.333').rationalize(context=context3) == Fraction(-1, 3)
        assert DecNum('0.333').rationalize() == Fraction(333, 1000)
        assert context3.rationalize(DecNum('0.667')) == Fraction(2, 3)

    def test_binary(self):
        double = BinNum.IEEEDoubleContext
        assert BinNum(0.1).rationalize(context=double) == Fraction(1, 10)
        assert BinNum(1 / 3).rationalize(context=double) == Fraction(1, 3)
        assert BinNum(0.1).rationalize(16, context=double) == Fraction(1, 10)

    def test_zero_tolerance_interval(self, context):
        assert DecNum('0.001').rationalize(Fraction(1, 100)) == 0
        assert DecNum('-0.001').rationalize(Fraction(1, 100)) == 0

    def test_specials(self, context):
        with pytest.raises(ValueError):
            DecNum('NaN').rationalize()
        with pytest.raises(OverflowError):
            DecNum('-Infinity').rationalize()
        with pytest.raises(ValueError):
            DecNum('0.5').rationalize(context=DecNum.make_context(exact=True))


class TestIntegralViews:

    def test_integral(self, context):
        x = DecNum('-12.340')
        assert x.to_int_scale() == (-12340, -3)
        assert x.integral_significand() == 12340
        assert x.integral_exponent() == -3
        assert x.scientific_exponent() == 1
        assert x.fractional_exponent() == 2
        assert DecNum('0.05').scientific_exponent() == -2

    def test_normalized(self, context):
        x = DecNum('-12.340')
        context7 = DecNum.make_context(precision=7)
        assert x.normalized_integral_significand(context7) == 1234000
        assert x.normalized_integral_exponent(context7) == -5
        assert x.to_normalized_int_scale(context7) == (-1234000, -5)
        assert context7.to_normalized_int_scale(x) == (-1234000, -5)
        context3 = DecNum.make_context(precision=3)
        assert x.to_normalized_int_scale(context3) == (-123, -1)

    def test_binary(self):
        double = BinNum.IEEEDoubleContext
        x = BinNum(1, 3, 4)
        assert x.to_int_scale() == (3, 4)
        assert x.to_normalized_int_scale(double) == (3 * 2 ** 51, -47)
        assert double.normalized_integral_exponent(x) == -47

    def test_specials(self, context):
        with pytest.raises(ValueError):
            DecNum('Infinity').to_int_scale()
        with pytest.raises(ValueError):
            DecNum('NaN').normalized_integral_significand()
        with pytest.raises(ValueError):
            DecNum(5).normalized_integral_exponent(DecNum.make_context(exact=True))
