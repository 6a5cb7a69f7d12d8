import math
from fractions import Fraction

import pytest

from flt import *
from flt.kernel import (dexp, digit_string, dlog, integer_root, number_of_digits, radix_power,
                        reduce_ratio, roundable)


@pytest.fixture
def double():
    with local_context(BinNum.IEEEDoubleContext.copy(traps=0)) as context:
        yield context


class TestKernel:

    @pytest.mark.parametrize('x, radix, result', (
        (0, 10, 1),
        (9, 10, 1),
        (999, 10, 3),
        (1000, 10, 4),
        (255, 16, 2),
        (256, 16, 3),
        (256, 2, 9),
        (0, 2, 1),
        (3 ** 40, 3, 41),
        (3 ** 40 - 1, 3, 40),
    ))
    def test_number_of_digits(self, x, radix, result):
        assert number_of_digits(x, radix) == result

    def test_number_of_digits_large(self):
        # Built here: test ids of ints this long would exceed the int to str limit
        assert number_of_digits(10 ** 5000, 10) == 5001
        assert number_of_digits(10 ** 5000 - 1, 10) == 5000
        assert number_of_digits(2 ** 20000, 2) == 20001

    def test_number_of_digits_negative(self):
        with pytest.raises(ValueError):
            number_of_digits(-1)

    @pytest.mark.parametrize('x, radix, result', (
        (255, 16, 'ff'),
        (5, 2, '101'),
        (0, 3, '0'),
        (35, 36, 'z'),
        (3 ** 20, 3, '1' + '0' * 20),
        (1234567, 10, '1234567'),
    ))
    def test_digit_string(self, x, radix, result):
        assert digit_string(x, radix) == result

    @pytest.mark.parametrize('a, n, result', (
        (27, 3, 3),
        (26, 3, 2),
        (10 ** 40, 2, 10 ** 20),
        (10 ** 40 - 1, 2, 10 ** 20 - 1),
        (1, 5, 1),
        (0, 2, 0),
        (17, 1, 17),
    ))
    def test_integer_root(self, a, n, result):
        assert integer_root(a, n) == result

    @pytest.mark.parametrize('coeff, p, result', (
        (12345, 3, True),
        (12350, 3, False),
        (12300, 3, False),
        (12349, 3, True),
        (123, 3, False),
        (-12345, 3, True),
    ))
    def test_roundable(self, coeff, p, result):
        assert roundable(coeff, p) == result

    def test_misc(self):
        assert reduce_ratio(6, 4) == (3, 2)
        assert radix_power(10, 3) == 1000
        assert radix_power(2, 10) == 1024

    def test_dlog(self):
        assert abs(dlog(2, 0, 10) - 6931471806) <= 1
        assert abs(dlog(5, -1, 10) + 6931471806) <= 1
        assert abs(dlog(1, 1, 10) - 23025850930) <= 1

    def test_dexp(self):
        d, f = dexp(1, 0, 10)
        assert 10 ** 9 <= d <= 10 ** 10
        assert (d - 1) * Fraction(10) ** f < Fraction(math.e) < (d + 1) * Fraction(10) ** f


class TestDecimal:

    @pytest.mark.parametrize('precision, result', (
        (5, '2.7183'),
        (10, '2.718281828'),
        (20, '2.7182818284590452354'),
        (30, '2.71828182845904523536028747135'),
    ))
    def test_exp(self, precision, result):
        context = DecNum.make_context(precision=precision, traps=0)
        assert str(DecNum(1).exp(context)) == result
        assert context.flags == Flags.INEXACT | Flags.ROUNDED

    def test_exp_rounding_is_half_even(self):
        context = DecNum.make_context(precision=10, rounding=ROUND_DOWN)
        assert str(DecNum(1).exp(context)) == '2.718281828'
        assert str(DecNum(1).exp(context.copy(precision=5))) == '2.7183'

    def test_exp_near_one(self):
        context = DecNum.make_context(precision=10, traps=0)
        assert str(DecNum('1E-30').exp(context)) == '1.000000000'
        assert str(DecNum('-1E-30').exp(context)) == '1.000000000'
        assert context.flags == Flags.INEXACT | Flags.ROUNDED

    def test_exp_limits(self):
        context = DecNum.make_context(precision=9, emax=99, traps=0)
        assert DecNum('1E+10').exp(context).is_infinite()
        assert context.flags & Flags.OVERFLOW
        context.clear_flags()
        assert DecNum('-1E+10').exp(context).is_zero()
        assert context.flags & Flags.UNDERFLOW

    def test_ln(self):
        context = DecNum.make_context(precision=20)
        assert str(DecNum(10).ln(context)) == '2.3025850929940456840'
        assert str(DecNum('0.1').ln(context)) == '-2.3025850929940456840'

    def test_ln_invalid(self):
        context = DecNum.make_context(traps=0)
        assert DecNum(-1).ln(context).is_qnan()
        assert context.flags == Flags.INVALID_OPERATION
        assert DecNum('-0').ln(context) == DecNum('-Infinity')
        assert DecNum('Infinity').ln(context) == DecNum('Infinity')

    def test_log10(self):
        context = DecNum.make_context(precision=20)
        assert str(DecNum(2).log10(context)) == '0.30102999566398119521'
        assert str(DecNum('1E+100').log10(context)) == '100'
        assert context.flags == Flags.INEXACT | Flags.ROUNDED

    @pytest.mark.parametrize('x, base, result', (
        (8, 2, '3'),
        (100, DecNum('0.1'), '-2'),
        (9, 27, '0.666666667'),
        (Fraction(1, 8), 4, '-1.5'),
        (1, 7, '0'),
    ))
    def test_log_base(self, x, base, result):
        context = DecNum.make_context(precision=9)
        assert str(DecNum(x).log(base, context)) == result

    def test_log_base_inexact(self):
        context = DecNum.make_context(precision=10, traps=0)
        assert str(DecNum(10).log(2, context)) == '3.321928095'
        assert str(DecNum(2).log(3, context)) == '0.6309297536'
        assert context.flags == Flags.INEXACT | Flags.ROUNDED

    def test_log_special_bases(self):
        context = DecNum.make_context(traps=0)
        assert DecNum(0).log(2, context) == DecNum('-Infinity')
        assert DecNum(0).log(DecNum('0.5'), context) == DecNum('Infinity')
        assert DecNum(5).log(1, context).is_qnan()
        assert DecNum(5).log(-2, context).is_qnan()

    def test_sqrt(self):
        context = DecNum.make_context(precision=30)
        assert str(DecNum(2).sqrt(context)) == '1.41421356237309504880168872421'
        context = DecNum.make_context(precision=10, traps=0)
        assert str(DecNum(2).sqrt(context)) == '1.414213562'
        assert context.flags == Flags.INEXACT | Flags.ROUNDED

    def test_sqrt_exact(self):
        context = DecNum.make_context(traps=0)
        assert str(DecNum('0.25').sqrt(context)) == '0.5'
        assert str(DecNum('1E+4').sqrt(context)) == '1E+2'
        assert context.flags == 0
        assert DecNum(-1).sqrt(context).is_qnan()
        assert str(DecNum('-0').sqrt(context)) == '-0'

    def test_exact_context(self):
        context = DecNum.make_context(exact=True)
        assert DecNum(0).exp(context) == 1
        assert str(DecNum('1E+8').log10(context)) == '8'
        assert str(DecNum('0.0625').sqrt(context)) == '0.25'
        with pytest.raises(Inexact):
            DecNum(1).exp(context)
        with pytest.raises(Inexact):
            DecNum(2).ln(context)
        with pytest.raises(Inexact):
            DecNum(2).sqrt(context)


class TestBinary:

    def test_exp_ln(self, double):
        assert BinNum(1).exp() == math.e
        assert BinNum(2).ln() == math.log(2)

    def test_logs(self, double):
        assert BinNum(8).log2() == 3
        assert BinNum(0.125).log2() == -3
        assert BinNum(1000).log10() == 3

    def test_power(self, double):
        assert BinNum(2) ** BinNum(0.5) == math.sqrt(2)
        assert BinNum(2) ** 10 == 1024
        assert BinNum(0.5) ** -3 == 8

    def test_sqrt(self, double):
        for x in (2.0, 3.0, 0.1, 1e-300, 1e300):
            assert float(BinNum(x).sqrt()) == math.sqrt(x)


class TestOtherRadices:

    def test_ternary(self):
        Num3 = Num.for_radix(3)
        context = Num3.make_context(traps=0)
        assert abs(Num3(1).exp(context).to_fraction() - Fraction(math.e)) < Fraction(1, 3 ** 8)
        assert abs(Num3(2).ln(context).to_fraction() - Fraction(math.log(2))) < Fraction(1, 3 ** 9)
        assert abs(Num3(2).sqrt(context).to_fraction() - Fraction(math.sqrt(2))) < \
            Fraction(1, 3 ** 8)
        assert Num3(9).log(3, context) == 2
        assert Num3(9).log_radix(context) == 2
        assert Num3(4).sqrt(context) == 2

    def test_ternary_power(self):
        Num3 = Num.for_radix(3)
        context = Num3.make_context(traps=0)
        assert Num3(2).power(5, context=context) == 32
        # A cube root taken exactly still signals Inexact
        assert Num3(27).power(Num3(1, 1, -1), context=context) == 3
        assert context.flags & Flags.INEXACT
