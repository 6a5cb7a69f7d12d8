import math
import random
import struct
from fractions import Fraction

import pytest

from flt import *


# Doubles at the edges of the exponent range, and with trailing zero bits
EDGE_DOUBLES = (
    5e-324,
    1e-323,
    2.225073858507201e-308,
    2.2250738585072014e-308,
    2.2250738585072019e-308,
    5.287279658e-308,
    6.3397278305255575e-74,
    0.1,
    1 / 3,
    1.0,
    1e23,
    7.01725439066207e+18,
    9007199254740992.0,
    3 * 2.0 ** 600,
    2.0 ** -1022,
    8.98846567431158e+307,
    1.7976931348623157e+308,
    -2.5e-10,
)


def random_doubles(count, seed):
    rng = random.Random(seed)
    result = []
    while len(result) < count:
        value, = struct.unpack('<d', struct.pack('<Q', rng.getrandbits(64)))
        if math.isfinite(value):
            result.append(value)
    return result


def random_literals(count, seed):
    '''(f, e) pairs of decimal literals f * 10**e, many near the double exponent limits.'''
    rng = random.Random(seed)
    result = []
    for n in range(count):
        f = rng.randrange(1, 10 ** rng.randint(1, 25))
        if n % 3 == 0:
            adjusted = rng.randint(-330, -300)
        elif n % 3 == 1:
            adjusted = rng.randint(300, 310)
        else:
            adjusted = rng.randint(-300, 300)
        result.append((f, adjusted - len(str(f)) + 1))
    return result


@pytest.fixture
def context():
    with local_context(DecNum.DefaultContext) as context:
        yield context


@pytest.fixture
def double():
    with local_context(BinNum.IEEEDoubleContext.copy(traps=0)) as context:
        yield context


class TestFormatter:

    def test_shortest(self, double):
        x = BinNum(0.1)
        assert x.coefficient.bit_length() == 53
        formatter = Formatter(2, double.etiny(), 10)
        assert formatter.format(x, x.coefficient, x.exponent, ROUND_HALF_EVEN, 53) == (0, [1])

    def test_power_of_radix_gap(self, double):
        # Below a power of the radix the rounding range is narrower
        x = BinNum(1, 1, -3)
        formatter = Formatter(2, double.etiny(), 10)
        assert formatter.format(x, 1, -3, ROUND_HALF_EVEN, 1) == (0, [1])

    def test_repeating_digits(self, context):
        x = DecNum('0.1')
        formatter = Formatter(10, None, 3)
        with pytest.raises(InfiniteLoopError):
            formatter.format(x, 1, -1, ROUND_DOWN, 1, all_digits=True)

    def test_repeating_digits_recorded(self, context):
        x = DecNum('0.1')
        formatter = Formatter(10, None, 3, raise_on_repeat=False)
        formatter.format(x, 1, -1, ROUND_DOWN, 1, all_digits=True)
        assert formatter.repeat is not None
        assert formatter.repeat <= len(formatter.digits)

    def test_long_period_raises(self, context):
        # The period of 10**-20 in base 3 is far beyond any digit count worth generating
        with pytest.raises(InfiniteLoopError):
            DecNum.convert(DecNum('1E-20'), 3, rounding=ROUND_DOWN, all_digits=True)

    def test_long_period_raises_when_recording(self, context):
        x = DecNum('1E-20')
        formatter = Formatter(10, None, 3, raise_on_repeat=False)
        with pytest.raises(InfiniteLoopError):
            formatter.format(x, 1, -20, ROUND_DOWN, 1, all_digits=True)

    def test_exact_directed_digits_terminate(self, context):
        x = DecNum.convert(DecNum('0.5'), 2, rounding=ROUND_UP, all_digits=True)
        assert x == Fraction(1, 2)
        x = DecNum.convert(DecNum('0.375'), 2, rounding=ROUND_DOWN, all_digits=True)
        assert x == Fraction(3, 8)


class TestReader:

    @pytest.mark.parametrize('algorithm', (None, 'M', 'R'))
    def test_fixed(self, double, algorithm):
        reader = Reader('fixed', algorithm)
        x = reader.read(double, ROUND_HALF_EVEN, +1, 1, -1)
        assert x == 0.1
        assert not reader.exact
        assert double.flags == Flags.INEXACT | Flags.ROUNDED

    @pytest.mark.parametrize('f, e, value', (
        (5, -1, 0.5),
        (12345, 0, 12345.0),
        (625, -4, 0.0625),
    ))
    def test_fixed_exact(self, double, f, e, value):
        reader = Reader()
        assert reader.read(double, ROUND_HALF_EVEN, +1, f, e) == value
        assert reader.exact
        assert double.flags == 0

    def test_directed(self, double):
        down = Reader().read(double, ROUND_DOWN, +1, 1, -1)
        up = Reader().read(double, ROUND_UP, +1, 1, -1)
        assert down.to_fraction() < Fraction(1, 10) < up.to_fraction()
        assert up == 0.1
        assert down.next_plus(double) == up

    def test_negative(self, double):
        x = Reader().read(double, ROUND_FLOOR, -1, 1, -1)
        assert x.sign == -1
        assert x.to_fraction() < Fraction(-1, 10)

    def test_overflow(self, double):
        x = Reader().read(double, ROUND_HALF_EVEN, +1, 1, 400)
        assert x.is_infinite()
        assert double.flags & Flags.OVERFLOW

    def test_subnormal(self, double):
        x = Reader().read(double, ROUND_HALF_EVEN, +1, 1, -320)
        assert x == 1e-320
        assert double.flags & Flags.UNDERFLOW
        assert double.flags & Flags.SUBNORMAL

    def test_rounds_near_minimum_exponent(self):
        context = DecNum.make_context(precision=3, emin=-10, emax=10, traps=0)
        x = Reader().read(context, ROUND_HALF_EVEN, +1, 1235, -12)
        assert x.as_tuple() == (1, 124, -11)
        assert context.flags == Flags.INEXACT | Flags.ROUNDED
        context.clear_flags()
        assert context.create('1.235E-9', mode='fixed').as_tuple() == (1, 124, -11)

    def test_rounds_near_maximum_exponent(self):
        context = DecNum.make_context(precision=3, emin=-10, emax=10, traps=0)
        x = Reader().read(context, ROUND_HALF_EVEN, +1, 98765, 6)
        assert x.as_tuple() == (1, 988, 8)
        assert context.flags == Flags.INEXACT | Flags.ROUNDED
        x = Reader().read(context, ROUND_HALF_EVEN, +1, 99961, 6)
        assert x.is_infinite()
        assert context.flags & Flags.OVERFLOW

    @pytest.mark.parametrize('algorithm', (None, 'M'))
    def test_double_near_minimum_normal(self, double, algorithm):
        x = Reader('fixed', algorithm).read(double, ROUND_HALF_EVEN, +1, 5287279658, -317)
        assert x.coefficient.bit_length() == 53
        assert x == float('5287279658E-317')

    def test_binary_into_small_decimal_context(self):
        context = DecNum.make_context(precision=3, emin=-10, emax=10, traps=0)
        x = Reader().read(context, ROUND_HALF_EVEN, +1, 1, -35, 2)
        assert x.as_tuple() == (1, 29, -12)
        assert context.flags & Flags.SUBNORMAL
        assert context.flags & Flags.UNDERFLOW
        x = Reader().read(context, ROUND_HALF_EVEN, +1, 1, 36, 2)
        assert x.as_tuple() == (1, 687, 8)
        assert Reader().read(context, ROUND_HALF_EVEN, +1, 1, 37, 2).is_infinite()

    def test_free(self, context):
        reader = Reader('free')
        x = reader.read(context, ROUND_HALF_EVEN, +1, 3, -1, 2)
        assert str(x) == '1.5'
        assert reader.exact
        # One binary digit of precision needs only two decimal digits
        x = reader.read(context, 'nearest', +1, 1, -3, 2)
        assert type(x) is DecNum
        assert str(x) == '0.12'
        assert not reader.exact

    def test_short(self, context):
        assert str(DecNum('0x1.999999999999ap-4', mode='short')) == '0.1'

    def test_invalid(self):
        with pytest.raises(ValueError):
            Reader('loose')
        with pytest.raises(ValueError):
            Reader('fixed', 'Q')

    def test_float_conversions(self, context):
        for value in (0.1, 1 / 3, 1e300, 5e-324, 123456789.125, -2.5e-10):
            assert float(DecNum(value)) == value
            assert DecNum(value) == DecNum(repr(value))


class TestTextFormat:

    @pytest.mark.parametrize('text, result', (
        ('1E+3', '1E+3'),
        ('-0', '-0'),
        ('0.000001', '0.000001'),
        ('0.0000001', '1E-7'),
        ('123.450', '123.450'),
        ('1.23E-10', '1.23E-10'),
        ('Inf', 'Infinity'),
        ('-sNaN2', '-sNaN2'),
        ('nan', 'NaN'),
    ))
    def test_str(self, context, text, result):
        assert str(DecNum(text)) == result

    def test_str_of_results(self, context):
        assert str(DecNum('1.00') + DecNum('2.00')) == '3.00'
        assert repr(DecNum('1.5') * 2) == "DecNum('3.0')"
        assert TextFormat().notation == 'auto'
        assert TextFormat(notation='sci').format(DecNum(123), context) == '1.23E+2'

    def test_long_literal(self, context):
        x = DecNum('1' * 5000)
        assert x.number_of_digits() == 5000
        assert x.coefficient % 10 ** 20 == int('1' * 20)
        assert DecNum('0.' + '9' * 4500).exponent == -4500

    def test_repr(self, context):
        assert repr(DecNum('1.23')) == "DecNum('1.23')"
        with local_context(BinNum.DefaultContext):
            assert repr(BinNum(0.5)) == "BinNum('0.5')"

    @pytest.mark.parametrize('text, result', (
        ('123E+5', '12.3E+6'),
        ('1E-7', '100E-9'),
        ('0E+7', '0.00E+9'),
        ('123', '123'),
        ('1.5E+4', '15E+3'),
    ))
    def test_eng(self, context, text, result):
        assert DecNum(text).to_string(eng=True) == result
        assert DecNum(text).format(notation='eng') == result

    @pytest.mark.parametrize('text, options, result', (
        ('123.4', {'notation': 'sci'}, '1.234E+2'),
        ('1E+3', {'notation': 'fix'}, '1000'),
        ('1E-7', {'notation': 'fix'}, '0.0000001'),
        ('1E-7', {'max_leading_zeros': 10}, '0.0000001'),
        ('1E+3', {'capitals': False}, '1e+3'),
        ('1.50', {'simplified': True}, '1.5'),
        ('0.1', {'base': 2}, '0.001'),
        ('0.5', {'base': 2}, '0.1'),
        ('255', {'base': 16, 'capitals': False}, 'ff'),
    ))
    def test_format(self, context, text, options, result):
        assert DecNum(text).format(**options) == result

    def test_invalid_format(self, context):
        with pytest.raises(ValueError):
            DecNum(1).format(notation='roman')

    def test_hex_bin(self, double):
        assert BinNum(3).format(base='hex_bin', capitals=False) == '0x1.8p+1'
        assert BinNum(1).format(base='hex_bin', capitals=False) == '0x1p+0'
        assert BinNum(0.1).format(base='hex_bin', capitals=False) == (0.1).hex()
        assert BinNum(-0.1).format(base='hex_bin') == '-0X1.999999999999AP-4'

    def test_exact(self, double):
        assert BinNum(0.1).format(exact=True) == \
            '0.1000000000000000055511151231257827021181583404541015625'
        assert BinNum(0.5).format(exact=True) == '0.5'

    def test_binary_shortest(self, double):
        assert str(BinNum(0.1)) == '0.1'
        assert str(BinNum(1e23)) == '1E+23'
        assert str(BinNum(2.0 ** -1074)) == '5E-324'
        assert str(BinNum(7.01725439066207e+18)) == '7.01725439066207E+18'
        assert float(str(BinNum(6.3397278305255575e-74))) == 6.3397278305255575e-74

    def test_float_coefficients_are_normalized(self, double):
        assert BinNum(1e23).coefficient.bit_length() == 53
        assert BinNum(1.0).as_tuple() == (1, 2 ** 52, -52)
        assert BinNum(2.0 ** -1074).as_tuple() == (1, 1, -1074)
        assert BinNum(2.0 ** -1022).as_tuple() == (1, 2 ** 52, -1074)

    def test_text_format_object(self, context):
        text_format = TextFormat(base=2)
        assert text_format.format(DecNum('0.5'), context) == '0.1'


class TestRoundTrip:

    @pytest.mark.parametrize('value', EDGE_DOUBLES)
    def test_edge_doubles(self, double, value):
        x = BinNum(value)
        assert float(x) == value
        assert float(str(x)) == value
        assert DecNum(str(x)) == DecNum(repr(value))
        with local_context(DecNum.DefaultContext):
            assert float(DecNum(value)) == value
            assert DecNum(value) == DecNum(repr(value))

    def test_random_doubles(self, double):
        for value in random_doubles(500, 754):
            x = BinNum(value)
            assert float(x) == value
            assert float(str(x)) == value
            assert DecNum(str(x)) == DecNum(repr(value))

    def test_random_doubles_through_decimal(self, context):
        for value in random_doubles(500, 854):
            x = DecNum(value)
            assert float(x) == value
            assert x == DecNum(repr(value))

    @pytest.mark.parametrize('algorithm', (None, 'M'))
    def test_random_literals(self, double, algorithm):
        reader = Reader('fixed', algorithm)
        for f, e in random_literals(300, 1985):
            assert reader.read(double, ROUND_HALF_EVEN, +1, f, e) == float(f'{f}E{e}')
            assert reader.read(double, ROUND_HALF_EVEN, -1, f, e) == -float(f'{f}E{e}')

    @pytest.mark.parametrize('value', EDGE_DOUBLES)
    def test_between_radices(self, double, value):
        # Decimal text read into the double context, and the double written back in decimal
        assert double.create(repr(value), mode='fixed') == value
        with local_context(DecNum.DefaultContext):
            decimal = Num.convert(BinNum(value), DecNum, double, ROUND_HALF_EVEN)
            assert decimal == DecNum(repr(value))
            assert float(decimal) == value
