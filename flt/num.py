#
# Floating point numbers of arbitrary precision in any radix
#

import logging
import math
import sys
import threading
from collections import namedtuple
from fractions import Fraction
from math import gcd, log

from .context import (
    Context, Flags,
    InvalidOperation, ConversionSyntax, DivisionImpossible, DivisionUndefined, DivisionByZero,
    Inexact, Rounded, Subnormal, Overflow, Underflow, Clamped,
    ROUND_CEILING, ROUND_FLOOR, ROUND_DOWN, ROUND_UP,
    ROUND_HALF_EVEN, ROUND_HALF_DOWN, ROUND_HALF_UP, ROUND_05UP,
)
from .formatter import Formatter
from .kernel import (
    number_of_digits, radix_power, dlog, dlog_radix, dexp, dpower, log_radix_lb, roundable,
    reduce_ratio, integer_root,
)
from .reader import Reader
from .rationalizer import rationalize
from .text import TextFormat, parse_literal

__all__ = ('Num', 'DecNum', 'BinNum', 'get_context', 'set_context', 'local_context',
           'LocalContext')

logger = logging.getLogger(__name__)

HALF_ROUNDINGS = (ROUND_HALF_EVEN, ROUND_HALF_UP, ROUND_HALF_DOWN)
STANDARD_TRAPS = (DivisionByZero, Overflow, InvalidOperation)

# Python floats regarded as binary numbers
FLOAT_PRECISION = sys.float_info.mant_dig
FLOAT_ETINY = sys.float_info.min_exp - sys.float_info.mant_dig

# Python's hash of numbers
HASH_MODULUS = sys.hash_info.modulus
HASH_INF = sys.hash_info.inf


def _split(coefficient, i, radix):
    '''Split off the last i digits of coefficient.  Returns (kept, rem, divisor) with
    coefficient == kept * divisor + rem, except that when more digits than the
    coefficient has are discarded only their position relative to one half is kept.'''
    if i > number_of_digits(coefficient, radix) + 1:
        coefficient, i = 1, 2
    divisor = radix_power(radix, i)
    kept, rem = divmod(coefficient, divisor)
    return kept, rem, divisor


def _strip_zeros(coefficient, exponent, radix):
    while coefficient % radix == 0:
        coefficient //= radix
        exponent += 1
    return coefficient, exponent


def _sticky(coefficient, exponent, above_half, radix):
    '''Append two digits to a truncated inexact coefficient so that rounding it gives the
    correctly rounded result.  In an odd radix a half is not a digit boundary, so the
    digits record whether the discarded fraction was above one half.'''
    tail = radix * radix - 1 if radix % 2 and above_half else 1
    return coefficient * radix * radix + tail, exponent - 2


def _ln_radix_bounds(radix):
    '''Integers lo and hi with lo / 1000 < ln(radix) < hi / 1000.'''
    scaled = int(1000 * log(radix))
    return scaled - 1, scaled + 2


#
# Rounding-mode decision functions.  Each takes a finite number and the count i of its
# trailing digits being discarded, and returns -1 if the retained digits are to be kept
# as they are, +1 if they are to be incremented, and 0 if the discarded digits are all
# zero.
#

def _round_down(num, i):
    _, rem, _ = _split(num.coefficient, i, num.radix)
    return -1 if rem else 0


def _round_up(num, i):
    return -_round_down(num, i)


def _round_half_up(num, i):
    _, rem, divisor = _split(num.coefficient, i, num.radix)
    if 2 * rem >= divisor:
        return 1
    return -1 if rem else 0


def _round_half_down(num, i):
    _, rem, divisor = _split(num.coefficient, i, num.radix)
    if 2 * rem > divisor:
        return 1
    return -1 if rem else 0


def _round_half_even(num, i):
    kept, rem, divisor = _split(num.coefficient, i, num.radix)
    if 2 * rem > divisor or (2 * rem == divisor and kept % 2 == 1):
        return 1
    return -1 if rem else 0


def _round_ceiling(num, i):
    if num.sign < 0:
        return _round_down(num, i)
    return -_round_down(num, i)


def _round_floor(num, i):
    if num.sign > 0:
        return _round_down(num, i)
    return -_round_down(num, i)


def _round_05up(num, i):
    # Away from zero only if the last retained digit is 0 or half the radix
    radix = num.radix
    kept, rem, _ = _split(num.coefficient, i, radix)
    if not rem:
        return 0
    last = kept % radix
    if last == 0 or (radix % 2 == 0 and last == radix // 2):
        return 1
    return -1


ROUNDERS = {
    ROUND_DOWN: _round_down,
    ROUND_UP: _round_up,
    ROUND_HALF_UP: _round_half_up,
    ROUND_HALF_DOWN: _round_half_down,
    ROUND_HALF_EVEN: _round_half_even,
    ROUND_CEILING: _round_ceiling,
    ROUND_FLOOR: _round_floor,
    ROUND_05UP: _round_05up,
}


#
# Conversions of Python numbers registered in every context
#

def _int_to_num(value, context):
    return (-1 if value < 0 else +1, abs(value), 0)


def _fraction_to_num(value, context):
    num_class = context.num_class
    return num_class.from_int(value.numerator).divide(num_class.from_int(value.denominator),
                                                      context)


def _float_to_num(value, context):
    '''Binary numbers take the exact value of a float, with the full precision of a float
    (fewer bits only for subnormals).  Other radixes take the shortest number that reads
    back to the float.'''
    num_class = context.num_class
    sign = -1 if math.copysign(1.0, value) < 0 else +1
    if math.isnan(value):
        return num_class.nan()
    if math.isinf(value):
        return num_class.infinity(sign)
    if value == 0:
        return num_class.zero(sign)
    coefficient, denominator = abs(value).as_integer_ratio()
    exponent = 1 - denominator.bit_length()
    # Normalize; the bits shifted out of integral floats are zero
    shift = min(FLOAT_PRECISION - coefficient.bit_length(), exponent - FLOAT_ETINY)
    if shift >= 0:
        coefficient <<= shift
    else:
        coefficient >>= -shift
    exponent -= shift
    if num_class.radix == 2:
        return num_class._make((sign, coefficient, exponent))

    formatter = Formatter(2, FLOAT_ETINY, num_class.radix)
    formatter.format(BinNum._make((sign, coefficient, exponent)), coefficient, exponent,
                     ROUND_HALF_EVEN, FLOAT_PRECISION)
    return num_class._from_digits(sign, formatter.digits, formatter.k)


class Num(namedtuple('Num', 'sign coefficient exponent')):
    '''A floating point number sign * coefficient * radix**exponent.

    sign is +1 or -1 and coefficient a non-negative integer.  For finite numbers
    exponent is an integer.  Infinities have exponent 'inf' and coefficient 0; quiet and
    signalling NaNs have exponent 'nan' or 'snan' and carry their diagnostic in the
    coefficient.  Zeroes are signed and keep their exponent, so the precision of a number
    is part of its value.

    Num has no radix itself: DecNum and BinNum, and the classes Num.for_radix()
    generates, do.  Numbers are immutable.  Operations take an optional context, by
    default the current context of the number's class in the active thread, and report
    exceptional conditions through it.
    '''

    __slots__ = ()

    radix = None
    DefaultContext = None

    def  __new__(cls, *args, context=None, mode=None, base=None):
        '''Create a number from a (sign, coefficient, exponent) triple, a (signed
        coefficient, exponent) pair, a number of the same class, a value of a type
        registered in the context (int, Fraction and float by default), or a text literal.

        Literals are read in the given mode: 'free' (the default) keeps all their digits,
        'short' reads the shortest number that converts back to the literal, and 'fixed'
        rounds the literal to the context precision.  base, at most 10, is the base of
        the digits and exponent of literals without a hexadecimal prefix.
        '''
        if cls.radix is None:
            raise TypeError('Num has no radix; use DecNum, BinNum or Num.for_radix()')

        if len(args) == 3:
            sign, coefficient, exponent = args
            if sign not in (-1, +1):
                raise ValueError('sign must be +1 or -1')
            if not isinstance(coefficient, int):
                raise TypeError('coefficient must be an integer')
            if coefficient < 0:
                raise ValueError('coefficient must be non-negative')
            if isinstance(exponent, str):
                if exponent not in ('inf', 'nan', 'snan'):
                    raise ValueError(f'invalid special exponent {exponent!r}')
                if exponent == 'inf' and coefficient:
                    raise ValueError('an infinity has a zero coefficient')
            elif not isinstance(exponent, int):
                raise TypeError('exponent must be an integer')
            return super().__new__(cls, sign, coefficient, exponent)

        if len(args) == 2:
            coefficient, exponent = args
            if not isinstance(coefficient, int):
                raise TypeError('coefficient must be an integer')
            return cls(-1 if coefficient < 0 else +1, abs(coefficient), exponent)

        if len(args) == 0:
            return cls.zero()
        if len(args) != 1:
            raise TypeError(f'{cls.__name__}() takes at most 3 positional arguments')

        value = args[0]
        if type(value) is cls:
            return value
        if (mode is not None or base is not None) and not isinstance(value, str):
            raise TypeError('mode and base apply only to text literals')
        context = cls.define_context(context)
        if isinstance(value, str):
            return cls._from_text(value, context, mode, base)
        if isinstance(value, Num):
            raise TypeError(f'cannot create a {cls.__name__} from a {type(value).__name__}; '
                            f'use {cls.__name__}.convert()')
        result = context._coerce(value)
        if result is None:
            raise TypeError(f'cannot convert {type(value).__name__} to {cls.__name__}')
        if isinstance(result, Num):
            return result
        return cls(*result)

    @classmethod
    def _from_text(cls, text, context, mode, base):
        if base is not None and not 2 <= base <= 10:
            raise ValueError('the base of a literal must be from 2 to 10')
        literal = parse_literal(text, base or 10)
        if literal is None:
            return context.exception(ConversionSyntax, f'invalid numeric literal {text!r}')
        sign, coefficient, exponent, _, exp_base = literal
        if isinstance(exponent, str):
            max_digits = context.maximum_nan_diagnostic_digits()
            if (exponent != 'inf' and max_digits is not None
                    and coefficient >= cls.int_radix_power(max_digits)):
                return context.exception(ConversionSyntax, 'diagnostic info too long in NaN')
            return cls._make((sign, coefficient, exponent))

        mode = mode or 'free'
        if mode == 'free' and exp_base == cls.radix:
            return cls._make((sign, coefficient, exponent))
        if mode == 'fixed' or context.rounding in HALF_ROUNDINGS:
            rounding = context.rounding
        else:
            rounding = 'nearest'
        reader = Reader(mode)
        result = reader.read(context, rounding, sign, coefficient, exponent, exp_base)
        if not reader.exact:
            if mode != 'fixed':
                quiet = context.exception(Inexact, f'inexact conversion of {text!r}')
                if quiet is not None:
                    return quiet
            if context.exact:
                return cls.nan()
        return result

    @classmethod
    def _from_digits(cls, sign, digits, k):
        '''The number 0.digits * radix**k.'''
        radix = cls.radix
        coefficient = 0
        for digit in digits:
            coefficient = coefficient * radix + digit
        return cls._make((sign, coefficient, k - len(digits)))

    ##
    ## Classes, contexts and conversions
    ##

    @classmethod
    def for_radix(cls, radix):
        '''Return the Num class of the given radix, generating it if necessary.'''
        if not isinstance(radix, int) or radix < 2:
            raise ValueError(f'invalid radix {radix!r}')
        with _radix_classes_lock:
            num_class = _radix_classes.get(radix)
            if num_class is None:
                num_class = type(f'Num{radix}', (Num, ), {'__slots__': (), 'radix': radix})
                num_class.DefaultContext = Context(num_class, precision=10, elimit=100,
                                                   traps=STANDARD_TRAPS)
                _radix_classes[radix] = num_class
                logger.debug('generated a Num class for radix %d', radix)
        return num_class

    @classmethod
    def make_context(cls, base=None, **options):
        return Context(cls, base, **options)

    @classmethod
    def define_context(cls, context=None):
        '''Return context, or the current context of the class if it is None.'''
        if context is None:
            return get_context(cls)
        if context.num_class is not cls:
            raise TypeError(f'a {context.num_class.__name__} context cannot be used with '
                            f'{cls.__name__}')
        return context

    @classmethod
    def context(cls):
        '''The current context of the class in the active thread.'''
        return get_context(cls)

    @classmethod
    def local_context(cls, context=None, **options):
        return LocalContext(context, cls, **options)

    @classmethod
    def base_coercible_types(cls):
        return {int: _int_to_num, Fraction: _fraction_to_num, float: _float_to_num}

    @classmethod
    def base_conversions(cls):
        return {int: cls.to_int, float: cls.__float__, Fraction: cls.to_fraction}

    @classmethod
    def nan(cls, sign=+1, payload=0):
        return cls._make((sign, payload, 'nan'))

    @classmethod
    def snan(cls, sign=+1, payload=0):
        return cls._make((sign, payload, 'snan'))

    @classmethod
    def infinity(cls, sign=+1):
        return cls._make((sign, 0, 'inf'))

    @classmethod
    def zero(cls, sign=+1):
        return cls._make((sign, 0, 0))

    @classmethod
    def from_int(cls, value):
        return cls._make((-1 if value < 0 else +1, abs(value), 0))

    @classmethod
    def int_radix_power(cls, n):
        return radix_power(cls.radix, n)

    @classmethod
    def convert(cls, x, dest_class, context=None, rounding=None, all_digits=False,
                minimum_precision=None):
        '''Convert x to dest_class, a Num class or a radix.

        x is regarded as an approximation with its own precision, at least
        minimum_precision, that was rounded with rounding (by default the rounding of
        x's context).  The result is the number with fewest digits that converts back
        to x under that rounding, or if all_digits the result has every significant
        digit.'''
        if isinstance(dest_class, int):
            dest_class = Num.for_radix(dest_class)
        source_class = type(x)
        if source_class is dest_class:
            return x
        if x.is_special() or source_class.radix == dest_class.radix:
            return dest_class._make(tuple(x))
        if x.is_zero():
            return dest_class.zero(x.sign)

        context = source_class.define_context(context)
        radix = source_class.radix
        coefficient, exponent = x.coefficient, x.exponent
        precision = number_of_digits(coefficient, radix)
        if minimum_precision and minimum_precision > precision:
            shift = minimum_precision - precision
            coefficient *= radix_power(radix, shift)
            exponent -= shift
            precision = minimum_precision
        rounding = rounding or context.rounding
        min_exp = None if context.exact else context.etiny()
        formatter = Formatter(radix, min_exp, dest_class.radix)
        formatter.format(x, coefficient, exponent, rounding, precision, all_digits)
        k, digits = formatter.adjusted_digits(rounding)
        return dest_class._from_digits(x.sign, digits, k)

    @classmethod
    def convert_exact(cls, x, dest_class, context=None):
        '''Convert x to dest_class by exact arithmetic in context, a context of dest_class.
        The result is rounded to the context precision, and is exact in an exact
        context if the value is representable.'''
        if isinstance(dest_class, int):
            dest_class = Num.for_radix(dest_class)
        if x.is_special() or type(x).radix == dest_class.radix:
            return dest_class._make(tuple(x))
        if x.is_zero():
            return dest_class.zero(x.sign)
        context = dest_class.define_context(context)
        value = dest_class.from_int(x.sign * x.coefficient)
        scale = dest_class.from_int(radix_power(type(x).radix, abs(x.exponent)))
        if x.exponent < 0:
            return value.divide(scale, context)
        return value.multiply(scale, context)

    def convert_to(self, type_, context=None):
        '''Convert to type_ through the conversions registered in the context.'''
        return self.define_context(context).convert_to(type_, self)

    ##
    ## Queries.  These never signal.
    ##

    def is_special(self):
        return isinstance(self.exponent, str)

    def is_nan(self):
        return self.exponent in ('nan', 'snan')

    def is_qnan(self):
        return self.exponent == 'nan'

    def is_snan(self):
        return self.exponent == 'snan'

    def is_infinite(self):
        return self.exponent == 'inf'

    def is_finite(self):
        return not isinstance(self.exponent, str)

    def is_zero(self):
        return self.coefficient == 0 and not isinstance(self.exponent, str)

    def is_signed(self):
        return self.sign < 0

    def is_integral(self):
        if self.is_special():
            return False
        if self.exponent >= 0 or not self.coefficient:
            return True
        return self.coefficient % radix_power(self.radix, -self.exponent) == 0

    def is_odd(self):
        if not self.is_integral():
            return False
        if self.exponent > 0:
            return self.radix % 2 == 1 and self.coefficient % 2 == 1
        return (self.coefficient // radix_power(self.radix, -self.exponent)) % 2 == 1

    def is_even(self):
        return self.is_integral() and not self.is_odd()

    def is_normal(self, context=None):
        if not self.is_finite() or self.is_zero():
            return False
        context = self.define_context(context)
        return context.exact or self.adjusted_exponent() >= context.emin

    def is_subnormal(self, context=None):
        if not self.is_finite() or self.is_zero():
            return False
        context = self.define_context(context)
        return not context.exact and self.adjusted_exponent() < context.emin

    def _is_one(self):
        return (self.is_finite() and self.sign > 0 and self.exponent <= 0
                and self.coefficient == radix_power(self.radix, -self.exponent))

    def adjusted_exponent(self):
        '''The exponent of the most significant digit.'''
        if self.is_special():
            return 0
        return self.exponent + number_of_digits(self.coefficient, self.radix) - 1

    def number_of_digits(self):
        return number_of_digits(self.coefficient, self.radix)

    scientific_exponent = adjusted_exponent

    def fractional_exponent(self):
        '''The exponent of the number written as 0.ddd * radix**e.'''
        return self.scientific_exponent() + 1

    def integral_significand(self):
        return self.coefficient

    def integral_exponent(self):
        return self.exponent

    def to_int_scale(self):
        '''Return (i, e) with the number equal to i * radix**e, i the signed coefficient.'''
        if self.is_special():
            raise ValueError(f'{self.number_class()} has no integral significand')
        return self.sign * self.coefficient, self.exponent

    def _normalized_shift(self, context):
        context = self.define_context(context)
        if context.exact:
            raise ValueError('an exact context has no precision to normalize to')
        if self.is_special():
            raise ValueError(f'{self.number_class()} has no integral significand')
        return context.precision - self.number_of_digits()

    def normalized_integral_significand(self, context=None):
        '''The coefficient scaled to the full precision of context.'''
        shift = self._normalized_shift(context)
        if shift >= 0:
            return self.coefficient * radix_power(self.radix, shift)
        return self.coefficient // radix_power(self.radix, -shift)

    def normalized_integral_exponent(self, context=None):
        '''The exponent that goes with normalized_integral_significand().'''
        return self.exponent - self._normalized_shift(context)

    def to_normalized_int_scale(self, context=None):
        '''Return (i, e) with i the signed coefficient scaled to the full precision of
        context.'''
        return (self.sign * self.normalized_integral_significand(context),
                self.normalized_integral_exponent(context))

    def digits(self):
        '''The digits of the coefficient, most significant first.'''
        radix = self.radix
        coefficient = self.coefficient
        result = []
        while True:
            coefficient, digit = divmod(coefficient, radix)
            result.append(digit)
            if not coefficient:
                break
        result.reverse()
        return result

    def number_class(self, context=None):
        '''Return a string describing the class of the number.'''
        if self.is_snan():
            return 'sNaN'
        if self.is_qnan():
            return 'NaN'
        sign = '-' if self.sign < 0 else '+'
        if self.is_infinite():
            return f'{sign}Infinity'
        if self.is_zero():
            return f'{sign}Zero'
        if self.is_subnormal(context):
            return f'{sign}Subnormal'
        return f'{sign}Normal'

    def as_tuple(self):
        return (self.sign, self.coefficient, self.exponent)

    split = as_tuple

    def copy_abs(self):
        return type(self)._make((+1, self.coefficient, self.exponent))

    def copy_negate(self):
        return type(self)._make((-self.sign, self.coefficient, self.exponent))

    def copy_sign(self, other):
        '''Return self with the sign of other, a number or +1 or -1.'''
        sign = other.sign if isinstance(other, Num) else (-1 if other < 0 else +1)
        return type(self)._make((sign, self.coefficient, self.exponent))

    ##
    ## Rounding to the context
    ##

    def _fix_nan(self, context):
        '''Truncate the diagnostic of a NaN to the digits the context allows.'''
        max_digits = context.maximum_nan_diagnostic_digits()
        if max_digits is not None:
            limit = self.int_radix_power(max_digits)
            if self.coefficient >= limit:
                return type(self)._make((self.sign, self.coefficient % limit, self.exponent))
        return self

    def _fix(self, context):
        '''Round to the context: its precision, exponent limits, clamp and normalization.
        Signals the conditions of the rounding.'''
        if self.is_special():
            if self.is_nan():
                return self._fix_nan(context)
            return self
        if context.exact:
            return self

        cls = type(self)
        radix = cls.radix
        sign, coefficient, exponent = self
        precision = context.precision
        etiny, etop = context.etiny(), context.etop()

        if not coefficient:
            exp_max = etop if context.clamp else context.emax
            new_exp = min(max(exponent, etiny), exp_max)
            if new_exp != exponent:
                context.exception(Clamped, 'exponent of a zero out of range')
                return cls._make((sign, 0, new_exp))
            return self

        exp_min = number_of_digits(coefficient, radix) + exponent - precision
        if exp_min > etop:
            context.exception(Inexact)
            context.exception(Rounded)
            return context.exception(Overflow, 'above emax', sign)

        subnormal = exp_min < etiny
        if subnormal:
            exp_min = etiny
            context.exception(Subnormal)

        if exponent < exp_min:
            dropped = exp_min - exponent
            kept = _split(coefficient, dropped, radix)[0]
            changed = ROUNDERS[context.rounding](self, dropped)
            if changed > 0:
                kept += 1
                if kept == radix_power(radix, precision):
                    kept //= radix
                    exp_min += 1
            context.exception(Rounded)
            if changed:
                context.exception(Inexact)
                if subnormal:
                    context.exception(Underflow)
            if exp_min > etop:
                return context.exception(Overflow, 'above emax', sign)
            ans = cls._make((sign, kept, exp_min))
            if not kept:
                # Underflow to zero
                context.exception(Clamped)
            return ans._normalized(context)

        if context.clamp and exponent > etop:
            context.exception(Clamped)
            return cls._make((sign, coefficient * radix_power(radix, exponent - etop), etop))
        return self._normalized(context)

    def _normalized(self, context):
        # Pad to full precision if the context keeps results normalized
        if not context.normalized or not self.is_finite() or not self.coefficient:
            return self
        radix = self.radix
        shift = min(context.precision - number_of_digits(self.coefficient, radix),
                    self.exponent - context.etiny())
        if shift <= 0:
            return self
        return type(self)._make((self.sign, self.coefficient * radix_power(radix, shift),
                                 self.exponent - shift))

    def _rescale(self, exp, rounding):
        '''Return the number with exponent exp, rounding with rounding if digits are
        discarded.  Signals nothing.'''
        cls = type(self)
        if self.is_special():
            return self
        if not self.coefficient:
            return cls._make((self.sign, 0, exp))
        radix = cls.radix
        if self.exponent >= exp:
            return cls._make((self.sign,
                              self.coefficient * radix_power(radix, self.exponent - exp), exp))
        dropped = exp - self.exponent
        kept = _split(self.coefficient, dropped, radix)[0]
        if ROUNDERS[rounding](self, dropped) > 0:
            kept += 1
        return cls._make((self.sign, kept, exp))

    @staticmethod
    def _fix_half_even(ans, context):
        '''Round ans to the context with ROUND_HALF_EVEN, reporting conditions in context.'''
        work = context.copy(rounding=ROUND_HALF_EVEN)
        try:
            ans = ans._fix(work)
        finally:
            context.flags = work.flags
        return ans

    def _check_nans(self, context, other=None):
        '''Return the result of an operation with a NaN operand, or None if neither
        operand is a NaN.  Signalling NaNs signal InvalidOperation.'''
        if self.is_nan() or (other is not None and other.is_nan()):
            if self.is_snan():
                return context.exception(InvalidOperation, 'sNaN', self)
            if other is not None and other.is_snan():
                return context.exception(InvalidOperation, 'sNaN', other)
            if self.is_nan():
                return self._fix_nan(context)
            return other._fix_nan(context)
        return None

    ##
    ## Arithmetic
    ##

    def add(self, other, context=None):
        context = self.define_context(context)
        other = context._convert(other)
        cls = type(self)

        if self.is_special() or other.is_special():
            ans = self._check_nans(context, other)
            if ans is not None:
                return ans
            if self.is_infinite():
                if other.is_infinite() and self.sign != other.sign:
                    return context.exception(InvalidOperation, '-INF + INF')
                return self
            return other

        exp = min(self.exponent, other.exponent)
        negative_zero = context.rounding == ROUND_FLOOR and self.sign != other.sign

        if not self.coefficient and not other.coefficient:
            sign = -1 if negative_zero else max(self.sign, other.sign)
            return cls._make((sign, 0, exp))._fix(context)
        if not self.coefficient:
            if not context.exact:
                exp = max(exp, other.exponent - context.precision - 1)
            return other._rescale(exp, context.rounding)._fix(context)
        if not other.coefficient:
            if not context.exact:
                exp = max(exp, self.exponent - context.precision - 1)
            return self._rescale(exp, context.rounding)._fix(context)

        op1, op2 = _align(self, other, context.precision)
        if op1.sign != op2.sign:
            if op1.coefficient == op2.coefficient:
                return cls._make((-1 if negative_zero else +1, 0, exp))._fix(context)
            if op1.coefficient < op2.coefficient:
                op1, op2 = op2, op1
            coefficient = op1.coefficient - op2.coefficient
        else:
            coefficient = op1.coefficient + op2.coefficient
        return cls._make((op1.sign, coefficient, op1.exponent))._fix(context)

    def subtract(self, other, context=None):
        context = self.define_context(context)
        return self.add(context._convert(other).copy_negate(), context)

    def multiply(self, other, context=None):
        context = self.define_context(context)
        other = context._convert(other)
        cls = type(self)
        sign = self.sign * other.sign

        if self.is_special() or other.is_special():
            ans = self._check_nans(context, other)
            if ans is not None:
                return ans
            if self.is_infinite():
                if other.is_zero():
                    return context.exception(InvalidOperation, '(+-)INF * 0')
                return cls.infinity(sign)
            if self.is_zero():
                return context.exception(InvalidOperation, '0 * (+-)INF')
            return cls.infinity(sign)

        return cls._make((sign, self.coefficient * other.coefficient,
                          self.exponent + other.exponent))._fix(context)

    def divide(self, other, context=None):
        context = self.define_context(context)
        other = context._convert(other)
        cls = type(self)
        sign = self.sign * other.sign

        if self.is_special() or other.is_special():
            ans = self._check_nans(context, other)
            if ans is not None:
                return ans
            if self.is_infinite():
                if other.is_infinite():
                    return context.exception(InvalidOperation, '(+-)INF / (+-)INF')
                return cls.infinity(sign)
            context.exception(Clamped, 'division by infinity')
            return cls._make((sign, 0, context.etiny()))

        if not other.coefficient:
            if not self.coefficient:
                return context.exception(DivisionUndefined, '0 / 0')
            return context.exception(DivisionByZero, 'x / 0', sign)

        radix = cls.radix
        if not self.coefficient:
            coefficient, exp = 0, self.exponent - other.exponent
        else:
            self_digits = number_of_digits(self.coefficient, radix)
            other_digits = number_of_digits(other.coefficient, radix)
            if context.exact:
                precision = self_digits + other_digits * radix.bit_length()
            else:
                precision = context.precision
            shift = other_digits - self_digits + precision + 1
            exp = self.exponent - other.exponent - shift
            if shift >= 0:
                divisor = other.coefficient
                coefficient, rem = divmod(self.coefficient * radix_power(radix, shift), divisor)
            else:
                divisor = other.coefficient * radix_power(radix, -shift)
                coefficient, rem = divmod(self.coefficient, divisor)
            if rem:
                if context.exact:
                    return context.exception(Inexact, 'inexact division')
                coefficient, exp = _sticky(coefficient, exp, 2 * rem > divisor, radix)
            else:
                # The exact quotient with the exponent as close to the ideal as possible
                ideal_exp = self.exponent - other.exponent
                while exp < ideal_exp and coefficient % radix == 0:
                    coefficient //= radix
                    exp += 1

        return cls._make((sign, coefficient, exp))._fix(context)

    def fma(self, other, third, context=None):
        '''self * other + third with a single rounding.'''
        context = self.define_context(context)
        other = context._convert(other)
        third = context._convert(third)
        cls = type(self)

        if self.is_special() or other.is_special():
            if self.is_snan():
                return context.exception(InvalidOperation, 'sNaN', self)
            if other.is_snan():
                return context.exception(InvalidOperation, 'sNaN', other)
            if self.is_nan():
                product = self
            elif other.is_nan():
                product = other
            elif self.is_infinite():
                if other.is_zero():
                    return context.exception(InvalidOperation, 'INF * 0 in fma')
                product = cls.infinity(self.sign * other.sign)
            else:
                if self.is_zero():
                    return context.exception(InvalidOperation, '0 * INF in fma')
                product = cls.infinity(self.sign * other.sign)
        else:
            product = cls._make((self.sign * other.sign, self.coefficient * other.coefficient,
                                 self.exponent + other.exponent))
        return product.add(third, context)

    def plus(self, context=None):
        context = self.define_context(context)
        if self.is_special():
            ans = self._check_nans(context)
            if ans is not None:
                return ans
        if self.is_zero() and context.rounding != ROUND_FLOOR:
            # +(-0) is 0 except when rounding to floor
            return self.copy_abs()._fix(context)
        return self._fix(context)

    def minus(self, context=None):
        context = self.define_context(context)
        if self.is_special():
            ans = self._check_nans(context)
            if ans is not None:
                return ans
        if self.is_zero() and context.rounding != ROUND_FLOOR:
            return self.copy_abs()._fix(context)
        return self.copy_negate()._fix(context)

    def abs(self, context=None):
        context = self.define_context(context)
        if self.is_special():
            ans = self._check_nans(context)
            if ans is not None:
                return ans
        if self.sign < 0:
            return self.minus(context)
        return self.plus(context)

    def sqrt(self, context=None):
        '''The square root, correctly rounded with the context rounding.'''
        context = self.define_context(context)
        cls = type(self)
        if self.is_special():
            ans = self._check_nans(context)
            if ans is not None:
                return ans
            if self.sign > 0:
                return self

        if self.is_zero():
            # sqrt(-0) is -0
            return cls._make((self.sign, 0, self.exponent >> 1))._fix(context)
        if self.sign < 0:
            return context.exception(InvalidOperation, 'sqrt of a negative number')

        # Work in units of radix**2: c * radix**(2*e) with the root to precision + 1
        # digits
        radix = cls.radix
        digits = number_of_digits(self.coefficient, radix)
        if context.exact:
            precision = digits // 2 + 2
        else:
            precision = context.precision + 1
        e = self.exponent >> 1
        if self.exponent & 1:
            c = self.coefficient * radix
            length = (digits >> 1) + 1
        else:
            c = self.coefficient
            length = (digits + 1) >> 1
        shift = precision - length
        if shift >= 0:
            c *= radix_power(radix, 2 * shift)
            scale, rem = 1, 0
        else:
            scale = radix_power(radix, -2 * shift)
            c, rem = divmod(c, scale)
        e -= shift

        n = math.isqrt(c)
        if not rem and n * n == c:
            # Exact: use the ideal exponent
            if shift >= 0:
                n //= radix_power(radix, shift)
            else:
                n *= radix_power(radix, -shift)
            e += shift
        else:
            if context.exact:
                return context.exception(Inexact, 'inexact square root')
            # Whether the root of c + rem / scale exceeds n + 1/2
            above_half = 4 * (c * scale + rem) > (2 * n + 1) ** 2 * scale
            n, e = _sticky(n, e, above_half, radix)
        return cls._make((+1, n, e))._fix(context)

    ##
    ## Division families
    ##

    def _divide_special(self, other, context):
        '''Results of integer division by zero or of an infinity, as a (quotient,
        remainder) pair, or None.'''
        sign = self.sign * other.sign
        if self.is_infinite():
            if other.is_infinite():
                ans = context.exception(InvalidOperation, 'divmod(INF, INF)')
                return ans, ans
            return (type(self).infinity(sign),
                    context.exception(InvalidOperation, 'INF % x'))
        if other.is_zero():
            if self.is_zero():
                ans = context.exception(DivisionUndefined, 'divmod(0, 0)')
                return ans, ans
            return (context.exception(DivisionByZero, 'x // 0', sign),
                    context.exception(InvalidOperation, 'x % 0'))
        return None

    def _divide_truncate(self, other, context):
        cls = type(self)
        sign = self.sign * other.sign
        ideal_exp = self.exponent if other.is_infinite() else min(self.exponent,
                                                                   other.exponent)
        expdiff = self.adjusted_exponent() - other.adjusted_exponent()
        if self.is_zero() or other.is_infinite() or expdiff <= -2:
            return cls._make((sign, 0, 0)), self._rescale(ideal_exp, context.rounding)
        if context.exact or expdiff <= context.precision:
            a, b = _aligned_coefficients(self, other)
            q, r = divmod(a, b)
            if context.exact or q < self.int_radix_power(context.precision):
                return cls._make((sign, q, 0)), cls._make((self.sign, r, ideal_exp))
        ans = context.exception(DivisionImpossible, 'quotient too large in //, % or divmod')
        return ans, ans

    def _divide_floor(self, other, context):
        cls = type(self)
        sign = self.sign * other.sign
        ideal_exp = self.exponent if other.is_infinite() else min(self.exponent,
                                                                   other.exponent)
        expdiff = self.adjusted_exponent() - other.adjusted_exponent()
        if self.is_zero() or other.is_infinite() or expdiff <= -2:
            if self.is_zero() or self.sign == other.sign:
                return cls._make((sign, 0, 0)), self._rescale(ideal_exp, context.rounding)
            if other.is_infinite():
                return cls.from_int(-1), other
        if context.exact or expdiff <= context.precision:
            a, b = _aligned_coefficients(self, other)
            q, r = divmod(self.sign * a, other.sign * b)
            if context.exact or abs(q) < self.int_radix_power(context.precision):
                return (cls._make((-1 if q < 0 else +1, abs(q), 0)),
                        cls._make((-1 if r < 0 else +1, abs(r), ideal_exp)))
        ans = context.exception(DivisionImpossible, 'quotient too large in //, % or divmod')
        return ans, ans

    def divrem(self, other, context=None):
        '''The truncated integer quotient and the remainder, as a pair.'''
        context = self.define_context(context)
        other = context._convert(other)
        ans = self._check_nans(context, other)
        if ans is not None:
            return ans, ans
        ans = self._divide_special(other, context)
        if ans is not None:
            return ans
        quotient, remainder = self._divide_truncate(other, context)
        return quotient, remainder._fix(context)

    def divide_int(self, other, context=None):
        '''The integer part of self / other, truncated.'''
        context = self.define_context(context)
        other = context._convert(other)
        ans = self._check_nans(context, other)
        if ans is not None:
            return ans
        sign = self.sign * other.sign
        if self.is_infinite():
            if other.is_infinite():
                return context.exception(InvalidOperation, 'INF // INF')
            return type(self).infinity(sign)
        if other.is_zero():
            if self.is_zero():
                return context.exception(DivisionUndefined, '0 // 0')
            return context.exception(DivisionByZero, 'x // 0', sign)
        return self._divide_truncate(other, context)[0]

    def remainder(self, other, context=None):
        '''The remainder of the truncated integer division, with the sign of self.'''
        context = self.define_context(context)
        other = context._convert(other)
        ans = self._check_nans(context, other)
        if ans is not None:
            return ans
        ans = self._remainder_special(other, context)
        if ans is not None:
            return ans
        return self._divide_truncate(other, context)[1]._fix(context)

    def _remainder_special(self, other, context):
        if self.is_infinite():
            return context.exception(InvalidOperation, 'INF % x')
        if other.is_zero():
            if self.is_zero():
                return context.exception(DivisionUndefined, '0 % 0')
            return context.exception(InvalidOperation, 'x % 0')
        return None

    def divmod(self, other, context=None):
        '''The floored integer quotient and the remainder, as a pair.'''
        context = self.define_context(context)
        other = context._convert(other)
        ans = self._check_nans(context, other)
        if ans is not None:
            return ans, ans
        ans = self._divide_special(other, context)
        if ans is not None:
            return ans
        quotient, remainder = self._divide_floor(other, context)
        return quotient, remainder._fix(context)

    def div(self, other, context=None):
        '''The floored integer quotient.'''
        context = self.define_context(context)
        other = context._convert(other)
        ans = self._check_nans(context, other)
        if ans is not None:
            return ans
        ans = self._divide_special(other, context)
        if ans is not None:
            return ans[0]
        return self._divide_floor(other, context)[0]

    def modulo(self, other, context=None):
        '''The remainder of the floored integer division, with the sign of other.'''
        context = self.define_context(context)
        other = context._convert(other)
        ans = self._check_nans(context, other)
        if ans is not None:
            return ans
        ans = self._remainder_special(other, context)
        if ans is not None:
            return ans
        return self._divide_floor(other, context)[1]._fix(context)

    def remainder_near(self, other, context=None):
        '''self - n * other where n is the integer nearest self / other, ties to even.'''
        context = self.define_context(context)
        other = context._convert(other)
        cls = type(self)
        ans = self._check_nans(context, other)
        if ans is not None:
            return ans
        if self.is_infinite():
            return context.exception(InvalidOperation, 'remainder_near(infinity, x)')
        if other.is_zero():
            if self.is_zero():
                return context.exception(DivisionUndefined, 'remainder_near(0, 0)')
            return context.exception(InvalidOperation, 'remainder_near(x, 0)')
        if other.is_infinite():
            return self._fix(context)

        ideal_exp = min(self.exponent, other.exponent)
        if self.is_zero():
            return cls._make((self.sign, 0, ideal_exp))._fix(context)

        expdiff = self.adjusted_exponent() - other.adjusted_exponent()
        if not context.exact and expdiff >= context.precision + 1:
            return context.exception(DivisionImpossible)
        if expdiff <= -2:
            return self._rescale(ideal_exp, context.rounding)._fix(context)

        a, b = _aligned_coefficients(self, other)
        q, r = divmod(a, b)
        if 2 * r + (q & 1) > b:
            r -= b
            q += 1
        if not context.exact and q >= self.int_radix_power(context.precision):
            return context.exception(DivisionImpossible)
        sign = self.sign
        if r < 0:
            sign, r = -sign, -r
        return cls._make((sign, r, ideal_exp))._fix(context)

    ##
    ## Comparison and selection
    ##

    def _cmp_num(self, other):
        '''Compare two numbers of the same class, neither a NaN: -1, 0 or 1.'''
        if self.is_infinite() or other.is_infinite():
            self_inf = self.sign if self.is_infinite() else 0
            other_inf = other.sign if other.is_infinite() else 0
            return (self_inf > other_inf) - (self_inf < other_inf)
        if not self.coefficient:
            return 0 if not other.coefficient else -other.sign
        if not other.coefficient:
            return self.sign
        if self.sign != other.sign:
            return self.sign
        self_adjusted = self.adjusted_exponent()
        other_adjusted = other.adjusted_exponent()
        if self_adjusted == other_adjusted:
            a, b = self.coefficient, other.coefficient
            if self.exponent > other.exponent:
                a *= radix_power(self.radix, self.exponent - other.exponent)
            else:
                b *= radix_power(self.radix, other.exponent - self.exponent)
            if a == b:
                return 0
            return self.sign if a > b else -self.sign
        return self.sign if self_adjusted > other_adjusted else -self.sign

    @staticmethod
    def _classify(x):
        '''(sign, infinite, zero) of a number or Python number that is not a NaN.'''
        if isinstance(x, Num):
            return x.sign, x.is_infinite(), x.is_zero()
        if isinstance(x, float) and math.isinf(x):
            return (+1 if x > 0 else -1), True, False
        return (-1 if x < 0 else +1), False, x == 0

    @staticmethod
    def _log2_bounds(x):
        '''Bounds on log2 of the magnitude of a finite non-zero number or Python number.'''
        if isinstance(x, Num):
            scale = x.exponent * math.log2(x.radix)
            bits = x.coefficient.bit_length()
            return bits - 1 + scale, bits + scale
        x = Fraction(x)
        bits = abs(x.numerator).bit_length() - x.denominator.bit_length()
        return bits - 1, bits + 1

    def _cmp_value(self, other):
        '''Compare with a number of another class or a Python number, neither a NaN.
        Magnitudes far apart are ordered without building the exact values, which can be
        huge.'''
        self_sign, self_inf, self_zero = self._classify(self)
        other_sign, other_inf, other_zero = self._classify(other)
        if self_inf or other_inf:
            a = self_sign if self_inf else 0
            b = other_sign if other_inf else 0
            return (a > b) - (a < b)
        if self_zero or other_zero:
            a = 0 if self_zero else self_sign
            b = 0 if other_zero else other_sign
            return (a > b) - (a < b)
        if self_sign != other_sign:
            return self_sign
        self_low, self_high = self._log2_bounds(self)
        other_low, other_high = self._log2_bounds(other)
        # A margin of one bit covers the error of the floating point logarithms
        if self_low > other_high + 1:
            return self_sign
        if self_high + 1 < other_low:
            return -self_sign
        value = self.to_fraction()
        other = other.to_fraction() if isinstance(other, Num) else Fraction(other)
        return (value > other) - (value < other)

    def _cmp(self, other):
        '''Compare with a number or Python number.  Returns -1, 0 or 1, None if either is
        a NaN, or NotImplemented.'''
        if isinstance(other, type(self)):
            if self.is_nan() or other.is_nan():
                return None
            return self._cmp_num(other)
        if isinstance(other, Num):
            if other.is_nan():
                return None
        elif isinstance(other, float):
            if math.isnan(other):
                return None
        elif not isinstance(other, (int, Fraction)):
            return NotImplemented
        if self.is_nan():
            return None
        return self._cmp_value(other)

    def compare(self, other, context=None):
        '''Return -1, 0 or 1 as a number, or a NaN if either operand is a NaN.'''
        context = self.define_context(context)
        other = context._convert(other)
        ans = self._check_nans(context, other)
        if ans is not None:
            return ans
        return type(self).from_int(self._cmp_num(other))

    def total_order(self, other):
        '''Compare numerically, with NaNs greater than all other numbers and equal to each
        other: -1, 0 or 1.'''
        other = get_context(type(self))._convert(other)
        if self.is_nan() or other.is_nan():
            return self.is_nan() - other.is_nan()
        return self._cmp_num(other)

    def _representation_order(self, other):
        # Order numerically equal numbers by sign, then by exponent
        if self.sign != other.sign:
            return self.sign
        if self.is_special():
            return 0
        return ((self.exponent > other.exponent) - (self.exponent < other.exponent)) * self.sign

    def _max_min(self, other, context, is_max):
        context = self.define_context(context)
        other = context._convert(other)
        if self.is_nan() or other.is_nan():
            if self.is_snan() or other.is_snan() or (self.is_nan() and other.is_nan()):
                return self._check_nans(context, other)
            # A single quiet NaN gives the other operand
            return (other if self.is_nan() else self)._fix(context)
        comparison = self._cmp_num(other)
        if comparison == 0:
            comparison = self._representation_order(other)
        if (comparison < 0) == is_max:
            return other._fix(context)
        return self._fix(context)

    def max(self, other, context=None):
        return self._max_min(other, context, True)

    def min(self, other, context=None):
        return self._max_min(other, context, False)

    ##
    ## Neighbours
    ##

    def next_minus(self, context=None):
        '''The largest number less than self.'''
        context = self.define_context(context)
        cls = type(self)
        ans = self._check_nans(context)
        if ans is not None:
            return ans
        if context.exact:
            return context.exception(InvalidOperation, 'next_minus in an exact context')
        if self.is_infinite():
            if self.sign < 0:
                return self
            return cls._make((+1, context.maximum_coefficient(), context.etop()))
        work = context.copy(rounding=ROUND_FLOOR)
        work.ignore_all_flags()
        ans = self._fix(work)
        if ans._cmp_num(self) != 0:
            return ans
        return self.subtract(cls._make((+1, 1, work.etiny() - 1)), work)

    def next_plus(self, context=None):
        '''The smallest number greater than self.'''
        context = self.define_context(context)
        cls = type(self)
        ans = self._check_nans(context)
        if ans is not None:
            return ans
        if context.exact:
            return context.exception(InvalidOperation, 'next_plus in an exact context')
        if self.is_infinite():
            if self.sign > 0:
                return self
            return cls._make((-1, context.maximum_coefficient(), context.etop()))
        work = context.copy(rounding=ROUND_CEILING)
        work.ignore_all_flags()
        ans = self._fix(work)
        if ans._cmp_num(self) != 0:
            return ans
        return self.add(cls._make((+1, 1, work.etiny() - 1)), work)

    def next_toward(self, other, context=None):
        '''The number next to self in the direction of other.'''
        context = self.define_context(context)
        other = context._convert(other)
        ans = self._check_nans(context, other)
        if ans is not None:
            return ans
        comparison = self._cmp_num(other)
        if comparison == 0:
            return self.copy_sign(other)
        if comparison < 0:
            ans = self.next_plus(context)
        else:
            ans = self.next_minus(context)
        if ans.is_infinite():
            context.exception(Overflow, 'infinite result from next_toward', ans.sign)
            context.exception(Inexact)
            context.exception(Rounded)
        elif ans.adjusted_exponent() < context.emin:
            context.exception(Underflow)
            context.exception(Subnormal)
            context.exception(Inexact)
            context.exception(Rounded)
            if ans.is_zero():
                context.exception(Clamped)
        return ans

    def ulp(self, context=None, mode='low'):
        '''The unit in the last place of the number rounded to the context.  For powers of
        the radix mode 'low' gives the gap below and 'high' the gap above.'''
        if mode not in ('low', 'high'):
            raise ValueError(f"ulp mode must be 'low' or 'high', not {mode!r}")
        context = self.define_context(context)
        cls = type(self)
        if self.is_nan():
            return self._check_nans(context)
        if context.exact:
            return context.exception(InvalidOperation, 'ulp in an exact context')
        if self.is_infinite():
            return cls._make((+1, 1, context.etop()))
        work = context.copy()
        work.ignore_all_flags()
        norm = self.normalize(work)
        if norm.is_infinite():
            return cls._make((+1, 1, context.etop()))
        adjusted = norm.adjusted_exponent()
        if norm.is_zero() or adjusted < context.emin:
            return context.minimum_nonzero()
        exponent = norm.exponent
        if (mode == 'low' and adjusted > context.emin
                and norm.coefficient == radix_power(cls.radix, context.precision - 1)):
            exponent -= 1
        return cls._make((+1, 1, exponent))

    ##
    ## Exponents and quanta
    ##

    def reduce(self, context=None):
        '''Round to the context and strip trailing zeroes.'''
        context = self.define_context(context)
        cls = type(self)
        if self.is_special():
            ans = self._check_nans(context)
            if ans is not None:
                return ans
        dup = self._fix(context)
        if dup.is_infinite():
            return dup
        if dup.is_zero():
            return cls._make((dup.sign, 0, 0))
        exp_max = context.etop() if context.clamp and not context.exact else context.emax
        coefficient, exp = dup.coefficient, dup.exponent
        while coefficient % cls.radix == 0 and exp < exp_max:
            coefficient //= cls.radix
            exp += 1
        return cls._make((dup.sign, coefficient, exp))

    def normalize(self, context=None):
        '''Round to the context and pad the coefficient to the full precision.'''
        context = self.define_context(context)
        cls = type(self)
        if self.is_special():
            ans = self._check_nans(context)
            if ans is not None:
                return ans
            return self
        if self.is_zero() or context.exact:
            return self
        ans = self._fix(context)
        if not ans.is_finite() or ans.is_zero():
            return ans
        radix = cls.radix
        shift = min(context.precision - number_of_digits(ans.coefficient, radix),
                    ans.exponent - context.etiny())
        if shift > 0:
            ans = cls._make((ans.sign, ans.coefficient * radix_power(radix, shift),
                             ans.exponent - shift))
        return ans

    def logb(self, context=None):
        '''The adjusted exponent as a number.'''
        context = self.define_context(context)
        ans = self._check_nans(context)
        if ans is not None:
            return ans
        if self.is_infinite():
            return type(self).infinity()
        if self.is_zero():
            return context.exception(DivisionByZero, 'logb(0)', -1)
        return type(self).from_int(self.adjusted_exponent())._fix(context)

    def scaleb(self, other, context=None):
        '''self * radix**other, other an integer with exponent 0.'''
        context = self.define_context(context)
        other = context._convert(other)
        ans = self._check_nans(context, other)
        if ans is not None:
            return ans
        if other.is_special() or other.exponent != 0:
            return context.exception(InvalidOperation, 'scaleb by a non-integer')
        limit = 2 * (context.emax + context.precision)
        n = other.to_int()
        if not -limit <= n <= limit:
            return context.exception(InvalidOperation, 'scaleb out of range')
        if self.is_infinite():
            return self
        return type(self)._make((self.sign, self.coefficient, self.exponent + n))._fix(context)

    def _watched_rescale(self, exp, context, watch_exp):
        cls = type(self)
        if not watch_exp:
            ans = self._rescale(exp, context.rounding)
            if ans.exponent > self.exponent:
                context.exception(Rounded)
                if ans._cmp_num(self) != 0:
                    context.exception(Inexact)
            return ans

        exact = context.exact
        if not exact and not context.etiny() <= exp <= context.emax:
            return context.exception(InvalidOperation,
                                     'target exponent out of bounds in quantize')
        if self.is_zero():
            return cls._make((self.sign, 0, exp))._fix(context)
        if not exact:
            adjusted = self.adjusted_exponent()
            if adjusted > context.emax:
                return context.exception(InvalidOperation,
                                         'exponent of quantize result too large')
            if adjusted - exp + 1 > context.precision:
                return context.exception(InvalidOperation,
                                         'quantize result has too many digits')

        ans = self._rescale(exp, context.rounding)
        if not exact:
            if ans.adjusted_exponent() > context.emax:
                return context.exception(InvalidOperation,
                                         'exponent of quantize result too large')
            if number_of_digits(ans.coefficient, cls.radix) > context.precision:
                return context.exception(InvalidOperation,
                                         'quantize result has too many digits')
            if not ans.is_zero() and ans.adjusted_exponent() < context.emin:
                context.exception(Subnormal)
        if ans.exponent > self.exponent:
            if ans._cmp_num(self) != 0:
                quiet = context.exception(Inexact, 'inexact quantize')
                if quiet is not None:
                    return quiet
            context.exception(Rounded)
        return ans._fix(context)

    def rescale(self, exp, context=None, watch_exp=True):
        '''Return the number with exponent exp, rounded with the context rounding.  If
        watch_exp the result must fit the context.'''
        context = self.define_context(context)
        if not isinstance(exp, int):
            exp = context._convert(exp)
            ans = self._check_nans(context, exp)
            if ans is not None:
                return ans
            if not exp.is_integral():
                return context.exception(InvalidOperation, 'rescale to a non-integral exponent')
            exp = exp.to_int()
        if self.is_special():
            ans = self._check_nans(context)
            if ans is not None:
                return ans
            return context.exception(InvalidOperation, 'rescale of an infinity')
        return self._watched_rescale(exp, context, watch_exp)

    def quantize(self, other, context=None, watch_exp=True):
        '''Return the number with the exponent of other.'''
        context = self.define_context(context)
        other = context._convert(other)
        if self.is_special() or other.is_special():
            ans = self._check_nans(context, other)
            if ans is not None:
                return ans
            if self.is_infinite() and other.is_infinite():
                return self
            return context.exception(InvalidOperation, 'quantize with one INF')
        return self._watched_rescale(other.exponent, context, watch_exp)

    def same_quantum(self, other):
        other = get_context(type(self))._convert(other)
        if self.is_special() or other.is_special():
            return ((self.is_nan() and other.is_nan())
                    or (self.is_infinite() and other.is_infinite()))
        return self.exponent == other.exponent

    def to_integral_exact(self, context=None):
        '''Round to an integer with the context rounding, signalling Inexact and
        Rounded.'''
        context = self.define_context(context)
        if self.is_special():
            ans = self._check_nans(context)
            if ans is not None:
                return ans
            return self
        if self.exponent >= 0:
            return self
        if self.is_zero():
            return type(self)._make((self.sign, 0, 0))
        ans = self._rescale(0, context.rounding)
        if ans._cmp_num(self) != 0:
            context.exception(Inexact)
        context.exception(Rounded)
        return ans

    def to_integral_value(self, context=None):
        '''Round to an integer with the context rounding, signalling nothing.'''
        context = self.define_context(context)
        if self.is_special():
            ans = self._check_nans(context)
            if ans is not None:
                return ans
            return self
        if self.exponent >= 0:
            return self
        return self._rescale(0, context.rounding)

    def round(self, places=None, *, rounding=None, exponent=None, precision=None,
              power=None, index=None, rindex=None):
        '''Round to a selected digit position, by default with ROUND_HALF_UP.

        The position is given by one of: places, the digits after the radix point;
        exponent, the exponent of the last digit kept; power, a power of the radix
        whose digit is the last kept; precision, the number of significant digits;
        index, the index of the last digit kept counting from the most significant
        digit at 0; or rindex, the number of digits discarded from the right.  With no
        position the result is rounded to an integer and returned as an int.
        '''
        rounding = rounding or ROUND_HALF_UP
        if places is None and all(option is None for option in (
                exponent, precision, power, index, rindex)):
            return self.to_int(rounding)
        if self.is_special():
            return self
        adjusted = self.adjusted_exponent()
        if precision is not None:
            keep = precision
        elif places is not None:
            keep = adjusted + 1 + places
        elif exponent is not None:
            keep = adjusted + 1 - exponent
        elif power is not None:
            keep = adjusted + 1 - self._power_position(power)
        elif index is not None:
            keep = index + 1
        else:
            keep = self.number_of_digits() - rindex
        dropped = self.number_of_digits() - keep
        if dropped <= 0:
            return self
        return self._rescale(self.exponent + dropped, rounding)

    def _power_position(self, power):
        # The digit position of a power of the radix given as a number or an int
        if isinstance(power, Num):
            return power.adjusted_exponent()
        return number_of_digits(abs(power), self.radix) - 1

    def ceil(self, places=None, **options):
        return self.round(places, rounding=ROUND_CEILING, **options)

    def floor(self, places=None, **options):
        return self.round(places, rounding=ROUND_FLOOR, **options)

    def truncate(self, places=None, **options):
        return self.round(places, rounding=ROUND_DOWN, **options)

    def integral_part(self):
        if self.is_special() or self.exponent >= 0:
            return self
        return self._rescale(0, ROUND_DOWN)

    def fraction_part(self, context=None):
        return self.subtract(self.integral_part(), context)

    ##
    ## Transcendental functions
    ##

    def _near_one_ratio(self):
        # A fraction num / den bounding abs(ln(self)) from below, for 1/radix <= self < radix
        scale = radix_power(self.radix, -self.exponent)
        if self.coefficient > scale:
            return self.coefficient - scale, self.coefficient
        return scale - self.coefficient, scale

    def _ln_exp_bound(self):
        '''An integer b with abs(ln(self)) >= radix**b.  self is finite, positive and not
        1.'''
        radix = self.radix
        adjusted = self.adjusted_exponent()
        lo, _ = _ln_radix_bounds(radix)
        if adjusted >= 1:
            num, den = adjusted * lo, 1000
        elif adjusted <= -2:
            num, den = (-1 - adjusted) * lo, 1000
        else:
            num, den = self._near_one_ratio()
        return number_of_digits(num, radix) - number_of_digits(den, radix) - 1

    def _log_radix_exp_bound(self):
        '''An integer b with abs(log_radix(self)) >= radix**b.  self is finite, positive
        and not 1.'''
        radix = self.radix
        adjusted = self.adjusted_exponent()
        if adjusted >= 1:
            return number_of_digits(adjusted, radix) - 1
        if adjusted <= -2:
            return number_of_digits(-1 - adjusted, radix) - 1
        _, hi = _ln_radix_bounds(radix)
        num, den = self._near_one_ratio()
        return number_of_digits(num * 1000, radix) - number_of_digits(den * hi, radix) - 1

    def exp(self, context=None):
        '''e**self, correctly rounded with ROUND_HALF_EVEN.'''
        context = self.define_context(context)
        cls = type(self)
        ans = self._check_nans(context)
        if ans is not None:
            return ans
        if self.is_infinite():
            return cls.zero() if self.sign < 0 else self
        if self.is_zero():
            return cls.from_int(1)
        if context.exact:
            return context.exception(Inexact, 'inexact exp')

        radix = cls.radix
        p = context.precision
        adjusted = self.adjusted_exponent()
        multiplier = int(log(radix)) + 1
        if self.sign > 0 and adjusted > number_of_digits((context.emax + 1) * multiplier, radix):
            # Overflow
            ans = cls._make((+1, 1, context.emax + 1))
        elif (self.sign < 0
              and adjusted > number_of_digits((1 - context.etiny()) * multiplier, radix)):
            # Underflow to zero
            ans = cls._make((+1, 1, context.etiny() - 2))
        elif self.sign > 0 and adjusted < -p - 1:
            # Just above 1
            ans = cls._make((+1, radix_power(radix, p + 1) + 1, -p - 1))
        elif self.sign < 0 and adjusted < -p - 2:
            # Just below 1
            ans = cls._make((+1, radix_power(radix, p + 2) - 1, -p - 2))
        else:
            c = self.coefficient if self.sign > 0 else -self.coefficient
            extra = 3
            while True:
                coefficient, exponent = dexp(c, self.exponent, p + extra, radix)
                if roundable(coefficient, p, radix):
                    break
                extra += 3
                logger.debug('exp: raising working precision to %d digits', p + extra)
            ans = cls._make((+1, coefficient, exponent))
        return self._fix_half_even(ans, context)

    def ln(self, context=None):
        '''The natural logarithm, correctly rounded with ROUND_HALF_EVEN.'''
        context = self.define_context(context)
        cls = type(self)
        ans = self._check_nans(context)
        if ans is not None:
            return ans
        if self.is_zero():
            return cls.infinity(-1)
        if self.is_infinite() and self.sign > 0:
            return self
        if self._is_one():
            return cls.zero()
        if self.sign < 0:
            return context.exception(InvalidOperation, 'ln of a negative number')
        if context.exact:
            return context.exception(Inexact, 'inexact ln')

        radix = cls.radix
        p = context.precision
        places = p - self._ln_exp_bound() + 2
        while True:
            coefficient = dlog(self.coefficient, self.exponent, places, radix)
            if roundable(coefficient, p, radix):
                break
            places += 3
            logger.debug('ln: raising working precision to %d places', places)
        ans = cls._make((-1 if coefficient < 0 else +1, abs(coefficient), -places))
        return self._fix_half_even(ans, context)

    def log_radix(self, context=None):
        '''The logarithm to the base of the radix, correctly rounded with
        ROUND_HALF_EVEN.'''
        context = self.define_context(context)
        cls = type(self)
        ans = self._check_nans(context)
        if ans is not None:
            return ans
        if self.is_zero():
            return cls.infinity(-1)
        if self.is_infinite() and self.sign > 0:
            return self
        if self.sign < 0:
            return context.exception(InvalidOperation, 'logarithm of a negative number')

        radix = cls.radix
        coefficient, exponent = _strip_zeros(self.coefficient, self.exponent, radix)
        if coefficient == 1:
            # An exact power of the radix
            ans = cls.from_int(exponent)
        else:
            if context.exact:
                return context.exception(Inexact, 'inexact logarithm')
            p = context.precision
            places = p - self._log_radix_exp_bound() + 2
            while True:
                coefficient = dlog_radix(self.coefficient, self.exponent, places, radix)
                if roundable(coefficient, p, radix):
                    break
                places += 3
                logger.debug('log: raising working precision to %d places', places)
            ans = cls._make((-1 if coefficient < 0 else +1, abs(coefficient), -places))
        return self._fix_half_even(ans, context)

    def log10(self, context=None):
        return self.log(10, context)

    def log2(self, context=None):
        return self.log(2, context)

    def log(self, base=None, context=None):
        '''The logarithm to base, by default the natural logarithm.'''
        if base is None:
            return self.ln(context)
        if isinstance(base, int) and base == self.radix:
            return self.log_radix(context)
        return self._log_base(base, context)

    def _exact_log(self, base):
        '''Return log_base(self) as a Fraction if it is rational, otherwise None.  self and
        base are finite, positive and not 1.'''
        x_log = log(self.coefficient) + self.exponent * log(self.radix)
        b_log = log(base.coefficient) + base.exponent * log(base.radix)
        estimate = x_log / b_log
        # If base**(m/n) == self then base is an nth power, so n is bounded by its size
        max_denominator = (base.coefficient.bit_length()
                           + abs(base.exponent) * base.radix.bit_length())
        q = Fraction(estimate).limit_denominator(max(1, max_denominator))
        if not q or abs(estimate - q) > 1e-9 * abs(estimate):
            return None
        # Too large to check by exact powers
        if abs(x_log) * q.denominator > 1000000:
            return None
        x, b = self.to_fraction(), base.to_fraction()
        if b ** q.numerator == x ** q.denominator:
            return q
        return None

    def _log_base(self, base, context):
        context = self.define_context(context)
        base = context._convert(base)
        cls = type(self)
        ans = self._check_nans(context, base)
        if ans is not None:
            return ans
        if base.is_special() or base.sign < 0 or base.is_zero() or base._is_one():
            return context.exception(InvalidOperation, 'invalid logarithm base')
        base_sign = +1 if base.adjusted_exponent() >= 0 else -1
        if self.is_zero():
            return cls.infinity(-base_sign)
        if self.sign < 0:
            return context.exception(InvalidOperation, 'logarithm of a negative number')
        if self.is_infinite():
            return cls.infinity(base_sign)
        if self._is_one():
            return cls.zero()

        exact = self._exact_log(base)
        if exact is not None:
            return cls.from_int(exact.numerator).divide(cls.from_int(exact.denominator),
                                                        context)
        if context.exact:
            return context.exception(Inexact, 'inexact logarithm')

        # log(x) / log(b) lies between the quotients of the ends of the error intervals
        # of the two logarithms; when both ends round alike so does the quotient
        radix = cls.radix
        places = context.precision + 3 - min(self._ln_exp_bound(), base._ln_exp_bound(), 0)
        while True:
            lx = dlog(self.coefficient, self.exponent, places, radix)
            lb = dlog(base.coefficient, base.exponent, places, radix)
            ends = [Fraction(lx + i, lb + j) for i in (-1, 1) for j in (-1, 1)]
            work = context.copy(rounding=ROUND_HALF_EVEN, flags=0, traps=0)
            lo = cls(min(ends), context=work)
            hi = cls(max(ends), context=work)
            if tuple(lo) == tuple(hi):
                break
            places += 3
            logger.debug('log: raising working precision to %d places', places)
        context.exception(Inexact)
        context.exception(Rounded)
        return lo._fix(context)

    def power(self, other, modulo=None, context=None):
        '''self**other, rounded with the context rounding.  With modulo, the integer
        (self**other) % modulo.'''
        context = self.define_context(context)
        if modulo is not None:
            return self._power_modulo(other, modulo, context)
        other = context._convert(other)
        cls = type(self)
        radix = cls.radix
        ans = self._check_nans(context, other)
        if ans is not None:
            return ans

        # 0**0 is invalid; x**0 is 1 otherwise, infinities included
        if other.is_zero():
            if self.is_zero():
                return context.exception(InvalidOperation, '0 ** 0')
            return cls.from_int(1)

        # The result is negative only for a negative base and an odd integer exponent
        result_sign = +1
        x = self
        if x.sign < 0:
            if other.is_integral():
                if other.is_odd():
                    result_sign = -1
            elif not x.is_zero():
                return context.exception(InvalidOperation,
                                         'x ** y with x negative and y not an integer')
            x = x.copy_negate()

        if x.is_zero():
            return cls.zero(result_sign) if other.sign > 0 else cls.infinity(result_sign)
        if x.is_infinite():
            return cls.infinity(result_sign) if other.sign > 0 else cls.zero(result_sign)
        if x._is_one():
            return x._power_of_one(other, result_sign, context)

        x_adjusted = x.adjusted_exponent()
        if other.is_infinite():
            if (other.sign > 0) == (x_adjusted < 0):
                return cls.zero(result_sign)
            return cls.infinity(result_sign)

        if context.exact:
            ans = x._power_exact(other, x._exact_power_digits(other))
            if ans is None:
                return context.exception(Inexact, 'inexact power')
            return ans.copy_sign(result_sign)

        # Catch extreme overflow and underflow: if abs(log_radix(x**y)) >= radix**bound
        # then x**y is beyond the exponent limits
        ans = None
        exact = False
        bound = x._log_radix_exp_bound() + other.adjusted_exponent()
        if (x_adjusted >= 0) == (other.sign > 0):
            if bound >= number_of_digits(context.emax, radix):
                ans = cls._make((result_sign, 1, context.emax + 1))
        else:
            etiny = context.etiny()
            if bound > number_of_digits(-etiny, radix):
                ans = cls._make((result_sign, 1, etiny - 2))

        if ans is None:
            ans = x._power_exact(other, context.precision + 1)
            if ans is not None:
                ans = ans.copy_sign(result_sign)
                exact = True

        if ans is None:
            p = context.precision
            yc = other.coefficient if other.sign > 0 else -other.coefficient
            extra = 3
            while True:
                coefficient, exponent = dpower(x.coefficient, x.exponent, yc, other.exponent,
                                               p + extra, radix)
                if roundable(coefficient, p, radix):
                    break
                extra += 3
                logger.debug('power: raising working precision to %d digits', p + extra)
            ans = cls._make((result_sign, coefficient, exponent))

        if exact and not other.is_integral():
            # An exact result for a non-integral exponent still signals Inexact, and
            # Underflow if subnormal.  Pad so that Rounded is signalled, and round in a
            # quiet context to keep the precedence of the conditions.
            digits = number_of_digits(ans.coefficient, radix)
            if digits <= context.precision:
                shift = context.precision + 1 - digits
                ans = cls._make((ans.sign, ans.coefficient * radix_power(radix, shift),
                                 ans.exponent - shift))
            work = context.copy(flags=0, traps=0)
            ans = ans._fix(work)
            work.exception(Inexact)
            if work.flags & Flags.SUBNORMAL:
                work.exception(Underflow)
            for condition in (Subnormal, Rounded, Inexact, Underflow, Clamped):
                if work.flags & condition.flag_to_raise:
                    context.exception(condition)
            if work.flags & Flags.OVERFLOW:
                context.exception(Overflow, 'above emax', ans.sign)
            return ans
        return ans._fix(context)

    def _power_of_one(self, other, result_sign, context):
        # self is exactly 1; the exponent of the result depends on other
        cls = type(self)
        p = context.precision
        if other.is_integral():
            if other.sign < 0:
                multiplier = 0
            elif context.exact:
                multiplier = other.to_int() if other.adjusted_exponent() < 6 else 0
            elif other._cmp_num(cls.from_int(p)) > 0:
                multiplier = p
            else:
                multiplier = other.to_int()
            exp = self.exponent * multiplier
            if not context.exact and exp < 1 - p:
                exp = 1 - p
                context.exception(Rounded)
        elif context.exact:
            exp = 0
        else:
            context.exception(Inexact)
            context.exception(Rounded)
            exp = 1 - p
        return cls._make((result_sign, radix_power(cls.radix, -exp), exp))

    def _exact_power_digits(self, other):
        # Enough digits for any exact power in an exact context
        digits = max(number_of_digits(self.coefficient, self.radix),
                     self.coefficient.bit_length())
        if other.adjusted_exponent() < 6:
            return digits * (math.ceil(abs(other.to_fraction())) + 1) + 2
        return digits + 2

    def _power_exact(self, other, p):
        '''Return self**other if it is exactly representable with at most p digits,
        otherwise None.  self is finite, positive and not 1; other finite and non-zero.'''
        cls = type(self)
        radix = cls.radix
        xc, xe = _strip_zeros(self.coefficient, self.exponent, radix)
        yc, ye = _strip_zeros(other.coefficient, other.exponent, radix)

        if xc == 1:
            # The result is radix**(xe * y), which needs xe * y to be an integer
            xe *= yc
            while xe % radix == 0:
                xe //= radix
                ye += 1
            if ye < 0:
                return None
            exponent = xe * radix_power(radix, ye)
            if other.sign < 0:
                exponent = -exponent
            if other.is_integral() and other.sign > 0:
                ideal_exponent = self.exponent * other.to_int()
                zeros = min(exponent - ideal_exponent, p - 1)
            else:
                zeros = 0
            return cls._make((+1, radix_power(radix, zeros), exponent - zeros))

        if other.sign < 0:
            # self**other is (1/self)**-other, and 1/self must be exact: every prime
            # factor of xc must divide the radix
            g, k = xc, 0
            while g != 1:
                h = gcd(g, radix)
                if h == 1:
                    return None
                g //= h
                k += 1
            xc, xe = _strip_zeros(radix_power(radix, k) // xc, -xe - k, radix)

        # Now self**other with other = m/n in lowest terms and xc > 1
        if ye >= 0:
            if ye > number_of_digits(p * radix.bit_length(), radix):
                return None
            m, n = yc * radix_power(radix, ye), 1
        else:
            # self must be an nth power, so n is at most the exponent of any of its prime
            # factors
            if -ye > number_of_digits(xc.bit_length() + abs(xe) * radix.bit_length(),
                                      radix) + 1:
                return None
            m, n = reduce_ratio(yc, radix_power(radix, -ye))
            if n > xc.bit_length() + abs(xe) * radix.bit_length():
                return None

        # xc**(m/n) has at least (m/n) * log_radix(xc) digits
        lb, mult = log_radix_lb(xc, radix)
        if m * lb > p * n * mult:
            return None

        # x**(m/n) = radix**q * (xc**m * radix**s)**(1/n) with xe*m = q*n + s
        q, s = divmod(xe * m, n)
        z = xc ** m * radix_power(radix, s)
        root = integer_root(z, n)
        if root ** n != z or number_of_digits(root, radix) > p:
            return None

        if other.is_integral() and other.sign > 0:
            ideal_exponent = self.exponent * other.to_int()
            zeros = min(q - ideal_exponent, p - number_of_digits(root, radix))
            if zeros > 0:
                root *= radix_power(radix, zeros)
                q -= zeros
        return cls._make((+1, root, q))

    def _power_modulo(self, other, modulo, context):
        cls = type(self)
        other = context._convert(other)
        modulo = context._convert(modulo)
        operands = (self, other, modulo)
        for operand in operands:
            if operand.is_snan():
                return context.exception(InvalidOperation, 'sNaN', operand)
        for operand in operands:
            if operand.is_nan():
                return operand._fix_nan(context)

        if not all(operand.is_integral() for operand in operands):
            return context.exception(InvalidOperation, 'pow() with a modulus needs integers')
        if other.sign < 0 and not other.is_zero():
            return context.exception(InvalidOperation,
                                     'pow() exponent cannot be negative with a modulus')
        if modulo.is_zero():
            return context.exception(InvalidOperation, 'pow() modulus cannot be zero')
        if not context.exact and modulo.adjusted_exponent() >= context.precision:
            return context.exception(InvalidOperation,
                                     'pow() modulus has more digits than the precision')
        if other.is_zero() and self.is_zero():
            return context.exception(InvalidOperation, '0 ** 0 with a modulus')

        radix = cls.radix
        sign = -1 if self.sign < 0 and other.is_odd() else +1
        m = abs(modulo.to_int())
        bc, be = self._integer_parts()
        base = bc % m * pow(radix, be, m) % m
        yc, ye = other._integer_parts()
        for _ in range(ye):
            base = pow(base, radix, m)
        base = pow(base, yc, m)
        return cls._make((sign, base, 0))

    def _integer_parts(self):
        # (c, e) with e >= 0 and abs(self) == c * radix**e, for an integral number
        if self.exponent >= 0:
            return self.coefficient, self.exponent
        return self.coefficient // radix_power(self.radix, -self.exponent), 0

    ##
    ## Conversions to Python numbers
    ##

    def to_int(self, rounding=ROUND_DOWN):
        '''Round to an integer with rounding and return it as an int.'''
        if self.is_nan():
            raise ValueError('cannot convert NaN to integer')
        if self.is_infinite():
            raise OverflowError('cannot convert infinity to integer')
        value = self if self.exponent >= 0 else self._rescale(0, rounding)
        return value.sign * value.coefficient * radix_power(self.radix, value.exponent)

    def to_fraction(self):
        '''The exact value as a Fraction.'''
        if self.is_nan():
            raise ValueError('cannot convert NaN to a fraction')
        if self.is_infinite():
            raise OverflowError('cannot convert infinity to a fraction')
        value = self.sign * self.coefficient
        if self.exponent >= 0:
            return Fraction(value * radix_power(self.radix, self.exponent))
        return Fraction(value, radix_power(self.radix, -self.exponent))

    def as_integer_ratio(self):
        fraction = self.to_fraction()
        return fraction.numerator, fraction.denominator

    def rationalize(self, tolerance=None, context=None):
        '''Return a simple Fraction close to the number.

        With no tolerance the result is the simplest fraction within half an ulp of the
        number in context.  An int tolerance is a maximum denominator and gives the closest
        fraction with a denominator no larger.  Any other tolerance is an absolute distance.
        '''
        value = self.to_fraction()
        if tolerance is None:
            context = self.define_context(context)
            if context.exact:
                raise ValueError('an exact context has no ulp to rationalize within')
            tolerance = self.ulp(context).to_fraction() / 2
        elif isinstance(tolerance, Num):
            tolerance = tolerance.to_fraction()
        logger.debug('rationalizing %s within %s', self, tolerance)
        return rationalize(value, tolerance)

    ##
    ## Text
    ##

    def format(self, context=None, **options):
        '''Return the number as text.  options are those of TextFormat.'''
        context = self.define_context(context)
        return TextFormat(**options).format(self, context)

    def to_string(self, eng=False, context=None):
        '''The number in scientific, or with eng engineering, notation.'''
        return self.format(context, eng=eng)

    def __repr__(self):
        return f"{type(self).__name__}('{self}')"

    def __str__(self):
        return self.to_string()

    ##
    ## Python support - make it feel like a Python numeric data type.
    ##
    ## Operators use the current context of the class.
    ##

    def _operand(self, other):
        '''Convert the other operand of an operator, or return None if it cannot be.'''
        if isinstance(other, type(self)):
            return other
        if isinstance(other, Num):
            return None
        context = get_context(type(self))
        if not context.is_coercible(other):
            return None
        return type(self)(other, context=context)

    def __eq__(self, other):
        comparison = self._cmp(other)
        if comparison is NotImplemented:
            return comparison
        return comparison == 0

    def __ne__(self, other):
        comparison = self._cmp(other)
        if comparison is NotImplemented:
            return comparison
        return comparison != 0

    def _ordering(self, other):
        comparison = self._cmp(other)
        if comparison is None:
            get_context(type(self)).exception(InvalidOperation, 'comparison involving NaN')
        return comparison

    def __lt__(self, other):
        comparison = self._ordering(other)
        if comparison is NotImplemented:
            return comparison
        return comparison is not None and comparison < 0

    def __le__(self, other):
        comparison = self._ordering(other)
        if comparison is NotImplemented:
            return comparison
        return comparison is not None and comparison <= 0

    def __gt__(self, other):
        comparison = self._ordering(other)
        if comparison is NotImplemented:
            return comparison
        return comparison is not None and comparison > 0

    def __ge__(self, other):
        comparison = self._ordering(other)
        if comparison is NotImplemented:
            return comparison
        return comparison is not None and comparison >= 0

    def __hash__(self):
        '''Python hash.  Must hash equally to other types with the same value.'''
        if self.is_special():
            if self.is_infinite():
                return -HASH_INF if self.sign < 0 else HASH_INF
            if self.is_qnan():
                return 0
            raise TypeError('cannot hash a signalling NaN')
        # The hash of a rational is its value modulo the prime HASH_MODULUS
        if self.exponent >= 0:
            exp_hash = pow(self.radix, self.exponent, HASH_MODULUS)
        else:
            exp_hash = pow(pow(self.radix, HASH_MODULUS - 2, HASH_MODULUS), -self.exponent,
                           HASH_MODULUS)
        result = self.coefficient * exp_hash % HASH_MODULUS
        if self.sign < 0:
            result = -result
        return -2 if result == -1 else result

    def __bool__(self):
        return not self.is_zero()

    def __int__(self):
        return self.to_int()

    def __trunc__(self):
        return self.to_int()

    def __floor__(self):
        return self.to_int(ROUND_FLOOR)

    def __ceil__(self):
        return self.to_int(ROUND_CEILING)

    def __round__(self, ndigits=None):
        '''If ndigits is None, round to an int with ROUND_HALF_EVEN.  Otherwise round to
        ndigits places after the radix point with ROUND_HALF_EVEN.'''
        if ndigits is None:
            return self.to_int(ROUND_HALF_EVEN)
        if not isinstance(ndigits, int):
            raise TypeError('ndigits must be an integer')
        return self.round(ndigits, rounding=ROUND_HALF_EVEN)

    def __float__(self):
        if self.is_nan():
            if self.is_snan():
                raise ValueError('cannot convert a signalling NaN to float')
            return math.copysign(math.nan, self.sign)
        if self.is_infinite():
            return math.copysign(math.inf, self.sign)
        context = BinNum.IEEEDoubleContext.copy(traps=0)
        value = Reader().read(context, ROUND_HALF_EVEN, self.sign, self.coefficient,
                              self.exponent, self.radix)
        if value.is_infinite():
            return math.copysign(math.inf, value.sign)
        return math.copysign(math.ldexp(value.coefficient, value.exponent), value.sign)

    def __neg__(self):
        return self.minus()

    def __pos__(self):
        return self.plus()

    def __abs__(self):
        return self.abs()

    def __add__(self, other):
        other = self._operand(other)
        if other is None:
            return NotImplemented
        return self.add(other)

    def __sub__(self, other):
        other = self._operand(other)
        if other is None:
            return NotImplemented
        return self.subtract(other)

    def __mul__(self, other):
        other = self._operand(other)
        if other is None:
            return NotImplemented
        return self.multiply(other)

    def __truediv__(self, other):
        other = self._operand(other)
        if other is None:
            return NotImplemented
        return self.divide(other)

    def __floordiv__(self, other):
        other = self._operand(other)
        if other is None:
            return NotImplemented
        return self.div(other)

    def __mod__(self, other):
        other = self._operand(other)
        if other is None:
            return NotImplemented
        return self.modulo(other)

    def __divmod__(self, other):
        other = self._operand(other)
        if other is None:
            return NotImplemented
        return self.divmod(other)

    def __pow__(self, other, modulo=None):
        other = self._operand(other)
        if other is None:
            return NotImplemented
        if modulo is not None:
            modulo = self._operand(modulo)
            if modulo is None:
                return NotImplemented
        return self.power(other, modulo)

    def __radd__(self, other):
        return self.__add__(other)

    def __rsub__(self, other):
        other = self._operand(other)
        if other is None:
            return NotImplemented
        return other.subtract(self)

    def __rmul__(self, other):
        return self.__mul__(other)

    def __rtruediv__(self, other):
        other = self._operand(other)
        if other is None:
            return NotImplemented
        return other.divide(self)

    def __rfloordiv__(self, other):
        other = self._operand(other)
        if other is None:
            return NotImplemented
        return other.div(self)

    def __rmod__(self, other):
        other = self._operand(other)
        if other is None:
            return NotImplemented
        return other.modulo(self)

    def __rdivmod__(self, other):
        other = self._operand(other)
        if other is None:
            return NotImplemented
        return other.divmod(self)

    def __rpow__(self, other):
        other = self._operand(other)
        if other is None:
            return NotImplemented
        return other.power(self)


def _align(op1, op2, precision):
    '''Give two non-zero numbers a common exponent for addition.  If precision is not 0
    and one operand is far below the rounding position of the other it is replaced by a
    small number with the same effect on the rounded sum.'''
    cls = type(op1)
    swap = op1.exponent < op2.exponent
    big, small = (op2, op1) if swap else (op1, op2)
    big_digits = number_of_digits(big.coefficient, cls.radix)
    small_digits = number_of_digits(small.coefficient, cls.radix)
    exp = big.exponent + min(-1, big_digits - precision - 2) - 1
    if precision and small_digits + small.exponent - 1 < exp:
        small = cls._make((small.sign, 1, exp))
    big = cls._make((big.sign,
                     big.coefficient * radix_power(cls.radix, big.exponent - small.exponent),
                     small.exponent))
    return (small, big) if swap else (big, small)


def _aligned_coefficients(x, y):
    # The coefficients of two finite numbers scaled to the smaller exponent
    a, b = x.coefficient, y.coefficient
    if x.exponent >= y.exponent:
        a *= radix_power(x.radix, x.exponent - y.exponent)
    else:
        b *= radix_power(x.radix, y.exponent - x.exponent)
    return a, b


class DecNum(Num):
    '''Decimal floating point numbers.'''

    __slots__ = ()

    radix = 10


class BinNum(Num):
    '''Binary floating point numbers.'''

    __slots__ = ()

    radix = 2


_radix_classes = {10: DecNum, 2: BinNum}
_radix_classes_lock = threading.Lock()


#
# Predefined contexts
#

DecNum.DefaultContext = Context(
    DecNum, precision=28, rounding=ROUND_HALF_EVEN, emin=-999999999, emax=999999999,
    traps=STANDARD_TRAPS, capitals=True, clamp=True)
DecNum.BasicContext = Context(
    DecNum, DecNum.DefaultContext, precision=9, rounding=ROUND_HALF_UP,
    traps=STANDARD_TRAPS + (Clamped, Underflow))
DecNum.ExtendedContext = Context(
    DecNum, DecNum.DefaultContext, precision=9, rounding=ROUND_HALF_EVEN, traps=0,
    clamp=False)

BinNum.DefaultContext = Context(
    BinNum, precision=53, rounding=ROUND_HALF_EVEN, emin=-1022, emax=1023,
    traps=STANDARD_TRAPS, capitals=True, clamp=True)
BinNum.ExtendedContext = Context(BinNum, BinNum.DefaultContext, traps=0, clamp=False)
BinNum.IEEEHalfContext = Context(
    BinNum, BinNum.DefaultContext, precision=11, emin=-14, emax=15, clamp=False)
BinNum.IEEESingleContext = Context(
    BinNum, BinNum.DefaultContext, precision=24, emin=-126, emax=127, clamp=False)
BinNum.IEEEDoubleContext = Context(
    BinNum, BinNum.DefaultContext, precision=53, emin=-1022, emax=1023, clamp=False)
BinNum.IEEEQuadContext = Context(
    BinNum, BinNum.DefaultContext, precision=113, emin=-16382, emax=16383, clamp=False)
BinNum.IEEEExtendedContext = Context(
    BinNum, BinNum.DefaultContext, precision=64, emin=-16382, emax=16383, clamp=False)


#
# The current context of each Num class in each thread
#

tls = threading.local()


def get_context(num_class=None):
    '''Return the current context of num_class, by default DecNum, in the active thread.
    A thread's first request gets a copy of the class's DefaultContext.'''
    num_class = num_class or DecNum
    try:
        contexts = tls.contexts
    except AttributeError:
        contexts = tls.contexts = {}
    context = contexts.get(num_class)
    if context is None:
        context = contexts[num_class] = num_class.DefaultContext.copy()
    return context


def set_context(context):
    '''Sets the current thread's context of context.num_class to context (not a copy of
    it).'''
    try:
        contexts = tls.contexts
    except AttributeError:
        contexts = tls.contexts = {}
    contexts[context.num_class] = context


class LocalContext:
    '''A context manager that will set the current context of a Num class for the active
    thread to a copy of context, with options applied, on entry to the with-statement and
    restore the previous context on exit.  If no context is specified a copy of the
    current context of num_class (by default DecNum) is taken instead.
    '''

    def __init__(self, context=None, num_class=None, **options):
        if context is not None:
            num_class = context.num_class
        self.num_class = num_class or DecNum
        self.saved_context = None
        self.context_to_set = context
        self.options = options

    def __enter__(self):
        self.saved_context = get_context(self.num_class)
        context = (self.context_to_set or self.saved_context).copy(**self.options)
        set_context(context)
        return context

    def __exit__(self, etype, value, traceback):
        set_context(self.saved_context)


local_context = LocalContext
