#
# Arithmetic contexts and the conditions they signal
#

import copy
from enum import IntFlag
from math import ceil, floor, log

__all__ = ('Context', 'Flags',
           'NumError', 'InvalidOperation', 'ConversionSyntax', 'DivisionImpossible',
           'DivisionUndefined', 'InvalidContext', 'DivisionByZero', 'Inexact', 'Rounded',
           'Subnormal', 'Overflow', 'Underflow', 'Clamped', 'CONDITIONS',
           'ROUND_CEILING', 'ROUND_FLOOR', 'ROUND_DOWN', 'ROUND_UP',
           'ROUND_HALF_EVEN', 'ROUND_HALF_UP', 'ROUND_HALF_DOWN', 'ROUND_05UP',
           'ROUNDINGS')


# Rounding modes
ROUND_CEILING   = 'ROUND_CEILING'       # Towards +infinity
ROUND_FLOOR     = 'ROUND_FLOOR'         # Towards -infinity
ROUND_DOWN      = 'ROUND_DOWN'          # Towards zero
ROUND_UP        = 'ROUND_UP'            # Away from zero
ROUND_HALF_EVEN = 'ROUND_HALF_EVEN'     # To nearest with ties towards even
ROUND_HALF_DOWN = 'ROUND_HALF_DOWN'     # To nearest with ties towards zero
ROUND_HALF_UP   = 'ROUND_HALF_UP'       # To nearest with ties away from zero
ROUND_05UP      = 'ROUND_05UP'          # Away from zero if last digit would be 0 or radix/2

ROUNDINGS = (ROUND_CEILING, ROUND_FLOOR, ROUND_DOWN, ROUND_UP,
             ROUND_HALF_EVEN, ROUND_HALF_DOWN, ROUND_HALF_UP, ROUND_05UP)


# Condition flags.
class Flags(IntFlag):
    CLAMPED             = 0x001
    INVALID_OPERATION   = 0x002
    DIVISION_BY_ZERO    = 0x004
    INEXACT             = 0x008
    OVERFLOW            = 0x010
    UNDERFLOW           = 0x020
    ROUNDED             = 0x040
    SUBNORMAL           = 0x080
    DIVISION_IMPOSSIBLE = 0x100
    CONVERSION_SYNTAX   = 0x200

    @classmethod
    def of(cls, value):
        '''Return the flags of value, which can be a Flags value, an integer, a condition
        class or an iterable of any of these.'''
        if isinstance(value, int):
            return cls(value)
        if isinstance(value, type):
            if not issubclass(value, NumError):
                raise TypeError(f'{value.__name__} is not a condition')
            return cls(value.flag_to_raise)
        result = cls(0)
        for item in value:
            result |= cls.of(item)
        return result


#
# Conditions
#

class NumError(ArithmeticError):
    '''All conditions signalled by this package derive from this.

    A condition is created with a message and optional parameters describing it.  The
    parameters of the DivisionByZero and Overflow conditions start with the sign of the
    result; those of InvalidOperation optionally with a NaN operand whose diagnostic is
    to be kept.

    Conditions are signalled through Context.exception().  If not trapped the result of
    the operation is the value quiet_result() returns, or if that is None, the result
    computed by the operation.
    '''

    flag_to_raise = 0

    def __init__(self, message='', *params):
        super().__init__(message, *params)
        self.context = None

    @property
    def message(self):
        return self.args[0]

    @property
    def params(self):
        return self.args[1:]

    def __str__(self):
        return self.message or self.__class__.__name__

    def quiet_result(self, context):
        '''The result of the operation when the condition is not trapped.'''
        return None

    def signal(self, context):
        '''Handle the condition as configured in the context: ignore it, raise its flag, or
        raise its flag and then raise it as an exception.'''
        self.context = context
        flag = self.flag_to_raise
        if context.ignored_flags & flag:
            return self.quiet_result(context)
        context.flags |= flag
        if context.traps & flag:
            raise self
        return self.quiet_result(context)


class InvalidOperation(NumError):
    '''An operation has no usefully definable result.  The result is a quiet NaN, with the
    sign and diagnostic of a signalling NaN operand that caused the condition.'''

    flag_to_raise = Flags.INVALID_OPERATION

    def quiet_result(self, context):
        num_class = context.num_class
        if self.params and isinstance(self.params[0], num_class):
            x = self.params[0]
            return num_class(x.sign, x.coefficient, 'nan')._fix_nan(context)
        return num_class.nan()


class ConversionSyntax(InvalidOperation):
    '''A string being converted to a number does not conform to the numeric syntax.'''

    flag_to_raise = Flags.CONVERSION_SYNTAX | Flags.INVALID_OPERATION

    def quiet_result(self, context):
        return context.num_class.nan()


class DivisionImpossible(InvalidOperation):
    '''The integer result of a divide-integer or remainder operation would have more digits
    than the precision.'''

    flag_to_raise = Flags.DIVISION_IMPOSSIBLE | Flags.INVALID_OPERATION

    def quiet_result(self, context):
        return context.num_class.nan()


class DivisionUndefined(InvalidOperation, ZeroDivisionError):
    '''Zero was divided by zero.'''

    def quiet_result(self, context):
        return context.num_class.nan()


class InvalidContext(InvalidOperation):
    '''The context cannot support the operation, e.g. a NaN was converted to an integer.'''

    def quiet_result(self, context):
        return context.num_class.nan()


class DivisionByZero(NumError, ZeroDivisionError):
    '''A finite non-zero dividend was divided by zero, or an exact infinite result was
    produced from finite operands.  The result is an infinity of the given sign.'''

    flag_to_raise = Flags.DIVISION_BY_ZERO

    def quiet_result(self, context):
        return context.num_class.infinity(self.params[0] if self.params else +1)


class Inexact(NumError):
    '''Non-zero digits were discarded by rounding.  The result is unchanged unless the
    context is exact, in which case it is a NaN.'''

    flag_to_raise = Flags.INEXACT

    def quiet_result(self, context):
        if context.exact:
            return context.num_class.nan()
        return None


class Rounded(NumError):
    '''Digits, zero or not, were discarded by rounding.'''

    flag_to_raise = Flags.ROUNDED


class Subnormal(NumError):
    '''The adjusted exponent of the result before rounding was below emin.'''

    flag_to_raise = Flags.SUBNORMAL


class Overflow(Inexact, Rounded):
    '''The adjusted exponent of the result after rounding would exceed emax.  The result is
    an infinity or the largest finite number, depending on the rounding mode and sign.'''

    flag_to_raise = Flags.OVERFLOW

    def quiet_result(self, context):
        num_class = context.num_class
        sign = self.params[0] if self.params else +1
        rounding = context.rounding
        if rounding in (ROUND_HALF_UP, ROUND_HALF_EVEN, ROUND_HALF_DOWN, ROUND_UP):
            return num_class.infinity(sign)
        if (sign == +1 and rounding == ROUND_CEILING) or (
                sign == -1 and rounding == ROUND_FLOOR):
            return num_class.infinity(sign)
        return num_class(sign, context.maximum_coefficient(), context.etop())


class Underflow(Inexact, Rounded, Subnormal):
    '''A result is both inexact and subnormal.  The result is the rounded subnormal number,
    possibly a zero.'''

    flag_to_raise = Flags.UNDERFLOW

    def quiet_result(self, context):
        return None


class Clamped(NumError):
    '''The exponent of a result was altered to fit the representation.'''

    flag_to_raise = Flags.CLAMPED


CONDITIONS = (Clamped, InvalidOperation, DivisionByZero, Inexact, Overflow, Underflow,
              Rounded, Subnormal, DivisionImpossible, ConversionSyntax)


OPTIONS = frozenset(('precision', 'rounding', 'emin', 'emax', 'elimit', 'flags', 'traps',
                     'ignored_flags', 'capitals', 'clamp', 'exact', 'normalized',
                     'extra_precision'))


class Context:
    '''The context for the operations of a Num class.  Carries the precision, the rounding
    mode, the exponent limits, the conditions that have been raised (flags), those that
    raise exceptions (traps) and those that are ignored, and the registry of numeric types
    convertible to and from the Num class.

    Recognised options are:

        precision      number of digits; 0 means exact
        rounding       one of the ROUND_ constants
        emin, emax     limits of the adjusted exponent; if only one is given the other is
                       1 minus it
        elimit         both limits given by a single value
        flags, traps, ignored_flags
                       Flags values, condition classes or iterables of them
        capitals       use 'E' rather than 'e' in text
        clamp          reduce large exponents padding coefficients with zeroes
        exact          True for exact arithmetic, trapping Inexact; 'quiet' for exact
                       arithmetic without trapping
        normalized     keep results normalized to full precision
        extra_precision
                       digits added to the precision
    '''

    __slots__ = ('num_class', 'rounding', 'emin', 'emax', 'flags', 'traps', 'ignored_flags',
                 'capitals', 'clamp', 'normalized', '_precision', '_exact',
                 'coercible_types', 'conversions')

    def __init__(self, num_class, base=None, **options):
        '''Create a context for num_class.  Unspecified options are taken from base, or
        num_class.DefaultContext if base is None.'''
        self.num_class = num_class
        if base is None:
            base = getattr(num_class, 'DefaultContext', None)
        if base is not None:
            if base.num_class is not num_class:
                raise TypeError(f'cannot base a {num_class.__name__} context on a '
                                f'{base.num_class.__name__} context')
            self.rounding = base.rounding
            self._precision = base._precision
            self._exact = base._exact
            self.emin = base.emin
            self.emax = base.emax
            self.flags = base.flags
            self.traps = base.traps
            self.ignored_flags = base.ignored_flags
            self.capitals = base.capitals
            self.clamp = base.clamp
            self.normalized = base.normalized
            self.coercible_types = dict(base.coercible_types)
            self.conversions = dict(base.conversions)
        else:
            self.rounding = ROUND_HALF_EVEN
            self._precision = None
            self._exact = False
            self.emin = self.emax = None
            self.flags = self.traps = self.ignored_flags = Flags(0)
            self.capitals = True
            self.clamp = False
            self.normalized = False
            self.coercible_types = num_class.base_coercible_types()
            self.conversions = num_class.base_conversions()
        self.assign(**options)

    def assign(self, **options):
        '''Set the given options.  Returns the context.'''
        unknown = set(options) - OPTIONS
        if unknown:
            raise TypeError(f'unknown context options: {", ".join(sorted(unknown))}')

        was_exact = self._exact
        rounding = options.get('rounding')
        if rounding is not None:
            if rounding not in ROUNDINGS:
                raise ValueError(f'invalid rounding mode {rounding!r}')
            self.rounding = rounding
        precision = options.get('precision')
        if precision is not None:
            if not isinstance(precision, int) or precision < 0:
                raise ValueError('precision must be a non-negative integer')
            self._precision = precision
            self._exact = precision == 0
        for name in ('flags', 'traps', 'ignored_flags'):
            value = options.get(name)
            if value is not None:
                setattr(self, name, Flags.of(value))

        elimit = options.get('elimit')
        if elimit is not None:
            self.emin, self.emax = sorted((elimit, 1 - elimit))
        emin, emax = options.get('emin'), options.get('emax')
        if emin is not None:
            self.emin = emin
            if emax is None and elimit is None:
                self.emax = 1 - emin
        if emax is not None:
            self.emax = emax
            if emin is None and elimit is None:
                self.emin = 1 - emax

        for name in ('capitals', 'clamp', 'normalized'):
            value = options.get(name)
            if value is not None:
                setattr(self, name, bool(value))
        exact = options.get('exact')
        if exact is not None:
            if exact not in (True, False, 'quiet'):
                raise ValueError("exact must be True, False or 'quiet'")
            self._exact = exact
        self._update_precision(was_exact)

        extra_precision = options.get('extra_precision')
        if extra_precision and not self._exact:
            self._precision += extra_precision
        return self

    def _update_precision(self, was_exact):
        if self._exact or self._precision == 0:
            quiet = self._exact == 'quiet'
            self._exact = 'quiet' if quiet else True
            self._precision = 0
            if not quiet:
                self.traps |= Flags.INEXACT
            self.ignored_flags &= ~Flags.INEXACT
        else:
            self._exact = False
            if was_exact:
                self.traps &= ~Flags.INEXACT

    @property
    def precision(self):
        return self._precision

    @precision.setter
    def precision(self, value):
        self.assign(precision=value)

    @property
    def exact(self):
        '''True (or 'quiet') if the context is exact.'''
        return self._exact

    @exact.setter
    def exact(self, value):
        self.assign(exact=value)

    @property
    def radix(self):
        return self.num_class.radix

    def copy(self, **options):
        '''Return a copy of the context with the given options set.'''
        # A deep copy is needed because the conversion registries are mutable
        result = copy.deepcopy(self)
        return result.assign(**options)

    def __deepcopy__(self, memo):
        result = object.__new__(Context)
        for name in self.__slots__:
            value = getattr(self, name)
            if name in ('coercible_types', 'conversions'):
                value = dict(value)
            setattr(result, name, value)
        return result

    def clear_flags(self):
        self.flags = Flags(0)

    def ignore_all_flags(self):
        self.ignored_flags = Flags(sum(Flags))

    def ignore_flags(self, *conditions):
        self.ignored_flags |= Flags.of(conditions)

    def regard_flags(self, *conditions):
        self.ignored_flags &= ~Flags.of(conditions)

    def exception(self, condition, message='', *params):
        '''Signal condition.  Returns the quiet result of the condition (None if the result of
        the operation stands) unless the condition is trapped, when it is raised.'''
        return condition(message, *params).signal(self)

    def __repr__(self):
        return (f'<Context {self.num_class.__name__} precision={self.precision} '
                f'rounding={self.rounding} emin={self.emin} emax={self.emax} '
                f'flags={self.flags!r} traps={self.traps!r}>')

    ##
    ## Limits
    ##

    def etiny(self):
        '''The smallest exponent of a subnormal number.'''
        return self.emin - self.precision + 1

    def etop(self):
        '''The largest exponent of a full-precision number.'''
        return self.emax - self.precision + 1

    def int_radix_power(self, n):
        return self.num_class.int_radix_power(n)

    def maximum_coefficient(self):
        if self.exact:
            self.exception(InvalidOperation, 'exact context maximum coefficient')
            return None
        return self.int_radix_power(self.precision) - 1

    def minimum_normalized_coefficient(self):
        if self.exact:
            self.exception(InvalidOperation, 'exact context minimum normalized coefficient')
            return None
        return self.int_radix_power(self.precision - 1)

    def maximum_nan_diagnostic_digits(self):
        if self.exact:
            return None
        return self.precision - (1 if self.clamp else 0)

    def maximum_finite(self, sign=+1):
        if self.exact:
            return self.exception(InvalidOperation, 'exact context maximum finite value')
        return self.num_class(sign, self.maximum_coefficient(), self.etop())

    def minimum_normal(self, sign=+1):
        if self.exact:
            return self.exception(InvalidOperation, 'exact context minimum normal value')
        return self.num_class(sign, self.minimum_normalized_coefficient(), self.etiny())

    def maximum_subnormal(self, sign=+1):
        if self.exact:
            return self.exception(InvalidOperation, 'exact context maximum subnormal value')
        return self.num_class(sign, self.int_radix_power(self.precision - 1) - 1, self.etiny())

    def minimum_nonzero(self, sign=+1):
        if self.exact:
            return self.exception(InvalidOperation, 'exact context minimum nonzero value')
        return self.num_class(sign, 1, self.etiny())

    def epsilon(self, sign=+1):
        '''The difference between 1 and the smallest number greater than 1.'''
        if self.exact:
            return self.exception(InvalidOperation, 'exact context epsilon')
        return self.num_class(sign, 1, 1 - self.precision)

    def strict_epsilon(self, sign=+1):
        '''The smallest number that added to 1 gives a result other than 1 with the context
        rounding.'''
        if self.exact:
            return self.exception(InvalidOperation, 'exact context strict epsilon')
        precision = self.precision
        rounding = self.rounding
        if rounding in (ROUND_DOWN, ROUND_FLOOR):
            return self.num_class(sign, 1, 1 - precision)
        if rounding in (ROUND_HALF_EVEN, ROUND_HALF_DOWN):
            return self.num_class(sign, 1 + self.int_radix_power(precision) // 2,
                                  1 - 2 * precision)
        if rounding == ROUND_HALF_UP:
            return self.num_class(sign, self.int_radix_power(precision) // 2,
                                  1 - 2 * precision)
        return self.minimum_nonzero(sign)

    def half_epsilon(self, sign=+1):
        '''Half of epsilon.'''
        return self.num_class(sign, self.radix // 2, -self.precision)

    def representable_digits(self, base):
        '''The largest number of base digits that can be stored in a number of this context
        and recovered exactly.'''
        if self.exact:
            return None
        if base == self.radix:
            return self.precision
        return floor((self.precision - 1) * log(self.radix, base))

    def necessary_digits(self, base):
        '''The number of base digits needed to store any number of this context so that it
        can be converted back exactly.'''
        if self.exact:
            return None
        if base == self.radix:
            return self.precision
        return ceil(self.precision * log(self.radix, base)) + 1

    def zero(self, sign=+1):
        return self.num_class.zero(sign)

    def infinity(self, sign=+1):
        return self.num_class.infinity(sign)

    def nan(self):
        return self.num_class.nan()

    ##
    ## Conversions
    ##

    def define_conversion_from(self, type_, handler):
        '''Register a conversion of values of type_ to the Num class.  handler is called
        with the value and the context and returns a Num or a (sign, coefficient, exponent)
        triple.'''
        self.coercible_types[type_] = handler

    def define_conversion_to(self, type_, handler):
        '''Register a conversion from the Num class to type_.  handler is called with the
        Num.'''
        self.conversions[type_] = handler

    def convert_to(self, type_, x):
        '''Convert the Num x to type_.'''
        converter = self.conversions.get(type_)
        if converter is None:
            raise TypeError(f'undefined conversion from {self.num_class.__name__} '
                            f'to {type_.__name__}')
        return converter(x)

    def _coerce(self, x):
        '''Convert x of a registered type to a Num or triple; returns None if x's type is not
        registered.'''
        for cls in type(x).__mro__:
            handler = self.coercible_types.get(cls)
            if handler:
                return handler(x, self)
        return None

    def is_coercible(self, x):
        return any(cls in self.coercible_types for cls in type(x).__mro__)

    def _convert(self, x):
        if isinstance(x, self.num_class):
            return x
        if self.is_coercible(x):
            return self.num_class(x, context=self)
        raise TypeError(f'unable to convert {type(x).__name__} to {self.num_class.__name__}')

    def create(self, *args, **kwargs):
        '''Create a Num of this context's class, rounded if created from text in 'fixed'
        mode.'''
        return self.num_class(*args, context=self, **kwargs)

    ##
    ## Operations
    ##

    def add(self, x, y):
        return self._convert(x).add(y, self)

    def subtract(self, x, y):
        return self._convert(x).subtract(y, self)

    def multiply(self, x, y):
        return self._convert(x).multiply(y, self)

    def divide(self, x, y):
        return self._convert(x).divide(y, self)

    def abs(self, x):
        return self._convert(x).abs(self)

    def plus(self, x):
        return self._convert(x).plus(self)

    def minus(self, x):
        return self._convert(x).minus(self)

    def power(self, x, y, modulo=None):
        return self._convert(x).power(y, modulo, self)

    def sqrt(self, x):
        return self._convert(x).sqrt(self)

    def exp(self, x):
        return self._convert(x).exp(self)

    def ln(self, x):
        return self._convert(x).ln(self)

    def log10(self, x):
        return self._convert(x).log10(self)

    def log2(self, x):
        return self._convert(x).log2(self)

    def log(self, x, base=None):
        return self._convert(x).log(base, self)

    def fma(self, x, y, z):
        return self._convert(x).fma(y, z, self)

    def div(self, x, y):
        return self._convert(x).div(y, self)

    def modulo(self, x, y):
        return self._convert(x).modulo(y, self)

    def divmod(self, x, y):
        return self._convert(x).divmod(y, self)

    def divide_int(self, x, y):
        return self._convert(x).divide_int(y, self)

    def remainder(self, x, y):
        return self._convert(x).remainder(y, self)

    def remainder_near(self, x, y):
        return self._convert(x).remainder_near(y, self)

    def divrem(self, x, y):
        return self._convert(x).divrem(y, self)

    def compare(self, x, y):
        return self._convert(x).compare(y, self)

    def max(self, x, y):
        return self._convert(x).max(y, self)

    def min(self, x, y):
        return self._convert(x).min(y, self)

    def reduce(self, x):
        return self._convert(x).reduce(self)

    def normalize(self, x):
        return self._convert(x).normalize(self)

    def logb(self, x):
        return self._convert(x).logb(self)

    def scaleb(self, x, y):
        return self._convert(x).scaleb(y, self)

    def rescale(self, x, exp, watch_exp=True):
        return self._convert(x).rescale(exp, self, watch_exp)

    def quantize(self, x, y, watch_exp=True):
        return self._convert(x).quantize(y, self, watch_exp)

    def same_quantum(self, x, y):
        return self._convert(x).same_quantum(y)

    def to_integral_exact(self, x):
        return self._convert(x).to_integral_exact(self)

    def to_integral_value(self, x):
        return self._convert(x).to_integral_value(self)

    def next_minus(self, x):
        return self._convert(x).next_minus(self)

    def next_plus(self, x):
        return self._convert(x).next_plus(self)

    def next_toward(self, x, y):
        return self._convert(x).next_toward(y, self)

    def ulp(self, x=1, mode='low'):
        return self._convert(x).ulp(self, mode)

    def copy_abs(self, x):
        return self._convert(x).copy_abs()

    def copy_negate(self, x):
        return self._convert(x).copy_negate()

    def copy_sign(self, x, y):
        return self._convert(x).copy_sign(y)

    def normalized_integral_significand(self, x):
        return self._convert(x).normalized_integral_significand(self)

    def normalized_integral_exponent(self, x):
        return self._convert(x).normalized_integral_exponent(self)

    def to_normalized_int_scale(self, x):
        return self._convert(x).to_normalized_int_scale(self)

    def rationalize(self, x, tolerance=None):
        return self._convert(x).rationalize(tolerance, self)

    def is_normal(self, x):
        return self._convert(x).is_normal(self)

    def is_subnormal(self, x):
        return self._convert(x).is_subnormal(self)

    def number_class(self, x):
        return self._convert(x).number_class(self)

    def to_string(self, x, eng=False):
        return self._convert(x)._fix(self).to_string(eng=eng, context=self)

    def to_sci_string(self, x):
        return self.to_string(x)

    def to_eng_string(self, x):
        return self.to_string(x, eng=True)

    def to_fraction(self, x):
        return self._convert(x).to_fraction()
