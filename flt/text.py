#
# Numeric literals: the grammar accepted on input and the layout of formatted output
#

import re
from collections import namedtuple
from math import log

import attr

from .formatter import Formatter
from .kernel import digit_string, number_of_digits

__all__ = ('TextFormat', 'Literal', 'parse_literal', 'DEC_FLOAT_REGEX', 'HEX_SIGNIFICAND_REGEX')


DEC_FLOAT_REGEX = re.compile(
    # sign[opt]
    '\\s*([-+])?(?:'
    # (dec-integer.fraction[opt] or .fraction)
    '(?:([0-9]+)(?:\\.([0-9]*))?|\\.([0-9]+))'
    # e sign[opt]dec-exponent   [opt]
    '(?:e([-+]?[0-9]+))?|'
    # inf or infinity
    '(inf(?:inity)?)|'
    # nan-or-snan dec-payload[opt]
    '(s)?nan([0-9]*))\\s*$',
    re.ASCII | re.IGNORECASE
)
HEX_SIGNIFICAND_REGEX = re.compile(
    # sign[opt] hex-sig-prefix
    '\\s*([-+])?0x'
    # (hex-integer.fraction[opt] or .fraction)
    '(?:([0-9a-f]+)(?:\\.([0-9a-f]*))?|\\.([0-9a-f]+))'
    # p exp-sign[opt]dec-exponent   [opt]
    '(?:p([-+]?[0-9]+))?\\s*$',
    re.ASCII | re.IGNORECASE
)


# int() of a string of digits is limited in length by default in recent Pythons
MAX_INT_DIGITS = 4000


def digits_value(digits, base):
    '''The integer written as digits in base.  Long strings are split in halves.'''
    if len(digits) <= MAX_INT_DIGITS:
        return int(digits, base)
    half = len(digits) // 2
    return (digits_value(digits[:half], base) * base ** (len(digits) - half)
            + digits_value(digits[half:], base))


# A parsed literal.  For finite values the value is sign * coefficient * exp_base**exponent
# with the coefficient written in base.  For special values exponent is 'inf', 'nan' or
# 'snan' and coefficient is the NaN diagnostic.
Literal = namedtuple('Literal', 'sign coefficient exponent base exp_base')


def parse_literal(string, base=10):
    '''Parse a numeric literal.  Return a Literal, or None if the string is not a valid
    literal.  Leading and trailing whitespace is ignored.

    The digits of literals without the 0x prefix are read in base, at most 10, which is
    also the base of their exponent.'''
    match = HEX_SIGNIFICAND_REGEX.match(string)
    if match:
        sign, int_part, frac_part, only_frac, exponent = match.groups()
        sign = -1 if sign == '-' else +1
        int_part = int_part or ''
        frac_part = frac_part or only_frac or ''
        exponent = int(exponent or 0) - 4 * len(frac_part)
        return Literal(sign, int(int_part + frac_part, 16), exponent, 16, 2)

    match = DEC_FLOAT_REGEX.match(string)
    if match is None:
        return None
    sign, int_part, frac_part, only_frac, exponent, inf, snan, payload = match.groups()
    sign = -1 if sign == '-' else +1
    if inf:
        return Literal(sign, 0, 'inf', 10, 10)
    if int_part is None and only_frac is None:
        # A NaN
        return Literal(sign, digits_value(payload or '0', 10), 'snan' if snan else 'nan', 10,
                       10)
    int_part = int_part or ''
    frac_part = frac_part or only_frac or ''
    exponent = int(exponent or 0) - len(frac_part)
    try:
        coefficient = digits_value(int_part + frac_part, base)
    except ValueError:
        return None
    return Literal(sign, coefficient, exponent, base, base)


@attr.s(slots=True, kw_only=True, cmp=False)
class TextFormat:
    '''Controls the conversion of numbers to text.'''

    # The output base.  'hex_bin' selects a hexadecimal significand with a binary
    # exponent, like the C printf %a format.
    base = attr.ib(default=10)
    # The rounding mode used to read the output back, which determines how many digits
    # are needed.  None means the context rounding; 'nearest' any round-to-nearest mode.
    rounding = attr.ib(default=None)
    # If True show all significant digits of an approximate value, including trailing
    # zeroes up to the precision of the number.
    all_digits = attr.ib(default=False)
    # If True render the exact value in a different output base, rather than the shortest
    # approximation that reads back to the same number.
    exact = attr.ib(default=False)
    # If True show only the digits needed to read back the same value even when the
    # output base is the radix.
    simplified = attr.ib(default=False)
    # One of 'sci', 'fix', 'eng' or 'auto'.  'auto' picks fixed notation unless there is a
    # positive exponent or too many leading zeroes.
    notation = attr.ib(default='auto')
    # Engineering notation: exponents are multiples of 3.
    eng = attr.ib(default=False)
    # The largest number of leading zeroes after the point in 'auto' fixed notation.
    max_leading_zeros = attr.ib(default=6)
    # Use 'E' rather than 'e', and upper case letter digits.  None takes the value from
    # the context.
    capitals = attr.ib(default=None)

    def format_special(self, value):
        '''Return the text of an infinity or NaN.'''
        sign = '-' if value.sign < 0 else ''
        if value.exponent == 'inf':
            return f'{sign}Infinity'
        payload = str(value.coefficient) if value.coefficient else ''
        if value.exponent == 'nan':
            return f'{sign}NaN{payload}'
        return f'{sign}sNaN{payload}'

    def format(self, value, context):
        '''Return the text of value, a Num, formatted in context.'''
        if value.is_special():
            return self.format_special(value)

        capitals = context.capitals if self.capitals is None else self.capitals
        num_class = type(value)
        radix = num_class.radix
        output_radix = exp_radix = self.base
        first_digit_1 = False
        if output_radix == 'hex_bin':
            output_radix, exp_radix = 16, 2
            first_digit_1 = True
        rounding = self.rounding or context.rounding
        all_digits = self.all_digits
        format_mode = self.notation
        eng = self.eng
        if format_mode == 'eng':
            format_mode, eng = 'sci', True
        if format_mode not in ('sci', 'fix', 'auto'):
            raise ValueError(f'invalid notation {self.notation!r}')

        if output_radix != exp_radix:
            k = round(log(output_radix, exp_radix))
            if output_radix != exp_radix ** k:
                raise ValueError('the coefficient base must be a power of the exponent base')
        else:
            k = 1

        if output_radix != radix and self.exact and not all_digits and not self.simplified:
            dest_class = num_class.for_radix(output_radix)
            exact_context = dest_class.make_context(exact=True)
            exact_value = num_class.convert_exact(value, dest_class, exact_context)
            text_format = attr.evolve(self, exact=False)
            return text_format.format(exact_value, exact_context)

        coefficient = value.coefficient
        if exp_radix == radix and not all_digits and output_radix != exp_radix:
            exp = value.exponent
            if first_digit_1 and coefficient:
                # Shift so that the leading hexadecimal digit is a 1
                shift = (k + 1 - coefficient.bit_length() % k) % k
                coefficient <<= shift
                exp -= shift
            elif not coefficient:
                exp = 0
            ds = digit_string(coefficient, output_radix)
            leftdigits = exp + len(ds)
            digits_radix = radix
        elif output_radix == radix and not all_digits and not self.simplified:
            # The exact internal value and precision
            ds = digit_string(coefficient, output_radix)
            exp = value.exponent
            leftdigits = exp + len(ds)
            digits_radix = radix
        elif coefficient == 0:
            ds = '0'
            exp = 0
            leftdigits = 1
            digits_radix = output_radix
        else:
            formatter = Formatter(radix, context.etiny(), output_radix)
            formatter.format(value, coefficient, value.exponent, rounding,
                             number_of_digits(coefficient, radix), all_digits)
            dec_pos, digits = formatter.adjusted_digits(rounding)
            ds = ''.join(digit_string(d, output_radix) for d in digits)
            exp = dec_pos - len(ds)
            leftdigits = dec_pos
            digits_radix = output_radix

        if capitals:
            ds = ds.upper()
        return self.layout(value.sign, ds, exp, leftdigits, digits_radix, output_radix,
                           exp_radix, k, format_mode, eng, capitals, coefficient == 0)

    def layout(self, sign, ds, exp, leftdigits, digits_radix, output_radix, exp_radix, k,
               format_mode, eng, capitals, is_zero):
        '''Lay out the digit string ds, whose digits are in output_radix.  The value is
        ds * digits_radix**exp, and if digits_radix is output_radix it is also
        0.ds * digits_radix**leftdigits.  The exponent is shown in exp_radix, and
        output_radix == exp_radix**k.'''
        n_ds = len(ds)
        a_format = exp_radix == 2 and output_radix == 16
        if a_format:
            prefix = '0X' if capitals else '0x'
            exp_letter = 'P' if capitals else 'p'
        else:
            prefix = ''
            exp_letter = 'E' if capitals else 'e'

        if exp_radix != digits_radix:
            # One digit before the point; convert the exponent to exp_radix
            exp = (leftdigits - 1) * k
            dotplace = 1
        elif a_format:
            # ds is the hexadecimal integer coefficient and exp a binary exponent
            exp += (n_ds - 1) * 4
            ds = ds.rstrip('0') or '0'
            n_ds = len(ds)
            dotplace = 1
        else:
            if format_mode == 'auto':
                fix = exp <= 0
                if self.max_leading_zeros is not None:
                    fix = fix and leftdigits > -self.max_leading_zeros
                format_mode = 'fix' if fix else 'sci'
            if format_mode == 'fix':
                dotplace = leftdigits
            elif not eng:
                dotplace = 1
            elif is_zero:
                dotplace = (leftdigits + 1) % 3 - 1
            else:
                dotplace = (leftdigits - 1) % 3 + 1
            exp = leftdigits - dotplace

        if dotplace <= 0:
            int_part = '0'
            frac_part = '.' + '0' * -dotplace + ds
        elif dotplace >= n_ds:
            int_part = ds + '0' * (dotplace - n_ds)
            frac_part = ''
        else:
            int_part = ds[:dotplace]
            frac_part = '.' + ds[dotplace:]

        if exp == 0 and not a_format:
            exponent = ''
        else:
            exponent = f'{exp_letter}{exp:+d}'

        sign = '-' if sign < 0 else ''
        return f'{sign}{prefix}{int_part}{frac_part}{exponent}'
