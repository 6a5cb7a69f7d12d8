#
# Free-format printing of floating point numbers: the Burger and Dybvig algorithm from
# "Printing Floating-Point Numbers Quickly and Accurately".
#

import logging
from math import ceil, log

from .context import (ROUND_CEILING, ROUND_FLOOR, ROUND_DOWN, ROUND_UP,
                      ROUND_HALF_EVEN, ROUND_HALF_UP, ROUND_HALF_DOWN)

__all__ = ('Formatter', 'InfiniteLoopError', 'adjust_digits', 'simplified_round_mode')

logger = logging.getLogger(__name__)


class InfiniteLoopError(RuntimeError):
    '''Raised when the digits of a conversion would repeat forever.'''


def simplified_round_mode(round_mode, negative):
    '''Replace ROUND_CEILING and ROUND_FLOOR by ROUND_UP or ROUND_DOWN for a number of the
    given sign.'''
    if negative:
        if round_mode == ROUND_CEILING:
            round_mode = ROUND_FLOOR
        elif round_mode == ROUND_FLOOR:
            round_mode = ROUND_CEILING
    if round_mode == ROUND_CEILING:
        return ROUND_UP
    if round_mode == ROUND_FLOOR:
        return ROUND_DOWN
    return round_mode


def adjust_digits(dec_pos, digits, round_mode, negative, round_up, base):
    '''Round truncated digits.  round_up describes the discarded digits: None if they are
    zero, 'lo' if below the tie, 'tie' for exactly a tie and 'hi' above it.  Returns a
    (dec_pos, digits) pair.'''
    round_mode = simplified_round_mode(round_mode, negative)
    if not round_up or round_mode == ROUND_DOWN:
        increment = False
    elif round_mode == ROUND_UP or round_up == 'hi':
        increment = True
    elif round_up == 'tie':
        increment = (round_mode == ROUND_HALF_UP
                     or (round_mode == ROUND_HALF_EVEN and digits[-1] % 2 == 1))
    else:
        increment = False

    if increment:
        digits = list(digits)
        i = len(digits) - 1
        while i >= 0:
            digits[i] += 1
            if digits[i] != base:
                break
            digits[i] = 0
            i -= 1
        if i < 0:
            dec_pos += 1
            digits.insert(0, 1)
    return dec_pos, digits


class Formatter:
    '''Convert numbers f * input_radix**e of a given precision to the shortest sequence of
    digits in output_base that reads back to the same number.

    The number is regarded as an approximation: it stands for every value in its rounding
    range, the values that round to it under the rounding mode used to produce it.  In
    terms of the working fractions (everything is scaled by 2 to keep it integral):

        r / s             the number, v
        m_minus / s       the distance from the low end of the rounding range to v
        m_plus / s        the distance from v to the high end of the rounding range

    round_l and round_h say whether the low and high ends of the range round to v.  k is
    the position of the radix point, the smallest integer with (r + m_plus) / s below
    output_base**k (or not above it if round_h).

    When generating all digits with directed rounding the digits of a conversion between
    incommensurable bases can repeat forever.  If raise_on_repeat an InfiniteLoopError is
    raised; otherwise repeat is set to the index of the first repeating digit.  A period
    longer than MAXIMUM_PERIOD digits raises InfiniteLoopError in either case.
    '''

    # The longest repeating digit sequence recorded by generate_max
    MAXIMUM_PERIOD = 10000

    def __init__(self, input_radix, min_exp, output_base, raise_on_repeat=True):
        self.input_radix = input_radix
        self.min_exp = min_exp
        self.output_base = output_base
        self.raise_on_repeat = raise_on_repeat
        self.digits = None
        self.k = 0
        self.round_up = None
        self.repeat = None
        self.negative = False

    def format(self, v, f, e, round_mode, p, all_digits=False):
        '''Compute the digits of v = f * input_radix**e, a number of precision p.

        round_mode is the rounding mode that, applied on input, restores v.  'nearest'
        means any round-to-nearest mode, and needs enough digits for all of them.  If
        all_digits every significant digit is generated, truncated rather than rounded,
        and round_up records how to round them.  Returns (k, digits).'''
        b = self.input_radix
        self.negative = v.sign < 0
        f = abs(f)
        self.round_up = None
        self.repeat = None
        round_mode = simplified_round_mode(round_mode, self.negative)

        # The inclusion of the ends of the rounding range
        if round_mode == ROUND_HALF_EVEN:
            self.round_l = self.round_h = f % 2 == 0
        elif round_mode == ROUND_UP:
            self.round_l, self.round_h = False, True
        elif round_mode in (ROUND_DOWN, ROUND_HALF_UP):
            self.round_l, self.round_h = True, False
        elif round_mode == ROUND_HALF_DOWN:
            self.round_l, self.round_h = False, True
        else:
            # Any round-to-nearest
            self.round_l = self.round_h = False

        # The gap below a power of the radix is a radix times smaller than above it
        if e >= 0:
            be = b ** e
            if f != b ** (p - 1):
                r, s, m_plus, m_minus = f * be * 2, 2, be, be
            else:
                be1 = be * b
                r, s, m_plus, m_minus = f * be1 * 2, b * 2, be1, be
        else:
            if e == self.min_exp or f != b ** (p - 1):
                r, s, m_plus, m_minus = f * 2, b ** -e * 2, 1, 1
            else:
                r, s, m_plus, m_minus = f * b * 2, b ** (1 - e) * 2, b, 1

        # Directed rounding makes the rounding range one-sided
        if round_mode == ROUND_UP:
            m_minus, m_plus = m_minus * 2, 0
        elif round_mode == ROUND_DOWN:
            m_minus, m_plus = 0, m_plus * 2

        self.r, self.s, self.m_plus, self.m_minus = r, s, m_plus, m_minus
        self._scale()

        if all_digits:
            self._generate_max()
        else:
            self._generate()
        return self.k, self.digits

    def adjusted_digits(self, round_mode):
        '''The digits rounded for output with round_mode, as a (k, digits) pair.'''
        return adjust_digits(self.k, self.digits, round_mode, self.negative, self.round_up,
                             self.output_base)

    def _too_low(self, r, m_plus, s):
        return r + m_plus >= s if self.round_h else r + m_plus > s

    def _scale(self):
        '''Set k, multiplying s or r and the gaps by a power of the output base, so that the
        first digit generated is significant.'''
        r, s, m_plus, m_minus = self.r, self.s, self.m_plus, self.m_minus
        B = self.output_base
        k = 0
        if r:
            # A floating point estimate of k, checked exactly below
            k = ceil((log(r + m_plus) - log(s)) / log(B) - 1e-10)
            if k >= 0:
                s *= B ** k
            else:
                scale = B ** -k
                r *= scale
                m_plus *= scale
                m_minus *= scale
        while True:
            if self._too_low(r, m_plus, s):
                s *= B
                k += 1
            elif (r + m_plus) * B < s if self.round_h else (r + m_plus) * B <= s:
                # Too high
                r *= B
                m_plus *= B
                m_minus *= B
                k -= 1
            else:
                break
        self.r, self.s, self.m_plus, self.m_minus, self.k = r, s, m_plus, m_minus, k

    def _generate(self):
        '''Generate the shortest digit sequence.'''
        r, s, m_plus, m_minus = self.r, self.s, self.m_plus, self.m_minus
        B = self.output_base
        round_l, round_h = self.round_l, self.round_h
        digits = []
        while True:
            d, r = divmod(r * B, s)
            m_plus *= B
            m_minus *= B
            tc1 = r <= m_minus if round_l else r < m_minus
            tc2 = r + m_plus >= s if round_h else r + m_plus > s
            if not tc1:
                if not tc2:
                    digits.append(d)
                    continue
                digits.append(d + 1)
            elif not tc2 or r * 2 < s:
                digits.append(d)
            else:
                digits.append(d + 1)
            break
        self.digits = digits

    def _generate_max(self):
        '''Generate all significant digits, truncated, and set round_up.'''
        r, s, m_plus, m_minus = self.r, self.s, self.m_plus, self.m_minus
        B = self.output_base
        round_l, round_h = self.round_l, self.round_h
        may_repeat = m_plus == 0 or m_minus == 0
        # The denominator of r / s divides s, so a terminating expansion ends within
        # s.bit_length() digits; after that only a repetition can end the loop
        max_digits = s.bit_length() + self.MAXIMUM_PERIOD
        remainders = {}
        digits = []
        while True:
            if may_repeat and not r:
                if not m_plus:
                    # Exact: only zeroes would follow
                    break
            elif may_repeat:
                first = remainders.get(r)
                if first is not None:
                    logger.debug('digits repeat from digit %d in base %d', first, B)
                    if self.raise_on_repeat:
                        raise InfiniteLoopError('infinite digit sequence')
                    self.repeat = first
                    break
                if len(digits) > max_digits:
                    raise InfiniteLoopError(f'no repetition within {max_digits:,d} digits')
                remainders[r] = len(digits)

            d, r = divmod(r * B, s)
            m_plus *= B
            m_minus *= B
            digits.append(d)

            tc1 = r <= m_minus if round_l else r < m_minus
            tc2 = r + m_plus >= s if round_h else r + m_plus > s
            if tc1 and tc2:
                if r:
                    r *= 2
                    if r > s:
                        self.round_up = 'hi'
                    elif r == s:
                        self.round_up = 'tie'
                    else:
                        self.round_up = 'lo'
                break

        self.digits = digits
