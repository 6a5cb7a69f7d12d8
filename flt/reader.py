#
# Correctly rounded reading of numbers: the algorithms of William D. Clinger from "How to
# Read Floating Point Numbers Accurately".
#

import logging
import sys
from fractions import Fraction
from math import ceil, floor, log

from .context import (Inexact, Overflow, Rounded, Subnormal, Underflow,
                      ROUND_DOWN, ROUND_UP, ROUND_HALF_EVEN, ROUND_HALF_UP, ROUND_HALF_DOWN,
                      ROUND_05UP)
from .formatter import simplified_round_mode
from .kernel import number_of_digits, radix_power

__all__ = ('Reader', 'READ_MODES')

logger = logging.getLogger(__name__)

READ_MODES = ('free', 'short', 'fixed')

# Algorithm R starts from a Python float, so its precision bounds the precisions it serves
FLOAT_PRECISION = sys.float_info.mant_dig


def float_adj_exp_range(base):
    '''The range of adjusted exponents in base of numbers safely inside the range of normal
    Python floats.'''
    max_exp = floor(log(sys.float_info.max, base)) - 1
    min_exp = ceil(sys.float_info.min_exp * log(2, base)) + 1
    return min_exp, max_exp


class Reader:
    '''Read a number f * eb**e given by integers into a number of a context's class.

    Three modes are supported:

       'fixed'   the result is rounded to the context precision with a given rounding
                 mode.  If the context is exact the result is exact if possible; if not
                 Inexact is signalled.
       'free'    the precision of the input is kept and the context precision ignored:
                 every significant digit is converted, so that converting back to the
                 input base with the input precision restores the input.
       'short'   like free, but with as few digits as restore the input.

    After a read exact is True if the result is exactly the input.
    '''

    def __init__(self, mode='fixed', algorithm=None):
        if mode not in READ_MODES:
            raise ValueError(f'invalid read mode {mode!r}')
        if algorithm not in (None, 'M', 'R'):
            raise ValueError(f'invalid read algorithm {algorithm!r}')
        self.mode = mode
        self.algorithm = algorithm
        self.exact = True

    def read(self, context, rounding, sign, f, e, eb=10):
        '''Return the number of context.num_class closest to sign * f * eb**e, f a
        non-negative integer.

        In fixed mode rounding is the rounding mode of the result, by default the
        context's.  'nearest' selects the context rounding if it rounds to nearest and
        ROUND_HALF_EVEN otherwise.  In free and short modes rounding is the rounding that
        would be used to convert the result back to the input base; by default any
        round-to-nearest.
        '''
        self.exact = True
        num_class = context.num_class
        source_class = num_class.for_radix(eb)
        if self.mode != 'fixed':
            result = num_class.convert(source_class(sign, f, e), num_class,
                                       rounding=rounding or 'nearest',
                                       all_digits=self.mode == 'free')
            self.exact = result.to_fraction() == source_class(sign, f, e).to_fraction()
            return result

        radix = context.radix
        if context.exact:
            a, b = sorted((eb, radix))
            m = round(log(b, a))
            if b != a ** m:
                # Incommensurable bases: the exact result may not exist
                x = num_class.convert_exact(source_class(sign, f, e), num_class, context)
                self.exact = not x.is_nan()
                return x
            if eb > radix:
                n = number_of_digits(f, eb) * m
            else:
                # One more digit as the input digits need not align with output digits
                n = -(-number_of_digits(f, eb) // m) + 1
        else:
            n = context.precision

        if rounding == 'nearest':
            if context.rounding in (ROUND_HALF_EVEN, ROUND_HALF_UP, ROUND_HALF_DOWN):
                rounding = context.rounding
            else:
                rounding = ROUND_HALF_EVEN
        rounding = simplified_round_mode(rounding or context.rounding, sign < 0)

        if f == 0:
            return num_class(sign, 0, 0)._fix(context)

        algorithm = self.algorithm
        if (algorithm != 'M' and radix == 2 and not context.exact and rounding in (
                ROUND_DOWN, ROUND_UP, ROUND_HALF_EVEN, ROUND_HALF_UP, ROUND_HALF_DOWN)):
            z0 = self._alg_r_approx(context, rounding, f, e, eb, n)
            if z0 is not None:
                logger.debug('reading with algorithm R')
                return self._alg_r(z0, context, rounding, sign, f, e, eb, n)
        return self._alg_m(context, rounding, sign, f, e, eb, n)

    def _alg_r_approx(self, context, rounding, f, e, eb, n):
        '''Return a first approximation for Algorithm R, or None if it does not apply.'''
        if n > FLOAT_PRECISION:
            return None
        adj_exp = e + number_of_digits(f, eb) - 1
        min_exp, max_exp = float_adj_exp_range(eb)
        if not min_exp <= adj_exp <= max_exp:
            return None
        if eb == 10:
            # Python's conversion is correctly rounded
            z0 = float(f'{f}E{e}')
        else:
            z0 = float(Fraction(f) * Fraction(eb) ** e)
        work = context.copy(traps=0, flags=0)
        z = context.num_class(z0, context=work).plus(work)
        if not z.is_finite() or z.is_zero() or not z.is_normal(work):
            return None
        return z

    def _scaled_candidate(self, z, context, n):
        # The candidate as m * radix**k with m normalized to n digits where possible
        m, k = z.coefficient, z.exponent
        shift = min(n - number_of_digits(m, context.radix), k - context.etiny())
        if shift > 0:
            m *= radix_power(context.radix, shift)
            k -= shift
        return m, k

    def _alg_r(self, z, context, rounding, sign, f, e, eb, n):
        '''Algorithm R: correct an approximation z until it is the correctly rounded result,
        comparing it exactly with the input.'''
        work = context.copy(traps=0, flags=0)
        r = context.radix
        rp_n_1 = radix_power(r, n - 1)
        directed = rounding in (ROUND_UP, ROUND_DOWN)
        corrections = 0
        while True:
            m, k = self._scaled_candidate(z, work, n)
            # x / y == v / z with v = f * eb**e the input value
            if e >= 0:
                x, y = f * eb ** e, m
            else:
                x, y = f, m * eb ** -e
            if k >= 0:
                y *= r ** k
            else:
                x *= r ** -k
            d = x - y
            d2 = 2 * m * abs(d)
            result = None
            # eps = |v - z| in units of the last place is d2 / (2 * y)
            if directed:
                if (d <= 0) if rounding == ROUND_UP else (d < 0):
                    # v <= z (or v < z)
                    check = d2 * r if m == rp_n_1 else d2
                    if rounding == ROUND_UP and check < 2 * y:
                        result = z
                    else:
                        z = z.next_minus(work)
                else:
                    if rounding == ROUND_DOWN and d2 < 2 * y:
                        result = z
                    else:
                        z = z.next_plus(work)
            elif d2 < y:
                if m == rp_n_1 and d < 0 and y < r * d2:
                    # z is a power of the radix and v < z; the gap below is smaller
                    z = z.next_minus(work)
                else:
                    result = z
            elif d2 == y:
                # A tie
                if m == rp_n_1 and d < 0:
                    # Not really a tie: the gap below z is smaller
                    z = z.next_minus(work)
                elif rounding == ROUND_HALF_EVEN:
                    if m % 2 == 0:
                        result = z
                    elif d < 0:
                        result = z.next_minus(work)
                    else:
                        result = z.next_plus(work)
                elif rounding == ROUND_HALF_UP:
                    result = z if d < 0 else z.next_plus(work)
                else:
                    result = z.next_minus(work) if d < 0 else z
            elif d < 0:
                z = z.next_minus(work)
            else:
                z = z.next_plus(work)

            if result is not None:
                break
            corrections += 1

        if corrections:
            logger.debug('algorithm R needed %d corrections', corrections)
        self.exact = result.to_fraction() == Fraction(f) * Fraction(eb) ** e
        if not self.exact:
            context.exception(Inexact)
            context.exception(Rounded)
        return result.copy_sign(sign)

    def _alg_m(self, context, rounding, sign, f, e, eb, n):
        '''Algorithm M: find by exact integer division the quotient u/v with n digits.'''
        if e < 0:
            u, v = f, eb ** -e
        else:
            u, v = f * eb ** e, 1
        k = 0
        min_e = context.etiny()
        max_e = context.etop()
        r = context.radix
        rp_n = radix_power(r, n)
        rp_n_1 = radix_power(r, n - 1)

        # Start near the final k to save iterations
        estimate = number_of_digits(u, r) - number_of_digits(v, r) - n
        estimate = max(min_e, min(max_e, estimate))
        if estimate > 0:
            v *= radix_power(r, estimate)
        elif estimate < 0:
            u *= radix_power(r, -estimate)
        k = estimate

        # Too many digits are never kept at an exponent limit: only a subnormal quotient
        # stops at min_e and only an overflowing one at max_e
        while True:
            x = u // v
            if x < rp_n_1 and k > min_e:
                u *= r
                k -= 1
            elif x >= rp_n and k < max_e:
                v *= r
                k += 1
            else:
                break

        z, exact = self.ratio_float(context, u, v, k, rounding)
        self.exact = exact
        if z.coefficient == rp_n and k < max_e:
            # Rounding carried into a new digit
            z = context.num_class(+1, rp_n_1, k + 1)
        if k == max_e and not context.exact and z.coefficient >= rp_n:
            context.exception(Inexact, 'input literal out of range')
            context.exception(Rounded, 'input literal out of range')
            return context.exception(Overflow, 'input literal out of range', sign)
        subnormal = k == min_e and (z.is_zero() or z.coefficient < rp_n_1)
        if subnormal:
            context.exception(Subnormal)
        if not exact:
            context.exception(Inexact)
            context.exception(Rounded)
            if subnormal:
                context.exception(Underflow, 'input literal out of range')
        return z.copy_sign(sign)

    @staticmethod
    def ratio_float(context, u, v, k, rounding):
        '''Given positive integers u and v and an integer k, return a pair (z, exact) with z
        the number of the context closest to u/v * radix**k, rounded to an integer
        coefficient.  rounding must not be ROUND_CEILING or ROUND_FLOOR.'''
        num_class = context.num_class
        q, rem = divmod(u, v)
        v_r = v - rem
        exact = rem == 0
        if exact or rounding == ROUND_DOWN:
            increment = False
        elif rounding == ROUND_UP:
            increment = True
        elif rounding == ROUND_05UP:
            # Away from zero if the last digit would be 0 or half the radix
            radix = context.radix
            last = q % radix
            increment = last == 0 or (radix % 2 == 0 and last == radix // 2)
        elif rem < v_r:
            increment = False
        elif rem > v_r:
            increment = True
        else:
            increment = (rounding == ROUND_HALF_UP
                         or (rounding == ROUND_HALF_EVEN and q % 2 == 1))
        if increment:
            q += 1
        return num_class(+1, q, k), exact
