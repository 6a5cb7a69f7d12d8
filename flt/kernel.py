#
# Integer kernels for the transcendental functions, parameterized by the radix.
#
# Every function here works on plain integers.  A real number z is represented in
# fixed point by an integer approximation to z*M with M a power of the radix.
#

import logging
import threading
from math import gcd, log

__all__ = ('number_of_digits', 'digit_string', 'radix_power', 'guard_digits',
           'div_nearest', 'rshift_nearest', 'sqrt_nearest', 'ilog', 'iexp',
           'dlog', 'dlog_radix', 'dexp', 'dpower', 'log_radix_lb', 'LogRadixDigits',
           'log_radix_digits', 'roundable', 'reduce_ratio', 'integer_root')

logger = logging.getLogger(__name__)

# str() of an int is limited in size by default in recent Pythons; stay well below
MAX_STR_BITS = 12000


def radix_power(radix, n):
    '''Return radix**n for a non-negative integer n.'''
    if radix == 2:
        return 1 << n
    return radix ** n


def number_of_digits(x, radix=10):
    '''Return the number of digits of the non-negative integer x written in the radix.
    Zero has one digit.'''
    if x < 0:
        raise ValueError('number_of_digits needs a non-negative integer')
    if radix == 2:
        return x.bit_length() or 1
    if x < radix:
        return 1
    bits = x.bit_length()
    if radix == 10 and bits <= MAX_STR_BITS:
        return len(str(x))
    # Estimate from the bit length then correct the estimate
    n = max(1, int((bits - 1) * log(2) / log(radix)))
    power = radix_power(radix, n)
    while power <= x:
        power *= radix
        n += 1
    while n > 1 and power // radix > x:
        power //= radix
        n -= 1
    return n


DIGITS = '0123456789abcdefghijklmnopqrstuvwxyz'


def digit_string(x, radix=10):
    '''Return the digits of the non-negative integer x in the radix (at most 36) as a
    string.'''
    if radix == 10 and x.bit_length() <= MAX_STR_BITS:
        return str(x)
    if radix == 16:
        return f'{x:x}'
    if radix == 2:
        return f'{x:b}'
    if radix == 8:
        return f'{x:o}'
    if x < radix:
        return DIGITS[x]
    # Divide and conquer so that huge values convert in reasonable time
    n = number_of_digits(x, radix)
    half = n // 2
    high, low = divmod(x, radix_power(radix, half))
    low = digit_string(low, radix)
    return digit_string(high, radix) + '0' * (half - len(low)) + low


def guard_digits(radix):
    '''The number of extra radix digits the fixed-point kernels carry.  For radix 10
    this is 2, so that errors of a few tens of units are absorbed by a final division
    by 100.'''
    n = 2
    while radix_power(radix, n) < 100:
        n += 1
    return n


def div_nearest(a, b):
    '''Closest integer to a/b, a and b positive integers; rounds to even in the case of a
    tie.'''
    q, r = divmod(a, b)
    return q + (2 * r + (q & 1) > b)


def rshift_nearest(x, shift):
    '''Given an integer x and a nonnegative integer shift, return closest integer to
    x / 2**shift; use round-to-even in case of a tie.'''
    b, q = 1 << shift, x >> shift
    return q + (2 * (x & (b - 1)) + (q & 1) > b)


def sqrt_nearest(n, a):
    '''Closest integer to the square root of the positive integer n.  a is an initial
    approximation to the square root.  Any positive integer will do for a, but the
    closer a is to the square root of n the faster convergence will be.'''
    if n <= 0 or a <= 0:
        raise ValueError('both arguments to sqrt_nearest should be positive')
    b = 0
    while a != b:
        b, a = a, a - -n // a >> 1
    return a


def _taylor_terms(M, L):
    # Enough terms that (2**-L)**T < 1/M; estimate the decimal length of M from its bits
    decimal_digits = M.bit_length() * 30103 // 100000 + 1
    return -(-10 * decimal_digits // (3 * L))


def ilog(x, M, L=8):
    '''Integer approximation to M*log(x/M), with absolute error boundable in terms only
    of x/M.

    The argument is reduced with log1p(y) = 2*log1p(y/(1+sqrt(1+y))) until it is
    below 2**-L in absolute value, after which a truncated Taylor series is used.  y
    below is actually an integer approximation to 2**R*y*M, where R is the number of
    reductions performed so far.
    '''
    y = x - M
    R = 0
    while (R <= L and abs(y) << L - R >= M or
           R > L and abs(y) >> R - L >= M):
        y = div_nearest((M * y) << 1, M + sqrt_nearest(M * (M + rshift_nearest(y, R)), M))
        R += 1

    T = _taylor_terms(M, L)
    yshift = rshift_nearest(y, R)
    w = div_nearest(M, T)
    for k in range(T - 1, 0, -1):
        w = div_nearest(M, k) - div_nearest(yshift * w, M)

    return div_nearest(w * y, M)


def iexp(x, M, L=8):
    '''Given integers x and M, M > 0, such that x/M is small in absolute value, compute
    an integer approximation to M*exp(x/M).

    x/M is divided by 2**R so that it is below 2**-L, expm1 of that is computed with a
    Taylor series, and expm1(2x) = expm1(x)*(expm1(x)+2) is applied R times.
    '''
    R = ((x << L) // M).bit_length()

    T = _taylor_terms(M, L)
    y = div_nearest(x, T)
    Mshift = M << R
    for i in range(T - 1, 0, -1):
        y = div_nearest(x * (Mshift + y), Mshift * i)

    for k in range(R - 1, -1, -1):
        Mshift = M << (k + 2)
        y = div_nearest(y * (y + Mshift), Mshift)

    return M + y


class LogRadixDigits:
    '''Memoized digits of log(radix).  Calling an instance with p returns
    floor(radix**p * log(radix)).

    The stored digits are always correct (truncated, not rounded) and are only ever
    extended, under a lock, so instances can be shared between threads.
    '''

    def __init__(self, radix, value=0, places=-1):
        self.radix = radix
        self.value = value
        self.places = places
        self.lock = threading.Lock()

    def __call__(self, p):
        if p < 0:
            raise ValueError('p should be nonnegative')
        with self.lock:
            if p > self.places:
                self._extend(p)
            return self.value // radix_power(self.radix, self.places - p)

    def _extend(self, p):
        radix = self.radix
        # Guard digits in the radix of the cache rather than two decimal digits
        guard = guard_digits(radix)
        # Compute p+3, p+6, p+9, ... digits until at least one extra digit is nonzero
        extra = 3
        while True:
            M = radix_power(radix, p + extra + guard)
            digits = div_nearest(ilog(radix * M, M), radix_power(radix, guard))
            if digits % radix_power(radix, extra):
                break
            extra += 3
        # Keep the reliable digits: drop trailing zeroes and the next nonzero digit
        places = p + extra
        while digits % radix == 0:
            digits //= radix
            places -= 1
        self.value = digits // radix
        self.places = places - 1
        logger.debug('extended log(%d) to %d places', radix, self.places)


_log_radix_caches = {
    10: LogRadixDigits(10, 23025850929940456840179914546843642076011014886, 46),
}
_caches_lock = threading.Lock()


def log_radix_digits(radix, p):
    '''Return floor(radix**p * log(radix)) from the shared per-radix cache.'''
    cache = _log_radix_caches.get(radix)
    if cache is None:
        with _caches_lock:
            cache = _log_radix_caches.setdefault(radix, LogRadixDigits(radix))
    return cache(p)


def _leading_exponent(c, e, radix):
    # Write c*radix**e as d*radix**f with f >= 0 and 1 <= d <= radix, or f <= 0 and
    # 1/radix <= d <= 1.  For c*radix**e close to 1, f = 0.
    n = number_of_digits(c, radix) + e
    return n - (n >= 1)


def dlog(c, e, p, radix=10):
    '''Given integers c, e and p with c > 0, compute an integer approximation to
    radix**p * log(c*radix**e), with an absolute error of at most 1.  Assumes that
    c*radix**e is not exactly 1.'''
    guard = guard_digits(radix)
    p += guard
    f = _leading_exponent(c, e, radix)

    # Approximate radix**p * log(d)
    if p > 0:
        k = e + p - f
        if k >= 0:
            c *= radix_power(radix, k)
        else:
            c = div_nearest(c, radix_power(radix, -k))
        log_d = ilog(c, radix_power(radix, p))
    else:
        log_d = 0

    # Approximate f * radix**p * log(radix)
    if f:
        extra = number_of_digits(abs(f), radix) - 1
        if p + extra >= 0:
            f_log_r = div_nearest(f * log_radix_digits(radix, p + extra),
                                  radix_power(radix, extra))
        else:
            f_log_r = 0
    else:
        f_log_r = 0

    return div_nearest(f_log_r + log_d, radix_power(radix, guard))


def dlog_radix(c, e, p, radix=10):
    '''Given integers c, e and p with c > 0, compute an integer approximation to
    radix**p * log_radix(c*radix**e), with an absolute error of at most 1.  Assumes that
    c*radix**e is not exactly 1.'''
    guard = guard_digits(radix)
    p += guard
    f = _leading_exponent(c, e, radix)

    if p > 0:
        M = radix_power(radix, p)
        k = e + p - f
        if k >= 0:
            c *= radix_power(radix, k)
        else:
            c = div_nearest(c, radix_power(radix, -k))
        log_d = ilog(c, M)
        # log_radix(d) = log(d) / log(radix): the division by log(10) of the decimal
        # kernel, with the digits of log(radix) from the per-radix cache
        log_d = div_nearest(log_d * M, log_radix_digits(radix, p))
        log_power = f * M
    else:
        log_d = 0
        log_power = div_nearest(f, radix_power(radix, -p))

    return div_nearest(log_power + log_d, radix_power(radix, guard))


def dexp(c, e, p, radix=10):
    '''Compute an approximation to exp(c*radix**e), with p digits of precision.

    Returns integers d, f such that radix**(p-1) <= d <= radix**p and
    (d-1)*radix**f < exp(c*radix**e) < (d+1)*radix**f.
    '''
    guard = guard_digits(radix)
    p += guard

    # Reduce by multiples of log(radix) rather than log(10), so that the result is
    # scaled by a power of the radix.
    # Compute log(radix) with extra precision = adjusted exponent of c*radix**e
    extra = max(0, e + number_of_digits(abs(c), radix) - 1)
    q = p + extra

    # Quotient c*radix**e/log(radix) = c*radix**(e+q)/(log(radix)*radix**q), rounding
    # down
    shift = e + q
    if shift >= 0:
        cshift = c * radix_power(radix, shift)
    else:
        cshift = c // radix_power(radix, -shift)
    quot, rem = divmod(cshift, log_radix_digits(radix, q))

    # Reduce remainder back to original precision
    rem = div_nearest(rem, radix_power(radix, extra))

    return (div_nearest(iexp(rem, radix_power(radix, p)), radix_power(radix, guard + 1)),
            quot - p + guard + 1)


def dpower(xc, xe, yc, ye, p, radix=10):
    '''Given integers xc, xe, yc and ye representing x = xc*radix**xe and
    y = yc*radix**ye, compute x**y.  Returns a pair of integers (c, e) such that
    radix**(p-1) <= c <= radix**p and (c-1)*radix**e < x**y < (c+1)*radix**e.

    x must be positive and not equal to 1, and y nonzero.
    '''
    # Extra digits so that the final division absorbs the error of the exponential.
    # One decimal digit does; a smaller radix needs the digits that make a factor of 10
    extra = 1
    while radix_power(radix, extra) < 10:
        extra += 1

    # Find b such that radix**(b-1) <= |y| <= radix**b
    b = number_of_digits(abs(yc), radix) + ye

    # log(x) = lxc*radix**(-p-b-extra)
    lxc = dlog(xc, xe, p + b + extra, radix)

    # y*log(x) = yc*lxc*radix**(-p-b-extra+ye) = pc*radix**(-p-extra)
    shift = ye - b
    if shift >= 0:
        pc = lxc * yc * radix_power(radix, shift)
    else:
        pc = div_nearest(lxc * yc, radix_power(radix, -shift))

    if pc == 0:
        # Prefer a result that isn't exactly 1
        if (number_of_digits(xc, radix) + xe >= 1) == (yc > 0):
            coeff, exp = radix_power(radix, p - 1) + 1, 1 - p
        else:
            coeff, exp = radix_power(radix, p) - 1, -p
    else:
        coeff, exp = dexp(pc, -(p + extra), p + extra, radix)
        coeff = div_nearest(coeff, radix_power(radix, extra))
        exp += extra

    return coeff, exp


# 100 - floor(100*log10(d)) for a leading decimal digit d
LOG10_LB_CORRECTION = {
    '1': 100, '2': 70, '3': 53, '4': 40, '5': 31,
    '6': 23, '7': 16, '8': 10, '9': 5,
}


def log_radix_lb(c, radix=10):
    '''Return a pair (lb, mult) with lb a lower bound for mult*log_radix(c), c a positive
    integer.'''
    if c <= 0:
        raise ValueError('the argument to log_radix_lb should be positive')
    if radix == 10:
        str_c = digit_string(c)
        return 100 * len(str_c) - LOG10_LB_CORRECTION[str_c[0]], 100
    if radix == 2:
        return c.bit_length() - 1, 1
    # No table of leading digits for other radixes: bound through the bit length,
    # log_radix(c) >= (nbits(c) - 1) * log_radix(2)
    return (c.bit_length() - 1) * int(1000 * log(2) / log(radix)), 1000


def roundable(coeff, p, radix=10):
    '''Return True if coeff, known to within an error of less than one unit, has more
    than p digits and the rounding of it to p digits does not depend on that error:
    neither the exact value nor a rounding tie can lie within the error interval.'''
    coeff = abs(coeff)
    n = number_of_digits(coeff, radix) - p
    if n <= 0:
        return False
    unit = radix_power(radix, n)
    # Boundaries are the multiples of unit/2; work with doubled values
    rem = (2 * coeff) % unit
    return rem not in (0, 1, unit - 1)


def reduce_ratio(m, n):
    '''Return m/n in lowest terms.'''
    g = gcd(m, n)
    return m // g, n // g


def integer_root(a, n):
    '''Return the integer part of the nth root of the non-negative integer a.'''
    if a < 2 or n == 1:
        return a
    # Newton's method from above
    x = 1 << -(-a.bit_length() // n)
    while True:
        y = ((n - 1) * x + a // x ** (n - 1)) // n
        if y >= x:
            return x
        x = y
