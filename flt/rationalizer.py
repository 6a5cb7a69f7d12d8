#
# Simple fractions approximating a value: the simplest fraction within a tolerance (Knuth,
# TAOCP vol. 2, 4.5.3 exercise 39) and the closest fraction with a bounded denominator.
#

from fractions import Fraction
from math import floor

__all__ = ('simplest_fraction', 'rationalize')


def simplest_fraction(low, high):
    '''Return the fraction with the smallest denominator in the closed interval [low, high],
    where 0 <= low <= high are Fractions.'''
    if not 0 <= low <= high:
        raise ValueError(f'invalid interval [{low}, {high}]')
    # Continued fraction terms common to both ends, then the smallest term between them
    terms = []
    while True:
        n = floor(low)
        if n == low:
            terms.append(n)
            break
        if n < floor(high):
            terms.append(n + 1)
            break
        terms.append(n)
        low, high = 1 / (high - n), 1 / (low - n)

    numerator, denominator = terms.pop(), 1
    while terms:
        numerator, denominator = terms.pop() * numerator + denominator, numerator
    return Fraction(numerator, denominator)


def rationalize(value, tolerance):
    '''Approximate value, a Fraction, by a simpler fraction.

    An int tolerance is a maximum denominator and gives the closest such fraction.  Any
    other tolerance is an absolute distance, and gives the simplest fraction within it.
    '''
    if isinstance(tolerance, int):
        if tolerance < 1:
            raise ValueError('the maximum denominator must be positive')
        return value.limit_denominator(tolerance)
    tolerance = abs(Fraction(tolerance))
    magnitude = abs(value)
    result = simplest_fraction(max(magnitude - tolerance, Fraction(0)), magnitude + tolerance)
    return -result if value < 0 else result
