"""Special functions and probability distributions.

The statistical tests in :mod:`statground.stats.inference` need
the cumulative distribution functions (and their inverses) of the
normal, Student's t, chi-square and F distributions.

All of them are computed through :mod:`scipy.special`, this module
only provides a small interface with names that read well in the
formulas of the tests and that always return python floats.

>>> round(normal_cdf(1.96), 4)
0.975
>>> round(t_ppf(0.975, 10), 4)
2.2281
>>> chi2_sf(0, 3)
1.0

Degenerate arguments, like a non positive number of degrees of freedom,
return the value of the distribution at its lower bound instead of failing.
"""

import math

from scipy import special

__all__ = (
    "erf",
    "normal_cdf",
    "normal_sf",
    "normal_ppf",
    "t_cdf",
    "t_sf",
    "t_ppf",
    "chi2_cdf",
    "chi2_sf",
    "f_cdf",
    "f_sf",
    "log_gamma",
    "incomplete_beta",
    "incomplete_gamma",
)


def erf(x: float) -> float:
    """The error function."""
    return float(special.erf(x))


def normal_cdf(x: float) -> float:
    """Probability that a standard normal variable is below ``x``."""
    return float(special.ndtr(x))


def normal_sf(x: float) -> float:
    """Probability that a standard normal variable is above ``x``."""
    return float(special.ndtr(-x))


def normal_ppf(p: float) -> float:
    """Value below which a standard normal variable falls with probability ``p``.

    >>> normal_ppf(0.5)
    0.0
    """
    if not 0 < p < 1:
        raise ValueError("Probability must be between 0 and 1 (exclusive)")
    return float(special.ndtri(p))


def t_cdf(t: float, df: float) -> float:
    """Cumulative distribution of Student's t with ``df`` degrees of freedom."""
    if df <= 0:
        return math.nan
    return float(special.stdtr(df, t))


def t_sf(t: float, df: float) -> float:
    """Survival function (``1 - cdf``) of Student's t."""
    if df <= 0:
        return math.nan
    return float(special.stdtr(df, -t))


def t_ppf(p: float, df: float) -> float:
    """Inverse of the cumulative distribution of Student's t."""
    if not 0 < p < 1:
        raise ValueError("Probability must be between 0 and 1 (exclusive)")
    if df <= 0:
        return math.nan
    return float(special.stdtrit(df, p))


def chi2_cdf(x: float, df: float) -> float:
    """Cumulative distribution of the chi-square distribution."""
    if x <= 0 or df <= 0:
        return 0.0
    return float(special.chdtr(df, x))


def chi2_sf(x: float, df: float) -> float:
    """Survival function of the chi-square distribution, the p-value of a chi-square statistic."""
    if x <= 0 or df <= 0:
        return 1.0
    return float(special.chdtrc(df, x))


def f_cdf(f: float, df1: float, df2: float) -> float:
    """Cumulative distribution of the F distribution."""
    if f <= 0 or df1 <= 0 or df2 <= 0:
        return 0.0
    return float(special.fdtr(df1, df2, f))


def f_sf(f: float, df1: float, df2: float) -> float:
    """Survival function of the F distribution, the p-value of an F statistic."""
    if f <= 0 or df1 <= 0 or df2 <= 0:
        return 1.0
    return float(special.fdtrc(df1, df2, f))


def log_gamma(x: float) -> float:
    """Natural logarithm of the absolute value of the gamma function."""
    return float(special.gammaln(x))


def incomplete_beta(a: float, b: float, x: float) -> float:
    """Regularized incomplete beta function ``I_x(a, b)``."""
    if x <= 0:
        return 0.0
    if x >= 1:
        return 1.0
    return float(special.betainc(a, b, x))


def incomplete_gamma(a: float, x: float) -> float:
    """Regularized lower incomplete gamma function ``P(a, x)``."""
    if x <= 0:
        return 0.0
    return float(special.gammainc(a, x))
