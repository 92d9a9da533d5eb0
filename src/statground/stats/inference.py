"""Statistical inference.

This module implements the most common hypothesis tests
and estimations performed on samples of data:

* comparing means with :func:`t_test`, :func:`one_sample_t_test` and :func:`anova`
* testing the relationship between variables with :func:`correlation_test`,
  :func:`linear_regression` and :func:`chi_square_test`
* estimating the mean with :func:`confidence_interval`
* checking the shape of a distribution with :func:`normality_test`
  and summarizing it with :func:`descriptive_stats`

Samples can be provided as :class:`statground.LabeledVector` or
as any sequence of numbers. Missing values (nulls and ``NaN``)
are always removed before computing anything.

>>> from statground.stats import inference
>>> result = inference.linear_regression([1, 2, 3, 4, 5], [2, 4, 6, 8, 10])
>>> round(result.slope, 6), round(result.intercept, 6), round(result.r_squared, 6)
(2.0, 0.0, 1.0)
>>> result.predict(6)
12.0

Each function returns a frozen dataclass with the computed values.
The p-values rely on the distributions provided by
:mod:`statground.stats.special`.
"""

import logging
import math
from dataclasses import dataclass
from typing import Any, Iterable, Sequence

import pyarrow as pa
import pyarrow.compute as pc

from ..compute import group_rows
from ..dataframe.table import LabeledTable
from ..dataframe.vector import LabeledVector, is_numeric_type, missing_mask, to_arrow_array
from ..errors import (
    EmptyCollectionError,
    InsufficientDataError,
    LengthMismatchError,
    UnsupportedAggregationMethodError,
    UnsupportedTypeError,
)
from . import special
from .mathops import correlation

logger = logging.getLogger(__name__)

NORMALITY_TESTS = {
    "shapiro": "shapiro",
    "jarque_bera": "jarque_bera",
    "jarque": "jarque_bera",
    "anderson": "anderson",
}
"""Accepted names of the normality tests, mapped to the name reported in the result."""


@dataclass(frozen=True)
class TTestResult:
    statistic: float
    p_value: float
    degrees_of_freedom: float
    mean_1: float
    mean_2: float


@dataclass(frozen=True)
class OneSampleTTestResult:
    statistic: float
    p_value: float
    degrees_of_freedom: float
    sample_mean: float
    expected_mean: float


@dataclass(frozen=True)
class CorrelationTestResult:
    correlation: float
    statistic: float
    p_value: float
    degrees_of_freedom: float


@dataclass(frozen=True)
class RegressionResult:
    """Outcome of a simple linear regression ``y = intercept + slope * x``."""

    slope: float
    intercept: float
    r_squared: float
    correlation: float
    slope_std_error: float
    intercept_std_error: float
    slope_t_statistic: float
    intercept_t_statistic: float
    slope_p_value: float
    intercept_p_value: float
    degrees_of_freedom: float
    residual_standard_error: float

    def predict(self, x: float | Iterable[float]) -> float | list[float]:
        """Estimate ``y`` for one or more values of ``x``."""
        if isinstance(x, Iterable):
            return [self.intercept + self.slope * value for value in x]
        return self.intercept + self.slope * x


@dataclass(frozen=True)
class AnovaResult:
    f_statistic: float
    p_value: float
    df_between: float
    df_within: float
    ss_between: float
    ss_within: float
    ms_between: float
    ms_within: float


@dataclass(frozen=True)
class ChiSquareResult:
    """Outcome of a chi-square test of independence.

    ``observed`` is the contingency table: one row for each value
    of the first column and one column for each value of the second one.
    """

    statistic: float
    p_value: float
    degrees_of_freedom: float
    observed: LabeledTable


@dataclass(frozen=True)
class ConfidenceInterval:
    mean: float
    lower_bound: float
    upper_bound: float
    margin_of_error: float
    confidence_level: float


@dataclass(frozen=True)
class NormalityResult:
    test: str
    statistic: float
    p_value: float


@dataclass(frozen=True)
class DescriptiveStats:
    count: int
    mean: float
    std: float
    variance: float
    min: float
    max: float
    median: float
    q1: float
    q3: float
    iqr: float
    skewness: float
    kurtosis: float
    confidence_interval: ConfidenceInterval | None
    range: float
    coefficient_of_variation: float


def _safe_divide(numerator: float, denominator: float) -> float:
    """Divide, following floating point rules for a zero denominator."""
    if denominator == 0:
        if numerator == 0 or math.isnan(numerator):
            return math.nan
        return math.copysign(math.inf, numerator)
    return numerator / denominator


def _as_numeric_array(values: Any) -> pa.Array:
    if isinstance(values, LabeledVector):
        values = values.values
    array = to_arrow_array(values)
    if not (is_numeric_type(array.type) or pa.types.is_null(array.type)):
        raise UnsupportedTypeError(f"Statistics require numeric data, got {array.type}")
    return array


def _sample(values: Any) -> list[float]:
    """The non missing values of a sample, as floats."""
    array = _as_numeric_array(values)
    if pa.types.is_null(array.type):
        return []
    return pc.cast(array.filter(pc.invert(missing_mask(array))), pa.float64()).to_pylist()


def _paired_sample(x: Any, y: Any) -> tuple[list[float], list[float]]:
    """The pairs of values of two samples where neither is missing."""
    x, y = _as_numeric_array(x), _as_numeric_array(y)
    if len(x) != len(y):
        raise LengthMismatchError(f"Samples have different lengths: {len(x)} and {len(y)}")
    complete = pc.invert(pc.or_(missing_mask(x), missing_mask(y)))
    return (
        pc.cast(x.filter(complete), pa.float64()).to_pylist(),
        pc.cast(y.filter(complete), pa.float64()).to_pylist(),
    )


def _mean(data: Sequence[float]) -> float:
    return math.fsum(data) / len(data)


def _variance(data: Sequence[float]) -> float:
    if len(data) < 2:
        return 0.0
    mean = _mean(data)
    return math.fsum((x - mean) ** 2 for x in data) / (len(data) - 1)


def _skewness(data: Sequence[float], mean: float, std: float) -> float:
    """Adjusted sample skewness, ``0`` when it can't be computed."""
    n = len(data)
    if n < 3 or std == 0:
        return 0.0
    total = math.fsum(((x - mean) / std) ** 3 for x in data)
    return n / ((n - 1) * (n - 2)) * total


def _kurtosis(data: Sequence[float], mean: float, std: float) -> float:
    """Adjusted sample excess kurtosis, ``0`` when it can't be computed."""
    n = len(data)
    if n < 4 or std == 0:
        return 0.0
    total = math.fsum(((x - mean) / std) ** 4 for x in data)
    return (n * (n + 1) / ((n - 1) * (n - 2) * (n - 3))) * total - (
        3 * (n - 1) ** 2 / ((n - 2) * (n - 3))
    )


def _percentile(sorted_data: Sequence[float], q: float) -> float:
    position = q * (len(sorted_data) - 1)
    lower = math.floor(position)
    upper = math.ceil(position)
    return sorted_data[lower] + (sorted_data[upper] - sorted_data[lower]) * (position - lower)


def _two_sided_t_p_value(statistic: float, df: float) -> float:
    if math.isnan(statistic):
        return math.nan
    return min(1.0, 2 * special.t_sf(abs(statistic), df))


def t_test(a: Any, b: Any, equal_var: bool = True) -> TTestResult:
    """Test if two independent samples have the same mean.

    With ``equal_var=True`` the samples are assumed to have the same variance
    and the pooled variance is used (Student's t-test), otherwise the
    Welch's t-test is performed and the degrees of freedom are
    computed with the Welch-Satterthwaite equation.

    >>> result = t_test([1, 2, 3, 4, 5], [6, 7, 8, 9, 10])
    >>> result.statistic, result.degrees_of_freedom
    (-5.0, 8.0)
    >>> result.p_value < 0.01
    True
    """
    data1, data2 = _sample(a), _sample(b)
    if len(data1) < 2 or len(data2) < 2:
        raise InsufficientDataError("Each sample must have at least 2 values")

    n1, n2 = len(data1), len(data2)
    mean1, mean2 = _mean(data1), _mean(data2)
    var1, var2 = _variance(data1), _variance(data2)

    if equal_var:
        pooled_var = ((n1 - 1) * var1 + (n2 - 1) * var2) / (n1 + n2 - 2)
        standard_error = math.sqrt(pooled_var * (1 / n1 + 1 / n2))
        df = float(n1 + n2 - 2)
    else:
        se1, se2 = var1 / n1, var2 / n2
        standard_error = math.sqrt(se1 + se2)
        df = _safe_divide((se1 + se2) ** 2, se1**2 / (n1 - 1) + se2**2 / (n2 - 1))

    statistic = _safe_divide(mean1 - mean2, standard_error)
    result = TTestResult(
        statistic=statistic,
        p_value=_two_sided_t_p_value(statistic, df),
        degrees_of_freedom=df,
        mean_1=mean1,
        mean_2=mean2,
    )
    logger.debug("t-test: %s", result)
    return result


def one_sample_t_test(sample: Any, expected_mean: float) -> OneSampleTTestResult:
    """Test if the mean of a sample differs from ``expected_mean``.

    >>> round(one_sample_t_test([1, 2, 3, 4, 5], 3).p_value, 6)
    1.0
    """
    data = _sample(sample)
    if len(data) < 2:
        raise InsufficientDataError("The sample must have at least 2 values")

    n = len(data)
    mean = _mean(data)
    standard_error = math.sqrt(_variance(data) / n)
    statistic = _safe_divide(mean - expected_mean, standard_error)
    df = float(n - 1)
    return OneSampleTTestResult(
        statistic=statistic,
        p_value=_two_sided_t_p_value(statistic, df),
        degrees_of_freedom=df,
        sample_mean=mean,
        expected_mean=expected_mean,
    )


def correlation_test(x: Any, y: Any) -> CorrelationTestResult:
    """Test if the Pearson correlation of two samples differs from zero.

    Positions where either sample has a missing value are ignored.
    """
    xs, ys = _paired_sample(x, y)
    n = len(xs)
    if n < 3:
        raise InsufficientDataError("Correlation test requires at least 3 pairs of values")

    r = correlation(xs, ys)
    df = float(n - 2)
    statistic = r * math.sqrt(_safe_divide(df, 1 - r * r)) if not math.isnan(r) else math.nan
    return CorrelationTestResult(
        correlation=r,
        statistic=statistic,
        p_value=_two_sided_t_p_value(statistic, df),
        degrees_of_freedom=df,
    )


def linear_regression(x: Any, y: Any) -> RegressionResult:
    """Fit ``y = intercept + slope * x`` with ordinary least squares.

    Positions where either sample has a missing value are ignored.
    At least 3 pairs of values are required.
    """
    xs, ys = _paired_sample(x, y)
    n = len(xs)
    if n < 3:
        raise InsufficientDataError("Linear regression requires at least 3 pairs of values")

    x_mean, y_mean = _mean(xs), _mean(ys)
    sxy = math.fsum((xi - x_mean) * (yi - y_mean) for xi, yi in zip(xs, ys))
    sxx = math.fsum((xi - x_mean) ** 2 for xi in xs)

    slope = _safe_divide(sxy, sxx)
    intercept = y_mean - slope * x_mean

    total_ss = math.fsum((yi - y_mean) ** 2 for yi in ys)
    residual_ss = math.fsum((yi - (intercept + slope * xi)) ** 2 for xi, yi in zip(xs, ys))
    r_squared = 1 - _safe_divide(residual_ss, total_ss)
    correlation = math.copysign(math.sqrt(max(r_squared, 0.0)), slope) if not math.isnan(r_squared) else math.nan

    df = float(n - 2)
    mse = residual_ss / df
    slope_std_error = math.sqrt(_safe_divide(mse, sxx))
    intercept_std_error = math.sqrt(mse * (1 / n + _safe_divide(x_mean * x_mean, sxx)))
    slope_t = _safe_divide(slope, slope_std_error)
    intercept_t = _safe_divide(intercept, intercept_std_error)

    result = RegressionResult(
        slope=slope,
        intercept=intercept,
        r_squared=r_squared,
        correlation=correlation,
        slope_std_error=slope_std_error,
        intercept_std_error=intercept_std_error,
        slope_t_statistic=slope_t,
        intercept_t_statistic=intercept_t,
        slope_p_value=_two_sided_t_p_value(slope_t, df),
        intercept_p_value=_two_sided_t_p_value(intercept_t, df),
        degrees_of_freedom=df,
        residual_standard_error=math.sqrt(mse),
    )
    logger.debug("Linear regression: %s", result)
    return result


def anova(groups: Sequence[Any]) -> AnovaResult:
    """One-way analysis of variance.

    Test if all the groups have the same mean, by comparing the variance
    between the groups with the variance within the groups.
    At least 2 groups are required, each with at least 2 values.

    >>> result = anova([[1, 2, 3], [4, 5, 6], [7, 8, 9]])
    >>> result.f_statistic, result.df_between, result.df_within
    (27.0, 2.0, 6.0)
    """
    if len(groups) < 2:
        raise InsufficientDataError("ANOVA requires at least 2 groups")
    samples = [_sample(group) for group in groups]
    if any(len(sample) < 2 for sample in samples):
        raise InsufficientDataError("Each group must have at least 2 values")

    all_values = [value for sample in samples for value in sample]
    grand_mean = _mean(all_values)
    ss_between = math.fsum(len(s) * (_mean(s) - grand_mean) ** 2 for s in samples)
    ss_within = math.fsum((value - _mean(s)) ** 2 for s in samples for value in s)

    df_between = float(len(samples) - 1)
    df_within = float(len(all_values) - len(samples))
    ms_between = ss_between / df_between
    ms_within = ss_within / df_within
    f_statistic = _safe_divide(ms_between, ms_within)
    p_value = math.nan if math.isnan(f_statistic) else special.f_sf(f_statistic, df_between, df_within)

    return AnovaResult(
        f_statistic=f_statistic,
        p_value=p_value,
        df_between=df_between,
        df_within=df_within,
        ss_between=ss_between,
        ss_within=ss_within,
        ms_between=ms_between,
        ms_within=ms_within,
    )


def _category_labels(values: list[Any]) -> list[str]:
    """Text label of each category, missing values get a label no category has."""
    labels = {str(value) for value in values if value is not None}
    missing = "null"
    while missing in labels:
        missing = f"<{missing}>"
    return [missing if value is None else str(value) for value in values]


def chi_square_test(table: LabeledTable, column1: str, column2: str) -> ChiSquareResult:
    """Chi-square test of independence of two categorical columns.

    The rows of the table are counted for each combination of values
    of the two columns, building the contingency table.
    The counts expected if the columns were independent are computed
    from the totals of each row and column of the contingency table,
    combinations with no expected count are skipped.

    >>> from statground import LabeledTable
    >>> data = LabeledTable({"sex": ["M", "M", "F", "F"], "smoker": ["y", "n", "n", "n"]})
    >>> result = chi_square_test(data, "sex", "smoker")
    >>> result.observed.to_dict()
    {'y': [1, 0], 'n': [1, 2]}
    >>> result.observed.index
    ['M', 'F']
    >>> result.degrees_of_freedom
    1.0
    """
    selected = table.select([column1, column2])
    if len(selected) == 0:
        raise EmptyCollectionError("Chi-square test of an empty table")

    batch = selected.to_arrow().combine_chunks().to_batches()[0]
    row_values: dict[Any, None] = {}
    col_values: dict[Any, None] = {}
    counts: dict[tuple[Any, Any], int] = {}
    for (value1, value2), positions in group_rows(batch, [column1, column2]).items():
        row_values.setdefault(value1)
        col_values.setdefault(value2)
        counts[(value1, value2)] = len(positions)

    rows, cols = list(row_values), list(col_values)
    observed = [[counts.get((r, c), 0) for c in cols] for r in rows]
    row_totals = [sum(row) for row in observed]
    col_totals = [sum(observed[i][j] for i in range(len(rows))) for j in range(len(cols))]
    grand_total = sum(row_totals)

    statistic = 0.0
    for i, row_total in enumerate(row_totals):
        for j, col_total in enumerate(col_totals):
            expected = row_total * col_total / grand_total
            if expected > 0:
                statistic += (observed[i][j] - expected) ** 2 / expected

    df = float((len(rows) - 1) * (len(cols) - 1))
    observed_table = LabeledTable(
        {
            label: [observed[i][j] for i in range(len(rows))]
            for j, label in enumerate(_category_labels(cols))
        },
        index=_category_labels(rows),
    )
    result = ChiSquareResult(
        statistic=statistic,
        p_value=special.chi2_sf(statistic, df),
        degrees_of_freedom=df,
        observed=observed_table,
    )
    logger.debug("Chi-square test of %r and %r: statistic=%s p=%s", column1, column2, statistic, result.p_value)
    return result


def confidence_interval(sample: Any, confidence: float = 0.95) -> ConfidenceInterval:
    """Confidence interval of the mean of a sample.

    The interval is ``mean ± t * standard_error`` where ``t`` is the
    quantile of Student's t distribution for the requested confidence level.

    >>> ci = confidence_interval([1, 2, 3, 4, 5])
    >>> round(ci.lower_bound, 4), round(ci.upper_bound, 4)
    (1.0368, 4.9632)
    """
    if not 0 < confidence < 1:
        raise ValueError("Confidence must be between 0 and 1 (exclusive)")
    data = _sample(sample)
    if len(data) < 2:
        raise InsufficientDataError("The sample must have at least 2 values")

    n = len(data)
    mean = _mean(data)
    standard_error = math.sqrt(_variance(data)) / math.sqrt(n)
    t_critical = special.t_ppf(1 - (1 - confidence) / 2, n - 1)
    margin = t_critical * standard_error
    return ConfidenceInterval(
        mean=mean,
        lower_bound=mean - margin,
        upper_bound=mean + margin,
        margin_of_error=margin,
        confidence_level=confidence,
    )


def normality_test(sample: Any, test: str = "shapiro") -> NormalityResult:
    """Test if a sample comes from a normal distribution.

    Low p-values are evidence against normality.
    Supported tests, and the minimum number of values they require, are:

    * ``shapiro``: Shapiro-Wilk, using the Royston approximation
      of the coefficients and of the p-value (3 values).
    * ``jarque_bera`` (or ``jarque``): Jarque-Bera, based on the sample
      skewness and excess kurtosis (4 values).
    * ``anderson``: Anderson-Darling, with the p-value of the
      statistic corrected for the sample size (5 values).

    The statistic and p-value are approximations, samples
    made of identical values have a ``NaN`` result.
    """
    name = NORMALITY_TESTS.get(test.lower())
    if name is None:
        raise UnsupportedAggregationMethodError(f"Unsupported normality test: {test}")

    data = _sample(sample)
    if not data:
        raise EmptyCollectionError("Normality test of an empty sample")

    if name == "shapiro":
        statistic, p_value = _shapiro_wilk(data)
    elif name == "jarque_bera":
        statistic, p_value = _jarque_bera(data)
    else:
        statistic, p_value = _anderson_darling(data)

    result = NormalityResult(test=name, statistic=statistic, p_value=p_value)
    logger.debug("Normality test on %d values: %s", len(data), result)
    return result


def _shapiro_wilk(data: list[float]) -> tuple[float, float]:
    n = len(data)
    if n < 3:
        raise InsufficientDataError("Shapiro-Wilk test requires at least 3 values")

    x = sorted(data)
    mean = _mean(x)
    ssq = math.fsum((v - mean) ** 2 for v in x)
    if ssq == 0:
        return math.nan, math.nan

    if n == 3:
        half = math.sqrt(0.5)
        w = (half * (x[2] - x[0])) ** 2 / ssq
        w = min(w, 1.0)
        p_value = max(0.0, 6 / math.pi * (math.asin(math.sqrt(w)) - math.asin(math.sqrt(0.75))))
        return w, p_value

    # Expected values of the normal order statistics.
    m = [special.normal_ppf((i - 0.375) / (n + 0.25)) for i in range(1, n + 1)]
    msum = math.fsum(v * v for v in m)
    u = 1 / math.sqrt(n)
    c = [v / math.sqrt(msum) for v in m]

    a = [0.0] * n
    a_n = c[-1] + 0.221157 * u - 0.147981 * u**2 - 2.071190 * u**3 + 4.434685 * u**4 - 2.706056 * u**5
    if n > 5:
        a_n1 = c[-2] + 0.042981 * u - 0.293762 * u**2 - 1.752461 * u**3 + 5.682633 * u**4 - 3.582633 * u**5
        phi = (msum - 2 * m[-1] ** 2 - 2 * m[-2] ** 2) / (1 - 2 * a_n**2 - 2 * a_n1**2)
        for i in range(2, n - 2):
            a[i] = m[i] / math.sqrt(phi)
        a[0], a[1], a[-2], a[-1] = -a_n, -a_n1, a_n1, a_n
    else:
        phi = (msum - 2 * m[-1] ** 2) / (1 - 2 * a_n**2)
        for i in range(1, n - 1):
            a[i] = m[i] / math.sqrt(phi)
        a[0], a[-1] = -a_n, a_n

    w = math.fsum(ai * xi for ai, xi in zip(a, x)) ** 2 / ssq
    w = min(w, 1.0)
    if w >= 1.0:
        return w, 1.0

    if n <= 11:
        gamma = 0.459 * n - 2.273
        argument = gamma - math.log(1 - w)
        if argument <= 0:
            return w, 0.0
        transformed = -math.log(argument)
        mu = 0.5440 - 0.39978 * n + 0.025054 * n**2 - 0.0006714 * n**3
        sigma = math.exp(1.3822 - 0.77857 * n + 0.062767 * n**2 - 0.0020322 * n**3)
    else:
        ln_n = math.log(n)
        transformed = math.log(1 - w)
        mu = -1.5861 - 0.31082 * ln_n - 0.083751 * ln_n**2 + 0.0038915 * ln_n**3
        sigma = math.exp(-0.4803 - 0.082676 * ln_n + 0.0030302 * ln_n**2)
    return w, special.normal_sf((transformed - mu) / sigma)


def _jarque_bera(data: list[float]) -> tuple[float, float]:
    n = len(data)
    if n < 4:
        raise InsufficientDataError("Jarque-Bera test requires at least 4 values")

    mean = _mean(data)
    std = math.sqrt(_variance(data))
    if std == 0:
        return math.nan, math.nan
    skewness = _skewness(data, mean, std)
    kurtosis = _kurtosis(data, mean, std)
    statistic = n / 6 * (skewness**2 + 0.25 * kurtosis**2)
    return statistic, special.chi2_sf(statistic, 2)


def _anderson_darling(data: list[float]) -> tuple[float, float]:
    n = len(data)
    if n < 5:
        raise InsufficientDataError("Anderson-Darling test requires at least 5 values")

    x = sorted(data)
    mean = _mean(x)
    std = math.sqrt(_variance(x))
    if std == 0:
        return math.nan, math.nan

    z = [(v - mean) / std for v in x]
    total = 0.0
    for i in range(n):
        lower = special.normal_cdf(z[i])
        upper = special.normal_sf(z[n - 1 - i])
        # Values so far in the tails that the probability underflows are skipped.
        if lower > 0 and upper > 0:
            total += (2 * i + 1) * (math.log(lower) + math.log(upper))
    a2 = -n - total / n

    adjusted = a2 * (1 + 0.75 / n + 2.25 / n**2)
    if adjusted >= 153:
        p_value = 0.0
    elif adjusted >= 0.6:
        p_value = math.exp(1.2937 - 5.709 * adjusted + 0.0186 * adjusted**2)
    elif adjusted >= 0.34:
        p_value = math.exp(0.9177 - 4.279 * adjusted - 1.38 * adjusted**2)
    elif adjusted >= 0.2:
        p_value = 1 - math.exp(-8.318 + 42.796 * adjusted - 59.938 * adjusted**2)
    else:
        p_value = 1 - math.exp(-13.436 + 101.14 * adjusted - 223.73 * adjusted**2)
    return a2, min(max(p_value, 0.0), 1.0)


def descriptive_stats(sample: Any, confidence: float = 0.95) -> DescriptiveStats:
    """Summary of the distribution of a sample.

    Skewness and kurtosis are the adjusted sample estimators,
    the kurtosis is the excess one (``0`` for a normal distribution).
    ``confidence_interval`` is ``None`` for samples with a single value.

    >>> stats = descriptive_stats([2, 4, 4, 4, 5, 5, 7, 9])
    >>> stats.mean, stats.median, stats.iqr
    (5.0, 4.5, 1.5)
    """
    data = sorted(_sample(sample))
    if not data:
        raise EmptyCollectionError("Descriptive statistics of an empty sample")

    n = len(data)
    mean = _mean(data)
    variance = _variance(data)
    std = math.sqrt(variance)
    q1 = _percentile(data, 0.25)
    q3 = _percentile(data, 0.75)
    return DescriptiveStats(
        count=n,
        mean=mean,
        std=std,
        variance=variance,
        min=data[0],
        max=data[-1],
        median=_percentile(data, 0.5),
        q1=q1,
        q3=q3,
        iqr=q3 - q1,
        skewness=_skewness(data, mean, std),
        kurtosis=_kurtosis(data, mean, std),
        confidence_interval=confidence_interval(data, confidence) if n >= 2 else None,
        range=data[-1] - data[0],
        coefficient_of_variation=_safe_divide(std, mean),
    )
