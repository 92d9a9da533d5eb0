import math

import pytest

from statground import LabeledTable, LabeledVector
from statground.errors import (
    ColumnNotFoundError,
    EmptyCollectionError,
    InsufficientDataError,
    LengthMismatchError,
    UnsupportedAggregationMethodError,
    UnsupportedTypeError,
)
from statground.stats import inference, special


def normal_quantiles(n):
    return [special.normal_ppf((i - 0.5) / n) for i in range(1, n + 1)]


def skewed_sample(skew, n=50):
    """Lognormal shaped sample, the higher ``skew`` the farther from normal."""
    return [math.exp(skew * z) for z in normal_quantiles(n)]


def test_t_test_student():
    result = inference.t_test([1, 2, 3, 4, 5], [6, 7, 8, 9, 10])
    assert result.statistic == pytest.approx(-5.0)
    assert result.degrees_of_freedom == 8.0
    assert result.mean_1 == 3.0
    assert result.mean_2 == 8.0
    assert result.p_value == pytest.approx(0.001052, abs=1e-5)


def test_t_test_welch():
    result = inference.t_test([1, 2, 3, 4, 5], [2, 4, 6, 8, 10], equal_var=False)
    assert result.statistic == pytest.approx(-1.8973666)
    assert result.degrees_of_freedom == pytest.approx(5.882353)
    assert 0.05 < result.p_value < 0.2


def test_t_test_same_samples():
    result = inference.t_test([1, 2, 3], [1, 2, 3])
    assert result.statistic == 0.0
    assert result.p_value == pytest.approx(1.0)


def test_t_test_skips_missing_values():
    with_missing = inference.t_test([1, None, 2, 3, float("nan"), 4, 5], LabeledVector([6, 7, 8, 9, 10]))
    assert with_missing.statistic == pytest.approx(-5.0)


def test_t_test_insufficient_data():
    with pytest.raises(InsufficientDataError):
        inference.t_test([1], [1, 2])
    with pytest.raises(InsufficientDataError):
        inference.t_test([1, None], [1, 2])


def test_t_test_requires_numbers():
    with pytest.raises(UnsupportedTypeError):
        inference.t_test(["a", "b"], [1, 2])


def test_one_sample_t_test():
    result = inference.one_sample_t_test([1, 2, 3, 4, 5], 2)
    assert result.statistic == pytest.approx(math.sqrt(2))
    assert result.degrees_of_freedom == 4.0
    assert result.sample_mean == 3.0
    assert result.expected_mean == 2
    assert 0.2 < result.p_value < 0.3
    with pytest.raises(InsufficientDataError):
        inference.one_sample_t_test([1], 0)


def test_correlation_test():
    result = inference.correlation_test([1, 2, 3, 4, 5], [2, 1, 4, 3, 5])
    assert result.correlation == pytest.approx(0.8)
    assert result.statistic == pytest.approx(2.3094011)
    assert result.degrees_of_freedom == 3.0
    assert 0.05 < result.p_value < 0.2


def test_correlation_test_errors():
    with pytest.raises(LengthMismatchError):
        inference.correlation_test([1, 2, 3], [1, 2, 3, 4])
    with pytest.raises(InsufficientDataError):
        inference.correlation_test([1, 2], [1, 2])


def test_linear_regression_perfect_fit():
    result = inference.linear_regression([1, 2, 3, 4, 5], [2, 4, 6, 8, 10])
    assert result.slope == pytest.approx(2.0)
    assert result.intercept == pytest.approx(0.0)
    assert result.r_squared == pytest.approx(1.0)
    assert result.correlation == pytest.approx(1.0)
    assert result.degrees_of_freedom == 3.0


def test_linear_regression():
    result = inference.linear_regression(
        LabeledVector([1, 2, 3, 4, 5]), LabeledVector([2.1, 3.9, 6.2, 7.8, 10.1])
    )
    assert result.slope == pytest.approx(1.99)
    assert result.intercept == pytest.approx(0.05)
    assert result.r_squared > 0.99
    assert result.slope_p_value < 0.001
    assert result.intercept_p_value > 0.5
    assert result.predict([0, 10]) == pytest.approx([0.05, 19.95])


def test_linear_regression_insufficient_data():
    with pytest.raises(InsufficientDataError):
        inference.linear_regression([1, 2], [2, 4])
    with pytest.raises(InsufficientDataError):
        inference.linear_regression([1, 2, None], [2, 4, 6])


def test_anova():
    result = inference.anova([[1, 2, 3], [4, 5, 6], [7, 8, 9]])
    assert result.f_statistic == pytest.approx(27.0)
    assert result.ss_between == pytest.approx(54.0)
    assert result.ss_within == pytest.approx(6.0)
    assert result.ms_between == pytest.approx(27.0)
    assert result.ms_within == pytest.approx(1.0)
    assert result.p_value == pytest.approx(0.001)


def test_anova_same_means():
    result = inference.anova([[1, 2, 3], [3, 2, 1]])
    assert result.f_statistic == 0.0
    assert result.p_value == 1.0


def test_anova_insufficient_data():
    with pytest.raises(InsufficientDataError):
        inference.anova([[1, 2, 3]])
    with pytest.raises(InsufficientDataError):
        inference.anova([[1], [2, 3]])


def test_chi_square_test():
    table = LabeledTable({"sex": ["M", "M", "F", "F"], "smoker": ["y", "y", "n", "n"]})
    result = inference.chi_square_test(table, "sex", "smoker")
    assert result.statistic == pytest.approx(4.0)
    assert result.degrees_of_freedom == 1.0
    assert result.p_value == pytest.approx(0.0455003, abs=1e-6)
    assert result.observed.to_dict() == {"y": [2, 0], "n": [0, 2]}


def test_chi_square_test_independent():
    table = LabeledTable({"a": ["x", "x", "y", "y"], "b": [1, 2, 1, 2]})
    result = inference.chi_square_test(table, "a", "b")
    assert result.statistic == 0.0
    assert result.p_value == 1.0
    assert result.observed.columns == ["1", "2"]


def test_chi_square_test_null_category():
    table = LabeledTable({"a": ["x", None, "x"], "b": ["u", "u", "v"]})
    result = inference.chi_square_test(table, "a", "b")
    assert result.observed.index == ["x", "null"]
    assert result.degrees_of_freedom == 1.0


def test_chi_square_test_null_string_category():
    table = LabeledTable({"a": ["null", None, "null", None, "x"], "b": ["u", "u", "v", "v", "u"]})
    result = inference.chi_square_test(table, "a", "b")
    assert result.observed.index == ["null", "<null>", "x"]
    assert result.observed.to_dict() == {"u": [1, 1, 1], "v": [1, 1, 0]}
    assert result.degrees_of_freedom == 2.0


def test_chi_square_test_errors():
    table = LabeledTable({"a": ["x"], "b": ["y"]})
    with pytest.raises(ColumnNotFoundError):
        inference.chi_square_test(table, "a", "missing")
    with pytest.raises(EmptyCollectionError):
        inference.chi_square_test(LabeledTable({"a": [], "b": []}), "a", "b")


def test_confidence_interval():
    ci = inference.confidence_interval([1, 2, 3, 4, 5])
    assert ci.mean == 3.0
    assert ci.lower_bound == pytest.approx(1.036757, abs=1e-5)
    assert ci.upper_bound == pytest.approx(4.963243, abs=1e-5)
    assert ci.margin_of_error == pytest.approx(ci.upper_bound - ci.mean)
    assert ci.confidence_level == 0.95


def test_confidence_interval_widens_with_confidence():
    narrow = inference.confidence_interval([2, 4, 4, 4, 5, 5, 7, 9], 0.9)
    wide = inference.confidence_interval([2, 4, 4, 4, 5, 5, 7, 9], 0.99)
    assert wide.margin_of_error > narrow.margin_of_error


def test_confidence_interval_errors():
    with pytest.raises(ValueError):
        inference.confidence_interval([1, 2, 3], confidence=1.5)
    with pytest.raises(InsufficientDataError):
        inference.confidence_interval([1])


@pytest.mark.parametrize("test", ["shapiro", "jarque_bera", "anderson"])
def test_normality_of_normal_sample(test):
    result = inference.normality_test(normal_quantiles(30), test=test)
    assert result.test == test
    assert result.p_value > 0.5


@pytest.mark.parametrize("test", ["shapiro", "jarque_bera", "anderson"])
def test_normality_p_value_decreases_with_skew(test):
    results = [
        inference.normality_test(skewed_sample(skew), test=test)
        for skew in (0.1, 0.5, 1.0, 1.5)
    ]
    p_values = [result.p_value for result in results]
    assert all(later <= earlier for earlier, later in zip(p_values, p_values[1:]))
    assert p_values[-1] < 0.01 < p_values[0]


def test_normality_jarque_alias():
    result = inference.normality_test([1, 2, 3, 4, 10], test="jarque")
    assert result.test == "jarque_bera"


def test_shapiro_three_values():
    result = inference.normality_test([1, 2, 3])
    assert result.statistic == pytest.approx(1.0)
    assert result.p_value == pytest.approx(1.0)
    skewed = inference.normality_test([1, 2, 10])
    assert skewed.p_value < result.p_value


@pytest.mark.parametrize(
    "test, too_short",
    [("shapiro", [1, 2]), ("jarque_bera", [1, 2, 3]), ("anderson", [1, 2, 3, 4])],
)
def test_normality_insufficient_data(test, too_short):
    with pytest.raises(InsufficientDataError):
        inference.normality_test(too_short, test=test)


@pytest.mark.parametrize("test", ["shapiro", "jarque_bera", "anderson"])
def test_normality_constant_sample(test):
    result = inference.normality_test([3, 3, 3, 3, 3, 3], test=test)
    assert math.isnan(result.statistic)
    assert math.isnan(result.p_value)


def test_normality_errors():
    with pytest.raises(EmptyCollectionError):
        inference.normality_test([None, float("nan")])
    with pytest.raises(UnsupportedAggregationMethodError):
        inference.normality_test([1, 2, 3], test="kolmogorov")


def test_descriptive_stats():
    stats = inference.descriptive_stats([2, 4, 4, 4, 5, 5, 7, 9])
    assert stats.count == 8
    assert stats.mean == 5.0
    assert stats.median == 4.5
    assert stats.min == 2.0
    assert stats.max == 9.0
    assert stats.range == 7.0
    assert stats.q1 == 4.0
    assert stats.q3 == 5.5
    assert stats.variance == pytest.approx(32 / 7)
    assert stats.std == pytest.approx(math.sqrt(32 / 7))
    assert stats.coefficient_of_variation == pytest.approx(math.sqrt(32 / 7) / 5)
    assert stats.skewness > 0
    assert stats.confidence_interval.mean == 5.0


def test_descriptive_stats_single_value():
    stats = inference.descriptive_stats([4])
    assert stats.std == 0.0
    assert stats.skewness == 0.0
    assert stats.confidence_interval is None


def test_descriptive_stats_empty():
    with pytest.raises(EmptyCollectionError):
        inference.descriptive_stats([])
