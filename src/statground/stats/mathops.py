"""Math operations on the columns of tables.

This module provides the operations that compute new
numeric data out of the columns of a :class:`statground.LabeledTable`:

* correlation and covariance matrices (:func:`corr`, :func:`cov`)
* element-wise arithmetic with other tables or numbers
  (:func:`add`, :func:`subtract`, :func:`multiply`, :func:`divide`, :func:`power`)
* rolling window statistics (:func:`rolling_mean`, :func:`rolling_sum`, :func:`rolling_std`)
* running totals (:func:`cum_sum`, :func:`cum_prod`)
* comparisons with previous rows (:func:`pct_change`, :func:`diff`)
* per value transformations (:func:`clip`, :func:`round`, :func:`apply_math`)

>>> from statground import LabeledTable
>>> from statground.stats import mathops
>>> table = LabeledTable({"a": [1, 2, 3, 4, 5], "b": [2, 4, 6, 8, 10]})
>>> mathops.corr(table).loc("a")
{'a': 1.0, 'b': 1.0}
>>> mathops.rolling_mean(table, 2, columns="a").to_dict()
{'a': [nan, 1.5, 2.5, 3.5, 4.5]}

The result of every operation is a new table with the same
row labels of the table it was computed from.
Unless otherwise stated, operations accept a ``columns`` argument
to restrict them to one or more columns, by default all columns are used.
"""

import logging
import math
import numbers
from typing import Any, Callable, Iterable

import pyarrow as pa
import pyarrow.compute as pc

from ..dataframe.table import LabeledTable
from ..dataframe.vector import LabeledVector, is_numeric_type, missing_mask, to_arrow_array
from ..errors import (
    ColumnNotFoundError,
    LengthMismatchError,
    UnsupportedAggregationMethodError,
    UnsupportedTypeError,
)

logger = logging.getLogger(__name__)

CORRELATION_METHODS = ("pearson", "spearman")

ARITHMETIC_FUNCTIONS: dict[str, Callable] = {
    "add": pc.add,
    "subtract": pc.subtract,
    "multiply": pc.multiply,
    "divide": pc.divide,
    "power": pc.power,
}

MATH_FUNCTIONS: dict[str, Callable] = {
    "abs": pc.abs,
    "sqrt": pc.sqrt,
    "exp": pc.exp,
    "log": pc.ln,
    "sin": pc.sin,
    "cos": pc.cos,
    "tan": pc.tan,
}


def _scope(table: LabeledTable, columns: str | Iterable[str] | None) -> list[str]:
    """Resolve the ``columns`` argument of an operation to a list of names."""
    if columns is None:
        return table.columns
    if isinstance(columns, str):
        columns = [columns]
    columns = list(columns)
    missing = [name for name in columns if name not in table]
    if missing:
        raise ColumnNotFoundError(f"Columns not found: {missing}")
    return columns


def _numeric_scope(table: LabeledTable, columns: str | Iterable[str] | None, operation: str) -> list[str]:
    names = _scope(table, columns)
    for name in names:
        if not table[name].is_numeric:
            raise UnsupportedTypeError(
                f"{operation} requires numeric columns, {name!r} is {table[name].dtype}"
            )
    return names


def _as_array(values: Any) -> pa.Array:
    if isinstance(values, LabeledVector):
        return values.values
    return to_arrow_array(values)


def _check_method(method: str) -> str:
    method = method.lower()
    if method not in CORRELATION_METHODS:
        raise UnsupportedAggregationMethodError(f"Unsupported correlation method: {method}")
    return method


def _complete_pairs(x: pa.Array, y: pa.Array) -> tuple[list[float], list[float]]:
    """The pairs of values of ``x`` and ``y`` where neither is missing."""
    complete = pc.invert(pc.or_(missing_mask(x), missing_mask(y)))
    return (
        pc.cast(x.filter(complete), pa.float64()).to_pylist(),
        pc.cast(y.filter(complete), pa.float64()).to_pylist(),
    )


def _average_ranks(values: list[float]) -> list[float]:
    """Rank the values from 1, tied values all get the average of their ranks.

    >>> _average_ranks([10.0, 20.0, 10.0, 30.0])
    [1.5, 3.0, 1.5, 4.0]
    """
    if not values:
        return []
    data = pa.array(values, type=pa.float64())
    lowest = pc.rank(data, sort_keys="ascending", tiebreaker="min").to_pylist()
    highest = pc.rank(data, sort_keys="ascending", tiebreaker="max").to_pylist()
    return [(low + high) / 2 for low, high in zip(lowest, highest)]


def _pearson(xs: list[float], ys: list[float]) -> float:
    n = len(xs)
    if n == 0:
        return math.nan
    mean_x = math.fsum(xs) / n
    mean_y = math.fsum(ys) / n
    dx = [x - mean_x for x in xs]
    dy = [y - mean_y for y in ys]
    numerator = math.fsum(a * b for a, b in zip(dx, dy))
    denominator = math.sqrt(math.fsum(a * a for a in dx) * math.fsum(b * b for b in dy))
    if denominator == 0:
        return math.nan
    return max(-1.0, min(1.0, numerator / denominator))


def _covariance(xs: list[float], ys: list[float]) -> float:
    n = len(xs)
    if n < 2:
        return math.nan
    mean_x = math.fsum(xs) / n
    mean_y = math.fsum(ys) / n
    return math.fsum((x - mean_x) * (y - mean_y) for x, y in zip(xs, ys)) / (n - 1)


def _correlate(xs: list[float], ys: list[float], method: str) -> float:
    if method == "spearman":
        return _pearson(_average_ranks(xs), _average_ranks(ys))
    return _pearson(xs, ys)


def _numeric_arrays(x: Any, y: Any) -> tuple[pa.Array, pa.Array]:
    x, y = _as_array(x), _as_array(y)
    if len(x) != len(y):
        raise LengthMismatchError(f"Samples have different lengths: {len(x)} and {len(y)}")
    for values in (x, y):
        if not is_numeric_type(values.type):
            raise UnsupportedTypeError(f"Correlation requires numeric data, got {values.type}")
    return x, y


def correlation(x: Any, y: Any, method: str = "pearson") -> float:
    """Correlation coefficient of two equally long samples.

    Positions where either sample has a missing value are ignored.
    ``NaN`` is returned when one of the samples has no variance.

    :param method: ``"pearson"`` or ``"spearman"``, the latter is the
                   pearson correlation of the ranks of the values.

    >>> correlation([1, 2, 3, 4], [1, 4, 9, 16], method="spearman")
    1.0
    """
    method = _check_method(method)
    x, y = _numeric_arrays(x, y)
    return _correlate(*_complete_pairs(x, y), method)


def covariance(x: Any, y: Any) -> float:
    """Sample covariance (n - 1 denominator) of two equally long samples.

    >>> covariance([1, 2, 3], [2, 4, 6])
    2.0
    """
    x, y = _numeric_arrays(x, y)
    return _covariance(*_complete_pairs(x, y))


def _numeric_columns(table: LabeledTable) -> list[str]:
    names = [name for name, column in table.items() if column.is_numeric]
    if not names:
        raise UnsupportedTypeError("No numeric columns found")
    logger.debug("Numeric columns used for the matrix: %s", names)
    return names


def _pairwise_matrix(table: LabeledTable, func: Callable[[list[float], list[float]], float]) -> LabeledTable:
    names = _numeric_columns(table)
    arrays = {name: table[name].values for name in names}
    matrix: dict[str, list[float]] = {name: [math.nan] * len(names) for name in names}
    for i, first in enumerate(names):
        for j in range(i, len(names)):
            second = names[j]
            value = func(*_complete_pairs(arrays[first], arrays[second]))
            matrix[first][j] = value
            matrix[second][i] = value
    return LabeledTable(
        {name: pa.array(values, type=pa.float64()) for name, values in matrix.items()},
        index=names,
    )


def corr(table: LabeledTable, method: str = "pearson") -> LabeledTable:
    """Correlation matrix of the numeric columns of a table.

    The result has one row and one column for each numeric column,
    other columns are ignored. Each pair of columns is correlated using
    only the rows where both have a value.
    """
    method = _check_method(method)
    return _pairwise_matrix(table, lambda xs, ys: _correlate(xs, ys, method))


def cov(table: LabeledTable) -> LabeledTable:
    """Covariance matrix of the numeric columns of a table."""
    return _pairwise_matrix(table, _covariance)


def _operand(value: Any, length: int) -> pa.Array:
    if isinstance(value, LabeledVector):
        return value.values
    if isinstance(value, (pa.Array, pa.ChunkedArray)):
        return to_arrow_array(value)
    _check_scalar(value)
    return pa.repeat(pa.scalar(value), length)


def _check_scalar(value: Any) -> None:
    if isinstance(value, bool) or not isinstance(value, numbers.Number):
        raise UnsupportedTypeError(f"Unsupported operand of type {type(value).__name__}")


def elementwise(operation: str, left: Any, right: Any, length: int) -> pa.Array:
    """Apply an arithmetic operation between two arrays or an array and a number.

    When either side is not numeric the result is a column of nulls.
    Division and power always produce floating point values and
    a division by zero produces ``NaN``.

    >>> import pyarrow as pa
    >>> elementwise("divide", pa.array([1, 2]), pa.array([2, 0]), 2).to_pylist()
    [0.5, nan]
    """
    try:
        func = ARITHMETIC_FUNCTIONS[operation]
    except KeyError:
        raise ValueError(f"Unknown arithmetic operation: {operation}") from None

    left, right = _operand(left, length), _operand(right, length)
    if not (is_numeric_type(left.type) and is_numeric_type(right.type)):
        return pa.nulls(length, type=pa.float64())

    if operation in ("divide", "power"):
        left = pc.cast(left, pa.float64())
        right = pc.cast(right, pa.float64())
    result = func(left, right)
    if operation == "divide":
        by_zero = pc.and_(pc.equal(right, 0.0), pc.is_valid(left))
        result = pc.if_else(by_zero, pa.scalar(math.nan), result)
    return result


def _arithmetic(operation: str, table: LabeledTable, other: Any) -> LabeledTable:
    length = len(table)
    if isinstance(other, LabeledTable):
        if len(other) != length:
            raise LengthMismatchError(f"Tables have different lengths: {length} and {len(other)}")
        data = {
            name: elementwise(operation, table[name].values, other[name].values, length)
            for name in table.columns
            if name in other
        }
    else:
        _check_scalar(other)
        data = {
            name: elementwise(operation, table[name].values, other, length)
            for name in table.columns
        }
    return LabeledTable(data, index=table.index)


def add(table: LabeledTable, other: LabeledTable | float) -> LabeledTable:
    """Sum a table with another table or a number.

    Between two tables, only the columns they have in common
    are computed, in the order they have in ``table``, and
    values are paired by position. A number is added to all columns.
    Columns that are not numeric produce ``null`` values.

    >>> from statground import LabeledTable
    >>> add(LabeledTable({"a": [1, 2], "s": ["x", "y"]}), 10).to_dict()
    {'a': [11, 12], 's': [None, None]}
    """
    return _arithmetic("add", table, other)


def subtract(table: LabeledTable, other: LabeledTable | float) -> LabeledTable:
    """Subtract another table or a number, see :func:`add`."""
    return _arithmetic("subtract", table, other)


def multiply(table: LabeledTable, other: LabeledTable | float) -> LabeledTable:
    """Multiply by another table or a number, see :func:`add`."""
    return _arithmetic("multiply", table, other)


def divide(table: LabeledTable, other: LabeledTable | float) -> LabeledTable:
    """Divide by another table or a number, see :func:`add`.

    Results are always floating point and a division by zero gives ``NaN``.
    """
    return _arithmetic("divide", table, other)


def power(table: LabeledTable, other: LabeledTable | float) -> LabeledTable:
    """Raise to the power of another table or a number, see :func:`add`."""
    return _arithmetic("power", table, other)


def _windows(values: list[Any], window: int) -> list[list[float] | None]:
    """The trailing windows of values, ``None`` when a window is not complete or has missing values."""
    windows: list[list[float] | None] = []
    for i in range(len(values)):
        if i < window - 1:
            windows.append(None)
            continue
        current = values[i - window + 1 : i + 1]
        if any(v is None or math.isnan(v) for v in current):
            windows.append(None)
        else:
            windows.append(current)
    return windows


def _rolling(
    table: LabeledTable,
    window: int,
    columns: str | Iterable[str] | None,
    operation: str,
    func: Callable[[list[float]], float],
) -> LabeledTable:
    if window < 1:
        raise ValueError("Window must be at least 1")
    data = {}
    for name in _numeric_scope(table, columns, operation):
        values = pc.cast(table[name].values, pa.float64()).to_pylist()
        data[name] = pa.array(
            [math.nan if w is None else func(w) for w in _windows(values, window)],
            type=pa.float64(),
        )
    return LabeledTable(data, index=table.index)


def rolling_mean(table: LabeledTable, window: int, columns: str | Iterable[str] | None = None) -> LabeledTable:
    """Mean of the trailing ``window`` values of each row.

    The first ``window - 1`` rows don't have enough values and are ``NaN``,
    as are the rows whose window holds a missing value.
    """
    return _rolling(table, window, columns, "rolling_mean", lambda w: math.fsum(w) / len(w))


def rolling_sum(table: LabeledTable, window: int, columns: str | Iterable[str] | None = None) -> LabeledTable:
    """Sum of the trailing ``window`` values of each row, see :func:`rolling_mean`."""
    return _rolling(table, window, columns, "rolling_sum", math.fsum)


def rolling_std(
    table: LabeledTable, window: int, columns: str | Iterable[str] | None = None, ddof: int = 0
) -> LabeledTable:
    """Standard deviation of the trailing ``window`` values of each row, see :func:`rolling_mean`.

    By default the population (n) denominator is used,
    pass ``ddof=1`` for the sample one.
    """

    def std(values: list[float]) -> float:
        if len(values) - ddof <= 0:
            return math.nan
        mean = math.fsum(values) / len(values)
        return math.sqrt(math.fsum((v - mean) ** 2 for v in values) / (len(values) - ddof))

    return _rolling(table, window, columns, "rolling_std", std)


def cum_sum(table: LabeledTable, columns: str | Iterable[str] | None = None) -> LabeledTable:
    """Running total of each column, starting from the first row.

    Missing values stay missing, but don't interrupt the running total.

    >>> from statground import LabeledTable
    >>> cum_sum(LabeledTable({"a": [1, None, 2]})).to_dict()
    {'a': [1, None, 3]}
    """
    data = {
        name: pc.cumulative_sum(table[name].values, skip_nulls=True)
        for name in _numeric_scope(table, columns, "cum_sum")
    }
    return LabeledTable(data, index=table.index)


def cum_prod(table: LabeledTable, columns: str | Iterable[str] | None = None) -> LabeledTable:
    """Running product of each column, see :func:`cum_sum`."""
    data = {
        name: pc.cumulative_prod(table[name].values, skip_nulls=True)
        for name in _numeric_scope(table, columns, "cum_prod")
    }
    return LabeledTable(data, index=table.index)


def _shifted(values: pa.Array, periods: int) -> pa.Array:
    """The values moved ``periods`` rows later, the first rows become null."""
    periods = min(periods, len(values))
    return pa.concat_arrays(
        [pa.nulls(periods, type=values.type), values.slice(0, len(values) - periods)]
    )


def _compare_previous(
    table: LabeledTable,
    periods: int,
    columns: str | Iterable[str] | None,
    operation: str,
    func: Callable[[pa.Array, pa.Array], pa.Array],
) -> LabeledTable:
    if periods < 1:
        raise ValueError("Periods must be at least 1")
    data = {}
    for name in _numeric_scope(table, columns, operation):
        current = pc.cast(table[name].values, pa.float64())
        previous = _shifted(current, periods)
        data[name] = pc.fill_null(func(current, previous), math.nan)
    return LabeledTable(data, index=table.index)


def pct_change(table: LabeledTable, periods: int = 1, columns: str | Iterable[str] | None = None) -> LabeledTable:
    """Relative change of each value from the value ``periods`` rows before.

    The first ``periods`` rows are ``NaN``, as are the rows
    where the previous value is zero or missing.

    >>> from statground import LabeledTable
    >>> pct_change(LabeledTable({"a": [10, 15, 0, 5]})).to_dict()
    {'a': [nan, 0.5, -1.0, nan]}
    """

    def change(current: pa.Array, previous: pa.Array) -> pa.Array:
        result = pc.divide(pc.subtract(current, previous), previous)
        return pc.if_else(pc.equal(previous, 0.0), pa.scalar(math.nan), result)

    return _compare_previous(table, periods, columns, "pct_change", change)


def diff(table: LabeledTable, periods: int = 1, columns: str | Iterable[str] | None = None) -> LabeledTable:
    """Difference of each value from the value ``periods`` rows before, see :func:`pct_change`."""
    return _compare_previous(table, periods, columns, "diff", pc.subtract)


def clip(
    table: LabeledTable,
    lower: float | None = None,
    upper: float | None = None,
    columns: str | Iterable[str] | None = None,
) -> LabeledTable:
    """Bound the values of numeric columns between ``lower`` and ``upper``.

    Columns that are not numeric are provided unchanged.

    >>> from statground import LabeledTable
    >>> clip(LabeledTable({"a": [1, 5, 10]}), lower=2, upper=8).to_dict()
    {'a': [2, 5, 8]}
    """
    if lower is not None and upper is not None and lower > upper:
        raise ValueError("Lower bound must not be greater than upper bound")
    data = {}
    for name in _scope(table, columns):
        values = table[name].values
        if is_numeric_type(values.type):
            if lower is not None:
                values = pc.max_element_wise(values, pa.scalar(lower), skip_nulls=False)
            if upper is not None:
                values = pc.min_element_wise(values, pa.scalar(upper), skip_nulls=False)
        data[name] = values
    return LabeledTable(data, index=table.index)


def round(table: LabeledTable, decimals: int = 0, columns: str | Iterable[str] | None = None) -> LabeledTable:
    """Round the values of numeric columns to ``decimals`` digits.

    Halves are rounded away from zero. A negative number of
    decimals rounds to tens, hundreds and so on.
    Integer columns are left unchanged unless ``decimals`` is negative.
    Columns that are not numeric are provided unchanged.

    >>> from statground import LabeledTable
    >>> round(LabeledTable({"a": [1.25, -2.5]}), 1).to_dict()
    {'a': [1.3, -2.5]}
    """
    data = {}
    for name in _scope(table, columns):
        values = table[name].values
        if pa.types.is_integer(values.type):
            if decimals < 0:
                values = pc.round(
                    pc.cast(values, pa.float64()), ndigits=decimals, round_mode="half_towards_infinity"
                )
        elif is_numeric_type(values.type):
            values = pc.round(values, ndigits=decimals, round_mode="half_towards_infinity")
        data[name] = values
    return LabeledTable(data, index=table.index)


def apply_math(
    table: LabeledTable,
    function: str,
    base: float | None = None,
    columns: str | Iterable[str] | None = None,
) -> LabeledTable:
    """Apply a math function to every value of the table.

    :param function: One of ``abs``, ``sqrt``, ``exp``, ``log``, ``sin``, ``cos``, ``tan``.
    :param base: The base of the logarithm, by default the natural one.

    Columns that are not numeric produce ``null`` values,
    values outside of the domain of the function produce ``NaN``.

    >>> from statground import LabeledTable
    >>> apply_math(LabeledTable({"a": [4, 9]}), "sqrt").to_dict()
    {'a': [2.0, 3.0]}
    """
    try:
        func = MATH_FUNCTIONS[function]
    except KeyError:
        raise UnsupportedAggregationMethodError(f"Unsupported math function: {function}") from None

    data = {}
    for name in _scope(table, columns):
        values = table[name].values
        if not is_numeric_type(values.type):
            data[name] = pa.nulls(len(values), type=pa.float64())
            continue
        if function != "abs":
            values = pc.cast(values, pa.float64())
        result = func(values)
        if function == "log" and base is not None:
            result = pc.divide(result, math.log(base))
        data[name] = result
    return LabeledTable(data, index=table.index)
