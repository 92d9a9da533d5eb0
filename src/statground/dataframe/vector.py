"""One dimensional labeled data.

A :class:`LabeledVector` is an ordered sequence of values
that all share the same element kind, paired with an ordered
sequence of string labels of the same length.

The values are stored in a :class:`pyarrow.Array`, so the
element kind is the Arrow data type of the array,
and every computation on the values is delegated
to :mod:`pyarrow.compute` whenever possible.

>>> from statground import LabeledVector
>>> v = LabeledVector([1, 2, 3, 4, 5], index=["a", "b", "c", "d", "e"])
>>> v.sum(), v.mean()
(15, 3.0)
>>> round(v.std(), 4)
1.5811
>>> v.loc("c")
3
>>> v.where(lambda x: x % 2 == 1).to_dict()
{'a': 1, 'c': 3, 'e': 5}

Vectors never change once created, every transformation
returns a new vector.
"""

import functools
import math
from typing import Any, Callable, Iterable, Iterator, Mapping, Self

import pyarrow as pa
import pyarrow.compute as pc

from ..compute.sorting import sort_array_indices
from ..errors import (
    EmptyCollectionError,
    IndexOutOfRangeError,
    LabelNotFoundError,
    LengthMismatchError,
    UnsupportedTypeError,
)

ARROW_CONVERSION_ERRORS = (pa.ArrowInvalid, pa.ArrowTypeError, pa.ArrowNotImplementedError)
"""Errors raised by pyarrow when data can't be represented with one element kind."""


def is_numeric_type(dtype: pa.DataType) -> bool:
    """Tell if an Arrow data type holds numbers.

    Integers, floating point and decimals are numeric,
    booleans are not.

    >>> import pyarrow as pa
    >>> is_numeric_type(pa.int8()), is_numeric_type(pa.bool_()), is_numeric_type(pa.string())
    (True, False, False)
    """
    return (
        pa.types.is_integer(dtype)
        or pa.types.is_floating(dtype)
        or pa.types.is_decimal(dtype)
    )


def to_arrow_array(values: Any, dtype: pa.DataType | str | None = None) -> pa.Array:
    """Convert a sequence of python values to an Arrow array.

    Arrays and chunked arrays are accepted too, and are
    cast to ``dtype`` when one is provided.
    Values that can't share a single element kind
    raise :class:`UnsupportedTypeError`.
    """
    if isinstance(dtype, str):
        dtype = pa.type_for_alias(dtype)
    try:
        if isinstance(values, LabeledVector):
            values = values.values
        if isinstance(values, pa.ChunkedArray):
            values = values.combine_chunks()
        if isinstance(values, pa.Array):
            if dtype is not None and values.type != dtype:
                values = values.cast(dtype)
            return values
        return pa.array(list(values), type=dtype)
    except ARROW_CONVERSION_ERRORS as e:
        raise UnsupportedTypeError(f"Values can't be stored as a single element kind: {e}") from e


def missing_mask(values: pa.Array) -> pa.Array:
    """Mark the values that are missing: nulls and floating point NaN.

    >>> import pyarrow as pa
    >>> missing_mask(pa.array([1.0, None, float("nan")])).to_pylist()
    [False, True, True]
    """
    return pc.is_null(values, nan_is_null=True)


def fill_missing(values: pa.Array, value: Any) -> pa.Array:
    """Replace the missing values of an array with ``value``.

    The fill value must be representable with the element
    kind of the array, otherwise :class:`UnsupportedTypeError` is raised.
    An array made only of nulls takes the element kind of the fill value.
    """
    if pa.types.is_null(values.type):
        return to_arrow_array([value] * len(values))
    try:
        fill = pa.scalar(value, type=values.type)
    except ARROW_CONVERSION_ERRORS as e:
        raise UnsupportedTypeError(f"Can't fill {values.type} values with {value!r}") from e
    return pc.if_else(missing_mask(values), fill, values)


class LabeledVector:
    """Ordered values of one element kind with a label for each value.

    Labels default to the positions of the values (``"0"``, ``"1"``, ...)
    and are always stored as strings. They are not required to be
    unique, label based lookups return the first match.

    >>> v = LabeledVector(["x", "y", None], name="letters")
    >>> v.index
    ['0', '1', '2']
    >>> v.null_count()
    1
    >>> v.fillna("z").to_pylist()
    ['x', 'y', 'z']
    """

    def __init__(
        self,
        values: Iterable[Any] | pa.Array = (),
        index: Iterable[Any] | None = None,
        dtype: pa.DataType | str | None = None,
        name: str | None = None,
    ) -> None:
        """
        :param values: The values, any iterable or a :class:`pyarrow.Array`.
        :param index: The labels of the values, defaults to their position.
        :param dtype: Force an element kind for the values.
        :param name: An optional name for the vector.
        """
        if isinstance(values, LabeledVector):
            if index is None:
                index = values._index
            if name is None:
                name = values.name
        array = to_arrow_array(values, dtype)

        if index is None:
            labels = tuple(str(i) for i in range(len(array)))
        else:
            labels = tuple(str(label) for label in index)
            if len(labels) != len(array):
                raise LengthMismatchError(
                    f"Index has {len(labels)} labels but there are {len(array)} values"
                )

        self._values = array
        self._index = labels
        self.name = name

    @classmethod
    def _from_parts(cls, values: pa.Array, index: tuple[str, ...], name: str | None = None) -> Self:
        # Values and labels are already known to be aligned.
        vector = cls.__new__(cls)
        vector._values = values
        vector._index = index
        vector.name = name
        return vector

    @classmethod
    def from_dict(
        cls, mapping: Mapping[Any, Any], dtype: pa.DataType | str | None = None, name: str | None = None
    ) -> Self:
        """Build a vector using the keys of a mapping as the labels.

        >>> LabeledVector.from_dict({"a": 1, "b": 2}).loc("b")
        2
        """
        return cls(list(mapping.values()), index=list(mapping.keys()), dtype=dtype, name=name)

    @classmethod
    def concat(cls, vectors: Iterable["LabeledVector"], ignore_index: bool = False) -> Self:
        """Join multiple vectors one after the other.

        When the vectors hold different element kinds they are
        converted to a common one, if any exists.

        :param vectors: The vectors to concatenate.
        :param ignore_index: Relabel the result ``"0".."n-1"``
                             instead of keeping the original labels.

        >>> LabeledVector.concat([LabeledVector([1, 2]), LabeledVector([2.5])], ignore_index=True).to_dict()
        {'0': 1.0, '1': 2.0, '2': 2.5}
        """
        vectors = list(vectors)
        if not vectors:
            return cls()

        types = {v.dtype for v in vectors}
        if len(types) == 1:
            values = pa.concat_arrays([v.values for v in vectors])
        else:
            values = to_arrow_array([value for v in vectors for value in v.to_pylist()])

        if ignore_index:
            labels = tuple(str(i) for i in range(len(values)))
        else:
            labels = tuple(label for v in vectors for label in v._index)
        return cls._from_parts(values, labels, vectors[0].name)

    @property
    def values(self) -> pa.Array:
        """The values as a :class:`pyarrow.Array`."""
        return self._values

    @property
    def index(self) -> list[str]:
        """The labels of the values."""
        return list(self._index)

    @property
    def dtype(self) -> pa.DataType:
        """The element kind of the values."""
        return self._values.type

    @property
    def is_numeric(self) -> bool:
        return is_numeric_type(self.dtype)

    def __len__(self) -> int:
        return len(self._values)

    def __iter__(self) -> Iterator[Any]:
        return iter(self._values.to_pylist())

    def __getitem__(self, position: int) -> Any:
        return self.iloc(position)

    def __repr__(self) -> str:
        name = f", name={self.name!r}" if self.name is not None else ""
        return f"LabeledVector({self.to_pylist()!r}, index={self.index!r}, dtype={self.dtype}{name})"

    def to_pylist(self) -> list[Any]:
        return self._values.to_pylist()

    def to_dict(self) -> dict[str, Any]:
        """Map each label to its value.

        For duplicated labels, the first value wins.
        """
        result: dict[str, Any] = {}
        for label, value in zip(self._index, self._values.to_pylist()):
            result.setdefault(label, value)
        return result

    def iloc(self, position: int) -> Any:
        """Get the value at a position.

        Negative positions count from the end, like for python lists.
        """
        size = len(self._values)
        if not -size <= position < size:
            raise IndexOutOfRangeError(f"Position {position} out of range for length {size}")
        return self._values[position].as_py()

    def loc(self, label: Any) -> Any:
        """Get the value of the first element with the given label."""
        label = str(label)
        for position, current in enumerate(self._index):
            if current == label:
                return self._values[position].as_py()
        raise LabelNotFoundError(f"Label {label!r} not found")

    def head(self, n: int = 5) -> Self:
        """The first ``n`` values."""
        if n < 0:
            raise ValueError("n must not be negative")
        return self._from_parts(self._values.slice(0, n), self._index[:n], self.name)

    def tail(self, n: int = 5) -> Self:
        """The last ``n`` values."""
        if n < 0:
            raise ValueError("n must not be negative")
        start = max(len(self) - n, 0)
        return self._from_parts(self._values.slice(start), self._index[start:], self.name)

    def _take(self, positions: list[int]) -> Self:
        return self._from_parts(
            self._values.take(pa.array(positions, type=pa.int64())),
            tuple(self._index[p] for p in positions),
            self.name,
        )

    def _filter(self, mask: pa.Array) -> Self:
        positions = [i for i, keep in enumerate(mask.to_pylist()) if keep]
        return self._take(positions)

    def _require_numeric(self, operation: str) -> None:
        if not self.is_numeric:
            raise UnsupportedTypeError(f"{operation} requires numeric data, got {self.dtype}")

    def _require_not_empty(self, operation: str) -> None:
        if len(self) == 0:
            raise EmptyCollectionError(f"{operation} of an empty vector")

    def sum(self) -> Any:
        """Sum of the values, ``0`` for an empty vector."""
        self._require_numeric("sum")
        return pc.sum(self._values, min_count=0).as_py()

    def mean(self) -> float:
        """Arithmetic mean of the values, ``NaN`` for an empty vector."""
        self._require_numeric("mean")
        result = pc.mean(self._values).as_py()
        return math.nan if result is None else float(result)

    def var(self, ddof: int = 1) -> float:
        """Variance of the values, ``NaN`` if there are ``ddof`` or less values."""
        self._require_numeric("var")
        result = pc.variance(self._values, ddof=ddof).as_py()
        return math.nan if result is None else result

    def std(self, ddof: int = 1) -> float:
        """Standard deviation, by default the sample (n - 1) one."""
        self._require_numeric("std")
        result = pc.stddev(self._values, ddof=ddof).as_py()
        return math.nan if result is None else result

    def min(self) -> Any:
        self._require_numeric("min")
        self._require_not_empty("min")
        return pc.min(self._values).as_py()

    def max(self) -> Any:
        self._require_numeric("max")
        self._require_not_empty("max")
        return pc.max(self._values).as_py()

    def median(self) -> float:
        return self.quantile(0.5)

    def quantile(self, q: float) -> float:
        """Value below which a ``q`` fraction of the values falls.

        Linear interpolation between the closest order statistics
        is used when the quantile falls between two values.
        """
        self._require_numeric("quantile")
        if not 0 <= q <= 1:
            raise ValueError("Quantile must be between 0 and 1")
        result = pc.quantile(self._values, q=q, interpolation="linear")[0].as_py()
        return math.nan if result is None else result

    def describe(self) -> dict[str, Any]:
        """Summary statistics of the values.

        >>> LabeledVector([1, 2, 3, 4, 5]).describe()["75%"]
        4.0
        """
        self._require_numeric("describe")
        self._require_not_empty("describe")
        q1, q2, q3 = (
            math.nan if q is None else q
            for q in pc.quantile(self._values, q=[0.25, 0.5, 0.75], interpolation="linear").to_pylist()
        )
        return {
            "count": pc.count(self._values).as_py(),
            "mean": self.mean(),
            "std": self.std(),
            "min": self.min(),
            "25%": q1,
            "50%": q2,
            "75%": q3,
            "max": self.max(),
        }

    def where(self, predicate: Callable[[Any], Any]) -> Self:
        """Keep only the values for which ``predicate`` is true."""
        return self._take([i for i, value in enumerate(self) if predicate(value)])

    def map(self, transform: Callable[[Any], Any], dtype: pa.DataType | str | None = None) -> Self:
        """Apply ``transform`` to each value, labels are preserved.

        >>> LabeledVector([1, 2, 3]).map(lambda x: x * 10).to_pylist()
        [10, 20, 30]
        """
        return self.__class__(
            [transform(value) for value in self], index=self._index, dtype=dtype, name=self.name
        )

    def sort(
        self,
        comparator: Callable[[Any, Any], int] | None = None,
        descending: bool = False,
    ) -> Self:
        """Sort the values, each label moves together with its value.

        Without a ``comparator`` the values are sorted in their natural
        order, with missing values first when ascending and last when descending.
        A ``comparator`` works like the ``cmp`` functions accepted by
        :func:`functools.cmp_to_key`.

        The sort is stable: equal values keep their original relative order.

        >>> LabeledVector([3, 1, 2], index=["a", "b", "c"]).sort().index
        ['b', 'c', 'a']
        """
        if comparator is None:
            positions = sort_array_indices(
                self._values,
                descending=descending,
                null_placement="at_end" if descending else "at_start",
            ).to_pylist()
        else:
            values = self.to_pylist()
            positions = sorted(
                range(len(values)),
                key=functools.cmp_to_key(lambda i, j: comparator(values[i], values[j])),
                reverse=descending,
            )
        return self._take(positions)

    def unique(self) -> Self:
        """Distinct values, each with the label of its first occurrence."""
        uniques = pc.unique(self._values)
        positions = pc.index_in(uniques, value_set=self._values, skip_nulls=False)
        return self._take(positions.to_pylist())

    def value_counts(self) -> dict[Any, int]:
        """Number of occurrences of each distinct value, in order of first occurrence.

        >>> LabeledVector(["a", "b", "a"]).value_counts()
        {'a': 2, 'b': 1}
        """
        counts = pc.value_counts(self._values)
        return dict(
            zip(counts.field("values").to_pylist(), counts.field("counts").to_pylist())
        )

    def null_count(self) -> int:
        """Number of missing values (nulls or NaN)."""
        return pc.sum(missing_mask(self._values), min_count=0).as_py()

    def dropna(self) -> Self:
        return self._filter(pc.invert(missing_mask(self._values)))

    def fillna(self, value: Any) -> Self:
        return self._from_parts(fill_missing(self._values, value), self._index, self.name)

    def corr(self, other: "LabeledVector", method: str = "pearson") -> float:
        """Correlation coefficient with another vector of the same length."""
        from ..stats import mathops

        return mathops.correlation(self, other, method=method)

    def cov(self, other: "LabeledVector") -> float:
        """Sample covariance with another vector of the same length."""
        from ..stats import mathops

        return mathops.covariance(self, other)

    def _arithmetic(self, operation: str, other: Any, reflected: bool = False) -> Self:
        from ..stats import mathops

        if isinstance(other, LabeledVector):
            if len(other) != len(self):
                raise LengthMismatchError(
                    f"Can't combine vectors of length {len(self)} and {len(other)}"
                )
            other = other.values
        left, right = (other, self._values) if reflected else (self._values, other)
        result = mathops.elementwise(operation, left, right, len(self))
        return self._from_parts(result, self._index, self.name)

    def __add__(self, other: Any) -> Self:
        return self._arithmetic("add", other)

    def __radd__(self, other: Any) -> Self:
        return self._arithmetic("add", other, reflected=True)

    def __sub__(self, other: Any) -> Self:
        return self._arithmetic("subtract", other)

    def __rsub__(self, other: Any) -> Self:
        return self._arithmetic("subtract", other, reflected=True)

    def __mul__(self, other: Any) -> Self:
        return self._arithmetic("multiply", other)

    def __rmul__(self, other: Any) -> Self:
        return self._arithmetic("multiply", other, reflected=True)

    def __truediv__(self, other: Any) -> Self:
        return self._arithmetic("divide", other)

    def __rtruediv__(self, other: Any) -> Self:
        return self._arithmetic("divide", other, reflected=True)

    def __pow__(self, other: Any) -> Self:
        return self._arithmetic("power", other)

    def __rpow__(self, other: Any) -> Self:
        return self._arithmetic("power", other, reflected=True)
