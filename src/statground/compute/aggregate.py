"""Query plan nodes that compute aggregations.

Frequently when analysing data is necessary
to compute statistics like the min, max, average, etc...
of the data stored in tables.

The aggregate node is in charge of computing
those aggregations and projecting them as new
columns in a query pipeline.

Typically the aggregate node will group the data
by a set of columns and then compute the aggregations

For example, given the following data::

    city, shop, n_employees
    New York, Shop A, 10
    New York, Shop B, 15
    Los Angeles, Shop C, 8
    Los Angeles, Shop D, 12
    New York, Shop E, 20

We could group by city and compute the sum of the employees
to get::

    city, total_employees
    New York, 45
    Los Angeles, 20

Groups are always emitted in the order in which
their key was first seen in the data.
"""

import abc
import math
from typing import Any, Hashable

import pyarrow as pa
import pyarrow.compute as pc

from ..errors import ColumnNotFoundError
from .base import QueryPlanNode

__all__ = (
    "AggregateNode",
    "group_rows",
    "Aggregation",
    "SumAggregation",
    "MinAggregation",
    "MaxAggregation",
    "CountAggregation",
    "MeanAggregation",
    "StdAggregation",
)


def _group_key(value: Any) -> Any:
    if isinstance(value, float) and math.isnan(value):
        return math.nan
    return value


def group_rows(batch: pa.RecordBatch, keys: list[str]) -> dict[Hashable, list[int]]:
    """Find the positions of the rows sharing the same key values.

    When a single key column is provided the group key is
    the value itself, otherwise it's the tuple of the values
    of every key column. Tuples compare by value, so a
    value containing any kind of separator can't be mistaken
    for a different combination of values.

    All the NaN values of a column fall in the same group,
    whose key is :data:`math.nan`.

    >>> import pyarrow as pa
    >>> batch = pa.record_batch({"k": ["A", "B", "A"], "j": [1, 1, 2]})
    >>> group_rows(batch, ["k"])
    {'A': [0, 2], 'B': [1]}
    >>> group_rows(batch, ["k", "j"])
    {('A', 1): [0], ('B', 1): [1], ('A', 2): [2]}
    """
    missing = [key for key in keys if key not in batch.schema.names]
    if missing:
        raise ColumnNotFoundError(f"Group columns not found: {missing}")
    if not keys:
        raise ValueError("At least one group column is required")

    columns = [[_group_key(value) for value in batch.column(key).to_pylist()] for key in keys]
    if len(columns) == 1:
        row_keys = columns[0]
    else:
        row_keys = zip(*columns)

    groups: dict[Hashable, list[int]] = {}
    for position, key in enumerate(row_keys):
        groups.setdefault(key, []).append(position)
    return groups


class AggregateNode(QueryPlanNode):
    """Group data and compute aggregations.

    The emitted batch contains one column for each
    group key, followed by one column for each aggregation.

    >>> import pyarrow as pa
    >>> import pyarrow.compute as pc
    >>> from statground.compute import SumAggregation, PyArrowTableDataSource
    >>> data = pa.record_batch({
    ...    'city': pa.array(['New York', 'New York', 'Los Angeles', 'Los Angeles', 'New York']),
    ...    'shop': pa.array(['Shop A', 'Shop B', 'Shop C', 'Shop D', 'Shop E']),
    ...    'n_employees': pa.array([10, 15, 8, 12, 20])
    ... })
    >>> aggregate = AggregateNode(["city"], {"total_employees": SumAggregation("n_employees")}, PyArrowTableDataSource(data))
    >>> next(aggregate.batches())
    pyarrow.RecordBatch
    city: string
    total_employees: int64
    ----
    city: ["New York","Los Angeles"]
    total_employees: [45,20]
    """

    def __init__(
        self,
        keys: list[str],
        aggregations: dict[str, "Aggregation"],
        child: QueryPlanNode,
    ) -> None:
        """
        :param keys: The columns to group by.
        :param aggregations: The aggregations to compute in the form of {"new_col_name": Aggregation}.
        :param child: The child node that will provide the data to aggregate.
        """
        if not keys:
            raise ValueError("At least one group column is required")
        clashing = set(keys) & set(aggregations)
        if clashing:
            raise ValueError(f"Aggregation names clash with group columns: {sorted(clashing)}")
        self.keys = keys
        self.aggregations = aggregations
        self.child = child

    def __str__(self) -> str:
        return f"AggregateNode(keys={self.keys}, aggregations={self.aggregations}, {self.child})"

    def batches(self) -> QueryPlanNode.RecordBatchesGenerator:
        """Compute the aggregations for every group of rows.

        Aggregation results are computed separately for each batch.
        This makes so that we need to keep in memory only one batch
        at the time and the partial aggregation results,
        which are far smaller::

            chunks_data = {key_value: {aggr_name: [chunk_result1, chunk_result2, ...]}}

        Once all batches were consumed, the partial results of each
        group are reduced to the final aggregation result.
        """
        chunks_data: dict[Hashable, dict[str, list[Any]]] = {}
        key_types: list[pa.DataType] | None = None
        for batch in self.child.batches():
            if key_types is None:
                key_types = [batch.schema.field(k).type for k in self.keys if k in batch.schema.names]
            for aggregation in self.aggregations.values():
                aggregation.validate(batch.schema)

            for keyvalue, positions in group_rows(batch, self.keys).items():
                group_batch = batch.take(pa.array(positions, type=pa.int64()))
                group_chunks = chunks_data.setdefault(keyvalue, {})
                for name, aggregation in self.aggregations.items():
                    group_chunks.setdefault(name, []).append(
                        aggregation.compute_chunk(group_batch)
                    )

        yield self.reduce_aggregations(chunks_data, key_types)

    def reduce_aggregations(
        self,
        chunks_data: dict[Hashable, dict[str, list[Any]]],
        key_types: list[pa.DataType] | None = None,
    ) -> pa.RecordBatch:
        """Reduce the partial aggregation results to the final aggregation results.

        For example if we had 3 chunks and the chunks_data is::

            {"New York": {"total_employees": [10, 20, 30]}}

        The result will be::

            {"New York": {"total_employees": 60}}
        """
        # Prepare one column for each key and aggregation
        result_batch_data: dict[str, list[Any]] = {
            **{k: [] for k in self.keys},
            **{k: [] for k in self.aggregations.keys()},
        }
        for keyvalue, aggregated_values in chunks_data.items():
            if len(self.keys) > 1:
                for i, key in enumerate(self.keys):
                    result_batch_data[key].append(keyvalue[i])
            else:
                result_batch_data[self.keys[0]].append(keyvalue)
            for aggrname, aggregation in self.aggregations.items():
                result_batch_data[aggrname].append(
                    aggregation.reduce(aggregated_values[aggrname])
                )

        arrays = []
        for i, key in enumerate(self.keys):
            key_type = key_types[i] if key_types else None
            arrays.append(pa.array(result_batch_data[key], type=key_type))
        for aggrname in self.aggregations:
            arrays.append(pa.array(result_batch_data[aggrname]))
        return pa.RecordBatch.from_arrays(arrays, names=list(result_batch_data.keys()))


class Aggregation(abc.ABC):
    """Base class for aggregations.

    Every aggregation is expected to implement
    a method to compute any needed intermediate results
    on a single chunk of data and then provide a reduce method
    to combine the intermediate results into a final result.

    Intermediate and final results are plain python values,
    ``None`` stands for a missing result.
    """

    def __init__(self, column: str) -> None:
        """
        :param column: The name of the column to aggregate.
        """
        self.column = column

    def __str__(self) -> str:
        return f"{self.__class__.__name__}({self.column})"

    __repr__ = __str__

    def validate(self, schema: pa.Schema) -> None:
        """Ensure that the aggregated column exists in the data."""
        if self.column not in schema.names:
            raise ColumnNotFoundError(f"Aggregated column {self.column!r} not found")

    @abc.abstractmethod
    def compute_chunk(self, batch: pa.RecordBatch) -> Any: ...

    @abc.abstractmethod
    def reduce(self, chunks: list[Any]) -> Any: ...


class SimpleAggregation(Aggregation):
    """Provide a base implementation for simple aggregations like min,max,sum.

    Simple aggregations are those where the function applied to compute
    intermediate results for a single chunk of data is the same as the function
    applied to combine the intermediate results into the final.

    For example ``sum([1, 2, 3])`` is the same as ``sum([sum([1, 2]), 3])``.
    """

    @abc.abstractmethod
    def _aggregate(self, data: pa.Array) -> pa.Scalar: ...

    def compute_chunk(self, batch: pa.RecordBatch) -> Any:
        return self._aggregate(batch.column(self.column)).as_py()

    def reduce(self, chunks: list[Any]) -> Any:
        chunks = [chunk for chunk in chunks if chunk is not None]
        if not chunks:
            return None
        return self._aggregate(pa.array(chunks)).as_py()


class SumAggregation(SimpleAggregation):
    """Compute the sum of an aggregated column."""

    def _aggregate(self, data: pa.Array) -> pa.Scalar:
        return pc.sum(data)


class MinAggregation(SimpleAggregation):
    """Compute the min of an aggregated column."""

    def _aggregate(self, data: pa.Array) -> pa.Scalar:
        return pc.min(data)


class MaxAggregation(SimpleAggregation):
    """Compute the max of an aggregated column."""

    def _aggregate(self, data: pa.Array) -> pa.Scalar:
        return pc.max(data)


class CountAggregation(Aggregation):
    """Compute the count of the non null values of an aggregated column.

    This is based on computing the counts for each intermediate batch
    and then sum them to compute the final result.
    """

    def compute_chunk(self, batch: pa.RecordBatch) -> int:
        """Compute the count of the column in a single batch."""
        return pc.count(batch.column(self.column)).as_py()

    def reduce(self, chunks: list[int]) -> int:
        """Sum the counts of all intermediate results to the final count."""
        return sum(chunks)


class MeanAggregation(Aggregation):
    """Compute the mean of an aggregated column.

    This is based by computing count and sum of the column
    for each intermediate batch and then dividing
    the sum of all intermediate results by the count
    of all intermediate results.
    """

    def compute_chunk(self, batch: pa.RecordBatch) -> tuple[int, float]:
        """Compute the count and sum of the column in a single batch."""
        col = batch.column(self.column)
        return (pc.count(col).as_py(), pc.sum(col).as_py() or 0)

    def reduce(self, chunks: list[tuple[int, float]]) -> float | None:
        """Compute the mean of the column from the intermediate sums and counts."""
        count = sum(chunk[0] for chunk in chunks)
        total = sum(chunk[1] for chunk in chunks)
        if count == 0:
            return None
        return total / count


class StdAggregation(Aggregation):
    """Compute the sample standard deviation of an aggregated column.

    Each intermediate batch provides the count, sum and
    sum of squares of its values, which are enough to
    compute the variance of all values together.
    Groups with less than two values have a ``NaN`` deviation.
    """

    def compute_chunk(self, batch: pa.RecordBatch) -> tuple[int, float, float]:
        col = pc.cast(batch.column(self.column), pa.float64())
        return (
            pc.count(col).as_py(),
            pc.sum(col).as_py() or 0.0,
            pc.sum(pc.multiply(col, col)).as_py() or 0.0,
        )

    def reduce(self, chunks: list[tuple[int, float, float]]) -> float:
        count = sum(chunk[0] for chunk in chunks)
        if count < 2:
            return math.nan
        total = sum(chunk[1] for chunk in chunks)
        squares = sum(chunk[2] for chunk in chunks)
        variance = (squares - total * total / count) / (count - 1)
        return math.sqrt(max(variance, 0.0))
