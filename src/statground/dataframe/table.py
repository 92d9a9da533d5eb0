"""Two dimensional labeled data.

A :class:`LabeledTable` is an ordered collection of named columns,
all sharing the same row labels (the index).

Each column is stored as a :class:`pyarrow.Array` and can be
retrieved as a :class:`statground.LabeledVector`.

The relational operations (filtering, sorting, selecting, paginating,
joining and aggregating) are implemented by building a query plan
of :mod:`statground.compute` nodes on top of a
:class:`statground.compute.TableDataSource` and collecting
the resulting data into a new table. The row labels travel
through the query plan in the :data:`statground.compute.INDEX_COLUMN`
column, so they always stay attached to their rows.

>>> from statground import LabeledTable
>>> people = LabeledTable({"name": ["Alice", "Bob", "Carol"], "age": [34, 17, 25]})
>>> adults = people.where(lambda row: row["age"] >= 18)
>>> adults.to_dict()
{'name': ['Alice', 'Carol'], 'age': [34, 25]}
>>> adults.index
['0', '2']
>>> people.sort_by("age").index
['1', '2', '0']

The table only changes through the column mutators
(``table[name] = values``, ``del table[name]``, :meth:`LabeledTable.add_column`
and :meth:`LabeledTable.remove_column`), every other operation returns a new table.
"""

import functools
import logging
import math
from typing import Any, Callable, Hashable, Iterable, Iterator, Mapping, Self

import pyarrow as pa
import pyarrow.compute as pc

from ..compute import (
    INDEX_COLUMN,
    AggregateNode,
    Aggregation,
    Expression,
    FilterNode,
    FunctionCallExpression,
    HashJoinNode,
    PaginateNode,
    ProjectNode,
    QueryPlanNode,
    RowPredicateExpression,
    SortNode,
    TableDataSource,
    col,
    group_rows,
)
from ..compute.base import combine_batches
from ..errors import (
    ColumnNotFoundError,
    EmptyCollectionError,
    IndexOutOfRangeError,
    LabelNotFoundError,
    LengthMismatchError,
    UnsupportedTypeError,
)
from .vector import ARROW_CONVERSION_ERRORS, LabeledVector, fill_missing, missing_mask, to_arrow_array

logger = logging.getLogger(__name__)


class LabeledTable:
    """Named columns of equal length sharing the same row labels.

    Tables can be created from a mapping of column names to values,
    from a list of row records (:meth:`from_records`)
    or from Arrow data (:meth:`from_arrow`).

    Row labels default to the position of the rows (``"0"``, ``"1"``, ...).

    >>> table = LabeledTable({"a": [1, 2], "b": ["x", "y"]}, index=["first", "second"])
    >>> table.shape
    (2, 2)
    >>> table.loc("second")
    {'a': 2, 'b': 'y'}
    """

    DESCRIBE_STATISTICS = ("count", "mean", "std", "min", "25%", "50%", "75%", "max")
    """Rows of the table returned by :meth:`describe`."""

    def __init__(
        self,
        data: Mapping[str, Any] | None = None,
        index: Iterable[Any] | None = None,
    ) -> None:
        """
        :param data: The columns in the form ``{name: values}``, values can be
                     any iterable, a :class:`pyarrow.Array` or a :class:`LabeledVector`.
        :param index: The row labels, defaults to the position of the rows.
        """
        columns: dict[str, pa.Array] = {}
        for name, values in (data or {}).items():
            name = self._check_name(name)
            columns[name] = to_arrow_array(values)

        lengths = {name: len(values) for name, values in columns.items()}
        if len(set(lengths.values())) > 1:
            raise LengthMismatchError(f"All columns must have the same length, got {lengths}")

        if index is not None:
            labels = tuple(str(label) for label in index)
            if columns and len(labels) != next(iter(lengths.values())):
                raise LengthMismatchError(
                    f"Index has {len(labels)} labels but columns have {next(iter(lengths.values()))} rows"
                )
        else:
            num_rows = next(iter(lengths.values())) if lengths else 0
            labels = tuple(str(i) for i in range(num_rows))

        self._columns = columns
        self._index = labels

    @classmethod
    def _from_parts(cls, columns: dict[str, pa.Array], index: tuple[str, ...]) -> Self:
        # Columns and labels are already known to be aligned.
        table = cls.__new__(cls)
        table._columns = columns
        table._index = index
        return table

    @classmethod
    def from_records(
        cls, records: Iterable[Mapping[str, Any]], index: Iterable[Any] | None = None
    ) -> Self:
        """Create a table from a list of row records.

        The columns are the union of the keys of all the records,
        in the order they were first seen. Keys missing from
        a record become ``null`` values.

        >>> LabeledTable.from_records([{"a": 1}, {"b": "x", "a": 2}]).to_dict()
        {'a': [1, 2], 'b': [None, 'x']}
        """
        records = list(records)
        names: dict[str, None] = {}
        for record in records:
            names.update(dict.fromkeys(record))
        data = {name: [record.get(name) for record in records] for name in names}
        if index is None and not data:
            index = [str(i) for i in range(len(records))]
        return cls(data, index=index)

    @classmethod
    def from_arrow(
        cls,
        data: pa.Table | pa.RecordBatch,
        index: Iterable[Any] | None = None,
        index_column: str | None = None,
    ) -> Self:
        """Create a table from Arrow data.

        :param data: The :class:`pyarrow.Table` or :class:`pyarrow.RecordBatch`.
        :param index: Explicit row labels.
        :param index_column: Name of a column of ``data`` holding the
                             row labels, it won't become a column of the table.
        """
        if index_column is not None:
            if index_column not in data.schema.names:
                raise ColumnNotFoundError(f"Index column {index_column!r} not found")
            index = data.column(index_column).to_pylist()
            data = data.drop_columns([index_column])
        elif index is None:
            index = range(data.num_rows)
        return cls(
            {name: data.column(name) for name in data.schema.names},
            index=index,
        )

    def to_arrow(self, index_column: str | None = None) -> pa.Table:
        """Convert the table to a :class:`pyarrow.Table`.

        :param index_column: When provided, the row labels are
                             included as the first column with this name.
        """
        names = list(self._columns)
        arrays = list(self._columns.values())
        if index_column is not None:
            names.insert(0, index_column)
            arrays.insert(0, pa.array(self._index, type=pa.string()))
        return pa.Table.from_arrays(arrays, names=names)

    def _execute(self, node: QueryPlanNode) -> Self:
        """Run a query plan and collect its result in a new table."""
        logger.debug("Executing query plan %s", node)
        batch = combine_batches(node.batches())
        index_column = INDEX_COLUMN if INDEX_COLUMN in batch.schema.names else None
        return self.from_arrow(batch, index_column=index_column)

    @staticmethod
    def _check_name(name: Any) -> str:
        name = str(name)
        if name == INDEX_COLUMN:
            raise ValueError(f"{INDEX_COLUMN!r} is reserved for the row labels")
        return name

    @property
    def columns(self) -> list[str]:
        return list(self._columns)

    @property
    def index(self) -> list[str]:
        return list(self._index)

    @property
    def shape(self) -> tuple[int, int]:
        """The number of rows and of columns."""
        return (len(self._index), len(self._columns))

    @property
    def empty(self) -> bool:
        """If the table has no rows or no columns."""
        return not self._columns or not self._index

    def __len__(self) -> int:
        return len(self._index)

    def __contains__(self, name: object) -> bool:
        return name in self._columns

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._columns))

    def __repr__(self) -> str:
        return f"LabeledTable(columns={self.columns}, rows={len(self)})"

    def items(self) -> Iterator[tuple[str, LabeledVector]]:
        """Iterate over ``(name, column)`` pairs."""
        for name in list(self._columns):
            yield name, self[name]

    def __getitem__(self, name: str) -> LabeledVector:
        try:
            values = self._columns[name]
        except KeyError:
            raise ColumnNotFoundError(f"Column {name!r} not found") from None
        return LabeledVector._from_parts(values, self._index, name)

    def __setitem__(self, name: str, values: Any) -> None:
        self.add_column(name, values)

    def __delitem__(self, name: str) -> None:
        self.remove_column(name)

    def add_column(self, name: str, values: Any) -> None:
        """Add a column, or replace the one with the same name.

        A replaced column keeps its position.
        Adding the first column to a table without rows
        gives the table default row labels.
        """
        name = self._check_name(name)
        values = to_arrow_array(values)
        if not self._columns and not self._index:
            self._index = tuple(str(i) for i in range(len(values)))
        elif len(values) != len(self._index):
            raise LengthMismatchError(
                f"Column has {len(values)} values but the table has {len(self._index)} rows"
            )
        self._columns[name] = values

    def remove_column(self, name: str) -> None:
        if name not in self._columns:
            raise ColumnNotFoundError(f"Column {name!r} not found")
        del self._columns[name]

    def _check_columns(self, names: Iterable[str]) -> list[str]:
        names = list(names)
        missing = [name for name in names if name not in self._columns]
        if missing:
            raise ColumnNotFoundError(f"Columns not found: {missing}")
        return names

    def iloc(self, position: int) -> dict[str, Any]:
        """The row at a position as a ``{column: value}`` record.

        Negative positions count from the end, like for python lists.
        """
        size = len(self._index)
        if not -size <= position < size:
            raise IndexOutOfRangeError(f"Position {position} out of range for length {size}")
        return {name: values[position].as_py() for name, values in self._columns.items()}

    def loc(self, label: Any) -> dict[str, Any]:
        """The first row with the given label as a ``{column: value}`` record."""
        label = str(label)
        for position, current in enumerate(self._index):
            if current == label:
                return self.iloc(position)
        raise LabelNotFoundError(f"Label {label!r} not found")

    def _take(self, positions: list[int]) -> Self:
        indices = pa.array(positions, type=pa.int64())
        return self._from_parts(
            {name: values.take(indices) for name, values in self._columns.items()},
            tuple(self._index[p] for p in positions),
        )

    def head(self, n: int = 5) -> Self:
        """The first ``n`` rows."""
        return self._execute(PaginateNode(0, n, TableDataSource(self)))

    def tail(self, n: int = 5) -> Self:
        """The last ``n`` rows."""
        if n < 0:
            raise ValueError("n must not be negative")
        return self._execute(PaginateNode(max(len(self) - n, 0), n, TableDataSource(self)))

    def select(self, columns: list[str]) -> Self:
        """A table with only the given columns, in the given order."""
        if isinstance(columns, str):
            columns = [columns]
        return self._execute(ProjectNode(list(columns), None, TableDataSource(self)))

    def where(self, predicate: Expression | Callable[[dict[str, Any]], Any]) -> Self:
        """Keep only the rows matching a predicate.

        The predicate can be a compute :class:`statground.compute.Expression`,
        which is evaluated on whole columns at once, or a python callable that
        receives each row as a ``{column: value}`` record.

        >>> import pyarrow.compute as pc
        >>> from statground.compute import col, lit, FunctionCallExpression
        >>> table = LabeledTable({"v": [5, 1, 7]})
        >>> table.where(FunctionCallExpression(pc.greater, col("v"), lit(3))).index
        ['0', '2']
        """
        if not isinstance(predicate, Expression):
            if not callable(predicate):
                raise TypeError("Predicate must be an Expression or a callable")
            predicate = RowPredicateExpression(predicate)
        return self._execute(FilterNode(predicate, TableDataSource(self)))

    def sort_by(self, columns: str | list[str], ascending: bool | list[bool] = True) -> Self:
        """Sort the rows by the values of one or more columns.

        Rows are compared on the first column, then on the
        following ones when the values of the previous ones are equal.
        Missing values come first in the columns sorted ascending
        and last in the columns sorted descending.

        The sort is stable: rows that are equal on all the
        columns keep their original relative order.

        :param columns: The column or columns to sort by.
        :param ascending: The direction of the sort, one for all
                          the columns or one for each column.
        """
        if isinstance(columns, str):
            columns = [columns]
        columns = self._check_columns(columns)
        if isinstance(ascending, bool):
            ascending = [ascending] * len(columns)
        descending = [not direction for direction in ascending]
        null_placement = ["at_end" if desc else "at_start" for desc in descending]
        return self._execute(
            SortNode(columns, descending, TableDataSource(self), null_placement=null_placement)
        )

    def group_by(self, columns: str | list[str]) -> dict[Hashable, Self]:
        """Split the rows in groups sharing the same values.

        Returns ``{key: table}`` where the key is the value of the column
        when grouping by a single column, or the tuple of the values when
        grouping by multiple columns. Groups are provided in the order
        their key was first seen, and each group keeps the original order of its rows.

        >>> table = LabeledTable({"category": ["A", "B", "A"], "value": [1, 2, 3]})
        >>> {key: group["value"].to_pylist() for key, group in table.group_by("category").items()}
        {'A': [1, 3], 'B': [2]}
        """
        if isinstance(columns, str):
            columns = [columns]
        columns = self._check_columns(columns)
        batch = combine_batches(TableDataSource(self).batches())
        return {key: self._take(positions) for key, positions in group_rows(batch, columns).items()}

    def join(self, other: "LabeledTable", on: str, how: str = "inner", suffix: str = "_right") -> Self:
        """Join with another table on the equality of a column.

        See :class:`statground.compute.HashJoinNode` for the rules
        that decide the order of the rows and the values of rows without a match.

        All the columns of ``other``, except ``on``, are included in the result
        with ``suffix`` appended to their name. Matched rows are labeled
        ``"<left label>_<right label>"``, rows without a match keep their label.

        >>> left = LabeledTable({"id": [1, 2], "name": ["Alice", "Bob"]})
        >>> right = LabeledTable({"id": [1, 2, 4], "score": [10, 20, 30]})
        >>> left.join(right, on="id").to_dict()
        {'id': [1, 2], 'name': ['Alice', 'Bob'], 'score_right': [10, 20]}
        """
        return self._execute(
            HashJoinNode(on, on, TableDataSource(self), TableDataSource(other), how=how, suffix=suffix)
        )

    def aggregate(self, keys: str | list[str], aggregations: dict[str, Aggregation]) -> Self:
        """Compute aggregations for each group of rows.

        The result has one row per group, in the order the groups
        were first seen, with the group columns followed by one column
        for each aggregation.

        >>> from statground.compute import SumAggregation
        >>> table = LabeledTable({"city": ["Rome", "Oslo", "Rome"], "sold": [1, 2, 3]})
        >>> table.aggregate("city", {"total": SumAggregation("sold")}).to_dict()
        {'city': ['Rome', 'Oslo'], 'total': [4, 2]}
        """
        if isinstance(keys, str):
            keys = [keys]
        return self._execute(AggregateNode(list(keys), aggregations, TableDataSource(self)))

    def agg(self, func: Callable[[LabeledVector], Any], subset: list[str] | None = None) -> dict[str, Any]:
        """Apply a function to each column and collect the results.

        Columns the function can't handle, because of their element kind
        or because they are empty, are left out of the result.

        >>> LabeledTable({"a": [1, 2], "b": ["x", "y"]}).agg(LabeledVector.sum)
        {'a': 3}
        """
        names = self._check_columns(subset) if subset is not None else self.columns
        result = {}
        for name in names:
            try:
                result[name] = func(self[name])
            except (UnsupportedTypeError, EmptyCollectionError) as e:
                logger.debug("Column %r skipped by agg: %s", name, e)
        return result

    def dropna(self, subset: list[str] | None = None) -> Self:
        """Drop the rows having a missing value (null or NaN).

        :param subset: Only look for missing values in these columns.
        """
        names = self._check_columns(subset) if subset is not None else self.columns
        if not names:
            return self._take(list(range(len(self))))
        has_missing = functools.reduce(
            lambda left, right: FunctionCallExpression(pc.or_, left, right),
            [FunctionCallExpression(pc.is_null, col(name), nan_is_null=True) for name in names],
        )
        return self._execute(
            FilterNode(FunctionCallExpression(pc.invert, has_missing), TableDataSource(self))
        )

    def fillna(self, value: Any, subset: list[str] | None = None) -> Self:
        """Replace missing values (null or NaN) with ``value``.

        When ``subset`` is provided every column in it must be able
        to hold ``value``, otherwise columns that can't hold it are left untouched.
        """
        if subset is not None:
            names = set(self._check_columns(subset))
        else:
            names = set(self._columns)

        columns = {}
        for name, values in self._columns.items():
            if name in names:
                try:
                    values = fill_missing(values, value)
                except UnsupportedTypeError:
                    if subset is not None:
                        raise
                    logger.debug("Column %r of type %s not filled", name, values.type)
            columns[name] = values
        return self._from_parts(columns, self._index)

    def describe(self) -> Self:
        """Summary statistics of each numeric column.

        Columns that are not numeric or that have no rows are skipped,
        statistics of columns holding only missing values are NaN.
        The resulting table has one row for each of :attr:`DESCRIBE_STATISTICS`.

        >>> stats = LabeledTable({"a": [1, 2, 3, 4, 5], "b": ["x"] * 5}).describe()
        >>> stats.columns
        ['a']
        >>> stats.loc("mean")
        {'a': 3.0}
        """
        data = {}
        for name, column in self.items():
            if not column.is_numeric or len(column) == 0:
                logger.debug("Column %r skipped by describe", name)
                continue
            description = column.describe()
            data[name] = pa.array(
                [
                    math.nan if description[stat] is None else float(description[stat])
                    for stat in self.DESCRIBE_STATISTICS
                ],
                type=pa.float64(),
            )
        if not data:
            return self.__class__()
        return self.__class__(data, index=self.DESCRIBE_STATISTICS)

    def info(self) -> dict[str, Any]:
        """Shape, columns, count of non missing values and element kind of each column."""
        return {
            "shape": self.shape,
            "columns": self.columns,
            "non_null_counts": {
                name: len(values) - pc.sum(missing_mask(values), min_count=0).as_py()
                for name, values in self._columns.items()
            },
            "dtypes": {name: str(values.type) for name, values in self._columns.items()},
        }

    def to_records(self) -> list[dict[str, Any]]:
        """The rows as a list of ``{column: value}`` records.

        >>> LabeledTable({"a": [1, 2], "b": ["x", "y"]}).to_records()
        [{'a': 1, 'b': 'x'}, {'a': 2, 'b': 'y'}]
        """
        if not self._columns:
            return [{} for _ in self._index]
        return self.to_arrow().to_pylist()

    def to_dict(self) -> dict[str, list[Any]]:
        """The columns as ``{name: values}``."""
        return {name: values.to_pylist() for name, values in self._columns.items()}

    @classmethod
    def concat(cls, tables: Iterable["LabeledTable"], ignore_index: bool = False) -> Self:
        """Append the rows of multiple tables one after the other.

        The columns of the result are all the columns of the tables,
        in the order they were first seen. Rows coming from a table
        that lacks a column get ``null`` values for it.

        >>> first = LabeledTable({"a": [1]})
        >>> second = LabeledTable({"a": [2], "b": ["x"]})
        >>> LabeledTable.concat([first, second], ignore_index=True).to_dict()
        {'a': [1, 2], 'b': [None, 'x']}
        """
        tables = list(tables)
        if not tables:
            return cls()
        try:
            combined = pa.concat_tables(
                [t.to_arrow(index_column=INDEX_COLUMN) for t in tables],
                promote_options="permissive",
            )
        except ARROW_CONVERSION_ERRORS as e:
            raise UnsupportedTypeError(f"Tables have incompatible columns: {e}") from e

        if ignore_index:
            return cls.from_arrow(combined.drop_columns([INDEX_COLUMN]))
        return cls.from_arrow(combined, index_column=INDEX_COLUMN)

    def corr(self, method: str = "pearson") -> Self:
        """Correlation matrix of the numeric columns."""
        from ..stats import mathops

        return mathops.corr(self, method=method)

    def cov(self) -> Self:
        """Covariance matrix of the numeric columns."""
        from ..stats import mathops

        return mathops.cov(self)

    def __add__(self, other: Any) -> Self:
        from ..stats import mathops

        return mathops.add(self, other)

    def __sub__(self, other: Any) -> Self:
        from ..stats import mathops

        return mathops.subtract(self, other)

    def __mul__(self, other: Any) -> Self:
        from ..stats import mathops

        return mathops.multiply(self, other)

    def __truediv__(self, other: Any) -> Self:
        from ..stats import mathops

        return mathops.divide(self, other)

    def __pow__(self, other: Any) -> Self:
        from ..stats import mathops

        return mathops.power(self, other)
