"""Base classes and interfaces for the Compute Engine

This module defines the base components that are
necessary to represent a query plan and execute it.
"""

import abc
from typing import Any, Iterable, Iterator

import pyarrow as pa

INDEX_COLUMN = "__statground_index__"
"""Name of the column carrying the row labels through a query plan.

Tables are converted to record batches that include their labels
as a regular string column, so that nodes which reorder or drop
rows move the labels together with the data.
Nodes that need to compute new labels (like joins) look for this column.
"""


class QueryPlanNode(abc.ABC):
    """A node of a query execution plan.

    The Query plan is represented as a tree
    of nodes. Each node is a step in the execution
    and all previous steps are children of the
    last one.

    For example a simple plan might involve
    loading a table and filtering it::

        TableDataSource -> FilterNode(filter)

    That would be a plan where the last step
    is filtering, and the TableDataSource is a child
    of the filter node.

    The number of children can be variable, some
    nodes like joins accept two child nodes
    that have to be joined together.

    Each Node accepts :class:`pyarrow.RecordBatch`
    data as its input and emits a new
    :class:`pyarrow.RecordBatch` as its output.

    For example a simple node that takes data
    and just forwards it as is after printing
    its content can be implemented as::

        class DebugDataNode(QueryPlanNode):
            def __init__(self, child):
                self.child = child

            def batches(self):
                for b in self.child.batches():
                    print(b)
                    yield b

            def __str__(self):
                return f"DebugDataNode()"
    """

    RecordBatchesGenerator = Iterator[pa.RecordBatch]

    @abc.abstractmethod
    def batches(self) -> RecordBatchesGenerator:
        """Emits the batches for the next node.

        Each QueryPlan node is expected to be able to
        generate data that has to be provided to the next
        node in the plan.

        Usually this happens by consuming data from its
        child nodes, transforming it somehow, and yielding
        it back to the next consumer.
        """
        ...

    @abc.abstractmethod
    def __str__(self) -> str:
        """Human readable representation of the node."""
        ...


class Expression(abc.ABC):
    """Expression to apply to a RecordBatch.

    Expressions are some form of operation that
    has to be applied to the data of a :class:`pyarrow.RecordBatch`
    to create new data.

    Typical example of expressions are: A > 3
    which is expected to compare column A of the RecordBatch
    with the literal 3 and return a boolean value for each row.

    As the engine is Column Major, applying an expression
    always results in a new column, thus in a
    :class:`pyarrow.Array` that contains the data
    for that column.
    """

    @abc.abstractmethod
    def apply(self, batch: pa.RecordBatch) -> pa.Array:
        """Apply the expression to a RecordBatch."""
        ...

    @abc.abstractmethod
    def __str__(self) -> str:
        """Human readable representation of the expression."""
        ...


class ColumnRef(Expression):
    """References a column in a record batch.

    When another expression or the engine need
    to operate on a specific column, we will
    need a way to reference that column and its data.

    This expression is aware of the column and when
    applied to a record batch returns the data for
    that column.
    """

    def __init__(self, name: str) -> None:
        """
        :param name: The name of the column being referenced.
        """
        self.name = name

    def apply(self, batch: pa.RecordBatch) -> pa.Array:
        """Get the data for the column."""
        return batch.column(self.name)

    def __str__(self) -> str:
        return f"ColumnRef({self.name})"


class Literal(Expression):
    """A constant value used as an argument of other expressions.

    Applying a literal returns a :class:`pyarrow.Scalar`,
    compute functions broadcast scalars against the
    columns they are combined with.
    """

    def __init__(self, value: Any) -> None:
        """
        :param value: The python value of the literal.
        """
        self.value = value

    def apply(self, batch: pa.RecordBatch) -> pa.Scalar:
        return pa.scalar(self.value)

    def __str__(self) -> str:
        return f"Literal({self.value!r})"


col = ColumnRef
lit = Literal


def combine_batches(batches: Iterable[pa.RecordBatch]) -> pa.RecordBatch:
    """Merge all the batches emitted by a node in a single RecordBatch.

    Nodes like joins and aggregations need all the rows
    in memory at once, this accumulates them.
    When there is a single batch it is returned as is.
    """
    batches = list(batches)
    if len(batches) == 1:
        return batches[0]

    # Going through a Table is zero-copy, only combining
    # the chunks of each column actually moves data.
    table = pa.Table.from_batches(batches)
    return pa.RecordBatch.from_arrays(
        [column.combine_chunks() for column in table.columns],
        schema=table.schema,
    )
