"""Query Plan nodes that provide data

The datasource nodes are the leaves of every query plan,
they emit the data in the format accepted by the compute engine
for the next nodes in the plan to consume.

Data is always held in memory, so data sources
wrap already loaded :mod:`pyarrow` data
or a :class:`statground.LabeledTable`.
"""

from abc import abstractmethod
from typing import TYPE_CHECKING

import pyarrow as pa

from .base import INDEX_COLUMN, QueryPlanNode

if TYPE_CHECKING:
    from ..dataframe.table import LabeledTable


class DataSourceNode(QueryPlanNode):
    """Base class for nodes that load data from a source."""

    @abstractmethod
    def poll_schema(self) -> pa.Schema:
        """Poll the schema of the data source without loading its content."""
        ...


class PyArrowTableDataSource(DataSourceNode):
    """Load data from an in-memory pyarrow.Table or pyarrow.RecordBatch.

    Given a :class:`pyarrow.Table` or `pyarrow.RecordBatch` object,
    allow to use its data in a query plan.

    >>> import pyarrow as pa
    >>> source = PyArrowTableDataSource(pa.record_batch({"a": [1, 2]}))
    >>> str(source)
    "PyArrowTableDataSource(columns=['a'], rows=2)"
    """

    def __init__(self, table: pa.Table | pa.RecordBatch) -> None:
        """
        :param table: The table or recordbatch with the data to read.
        """
        self.table = table
        self.is_recordbatch = isinstance(table, pa.RecordBatch)

    def __str__(self) -> str:
        return f"PyArrowTableDataSource(columns={self.table.column_names}, rows={self.table.num_rows})"

    def batches(self) -> QueryPlanNode.RecordBatchesGenerator:
        """Emit the data contained in the Table for consumption by other node."""
        if self.is_recordbatch:
            yield self.table
            return

        batches = self.table.to_batches()
        if not batches:
            # Empty tables have no batches, but the schema must flow anyway.
            batches = [pa.RecordBatch.from_pylist([], schema=self.table.schema)]
        yield from batches

    def poll_schema(self) -> pa.Schema:
        """Poll the schema of the Table."""
        return self.table.schema


class TableDataSource(PyArrowTableDataSource):
    """Use the data of a :class:`statground.LabeledTable` in a query plan.

    The table is emitted as a single RecordBatch where the
    row labels are stored in the :data:`INDEX_COLUMN` column
    ahead of the table columns.
    This allows the following nodes to keep the labels
    aligned with the rows they filter, sort or join.
    """

    def __init__(self, table: "LabeledTable") -> None:
        """
        :param table: The labeled table providing the data.
        """
        self.labeled_table = table
        super().__init__(table.to_arrow(index_column=INDEX_COLUMN))

    def __str__(self) -> str:
        return f"TableDataSource(columns={self.labeled_table.columns}, rows={len(self.labeled_table)})"
