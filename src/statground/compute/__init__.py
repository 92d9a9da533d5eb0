"""The statground Compute Engine

The compute engine defines the in-memory
format for query plans and the plan nodes
supported.

The compute engine is tightly bound to Apache Arrow,
thus the engine will expect to always deal with
:class:`pyarrow.RecordBatch` and emit a new RecordBatch
as the result of the node execution.

This allows to easily build compute pipelines like::

    (RecordBatch)-->Node1--(RecordBatch)-->Node2--(RecordBatch)-->...

The query plan nodes themselves are in charge of their execution,
this keeps the behavior near to the node and thus makes easy to
know how a Node is actually executed without having to look around too much.

Building a query plan requires to combine the nodes that we want
to be executed starting with one or more ``DataSource`` nodes as the
leafs node of a query:

>>> import pyarrow as pa
>>> data = pa.table({
...    "animals": pa.array(["Flamingo", "Horse", "Brittle stars", "Centipede"]),
...    "n_legs": pa.array([2, 4, 5, 100])
... })
>>>
>>> import pyarrow.compute as pc
>>> from statground.compute import col, lit, PyArrowTableDataSource
>>> from statground.compute import FilterNode, FunctionCallExpression
>>> # keep the animals with at least 5 legs
>>> query = FilterNode(
...     FunctionCallExpression(pc.greater_equal, col("n_legs"), lit(5)),
...     child=PyArrowTableDataSource(
...         data
...     )
... )
>>> for data in query.batches():
...     print(data)
pyarrow.RecordBatch
animals: string
n_legs: int64
----
animals: ["Brittle stars","Centipede"]
n_legs: [5,100]

The :class:`statground.LabeledTable` relational methods build
query plans out of these nodes, using a :class:`TableDataSource`
as the leaf, and collect the result back into a new table.
"""

from .aggregate import (
    AggregateNode,
    Aggregation,
    CountAggregation,
    MaxAggregation,
    MeanAggregation,
    MinAggregation,
    StdAggregation,
    SumAggregation,
    group_rows,
)
from .base import INDEX_COLUMN, ColumnRef, Expression, QueryPlanNode, col, lit
from .datasources import PyArrowTableDataSource, TableDataSource
from .expressions import FunctionCallExpression, RowPredicateExpression
from .filtering import FilterNode
from .join import HashJoinNode
from .pagination import PaginateNode
from .selection import ProjectNode
from .sorting import SortNode

__all__ = (
    "INDEX_COLUMN",
    "QueryPlanNode",
    "Expression",
    "PyArrowTableDataSource",
    "TableDataSource",
    "FilterNode",
    "FunctionCallExpression",
    "RowPredicateExpression",
    "col",
    "lit",
    "ColumnRef",
    "PaginateNode",
    "SortNode",
    "ProjectNode",
    "HashJoinNode",
    "AggregateNode",
    "Aggregation",
    "group_rows",
    "CountAggregation",
    "MaxAggregation",
    "MeanAggregation",
    "MinAggregation",
    "StdAggregation",
    "SumAggregation",
)
