"""Query plan nodes that implement join operations.

The join is performed with a hash join algorithm
that builds a hash table from the key column of one of the tables
and then probes it with the rows of the other table to find the matching rows.

Given the two tables::

    left:
    +----+--------+
    | id | name   |
    +----+--------+
    | 1  | Alice  |
    | 2  | Bob    |
    | 3  | Charlie|
    +----+--------+

    right:
    +----+-----+
    | id | age |
    +----+-----+
    | 3  | 25  |
    | 2  | 30  |
    +----+-----+

We would perform the following steps:

1. Build the hash table of the right keys, mapping each key value
   to the positions of the rows that hold it::

    {3: [0], 2: [1]}

2. Probe the hash table with each left row in order,
   every match emits one pair of (left position, right position)::

    left_take = [1, 2]
    right_take = [1, 0]

3. Take the rows of both tables at those positions
   and place their columns side by side.
   Columns coming from the right table are renamed with a suffix,
   the right join key is not emitted as it duplicates the left one::

    +----+--------+-----------+
    | id | name   | age_right |
    +----+--------+-----------+
    | 2  | Bob    | 30        |
    | 3  | Charlie| 25        |
    +----+--------+-----------+

Left and right joins work the same way, but rows that found no match
are emitted too, using a ``null`` position for the other side, which
makes all the columns of the other side ``null`` for that row.

>>> import pyarrow as pa
>>> from statground.compute import HashJoinNode, PyArrowTableDataSource
>>> left = PyArrowTableDataSource(pa.record_batch({"id": [1, 2, 3], "name": ["Alice", "Bob", "Charlie"]}))
>>> right = PyArrowTableDataSource(pa.record_batch({"id": [3, 2], "age": [25, 30]}))
>>> join_node = HashJoinNode("id", "id", left, right)
>>> next(join_node.batches())
pyarrow.RecordBatch
id: int64
name: string
age_right: int64
----
id: [2,3]
name: ["Bob","Charlie"]
age_right: [30,25]
"""

import logging

import pyarrow as pa

from ..errors import ColumnNotFoundError, UnsupportedJoinTypeError
from .base import INDEX_COLUMN, QueryPlanNode, combine_batches

logger = logging.getLogger(__name__)


class HashJoinNode(QueryPlanNode):
    """Join two data sources on the equality of one key column.

    Supported join types are:

    * ``inner``: for each left row, in order, one row for every
      matching right row, in the order of the right table.
    * ``left``: like ``inner``, but left rows that have no match
      are emitted anyway with all the right columns set to ``null``.
    * ``right``: for each right row, in order, one row for every
      matching left row. Right rows without a match are emitted
      with all the left columns (the key included) set to ``null``.

    Null keys are considered equal to each other.

    When the children carry row labels in the :data:`INDEX_COLUMN`,
    the label of each matched row is ``"<left label>_<right label>"``
    while rows without a match keep the label they had.
    """

    JOIN_TYPES = ("inner", "left", "right")

    def __init__(
        self,
        left_key: str,
        right_key: str,
        left_child: QueryPlanNode,
        right_child: QueryPlanNode,
        how: str = "inner",
        suffix: str = "_right",
    ) -> None:
        """
        :param left_key: The key to join on in the left table.
        :param right_key: The key to join on in the right table.
        :param left_child: The left source of data to join.
        :param right_child: The right source of data to join.
        :param how: The join type, one of ``inner``, ``left``, ``right``.
        :param suffix: Appended to the name of every column of the right table.
        """
        how = how.lower()
        if how not in self.JOIN_TYPES:
            raise UnsupportedJoinTypeError(f"Unsupported join type: {how}")

        self.left_key = left_key
        self.right_key = right_key
        self.left_child = left_child
        self.right_child = right_child
        self.how = how
        self.suffix = suffix

    def __str__(self) -> str:
        return (
            f"HashJoinNode(how={self.how}, left_key={self.left_key}, right_key={self.right_key}, "
            f"left={self.left_child}, right={self.right_child})"
        )

    def batches(self) -> QueryPlanNode.RecordBatchesGenerator:
        """Perform the join operation.

        Accumulates all rows of both children to
        perform the join operation, so it is not suitable
        for large datasets.
        """
        left_rb = combine_batches(self.left_child.batches())
        right_rb = combine_batches(self.right_child.batches())

        if self.left_key not in left_rb.schema.names:
            raise ColumnNotFoundError(f"Join column {self.left_key!r} not found in left table")
        if self.right_key not in right_rb.schema.names:
            raise ColumnNotFoundError(f"Join column {self.right_key!r} not found in right table")

        left_keys = left_rb.column(self.left_key).to_pylist()
        right_keys = right_rb.column(self.right_key).to_pylist()

        if self.how == "right":
            # Probe from the right side, so that rows come out in right order.
            right_take, left_take = self._match(right_keys, left_keys, keep_unmatched=True)
        else:
            left_take, right_take = self._match(
                left_keys, right_keys, keep_unmatched=self.how == "left"
            )

        logger.debug(
            "%s join of %d left rows and %d right rows produced %d rows",
            self.how,
            left_rb.num_rows,
            right_rb.num_rows,
            len(left_take),
        )
        yield self._combine(left_rb, right_rb, left_take, right_take)

    @staticmethod
    def _match(
        probe_keys: list, build_keys: list, keep_unmatched: bool
    ) -> tuple[list[int | None], list[int | None]]:
        """Find the pairs of matching positions between two key columns.

        Returns the positions to take from the probe side
        and from the build side. ``None`` marks a missing match.
        """
        hash_table: dict = {}
        for position, key in enumerate(build_keys):
            hash_table.setdefault(key, []).append(position)

        probe_take: list[int | None] = []
        build_take: list[int | None] = []
        for position, key in enumerate(probe_keys):
            matches = hash_table.get(key)
            if matches:
                probe_take.extend([position] * len(matches))
                build_take.extend(matches)
            elif keep_unmatched:
                probe_take.append(position)
                build_take.append(None)
        return probe_take, build_take

    def _combine(
        self,
        left_rb: pa.RecordBatch,
        right_rb: pa.RecordBatch,
        left_take: list[int | None],
        right_take: list[int | None],
    ) -> pa.RecordBatch:
        left_indices = pa.array(left_take, type=pa.int64())
        right_indices = pa.array(right_take, type=pa.int64())

        combined_data: dict[str, pa.Array] = {}
        labels = self._labels(left_rb, right_rb, left_take, right_take)
        if labels is not None:
            combined_data[INDEX_COLUMN] = pa.array(labels, type=pa.string())

        for name in left_rb.schema.names:
            if name == INDEX_COLUMN:
                continue
            combined_data[name] = left_rb.column(name).take(left_indices)
        for name in right_rb.schema.names:
            if name in (INDEX_COLUMN, self.right_key):
                continue
            new_name = name + self.suffix
            if new_name in combined_data:
                raise ValueError(f"Joined column {new_name!r} already exists in left table")
            combined_data[new_name] = right_rb.column(name).take(right_indices)

        if not combined_data:
            return pa.RecordBatch.from_pydict({})
        return pa.record_batch(combined_data)

    @staticmethod
    def _labels(
        left_rb: pa.RecordBatch,
        right_rb: pa.RecordBatch,
        left_take: list[int | None],
        right_take: list[int | None],
    ) -> list[str] | None:
        has_left = INDEX_COLUMN in left_rb.schema.names
        has_right = INDEX_COLUMN in right_rb.schema.names
        if not (has_left or has_right):
            return None

        left_labels = left_rb.column(INDEX_COLUMN).to_pylist() if has_left else None
        right_labels = right_rb.column(INDEX_COLUMN).to_pylist() if has_right else None

        labels = []
        for row, (lpos, rpos) in enumerate(zip(left_take, right_take)):
            left_label = left_labels[lpos] if left_labels and lpos is not None else None
            right_label = right_labels[rpos] if right_labels and rpos is not None else None
            if left_label is not None and right_label is not None:
                labels.append(f"{left_label}_{right_label}")
            elif left_label is not None:
                labels.append(left_label)
            elif right_label is not None:
                labels.append(right_label)
            else:
                labels.append(str(row))
        return labels
