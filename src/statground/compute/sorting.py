"""Query plan nodes that perform sorting of data.

When computing ranks or looking for most significant
values, it's often necessary to sort the data based
on one or more columns.

This module implements the sorting capabilities.
Sorting always happens in memory as all the
data handled by statground is in memory.
"""

import pyarrow as pa
import pyarrow.compute as pc

from ..errors import ColumnNotFoundError
from .base import QueryPlanNode, combine_batches


class SortNode(QueryPlanNode):
    """Sort data in-memory based on one or more columns.

    The node expects a list of columns and a list of
    sort directions. The data will be sorted based on
    the columns in the order they are provided,
    the second column is only used to sort rows that have
    equal values in the first column and so on.

    The sort directions are used to specify if the
    sorting should be ascending or descending.

    The sort is stable: rows that compare equal on all the keys
    are emitted in the same relative order they were received.

    ``null_placement`` controls whether missing values (nulls and NaNs)
    go before (``"at_start"``) or after (``"at_end"``) all the other values.
    It can be a single placement for all the keys or one for each key.

    >>> import pyarrow as pa
    >>> from statground.compute import PyArrowTableDataSource
    >>> data = pa.record_batch({"values": [1, 2, 3, 4, 5]})
    >>> # Sort the data in descending order
    >>> sort = SortNode(["values"], [True], PyArrowTableDataSource(data))
    >>> next(sort.batches())["values"].to_pylist()
    [5, 4, 3, 2, 1]
    """

    def __init__(
        self,
        keys: list[str],
        descending: list[bool],
        child: QueryPlanNode,
        null_placement: str | list[str] = "at_end",
    ) -> None:
        """
        :param keys: The columns to sort by in the order they should be sorted.
        :param descending: If each columns should be sorted in a descending order.
        :param child: The node emitting the data to be sorted.
        :param null_placement: Where to place missing values, ``"at_start"`` or ``"at_end"``,
                               for all the keys or for each key.
        """
        if len(keys) != len(descending):
            raise ValueError("Keys and descending must have the same length")
        if isinstance(null_placement, str):
            null_placement = [null_placement] * len(keys)
        if len(null_placement) != len(keys):
            raise ValueError("Keys and null_placement must have the same length")
        for placement in null_placement:
            if placement not in ("at_start", "at_end"):
                raise ValueError(f"Invalid null placement: {placement}")

        self.sorting = list(
            zip(keys, ("descending" if desc else "ascending" for desc in descending))
        )
        self.null_placement = list(null_placement)
        self.child = child

    def __str__(self) -> str:
        return f"SortNode(sorting={self.sorting}, null_placement={self.null_placement}, {self.child})"

    def batches(self) -> QueryPlanNode.RecordBatchesGenerator:
        """Sort the data of the child node.

        Batches provided by child node are accumulated
        until they are all loaded in memory, than they
        are merged and sorted as an unique batch.

        Each key is sorted first on whether its values are
        missing and then on the values, so that every key
        places its missing values independently from the others.
        """
        batch = combine_batches(self.child.batches())
        missing = [key for key, _ in self.sorting if key not in batch.schema.names]
        if missing:
            raise ColumnNotFoundError(f"Sort columns not found: {missing}")

        if not self.sorting:
            yield batch
            return

        arrays, names, sort_keys = [], [], []
        for position, ((key, order), placement) in enumerate(zip(self.sorting, self.null_placement)):
            values = batch.column(key)
            arrays.extend([pc.is_null(values, nan_is_null=True), values])
            names.extend([f"missing_{position}", f"values_{position}"])
            sort_keys.append(
                (f"missing_{position}", "descending" if placement == "at_start" else "ascending")
            )
            sort_keys.append((f"values_{position}", order))

        indices = pc.sort_indices(pa.record_batch(arrays, names=names), sort_keys=sort_keys)
        yield batch.take(indices)


def sort_array_indices(
    values: pa.Array, descending: bool = False, null_placement: str = "at_end"
) -> pa.Array:
    """Compute the positions that sort a single array.

    Same rules as :class:`SortNode`, the sort is stable.

    >>> import pyarrow as pa
    >>> sort_array_indices(pa.array([3, None, 1]), null_placement="at_start").to_pylist()
    [1, 2, 0]
    """
    return pc.array_sort_indices(
        values,
        order="descending" if descending else "ascending",
        null_placement=null_placement,
    )
