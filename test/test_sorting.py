import math

import pyarrow as pa
import pytest

from statground.compute.base import QueryPlanNode
from statground.compute.pagination import PaginateNode
from statground.compute.sorting import SortNode, sort_array_indices
from statground.errors import ColumnNotFoundError


class MockQueryPlanNode(QueryPlanNode):
    def __init__(self, batches):
        self._batches = batches

    def batches(self):
        for batch in self._batches:
            yield batch

    def __str__(self):
        return "MockQueryPlanNode"


def test_sort_node_single_batch():
    data = pa.record_batch({"values": [5, 3, 1, 4, 2]})
    child_node = MockQueryPlanNode([data])
    sort_node = SortNode(["values"], [False], child_node)

    sorted_batch = next(sort_node.batches())
    assert sorted_batch.column(0).to_pylist() == [1, 2, 3, 4, 5]


def test_sort_node_multiple_batches():
    data1 = pa.record_batch({"values": [5, 3]})
    data2 = pa.record_batch({"values": [1, 4, 2]})
    child_node = MockQueryPlanNode([data1, data2])
    sort_node = SortNode(["values"], [False], child_node)

    sorted_batches = list(sort_node.batches())
    sorted_values = [
        val for batch in sorted_batches for val in batch.column(0).to_pylist()
    ]
    assert sorted_values == [1, 2, 3, 4, 5]


def test_sort_node_descending():
    data = pa.record_batch({"values": [1, 2, 3, 4, 5]})
    child_node = MockQueryPlanNode([data])
    sort_node = SortNode(["values"], [True], child_node)

    sorted_batch = next(sort_node.batches())
    assert sorted_batch.column(0).to_pylist() == [5, 4, 3, 2, 1]


def test_sort_node_is_stable():
    data = pa.record_batch(
        {"key": [2, 1, 2, 1, 2], "order": ["a", "b", "c", "d", "e"]}
    )
    sort_node = SortNode(["key"], [False], MockQueryPlanNode([data]))
    sorted_batch = next(sort_node.batches())
    assert sorted_batch["order"].to_pylist() == ["b", "d", "a", "c", "e"]

    sort_node = SortNode(["key"], [True], MockQueryPlanNode([data]))
    sorted_batch = next(sort_node.batches())
    assert sorted_batch["order"].to_pylist() == ["a", "c", "e", "b", "d"]


def test_sort_node_multiple_keys():
    data = pa.record_batch(
        {"city": ["Rome", "Oslo", "Rome", "Oslo"], "sold": [1, 2, 3, 4]}
    )
    sort_node = SortNode(["city", "sold"], [False, True], MockQueryPlanNode([data]))
    sorted_batch = next(sort_node.batches())
    assert sorted_batch["city"].to_pylist() == ["Oslo", "Oslo", "Rome", "Rome"]
    assert sorted_batch["sold"].to_pylist() == [4, 2, 3, 1]


@pytest.mark.parametrize(
    "null_placement, expected",
    [("at_start", [None, 1, 2, 3]), ("at_end", [1, 2, 3, None])],
)
def test_sort_node_null_placement(null_placement, expected):
    data = pa.record_batch({"values": [3, None, 1, 2]})
    sort_node = SortNode(
        ["values"], [False], MockQueryPlanNode([data]), null_placement=null_placement
    )
    assert next(sort_node.batches())["values"].to_pylist() == expected


def test_sort_node_invalid_keys_and_descending_length():
    data = pa.record_batch({"values": [1, 2, 3, 4, 5]})
    child_node = MockQueryPlanNode([data])
    with pytest.raises(ValueError):
        SortNode(["values"], [True, False], child_node)


def test_sort_node_invalid_null_placement():
    with pytest.raises(ValueError):
        SortNode(["values"], [True], MockQueryPlanNode([]), null_placement="middle")


def test_sort_node_missing_column():
    data = pa.record_batch({"values": [1, 2]})
    sort_node = SortNode(["other"], [False], MockQueryPlanNode([data]))
    with pytest.raises(ColumnNotFoundError):
        next(sort_node.batches())


def test_sort_node_with_paginate_node():
    child_node = MockQueryPlanNode(
        [
            pa.record_batch({"values": [5, 3, 1, 4, 2]}),
            pa.record_batch({"values": [6, 9, 8, 7, 10]}),
        ]
    )
    sort_node = SortNode(["values"], [False], child_node)
    paginate_node = PaginateNode(offset=0, length=2, child=sort_node)

    sorted_batches = next(paginate_node.batches())
    assert sorted_batches["values"].to_pylist() == [1, 2]


def test_sort_node_str():
    sort_node = SortNode(["values"], [True], MockQueryPlanNode([]))
    assert str(sort_node) == (
        "SortNode(sorting=[('values', 'descending')], null_placement=['at_end'], MockQueryPlanNode)"
    )


def test_sort_array_indices():
    values = pa.array([2.0, None, 1.0, 2.0])
    assert sort_array_indices(values).to_pylist() == [2, 0, 3, 1]
    assert sort_array_indices(values, descending=True).to_pylist() == [0, 3, 2, 1]


def test_sort_node_null_placement_for_each_key():
    data = pa.record_batch(
        {"group": [None, 1, 1, None, 1], "score": [2.0, None, 5.0, 1.0, float("nan")]}
    )
    sort_node = SortNode(
        ["group", "score"],
        [False, True],
        MockQueryPlanNode([data]),
        null_placement=["at_start", "at_end"],
    )
    sorted_batch = next(sort_node.batches())
    assert sorted_batch["group"].to_pylist() == [None, None, 1, 1, 1]
    assert sorted_batch["score"].to_pylist()[:3] == [2.0, 1.0, 5.0]
    assert all(
        value is None or math.isnan(value)
        for value in sorted_batch["score"].to_pylist()[3:]
    )


def test_sort_node_nan_follows_null_placement():
    data = pa.record_batch({"values": [2.0, float("nan"), 1.0]})
    sort_node = SortNode(
        ["values"], [False], MockQueryPlanNode([data]), null_placement="at_start"
    )
    sorted_values = next(sort_node.batches())["values"].to_pylist()
    assert math.isnan(sorted_values[0])
    assert sorted_values[1:] == [1.0, 2.0]


def test_sort_node_null_placement_length():
    with pytest.raises(ValueError):
        SortNode(
            ["a", "b"], [False, False], MockQueryPlanNode([]), null_placement=["at_end"]
        )
