import pyarrow as pa
import pytest

from statground import LabeledTable
from statground.compute import INDEX_COLUMN
from statground.compute.datasources import PyArrowTableDataSource, TableDataSource

# Mock data for testing
MOCK_PYARROW_TABLE = pa.table({"col1": [1, 4, 7], "col2": [2, 5, 8], "col3": [3, 6, 9]})
MOCK_LABELED_TABLE = LabeledTable(
    {"col1": [1, 4, 7], "col2": [2, 5, 8]}, index=["a", "b", "c"]
)


@pytest.mark.parametrize(
    "data_source_class, init_args, expected_str",
    [
        (
            PyArrowTableDataSource,
            (MOCK_PYARROW_TABLE,),
            "PyArrowTableDataSource(columns=['col1', 'col2', 'col3'], rows=3)",
        ),
        (
            PyArrowTableDataSource,
            (MOCK_PYARROW_TABLE.to_batches()[0],),
            "PyArrowTableDataSource(columns=['col1', 'col2', 'col3'], rows=3)",
        ),
        (
            TableDataSource,
            (MOCK_LABELED_TABLE,),
            "TableDataSource(columns=['col1', 'col2'], rows=3)",
        ),
    ],
)
def test_init_and_str(data_source_class, init_args, expected_str):
    data_source = data_source_class(*init_args)
    assert str(data_source) == expected_str


@pytest.mark.parametrize(
    "init_args, expected_batches",
    [
        ((MOCK_PYARROW_TABLE,), MOCK_PYARROW_TABLE.to_batches()),
        ((MOCK_PYARROW_TABLE.to_batches()[0],), MOCK_PYARROW_TABLE.to_batches()),
    ],
)
def test_batches(init_args, expected_batches):
    data_source = PyArrowTableDataSource(*init_args)
    batches = list(data_source.batches())
    assert len(batches) == len(expected_batches)
    for batch, expected_batch in zip(batches, expected_batches):
        assert batch.equals(expected_batch)


def test_empty_table_emits_schema():
    table = pa.table({"col1": pa.array([], type=pa.int64())})
    batches = list(PyArrowTableDataSource(table).batches())
    assert len(batches) == 1
    assert batches[0].num_rows == 0
    assert batches[0].schema == table.schema


def test_table_data_source_carries_labels():
    data_source = TableDataSource(MOCK_LABELED_TABLE)
    batch = next(data_source.batches())
    assert batch.schema.names == [INDEX_COLUMN, "col1", "col2"]
    assert batch.column(INDEX_COLUMN).to_pylist() == ["a", "b", "c"]
    assert batch.column("col2").to_pylist() == [2, 5, 8]


def test_poll_schema():
    data_source = TableDataSource(MOCK_LABELED_TABLE)
    assert data_source.poll_schema().names == [INDEX_COLUMN, "col1", "col2"]
    assert PyArrowTableDataSource(MOCK_PYARROW_TABLE).poll_schema() == MOCK_PYARROW_TABLE.schema
