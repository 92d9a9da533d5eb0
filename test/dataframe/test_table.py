import math

import pyarrow as pa
import pyarrow.compute as pc
import pytest

from statground import LabeledTable, LabeledVector
from statground.compute import (
    INDEX_COLUMN,
    FunctionCallExpression,
    MeanAggregation,
    SumAggregation,
    col,
    lit,
)
from statground.errors import (
    ColumnNotFoundError,
    IndexOutOfRangeError,
    LabelNotFoundError,
    LengthMismatchError,
    UnsupportedJoinTypeError,
    UnsupportedTypeError,
)


@pytest.fixture
def people():
    return LabeledTable(
        {
            "name": ["Alice", "Bob", "Carol", "Dave"],
            "age": [34, 17, 25, None],
            "city": ["Rome", "Oslo", "Rome", "Oslo"],
        },
        index=["a", "b", "c", "d"],
    )


@pytest.fixture
def categories():
    return LabeledTable(
        {"category": ["A", "B", "A", "B", "A"], "value": [1, 2, 3, 4, 5]}
    )


def test_construction(people):
    assert people.columns == ["name", "age", "city"]
    assert people.index == ["a", "b", "c", "d"]
    assert people.shape == (4, 3)
    assert len(people) == 4
    assert "age" in people
    assert list(people) == ["name", "age", "city"]
    for name, column in people.items():
        assert len(column) == len(people.index)
        assert column.name == name


def test_default_index():
    table = LabeledTable({"a": [1, 2, 3]})
    assert table.index == ["0", "1", "2"]


@pytest.mark.parametrize(
    "data, index",
    [
        ({"a": [1, 2], "b": [1, 2, 3]}, None),
        ({"a": [1, 2]}, ["x"]),
    ],
)
def test_length_mismatch(data, index):
    with pytest.raises(LengthMismatchError):
        LabeledTable(data, index=index)


def test_reserved_column_name():
    with pytest.raises(ValueError):
        LabeledTable({INDEX_COLUMN: [1]})


def test_empty_table():
    table = LabeledTable()
    assert table.empty
    assert table.shape == (0, 0)
    assert table.to_records() == []


def test_column_access(people):
    ages = people["age"]
    assert isinstance(ages, LabeledVector)
    assert ages.index == people.index
    assert ages.to_pylist() == [34, 17, 25, None]
    with pytest.raises(ColumnNotFoundError):
        people["missing"]


def test_column_mutation(people):
    people["score"] = [1.0, 2.0, 3.0, 4.0]
    assert people.columns == ["name", "age", "city", "score"]
    people["age"] = [1, 2, 3, 4]
    assert people.columns == ["name", "age", "city", "score"]
    assert people["age"].to_pylist() == [1, 2, 3, 4]

    with pytest.raises(LengthMismatchError):
        people["bad"] = [1, 2]
    assert "bad" not in people

    del people["score"]
    assert people.columns == ["name", "age", "city"]
    with pytest.raises(ColumnNotFoundError):
        people.remove_column("score")


def test_add_column_to_empty_table():
    table = LabeledTable()
    table.add_column("a", [1, 2, 3])
    assert table.index == ["0", "1", "2"]
    assert table.shape == (3, 1)


def test_row_access(people):
    assert people.iloc(0) == {"name": "Alice", "age": 34, "city": "Rome"}
    assert people.iloc(-1)["name"] == "Dave"
    assert people.loc("c")["name"] == "Carol"
    with pytest.raises(IndexOutOfRangeError):
        people.iloc(4)
    with pytest.raises(LabelNotFoundError):
        people.loc("z")


def test_duplicated_labels_first_match():
    table = LabeledTable({"a": [1, 2]}, index=["x", "x"])
    assert table.loc("x") == {"a": 1}


def test_from_records_round_trip(people):
    records = people.to_records()
    assert records[1] == {"name": "Bob", "age": 17, "city": "Oslo"}
    rebuilt = LabeledTable.from_records(records)
    assert rebuilt.columns == people.columns
    assert rebuilt.to_dict() == people.to_dict()


def test_arrow_round_trip(people):
    arrow_table = people.to_arrow(index_column="label")
    assert arrow_table.column_names == ["label", "name", "age", "city"]
    rebuilt = LabeledTable.from_arrow(arrow_table, index_column="label")
    assert rebuilt.index == people.index
    assert rebuilt.to_dict() == people.to_dict()
    with pytest.raises(ColumnNotFoundError):
        LabeledTable.from_arrow(arrow_table, index_column="missing")


def test_head_and_tail(people):
    assert people.head(2).index == ["a", "b"]
    assert people.tail(3).index == ["b", "c", "d"]
    assert people.tail(10).index == people.index
    assert len(people.head(0)) == 0
    assert people.head(0).columns == people.columns


def test_select(people):
    selected = people.select(["city", "name"])
    assert selected.columns == ["city", "name"]
    assert selected.index == people.index
    with pytest.raises(ColumnNotFoundError):
        people.select(["missing"])


def test_where_callable(people):
    adults = people.where(lambda row: row["age"] is not None and row["age"] >= 18)
    assert adults.index == ["a", "c"]
    assert adults["name"].to_pylist() == ["Alice", "Carol"]


def test_where_expression(people):
    in_rome = people.where(FunctionCallExpression(pc.equal, col("city"), lit("Rome")))
    assert in_rome.index == ["a", "c"]


def test_where_nothing_matches(people):
    nobody = people.where(lambda row: False)
    assert len(nobody) == 0
    assert nobody.columns == people.columns


def test_where_invalid_predicate(people):
    with pytest.raises(TypeError):
        people.where("age > 18")


def test_sort_by(people):
    by_age = people.sort_by("age")
    assert by_age.index == ["d", "b", "c", "a"]
    by_age_desc = people.sort_by("age", ascending=False)
    assert by_age_desc.index == ["a", "c", "b", "d"]


def test_sort_by_is_permutation():
    table = LabeledTable({"v": [5, 3, 9, 1, 7]})
    result = table.sort_by("v")
    values = result["v"].to_pylist()
    assert sorted(result.index) == sorted(table.index)
    assert all(a <= b for a, b in zip(values, values[1:]))


def test_sort_by_multiple_columns(people):
    result = people.sort_by(["city", "name"], ascending=[True, False])
    assert result["name"].to_pylist() == ["Dave", "Bob", "Carol", "Alice"]


def test_sort_by_places_missing_values_for_each_column():
    table = LabeledTable({"a": [1, 1, 1], "b": [None, 2, 1]})
    result = table.sort_by(["a", "b"], ascending=[True, False])
    assert result["b"].to_pylist() == [2, 1, None]
    assert result.index == ["1", "2", "0"]

    table = LabeledTable({"a": [None, 2, 1], "b": [1, 1, 1]})
    result = table.sort_by(["b", "a"], ascending=[False, True])
    assert result["a"].to_pylist() == [None, 1, 2]


def test_sort_by_is_stable(categories):
    result = categories.sort_by("category")
    assert result["value"].to_pylist() == [1, 3, 5, 2, 4]


def test_sort_by_missing_column(people):
    with pytest.raises(ColumnNotFoundError):
        people.sort_by("missing")


def test_group_by(categories):
    groups = categories.group_by(["category"])
    assert list(groups) == ["A", "B"]
    assert groups["A"]["value"].to_pylist() == [1, 3, 5]
    assert len(groups["A"]) == 3
    assert groups["B"]["value"].to_pylist() == [2, 4]
    assert groups["B"].index == ["1", "3"]
    assert sum(len(group) for group in groups.values()) == len(categories)


def test_group_by_multiple_columns():
    table = LabeledTable({"k1": ["a|b", "a", "a|b"], "k2": ["c", "b|c", "c"], "v": [1, 2, 3]})
    groups = table.group_by(["k1", "k2"])
    assert list(groups) == [("a|b", "c"), ("a", "b|c")]
    assert groups[("a|b", "c")]["v"].to_pylist() == [1, 3]


def test_group_by_nan_key():
    table = LabeledTable({"k": [1.0, math.nan, math.nan, None, None], "v": [1, 2, 3, 4, 5]})
    groups = table.group_by("k")
    assert len(groups) == 3
    assert groups[math.nan]["v"].to_pylist() == [2, 3]
    assert groups[None]["v"].to_pylist() == [4, 5]


def test_group_by_missing_column(categories):
    with pytest.raises(ColumnNotFoundError):
        categories.group_by("missing")


def test_join_inner():
    left = LabeledTable({"id": [1, 2], "name": ["Alice", "Bob"]})
    right = LabeledTable({"id": [1, 2, 4], "score": [10, 20, 30]})
    joined = left.join(right, on="id")
    assert len(joined) == 2
    assert joined["id"].to_pylist() == [1, 2]
    assert joined.columns == ["id", "name", "score_right"]
    assert joined.index == ["0_0", "1_1"]


def test_join_left():
    left = LabeledTable({"id": [1, 2], "name": ["Alice", "Bob"]})
    right = LabeledTable({"id": [1, 2, 4], "score": [10, 20, 30]})
    joined = left.join(right, on="id", how="left")
    assert len(joined) == 2
    assert joined["score_right"].null_count() == 0

    right = LabeledTable({"id": [2], "score": [20]})
    joined = left.join(right, on="id", how="left")
    assert len(joined) == len(left)
    assert joined["score_right"].to_pylist() == [None, 20]
    assert joined.index == ["0", "1_0"]


def test_join_right():
    left = LabeledTable({"id": [1, 2], "name": ["Alice", "Bob"]})
    right = LabeledTable({"id": [2, 3], "score": [20, 30]}, index=["x", "y"])
    joined = left.join(right, on="id", how="right")
    assert joined.to_dict() == {
        "id": [2, None],
        "name": ["Bob", None],
        "score_right": [20, 30],
    }
    assert joined.index == ["1_x", "y"]


def test_join_errors():
    left = LabeledTable({"id": [1]})
    right = LabeledTable({"key": [1]})
    with pytest.raises(ColumnNotFoundError):
        left.join(right, on="id")
    with pytest.raises(UnsupportedJoinTypeError):
        left.join(left, on="id", how="cross")


def test_aggregate(categories):
    result = categories.aggregate(
        "category", {"total": SumAggregation("value"), "mean": MeanAggregation("value")}
    )
    assert result.to_dict() == {
        "category": ["A", "B"],
        "total": [9, 6],
        "mean": [3.0, 3.0],
    }


def test_agg(people):
    assert people.agg(LabeledVector.max) == {"age": 34}
    assert people.agg(len) == {"name": 4, "age": 4, "city": 4}
    with pytest.raises(ColumnNotFoundError):
        people.agg(len, subset=["missing"])


def test_dropna():
    table = LabeledTable(
        {"a": [1.0, None, 3.0, float("nan")], "b": ["x", "y", None, "z"]}
    )
    assert table.dropna().index == ["0"]
    assert table.dropna(subset=["b"]).index == ["0", "1", "3"]
    assert table.dropna(subset=[]).index == table.index


def test_fillna():
    table = LabeledTable({"a": [1.0, None], "b": ["x", None]})
    assert table.fillna(0.0).to_dict() == {"a": [1.0, 0.0], "b": ["x", None]}
    assert table.fillna("?", subset=["b"]).to_dict() == {"a": [1.0, None], "b": ["x", "?"]}
    with pytest.raises(UnsupportedTypeError):
        table.fillna("?", subset=["a"])


def test_describe():
    table = LabeledTable(
        {"a": [1, 2, 3, 4, 5], "b": [2.0, 4.0, None, 8.0, 10.0], "s": list("vwxyz")}
    )
    description = table.describe()
    assert description.columns == ["a", "b"]
    assert description.index == list(LabeledTable.DESCRIBE_STATISTICS)
    assert description.loc("count") == {"a": 5.0, "b": 4.0}
    assert description.loc("mean") == {"a": 3.0, "b": 6.0}
    assert description["a"].loc("50%") == 3.0
    assert description["a"].dtype == pa.float64()


def test_describe_without_numeric_columns():
    assert LabeledTable({"s": ["x"]}).describe().empty


def test_describe_column_of_missing_values():
    left = LabeledTable({"id": [1, 2], "score": [10.0, 20.0]})
    right = LabeledTable({"id": [3], "score": [30.0]})
    joined = left.join(right, on="id", how="left")
    description = joined.describe()
    assert description.columns == ["id", "score", "score_right"]
    assert description["score_right"].loc("count") == 0.0
    assert all(
        math.isnan(description["score_right"].loc(stat))
        for stat in LabeledTable.DESCRIBE_STATISTICS[1:]
    )
    assert description["score"].loc("max") == 20.0


def test_info(people):
    info = people.info()
    assert info["shape"] == (4, 3)
    assert info["non_null_counts"] == {"name": 4, "age": 3, "city": 4}
    assert info["dtypes"]["age"] == "int64"


def test_concat():
    first = LabeledTable({"a": [1, 2]}, index=["x", "y"])
    second = LabeledTable({"a": [3], "b": ["z"]}, index=["w"])
    combined = LabeledTable.concat([first, second])
    assert combined.index == ["x", "y", "w"]
    assert combined.to_dict() == {"a": [1, 2, 3], "b": [None, None, "z"]}
    assert LabeledTable.concat([first, second], ignore_index=True).index == ["0", "1", "2"]


def test_corr_and_cov():
    table = LabeledTable({"a": [1, 2, 3, 4, 5], "b": [2, 4, 6, 8, 10], "s": list("vwxyz")})
    corr = table.corr()
    assert corr.columns == ["a", "b"]
    assert corr.index == ["a", "b"]
    assert corr["a"].loc("a") == pytest.approx(1.0)
    assert corr["b"].loc("a") == pytest.approx(1.0)
    assert table.cov()["b"].loc("b") == pytest.approx(10.0)


def test_arithmetic_operators():
    table = LabeledTable({"a": [1, 2], "b": [3, 4]}, index=["x", "y"])
    assert (table + 1).to_dict() == {"a": [2, 3], "b": [4, 5]}
    assert (table - table).to_dict() == {"a": [0, 0], "b": [0, 0]}
    assert (table * 2).index == ["x", "y"]
    halves = table / 2
    assert halves.to_dict() == {"a": [0.5, 1.0], "b": [1.5, 2.0]}
    assert (table ** 2)["b"].to_pylist() == [9.0, 16.0]
    assert math.isnan((table / 0)["a"].iloc(0))
