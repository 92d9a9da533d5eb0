"""Expressions executed by compute engine nodes.

The Compute Engine will sometimes need to filter data
or emit new data. This will be performed by nodes that
need to know how the data must be filtered or emitted.

Filters will need a ``predicate``, so an expression that
returns ``true`` or ``false`` for each row that has to be
filtered.

Projections will need an expression that computes the rows
for the projection, for example ``A + B``.

Two kind of predicates are supported:

* :class:`FunctionCallExpression` invokes a vectorized
  :mod:`pyarrow.compute` function on whole columns.
* :class:`RowPredicateExpression` invokes a python callable
  once for each row, receiving the row as a ``{column: value}`` dict.
  It's much slower, but allows arbitrary python logic.
"""

from typing import Any, Callable

import pyarrow as pa

from .. import utils
from .base import INDEX_COLUMN, Expression


def apply_expression_if_needed(batch: pa.RecordBatch, o: Expression | Any) -> Any:
    """Invoke Apply on expressions when needed

    If the provided object is an Expression,
    it will be applied to the target batch.

    Otherwise it will treat it as if it's
    already the result of an expression
    or a literal value.

    This allows us to apply all arguments
    we receive without having to care if
    they are the data we need or if they
    are the expression resulting in that data.
    """
    if isinstance(o, Expression):
        o = o.apply(batch)
    return o


class FunctionCallExpression(Expression):
    """Call a compute function on its arguments.

    Given a compute function, and a set of arguments
    (other expressions, literals or data), execute
    the function on the provided arguments and return
    the resulting data.

    Keyword arguments are forwarded unchanged to the function,
    which allows to provide options to compute functions.

    >>> import pyarrow as pa
    >>> import pyarrow.compute as pc
    >>> from statground.compute import col
    >>> batch = pa.record_batch({"a": [1, None, 3]})
    >>> FunctionCallExpression(pc.is_null, col("a"), nan_is_null=True).apply(batch).to_pylist()
    [False, True, False]
    """

    def __init__(self, func: Callable, *args: Expression | Any, **options: Any) -> None:
        """
        :param func: The function accepting the arguments.
        :param args: The arguments for the function.
        :param options: Keyword arguments for the function.
        """
        self.func = func
        self.args = args
        self.options = options

    def __str__(self) -> str:
        func_qualname = utils.inspect.get_qualname(self.func)
        return f"{func_qualname}({','.join(map(str, self.args))})"

    def apply(self, batch: pa.RecordBatch) -> pa.Array:
        """Invoke the function resolving all arguments on the recordbatch.

        When the function arguments are expressions themselves,
        this will apply the expressions on the provided recordbatch
        and the resulting data will be used as the arguments for the
        function.
        """
        args = tuple(apply_expression_if_needed(batch, arg) for arg in self.args)
        return self.func(*args, **self.options)


class RowPredicateExpression(Expression):
    """Evaluate a python callable on each row of the batch.

    The callable receives a ``{column: value}`` dictionary
    for every row and its truthiness decides if the row matches.
    The row labels are not part of the record provided to the callable.

    >>> import pyarrow as pa
    >>> batch = pa.record_batch({"age": [17, 25, 40]})
    >>> RowPredicateExpression(lambda row: row["age"] >= 18).apply(batch).to_pylist()
    [False, True, True]
    """

    def __init__(self, predicate: Callable[[dict[str, Any]], Any]) -> None:
        """
        :param predicate: The callable invoked for each row.
        """
        self.predicate = predicate

    def __str__(self) -> str:
        return f"RowPredicate({utils.inspect.get_qualname(self.predicate)})"

    def apply(self, batch: pa.RecordBatch) -> pa.Array:
        num_rows = batch.num_rows
        if INDEX_COLUMN in batch.schema.names:
            batch = batch.drop_columns([INDEX_COLUMN])
        if batch.num_columns == 0:
            # Rows without columns, the predicate sees empty records.
            rows = [{} for _ in range(num_rows)]
        else:
            rows = batch.to_pylist()
        return pa.array([bool(self.predicate(row)) for row in rows], type=pa.bool_())
