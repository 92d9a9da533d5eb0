"""Errors raised by statground.

Every failure is reported with a dedicated exception class
so that callers can handle a specific category of problem.

Each class also inherits from the builtin exception that
most closely matches its meaning, so code written as
``except KeyError`` keeps working when a column is missing
and ``except ValueError`` catches a length mismatch.

>>> from statground import LabeledTable
>>> from statground.errors import ColumnNotFoundError
>>> try:
...     LabeledTable({"a": [1, 2]})["b"]
... except KeyError as e:
...     print(type(e).__name__)
ColumnNotFoundError
"""


class StatgroundError(Exception):
    """Base class for all the errors raised by statground."""


class LengthMismatchError(StatgroundError, ValueError):
    """Sequences that are required to be aligned have different lengths."""


class ColumnNotFoundError(StatgroundError, KeyError):
    """The requested column does not exist in the table."""


class LabelNotFoundError(StatgroundError, KeyError):
    """No element or row is identified by the requested label."""


class IndexOutOfRangeError(StatgroundError, IndexError):
    """A positional access went past the bounds of the data."""


class UnsupportedTypeError(StatgroundError, TypeError):
    """The operation does not support the element kind of the data."""


class EmptyCollectionError(StatgroundError, ValueError):
    """The operation is undefined on an empty collection."""


class InsufficientDataError(StatgroundError, ValueError):
    """A statistical procedure received fewer values than it needs."""


class UnsupportedJoinTypeError(StatgroundError, ValueError):
    """Requested a join type other than inner, left or right."""


class UnsupportedAggregationMethodError(StatgroundError, ValueError):
    """Requested an unknown statistical method (correlation, normality test...)."""
