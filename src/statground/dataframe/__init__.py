"""Labeled data containers built on top of the statground compute engine.

A dataframe library is a tool designed to handle and manipulate structured data,
typically in the form of tables (i.e., rows and columns).
It allows users to explore data, apply transformations, and analyze it.

statground provides two containers:

* :class:`LabeledVector`, a sequence of values of the same kind,
  each identified by a label.
* :class:`LabeledTable`, a set of named columns sharing the same row labels.

Values are stored in :mod:`pyarrow` arrays, and the relational
operations of tables (filtering, sorting, joining...) are executed
by building query plans of :mod:`statground.compute` nodes.

>>> from statground.dataframe import LabeledTable
>>> table = LabeledTable({"category": ["A", "B", "A", "B", "A"], "value": [1, 2, 3, 4, 5]})
>>> groups = table.group_by(["category"])
>>> groups["A"]["value"].to_pylist(), len(groups["B"])
([1, 3, 5], 2)
"""

from .table import LabeledTable
from .vector import LabeledVector

__all__ = ("LabeledTable", "LabeledVector")
