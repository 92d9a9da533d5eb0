"""Statistics on top of statground tables.

The statistics layer is made of three modules:

* :mod:`statground.stats.mathops` computes new tables out of the
  columns of a :class:`statground.LabeledTable`: arithmetic,
  rolling and cumulative transformations, correlation matrices...
* :mod:`statground.stats.inference` performs hypothesis tests,
  regressions and estimations on samples of data.
* :mod:`statground.stats.special` provides the probability
  distributions the tests rely on.

>>> from statground import LabeledTable
>>> from statground.stats import inference
>>> table = LabeledTable({"x": [1, 2, 3, 4, 5], "y": [2, 4, 6, 8, 10]})
>>> round(inference.correlation_test(table["x"], table["y"]).correlation, 6)
1.0
"""

from . import inference, mathops, special

__all__ = ("inference", "mathops", "special")
