"""statground

An in-memory engine for labeled tabular data and statistics.

The library is constituted by multiple components, each isolated within its own
package and each self documented in literate programming style.

The primary components are:

* The Compute Engine (:mod:`statground.compute`), in charge of executing
  query plans over :mod:`pyarrow` data.
* The Dataframe API (:mod:`statground.dataframe`), which provides labeled
  vectors and tables whose relational operations run on the compute engine.
* The Statistics layer (:mod:`statground.stats`), which provides math
  operations on tables and statistical inference.

Every failure is reported with one of the exceptions in :mod:`statground.errors`.

>>> from statground import LabeledTable
>>> table = LabeledTable({"a": [1, 2, 3, 4, 5], "b": [2, 4, 6, 8, 10]})
>>> table["a"].sum(), table["a"].mean()
(15, 3.0)
>>> round(table.corr().loc("a")["b"], 6)
1.0

For the user guide and code documentation of each component, refer to the
component itself.
"""

from . import compute, errors, stats
from .dataframe import LabeledTable, LabeledVector

__all__ = ("compute", "errors", "stats", "LabeledTable", "LabeledVector")
