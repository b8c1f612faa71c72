"""Table-of-contents loading and dependency graph construction.

Exports
-------
- ``TocLoader``: load one TOC file (markdown or YAML) into an item tree.
- ``TocGraphBuilder``: load every TOC in parallel into a ``TocGraph``.
- ``build_toc``: final moniker-aware build of one TOC.
"""

from .graph import TocGraphBuilder, build_toc
from .loader import TocLoader
from .models import (
    TocBuildResult,
    TocFileResult,
    TocGraph,
    TocGraphEntry,
    TocItem,
    TocModel,
)

__all__ = [
    "TocBuildResult",
    "TocFileResult",
    "TocGraph",
    "TocGraphBuilder",
    "TocGraphEntry",
    "TocItem",
    "TocLoader",
    "TocModel",
    "build_toc",
]
