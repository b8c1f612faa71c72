"""Documentation build core: scoped markdown rendering and TOC graphs.

This package renders markdown through explicit, per-worker render contexts and
builds the dependency graph of a docset's table-of-contents files in parallel.

Exports
-------
- ``app``: Cyclopts application entry for subcommands.
- ``main``: Convenience function that invokes the Cyclopts app.
- ``RenderContext``: scoped markdown renderer.
- ``TocGraphBuilder`` / ``build_toc``: TOC graph and final TOC models.

Examples
--------
>>> from docbuild import main
>>> main()  # doctest: +SKIP
>>> from docbuild import app
>>> app(["toc-graph", "--json"])  # doctest: +SKIP
"""

from __future__ import annotations

from .cli import app, main
from .markup import RenderContext
from .models import BuildContext, Document
from .toc import TocGraphBuilder, build_toc

__all__ = [
    "BuildContext",
    "Document",
    "RenderContext",
    "TocGraphBuilder",
    "app",
    "build_toc",
    "main",
]
