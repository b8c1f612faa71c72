"""Build the TOC dependency graph and the final per-TOC models.

:class:`TocGraphBuilder` loads every TOC file of a docset in parallel, one
worker and one :class:`~docbuild.markup.RenderContext` per file, and records
which content files and TOC fragments each one references. Failures are
isolated per file: a file that cannot be loaded is reported against itself and
contributes an entry without edges, while the remaining files proceed.

:func:`build_toc` performs the final pass for a single TOC once monikers are
known for every file, producing the item tree annotated with monikers and the
effective TOC metadata.

Example
-------
>>> from docbuild.models import BuildContext, Document
>>> from docbuild.toc.graph import TocGraphBuilder
>>> graph = TocGraphBuilder().build(
...     BuildContext(), [Document("toc.md")], resolver
... )  # doctest: +SKIP
>>> graph[Document("toc.md")].documents  # doctest: +SKIP
(Document(path='index.md'),)
"""

from __future__ import annotations

import logging
import threading
import typing as typ
from concurrent.futures import ThreadPoolExecutor

from docbuild import errors
from docbuild.errors import DocBuildError, RenderStateError

from .loader import TocLoader
from .models import TocBuildResult, TocGraph, TocGraphEntry, TocModel

if typ.TYPE_CHECKING:
    import collections.abc as cabc

    from docbuild.models import (
        BuildContext,
        ContentResolver,
        Document,
        MetadataProvider,
        MonikerMap,
        MonikerProvider,
    )

logger = logging.getLogger(__name__)


class _TocGraphAccumulator:
    """Lock-protected collection of graph entries written by workers."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._entries: dict[Document, TocGraphEntry] = {}

    def add(
        self,
        file: Document,
        documents: cabc.Iterable[Document] = (),
        tocs: cabc.Iterable[Document] = (),
    ) -> None:
        entry = TocGraphEntry(tuple(documents), tuple(tocs))
        with self._lock:
            self._entries[file] = entry

    def freeze(self) -> TocGraph:
        with self._lock:
            return TocGraph(self._entries)


class TocGraphBuilder:
    """Load TOC files in parallel and collect their outgoing references."""

    def __init__(
        self, *, loader: TocLoader | None = None, max_workers: int | None = None
    ) -> None:
        """Create a builder.

        Parameters
        ----------
        loader : TocLoader, optional
            Loader used for every file; a default one is created when omitted.
        max_workers : int, optional
            Worker pool size; overrides ``BuildContext.max_workers``.
        """
        self.loader = loader
        self.max_workers = max_workers

    def build(
        self,
        context: BuildContext,
        toc_files: cabc.Iterable[Document],
        resolver: ContentResolver,
        moniker_provider: MonikerProvider | None = None,
    ) -> TocGraph:
        """Return the graph of every file in ``toc_files``.

        Parameters
        ----------
        context : BuildContext
            Receives per-file diagnostics.
        toc_files : Iterable[Document]
            TOC files to load; duplicates are loaded once.
        resolver : ContentResolver
            Reads the TOC files and resolves their references.
        moniker_provider : MonikerProvider, optional
            Passed to the loader; monikers are not assigned at this stage.

        Returns
        -------
        TocGraph
            One entry per input file, independent of the worker count.
        """
        files = list(dict.fromkeys(toc_files))
        accumulator = _TocGraphAccumulator()
        if not files:
            return accumulator.freeze()

        loader = self.loader or TocLoader(culture=context.culture)
        max_workers = self.max_workers or context.max_workers
        logger.debug("Loading %d TOC files", len(files))
        with ThreadPoolExecutor(max_workers=max_workers) as executor:
            futures = [
                executor.submit(
                    self._build_one,
                    context,
                    file,
                    loader,
                    accumulator,
                    resolver,
                    moniker_provider,
                )
                for file in files
            ]
            for future in futures:
                future.result()
        return accumulator.freeze()

    @staticmethod
    def _build_one(
        context: BuildContext,
        file: Document,
        loader: TocLoader,
        accumulator: _TocGraphAccumulator,
        resolver: ContentResolver,
        moniker_provider: MonikerProvider | None,
    ) -> None:
        """Load one file, reporting failures against it instead of raising."""
        try:
            content = resolver.read_text(file)
            result = loader.load(
                file,
                content,
                resolver,
                moniker_provider=moniker_provider,
            )
        except DocBuildError as exc:
            context.report(file, exc.error)
            accumulator.add(file)
            return
        except RenderStateError:
            raise
        except Exception as exc:  # noqa: BLE001
            logger.exception("Unexpected failure while loading %s", file)
            context.report(file, errors.unexpected_error(str(file), exc))
            accumulator.add(file)
            return
        context.report(file, result.errors)
        accumulator.add(file, result.referenced_documents, result.referenced_tocs)


def build_toc(
    context: BuildContext,
    file: Document,
    toc_graph: TocGraph,
    metadata_provider: MetadataProvider,
    moniker_provider: MonikerProvider,
    resolver: ContentResolver,
    moniker_map: MonikerMap,
    *,
    loader: TocLoader | None = None,
) -> TocBuildResult:
    """Build the final model of ``file`` once monikers are known.

    Files that are not in ``toc_graph`` produce an empty result. Otherwise the
    file is reloaded with ``moniker_map`` so its items carry monikers, its
    front matter is merged through ``metadata_provider`` and its file-level
    monikers are computed from the effective ``monikerRange``.

    Raises
    ------
    DocBuildError
        If the TOC file cannot be read.
    """
    if not toc_graph.contains(file):
        return TocBuildResult()

    loader = loader or TocLoader(culture=context.culture)
    result = loader.load(
        file,
        resolver.read_text(file),
        resolver,
        moniker_provider=moniker_provider,
        moniker_map=moniker_map,
    )
    found = list(result.errors)
    metadata = metadata_provider.get_metadata(file, result.metadata)
    moniker_error, monikers = moniker_provider.get_file_level_monikers(
        file, metadata.get("monikerRange")
    )
    if moniker_error is not None:
        found.append(moniker_error)
    metadata["monikers"] = list(monikers)
    return TocBuildResult(
        errors=tuple(found),
        model=TocModel(items=result.items, metadata=metadata),
        monikers=tuple(monikers),
    )


__all__ = ["TocGraphBuilder", "build_toc"]
