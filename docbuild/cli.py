"""Cyclopts CLI entrypoint for inspecting and building a docset.

The ``docbuild`` console script reads ``docbuild.yml``, wires the filesystem
resolver, moniker and metadata providers described there, and exposes the
build stages individually: ``toc-graph`` loads every TOC file in parallel and
prints the references each one makes, ``toc`` builds the final moniker-aware
model of one TOC, and ``render`` converts one markdown file to HTML. Every
diagnostic is printed to stderr; ``--strict`` turns errors into a non-zero exit
status.

Examples
--------
Print the TOC graph of the docset configured in ``docbuild.yml``:

>>> from docbuild.cli import main
>>> main()  # doctest: +SKIP

Render one file with a custom configuration:

>>> from docbuild.cli import app
>>> app(["render", "articles/intro.md", "--config", "site/docbuild.yml"])  # doctest: +SKIP
"""

from __future__ import annotations

import dataclasses as dc
import json
import logging
import sys
import typing as typ
from pathlib import Path

import cyclopts
from cyclopts import App, Parameter

from ._constants import DEFAULT_CONFIG_NAME
from .config import BuildConfig, load_build_config
from .errors import DocBuildError
from .markup import PipelineKind, RenderContext, TokenStore
from .metadata import DictMetadataProvider
from .models import BuildContext, Document
from .monikers import OrderedMonikerProvider
from .resolver import FileSystemResolver, load_xref_map
from .toc import TocGraphBuilder, TocLoader, build_toc

if typ.TYPE_CHECKING:
    from .toc import TocGraph

DEFAULT_CONFIG = Path(DEFAULT_CONFIG_NAME)
RENDER_KINDS = {
    "document": PipelineKind.DOCUMENT,
    "plain": PipelineKind.PLAIN,
    "inline": PipelineKind.INLINE,
}

app = App(name="docbuild", config=cyclopts.config.Env("DOCBUILD_", command=False))  # type: ignore[unknown-argument]

ConfigOption = typ.Annotated[
    Path, Parameter(help="Path to the build config", env_var="DOCBUILD_CONFIG")
]
VerboseOption = typ.Annotated[bool, Parameter(help="Log debug output to stderr")]
StrictOption = typ.Annotated[
    bool, Parameter(help="Exit with status 1 when any error is reported")
]


@dc.dataclass(slots=True)
class _Environment:
    """Collaborators assembled from one configuration file."""

    config: BuildConfig
    context: BuildContext
    resolver: FileSystemResolver
    monikers: OrderedMonikerProvider
    metadata: DictMetadataProvider
    tokens: TokenStore | None

    def loader(self) -> TocLoader:
        return TocLoader(culture=self.config.culture, tokens=self.tokens)

    def build_graph(self) -> TocGraph:
        builder = TocGraphBuilder(loader=self.loader())
        return builder.build(
            self.context, self.resolver.toc_files(), self.resolver, self.monikers
        )


def _setup_logging(verbose: bool) -> None:
    """Configure root logging for the requested verbosity."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


def _environment(config_path: Path) -> _Environment:
    """Load ``config_path`` and build the collaborators it describes."""
    config = load_build_config(config_path)
    xref_map = load_xref_map(config.xref_map) if config.xref_map else None
    return _Environment(
        config=config,
        context=BuildContext(culture=config.culture, max_workers=config.max_workers),
        resolver=FileSystemResolver(config.docset_root, xref_map=xref_map),
        monikers=OrderedMonikerProvider(config.monikers, config.moniker_ranges),
        metadata=DictMetadataProvider(config.global_metadata, culture=config.culture),
        tokens=TokenStore(config.tokens_dir) if config.tokens_dir else None,
    )


def _finish(env: _Environment, *, strict: bool) -> None:
    """Print collected diagnostics and honour ``strict``."""
    log = env.context.errors
    for error in log.all():
        print(error, file=sys.stderr)
    if log.error_count or log.warning_count:
        print(
            f"{log.error_count} error(s), {log.warning_count} warning(s)",
            file=sys.stderr,
        )
    if strict and log.error_count:
        raise SystemExit(1)


def _dump(payload: object) -> None:
    print(json.dumps(payload, indent=2, default=str))


@app.command(help="Load every TOC file and print the files each one references.")
def toc_graph(
    *,
    config: ConfigOption = DEFAULT_CONFIG,
    as_json: typ.Annotated[
        bool, Parameter(name="--json", help="Print the graph as JSON")
    ] = False,
    verbose: VerboseOption = False,
    strict: StrictOption = False,
) -> None:
    """Build and print the TOC dependency graph of the configured docset.

    Parameters
    ----------
    config : Path, optional
        Path to ``docbuild.yml`` (overridable via ``DOCBUILD_CONFIG``).
    as_json : bool, optional
        Emit ``{toc: {"documents": [...], "tocs": [...]}}`` instead of one
        ``toc -> target`` line per edge.
    verbose : bool, optional
        Enable debug logging.
    strict : bool, optional
        Exit with status 1 when an error-level diagnostic was reported.
    """
    _setup_logging(verbose)
    env = _environment(config)
    graph = env.build_graph()
    if as_json:
        _dump(graph.to_dict())
    else:
        for toc_file, entry in graph.items():
            print(f"{toc_file}: {len(entry.documents)} documents, {len(entry.tocs)} tocs")
            for target in (*entry.documents, *entry.tocs):
                print(f"  -> {target}")
    _finish(env, strict=strict)


@app.command(help="Build the final, moniker-aware model of one TOC file.")
def toc(
    file: typ.Annotated[str, Parameter(help="Docset-relative path of the TOC")],
    *,
    config: ConfigOption = DEFAULT_CONFIG,
    verbose: VerboseOption = False,
    strict: StrictOption = False,
) -> None:
    """Print the item tree and metadata of ``file`` as JSON.

    The whole TOC graph is built first so that TOC files which are only ever
    included elsewhere still resolve; monikers of content files come from the
    configured ``moniker_ranges``.
    """
    _setup_logging(verbose)
    env = _environment(config)
    target = Document(file)
    graph = env.build_graph()
    moniker_map = env.monikers.build_moniker_map(env.resolver.documents())
    result = build_toc(
        env.context,
        target,
        graph,
        env.metadata,
        env.monikers,
        env.resolver,
        moniker_map,
        loader=env.loader(),
    )
    env.context.report(target, result.errors)
    if result.model is None:
        print(f"{target} is not a TOC file of this docset.", file=sys.stderr)
        _finish(env, strict=strict)
        raise SystemExit(1)
    _dump(
        {
            "items": [item.to_dict() for item in result.model.items],
            "metadata": dict(result.model.metadata),
            "monikers": list(result.monikers),
        }
    )
    _finish(env, strict=strict)


@app.command(help="Render one markdown file to HTML.")
def render(
    file: typ.Annotated[str, Parameter(help="Docset-relative path of the file")],
    *,
    config: ConfigOption = DEFAULT_CONFIG,
    kind: typ.Annotated[
        typ.Literal["document", "plain", "inline"],
        Parameter(help="Markdown pipeline to render with"),
    ] = "document",
    verbose: VerboseOption = False,
    strict: StrictOption = False,
) -> None:
    """Print the HTML of ``file``; the extracted title goes to stderr."""
    _setup_logging(verbose)
    env = _environment(config)
    target = Document(file)
    try:
        content = env.resolver.read_text(target)
    except DocBuildError as exc:
        env.context.report(target, exc.error)
        _finish(env, strict=strict)
        raise SystemExit(1) from exc
    context = RenderContext(culture=env.config.culture, tokens=env.tokens)
    html, result = context.to_html(
        content,
        target,
        env.resolver,
        RENDER_KINDS[kind],
        moniker_provider=env.monikers,
    )
    env.context.report(target, result.errors)
    if result.title is not None:
        print(f"title: {result.title}", file=sys.stderr)
    print(html)
    _finish(env, strict=strict)


def main() -> None:
    """Invoke the Cyclopts application that powers the ``docbuild`` command.

    Examples
    --------
    >>> main()  # doctest: +SKIP
    """
    app()


if __name__ == "__main__":  # pragma: no cover - manual invocation helper
    main()
