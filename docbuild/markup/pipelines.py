"""Named markdown pipeline configurations.

A pipeline is an immutable description of which Python-Markdown extensions a
render enables. :meth:`PipelineConfig.create` instantiates a fresh
``markdown.Markdown`` bound to a render context for every render, since
``Markdown`` instances carry per-conversion state and must not be shared
between threads.

The four pipelines are built eagerly when a :class:`PipelineRegistry` is
constructed; :func:`default_registry` creates the process-wide instance once.
"""

from __future__ import annotations

import dataclasses as dc
import threading
import typing as typ
from types import MappingProxyType

from markdown import Markdown

from . import extensions as ext
from .kinds import PipelineKind

if typ.TYPE_CHECKING:
    from markdown.extensions import Extension

    from .context import RenderContext

ContextExtensionFactory = typ.Callable[["RenderContext"], "Extension"]


_BLOCK_EXTENSIONS: tuple[str, ...] = (
    "fenced_code",
    "codehilite",
    "tables",
    "sane_lists",
)
_CODEHILITE_CONFIG: typ.Mapping[str, typ.Any] = {
    "codehilite": {
        "linenums": False,
        "guess_lang": False,
        "css_class": "codehilite",
    }
}


@dc.dataclass(frozen=True, slots=True)
class PipelineConfig:
    """Immutable recipe for a ``Markdown`` instance.

    Attributes
    ----------
    kind : PipelineKind
        Pipeline identity.
    builtin_extensions : tuple[str, ...]
        Names of Python-Markdown extensions enabled by this pipeline.
    context_extensions : tuple[ContextExtensionFactory, ...]
        Factories for docbuild extensions that call back into the render
        context; applied in order before the builtin extensions.
    extension_configs : Mapping[str, Any]
        Configuration passed to the builtin extensions.
    """

    kind: PipelineKind
    builtin_extensions: tuple[str, ...]
    context_extensions: tuple[ContextExtensionFactory, ...]
    extension_configs: typ.Mapping[str, typ.Any] = dc.field(
        default_factory=lambda: MappingProxyType({})
    )

    def create(self, context: RenderContext) -> Markdown:
        """Return a new ``Markdown`` instance bound to ``context``."""
        extensions: list[Extension | str] = [
            factory(context) for factory in self.context_extensions
        ]
        extensions.extend(self.builtin_extensions)
        return Markdown(
            extensions=extensions,
            extension_configs={
                key: dict(value) for key, value in self.extension_configs.items()
            },
            output_format="html",
        )


def _document_pipeline() -> PipelineConfig:
    return PipelineConfig(
        kind=PipelineKind.DOCUMENT,
        builtin_extensions=_BLOCK_EXTENSIONS,
        context_extensions=(
            ext.FrontMatterExtension,
            ext.IncludeExtension,
            ext.InlineIncludeExtension,
            ext.MonikerZoneExtension,
            ext.NoteBlockExtension,
            ext.TitleExtension,
            ext.XrefExtension,
            ext.LinkResolverExtension,
        ),
        extension_configs=MappingProxyType(dict(_CODEHILITE_CONFIG)),
    )


def _plain_pipeline() -> PipelineConfig:
    return PipelineConfig(
        kind=PipelineKind.PLAIN,
        builtin_extensions=_BLOCK_EXTENSIONS,
        context_extensions=(
            ext.FrontMatterExtension,
            ext.IncludeExtension,
            ext.InlineIncludeExtension,
            ext.NoteBlockExtension,
            ext.XrefExtension,
            ext.LinkResolverExtension,
        ),
        extension_configs=MappingProxyType(dict(_CODEHILITE_CONFIG)),
    )


def _inline_pipeline() -> PipelineConfig:
    return PipelineConfig(
        kind=PipelineKind.INLINE,
        builtin_extensions=(),
        context_extensions=(
            ext.InlineOnlyExtension,
            ext.FrontMatterExtension,
            ext.InlineIncludeExtension,
            ext.XrefExtension,
            ext.LinkResolverExtension,
        ),
    )


def _toc_pipeline() -> PipelineConfig:
    return PipelineConfig(
        kind=PipelineKind.TOC,
        builtin_extensions=(),
        context_extensions=(
            ext.TocOnlyExtension,
            ext.FrontMatterExtension,
            ext.XrefSyntaxExtension,
            ext.TreeCaptureExtension,
        ),
    )


class PipelineRegistry:
    """Read-only lookup of the pipeline configurations."""

    def __init__(self) -> None:
        pipelines = (
            _document_pipeline(),
            _plain_pipeline(),
            _inline_pipeline(),
            _toc_pipeline(),
        )
        self._pipelines: typ.Mapping[PipelineKind, PipelineConfig] = MappingProxyType(
            {pipeline.kind: pipeline for pipeline in pipelines}
        )

    def get(self, kind: PipelineKind) -> PipelineConfig:
        """Return the configuration registered for ``kind``."""
        return self._pipelines[kind]

    def __iter__(self) -> typ.Iterator[PipelineConfig]:
        return iter(self._pipelines.values())


_registry: PipelineRegistry | None = None
_registry_lock = threading.Lock()


def default_registry() -> PipelineRegistry:
    """Return the process-wide registry, building it on first use."""
    global _registry  # noqa: PLW0603
    if _registry is None:
        with _registry_lock:
            if _registry is None:
                _registry = PipelineRegistry()
    return _registry


__all__ = [
    "PipelineConfig",
    "PipelineKind",
    "PipelineRegistry",
    "default_registry",
]
