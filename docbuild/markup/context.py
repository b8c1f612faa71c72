"""Scoped render state shared between the renderer and markdown extensions.

A :class:`RenderContext` belongs to exactly one execution context (one worker
processing one file). Every render pushes a :class:`RenderJob` onto the
context's stack and pops it on exit, including when the parser raises. Markdown
extensions receive the context explicitly when their ``Markdown`` instance is
created and call back into it to read included files, resolve links and
cross-references, evaluate moniker ranges and look up localized tokens.

Includes render re-entrantly on the same context: the nested job shares the
root job's :class:`MarkupResult`, so diagnostics raised while rendering an
included file roll up into the top-level render.

Example
-------
>>> from docbuild.markup.context import RenderContext
>>> from docbuild.models import Document
>>> context = RenderContext()
>>> html, result = context.to_html(
...     "# Title", Document("index.md"), resolver
... )  # doctest: +SKIP
>>> result.title  # doctest: +SKIP
'Title'
"""

from __future__ import annotations

import contextlib
import dataclasses as dc
import logging
import typing as typ

from docbuild import errors
from docbuild._constants import DEFAULT_CULTURE
from docbuild.errors import DocBuildError, ErrorLevel, RenderStateError
from docbuild.models import DependencyType

from .pipelines import PipelineKind, default_registry
from .tokens import default_token_store

if typ.TYPE_CHECKING:
    import collections.abc as cabc
    from xml.etree.ElementTree import Element

    from docbuild.errors import Error
    from docbuild.models import (
        BuildChild,
        ContentResolver,
        Document,
        MonikerProvider,
        XrefResult,
    )

    from .pipelines import PipelineRegistry
    from .tokens import TokenStore

logger = logging.getLogger(__name__)


@dc.dataclass(slots=True)
class MarkupResult:
    """Everything a render produced besides the HTML itself.

    Attributes
    ----------
    errors : list[Error]
        Diagnostics in the order they were discovered.
    title : str or None
        Text of the extracted leading heading (document pipeline only).
    metadata : dict[str, Any]
        Front matter of the top-level file.
    tree : Element or None
        Parsed element tree captured by the TOC pipeline.
    """

    errors: list[Error] = dc.field(default_factory=list)
    title: str | None = None
    metadata: dict[str, typ.Any] = dc.field(default_factory=dict)
    tree: Element | None = None

    @property
    def has_title(self) -> bool:
        """Whether a leading heading was extracted."""
        return self.title is not None


@dc.dataclass(slots=True)
class RenderJob:
    """State of one render call on a :class:`RenderContext` stack."""

    content: str
    kind: PipelineKind
    file: Document
    culture: str
    resolver: ContentResolver
    result: MarkupResult
    moniker_provider: MonikerProvider | None = None
    build_child: BuildChild | None = None
    depth: int = 0


@dc.dataclass(frozen=True, slots=True)
class RenderHandle:
    """Token returned by :meth:`RenderContext.begin_render`."""

    job: RenderJob

    @property
    def result(self) -> MarkupResult:
        """Diagnostics sink shared with the top-level render."""
        return self.job.result


class RenderContext:
    """Per-execution-context stack of render jobs."""

    def __init__(
        self,
        *,
        culture: str = DEFAULT_CULTURE,
        registry: PipelineRegistry | None = None,
        tokens: TokenStore | None = None,
    ) -> None:
        """Create an empty context.

        Parameters
        ----------
        culture : str, optional
            Culture used by top-level renders and token lookups.
        registry : PipelineRegistry, optional
            Pipeline configurations; defaults to the process-wide registry.
        tokens : TokenStore, optional
            Localized token store; defaults to the packaged tokens.
        """
        self.culture = culture
        self.registry = registry or default_registry()
        self.tokens = tokens or default_token_store()
        self._stack: list[RenderJob] = []

    # -- stack management -------------------------------------------------

    def begin_render(
        self,
        content: str,
        kind: PipelineKind,
        file: Document,
        resolver: ContentResolver | None = None,
        *,
        moniker_provider: MonikerProvider | None = None,
        build_child: BuildChild | None = None,
    ) -> RenderHandle:
        """Push a render job and return the handle that ends it.

        Nested calls inherit the resolver, moniker provider, build callback
        and culture of the enclosing job and share its result.

        Raises
        ------
        RenderStateError
            If a top-level render is started without a resolver.
        """
        if self._stack:
            outer = self._stack[-1]
            job = RenderJob(
                content=content,
                kind=kind,
                file=file,
                culture=outer.culture,
                resolver=resolver or outer.resolver,
                result=self._stack[0].result,
                moniker_provider=moniker_provider or outer.moniker_provider,
                build_child=build_child or outer.build_child,
                depth=len(self._stack),
            )
        else:
            if resolver is None:
                msg = "A top-level render requires a content resolver."
                raise RenderStateError(msg)
            job = RenderJob(
                content=content,
                kind=kind,
                file=file,
                culture=self.culture,
                resolver=resolver,
                result=MarkupResult(),
                moniker_provider=moniker_provider,
                build_child=build_child,
            )
        self._stack.append(job)
        return RenderHandle(job)

    def end_render(self, handle: RenderHandle) -> MarkupResult:
        """Pop the job started by ``handle`` and return its result.

        Raises
        ------
        RenderStateError
            If ``handle`` is not the innermost active render.
        """
        if not self._stack or self._stack[-1] is not handle.job:
            msg = f"Render for '{handle.job.file}' is not the innermost active render."
            raise RenderStateError(msg)
        self._stack.pop()
        return handle.job.result

    @contextlib.contextmanager
    def rendering(
        self,
        content: str,
        kind: PipelineKind,
        file: Document,
        resolver: ContentResolver | None = None,
        *,
        moniker_provider: MonikerProvider | None = None,
        build_child: BuildChild | None = None,
    ) -> cabc.Iterator[RenderHandle]:
        """Scope a render job to a ``with`` block."""
        handle = self.begin_render(
            content,
            kind,
            file,
            resolver,
            moniker_provider=moniker_provider,
            build_child=build_child,
        )
        try:
            yield handle
        finally:
            self.end_render(handle)

    @property
    def depth(self) -> int:
        """Number of active (possibly nested) renders."""
        return len(self._stack)

    @property
    def active(self) -> bool:
        """Whether a render is in progress on this context."""
        return bool(self._stack)

    @property
    def current_job(self) -> RenderJob:
        """Innermost active job.

        Raises
        ------
        RenderStateError
            If no render is active.
        """
        if not self._stack:
            msg = "No render is active on this context."
            raise RenderStateError(msg)
        return self._stack[-1]

    @property
    def result(self) -> MarkupResult:
        """Result shared by every job of the active render."""
        return self.current_job.result

    @property
    def diagnostics(self) -> list[Error]:
        """Diagnostics sink of the active render."""
        return self.current_job.result.errors

    @property
    def current_file(self) -> Document:
        """File being rendered by the innermost job (the included file)."""
        return self.current_job.file

    @property
    def root_file(self) -> Document:
        """File that started the top-level render."""
        if not self._stack:
            msg = "No render is active on this context."
            raise RenderStateError(msg)
        return self._stack[0].file

    # -- rendering --------------------------------------------------------

    def to_html(
        self,
        content: str,
        file: Document,
        resolver: ContentResolver,
        kind: PipelineKind = PipelineKind.DOCUMENT,
        *,
        moniker_provider: MonikerProvider | None = None,
        build_child: BuildChild | None = None,
    ) -> tuple[str, MarkupResult]:
        """Render ``content`` to HTML as a top-level render of ``file``."""
        with self.rendering(
            content,
            kind,
            file,
            resolver,
            moniker_provider=moniker_provider,
            build_child=build_child,
        ) as handle:
            html = self._convert(handle.job)
            if kind is PipelineKind.DOCUMENT and not handle.result.has_title:
                handle.result.errors.append(errors.heading_not_found(str(file)))
        return html, handle.result

    def parse(
        self,
        content: str,
        file: Document,
        resolver: ContentResolver,
        kind: PipelineKind = PipelineKind.TOC,
    ) -> MarkupResult:
        """Parse ``content`` and return the result carrying the element tree."""
        with self.rendering(content, kind, file, resolver) as handle:
            self._convert(handle.job)
        return handle.result

    def render_nested(
        self, content: str, file: Document, kind: PipelineKind | None = None
    ) -> str:
        """Render included ``content`` on this context's stack.

        Including a file that is already being rendered reports a
        ``circular-reference`` error and renders nothing.
        """
        chain = [job.file for job in self._stack]
        if file in chain:
            names = [str(item) for item in (*chain, file)]
            self.diagnostics.append(
                errors.circular_reference(str(self.current_file), names)
            )
            return ""
        with self.rendering(content, kind or self.current_job.kind, file) as handle:
            return self._convert(handle.job)

    def _convert(self, job: RenderJob) -> str:
        md = self.registry.get(job.kind).create(self)
        return md.convert(job.content)

    # -- callbacks used by markdown extensions ----------------------------

    def read_file(
        self, path: str, relative_to: Document
    ) -> tuple[str | None, Document | None]:
        """Resolve an include target; errors go to the active diagnostics."""
        job = self.current_job
        error, content, file = job.resolver.resolve_content(
            path, relative_to, DependencyType.INCLUSION
        )
        self._append(error)
        return content, file

    def get_link(
        self, path: str, relative_to: Document, result_relative_to: Document
    ) -> str | None:
        """Resolve a link target; returns ``None`` when it cannot be resolved."""
        job = self.current_job
        error, href, _ = job.resolver.resolve_link(
            path, relative_to, result_relative_to, job.build_child
        )
        self._append(error)
        return href or None

    def resolve_xref(self, uid: str) -> XrefResult:
        """Resolve a cross-reference against the current and root files."""
        result = self.current_job.resolver.resolve_xref(
            uid, self.current_file, self.root_file
        )
        self._append(result.error)
        return result

    def parse_moniker_range(self, expression: str) -> list[str]:
        """Evaluate a moniker range; without a provider nothing is selected.

        An invalid expression is reported on the active diagnostics and
        selects nothing.
        """
        provider = self.current_job.moniker_provider
        if provider is None:
            return []
        try:
            return provider.parse_range(expression)
        except DocBuildError as exc:
            self.diagnostics.append(exc.error.with_file(str(self.current_file)))
            return []

    def get_token(self, key: str) -> str | None:
        """Return a localized token for the active culture, if any."""
        return self.tokens.lookup(self.current_job.culture, key)

    def log_warning(self, code: str, message: str, line: int = 0) -> None:
        """Append a warning attributed to the file being rendered."""
        self._log(ErrorLevel.WARNING, code, message, line)

    def log_error(self, code: str, message: str, line: int = 0) -> None:
        """Append an error attributed to the file being rendered."""
        self._log(ErrorLevel.ERROR, code, message, line)

    def _log(self, level: ErrorLevel, code: str, message: str, line: int) -> None:
        self.diagnostics.append(
            errors.Error(level, code, message, str(self.current_file), line)
        )

    def _append(self, error: Error | None) -> None:
        if error is not None:
            self.diagnostics.append(error)


__all__ = ["MarkupResult", "RenderContext", "RenderHandle", "RenderJob"]
