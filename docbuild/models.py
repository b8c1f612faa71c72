"""Shared value types and collaborator contracts.

The render context and the TOC loader never touch the filesystem themselves:
everything crossing a file boundary goes through a :class:`ContentResolver`
injected by the caller. Resolver operations return tagged outcomes
(``ContentResult``, ``LinkResult``, ``XrefResult``) whose ``error`` member is
``None`` on success; they never raise for expected failures.
"""

from __future__ import annotations

import dataclasses as dc
import enum
import posixpath
import typing as typ
from urllib.parse import urlsplit

from ._constants import DEFAULT_CULTURE, TOC_FILE_NAMES, XREF_SCHEME, YAML_TOC_SUFFIXES
from .errors import ErrorLog

if typ.TYPE_CHECKING:
    import collections.abc as cabc

    from .errors import Error


@dc.dataclass(frozen=True, slots=True, order=True)
class Document:
    """Identity of a file inside a docset, as a normalised posix path."""

    path: str

    def __post_init__(self) -> None:
        normalized = posixpath.normpath(self.path.replace("\\", "/")).lstrip("/")
        object.__setattr__(self, "path", normalized)

    @property
    def name(self) -> str:
        """Final path component."""
        return posixpath.basename(self.path)

    @property
    def directory(self) -> str:
        """Docset-relative directory containing the file ("" for the root)."""
        return posixpath.dirname(self.path)

    @property
    def is_toc(self) -> bool:
        """Whether the file name marks a table-of-contents file."""
        return self.name.lower() in TOC_FILE_NAMES

    @property
    def is_yaml(self) -> bool:
        """Whether the file holds YAML rather than markdown."""
        return posixpath.splitext(self.name)[1].lower() in YAML_TOC_SUFFIXES

    def __str__(self) -> str:
        return self.path


def is_local_href(target: str | None) -> bool:
    """Return whether ``target`` is a docset-relative path worth resolving."""
    if not target:
        return False
    lower = target.lower()
    if lower.startswith(
        ("http://", "https://", "mailto:", "tel:", "data:", "javascript:", XREF_SCHEME)
    ):
        return False
    if target.startswith(("#", "//")) or "://" in target:
        return False
    parsed = urlsplit(target)
    return not (parsed.scheme or parsed.netloc or not parsed.path)


def is_toc_href(target: str | None) -> bool:
    """Return whether ``target`` points at a table-of-contents file."""
    if not is_local_href(target):
        return False
    path = urlsplit(typ.cast("str", target)).path
    return posixpath.basename(path).lower() in TOC_FILE_NAMES


class DependencyType(enum.Enum):
    """Why one file pulls in the content of another."""

    INCLUSION = "inclusion"
    TOC_INCLUSION = "toc-inclusion"


class ContentResult(typ.NamedTuple):
    """Outcome of resolving a path to file content."""

    error: Error | None
    content: str | None
    file: Document | None


class LinkResult(typ.NamedTuple):
    """Outcome of resolving a path to a navigable href."""

    error: Error | None
    href: str | None
    file: Document | None


class XrefResult(typ.NamedTuple):
    """Outcome of resolving a cross-reference uid."""

    error: Error | None
    href: str | None
    display: str | None
    file: Document | None


BuildChild = typ.Callable[[Document], None]


class ContentResolver(typ.Protocol):
    """Resolve cross-file references on behalf of the renderer and TOC loader."""

    def read_text(self, file: Document) -> str:
        """Return the content of ``file``; raise ``DocBuildError`` when unreadable."""
        ...

    def resolve_content(
        self, path: str, relative_to: Document, dependency_type: DependencyType
    ) -> ContentResult:
        """Resolve ``path`` relative to ``relative_to`` and return its content."""
        ...

    def resolve_link(
        self,
        path: str,
        relative_to: Document,
        result_relative_to: Document,
        build_child: BuildChild | None = None,
    ) -> LinkResult:
        """Resolve ``path`` into an href relative to ``result_relative_to``."""
        ...

    def resolve_xref(
        self, uid: str, file: Document, root_file: Document
    ) -> XrefResult:
        """Resolve a cross-reference uid seen in ``file`` (rendered for ``root_file``)."""
        ...


class MonikerProvider(typ.Protocol):
    """Evaluate moniker range expressions."""

    def parse_range(self, expression: str) -> list[str]:
        """Return the ordered monikers selected by ``expression``."""
        ...

    def get_file_level_monikers(
        self, file: Document, declared_range: str | None
    ) -> tuple[Error | None, list[str]]:
        """Return the monikers applicable to ``file`` given its declared range."""
        ...


class MetadataProvider(typ.Protocol):
    """Produce the effective metadata of a file."""

    def get_metadata(
        self, file: Document, inline_metadata: cabc.Mapping[str, typ.Any]
    ) -> dict[str, typ.Any]:
        """Merge ``inline_metadata`` with whatever applies to ``file`` globally."""
        ...


MonikerMap = typ.Mapping[Document, typ.Sequence[str]]


@dc.dataclass(slots=True)
class BuildContext:
    """Build-wide state shared by every worker.

    Attributes
    ----------
    culture : str
        Culture used when rendering and looking up localized tokens.
    errors : ErrorLog
        Thread-safe sink receiving per-file diagnostics.
    max_workers : int or None
        Worker pool size for parallel stages; ``None`` lets the executor
        choose.
    """

    culture: str = DEFAULT_CULTURE
    errors: ErrorLog = dc.field(default_factory=ErrorLog)
    max_workers: int | None = None

    def report(self, file: Document | str, errors: Error | cabc.Iterable[Error]) -> None:
        """Attribute ``errors`` to ``file`` in the build error log."""
        self.errors.report(str(file), errors)


__all__ = [
    "BuildChild",
    "BuildContext",
    "ContentResolver",
    "ContentResult",
    "DependencyType",
    "Document",
    "LinkResult",
    "MetadataProvider",
    "MonikerMap",
    "MonikerProvider",
    "XrefResult",
    "is_local_href",
    "is_toc_href",
]
