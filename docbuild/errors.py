"""Diagnostic values collected while rendering markdown and loading TOCs.

Expected failures (missing files, cyclic includes, moniker conflicts) are never
raised: they are represented as :class:`Error` values and appended to whatever
diagnostics sink is active. :class:`DocBuildError` wraps one such value for the
rare paths where a file cannot be processed at all, and the per-file worker
boundary in :mod:`docbuild.toc.graph` turns it back into a reported value.

Examples
--------
>>> from docbuild.errors import ErrorLevel, link_not_found
>>> error = link_not_found("toc.md", "missing.md", line=2)
>>> error.level is ErrorLevel.WARNING
True
>>> error.code
'link-not-found'
"""

from __future__ import annotations

import dataclasses as dc
import enum
import logging
import threading
import typing as typ

if typ.TYPE_CHECKING:
    import collections.abc as cabc

logger = logging.getLogger(__name__)


class ErrorLevel(enum.Enum):
    """Severity attached to a diagnostic."""

    WARNING = "warning"
    ERROR = "error"


@dc.dataclass(frozen=True, slots=True)
class Error:
    """A single diagnostic attributed to a source file and line range.

    Attributes
    ----------
    level : ErrorLevel
        ``WARNING`` for degraded but usable output, ``ERROR`` when the affected
        unit (one file or one TOC branch) is unusable.
    code : str
        Stable kebab-case identifier such as ``"circular-reference"``.
    message : str
        Human readable description.
    file : str or None
        Source file the diagnostic belongs to.
    line, column, end_line, end_column : int
        One-based range within ``file``; zero when unknown.
    """

    level: ErrorLevel
    code: str
    message: str
    file: str | None = None
    line: int = 0
    column: int = 0
    end_line: int = 0
    end_column: int = 0

    def with_file(self, file: str) -> Error:
        """Return a copy attributed to ``file`` when no file was recorded."""
        if self.file:
            return self
        return dc.replace(self, file=file)

    def __str__(self) -> str:
        location = self.file or "<unknown>"
        if self.line:
            location = f"{location}({self.line},{self.column})"
        return f"{self.level.value}: {location}: {self.code}: {self.message}"


class DocBuildError(Exception):
    """Raised when a file cannot be processed; carries the reportable error."""

    def __init__(self, error: Error) -> None:
        super().__init__(str(error))
        self.error = error


class RenderStateError(RuntimeError):
    """Raised when render state is used outside of an active render."""


def _warning(code: str, message: str, file: str | None, line: int = 0) -> Error:
    return Error(ErrorLevel.WARNING, code, message, file, line)


def _error(code: str, message: str, file: str | None, line: int = 0) -> Error:
    return Error(ErrorLevel.ERROR, code, message, file, line)


def file_not_found(file: str | None, path: str, line: int = 0) -> Error:
    """Report a referenced file that does not exist in the docset."""
    return _error("file-not-found", f"Cannot find file '{path}'.", file, line)


def file_not_readable(file: str | None, path: str, reason: str) -> Error:
    """Report a referenced file that exists but cannot be read as UTF-8 text."""
    return _error("file-not-readable", f"Cannot read file '{path}': {reason}.", file)


def link_not_found(file: str | None, href: str, line: int = 0) -> Error:
    """Report a link whose target cannot be resolved."""
    return _warning(
        "link-not-found", f"Invalid link: '{href}' does not exist.", file, line
    )


def xref_not_found(file: str | None, uid: str, line: int = 0) -> Error:
    """Report a cross-reference uid missing from the xref map."""
    return _warning("xref-not-found", f"Cannot find xref '{uid}'.", file, line)


def circular_reference(file: str | None, chain: cabc.Sequence[str]) -> Error:
    """Report an include chain that loops back onto itself."""
    joined = " --> ".join(chain)
    return _error(
        "circular-reference", f"Found circular reference: {joined}.", file
    )


def heading_not_found(file: str | None) -> Error:
    """Report a conceptual document with no leading ``#`` heading."""
    return _warning(
        "heading-not-found", "The first visible block is not a heading block.", file
    )


def moniker_mismatch(
    file: str | None,
    href: str,
    requested: cabc.Sequence[str],
    supported: cabc.Sequence[str],
) -> Error:
    """Report an item whose moniker range is disjoint from its target."""
    message = (
        f"Item '{href}' requests monikers {list(requested)!r} but its target "
        f"only supports {list(supported)!r}."
    )
    return _warning("moniker-mismatch", message, file)


def empty_monikers(file: str | None, expression: str, line: int = 0) -> Error:
    """Report a moniker range expression that selects nothing."""
    return _warning(
        "empty-monikers", f"Moniker range '{expression}' matches no monikers.", file, line
    )


def invalid_moniker_range(file: str | None, expression: str, reason: str) -> Error:
    """Report a moniker range expression that cannot be parsed."""
    return _error(
        "invalid-moniker-range",
        f"Moniker range '{expression}' is invalid: {reason}",
        file,
    )


def moniker_zone_not_closed(file: str | None, line: int) -> Error:
    """Report a ``::: moniker`` zone without a matching ``::: moniker-end``."""
    return _warning(
        "moniker-end-not-found", "Moniker zone is missing '::: moniker-end'.", file, line
    )


def yaml_syntax_error(file: str | None, reason: str, line: int = 0) -> Error:
    """Report YAML that cannot be parsed."""
    return _error("yaml-syntax-error", reason, file, line)


def invalid_toc_syntax(file: str | None, text: str) -> Error:
    """Report a TOC block that is neither a heading nor ignorable markup."""
    snippet = text if len(text) <= 40 else f"{text[:37]}..."
    return _warning(
        "invalid-toc-syntax",
        f"The toc syntax '{snippet}' is invalid; only headings are allowed.",
        file,
    )


def missing_attribute(file: str | None, name: str) -> Error:
    """Report a TOC item missing a required attribute."""
    return _warning("missing-attribute", f"Missing attribute: '{name}'.", file)


def unexpected_error(file: str | None, exc: BaseException) -> Error:
    """Convert an unexpected exception into a file-scoped error."""
    return _error(
        "unexpected-error", f"{type(exc).__name__}: {exc}", file
    )


class ErrorLog:
    """Thread-safe per-file collection of reported diagnostics."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._errors: dict[str, list[Error]] = {}

    def report(self, file: str, errors: Error | cabc.Iterable[Error]) -> None:
        """Append ``errors`` to the entries recorded for ``file``."""
        batch = [errors] if isinstance(errors, Error) else list(errors)
        if not batch:
            return
        attributed = [error.with_file(file) for error in batch]
        for error in attributed:
            log = logger.warning if error.level is ErrorLevel.WARNING else logger.error
            log("%s", error)
        with self._lock:
            self._errors.setdefault(file, []).extend(attributed)

    def errors_for(self, file: str) -> list[Error]:
        """Return the diagnostics reported for ``file`` in discovery order."""
        with self._lock:
            return list(self._errors.get(file, ()))

    def all(self) -> list[Error]:
        """Return every reported diagnostic."""
        with self._lock:
            return [error for errors in self._errors.values() for error in errors]

    @property
    def error_count(self) -> int:
        """Number of diagnostics at ``ERROR`` level."""
        return sum(1 for error in self.all() if error.level is ErrorLevel.ERROR)

    @property
    def warning_count(self) -> int:
        """Number of diagnostics at ``WARNING`` level."""
        return sum(1 for error in self.all() if error.level is ErrorLevel.WARNING)


__all__ = [
    "DocBuildError",
    "Error",
    "ErrorLevel",
    "ErrorLog",
    "RenderStateError",
    "circular_reference",
    "empty_monikers",
    "file_not_found",
    "file_not_readable",
    "heading_not_found",
    "invalid_moniker_range",
    "invalid_toc_syntax",
    "link_not_found",
    "missing_attribute",
    "moniker_mismatch",
    "moniker_zone_not_closed",
    "unexpected_error",
    "xref_not_found",
    "yaml_syntax_error",
]
