"""Filesystem-backed :class:`~docbuild.models.ContentResolver`.

Resolves docset-relative paths against a directory on disk and an optional
xref map. Paths starting with ``/`` are docset-absolute; anything escaping the
docset root is treated as missing. Links are rewritten relative to the
directory of the file the output is rendered for, preserving query strings and
fragments.

Example
-------
>>> from pathlib import Path
>>> from docbuild.models import Document
>>> from docbuild.resolver import FileSystemResolver
>>> resolver = FileSystemResolver(Path("docs"))  # doctest: +SKIP
>>> resolver.resolve_link(
...     "../b.md#top", Document("a/index.md"), Document("toc.md")
... ).href  # doctest: +SKIP
'b.md#top'
"""

from __future__ import annotations

import dataclasses as dc
import logging
import posixpath
import typing as typ
from urllib.parse import urlsplit

from ruamel.yaml import YAML
from ruamel.yaml.error import YAMLError

from . import errors
from ._constants import SOURCE_SUFFIXES
from .errors import DocBuildError
from .models import ContentResult, Document, LinkResult, XrefResult

if typ.TYPE_CHECKING:
    import collections.abc as cabc
    from pathlib import Path

    from .models import BuildChild, DependencyType

logger = logging.getLogger(__name__)


@dc.dataclass(frozen=True, slots=True)
class XrefSpec:
    """Target of a cross-reference uid."""

    uid: str
    href: str
    name: str | None = None


def load_xref_map(path: Path) -> dict[str, XrefSpec]:
    """Load an xref map YAML file (``references: [{uid, href, name}]``).

    Raises
    ------
    FileNotFoundError
        If ``path`` does not exist.
    DocBuildError
        If the YAML cannot be parsed or has the wrong shape.
    """
    if not path.exists():
        msg = f"Xref map '{path}' not found."
        raise FileNotFoundError(msg)
    loader = YAML(typ="safe")
    loader.version = (1, 2)
    try:
        with path.open("r", encoding="utf-8") as handle:
            loaded = loader.load(handle) or {}
    except YAMLError as exc:
        raise DocBuildError(errors.yaml_syntax_error(str(path), str(exc))) from exc
    references = loaded.get("references", []) if isinstance(loaded, dict) else None
    if not isinstance(references, list):
        raise DocBuildError(
            errors.yaml_syntax_error(str(path), "Expected a 'references' list.")
        )
    xref_map: dict[str, XrefSpec] = {}
    for entry in references:
        if not isinstance(entry, dict) or not entry.get("uid") or not entry.get("href"):
            logger.warning("Skipping malformed xref entry in %s: %r", path, entry)
            continue
        spec = XrefSpec(str(entry["uid"]), str(entry["href"]), entry.get("name"))
        xref_map[spec.uid] = spec
    return xref_map


def _join_suffix(href: str, query: str, fragment: str) -> str:
    if query:
        href = f"{href}?{query}"
    if fragment:
        href = f"{href}#{fragment}"
    return href


class FileSystemResolver:
    """Resolve references inside a docset directory."""

    def __init__(
        self,
        docset_root: Path,
        *,
        xref_map: cabc.Mapping[str, XrefSpec] | None = None,
    ) -> None:
        self.docset_root = docset_root
        self.xref_map = dict(xref_map or {})

    def read_text(self, file: Document) -> str:
        """Return the content of ``file``.

        Raises
        ------
        DocBuildError
            If the file does not exist in the docset.
        """
        path = self.docset_root / file.path
        if not path.is_file():
            raise DocBuildError(errors.file_not_found(str(file), file.path))
        return path.read_text(encoding="utf-8")

    def resolve_content(
        self, path: str, relative_to: Document, dependency_type: DependencyType
    ) -> ContentResult:
        """Return the content of ``path`` resolved against ``relative_to``.

        Missing and unreadable targets are returned as errors attributed to
        ``relative_to``; this method does not raise for them.
        """
        file = self._locate(urlsplit(path).path, relative_to)
        if file is None:
            return ContentResult(errors.file_not_found(str(relative_to), path), None, None)
        logger.debug("Resolved %s dependency %s -> %s", dependency_type.value, relative_to, file)
        try:
            content = self.read_text(file)
        except DocBuildError as exc:
            return ContentResult(exc.error.with_file(str(relative_to)), None, None)
        except (OSError, UnicodeDecodeError) as exc:
            error = errors.file_not_readable(str(relative_to), path, str(exc))
            return ContentResult(error, None, None)
        return ContentResult(None, content, file)

    def resolve_link(
        self,
        path: str,
        relative_to: Document,
        result_relative_to: Document,
        build_child: BuildChild | None = None,
    ) -> LinkResult:
        """Return an href for ``path`` usable from ``result_relative_to``."""
        parsed = urlsplit(path)
        if not parsed.path:
            return LinkResult(None, path, None)
        file = self._locate(parsed.path, relative_to)
        if file is None:
            return LinkResult(errors.link_not_found(str(relative_to), path), None, None)
        if build_child is not None:
            build_child(file)
        href = self._relative_href(file, result_relative_to)
        return LinkResult(None, _join_suffix(href, parsed.query, parsed.fragment), file)

    def resolve_xref(
        self, uid: str, file: Document, root_file: Document
    ) -> XrefResult:
        """Return the href and display name registered for ``uid``."""
        spec = self.xref_map.get(uid)
        if spec is None:
            return XrefResult(errors.xref_not_found(str(file), uid), None, None, None)
        parsed = urlsplit(spec.href)
        if parsed.scheme or parsed.netloc:
            return XrefResult(None, spec.href, spec.name or uid, None)
        target = self._locate(parsed.path, Document(""))
        if target is None:
            return XrefResult(None, spec.href, spec.name or uid, None)
        href = _join_suffix(
            self._relative_href(target, root_file), parsed.query, parsed.fragment
        )
        return XrefResult(None, href, spec.name or uid, target)

    def documents(self) -> list[Document]:
        """Return every markdown and YAML file under the docset root, sorted."""
        found = [
            Document(path.relative_to(self.docset_root).as_posix())
            for path in self.docset_root.rglob("*")
            if path.is_file() and path.suffix.lower() in SOURCE_SUFFIXES
        ]
        return sorted(found)

    def toc_files(self) -> list[Document]:
        """Return the table-of-contents files of the docset."""
        return [file for file in self.documents() if file.is_toc]

    def _locate(self, path: str, relative_to: Document) -> Document | None:
        if not path:
            return None
        if path.startswith("/"):
            candidate = posixpath.normpath(path.lstrip("/"))
        else:
            candidate = posixpath.normpath(posixpath.join(relative_to.directory, path))
        if candidate == ".." or candidate.startswith("../"):
            return None
        if not (self.docset_root / candidate).is_file():
            return None
        return Document(candidate)

    @staticmethod
    def _relative_href(file: Document, result_relative_to: Document) -> str:
        return posixpath.relpath(file.path, result_relative_to.directory or ".")


__all__ = ["FileSystemResolver", "XrefSpec", "load_xref_map"]
