"""Immutable results produced by the TOC loader and graph builder."""

from __future__ import annotations

import collections.abc as cabc
import dataclasses as dc
import typing as typ
from types import MappingProxyType

if typ.TYPE_CHECKING:
    from docbuild.errors import Error
    from docbuild.models import Document


def _empty_mapping() -> typ.Mapping[str, typ.Any]:
    return MappingProxyType({})


@dc.dataclass(frozen=True, slots=True)
class TocItem:
    """One navigation entry of a table of contents.

    Attributes
    ----------
    title : str
        Display text.
    href : str or None
        Resolved link, or the authored href when resolution failed; ``None``
        for containers and for items whose include was expanded in place.
    children : tuple[TocItem, ...]
        Nested entries in authored order.
    moniker_range : str or None
        Range declared on the item itself.
    monikers : tuple[str, ...]
        Monikers assigned during the final pass; empty before it.
    metadata : Mapping[str, Any]
        Per-item overrides (YAML TOC keys not otherwise understood).
    document : Document or None
        File the href resolved to, if any.
    """

    title: str
    href: str | None = None
    children: tuple[TocItem, ...] = ()
    moniker_range: str | None = None
    monikers: tuple[str, ...] = ()
    metadata: typ.Mapping[str, typ.Any] = dc.field(
        default_factory=_empty_mapping, hash=False
    )
    document: Document | None = dc.field(default=None, compare=False)

    @property
    def is_leaf(self) -> bool:
        """Whether the item has no children."""
        return not self.children

    def walk(self) -> cabc.Iterator[TocItem]:
        """Yield this item and its descendants depth-first."""
        yield self
        for child in self.children:
            yield from child.walk()

    def to_dict(self) -> dict[str, typ.Any]:
        """Return a JSON-friendly representation."""
        payload: dict[str, typ.Any] = {"name": self.title}
        if self.href is not None:
            payload["href"] = self.href
        if self.moniker_range:
            payload["monikerRange"] = self.moniker_range
        if self.monikers:
            payload["monikers"] = list(self.monikers)
        if self.metadata:
            payload.update(self.metadata)
        if self.children:
            payload["items"] = [child.to_dict() for child in self.children]
        return payload


@dc.dataclass(frozen=True, slots=True)
class TocFileResult:
    """Everything loading one TOC file produced."""

    items: tuple[TocItem, ...]
    metadata: typ.Mapping[str, typ.Any]
    errors: tuple[Error, ...]
    referenced_documents: tuple[Document, ...]
    referenced_tocs: tuple[Document, ...]

    def walk(self) -> cabc.Iterator[TocItem]:
        """Yield every item of the tree depth-first."""
        for item in self.items:
            yield from item.walk()


@dc.dataclass(frozen=True, slots=True)
class TocGraphEntry:
    """Outgoing edges of one TOC file."""

    documents: tuple[Document, ...] = ()
    tocs: tuple[Document, ...] = ()

    @property
    def edge_count(self) -> int:
        """Total number of referenced files."""
        return len(self.documents) + len(self.tocs)


class TocGraph(cabc.Mapping):
    """Read-only mapping of TOC file to the files and TOCs it references."""

    def __init__(self, entries: cabc.Mapping[Document, TocGraphEntry] | None = None) -> None:
        self._entries: typ.Mapping[Document, TocGraphEntry] = MappingProxyType(
            dict(sorted((entries or {}).items()))
        )

    def __getitem__(self, key: Document) -> TocGraphEntry:
        return self._entries[key]

    def __iter__(self) -> cabc.Iterator[Document]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __repr__(self) -> str:
        return f"TocGraph({len(self)} tocs)"

    def contains(self, file: Document) -> bool:
        """Whether ``file`` was loaded as a TOC."""
        return file in self._entries

    def referencing_tocs(self, file: Document) -> list[Document]:
        """Return TOCs that reference ``file`` as content or as an include."""
        return [
            toc
            for toc, entry in self._entries.items()
            if file in entry.documents or file in entry.tocs
        ]

    @property
    def top_level_tocs(self) -> list[Document]:
        """TOCs that no other TOC includes."""
        included = {toc for entry in self._entries.values() for toc in entry.tocs}
        return [toc for toc in self._entries if toc not in included]

    def to_dict(self) -> dict[str, dict[str, list[str]]]:
        """Return a JSON-friendly representation keyed by TOC path."""
        return {
            str(toc): {
                "documents": [str(file) for file in entry.documents],
                "tocs": [str(file) for file in entry.tocs],
            }
            for toc, entry in self._entries.items()
        }


@dc.dataclass(frozen=True, slots=True)
class TocModel:
    """Final TOC: item tree plus effective metadata."""

    items: tuple[TocItem, ...]
    metadata: typ.Mapping[str, typ.Any]


@dc.dataclass(frozen=True, slots=True)
class TocBuildResult:
    """Outcome of the final build of one TOC file."""

    errors: tuple[Error, ...] = ()
    model: TocModel | None = None
    monikers: tuple[str, ...] = ()


__all__ = [
    "TocBuildResult",
    "TocFileResult",
    "TocGraph",
    "TocGraphEntry",
    "TocItem",
    "TocModel",
]
