"""Merge global metadata with metadata declared inside a file."""

from __future__ import annotations

import typing as typ

if typ.TYPE_CHECKING:
    import collections.abc as cabc

    from .models import Document


class DictMetadataProvider:
    """Metadata provider layering inline metadata over global defaults.

    Example
    -------
    >>> from docbuild.metadata import DictMetadataProvider
    >>> from docbuild.models import Document
    >>> provider = DictMetadataProvider({"author": "docs-team", "ms.topic": "toc"})
    >>> provider.get_metadata(Document("toc.md"), {"author": "me"})["author"]
    'me'
    """

    def __init__(
        self,
        global_metadata: cabc.Mapping[str, typ.Any] | None = None,
        *,
        culture: str | None = None,
    ) -> None:
        self.global_metadata = dict(global_metadata or {})
        self.culture = culture

    def get_metadata(
        self, file: Document, inline_metadata: cabc.Mapping[str, typ.Any]
    ) -> dict[str, typ.Any]:
        """Return global metadata overridden by ``inline_metadata``."""
        merged = dict(self.global_metadata)
        merged.update(inline_metadata)
        if self.culture and "locale" not in merged:
            merged["locale"] = self.culture
        return merged


__all__ = ["DictMetadataProvider"]
