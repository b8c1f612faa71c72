"""Identifiers of the markdown dialects understood by the renderer."""

from __future__ import annotations

import enum


class PipelineKind(enum.Enum):
    """Markdown dialects understood by the renderer."""

    DOCUMENT = "document"
    PLAIN = "plain"
    INLINE = "inline"
    TOC = "toc"


__all__ = ["PipelineKind"]
