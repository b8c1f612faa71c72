"""Scoped markdown rendering: pipelines, render context and extensions.

Exports
-------
- ``RenderContext``: per-execution-context stack of render jobs.
- ``MarkupResult``: diagnostics, title, metadata and tree of a render.
- ``PipelineKind`` / ``PipelineRegistry``: the four markdown dialects.
- ``TokenStore``: localized tokens per culture.
"""

from .context import MarkupResult, RenderContext, RenderHandle, RenderJob
from .pipelines import PipelineConfig, PipelineKind, PipelineRegistry, default_registry
from .tokens import TokenStore, default_token_store

__all__ = [
    "MarkupResult",
    "PipelineConfig",
    "PipelineKind",
    "PipelineRegistry",
    "RenderContext",
    "RenderHandle",
    "RenderJob",
    "TokenStore",
    "default_registry",
    "default_token_store",
]
