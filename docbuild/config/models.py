"""Typed dataclasses describing docbuild configuration."""

from __future__ import annotations

import dataclasses as dc
import typing as typ
from pathlib import Path

from docbuild._constants import DEFAULT_CULTURE


class BuildConfigError(ValueError):
    """Raised when the build configuration is invalid or incomplete."""


@dc.dataclass(slots=True)
class BuildConfig:
    """Settings for one docset build.

    Attributes
    ----------
    docset_root : Path
        Directory holding the markdown/YAML sources.
    culture : str
        Culture used for rendering and localized tokens.
    max_workers : int or None
        Worker pool size for parallel TOC loading.
    monikers : list[str]
        Known monikers, oldest first.
    moniker_ranges : dict[str, str]
        Glob pattern to moniker range for files that declare none.
    global_metadata : dict[str, Any]
        Metadata applied to every file unless overridden inline.
    xref_map : Path or None
        Optional YAML xref map (``references: [{uid, href, name}]``).
    tokens_dir : Path or None
        Directory of ``<culture>.yml`` token files overriding the packaged ones.
    """

    docset_root: Path
    culture: str = DEFAULT_CULTURE
    max_workers: int | None = None
    monikers: list[str] = dc.field(default_factory=list)
    moniker_ranges: dict[str, str] = dc.field(default_factory=dict)
    global_metadata: dict[str, typ.Any] = dc.field(default_factory=dict)
    xref_map: Path | None = None
    tokens_dir: Path | None = None


__all__ = ["BuildConfig", "BuildConfigError"]
