"""Shared fixtures for docbuild tests.

``write_docset`` lays out markdown and YAML files under ``tmp_path`` and
returns a :class:`~docbuild.resolver.FileSystemResolver` rooted there, so
render and TOC tests exercise the real resolution rules without any network
or global state.
"""

from __future__ import annotations

import typing as typ
from textwrap import dedent

import pytest

from docbuild.markup import RenderContext
from docbuild.models import BuildContext
from docbuild.monikers import OrderedMonikerProvider
from docbuild.resolver import FileSystemResolver

if typ.TYPE_CHECKING:
    import collections.abc as cabc
    from pathlib import Path

    from docbuild.resolver import XrefSpec

WriteDocset = typ.Callable[..., FileSystemResolver]


@pytest.fixture
def write_docset(tmp_path: Path) -> WriteDocset:
    """Return a helper writing ``{path: content}`` files into a docset."""
    root = tmp_path / "docset"
    root.mkdir()

    def _write(
        files: cabc.Mapping[str, str],
        *,
        xref_map: cabc.Mapping[str, XrefSpec] | None = None,
    ) -> FileSystemResolver:
        for name, content in files.items():
            path = root / name
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(dedent(content).lstrip("\n"), encoding="utf-8")
        return FileSystemResolver(root, xref_map=xref_map)

    return _write


@pytest.fixture
def render_context() -> RenderContext:
    """Return a fresh render context using the packaged tokens."""
    return RenderContext()


@pytest.fixture
def build_context() -> BuildContext:
    """Return a build context with a fresh error log."""
    return BuildContext()


@pytest.fixture
def moniker_provider() -> OrderedMonikerProvider:
    """Return a provider over three ordered product versions."""
    return OrderedMonikerProvider(["1.0", "2.0", "3.0"])
