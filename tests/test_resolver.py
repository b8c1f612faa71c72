"""Unit tests for the filesystem resolver and xref map loading."""

from __future__ import annotations

import typing as typ

import pytest

from docbuild.errors import DocBuildError
from docbuild.models import DependencyType, Document, is_local_href, is_toc_href
from docbuild.resolver import XrefSpec, load_xref_map

if typ.TYPE_CHECKING:
    from pathlib import Path

    from .conftest import WriteDocset


@pytest.mark.parametrize(
    ("target", "expected"),
    [
        ("page.md", True),
        ("../page.md#frag", True),
        ("/abs/page.md", True),
        ("#section", False),
        ("https://example.com/x.md", False),
        ("//cdn.example.com/x.md", False),
        ("mailto:docs@example.com", False),
        ("xref:System.String", False),
        ("", False),
        (None, False),
    ],
)
def test_is_local_href(target: str | None, expected: bool) -> None:
    assert is_local_href(target) is expected


def test_is_toc_href() -> None:
    assert is_toc_href("sub/TOC.md")
    assert is_toc_href("sub/toc.yml#anchor")
    assert not is_toc_href("sub/page.md")
    assert not is_toc_href("https://example.com/toc.md")


def test_resolve_link_rewrites_relative_to_result_file(write_docset: WriteDocset) -> None:
    resolver = write_docset({"a/b/page.md": "x", "a/other.md": "y"})
    built: list[Document] = []

    result = resolver.resolve_link(
        "../other.md?view=1#top",
        Document("a/b/page.md"),
        Document("toc.md"),
        built.append,
    )

    assert result.error is None
    assert result.href == "a/other.md?view=1#top"
    assert result.file == Document("a/other.md")
    assert built == [Document("a/other.md")]


def test_resolve_link_rejects_escaping_the_docset(write_docset: WriteDocset) -> None:
    resolver = write_docset({"page.md": "x"})

    result = resolver.resolve_link("../../etc/passwd", Document("page.md"), Document("page.md"))

    assert result.href is None
    assert result.error is not None
    assert result.error.code == "link-not-found"


def test_docset_absolute_paths(write_docset: WriteDocset) -> None:
    resolver = write_docset({"shared/snippet.md": "Shared."})

    result = resolver.resolve_content(
        "/shared/snippet.md", Document("deep/nested/page.md"), DependencyType.INCLUSION
    )

    assert result.error is None
    assert result.content == "Shared."
    assert result.file == Document("shared/snippet.md")


def test_read_text_missing_file_raises(write_docset: WriteDocset) -> None:
    resolver = write_docset({})

    with pytest.raises(DocBuildError) as excinfo:
        resolver.read_text(Document("nope.md"))

    assert excinfo.value.error.code == "file-not-found"


def test_discovers_documents_and_tocs(write_docset: WriteDocset) -> None:
    resolver = write_docset(
        {"toc.md": "# A", "a/toc.yml": "[]", "a/page.md": "x", "a/logo.png": "png"}
    )

    assert resolver.documents() == [
        Document("a/page.md"),
        Document("a/toc.yml"),
        Document("toc.md"),
    ]
    assert resolver.toc_files() == [Document("a/toc.yml"), Document("toc.md")]


def test_load_xref_map(tmp_path: Path) -> None:
    path = tmp_path / "xrefs.yml"
    path.write_text(
        "references:\n"
        "- uid: api.widget\n  href: api/widget.md\n  name: Widget\n"
        "- uid: broken\n"
        "- uid: ext\n  href: https://example.com/ext\n",
        encoding="utf-8",
    )

    xref_map = load_xref_map(path)

    assert xref_map == {
        "api.widget": XrefSpec("api.widget", "api/widget.md", "Widget"),
        "ext": XrefSpec("ext", "https://example.com/ext"),
    }


def test_external_xref_is_returned_verbatim(write_docset: WriteDocset) -> None:
    resolver = write_docset(
        {}, xref_map={"ext": XrefSpec("ext", "https://example.com/ext")}
    )

    result = resolver.resolve_xref("ext", Document("a.md"), Document("a.md"))

    assert result.href == "https://example.com/ext"
    assert result.display == "ext"
    assert result.file is None
