"""Unit tests for loading markdown and YAML TOC files into item trees.

Covers the heading hierarchy rules, href resolution relative to the root TOC,
TOC includes (including cyclic ones), YAML-specific keys and the warnings
emitted for markup a TOC does not allow.
"""

from __future__ import annotations

import typing as typ

import pytest

from docbuild.errors import ErrorLevel
from docbuild.models import Document
from docbuild.resolver import XrefSpec
from docbuild.toc import TocLoader

if typ.TYPE_CHECKING:
    from docbuild.resolver import FileSystemResolver
    from docbuild.toc import TocFileResult, TocItem

    from .conftest import WriteDocset


def _load(resolver: FileSystemResolver, name: str) -> TocFileResult:
    file = Document(name)
    return TocLoader().load(file, resolver.read_text(file), resolver)


def _shape(items: tuple[TocItem, ...]) -> list[typ.Any]:
    return [
        (item.title, _shape(item.children)) if item.children else item.title
        for item in items
    ]


@pytest.mark.parametrize(
    ("content", "expected"),
    [
        ("# A\n## B\n# C\n", [("A", ["B"]), "C"]),
        ("# A\n# B\n## C\n", ["A", ("B", ["C"])]),
        ("## Lead\n# Top\n### Deep\n", ["Lead", ("Top", ["Deep"])]),
        ("# A\n### Skip\n## B\n", [("A", ["Skip", "B"])]),
        ("###### Six\n####### Seven\n", [("Six", ["Seven"])]),
    ],
)
def test_heading_levels_build_hierarchy(
    write_docset: WriteDocset, content: str, expected: list[typ.Any]
) -> None:
    resolver = write_docset({"toc.md": content})
    result = _load(resolver, "toc.md")

    assert _shape(result.items) == expected
    assert result.errors == ()


def test_missing_link_is_reported_once_and_kept(write_docset: WriteDocset) -> None:
    resolver = write_docset(
        {
            "toc.md": "# [Intro](intro.md)\n## [Missing](missing.md)\n",
            "intro.md": "# Intro\n",
        }
    )
    result = _load(resolver, "toc.md")

    intro = result.items[0]
    missing = intro.children[0]
    assert intro.href == "intro.md"
    assert intro.document == Document("intro.md")
    assert missing.href == "missing.md"
    assert missing.document is None
    assert [error.code for error in result.errors] == ["link-not-found"]
    assert result.referenced_documents == (Document("intro.md"),)


def test_links_are_relative_to_the_root_toc(write_docset: WriteDocset) -> None:
    resolver = write_docset(
        {
            "toc.md": "# Guide\n## [Sub](sub/toc.md)\n",
            "sub/toc.md": "# [Page](page.md)\n# [Site](https://example.com)\n",
            "sub/page.md": "# Page\n",
        }
    )
    result = _load(resolver, "toc.md")

    sub = result.items[0].children[0]
    assert sub.title == "Sub"
    assert sub.href is None
    assert [(child.title, child.href) for child in sub.children] == [
        ("Page", "sub/page.md"),
        ("Site", "https://example.com"),
    ]
    assert result.referenced_documents == (Document("sub/page.md"),)
    assert result.referenced_tocs == (Document("sub/toc.md"),)
    assert result.errors == ()


def test_cyclic_toc_include_is_reported(write_docset: WriteDocset) -> None:
    resolver = write_docset(
        {
            "a/toc.md": "# [B](../b/toc.md)\n",
            "b/toc.md": "# [A](../a/toc.md)\n",
        }
    )
    result = _load(resolver, "a/toc.md")

    [b_item] = result.items
    [a_item] = b_item.children
    assert a_item.title == "A"
    assert a_item.href == "../a/toc.md"
    assert not a_item.children
    assert [error.code for error in result.errors] == ["circular-reference"]
    assert result.errors[0].level is ErrorLevel.ERROR
    assert result.referenced_tocs == (Document("b/toc.md"),)


def test_missing_toc_include_keeps_href(write_docset: WriteDocset) -> None:
    resolver = write_docset({"toc.md": "# [Gone](gone/toc.md)\n"})
    result = _load(resolver, "toc.md")

    assert result.items[0].href == "gone/toc.md"
    assert [error.code for error in result.errors] == ["file-not-found"]
    assert result.referenced_tocs == ()


def test_non_heading_blocks_are_reported(write_docset: WriteDocset) -> None:
    resolver = write_docset(
        {"toc.md": "# A\n\nSome paragraph\n\n---\n\n<!-- comment -->\n\n# B\n"}
    )
    result = _load(resolver, "toc.md")

    assert _shape(result.items) == ["A", "B"]
    assert [error.code for error in result.errors] == ["invalid-toc-syntax"]
    assert "Some paragraph" in result.errors[0].message


def test_xref_headings_take_display_name(write_docset: WriteDocset) -> None:
    resolver = write_docset(
        {
            "toc.md": "# <xref:api.widget>\n# [Custom](xref:api.widget)\n# <xref:nope>\n",
            "api/widget.md": "# Widget\n",
        },
        xref_map={"api.widget": XrefSpec("api.widget", "api/widget.md", "Widget")},
    )
    result = _load(resolver, "toc.md")

    assert [(item.title, item.href) for item in result.items] == [
        ("Widget", "api/widget.md"),
        ("Custom", "api/widget.md"),
        ("nope", "xref:nope"),
    ]
    assert [error.code for error in result.errors] == ["xref-not-found"]
    assert result.referenced_documents == (Document("api/widget.md"),)


def test_front_matter_becomes_toc_metadata(write_docset: WriteDocset) -> None:
    resolver = write_docset({"toc.md": "---\nauthor: docs\n---\n# A\n"})
    result = _load(resolver, "toc.md")

    assert dict(result.metadata) == {"author": "docs"}
    assert _shape(result.items) == ["A"]


def test_yaml_toc_items_and_includes(write_docset: WriteDocset) -> None:
    resolver = write_docset(
        {
            "toc.yml": """
                metadata:
                  author: docs
                items:
                - name: Overview
                  href: index.md
                  ms.custom: featured
                - name: Reference
                  monikerRange: ">= 2.0"
                  items:
                  - name: API
                    topicHref: api.md
                    tocHref: api/toc.yml
                - name: External
                  href: https://example.com
            """,
            "api/toc.yml": "- name: Widget\n  href: widget.md\n",
            "index.md": "# Home\n",
            "api.md": "# API\n",
            "api/widget.md": "# Widget\n",
        }
    )
    result = _load(resolver, "toc.yml")

    overview, reference, external = result.items
    assert dict(overview.metadata) == {"ms.custom": "featured"}
    assert overview.href == "index.md"
    assert reference.moniker_range == ">= 2.0"
    [api] = reference.children
    assert api.href == "api.md"
    assert [(child.title, child.href) for child in api.children] == [
        ("Widget", "api/widget.md")
    ]
    assert external.href == "https://example.com"
    assert dict(result.metadata) == {"author": "docs"}
    assert result.referenced_documents == (
        Document("index.md"),
        Document("api.md"),
        Document("api/widget.md"),
    )
    assert result.referenced_tocs == (Document("api/toc.yml"),)
    assert result.errors == ()


def test_yaml_toc_reports_syntax_errors(write_docset: WriteDocset) -> None:
    resolver = write_docset({"toc.yml": "- name: [unclosed\n"})
    result = _load(resolver, "toc.yml")

    assert result.items == ()
    assert [error.code for error in result.errors] == ["yaml-syntax-error"]


def test_yaml_item_without_name_is_reported(write_docset: WriteDocset) -> None:
    resolver = write_docset({"toc.yml": "- href: https://example.com\n"})
    result = _load(resolver, "toc.yml")

    assert result.items[0].title == ""
    assert [error.code for error in result.errors] == ["missing-attribute"]


def test_items_serialise_to_dicts(write_docset: WriteDocset) -> None:
    resolver = write_docset(
        {"toc.md": "# Guide\n## [Page](page.md)\n", "page.md": "# Page\n"}
    )
    result = _load(resolver, "toc.md")

    assert [item.to_dict() for item in result.items] == [
        {"name": "Guide", "items": [{"name": "Page", "href": "page.md"}]}
    ]
    assert [item.title for item in result.walk()] == ["Guide", "Page"]


def test_undecodable_toc_include_keeps_sibling_edges(
    write_docset: WriteDocset,
) -> None:
    resolver = write_docset(
        {"toc.md": "# [Page](page.md)\n# [Sub](sub/toc.md)\n", "page.md": "# Page\n"}
    )
    (resolver.docset_root / "sub").mkdir()
    (resolver.docset_root / "sub" / "toc.md").write_bytes(b"# \xff\xfe bad\n")
    result = _load(resolver, "toc.md")

    page, sub = result.items
    assert page.href == "page.md"
    assert sub.href == "sub/toc.md"
    assert sub.children == ()
    assert [(error.code, error.file) for error in result.errors] == [
        ("file-not-readable", "toc.md")
    ]
    assert result.referenced_documents == (Document("page.md"),)
    assert result.referenced_tocs == ()


def test_hash_without_space_is_not_a_heading(write_docset: WriteDocset) -> None:
    resolver = write_docset({"toc.md": "# A\n\n#hashtag\n"})
    result = _load(resolver, "toc.md")

    assert _shape(result.items) == ["A"]
    assert [error.code for error in result.errors] == ["invalid-toc-syntax"]


def test_yaml_items_must_be_a_list(write_docset: WriteDocset) -> None:
    resolver = write_docset({"toc.yml": "items: abc\n"})
    result = _load(resolver, "toc.yml")

    assert result.items == ()
    assert [error.code for error in result.errors] == ["yaml-syntax-error"]


def test_items_with_metadata_are_hashable(write_docset: WriteDocset) -> None:
    resolver = write_docset(
        {"toc.yml": "- name: Page\n  href: https://example.com\n  author: docs-team\n"}
    )
    result = _load(resolver, "toc.yml")

    item = result.items[0]
    assert item.metadata == {"author": "docs-team"}
    assert {item, item} == {item}
    assert item.is_leaf
