"""Tests for moniker range evaluation and TOC moniker annotation."""

from __future__ import annotations

import typing as typ

import pytest

from docbuild.errors import DocBuildError
from docbuild.models import Document
from docbuild.monikers import OrderedMonikerProvider
from docbuild.toc import TocLoader

if typ.TYPE_CHECKING:
    from .conftest import WriteDocset


@pytest.mark.parametrize(
    ("expression", "expected"),
    [
        ("> 1.0", ["2.0", "3.0"]),
        (">= 2.0", ["2.0", "3.0"]),
        ("< 2.0", ["1.0"]),
        ("<= 2.0", ["1.0", "2.0"]),
        ("= 2.0", ["2.0"]),
        ("2.0", ["2.0"]),
        ("> 1.0 < 3.0", ["2.0"]),
        ("1.0 || 3.0", ["1.0", "3.0"]),
        ("> 3.0", []),
        ("", []),
    ],
)
def test_parse_range(
    moniker_provider: OrderedMonikerProvider, expression: str, expected: list[str]
) -> None:
    assert moniker_provider.parse_range(expression) == expected


@pytest.mark.parametrize("expression", ["> 9.9", ">>= 1.0", "1.0 ||"])
def test_parse_range_rejects_invalid_expressions(
    moniker_provider: OrderedMonikerProvider, expression: str
) -> None:
    with pytest.raises(DocBuildError) as excinfo:
        moniker_provider.parse_range(expression)

    assert excinfo.value.error.code == "invalid-moniker-range"


def test_file_level_monikers_use_configured_ranges() -> None:
    provider = OrderedMonikerProvider(
        ["1.0", "2.0", "3.0"], {"v2/**": ">= 2.0", "legacy/*": "1.0"}
    )

    assert provider.get_file_level_monikers(Document("v2/a/b.md"), None) == (
        None,
        ["2.0", "3.0"],
    )
    assert provider.get_file_level_monikers(Document("v2/a/b.md"), "3.0") == (
        None,
        ["3.0"],
    )
    assert provider.get_file_level_monikers(Document("other.md"), None) == (None, [])
    error, monikers = provider.get_file_level_monikers(Document("x.md"), "> 4.0")
    assert monikers == []
    assert error is not None
    assert error.file == "x.md"
    assert provider.build_moniker_map(
        [Document("legacy/a.md"), Document("other.md")]
    ) == {Document("legacy/a.md"): ["1.0"]}


def test_toc_items_receive_monikers(
    write_docset: WriteDocset, moniker_provider: OrderedMonikerProvider
) -> None:
    resolver = write_docset(
        {
            "toc.yml": """
                - name: Newer
                  href: a.md
                  monikerRange: "> 1.0"
                - name: Future
                  href: a.md
                  monikerRange: "> 3.0"
                - name: Group
                  items:
                  - name: A
                    href: a.md
                  - name: B
                    href: b.md
                - name: Unversioned
                  href: c.md
                  monikerRange: "3.0"
            """,
            "a.md": "# A\n",
            "b.md": "# B\n",
            "c.md": "# C\n",
        }
    )
    moniker_map = {Document("a.md"): ["1.0", "2.0"], Document("b.md"): ["3.0"]}
    file = Document("toc.yml")
    result = TocLoader().load(
        file,
        resolver.read_text(file),
        resolver,
        moniker_provider=moniker_provider,
        moniker_map=moniker_map,
    )

    newer, future, group, unversioned = result.items
    assert newer.monikers == ("2.0",)
    assert future.monikers == ()
    assert group.monikers == ("1.0", "2.0", "3.0")
    assert [child.monikers for child in group.children] == [("1.0", "2.0"), ("3.0",)]
    assert unversioned.monikers == ("3.0",)
    assert [error.code for error in result.errors] == ["moniker-mismatch"]
    assert "a.md" in result.errors[0].message


def test_invalid_item_range_is_reported_once(write_docset: WriteDocset) -> None:
    resolver = write_docset(
        {"toc.yml": '- name: A\n  href: a.md\n  monikerRange: "> 3.0"\n', "a.md": "# A\n"}
    )
    file = Document("toc.yml")
    result = TocLoader().load(
        file,
        resolver.read_text(file),
        resolver,
        moniker_provider=OrderedMonikerProvider(["1.0", "2.0"]),
        moniker_map={Document("a.md"): ["1.0", "2.0"]},
    )

    assert [error.code for error in result.errors] == ["invalid-moniker-range"]
    assert result.errors[0].file == "toc.yml"
    assert result.items[0].monikers == ("1.0", "2.0")


def test_toc_items_without_moniker_map_stay_unannotated(
    write_docset: WriteDocset, moniker_provider: OrderedMonikerProvider
) -> None:
    resolver = write_docset(
        {"toc.yml": '- name: A\n  href: a.md\n  monikerRange: "> 1.0"\n', "a.md": "# A\n"}
    )
    file = Document("toc.yml")
    result = TocLoader().load(
        file, resolver.read_text(file), resolver, moniker_provider=moniker_provider
    )

    assert result.items[0].monikers == ()
    assert result.errors == ()
