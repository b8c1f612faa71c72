"""Behaviour tests for building the TOC dependency graph.

These pytest-bdd scenarios drive ``toc_graph.feature``: they lay out a docset
under ``tmp_path``, build the graph with a worker pool and check that every
input file gets an entry, that failures stay attributed to the failing file
and that include edges are recorded.

Usage
-----
Run ``pytest tests/bdd/test_toc_graph_scenarios.py -v``.
"""

from __future__ import annotations

import typing as typ
from pathlib import Path

import pytest
from pytest_bdd import given, scenarios, then, when

from docbuild.models import BuildContext, Document
from docbuild.resolver import FileSystemResolver
from docbuild.toc import TocGraphBuilder

if typ.TYPE_CHECKING:
    from docbuild.toc import TocGraph

FEATURE_FILE = Path(__file__).resolve().parents[2] / "features" / "toc_graph.feature"
scenarios(FEATURE_FILE)

ScenarioState = dict[str, typ.Any]


class CorruptingResolver(FileSystemResolver):
    """Resolver that fails to read ``corrupt/toc.md``."""

    def read_text(self, file: Document) -> str:
        if file.path == "corrupt/toc.md":
            msg = "checksum mismatch"
            raise OSError(msg)
        return super().read_text(file)


@pytest.fixture
def scenario_state() -> ScenarioState:
    """Share mutable scenario data across pytest-bdd steps."""
    return {}


@given("a docset with six independent TOC files")
def given_independent_tocs(write_docset: typ.Any, scenario_state: ScenarioState) -> None:
    """Write six TOC files that reference nothing."""
    files = {f"area{index}/toc.md": f"# Area {index}\n" for index in range(6)}
    scenario_state["resolver"] = write_docset(files)
    scenario_state["tocs"] = [Document(name) for name in files]


@given("a docset with a nested TOC and a corrupt TOC")
def given_nested_and_corrupt(
    write_docset: typ.Any, scenario_state: ScenarioState
) -> None:
    """Write a root TOC including a sub TOC, plus one unreadable TOC."""
    base = write_docset(
        {
            "toc.md": "# [Home](index.md)\n# [Guide](guide/toc.md)\n",
            "index.md": "# Home\n",
            "guide/toc.md": "# [Start](start.md)\n",
            "guide/start.md": "# Start\n",
            "corrupt/toc.md": "# Unreadable\n",
        }
    )
    resolver = CorruptingResolver(base.docset_root)
    scenario_state["resolver"] = resolver
    scenario_state["tocs"] = resolver.toc_files()


@when("the TOC graph is built with four workers")
def when_build_graph(scenario_state: ScenarioState) -> None:
    """Build the graph of every TOC file in the scenario."""
    context = BuildContext(max_workers=4)
    scenario_state["context"] = context
    scenario_state["graph"] = TocGraphBuilder().build(
        context, scenario_state["tocs"], scenario_state["resolver"]
    )


@then("the graph has six entries without edges")
def then_six_entries(scenario_state: ScenarioState) -> None:
    """Every independent file has an entry and none references anything."""
    graph = typ.cast("TocGraph", scenario_state["graph"])
    assert sorted(graph) == sorted(scenario_state["tocs"])
    assert all(entry.edge_count == 0 for entry in graph.values())


@then("no diagnostics are reported")
def then_no_diagnostics(scenario_state: ScenarioState) -> None:
    """The build error log stays empty."""
    context = typ.cast("BuildContext", scenario_state["context"])
    assert context.errors.all() == []


@then("the corrupt TOC has an empty entry and one error")
def then_corrupt_isolated(scenario_state: ScenarioState) -> None:
    """The failing file keeps an entry and carries the only error."""
    graph = typ.cast("TocGraph", scenario_state["graph"])
    context = typ.cast("BuildContext", scenario_state["context"])
    assert graph[Document("corrupt/toc.md")].edge_count == 0
    reported = context.errors.all()
    assert [(error.file, error.code) for error in reported] == [
        ("corrupt/toc.md", "unexpected-error")
    ]


@then("the root TOC references its include and every content file")
def then_root_edges(scenario_state: ScenarioState) -> None:
    """Include expansion records both the sub TOC and its documents."""
    graph = typ.cast("TocGraph", scenario_state["graph"])
    entry = graph[Document("toc.md")]
    assert entry.documents == (Document("index.md"), Document("guide/start.md"))
    assert entry.tocs == (Document("guide/toc.md"),)


@then("the included TOC is not top level")
def then_top_level(scenario_state: ScenarioState) -> None:
    """Only TOCs nobody includes are top level."""
    graph = typ.cast("TocGraph", scenario_state["graph"])
    assert graph.top_level_tocs == [Document("corrupt/toc.md"), Document("toc.md")]
