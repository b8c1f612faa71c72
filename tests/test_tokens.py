"""Unit tests for localized token lookup."""

from __future__ import annotations

import typing as typ
from concurrent.futures import ThreadPoolExecutor

from docbuild.markup import TokenStore, default_token_store

if typ.TYPE_CHECKING:
    from pathlib import Path


def test_packaged_tokens() -> None:
    store = default_token_store()

    assert store.lookup("en-us", "note") == "Note"
    assert store.lookup("DE-DE", "NOTE") == "Hinweis"
    assert store.lookup("en-us", "unknown") is None
    assert store.lookup("xx-xx", "note") is None
    assert default_token_store() is store


def test_custom_tokens_dir(tmp_path: Path) -> None:
    (tmp_path / "fr-fr.yml").write_text("note: Remarque\n", encoding="utf-8")
    (tmp_path / "bad.yml").write_text("- not a mapping\n", encoding="utf-8")
    store = TokenStore(tmp_path)

    assert store.lookup("fr-fr", "note") == "Remarque"
    assert store.lookup("bad", "note") is None


def test_concurrent_first_lookups_agree(tmp_path: Path) -> None:
    (tmp_path / "en-us.yml").write_text("tip: Hint\n", encoding="utf-8")
    store = TokenStore(tmp_path)

    with ThreadPoolExecutor(max_workers=8) as executor:
        results = list(executor.map(lambda _: store.lookup("en-us", "tip"), range(32)))

    assert set(results) == {"Hint"}
