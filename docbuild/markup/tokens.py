"""Localized markdown tokens (note titles and similar UI strings).

Token files live under ``resources/tokens/<culture>.yml`` and map a token key
to its localized string. Each culture is materialised at most once per
:class:`TokenStore`; lookups are case-insensitive and missing keys (or a
missing culture file) yield ``None``.
"""

from __future__ import annotations

import logging
import threading
import typing as typ
from importlib import resources
from pathlib import Path

from ruamel.yaml import YAML
from ruamel.yaml.error import YAMLError

logger = logging.getLogger(__name__)


def _default_tokens_dir() -> Path:
    return Path(str(resources.files("docbuild") / "resources" / "tokens"))


class TokenStore:
    """Lazily load and cache localized tokens per culture."""

    def __init__(self, tokens_dir: Path | None = None) -> None:
        self.tokens_dir = tokens_dir or _default_tokens_dir()
        self._lock = threading.Lock()
        self._cultures: dict[str, typ.Mapping[str, str]] = {}

    def lookup(self, culture: str, key: str) -> str | None:
        """Return the token ``key`` for ``culture`` or ``None`` when absent."""
        return self._tokens(culture.lower()).get(key.lower())

    def _tokens(self, culture: str) -> typ.Mapping[str, str]:
        cached = self._cultures.get(culture)
        if cached is not None:
            return cached
        with self._lock:
            cached = self._cultures.get(culture)
            if cached is None:
                cached = self._load(culture)
                self._cultures[culture] = cached
        return cached

    def _load(self, culture: str) -> typ.Mapping[str, str]:
        path = self.tokens_dir / f"{culture}.yml"
        if not path.exists():
            logger.debug("No token file for culture %s at %s", culture, path)
            return {}
        loader = YAML(typ="safe")
        loader.version = (1, 2)
        try:
            with path.open("r", encoding="utf-8") as handle:
                loaded = loader.load(handle) or {}
        except YAMLError as exc:
            logger.warning("Ignoring unreadable token file %s: %s", path, exc)
            return {}
        if not isinstance(loaded, dict):
            logger.warning("Ignoring token file %s: expected a mapping", path)
            return {}
        return {str(key).lower(): str(value) for key, value in loaded.items()}


_default_store: TokenStore | None = None
_default_lock = threading.Lock()


def default_token_store() -> TokenStore:
    """Return the process-wide token store backed by the packaged resources."""
    global _default_store  # noqa: PLW0603
    if _default_store is None:
        with _default_lock:
            if _default_store is None:
                _default_store = TokenStore()
    return _default_store


__all__ = ["TokenStore", "default_token_store"]
