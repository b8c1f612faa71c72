"""Load build configuration YAML into typed dataclasses."""

from __future__ import annotations

import typing as typ
from pathlib import Path

from ruamel.yaml import YAML

from docbuild._constants import DEFAULT_CULTURE

from .models import BuildConfig, BuildConfigError


def load_build_config(path: Path) -> BuildConfig:
    """Load the YAML configuration describing a docset build.

    Parameters
    ----------
    path : Path
        Filesystem path to the configuration file (for example,
        ``docbuild.yml``). Relative paths inside it are resolved against the
        file's directory.

    Returns
    -------
    BuildConfig
        Parsed configuration with defaults applied.

    Raises
    ------
    FileNotFoundError
        If the configuration file does not exist at ``path``.
    BuildConfigError
        If the top-level structure is not a mapping or a field has the wrong
        type.
    YAMLError
        If the YAML content cannot be parsed by the underlying loader.

    Examples
    --------
    >>> from pathlib import Path
    >>> from docbuild.config import load_build_config
    >>> config = load_build_config(Path("docbuild.yml"))  # doctest: +SKIP
    >>> config.docset_root.name  # doctest: +SKIP
    'docs'
    """
    if not path.exists():
        msg = f"Configuration file '{path}' not found."
        raise FileNotFoundError(msg)

    loader = YAML(typ="safe")
    loader.version = (1, 2)
    with path.open("r", encoding="utf-8") as handle:
        loaded = loader.load(handle) or {}
    if not isinstance(loaded, dict):
        msg = "Top-level YAML structure must be a mapping."
        raise BuildConfigError(msg)
    raw: dict[str, typ.Any] = dict(loaded)
    base_dir = path.parent

    return BuildConfig(
        docset_root=_resolve_path(base_dir, raw.get("docset_root")) or base_dir,
        culture=str(raw.get("culture") or DEFAULT_CULTURE).lower(),
        max_workers=_positive_int(raw.get("max_workers"), "max_workers"),
        monikers=_string_list(raw.get("monikers"), "monikers"),
        moniker_ranges=_string_mapping(raw.get("moniker_ranges"), "moniker_ranges"),
        global_metadata=_mapping(raw.get("global_metadata"), "global_metadata"),
        xref_map=_resolve_path(base_dir, raw.get("xref_map")),
        tokens_dir=_resolve_path(base_dir, raw.get("tokens_dir")),
    )


def _resolve_path(base_dir: Path, value: object | None) -> Path | None:
    """Return ``value`` as a path relative to ``base_dir``, or None when unset."""
    if value is None:
        return None
    text = str(value).strip()
    if not text:
        return None
    candidate = Path(text)
    return candidate if candidate.is_absolute() else base_dir / candidate


def _positive_int(value: object | None, name: str) -> int | None:
    match value:
        case None:
            return None
        case bool():
            pass
        case int() if value > 0:
            return value
    msg = f"'{name}' must be a positive integer."
    raise BuildConfigError(msg)


def _string_list(value: object | None, name: str) -> list[str]:
    if value is None:
        return []
    if not isinstance(value, list):
        msg = f"'{name}' must be a list."
        raise BuildConfigError(msg)
    return [str(item).strip() for item in value if str(item).strip()]


def _mapping(value: object | None, name: str) -> dict[str, typ.Any]:
    if value is None:
        return {}
    if not isinstance(value, dict):
        msg = f"'{name}' must be a mapping."
        raise BuildConfigError(msg)
    return dict(value)


def _string_mapping(value: object | None, name: str) -> dict[str, str]:
    return {str(key): str(item) for key, item in _mapping(value, name).items()}


__all__ = ["load_build_config"]
