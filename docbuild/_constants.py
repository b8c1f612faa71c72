"""Common literal values used across docbuild.

Examples
--------
>>> from docbuild import _constants
>>> "toc.md" in _constants.TOC_FILE_NAMES
True
"""

TOC_FILE_NAMES = frozenset({"toc.md", "toc.yml", "toc.yaml"})
YAML_TOC_SUFFIXES = frozenset({".yml", ".yaml"})
DEFAULT_CULTURE = "en-us"
DEFAULT_CONFIG_NAME = "docbuild.yml"
XREF_SCHEME = "xref:"
SOURCE_SUFFIXES = frozenset({".md", ".markdown", ".yml", ".yaml"})
