"""Load and validate the ``docbuild.yml`` build configuration.

The primary entry point is :func:`load_build_config`, which reads the YAML
file, resolves paths relative to the file's directory, validates value types
and returns a :class:`BuildConfig`.

Examples
--------
>>> from pathlib import Path
>>> from docbuild.config import load_build_config
>>> config = load_build_config(Path("docbuild.yml"))  # doctest: +SKIP
>>> config.culture  # doctest: +SKIP
'en-us'
"""

from .loader import load_build_config
from .models import BuildConfig, BuildConfigError

__all__ = ["BuildConfig", "BuildConfigError", "load_build_config"]
