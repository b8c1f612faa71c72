r"""Moniker ranges evaluated against an ordered list of product versions.

A range is one or more ``||``-separated clauses; each clause is a
space-separated conjunction of comparators (``>``, ``>=``, ``<``, ``<=``,
``=`` or a bare moniker). Comparisons use the position of a moniker in the
configured list, so ``> 1.0`` selects every moniker listed after ``1.0``.

Example
-------
>>> from docbuild.monikers import OrderedMonikerProvider
>>> provider = OrderedMonikerProvider(["1.0", "2.0", "3.0"])
>>> provider.parse_range(">= 2.0")
['2.0', '3.0']
>>> provider.parse_range("< 2.0 || 3.0")
['1.0', '3.0']
"""

from __future__ import annotations

import fnmatch
import operator
import re
import typing as typ

from . import errors
from .errors import DocBuildError

if typ.TYPE_CHECKING:
    import collections.abc as cabc

    from .errors import Error
    from .models import Document

COMPARATOR_RE = re.compile(r"\s*(?P<op>>=|<=|>|<|=)?\s*(?P<moniker>[^\s<>=|]+)")
CLAUSE_RE = re.compile(r"(?:\s*(?:>=|<=|>|<|=)?\s*[^\s<>=|]+)+\s*")
_OPERATORS: dict[str, cabc.Callable[[int, int], bool]] = {
    ">": operator.gt,
    ">=": operator.ge,
    "<": operator.lt,
    "<=": operator.le,
    "=": operator.eq,
}


class OrderedMonikerProvider:
    """Evaluate moniker ranges and assign file-level monikers.

    Parameters
    ----------
    monikers : Sequence[str]
        Every known moniker, oldest first.
    file_ranges : Mapping[str, str], optional
        Glob pattern (docset-relative path) to the moniker range applying to
        matching files when they declare none themselves. The first matching
        pattern wins.
    """

    def __init__(
        self,
        monikers: cabc.Sequence[str],
        file_ranges: cabc.Mapping[str, str] | None = None,
    ) -> None:
        self.monikers = tuple(monikers)
        self._positions = {moniker.lower(): index for index, moniker in enumerate(self.monikers)}
        self.file_ranges = dict(file_ranges or {})

    def parse_range(self, expression: str) -> list[str]:
        """Return the ordered monikers selected by ``expression``.

        Raises
        ------
        DocBuildError
            If the expression is malformed or names an unknown moniker.
        """
        text = expression.strip()
        if not text:
            return []
        selected: set[int] = set()
        for clause in text.split("||"):
            selected |= self._evaluate_clause(expression, clause)
        return [self.monikers[index] for index in sorted(selected)]

    def _evaluate_clause(self, expression: str, clause: str) -> set[int]:
        if not CLAUSE_RE.fullmatch(clause):
            raise DocBuildError(
                errors.invalid_moniker_range(None, expression, f"cannot parse '{clause.strip()}'.")
            )
        selected = set(range(len(self.monikers)))
        for match in COMPARATOR_RE.finditer(clause):
            name = match.group("moniker")
            position = self._positions.get(name.lower())
            if position is None:
                raise DocBuildError(
                    errors.invalid_moniker_range(None, expression, f"unknown moniker '{name}'.")
                )
            compare = _OPERATORS[match.group("op") or "="]
            selected &= {index for index in selected if compare(index, position)}
        return selected

    def range_for(self, file: Document) -> str | None:
        """Return the configured range whose pattern matches ``file``."""
        for pattern, expression in self.file_ranges.items():
            if fnmatch.fnmatch(file.path, pattern):
                return expression
        return None

    def get_file_level_monikers(
        self, file: Document, declared_range: str | None
    ) -> tuple[Error | None, list[str]]:
        """Return the monikers of ``file``; unversioned files get an empty list."""
        expression = declared_range or self.range_for(file)
        if not expression:
            return None, []
        try:
            return None, self.parse_range(expression)
        except DocBuildError as exc:
            return exc.error.with_file(str(file)), []

    def build_moniker_map(
        self, files: cabc.Iterable[Document]
    ) -> dict[Document, list[str]]:
        """Return the monikers of every versioned file in ``files``."""
        moniker_map: dict[Document, list[str]] = {}
        for file in files:
            _, monikers = self.get_file_level_monikers(file, None)
            if monikers:
                moniker_map[file] = monikers
        return moniker_map


__all__ = ["OrderedMonikerProvider"]
