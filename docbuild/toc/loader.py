r"""Load one table-of-contents file into an item tree.

Markdown TOCs are parsed with the TOC pipeline and turned into a hierarchy by
heading level: a heading becomes a child of the nearest preceding heading with
a lower level, or a new root when there is none (so a leading ``##`` is a
root, and consecutive headings of the same level are siblings). YAML TOCs
(``toc.yml``) declare the hierarchy through nested ``items``.

Links to another TOC file are includes: the referenced TOC is loaded
recursively on the same worker and its items become the children of the
including item. An include that loops back onto a file already on the
inclusion chain reports ``circular-reference`` and is left as a plain link.
Every other href is resolved through the injected resolver relative to the
file that declared it, producing links correct for the root TOC; failures are
reported and the item keeps its authored href.

Example
-------
>>> from docbuild.models import Document
>>> from docbuild.toc.loader import TocLoader
>>> result = TocLoader().load(
...     Document("toc.md"), "# Intro\n## [Setup](setup.md)", resolver
... )  # doctest: +SKIP
>>> [item.title for item in result.walk()]  # doctest: +SKIP
['Intro', 'Setup']
"""

from __future__ import annotations

import dataclasses as dc
import logging
import re
import typing as typ
from types import MappingProxyType

from markdown.util import HTML_PLACEHOLDER_RE
from ruamel.yaml import YAML
from ruamel.yaml.error import YAMLError

from docbuild import errors
from docbuild._constants import DEFAULT_CULTURE, XREF_SCHEME
from docbuild.errors import DocBuildError
from docbuild.markup import PipelineKind, RenderContext
from docbuild.models import DependencyType, is_local_href, is_toc_href

from .models import TocFileResult, TocItem

if typ.TYPE_CHECKING:
    import collections.abc as cabc
    from xml.etree.ElementTree import Element

    from docbuild.errors import Error
    from docbuild.markup import PipelineRegistry, TokenStore
    from docbuild.models import ContentResolver, Document, MonikerMap, MonikerProvider

logger = logging.getLogger(__name__)

HEADING_TAG_RE = re.compile(r"^h(?P<level>\d+)$")
_YAML_ITEM_KEYS = frozenset(
    {"name", "displayName", "href", "tocHref", "topicHref", "monikerRange", "items"}
)


@dc.dataclass(slots=True)
class _ItemDraft:
    """Mutable item used while the tree is assembled."""

    title: str
    level: int = 0
    href: str | None = None
    include: str | None = None
    moniker_range: str | None = None
    metadata: dict[str, typ.Any] = dc.field(default_factory=dict)
    children: list[_ItemDraft] = dc.field(default_factory=list)
    document: Document | None = None

    def freeze(self) -> TocItem:
        return TocItem(
            title=self.title,
            href=self.href,
            children=tuple(child.freeze() for child in self.children),
            moniker_range=self.moniker_range,
            metadata=MappingProxyType(dict(self.metadata)),
            document=self.document,
        )


class _LoadSession:
    """State of loading one root TOC file and everything it includes."""

    def __init__(
        self, root: Document, resolver: ContentResolver, context: RenderContext
    ) -> None:
        self.root = root
        self.resolver = resolver
        self.context = context
        self.errors: list[Error] = []
        self.documents: dict[Document, None] = {}
        self.tocs: dict[Document, None] = {}

    def load_file(
        self, file: Document, content: str, chain: tuple[Document, ...]
    ) -> tuple[list[_ItemDraft], dict[str, typ.Any]]:
        if file.is_yaml:
            drafts, metadata = self._parse_yaml(file, content)
        else:
            drafts, metadata = self._parse_markdown(file, content)
        self._resolve_items(drafts, file, chain)
        return drafts, metadata

    # -- markdown -----------------------------------------------------------

    def _parse_markdown(
        self, file: Document, content: str
    ) -> tuple[list[_ItemDraft], dict[str, typ.Any]]:
        result = self.context.parse(content, file, self.resolver, PipelineKind.TOC)
        self.errors.extend(result.errors)
        roots: list[_ItemDraft] = []
        if result.tree is None:
            return roots, dict(result.metadata)
        stack: list[_ItemDraft] = []
        for element in result.tree:
            match = HEADING_TAG_RE.match(element.tag)
            if match is None:
                self._check_ignorable(file, element)
                continue
            draft = _heading_to_draft(element, int(match.group("level")))
            while stack and stack[-1].level >= draft.level:
                stack.pop()
            (stack[-1].children if stack else roots).append(draft)
            stack.append(draft)
        return roots, dict(result.metadata)

    def _check_ignorable(self, file: Document, element: Element) -> None:
        text = "".join(element.itertext()).strip()
        if element.tag == "hr" or not text or HTML_PLACEHOLDER_RE.fullmatch(text):
            return
        self.errors.append(errors.invalid_toc_syntax(str(file), text))

    # -- yaml ---------------------------------------------------------------

    def _parse_yaml(
        self, file: Document, content: str
    ) -> tuple[list[_ItemDraft], dict[str, typ.Any]]:
        loader = YAML(typ="safe")
        loader.version = (1, 2)
        try:
            loaded = loader.load(content)
        except YAMLError as exc:
            mark = getattr(exc, "problem_mark", None)
            line = mark.line + 1 if mark is not None else 0
            self.errors.append(errors.yaml_syntax_error(str(file), str(exc), line))
            return [], {}
        metadata: dict[str, typ.Any] = {}
        match loaded:
            case None:
                raw_items: list[typ.Any] = []
            case list():
                raw_items = loaded
            case dict():
                raw_items = loaded.get("items") or []
                if not isinstance(raw_items, list):
                    self.errors.append(
                        errors.yaml_syntax_error(str(file), "'items' must be a list.")
                    )
                    raw_items = []
                raw_metadata = loaded.get("metadata") or {}
                if isinstance(raw_metadata, dict):
                    metadata = dict(raw_metadata)
                else:
                    self.errors.append(
                        errors.yaml_syntax_error(str(file), "'metadata' must be a mapping.")
                    )
            case _:
                self.errors.append(
                    errors.yaml_syntax_error(str(file), "A TOC must be a list or a mapping.")
                )
                return [], {}
        return self._yaml_items(file, raw_items), metadata

    def _yaml_items(
        self, file: Document, raw_items: cabc.Iterable[typ.Any]
    ) -> list[_ItemDraft]:
        drafts: list[_ItemDraft] = []
        for raw in raw_items:
            if not isinstance(raw, dict):
                self.errors.append(errors.invalid_toc_syntax(str(file), str(raw)))
                continue
            drafts.append(self._yaml_item(file, raw))
        return drafts

    def _yaml_item(self, file: Document, raw: dict[str, typ.Any]) -> _ItemDraft:
        title = raw.get("name") or raw.get("displayName")
        if not title:
            self.errors.append(errors.missing_attribute(str(file), "name"))
        href = _optional_str(raw.get("href"))
        include = _optional_str(raw.get("tocHref"))
        if include is None and is_toc_href(href):
            include, href = href, None
        topic = _optional_str(raw.get("topicHref"))
        children = raw.get("items") or []
        return _ItemDraft(
            title=str(title or ""),
            href=topic or href,
            include=include,
            moniker_range=_optional_str(raw.get("monikerRange")),
            metadata={k: v for k, v in raw.items() if k not in _YAML_ITEM_KEYS},
            children=self._yaml_items(file, children if isinstance(children, list) else []),
        )

    # -- resolution ---------------------------------------------------------

    def _resolve_items(
        self, drafts: list[_ItemDraft], file: Document, chain: tuple[Document, ...]
    ) -> None:
        for draft in drafts:
            authored = draft.children
            if draft.href:
                self._resolve_href(draft, file)
            included = self._expand_include(draft, file, chain) if draft.include else []
            self._resolve_items(authored, file, chain)
            draft.children = [*included, *authored]

    def _resolve_href(self, draft: _ItemDraft, file: Document) -> None:
        href = typ.cast("str", draft.href)
        if href.lower().startswith(XREF_SCHEME):
            self._resolve_xref(draft, file, href[len(XREF_SCHEME) :])
            return
        if not is_local_href(href):
            return
        error, link, document = self.resolver.resolve_link(href, file, self.root)
        if error is not None:
            self.errors.append(error)
        if link:
            draft.href = link
        if document is not None:
            draft.document = document
            self.documents.setdefault(document)

    def _resolve_xref(self, draft: _ItemDraft, file: Document, uid: str) -> None:
        error, href, display, document = self.resolver.resolve_xref(uid, file, self.root)
        if error is not None:
            self.errors.append(error)
        if href:
            draft.href = href
        draft.title = draft.title or display or uid
        if document is not None:
            draft.document = document
            self.documents.setdefault(document)

    def _expand_include(
        self, draft: _ItemDraft, file: Document, chain: tuple[Document, ...]
    ) -> list[_ItemDraft]:
        include = typ.cast("str", draft.include)
        error, content, toc = self.resolver.resolve_content(
            include, file, DependencyType.TOC_INCLUSION
        )
        if error is not None:
            self.errors.append(error)
        if toc is None or content is None:
            draft.href = draft.href or include
            return []
        if toc in chain:
            names = [str(item) for item in (*chain, toc)]
            self.errors.append(errors.circular_reference(str(file), names))
            draft.href = draft.href or include
            return []
        self.tocs.setdefault(toc)
        logger.debug("Expanding %s included from %s", toc, file)
        included, _ = self.load_file(toc, content, (*chain, toc))
        return included


def _heading_to_draft(element: Element, level: int) -> _ItemDraft:
    link = element.find(".//a")
    title = "".join(element.itertext()).strip()
    href = link.get("href") if link is not None else None
    if href is not None and is_toc_href(href):
        return _ItemDraft(title=title, level=level, include=href)
    return _ItemDraft(title=title, level=level, href=href or None)


def _optional_str(value: object | None) -> str | None:
    """Return a stripped string value or None when empty."""
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _ordered_union(groups: cabc.Iterable[cabc.Sequence[str]]) -> list[str]:
    seen: dict[str, None] = {}
    for group in groups:
        for moniker in group:
            seen.setdefault(moniker)
    return list(seen)


class _MonikerAnnotator:
    """Assign monikers to a frozen item tree from a global moniker map."""

    def __init__(
        self,
        file: Document,
        moniker_map: MonikerMap,
        provider: MonikerProvider | None,
        sink: list[Error],
    ) -> None:
        self.file = file
        self.moniker_map = moniker_map
        self.provider = provider
        self.sink = sink

    def annotate(self, item: TocItem) -> TocItem:
        declared = self._declared(item)
        if not item.is_leaf:
            children = tuple(self.annotate(child) for child in item.children)
            union = _ordered_union(child.monikers for child in children)
            if declared is None:
                monikers = union
            elif union:
                monikers = [moniker for moniker in union if moniker in declared]
            else:
                monikers = declared
            return dc.replace(item, children=children, monikers=tuple(monikers))
        return dc.replace(item, monikers=tuple(self._leaf_monikers(item, declared)))

    def _leaf_monikers(self, item: TocItem, declared: list[str] | None) -> list[str]:
        target = (
            list(self.moniker_map.get(item.document, ()))
            if item.document is not None
            else []
        )
        if not target:
            return declared or []
        if declared is None:
            return target
        monikers = [moniker for moniker in target if moniker in declared]
        if not monikers:
            self.sink.append(
                errors.moniker_mismatch(
                    str(self.file), item.href or item.title, declared, target
                )
            )
        return monikers

    def _declared(self, item: TocItem) -> list[str] | None:
        """Evaluate the item's range; ``None`` when absent or unparseable."""
        if not item.moniker_range or self.provider is None:
            return None
        try:
            return self.provider.parse_range(item.moniker_range)
        except DocBuildError as exc:
            self.sink.append(exc.error.with_file(str(self.file)))
            return None


class TocLoader:
    """Load TOC files through an injected content resolver."""

    def __init__(
        self,
        *,
        culture: str = DEFAULT_CULTURE,
        registry: PipelineRegistry | None = None,
        tokens: TokenStore | None = None,
    ) -> None:
        self.culture = culture
        self.registry = registry
        self.tokens = tokens

    def load(
        self,
        file: Document,
        content: str,
        resolver: ContentResolver,
        *,
        moniker_provider: MonikerProvider | None = None,
        moniker_map: MonikerMap | None = None,
        context: RenderContext | None = None,
    ) -> TocFileResult:
        """Load ``file`` and every TOC it includes.

        Parameters
        ----------
        file : Document
            The TOC file being loaded.
        content : str
            Its source text.
        resolver : ContentResolver
            Resolves includes, hrefs and xrefs.
        moniker_provider : MonikerProvider, optional
            Evaluates item moniker ranges during the annotation pass.
        moniker_map : MonikerMap, optional
            Monikers of every content file; when given, items are annotated
            with their monikers.
        context : RenderContext, optional
            Render context of the calling worker; a new one is created when
            omitted.

        Returns
        -------
        TocFileResult
            Item tree, front matter metadata, diagnostics in discovery order
            and the distinct documents and TOCs referenced.
        """
        context = context or RenderContext(
            culture=self.culture, registry=self.registry, tokens=self.tokens
        )
        session = _LoadSession(file, resolver, context)
        drafts, metadata = session.load_file(file, content, (file,))
        items = tuple(draft.freeze() for draft in drafts)
        if moniker_map is not None:
            annotator = _MonikerAnnotator(file, moniker_map, moniker_provider, session.errors)
            items = tuple(annotator.annotate(item) for item in items)
        return TocFileResult(
            items=items,
            metadata=MappingProxyType(metadata),
            errors=tuple(session.errors),
            referenced_documents=tuple(session.documents),
            referenced_tocs=tuple(session.tocs),
        )


__all__ = ["TocLoader"]
