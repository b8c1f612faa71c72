"""Python-Markdown extensions that call back into the active render context.

Every extension here is constructed with the :class:`RenderContext` of the
render that creates the ``Markdown`` instance, so resolution of includes,
links, cross-references, moniker zones and localized tokens always goes
through the context's innermost job and lands in its diagnostics sink.
"""

from __future__ import annotations

import copy
import re
import typing as typ
import xml.etree.ElementTree as etree
from html import escape

from markdown.blockprocessors import HashHeaderProcessor
from markdown.extensions import Extension
from markdown.inlinepatterns import InlineProcessor
from markdown.postprocessors import Postprocessor
from markdown.preprocessors import Preprocessor
from markdown.treeprocessors import Treeprocessor
from ruamel.yaml import YAML
from ruamel.yaml.error import YAMLError

from docbuild import errors
from docbuild._constants import XREF_SCHEME
from docbuild.models import is_local_href

from .kinds import PipelineKind

if typ.TYPE_CHECKING:
    from xml.etree.ElementTree import Element

    from markdown import Markdown

    from .context import RenderContext

FRONT_MATTER_DELIMITER = re.compile(r"^-{3}\s*$")
FRONT_MATTER_END = re.compile(r"^(?:-{3}|\.{3})\s*$")
INCLUDE_PATTERN = r"\[!INCLUDE\s*\[(?P<title>[^\]]*)\]\((?P<path>[^)\s]+)\)\]"
BLOCK_INCLUDE_RE = re.compile(rf"^\s{{0,3}}{INCLUDE_PATTERN}\s*$", re.IGNORECASE)
INLINE_INCLUDE_PATTERN = rf"(?i){INCLUDE_PATTERN}"
FENCE_RE = re.compile(r"^\s{0,3}(`{3,}|~{3,})")
MONIKER_START_RE = re.compile(
    r"""^\s*:::\s*moniker\s+range\s*=\s*(?P<quote>["'])(?P<range>.*?)(?P=quote)\s*$""",
    re.IGNORECASE,
)
MONIKER_END_RE = re.compile(r"^\s*:::\s*moniker-end\s*$", re.IGNORECASE)
NOTE_RE = re.compile(r"^\s*\[!(NOTE|TIP|IMPORTANT|CAUTION|WARNING)\]\s*", re.IGNORECASE)
XREF_AUTOLINK_PATTERN = r"<xref:(?P<uid>[^>\s]+)>"
SINGLE_PARAGRAPH_RE = re.compile(r"^\s*<p>(?P<body>.*)</p>\s*$", re.DOTALL)

_NON_BLOCK_PROCESSORS = (
    "indent",
    "code",
    "hashheader",
    "setextheader",
    "hr",
    "olist",
    "ulist",
    "quote",
    "reference",
)
_TOC_REMOVED_BLOCK_PROCESSORS = (
    "indent",
    "code",
    "setextheader",
    "olist",
    "ulist",
    "quote",
    "reference",
)
_TOC_REMOVED_INLINE_PATTERNS = (
    "backtick",
    "escape",
    "reference",
    "image_link",
    "image_reference",
    "short_reference",
    "short_image_ref",
    "autolink",
    "automail",
    "linebreak",
    "html",
    "entity",
    "not_strong",
    "em_strong",
    "em_strong2",
)


def _safe_yaml() -> YAML:
    loader = YAML(typ="safe")
    loader.version = (1, 2)
    return loader


class ContextExtension(Extension):
    """Base class for extensions bound to a render context."""

    def __init__(self, context: RenderContext, **kwargs: typ.Any) -> None:
        self.context = context
        super().__init__(**kwargs)


# -- front matter ---------------------------------------------------------


class FrontMatterExtension(ContextExtension):
    """Strip a leading YAML front matter block into the render metadata."""

    def extendMarkdown(self, md: Markdown) -> None:  # noqa: N802
        md.preprocessors.register(
            FrontMatterPreprocessor(md, self.context), "docbuild_front_matter", 35
        )


class FrontMatterPreprocessor(Preprocessor):
    def __init__(self, md: Markdown, context: RenderContext) -> None:
        super().__init__(md)
        self.context = context

    def run(self, lines: list[str]) -> list[str]:
        if not lines or not FRONT_MATTER_DELIMITER.match(lines[0]):
            return lines
        end = next(
            (
                index
                for index in range(1, len(lines))
                if FRONT_MATTER_END.match(lines[index])
            ),
            None,
        )
        if end is None:
            return lines
        header = "\n".join(lines[1:end])
        try:
            loaded = _safe_yaml().load(header)
        except YAMLError as exc:
            self.context.log_error("yaml-header-syntax-error", str(exc), line=1)
            return lines[end + 1 :]
        if loaded is None:
            loaded = {}
        if not isinstance(loaded, dict):
            self.context.log_warning(
                "yaml-header-not-object", "Front matter must be a mapping.", line=1
            )
        elif self.context.current_job.depth == 0:
            self.context.result.metadata.update(loaded)
        return lines[end + 1 :]


# -- includes -------------------------------------------------------------


class IncludeExtension(ContextExtension):
    """Render ``[!INCLUDE[title](path)]`` lines as nested renders."""

    def extendMarkdown(self, md: Markdown) -> None:  # noqa: N802
        # Below normalize_whitespace (30), which strips stash placeholders.
        md.preprocessors.register(
            IncludePreprocessor(md, self.context), "docbuild_include", 26
        )


class IncludePreprocessor(Preprocessor):
    def __init__(self, md: Markdown, context: RenderContext) -> None:
        super().__init__(md)
        self.context = context

    def run(self, lines: list[str]) -> list[str]:
        output: list[str] = []
        fence: str | None = None
        for line in lines:
            fence_match = FENCE_RE.match(line)
            if fence_match:
                marker = fence_match.group(1)
                if fence is None:
                    fence = marker
                elif marker.startswith(fence):
                    fence = None
            match = BLOCK_INCLUDE_RE.match(line) if fence is None else None
            if match is None:
                output.append(line)
                continue
            html = self._render(match.group("path"))
            output.extend(["", self.md.htmlStash.store(html) if html else "", ""])
        return output

    def _render(self, path: str) -> str:
        content, file = self.context.read_file(path, self.context.current_file)
        if content is None or file is None:
            return ""
        return self.context.render_nested(content, file).strip()


class InlineIncludeExtension(ContextExtension):
    """Render ``[!INCLUDE[title](path)]`` inside a paragraph as inline markdown."""

    def extendMarkdown(self, md: Markdown) -> None:  # noqa: N802
        md.inlinePatterns.register(
            InlineIncludeProcessor(INLINE_INCLUDE_PATTERN, md, self.context),
            "docbuild_inline_include",
            175,
        )


class InlineIncludeProcessor(InlineProcessor):
    def __init__(self, pattern: str, md: Markdown, context: RenderContext) -> None:
        super().__init__(pattern, md)
        self.context = context

    def handleMatch(  # noqa: N802
        self, m: re.Match[str], data: str
    ) -> tuple[str, int, int]:
        content, file = self.context.read_file(
            m.group("path"), self.context.current_file
        )
        html = ""
        if content is not None and file is not None:
            html = self.context.render_nested(content, file, PipelineKind.INLINE)
        return self.md.htmlStash.store(html), m.start(0), m.end(0)


# -- moniker zones --------------------------------------------------------


class MonikerZoneExtension(ContextExtension):
    """Wrap ``::: moniker range="..."`` zones in ``data-moniker`` containers."""

    def extendMarkdown(self, md: Markdown) -> None:  # noqa: N802
        md.preprocessors.register(
            MonikerZonePreprocessor(md, self.context), "docbuild_moniker_zone", 27
        )


class MonikerZonePreprocessor(Preprocessor):
    def __init__(self, md: Markdown, context: RenderContext) -> None:
        super().__init__(md)
        self.context = context

    def run(self, lines: list[str]) -> list[str]:
        output: list[str] = []
        open_line: int | None = None
        for number, line in enumerate(lines, start=1):
            start = MONIKER_START_RE.match(line)
            if start:
                if open_line is not None:
                    self._unclosed(open_line, output)
                output.extend(self._open(start.group("range"), number))
                open_line = number
                continue
            if MONIKER_END_RE.match(line):
                if open_line is None:
                    self.context.log_warning(
                        "moniker-start-not-found",
                        "Found '::: moniker-end' without a matching zone.",
                        line=number,
                    )
                else:
                    output.extend(self._close())
                    open_line = None
                continue
            output.append(line)
        if open_line is not None:
            self._unclosed(open_line, output)
        return output

    def _open(self, expression: str, line: int) -> list[str]:
        monikers = self.context.parse_moniker_range(expression)
        if not monikers:
            self.context.diagnostics.append(
                errors.empty_monikers(str(self.context.current_file), expression, line)
            )
        opening = (
            f'<div data-moniker="{escape(" ".join(monikers), quote=True)}" '
            f'data-moniker-range="{escape(expression, quote=True)}">'
        )
        return ["", self.md.htmlStash.store(opening), ""]

    def _close(self) -> list[str]:
        return ["", self.md.htmlStash.store("</div>"), ""]

    def _unclosed(self, line: int, output: list[str]) -> None:
        self.context.diagnostics.append(
            errors.moniker_zone_not_closed(str(self.context.current_file), line)
        )
        output.extend(self._close())


# -- note blocks ----------------------------------------------------------


class NoteBlockExtension(ContextExtension):
    """Turn ``> [!NOTE]`` quotes into titled alert blocks."""

    def extendMarkdown(self, md: Markdown) -> None:  # noqa: N802
        md.treeprocessors.register(
            NoteBlockTreeprocessor(md, self.context), "docbuild_note_block", 14
        )


class NoteBlockTreeprocessor(Treeprocessor):
    def __init__(self, md: Markdown, context: RenderContext) -> None:
        super().__init__(md)
        self.context = context

    def run(self, root: Element) -> None:
        for quote in list(root.iter("blockquote")):
            first = quote[0] if len(quote) else None
            if first is None or first.tag != "p" or not first.text:
                continue
            match = NOTE_RE.match(first.text)
            if match is None:
                continue
            kind = match.group(1).upper()
            first.text = first.text[match.end() :]
            if not first.text.strip() and not len(first):
                quote.remove(first)
            quote.tag = "div"
            quote.set("class", kind)
            title = etree.Element("p", {"class": "alert-title"})
            title.text = self.context.get_token(kind.lower()) or kind.title()
            quote.insert(0, title)


# -- title ----------------------------------------------------------------


class TitleExtension(ContextExtension):
    """Extract a leading ``h1`` of the top-level document as its title."""

    def extendMarkdown(self, md: Markdown) -> None:  # noqa: N802
        md.treeprocessors.register(
            TitleTreeprocessor(md, self.context), "docbuild_title", 18
        )


class TitleTreeprocessor(Treeprocessor):
    def __init__(self, md: Markdown, context: RenderContext) -> None:
        super().__init__(md)
        self.context = context

    def run(self, root: Element) -> None:
        if self.context.current_job.depth:
            return
        first = next(iter(root), None)
        if first is None or first.tag != "h1":
            return
        self.context.result.title = "".join(first.itertext()).strip()
        root.remove(first)


# -- links and cross-references -------------------------------------------


class LinkResolverExtension(ContextExtension):
    """Resolve relative ``a[href]`` and ``img[src]`` through the resolver."""

    def extendMarkdown(self, md: Markdown) -> None:  # noqa: N802
        md.treeprocessors.register(
            LinkResolverTreeprocessor(md, self.context), "docbuild_links", 17
        )


class LinkResolverTreeprocessor(Treeprocessor):
    """Rewrite relative links so they are correct for the top-level file.

    Unresolvable anchors lose their ``href`` and render as plain text; images
    keep their original ``src``.
    """

    def __init__(self, md: Markdown, context: RenderContext) -> None:
        super().__init__(md)
        self.context = context

    def run(self, root: Element) -> None:
        for element in root.iter():
            if element.tag == "a":
                self._rewrite(element, "href", keep_unresolved=False)
            elif element.tag == "img":
                self._rewrite(element, "src", keep_unresolved=True)

    def _rewrite(self, element: Element, attribute: str, *, keep_unresolved: bool) -> None:
        target = element.get(attribute)
        if not is_local_href(target):
            return
        link = self.context.get_link(
            typ.cast("str", target), self.context.current_file, self.context.root_file
        )
        if link:
            element.set(attribute, link)
        elif not keep_unresolved:
            del element.attrib[attribute]


class XrefSyntaxExtension(ContextExtension):
    """Recognise ``<xref:uid>`` autolinks without resolving them."""

    def extendMarkdown(self, md: Markdown) -> None:  # noqa: N802
        md.inlinePatterns.register(
            XrefInlineProcessor(XREF_AUTOLINK_PATTERN, md), "docbuild_xref", 172
        )


class XrefExtension(XrefSyntaxExtension):
    """Recognise and resolve ``<xref:uid>`` and ``[text](xref:uid)`` links."""

    def extendMarkdown(self, md: Markdown) -> None:  # noqa: N802
        super().extendMarkdown(md)
        md.treeprocessors.register(
            XrefTreeprocessor(md, self.context), "docbuild_xref_resolve", 16
        )


class XrefInlineProcessor(InlineProcessor):
    def handleMatch(  # noqa: N802
        self, m: re.Match[str], data: str
    ) -> tuple[Element, int, int]:
        element = etree.Element("a")
        element.set("href", f"{XREF_SCHEME}{m.group('uid')}")
        return element, m.start(0), m.end(0)


class XrefTreeprocessor(Treeprocessor):
    """Resolve ``xref:`` anchors; unresolved ones become ``span.xref`` text."""

    def __init__(self, md: Markdown, context: RenderContext) -> None:
        super().__init__(md)
        self.context = context

    def run(self, root: Element) -> None:
        for element in root.iter("a"):
            href = element.get("href") or ""
            if not href.lower().startswith(XREF_SCHEME):
                continue
            uid = re.split(r"[?#]", href[len(XREF_SCHEME) :], maxsplit=1)[0]
            result = self.context.resolve_xref(uid)
            has_text = bool(element.text) or len(element) > 0
            if result.href:
                element.set("href", result.href)
                if not has_text:
                    element.text = result.display or uid
                continue
            del element.attrib["href"]
            element.tag = "span"
            element.set("class", "xref")
            if not has_text:
                element.text = uid


# -- restricted grammars --------------------------------------------------


class InlineOnlyExtension(ContextExtension):
    """Disable block constructs and unwrap the single resulting paragraph."""

    def extendMarkdown(self, md: Markdown) -> None:  # noqa: N802
        for name in _NON_BLOCK_PROCESSORS:
            md.parser.blockprocessors.deregister(name, strict=False)
        md.preprocessors.deregister("html_block", strict=False)
        md.postprocessors.register(
            InlineUnwrapPostprocessor(md), "docbuild_inline_unwrap", 5
        )


class InlineUnwrapPostprocessor(Postprocessor):
    def run(self, text: str) -> str:
        match = SINGLE_PARAGRAPH_RE.match(text)
        if match is None or "<p>" in match.group("body"):
            return text
        return match.group("body")


class DeepHashHeaderProcessor(HashHeaderProcessor):
    """ATX heading processor without the six-level cap.

    The ``#`` run must be followed by whitespace or end the line, so
    ``#hashtag`` stays paragraph text.
    """

    RE = re.compile(
        r"(?:^|\n)(?P<level>#+)(?P<header>(?:[ \t](?:\\.|[^\\])*?)?)#*(?:\n|$)"
    )


class TocOnlyExtension(ContextExtension):
    """Restrict the grammar to headings, paragraphs, breaks, raw HTML and links."""

    def extendMarkdown(self, md: Markdown) -> None:  # noqa: N802
        blocks = md.parser.blockprocessors
        for name in _TOC_REMOVED_BLOCK_PROCESSORS:
            blocks.deregister(name, strict=False)
        blocks.deregister("hashheader", strict=False)
        blocks.register(DeepHashHeaderProcessor(md.parser), "hashheader", 70)
        for name in _TOC_REMOVED_INLINE_PATTERNS:
            md.inlinePatterns.deregister(name, strict=False)


class TreeCaptureExtension(ContextExtension):
    """Keep a copy of the parsed element tree on the render result."""

    def extendMarkdown(self, md: Markdown) -> None:  # noqa: N802
        md.treeprocessors.register(
            TreeCaptureTreeprocessor(md, self.context), "docbuild_capture", 5
        )


class TreeCaptureTreeprocessor(Treeprocessor):
    def __init__(self, md: Markdown, context: RenderContext) -> None:
        super().__init__(md)
        self.context = context

    def run(self, root: Element) -> None:
        if self.context.current_job.depth == 0:
            self.context.result.tree = copy.deepcopy(root)


__all__ = [
    "ContextExtension",
    "DeepHashHeaderProcessor",
    "FrontMatterExtension",
    "IncludeExtension",
    "InlineIncludeExtension",
    "InlineOnlyExtension",
    "LinkResolverExtension",
    "MonikerZoneExtension",
    "NoteBlockExtension",
    "TitleExtension",
    "TocOnlyExtension",
    "TreeCaptureExtension",
    "XrefExtension",
    "XrefSyntaxExtension",
]
