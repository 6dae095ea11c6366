"""
Smart Scribbler Backend — Markdown Rendering Helpers
======================================================

What:  Turns the Markdown content Gemini writes into (a) sanitized HTML for
       the preview and (b) a flat list of blocks for the PDF and PPTX builders.
How:   python-markdown renders HTML; BeautifulSoup sanitizes it and walks the
       tree into blocks carrying both plain text (slides) and ReportLab
       paragraph markup (PDF).
"""

import re
from dataclasses import dataclass
from html import unescape
from typing import Iterable, List, Tuple
from xml.sax.saxutils import escape

import markdown
from bs4 import BeautifulSoup, NavigableString, Tag
from bs4.element import PreformattedString

MARKDOWN_EXTENSIONS = ["extra", "sane_lists"]

# Everything else is unwrapped (children kept) unless listed in _DROP_TAGS
ALLOWED_TAGS = {
    "p", "h1", "h2", "h3", "h4", "h5", "h6", "ul", "ol", "li",
    "strong", "em", "b", "i", "u", "del", "s", "sup", "sub", "abbr",
    "code", "pre", "blockquote", "dl", "dt", "dd",
    "table", "thead", "tbody", "tr", "td", "th",
    "a", "img", "hr", "br",
}
ALLOWED_ATTRS = {"href", "src", "alt", "title", "start"}

# Tags removed together with their content
_DROP_TAGS = {
    "script", "style", "iframe", "frame", "frameset", "object", "embed", "applet",
    "form", "input", "button", "select", "textarea", "link", "meta", "base",
    "svg", "math", "template", "noscript", "noembed", "xmp",
}
_URL_ATTRS = {"href", "src"}
_SAFE_SCHEMES = {"http", "https", "mailto"}
# Browsers ignore ASCII whitespace and control characters inside a scheme
_URL_NOISE_RE = re.compile(r"[\x00-\x20\x7f]+")
_SCHEME_RE = re.compile(r"^([a-z][a-z0-9+.\-]*):")
_HEADINGS = {"h1", "h2", "h3", "h4", "h5", "h6"}
_LISTS = {"ul", "ol"}


@dataclass
class Block:
    """
    One block-level element of rendered Markdown.

    kind:    heading, paragraph, bullet, number, code, rule
    text:    plain text
    markup:  ReportLab inline markup (<b>, <i>, <u>, <font>) with text escaped
    level:   heading level (1-6) or list nesting depth (0 = top level)
    number:  position within an ordered list
    """
    kind: str
    text: str
    markup: str = ""
    level: int = 0
    number: int = 0


def _safe_url(tag_name: str, attr: str, value: str) -> bool:
    """
    True when a URL attribute may stay.

    Entities are decoded and whitespace/control characters removed before the
    scheme is read, so "java&#x09;script:" is seen as "javascript:".
    Relative URLs pass; absolute ones need http, https or mailto, except
    img src which may also be a raster data:image/ URI.
    """
    normalized = _URL_NOISE_RE.sub("", unescape(value)).lower()
    match = _SCHEME_RE.match(normalized)
    if not match:
        return ":" not in normalized.split("/", 1)[0].split("?", 1)[0].split("#", 1)[0]
    scheme = match.group(1)
    if scheme in _SAFE_SCHEMES:
        return True
    return (
        tag_name == "img"
        and attr == "src"
        and normalized.startswith("data:image/")
        and not normalized.startswith("data:image/svg")
    )


def sanitize_html(html: str) -> str:
    """
    Reduce HTML produced from model output to a fixed set of tags and attributes.

    Active containers (script, style, svg, math, forms...) are removed with
    their content; any other tag outside ALLOWED_TAGS is unwrapped. Only
    ALLOWED_ATTRS survive, and href/src must carry a safe URL.
    """
    soup = BeautifulSoup(html, "html.parser")
    for tag in soup.find_all(sorted(_DROP_TAGS)):
        tag.decompose()
    # Comments, doctypes, CDATA and processing instructions
    for node in list(soup.descendants):
        if isinstance(node, PreformattedString):
            node.extract()
    for tag in soup.find_all(True):
        if tag.name not in ALLOWED_TAGS:
            tag.unwrap()
            continue
        for attr in list(tag.attrs):
            name = attr.lower()
            if name not in ALLOWED_ATTRS:
                del tag.attrs[attr]
            elif name in _URL_ATTRS and not _safe_url(tag.name, name, str(tag.attrs[attr])):
                del tag.attrs[attr]
    return str(soup)


def render_markdown(text: str) -> str:
    """Markdown → sanitized HTML fragment."""
    return sanitize_html(markdown.markdown(text or "", extensions=MARKDOWN_EXTENSIONS))


# ── HTML → blocks ─────────────────────────────────────────────────────────


def _inline(nodes: Iterable) -> Tuple[str, str]:
    """Return (plain_text, reportlab_markup) for inline content."""
    text_parts: List[str] = []
    markup_parts: List[str] = []
    for node in nodes:
        if isinstance(node, NavigableString):
            s = str(node)
            text_parts.append(s)
            markup_parts.append(escape(s))
            continue
        if not isinstance(node, Tag) or node.name in _LISTS:
            continue
        if node.name == "br":
            text_parts.append("\n")
            markup_parts.append("<br/>")
            continue
        inner_text, inner_markup = _inline(node.contents)
        text_parts.append(inner_text)
        if node.name in ("strong", "b"):
            markup_parts.append(f"<b>{inner_markup}</b>")
        elif node.name in ("em", "i"):
            markup_parts.append(f"<i>{inner_markup}</i>")
        elif node.name == "u":
            markup_parts.append(f"<u>{inner_markup}</u>")
        elif node.name in ("del", "s", "strike"):
            markup_parts.append(f"<strike>{inner_markup}</strike>")
        elif node.name == "code":
            markup_parts.append(f'<font face="Courier">{inner_markup}</font>')
        else:
            markup_parts.append(inner_markup)
    return "".join(text_parts), "".join(markup_parts)


def _collapse(text: str) -> str:
    return " ".join(text.split())


def _list_blocks(tag: Tag, depth: int) -> List[Block]:
    blocks: List[Block] = []
    ordered = tag.name == "ol"
    start = int(tag.get("start", 1)) if str(tag.get("start", "1")).isdigit() else 1
    for position, li in enumerate(tag.find_all("li", recursive=False)):
        inline_nodes = []
        nested = []
        for child in li.contents:
            if isinstance(child, Tag) and child.name in _LISTS:
                nested.append(child)
            elif isinstance(child, Tag) and child.name == "p":
                inline_nodes.extend(child.contents)
                inline_nodes.append(NavigableString(" "))
            else:
                inline_nodes.append(child)
        text, markup = _inline(inline_nodes)
        blocks.append(Block(
            kind="number" if ordered else "bullet",
            text=_collapse(text),
            markup=markup.strip(),
            level=depth,
            number=start + position,
        ))
        for sub in nested:
            blocks.extend(_list_blocks(sub, depth + 1))
    return blocks


def _element_blocks(node) -> List[Block]:
    if isinstance(node, NavigableString):
        text = str(node).strip()
        return [Block(kind="paragraph", text=text, markup=escape(text))] if text else []
    if not isinstance(node, Tag):
        return []

    name = node.name
    if name in _HEADINGS:
        text, markup = _inline(node.contents)
        return [Block(kind="heading", text=_collapse(text), markup=markup, level=int(name[1]))]
    if name == "p":
        text, markup = _inline(node.contents)
        if not text.strip():
            return []
        return [Block(kind="paragraph", text=_collapse(text), markup=markup.strip())]
    if name in _LISTS:
        return _list_blocks(node, 0)
    if name == "pre":
        return [Block(kind="code", text=node.get_text().rstrip("\n"))]
    if name == "hr":
        return [Block(kind="rule", text="")]
    if name == "table":
        blocks = []
        for row in node.find_all("tr"):
            cells = [_collapse(c.get_text()) for c in row.find_all(["td", "th"])]
            line = " | ".join(cells)
            blocks.append(Block(kind="paragraph", text=line, markup=escape(line)))
        return blocks

    # blockquote, div and anything else: descend
    blocks: List[Block] = []
    for child in node.children:
        blocks.extend(_element_blocks(child))
    return blocks


def markdown_blocks(text: str) -> List[Block]:
    """
    Markdown → ordered list of blocks.

    Example:
        "## Key idea\\n\\n- **one**\\n- two" →
        [Block(heading, "Key idea", level=2),
         Block(bullet, "one", markup="<b>one</b>"),
         Block(bullet, "two")]
    """
    soup = BeautifulSoup(render_markdown(text), "html.parser")
    blocks: List[Block] = []
    for child in soup.children:
        blocks.extend(_element_blocks(child))
    return blocks
