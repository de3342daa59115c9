"""
gemtext_converter.py - convert Markdown note content into Gemtext lines.

Pipeline:
1) Markdown -> HTML (python-markdown, "extra" + "nl2br")
2) Walk top-level blocks with BeautifulSoup and emit Gemtext:
   headings -> "#"/"##"/"###", lists -> "* ", code -> ``` fences,
   quotes -> "> ", paragraphs -> plain lines
3) Links and images found inside a block are emitted as "=> url label"
   lines right after it (Gemtext has no inline links)
"""
from __future__ import annotations

import re

import markdown
from bs4 import BeautifulSoup, NavigableString, Tag

_WS_RE = re.compile(r"[ \t]+")
# "#tag" na początku linii to hashtag, nie nagłówek (Markdown nie wymaga spacji po #)
_HASHTAG_LINE_RE = re.compile(r"^( {0,3})#(?=[^\s#])")
_FENCES = ("```", "~~~")

_HEADINGS = {"h1": "#", "h2": "##", "h3": "###", "h4": "###", "h5": "###", "h6": "###"}


class MarkdownGemtextConverter:
    """Implements the MarkupConverter port."""

    def __init__(self, extensions: list[str] | None = None) -> None:
        self._extensions = extensions or ["extra", "nl2br"]

    def to_gemtext(self, text: str) -> str:
        if not text.strip():
            return ""
        html = markdown.markdown(_escape_hashtags(text), extensions=self._extensions)
        soup = BeautifulSoup(html, "html.parser")

        blocks: list[list[str]] = []
        for node in soup.children:
            lines = self._block(node)
            if lines:
                blocks.append(lines)

        return "\n\n".join("\n".join(lines) for lines in blocks)

    # -- blocks ------------------------------------------------

    def _block(self, node) -> list[str]:
        if isinstance(node, NavigableString):
            return _text_lines(str(node))
        if not isinstance(node, Tag):
            return []

        name = node.name
        if name in _HEADINGS:
            heading = _normalize(node.get_text())
            if not heading:
                return []
            return [f"{_HEADINGS[name]} {heading}"] + _links(node)
        if name in ("ul", "ol"):
            return self._list(node)
        if name == "pre":
            code = node.get_text().rstrip("\n")
            return ["```", *code.split("\n"), "```"]
        if name == "blockquote":
            inner = [line for child in node.children for line in self._block(child)]
            quoted = [f"> {line}" for line in inner if not line.startswith("=> ")]
            return quoted + [line for line in inner if line.startswith("=> ")]
        if name == "hr":
            return ["---"]
        if name == "table":
            return self._table(node)
        if name == "img":
            return _links(node)

        # p, div i wszystko inne: zwykły akapit
        return _text_lines(_inline_text(node)) + _links(node)

    def _list(self, node: Tag) -> list[str]:
        lines: list[str] = []
        links: list[str] = []
        for item in node.find_all("li"):
            # tylko bezpośredni tekst elementu; zagnieżdżone listy mają własne <li>
            parts = [
                _inline_text(child) if isinstance(child, Tag) else str(child)
                for child in item.children
                if not (isinstance(child, Tag) and child.name in ("ul", "ol"))
            ]
            text = _normalize(" ".join(parts).replace("\n", " "))
            if text:
                lines.append(f"* {text}")
            links.extend(
                _links_from(
                    a for a in item.find_all(["a", "img"], recursive=True)
                    if a.find_parent("li") is item
                )
            )
        return lines + links

    def _table(self, node: Tag) -> list[str]:
        rows = []
        for tr in node.find_all("tr"):
            cells = [_normalize(c.get_text()) for c in tr.find_all(["th", "td"])]
            rows.append(" | ".join(cells))
        return ["```", *rows, "```"] if rows else []


def _escape_hashtags(text: str) -> str:
    lines = []
    in_fence = False
    for line in text.split("\n"):
        if line.lstrip(" ").startswith(_FENCES):
            in_fence = not in_fence
        elif not in_fence:
            line = _HASHTAG_LINE_RE.sub(r"\1\\#", line)
        lines.append(line)
    return "\n".join(lines)


def _inline_text(node: Tag) -> str:
    for br in node.find_all("br"):
        br.replace_with("\n")
    return node.get_text()


def _normalize(text: str) -> str:
    return _WS_RE.sub(" ", text).strip()


def _text_lines(text: str) -> list[str]:
    text = text.replace("\r\n", "\n").replace("\r", "\n")
    lines = [_normalize(line) for line in text.split("\n")]
    return [line for line in lines if line]


def _links(node: Tag) -> list[str]:
    if node.name in ("a", "img"):
        return _links_from([node])
    return _links_from(node.find_all(["a", "img"]))


def _links_from(elements) -> list[str]:
    lines = []
    for el in elements:
        if el.name == "img":
            url = el.get("src", "")
            label = _normalize(el.get("alt", "")) or "Image"
        else:
            url = el.get("href", "")
            label = _normalize(el.get_text())
        if not url:
            continue
        lines.append(f"=> {url} {label}" if label and label != url else f"=> {url}")
    return lines
