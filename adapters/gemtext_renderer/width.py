"""
Normalizacja szerokości linii Gemtext.

Linie strukturalne (``` / => / # / "* ") i puste przechodzą bez zmian;
pozostałe są zawijane zachłannie po białych znakach. Słowo dłuższe niż
szerokość trafia do osobnej linii w całości.
"""
from __future__ import annotations

_PRESERVED_PREFIXES = ("```", "=>", "#", "* ")
_FENCE = "```"


def clamp_width(document: str, width: int, preserve_fenced: bool = False) -> str:
    """
    Zawija linie dokumentu do `width` znaków; width <= 0 → dokument bez zmian.
    preserve_fenced=True zostawia też treść między znacznikami ``` nietkniętą.
    """
    if width <= 0:
        return document

    out: list[str] = []
    in_fence = False
    for line in document.split("\n"):
        if preserve_fenced and line.lstrip(" ").startswith(_FENCE):
            in_fence = not in_fence
            out.append(line)
            continue
        if in_fence or line.strip() == "" or is_structural_line(line):
            out.append(line)
            continue
        out.extend(wrap_line(line, width))

    return "\n".join(out)


def is_structural_line(line: str) -> bool:
    return line.lstrip(" ").startswith(_PRESERVED_PREFIXES)


def wrap_line(text: str, width: int) -> list[str]:
    words = text.split()
    if not words:
        return [""]

    lines: list[str] = []
    current = words[0]
    for word in words[1:]:
        if len(current) + 1 + len(word) <= width:
            current += " " + word
        else:
            lines.append(current)
            current = word
    lines.append(current)
    return lines
