"""
Port: MarkupConverter
Odpowiedzialność: konwersja treści (Markdown) do surowych linii Gemtext.
"""
from typing import Protocol, runtime_checkable


@runtime_checkable
class MarkupConverter(Protocol):
    def to_gemtext(self, text: str) -> str:
        """
        Converts prose markup into Gemtext lines (headings, '* ' lists,
        '=> ' links, ``` fences, '> ' quotes, plain paragraphs).
        """
        ...
