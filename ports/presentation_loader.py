"""
Port: PresentationLoader
Odpowiedzialność: nagłówki i stopki dokumentów per strona (home, notes, ...).
"""
from typing import Protocol, runtime_checkable


@runtime_checkable
class PresentationLoader(Protocol):
    def get_header(self, page: str) -> str:
        """Header text for a page ("" when none). May raise OSError."""
        ...

    def get_footer(self, page: str) -> str:
        """Footer text for a page ("" when none). May raise OSError."""
        ...
