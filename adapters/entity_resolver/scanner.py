"""
Skaner identyfikatorów nostr: w tekście.

Gramatyka (dokładnie pięć podprefiksów, ciało [a-z0-9]+):
  nostr:(npub1…|nprofile1…|note1…|nevent1…|naddr1…)
Skaner nie sprawdza sumy kontrolnej — robi to dopiero resolver.
"""
from __future__ import annotations

import re
from typing import Iterator

SCHEME = "nostr:"

NOSTR_ENTITY_RE = re.compile(
    r"nostr:(npub1[a-z0-9]+|nprofile1[a-z0-9]+|note1[a-z0-9]+|nevent1[a-z0-9]+|naddr1[a-z0-9]+)"
)


def scan(text: str) -> list[str]:
    """Zwraca gołe tokeny (bez "nostr:") w kolejności wystąpienia, z duplikatami."""
    return [m.group(1) for m in NOSTR_ENTITY_RE.finditer(text)]


def find_matches(text: str) -> Iterator[re.Match[str]]:
    """Dopasowania razem z pozycjami; group(0) zawiera prefiks schematu."""
    return NOSTR_ENTITY_RE.finditer(text)
