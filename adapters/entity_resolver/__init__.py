from .nip19 import decode, encode, encode_address, encode_event
from .resolver import (
    Nip19EntityResolver,
    dedup_entities,
    identity_formatter,
    link_label_formatter,
    plain_text_formatter,
)
from .scanner import scan

__all__ = [
    "Nip19EntityResolver",
    "dedup_entities",
    "identity_formatter",
    "link_label_formatter",
    "plain_text_formatter",
    "scan",
    "decode",
    "encode",
    "encode_address",
    "encode_event",
]
