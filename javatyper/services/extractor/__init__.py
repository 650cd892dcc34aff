"""Snippet extraction from raw lecture notes."""

from .schema import CurationPolicy, Example, ExamplesPayload
from .service import content_hash, curate, extract_all_examples, extract_examples, match_braces, normalize_code

__all__ = [
    "CurationPolicy",
    "Example",
    "ExamplesPayload",
    "content_hash",
    "curate",
    "extract_all_examples",
    "extract_examples",
    "match_braces",
    "normalize_code",
]
