"""
Word-overlap similarity shared by the cache fallback and mistake insights.

Tokens are lowercased, common English contractions are expanded and
surrounding punctuation is stripped, so "what's 2+2?" and "what is 2+2"
produce the same token set.
"""

import re
from typing import Set

_CONTRACTIONS = (
    ("n't", " not"),
    ("'re", " are"),
    ("'m", " am"),
    ("'ll", " will"),
    ("'ve", " have"),
    ("'d", " would"),
    ("'s", " is"),
)

_EDGE_PUNCTUATION = ".,!?;:\"'()[]{}<>`"


def tokenize(text: str) -> Set[str]:
    """Lowercased word set with contractions expanded."""
    lowered = text.lower().replace("’", "'")
    for suffix, expansion in _CONTRACTIONS:
        lowered = re.sub(rf"(\w){re.escape(suffix)}\b", rf"\1{expansion}", lowered)

    tokens = set()
    for raw in lowered.split():
        token = raw.strip(_EDGE_PUNCTUATION)
        if token:
            tokens.add(token)
    return tokens


def jaccard_similarity(a: str, b: str) -> float:
    """|A ∩ B| / |A ∪ B| over the token sets of two strings."""
    words_a = tokenize(a)
    words_b = tokenize(b)
    union = words_a | words_b
    if not union:
        return 0.0
    return len(words_a & words_b) / len(union)
