"""Phonetic encoding of info strings.

Each whitespace-delimited word is reduced to its Metaphone code so that
spelling variants ("Smith", "Smyth") collapse to the same token. Codes are
computed once when a version is added and stored verbatim in the ``fuzzy``
column; existing rows are never re-encoded.
"""

from __future__ import annotations

import re
from typing import List

import jellyfish

__all__ = ["phonetic_encode", "phonetic_query"]

FTS_OPERATORS = frozenset({"AND", "OR", "NOT", "NEAR"})
_TOKEN_RE = re.compile(r'^([-^("]*)(.*?)([)"*]*)$', re.DOTALL)


def _encode_word(word: str) -> str:
    return jellyfish.metaphone(word)


def phonetic_encode(text: str) -> str:
    """Return the per-word Metaphone codes of ``text`` joined by single spaces."""
    return " ".join(_encode_word(word) for word in text.split())


def phonetic_query(term: str) -> str:
    """Encode the words of an FTS5 query while keeping its operators intact.

    Boolean operators pass through unchanged, and quote, parenthesis, prefix
    (``*``) and initial-token (``^``) markers around a word are preserved.
    Words without a phonetic code (digits, punctuation) are kept as given.
    Codes outside a quoted phrase are emitted as FTS5 strings, since some
    words ("or", "our") encode to operator names.
    """
    parts: List[str] = []
    in_phrase = False
    for token in term.split():
        quoted = in_phrase or '"' in token
        if token.count('"') % 2:
            in_phrase = not in_phrase
        if not quoted and (token in FTS_OPERATORS or token.startswith("NEAR(")):
            parts.append(token)
            continue
        match = _TOKEN_RE.match(token)
        lead, core, trail = match.group(1), match.group(2), match.group(3)
        code = _encode_word(core) if core else ""
        if code and not quoted:
            code = f'"{code}"'
        parts.append(f"{lead}{code or core}{trail}")
    return " ".join(parts)
