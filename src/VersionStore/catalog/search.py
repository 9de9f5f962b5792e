# === NAVMAP v1 ===
# {
#   "module": "VersionStore.catalog.search",
#   "purpose": "Substring, full-text, and phonetic search over version metadata",
#   "sections": [
#     {"id": "sanitize-word", "name": "sanitize_word", "anchor": "function-sanitize-word", "kind": "function"},
#     {"id": "build-like-clause", "name": "build_like_clause", "anchor": "function-build-like-clause", "kind": "function"},
#     {"id": "escape-search-term", "name": "escape_search_term", "anchor": "function-escape-search-term", "kind": "function"},
#     {"id": "simple-search", "name": "simple_search", "anchor": "function-simple-search", "kind": "function"},
#     {"id": "full-text-search", "name": "full_text_search", "anchor": "function-full-text-search", "kind": "function"},
#     {"id": "fuzzy-search", "name": "fuzzy_search", "anchor": "function-fuzzy-search", "kind": "function"}
#   ]
# }
# === /NAVMAP ===

"""Search over the version catalog.

Three read-only modes, all projected through the catalog's row-to-version
mapping:

- :func:`simple_search` OR-combines LIKE patterns per word over ``info`` and
  ``version``; results are oldest first.
- :func:`full_text_search` hands a raw FTS5 query to the ``VersionsFts``
  index restricted to ``info``, ``version`` and ``date``; newest first.
- :func:`fuzzy_search` matches the phonetic ``fuzzy`` column instead of
  ``info``.

FTS5 terms are NOT escaped. Callers that want a literal phrase must wrap it
with :func:`escape_search_term`.
"""

from __future__ import annotations

import logging
from typing import Iterable, List, Tuple

from VersionStore.catalog.models import FileVersion
from VersionStore.catalog.phonetic import phonetic_query
from VersionStore.catalog.store import FTS_SELECT, VERSION_SELECT, SQLiteCatalog

__all__ = [
    "sanitize_word",
    "build_like_clause",
    "escape_search_term",
    "simple_search",
    "full_text_search",
    "fuzzy_search",
]

logger = logging.getLogger(__name__)

SIMPLE_SEARCH_COLUMNS = ("info", "version")
_UNSAFE_CHARS = str.maketrans("", "", "'%;\"\\")


def sanitize_word(word: str) -> str:
    """Delete quote, percent, semicolon, and backslash characters from ``word``."""
    return word.translate(_UNSAFE_CHARS)


def build_like_clause(column: str, word: str) -> Tuple[str, List[str]]:
    """LIKE predicate matching ``word`` as suffix, prefix, inner token, or whole field.

    Returns:
        SQL fragment with placeholders and its parameters
    """
    patterns = [f"% {word}", f"{word} %", f"% {word} %", word]
    clause = " OR ".join(f"v.{column} LIKE ?" for _ in patterns)
    return clause, patterns


def escape_search_term(term: str) -> str:
    """Quote ``term`` as a literal FTS5 phrase, doubling any inner quotes."""
    return '"' + term.replace('"', '""') + '"'


def simple_search(catalog: SQLiteCatalog, words: Iterable[str], limit: int) -> List[FileVersion]:
    """Versions whose info or version field contains any of ``words``.

    Results are ordered by timestamp ascending (oldest first).
    """
    clauses: List[str] = []
    params: List[str] = []
    for word in words:
        cleaned = sanitize_word(word)
        if not cleaned:
            continue
        for column in SIMPLE_SEARCH_COLUMNS:
            clause, patterns = build_like_clause(column, cleaned)
            clauses.append(clause)
            params.extend(patterns)
    if not clauses:
        return []

    sql = (
        VERSION_SELECT
        + " WHERE "
        + " OR ".join(clauses)
        + " ORDER BY v.date ASC, v.version_id ASC LIMIT ?"
    )
    results = catalog.query(sql, [*params, limit])
    logger.debug(f"Simple search matched {len(results)} versions")
    return results


def _fts_search(catalog: SQLiteCatalog, match: str, limit: int) -> List[FileVersion]:
    sql = FTS_SELECT + " WHERE VersionsFts MATCH ? ORDER BY v.date DESC, v.version_id DESC LIMIT ?"
    return catalog.query(sql, (match, limit))


def full_text_search(catalog: SQLiteCatalog, term: str, limit: int) -> List[FileVersion]:
    """Run FTS5 query ``term`` against info, version, and date.

    Raises:
        StorageError: If ``term`` is not a valid FTS5 query
    """
    return _fts_search(catalog, f"{{info version date}} : ({term})", limit)


def fuzzy_search(catalog: SQLiteCatalog, term: str, limit: int) -> List[FileVersion]:
    """Like :func:`full_text_search` but matching info phonetically.

    The words of ``term`` are Metaphone-encoded for the ``fuzzy`` column while
    ``version`` and ``date`` see the term unchanged.
    """
    match = f"fuzzy : ({phonetic_query(term)}) OR {{version date}} : ({term})"
    return _fts_search(catalog, match, limit)
