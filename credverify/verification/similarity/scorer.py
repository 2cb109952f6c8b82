"""
String and name similarity used by every comparator.

All functions are pure and deterministic. Inputs are normalized before
comparison: Unicode NFKD with combining marks removed, casefolded, and
stripped of anything that is not a letter or digit.
"""

import unicodedata
from typing import Iterable, Optional


def normalize(value: Optional[str]) -> str:
    """Fold case and diacritics and drop non-alphanumeric characters."""
    if not value:
        return ""
    decomposed = unicodedata.normalize("NFKD", str(value))
    stripped = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    return "".join(ch for ch in stripped.casefold() if ch.isalnum())


def _tokens(value: Optional[str]) -> list[str]:
    if not value:
        return []
    return sorted(t for t in (normalize(part) for part in str(value).split()) if t)


def levenshtein(a: str, b: str) -> int:
    """Edit distance with unit insert/delete/substitute costs."""
    if a == b:
        return 0
    if len(a) < len(b):
        a, b = b, a
    if not b:
        return len(a)

    previous = list(range(len(b) + 1))
    for i, ca in enumerate(a, start=1):
        current = [i]
        for j, cb in enumerate(b, start=1):
            current.append(
                min(
                    previous[j] + 1,
                    current[j - 1] + 1,
                    previous[j - 1] + (ca != cb),
                )
            )
        previous = current
    return previous[-1]


def similarity(a: Optional[str], b: Optional[str]) -> float:
    """
    Levenshtein ratio of the normalized strings, in [0, 1].

    Empty vs empty is 1.0; empty vs non-empty is 0.0.
    """
    na, nb = normalize(a), normalize(b)
    if not na and not nb:
        return 1.0
    if not na or not nb:
        return 0.0
    return 1.0 - levenshtein(na, nb) / max(len(na), len(nb))


def name_similarity(a: Optional[str], b: Optional[str]) -> float:
    """
    Token-set overlap of two person names.

    Tokens are split on whitespace, normalized and sorted, so "Ruiz Ana" and
    "Ana Ruiz" score 1.0. The score is matching tokens over the larger token
    count: "Ana Ruiz" vs "Ana Ruiz Garcia" is 2/3.
    """
    ta, tb = _tokens(a), _tokens(b)
    if not ta and not tb:
        return 1.0
    if not ta or not tb:
        return 0.0

    remaining = list(tb)
    matching = 0
    for token in ta:
        if token in remaining:
            remaining.remove(token)
            matching += 1
    return matching / max(len(ta), len(tb))


def best_similarity(value: Optional[str], candidates: Iterable[Optional[str]]) -> float:
    """Highest similarity of value against any candidate (0.0 when none)."""
    return max((similarity(value, c) for c in candidates if c), default=0.0)
