from credverify.verification.similarity.scorer import (
    best_similarity,
    levenshtein,
    name_similarity,
    normalize,
    similarity,
)

__all__ = [
    "best_similarity",
    "levenshtein",
    "name_similarity",
    "normalize",
    "similarity",
]
