"""
Match policy: every tunable threshold used by comparators and the orchestrator.

Values come from settings (MATCH_* environment variables) so operators can tune
them without a deploy. Comparators take a MatchPolicy argument instead of
reading settings directly, which keeps them pure and easy to test.
"""

from dataclasses import dataclass

from credverify.core.config import settings


@dataclass(frozen=True)
class MatchPolicy:
    high_similarity: float = 0.8
    low_similarity: float = 0.5
    identity_mismatch: float = 0.3
    partial_weight: float = 0.5
    affiliation_similarity: float = 0.5
    year_tolerance: int = 1
    year_partial_tolerance: int = 3
    publication_similarity: float = 0.7
    registry_threshold: float = 0.7
    profile_threshold: float = 0.6
    verify_confidence: float = 0.7
    unverified_profile_confidence: float = 0.3

    @classmethod
    def from_settings(cls) -> "MatchPolicy":
        return cls(
            high_similarity=settings.MATCH_HIGH_SIMILARITY,
            low_similarity=settings.MATCH_LOW_SIMILARITY,
            identity_mismatch=settings.MATCH_IDENTITY_MISMATCH,
            partial_weight=settings.MATCH_PARTIAL_WEIGHT,
            affiliation_similarity=settings.MATCH_AFFILIATION_SIMILARITY,
            year_tolerance=settings.MATCH_YEAR_TOLERANCE,
            year_partial_tolerance=settings.MATCH_YEAR_PARTIAL_TOLERANCE,
            publication_similarity=settings.MATCH_PUBLICATION_SIMILARITY,
            registry_threshold=settings.MATCH_REGISTRY_THRESHOLD,
            profile_threshold=settings.MATCH_PROFILE_THRESHOLD,
            verify_confidence=settings.MATCH_VERIFY_CONFIDENCE,
            unverified_profile_confidence=settings.MATCH_UNVERIFIED_PROFILE_CONFIDENCE,
        )


def get_match_policy() -> MatchPolicy:
    """Current policy built from settings."""
    return MatchPolicy.from_settings()
