from credverify.verification.comparators.compare import (
    compare_license_record,
    compare_linkedin_profile,
    compare_scholar_profile,
)
from credverify.verification.comparators.scorecard import Scorecard, field_similarity

__all__ = [
    "Scorecard",
    "compare_license_record",
    "compare_linkedin_profile",
    "compare_scholar_profile",
    "field_similarity",
]
