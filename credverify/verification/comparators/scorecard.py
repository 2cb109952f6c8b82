"""
Field-by-field scoring shared by every comparator.

Each check adds to the total, earns full, partial or no credit, and may record
a discrepancy. confidence = score / total (0 when nothing was comparable) and a
result only matches when confidence reaches the threshold and no discrepancy
is high severity. A high-severity finding is never offset by other fields.
"""

from datetime import date
from typing import Any, Iterable, List, Optional

from credverify.verification.policy import MatchPolicy
from credverify.verification.schemas import ComparisonResult, Discrepancy, Severity
from credverify.verification.similarity import name_similarity, normalize, similarity

ACTIVE_LICENSE_STATUSES = ("active", "clear", "current", "valid", "vigente")
INACTIVE_LICENSE_MARKERS = (
    "inactive",
    "expired",
    "revoked",
    "suspended",
    "cancel",
    "lapsed",
    "surrender",
    "delinquent",
    "retired",
)
MIN_CONTAINMENT_LENGTH = 4


def field_similarity(a: Optional[str], b: Optional[str]) -> float:
    """
    Similarity for free-text fields such as school or institution names.

    A name fully contained in the other ("Universidad de Guadalajara" in
    "Universidad de Guadalajara, Facultad de Medicina") counts as a match.
    """
    na, nb = normalize(a), normalize(b)
    if na and nb and min(len(na), len(nb)) >= MIN_CONTAINMENT_LENGTH:
        if na in nb or nb in na:
            return 1.0
    return similarity(a, b)


class Scorecard:
    def __init__(self, policy: MatchPolicy, threshold: float):
        self.policy = policy
        self.threshold = threshold
        self.score = 0.0
        self.total = 0
        self.discrepancies: List[Discrepancy] = []

    def flag(
        self, field: str, submitted: Any, found: Any, severity: Severity
    ) -> None:
        self.discrepancies.append(
            Discrepancy(
                field=field,
                submitted_value=submitted,
                found_value=found,
                severity=severity,
            )
        )

    def check_name(self, submitted: Optional[str], found: Optional[str]) -> None:
        """Identity check: reordered names tolerated, a clear mismatch is high."""
        if not submitted or not found:
            return
        self.total += 1
        score = max(name_similarity(submitted, found), similarity(submitted, found))
        if score > self.policy.high_similarity:
            self.score += 1
        elif score >= self.policy.low_similarity:
            self.score += self.policy.partial_weight
            self.flag("full_name", submitted, found, "low")
        else:
            severity = "high" if score < self.policy.identity_mismatch else "medium"
            self.flag("full_name", submitted, found, severity)

    def check_text(
        self,
        field: str,
        submitted: Optional[str],
        candidates: Iterable[Optional[str]],
    ) -> None:
        """Core free-text field compared against one or more found values."""
        found = [c for c in candidates if c]
        if not submitted or not found:
            return
        self.total += 1
        score = max(field_similarity(submitted, c) for c in found)
        if score > self.policy.high_similarity:
            self.score += 1
        elif score >= self.policy.low_similarity:
            self.score += self.policy.partial_weight
            self.flag(field, submitted, ", ".join(found), "low")
        else:
            self.flag(field, submitted, ", ".join(found), "medium")

    def check_soft(
        self,
        field: str,
        submitted: Iterable[Optional[str]],
        found: Optional[str],
    ) -> None:
        """Soft signal such as an affiliation; a miss is only ever low severity."""
        claimed = [s for s in submitted if s]
        if not claimed or not found:
            return
        self.total += 1
        score = max(field_similarity(s, found) for s in claimed)
        if score > self.policy.affiliation_similarity:
            self.score += 1
        else:
            self.flag(field, ", ".join(claimed), found, "low")

    def check_year(
        self, field: str, submitted: Optional[int], found: Iterable[Optional[int]]
    ) -> None:
        years = [y for y in found if y]
        if not submitted or not years:
            return
        self.total += 1
        closest = min(years, key=lambda y: abs(y - submitted))
        delta = abs(closest - submitted)
        if delta <= self.policy.year_tolerance:
            self.score += 1
        elif delta <= self.policy.year_partial_tolerance:
            self.score += self.policy.partial_weight
            self.flag(field, submitted, closest, "low")
        else:
            self.flag(field, submitted, closest, "medium")

    def check_license_status(self, status: Optional[str]) -> None:
        if not status:
            return
        self.total += 1
        text = status.lower()
        inactive = any(m in text for m in INACTIVE_LICENSE_MARKERS)
        if not inactive and any(s in text for s in ACTIVE_LICENSE_STATUSES):
            self.score += 1
        else:
            self.flag("license_status", "active (expected)", status, "high")

    def check_expiration(self, expires: Optional[date], today: date) -> None:
        if not expires:
            return
        self.total += 1
        if expires >= today:
            self.score += 1
        else:
            self.flag("expiration_date", "unexpired (expected)", expires.isoformat(), "medium")

    def signal(self, present: bool) -> None:
        """Weak corroborating evidence, e.g. a profile photo or citation metrics."""
        if present:
            self.total += 1
            self.score += 1

    def result(self) -> ComparisonResult:
        confidence = self.score / self.total if self.total else 0.0
        confidence = min(max(confidence, 0.0), 1.0)
        has_high = any(d.severity == "high" for d in self.discrepancies)
        return ComparisonResult(
            matches=confidence >= self.threshold and not has_high,
            confidence=confidence,
            discrepancies=self.discrepancies,
            total_checks=self.total,
            match_score=self.score,
        )
