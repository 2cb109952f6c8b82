from credverify.verification.orchestrator.checks import CheckOutcome, ReviewPlan
from credverify.verification.orchestrator.service import (
    VerificationClients,
    VerificationOrchestrator,
    get_verification_clients,
)

__all__ = [
    "CheckOutcome",
    "ReviewPlan",
    "VerificationClients",
    "VerificationOrchestrator",
    "get_verification_clients",
]
