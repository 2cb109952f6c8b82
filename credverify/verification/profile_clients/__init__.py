from credverify.verification.profile_clients.base import BaseProfileClient
from credverify.verification.profile_clients.linkedin import LinkedInProfileClient
from credverify.verification.profile_clients.scholar import ScholarProfileClient

__all__ = ["BaseProfileClient", "LinkedInProfileClient", "ScholarProfileClient"]
