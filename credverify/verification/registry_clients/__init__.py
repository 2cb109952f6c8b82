from credverify.verification.registry_clients.base import BaseRegistryClient
from credverify.verification.registry_clients.directory import RegistryDirectory
from credverify.verification.registry_clients.mexico import MexicoSEPRegistryClient
from credverify.verification.registry_clients.state_boards import (
    STATE_MEDICAL_BOARDS,
    get_state_board_url,
)
from credverify.verification.registry_clients.usa import USStateBoardRegistryClient

__all__ = [
    "BaseRegistryClient",
    "MexicoSEPRegistryClient",
    "RegistryDirectory",
    "STATE_MEDICAL_BOARDS",
    "USStateBoardRegistryClient",
    "get_state_board_url",
]
