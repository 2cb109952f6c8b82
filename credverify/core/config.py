from typing import List, Optional
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Environment
    ENVIRONMENT: Optional[str] = None

    # Database (PostgreSQL in deployed envs, SQLite allowed for local/tests)
    DATABASE_URL: Optional[str] = None

    # Log Level
    LOG_LEVEL: (
        str  # Required: Must be set in environment (e.g., INFO, DEBUG, WARNING, ERROR)
    )

    # Logging Configuration
    LOGGING_FRAME_DEPTH: int = (
        6  # Frame depth for finding logging call origin in stack trace
    )

    # API Configuration
    API_V1_PREFIX: str = "/api/v1"
    PROJECT_NAME: str = "CredVerify-API"
    VERSION: str = "1.0.0"

    # CORS
    ALLOWED_ORIGINS: List[str] = []

    # Sentry Configuration
    SENTRY_DSN: Optional[str] = None  # Sentry DSN for error tracking
    SENTRY_ENABLED: bool = True
    SENTRY_TRACES_SAMPLE_RATE: float = 0.1

    # Admin review endpoints (shared secret sent as X-Admin-Token)
    ADMIN_API_TOKEN: Optional[str] = None

    # Registry HTTP settings
    REGISTRY_TIMEOUT_SECONDS: float = 10.0  # Hard timeout per registry request
    REGISTRY_USER_AGENT: str = "CredVerify-Verification/1.0"

    # External API Retry Configuration (registries, profile providers, webhook)
    # Uses tenacity library for retry logic with exponential backoff
    EXTERNAL_API_RETRY_ATTEMPTS: int = 2  # Total attempts (1 retry + 1 initial)
    EXTERNAL_API_RETRY_MIN_WAIT: float = (
        0.5  # Minimum wait time between retries (seconds)
    )
    EXTERNAL_API_RETRY_MAX_WAIT: float = (
        2.0  # Maximum wait time between retries (seconds)
    )
    EXTERNAL_API_RETRY_MULTIPLIER: float = 1.0  # Exponential backoff multiplier

    # Mexico - SEP Registro Nacional de Profesionistas
    SEP_CEDULA_URL: str = (
        "https://www.cedulaprofesional.sep.gob.mx/cedula/buscaCedulaJson.action"
    )
    SEP_CEDULA_MIRROR_URL: str = (
        "https://cedulaprofesional.sep.gob.mx/cedula/buscaCedulaJson.action"
    )
    SEP_PUBLIC_LOOKUP_URL: str = "https://www.cedulaprofesional.sep.gob.mx/"

    # USA - FSMB DocInfo aggregated lookup
    DOCINFO_URL: str = "https://www.docinfo.org"

    # Profile data providers (Tier 2). Missing keys disable enrichment only.
    PROXYCURL_API_KEY: Optional[str] = None
    PROXYCURL_API_URL: str = "https://nubela.co/proxycurl/api/v2/linkedin"
    SERPAPI_KEY: Optional[str] = None
    SERPAPI_URL: str = "https://serpapi.com/search.json"
    PROFILE_TIMEOUT_SECONDS: float = 15.0

    # Orchestration
    CHECK_TIMEOUT_SECONDS: float = (
        45.0  # Upper bound for one credential check including retries/fallback
    )
    REVIEW_SLA_HOURS: int = 48  # SLA window for manual review items

    # Match policy thresholds
    MATCH_HIGH_SIMILARITY: float = 0.8  # Above this a field counts as a match
    MATCH_LOW_SIMILARITY: float = 0.5  # Below this a field is a discrepancy
    MATCH_IDENTITY_MISMATCH: float = (
        0.3  # Name similarity below this is an identity-level mismatch
    )
    MATCH_PARTIAL_WEIGHT: float = 0.5  # Credit for a moderate match
    MATCH_AFFILIATION_SIMILARITY: float = 0.5  # Affiliations are soft signals
    MATCH_YEAR_TOLERANCE: int = 1  # +/- years for full credit
    MATCH_YEAR_PARTIAL_TOLERANCE: int = 3  # +/- years for partial credit
    MATCH_PUBLICATION_SIMILARITY: float = 0.7
    MATCH_REGISTRY_THRESHOLD: float = 0.7  # Registry comparator match threshold
    MATCH_PROFILE_THRESHOLD: float = 0.6  # Profile comparator match threshold
    MATCH_VERIFY_CONFIDENCE: float = (
        0.7  # Minimum confidence for automatic verification
    )
    MATCH_UNVERIFIED_PROFILE_CONFIDENCE: float = (
        0.3  # Confidence ceiling for a well-formed profile without data
    )

    # Notifications
    VERIFICATION_WEBHOOK_URL: Optional[str] = (
        None  # Receives status-change events; logging only when unset
    )
    VERIFICATION_WEBHOOK_TIMEOUT: float = 10.0

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"

    # --------- Properties ---------
    @property
    def is_local(self) -> bool:
        """
        Check if running in local development environment.

        Supported values:
        - "local" or "local_dev" → True (local development)
        - "dev", "staging", "prod", or anything else → False (deployed)
        """
        if not self.ENVIRONMENT:
            return False
        env = self.ENVIRONMENT.lower()
        return env in ["local", "local_dev"]


settings = Settings()
