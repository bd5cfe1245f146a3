"""Utility modules for the Crossfire backend."""

from utils.resilience import (
    AllBackendsExhaustedError,
    DebateError,
    EmptyResponseError,
    ExternalAPIError,
    InvalidEvidenceError,
    InvalidInputError,
    RateLimitExceededError,
    RefusalDetectedError,
    ToolUnavailableError,
    retry_with_backoff,
    validate_claim,
    get_logger,
    MIN_CLAIM_LENGTH,
    MAX_CLAIM_LENGTH,
    DEFAULT_TOOL_TIMEOUT,
)
from utils.rate_limiter import (
    QuotaGuard,
    ToolQuota,
    get_quota_guard,
    DEFAULT_QUOTAS,
)
from utils.fallback import (
    BackendConfig,
    FallbackOutcome,
    ProviderFallbackExecutor,
)

__all__ = [
    # Exceptions
    "AllBackendsExhaustedError",
    "DebateError",
    "EmptyResponseError",
    "ExternalAPIError",
    "InvalidEvidenceError",
    "InvalidInputError",
    "RateLimitExceededError",
    "RefusalDetectedError",
    "ToolUnavailableError",
    # Retry decorators
    "retry_with_backoff",
    # Validation
    "validate_claim",
    # Logging
    "get_logger",
    # Quotas
    "QuotaGuard",
    "ToolQuota",
    "get_quota_guard",
    # Fallback
    "BackendConfig",
    "FallbackOutcome",
    "ProviderFallbackExecutor",
    # Constants
    "MIN_CLAIM_LENGTH",
    "MAX_CLAIM_LENGTH",
    "DEFAULT_TOOL_TIMEOUT",
    "DEFAULT_QUOTAS",
]
