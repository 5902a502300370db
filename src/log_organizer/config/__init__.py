"""
Runtime configuration.
"""

from .settings import (
    DEFAULT_CALL_SITE,
    DEFAULT_MAX_ATTEMPTS,
    REQUIRED_ENV_VARS,
    RETRY_CALL_SITES,
    S3_PUT_CALL_SITE,
    SQS_DELETE_CALL_SITE,
    RetryPolicies,
    RetryPolicy,
    Settings,
)

__all__ = [
    "Settings",
    "RetryPolicy",
    "RetryPolicies",
    "REQUIRED_ENV_VARS",
    "RETRY_CALL_SITES",
    "DEFAULT_CALL_SITE",
    "DEFAULT_MAX_ATTEMPTS",
    "S3_PUT_CALL_SITE",
    "SQS_DELETE_CALL_SITE",
]
