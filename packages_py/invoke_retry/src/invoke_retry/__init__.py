"""
Bounded retry with exponential backoff and matcher-based failure classification.
"""
from .errors import (
    InvokeRetryError,
    RetryPolicyError,
    RetryCancelledError,
    PolicyLoadError,
)
from .types import (
    Matcher,
    RetryPolicy,
    OutcomeStatus,
    Attempt,
    RetryOutcome,
    RetryEvent,
    RetryEventListener,
    ShouldRetry,
)
from .config import (
    DEFAULT_RETRY_POLICY,
    API_RETRY_POLICY,
    DB_RETRY_POLICY,
    merge_policy,
    parse_matcher,
)
from .classifier import (
    NETWORK_ERROR_CODES,
    failure_category,
    failure_message,
    matches,
    is_retryable,
    is_network_error,
    is_rate_limit_error,
    is_server_error,
)
from .backoff import (
    next_delay,
    async_wait,
    sync_wait,
)
from .executor import (
    RetryExecutor,
    create_retry_executor,
    execute,
    retry,
    retry_sync,
    with_retry,
    with_retry_sync,
    retryable,
)
from .settings import RetrySettings, get_settings, get_default_policy
from .loader import (
    PolicyDocument,
    PatternMatcherModel,
    load_policies,
    load_policies_from_string,
)


__all__ = [
    # Errors
    "InvokeRetryError",
    "RetryPolicyError",
    "RetryCancelledError",
    "PolicyLoadError",
    # Types
    "Matcher",
    "RetryPolicy",
    "OutcomeStatus",
    "Attempt",
    "RetryOutcome",
    "RetryEvent",
    "RetryEventListener",
    "ShouldRetry",
    # Config
    "DEFAULT_RETRY_POLICY",
    "API_RETRY_POLICY",
    "DB_RETRY_POLICY",
    "merge_policy",
    "parse_matcher",
    # Classifier
    "NETWORK_ERROR_CODES",
    "failure_category",
    "failure_message",
    "matches",
    "is_retryable",
    "is_network_error",
    "is_rate_limit_error",
    "is_server_error",
    # Backoff
    "next_delay",
    "async_wait",
    "sync_wait",
    # Executor
    "RetryExecutor",
    "create_retry_executor",
    "execute",
    "retry",
    "retry_sync",
    "with_retry",
    "with_retry_sync",
    "retryable",
    # Settings / loading
    "RetrySettings",
    "get_settings",
    "get_default_policy",
    "PolicyDocument",
    "PatternMatcherModel",
    "load_policies",
    "load_policies_from_string",
]


__version__ = "1.0.0"
