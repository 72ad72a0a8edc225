"""Retry settings loaded from environment variables."""

from functools import lru_cache
from typing import List

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from .config import parse_matcher
from .types import RetryPolicy


class RetrySettings(BaseSettings):
    """
    Default retry policy settings.

    Every field is read from ``INVOKE_RETRY_<FIELD>``. Matchers are given
    as a JSON list, e.g. ``INVOKE_RETRY_RETRYABLE_MATCHERS='["Timeout", "/5\\d\\d/"]'``.
    """

    model_config = SettingsConfigDict(env_prefix="INVOKE_RETRY_", case_sensitive=False)

    MAX_ATTEMPTS: int = 3
    INITIAL_DELAY_SECONDS: float = 1.0
    MAX_DELAY_SECONDS: float = 5.0
    BACKOFF_ENABLED: bool = True
    RETRYABLE_MATCHERS: List[str] = Field(default_factory=list)
    REQUIRE_EXPLICIT_MATCH: bool = False
    JITTER_FACTOR: float = 0.0

    def to_policy(self) -> RetryPolicy:
        """Build a validated RetryPolicy from these settings."""
        return RetryPolicy(
            max_attempts=self.MAX_ATTEMPTS,
            initial_delay_seconds=self.INITIAL_DELAY_SECONDS,
            max_delay_seconds=self.MAX_DELAY_SECONDS,
            backoff_enabled=self.BACKOFF_ENABLED,
            retryable_matchers=tuple(parse_matcher(m) for m in self.RETRYABLE_MATCHERS),
            require_explicit_match=self.REQUIRE_EXPLICIT_MATCH,
            jitter_factor=self.JITTER_FACTOR,
        )


@lru_cache()
def get_settings() -> RetrySettings:
    """Get cached settings instance."""
    return RetrySettings()


def get_default_policy() -> RetryPolicy:
    """Policy built from the cached environment settings."""
    return get_settings().to_policy()
