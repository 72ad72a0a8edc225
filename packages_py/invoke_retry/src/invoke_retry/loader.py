"""Named retry policies loaded from YAML.

File layout::

    policies:
      api:
        max_attempts: 3
        initial_delay_seconds: 1.0
        max_delay_seconds: 15.0
        require_explicit_match: true
        retryable_matchers:
          - ECONNRESET
          - "/5\\d\\d/"
          - pattern: "rate limit"
            flags: [IGNORECASE]
"""

import logging
import re
from pathlib import Path
from typing import Any, Dict, List, Union

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .config import parse_matcher
from .errors import PolicyLoadError, RetryPolicyError
from .types import Matcher, RetryPolicy

logger = logging.getLogger(__name__)


class PatternMatcherModel(BaseModel):
    """A regex matcher with optional ``re`` flags."""
    model_config = ConfigDict(extra="forbid")

    pattern: str
    flags: List[str] = Field(default_factory=list)

    @field_validator("flags")
    @classmethod
    def _known_flags(cls, value: List[str]) -> List[str]:
        for name in value:
            if not isinstance(getattr(re, name.upper(), None), re.RegexFlag):
                raise ValueError(f"Unknown regex flag: {name}")
        return [name.upper() for name in value]

    def compile(self) -> "re.Pattern[str]":
        flags = 0
        for name in self.flags:
            flags |= getattr(re, name)
        return re.compile(self.pattern, flags)


class PolicyDocument(BaseModel):
    """One named policy as written in a policy file."""
    model_config = ConfigDict(extra="forbid")

    max_attempts: int = 3
    initial_delay_seconds: float = 1.0
    max_delay_seconds: float = 5.0
    backoff_enabled: bool = True
    retryable_matchers: List[Union[str, PatternMatcherModel]] = Field(default_factory=list)
    require_explicit_match: bool = False
    jitter_factor: float = 0.0

    def to_policy(self) -> RetryPolicy:
        matchers: List[Matcher] = [
            m.compile() if isinstance(m, PatternMatcherModel) else parse_matcher(m)
            for m in self.retryable_matchers
        ]
        return RetryPolicy(
            max_attempts=self.max_attempts,
            initial_delay_seconds=self.initial_delay_seconds,
            max_delay_seconds=self.max_delay_seconds,
            backoff_enabled=self.backoff_enabled,
            retryable_matchers=tuple(matchers),
            require_explicit_match=self.require_explicit_match,
            jitter_factor=self.jitter_factor,
        )


def _build_policies(data: Any, source: str) -> Dict[str, RetryPolicy]:
    if not isinstance(data, dict):
        raise PolicyLoadError(f"{source}: expected a mapping of policies")
    entries = data.get("policies", data)
    if not isinstance(entries, dict):
        raise PolicyLoadError(f"{source}: 'policies' must be a mapping")

    policies: Dict[str, RetryPolicy] = {}
    for name, raw in entries.items():
        try:
            policies[str(name)] = PolicyDocument.model_validate(raw or {}).to_policy()
        except ValidationError as e:
            raise PolicyLoadError(f"{source}: invalid policy '{name}': {e}") from e
        except (RetryPolicyError, re.error) as e:
            raise PolicyLoadError(f"{source}: invalid policy '{name}': {e}") from e

    logger.debug(f"Loaded {len(policies)} retry policies from {source}")
    return policies


def load_policies_from_string(content: str, source: str = "<string>") -> Dict[str, RetryPolicy]:
    """
    Parse named retry policies from YAML text.

    Args:
        content: YAML document
        source: Name used in error messages

    Returns:
        Mapping of policy name to RetryPolicy

    Raises:
        PolicyLoadError: If the YAML or any policy is invalid
    """
    try:
        data = yaml.safe_load(content) or {}
    except yaml.YAMLError as e:
        raise PolicyLoadError(f"{source}: YAML parsing error: {e}") from e
    return _build_policies(data, source)


def load_policies(path: Union[str, Path]) -> Dict[str, RetryPolicy]:
    """
    Load named retry policies from a YAML file.

    Args:
        path: Path to the policy file

    Returns:
        Mapping of policy name to RetryPolicy

    Raises:
        PolicyLoadError: If the file is missing, unreadable or invalid
    """
    file_path = Path(path)
    logger.info(f"Loading retry policies from: {file_path}")
    try:
        content = file_path.read_text()
    except OSError as e:
        raise PolicyLoadError(f"Cannot read policy file {file_path}: {e}") from e
    return load_policies_from_string(content, str(file_path))
