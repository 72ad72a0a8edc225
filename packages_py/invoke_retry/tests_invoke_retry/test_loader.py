"""Tests for loading named retry policies from YAML."""

import re

import pytest
import yaml

from invoke_retry.errors import PolicyLoadError
from invoke_retry.loader import load_policies, load_policies_from_string


@pytest.fixture
def policy_config():
    """Sample policy file contents."""
    return {
        "policies": {
            "api": {
                "max_attempts": 3,
                "initial_delay_seconds": 1.0,
                "max_delay_seconds": 15.0,
                "require_explicit_match": True,
                "retryable_matchers": [
                    "ECONNRESET",
                    "/5\\d\\d/",
                    {"pattern": "rate limit", "flags": ["ignorecase"]},
                ],
            },
            "db": {
                "initial_delay_seconds": 0.5,
                "retryable_matchers": ["WriteConflict"],
            },
            "defaults": None,
        }
    }


@pytest.fixture
def policy_file(tmp_path, policy_config):
    """Write the sample policies to a temporary YAML file."""
    path = tmp_path / "retry.yaml"
    path.write_text(yaml.dump(policy_config))
    return path


class TestLoadPolicies:
    """Tests for load_policies."""

    def test_loads_named_policies(self, policy_file):
        """Should load every named policy."""
        policies = load_policies(policy_file)
        assert set(policies) == {"api", "db", "defaults"}

    def test_builds_matchers(self, policy_file):
        """Should keep strings and compile pattern entries."""
        api = load_policies(policy_file)["api"]
        text, digits, rate_limit = api.retryable_matchers

        assert text == "ECONNRESET"
        assert digits.pattern == r"5\d\d"
        assert rate_limit.pattern == "rate limit"
        assert rate_limit.flags & re.IGNORECASE
        assert api.require_explicit_match is True
        assert api.max_delay_seconds == 15.0

    def test_missing_fields_use_defaults(self, policy_file):
        """Should fill unspecified fields with defaults."""
        policies = load_policies(policy_file)
        assert policies["db"].max_attempts == 3
        assert policies["db"].initial_delay_seconds == 0.5
        assert policies["defaults"].max_delay_seconds == 5.0

    def test_accepts_mapping_without_policies_key(self):
        """Should accept a top-level mapping of policies."""
        policies = load_policies_from_string("quick:\n  max_attempts: 2\n")
        assert policies["quick"].max_attempts == 2

    def test_missing_file(self, tmp_path):
        """Should raise PolicyLoadError for a missing file."""
        with pytest.raises(PolicyLoadError, match="Cannot read"):
            load_policies(tmp_path / "missing.yaml")

    def test_invalid_yaml(self):
        """Should raise PolicyLoadError for malformed YAML."""
        with pytest.raises(PolicyLoadError, match="YAML"):
            load_policies_from_string("policies: [unclosed")

    def test_unknown_field(self):
        """Should reject unknown policy fields."""
        with pytest.raises(PolicyLoadError, match="api"):
            load_policies_from_string("policies:\n  api:\n    retries: 3\n")

    def test_invalid_policy_values(self):
        """Should surface policy validation errors."""
        content = "policies:\n  api:\n    initial_delay_seconds: 10\n    max_delay_seconds: 1\n"
        with pytest.raises(PolicyLoadError, match="max_delay_seconds"):
            load_policies_from_string(content)

    def test_unknown_regex_flag(self):
        """Should reject unknown regex flags."""
        content = "policies:\n  api:\n    retryable_matchers:\n      - pattern: x\n        flags: [NOPE]\n"
        with pytest.raises(PolicyLoadError, match="Unknown regex flag"):
            load_policies_from_string(content)

    def test_invalid_regex(self):
        """Should reject patterns that do not compile."""
        with pytest.raises(PolicyLoadError):
            load_policies_from_string("policies:\n  api:\n    retryable_matchers: ['/(unclosed/']\n")

    def test_non_mapping_document(self):
        """Should reject documents that are not mappings."""
        with pytest.raises(PolicyLoadError, match="mapping"):
            load_policies_from_string("- just\n- a list\n")

    def test_empty_document(self):
        """Should return no policies for an empty document."""
        assert load_policies_from_string("") == {}
