"""
Runtime settings and retry policies.

Settings are read once per process from the environment, optionally seeded
from a dotenv file. Retry policies are resolved into an explicit mapping from
call-site identifier to RetryPolicy at the same time, so call sites never look
up environment variables themselves.

Environment variables:
    STAGE, PM_BUCKET_NAME, S3_KEY_BASE_PATH   required
    LOG_LEVEL, LOG_FORMAT, METRICS_PORT       optional
    RETRY_POLICY_FILE                         optional YAML file of retry policies
    <ID>_DELAY_IN_MILLIS, <ID>_MIN_DELAY_IN_MILLIS, <ID>_MAX_DELAY_IN_MILLIS,
    <ID>_MAX_ATTEMPTS, <ID>_IS_JITTER         per call site, ID in RETRY_CALL_SITES
"""

import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml
from dotenv import dotenv_values
from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from log_organizer.core.errors import ConfigurationError

REQUIRED_ENV_VARS = ("STAGE", "PM_BUCKET_NAME", "S3_KEY_BASE_PATH")

DEFAULT_CALL_SITE = "DEFAULT"
S3_PUT_CALL_SITE = "S3_PUT"
SQS_DELETE_CALL_SITE = "SQS_DELETE"
RETRY_CALL_SITES = (DEFAULT_CALL_SITE, S3_PUT_CALL_SITE, SQS_DELETE_CALL_SITE)

DEFAULT_MAX_ATTEMPTS = 3

# Environment suffix -> RetryPolicy option name
_RETRY_ENV_SUFFIXES = {
    "DELAY_IN_MILLIS": "delay",
    "MIN_DELAY_IN_MILLIS": "minDelay",
    "MAX_DELAY_IN_MILLIS": "maxDelay",
    "MAX_ATTEMPTS": "maxAttempts",
    "IS_JITTER": "jitter",
}


class RetryPolicy(BaseModel):
    """
    Bounded retry behaviour for one call site.

    Unset delays disable the corresponding behaviour. max_attempts always has
    a ceiling so a failing call can never retry indefinitely.

    Attributes:
        delay_ms: Pause between attempts (``delay``)
        min_delay_ms: Lower bound applied to the pause (``minDelay``)
        max_delay_ms: Upper bound applied to the pause (``maxDelay``)
        max_attempts: Total attempts including the first (``maxAttempts``)
        jitter: Randomise the pause between 0 and delay_ms (``jitter``)
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="forbid")

    delay_ms: int | None = Field(None, ge=0, alias="delay")
    min_delay_ms: int | None = Field(None, ge=0, alias="minDelay")
    max_delay_ms: int | None = Field(None, ge=0, alias="maxDelay")
    max_attempts: int = Field(DEFAULT_MAX_ATTEMPTS, ge=1, alias="maxAttempts")
    jitter: bool = False


class RetryPolicies(BaseModel):
    """Explicit mapping from call-site identifier to its retry policy."""

    model_config = ConfigDict(frozen=True)

    policies: dict[str, RetryPolicy] = Field(default_factory=dict)

    def for_call_site(self, call_site: str) -> RetryPolicy:
        """Return the call site's policy, falling back to DEFAULT, then to built-in defaults."""
        policy = self.policies.get(call_site) or self.policies.get(DEFAULT_CALL_SITE)
        return policy or RetryPolicy()

    def merged(self, other: "RetryPolicies") -> "RetryPolicies":
        """
        Return a copy with ``other`` layered over ours.

        Merging is per option: an option ``other`` sets for a call site
        replaces ours, and options it leaves unset keep our value.
        """
        policies = dict(self.policies)
        for call_site, override in other.policies.items():
            base = policies.get(call_site)
            if base is None:
                policies[call_site] = override
                continue
            options = {
                **base.model_dump(by_alias=True, exclude_unset=True),
                **override.model_dump(by_alias=True, exclude_unset=True),
            }
            policies[call_site] = _build_policy(call_site, options)
        return RetryPolicies(policies=policies)

    @classmethod
    def from_env(cls, environ: Mapping[str, str]) -> "RetryPolicies":
        """
        Build policies from ``<ID>_<OPTION>`` environment variables.

        A call site gets its own policy only if at least one of its variables is set.

        Raises:
            ConfigurationError: If a value cannot be parsed
        """
        policies = {}
        for call_site in RETRY_CALL_SITES:
            options: dict[str, Any] = {}
            for suffix, option in _RETRY_ENV_SUFFIXES.items():
                raw = environ.get(f"{call_site}_{suffix}")
                if raw is None or raw == "":
                    continue
                options[option] = _parse_retry_option(f"{call_site}_{suffix}", option, raw)
            if options:
                policies[call_site] = _build_policy(call_site, options)
        return cls(policies=policies)

    @classmethod
    def from_yaml(cls, path: str | Path) -> "RetryPolicies":
        """
        Load policies from a YAML file.

        Expected YAML format:
        ```yaml
        retry_policies:
          DEFAULT:
            delay: 200
            maxAttempts: 3
          S3_PUT:
            delay: 500
            maxDelay: 2000
            maxAttempts: 5
            jitter: true
        ```

        Raises:
            ConfigurationError: If the file is missing or malformed
        """
        config_path = Path(path)
        if not config_path.exists():
            raise ConfigurationError(f"Retry policy file not found: {path}")

        with open(config_path) as f:
            config = yaml.safe_load(f)

        if not isinstance(config, dict) or not isinstance(config.get("retry_policies"), dict):
            raise ConfigurationError("Retry policy file must contain a 'retry_policies' mapping")

        policies = {}
        for call_site, options in config["retry_policies"].items():
            if not isinstance(options, dict):
                raise ConfigurationError(f"Retry policy for '{call_site}' must be a mapping")
            policies[str(call_site)] = _build_policy(str(call_site), options)
        return cls(policies=policies)


def _parse_retry_option(variable: str, option: str, raw: str) -> int | bool:
    if option == "jitter":
        return raw.strip().lower() == "true"
    try:
        return int(raw)
    except ValueError as err:
        raise ConfigurationError(f"{variable} must be an integer, got {raw!r}") from err


def _build_policy(call_site: str, options: dict[str, Any]) -> RetryPolicy:
    try:
        return RetryPolicy.model_validate(options)
    except PydanticValidationError as err:
        raise ConfigurationError(f"Invalid retry policy for '{call_site}': {err}") from err


class Settings(BaseModel):
    """
    Validated runtime configuration.

    Attributes:
        stage: Deployment stage identifier
        bucket_name: Target S3 bucket
        key_base_path: Prefix under which partitions are written (no trailing slash)
        log_level: Log level name
        log_format: "json" or "text"
        metrics_port: Port for the Prometheus endpoint, CLI only
        retry_policies: Per call-site retry policies
    """

    model_config = ConfigDict(frozen=True)

    stage: str = Field(..., min_length=1)
    bucket_name: str = Field(..., min_length=1)
    key_base_path: str = Field(..., min_length=1)
    log_level: str = "INFO"
    log_format: str = "json"
    metrics_port: int | None = None
    retry_policies: RetryPolicies = Field(default_factory=RetryPolicies)

    @classmethod
    def from_env(
        cls,
        environ: Mapping[str, str] | None = None,
        env_file: str | Path | None = None,
    ) -> "Settings":
        """
        Load settings from the environment.

        Args:
            environ: Variables to read (defaults to ``os.environ``)
            env_file: Optional dotenv file; defaults to ``LOG_ORGANIZER_ENV_FILE``.
                Values already present in ``environ`` take precedence over the file.

        Raises:
            ConfigurationError: If a required variable is missing or a value is invalid
        """
        environ = dict(os.environ if environ is None else environ)
        env_file = env_file or environ.get("LOG_ORGANIZER_ENV_FILE")
        if env_file:
            if not Path(env_file).exists():
                raise ConfigurationError(f"Environment file not found: {env_file}")
            file_values = {k: v for k, v in dotenv_values(env_file).items() if v is not None}
            environ = {**file_values, **environ}

        missing = [name for name in REQUIRED_ENV_VARS if not environ.get(name)]
        if missing:
            raise ConfigurationError(
                f"Missing required environment variables: {', '.join(missing)}",
                missing=missing,
            )

        retry_policies = RetryPolicies()
        policy_file = environ.get("RETRY_POLICY_FILE")
        if policy_file:
            retry_policies = RetryPolicies.from_yaml(policy_file)
        # Environment variables override the file option by option
        retry_policies = retry_policies.merged(RetryPolicies.from_env(environ))

        metrics_port = environ.get("METRICS_PORT")
        try:
            return cls(
                stage=environ["STAGE"],
                bucket_name=environ["PM_BUCKET_NAME"],
                key_base_path=environ["S3_KEY_BASE_PATH"].rstrip("/") or environ["S3_KEY_BASE_PATH"],
                log_level=environ.get("LOG_LEVEL") or "INFO",
                log_format=environ.get("LOG_FORMAT") or "json",
                metrics_port=int(metrics_port) if metrics_port else None,
                retry_policies=retry_policies,
            )
        except (PydanticValidationError, ValueError) as err:
            raise ConfigurationError(f"Invalid configuration: {err}") from err
