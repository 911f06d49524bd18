"""
Run configuration for the deployer and invoker workflows.

Settings come from the environment once per run and are passed explicitly to
both workflows. Timings hold every fixed delay and retry budget so dry runs
and tests can swap in FAST_TIMINGS.
"""

import os
from collections.abc import Mapping
from dataclasses import dataclass

from botocore.config import Config

from lambda_perf.exceptions import ConfigurationError

# =============================================================================
# Constants
# =============================================================================

PROJECT = "lambda-perf"
DEFAULT_MANIFEST_PATH = "manifest.json"
RESULTS_TABLE_NAME = "report-log"

# Environment variable names (all required except the manifest path)
ENV_REGION = "AWS_REGION"
ENV_ROLE_ARN = "ROLE_ARN"
ENV_LOG_PROCESSOR_ARN = "LOG_PROCESSOR_ARN"
ENV_INVOKER = "INVOKER"
ENV_MANIFEST_PATH = "MANIFEST_PATH"

REQUIRED_ENV = (ENV_REGION, ENV_ROLE_ARN, ENV_LOG_PROCESSOR_ARN, ENV_INVOKER)


# =============================================================================
# Configuration
# =============================================================================


@dataclass(slots=True)
class Settings:
    """Account-level settings shared by both workflows."""

    region: str
    role_arn: str
    log_processor_arn: str
    invoker_function: str
    manifest_path: str = DEFAULT_MANIFEST_PATH
    project: str = PROJECT

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "Settings":
        """
        Build settings from environment variables.

        Raises:
            ConfigurationError: If any required variable is unset or empty
        """
        if environ is None:
            environ = os.environ

        missing = [name for name in REQUIRED_ENV if not environ.get(name)]
        if missing:
            raise ConfigurationError(f"missing required environment variables: {', '.join(missing)}")

        return cls(
            region=environ[ENV_REGION],
            role_arn=environ[ENV_ROLE_ARN],
            log_processor_arn=environ[ENV_LOG_PROCESSOR_ARN],
            invoker_function=environ[ENV_INVOKER],
            manifest_path=environ.get(ENV_MANIFEST_PATH) or DEFAULT_MANIFEST_PATH,
        )


@dataclass(slots=True)
class Timings:
    """Fixed delays and retry budgets used while provisioning and invoking."""

    entry_delay_seconds: float = 5  # Pause between manifest entries (throttling)
    warm_cycle_delay_seconds: float = 10  # Lets the env change propagate before publishing
    warm_versions: int = 10
    publish_max_retries: int = 5  # Retries after the first publish attempt
    publish_backoff_seconds: float = 20
    activation_poll_seconds: int = 1
    activation_timeout_seconds: int = 300
    table_settle_seconds: float = 5  # DynamoDB delete/create propagation
    max_in_flight: int = 25

    @property
    def publish_max_attempts(self) -> int:
        return self.publish_max_retries + 1

    @property
    def activation_max_attempts(self) -> int:
        return max(1, self.activation_timeout_seconds // max(1, self.activation_poll_seconds))


DEFAULT_TIMINGS = Timings()

FAST_TIMINGS = Timings(
    entry_delay_seconds=0,
    warm_cycle_delay_seconds=0,
    publish_backoff_seconds=0,
    table_settle_seconds=0,
)


def boto_config(settings: Settings, max_in_flight: int = DEFAULT_TIMINGS.max_in_flight) -> Config:
    """Shared botocore config; the pool must fit one full invocation burst."""
    return Config(
        region_name=settings.region,
        max_pool_connections=max(10, max_in_flight * 2),
    )
