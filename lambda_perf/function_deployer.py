"""
Lambda Benchmark Function Deployer

Provisions the benchmark fleet for one (memory size, architecture) pair from the
runtime manifest. For every runtime that supports the architecture:

- Deletes any stale function and recreates it from the packaged S3 artifact
- Warms SnapStart runtimes by publishing 10 versions, each after a fresh
  environment change so every version gets a new snapshot
- Resets the function log group and subscribes its REPORT lines to the
  log processor that fills the results table

Runtimes that don't support the architecture are skipped without touching AWS.
The log processor is granted invoke permission once per run (best effort).
"""

import logging
import random
import time
from dataclasses import dataclass, field

import boto3
from botocore.exceptions import BotoCoreError, ClientError, WaiterError

from lambda_perf.config import DEFAULT_TIMINGS, Settings, Timings, boto_config
from lambda_perf.exceptions import FunctionActivationError, PublishVersionError, is_not_found
from lambda_perf.manifest import Manifest, RuntimeEntry, load_manifest
from lambda_perf.naming import (
    code_location,
    function_name,
    log_group_name,
    subscription_filter_name,
)

log = logging.getLogger(__name__)

REPORT_FILTER_PATTERN = "REPORT"
LOGS_PRINCIPAL = "logs.amazonaws.com"
PERMISSION_STATEMENT_ID = "addInvokePermission"


@dataclass(slots=True)
class DeploymentReport:
    """Outcome of one deploy run."""

    memory_size: int
    architecture: str
    deployed: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    published_versions: dict[str, list[str]] = field(default_factory=dict)


# =============================================================================
# Permissions
# =============================================================================


def grant_log_processor_permission(lambda_client, settings: Settings) -> bool:
    """
    Allow CloudWatch Logs to invoke the log processor.

    Failures are logged and swallowed: the statement usually exists already
    from a previous run, and a missing grant only delays result collection.
    """
    try:
        lambda_client.add_permission(
            FunctionName=settings.log_processor_arn,
            Action="lambda:InvokeFunction",
            Principal=LOGS_PRINCIPAL,
            StatementId=PERMISSION_STATEMENT_ID,
        )
        log.info(f"permission added to {settings.log_processor_arn}")
        return True
    except ClientError as e:
        log.warning(f"could not add permission to {settings.log_processor_arn}: {e}")
        return False


# =============================================================================
# Function Lifecycle
# =============================================================================


def delete_function(lambda_client, name: str) -> bool:
    """Delete a function, treating a missing function as already deleted."""
    try:
        lambda_client.delete_function(FunctionName=name)
        log.info(f"function {name} deleted")
        return True
    except ClientError as e:
        if is_not_found(e):
            log.info(f"function {name} does not exist, skipping deletion")
            return False
        log.error(f"failed to delete function {name}: {e}")
        raise


def create_function(
    lambda_client,
    settings: Settings,
    name: str,
    entry: RuntimeEntry,
    memory_size: int,
    architecture: str,
    timings: Timings = DEFAULT_TIMINGS,
) -> list[str]:
    """
    Create a benchmark function from its packaged artifact.

    SnapStart settings from the manifest are merged into the request verbatim;
    memory size and architecture always win over them. SnapStart functions are
    warmed before returning.

    Returns:
        Published version identifiers (empty unless the function was warmed)
    """
    params = {
        "FunctionName": name,
        "Handler": entry.handler,
        "Runtime": entry.runtime,
        "Code": code_location(settings.project, settings.region, entry, architecture),
        "Role": settings.role_arn,
        **(entry.snap_start or {}),
        "MemorySize": memory_size,
        "Architectures": [architecture],
    }

    log.info(f"Creating function {name} for {architecture} ({memory_size})")
    try:
        lambda_client.create_function(**params)
    except ClientError as e:
        log.error(f"failed to create function {name}: {e}")
        raise

    if entry.snap_start:
        return warm_function(lambda_client, name, timings)
    return []


def wait_for_active(lambda_client, name: str, timings: Timings = DEFAULT_TIMINGS) -> None:
    """
    Poll until the function reaches the Active state.

    Raises:
        FunctionActivationError: If the function is still pending (or failed)
            once the activation timeout elapses
    """
    log.info(f"waiting for function {name} to be active")
    waiter = lambda_client.get_waiter("function_active_v2")
    try:
        waiter.wait(
            FunctionName=name,
            WaiterConfig={
                "Delay": timings.activation_poll_seconds,
                "MaxAttempts": timings.activation_max_attempts,
            },
        )
    except WaiterError as e:
        log.error(f"function {name} did not become active: {e}")
        raise FunctionActivationError(name, timings.activation_timeout_seconds) from e


def touch_environment(lambda_client, name: str) -> str:
    """Change the function environment so the next published version gets a fresh snapshot."""
    marker = f"{random.random()}"
    try:
        lambda_client.update_function_configuration(
            FunctionName=name,
            Environment={"Variables": {"coldStart": marker}},
        )
    except ClientError as e:
        log.error(f"failed to update configuration of {name}: {e}")
        raise
    return marker


def publish_version(lambda_client, name: str, timings: Timings = DEFAULT_TIMINGS) -> str:
    """
    Publish a function version with fixed-backoff retry.

    Any failure is retried (the preceding configuration update is often still
    in progress), service or transport, up to publish_max_retries times after
    the first attempt.

    Raises:
        PublishVersionError: When every attempt failed
    """
    last_error: Exception | None = None
    for attempt in range(1, timings.publish_max_attempts + 1):
        try:
            response = lambda_client.publish_version(FunctionName=name)
            version = response["Version"]
            log.info(f"published version {version} for function {name}")
            return version
        except (ClientError, BotoCoreError) as e:
            last_error = e
            log.warning(
                f"publish of {name} failed (attempt {attempt}/{timings.publish_max_attempts}): {e}"
            )
            if attempt < timings.publish_max_attempts:
                time.sleep(timings.publish_backoff_seconds)

    raise PublishVersionError(name, timings.publish_max_attempts) from last_error


def warm_function(lambda_client, name: str, timings: Timings = DEFAULT_TIMINGS) -> list[str]:
    """
    Publish warm_versions versions of a SnapStart function.

    Each cycle changes the environment, waits for the change to propagate,
    then publishes.
    """
    wait_for_active(lambda_client, name, timings)

    versions = []
    for _ in range(timings.warm_versions):
        touch_environment(lambda_client, name)
        time.sleep(timings.warm_cycle_delay_seconds)
        versions.append(publish_version(lambda_client, name, timings))
    return versions


# =============================================================================
# Log Wiring
# =============================================================================


def delete_log_group(logs_client, name: str) -> bool:
    group = log_group_name(name)
    try:
        logs_client.delete_log_group(logGroupName=group)
        log.info(f"log group {group} deleted")
        return True
    except ClientError as e:
        if is_not_found(e):
            log.info(f"log group {group} does not exist, skipping deletion")
            return False
        log.error(f"failed to delete log group {group}: {e}")
        raise


def create_log_group(logs_client, name: str) -> None:
    group = log_group_name(name)
    try:
        logs_client.create_log_group(logGroupName=group)
        log.info(f"log group {group} created")
    except ClientError as e:
        log.error(f"failed to create log group {group}: {e}")
        raise


def create_subscription_filter(logs_client, settings: Settings, name: str) -> None:
    """Route the function's REPORT lines to the log processor."""
    filter_name = subscription_filter_name(name)
    try:
        logs_client.put_subscription_filter(
            destinationArn=settings.log_processor_arn,
            filterName=filter_name,
            filterPattern=REPORT_FILTER_PATTERN,
            logGroupName=log_group_name(name),
        )
        log.info(f"subscription {filter_name} created")
    except ClientError as e:
        log.error(f"failed to create subscription {filter_name}: {e}")
        raise


# =============================================================================
# Orchestration
# =============================================================================


def deploy_runtime(
    lambda_client,
    logs_client,
    settings: Settings,
    entry: RuntimeEntry,
    memory_size: int,
    architecture: str,
    timings: Timings = DEFAULT_TIMINGS,
) -> tuple[str, list[str]]:
    """Replace one function and rewire its logs. Returns (function name, published versions)."""
    name = function_name(settings.project, entry, memory_size, architecture)

    delete_function(lambda_client, name)
    versions = create_function(
        lambda_client, settings, name, entry, memory_size, architecture, timings
    )
    delete_log_group(logs_client, name)
    create_log_group(logs_client, name)
    create_subscription_filter(logs_client, settings, name)

    return name, versions


def deploy(
    lambda_client,
    logs_client,
    settings: Settings,
    manifest: Manifest,
    memory_size: int,
    architecture: str,
    timings: Timings = DEFAULT_TIMINGS,
) -> DeploymentReport:
    """
    Deploy every manifest runtime that supports the architecture.

    Runtimes are processed strictly in manifest order. The first unexpected
    error aborts the run; functions already replaced are left as they are.
    """
    report = DeploymentReport(memory_size=memory_size, architecture=architecture)

    for entry in manifest.runtimes:
        if not entry.supports(architecture):
            log.info(f"Skipping {entry.suffix} as it's not available for {architecture}")
            report.skipped.append(entry.suffix)
            continue

        name, versions = deploy_runtime(
            lambda_client, logs_client, settings, entry, memory_size, architecture, timings
        )
        report.deployed.append(name)
        if versions:
            report.published_versions[name] = versions

        time.sleep(timings.entry_delay_seconds)

    return report


def run_deployer(
    settings: Settings,
    memory_size: int,
    architecture: str,
    timings: Timings = DEFAULT_TIMINGS,
    manifest: Manifest | None = None,
    session: boto3.session.Session | None = None,
) -> DeploymentReport:
    """Build clients, grant the log processor permission and deploy the fleet."""
    if manifest is None:
        manifest = load_manifest(settings.manifest_path)
    session = session or boto3.session.Session()
    config = boto_config(settings, timings.max_in_flight)
    lambda_client = session.client("lambda", config=config)
    logs_client = session.client("logs", config=config)

    log.info("=" * 70)
    log.info(f"Deploying {settings.project} @ {memory_size}MB on {architecture}")
    log.info(f"Runtimes in manifest: {len(manifest.runtimes)}")
    log.info("=" * 70)

    grant_log_processor_permission(lambda_client, settings)
    report = deploy(lambda_client, logs_client, settings, manifest, memory_size, architecture, timings)

    log.info(f"Deployed: {len(report.deployed)} | Skipped: {len(report.skipped)}")
    return report

