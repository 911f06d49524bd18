"""
Lambda Benchmark Trigger Invoker

Starts a benchmark round across the whole manifest matrix:

- Drops and recreates the shared results table (all previous results are lost)
- Fires one asynchronous invocation of the invoker function per
  (runtime, architecture, memory size), passing the combination as client context
- Bounds concurrency with bursts of at most 25 in-flight calls, joining each
  burst before the next one starts

Results are written to the table by the log processor, never by this module.
"""

import logging
import time
from concurrent.futures import Future, ThreadPoolExecutor, wait
from dataclasses import dataclass
from typing import Any

import boto3
from botocore.exceptions import ClientError

from lambda_perf.config import DEFAULT_TIMINGS, RESULTS_TABLE_NAME, Settings, Timings, boto_config
from lambda_perf.exceptions import is_not_found
from lambda_perf.manifest import Manifest, RuntimeEntry, load_manifest
from lambda_perf.naming import encode_client_context

log = logging.getLogger(__name__)


@dataclass(slots=True)
class InvocationSummary:
    """Counts for one invoker run."""

    invocations: int = 0
    bursts: int = 0


# =============================================================================
# Results Table
# =============================================================================


def delete_table(dynamodb_client, table: str) -> bool:
    try:
        dynamodb_client.delete_table(TableName=table)
        log.info(f"table {table} deleted")
        return True
    except ClientError as e:
        if is_not_found(e):
            log.info(f"table {table} does not exist, skipping deletion")
            return False
        log.error(f"failed to delete table {table}: {e}")
        raise


def create_table(dynamodb_client, table: str) -> None:
    """Create the results table keyed by Lambda request ID, on-demand capacity."""
    try:
        dynamodb_client.create_table(
            TableName=table,
            AttributeDefinitions=[{"AttributeName": "requestId", "AttributeType": "S"}],
            KeySchema=[{"AttributeName": "requestId", "KeyType": "HASH"}],
            BillingMode="PAY_PER_REQUEST",
        )
        log.info(f"table {table} created")
    except ClientError as e:
        log.error(f"failed to create table {table}: {e}")
        raise


def reset_results_table(
    dynamodb_client, timings: Timings = DEFAULT_TIMINGS, table: str = RESULTS_TABLE_NAME
) -> None:
    """Drop and recreate the results table, pausing after each step for propagation."""
    delete_table(dynamodb_client, table)
    time.sleep(timings.table_settle_seconds)
    create_table(dynamodb_client, table)
    time.sleep(timings.table_settle_seconds)


# =============================================================================
# Invocation
# =============================================================================


def build_client_context(entry: RuntimeEntry, architecture: str, memory_size: int) -> dict[str, Any]:
    """Manifest fields of the runtime plus the matrix cell being benchmarked."""
    return {**entry.context_fields(), "architecture": architecture, "memorySize": memory_size}


def invoke_function(lambda_client, invoker_function: str, client_context: dict[str, Any]) -> None:
    """Queue one asynchronous invocation of the invoker function."""
    try:
        lambda_client.invoke(
            FunctionName=invoker_function,
            InvocationType="Event",
            ClientContext=encode_client_context(client_context),
        )
        log.info(f"function {invoker_function} invoked with clientContext = {client_context}")
    except ClientError as e:
        log.error(f"failed to invoke {invoker_function} with {client_context}: {e}")
        raise


def _join(burst: list[Future]) -> None:
    """Wait for a whole burst, then surface the first failure."""
    wait(burst)
    for future in burst:
        future.result()


def invoke_all(
    lambda_client,
    settings: Settings,
    manifest: Manifest,
    timings: Timings = DEFAULT_TIMINGS,
) -> InvocationSummary:
    """
    Invoke the invoker function once per matrix cell, in bursts.

    Memory sizes are not filtered per architecture: every runtime is invoked
    for every manifest memory size on each architecture it lists.

    Raises:
        ClientError: The first failed invocation aborts the run
    """
    summary = InvocationSummary()
    burst: list[Future] = []

    with ThreadPoolExecutor(max_workers=timings.max_in_flight) as executor:
        for entry, architecture, memory_size in manifest.invocation_matrix():
            client_context = build_client_context(entry, architecture, memory_size)
            burst.append(
                executor.submit(invoke_function, lambda_client, settings.invoker_function, client_context)
            )
            summary.invocations += 1

            if len(burst) == timings.max_in_flight:
                log.info("burst is full, waiting for all invocations to complete")
                _join(burst)
                summary.bursts += 1
                burst = []

        if burst:
            _join(burst)
            summary.bursts += 1

    return summary


def run_invoker(
    settings: Settings,
    timings: Timings = DEFAULT_TIMINGS,
    manifest: Manifest | None = None,
    session: boto3.session.Session | None = None,
) -> InvocationSummary:
    """Reset the results table, then trigger the whole benchmark matrix."""
    if manifest is None:
        manifest = load_manifest(settings.manifest_path)
    session = session or boto3.session.Session()
    config = boto_config(settings, timings.max_in_flight)

    log.info("=" * 70)
    log.info(f"Triggering {settings.project} benchmark via {settings.invoker_function}")
    log.info(f"Runtimes: {len(manifest.runtimes)} | Memory sizes: {list(manifest.memory_sizes)}")
    log.info("=" * 70)

    reset_results_table(session.client("dynamodb", config=config), timings)
    summary = invoke_all(session.client("lambda", config=config), settings, manifest, timings)

    log.info(f"Invocations: {summary.invocations} in {summary.bursts} burst(s)")
    return summary
