from __future__ import annotations

import json
import logging
from typing import Any

from lambda_perf.config import Settings
from lambda_perf.function_deployer import run_deployer
from lambda_perf.trigger_invoker import run_invoker

logger = logging.getLogger()
logger.setLevel(logging.INFO)

SUCCESS_BODY = json.dumps("success")


def _success() -> dict[str, Any]:
    return {"statusCode": 200, "body": SUCCESS_BODY}


def _deploy_target(event: dict[str, Any] | None, context) -> tuple[int, str]:
    """
    Read memorySize/architecture from the client context, falling back to the event.

    The Python runtime only exposes the "custom" key of ClientContext, so a
    scheduler must send {"custom": {"memorySize": ..., "architecture": ...}}.
    Top-level ClientContext keys never reach the handler; send those targets as
    the event payload instead.
    """
    client_context = getattr(context, "client_context", None)
    custom = getattr(client_context, "custom", None) or {}
    logger.info(f"clientContext = {custom}")

    source = custom if "memorySize" in custom else (event or {})
    try:
        return int(source["memorySize"]), str(source["architecture"])
    except (KeyError, TypeError, ValueError) as e:
        msg = "deployer needs memorySize and architecture in its client context or event"
        raise ValueError(msg) from e


def deployer_handler(event: dict[str, Any] | None, context) -> dict[str, Any]:
    """Lambda handler - deploy the benchmark fleet for one memory size and architecture."""
    try:
        memory_size, architecture = _deploy_target(event, context)
        report = run_deployer(Settings.from_env(), memory_size, architecture)
        logger.info(json.dumps({
            "event": "deploy_complete",
            "memorySize": memory_size,
            "architecture": architecture,
            "deployed": report.deployed,
            "skipped": report.skipped,
        }))
        return _success()
    except Exception as e:
        logger.error(json.dumps({
            "event": "deploy_failed",
            "errorType": type(e).__name__,
            "errorMessage": str(e),
        }))
        raise


def invoker_handler(_event: dict[str, Any] | None, context) -> dict[str, Any]:
    """Lambda handler - reset the results table and trigger the benchmark matrix."""
    try:
        summary = run_invoker(Settings.from_env())
        logger.info(json.dumps({
            "event": "invoke_complete",
            "invocations": summary.invocations,
            "bursts": summary.bursts,
            "requestId": getattr(context, "aws_request_id", "unknown"),
        }))
        return _success()
    except Exception as e:
        logger.error(json.dumps({
            "event": "invoke_failed",
            "errorType": type(e).__name__,
            "errorMessage": str(e),
        }))
        raise
