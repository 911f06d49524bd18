"""
Deterministic names and locations for benchmark resources.

Shared by the deployer (function, log group, subscription filter, code
artifact) and the invoker (client context encoding).
"""

import base64
import json
from typing import Any

from lambda_perf.manifest import RuntimeEntry

# =============================================================================
# Function Naming
# =============================================================================


def function_name(project: str, entry: RuntimeEntry, memory_size: int, architecture: str) -> str:
    """
    Generate the deployed function name for one matrix cell.

    Format: {project}-{runtimeOrPath}-{memorySize}-{architecture}

    Args:
        project: Project prefix (e.g., "lambda-perf")
        entry: Manifest runtime entry
        memory_size: Memory allocation in MB
        architecture: "x86_64" or "arm64"

    Returns:
        Function name string

    Example:
        >>> entry = RuntimeEntry(runtime="python3.12", handler="index.handler", architectures=("arm64",))
        >>> function_name("lambda-perf", entry, 128, "arm64")
        'lambda-perf-python312-128-arm64'
    """
    return f"{project}-{entry.suffix}-{memory_size}-{architecture}"


def log_group_name(name: str) -> str:
    return f"/aws/lambda/{name}"


def subscription_filter_name(name: str) -> str:
    return f"report-log-from-{name}"


# =============================================================================
# Code Artifacts
# =============================================================================


def code_bucket(project: str, region: str) -> str:
    return f"{project}-{region}"


def code_location(project: str, region: str, entry: RuntimeEntry, architecture: str) -> dict[str, str]:
    """
    S3 location of the packaged artifact for a runtime and architecture.

    Artifacts are uploaded per region as {suffix}/code_{architecture}.zip.
    """
    return {
        "S3Bucket": code_bucket(project, region),
        "S3Key": f"{entry.suffix}/code_{architecture}.zip",
    }


# =============================================================================
# Invocation Context
# =============================================================================


def encode_client_context(payload: dict[str, Any]) -> str:
    """Base64-encode a JSON payload for the Lambda ClientContext field."""
    return base64.b64encode(json.dumps(payload, separators=(",", ":")).encode("utf-8")).decode("ascii")
