"""Error types raised by the deployer and invoker workflows."""

from botocore.exceptions import ClientError

NOT_FOUND_CODE = "ResourceNotFoundException"


class BenchmarkError(Exception):
    """Base class for benchmark provisioning failures."""


class ConfigurationError(BenchmarkError):
    """Required settings are missing or malformed."""


class ManifestError(BenchmarkError):
    """The runtime manifest cannot be used to build the test matrix."""


class FunctionActivationError(BenchmarkError):
    """A freshly created function never reached the Active state."""

    def __init__(self, function_name: str, timeout_seconds: float):
        self.function_name = function_name
        self.timeout_seconds = timeout_seconds
        super().__init__(
            f"function {function_name} failed to activate within {timeout_seconds}s"
        )


class PublishVersionError(BenchmarkError):
    """Publishing a function version kept failing after every retry."""

    def __init__(self, function_name: str, attempts: int):
        self.function_name = function_name
        self.attempts = attempts
        super().__init__(
            f"max retries exceeded publishing {function_name} ({attempts} attempts)"
        )


def error_code(error: ClientError) -> str:
    return error.response.get("Error", {}).get("Code", "")


def is_not_found(error: Exception) -> bool:
    """True when a delete targeted a resource that does not exist."""
    return isinstance(error, ClientError) and error_code(error) == NOT_FOUND_CODE
