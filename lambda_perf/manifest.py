"""
Runtime manifest parsing.

The manifest is the external JSON document describing which runtimes, memory
sizes and architectures make up the benchmark matrix:

    {
        "runtimes": [
            {"runtime": "nodejs18.x", "handler": "index.handler", "architectures": ["x86_64", "arm64"]},
            {"runtime": "java11", "handler": "...", "path": "java11_snapstart",
             "architectures": ["x86_64"], "snapStart": {"SnapStart": {"ApplyOn": "PublishedVersions"}}}
        ],
        "memorySizes": [128, 512, 1024]
    }
"""

import json
from collections.abc import Iterator
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from lambda_perf.exceptions import ManifestError


@dataclass(frozen=True, slots=True)
class RuntimeEntry:
    """One runtime descriptor from the manifest."""

    runtime: str
    handler: str
    architectures: tuple[str, ...]
    path: str | None = None
    snap_start: dict[str, Any] | None = None
    raw: dict[str, Any] = field(default_factory=dict, compare=False, repr=False)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "RuntimeEntry":
        for key in ("runtime", "handler", "architectures"):
            if key not in data:
                raise ManifestError(f"runtime entry is missing '{key}': {data}")

        architectures = data["architectures"]
        if isinstance(architectures, str) or not architectures:
            raise ManifestError(f"runtime {data['runtime']} lists no architectures")

        return cls(
            runtime=data["runtime"],
            handler=data["handler"],
            architectures=tuple(architectures),
            path=data.get("path") or None,
            snap_start=data.get("snapStart") or None,
            raw=dict(data),
        )

    @property
    def suffix(self) -> str:
        """Name fragment for this runtime: the artifact path, or the runtime minus its first dot."""
        if self.path:
            return self.path
        return self.runtime.replace(".", "", 1)

    def supports(self, architecture: str) -> bool:
        return architecture in self.architectures

    def context_fields(self) -> dict[str, Any]:
        """The entry exactly as written in the manifest."""
        if self.raw:
            return dict(self.raw)
        fields: dict[str, Any] = {
            "runtime": self.runtime,
            "handler": self.handler,
            "architectures": list(self.architectures),
        }
        if self.path:
            fields["path"] = self.path
        if self.snap_start:
            fields["snapStart"] = self.snap_start
        return fields


@dataclass(frozen=True, slots=True)
class Manifest:
    """Ordered runtimes and memory sizes for one benchmark run."""

    runtimes: tuple[RuntimeEntry, ...]
    memory_sizes: tuple[int, ...]

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Manifest":
        """
        Parse and validate a manifest document.

        Raises:
            ManifestError: On missing sections, bad memory sizes, or two runtimes
                that would deploy under the same function name
        """
        if "runtimes" not in data or "memorySizes" not in data:
            raise ManifestError("manifest must define 'runtimes' and 'memorySizes'")

        memory_sizes = []
        for size in data["memorySizes"]:
            if isinstance(size, bool) or not isinstance(size, int) or size <= 0:
                raise ManifestError(f"invalid memory size: {size!r}")
            memory_sizes.append(size)

        manifest = cls(
            runtimes=tuple(RuntimeEntry.from_dict(entry) for entry in data["runtimes"]),
            memory_sizes=tuple(memory_sizes),
        )
        manifest._check_unique_names()
        return manifest

    def _check_unique_names(self) -> None:
        seen: dict[tuple[str, str], str] = {}
        for entry in self.runtimes:
            for architecture in entry.architectures:
                key = (entry.suffix, architecture)
                if key in seen:
                    raise ManifestError(
                        f"runtimes {seen[key]} and {entry.runtime} both deploy as "
                        f"'{entry.suffix}' on {architecture}; set a distinct 'path'"
                    )
                seen[key] = entry.runtime

    def invocation_matrix(self) -> Iterator[tuple[RuntimeEntry, str, int]]:
        """Yield (runtime, architecture, memory size) in manifest order."""
        for entry in self.runtimes:
            for architecture in entry.architectures:
                for memory_size in self.memory_sizes:
                    yield entry, architecture, memory_size


def load_manifest(path: str | Path) -> Manifest:
    """Load the manifest JSON file from disk."""
    manifest_path = Path(path)
    try:
        data = json.loads(manifest_path.read_text())
    except FileNotFoundError as e:
        raise ManifestError(f"manifest not found: {manifest_path}") from e
    except json.JSONDecodeError as e:
        raise ManifestError(f"manifest {manifest_path} is not valid JSON: {e}") from e
    return Manifest.from_dict(data)
