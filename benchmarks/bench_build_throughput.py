"""Benchmark: Permissions.build() throughput — builds per second.

Measures how many times a multi-role, multi-resource definition set can be
normalized, validated and compiled into a grant table per second.
"""
from __future__ import annotations

import json
import sys
import time
from pathlib import Path
from typing import Any

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from aumos_permits.permissions import Permissions

_ITERATIONS: int = 1_000
_RESOURCES: tuple[str, ...] = ("document", "comment", "invoice", "project")


def _make_definitions() -> list[dict[str, Any]]:
    """Build a realistic definition set for benchmarking."""
    definitions: list[dict[str, Any]] = []
    for resource in _RESOURCES:
        definitions.extend(
            [
                {
                    "roles": ["EMPLOYEE"],
                    "resource": resource,
                    "grant": {"list:any": ["title", "created_at"], "read:any": ["*", "!secret"]},
                },
                {
                    "roles": ["MANAGER"],
                    "resource": resource,
                    "grant": ["create", "read", "update", "list"],
                },
                {
                    "roles": ["ADMIN"],
                    "resource": resource,
                    "grant": {"*": ["*"], "delete:any": ["deleted_at"]},
                },
            ]
        )
    return definitions


def bench_build_throughput() -> dict[str, object]:
    """Benchmark Permissions(...).build() throughput.

    Returns
    -------
    dict with keys: operation, iterations, total_seconds, ops_per_second,
    avg_latency_ms, p99_latency_ms, memory_peak_mb.
    """
    definitions = _make_definitions()

    start = time.perf_counter()
    for _ in range(_ITERATIONS):
        Permissions(definitions).build()
    total = time.perf_counter() - start

    result: dict[str, object] = {
        "operation": "permissions_build_throughput",
        "iterations": _ITERATIONS,
        "total_seconds": round(total, 4),
        "ops_per_second": round(_ITERATIONS / total, 1),
        "avg_latency_ms": round(total / _ITERATIONS * 1000, 4),
        "p99_latency_ms": 0.0,
        "memory_peak_mb": 0.0,
    }
    print(
        f"[bench_build_throughput] {result['operation']}: "
        f"{result['ops_per_second']:,.0f} ops/sec  "
        f"avg {result['avg_latency_ms']:.4f} ms"
    )
    return result


def run_benchmark() -> dict[str, object]:
    """Entry point returning the benchmark result dict."""
    return bench_build_throughput()


if __name__ == "__main__":
    result = run_benchmark()
    results_dir = Path(__file__).parent / "results"
    results_dir.mkdir(exist_ok=True)
    output_path = results_dir / "build_baseline.json"
    with open(output_path, "w", encoding="utf-8") as fh:
        json.dump(result, fh, indent=2)
    print(f"Results saved to {output_path}")
