"""Benchmark: grant_permit latency — per-call mean and p99.

Measures the per-call latency of Permissions.grant_permit() for a user
holding several roles, including one own grant backed by an ownership hook.
"""
from __future__ import annotations

import asyncio
import json
import sys
import time
from pathlib import Path
from typing import Any

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from aumos_permits.permissions import Permissions

_WARMUP: int = 100
_ITERATIONS: int = 5_000


async def _is_creator(user: Any, resource_id: Any) -> bool:
    return resource_id == user.id


async def _list_created(user: Any) -> list[Any]:
    return [user.id]


def _make_permissions() -> Permissions:
    return Permissions(
        [
            {
                "roles": ["EMPLOYEE"],
                "grant": {"read:own": ["*"], "list:any": ["title"]},
                "is_owner": _is_creator,
                "list_owned": _list_created,
            },
            {"roles": ["REVIEWER"], "grant": {"read:any": ["title", "body"]}},
            {"roles": ["ADMIN"], "grant": {"delete:any": ["*"]}},
        ],
        defaults={"resource": "document"},
    ).build()


async def _measure(permissions: Permissions) -> list[float]:
    user = {"id": 7, "roles": ["EMPLOYEE", "REVIEWER"]}

    for _ in range(_WARMUP):
        await permissions.grant_permit(user, "read", "document")

    latencies_ms: list[float] = []
    for _ in range(_ITERATIONS):
        t0 = time.perf_counter()
        await permissions.grant_permit(user, "read", "document")
        latencies_ms.append((time.perf_counter() - t0) * 1000)
    return latencies_ms


def bench_grant_permit_latency() -> dict[str, object]:
    """Benchmark Permissions.grant_permit() per-call latency.

    Returns
    -------
    dict with keys: operation, iterations, total_seconds, ops_per_second,
    avg_latency_ms, p99_latency_ms, memory_peak_mb.
    """
    latencies_ms = asyncio.run(_measure(_make_permissions()))

    sorted_lats = sorted(latencies_ms)
    n = len(sorted_lats)
    total = sum(latencies_ms) / 1000

    result: dict[str, object] = {
        "operation": "grant_permit_latency",
        "iterations": _ITERATIONS,
        "total_seconds": round(total, 4),
        "ops_per_second": round(_ITERATIONS / total, 1),
        "avg_latency_ms": round(sum(latencies_ms) / n, 4),
        "p99_latency_ms": round(sorted_lats[min(int(n * 0.99), n - 1)], 4),
        "memory_peak_mb": 0.0,
    }
    print(
        f"[bench_grant_permit_latency] {result['operation']}: "
        f"p99={result['p99_latency_ms']:.4f}ms  "
        f"mean={result['avg_latency_ms']:.4f}ms"
    )
    return result


def run_benchmark() -> dict[str, object]:
    """Entry point returning the benchmark result dict."""
    return bench_grant_permit_latency()


if __name__ == "__main__":
    result = run_benchmark()
    results_dir = Path(__file__).parent / "results"
    results_dir.mkdir(exist_ok=True)
    output_path = results_dir / "latency_baseline.json"
    with open(output_path, "w", encoding="utf-8") as fh:
        json.dump(result, fh, indent=2)
    print(f"Results saved to {output_path}")
