"""
Benchmark: structpatch vs existing structured diff tools.

This benchmark compares structpatch against:
    1. deepdiff — popular Python structural diff library (DeepDiff + Delta)
    2. dictdiffer — lightweight dict comparison (diff + patch)

The point is NOT "we're faster" — the point is:
    a structpatch patch is itself plain data, shaped like the value it
    changes, and it applies to records and mappings alike.

Set LOG_LEVEL=DEBUG to see the diff engine's shape-mismatch fallbacks.
"""

import copy
import logging
import os
import sys
import time
from dataclasses import dataclass
from typing import Any, Optional

sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from structpatch import (
    DELETE,
    apply_to_mapping,
    apply_to_record,
    diff,
    tagged,
    to_mapping,
    values_equal,
)
from structpatch.logging_utils import configure_logging

logger = logging.getLogger("benchmark")


# ═══════════════════════════════════════════════════════════════════
#  TEST DATA
# ═══════════════════════════════════════════════════════════════════

CONFIG_A = {
    "server": {
        "host": "0.0.0.0",
        "port": 443,
        "tls": True,
        "workers": 4,
    },
    "database": {
        "host": "db.internal",
        "port": 5432,
        "name": "production",
        "pool_size": 10,
        "ssl": True,
    },
    "logging": {
        "level": "WARN",
        "format": "json",
        "outputs": ["stdout", "file"],
    },
    "cache": {
        "backend": "redis",
        "ttl": 300,
        "max_size": 10000,
    },
}

CONFIG_B = {
    "server": {
        "host": "0.0.0.0",
        "port": 8080,        # Changed
        "tls": False,         # Changed
        "workers": 8,         # Changed
    },
    "database": {
        "host": "db.staging",  # Changed
        "port": 5432,
        "name": "staging",     # Changed
        "pool_size": 5,        # Changed
        "ssl": False,          # Changed
    },
    "logging": {
        "level": "DEBUG",      # Changed
        "format": "text",      # Changed
        "outputs": ["stdout"],  # Changed (removed "file")
    },
    "monitoring": {              # New key
        "enabled": True,
        "endpoint": "/health",
    },
    # "cache" removed entirely
}


@dataclass
class ServerConfig:
    host: str = tagged("host")
    port: int = tagged("port")
    tls: bool = tagged("tls", default=False)
    workers: int = tagged("workers", default=1)


@dataclass
class DatabaseConfig:
    host: str = tagged("host")
    port: int = tagged("port")
    name: str = tagged("name")
    pool_size: int = tagged("pool_size", default=5)
    ssl: bool = tagged("ssl", default=False)


@dataclass
class AppConfig:
    server: ServerConfig = tagged("server")
    database: DatabaseConfig = tagged("database")
    logging: dict[str, Any] = tagged("logging", default_factory=dict)
    cache: Optional[dict[str, Any]] = tagged("cache", default=None)
    monitoring: Optional[dict[str, Any]] = tagged("monitoring", default=None)


def _record(config: dict) -> AppConfig:
    return AppConfig(
        server=ServerConfig(**config["server"]),
        database=DatabaseConfig(**config["database"]),
        logging=copy.deepcopy(config["logging"]),
        cache=copy.deepcopy(config.get("cache")),
        monitoring=copy.deepcopy(config.get("monitoring")),
    )


def _try_import(name):
    """Safely attempt to import an optional dependency by name."""
    import importlib
    try:
        return importlib.import_module(name)
    except ImportError:
        return None


def _timed(fn, *args, repeat=200):
    t0 = time.perf_counter()
    for _ in range(repeat):
        result = fn(*args)
    return result, (time.perf_counter() - t0) / repeat


def _count_entries(patch) -> int:
    total = 0
    for value in patch.values():
        if isinstance(value, dict):
            total += _count_entries(value)
        else:
            total += 1
    return total


# ═══════════════════════════════════════════════════════════════════
#  BENCHMARKS
# ═══════════════════════════════════════════════════════════════════

def benchmark_config_diff():
    """Benchmark diff/apply on a realistic config change."""
    print("=" * 70)
    print("  §1  CONFIG DIFF (mappings)")
    print("=" * 70)
    print()

    patch, dt_diff = _timed(diff, CONFIG_A, CONFIG_B)
    result, dt_apply = _timed(apply_to_mapping, CONFIG_A, patch)

    deleted = sorted(k for k, v in patch.items() if v is DELETE)
    print(f"  Top-level keys:  {len(patch)}  (deleted: {', '.join(deleted) or '-'})")
    print(f"  Leaf entries:    {_count_entries(patch)}")
    print(f"  Round-trip:      {'✓' if values_equal(result, CONFIG_B) else '✗'}")
    print(f"  Time (diff):     {dt_diff*1000:.3f}ms")
    print(f"  Time (apply):    {dt_apply*1000:.3f}ms")
    print()


def benchmark_record_diff():
    """Benchmark diff/apply on the same change expressed as records."""
    print("=" * 70)
    print("  §2  CONFIG DIFF (records)")
    print("=" * 70)
    print()

    old, new = _record(CONFIG_A), _record(CONFIG_B)

    patch, dt_diff = _timed(diff, old, new)

    def _apply():
        draft = copy.deepcopy(old)
        return apply_to_record(draft, patch)

    result, dt_apply = _timed(_apply)

    print(f"  Leaf entries:    {_count_entries(patch)}")
    print(f"  Round-trip:      {'✓' if result == new else '✗'}")
    print(f"  Same as mapping: {'✓' if to_mapping(result) == to_mapping(new) else '✗'}")
    print(f"  Time (diff):     {dt_diff*1000:.3f}ms")
    print(f"  Time (apply):    {dt_apply*1000:.3f}ms  (includes deepcopy)")
    print()


def benchmark_vs_existing():
    """Compare with deepdiff and dictdiffer (if available)."""
    print("=" * 70)
    print("  §3  COMPARISON WITH EXISTING TOOLS")
    print("=" * 70)
    print()

    deepdiff = _try_import("deepdiff")
    dictdiffer = _try_import("dictdiffer")

    patch, sp_diff = _timed(diff, CONFIG_A, CONFIG_B)
    result, sp_apply = _timed(apply_to_mapping, CONFIG_A, patch)
    print(f"  structpatch:")
    print(f"    Patch entries:  {_count_entries(patch)}")
    print(f"    Round-trip:     {'✓' if result == CONFIG_B else '✗'}")
    print(f"    Time (diff):    {sp_diff*1000:.3f}ms")
    print(f"    Time (apply):   {sp_apply*1000:.3f}ms")
    print()

    if deepdiff:
        dd_result, dd_time = _timed(deepdiff.DeepDiff, CONFIG_A, CONFIG_B, repeat=20)
        dd_changes = sum(len(v) if hasattr(v, "__len__") else 0
                         for v in dd_result.values())
        delta = deepdiff.Delta(dd_result)
        print(f"  deepdiff:")
        print(f"    Changes found:  {dd_changes}")
        print(f"    Round-trip:     {'✓' if CONFIG_A + delta == CONFIG_B else '✗'}")
        print(f"    Time (diff):    {dd_time*1000:.3f}ms")
    else:
        print(f"  deepdiff:         NOT INSTALLED (pip install deepdiff)")
    print()

    if dictdiffer:
        def _diff():
            return list(dictdiffer.diff(CONFIG_A, CONFIG_B))

        dd_diffs, dd_time = _timed(_diff)
        patched, dd_apply = _timed(dictdiffer.patch, dd_diffs, CONFIG_A)
        print(f"  dictdiffer:")
        print(f"    Diffs found:    {len(dd_diffs)}")
        print(f"    Round-trip:     {'✓' if patched == CONFIG_B else '✗'}")
        print(f"    Time (diff):    {dd_time*1000:.3f}ms")
        print(f"    Time (apply):   {dd_apply*1000:.3f}ms")
    else:
        print(f"  dictdiffer:       NOT INSTALLED (pip install dictdiffer)")
    print()

    print("  KEY INSIGHT:")
    print("    deepdiff and dictdiffer describe changes as a list of path operations.")
    print("    structpatch describes them as a nested mapping shaped like the data,")
    print("    which applies directly onto typed records as well as plain dicts.")
    print()


def benchmark_scaling():
    """Test how diff and apply scale with data size."""
    print("=" * 70)
    print("  §4  SCALING")
    print("=" * 70)
    print()

    for n in [10, 100, 1000, 10000]:
        a = {f"key_{i}": i for i in range(n)}
        b = {f"key_{i}": i + (i % 2) for i in range(n)}

        patch, dt_diff = _timed(diff, a, b, repeat=5)
        _, dt_apply = _timed(apply_to_mapping, a, patch, repeat=5)

        print(f"  Map size   {n:>5}: changes={len(patch):>5}  "
              f"diff={dt_diff*1000:>8.2f}ms  apply={dt_apply*1000:>8.2f}ms")

    print()

    for depth in [5, 20, 50, 200]:
        a = b = "leaf"
        for i in range(depth):
            a = {"child": a, "level": i}
            b = {"child": b, "level": i if i else -1}

        patch, dt_diff = _timed(diff, a, b, repeat=5)
        print(f"  Depth      {depth:>5}: diff={dt_diff*1000:>8.3f}ms  "
              f"patch depth={_depth(patch)}")

    print()


def _depth(patch) -> int:
    depth = 0
    while isinstance(patch, dict) and "child" in patch:
        patch = patch["child"]
        depth += 1
    return depth


def main():
    configure_logging()
    logger.info("starting benchmark")

    print()
    print("╔══════════════════════════════════════════════════════════════════════╗")
    print("║          STRUCTURAL PATCHES — BENCHMARK SUITE                       ║")
    print("║          structpatch v0.1.0                                         ║")
    print("╚══════════════════════════════════════════════════════════════════════╝")
    print()

    benchmark_config_diff()
    benchmark_record_diff()
    benchmark_vs_existing()
    benchmark_scaling()

    print("=" * 70)
    print("  SUMMARY")
    print("=" * 70)
    print()
    print("  structpatch produces patches that:")
    print("    1. Name only what changed, with DELETE for removed keys")
    print("    2. Round-trip exactly: apply(old, diff(old, new)) == new")
    print("    3. Apply to typed records with per-slot type conversion")
    print("    4. Work across records and mappings in any combination")
    print()


if __name__ == "__main__":
    main()
