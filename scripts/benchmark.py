#!/usr/bin/env python3
"""
End-to-end benchmark: generate reservations → build timelines → dashboard.

Usage:
    python scripts/benchmark.py [--count 2000]
"""

from __future__ import annotations

import argparse
import sys
import time
from datetime import datetime, timezone
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

import numpy as np

from scripts.generate_reservations import generate_reservations
from app.core.analytics import compute_dashboard, resolve_window
from app.core.timeline import build_timeline


def main():
    parser = argparse.ArgumentParser()
    parser.add_argument("--count", type=int, default=2000)
    args = parser.parse_args()

    print("=" * 70)
    print("UniformFlow Analytics Benchmark")
    print("=" * 70)

    now = datetime.now(timezone.utc)

    # ── Generate dataset ──
    print("\n[1] Generating synthetic reservations...")
    records = generate_reservations(count=args.count, days=180, seed=7, now=now)
    n_events = sum(len(r["events"]) for r in records)
    print(f"    Reservations: {len(records)}, Events: {n_events}")

    # ── Timelines ──
    print("\n[2] Building timelines...")
    t0 = time.perf_counter()
    timelines = [build_timeline(r, now=now) for r in records]
    t_timeline = time.perf_counter() - t0
    lengths = np.array([len(tl.points) for tl in timelines])
    print(f"    Build time:        {t_timeline:.3f} s")
    print(f"    Points / timeline: mean {lengths.mean():.2f}, max {lengths.max()}")

    # ── Dashboard ──
    print("\n[3] Computing dashboard views...")
    print("-" * 70)
    print(f"{'Window':<12} {'Buckets':>8} {'Time (s)':>10} {'Delivered':>10} {'Open WIP':>10}")
    print("-" * 70)

    for days in (7, 30, 90, 365):
        window = resolve_window(days=days, now=now)
        t1 = time.perf_counter()
        result = compute_dashboard(records, window=window, charts_enabled=True)
        elapsed = time.perf_counter() - t1
        delivered = sum(p.entregues for p in result.throughput)
        wip = sum(b.count for b in result.aging_wip)
        print(f"{days:>4} days   {len(window.buckets):>8} {elapsed:>10.3f} {delivered:>10} {wip:>10}")

    print("-" * 70)
    print("\n" + "=" * 70)


if __name__ == "__main__":
    main()
