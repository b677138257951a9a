"""
School-uniform size recommendation engine.

Architecture
────────────
A **SizeChart** is an ordered list of SizeEntry plus per-measurement
weights.  Each SizeEntry specifies the valid measurement ranges for that
size.  Ranges of neighbouring sizes overlap on purpose.

The scoring function awards each measurement a stepped share of its
weight:

                 1.0        ┌──────────┐
                 0.5  ┌─────┘          └─────┐
                 0.0 ─┘                      └─
                 min·0.95  min           max  max·1.05

  • Inside [min, max]:              full weight
  • Inside the ±5% tolerance band:  half weight
  • Beyond the band:                nothing

The score of a size is the plain sum of its per-measurement awards:
  • Garments (PP..GG):  chest 4, height 3, waist 2, hips 2   (max 11)
  • Pants (2..14):      height 3, waist 3, hips 2            (max 8)

The highest-scoring size wins; on ties the size declared first in the
chart is kept.  When the winning score is below the chart's minimum the
result is ``MANUAL``: the family should be offered manual sizing instead
of an automatic pick.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from app.config import config
from app.models.schemas import (
    Measurements,
    PantsMeasurements,
    SizeChartKind,
    SizeRecommendation,
)

logger = logging.getLogger(__name__)

scfg = config.sizing

MANUAL = "MANUAL"


# ── Size chart data structures ─────────────────────────────────────────

@dataclass(frozen=True)
class MeasurementRange:
    """Valid range for one measurement in one size, in cm."""
    min_cm: float
    max_cm: float


@dataclass(frozen=True)
class SizeEntry:
    """One size with its measurement ranges."""
    label: str  # e.g. "M", "10"
    ranges: dict[str, MeasurementRange]  # measurement_name → range


@dataclass(frozen=True)
class SizeChart:
    """Complete size chart for one garment family."""
    kind: SizeChartKind
    sizes: tuple[SizeEntry, ...]
    measurement_weights: dict[str, float]  # measurement_name → weight
    min_score: float

    @property
    def max_score(self) -> float:
        return float(sum(self.measurement_weights.values()))

    @property
    def labels(self) -> tuple[str, ...]:
        return tuple(e.label for e in self.sizes)


def _entry(label: str, **ranges: tuple[float, float]) -> SizeEntry:
    return SizeEntry(label, {k: MeasurementRange(*v) for k, v in ranges.items()})


# ── Built-in charts ────────────────────────────────────────────────────
# Youth sizing up to 17 years.

GARMENT_CHART = SizeChart(
    kind=SizeChartKind.garment,
    measurement_weights={"chest": 4.0, "height": 3.0, "waist": 2.0, "hips": 2.0},
    min_score=scfg.garment_min_score,
    sizes=(
        _entry("PP", height=(95, 120), chest=(52, 64), waist=(50, 58), hips=(56, 70)),
        _entry("P", height=(115, 140), chest=(62, 74), waist=(56, 66), hips=(68, 82)),
        _entry("M", height=(135, 160), chest=(72, 86), waist=(64, 76), hips=(80, 94)),
        _entry("G", height=(155, 175), chest=(84, 98), waist=(74, 88), hips=(92, 106)),
        _entry("GG", height=(170, 190), chest=(96, 112), waist=(86, 104), hips=(104, 120)),
    ),
)

PANTS_CHART = SizeChart(
    kind=SizeChartKind.pants,
    measurement_weights={"height": 3.0, "waist": 3.0, "hips": 2.0},
    min_score=scfg.pants_min_score,
    sizes=(
        _entry("2", height=(85, 98), waist=(44, 52), hips=(50, 58)),
        _entry("4", height=(95, 108), waist=(48, 56), hips=(54, 64)),
        _entry("6", height=(105, 118), waist=(52, 60), hips=(60, 72)),
        _entry("8", height=(115, 130), waist=(56, 66), hips=(68, 80)),
        _entry("10", height=(125, 145), waist=(60, 72), hips=(76, 90)),
        _entry("12", height=(140, 160), waist=(64, 78), hips=(86, 100)),
        _entry("14", height=(150, 172), waist=(70, 86), hips=(96, 112)),
    ),
)

# ── Scoring ────────────────────────────────────────────────────────────

def _banded_score(value: float, rng: MeasurementRange, weight: float) -> float:
    """Full weight inside the range, partial inside the tolerance band, else 0."""
    if rng.min_cm <= value <= rng.max_cm:
        return weight

    lower = rng.min_cm * (1 - scfg.outside_tolerance_ratio)
    upper = rng.max_cm * (1 + scfg.outside_tolerance_ratio)

    if lower <= value < rng.min_cm or rng.max_cm < value <= upper:
        return weight * scfg.partial_ratio

    return 0.0


def score_entry(entry: SizeEntry, values: dict[str, float], chart: SizeChart) -> float:
    """Weighted sum over the chart's measurements for one size."""
    total = 0.0
    for name, weight in chart.measurement_weights.items():
        total += _banded_score(values[name], entry.ranges[name], weight)
    return total


def score_chart(chart: SizeChart, values: dict[str, float]) -> list[tuple[str, float]]:
    """(label, score) for every size, in chart order."""
    return [(entry.label, score_entry(entry, values, chart)) for entry in chart.sizes]


def _recommend(chart: SizeChart, values: dict[str, float]) -> SizeRecommendation:
    best_label: str | None = None
    best_score = 0.0

    for label, score in score_chart(chart, values):
        # Strictly greater: earlier chart entries win ties
        if best_label is None or score > best_score:
            best_label, best_score = label, score

    size = best_label if best_label is not None and best_score >= chart.min_score else MANUAL
    confidence = best_score / chart.max_score if chart.max_score > 0 else 0.0

    logger.debug("Chart %s: best=%s score=%.1f → %s", chart.kind.value, best_label, best_score, size)

    return SizeRecommendation(
        chart=chart.kind,
        size=size,
        score=best_score,
        max_score=chart.max_score,
        confidence=confidence,
    )


# ── Main recommendation functions ─────────────────────────────────────

def recommend_size(measurements: Measurements) -> SizeRecommendation:
    """
    Recommend a garment size (PP / P / M / G / GG) or ``MANUAL``.

    Algorithm:
      1. Score every chart entry on chest, height, waist and hips.
      2. Keep the first entry with the highest total.
      3. Below the minimum score, return ``MANUAL`` with that score.
    """
    values = {
        "height": measurements.height,
        "chest": measurements.chest,
        "waist": measurements.waist,
        "hips": measurements.hips,
    }
    return _recommend(GARMENT_CHART, values)


def recommend_pants_size(measurements: PantsMeasurements | Measurements) -> SizeRecommendation:
    """Recommend a numeric pants size (2 .. 14) or ``MANUAL``."""
    values = {
        "height": measurements.height,
        "waist": measurements.waist,
        "hips": measurements.hips,
    }
    return _recommend(PANTS_CHART, values)


# ── Availability adaptation ───────────────────────────────────────────

def _as_number(label: str) -> float | None:
    try:
        return float(label.strip())
    except (AttributeError, ValueError):
        return None


def pick_available_size(recommended: str, available: list[str] | None) -> str:
    """
    Closest size the uniform actually offers.

    A recommended size that is on offer comes back unchanged.  Otherwise
    the numeric size with the smallest absolute distance wins; on equal
    distance the smaller size is preferred.  ``MANUAL``, non-numeric
    recommendations and offers without numeric sizes are returned as is.
    """
    if recommended == MANUAL or not available:
        return recommended

    offered = [s.strip() for s in available if isinstance(s, str) and s.strip()]
    if recommended in offered:
        return recommended

    target = _as_number(recommended)
    if target is None:
        return recommended

    candidates: list[tuple[float, str]] = []
    for label in offered:
        n = _as_number(label)
        if n is not None:
            candidates.append((n, label))
    if not candidates:
        return recommended

    _, best = min(candidates, key=lambda c: (abs(c[0] - target), c[0]))
    return best
