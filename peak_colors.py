#!/usr/bin/env python3
"""
Resolve histogram peaks into representative OKLCH colors.

Two modes:
- peak: the average color of the single bucket at the peak position
- average: a weighted mean over the peak's arc, using a circular mean for hue

Resolved colors are ranked by arc weight, then colors that are perceptually
too close (CIEDE2000) are merged, keeping the more chromatic one.
"""

import math
from dataclasses import dataclass
from typing import Optional

import numpy as np

from errors import ConfigRangeError
from hue_histogram import HueHistogram
from oklch import oklch_to_hex, perceptual_distance
from peaks import Peak


# =============================================================================
# Constants
# =============================================================================

MAX_CHROMA = 0.4
COLOR_MODES = ('peak', 'average')
DEFAULT_COLOR_MODE = 'average'
DEFAULT_MAX_COLORS = 5


@dataclass(frozen=True)
class ResolveOptions:
    """Peak-to-color settings."""
    mode: str = DEFAULT_COLOR_MODE
    threshold: float = 0.0  # average mode: bucket inclusion ratio of the peak value
    max_colors: int = DEFAULT_MAX_COLORS
    min_distance: float = 0.0  # CIEDE2000 merge distance, 0 disables merging

    def __post_init__(self):
        if self.mode not in COLOR_MODES:
            raise ConfigRangeError(f"Unknown color mode {self.mode!r}, expected one of {COLOR_MODES}")
        if not 0 <= self.threshold <= 1:
            raise ConfigRangeError(f"threshold must be in [0, 1], got {self.threshold}")
        if not isinstance(self.max_colors, (int, np.integer)) or self.max_colors < 1:
            raise ConfigRangeError(f"max_colors must be >= 1, got {self.max_colors}")
        if self.min_distance < 0:
            object.__setattr__(self, 'min_distance', 0.0)


@dataclass(frozen=True)
class PeakColor:
    """Representative color of one peak."""
    hue: float  # 0-360
    chroma: float  # 0-0.4
    lightness: float  # 0-1
    weight: float  # Smoothed histogram mass over the peak arc
    css_color: str  # oklch(L C H)
    peak: Peak

    @property
    def hex(self) -> str:
        return oklch_to_hex(self.lightness, self.chroma, self.hue)


def format_oklch(lightness: float, chroma: float, hue: float) -> str:
    """CSS oklch() token with 3/3/1 decimals."""
    return f"oklch({lightness:.3f} {chroma:.3f} {hue:.1f})"


def peak_weight(values: np.ndarray, peak: Peak) -> float:
    """Sum of bucket values over the peak arc."""
    if not peak.wraps:
        return float(values[peak.left:peak.right + 1].sum())
    return float(values[peak.left:].sum() + values[:peak.right + 1].sum())


def _wrap_degrees(angle: float) -> float:
    angle = angle % 360
    return 0.0 if angle >= 360 else angle


def _peak_mode(histogram: HueHistogram, peak: Peak) -> Optional[tuple]:
    if histogram.count[peak.index] == 0:
        return None

    return (
        float(peak.index),
        histogram.average_chroma(peak.index),
        histogram.average_lightness(peak.index)
    )


def _average_mode(histogram: HueHistogram, peak: Peak, values: np.ndarray,
                  threshold: float) -> Optional[tuple]:
    indices = np.array(peak.indices)
    counts = histogram.count[indices]
    weights = values[indices]
    min_value = values[peak.index] * threshold

    mask = (counts > 0) & (weights >= min_value)
    indices, counts, weights = indices[mask], counts[mask], weights[mask]

    total = weights.sum()
    if total <= 0:
        return None

    # Circular mean for hue
    angles = np.radians(indices)
    hue = _wrap_degrees(math.degrees(math.atan2(
        float((np.sin(angles) * weights).sum()),
        float((np.cos(angles) * weights).sum())
    )))

    chroma = float((histogram.chroma_sum[indices] / counts * weights).sum() / total)
    lightness = float((histogram.lightness_sum[indices] / counts * weights).sum() / total)

    return hue, chroma, lightness


def resolve_peak(histogram: HueHistogram, peak: Peak, values: np.ndarray,
                 options: ResolveOptions) -> Optional[PeakColor]:
    """Resolve one peak, or None when it has no sampled color data."""
    if options.mode == 'peak':
        resolved = _peak_mode(histogram, peak)
    else:
        resolved = _average_mode(histogram, peak, values, options.threshold)

    if resolved is None:
        return None

    hue, chroma, lightness = resolved
    lightness = min(max(lightness, 0.0), 1.0)
    chroma = min(max(chroma, 0.0), MAX_CHROMA)

    return PeakColor(
        hue=hue,
        chroma=chroma,
        lightness=lightness,
        weight=peak_weight(values, peak),
        css_color=format_oklch(lightness, chroma, hue),
        peak=peak
    )


def filter_by_distance(colors: list, min_distance: float) -> list:
    """
    Greedy perceptual de-duplication.

    Each candidate is compared against the accepted colors in order; at the
    first one closer than min_distance it either replaces it (higher chroma)
    or is dropped. Candidates with no close match are appended.
    """
    if min_distance <= 0 or len(colors) < 2:
        return list(colors)

    accepted = []
    for candidate in colors:
        match = next((i for i, kept in enumerate(accepted)
                      if perceptual_distance(candidate, kept) < min_distance), None)

        if match is None:
            accepted = accepted + [candidate]
        elif candidate.chroma > accepted[match].chroma:
            accepted = accepted[:match] + [candidate] + accepted[match + 1:]

    return accepted


def resolve_peak_colors(histogram: HueHistogram, peaks: list, smoothed,
                        options: ResolveOptions = None) -> list[PeakColor]:
    """
    Turn detected peaks into ranked, de-duplicated colors.

    Args:
        histogram: Original histogram (chroma/lightness sums and counts)
        peaks: Peaks detected on the smoothed buckets
        smoothed: Smoothed bucket values, used for weights and thresholds
        options: Resolution settings (defaults if omitted)

    Returns:
        At most max_colors colors, sorted by weight descending
    """
    options = options or ResolveOptions()
    values = np.asarray(smoothed, dtype=np.float64)

    colors = [resolve_peak(histogram, peak, values, options) for peak in peaks]
    colors = [c for c in colors if c is not None]

    ranked = sorted(colors, key=lambda c: c.weight, reverse=True)
    filtered = filter_by_distance(ranked, options.min_distance)

    return filtered[:options.max_colors]
