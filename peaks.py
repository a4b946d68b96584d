#!/usr/bin/env python3
"""
Peak detection on a circular hue histogram.

A peak is a strict local maximum above a fraction of the histogram maximum.
Its arc extends outward on both sides for as long as the buckets keep
falling, so each arc covers the slopes down to the surrounding valleys.
"""

from dataclasses import dataclass

import numpy as np
from scipy.signal import find_peaks

from errors import ConfigRangeError
from hue_histogram import HUE_BUCKETS


DEFAULT_MIN_HEIGHT_RATIO = 0.1


@dataclass(frozen=True)
class Peak:
    """A hue mode: location, height and inclusive arc [left, right]."""
    index: int
    value: float
    left: int
    right: int

    @property
    def wraps(self) -> bool:
        """True when the arc passes through hue 0."""
        return self.right < self.left

    @property
    def indices(self) -> list[int]:
        """Bucket indices covered by the arc, in order from left to right."""
        if not self.wraps:
            return list(range(self.left, self.right + 1))
        return list(range(self.left, HUE_BUCKETS)) + list(range(0, self.right + 1))

    @property
    def width(self) -> int:
        """Arc width in degrees."""
        return (self.right - self.left) % HUE_BUCKETS

    def contains(self, bucket: int) -> bool:
        if not self.wraps:
            return self.left <= bucket <= self.right
        return bucket >= self.left or bucket <= self.right


def find_local_maxima(values: np.ndarray, threshold: float) -> list[int]:
    """
    Indices of strict circular local maxima with value >= threshold.

    The ring is tiled three times so that buckets 0 and 359 see their
    wrapped neighbours; only hits in the middle copy are kept.
    """
    n = len(values)
    if n < 3:
        return []

    tiled = np.concatenate([values, values, values])
    # plateau_size=1 rejects flat tops, only strict maxima survive
    candidates, _ = find_peaks(tiled, height=threshold, plateau_size=(None, 1))

    return [int(p) - n for p in candidates if n <= p < 2 * n]


def find_boundary(values: np.ndarray, index: int, step: int) -> int:
    """
    Walk away from a peak in direction `step` (+1 or -1) while values fall.

    Stops at the last bucket before a plateau or rise, scanning at most
    half the ring.
    """
    n = len(values)
    edge = index
    for i in range(1, n // 2):
        idx = (index + step * i) % n
        if values[idx] >= values[(idx - step) % n]:
            break
        edge = idx
    return edge


def detect_peaks(buckets, min_height_ratio: float = DEFAULT_MIN_HEIGHT_RATIO) -> list[Peak]:
    """
    Detect peaks in circular histogram buckets.

    Args:
        buckets: Bucket values (usually smoothed), one per hue degree
        min_height_ratio: Minimum peak height relative to the maximum (0-1)

    Returns:
        Peaks sorted by value descending. Arcs of neighbouring peaks are not
        reconciled and may overlap.
    """
    if not 0 <= min_height_ratio <= 1:
        raise ConfigRangeError(f"min_height_ratio must be in [0, 1], got {min_height_ratio}")

    values = np.asarray(buckets, dtype=np.float64)
    if values.size == 0:
        return []

    threshold = values.max() * min_height_ratio

    peaks = []
    for index in find_local_maxima(values, threshold):
        peaks.append(Peak(
            index=index,
            value=float(values[index]),
            left=find_boundary(values, index, -1),
            right=find_boundary(values, index, +1)
        ))

    return sorted(peaks, key=lambda p: p.value, reverse=True)
