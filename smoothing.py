#!/usr/bin/env python3
"""Gaussian smoothing over the circular hue domain."""

import math
from dataclasses import dataclass

import numpy as np
from scipy.ndimage import correlate1d


DEFAULT_SIGMA = 2.0
# Beyond this many ring lengths the wrapped Gaussian is flat to machine precision
FLAT_SIGMA_RATIO = 3


@dataclass(frozen=True, eq=False)
class SmoothedBuckets:
    """Smoothed bucket values and their maximum."""
    values: np.ndarray
    max: float

    def __len__(self) -> int:
        return len(self.values)

    def __getitem__(self, index):
        return self.values[index]

    def __array__(self, dtype=None, copy=None):
        return np.asarray(self.values, dtype=dtype)


def gaussian_kernel(sigma: float) -> np.ndarray:
    """Normalized Gaussian kernel with radius ceil(3 * sigma)."""
    radius = math.ceil(3 * sigma)
    x = np.arange(-radius, radius + 1, dtype=np.float64)
    kernel = np.exp(-(x * x) / (2 * sigma * sigma))
    return kernel / kernel.sum()


def _circular_correlate(values: np.ndarray, kernel: np.ndarray) -> np.ndarray:
    n = len(values)
    radius = len(kernel) // 2
    if radius < n:
        return correlate1d(values, kernel, mode='wrap')

    # Kernel wider than the ring: fold it onto the ring first
    folded = np.zeros(n)
    np.add.at(folded, np.arange(-radius, radius + 1) % n, kernel)
    return sum(w * np.roll(values, -offset) for offset, w in enumerate(folded))


def smooth(buckets, sigma: float = DEFAULT_SIGMA) -> SmoothedBuckets:
    """
    Smooth histogram buckets with a wrap-around Gaussian.

    Hue 359 is adjacent to hue 0, so the convolution runs on a closed ring
    and preserves the total mass. sigma <= 0 returns an unchanged copy.
    """
    values = np.array(buckets, dtype=np.float64)

    if sigma > 0 and len(values):
        if sigma >= FLAT_SIGMA_RATIO * len(values):
            values = np.full(len(values), values.mean())
        else:
            values = _circular_correlate(values, gaussian_kernel(sigma))

    return SmoothedBuckets(values=values, max=float(values.max()) if len(values) else 0.0)
