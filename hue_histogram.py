#!/usr/bin/env python3
"""
Build a 360-bucket circular hue histogram from an RGBA pixel buffer.

Each bucket holds the accumulated pixel weight for one integer hue degree
plus running chroma/lightness sums and pixel counts, so that average colors
can be recovered per bucket later on.
"""

from dataclasses import dataclass

import numpy as np

from errors import ConfigRangeError, InputShapeError
from oklch import rgb_to_oklch


# =============================================================================
# Constants
# =============================================================================

HUE_BUCKETS = 360
DEFAULT_CHROMA_THRESHOLD = 0.02
DEFAULT_WEIGHT_MODE = 'chroma_lightness'
DEFAULT_CHROMA_GATE = 'hard'
DEFAULT_ALPHA_CUTOFF = 200  # ~78% opacity, below this a pixel is treated as transparent
CHUNK_PIXELS = 65_536  # Pixels converted per scan step


# =============================================================================
# Weighting strategies
# =============================================================================

def smoothstep(edge0: float, edge1: float, x: np.ndarray) -> np.ndarray:
    """Hermite ramp from 0 at edge0 to 1 at edge1."""
    t = np.clip((x - edge0) / (edge1 - edge0), 0.0, 1.0)
    return t * t * (3 - 2 * t)


def _count_weight(L: np.ndarray, C: np.ndarray) -> np.ndarray:
    return np.ones_like(C)


def _chroma_weight(L: np.ndarray, C: np.ndarray) -> np.ndarray:
    return C


def _chroma_lightness_weight(L: np.ndarray, C: np.ndarray) -> np.ndarray:
    # Triangular lightness window peaking at L = 0.5
    return C * np.maximum(0.0, 1 - 2 * np.abs(L - 0.5))


def _hard_gate(C: np.ndarray, threshold: float) -> np.ndarray:
    return (C >= threshold).astype(np.float64)


def _ramp_gate(C: np.ndarray, threshold: float) -> np.ndarray:
    if threshold <= 0:
        return np.ones_like(C)
    return smoothstep(0.0, threshold, C)


WEIGHT_MODES = {
    'count': _count_weight,
    'chroma': _chroma_weight,
    'chroma_lightness': _chroma_lightness_weight,
}

CHROMA_GATES = {
    'hard': _hard_gate,  # Low-chroma pixels contribute no weight
    'ramp': _ramp_gate,  # Weight fades in up to the threshold
}


@dataclass(frozen=True)
class HistogramOptions:
    """Histogram construction settings."""
    chroma_threshold: float = DEFAULT_CHROMA_THRESHOLD
    weight_mode: str = DEFAULT_WEIGHT_MODE
    lightness_margin: float = 0.0
    chroma_gate: str = DEFAULT_CHROMA_GATE
    alpha_cutoff: int = DEFAULT_ALPHA_CUTOFF

    def __post_init__(self):
        if self.weight_mode not in WEIGHT_MODES:
            raise ConfigRangeError(
                f"Unknown weight mode {self.weight_mode!r}, expected one of {sorted(WEIGHT_MODES)}"
            )
        if self.chroma_gate not in CHROMA_GATES:
            raise ConfigRangeError(
                f"Unknown chroma gate {self.chroma_gate!r}, expected one of {sorted(CHROMA_GATES)}"
            )
        if self.chroma_threshold < 0:
            raise ConfigRangeError(f"chroma_threshold must be >= 0, got {self.chroma_threshold}")
        if not 0 <= self.lightness_margin <= 0.5:
            raise ConfigRangeError(f"lightness_margin must be in [0, 0.5], got {self.lightness_margin}")
        if not 0 <= self.alpha_cutoff <= 255:
            raise ConfigRangeError(f"alpha_cutoff must be in [0, 255], got {self.alpha_cutoff}")


@dataclass(frozen=True, eq=False)
class HueHistogram:
    """360 parallel buckets indexed by integer hue degree. Arrays are read-only."""
    weight: np.ndarray
    chroma_sum: np.ndarray
    lightness_sum: np.ndarray
    count: np.ndarray
    max: float
    total: float

    def average_chroma(self, bucket: int) -> float:
        n = self.count[bucket]
        return float(self.chroma_sum[bucket] / n) if n else 0.0

    def average_lightness(self, bucket: int) -> float:
        n = self.count[bucket]
        return float(self.lightness_sum[bucket] / n) if n else 0.0


def _make_histogram(weight: np.ndarray, chroma_sum: np.ndarray,
                    lightness_sum: np.ndarray, count: np.ndarray) -> HueHistogram:
    for arr in (weight, chroma_sum, lightness_sum, count):
        arr.setflags(write=False)

    return HueHistogram(
        weight=weight,
        chroma_sum=chroma_sum,
        lightness_sum=lightness_sum,
        count=count,
        max=float(weight.max()) if weight.size else 0.0,
        total=float(weight.sum())
    )


def empty_histogram() -> HueHistogram:
    """Histogram of an image where no pixel qualified."""
    return _make_histogram(
        np.zeros(HUE_BUCKETS),
        np.zeros(HUE_BUCKETS),
        np.zeros(HUE_BUCKETS),
        np.zeros(HUE_BUCKETS, dtype=np.int64)
    )


def merge_histograms(parts: list) -> HueHistogram:
    """
    Combine partial histograms by element-wise addition.

    Bucket sums are associative, so histograms of disjoint pixel ranges
    merge into exactly the histogram of their union.
    """
    weight = np.zeros(HUE_BUCKETS)
    chroma_sum = np.zeros(HUE_BUCKETS)
    lightness_sum = np.zeros(HUE_BUCKETS)
    count = np.zeros(HUE_BUCKETS, dtype=np.int64)

    for part in parts:
        weight += part.weight
        chroma_sum += part.chroma_sum
        lightness_sum += part.lightness_sum
        count += part.count

    return _make_histogram(weight, chroma_sum, lightness_sum, count)


# =============================================================================
# Construction
# =============================================================================

def as_pixel_array(pixels, width: int, height: int) -> np.ndarray:
    """
    View a row-major RGBA buffer as an (n, 4) array.

    Raises:
        InputShapeError: If the buffer length is not width * height * 4
    """
    if width < 0 or height < 0:
        raise InputShapeError(f"Image dimensions must be non-negative, got {width}x{height}")

    if isinstance(pixels, (bytes, bytearray, memoryview)):
        data = np.frombuffer(pixels, dtype=np.uint8)
    else:
        data = np.asarray(pixels)

    expected = width * height * 4
    if data.size != expected:
        raise InputShapeError(
            f"Pixel buffer has {data.size} values, expected {expected} ({width}x{height} RGBA)"
        )

    return data.reshape(-1, 4)


def _scan(chunk: np.ndarray, options: HistogramOptions) -> HueHistogram:
    """Histogram of one slice of the pixel buffer."""
    opaque = chunk[chunk[:, 3] >= options.alpha_cutoff]
    L, C, H = rgb_to_oklch(opaque[:, :3]).T

    if options.lightness_margin > 0:
        keep = (L >= options.lightness_margin) & (L <= 1 - options.lightness_margin)
        L, C, H = L[keep], C[keep], H[keep]

    buckets = np.floor(H).astype(np.int64) % HUE_BUCKETS

    weights = WEIGHT_MODES[options.weight_mode](L, C)
    weights = weights * CHROMA_GATES[options.chroma_gate](C, options.chroma_threshold)

    # Averages track every pixel that passed the filters, gated or not
    return _make_histogram(
        np.bincount(buckets, weights=weights, minlength=HUE_BUCKETS).astype(np.float64),
        np.bincount(buckets, weights=C, minlength=HUE_BUCKETS).astype(np.float64),
        np.bincount(buckets, weights=L, minlength=HUE_BUCKETS).astype(np.float64),
        np.bincount(buckets, minlength=HUE_BUCKETS).astype(np.int64)
    )


def build_histogram(pixels, width: int, height: int,
                    options: HistogramOptions = None) -> HueHistogram:
    """
    Build the hue histogram of an RGBA image.

    Args:
        pixels: Row-major RGBA buffer (bytes or array) of width * height * 4 values
        width: Image width in pixels
        height: Image height in pixels
        options: Weighting and filter settings (defaults if omitted)

    Returns:
        HueHistogram with 360 buckets

    Raises:
        InputShapeError: If the buffer does not match the dimensions
    """
    options = options or HistogramOptions()
    data = as_pixel_array(pixels, width, height)

    parts = [_scan(data[start:start + CHUNK_PIXELS], options)
             for start in range(0, len(data), CHUNK_PIXELS)]

    if not parts:
        return empty_histogram()
    if len(parts) == 1:
        return parts[0]
    return merge_histograms(parts)
