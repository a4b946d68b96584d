#!/usr/bin/env python3
"""
Extract dominant colors from an image via hue histogram peaks.

Pipeline: pixels → hue histogram → circular smoothing → peaks → peak colors
"""

import time
from dataclasses import dataclass, field

import numpy as np
from PIL import Image

from errors import ConfigRangeError
from hue_histogram import HistogramOptions, HueHistogram, build_histogram
from peak_colors import PeakColor, ResolveOptions, resolve_peak_colors
from peaks import Peak, detect_peaks
from smoothing import DEFAULT_SIGMA, SmoothedBuckets, smooth


# =============================================================================
# Constants
# =============================================================================

DEFAULT_DOWNSAMPLE_SIZE = 256  # Longest side after downsampling
PIPELINE_MIN_HEIGHT_RATIO = 0.005
PIPELINE_THRESHOLD = 0.2
PIPELINE_MIN_DISTANCE = 10.0

# Image size limits (security: prevent decompression bombs)
MAX_IMAGE_PIXELS = 50_000_000  # 50 megapixels
MAX_IMAGE_DIMENSION = 10_000  # 10k pixels per side


def _pipeline_resolve_options() -> ResolveOptions:
    return ResolveOptions(threshold=PIPELINE_THRESHOLD, min_distance=PIPELINE_MIN_DISTANCE)


@dataclass(frozen=True)
class ExtractOptions:
    """End-to-end settings for one extraction."""
    histogram: HistogramOptions = field(default_factory=HistogramOptions)
    sigma: float = DEFAULT_SIGMA
    min_height_ratio: float = PIPELINE_MIN_HEIGHT_RATIO
    resolve: ResolveOptions = field(default_factory=_pipeline_resolve_options)

    def __post_init__(self):
        # Negative sigma means no smoothing
        if self.sigma < 0:
            object.__setattr__(self, 'sigma', 0.0)
        if not 0 <= self.min_height_ratio <= 1:
            raise ConfigRangeError(f"min_height_ratio must be in [0, 1], got {self.min_height_ratio}")


@dataclass(frozen=True, eq=False)
class ExtractionResult:
    """Output of every pipeline stage for one image."""
    histogram: HueHistogram
    smoothed: SmoothedBuckets
    peaks: list[Peak]
    colors: list[PeakColor]


# =============================================================================
# Image acquisition
# =============================================================================

def load_pixels(image_path: str, size: int = DEFAULT_DOWNSAMPLE_SIZE,
                smooth_resize: bool = True) -> tuple[np.ndarray, int, int]:
    """
    Load an image as a flat RGBA buffer, downsampled so neither side exceeds size.

    Args:
        image_path: Path to the input image
        size: Maximum side length after downsampling, None keeps full resolution
        smooth_resize: Use Lanczos filtering instead of nearest-neighbour

    Returns:
        (pixels, width, height) with pixels a uint8 array of width * height * 4 values

    Raises:
        FileNotFoundError: If image file doesn't exist
        ValueError: If size is below 1, or the file is not a valid image or exceeds size limits
    """
    if size is not None and size < 1:
        raise ValueError(f"Downsample size must be >= 1, got {size}")

    try:
        img = Image.open(image_path)
    except FileNotFoundError:
        raise FileNotFoundError(f"Image not found: {image_path}")
    except Exception as e:
        raise ValueError(f"Could not open image: {e}")

    width, height = img.size
    if width > MAX_IMAGE_DIMENSION or height > MAX_IMAGE_DIMENSION:
        raise ValueError(
            f"Image dimensions {width}x{height} exceed maximum "
            f"{MAX_IMAGE_DIMENSION}x{MAX_IMAGE_DIMENSION}"
        )
    if width * height > MAX_IMAGE_PIXELS:
        raise ValueError(
            f"Image has {width * height:,} pixels, exceeding maximum {MAX_IMAGE_PIXELS:,}"
        )

    img = img.convert('RGBA')

    if size is not None:
        scale = min(1.0, size / width, size / height)
        target = (max(1, round(width * scale)), max(1, round(height * scale)))
        if target != img.size:
            resample = Image.Resampling.LANCZOS if smooth_resize else Image.Resampling.NEAREST
            img = img.resize(target, resample)

    pixels = np.array(img, dtype=np.uint8)
    h, w = pixels.shape[:2]

    return pixels.reshape(-1), w, h


# =============================================================================
# Pipeline
# =============================================================================

def extract_colors(pixels, width: int, height: int, options: ExtractOptions = None,
                   verbose: bool = False) -> ExtractionResult:
    """
    Run histogram, smoothing, peak detection and color resolution on one image.

    Args:
        pixels: Row-major RGBA buffer of width * height * 4 values
        width: Image width
        height: Image height
        options: Pipeline settings (defaults if omitted)
        verbose: Print per-stage summaries and timings

    Returns:
        ExtractionResult with the output of every stage

    Raises:
        InputShapeError: If the buffer does not match the dimensions
    """
    options = options or ExtractOptions()
    timings = {}

    start = time.perf_counter()
    histogram = build_histogram(pixels, width, height, options.histogram)
    timings['histogram'] = time.perf_counter() - start

    start = time.perf_counter()
    smoothed = smooth(histogram.weight, options.sigma)
    timings['smooth'] = time.perf_counter() - start

    start = time.perf_counter()
    peaks = detect_peaks(smoothed, options.min_height_ratio)
    timings['peaks'] = time.perf_counter() - start

    start = time.perf_counter()
    colors = resolve_peak_colors(histogram, peaks, smoothed, options.resolve)
    timings['resolve'] = time.perf_counter() - start

    if verbose:
        print(f"Image: {width}x{height} ({width * height:,} pixels)")
        print(f"Histogram: {int(histogram.count.sum()):,} pixels counted, total weight {histogram.total:.2f}")
        print(f"Peaks: {len(peaks)} | Colors: {len(colors)}")
        total = sum(timings.values())
        for stage, t in timings.items():
            pct = (t / total * 100) if total > 0 else 0
            print(f"  {stage:10s}: {t:6.3f}s ({pct:5.1f}%)")

    return ExtractionResult(histogram=histogram, smoothed=smoothed, peaks=peaks, colors=colors)


def extract_colors_from_path(image_path: str, options: ExtractOptions = None,
                             size: int = DEFAULT_DOWNSAMPLE_SIZE, smooth_resize: bool = True,
                             verbose: bool = False) -> ExtractionResult:
    """Load an image file and run the full pipeline on it."""
    pixels, width, height = load_pixels(image_path, size=size, smooth_resize=smooth_resize)
    return extract_colors(pixels, width, height, options, verbose=verbose)
