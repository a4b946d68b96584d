#!/usr/bin/env python3
"""
Analyze an image and report its dominant hue colors.

Prints a prose report to the terminal and optionally writes a swatch image.
"""

import argparse
import sys
from pathlib import Path

from PIL import Image, ImageDraw

from extract_colors import (
    DEFAULT_DOWNSAMPLE_SIZE, PIPELINE_MIN_DISTANCE, PIPELINE_MIN_HEIGHT_RATIO,
    PIPELINE_THRESHOLD, ExtractionResult, ExtractOptions, extract_colors_from_path,
)
from hue_histogram import (
    CHROMA_GATES, DEFAULT_ALPHA_CUTOFF, DEFAULT_CHROMA_GATE, DEFAULT_CHROMA_THRESHOLD,
    DEFAULT_WEIGHT_MODE, WEIGHT_MODES, HistogramOptions,
)
from peak_colors import COLOR_MODES, DEFAULT_COLOR_MODE, DEFAULT_MAX_COLORS, ResolveOptions
from smoothing import DEFAULT_SIGMA


# =============================================================================
# Render
# =============================================================================

def render(result: ExtractionResult) -> str:
    """Render extraction result as prose."""
    lines = []
    colors = result.colors
    total_weight = float(result.smoothed.values.sum())

    lines.append(f"COLORS: {len(colors)} (from {len(result.peaks)} peaks)")
    lines.append(f"Histogram: {int(result.histogram.count.sum()):,} pixels | "
                 f"Total weight: {result.histogram.total:.2f}")
    lines.append("")

    if not colors:
        lines.append("No colors found.")
        return "\n".join(lines)

    for i, color in enumerate(colors, 1):
        peak = color.peak
        share = color.weight / total_weight * 100 if total_weight > 0 else 0
        lines.append(f"[{i}] {color.css_color}  {color.hex}")
        lines.append(f"  Hue: {color.hue:.1f}° | Chroma: {color.chroma:.3f} | Lightness: {color.lightness:.3f}")
        lines.append(f"  Weight: {share:.1f}% | Peak: {peak.index}° "
                     f"(arc {peak.left}°-{peak.right}°, {peak.width}° wide)")
        lines.append("")

    return "\n".join(lines).rstrip()


def render_swatches(colors: list, output_path: str) -> None:
    """
    Create a swatch image of the extracted colors with their weight shares.

    Args:
        colors: PeakColor list from the pipeline
        output_path: Path to save the output image
    """
    swatch_size = 80
    padding = 10
    text_height = 25
    cols = max(1, min(len(colors), 6))
    rows = max(1, (len(colors) + cols - 1) // cols)

    img_width = cols * (swatch_size + padding) + padding
    img_height = rows * (swatch_size + text_height + padding) + padding

    img = Image.new('RGB', (img_width, img_height), (240, 240, 240))
    draw = ImageDraw.Draw(img)

    total_weight = sum(c.weight for c in colors) or 1

    for i, color in enumerate(colors):
        row = i // cols
        col = i % cols

        x = padding + col * (swatch_size + padding)
        y = padding + row * (swatch_size + text_height + padding)

        draw.rectangle([x, y, x + swatch_size, y + swatch_size], fill=color.hex)

        text = f"{color.weight / total_weight * 100:.1f}%"
        bbox = draw.textbbox((0, 0), text)
        text_width = bbox[2] - bbox[0]
        text_x = x + (swatch_size - text_width) // 2
        draw.text((text_x, y + swatch_size + 4), text, fill=(0, 0, 0))

    img.save(output_path)


# =============================================================================
# Options
# =============================================================================

def positive_int(value: str) -> int:
    number = int(value)
    if number < 1:
        raise argparse.ArgumentTypeError(f"must be >= 1, got {number}")
    return number


def add_option_arguments(parser: argparse.ArgumentParser) -> None:
    """Register pipeline tuning flags shared by the CLIs."""
    group = parser.add_argument_group('pipeline options')
    group.add_argument('--size', type=positive_int, default=DEFAULT_DOWNSAMPLE_SIZE,
                       help=f'Downsample longest side to this many pixels (default {DEFAULT_DOWNSAMPLE_SIZE})')
    group.add_argument('--no-downscale', action='store_true',
                       help='Process at full resolution')
    group.add_argument('--no-smooth-resize', action='store_true',
                       help='Downsample with nearest-neighbour instead of Lanczos filtering')
    group.add_argument('--weight-mode', choices=sorted(WEIGHT_MODES), default=DEFAULT_WEIGHT_MODE,
                       help='Histogram weight per pixel')
    group.add_argument('--chroma-gate', choices=sorted(CHROMA_GATES), default=DEFAULT_CHROMA_GATE,
                       help='hard: drop weight below the chroma threshold, ramp: fade it in')
    group.add_argument('--chroma-threshold', type=float, default=DEFAULT_CHROMA_THRESHOLD)
    group.add_argument('--lightness-margin', type=float, default=0.0,
                       help='Ignore pixels with L below margin or above 1 - margin')
    group.add_argument('--alpha-cutoff', type=int, default=DEFAULT_ALPHA_CUTOFF,
                       help='Ignore pixels with alpha below this value (0-255)')
    group.add_argument('--sigma', type=float, default=DEFAULT_SIGMA,
                       help='Gaussian smoothing sigma in degrees, 0 disables smoothing')
    group.add_argument('--min-height', type=float, default=PIPELINE_MIN_HEIGHT_RATIO,
                       help='Minimum peak height relative to the highest peak')
    group.add_argument('--mode', choices=COLOR_MODES, default=DEFAULT_COLOR_MODE,
                       help='Resolve colors at the peak bucket or averaged over the peak arc')
    group.add_argument('--threshold', type=float, default=PIPELINE_THRESHOLD,
                       help='Average mode: include buckets >= threshold * peak value')
    group.add_argument('--max-colors', type=int, default=DEFAULT_MAX_COLORS)
    group.add_argument('--min-distance', type=float, default=PIPELINE_MIN_DISTANCE,
                       help='Merge colors closer than this CIEDE2000 distance, 0 disables merging')


def build_options(args: argparse.Namespace) -> ExtractOptions:
    """Build pipeline options from parsed CLI flags."""
    return ExtractOptions(
        histogram=HistogramOptions(
            chroma_threshold=args.chroma_threshold,
            weight_mode=args.weight_mode,
            lightness_margin=args.lightness_margin,
            chroma_gate=args.chroma_gate,
            alpha_cutoff=args.alpha_cutoff
        ),
        sigma=args.sigma,
        min_height_ratio=args.min_height,
        resolve=ResolveOptions(
            mode=args.mode,
            threshold=args.threshold,
            max_colors=args.max_colors,
            min_distance=args.min_distance
        )
    )


# =============================================================================
# CLI
# =============================================================================

def main(argv: list = None) -> int:
    parser = argparse.ArgumentParser(
        description='Analyze an image and extract its dominant hue colors.'
    )
    parser.add_argument(
        '--input', '-i',
        required=True,
        help='Path to the image file'
    )
    parser.add_argument(
        '--output', '-o',
        nargs='?',
        const=True,
        default=None,
        help='Write swatch PNG. Optionally specify path, otherwise auto-names from input.'
    )
    parser.add_argument(
        '--verbose', '-v',
        action='store_true',
        help='Print stage summaries and timings'
    )
    add_option_arguments(parser)

    args = parser.parse_args(argv)
    image_path = Path(args.input)

    try:
        options = build_options(args)
        result = extract_colors_from_path(
            str(image_path),
            options,
            size=None if args.no_downscale else args.size,
            smooth_resize=not args.no_smooth_resize,
            verbose=args.verbose
        )
    except FileNotFoundError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except Exception as e:
        print(f"Error analyzing image: {e}", file=sys.stderr)
        return 1

    print(render(result))

    if args.output:
        if args.output is True:
            output_path = image_path.with_name(f"{image_path.stem}-palette.png")
        else:
            output_path = Path(args.output)

        try:
            render_swatches(result.colors, str(output_path))
            print(f"\nWrote: {output_path}")
        except OSError as e:
            print(f"Error writing output: {e}", file=sys.stderr)
            return 1

    return 0


if __name__ == '__main__':
    sys.exit(main())
