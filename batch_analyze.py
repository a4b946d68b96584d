#!/usr/bin/env python3
"""
Batch analyze a directory of images.

Writes one prose report per image ({stem}-palette.txt), optionally a swatch
PNG per image, and a palettes.tsv index with one row of CSS colors per image.
"""

import argparse
import sys
import time
from pathlib import Path

from analyze import add_option_arguments, build_options, render, render_swatches
from extract_colors import ExtractionResult, ExtractOptions, extract_colors_from_path


IMAGE_EXTENSIONS = ('.jpg', '.jpeg', '.png', '.webp')
INDEX_FILENAME = 'palettes.tsv'


def find_images(directory: Path) -> list[Path]:
    """Image files directly inside directory, sorted by name."""
    return sorted(p for p in directory.iterdir()
                  if p.is_file() and p.suffix.lower() in IMAGE_EXTENSIONS)


def process_image(image_path: Path, output_dir: Path, options: ExtractOptions,
                  size: int = None, swatches: bool = False,
                  smooth_resize: bool = True) -> ExtractionResult:
    result = extract_colors_from_path(str(image_path), options, size=size,
                                      smooth_resize=smooth_resize)

    report_path = output_dir / f"{image_path.stem}-palette.txt"
    if report_path.exists():
        print(f"  Warning: Overwriting {report_path.name}", file=sys.stderr)
    report_path.write_text(render(result))

    if swatches:
        render_swatches(result.colors, str(output_dir / f"{image_path.stem}-palette.png"))

    return result


def write_index(rows: list, output_path: Path) -> None:
    """Write image name and its CSS colors, tab separated, one image per line."""
    lines = ["\t".join([name] + [c.css_color for c in colors]) for name, colors in rows]
    output_path.write_text("\n".join(lines) + "\n" if lines else "")


def main(argv: list = None) -> int:
    parser = argparse.ArgumentParser(
        description='Batch analyze images and write color reports.'
    )
    parser.add_argument('--input', '-i', required=True,
                        help='Directory containing images to analyze')
    parser.add_argument('--output', '-o', required=True,
                        help='Directory for report files')
    parser.add_argument('--swatches', action='store_true',
                        help='Also write a swatch PNG per image')
    add_option_arguments(parser)

    args = parser.parse_args(argv)
    input_dir = Path(args.input)
    output_dir = Path(args.output)

    if not input_dir.is_dir():
        print(f"Error: Input directory not found: {input_dir}", file=sys.stderr)
        return 2

    try:
        options = build_options(args)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2

    images = find_images(input_dir)
    if not images:
        print(f"No images found in {input_dir}", file=sys.stderr)
        return 2

    output_dir.mkdir(parents=True, exist_ok=True)
    size = None if args.no_downscale else args.size

    rows = []
    failed = []
    batch_start = time.perf_counter()

    for i, image_path in enumerate(images, 1):
        img_start = time.perf_counter()
        try:
            result = process_image(image_path, output_dir, options, size, args.swatches,
                                   smooth_resize=not args.no_smooth_resize)
        except Exception as e:
            error_msg = f"{type(e).__name__}: {e}"
            print(f"[{i}/{len(images)}] {image_path.name} → ERROR: {error_msg}", file=sys.stderr)
            failed.append((image_path.name, error_msg))
            continue

        rows.append((image_path.name, result.colors))
        print(f"[{i}/{len(images)}] {image_path.name} → {len(result.colors)} colors "
              f"({time.perf_counter() - img_start:.2f}s)")

    write_index(rows, output_dir / INDEX_FILENAME)
    batch_elapsed = time.perf_counter() - batch_start

    print()
    print(f"Completed: {len(rows)}/{len(images)} in {batch_elapsed:.2f}s, index: {INDEX_FILENAME}")
    if rows:
        print(f"Average: {batch_elapsed / len(rows):.2f}s per image")

    if failed:
        print(f"Failed ({len(failed)}):")
        for name, error in failed:
            print(f"  - {name}: {error}")
        return 1

    return 0


if __name__ == '__main__':
    sys.exit(main())
