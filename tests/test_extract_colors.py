"""Tests for the end-to-end extraction pipeline and image loading."""

import math

import numpy as np
import pytest
from PIL import Image

from errors import InputShapeError
from extract_colors import (
    ExtractOptions,
    extract_colors,
    extract_colors_from_path,
    load_pixels,
)
from oklch import oklch_to_rgb, to_perceptual
from peak_colors import ResolveOptions

BLOCK_HUES = (0, 90, 180, 270)


def hue_blocks(size: int = 16) -> tuple[np.ndarray, list[int]]:
    """Four horizontal bands of equal lightness and chroma at well separated hues."""
    pixels = np.zeros((size, size, 4), dtype=np.uint8)
    pixels[..., 3] = 255
    band = size // len(BLOCK_HUES)
    buckets = []
    for i, hue in enumerate(BLOCK_HUES):
        rgb = oklch_to_rgb(np.array([0.7, 0.08, hue + 0.5]))[0]
        pixels[i * band:(i + 1) * band, :, :3] = rgb
        buckets.append(math.floor(to_perceptual(*rgb).hue) % 360)
    return pixels.reshape(-1), buckets


def peak_mode_options() -> ExtractOptions:
    return ExtractOptions(
        sigma=2,
        min_height_ratio=0.1,
        resolve=ResolveOptions(mode='peak', min_distance=10)
    )


def test_blocks_land_near_their_hues() -> None:
    _, buckets = hue_blocks()

    for hue, bucket in zip(BLOCK_HUES, buckets):
        diff = abs(bucket - hue) % 360
        assert min(diff, 360 - diff) <= 3


def test_histogram_has_one_bucket_per_block() -> None:
    pixels, buckets = hue_blocks()

    result = extract_colors(pixels, 16, 16, peak_mode_options())

    assert sorted(np.flatnonzero(result.histogram.weight).tolist()) == sorted(buckets)
    assert result.histogram.count.sum() == 256


def test_four_blocks_give_four_colors_at_their_buckets() -> None:
    pixels, buckets = hue_blocks()

    result = extract_colors(pixels, 16, 16, peak_mode_options())

    assert len(result.peaks) == 4
    assert sorted(p.index for p in result.peaks) == sorted(buckets)
    assert sorted(c.hue for c in result.colors) == sorted(buckets)
    for color in result.colors:
        assert color.lightness == pytest.approx(0.7, abs=0.01)
        assert color.chroma == pytest.approx(0.08, abs=0.01)
        assert color.css_color.startswith('oklch(')


def test_colors_are_sorted_by_weight() -> None:
    pixels, _ = hue_blocks()

    result = extract_colors(pixels, 16, 16)

    weights = [c.weight for c in result.colors]
    assert weights == sorted(weights, reverse=True)


def test_fully_transparent_image_has_no_colors() -> None:
    pixels = np.zeros(8 * 8 * 4, dtype=np.uint8)

    result = extract_colors(pixels, 8, 8)

    assert result.histogram.total == 0
    assert result.peaks == []
    assert result.colors == []


def test_gray_image_has_no_colors() -> None:
    pixels = np.full(6 * 6 * 4, 128, dtype=np.uint8)
    pixels[3::4] = 255

    assert extract_colors(pixels, 6, 6).colors == []


def test_buffer_mismatch_raises() -> None:
    with pytest.raises(InputShapeError):
        extract_colors(np.zeros(12, dtype=np.uint8), 4, 4)


def test_negative_sigma_disables_smoothing() -> None:
    pixels, _ = hue_blocks()

    options = ExtractOptions(sigma=-1)
    result = extract_colors(pixels, 16, 16, options)

    assert options.sigma == 0.0
    np.testing.assert_array_equal(result.smoothed.values, result.histogram.weight)


def test_verbose_prints_stage_summary(capsys: pytest.CaptureFixture) -> None:
    pixels, _ = hue_blocks()

    extract_colors(pixels, 16, 16, peak_mode_options(), verbose=True)

    out = capsys.readouterr().out
    assert "Image: 16x16" in out
    assert "Peaks: 4 | Colors: 4" in out
    assert "histogram" in out
    assert "resolve" in out


def test_quiet_by_default(capsys: pytest.CaptureFixture) -> None:
    pixels, _ = hue_blocks()

    extract_colors(pixels, 16, 16)

    assert capsys.readouterr().out == ""


def test_load_pixels_downsamples(tmp_path) -> None:
    path = tmp_path / "wide.png"
    Image.new('RGBA', (40, 20), (10, 200, 30, 255)).save(path)

    pixels, width, height = load_pixels(str(path), size=10)

    assert (width, height) == (10, 5)
    assert pixels.dtype == np.uint8
    assert pixels.size == 10 * 5 * 4


def test_load_pixels_full_resolution(tmp_path) -> None:
    path = tmp_path / "wide.png"
    Image.new('RGB', (40, 20), (10, 200, 30)).save(path)

    pixels, width, height = load_pixels(str(path), size=None)

    assert (width, height) == (40, 20)
    assert pixels.size == 40 * 20 * 4
    # RGB input gains an opaque alpha channel
    assert np.all(pixels[3::4] == 255)


def test_load_pixels_keeps_small_images(tmp_path) -> None:
    path = tmp_path / "small.png"
    Image.new('RGBA', (12, 8), (0, 0, 255, 255)).save(path)

    _, width, height = load_pixels(str(path), size=256)

    assert (width, height) == (12, 8)


def two_color_image(path) -> None:
    img = Image.new('RGBA', (40, 20), (255, 0, 0, 255))
    img.paste((0, 0, 255, 255), (20, 0, 40, 20))
    img.save(path)


def test_nearest_resize_keeps_hard_edges(tmp_path) -> None:
    path = tmp_path / "halves.png"
    two_color_image(path)

    pixels, width, height = load_pixels(str(path), size=10, smooth_resize=False)

    assert (width, height) == (10, 5)
    colors = np.unique(pixels.reshape(-1, 4), axis=0)
    assert colors.tolist() == [[0, 0, 255, 255], [255, 0, 0, 255]]


def test_smooth_resize_blends_edges(tmp_path) -> None:
    path = tmp_path / "halves.png"
    two_color_image(path)

    pixels, _, _ = load_pixels(str(path), size=10, smooth_resize=True)

    assert len(np.unique(pixels.reshape(-1, 4), axis=0)) > 2


@pytest.mark.parametrize("size", [0, -5])
def test_load_pixels_rejects_non_positive_size(tmp_path, size: int) -> None:
    path = tmp_path / "halves.png"
    two_color_image(path)

    with pytest.raises(ValueError):
        load_pixels(str(path), size=size)


def test_load_pixels_missing_file(tmp_path) -> None:
    with pytest.raises(FileNotFoundError):
        load_pixels(str(tmp_path / "missing.png"))


def test_load_pixels_not_an_image(tmp_path) -> None:
    path = tmp_path / "notes.png"
    path.write_text("not an image")

    with pytest.raises(ValueError):
        load_pixels(str(path))


def test_red_and_blue_image_end_to_end(tmp_path) -> None:
    img = Image.new('RGBA', (20, 10), (255, 0, 0, 255))
    img.paste((0, 0, 255, 255), (10, 0, 20, 10))
    path = tmp_path / "red_blue.png"
    img.save(path)

    red = to_perceptual(255, 0, 0)
    blue = to_perceptual(0, 0, 255)

    result = extract_colors_from_path(str(path), size=None)

    assert len(result.colors) == 2
    by_hue = sorted(result.colors, key=lambda c: c.hue)
    assert by_hue[0].hue == pytest.approx(math.floor(red.hue), abs=1e-6)
    assert by_hue[1].hue == pytest.approx(math.floor(blue.hue), abs=1e-6)
    assert by_hue[0].chroma == pytest.approx(red.chroma)
    assert by_hue[1].lightness == pytest.approx(blue.lightness)
