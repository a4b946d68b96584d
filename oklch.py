#!/usr/bin/env python3
"""
Color space conversions between sRGB, OKLCH and CIE L*a*b*.

OKLCH (lightness, chroma, hue) is the working space for the hue histogram.
CIE L*a*b* is only used to measure CIEDE2000 distances when merging colors.
"""

import math
from dataclasses import dataclass

import numpy as np


# =============================================================================
# Constants
# =============================================================================

# Linear sRGB -> LMS
M1 = np.array([
    [0.4122214708, 0.5363325363, 0.0514459929],
    [0.2119034982, 0.6806995451, 0.1073969566],
    [0.0883024619, 0.2817188376, 0.6299787005],
])

# LMS' (cube root) -> OKLab
M2 = np.array([
    [0.2104542553, 0.7936177850, -0.0040720468],
    [1.9779984951, -2.4285922050, 0.4505937099],
    [0.0259040371, 0.7827717662, -0.8086757660],
])

# OKLab -> LMS'
M2_INV = np.array([
    [1.0, 0.3963377774, 0.2158037573],
    [1.0, -0.1055613458, -0.0638541728],
    [1.0, -0.0894841775, -1.2914855480],
])

# LMS -> linear sRGB
M1_INV = np.array([
    [4.0767416621, -3.3077115913, 0.2309699292],
    [-1.2684380046, 2.6097574011, -0.3413193965],
    [-0.0041960863, -0.7034186147, 1.7076147010],
])

# Linear sRGB -> XYZ (D65)
RGB_TO_XYZ = np.array([
    [0.4124564, 0.3575761, 0.1804375],
    [0.2126729, 0.7151522, 0.0721750],
    [0.0193339, 0.1191920, 0.9503041],
])

D65_WHITE = np.array([0.95047, 1.0, 1.08883])
LAB_EPSILON = 0.008856
LAB_KAPPA = 903.3


@dataclass(frozen=True)
class PerceptualColor:
    """A color in OKLCH: lightness 0-1, chroma 0-~0.4, hue 0-360 degrees."""
    lightness: float
    chroma: float
    hue: float


# =============================================================================
# sRGB transfer functions
# =============================================================================

def srgb_to_linear(srgb: np.ndarray) -> np.ndarray:
    """Inverse sRGB gamma for values in [0, 1]."""
    srgb = np.asarray(srgb, dtype=np.float64)
    mask = srgb > 0.04045
    return np.where(mask, ((np.clip(srgb, 0, None) + 0.055) / 1.055) ** 2.4, srgb / 12.92)


def linear_to_srgb(linear: np.ndarray) -> np.ndarray:
    """Forward sRGB gamma for values in [0, 1]."""
    linear = np.asarray(linear, dtype=np.float64)
    mask = linear > 0.0031308
    return np.where(mask, 1.055 * np.power(np.clip(linear, 0, None), 1/2.4) - 0.055, 12.92 * linear)


# =============================================================================
# sRGB <-> OKLCH
# =============================================================================

def rgb_to_oklch(rgb: np.ndarray) -> np.ndarray:
    """Convert RGB array (0-255) of shape (n, 3) to OKLCH columns [L, C, H]."""
    rgb_norm = np.asarray(rgb, dtype=np.float64).reshape(-1, 3) / 255.0
    rgb_linear = srgb_to_linear(rgb_norm)

    lms = rgb_linear @ M1.T
    lms_ = np.cbrt(lms)
    lab = lms_ @ M2.T

    L, a, b = lab[:, 0], lab[:, 1], lab[:, 2]
    C = np.sqrt(a * a + b * b)
    H = np.degrees(np.arctan2(b, a)) % 360
    # -0.0 and tiny negative angles wrap to exactly 360.0
    H = np.where(H >= 360, H - 360, H)

    return np.column_stack([L, C, H])


def to_perceptual(r: int, g: int, b: int) -> PerceptualColor:
    """Convert a single 8-bit RGB triple to OKLCH."""
    L, C, H = rgb_to_oklch(np.array([[r, g, b]]))[0]
    return PerceptualColor(lightness=float(L), chroma=float(C), hue=float(H))


def oklch_to_linear_rgb(lch: np.ndarray) -> np.ndarray:
    """Convert OKLCH array of shape (n, 3) to unclamped linear sRGB."""
    lch = np.asarray(lch, dtype=np.float64).reshape(-1, 3)
    L = lch[:, 0]
    C = np.clip(lch[:, 1], 0, None)
    h = np.radians(lch[:, 2])

    lab = np.column_stack([L, C * np.cos(h), C * np.sin(h)])
    lms_ = lab @ M2_INV.T
    lms = lms_ ** 3

    return lms @ M1_INV.T


def oklch_to_srgb(lch: np.ndarray) -> np.ndarray:
    """Convert OKLCH to gamma-encoded sRGB in [0, 1], clipping out-of-gamut values."""
    rgb_linear = np.clip(oklch_to_linear_rgb(lch), 0, 1)
    return np.clip(linear_to_srgb(rgb_linear), 0, 1)


def oklch_to_rgb(lch: np.ndarray) -> np.ndarray:
    """Convert OKLCH to RGB (0-255)."""
    return np.round(oklch_to_srgb(lch) * 255).astype(np.uint8)


def oklch_to_hex(lightness: float, chroma: float, hue: float) -> str:
    """Convert OKLCH to hex string."""
    r, g, b = oklch_to_rgb(np.array([lightness, chroma, hue]))[0]
    return f"#{r:02x}{g:02x}{b:02x}"


# =============================================================================
# OKLCH -> CIE L*a*b*
# =============================================================================

def srgb_to_lab(srgb: np.ndarray) -> np.ndarray:
    """Convert gamma-encoded sRGB (0-1) of shape (n, 3) to LAB (D65)."""
    rgb_linear = srgb_to_linear(np.asarray(srgb, dtype=np.float64).reshape(-1, 3))

    xyz = rgb_linear @ RGB_TO_XYZ.T
    x, y, z = (xyz / D65_WHITE).T

    fx = np.where(x > LAB_EPSILON, np.cbrt(x), (LAB_KAPPA * x + 16) / 116)
    fy = np.where(y > LAB_EPSILON, np.cbrt(y), (LAB_KAPPA * y + 16) / 116)
    fz = np.where(z > LAB_EPSILON, np.cbrt(z), (LAB_KAPPA * z + 16) / 116)

    L = 116 * fy - 16
    a = 500 * (fx - fy)
    b_val = 200 * (fy - fz)

    return np.column_stack([L, a, b_val])


def to_standard_lab(lightness: float, chroma: float, hue: float) -> tuple[float, float, float]:
    """Convert one OKLCH color to CIE L*a*b* via clamped sRGB and XYZ."""
    srgb = oklch_to_srgb(np.array([lightness, chroma, hue]))
    L, a, b = srgb_to_lab(srgb)[0]
    return float(L), float(a), float(b)


# =============================================================================
# CIEDE2000
# =============================================================================

def delta_e_2000(lab1: tuple, lab2: tuple) -> float:
    """
    CIEDE2000 color difference between two LAB colors (kL = kC = kH = 1).

    Reference: https://en.wikipedia.org/wiki/Color_difference#CIEDE2000
    """
    L1, a1, b1 = lab1
    L2, a2, b2 = lab2

    C1 = math.sqrt(a1 * a1 + b1 * b1)
    C2 = math.sqrt(a2 * a2 + b2 * b2)
    C_avg = (C1 + C2) / 2

    G = 0.5 * (1 - math.sqrt(C_avg**7 / (C_avg**7 + 25**7)))

    a1p = a1 * (1 + G)
    a2p = a2 * (1 + G)

    C1p = math.sqrt(a1p * a1p + b1 * b1)
    C2p = math.sqrt(a2p * a2p + b2 * b2)

    h1p = math.degrees(math.atan2(b1, a1p)) % 360
    h2p = math.degrees(math.atan2(b2, a2p)) % 360

    dLp = L2 - L1
    dCp = C2p - C1p

    # Hue is undefined for achromatic colors
    if C1p * C2p == 0:
        dhp = 0.0
    else:
        dhp = h2p - h1p
        if dhp > 180:
            dhp -= 360
        elif dhp < -180:
            dhp += 360

    dHp = 2 * math.sqrt(C1p * C2p) * math.sin(math.radians(dhp / 2))

    Lp = (L1 + L2) / 2
    Cp = (C1p + C2p) / 2

    if C1p * C2p == 0:
        hp = h1p + h2p
    elif abs(h1p - h2p) <= 180:
        hp = (h1p + h2p) / 2
    elif h1p + h2p < 360:
        hp = (h1p + h2p + 360) / 2
    else:
        hp = (h1p + h2p - 360) / 2

    T = (1
         - 0.17 * math.cos(math.radians(hp - 30))
         + 0.24 * math.cos(math.radians(2 * hp))
         + 0.32 * math.cos(math.radians(3 * hp + 6))
         - 0.20 * math.cos(math.radians(4 * hp - 63)))

    d_theta = 30 * math.exp(-((hp - 275) / 25) ** 2)
    RC = 2 * math.sqrt(Cp**7 / (Cp**7 + 25**7))

    SL = 1 + (0.015 * (Lp - 50) ** 2) / math.sqrt(20 + (Lp - 50) ** 2)
    SC = 1 + 0.045 * Cp
    SH = 1 + 0.015 * Cp * T
    RT = -math.sin(math.radians(2 * d_theta)) * RC

    kL = kC = kH = 1.0
    dL_term = dLp / (kL * SL)
    dC_term = dCp / (kC * SC)
    dH_term = dHp / (kH * SH)

    return math.sqrt(max(0.0, dL_term**2 + dC_term**2 + dH_term**2 + RT * dC_term * dH_term))


def perceptual_distance(c1, c2) -> float:
    """CIEDE2000 distance between two OKLCH colors (anything with lightness/chroma/hue)."""
    lab1 = to_standard_lab(c1.lightness, c1.chroma, c1.hue)
    lab2 = to_standard_lab(c2.lightness, c2.chroma, c2.hue)
    return delta_e_2000(lab1, lab2)
