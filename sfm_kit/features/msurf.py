"""
MSURF descriptor computation.

The descriptor summarises gradients on a rectangular 24s x 24s grid around
the keypoint, rotated by the keypoint orientation. The pattern follows
Agrawal et al., "CenSurE: Center Surround Extremas for Realtime Feature
Detection and Matching", ECCV 2008.
"""

from __future__ import annotations

import logging
import math
from typing import Sequence

import numpy as np

from sfm_kit.features.config import DEFAULT_MSURF_CONFIG, MSURFConfig
from sfm_kit.features.gradients import GradientField, as_gradient_field
from sfm_kit.features.keypoints import Keypoint
from sfm_kit.utils.logging_utils import get_logger, timed

logger = get_logger("msurf")


def gaussian(x, y, sigma: float):
    """
    Value of an unnormalized 2D isotropic Gaussian at (x, y).

    Args:
        x: X offset(s) from the center.
        y: Y offset(s) from the center.
        sigma: Standard deviation.
    """
    return np.exp(-((x * x) + (y * y)) / (2.0 * sigma * sigma))


def _round_half_away(value: float) -> int:
    return int(math.copysign(math.floor(abs(value) + 0.5), value))


def compute_msurf_descriptor(
    Lx: GradientField | np.ndarray,
    Ly: GradientField | np.ndarray,
    octave: int,
    keypoint: Keypoint,
    config: MSURFConfig | None = None,
    dtype=np.float32,
) -> np.ndarray:
    """
    Compute the MSURF descriptor of a keypoint at the given octave.

    Args:
        Lx: Horizontal derivative of the octave's smoothed image.
        Ly: Vertical derivative of the octave's smoothed image.
        octave: Octave index; keypoint coordinates and scale are divided by 2**octave.
        keypoint: Keypoint in base-octave coordinates.
        config: Sampling pattern, defaults to the standard 64-value pattern.
        dtype: Output float dtype.

    Returns:
        Descriptor (config.descriptor_length,), unit L2 norm, or all zeros
        when the patch has no gradient at all.

    Samples falling outside Lx/Ly are resolved by GradientField; no bounds
    checking happens here.
    """
    cfg = config or DEFAULT_MSURF_CONFIG
    Lx = as_gradient_field(Lx)
    Ly = as_gradient_field(Ly)
    if Lx.shape != Ly.shape:
        raise ValueError(f"Lx and Ly shapes differ: {Lx.shape} vs {Ly.shape}")
    if octave < 0:
        raise ValueError(f"Octave index must be non-negative, got {octave}")
    if not keypoint.is_finite():
        raise ValueError(f"Keypoint has non-finite fields: {keypoint}")

    ratio = float(1 << octave)
    scale = _round_half_away(keypoint.scale / ratio)
    if scale < 1:
        raise ValueError(
            f"Keypoint scale {keypoint.scale} rounds to {scale} at octave {octave}; "
            "the sampling pattern would collapse to a point"
        )
    angle = keypoint.orientation
    yf = keypoint.y / ratio
    xf = keypoint.x / ratio
    co = math.cos(angle)
    si = math.sin(angle)

    n = cfg.grid_size
    sigma_s1 = cfg.subregion_sigma_factor * scale
    lattice = np.arange(cfg.subregion_size, dtype=np.float64)
    grid_center = n / 2.0

    # (row, col, channel) with channels dx, dy, |dx|, |dy|
    desc = np.zeros((n, n, 4), dtype=np.float64)

    for row in range(n):
        i = -cfg.pattern_size + cfg.sample_step * row
        ky = i + cfg.sample_step
        k = (i + lattice)[:, None]
        for col in range(n):
            j = -cfg.pattern_size + cfg.sample_step * col
            kx = j + cfg.sample_step
            l = (j + lattice)[None, :]

            # Subregion center on the rotated axis
            xs = xf + (-kx * scale * si + ky * scale * co)
            ys = yf + (kx * scale * co + ky * scale * si)

            # Sample coordinates on the rotated axis
            sample_y = yf + (l * scale * co + k * scale * si)
            sample_x = xf + (-l * scale * si + k * scale * co)

            gauss_s1 = gaussian(xs - sample_x, ys - sample_y, sigma_s1)

            rx = Lx.sample(sample_y, sample_x)
            ry = Ly.sample(sample_y, sample_x)

            # Derivatives on the rotated axis
            rry = gauss_s1 * (rx * co + ry * si)
            rrx = gauss_s1 * (-rx * si + ry * co)

            cx = row + 0.5
            cy = col + 0.5
            gauss_s2 = gaussian(cx - grid_center, cy - grid_center, cfg.grid_sigma)

            desc[row, col, 0] = rrx.sum() * gauss_s2
            desc[row, col, 1] = rry.sum() * gauss_s2
            desc[row, col, 2] = np.abs(rrx).sum() * gauss_s2
            desc[row, col, 3] = np.abs(rry).sum() * gauss_s2

    vec = desc.reshape(-1)
    norm = float(np.linalg.norm(vec))
    if norm > 0.0 and math.isfinite(norm):
        vec = vec / norm
    else:
        logger.debug(f"Degenerate MSURF patch at ({keypoint.x:.1f}, {keypoint.y:.1f}); returning zeros")
        vec = np.zeros_like(vec)
    return vec.astype(dtype)


def quantize_descriptor(desc: np.ndarray) -> np.ndarray:
    """
    Map a unit-norm float descriptor onto uint8.

    Components lie in [-1, 1]; they are shifted and scaled onto [0, 255]
    and rounded to the nearest integer: q = rint((v + 1) * 127.5).
    """
    desc = np.asarray(desc, dtype=np.float64)
    return np.clip(np.rint((desc + 1.0) * 127.5), 0, 255).astype(np.uint8)


def dequantize_descriptor(desc: np.ndarray) -> np.ndarray:
    """Inverse of quantize_descriptor, accurate to half a quantization step."""
    return (np.asarray(desc, dtype=np.float32) / np.float32(127.5)) - np.float32(1.0)


def compute_msurf_descriptor_uint8(
    Lx: GradientField | np.ndarray,
    Ly: GradientField | np.ndarray,
    octave: int,
    keypoint: Keypoint,
    config: MSURFConfig | None = None,
) -> np.ndarray:
    """
    8-bit MSURF descriptor: the float descriptor passed through quantize_descriptor.
    """
    desc = compute_msurf_descriptor(Lx, Ly, octave, keypoint, config=config)
    return quantize_descriptor(desc)


def compute_msurf_descriptors(
    Lx: GradientField | np.ndarray,
    Ly: GradientField | np.ndarray,
    octave: int,
    keypoints: Sequence[Keypoint],
    config: MSURFConfig | None = None,
    quantize: bool = False,
) -> np.ndarray:
    """
    Describe all keypoints detected at one octave.

    Args:
        Lx, Ly: Gradient fields of the octave.
        octave: Octave index shared by all keypoints.
        keypoints: Keypoints in base-octave coordinates.
        config: Sampling pattern.
        quantize: If True, return uint8 descriptors.

    Returns:
        Array (N, D), float32 or uint8, rows aligned with `keypoints`.
    """
    cfg = config or DEFAULT_MSURF_CONFIG
    dtype = np.uint8 if quantize else np.float32
    if len(keypoints) == 0:
        return np.zeros((0, cfg.descriptor_length), dtype=dtype)

    Lx = as_gradient_field(Lx)
    Ly = as_gradient_field(Ly)
    out = np.empty((len(keypoints), cfg.descriptor_length), dtype=dtype)
    with timed(logger, f"MSURF: {len(keypoints)} keypoints at octave {octave}", level=logging.DEBUG):
        for idx, kp in enumerate(keypoints):
            if quantize:
                out[idx] = compute_msurf_descriptor_uint8(Lx, Ly, octave, kp, config=cfg)
            else:
                out[idx] = compute_msurf_descriptor(Lx, Ly, octave, kp, config=cfg)

    n_zero = int(np.sum(~np.any(out != (128 if quantize else 0), axis=1)))
    if n_zero > 0:
        logger.info(f"MSURF: {n_zero}/{len(keypoints)} keypoints had textureless patches")
    return out


__all__ = [
    "gaussian",
    "compute_msurf_descriptor",
    "compute_msurf_descriptor_uint8",
    "compute_msurf_descriptors",
    "quantize_descriptor",
    "dequantize_descriptor",
]
