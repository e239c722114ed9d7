"""
Gradient fields and the bilinear sampler used by the MSURF descriptor.
"""

from __future__ import annotations

from typing import Tuple

import cv2
import numpy as np

# Below this summed tap weight a border sample is considered unstable.
MIN_TAP_WEIGHT = 0.2


class GradientField:
    """
    A 2D scalar field (one image derivative at one octave) with sub-pixel lookup.

    Sampling is bilinear on (row, col). Near the border, taps that fall
    outside the array are dropped and the remaining ones renormalized by
    their summed weight; when that weight is <= MIN_TAP_WEIGHT the sample
    is 0. Fully outside the array every sample is therefore 0.
    """

    def __init__(self, data: np.ndarray) -> None:
        data = np.asarray(data)
        if data.ndim != 2:
            raise ValueError(f"Gradient field must be 2D, got shape {data.shape}")
        self.data = data.astype(np.float64, copy=False)

    @property
    def shape(self) -> Tuple[int, int]:
        return self.data.shape

    def sample(self, rows, cols):
        """
        Bilinear lookup at floating point (rows, cols).

        Args:
            rows: Row coordinate(s), scalar or array.
            cols: Column coordinate(s), broadcastable with rows.

        Returns:
            float for scalar input, otherwise an array of the broadcast shape.
        """
        rows = np.asarray(rows, dtype=np.float64)
        cols = np.asarray(cols, dtype=np.float64)
        scalar = rows.ndim == 0 and cols.ndim == 0
        rows, cols = np.broadcast_arrays(rows, cols)

        h, w = self.data.shape
        r0 = np.floor(rows)
        c0 = np.floor(cols)
        fr = rows - r0
        fc = cols - c0
        r0 = r0.astype(np.int64)
        c0 = c0.astype(np.int64)

        res = np.zeros(rows.shape, dtype=np.float64)
        total = np.zeros(rows.shape, dtype=np.float64)
        for dr, wr in ((0, 1.0 - fr), (1, fr)):
            ri = r0 + dr
            in_r = (ri >= 0) & (ri < h)
            for dc, wc in ((0, 1.0 - fc), (1, fc)):
                ci = c0 + dc
                valid = in_r & (ci >= 0) & (ci < w)
                weight = np.where(valid, wr * wc, 0.0)
                pix = self.data[np.clip(ri, 0, h - 1), np.clip(ci, 0, w - 1)]
                res += weight * pix
                total += weight

        stable = total > MIN_TAP_WEIGHT
        out = np.where(stable, res / np.where(stable, total, 1.0), 0.0)
        if scalar:
            return float(out)
        return out

    def __call__(self, rows, cols):
        return self.sample(rows, cols)


def as_gradient_field(field) -> GradientField:
    if isinstance(field, GradientField):
        return field
    return GradientField(field)


def compute_gradient_fields(
    image: np.ndarray,
    sigma: float | None = None,
) -> Tuple[GradientField, GradientField]:
    """
    Compute the horizontal and vertical first derivatives of an image.

    This works on a single already-chosen image level; building the
    octave pyramid is up to the caller.

    Args:
        image: Input image (H, W) or (H, W, 3) RGB, any numeric dtype.
        sigma: Optional Gaussian smoothing applied before differentiation.

    Returns:
        Tuple of (Lx, Ly) gradient fields. Scharr responses are scaled by
        1/32 so that a unit intensity ramp gives a unit derivative.
    """
    image = np.asarray(image)
    if image.ndim == 3 and image.shape[2] == 3:
        # cvtColor has no float64 path
        gray = cv2.cvtColor(image.astype(np.float32), cv2.COLOR_RGB2GRAY)
    elif image.ndim == 2:
        gray = image.astype(np.float32)
    else:
        raise ValueError(f"Expected (H, W) or (H, W, 3) image, got shape {image.shape}")

    if sigma is not None and sigma > 0:
        gray = cv2.GaussianBlur(gray, (0, 0), sigmaX=sigma, sigmaY=sigma)

    Lx = cv2.Scharr(gray, cv2.CV_32F, 1, 0, scale=1.0 / 32.0)
    Ly = cv2.Scharr(gray, cv2.CV_32F, 0, 1, scale=1.0 / 32.0)
    return GradientField(Lx), GradientField(Ly)


__all__ = ["GradientField", "as_gradient_field", "compute_gradient_fields", "MIN_TAP_WEIGHT"]
