"""
Keypoint records consumed by the descriptor code.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Iterable, List, Sequence

import cv2
import numpy as np


@dataclass(frozen=True)
class Keypoint:
    """
    A detected interest point.

    Position is in base-octave image coordinates (x = column, y = row),
    `scale` is the support radius in pixels and `orientation` is in radians.
    """

    x: float
    y: float
    scale: float
    orientation: float = 0.0

    def is_finite(self) -> bool:
        return all(math.isfinite(v) for v in (self.x, self.y, self.scale, self.orientation))


def keypoints_from_cv2(keypoints: Iterable[cv2.KeyPoint]) -> List[Keypoint]:
    """
    Convert OpenCV keypoints into Keypoint records.

    Args:
        keypoints: Keypoints from any cv2 detector (SIFT, AKAZE, ORB, ...).

    Returns:
        List of Keypoint objects where:
        - scale is half of cv2's `size` (cv2 stores the diameter).
        - orientation is cv2's `angle` converted from degrees to radians;
          cv2's "not computed" value of -1 becomes 0.
    """
    out = []
    for kp in keypoints:
        x, y = kp.pt
        angle = 0.0 if kp.angle < 0 else math.radians(kp.angle)
        out.append(Keypoint(float(x), float(y), float(kp.size) / 2.0, angle))
    return out


def keypoints_to_array(keypoints: Sequence[Keypoint]) -> np.ndarray:
    """
    Stack keypoints into an (N, 4) float32 array of (x, y, scale, orientation).
    """
    if len(keypoints) == 0:
        return np.zeros((0, 4), dtype=np.float32)
    return np.array(
        [(kp.x, kp.y, kp.scale, kp.orientation) for kp in keypoints],
        dtype=np.float32,
    )


__all__ = ["Keypoint", "keypoints_from_cv2", "keypoints_to_array"]
