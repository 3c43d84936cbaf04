"""
Pointer localization from a binary mask.
"""

from typing import Optional
import numpy as np
import cv2

from .types import Mask, Position


class PointerLocalizer:
    """
    Reduces a mask to a single pointer position.

    The position is the centroid of the largest 8-connected foreground
    component. Equal-area components are resolved by the top, then left,
    edge of their bounding boxes, so the result is deterministic.
    """

    def __init__(self, min_area: int = 1) -> None:
        if min_area <= 0:
            raise ValueError(f"Minimum area must be positive, got {min_area}")
        self.min_area = min_area

    def locate(self, mask: Mask) -> Optional[Position]:
        """
        Find the pointer in ``mask``.

        Args:
            mask: uint8 mask where non-zero pixels are foreground

        Returns:
            (x, y) of the largest component's centroid, or None when the mask
            has no component of at least ``min_area`` pixels
        """
        if mask is None or mask.size == 0 or not np.any(mask):
            return None

        num_labels, _, stats, centroids = cv2.connectedComponentsWithStats(
            (mask > 0).astype(np.uint8), connectivity=8)
        if num_labels <= 1:
            return None

        # Label 0 is the background
        best = min(range(1, num_labels),
                   key=lambda label: (-int(stats[label, cv2.CC_STAT_AREA]),
                                      int(stats[label, cv2.CC_STAT_TOP]),
                                      int(stats[label, cv2.CC_STAT_LEFT])))
        if stats[best, cv2.CC_STAT_AREA] < self.min_area:
            return None

        cx, cy = centroids[best]
        return int(round(cx)), int(round(cy))
