"""
Binary mask construction for the tracked color.

The ColorMaskBuilder thresholds a frame in HSV space against a
CalibrationRange and cleans the result with morphological operations so
that the pointer shows up as a single solid blob.
"""

import logging
import numpy as np
import cv2

from .config import CalibrationRange
from .types import Frame, Mask, DEFAULT_CLOSE_KERNEL_SIZE, DEFAULT_OPEN_KERNEL_SIZE

logger = logging.getLogger(__name__)


class ColorMaskBuilder:
    """
    Converts frames into denoised binary masks of the tracked color.

    A large closing merges nearby fragments of the pointer into one blob,
    then a smaller opening strips isolated speckles. Closing always runs
    first.
    """

    def __init__(self, close_kernel_size: int = DEFAULT_CLOSE_KERNEL_SIZE,
                 open_kernel_size: int = DEFAULT_OPEN_KERNEL_SIZE) -> None:
        """
        Initialize the mask builder.

        Args:
            close_kernel_size: Side of the square closing element
            open_kernel_size: Side of the square opening element

        Raises:
            ValueError: If a kernel size is not positive
        """
        if close_kernel_size <= 0 or open_kernel_size <= 0:
            raise ValueError(f"Kernel sizes must be positive, got "
                             f"{close_kernel_size} and {open_kernel_size}")

        self.close_kernel = cv2.getStructuringElement(
            cv2.MORPH_RECT, (close_kernel_size, close_kernel_size))
        self.open_kernel = cv2.getStructuringElement(
            cv2.MORPH_RECT, (open_kernel_size, open_kernel_size))

    def threshold(self, frame: Frame, calibration_range: CalibrationRange) -> Mask:
        """Raw in-range mask before denoising."""
        if not calibration_range.is_calibrated:
            return np.zeros(frame.shape[:2], dtype=np.uint8)

        hsv = cv2.cvtColor(frame, cv2.COLOR_BGR2HSV)
        lower = np.array([calibration_range.hue_min,
                          calibration_range.saturation_min,
                          calibration_range.value_min], dtype=np.uint8)
        upper = np.array([calibration_range.hue_max,
                          calibration_range.saturation_max,
                          calibration_range.value_max], dtype=np.uint8)
        return cv2.inRange(hsv, lower, upper)

    def build_mask(self, frame: Frame, calibration_range: CalibrationRange) -> Mask:
        """
        Build the denoised mask of pixels inside ``calibration_range``.

        Args:
            frame: BGR frame of shape (H, W, 3)
            calibration_range: Accepted hue/saturation/value bounds

        Returns:
            Mask: uint8 array of shape (H, W) with 255 for accepted pixels.
                An uncalibrated range always yields an all-zero mask.
        """
        mask = self.threshold(frame, calibration_range)
        if not calibration_range.is_calibrated:
            return mask

        mask = cv2.morphologyEx(mask, cv2.MORPH_CLOSE, self.close_kernel)
        mask = cv2.morphologyEx(mask, cv2.MORPH_OPEN, self.open_kernel)
        return mask
