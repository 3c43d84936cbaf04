"""
Color calibration from a sampled image region.

This module provides the ColorCalibrator class, which derives the HSV
acceptance range of the tracked color from hue and saturation histograms
of a designated region of a frame.
"""

import logging
from typing import Optional, Tuple
import numpy as np
from numpy.typing import NDArray
import cv2

from .config import CalibrationRange, Rect
from .types import (
    Frame, HUE_MAX, SATURATION_MAX,
    DEFAULT_HISTOGRAM_THRESHOLD, DEFAULT_CALIBRATION_MARGIN,
)

logger = logging.getLogger(__name__)


class ColorCalibrator:
    """
    Derives a hue/saturation acceptance range from a sampled region.

    The range is found with a "threshold crossing plus margin" heuristic:
    for each channel the lowest and highest histogram bins whose pixel count
    reaches ``threshold`` are located, and the band is widened by ``margin``
    on both sides to tolerate lighting noise.
    """

    def __init__(self, threshold: int = DEFAULT_HISTOGRAM_THRESHOLD,
                 margin: int = DEFAULT_CALIBRATION_MARGIN,
                 initial_range: Optional[CalibrationRange] = None) -> None:
        """
        Initialize the calibrator.

        Args:
            threshold: Minimum count for a histogram bin to be considered part
                of the tracked color
            margin: Number of channel units added below the minimum and above
                the maximum
            initial_range: Range in effect before the first calibration

        Raises:
            ValueError: If threshold is not positive or margin is negative
        """
        if threshold <= 0:
            raise ValueError(f"Threshold must be positive, got {threshold}")
        if margin < 0:
            raise ValueError(f"Margin must be non-negative, got {margin}")

        self.threshold = threshold
        self.margin = margin
        self.current_range = initial_range if initial_range is not None else CalibrationRange.uncalibrated()

    def reset(self) -> None:
        """Forget the calibrated range."""
        self.current_range = CalibrationRange.uncalibrated()

    def calibrate(self, frame: Optional[Frame], region: Rect) -> CalibrationRange:
        """
        Sample ``region`` of ``frame`` and store the derived range.

        Args:
            frame: BGR frame, or None when no frame has been seen yet
            region: Sampling rectangle in frame coordinates

        Returns:
            CalibrationRange: The range now in effect. When the frame is
                missing or the region does not lie inside it, the previous
                range is returned unchanged.
        """
        if frame is None:
            logger.warning("Calibration requested before any frame was available")
            return self.current_range

        frame_height, frame_width = frame.shape[:2]
        if not region.fits_within(frame_width, frame_height):
            logger.warning(f"Calibration region {region} does not fit a "
                           f"{frame_width}x{frame_height} frame")
            return self.current_range

        patch = frame[region.y:region.y + region.height, region.x:region.x + region.width]
        hsv = cv2.cvtColor(patch, cv2.COLOR_BGR2HSV)

        hue_hist = self.channel_histogram(hsv, 0, HUE_MAX)
        sat_hist = self.channel_histogram(hsv, 1, SATURATION_MAX + 1)

        previous = self.current_range
        hue_min, hue_max = self._band(hue_hist, HUE_MAX,
                                      (previous.hue_min, previous.hue_max))
        sat_min, sat_max = self._band(sat_hist, SATURATION_MAX,
                                      (previous.saturation_min, previous.saturation_max))

        self.current_range = CalibrationRange(
            hue_min=hue_min,
            hue_max=hue_max,
            saturation_min=sat_min,
            saturation_max=sat_max,
            value_min=previous.value_min,
            value_max=previous.value_max,
        )
        logger.info(f"Calibrated color range: hue {hue_min}..{hue_max}, "
                    f"saturation {sat_min}..{sat_max}")
        return self.current_range

    @staticmethod
    def channel_histogram(hsv: NDArray[np.uint8], channel: int, bins: int) -> NDArray[np.float32]:
        """
        Count pixel occurrences per value of one HSV channel.

        Args:
            hsv: Image in HSV color space
            channel: Channel index (0 hue, 1 saturation)
            bins: Number of bins, one per channel value

        Returns:
            1D array of length ``bins`` with raw counts
        """
        hist = cv2.calcHist([hsv], [channel], None, [bins], [0, bins])
        return hist.flatten()

    def _band(self, hist: NDArray[np.float32], domain_max: int,
              previous: Tuple[int, int]) -> Tuple[int, int]:
        """Locate the widened band of bins meeting the threshold; keep ``previous`` if none do."""
        hits = np.flatnonzero(hist >= self.threshold)
        if hits.size == 0:
            logger.debug("No histogram bin reached the calibration threshold")
            return previous

        low = int(hits[0]) - self.margin
        high = int(hits[-1]) + self.margin
        return max(0, low), min(domain_max, high)
