"""
Type definitions and common constants for the pointer tracker.

This module defines the type aliases and channel constants shared by the
calibration, masking, localization and zone modules.
"""

from typing import Tuple
import numpy as np
from numpy.typing import NDArray

# Type aliases for common data structures
Frame = NDArray[np.uint8]   # Type for image frames (H, W, 3) in BGR format
Mask = NDArray[np.uint8]    # Type for binary masks (H, W), values 0 or 255
Icon = NDArray[np.uint8]    # Type for icons already scaled to a zone (h, w, 3) BGR
Position = Tuple[int, int]  # Type for (x, y) pixel positions
Size = Tuple[int, int]      # Type for (width, height) dimensions

# OpenCV HSV channel domains for 8-bit images
HUE_MAX = 180
SATURATION_MAX = 255
VALUE_MAX = 255

# Calibration defaults
DEFAULT_HISTOGRAM_THRESHOLD = 20  # Minimum pixel count for a histogram bin to count
DEFAULT_CALIBRATION_MARGIN = 5    # Widening applied on each side of the detected band

# Morphology defaults (structuring element side, in pixels)
DEFAULT_CLOSE_KERNEL_SIZE = 21
DEFAULT_OPEN_KERNEL_SIZE = 11

# Default value-channel bounds; the full range disables value gating
V_MIN = 0
V_MAX = VALUE_MAX

# Icon sources resolved as URIs rather than local paths
URI_SCHEMES = ('http://', 'https://', 'file://')
