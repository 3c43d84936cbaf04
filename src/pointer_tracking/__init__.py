"""
Pointer Tracking Package

This package tracks a single colored pointer (a glove, a marker, a ball) in a
video stream and reports when it enters or leaves rectangular interactive
zones laid over the image.

Key Features:
- Interactive calibration: sample a region of the image to learn the color
- HSV thresholding with morphological denoising
- Largest-blob centroid localization
- Zone registry with optional icons and blend weights
- Debounced, edge-triggered enter/leave events
- Optional debug overlay of zones, calibration region and pointer

Processing Overview:
For every frame the filter
1. Converts the frame to HSV and keeps pixels inside the calibrated range
2. Closes then opens the mask to get one clean blob
3. Takes the centroid of the largest blob as the pointer position
4. Matches the position against the zones in registry order
5. Emits enter/leave events on zone changes only
6. Optionally draws the zone layout over the frame

Quick Start:
    >>> from pointer_tracking import PointerDetectorFilter, Rect, ZoneConfig
    >>>
    >>> detector = PointerDetectorFilter(on_event=print)
    >>> detector.set_calibration_region(Rect(300, 220, 40, 40))
    >>> detector.add_zone(ZoneConfig('next', Rect(540, 0, 100, 100)))
    >>>
    >>> detector.process_frame(first_frame)
    >>> detector.calibrate_color()
    >>> for frame in video_frames:
    ...     detector.process_frame(frame)

Classes:
    PointerDetectorFilter: Per-frame tracker and configuration entry point
    PointerDetectorConfig: Configuration with defaults and validation
    ColorCalibrator, ColorMaskBuilder, PointerLocalizer: Image processing stages
    ZoneRegistry, ZoneInteractionTracker, DebugOverlayRenderer: Zone handling
"""

from .config import Rect, CalibrationRange, ZoneConfig, PointerDetectorConfig
from .calibration import ColorCalibrator
from .masking import ColorMaskBuilder
from .localization import PointerLocalizer
from .icons import IconLoader
from .zones import Zone, ZoneRegistry
from .interaction import ZoneEvent, ZoneEventKind, PointerState, ZoneInteractionTracker
from .overlay import DebugOverlayRenderer
from .filter import PointerDetectorFilter

__version__ = "0.1.0"
__all__ = [
    'Rect',
    'CalibrationRange',
    'ZoneConfig',
    'PointerDetectorConfig',
    'ColorCalibrator',
    'ColorMaskBuilder',
    'PointerLocalizer',
    'IconLoader',
    'Zone',
    'ZoneRegistry',
    'ZoneEvent',
    'ZoneEventKind',
    'PointerState',
    'ZoneInteractionTracker',
    'DebugOverlayRenderer',
    'PointerDetectorFilter',
]
