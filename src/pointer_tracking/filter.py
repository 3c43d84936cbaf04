"""
Pointer detector filter.

This module provides the PointerDetectorFilter class, which wires the
calibrator, mask builder, localizer, zone registry, interaction tracker and
overlay renderer into a per-frame processing path, plus the configuration
operations a controlling caller uses while frames are flowing.

Two paths share the filter:

- the frame path, ``process_frame``, called once per frame in arrival order;
- the configuration path (calibration, zone edits, switches), which may be
  called from any other thread at any time.

Both hold the same re-entrant lock for the duration of each state change,
so a configuration change never lands half-way through a frame; it takes
effect from the next frame. Icon loading, the only blocking work, happens
on the configuration path before the lock is taken.
"""

import time
import logging
import threading
from typing import Any, Callable, Dict, List, Optional, Tuple
import numpy as np
import cv2

from .calibration import ColorCalibrator
from .config import CalibrationRange, PointerDetectorConfig, Rect, ZoneConfig
from .icons import IconLoader
from .interaction import ZoneEvent, ZoneInteractionTracker
from .localization import PointerLocalizer
from .masking import ColorMaskBuilder
from .overlay import DebugOverlayRenderer
from .types import Frame, Position
from .zones import Zone, ZoneRegistry

logger = logging.getLogger(__name__)

EventCallback = Callable[[ZoneEvent], None]


class PointerDetectorFilter:
    """
    Color pointer tracker with interactive zones.

    Example:
        >>> events = []
        >>> detector = PointerDetectorFilter(on_event=events.append)
        >>> detector.set_calibration_region(Rect(300, 220, 40, 40))
        >>> detector.add_zone(ZoneConfig('play', Rect(0, 0, 100, 100)))
        >>> detector.process_frame(frame)        # first frame seen
        >>> detector.calibrate_color()           # sample the region of that frame
        >>> for frame in frames:
        ...     detector.process_frame(frame)    # enter/leave events go to events
    """

    def __init__(self, config: Optional[PointerDetectorConfig] = None,
                 on_event: Optional[EventCallback] = None,
                 icon_loader: Optional[IconLoader] = None) -> None:
        """
        Initialize the filter.

        Args:
            config: Filter configuration. If None, uses the default configuration.
            on_event: Called with every emitted ZoneEvent
            icon_loader: Loader for zone icons. If None, the filter creates
                and owns one.

        Raises:
            ValueError: If the configuration is invalid
        """
        if config is None:
            config = PointerDetectorConfig.create_default()
        config.validate()

        self._lock = threading.RLock()
        self._on_event = on_event

        self.calibrator = ColorCalibrator(
            threshold=config.histogram_threshold,
            margin=config.calibration_margin,
            initial_range=config.calibration_range,
        )
        self.mask_builder = ColorMaskBuilder(
            close_kernel_size=config.close_kernel_size,
            open_kernel_size=config.open_kernel_size,
        )
        self.localizer = PointerLocalizer(min_area=config.min_pointer_area)
        self.registry = ZoneRegistry()
        self.tracker = ZoneInteractionTracker()
        self.renderer = DebugOverlayRenderer()

        self._owns_icon_loader = icon_loader is None
        self.icon_loader = icon_loader if icon_loader is not None else IconLoader(
            timeout=config.icon_fetch_timeout)

        self._calibration_region = config.calibration_region
        self.show_debug_info = config.show_debug_info
        self.show_zones_layout = config.show_zones_layout
        self.emit_events = config.emit_events

        # Private copy of the most recent frame, for calibration
        self._last_frame: Optional[Frame] = None
        self._frame_size: Optional[Tuple[int, int]] = None

        self._frames_processed = 0
        self._frames_with_pointer = 0
        self._events_emitted = 0
        self._last_process_ms = 0.0

        for zone_config in config.zones:
            self.add_zone(zone_config)

    def __enter__(self) -> 'PointerDetectorFilter':
        return self

    def __exit__(self, exc_type: Any, exc: Any, tb: Any) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Frame path
    # ------------------------------------------------------------------

    def process_frame(self, frame: Frame) -> List[ZoneEvent]:
        """
        Track the pointer in one frame.

        The frame is borrowed: overlays are drawn on it in place when
        enabled, and only a private copy is kept for later calibration.

        Args:
            frame: BGR frame of shape (H, W, 3), dtype uint8

        Returns:
            List[ZoneEvent]: Events emitted for this frame; always empty when
                event emission is switched off

        Raises:
            ValueError: If the frame is not a 3-channel image
        """
        if frame is None or frame.ndim != 3 or frame.shape[2] != 3:
            raise ValueError("Frame must be a 3-channel BGR image")

        with self._lock:
            started = time.perf_counter()
            self._remember_frame(frame)

            mask = self.mask_builder.build_mask(frame, self.calibrator.current_range)
            position = self.localizer.locate(mask)
            zones = self.registry.snapshot()
            events = self.tracker.update(position, zones)

            if self.show_zones_layout or self.show_debug_info:
                self._draw_overlay(frame, zones, position)

            self._frames_processed += 1
            if position is not None:
                self._frames_with_pointer += 1

            emitted = events if self.emit_events else []
            self._events_emitted += len(emitted)
            callback = self._on_event
            self._last_process_ms = (time.perf_counter() - started) * 1000.0

        if callback is not None:
            for event in emitted:
                self._deliver(callback, event)
        return emitted

    def _remember_frame(self, frame: Frame) -> None:
        height, width = frame.shape[:2]
        if self._frame_size is not None and self._frame_size != (width, height):
            logger.info(f"Frame size changed from {self._frame_size[0]}x{self._frame_size[1]} "
                        f"to {width}x{height}")
        self._frame_size = (width, height)

        if self._last_frame is not None and self._last_frame.shape == frame.shape:
            np.copyto(self._last_frame, frame)
        else:
            self._last_frame = frame.copy()

    def _draw_overlay(self, frame: Frame, zones: List[Zone], position: Optional[Position]) -> None:
        # Runs after the tracker update; errors here must not drop the frame's events
        try:
            self.renderer.render(
                frame, zones,
                current_zone_id=self.tracker.current_zone_id,
                calibration_region=self._calibration_region if self.show_debug_info else None,
                pointer=position if self.show_debug_info else None,
                draw_zones=self.show_zones_layout,
            )
        except cv2.error as e:
            logger.error(f"Error drawing overlay: {str(e)}")

    @staticmethod
    def _deliver(callback: EventCallback, event: ZoneEvent) -> None:
        try:
            callback(event)
        except Exception as e:
            logger.error(f"Event callback failed for {event.kind.value} '{event.zone_id}': {str(e)}")

    # ------------------------------------------------------------------
    # Calibration
    # ------------------------------------------------------------------

    def set_calibration_region(self, region: Rect) -> bool:
        """
        Replace the region sampled by calibrate_color.

        Returns:
            True if the region was accepted; a malformed or out-of-frame
            region is logged and ignored
        """
        with self._lock:
            if not self._rect_acceptable(region, "Calibration region"):
                return False
            self._calibration_region = region
        logger.info(f"Calibration region set to {region}")
        return True

    def calibrate_color(self) -> CalibrationRange:
        """
        Derive the tracked color from the calibration region of the last frame.

        Returns:
            CalibrationRange: The range in effect afterwards. Without a frame
                or a calibration region the range is left unchanged.
        """
        with self._lock:
            if self._last_frame is None:
                logger.warning("Cannot calibrate: no frame has been processed yet")
                return self.calibrator.current_range
            if self._calibration_region.is_empty():
                logger.warning("Cannot calibrate: no calibration region is set")
                return self.calibrator.current_range
            return self.calibrator.calibrate(self._last_frame, self._calibration_region)

    track_color_from_calibration_region = calibrate_color

    def set_calibration_range(self, calibration_range: CalibrationRange) -> bool:
        """Install a known color range directly, bypassing calibration."""
        try:
            calibration_range.validate()
        except ValueError as e:
            logger.warning(f"Rejected calibration range: {str(e)}")
            return False
        with self._lock:
            self.calibrator.current_range = calibration_range
        logger.info(f"Calibration range set to {calibration_range.to_dict()}")
        return True

    # ------------------------------------------------------------------
    # Zones
    # ------------------------------------------------------------------

    def add_zone(self, zone_config: ZoneConfig) -> bool:
        """
        Add a zone, or replace the zone with the same id.

        Icons are loaded before the zone is published, so frames keep
        flowing while a remote icon is fetched.

        Returns:
            True if the zone was added; an invalid description is logged
            and ignored
        """
        try:
            zone_config.validate()
        except ValueError as e:
            logger.warning(f"Rejected zone: {str(e)}")
            return False
        with self._lock:
            if not self._rect_acceptable(zone_config.rect, f"Zone '{zone_config.id}'"):
                return False

        zone = Zone.from_config(zone_config, self.icon_loader)

        with self._lock:
            replaced = zone.id in self.registry
            self.registry.add(zone)
        logger.info(f"{'Replaced' if replaced else 'Added'} zone '{zone.id}' at {zone.rect}")
        return True

    def remove_zone(self, zone_id: str) -> bool:
        """
        Remove a zone. Unknown ids are logged and otherwise ignored.

        Returns:
            True if a zone was removed
        """
        with self._lock:
            removed = self.registry.remove(zone_id)
        if removed:
            logger.info(f"Removed zone '{zone_id}'")
        else:
            logger.warning(f"Cannot remove unknown zone '{zone_id}'")
        return removed

    def clear_zones(self) -> None:
        with self._lock:
            self.registry.clear()
        logger.info("Cleared all zones")

    def zones(self) -> List[Zone]:
        with self._lock:
            return self.registry.snapshot()

    # ------------------------------------------------------------------
    # Switches
    # ------------------------------------------------------------------

    def set_show_debug_info(self, enabled: bool) -> None:
        with self._lock:
            self.show_debug_info = bool(enabled)

    def set_show_zones_layout(self, enabled: bool) -> None:
        with self._lock:
            self.show_zones_layout = bool(enabled)

    def set_emit_events(self, enabled: bool) -> None:
        with self._lock:
            self.emit_events = bool(enabled)

    def set_event_callback(self, on_event: Optional[EventCallback]) -> None:
        with self._lock:
            self._on_event = on_event

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    @property
    def calibration_range(self) -> CalibrationRange:
        with self._lock:
            return self.calibrator.current_range

    @property
    def calibration_region(self) -> Rect:
        with self._lock:
            return self._calibration_region

    @property
    def current_zone_id(self) -> Optional[str]:
        with self._lock:
            return self.tracker.current_zone_id

    @property
    def last_position(self) -> Optional[Position]:
        with self._lock:
            return self.tracker.last_position

    def get_stats(self) -> Dict[str, Any]:
        """
        Get processing statistics.

        Returns:
            dict: frames processed, frames with a located pointer, events
                emitted, duration of the last process_frame call in ms and
                the current frame size (or None before the first frame)
        """
        with self._lock:
            return {
                'frames_processed': self._frames_processed,
                'frames_with_pointer': self._frames_with_pointer,
                'events_emitted': self._events_emitted,
                'last_process_ms': self._last_process_ms,
                'frame_size': self._frame_size,
                'zones': len(self.registry),
                'calibrated': self.calibrator.current_range.is_calibrated,
            }

    def close(self) -> None:
        """Release zones, icons and the icon scratch directory."""
        with self._lock:
            self.registry.clear()
            self.tracker.reset()
            self._last_frame = None
        if self._owns_icon_loader:
            self.icon_loader.close()

    def _rect_acceptable(self, rect: Rect, what: str) -> bool:
        if not rect.is_valid():
            logger.warning(f"{what} is malformed: {rect}")
            return False
        if self._frame_size is not None and not rect.fits_within(*self._frame_size):
            logger.warning(f"{what} {rect} lies outside the "
                           f"{self._frame_size[0]}x{self._frame_size[1]} frame")
            return False
        return True
