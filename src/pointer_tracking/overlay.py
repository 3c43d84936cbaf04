"""
Diagnostic drawing of zones, calibration region and pointer.
"""

from typing import Optional, Sequence, Tuple
import cv2

from .config import Rect
from .types import Frame, Icon, Position
from .zones import Zone

Color = Tuple[int, int, int]


class DebugOverlayRenderer:
    """
    Draws the zone layout and calibration aids onto frames.

    Rendering reads zones and state but never modifies them; the only side
    effect is on the frame passed in.
    """

    def __init__(self,
                 zone_color: Color = (255, 255, 0),
                 active_zone_color: Color = (0, 255, 0),
                 calibration_color: Color = (0, 0, 255),
                 pointer_color: Color = (255, 0, 255),
                 thickness: int = 2) -> None:
        self.zone_color = zone_color
        self.active_zone_color = active_zone_color
        self.calibration_color = calibration_color
        self.pointer_color = pointer_color
        self.thickness = thickness

    def render(self, frame: Frame, zones: Sequence[Zone],
               current_zone_id: Optional[str] = None,
               calibration_region: Optional[Rect] = None,
               pointer: Optional[Position] = None,
               draw_zones: bool = True) -> Frame:
        """
        Draw the overlay in place.

        Args:
            frame: BGR frame to draw on
            zones: Zones in registry order
            current_zone_id: Zone the pointer is in; its active icon is used
            calibration_region: Outlined when given (debug mode)
            pointer: Marked when given (debug mode)
            draw_zones: Whether to draw the zone layout at all

        Returns:
            The same frame, for chaining
        """
        if draw_zones:
            for zone in zones:
                self.draw_zone(frame, zone, zone.id == current_zone_id)

        if calibration_region is not None and not calibration_region.is_empty():
            cv2.rectangle(frame,
                          (calibration_region.x, calibration_region.y),
                          (calibration_region.x + calibration_region.width - 1,
                           calibration_region.y + calibration_region.height - 1),
                          self.calibration_color, self.thickness)

        if pointer is not None:
            cv2.circle(frame, pointer, 5, self.pointer_color, -1)

        return frame

    def draw_zone(self, frame: Frame, zone: Zone, active: bool) -> None:
        icon = zone.active_icon if active else zone.inactive_icon
        if icon is not None:
            self.blend_icon(frame, icon, zone.rect, zone.blend_weight)

        color = self.active_zone_color if active else self.zone_color
        rect = zone.rect
        cv2.rectangle(frame, (rect.x, rect.y),
                      (rect.x + rect.width - 1, rect.y + rect.height - 1),
                      color, self.thickness)

    @staticmethod
    def blend_icon(frame: Frame, icon: Icon, rect: Rect, weight: float) -> None:
        """Composite ``icon`` over ``rect`` with opacity ``weight``, clipped to the frame."""
        if weight <= 0.0:
            return

        frame_height, frame_width = frame.shape[:2]
        visible = rect.clip(frame_width, frame_height)
        if visible.is_empty():
            return

        # Offset of the visible part inside the icon
        ix = visible.x - rect.x
        iy = visible.y - rect.y
        icon_part = icon[iy:iy + visible.height, ix:ix + visible.width]
        if icon_part.shape[:2] != (visible.height, visible.width):
            return

        roi = frame[visible.y:visible.y + visible.height, visible.x:visible.x + visible.width]
        weight = min(1.0, weight)
        frame[visible.y:visible.y + visible.height, visible.x:visible.x + visible.width] = \
            cv2.addWeighted(icon_part, weight, roi, 1.0 - weight, 0.0)
