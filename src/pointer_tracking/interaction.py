"""
Zone enter/leave detection.

This module provides the ZoneInteractionTracker, a two-state machine
(outside any zone, or inside one zone) that turns per-frame pointer
positions into edge-triggered enter and leave events.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Sequence

from .types import Position
from .zones import Zone

logger = logging.getLogger(__name__)


class ZoneEventKind(str, Enum):
    """Kinds of zone notifications, valued with their message names."""

    ENTER = "window-in"
    LEAVE = "window-out"


@dataclass(frozen=True)
class ZoneEvent:
    kind: ZoneEventKind
    zone_id: str


@dataclass
class PointerState:
    current_zone_id: Optional[str] = None
    last_position: Optional[Position] = None


class ZoneInteractionTracker:
    """
    Tracks which zone, if any, the pointer is in.

    Events are emitted only on transitions: staying in the same zone for any
    number of frames produces a single enter. Only the zone id is retained,
    so a zone removed from the registry is simply never matched again and
    the next frame emits a clean leave.
    """

    def __init__(self) -> None:
        self.state = PointerState()

    @property
    def current_zone_id(self) -> Optional[str]:
        return self.state.current_zone_id

    @property
    def last_position(self) -> Optional[Position]:
        return self.state.last_position

    def reset(self) -> None:
        """Return to the outside state without emitting anything."""
        self.state = PointerState()

    @staticmethod
    def find_zone(position: Position, zones: Sequence[Zone]) -> Optional[Zone]:
        """First zone in ``zones`` whose rectangle contains ``position``."""
        for zone in zones:
            if zone.rect.contains(position):
                return zone
        return None

    def update(self, position: Optional[Position], zones: Sequence[Zone]) -> List[ZoneEvent]:
        """
        Advance the state machine by one frame.

        Args:
            position: Located pointer position, or None when nothing was found
            zones: Registry snapshot in iteration order

        Returns:
            Events for this frame: empty, a single enter or leave, or a leave
            followed by an enter when the pointer moved between zones
        """
        events: List[ZoneEvent] = []
        current = self.state.current_zone_id

        if position is not None:
            self.state.last_position = position
            match = self.find_zone(position, zones)
            new_zone_id = match.id if match is not None else None
        else:
            new_zone_id = None

        if new_zone_id == current:
            return events

        if current is not None:
            events.append(ZoneEvent(ZoneEventKind.LEAVE, current))
        if new_zone_id is not None:
            events.append(ZoneEvent(ZoneEventKind.ENTER, new_zone_id))

        self.state.current_zone_id = new_zone_id
        logger.debug(f"Pointer zone changed: {current} -> {new_zone_id}")
        return events
