"""
Interactive zones and the registry that holds them.

A Zone is a named rectangle of the frame with optional icons drawn over it.
The ZoneRegistry keeps zones keyed by id in insertion order; that order is
the tie-break used when zones overlap.
"""

import logging
from dataclasses import dataclass
from typing import Dict, Iterator, List, Optional

from .config import Rect, ZoneConfig
from .icons import IconLoader
from .types import Icon

logger = logging.getLogger(__name__)


@dataclass(frozen=True, eq=False)
class Zone:
    """
    A registered zone with its icons loaded.

    Zones are immutable once built, so a snapshot handed to a caller stays
    valid however the registry changes afterwards. Icons loaded through
    ``from_config`` are read-only arrays.

    Icons are BGR arrays already scaled to ``rect.width x rect.height``.
    ``blend_weight`` is the opacity used when compositing an icon, in [0, 1].
    """

    id: str
    rect: Rect
    inactive_icon: Optional[Icon] = None
    active_icon: Optional[Icon] = None
    blend_weight: float = 1.0

    @staticmethod
    def blend_weight_for(transparency: Optional[float]) -> float:
        """Opacity for a configured transparency; no transparency means fully opaque."""
        if transparency is None:
            return 1.0
        return 1.0 - transparency

    @classmethod
    def from_config(cls, zone_config: ZoneConfig,
                    icon_loader: Optional[IconLoader] = None) -> 'Zone':
        """
        Build a zone from its configuration, loading both icons.

        Args:
            zone_config: Zone description; validated before anything is loaded
            icon_loader: Loader used for icon sources. Without one, icons are
                left unset.

        Returns:
            Zone: The new zone. An icon that fails to load is left as None.

        Raises:
            ValueError: If the configuration is invalid
        """
        zone_config.validate()

        size = (zone_config.rect.width, zone_config.rect.height)
        inactive_icon = None
        active_icon = None
        if icon_loader is not None:
            inactive_icon = cls._freeze(icon_loader.load(zone_config.inactive_icon, size))
            active_icon = cls._freeze(icon_loader.load(zone_config.active_icon, size))

        return cls(
            id=zone_config.id,
            rect=zone_config.rect,
            inactive_icon=inactive_icon,
            active_icon=active_icon,
            blend_weight=cls.blend_weight_for(zone_config.transparency),
        )

    @staticmethod
    def _freeze(icon: Optional[Icon]) -> Optional[Icon]:
        if icon is not None:
            icon.setflags(write=False)
        return icon


class ZoneRegistry:
    """
    Ordered mapping from zone id to Zone.

    The registry does no locking of its own; callers that share it between
    threads serialize access (see PointerDetectorFilter).
    """

    def __init__(self) -> None:
        self._zones: Dict[str, Zone] = {}

    def add(self, zone: Zone) -> None:
        """
        Insert ``zone``, replacing any zone with the same id.

        A replaced zone keeps its position in iteration order.

        Raises:
            ValueError: If the zone id is empty
        """
        if not isinstance(zone.id, str) or not zone.id:
            raise ValueError(f"Zone id must be a non-empty string, got {zone.id!r}")

        if zone.id in self._zones:
            logger.debug(f"Replacing zone '{zone.id}'")
        self._zones[zone.id] = zone

    def remove(self, zone_id: str) -> bool:
        """
        Remove the zone with ``zone_id``.

        Returns:
            True if a zone was removed, False if the id was unknown
        """
        return self._zones.pop(zone_id, None) is not None

    def clear(self) -> None:
        """Drop every zone."""
        self._zones.clear()

    def snapshot(self) -> List[Zone]:
        """Zones in iteration order, as a list independent of later edits."""
        return list(self._zones.values())

    def get(self, zone_id: str) -> Optional[Zone]:
        return self._zones.get(zone_id)

    def ids(self) -> List[str]:
        return list(self._zones.keys())

    def __len__(self) -> int:
        return len(self._zones)

    def __contains__(self, zone_id: object) -> bool:
        return zone_id in self._zones

    def __iter__(self) -> Iterator[Zone]:
        return iter(self.snapshot())
