"""
Configuration classes for the pointer tracker.

This module defines the typed records handed to the tracker by its caller:
rectangles, the calibrated HSV acceptance range, zone descriptions and the
filter-wide configuration with its defaults.
"""

from typing import Any, Dict, List, Optional
from dataclasses import dataclass, field

from .types import (
    Position,
    HUE_MAX, SATURATION_MAX, VALUE_MAX,
    DEFAULT_HISTOGRAM_THRESHOLD, DEFAULT_CALIBRATION_MARGIN,
    DEFAULT_CLOSE_KERNEL_SIZE, DEFAULT_OPEN_KERNEL_SIZE,
    V_MIN, V_MAX,
)


_TRUE_STRINGS = ('true', 'yes', 'on', '1')
_FALSE_STRINGS = ('false', 'no', 'off', '0')


def _parse_flag(key: str, value: Any) -> bool:
    """
    Read a boolean switch from loaded configuration data.

    Raises:
        ValueError: If the value is neither a boolean, 0/1, nor a recognised string
    """
    if isinstance(value, bool):
        return value
    if isinstance(value, int) and value in (0, 1):
        return bool(value)
    if isinstance(value, str):
        text = value.strip().lower()
        if text in _TRUE_STRINGS:
            return True
        if text in _FALSE_STRINGS:
            return False
    raise ValueError(f"'{key}' must be a boolean, got {value!r}")


@dataclass(frozen=True)
class Rect:
    """Axis-aligned rectangle in frame coordinates."""

    x: int
    y: int
    width: int
    height: int

    def is_valid(self) -> bool:
        """True when the origin is non-negative and the size is positive."""
        return self.x >= 0 and self.y >= 0 and self.width > 0 and self.height > 0

    def is_empty(self) -> bool:
        return self.width <= 0 or self.height <= 0

    def fits_within(self, frame_width: int, frame_height: int) -> bool:
        """True when the rectangle lies entirely inside a frame of the given size."""
        return (self.is_valid()
                and self.x + self.width <= frame_width
                and self.y + self.height <= frame_height)

    def contains(self, point: Position) -> bool:
        """Half-open containment test: [x, x + width) x [y, y + height)."""
        px, py = point
        return (self.x <= px < self.x + self.width
                and self.y <= py < self.y + self.height)

    def clip(self, frame_width: int, frame_height: int) -> 'Rect':
        """Intersect with the frame; the result may be empty."""
        x1 = max(0, self.x)
        y1 = max(0, self.y)
        x2 = min(frame_width, self.x + self.width)
        y2 = min(frame_height, self.y + self.height)
        return Rect(x1, y1, max(0, x2 - x1), max(0, y2 - y1))

    def to_dict(self) -> Dict[str, int]:
        return {'x': self.x, 'y': self.y, 'width': self.width, 'height': self.height}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Rect':
        return cls(int(data['x']), int(data['y']), int(data['width']), int(data['height']))


@dataclass(frozen=True)
class CalibrationRange:
    """
    HSV acceptance range for the tracked color.

    Hue is in OpenCV's 8-bit domain [0, 180], saturation and value in
    [0, 255]. The all-zero hue/saturation range is the uncalibrated state
    and matches nothing.
    """

    hue_min: int = 0
    hue_max: int = 0
    saturation_min: int = 0
    saturation_max: int = 0
    value_min: int = V_MIN
    value_max: int = V_MAX

    @classmethod
    def uncalibrated(cls) -> 'CalibrationRange':
        return cls()

    @property
    def is_calibrated(self) -> bool:
        return not (self.hue_min == 0 and self.hue_max == 0
                    and self.saturation_min == 0 and self.saturation_max == 0)

    def validate(self) -> None:
        """
        Validate channel bounds.

        Raises:
            ValueError: If a bound is outside its channel domain or min > max
        """
        if not (0 <= self.hue_min <= HUE_MAX and 0 <= self.hue_max <= HUE_MAX):
            raise ValueError(f"Hue bounds must be within [0, {HUE_MAX}], got "
                             f"{self.hue_min}..{self.hue_max}")
        if not (0 <= self.saturation_min <= SATURATION_MAX
                and 0 <= self.saturation_max <= SATURATION_MAX):
            raise ValueError(f"Saturation bounds must be within [0, {SATURATION_MAX}], got "
                             f"{self.saturation_min}..{self.saturation_max}")
        if not (0 <= self.value_min <= VALUE_MAX and 0 <= self.value_max <= VALUE_MAX):
            raise ValueError(f"Value bounds must be within [0, {VALUE_MAX}], got "
                             f"{self.value_min}..{self.value_max}")
        if self.hue_min > self.hue_max:
            raise ValueError(f"hue_min ({self.hue_min}) must not exceed hue_max ({self.hue_max})")
        if self.saturation_min > self.saturation_max:
            raise ValueError(f"saturation_min ({self.saturation_min}) must not exceed "
                             f"saturation_max ({self.saturation_max})")
        if self.value_min > self.value_max:
            raise ValueError(f"value_min ({self.value_min}) must not exceed "
                             f"value_max ({self.value_max})")

    def to_dict(self) -> Dict[str, int]:
        return {
            'hue_min': self.hue_min,
            'hue_max': self.hue_max,
            'saturation_min': self.saturation_min,
            'saturation_max': self.saturation_max,
            'value_min': self.value_min,
            'value_max': self.value_max,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'CalibrationRange':
        return cls(
            hue_min=int(data.get('hue_min', 0)),
            hue_max=int(data.get('hue_max', 0)),
            saturation_min=int(data.get('saturation_min', 0)),
            saturation_max=int(data.get('saturation_max', 0)),
            value_min=int(data.get('value_min', V_MIN)),
            value_max=int(data.get('value_max', V_MAX)),
        )


@dataclass(frozen=True)
class ZoneConfig:
    """
    Caller-side description of an interactive zone.

    Icon sources are local file paths or URIs; they are resolved when the
    zone is added to a registry. ``transparency`` is in [0, 1] where 0 is
    fully opaque.
    """

    id: str
    rect: Rect
    inactive_icon: Optional[str] = None
    active_icon: Optional[str] = None
    transparency: Optional[float] = None

    def validate(self) -> None:
        """
        Validate the zone description.

        Raises:
            ValueError: If the id is empty, the rectangle is malformed or the
                transparency is outside [0, 1]
        """
        if not isinstance(self.id, str) or not self.id:
            raise ValueError(f"Zone id must be a non-empty string, got {self.id!r}")
        if not self.rect.is_valid():
            raise ValueError(f"Zone '{self.id}' has an invalid rectangle: {self.rect}")
        if self.transparency is not None and not (0.0 <= self.transparency <= 1.0):
            raise ValueError(f"Zone '{self.id}' transparency must be between 0 and 1, "
                             f"got {self.transparency}")

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {'id': self.id, 'rect': self.rect.to_dict()}
        if self.inactive_icon is not None:
            data['inactive_icon'] = self.inactive_icon
        if self.active_icon is not None:
            data['active_icon'] = self.active_icon
        if self.transparency is not None:
            data['transparency'] = self.transparency
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ZoneConfig':
        transparency = data.get('transparency')
        return cls(
            id=data['id'],
            rect=Rect.from_dict(data['rect']),
            inactive_icon=data.get('inactive_icon'),
            active_icon=data.get('active_icon'),
            transparency=float(transparency) if transparency is not None else None,
        )


@dataclass
class PointerDetectorConfig:
    """Configuration schema for the pointer detector filter with default parameters."""

    # Region sampled by "calibrate now"; an empty rectangle means unset
    calibration_region: Rect = field(default_factory=lambda: Rect(0, 0, 0, 0))
    calibration_range: CalibrationRange = field(default_factory=CalibrationRange.uncalibrated)

    # Calibration heuristic
    histogram_threshold: int = DEFAULT_HISTOGRAM_THRESHOLD
    calibration_margin: int = DEFAULT_CALIBRATION_MARGIN

    # Mask denoising
    close_kernel_size: int = DEFAULT_CLOSE_KERNEL_SIZE
    open_kernel_size: int = DEFAULT_OPEN_KERNEL_SIZE
    min_pointer_area: int = 1

    # Output switches
    show_debug_info: bool = False
    show_zones_layout: bool = True
    emit_events: bool = True

    # Icon retrieval
    icon_fetch_timeout: float = 10.0

    zones: List[ZoneConfig] = field(default_factory=list)

    @classmethod
    def create_default(cls) -> 'PointerDetectorConfig':
        """Create a configuration with all default values."""
        return cls()

    def validate(self) -> None:
        """
        Validate the configuration parameters.

        Raises:
            ValueError: If any configuration parameter is invalid
        """
        if not self.calibration_region.is_empty() and not self.calibration_region.is_valid():
            raise ValueError(f"Calibration region is malformed: {self.calibration_region}")

        self.calibration_range.validate()

        if self.histogram_threshold <= 0:
            raise ValueError(f"Histogram threshold must be positive, got {self.histogram_threshold}")
        if self.calibration_margin < 0:
            raise ValueError(f"Calibration margin must be non-negative, got {self.calibration_margin}")

        for name, size in (('close', self.close_kernel_size), ('open', self.open_kernel_size)):
            if size <= 0:
                raise ValueError(f"The {name} kernel size must be positive, got {size}")

        if self.min_pointer_area <= 0:
            raise ValueError(f"Minimum pointer area must be positive, got {self.min_pointer_area}")

        if self.icon_fetch_timeout <= 0:
            raise ValueError(f"Icon fetch timeout must be positive, got {self.icon_fetch_timeout}")

        seen = set()
        for zone in self.zones:
            zone.validate()
            if zone.id in seen:
                raise ValueError(f"Duplicate zone id in configuration: '{zone.id}'")
            seen.add(zone.id)

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to dictionary format."""
        return {
            'calibration_region': self.calibration_region.to_dict(),
            'calibration_range': self.calibration_range.to_dict(),
            'histogram_threshold': self.histogram_threshold,
            'calibration_margin': self.calibration_margin,
            'close_kernel_size': self.close_kernel_size,
            'open_kernel_size': self.open_kernel_size,
            'min_pointer_area': self.min_pointer_area,
            'show_debug_info': self.show_debug_info,
            'show_zones_layout': self.show_zones_layout,
            'emit_events': self.emit_events,
            'icon_fetch_timeout': self.icon_fetch_timeout,
            'zones': [zone.to_dict() for zone in self.zones],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'PointerDetectorConfig':
        """Build a configuration from a dictionary, using defaults for missing keys."""
        config = cls()
        if 'calibration_region' in data:
            config.calibration_region = Rect.from_dict(data['calibration_region'])
        if 'calibration_range' in data:
            config.calibration_range = CalibrationRange.from_dict(data['calibration_range'])
        for key in ('histogram_threshold', 'calibration_margin', 'close_kernel_size',
                    'open_kernel_size', 'min_pointer_area'):
            if key in data:
                setattr(config, key, int(data[key]))
        for key in ('show_debug_info', 'show_zones_layout', 'emit_events'):
            if key in data:
                setattr(config, key, _parse_flag(key, data[key]))
        if 'icon_fetch_timeout' in data:
            config.icon_fetch_timeout = float(data['icon_fetch_timeout'])
        config.zones = [ZoneConfig.from_dict(zone) for zone in data.get('zones', [])]
        return config
