#!/usr/bin/env python3
"""
Integration tests for PointerDetectorFilter.

Frames are synthetic: a black 200x150 background with a 30x30 green square
as the pointer. Zone A covers the left half of the frame and zone B the
right half.
"""

import sys
import os
import logging
import threading
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', '..', 'src'))

import numpy as np
import cv2
import pytest

from pointer_tracking.config import CalibrationRange, PointerDetectorConfig, Rect, ZoneConfig
from pointer_tracking.filter import PointerDetectorFilter
from pointer_tracking.interaction import ZoneEvent, ZoneEventKind

WIDTH = 200
HEIGHT = 150
GREEN = (0, 255, 0)
CALIBRATION_REGION = Rect(85, 65, 20, 20)


def pointer_frame(x=None, y=60):
    """Black frame with the 30x30 pointer at (x, y); no pointer when x is None."""
    frame = np.zeros((HEIGHT, WIDTH, 3), dtype=np.uint8)
    if x is not None:
        frame[y:y + 30, x:x + 30] = GREEN
    return frame


def enter(zone_id):
    return ZoneEvent(ZoneEventKind.ENTER, zone_id)


def leave(zone_id):
    return ZoneEvent(ZoneEventKind.LEAVE, zone_id)


class StubIconLoader:
    def __init__(self):
        self.closed = False

    def load(self, source, size):
        if not source:
            return None
        width, height = size
        return np.full((height, width, 3), 128, dtype=np.uint8)

    def close(self):
        self.closed = True


@pytest.fixture
def events():
    return []


@pytest.fixture
def detector(events):
    config = PointerDetectorConfig(calibration_region=CALIBRATION_REGION,
                                   show_zones_layout=False)
    detector = PointerDetectorFilter(config, on_event=events.append,
                                     icon_loader=StubIconLoader())
    detector.add_zone(ZoneConfig('A', Rect(0, 0, 100, 150)))
    detector.add_zone(ZoneConfig('B', Rect(100, 0, 100, 150)))
    yield detector
    detector.close()


def calibrate(detector):
    """Show the pointer over the calibration region and sample it."""
    detector.process_frame(pointer_frame(80, 60))
    return detector.calibrate_color()


def test_nothing_is_tracked_before_calibration(detector, events):
    assert detector.process_frame(pointer_frame(20)) == []
    assert detector.last_position is None
    assert events == []


def test_calibration_picks_up_pointer_color(detector):
    result = calibrate(detector)

    assert result.hue_min == 55
    assert result.hue_max == 65
    assert result.saturation_min == 250
    assert result.saturation_max == 255
    assert detector.calibration_range == result


def test_calibration_before_first_frame_is_noop(detector):
    assert detector.calibrate_color() == CalibrationRange.uncalibrated()
    assert detector.track_color_from_calibration_region() == CalibrationRange.uncalibrated()


def test_calibration_without_region_is_noop():
    detector = PointerDetectorFilter(icon_loader=StubIconLoader())
    detector.process_frame(pointer_frame(80))

    assert detector.calibrate_color() == CalibrationRange.uncalibrated()


def test_enter_leave_sequence(detector, events):
    calibrate(detector)
    events.clear()

    assert detector.process_frame(pointer_frame(20)) == [enter('A')]
    assert detector.process_frame(pointer_frame(25)) == []
    assert detector.process_frame(pointer_frame(140)) == [leave('A'), enter('B')]
    assert detector.process_frame(pointer_frame()) == [leave('B')]
    assert detector.process_frame(pointer_frame()) == []

    assert events == [enter('A'), leave('A'), enter('B'), leave('B')]
    assert detector.current_zone_id is None


def test_calibration_frame_itself_emits(detector, events):
    """The calibration frame is tracked uncalibrated; the next one enters."""
    calibrate(detector)
    assert events == []

    detector.process_frame(pointer_frame(80, 60))
    assert events == [enter('A')]


def test_events_can_be_switched_off(detector, events):
    calibrate(detector)
    detector.set_emit_events(False)

    assert detector.process_frame(pointer_frame(20)) == []
    assert events == []
    assert detector.current_zone_id == 'A'

    # State kept advancing, so re-enabling does not replay the enter
    detector.set_emit_events(True)
    assert detector.process_frame(pointer_frame(20)) == []
    assert detector.process_frame(pointer_frame(140)) == [leave('A'), enter('B')]


def test_removing_occupied_zone_emits_leave(detector, events):
    calibrate(detector)
    detector.process_frame(pointer_frame(20))

    assert detector.remove_zone('A')
    assert detector.process_frame(pointer_frame(20)) == [leave('A')]
    assert detector.process_frame(pointer_frame(20)) == []


def test_zone_edits_are_validated(detector):
    detector.process_frame(pointer_frame())

    assert not detector.add_zone(ZoneConfig('', Rect(0, 0, 10, 10)))
    assert not detector.add_zone(ZoneConfig('C', Rect(0, 0, -5, 10)))
    assert not detector.add_zone(ZoneConfig('C', Rect(190, 140, 20, 20)))
    assert not detector.add_zone(ZoneConfig('C', Rect(0, 0, 10, 10), transparency=1.5))
    assert not detector.remove_zone('missing')
    assert [zone.id for zone in detector.zones()] == ['A', 'B']


def test_replacing_zone_keeps_order(detector):
    assert detector.add_zone(ZoneConfig('A', Rect(0, 0, 50, 50), active_icon='on.png'))

    zones = detector.zones()
    assert [zone.id for zone in zones] == ['A', 'B']
    assert zones[0].rect == Rect(0, 0, 50, 50)
    assert zones[0].active_icon.shape == (50, 50, 3)


def test_calibration_region_is_validated(detector):
    detector.process_frame(pointer_frame())

    assert not detector.set_calibration_region(Rect(190, 140, 20, 20))
    assert not detector.set_calibration_region(Rect(0, 0, 0, 0))
    assert detector.calibration_region == CALIBRATION_REGION
    assert detector.set_calibration_region(Rect(0, 0, 10, 10))
    assert detector.calibration_region == Rect(0, 0, 10, 10)


def test_set_calibration_range(detector, events):
    assert not detector.set_calibration_range(CalibrationRange(70, 10, 0, 255))
    assert detector.set_calibration_range(CalibrationRange(55, 65, 200, 255))

    assert detector.process_frame(pointer_frame(20)) == [enter('A')]


def test_overlay_is_drawn_on_the_frame():
    config = PointerDetectorConfig(show_zones_layout=True)
    detector = PointerDetectorFilter(config, icon_loader=StubIconLoader())
    detector.add_zone(ZoneConfig('A', Rect(10, 10, 50, 50), inactive_icon='off.png'))
    frame = pointer_frame()

    detector.process_frame(frame)

    assert tuple(frame[30, 30]) == (128, 128, 128)
    assert tuple(frame[10, 30]) == detector.renderer.zone_color

    detector.set_show_zones_layout(False)
    frame = pointer_frame()
    detector.process_frame(frame)
    assert not np.any(frame)


def test_debug_info_draws_calibration_region(detector):
    detector.set_show_debug_info(True)
    frame = pointer_frame()

    detector.process_frame(frame)

    assert tuple(frame[CALIBRATION_REGION.y, CALIBRATION_REGION.x + 5]) == \
        detector.renderer.calibration_color


def test_overlay_does_not_feed_back_into_calibration(detector):
    detector.set_show_debug_info(True)
    detector.process_frame(pointer_frame(80, 60))

    result = detector.calibrate_color()

    assert result.hue_min == 55
    assert result.hue_max == 65


def test_callback_failure_is_contained(detector, caplog):
    calibrate(detector)

    def failing(event):
        raise RuntimeError("consumer went away")

    detector.set_event_callback(failing)
    with caplog.at_level(logging.ERROR, logger='pointer_tracking.filter'):
        assert detector.process_frame(pointer_frame(20)) == [enter('A')]

    assert "consumer went away" in caplog.text
    assert detector.current_zone_id == 'A'


def test_sixteen_bit_icon_is_usable(tmp_path, events):
    """A 16-bit PNG icon is converted on load and drawn on every frame."""
    path = tmp_path / "deep.png"
    cv2.imwrite(str(path), np.full((8, 8, 3), 65535, dtype=np.uint16))
    detector = PointerDetectorFilter(PointerDetectorConfig(show_zones_layout=True),
                                     on_event=events.append)
    detector.set_calibration_range(CalibrationRange(55, 65, 200, 255))

    assert detector.add_zone(ZoneConfig('A', Rect(0, 0, 100, 150),
                                        inactive_icon=str(path), active_icon=str(path)))
    assert detector.zones()[0].active_icon.dtype == np.uint8

    frame = pointer_frame(20)
    assert detector.process_frame(frame) == [enter('A')]
    assert tuple(frame[140, 90]) == (255, 255, 255)
    assert detector.process_frame(pointer_frame()) == [leave('A')]
    assert events == [enter('A'), leave('A')]
    detector.close()


def test_overlay_failure_keeps_events(events, caplog):
    """Frames whose overlay cannot be drawn still report their transitions."""

    class DeepIconLoader(StubIconLoader):
        def load(self, source, size):
            width, height = size
            return np.full((height, width, 3), 1000, dtype=np.uint16)

    detector = PointerDetectorFilter(PointerDetectorConfig(show_zones_layout=True),
                                     on_event=events.append, icon_loader=DeepIconLoader())
    detector.set_calibration_range(CalibrationRange(55, 65, 200, 255))
    detector.add_zone(ZoneConfig('A', Rect(0, 0, 100, 150), inactive_icon='deep.png',
                                 active_icon='deep.png'))

    with caplog.at_level(logging.ERROR, logger='pointer_tracking.filter'):
        assert detector.process_frame(pointer_frame(20)) == [enter('A')]
        assert detector.process_frame(pointer_frame()) == [leave('A')]

    assert events == [enter('A'), leave('A')]
    assert "Error drawing overlay" in caplog.text
    assert detector.get_stats()['frames_processed'] == 2


def test_rejects_non_color_frames(detector):
    with pytest.raises(ValueError):
        detector.process_frame(np.zeros((HEIGHT, WIDTH), dtype=np.uint8))
    with pytest.raises(ValueError):
        detector.process_frame(None)


def test_invalid_config_is_rejected():
    config = PointerDetectorConfig(zones=[ZoneConfig('A', Rect(0, 0, 10, 10)),
                                          ZoneConfig('A', Rect(10, 0, 10, 10))])
    with pytest.raises(ValueError):
        PointerDetectorFilter(config, icon_loader=StubIconLoader())


def test_zones_from_config_are_registered():
    config = PointerDetectorConfig(zones=[ZoneConfig('A', Rect(0, 0, 10, 10)),
                                          ZoneConfig('B', Rect(10, 0, 10, 10))])
    detector = PointerDetectorFilter(config, icon_loader=StubIconLoader())

    assert [zone.id for zone in detector.zones()] == ['A', 'B']


def test_stats(detector):
    calibrate(detector)
    detector.process_frame(pointer_frame(20))
    detector.process_frame(pointer_frame())

    stats = detector.get_stats()

    assert stats['frames_processed'] == 3
    assert stats['frames_with_pointer'] == 1
    assert stats['events_emitted'] == 2
    assert stats['frame_size'] == (WIDTH, HEIGHT)
    assert stats['zones'] == 2
    assert stats['calibrated']
    assert stats['last_process_ms'] >= 0.0


def test_close_releases_resources():
    loader = StubIconLoader()
    with PointerDetectorFilter(icon_loader=loader) as detector:
        detector.add_zone(ZoneConfig('A', Rect(0, 0, 10, 10)))

    assert detector.zones() == []
    # Borrowed loaders are left to their owner
    assert not loader.closed


def test_configuration_changes_while_frames_flow(detector, events):
    calibrate(detector)
    events.clear()
    errors = []
    stop = threading.Event()

    def reconfigure():
        try:
            while not stop.is_set():
                detector.add_zone(ZoneConfig('C', Rect(0, 0, 20, 20)))
                detector.remove_zone('C')
                detector.set_show_debug_info(True)
                detector.set_show_debug_info(False)
        except Exception as e:  # surfaced to the main thread below
            errors.append(e)

    worker = threading.Thread(target=reconfigure)
    worker.start()
    try:
        for i in range(50):
            detector.process_frame(pointer_frame(20 if i % 2 == 0 else 140))
    finally:
        stop.set()
        worker.join()

    assert errors == []
    # Every frame alternates zones: a leave/enter pair after the first enter
    assert events[0] == enter('A')
    assert len(events) == 1 + 2 * 49
    assert [zone.id for zone in detector.zones()] == ['A', 'B']
