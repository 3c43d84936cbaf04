#!/usr/bin/env python3
"""
Track a colored pointer over interactive zones in a camera feed or video.

- Draws the calibration region and zone layout over each frame
- Press 'c' to calibrate the tracked color from the calibration region
- Press 'q' to quit
- Zone enter/leave events are logged
"""

from __future__ import annotations

import os
import sys
import json
import time
import logging
import argparse
from pathlib import Path
from typing import List, Optional

import cv2

# Add the src directory to the Python path
sys.path.append(str(Path(__file__).parent.parent / "src"))

from pointer_tracking import PointerDetectorConfig, PointerDetectorFilter, Rect, ZoneConfig, ZoneEvent

logger = logging.getLogger("track_pointer")


def parse_rect(text: str) -> Rect:
    """Parse 'x,y,width,height'."""
    try:
        x, y, w, h = (int(v) for v in text.split(","))
    except ValueError:
        raise argparse.ArgumentTypeError(f"Expected x,y,width,height, got '{text}'")
    return Rect(x, y, w, h)


def parse_zone(text: str) -> ZoneConfig:
    """Parse 'id:x,y,width,height'."""
    zone_id, _, rect_text = text.partition(":")
    if not zone_id or not rect_text:
        raise argparse.ArgumentTypeError(f"Expected id:x,y,width,height, got '{text}'")
    return ZoneConfig(zone_id, parse_rect(rect_text))


def log_event(event: ZoneEvent) -> None:
    logger.info(f"{event.kind.value}: {event.zone_id}")


def load_config(path: Optional[str], region: Optional[Rect], zones: List[ZoneConfig]) -> PointerDetectorConfig:
    if path:
        with open(path, "r", encoding="utf-8") as f:
            config = PointerDetectorConfig.from_dict(json.load(f))
    else:
        config = PointerDetectorConfig.create_default()
    if region is not None:
        config.calibration_region = region
    config.zones.extend(zones)
    return config


def main() -> None:
    parser = argparse.ArgumentParser(
        description="Track a colored pointer and report zone enter/leave events"
    )
    parser.add_argument(
        "--source",
        type=str,
        default="0",
        help="Camera index or path to a video file",
    )
    parser.add_argument(
        "--config", type=str, default=None, help="JSON configuration file"
    )
    parser.add_argument(
        "--calibration-region",
        type=parse_rect,
        default=None,
        help="Calibration region as x,y,width,height",
    )
    parser.add_argument(
        "--zone",
        type=parse_zone,
        action="append",
        default=[],
        help="Zone as id:x,y,width,height (repeatable)",
    )
    parser.add_argument(
        "--calibrate-after", type=int, default=None,
        help="Calibrate automatically after this many frames",
    )
    parser.add_argument(
        "--debug", action="store_true", help="Draw calibration region and pointer"
    )
    parser.add_argument(
        "--headless", action="store_true", help="Do not open a preview window"
    )
    parser.add_argument(
        "--verbose", action="store_true", help="Enable debug logging"
    )
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    if args.config and not os.path.isfile(args.config):
        logger.error(f"Configuration file does not exist: {args.config}")
        return

    config = load_config(args.config, args.calibration_region, args.zone)
    config.show_debug_info = config.show_debug_info or args.debug

    source = int(args.source) if args.source.isdigit() else args.source
    cap = cv2.VideoCapture(source)
    if not cap.isOpened():
        logger.error(f"Could not open video source: {args.source}")
        return

    detector = PointerDetectorFilter(config=config, on_event=log_event)
    logger.info(f"Tracking with {len(detector.zones())} zones")

    frame_idx = 0
    start_time = time.time()
    try:
        while True:
            ok, frame = cap.read()
            if not ok:
                break

            detector.process_frame(frame)
            frame_idx += 1

            if args.calibrate_after is not None and frame_idx == args.calibrate_after:
                detector.calibrate_color()

            if args.headless:
                continue

            cv2.imshow("Pointer tracking", frame)
            key = cv2.waitKey(1) & 0xFF
            if key == ord("q"):
                break
            if key == ord("c"):
                detector.calibrate_color()

    except KeyboardInterrupt:
        logger.info("Processing interrupted by user")
    finally:
        cap.release()
        detector.close()
        if not args.headless:
            cv2.destroyAllWindows()

    elapsed_time = time.time() - start_time
    stats = detector.get_stats()
    logger.info(f"Processed {stats['frames_processed']} frames in {elapsed_time:.2f} seconds, "
                f"pointer found in {stats['frames_with_pointer']}, "
                f"{stats['events_emitted']} events")


if __name__ == "__main__":
    main()
