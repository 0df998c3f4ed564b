"""
gaze_link - Main Entry Point
Runs the capture loop:
  1. Parse CLI options into VisionConfig / LinkConfig
  2. Load the detector (exit if unavailable)
  3. Open the camera
  4. Classify every frame, dispatch settled changes over the link
  5. Show the mirrored preview with overlay and status

Keys in the preview window:
  b  connect / disconnect the link
  q  quit
"""

import os
import sys
import signal
import logging
import argparse

import cv2

sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from gaze_link.link.config import LinkConfig
from gaze_link.pipeline import GazePipeline
from gaze_link.vision.config import FACE_SELECTION_POLICIES, VisionConfig
from gaze_link.vision.detector import DetectorUnavailableError
from gaze_link.vision.overlay import render_preview

logger = logging.getLogger('gaze_link')

WINDOW_NAME = 'gaze_link'


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description='Gaze direction to BLE commands')
    parser.add_argument('--camera', type=int, default=0,
                        help='Camera index (default: 0)')
    parser.add_argument('--width', type=int, default=640)
    parser.add_argument('--height', type=int, default=480)
    parser.add_argument('--port', default='',
                        help='Serial port of the BLE bridge (default: auto-discover)')
    parser.add_argument('--device-hint', default='',
                        help='Substring to match in the port description when auto-discovering')
    parser.add_argument('--baud', type=int, default=9600)
    parser.add_argument('--settle-ms', type=int, default=100,
                        help='Settle delay before a new direction is sent (default: 100)')
    parser.add_argument('--face-selection', choices=FACE_SELECTION_POLICIES, default='first')
    parser.add_argument('--no-mirror', action='store_true',
                        help='Preview is not flipped; invert left/right mapping')
    parser.add_argument('--connect', action='store_true',
                        help='Connect the link at start-up')
    parser.add_argument('--headless', action='store_true',
                        help='No preview window (stop with Ctrl+C)')
    parser.add_argument('--log-level', default='INFO',
                        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'])
    return parser.parse_args(argv)


def build_pipeline(args) -> GazePipeline:
    vision_config = VisionConfig(
        mirror_view=not args.no_mirror,
        face_selection=args.face_selection,
    )
    link_config = LinkConfig(
        port=args.port,
        device_hint=args.device_hint,
        baudrate=args.baud,
        settle_delay_ms=args.settle_ms,
    )
    return GazePipeline(vision_config=vision_config, link_config=link_config)


def main(argv=None) -> int:
    args = parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format='%(asctime)s [%(levelname)s] %(name)s: %(message)s'
    )

    print()
    print("=" * 50)
    print("  gaze_link")
    print("=" * 50)
    print()

    pipeline = build_pipeline(args)

    # 1. Detector - fatal if missing
    try:
        pipeline.start()
    except DetectorUnavailableError as e:
        logger.error(f"Cannot start: {e}")
        print("\n✗ Face/eye classifiers could not be loaded.")
        return 1

    # 2. Camera
    cap = cv2.VideoCapture(args.camera)
    if not cap.isOpened():
        logger.error(f"Could not open camera {args.camera}")
        pipeline.stop()
        return 1
    cap.set(cv2.CAP_PROP_FRAME_WIDTH, args.width)
    cap.set(cv2.CAP_PROP_FRAME_HEIGHT, args.height)
    logger.info(f"✓ Camera {args.camera} started")

    stopping = False

    def _request_stop(sig, frame):
        nonlocal stopping
        logger.info("Stop requested")
        stopping = True

    signal.signal(signal.SIGINT, _request_stop)
    signal.signal(signal.SIGTERM, _request_stop)

    if args.connect:
        pipeline.toggle_connection()

    last_direction = None
    try:
        while not stopping:
            ok, frame = cap.read()
            if not ok:
                logger.error("Could not read frame")
                break

            result = pipeline.process_frame(frame)

            if result.direction != last_direction:
                logger.debug(f"Eye: {result.direction}")
                last_direction = result.direction

            if args.headless:
                continue

            preview = render_preview(
                frame,
                result.geometry,
                pipeline.eye_status,
                pipeline.link_status,
                mirror=pipeline.vision_config.mirror_view,
            )
            cv2.imshow(WINDOW_NAME, preview)

            key = cv2.waitKey(1) & 0xFF
            if key == ord('q'):
                break
            if key == ord('b'):
                pipeline.toggle_connection()

    except Exception as e:
        logger.error(f"Unexpected error: {e}", exc_info=True)

    finally:
        cap.release()
        pipeline.stop()
        if not args.headless:
            cv2.destroyAllWindows()
        print("\n✓ gaze_link stopped.")

    return 0


if __name__ == '__main__':
    sys.exit(main())
