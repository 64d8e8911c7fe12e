from __future__ import annotations

import argparse

from steadybox.pipeline.config import StabilizerConfig


_DEFAULTS = StabilizerConfig()


def _source(value: str) -> int | str:
    return int(value) if value.isdigit() else value


def parse_args(argv: list | None = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Low-flicker detection overlay for live video",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  steadybox --model models/detector.onnx
  steadybox --model models/detector.onnx --source clip.mp4 --frame-skip 0
  steadybox --model models/detector.onnx --window-size 7 --hide-timeout 0.5
		""",
    )

    capture = parser.add_argument_group("capture")
    capture.add_argument(
        "--source",
        type=_source,
        default=0,
        help="Camera index or video file/stream URL",
    )
    capture.add_argument("--width", type=int, default=1280)
    capture.add_argument("--height", type=int, default=720)
    capture.add_argument("--fps", type=int, default=30)

    model = parser.add_argument_group("model")
    model.add_argument("--model", type=str, default="models/detector.onnx")
    model.add_argument(
        "--gpu",
        type=int,
        default=None,
        help="CUDA device id (CPU when omitted or unavailable)",
    )
    model.add_argument("--threads", type=int, default=None, dest="intra_op_threads")
    model.add_argument("--input-size", type=int, default=_DEFAULTS.input_size)

    detection = parser.add_argument_group("detection")
    detection.add_argument("--conf", type=float, default=_DEFAULTS.base_threshold, dest="base_threshold")
    detection.add_argument("--max-conf", type=float, default=_DEFAULTS.max_threshold, dest="max_threshold")
    detection.add_argument("--conf-step", type=float, default=_DEFAULTS.threshold_step, dest="threshold_step")
    detection.add_argument("--dense-count", type=int, default=_DEFAULTS.dense_scene_count, dest="dense_scene_count")
    detection.add_argument("--sparse-count", type=int, default=_DEFAULTS.sparse_scene_count, dest="sparse_scene_count")
    detection.add_argument("--iou", type=float, default=_DEFAULTS.iou_threshold, dest="iou_threshold")
    detection.add_argument("--max-detections", type=int, default=_DEFAULTS.max_detections)
    detection.add_argument(
        "--rank-before-cap",
        action="store_true",
        help="Keep the most confident candidates when the cap is hit",
    )

    smoothing = parser.add_argument_group("smoothing")
    smoothing.add_argument("--window-size", type=int, default=_DEFAULTS.window_size)
    smoothing.add_argument("--grid-size", type=int, default=_DEFAULTS.grid_size)
    smoothing.add_argument(
        "--match-radius",
        type=float,
        default=_DEFAULTS.match_radius,
        help="Max center distance (px) for detections to be merged",
    )
    smoothing.add_argument("--strong-conf", type=float, default=_DEFAULTS.strong_confidence, dest="strong_confidence")

    pacing = parser.add_argument_group("pacing")
    pacing.add_argument(
        "--frame-skip",
        type=int,
        default=_DEFAULTS.frame_skip,
        help="Frames discarded between two submitted ones",
    )
    pacing.add_argument(
        "--hide-timeout",
        type=float,
        default=_DEFAULTS.hide_timeout_s,
        dest="hide_timeout_s",
        help="Seconds without detections before the overlay is cleared",
    )

    display = parser.add_argument_group("display")
    display.add_argument("--no-display", action="store_true")
    display.add_argument("--outline-only", action="store_true")
    display.add_argument("--show-confidence", action="store_true")

    debug = parser.add_argument_group("debug")
    debug.add_argument(
        "--debug-boxes",
        action="store_true",
        help="Log decoded bbox coordinates for debugging",
    )
    debug.add_argument(
        "--log-level",
        type=str,
        default="INFO",
        choices=["TRACE", "DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
    )
    debug.add_argument("--log-dir", type=str, default="logs")
    debug.add_argument("--json-logs", action="store_true")

    return parser.parse_args(argv)
