"""Run the stabilized overlay on a live camera or a video file."""

from __future__ import annotations

import dataclasses
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING

import cv2
from loguru import logger

from steadybox.cli import parse_args
from steadybox.detector import Detector, load_onnx_engine
from steadybox.errors import ConfigError, PipelineInitError
from steadybox.pipeline import (
    CameraConfig,
    CaptureWorker,
    PipelineCoordinator,
    PixelBuffer,
    PixelLayout,
    StabilizerConfig,
    TemporalSmoother,
    configure_logging,
    open_capture,
)
from steadybox.pipeline.metrics import PerformanceTracker
from steadybox.ui import LoggingRenderer, OpenCVOverlayRenderer, compose


if TYPE_CHECKING:
    import argparse

    from steadybox.pipeline.capture import OpenCVCapture


WINDOW_NAME = "SteadyBox"
READ_RETRY_DELAY_S = 0.01


@dataclass
class OverlayContext:
    args: argparse.Namespace
    config: StabilizerConfig
    camera: OpenCVCapture
    coordinator: PipelineCoordinator
    renderer: OpenCVOverlayRenderer | LoggingRenderer
    perf_tracker: PerformanceTracker


def _build_context(args: argparse.Namespace) -> OverlayContext:
    try:
        config = StabilizerConfig.from_args(args)
    except ConfigError as exc:
        logger.error("Invalid configuration: {}", exc)
        raise PipelineInitError(str(exc)) from exc

    engine = load_onnx_engine(
        args.model, gpu=args.gpu, intra_op_threads=args.intra_op_threads
    )
    if engine.input_size != config.input_size:
        logger.info(
            "Model expects {}px input, overriding {}px",
            engine.input_size,
            config.input_size,
        )
        config = dataclasses.replace(config, input_size=engine.input_size)
    logger.debug("Configuration: {}", config.as_dict())

    detector = Detector(engine, config, debug_boxes=args.debug_boxes)
    smoother = TemporalSmoother(
        config.window_size,
        grid_size=config.grid_size,
        match_radius=config.match_radius,
        strong_confidence=config.strong_confidence,
    )
    if args.no_display:
        renderer: OpenCVOverlayRenderer | LoggingRenderer = LoggingRenderer()
    else:
        renderer = OpenCVOverlayRenderer(
            filled=not args.outline_only, show_confidence=args.show_confidence
        )

    perf_tracker = PerformanceTracker()
    coordinator = PipelineCoordinator(
        detector, smoother, renderer, config, perf_tracker=perf_tracker
    )

    camera = open_capture(
        CameraConfig(
            source=args.source, width=args.width, height=args.height, fps=args.fps
        )
    )
    return OverlayContext(
        args=args,
        config=config,
        camera=camera,
        coordinator=coordinator,
        renderer=renderer,
        perf_tracker=perf_tracker,
    )


def _log_periodic_metrics(ctx: OverlayContext, last_log_time: float) -> float:
    current_time = time.perf_counter()
    if current_time - last_log_time < 2.0:
        return last_log_time
    metrics = ctx.perf_tracker.get_metrics()
    logger.info(
        "Detection: {:.1f} FPS | Cycle: {:.1f}ms | Threshold: {:.2f}",
        metrics.camera_fps,
        metrics.inference_ms,
        ctx.coordinator.state.threshold.value,
    )
    if ctx.coordinator.last_stats:
        logger.info("{}", ctx.coordinator.last_stats)
    return current_time


def _run_display_loop(ctx: OverlayContext) -> None:
    # The main thread owns the window, so it reads frames itself.
    last_log_time = time.perf_counter()
    while True:
        ret, frame = ctx.camera.read()
        if not ret or frame is None:
            if not ctx.camera.is_opened():
                logger.info("Frame source closed")
                return
            logger.warning("Failed to grab frame")
            time.sleep(READ_RETRY_DELAY_S)
            continue

        ctx.coordinator.submit(PixelBuffer.from_array(frame, PixelLayout.BGR))

        overlay = ctx.renderer.snapshot()
        shown = frame if overlay is None else compose(frame, overlay)
        cv2.imshow(WINDOW_NAME, shown)
        if cv2.waitKey(1) & 0xFF == ord("q"):
            logger.info("Quit requested by user")
            return
        last_log_time = _log_periodic_metrics(ctx, last_log_time)


def _run_headless_loop(ctx: OverlayContext) -> None:
    capture = CaptureWorker(ctx.camera, ctx.coordinator, layout=PixelLayout.BGR)
    capture.start()
    last_log_time = time.perf_counter()
    try:
        while capture.running:
            capture.join(timeout=0.5)
            last_log_time = _log_periodic_metrics(ctx, last_log_time)
    finally:
        capture.stop()
    logger.info("Frames read: {}", capture.frames_read)


def _run_overlay_loop(ctx: OverlayContext) -> int:
    logger.info("-" * 60)
    logger.info("Starting overlay. Press 'q' (or Ctrl+C) to quit.")
    logger.info("-" * 60)

    ctx.coordinator.start()
    try:
        if ctx.args.no_display:
            _run_headless_loop(ctx)
        else:
            _run_display_loop(ctx)
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
    except Exception as exc:
        logger.exception("Error during overlay loop: {}", exc)
    finally:
        ctx.coordinator.stop()

        logger.info("=" * 60)
        logger.info("Session Summary")
        counters = ctx.coordinator.state.snapshot()
        final_metrics = ctx.perf_tracker.get_metrics()
        logger.info("Source: {}", ctx.camera.get_info()["source"])
        logger.info("Frames received: {}", counters.received)
        logger.info("Frames processed: {}", counters.processed)
        logger.info("Avg cycle: {:.1f}ms", final_metrics.inference_ms)
        logger.info("Final threshold: {:.2f}", ctx.coordinator.state.threshold.value)

        ctx.camera.release()
        if not ctx.args.no_display:
            cv2.destroyAllWindows()
        logger.success("Cleanup complete. Goodbye!")

    return 0


def run_overlay(argv: list[str] | None = None) -> int:
    """Entry point for the overlay application."""
    args = parse_args(argv)
    configure_logging(args.log_level, args.log_dir, json_logs=args.json_logs)
    try:
        ctx = _build_context(args)
    except PipelineInitError:
        return 1
    return _run_overlay_loop(ctx)


def main() -> None:
    """Console script entry point."""
    raise SystemExit(run_overlay())


if __name__ == "__main__":
    main()
