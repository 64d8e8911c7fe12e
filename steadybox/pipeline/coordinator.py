"""Frame admission and the detection worker.

Two threads cooperate. The capture side calls :meth:`PipelineCoordinator.submit`
for every frame the source delivers; the detection worker runs one full
decode/NMS/smooth/render cycle per admitted frame.

Admission is lossy. A frame-skip counter lets only every ``(frame_skip + 1)``-th
frame through, then a single-flight guard rejects the frame if a cycle is
already in flight, and the hand-off channel holds at most one frame and never
blocks. Nothing is queued behind a busy worker. A started cycle always runs to
completion, including across :meth:`PipelineCoordinator.stop`.
"""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass, fields
from queue import Empty, Full, Queue
from typing import TYPE_CHECKING, Generic, Protocol, TypeVar

import numpy as np
from loguru import logger

from steadybox.errors import FrameFormatError
from steadybox.pipeline.config import StabilizerConfig
from steadybox.pipeline.frames import PixelBuffer, PixelLayout, to_rgb
from steadybox.pipeline.metrics.performance import PerformanceTracker, format_stats
from steadybox.pipeline.types import DetectionResult


if TYPE_CHECKING:
    from collections.abc import Callable

    from steadybox.detector.threshold import AdaptiveThreshold
    from steadybox.pipeline.capture.core import CaptureProtocol
    from steadybox.pipeline.stabilization.smoother import TemporalSmoother


T = TypeVar("T")


class DetectorProtocol(Protocol):
    """What the coordinator needs from a detector."""

    threshold: AdaptiveThreshold

    def detect(self, frame_rgb: np.ndarray) -> DetectionResult:
        """Detect boxes in one RGB frame."""
        ...


class RendererProtocol(Protocol):
    """Render collaborator receiving every completed cycle's result."""

    def render(self, result: DetectionResult) -> None:
        """Draw ``result``, replacing whatever was drawn before."""
        ...

    def clear(self) -> None:
        """Remove any stale overlay."""
        ...


class SingleFlightGuard:
    """Atomic busy flag: at most one holder, acquisition never waits."""

    def __init__(self) -> None:
        """Create an idle guard."""
        self._lock = threading.Lock()

    def try_acquire(self) -> bool:
        """Take the guard if it is free; return whether it was taken."""
        return self._lock.acquire(blocking=False)

    def release(self) -> None:
        """Free the guard."""
        self._lock.release()

    @property
    def busy(self) -> bool:
        """True while a holder has the guard."""
        return self._lock.locked()


class FrameSkipGate:
    """Admit every ``(skip + 1)``-th call, regardless of anything else."""

    def __init__(self, skip: int = 2) -> None:
        """``skip`` frames are discarded between two admitted ones."""
        self.skip = int(skip)
        self._counter = 0
        self._lock = threading.Lock()

    def admit(self) -> bool:
        """Count one arriving frame and say whether it may proceed."""
        with self._lock:
            self._counter += 1
            return self._counter % (self.skip + 1) == 0


class FrameChannel(Generic[T]):
    """Bounded hand-off between threads with drop-on-full sends."""

    def __init__(self, capacity: int = 1) -> None:
        """Create a channel holding at most ``capacity`` items."""
        self._queue: Queue[T] = Queue(maxsize=capacity)

    def try_send(self, item: T) -> bool:
        """Enqueue ``item`` unless the channel is full; never blocks."""
        try:
            self._queue.put_nowait(item)
        except Full:
            return False
        return True

    def receive(self, timeout: float | None = None) -> T | None:
        """Wait up to ``timeout`` seconds for an item."""
        try:
            return self._queue.get(timeout=timeout)
        except Empty:
            return None

    def drain(self) -> int:
        """Discard pending items and return how many there were."""
        drained = 0
        while True:
            try:
                self._queue.get_nowait()
            except Empty:
                return drained
            drained += 1


@dataclass
class PipelineCounters:
    """Frame accounting for one coordinator."""

    received: int = 0
    skipped: int = 0
    dropped: int = 0
    processed: int = 0
    failed: int = 0


class PipelineState:
    """Mutable state shared by the capture side and the detection worker."""

    def __init__(self, threshold: AdaptiveThreshold) -> None:
        """Own the adaptive threshold, the running flag and the counters."""
        self.threshold = threshold
        self.running = threading.Event()
        self._counters = PipelineCounters()
        self._lock = threading.Lock()

    def count(self, name: str, amount: int = 1) -> None:
        """Increment one counter."""
        with self._lock:
            setattr(self._counters, name, getattr(self._counters, name) + amount)

    def snapshot(self) -> PipelineCounters:
        """Return a copy of the counters."""
        with self._lock:
            return PipelineCounters(
                **{f.name: getattr(self._counters, f.name) for f in fields(PipelineCounters)}
            )


class OverlayWatchdog:
    """Tell the renderer to clear an overlay nobody has refreshed.

    Every completed cycle re-arms a deadline ``hide_timeout_s`` ahead. When the
    deadline passes, the overlay is cleared if no detection was seen for longer
    than the timeout. The detection worker polls it between cycles, so
    ``clear`` is called from the same thread as ``render``.
    """

    def __init__(
        self,
        renderer: RendererProtocol,
        hide_timeout_s: float = 0.3,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Start disarmed, with no detection seen yet."""
        self.renderer = renderer
        self.hide_timeout_s = float(hide_timeout_s)
        self._clock = clock
        self._last_detection: float | None = None
        self._deadline: float | None = None

    def note(self, result: DetectionResult) -> None:
        """Record a completed cycle and re-arm the deadline."""
        now = self._clock()
        if len(result):
            self._last_detection = now
        self._deadline = now + self.hide_timeout_s

    def seconds_until_deadline(self, default: float = 0.1) -> float:
        """Time left before the next check, or ``default`` when disarmed."""
        if self._deadline is None:
            return default
        return max(0.0, self._deadline - self._clock())

    def poll(self) -> bool:
        """Run the check if the deadline has passed."""
        if self._deadline is None or self._clock() < self._deadline:
            return False
        self._deadline = None
        return self.check()

    def check(self) -> bool:
        """Clear the overlay if detections are stale; return whether it did."""
        if self._last_detection is not None:
            idle = self._clock() - self._last_detection
            if idle <= self.hide_timeout_s:
                return False
        self.renderer.clear()
        return True

    def reset(self) -> None:
        """Forget the last detection and disarm."""
        self._last_detection = None
        self._deadline = None


class PipelineCoordinator:
    """Gate frames into the detection chain and run it on a worker thread."""

    def __init__(
        self,
        detector: DetectorProtocol,
        smoother: TemporalSmoother,
        renderer: RendererProtocol,
        config: StabilizerConfig | None = None,
        *,
        perf_tracker: PerformanceTracker | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Assemble the gates around a detector, smoother and renderer."""
        self.config = config or StabilizerConfig()
        self.detector = detector
        self.smoother = smoother
        self.renderer = renderer
        self.state = PipelineState(detector.threshold)
        self.perf = perf_tracker or PerformanceTracker()
        self.last_stats = ""

        self._skip_gate = FrameSkipGate(self.config.frame_skip)
        self._guard = SingleFlightGuard()
        self._channel: FrameChannel[PixelBuffer | np.ndarray] = FrameChannel(1)
        self._admission_lock = threading.Lock()
        self._watchdog = OverlayWatchdog(renderer, self.config.hide_timeout_s, clock)
        self._worker: threading.Thread | None = None

    @property
    def busy(self) -> bool:
        """True while a detection cycle is in flight or about to start."""
        return self._guard.busy

    @property
    def running(self) -> bool:
        """True between ``start`` and ``stop``."""
        return self.state.running.is_set()

    def start(self) -> None:
        """Launch the detection worker."""
        if self.running:
            return
        self.state.running.set()
        self._worker = threading.Thread(
            target=self._run_worker,
            name="detection-worker",
            daemon=True,
        )
        self._worker.start()
        logger.info(
            "Pipeline started (frame skip {}, window {}, hide after {:.0f}ms)",
            self.config.frame_skip,
            self.config.window_size,
            self.config.hide_timeout_s * 1000,
        )

    def submit(self, frame: PixelBuffer | np.ndarray) -> bool:
        """Offer one arriving frame; return whether it entered the detection path."""
        self.state.count("received")
        if not self._skip_gate.admit():
            self.state.count("skipped")
            return False
        if not self._guard.try_acquire():
            self.state.count("dropped")
            return False
        with self._admission_lock:
            # stop() clears the flag under this lock, so a frame sent here is
            # always seen by its drain
            sent = self.running and self._channel.try_send(frame)
        if not sent:
            self._guard.release()
            self.state.count("dropped")
            return False
        return True

    def process(self, frame: PixelBuffer | np.ndarray) -> DetectionResult:
        """Run one complete cycle on ``frame`` and hand the result to the renderer."""
        start = time.perf_counter()
        self.perf.tick_camera()

        failures_before = getattr(self.detector, "failures", 0)
        try:
            frame_rgb = _as_rgb(frame)
        except FrameFormatError as exc:
            logger.warning("Dropping malformed frame: {}", exc)
            self.state.count("failed")
            result = DetectionResult.empty(*_nominal_size(frame))
        else:
            result = self.detector.detect(frame_rgb)
            if getattr(self.detector, "failures", 0) != failures_before:
                self.state.count("failed")

        smoothed = self.smoother.smooth(result)

        elapsed_ms = (time.perf_counter() - start) * 1000
        self.perf.add_inference_time(elapsed_ms)
        self.state.count("processed")

        try:
            self.renderer.render(smoothed)
        except Exception as exc:
            logger.error("Render error: {}", exc)
        self._watchdog.note(smoothed)
        self.last_stats = format_stats(
            smoothed, elapsed_ms, self.perf.get_metrics().camera_fps
        )
        return smoothed

    def _run_worker(self) -> None:
        logger.debug("Detection worker running")
        while self.state.running.is_set():
            frame = self._channel.receive(
                timeout=min(0.1, self._watchdog.seconds_until_deadline())
            )
            if frame is not None:
                try:
                    self.process(frame)
                except Exception as exc:
                    logger.exception("Process error: {}", exc)
                finally:
                    self._guard.release()
            self._poll_watchdog()
        logger.debug("Detection worker exiting")

    def _poll_watchdog(self) -> None:
        try:
            if self._watchdog.poll():
                logger.trace("Overlay cleared after {:.0f}ms idle", self.config.hide_timeout_s * 1000)
        except Exception as exc:
            logger.error("Overlay clear failed: {}", exc)

    def stop(self, timeout: float | None = 5.0) -> None:
        """Stop the worker after any in-flight cycle and release state.

        The cycle in progress, if any, is not interrupted and still reaches
        the renderer.
        """
        with self._admission_lock:
            self.state.running.clear()
        worker, self._worker = self._worker, None
        if worker is not None and worker.is_alive():
            worker.join(timeout=timeout)
            if worker.is_alive():
                logger.warning("Detection worker did not finish within {}s", timeout)
                return

        for _ in range(self._channel.drain()):
            self._guard.release()

        self.smoother.clear()
        self._watchdog.reset()
        try:
            self.renderer.clear()
        except Exception as exc:
            logger.error("Overlay clear failed: {}", exc)

        counters = self.state.snapshot()
        logger.info(
            "Pipeline stopped: {} received, {} skipped, {} dropped, {} processed, {} failed",
            counters.received,
            counters.skipped,
            counters.dropped,
            counters.processed,
            counters.failed,
        )


def _as_rgb(frame: PixelBuffer | np.ndarray) -> np.ndarray:
    if isinstance(frame, PixelBuffer):
        return to_rgb(frame)
    array = np.asarray(frame)
    if array.ndim != 3 or array.shape[2] != 3 or array.size == 0:
        message = f"Expected an (H, W, 3) RGB frame, got {array.shape}"
        raise FrameFormatError(message)
    return array


def _nominal_size(frame: object) -> tuple[int, int]:
    if isinstance(frame, PixelBuffer):
        return max(0, frame.width), max(0, frame.height)
    shape = getattr(frame, "shape", ())
    if len(shape) >= 2:
        return int(shape[1]), int(shape[0])
    return 0, 0


class CaptureWorker:
    """Thread pulling frames from a capture backend and submitting them."""

    def __init__(
        self,
        source: CaptureProtocol,
        coordinator: PipelineCoordinator,
        *,
        layout: PixelLayout = PixelLayout.BGR,
        retry_delay_s: float = 0.01,
    ) -> None:
        """Bind a source to a coordinator; ``layout`` describes its arrays."""
        self.source = source
        self.coordinator = coordinator
        self.layout = layout
        self.retry_delay_s = retry_delay_s
        self.frames_read = 0
        self._running = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def running(self) -> bool:
        """True while the capture loop is active."""
        return self._running.is_set()

    def start(self) -> None:
        """Start reading from the source."""
        if self.running:
            return
        self._running.set()
        self._thread = threading.Thread(
            target=self._run,
            name="capture-worker",
            daemon=True,
        )
        self._thread.start()

    def _run(self) -> None:
        while self._running.is_set():
            ok, frame = self.source.read()
            if not ok or frame is None:
                if not self.source.is_opened():
                    logger.info("Frame source closed")
                    break
                logger.trace("Failed to grab frame")
                time.sleep(self.retry_delay_s)
                continue

            self.frames_read += 1
            if isinstance(frame, np.ndarray):
                try:
                    frame = PixelBuffer.from_array(frame, self.layout)
                except FrameFormatError as exc:
                    logger.warning("Unusable frame from source: {}", exc)
                    continue
            self.coordinator.submit(frame)
        self._running.clear()

    def join(self, timeout: float | None = None) -> None:
        """Wait for the capture loop to end on its own."""
        if self._thread is not None:
            self._thread.join(timeout=timeout)

    def stop(self, timeout: float | None = 2.0) -> None:
        """Stop reading; the source itself is released by its owner."""
        self._running.clear()
        self.join(timeout)
        self._thread = None
