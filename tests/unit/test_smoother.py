"""Unit tests for temporal smoothing."""

import threading

import pytest

from steadybox.pipeline.stabilization import TemporalSmoother
from steadybox.pipeline.types import Detection, DetectionResult


WIDTH, HEIGHT = 640, 480


def _frame(*dets):
    return DetectionResult(dets, WIDTH, HEIGHT)


class TestSmootherPassthrough:
    """Behaviour before there is enough history."""

    def test_first_frame_is_identity(self):
        """With one frame of history the input comes back unchanged."""
        smoother = TemporalSmoother(5)
        result = _frame(Detection(10.0, 10.0, 50.0, 50.0, 0.3))

        assert smoother.smooth(result) is result
        assert smoother.history_length == 1

    def test_zero_size_frame_passes_through(self):
        """Frames without a size are not smoothed."""
        smoother = TemporalSmoother(5)
        smoother.smooth(_frame())
        empty = DetectionResult.empty()

        assert smoother.smooth(empty) is empty

    def test_empty_newest_frame(self):
        """An empty frame smooths to an empty frame."""
        smoother = TemporalSmoother(5)
        smoother.smooth(_frame(Detection(10.0, 10.0, 50.0, 50.0, 0.9)))

        out = smoother.smooth(_frame())

        assert len(out) == 0
        assert (out.image_width, out.image_height) == (WIDTH, HEIGHT)


class TestSmootherMerge:
    """Merging corroborated detections."""

    def test_merges_with_three_prior_frames(self):
        """Three nearby priors plus the new box give the mean of all four."""
        smoother = TemporalSmoother(5)
        priors = [
            Detection(100.0, 100.0, 200.0, 200.0, 0.8),
            Detection(104.0, 98.0, 204.0, 198.0, 0.6),
            Detection(96.0, 103.0, 196.0, 203.0, 0.7),
        ]
        for det in priors:
            smoother.smooth(_frame(det))
        new = Detection(108.0, 107.0, 208.0, 207.0, 0.5)

        out = smoother.smooth(_frame(new))

        assert len(out) == 1
        (merged,) = out.detections
        everything = [*priors, new]
        assert merged.x1 == pytest.approx(sum(d.x1 for d in everything) / 4)
        assert merged.y1 == pytest.approx(sum(d.y1 for d in everything) / 4)
        assert merged.x2 == pytest.approx(sum(d.x2 for d in everything) / 4)
        assert merged.y2 == pytest.approx(sum(d.y2 for d in everything) / 4)
        assert merged.confidence == pytest.approx(0.65)
        assert merged.class_id == 0

    def test_two_occurrences_are_enough(self):
        """One corroborating neighbour meets the minimum of two."""
        smoother = TemporalSmoother(5)
        smoother.smooth(_frame(Detection(0.0, 0.0, 40.0, 40.0, 0.2)))

        out = smoother.smooth(_frame(Detection(10.0, 10.0, 50.0, 50.0, 0.4)))

        assert len(out) == 1
        assert out.detections[0].x1 == pytest.approx(5.0)
        assert out.detections[0].confidence == pytest.approx(0.3)

    def test_collection_capped_at_window(self):
        """At most window_size matches are averaged, the new box among them."""
        smoother = TemporalSmoother(3)
        smoother.smooth(
            _frame(
                Detection(100.0, 100.0, 120.0, 120.0, 0.9),
                Detection(102.0, 102.0, 122.0, 122.0, 0.9),
                Detection(104.0, 104.0, 124.0, 124.0, 0.9),
                Detection(106.0, 106.0, 126.0, 126.0, 0.9),
            )
        )

        out = smoother.smooth(_frame(Detection(100.0, 100.0, 120.0, 120.0, 0.3)))

        # the new box plus the first two priors fill the window
        assert len(out) == 1
        assert out.detections[0].x1 == pytest.approx((100.0 + 100.0 + 102.0) / 3)
        assert out.detections[0].confidence == pytest.approx(0.7)

    def test_crowded_window_includes_new_detection(self):
        """Plenty of nearby priors never push the new box out of its own mean."""
        smoother = TemporalSmoother(5)
        smoother.smooth(
            _frame(
                *(
                    Detection(100.0 + 2 * i, 100.0, 120.0 + 2 * i, 120.0, 0.9)
                    for i in range(5)
                )
            )
        )

        out = smoother.smooth(_frame(Detection(100.0, 100.0, 120.0, 120.0, 0.3)))

        (merged,) = out.detections
        assert merged.confidence == pytest.approx((0.3 + 4 * 0.9) / 5)
        assert merged.x1 == pytest.approx((100.0 + 100.0 + 102.0 + 104.0 + 106.0) / 5)

    def test_merges_across_cell_border(self):
        """A prior in the neighbouring grid cell still corroborates."""
        # 32 cells over 640 pixels are 20 wide: x=59 is in column 2, x=61 in column 3
        smoother = TemporalSmoother(5)
        smoother.smooth(_frame(Detection(49.0, 20.0, 69.0, 40.0, 0.2)))

        out = smoother.smooth(_frame(Detection(51.0, 20.0, 71.0, 40.0, 0.4)))

        (merged,) = out.detections
        assert merged.x1 == pytest.approx(50.0)
        assert merged.x2 == pytest.approx(70.0)
        assert merged.confidence == pytest.approx(0.3)

    def test_far_detections_do_not_merge(self):
        """Priors beyond the match radius are not collected."""
        smoother = TemporalSmoother(5)
        smoother.smooth(_frame(Detection(300.0, 300.0, 340.0, 340.0, 0.9)))
        new = Detection(10.0, 10.0, 50.0, 50.0, 0.9)

        out = smoother.smooth(_frame(new))

        assert out.detections == (new,)

    def test_radius_is_strict(self):
        """Centers exactly match_radius apart do not match."""
        smoother = TemporalSmoother(5, grid_size=4, match_radius=50.0)
        smoother.smooth(_frame(Detection(50.0, 0.0, 70.0, 20.0, 0.9)))

        out = smoother.smooth(_frame(Detection(100.0, 0.0, 120.0, 20.0, 0.3)))

        assert len(out) == 0


class TestSmootherDrop:
    """Uncorroborated detections."""

    def test_weak_isolated_detection_dropped(self):
        """A lone 0.3 detection is removed."""
        smoother = TemporalSmoother(5)
        smoother.smooth(_frame())

        out = smoother.smooth(_frame(Detection(10.0, 10.0, 50.0, 50.0, 0.3)))

        assert len(out) == 0

    def test_strong_isolated_detection_kept(self):
        """A lone detection above 0.5 is emitted unchanged."""
        smoother = TemporalSmoother(5)
        smoother.smooth(_frame())
        det = Detection(10.0, 10.0, 50.0, 50.0, 0.51)

        out = smoother.smooth(_frame(det))

        assert out.detections == (det,)

    def test_exactly_strong_confidence_dropped(self):
        """The strong-confidence gate is strict."""
        smoother = TemporalSmoother(5)
        smoother.smooth(_frame())

        out = smoother.smooth(_frame(Detection(10.0, 10.0, 50.0, 50.0, 0.5)))

        assert len(out) == 0

    def test_window_size_one_keeps_everything(self):
        """With W=1 the history never holds two frames, so frames pass through."""
        smoother = TemporalSmoother(1)
        smoother.smooth(_frame())
        det = Detection(10.0, 10.0, 50.0, 50.0, 0.1)

        out = smoother.smooth(_frame(det))

        assert out.detections == (det,)
        assert smoother.history_length == 1


class TestSmootherHistory:
    """History window handling."""

    def test_window_slides(self):
        """Only the newest window_size frames are retained."""
        smoother = TemporalSmoother(3)
        for _ in range(10):
            smoother.smooth(_frame())

        assert smoother.history_length == 3

    def test_old_frames_fall_out(self):
        """A detection older than the window no longer corroborates."""
        smoother = TemporalSmoother(2)
        smoother.smooth(_frame(Detection(10.0, 10.0, 50.0, 50.0, 0.9)))
        smoother.smooth(_frame())
        smoother.smooth(_frame())

        out = smoother.smooth(_frame(Detection(12.0, 12.0, 52.0, 52.0, 0.3)))

        assert len(out) == 0

    def test_clear(self):
        """clear forgets all frames."""
        smoother = TemporalSmoother(5)
        smoother.smooth(_frame())
        smoother.smooth(_frame())
        smoother.clear()

        result = _frame(Detection(10.0, 10.0, 50.0, 50.0, 0.3))
        assert smoother.smooth(result) is result

    def test_concurrent_calls_are_serialised(self):
        """Parallel callers never corrupt the window."""
        smoother = TemporalSmoother(5)
        errors = []

        def worker():
            try:
                for i in range(200):
                    x = float(i % 50)
                    smoother.smooth(_frame(Detection(x, x, x + 30.0, x + 30.0, 0.6)))
            except Exception as exc:
                errors.append(exc)

        threads = [threading.Thread(target=worker) for _ in range(4)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert errors == []
        assert smoother.history_length == 5
