"""Unit tests for the per-frame detector and preprocessing."""

from __future__ import annotations

from unittest.mock import Mock

import numpy as np
import pytest

from steadybox.detector.engine import Detector, build_threshold, coerce_output
from steadybox.detector.preprocess import infer_input_size, preprocess
from steadybox.errors import FrameFormatError, InferenceError
from steadybox.pipeline.config import StabilizerConfig


def _raw(rows):
    data = np.array(rows, dtype=np.float32).reshape(-1, 5).T
    return data[np.newaxis, ...]


def _frame(width=640, height=480):
    return np.zeros((height, width, 3), dtype=np.uint8)


class TestPreprocess:
    """Tests for preprocess and infer_input_size."""

    def test_blob_shape_and_range(self):
        """Frames become a normalised [1, 3, S, S] float32 blob."""
        frame = np.full((480, 640, 3), 255, dtype=np.uint8)

        blob = preprocess(frame, 320)

        assert blob.shape == (1, 3, 320, 320)
        assert blob.dtype == np.float32
        assert blob.max() == pytest.approx(1.0)

    def test_channels_first(self):
        """Channel planes keep their order."""
        frame = np.zeros((64, 64, 3), dtype=np.uint8)
        frame[..., 0] = 255

        blob = preprocess(frame, 32)

        assert blob[0, 0].min() == pytest.approx(1.0)
        assert blob[0, 1].max() == 0.0

    @pytest.mark.parametrize(
        "frame",
        [np.zeros((10, 10), dtype=np.uint8), np.zeros((0, 10, 3), dtype=np.uint8)],
    )
    def test_bad_frame(self, frame):
        """Non-RGB or empty frames are rejected."""
        with pytest.raises(FrameFormatError):
            preprocess(frame)

    @pytest.mark.parametrize(
        ("shape", "expected"),
        [
            ([1, 3, 320, 320], 320),
            ([1, 3, "h", "w"], 640),
            ([1, 3, 320, 640], 640),
            (None, 640),
        ],
    )
    def test_infer_input_size(self, shape, expected):
        """Only a static square input overrides the default."""
        assert infer_input_size(shape) == expected


class TestCoerceOutput:
    """Tests for coerce_output."""

    def test_first_of_sequence(self):
        """Multi-output engines contribute their first tensor."""
        tensor = np.zeros((1, 5, 3), dtype=np.float32)

        assert coerce_output([tensor, np.zeros(2)]) is not None
        assert coerce_output((tensor,)).shape == (1, 5, 3)

    @pytest.mark.parametrize("outputs", [[], np.zeros((1, 4, 3)), np.zeros((5, 3))])
    def test_malformed(self, outputs):
        """Missing or wrongly shaped outputs raise InferenceError."""
        with pytest.raises(InferenceError):
            coerce_output(outputs)


class TestDetector:
    """Tests for Detector.detect."""

    def test_detects_in_frame_space(self):
        """Boxes are decoded into the frame's pixel space."""
        infer = Mock(return_value=_raw([(320, 320, 64, 64, 0.9)]))
        detector = Detector(infer)

        result = detector.detect(_frame(1280, 720))

        infer.assert_called_once()
        assert infer.call_args.args[0].shape == (1, 3, 640, 640)
        assert len(result) == 1
        assert (result.image_width, result.image_height) == (1280, 720)
        assert result.detections[0].x1 == pytest.approx(576.0)

    def test_end_to_end_overlapping_triplet(self):
        """Three near-identical boxes yield only the 0.9 one."""
        infer = Mock(
            return_value=_raw(
                [
                    (300, 300, 100, 100, 0.3),
                    (302, 301, 100, 100, 0.9),
                    (298, 303, 100, 100, 0.6),
                ]
            )
        )

        result = Detector(infer).detect(_frame(640, 640))

        assert len(result) == 1
        assert result.detections[0].confidence == pytest.approx(0.9)
        assert result.detections[0].center_x == pytest.approx(302.0)

    def test_inference_exception_gives_empty_result(self):
        """Engine failures are contained."""
        infer = Mock(side_effect=RuntimeError("device lost"))
        detector = Detector(infer)

        result = detector.detect(_frame())

        assert len(result) == 0
        assert (result.image_width, result.image_height) == (640, 480)
        assert detector.failures == 1

    def test_malformed_output_gives_empty_result(self):
        """A wrongly shaped tensor is treated like a failure."""
        detector = Detector(Mock(return_value=np.zeros((1, 7, 10))))

        assert len(detector.detect(_frame())) == 0
        assert detector.failures == 1

    def test_bad_frame_gives_empty_result(self):
        """A frame that cannot be preprocessed does not reach the engine."""
        infer = Mock()
        detector = Detector(infer)

        result = detector.detect(np.zeros((0, 0, 3), dtype=np.uint8))

        assert len(result) == 0
        infer.assert_not_called()

    def test_threshold_follows_scene_density(self):
        """A dense frame raises the threshold used for the next frame."""
        rows = [(20 + i * 25, 100, 10, 10, 0.9) for i in range(24)]
        detector = Detector(Mock(return_value=_raw(rows)))

        detector.detect(_frame(640, 640))

        assert detector.threshold.value == pytest.approx(0.26)

    def test_threshold_untouched_on_failure(self):
        """Failed frames do not feed the controller."""
        detector = Detector(Mock(side_effect=RuntimeError("boom")))
        detector.threshold.update(30)

        detector.detect(_frame())

        assert detector.threshold.value == pytest.approx(0.26)

    def test_raised_threshold_applies_to_next_frame(self):
        """A candidate that passed at 0.25 is rejected once the cutoff rose."""
        detector = Detector(Mock(return_value=_raw([(100, 100, 20, 20, 0.255)])))

        assert len(detector.detect(_frame(640, 640))) == 1

        detector.threshold.update(30)
        assert len(detector.detect(_frame(640, 640))) == 0

    def test_build_threshold_from_config(self):
        """Controller limits come from the config."""
        config = StabilizerConfig(
            base_threshold=0.1,
            max_threshold=0.2,
            threshold_step=0.05,
            dense_scene_count=3,
            sparse_scene_count=1,
        )

        threshold = build_threshold(config)

        assert threshold.value == pytest.approx(0.1)
        assert threshold.update(4) == pytest.approx(0.15)
        assert threshold.update(4) == pytest.approx(0.2)
        assert threshold.update(4) == pytest.approx(0.2)
