"""Unit tests for frame sources."""

from unittest.mock import MagicMock, patch

import numpy as np
import pytest

from steadybox.errors import PipelineInitError
from steadybox.pipeline.capture import OpenCVCapture, ReplayCapture, open_capture
from steadybox.pipeline.types import CameraConfig


def _frames(count):
    return [np.full((4, 6, 3), i, dtype=np.uint8) for i in range(count)]


class TestReplayCapture:
    """Tests for ReplayCapture."""

    def test_serves_frames_in_order_then_closes(self):
        """Frames come back once each, then the replay reports closed."""
        capture = ReplayCapture(_frames(3))
        assert capture.open()

        values = [int(capture.read()[1][0, 0, 0]) for _ in range(3)]

        assert values == [0, 1, 2]
        assert capture.read() == (False, None)
        assert not capture.is_opened()

    def test_loop(self):
        """Looping replays restart from the first frame."""
        capture = ReplayCapture(_frames(2), loop=True)
        capture.open()

        values = [int(capture.read()[1][0, 0, 0]) for _ in range(5)]

        assert values == [0, 1, 0, 1, 0]
        assert capture.is_opened()

    def test_read_before_open(self):
        """An unopened replay yields nothing."""
        assert ReplayCapture(_frames(1)).read() == (False, None)

    def test_empty_replay_does_not_open(self):
        """No frames means no source."""
        assert not ReplayCapture([]).open()

    def test_info(self):
        """get_info reports the frame geometry."""
        info = ReplayCapture(_frames(2), fps=15).get_info()

        assert info["backend"] == "Replay"
        assert (info["width"], info["height"]) == (6, 4)
        assert info["fps"] == 15.0


class TestOpenCVCapture:
    """Tests for OpenCVCapture with a mocked cv2.VideoCapture."""

    @patch("steadybox.pipeline.capture.opencv.cv2")
    def test_device_is_configured(self, mock_cv2):
        """Camera indices get resolution and FPS applied."""
        cap = MagicMock()
        cap.isOpened.return_value = True
        cap.get.return_value = 30
        mock_cv2.VideoCapture.return_value = cap

        capture = OpenCVCapture(CameraConfig(source=1, width=640, height=480, fps=30))

        assert capture.open()
        assert capture.is_device
        cap.set.assert_any_call(mock_cv2.CAP_PROP_FRAME_WIDTH, 640)
        cap.set.assert_any_call(mock_cv2.CAP_PROP_FRAME_HEIGHT, 480)

    @patch("steadybox.pipeline.capture.opencv.cv2")
    def test_file_is_not_configured_and_closes_at_end(self, mock_cv2):
        """Files keep their own geometry and release at end of stream."""
        cap = MagicMock()
        cap.isOpened.return_value = True
        cap.get.return_value = 25
        cap.read.return_value = (False, None)
        mock_cv2.VideoCapture.return_value = cap

        capture = OpenCVCapture(CameraConfig(source="clip.mp4"))
        capture.open()

        assert not capture.is_device
        cap.set.assert_not_called()
        assert capture.read() == (False, None)
        cap.release.assert_called_once()
        assert not capture.is_opened()

    @patch("steadybox.pipeline.capture.opencv.cv2")
    def test_open_failure(self, mock_cv2):
        """A source that does not open leaves the capture closed."""
        mock_cv2.VideoCapture.return_value.isOpened.return_value = False

        capture = OpenCVCapture(CameraConfig(source=0))

        assert not capture.open()
        assert capture.read() == (False, None)

    @patch("steadybox.pipeline.capture.core.OpenCVCapture")
    def test_open_capture_raises_on_failure(self, mock_capture_cls):
        """open_capture turns a failed open into a startup error."""
        mock_capture_cls.return_value.open.return_value = False

        with pytest.raises(PipelineInitError):
            open_capture(CameraConfig(source=3))
