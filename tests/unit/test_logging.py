"""Unit tests for logging configuration."""

from __future__ import annotations

from typing import TYPE_CHECKING

from loguru import logger

from steadybox.pipeline.logging import configure_logging


if TYPE_CHECKING:
    from pathlib import Path

    import pytest


def test_file_sink_written(tmp_path: Path) -> None:
    """Messages reach the daily log file."""
    configure_logging("DEBUG", str(tmp_path))
    logger.info("pipeline started")
    logger.complete()
    logger.remove()

    files = list(tmp_path.glob("steadybox_*.log"))
    assert len(files) == 1
    assert "pipeline started" in files[0].read_text()


def test_json_sink(tmp_path: Path) -> None:
    """json_logs adds a serialized sink next to the text log."""
    configure_logging("INFO", str(tmp_path), json_logs=True)
    logger.info("hello")
    logger.complete()
    logger.remove()

    (json_file,) = tmp_path.glob("steadybox_*.jsonl")
    assert '"message": "hello"' in json_file.read_text()


def test_env_overrides_level(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """STEADYBOX_LOG_LEVEL wins over the argument."""
    monkeypatch.setenv("STEADYBOX_LOG_LEVEL", "warning")
    configure_logging("DEBUG", str(tmp_path))
    logger.info("hidden")
    logger.warning("shown")
    logger.complete()
    logger.remove()

    text = next(tmp_path.glob("steadybox_*.log")).read_text()
    assert "hidden" not in text
    assert "shown" in text
