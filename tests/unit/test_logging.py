"""
Unit tests for logging setup.

Tests cover:
- File sink receives records at the configured level
- Lower levels are filtered out
"""

from loguru import logger

from mlm_engine.utils.logging import setup_logging


class TestSetupLogging:
    """Test loguru sink configuration."""

    def test_file_sink(self, tmp_path):
        log_file = tmp_path / "engine.log"
        setup_logging(level="INFO", log_file=str(log_file))

        logger.debug("hidden debug line")
        logger.info("commission pass finished")
        logger.complete()
        logger.remove()

        content = log_file.read_text(encoding="utf-8")
        assert "commission pass finished" in content
        assert "hidden debug line" not in content

    def test_stderr_only(self, capsys):
        setup_logging(level="WARNING")

        logger.warning("placement rejected")
        logger.info("quiet")
        logger.remove()

        captured = capsys.readouterr()
        assert "placement rejected" in captured.err
        assert "quiet" not in captured.err
