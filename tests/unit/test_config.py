"""
Unit tests for settings and logging setup
"""

import logging

import pytest

from tiled_inference.common import Settings, setup_logging
from tiled_inference.merging import MergeOptions


class TestSettings:
    """Test application settings"""

    def test_defaults(self):
        """Test default values"""
        config = Settings()
        assert config.network_width == 640
        assert config.network_height == 640
        assert config.min_padding == 32
        assert config.merge_min_iou == 0.5
        assert config.merge_different_classes is False
        assert config.log_file is None

    def test_environment_override(self, monkeypatch):
        """Test values are read from the environment"""
        monkeypatch.setenv("MIN_PADDING", "16")
        monkeypatch.setenv("MERGE_DIFFERENT_CLASSES", "true")
        config = Settings()
        assert config.min_padding == 16
        assert config.merge_different_classes is True

    def test_log_level_normalized(self):
        """Test log level names are upper-cased"""
        assert Settings(log_level="debug").log_level == "DEBUG"

    def test_invalid_log_level(self):
        """Test unknown log level"""
        with pytest.raises(ValueError):
            Settings(log_level="verbose")

    def test_merge_options_from_settings(self):
        """Test options built from the global settings"""
        options = MergeOptions.from_settings()
        assert options == MergeOptions.default()


class TestSetupLogging:
    """Test logging configuration"""

    def test_returns_package_logger(self):
        """Test the package logger is returned"""
        logger = setup_logging(Settings(log_level="debug"))
        assert isinstance(logger, logging.Logger)
        assert logger.name == "tiled_inference"

    def test_log_file_directory_created(self, tmp_path):
        """Test the log directory is created"""
        log_file = tmp_path / "logs" / "tiled.log"
        setup_logging(Settings(log_file=str(log_file)))
        assert log_file.parent.exists()
