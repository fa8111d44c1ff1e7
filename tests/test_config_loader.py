"""
Unit tests for configuration loader functionality.

Tests override precedence, the project `.env` file, caching and the
non-default settings report.
"""

import pytest
import tempfile
from pathlib import Path

from pydantic import ValidationError

from config.loader import ConfigurationLoader
from core.models.config import SyncSettings


class TestConfigurationLoader:
    """Test ConfigurationLoader functionality"""

    def setup_method(self):
        """Setup test environment"""
        self.temp_dir = tempfile.mkdtemp()
        self.temp_path = Path(self.temp_dir)
        self.loader = ConfigurationLoader()

    def teardown_method(self):
        """Cleanup test environment"""
        import shutil
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    def test_load_defaults(self):
        settings = self.loader.load_settings(self.temp_path)

        assert isinstance(settings, SyncSettings)
        assert settings.create_missing_index is False
        assert self.loader.describe_overrides(settings) == {}

    def test_overrides_applied_and_none_ignored(self):
        settings = self.loader.load_settings(
            self.temp_path,
            {"create_missing_index": True, "restart_command": None, "log_level": "DEBUG"}
        )

        assert settings.create_missing_index is True
        assert settings.restart_command is None
        assert settings.log_level == "DEBUG"
        assert self.loader.describe_overrides(settings) == {
            "create_missing_index": True,
            "log_level": "DEBUG",
        }

    def test_project_env_file(self):
        (self.temp_path / ".env").write_text(
            "ADDON_SYNC_MAINTENANCE_DELAY_MS=2500\nADDON_SYNC_ENTRY_INDENT=4\n"
        )

        settings = self.loader.load_settings(self.temp_path)

        assert settings.maintenance_delay_ms == 2500
        assert settings.entry_indent == 4

    def test_overrides_beat_env_file(self, monkeypatch):
        monkeypatch.setenv("ADDON_SYNC_CREATE_MISSING_INDEX", "true")

        settings = self.loader.load_settings(self.temp_path, {"create_missing_index": False})

        assert settings.create_missing_index is False

    def test_cache(self):
        first = self.loader.load_settings(self.temp_path)
        second = self.loader.load_settings(self.temp_path)
        assert first is second

        overridden = self.loader.load_settings(self.temp_path, {"entry_indent": 2})
        assert overridden is not first
        assert self.loader.load_settings(self.temp_path) is first

        self.loader.clear_cache()
        assert self.loader.load_settings(self.temp_path) is not first

    def test_invalid_override_raises(self):
        with pytest.raises(ValidationError):
            self.loader.load_settings(self.temp_path, {"manifest_extensions": ["xml"]})

        assert self.loader.config_cache == {}
