"""
Tests for settings loading and the logger built from them.

Run with: python -m pytest tests/test_settings.py -v
"""

import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from shelfsync.config import Settings
from shelfsync.services import logger as logger_module

ENV_EXAMPLE = Path(__file__).parent.parent / ".env.example"


class TestEnvFile:

    def setup_method(self):
        self.previous_logger = logger_module._logger
        logger_module._logger = None

    def teardown_method(self):
        logger_module._logger = self.previous_logger

    def test_env_example_loads(self):
        """Every key in the shipped example is a known setting."""
        settings = Settings(_env_file=ENV_EXAMPLE)

        assert settings.firebase_project_id == "my-library-app"
        assert settings.autosave_delay_seconds == 2.0
        assert settings.backup_page_size == 10
        assert settings.debug_mode is False

    def test_debug_mode_from_env_file(self, tmp_path):
        env_file = tmp_path / ".env"
        env_file.write_text("DEBUG_MODE=true\n", encoding="utf-8")

        settings = Settings(_env_file=env_file)

        assert settings.debug_mode is True
        assert logger_module.get_logger(settings).debug_mode is True

    def test_init_logger_follows_settings(self):
        settings = Settings(debug_mode=True)
        assert logger_module.init_logger(settings=settings).debug_mode is True
        assert logger_module.init_logger(debug_mode=False, settings=settings).debug_mode is False
