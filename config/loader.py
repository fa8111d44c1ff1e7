"""
Settings loading for addon-sync.

Resolves SyncSettings for a project root: built-in defaults, then the
environment (process variables and an optional project `.env` file), then
explicit overrides such as command line options.
"""

from pathlib import Path
from typing import Any, Dict, Optional, Union
import logging

from pydantic import ValidationError

from core.models.config import SyncSettings
from .defaults import get_default_settings

logger = logging.getLogger(__name__)


class ConfigurationLoader:
    """Load and cache synchronization settings per project root"""

    ENV_FILENAME = ".env"

    def __init__(self):
        self.config_cache: Dict[str, SyncSettings] = {}

    def load_settings(
        self,
        project_path: Union[str, Path],
        overrides: Optional[Dict[str, Any]] = None
    ) -> SyncSettings:
        """Load settings for a project, applying non-None overrides last"""
        project_path = Path(project_path).resolve()
        overrides = {k: v for k, v in (overrides or {}).items() if v is not None}

        cache_key = str(project_path)
        if not overrides and cache_key in self.config_cache:
            return self.config_cache[cache_key]

        env_file = project_path / self.ENV_FILENAME
        try:
            settings = SyncSettings(
                _env_file=env_file if env_file.is_file() else None,
                **overrides
            )
        except ValidationError as e:
            logger.error(f"Invalid settings for {project_path}: {e}")
            raise

        if not overrides:
            self.config_cache[cache_key] = settings

        changed = self.describe_overrides(settings)
        if changed:
            logger.debug(f"Non-default settings for {project_path}: {changed}")
        return settings

    def describe_overrides(self, settings: SyncSettings) -> Dict[str, Any]:
        """Return the settings whose value differs from the built-in default"""
        defaults = get_default_settings()
        current = settings.model_dump()
        return {
            key: value
            for key, value in current.items()
            if key in defaults and defaults[key] != value
        }

    def clear_cache(self) -> None:
        self.config_cache.clear()
