"""
Configuration models for addon-sync.

Handles registry file naming, path classification rules, watcher timing
and the maintenance script setup.
"""

from typing import List, Optional
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


# Directories whose contents never touch a registry
DEFAULT_IGNORED_DIRECTORIES = {
    'node_modules', '.git', '__pycache__', '.pytest_cache',
    '.venv', 'venv', 'build', 'dist', '.cache', 'target',
    '.svn', '.hg', '.mypy_cache', '.tox', '.idea', '.vscode',
    'coverage', '.coverage', '.ruff_cache'
}


class SyncSettings(BaseSettings):
    """Synchronization settings with environment variable support"""
    model_config = SettingsConfigDict(
        env_prefix="ADDON_SYNC_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        validate_assignment=True
    )

    # Registry documents
    manifest_filename: str = "__manifest__.py"
    index_filename: str = "__init__.py"
    manifest_list_key: str = "data"
    entry_indent: int = Field(default=8, ge=0, le=32)

    # Path classification
    manifest_extensions: List[str] = Field(default_factory=lambda: [".xml"])
    module_extension: str = ".py"
    ignored_directories: List[str] = Field(
        default_factory=lambda: sorted(DEFAULT_IGNORED_DIRECTORIES)
    )

    # Relaxed policy creates a missing __init__.py for new modules
    create_missing_index: bool = False

    # Timing
    batch_window_ms: int = Field(default=100, ge=0, le=10000)
    maintenance_delay_ms: int = Field(default=1000, ge=0, le=60000)

    # Maintenance
    maintenance_script: str = "set_permissions.sh"
    restart_command: Optional[str] = None

    # Logging
    log_level: str = Field(default="INFO", pattern="^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$")

    @field_validator('manifest_extensions')
    @classmethod
    def validate_manifest_extensions(cls, v: List[str]) -> List[str]:
        """Normalize extensions to lowercase with a leading dot"""
        normalized = []
        for ext in v:
            ext = ext.strip().lower()
            if not ext.startswith('.'):
                raise ValueError(f'Extension must start with a dot: {ext!r}')
            if ext not in normalized:
                normalized.append(ext)
        return normalized

    @field_validator('module_extension')
    @classmethod
    def validate_module_extension(cls, v: str) -> str:
        if not v.startswith('.'):
            raise ValueError(f'Extension must start with a dot: {v!r}')
        return v.lower()

    @field_validator('manifest_filename', 'index_filename', 'maintenance_script')
    @classmethod
    def validate_plain_filename(cls, v: str) -> str:
        """Registry and script names are looked up inside one directory"""
        if not v or '/' in v or '\\' in v:
            raise ValueError(f'Expected a plain file name, got {v!r}')
        return v

    @field_validator('restart_command')
    @classmethod
    def validate_restart_command(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not v.strip():
            return None
        return v

    @property
    def batch_window_seconds(self) -> float:
        return self.batch_window_ms / 1000.0

    @property
    def maintenance_delay_seconds(self) -> float:
        return self.maintenance_delay_ms / 1000.0
