"""
Default configuration values for addon-sync.

Centralized defaults that can be overridden by environment variables or
command line options.
"""

from typing import Any, Dict

from core.models.config import DEFAULT_IGNORED_DIRECTORIES

# Global default settings
DEFAULT_SETTINGS: Dict[str, Any] = {
    # Registry documents
    "registry": {
        "manifest_filename": "__manifest__.py",
        "index_filename": "__init__.py",
        "manifest_list_key": "data",
        "entry_indent": 8
    },

    # Path classification
    "classification": {
        "manifest_extensions": [".xml"],
        "module_extension": ".py",
        "ignored_directories": sorted(DEFAULT_IGNORED_DIRECTORIES)
    },

    # Index creation policy
    "policy": {
        "create_missing_index": False
    },

    # Watcher timing
    "timing": {
        "batch_window_ms": 100,
        "maintenance_delay_ms": 1000
    },

    # Maintenance script
    "maintenance": {
        "maintenance_script": "set_permissions.sh",
        "restart_command": None
    },

    # Logging
    "logging": {
        "log_level": "INFO"
    }
}


def get_default_settings() -> Dict[str, Any]:
    """Flatten DEFAULT_SETTINGS into SyncSettings keyword arguments"""
    flat: Dict[str, Any] = {}
    for section in DEFAULT_SETTINGS.values():
        for key, value in section.items():
            flat[key] = list(value) if isinstance(value, list) else value
    return flat
