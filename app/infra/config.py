"""
Configuration management using Pydantic Settings.

Architecture Decision: Why pydantic-settings?
- Type-safe configuration with validation
- Supports multiple sources (YAML, env vars, defaults)
- Easy to test with different configurations

User-facing preferences (daily target, Pomodoro durations, export URL) live in
the database settings table; this module only covers process-level options.
"""

import os
from pathlib import Path
from typing import Optional, Dict, Any
import yaml

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

ENV_PREFIX = 'WORKFLOW_'
APP_NAME = "Workflow"


def _default_dir(kind: str, app_name: str = APP_NAME) -> Path:
    """Per-user config or data directory based on OS"""
    if os.name == 'nt':  # Windows
        base = Path(os.getenv('APPDATA'))
    elif kind == 'config':  # Linux/Mac
        base = Path.home() / '.config'
    else:
        base = Path.home() / '.local' / 'share'
    return base / app_name.lower()


def _read_yaml_config(config_dir: Optional[Path]) -> Dict[str, Any]:
    """Load configuration from YAML file, skipping keys set in the environment"""
    # First check in workspace config folder
    config_file = Path("config/settings.yaml")
    if not config_file.exists():
        # Then check in user's config directory
        config_file = Path(config_dir or _default_dir('config')) / "settings.yaml"

    if not config_file.exists():
        return {}

    with open(config_file, 'r', encoding='utf-8') as f:
        config_data = yaml.safe_load(f) or {}

    return {
        key: value for key, value in config_data.items()
        if os.getenv(f"{ENV_PREFIX}{key.upper()}") is None
    }


class AppConfig(BaseSettings):
    """
    Application configuration with multiple sources:
    1. Default values (hardcoded)
    2. YAML config file
    3. Environment variables (highest priority)
    Explicit keyword arguments override all of them.
    """
    model_config = SettingsConfigDict(
        env_prefix=ENV_PREFIX,
        env_file='.env',
        env_file_encoding='utf-8',
        extra='ignore'
    )

    # Application paths
    app_name: str = APP_NAME
    config_dir: Optional[Path] = None
    data_dir: Optional[Path] = None

    # Database
    database_url: Optional[str] = None

    # Logging
    log_level: str = "INFO"

    # Day-end export transport
    export_timeout_seconds: float = Field(default=30.0, gt=0)
    export_max_redirects: int = Field(default=5, ge=0)

    def __init__(self, **kwargs):
        yaml_data = _read_yaml_config(kwargs.get('config_dir'))
        super().__init__(**{**yaml_data, **kwargs})
        self._init_paths()

    def _init_paths(self):
        """Initialize default paths and create them if needed"""
        if self.config_dir is None:
            self.config_dir = _default_dir('config', self.app_name)
        if self.data_dir is None:
            self.data_dir = _default_dir('data', self.app_name)

        self.config_dir.mkdir(parents=True, exist_ok=True)
        self.data_dir.mkdir(parents=True, exist_ok=True)

    def get_db_url(self) -> str:
        """Get database URL, creating default if not set"""
        if self.database_url:
            return self.database_url

        db_path = self.data_dir / 'krono.db'
        return f"sqlite+aiosqlite:///{db_path}"


# Process-wide instance for the entry point and scripts
_config: Optional[AppConfig] = None


def get_config() -> AppConfig:
    """Get the global config instance"""
    global _config
    if _config is None:
        _config = AppConfig()
    return _config


def reload_config() -> AppConfig:
    """Reload config from environment and file"""
    global _config
    _config = AppConfig()
    return _config
