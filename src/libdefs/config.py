"""Configuration loading.

Settings are loaded in priority order (highest first):
  1. Constructor arguments
  2. Environment variables  (LIBDEFS__MIRROR__EXPIRY_SECONDS=3600)
  3. libdefs.yaml           (searched in cwd, then the platform config dir)
  4. Hardcoded defaults

The config file is optional — all fields have sensible defaults.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Literal

import platformdirs
from pydantic import BaseModel, ConfigDict
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    YamlConfigSettingsSource,
)

_DEFAULT_CACHE_DIR = platformdirs.user_cache_dir("libdefs")


def _find_config_file() -> str | None:
    """Return the path of the first libdefs.yaml found, or None."""
    candidates = [
        Path("libdefs.yaml"),
        Path(platformdirs.user_config_dir("libdefs")) / "libdefs.yaml",
    ]
    for path in candidates:
        if path.exists():
            return str(path)
    return None


class MirrorSettings(BaseModel):
    model_config = ConfigDict(extra="forbid")

    remote_url: str = "https://github.com/flowtype/flow-typed.git"
    cache_dir: str = _DEFAULT_CACHE_DIR
    # how old the last successful refresh may be before a rebase is attempted
    expiry_seconds: int = 60
    # repeated ensure() calls inside this window reuse the previous outcome
    debounce_seconds: int = 300
    git_timeout_seconds: int = 120

    @property
    def repo_dir(self) -> str:
        return str(Path(self.cache_dir).expanduser() / "repo")

    @property
    def last_updated_file(self) -> str:
        return str(Path(self.cache_dir).expanduser() / "lastUpdated")

    @property
    def defs_dir(self) -> str:
        return str(Path(self.repo_dir) / "definitions" / "npm")


class LoggingSettings(BaseModel):
    model_config = ConfigDict(extra="forbid")

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    format: Literal["json", "text"] = "text"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        # Double-underscore separates nesting: LIBDEFS__MIRROR__REMOTE_URL=...
        env_prefix="LIBDEFS__",
        env_nested_delimiter="__",
        yaml_file=_find_config_file(),
        yaml_file_encoding="utf-8",
    )

    mirror: MirrorSettings = MirrorSettings()
    # checkout of the definitions repository itself, used by local mode
    local_repo_dir: str | None = None
    logging: LoggingSettings = LoggingSettings()

    @property
    def local_defs_dir(self) -> str | None:
        if self.local_repo_dir is None:
            return None
        return str(Path(self.local_repo_dir).expanduser() / "definitions" / "npm")

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
        **kwargs: Any,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return (
            init_settings,  # Constructor args (highest priority)
            env_settings,  # Environment variables
            YamlConfigSettingsSource(settings_cls),  # YAML file
            # dotenv and file secrets intentionally excluded
        )
