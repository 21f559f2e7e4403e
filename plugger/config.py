from pathlib import Path
from typing import Any, Optional

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .download import DOWNLOAD_URL
from .errors import ConfigError
from .installation import ConfiguredResolver, Platform
from .paths import CONFIG_PATH


class Settings(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    app_dirs: dict[Platform, Path] = Field(default_factory=dict)
    download_url: str = DOWNLOAD_URL
    config_dir_: Optional[Path] = Field(default=None, alias="config_dir")

    @property
    def config_dir(self) -> Path:
        return self.config_dir_ or CONFIG_PATH

    def resolver(self) -> ConfiguredResolver:
        return ConfiguredResolver(self.app_dirs)

    def with_app_dir(self, platform: Platform, app_dir: Path) -> "Settings":
        return self.model_copy(update={"app_dirs": self.app_dirs | {platform: app_dir}})


def parse_settings(settings: Any) -> Settings:
    return Settings.model_validate(settings or {})


def load_settings(path: Optional[Path] = None) -> Settings:
    if path is None:
        return Settings()
    try:
        with open(path) as f:
            return parse_settings(yaml.safe_load(f))
    except (OSError, yaml.YAMLError, ValidationError) as e:
        raise ConfigError(f"{path}: {e}") from e
