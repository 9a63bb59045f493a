"""
Runtime settings for TaskHive, read from the environment.

Logging reads its own TASKHIVE_LOG_* variables in the logs module, since it
is configured at import time before any settings are loaded.
"""
import os
from pathlib import Path
from pydantic import BaseModel, Field

from .logs import get_logger

log = get_logger("config")


class Settings(BaseModel):
    data_dir: Path = Field(default=Path(".taskhive"), description="Directory holding the store file and CLI session")
    store_file: str = Field(default="taskhive.yml", description="Name of the YAML store file inside data_dir")

    @property
    def store_path(self) -> Path:
        return self.data_dir / self.store_file

    @property
    def session_path(self) -> Path:
        return self.data_dir / "session.yml"

    @classmethod
    def from_env(cls) -> "Settings":
        values = {}
        if os.getenv('TASKHIVE_DATA_DIR'):
            values['data_dir'] = Path(os.environ['TASKHIVE_DATA_DIR'])
        if os.getenv('TASKHIVE_STORE_FILE'):
            values['store_file'] = os.environ['TASKHIVE_STORE_FILE']
        return cls(**values)


def get_settings() -> Settings:
    settings = Settings.from_env()
    log.debug(f"Settings loaded: data_dir={settings.data_dir} store_file={settings.store_file}")
    return settings
