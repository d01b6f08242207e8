from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Mapping, Optional

from pydantic import BaseModel, Field

ENV_PREFIX = "DNDINIT_"


def _default_data_dir() -> Path:
    home = os.environ.get("HOME")
    return Path(home) if home else Path(".")


class TrackerConfig(BaseModel):
    """Лимиты сессии, пути сохранений и уровень логирования."""

    max_combatants: int = Field(default=50, ge=1)
    undo_capacity: int = Field(default=10, ge=1)

    log_initial_capacity: int = Field(default=10, ge=1)
    # None = лог растёт без ограничений
    log_max_capacity: Optional[int] = Field(default=None, ge=1)

    data_dir: Path = Field(default_factory=_default_data_dir)
    save_file_name: str = ".dnd_tracker_save.txt"
    log_export_file_name: str = "combat_log_export.txt"

    database_url: str = "sqlite:///./dndinit.sqlite3"
    log_level: str = "INFO"

    @property
    def save_path(self) -> Path:
        return self.data_dir / self.save_file_name

    @property
    def log_export_path(self) -> Path:
        return self.data_dir / self.log_export_file_name


def load_config(env: Optional[Mapping[str, str]] = None) -> TrackerConfig:
    """Собрать конфиг из переменных окружения DNDINIT_* поверх дефолтов."""
    src = os.environ if env is None else env
    data: dict[str, str] = {}
    for name in TrackerConfig.model_fields:
        key = ENV_PREFIX + name.upper()
        if key in src and src[key] != "":
            data[name] = src[key]
    return TrackerConfig.model_validate(data)


def setup_logging(config: TrackerConfig) -> None:
    logging.basicConfig(
        level=getattr(logging, config.log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
