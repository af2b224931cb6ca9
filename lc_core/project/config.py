from __future__ import annotations

from pathlib import Path
from typing import Literal

import yaml
from pydantic import BaseModel, ConfigDict, Field


class ProjectConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    project_name: str
    slug: str
    source_locale: str
    target_locales: list[str] = Field(default_factory=list)
    quality_mode: Literal["off", "strict"] = "off"


def write_config(config_path: Path, config: ProjectConfig) -> None:
    config_path.parent.mkdir(parents=True, exist_ok=True)
    with config_path.open("w", encoding="utf-8") as handle:
        yaml.safe_dump(config.model_dump(mode="python"), handle, sort_keys=False, allow_unicode=True)


def read_config(config_path: Path) -> ProjectConfig:
    with config_path.open("r", encoding="utf-8") as handle:
        content = yaml.safe_load(handle) or {}
    return ProjectConfig.model_validate(content)
