"""Project layout, configuration and locale settings."""

from lc_core.project.config import ProjectConfig, read_config, write_config
from lc_core.project.create_project import (
    CreatedProject,
    ProjectInfo,
    add_target_locale,
    create_project,
    load_project_info,
    set_quality_mode,
)

__all__ = [
    "CreatedProject",
    "ProjectConfig",
    "ProjectInfo",
    "add_target_locale",
    "create_project",
    "load_project_info",
    "read_config",
    "set_quality_mode",
    "write_config",
]
