"""
ImportSync Project Configuration.

Shape of the persisted JSON record shared with the configuration front-end:
project-wide root directory and target stylesheet plus a map of named
watchers.

    {
      "projectSettings": {"rootDir": "/abs/root", "targetFile": "src/styles.scss"},
      "watchers": {
        "components": {"watchDir": "src/components", "insertionLine": 3,
                       "ownerId": "components", "excludeSubtrees": []}
      }
    }

Records written by older versions (``stylesFile``, ``line``, ``excludePaths``)
are accepted.
Requires Python 3.11+.
"""

import json
from pathlib import Path

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel

from sync.exceptions import ConfigurationError
from sync.models import WatcherSpec
from utils.config import get_settings


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ProjectSettings(_CamelModel):
    """Project-wide root directory and target stylesheet."""

    root_dir: Path | None = None
    target_file: str | None = Field(
        default=None,
        validation_alias=AliasChoices("targetFile", "stylesFile", "target_file"),
        serialization_alias="targetFile",
    )

    @property
    def is_complete(self) -> bool:
        """Check if both settings are present."""
        return self.root_dir is not None and bool(self.target_file)


class WatcherEntry(_CamelModel):
    """Configuration of one named watcher."""

    watch_dir: str
    insertion_line: int = Field(
        default=1,
        ge=1,
        validation_alias=AliasChoices("insertionLine", "line", "insertion_line"),
        serialization_alias="insertionLine",
    )
    owner_id: str | None = Field(
        default=None,
        validation_alias=AliasChoices("ownerId", "markerId", "owner_id"),
        serialization_alias="ownerId",
    )
    exclude_subtrees: list[str] = Field(
        default_factory=list,
        validation_alias=AliasChoices("excludeSubtrees", "excludePaths", "exclude_subtrees"),
        serialization_alias="excludeSubtrees",
    )


class ProjectConfig(_CamelModel):
    """Complete persisted configuration record."""

    project_settings: ProjectSettings = Field(default_factory=ProjectSettings)
    watchers: dict[str, WatcherEntry] = Field(default_factory=dict)

    def to_specs(self) -> dict[str, WatcherSpec]:
        """
        Build a watcher spec for every configured watcher.

        Raises:
            ConfigurationError: If the project settings are incomplete
        """
        settings = self.project_settings
        if not settings.is_complete:
            if not self.watchers:
                return {}
            raise ConfigurationError("Project settings need both rootDir and targetFile")

        return {
            name: WatcherSpec(
                root_dir=settings.root_dir,
                watch_dir=entry.watch_dir,
                target_file=settings.target_file,
                owner_id=entry.owner_id or name,
                insertion_line=entry.insertion_line,
                exclude_subtrees=frozenset(entry.exclude_subtrees),
                name=name,
            )
            for name, entry in self.watchers.items()
        }


def default_config_path(root_dir: Path) -> Path:
    """Location of the configuration record for a project root."""
    return Path(root_dir) / get_settings().sync.config_file_name


def load_project_config(path: Path) -> ProjectConfig:
    """
    Load the configuration record.

    Args:
        path: JSON file to read

    Returns:
        The parsed record, or an empty record if the file does not exist

    Raises:
        ConfigurationError: If the file cannot be read or parsed
    """
    if not path.exists():
        return ProjectConfig()

    try:
        return ProjectConfig.model_validate_json(path.read_text(encoding="utf-8"))
    except (OSError, ValidationError) as e:
        raise ConfigurationError(f"Invalid configuration file ({e})", path) from e


def save_project_config(
    config: ProjectConfig,
    path: Path,
    clear_watchers: bool = False,
) -> None:
    """
    Write the configuration record.

    Args:
        config: Record to write
        path: Destination file
        clear_watchers: Write an empty watcher map but keep project settings
    """
    data = config.model_dump(mode="json", by_alias=True, exclude_none=True)
    if clear_watchers:
        data["watchers"] = {}

    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data, indent=2) + "\n", encoding="utf-8")
