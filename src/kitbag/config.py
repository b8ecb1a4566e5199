"""
Configuration for kitbag.

Every core function accepts an optional KitbagConfig instead of reading
process state. The CLI loads one from a YAML file (``--config`` or the
KITBAG_CONFIG environment variable); everything else falls back to the
defaults below.

Example kitbag.yaml:
    metadata_key: kitbag
    runtime_library: kitbag-runtime
    schema_version: 1
"""

from pathlib import Path

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from kitbag.errors import ConfigError


class KitbagConfig(BaseModel):
    """
    Names and versions kitbag agrees on with pack authors.

    Attributes:
        metadata_key: Key under [package.metadata] / [workspace.metadata]
            holding per-pack installation bookkeeping in consumer manifests
        pack_metadata_key: Key under [package.metadata] holding a pack's own
            specification (schema_version, libraries, features)
        runtime_library: The pack runtime support library, the only runtime
            dependency a pack may declare
        schema_version: Pack schema version this engine understands
        manifest_filename: File name of a manifest inside a directory
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    metadata_key: str = Field(default="kitbag", min_length=1)
    pack_metadata_key: str = Field(default="kitbag-pack", min_length=1)
    runtime_library: str = Field(default="kitbag-runtime", min_length=1)
    schema_version: int = Field(default=1, ge=1)
    manifest_filename: str = Field(default="Cargo.toml", min_length=1)


DEFAULT_CONFIG = KitbagConfig()


def load_config(path: Path | str | None = None) -> KitbagConfig:
    """
    Load configuration from a YAML file.

    Args:
        path: YAML file to read; None returns the defaults

    Returns:
        Validated KitbagConfig

    Raises:
        ConfigError: If the file is missing, not YAML, or fails validation
    """
    if path is None:
        return DEFAULT_CONFIG

    path = Path(path)
    try:
        with path.open() as f:
            data = yaml.safe_load(f)
    except OSError as e:
        raise ConfigError(config_path=str(path), validation_error=str(e)) from e
    except yaml.YAMLError as e:
        raise ConfigError(config_path=str(path), validation_error=f"Invalid YAML: {e}") from e

    if data is None:
        return DEFAULT_CONFIG

    try:
        return KitbagConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigError(config_path=str(path), validation_error=str(e)) from e
