"""Fusion driver configuration."""

from __future__ import annotations

from dataclasses import dataclass, fields
from pathlib import Path

import yaml

from .errors import ConfigurationError


@dataclass
class FusionConfig:
    """Configuration of the fusion driver."""

    config_path: str = ""  # Estimator YAML configuration
    images_already_rectified: bool = True
    warmup_frames: int = 10  # Images ingested before poses are reported
    first_frame_covariance: float = 9999.0  # Diagonal of the first pose covariance
    covariance: float = 0.0001  # Diagonal of every later pose covariance
    report_landmarks: bool = False  # Attach landmarks to emitted results

    @classmethod
    def from_yaml(cls, path: str | Path) -> FusionConfig:
        """Load driver configuration from a YAML mapping.

        Relative ``config_path`` values are resolved against the file's
        directory.

        Raises:
            ConfigurationError: If the file is missing, is not a mapping or
                contains unknown keys
        """
        path = Path(path)
        if not path.is_file():
            raise ConfigurationError(f"Fusion config file not found: {path}")

        try:
            with open(path, "r") as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Cannot parse fusion config {path}: {e}") from e

        if not isinstance(data, dict):
            raise ConfigurationError(f"Fusion config {path} is not a mapping")

        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ConfigurationError(f"Unknown fusion config keys: {', '.join(unknown)}")

        config = cls(**data)
        if config.config_path and not Path(config.config_path).is_absolute():
            config.config_path = str(path.parent / config.config_path)
        return config
