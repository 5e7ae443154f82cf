# collabart/config.py
"""
Engine configuration.

Configuration is a small YAML document, e.g.:

    initial_contribution: 100
    first_artwork_id: 1
    first_nft_id: 1
    host: 127.0.0.1
    port: 8080
    state_path: ./collabart-state.json
    log_level: INFO

Every key is optional. Unknown keys are rejected so typos do not pass
silently.
"""

from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from .errors import ConfigError

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass
class EngineConfig:
    """Settings for the engine and its front ends."""
    initial_contribution: int = 100
    first_artwork_id: int = 1
    first_nft_id: int = 1
    host: str = "127.0.0.1"
    port: int = 8080
    state_path: Optional[str] = None
    log_level: str = "INFO"

    def __post_init__(self):
        self.validate()

    def validate(self) -> None:
        """Raise ConfigError if any setting is out of range or mistyped."""
        for f in fields(self):
            value = getattr(self, f.name)
            if f.name == "state_path":
                if value is not None and not isinstance(value, str):
                    raise ConfigError(f"state_path must be a string, got {value!r}")
                continue
            expected = str if f.name in ("host", "log_level") else int
            # bool is an int subclass
            if not isinstance(value, expected) or isinstance(value, bool):
                raise ConfigError(f"{f.name} must be {expected.__name__}, got {value!r}")

        if self.first_artwork_id < 1 or self.first_nft_id < 1:
            raise ConfigError("Id sequences must start at 1 or above")
        if not 0 <= self.port <= 65535:
            raise ConfigError(f"Invalid port: {self.port}")
        if self.log_level.upper() not in LOG_LEVELS:
            raise ConfigError(f"Unknown log level: {self.log_level}")

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "EngineConfig":
        data = data or {}
        if not isinstance(data, dict):
            raise ConfigError(f"Configuration must be a mapping, got {type(data).__name__}")

        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ConfigError(f"Unknown configuration keys: {', '.join(unknown)}")
        return cls(**data)

    @classmethod
    def from_yaml(cls, yaml_content: str) -> "EngineConfig":
        """Parse configuration from a YAML string."""
        try:
            data = yaml.safe_load(yaml_content)
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML: {e}") from e
        return cls.from_dict(data)

    @classmethod
    def from_file(cls, path: Path | str) -> "EngineConfig":
        """Load configuration from a YAML file."""
        path = Path(path)
        if not path.exists():
            raise ConfigError(f"Config file not found: {path}")
        with open(path, "r") as f:
            return cls.from_yaml(f.read())

    def merged(self, **overrides: Any) -> "EngineConfig":
        """Return a copy with the non-None overrides applied."""
        data = self.to_dict()
        data.update({k: v for k, v in overrides.items() if v is not None})
        return EngineConfig.from_dict(data)
