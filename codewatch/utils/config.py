# codewatch/utils/config.py

"""
Configuration management for codewatch
"""
import json
import yaml
from pathlib import Path
from typing import Dict, Any, Optional, Union, List
from dataclasses import dataclass, field, asdict, fields
import logging

from codewatch.errors import ConfigError

logger = logging.getLogger(__name__)


SUPPORTED_EXTENSIONS = [
    ".jsx", ".tsx", ".json", ".html", ".css", ".md", ".yml", ".yaml",
    ".scss", ".svelte", ".vue", ".py", ".go", ".c", ".rs", ".rb",
    ".zig", ".php",
]

DEFAULT_IGNORE_PATTERNS = [
    ".git",               # version control metadata
    "node_modules",       # dependency cache
    "package-lock.json",  # lockfile
]


@dataclass
class WatchConfig:
    """Directory watch configuration"""
    supported_extensions: List[str] = field(default_factory=lambda: list(SUPPORTED_EXTENSIONS))
    debounce_time: float = 5.0  # seconds of quiet before a flush
    default_ignore_patterns: List[str] = field(default_factory=lambda: list(DEFAULT_IGNORE_PATTERNS))
    ignore_file: str = ".gitignore"

    # Content guards, off by default
    max_file_size: Optional[int] = None  # bytes
    skip_binary: bool = False

    # Observer selection
    use_polling: bool = False
    poll_interval: float = 1.0

    # How often the watch loop checks that the observer thread is alive
    liveness_interval: float = 1.0

    def is_supported(self, path: Union[str, Path]) -> bool:
        """Check the file extension against the allow-list"""
        return Path(path).suffix in self.supported_extensions


@dataclass
class ApiConfig:
    """Remote indexing service configuration"""
    base_url: str = "https://api.devwilson.dev"
    timeout: float = 60.0
    token: Optional[str] = None
    workspace_id: Optional[str] = None
    context_id: Optional[str] = None
    context_name: Optional[str] = None


@dataclass
class Config:
    """Main configuration class"""
    watch: WatchConfig = field(default_factory=WatchConfig)
    api: ApiConfig = field(default_factory=ApiConfig)

    log_level: str = "INFO"
    log_file: Optional[str] = None
    log_format: str = "color"  # text, json, or color

    def to_dict(self) -> Dict[str, Any]:
        """Convert config to dictionary"""
        return asdict(self)

    def save(self, path: Union[str, Path]):
        """Save config to file"""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)

        if path.suffix.lower() in ['.yaml', '.yml']:
            with open(path, 'w', encoding='utf-8') as f:
                yaml.dump(self.to_dict(), f, default_flow_style=False)
        else:  # default to JSON
            with open(path, 'w', encoding='utf-8') as f:
                json.dump(self.to_dict(), f, indent=2, default=str)

        logger.info(f"Configuration saved to {path}")

    def update_from_dict(self, data: Dict[str, Any]):
        """
        Update config from a nested dictionary

        Sections ('watch', 'api') are merged key by key; unknown keys are
        reported and skipped.
        """
        for key, value in (data or {}).items():
            section = getattr(self, key, None)
            if key in ('watch', 'api'):
                if not isinstance(value, dict):
                    raise ConfigError(f"Section '{key}' must be a mapping, got {type(value).__name__}")
                _merge_section(section, value, key)
            elif hasattr(self, key):
                setattr(self, key, value)
            else:
                logger.warning(f"Ignoring unknown configuration key: {key}")


def _merge_section(section: Any, data: Dict[str, Any], name: str):
    known = {f.name for f in fields(section)}
    for key, value in data.items():
        if key in known:
            setattr(section, key, value)
        else:
            logger.warning(f"Ignoring unknown configuration key: {name}.{key}")


def get_default_config_paths() -> List[Path]:
    """Candidate config locations, in lookup order"""
    return [
        Path("codewatch.yaml"),
        Path("codewatch.json"),
        Path.home() / ".config" / "codewatch" / "config.yaml",
    ]


def load_config(path: Union[str, Path] = None) -> Config:
    """
    Load configuration from file or fall back to defaults

    Args:
        path: Explicit config file; must exist when given

    Raises:
        ConfigError: if the chosen file cannot be read or parsed
    """
    if path is not None:
        path = Path(path)
        if not path.exists():
            raise ConfigError(f"Configuration file not found: {path}")
        config_paths = [path]
    else:
        config_paths = [p for p in get_default_config_paths() if p.exists()]

    for config_path in config_paths:
        logger.info(f"Loading configuration from {config_path}")
        try:
            with open(config_path, 'r', encoding='utf-8') as f:
                if config_path.suffix.lower() in ['.yaml', '.yml']:
                    data = yaml.safe_load(f)
                else:
                    data = json.load(f)
        except (OSError, yaml.YAMLError, json.JSONDecodeError) as e:
            raise ConfigError(f"Error loading configuration from {config_path}: {e}") from e

        if data is not None and not isinstance(data, dict):
            raise ConfigError(f"Configuration root must be a mapping: {config_path}")

        config = Config()
        config.update_from_dict(data)
        return config

    logger.debug("No configuration file found, using defaults")
    return Config()
