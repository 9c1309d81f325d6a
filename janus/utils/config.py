# janus/utils/config.py

"""
Runtime settings for Janus

Settings are separate from the binary store: the store holds the watcher
configurations, this file holds how the process runs them. Both YAML and
JSON are accepted; the suffix decides.
"""
import os
import sys
import json
import logging
from dataclasses import asdict, dataclass, field, fields, is_dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml

logger = logging.getLogger(__name__)

YAML_SUFFIXES = ('.yaml', '.yml')
LOG_FORMATS = ('text', 'color', 'json')


def detect_platform() -> str:
    if sys.platform == "win32":
        return "windows"
    if sys.platform == "darwin":
        return "macos"
    return "linux"


def profile_dir(purpose: str = "data", platform: str = "auto") -> Path:
    """
    Per-user directory for Janus files

    Args:
        purpose: "data" for the store, "config" for settings
        platform: windows, macos, linux or auto

    Returns:
        Directory path (not created)
    """
    if platform == "auto":
        platform = detect_platform()

    if platform == "windows":
        return Path(os.environ.get('LOCALAPPDATA', Path.home())) / "Janus"
    if platform == "macos":
        return Path.home() / "Library" / "Application Support" / "Janus"
    if purpose == "config":
        return Path(os.environ.get('XDG_CONFIG_HOME', Path.home() / ".config")) / "janus"
    return Path(os.environ.get('XDG_DATA_HOME', Path.home() / ".local" / "share")) / "janus"


@dataclass
class PathConfig:
    """Where the store lives"""
    data_dir: Path = field(default_factory=profile_dir)
    store_file: str = "janus.dat"

    def __post_init__(self):
        self.data_dir = Path(self.data_dir).expanduser()

    @property
    def store_path(self) -> Path:
        return self.data_dir / self.store_file


@dataclass
class WatchdogConfig:
    """Observer settings shared by every watcher"""
    use_polling: bool = False   # for network shares without native events
    poll_interval: float = 1.0  # seconds
    queue_size: int = 1000
    initial_sync: bool = True   # full reconciliation at startup


@dataclass
class SyncConfig:
    max_workers: int = 4
    preserve_metadata: bool = True


@dataclass
class StorageConfig:
    format_version: int = 0x5


@dataclass
class Config:
    """Top-level settings"""
    version: str = "1.0.0"
    platform: str = "auto"  # auto, windows, linux, macos

    paths: PathConfig = field(default_factory=PathConfig)
    watchdog: WatchdogConfig = field(default_factory=WatchdogConfig)
    sync: SyncConfig = field(default_factory=SyncConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)

    log_level: str = "INFO"
    log_file: Optional[str] = None
    log_format: str = "text"

    def __post_init__(self):
        if self.platform == "auto":
            self.platform = detect_platform()

    def to_dict(self) -> Dict[str, Any]:
        """Plain dict with paths as strings, ready for YAML or JSON"""
        return asdict(self, dict_factory=lambda items: {
            key: str(value) if isinstance(value, Path) else value
            for key, value in items
        })

    def update_from_dict(self, data: Optional[Dict[str, Any]]):
        """
        Merge values into this config

        Nested sections are merged key by key, so a file only needs the
        settings it changes. Unknown keys are logged and ignored.
        """
        for key, value in (data or {}).items():
            if not hasattr(self, key):
                logger.warning(f"Ignoring unknown setting: {key}")
                continue
            section = getattr(self, key)
            if is_dataclass(section) and isinstance(value, dict):
                _merge_section(key, section, value)
            else:
                setattr(self, key, value)

    def validate(self) -> List[str]:
        """Return a list of problems, empty when the settings are usable"""
        problems = []
        if self.watchdog.queue_size < 1:
            problems.append(f"watchdog.queue_size must be positive, got {self.watchdog.queue_size}")
        if self.watchdog.poll_interval <= 0:
            problems.append(f"watchdog.poll_interval must be positive, got {self.watchdog.poll_interval}")
        if self.sync.max_workers < 1:
            problems.append(f"sync.max_workers must be at least 1, got {self.sync.max_workers}")
        if self.log_format.lower() not in LOG_FORMATS:
            problems.append(f"log_format must be one of {', '.join(LOG_FORMATS)}, got {self.log_format}")
        return problems

    def save(self, path: Union[str, Path]):
        _write_file(Path(path), self.to_dict())
        logger.info(f"Settings saved to {path}")


def _merge_section(name: str, section, values: Dict[str, Any]):
    known = {f.name for f in fields(section)}
    for key, value in values.items():
        if key in known:
            setattr(section, key, value)
        else:
            logger.warning(f"Ignoring unknown setting: {name}.{key}")
    # re-apply conversions such as str -> Path
    if hasattr(section, '__post_init__'):
        section.__post_init__()


def _read_file(path: Path) -> Dict[str, Any]:
    with open(path, 'r', encoding='utf-8') as f:
        if path.suffix.lower() in YAML_SUFFIXES:
            return yaml.safe_load(f) or {}
        return json.load(f)


def _write_file(path: Path, data: Dict[str, Any]):
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, 'w', encoding='utf-8') as f:
        if path.suffix.lower() in YAML_SUFFIXES:
            yaml.safe_dump(data, f, default_flow_style=False, sort_keys=False)
        else:
            json.dump(data, f, indent=2)


def get_default_config_path() -> Path:
    return profile_dir("config") / "config.yaml"


def load_config(path: Union[str, Path] = None) -> Config:
    """
    Load settings

    Tries, in order: the explicit path, ./config.yaml, ./config.json and
    the per-user settings file. The first readable file wins; defaults are
    used when none is found.
    """
    candidates = [Path(path)] if path else []
    candidates += [Path("config.yaml"), Path("config.json"), get_default_config_path()]

    for candidate in candidates:
        if not candidate.is_file():
            continue
        try:
            data = _read_file(candidate)
        except (OSError, ValueError, yaml.YAMLError) as e:
            logger.error(f"Cannot read settings from {candidate}: {e}")
            continue

        config = Config()
        config.update_from_dict(data)
        for problem in config.validate():
            logger.warning(f"{candidate}: {problem}")
        logger.info(f"Settings loaded from {candidate}")
        return config

    logger.info("No settings file found, using defaults")
    return Config()


def save_config(config: Config, path: Union[str, Path] = None):
    config.save(path or get_default_config_path())
