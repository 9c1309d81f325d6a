# janus/utils/__init__.py

"""
Janus Utilities
"""
from .config import Config, load_config, save_config, get_default_config_path
from .logger import setup_logging, setup_logging_from_config, log_exception
from .file_utils import normalize_path, map_to_target, copy_file, remove_path

__all__ = [
    'Config', 'load_config', 'save_config', 'get_default_config_path',
    'setup_logging', 'setup_logging_from_config', 'log_exception',
    'normalize_path', 'map_to_target', 'copy_file', 'remove_path',
]
