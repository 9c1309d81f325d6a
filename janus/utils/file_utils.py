# janus/utils/file_utils.py

"""
File system helpers used by the synchronisers
"""
import os
import shutil
import logging
from pathlib import Path
from typing import Union

logger = logging.getLogger(__name__)


def normalize_path(path: Union[str, Path]) -> Path:
    """
    Absolute, normalised path without resolving symlinks

    Args:
        path: Path to normalise

    Returns:
        Normalised Path
    """
    return Path(os.path.normpath(os.path.abspath(os.fspath(path))))


def map_to_target(path: Union[str, Path],
                  watch_root: Union[str, Path],
                  sync_root: Union[str, Path]) -> Path:
    """
    Map a path under watch_root to the same relative location under sync_root

    Raises:
        ValueError: If path is not inside watch_root
    """
    relative = normalize_path(path).relative_to(normalize_path(watch_root))
    return normalize_path(sync_root) / relative


def ensure_parent(path: Path):
    path.parent.mkdir(parents=True, exist_ok=True)


def copy_file(source: Union[str, Path],
              target: Union[str, Path],
              preserve_metadata: bool = True):
    """
    Copy a file, creating the target's parent directories

    Args:
        source: Source file path
        target: Target file path
        preserve_metadata: Whether to preserve timestamps and mode

    Raises:
        OSError: If the copy fails
    """
    source_path = Path(source)
    target_path = Path(target)

    ensure_parent(target_path)

    if preserve_metadata:
        shutil.copy2(str(source_path), str(target_path))
    else:
        shutil.copy(str(source_path), str(target_path))

    logger.info(f"Copied file: {source_path} -> {target_path}")


def remove_path(path: Union[str, Path]) -> bool:
    """
    Remove a file, symlink or whole directory tree

    Returns:
        True if something was removed, False if nothing existed

    Raises:
        OSError: If removal fails
    """
    path = Path(path)
    if not os.path.lexists(path):
        return False

    if path.is_dir() and not path.is_symlink():
        shutil.rmtree(path)
        logger.info(f"Removed directory: {path}")
    else:
        path.unlink()
        logger.info(f"Removed file: {path}")
    return True
