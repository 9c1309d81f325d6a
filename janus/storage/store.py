# janus/storage/store.py

"""
Persistent store for watch configurations and application data
"""
import io
import os
import logging
import threading
from pathlib import Path
from typing import BinaryIO, List, Optional, Union

from janus.core.models import JanusData
from janus.core.notifications import NotificationCenter
from janus.errors import ConfigurationError, FormatError

from .binary import BinaryReader, BinaryWriter
from .formats import CURRENT_VERSION, get_format

logger = logging.getLogger(__name__)


class DataStore:
    """
    Reads and writes the binary store file.

    Writes are serialised by a single lock and land atomically (temporary
    file + replace), so a crash never leaves a half-written store behind.
    """

    def __init__(self, path: Union[str, Path],
                 version: int = CURRENT_VERSION,
                 notifications: Optional[NotificationCenter] = None):
        """
        Initialize data store

        Args:
            path: Store file location
            version: Format version used for writing
            notifications: Channel for load/store failures
        """
        self.path = Path(path)
        self.version = version
        self.notifications = notifications or NotificationCenter()
        self._lock = threading.Lock()

        # Records skipped by the last read
        self.skipped: List[ConfigurationError] = []

        # Fail early on an unknown write version
        get_format(version)

    def initialise(self) -> bool:
        """Make sure the store directory exists"""
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            return True
        except OSError as e:
            logger.error(f"Cannot create store directory {self.path.parent}: {e}")
            return False

    def read(self, stream: BinaryIO) -> JanusData:
        """
        Parse a store stream

        Raises:
            FormatError: On an unknown version or any grammar violation
        """
        reader = BinaryReader(stream)
        version = reader.read_int32()
        storage_format = get_format(version)
        data = storage_format.read(reader)
        self.skipped = storage_format.configuration_errors
        logger.debug(f"Read store format {version:#x}: {len(data.watchers)} watchers, "
                     f"{len(data.data_provider)} values")
        return data

    def write(self, stream: BinaryIO, data: JanusData):
        """
        Serialise data in the configured version

        Raises:
            FormatError: If data contains something the reader cannot parse
        """
        writer = BinaryWriter(stream)
        writer.write_int32(self.version)
        get_format(self.version).write(writer, data)

    def loads(self, raw: bytes) -> JanusData:
        return self.read(io.BytesIO(raw))

    def dumps(self, data: JanusData) -> bytes:
        buffer = io.BytesIO()
        self.write(buffer, data)
        return buffer.getvalue()

    def load(self) -> JanusData:
        """
        Load the store file

        A missing file gives empty data. A malformed file gives empty data
        and an error notification; nothing from it is used.
        """
        self.skipped = []
        if not self.path.exists():
            logger.info(f"No store file at {self.path}, starting empty")
            return JanusData()

        try:
            with open(self.path, 'rb') as f:
                data = self.read(f)
        except (FormatError, OSError) as e:
            logger.error(f"Error loading store {self.path}: {e}")
            self.notifications.error("Load Failed", f"Could not load watchers from {self.path}: {e}")
            return JanusData()

        if self.skipped:
            self.notifications.warning(
                "Watchers Skipped",
                f"{len(self.skipped)} watcher(s) in {self.path} were invalid and have been skipped."
            )

        logger.info(f"Loaded {len(data.watchers)} watchers from {self.path}")
        return data

    def store(self, data: JanusData) -> bool:
        """
        Rewrite the store file with data

        Returns:
            True if written. On failure the previous file is left untouched.
        """
        with self._lock:
            try:
                payload = self.dumps(data)
            except FormatError as e:
                logger.error(f"Refusing to write store {self.path}: {e}")
                self.notifications.error("Save Failed", str(e))
                return False

            temp_path = self.path.with_name(self.path.name + ".tmp")
            try:
                self.path.parent.mkdir(parents=True, exist_ok=True)
                with open(temp_path, 'wb') as f:
                    f.write(payload)
                    f.flush()
                    os.fsync(f.fileno())
                os.replace(temp_path, self.path)
            except OSError as e:
                logger.error(f"Error writing store {self.path}: {e}")
                try:
                    temp_path.unlink()
                except FileNotFoundError:
                    pass
                except OSError as cleanup_error:
                    logger.warning(f"Could not remove {temp_path}: {cleanup_error}")
                self.notifications.error("Save Failed", f"Could not write {self.path}: {e}")
                return False

        logger.debug(f"Stored {len(data.watchers)} watchers to {self.path}")
        return True
