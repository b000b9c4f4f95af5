"""
Backing stores: keyed byte-blob storage for serialized property values.
"""
import hashlib
import logging
import os
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Callable, Dict, MutableMapping, Optional, Union
from urllib.parse import quote

from statetracker.config import get_default_storage_dir
from statetracker.exceptions import UnsupportedOperationError

logger = logging.getLogger(__name__)


class DataStore(ABC):
    """Contract for a keyed byte-blob store."""

    @abstractmethod
    def contains_key(self, identifier: str) -> bool:
        ...

    @abstractmethod
    def get_data(self, identifier: str) -> bytes:
        ...

    @abstractmethod
    def set_data(self, identifier: str, data: bytes) -> None:
        ...

    def remove_data(self, identifier: str) -> None:
        raise UnsupportedOperationError(f"{type(self).__name__} does not support removal")


class MemoryDataStore(DataStore):
    """Process-local store backed by a dict."""

    def __init__(self, initial: Optional[Dict[str, bytes]] = None):
        self._data: Dict[str, bytes] = dict(initial or {})

    def contains_key(self, identifier: str) -> bool:
        return identifier in self._data

    def get_data(self, identifier: str) -> bytes:
        return self._data[identifier]

    def set_data(self, identifier: str, data: bytes) -> None:
        self._data[identifier] = bytes(data)

    def remove_data(self, identifier: str) -> None:
        self._data.pop(identifier, None)

    def __len__(self) -> int:
        return len(self._data)

    def keys(self):
        return list(self._data.keys())


class MappingDataStore(DataStore):
    """Adapter over an externally owned mapping (e.g. a user profile dict).

    The owner decides when the mapping is saved; on_change is called after
    every write. Removal is not supported.
    """

    def __init__(self, mapping: MutableMapping[str, bytes], on_change: Optional[Callable[[], None]] = None):
        self._mapping = mapping
        self._on_change = on_change

    def contains_key(self, identifier: str) -> bool:
        return identifier in self._mapping

    def get_data(self, identifier: str) -> bytes:
        return self._mapping[identifier]

    def set_data(self, identifier: str, data: bytes) -> None:
        self._mapping[identifier] = data
        if self._on_change is not None:
            self._on_change()


# Common filesystem limit for a single path component, in bytes
MAX_FILENAME_LENGTH = 255


class FileDataStore(DataStore):
    """One file per key under a directory.

    Keys are percent-encoded (UTF-8, fixed-width %XX) into file names, so
    distinct keys never share a file. Names that would exceed
    MAX_FILENAME_LENGTH are truncated and suffixed with a SHA-256 of the key.
    Writes go through a temp file and os.replace so a crash never leaves a
    half-written value behind.
    """

    suffix = '.bin'

    def __init__(self, directory: Optional[Union[str, os.PathLike]] = None):
        self.directory = Path(directory) if directory is not None else get_default_storage_dir()

    def _path_for(self, identifier: str) -> Path:
        escaped = quote(identifier, safe='')
        if len(escaped) + len(self.suffix) > MAX_FILENAME_LENGTH:
            digest = hashlib.sha256(identifier.encode('utf-8')).hexdigest()
            keep = MAX_FILENAME_LENGTH - len(self.suffix) - len(digest) - 1
            escaped = f"{escaped[:keep]}~{digest}"
        return self.directory / f"{escaped}{self.suffix}"

    def contains_key(self, identifier: str) -> bool:
        return self._path_for(identifier).is_file()

    def get_data(self, identifier: str) -> bytes:
        return self._path_for(identifier).read_bytes()

    def set_data(self, identifier: str, data: bytes) -> None:
        self.directory.mkdir(parents=True, exist_ok=True)
        path = self._path_for(identifier)
        fd, tmp_name = tempfile.mkstemp(dir=self.directory, prefix='.tmp-')
        try:
            f = os.fdopen(fd, 'wb')
        except BaseException:
            os.close(fd)
            os.unlink(tmp_name)
            raise
        try:
            with f:
                f.write(data)
            os.replace(tmp_name, path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise
        logger.debug(f"Wrote {len(data)} bytes to {path}")

    def remove_data(self, identifier: str) -> None:
        self._path_for(identifier).unlink(missing_ok=True)
