"""
Replay store: byte-stream storage for replay artifacts and catalog snapshots.
"""

import os
import tempfile
from abc import ABC, abstractmethod
from typing import List

from ..core.errors import StorageError


class ReplayStore(ABC):
    """
    Abstract replay storage interface.

    Names are flat (no directories). Implementations must make write_bytes
    atomic: readers see either the old or the new content, never a mix.
    """

    @abstractmethod
    def exists(self, name: str) -> bool:
        ...

    @abstractmethod
    def list_names(self) -> List[str]:
        """Return every stored name, sorted."""
        ...

    @abstractmethod
    def read_bytes(self, name: str) -> bytes:
        """
        Raises:
            StorageError: If the name does not exist or cannot be read
        """
        ...

    @abstractmethod
    def write_bytes(self, name: str, data: bytes) -> None:
        ...

    @abstractmethod
    def delete(self, name: str) -> None:
        ...


class FileReplayStore(ReplayStore):
    """
    Directory-backed replay store.

    Writes go to a temporary file in the same directory and are moved into
    place with os.replace.
    """

    def __init__(self, directory: str) -> None:
        self.directory = directory
        try:
            os.makedirs(directory, exist_ok=True)
        except OSError as ex:
            raise StorageError(f"Cannot create replay directory {directory}: {ex}") from ex

    def path_for(self, name: str) -> str:
        if not name or os.path.basename(name) != name:
            raise StorageError(f"Invalid store name: {name!r}")
        return os.path.join(self.directory, name)

    def exists(self, name: str) -> bool:
        return os.path.isfile(self.path_for(name))

    def list_names(self) -> List[str]:
        try:
            entries = os.listdir(self.directory)
        except OSError as ex:
            raise StorageError(f"Cannot list replay directory {self.directory}: {ex}") from ex
        return sorted(e for e in entries if os.path.isfile(os.path.join(self.directory, e)))

    def read_bytes(self, name: str) -> bytes:
        try:
            with open(self.path_for(name), "rb") as f:
                return f.read()
        except OSError as ex:
            raise StorageError(f"Cannot read {name}: {ex}") from ex

    def write_bytes(self, name: str, data: bytes) -> None:
        target = self.path_for(name)
        fd, tmp_path = tempfile.mkstemp(prefix=f".{name}.", suffix=".tmp", dir=self.directory)
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(data)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, target)
        except OSError as ex:
            try:
                os.remove(tmp_path)
            except OSError:
                pass
            raise StorageError(f"Cannot write {name}: {ex}") from ex

    def delete(self, name: str) -> None:
        try:
            os.remove(self.path_for(name))
        except FileNotFoundError as ex:
            raise StorageError(f"Cannot delete {name}: not found") from ex
        except OSError as ex:
            raise StorageError(f"Cannot delete {name}: {ex}") from ex
