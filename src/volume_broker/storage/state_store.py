"""
Broker state persistence

The whole DynamicState is written to one JSON file per broker,
<data_dir>/<service_name>-services.json, shaped as:

    {
      "InstanceMap": {"<instance_id>": {<provision request as received>}},
      "BindingMap": {"<binding_id>": {<bind request as received>}}
    }

Writes are plain overwrites; there is no atomic rename.
"""

import json
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, Optional, Union

from pydantic import ValidationError

from ..errors import PersistenceError
from ..types import DynamicState

logger = logging.getLogger(__name__)

STATE_FILE_SUFFIX = "-services.json"


class FileSystem(ABC):
    """Minimal file access used for the state file"""

    @abstractmethod
    def read_bytes(self, path: str) -> bytes:
        """Read a whole file. Raises OSError on failure."""

    @abstractmethod
    def write_bytes(self, path: str, data: bytes) -> None:
        """Replace a file's contents. Raises OSError on failure."""


class LocalFileSystem(FileSystem):
    """FileSystem over the host filesystem"""

    def read_bytes(self, path: str) -> bytes:
        return Path(path).read_bytes()

    def write_bytes(self, path: str, data: bytes) -> None:
        target = Path(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(data)


def state_file_path(data_dir: Union[str, Path], service_name: str) -> str:
    """Path of the state file for a service"""
    return str(Path(data_dir) / f"{service_name}{STATE_FILE_SUFFIX}")


class StateStore:
    """
    Reads and writes the broker's DynamicState.

    Both directions raise PersistenceError; deciding whether a failure
    matters is left to the caller.
    """

    def __init__(
        self,
        service_name: str,
        data_dir: Union[str, Path],
        file_system: Optional[FileSystem] = None
    ):
        self.state_file = state_file_path(data_dir, service_name)
        self.file_system = file_system or LocalFileSystem()

    @staticmethod
    def encode(state: DynamicState) -> Dict[str, Any]:
        """Serialize state, keeping each request exactly as it was received."""
        return {
            "InstanceMap": {
                instance_id: details.model_dump(mode="json", exclude_unset=True)
                for instance_id, details in state.instances.items()
            },
            "BindingMap": {
                binding_id: details.model_dump(mode="json", exclude_unset=True)
                for binding_id, details in state.bindings.items()
            },
        }

    def save(self, state: DynamicState) -> None:
        """
        Write the full state to the state file.

        Raises:
            PersistenceError: If the state cannot be serialized or written
        """
        try:
            data = json.dumps(self.encode(state), indent=2).encode("utf-8")
        except (TypeError, ValueError) as e:
            raise PersistenceError(self.state_file, f"failed to marshal state: {e}") from e

        try:
            self.file_system.write_bytes(self.state_file, data)
        except OSError as e:
            raise PersistenceError(self.state_file, f"failed to write state file: {e}") from e

        logger.debug(f"State saved to {self.state_file}")

    def load(self) -> DynamicState:
        """
        Read the state file.

        Returns:
            A new DynamicState built from the file contents

        Raises:
            PersistenceError: If the file cannot be read or parsed
        """
        try:
            raw = self.file_system.read_bytes(self.state_file)
        except OSError as e:
            raise PersistenceError(self.state_file, f"failed to read state file: {e}") from e

        try:
            data = json.loads(raw)
            if not isinstance(data, dict):
                raise ValueError("state file does not contain a JSON object")
            state = DynamicState.model_validate(data)
        except (ValueError, ValidationError) as e:
            raise PersistenceError(self.state_file, f"failed to unmarshal state: {e}") from e

        logger.debug(f"State loaded from {self.state_file}")
        return state
