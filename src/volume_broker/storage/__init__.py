"""
State persistence module for volume-broker

Provides the state file store and the file access it runs on.
"""

from .state_store import (
    FileSystem,
    LocalFileSystem,
    StateStore,
    state_file_path,
)

__all__ = [
    "FileSystem",
    "LocalFileSystem",
    "StateStore",
    "state_file_path",
]
