"""
Path validation utilities for volume-broker.

Volume names arrive from the platform as instance IDs and are used as
directory names by the local provisioner; these checks keep them from
escaping the volume root.
"""

import os
from pathlib import Path
from typing import Union

from volume_broker.errors import InvalidParametersError


def validate_path_component(value: str, field_name: str = "path") -> None:
    """
    Validate that a user-supplied path component is safe to join
    with a base directory.

    Rules:
    - Must not be empty
    - Must not be an absolute path
    - Must be a single component (no separators)
    - Must not be '.' or '..'

    Args:
        value: The path component (e.g. a volume name).
        field_name: Human-readable field name for error messages.

    Raises:
        InvalidParametersError: If the path component is unsafe.
    """
    if not value or not value.strip():
        raise InvalidParametersError(
            field=field_name,
            value=value,
            reason=f"{field_name} cannot be empty",
        )

    # Reject absolute paths (Unix and Windows)
    if os.path.isabs(value) or value.startswith("/") or value.startswith("\\"):
        raise InvalidParametersError(
            field=field_name,
            value=value,
            reason="Absolute paths are not allowed",
        )

    if "/" in value or "\\" in value:
        raise InvalidParametersError(
            field=field_name,
            value=value,
            reason="Path separators are not allowed",
        )

    if value in (".", ".."):
        raise InvalidParametersError(
            field=field_name,
            value=value,
            reason="Path traversal ('..') is not allowed",
        )


def validate_resolved_path(child: Union[str, Path], base_dir: Union[str, Path]) -> Path:
    """
    Validate that a resolved child path stays within base_dir.

    Args:
        child: The child path.
        base_dir: The base directory that the child must stay within.

    Returns:
        The resolved child Path.

    Raises:
        InvalidParametersError: If the resolved path escapes base_dir.
    """
    child_resolved = Path(child).resolve()
    base_resolved = Path(base_dir).resolve()

    try:
        common = Path(os.path.commonpath([str(child_resolved), str(base_resolved)]))
    except ValueError:
        # On Windows, paths on different drives raise ValueError
        raise InvalidParametersError(
            field="path",
            value=str(child),
            reason="Path is outside the allowed base directory",
        )

    if common != base_resolved or child_resolved == base_resolved:
        raise InvalidParametersError(
            field="path",
            value=str(child),
            reason="Path is outside the allowed base directory",
        )

    return child_resolved
