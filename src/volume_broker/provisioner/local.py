"""
Local volume provisioner

Creates each volume as a directory under a local root, for brokers
running next to a local volume driver on a single host.
"""

import logging
import shutil
from pathlib import Path
from typing import Optional

from volume_broker.errors import InvalidParametersError
from volume_broker.path_utils import validate_path_component, validate_resolved_path
from volume_broker.provisioner import Provisioner
from volume_broker.types import CreateRequest, ErrorResponse, RemoveRequest

logger = logging.getLogger(__name__)


class LocalProvisioner(Provisioner):
    """
    Local filesystem provisioner.

    Volume lifecycle: create makes <base_path>/<name> (a no-op if it is
    already there), remove deletes the directory tree. The timeout
    argument is accepted and ignored.
    """

    def __init__(self, base_path: str = "/var/vcap/data/volumes"):
        """
        Initialize local provisioner.

        Args:
            base_path: Root directory for volumes
        """
        self.base_path = Path(base_path)

    def _volume_path(self, name: str) -> Path:
        validate_path_component(name, "name")
        return validate_resolved_path(self.base_path / name, self.base_path)

    async def create(
        self,
        request: CreateRequest,
        timeout: Optional[float] = None
    ) -> ErrorResponse:
        try:
            volume_path = self._volume_path(request.name)
        except InvalidParametersError as e:
            return ErrorResponse(err=e.message)

        try:
            volume_path.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            logger.error(f"Failed to create volume at {volume_path}: {e}")
            return ErrorResponse(err=f"failed to create volume '{request.name}': {e}")

        logger.info(f"Created volume {request.name} at {volume_path}")
        return ErrorResponse()

    async def remove(
        self,
        request: RemoveRequest,
        timeout: Optional[float] = None
    ) -> ErrorResponse:
        try:
            volume_path = self._volume_path(request.name)
        except InvalidParametersError as e:
            return ErrorResponse(err=e.message)

        if not volume_path.is_dir():
            logger.warning(f"Volume {request.name} not found at {volume_path}")
            return ErrorResponse(err=f"Volume '{request.name}' not found")

        try:
            shutil.rmtree(volume_path)
        except OSError as e:
            logger.error(f"Failed to delete volume at {volume_path}: {e}")
            return ErrorResponse(err=f"failed to remove volume '{request.name}': {e}")

        logger.info(f"Deleted volume {request.name} at {volume_path}")
        return ErrorResponse()
