"""
Volume provisioner base class

The broker creates and removes the volume backing an instance through
this interface. Implementations report failures in the returned
ErrorResponse instead of raising.
"""

from abc import ABC, abstractmethod
from typing import Optional

from volume_broker.types import CreateRequest, ErrorResponse, RemoveRequest


class Provisioner(ABC):
    """
    Abstract base class for volume provisioners.

    Both operations accept an optional timeout forwarded by the broker
    from its caller; honouring it is up to the implementation.
    """

    @abstractmethod
    async def create(
        self,
        request: CreateRequest,
        timeout: Optional[float] = None
    ) -> ErrorResponse:
        """
        Create the volume named by the request.

        Args:
            request: Volume name and create options
            timeout: Optional timeout in seconds

        Returns:
            ErrorResponse, empty ``err`` on success
        """
        pass

    @abstractmethod
    async def remove(
        self,
        request: RemoveRequest,
        timeout: Optional[float] = None
    ) -> ErrorResponse:
        """
        Remove the volume named by the request.

        Args:
            request: Volume name
            timeout: Optional timeout in seconds

        Returns:
            ErrorResponse, empty ``err`` on success
        """
        pass


from volume_broker.provisioner.http import HttpProvisioner  # noqa: E402
from volume_broker.provisioner.local import LocalProvisioner  # noqa: E402

__all__ = ["Provisioner", "HttpProvisioner", "LocalProvisioner"]
