"""
HTTP volume provisioner

Talks to a remote volume driver that exposes the
/VolumeDriver.Create and /VolumeDriver.Remove JSON endpoints.
"""

import asyncio
import logging
from typing import Any, Dict, Optional

import aiohttp
from pydantic import ValidationError

from volume_broker.provisioner import Provisioner
from volume_broker.types import CreateRequest, ErrorResponse, RemoveRequest

logger = logging.getLogger(__name__)

CREATE_PATH = "/VolumeDriver.Create"
REMOVE_PATH = "/VolumeDriver.Remove"


class HttpProvisioner(Provisioner):
    """
    Provisioner backed by a remote volume driver.

    A new aiohttp session is opened per call so the provisioner carries
    no event-loop bound state. Transport failures, error statuses and
    unparsable replies are all turned into an ErrorResponse.
    """

    def __init__(self, base_url: str, timeout_sec: float = 30):
        """
        Initialize the provisioner.

        Args:
            base_url: Volume driver URL (e.g., http://127.0.0.1:9750)
            timeout_sec: Default total timeout per call in seconds
        """
        self.base_url = base_url.rstrip("/")
        self.timeout_sec = timeout_sec

        logger.info(f"HttpProvisioner initialized with endpoint: {self.base_url}")

    async def create(
        self,
        request: CreateRequest,
        timeout: Optional[float] = None
    ) -> ErrorResponse:
        logger.info(f"Creating volume {request.name}")
        return await self._post(CREATE_PATH, request.model_dump(by_alias=True), timeout)

    async def remove(
        self,
        request: RemoveRequest,
        timeout: Optional[float] = None
    ) -> ErrorResponse:
        logger.info(f"Removing volume {request.name}")
        return await self._post(REMOVE_PATH, request.model_dump(by_alias=True), timeout)

    async def _post(
        self,
        path: str,
        payload: Dict[str, Any],
        timeout: Optional[float]
    ) -> ErrorResponse:
        url = f"{self.base_url}{path}"
        client_timeout = aiohttp.ClientTimeout(total=timeout or self.timeout_sec)

        try:
            async with aiohttp.ClientSession(timeout=client_timeout) as session:
                logger.debug(f"POST {url}")
                async with session.post(url, json=payload) as response:
                    if response.status >= 400:
                        body = await response.text()
                        logger.error(f"Volume driver returned HTTP {response.status}: {body}")
                        return ErrorResponse(err=f"HTTP {response.status}: {body or response.reason}")
                    data = await response.json(content_type=None)
        except aiohttp.ClientError as e:
            logger.error(f"Volume driver request to {url} failed: {e}")
            return ErrorResponse(err=f"volume driver request failed: {e}")
        except asyncio.TimeoutError:
            logger.error(f"Volume driver request to {url} timed out")
            return ErrorResponse(err="volume driver request timed out")
        except ValueError as e:
            logger.error(f"Volume driver returned invalid JSON: {e}")
            return ErrorResponse(err=f"invalid volume driver response: {e}")

        try:
            return ErrorResponse.model_validate(data or {})
        except ValidationError as e:
            logger.error(f"Volume driver returned unexpected body: {data}")
            return ErrorResponse(err=f"invalid volume driver response: {e}")
