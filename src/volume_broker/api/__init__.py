"""
volume-broker API module

Open Service Broker REST endpoints.
"""

from volume_broker.api.rest import (
    create_app,
    BrokerErrorResponse,
    ERROR_CODE_MAP,
)

__all__ = [
    "create_app",
    "BrokerErrorResponse",
    "ERROR_CODE_MAP",
]
