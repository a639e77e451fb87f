"""
FastAPI REST API Server for volume-broker

Open Service Broker (v2) endpoints delegating to VolumeBroker.
"""

import logging
import uuid
from datetime import datetime
from typing import Any, Dict, Optional

from fastapi import FastAPI, Depends, Query, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from volume_broker import __version__
from volume_broker.broker import VolumeBroker
from volume_broker.config import BrokerConfig
from volume_broker.types import (
    BindDetails,
    Catalog,
    DeprovisionDetails,
    ProvisionDetails,
    UnbindDetails,
    UpdateDetails,
)
from volume_broker.errors import (
    BrokerError,
    InstanceAlreadyExistsError,
    InstanceNotFoundError,
    BindingAlreadyExistsError,
    BindingNotFoundError,
    MissingApplicationReferenceError,
    InvalidParametersError,
    ProvisionerFailureError,
)

logger = logging.getLogger(__name__)

# =============================================================================
# Response Models
# =============================================================================

class BrokerErrorResponse(BaseModel):
    """Error response body"""
    error: str = Field(..., description="Error code")
    description: str = Field(..., description="Human readable error description")
    details: Dict[str, Any] = Field(
        default_factory=dict,
        description="Additional error details"
    )
    request_id: str = Field(..., description="Request tracking ID")
    timestamp: str = Field(
        default_factory=lambda: datetime.utcnow().isoformat(),
        description="Error time (ISO 8601)"
    )


class ProvisionResponse(BaseModel):
    """Provision response body"""
    dashboard_url: Optional[str] = None
    operation: Optional[str] = None


# =============================================================================
# Error Code Mapping
# =============================================================================

ERROR_CODE_MAP = {
    InstanceAlreadyExistsError: 409,
    InstanceNotFoundError: 404,
    BindingAlreadyExistsError: 409,
    BindingNotFoundError: 410,
    MissingApplicationReferenceError: 422,
    InvalidParametersError: 422,
    ProvisionerFailureError: 500,
}


# =============================================================================
# FastAPI Application
# =============================================================================

def create_app(
    config: Optional[BrokerConfig] = None,
    broker: Optional[VolumeBroker] = None,
) -> FastAPI:
    """
    Create and configure FastAPI application.

    Args:
        config: Optional broker configuration
        broker: Optional pre-built broker (built lazily from config otherwise)

    Returns:
        Configured FastAPI application
    """
    if config is None:
        config = BrokerConfig.from_env()

    app = FastAPI(
        title="volume-broker API",
        version=__version__,
        description="Service broker for shared storage volumes",
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
    )

    # Store config in app state
    app.state.config = config
    if broker is not None:
        app.state.broker = broker

    # Register exception handlers
    register_exception_handlers(app)

    # Register routes
    register_routes(app)

    logger.info(f"FastAPI application created for service {config.service_name}")
    return app


def register_exception_handlers(app: FastAPI) -> None:
    """Register global exception handlers"""

    @app.exception_handler(BrokerError)
    async def broker_error_handler(request: Request, exc: BrokerError):
        """Handle BrokerError exceptions"""
        status_code = ERROR_CODE_MAP.get(type(exc), 500)
        request_id = getattr(request.state, "request_id", str(uuid.uuid4()))

        error_response = BrokerErrorResponse(
            error=exc.error_code,
            description=exc.message,
            details=exc.details,
            request_id=request_id,
        )

        logger.error(
            f"BrokerError: {exc.error_code} - {exc.message}",
            extra={"request_id": request_id}
        )

        return JSONResponse(
            status_code=status_code,
            content=error_response.model_dump(),
        )

    @app.exception_handler(Exception)
    async def general_error_handler(request: Request, exc: Exception):
        """Handle unexpected exceptions"""
        request_id = getattr(request.state, "request_id", str(uuid.uuid4()))

        logger.error(
            f"Unexpected error: {exc}",
            exc_info=True,
            extra={"request_id": request_id}
        )

        error_response = BrokerErrorResponse(
            error="INTERNAL_ERROR",
            description=str(exc) if exc else "An unexpected error occurred",
            details={},
            request_id=request_id,
        )

        return JSONResponse(
            status_code=500,
            content=error_response.model_dump(),
        )


def register_routes(app: FastAPI) -> None:
    """Register all API routes"""

    # Dependency to get broker
    async def get_broker() -> VolumeBroker:
        """Get broker instance"""
        if not hasattr(app.state, "broker"):
            app.state.broker = VolumeBroker.from_config(app.state.config)
        return app.state.broker

    # Request ID middleware
    @app.middleware("http")
    async def request_id_middleware(request: Request, call_next):
        request.state.request_id = str(uuid.uuid4())
        response = await call_next(request)
        response.headers["X-Request-ID"] = request.state.request_id
        return response

    # =========================================================================
    # Catalog
    # =========================================================================

    @app.get("/v2/catalog", response_model=Catalog, tags=["Catalog"])
    async def get_catalog(broker: VolumeBroker = Depends(get_broker)):
        """
        Service catalog

        Returns the single service and plan offered by this broker.
        """
        logger.info("Catalog requested")
        return Catalog(services=broker.services())

    # =========================================================================
    # Service Instances
    # =========================================================================

    @app.put("/v2/service_instances/{instance_id}", tags=["Instances"])
    async def provision_instance(
        instance_id: str,
        details: ProvisionDetails,
        accepts_incomplete: bool = Query(default=False),
        broker: VolumeBroker = Depends(get_broker)
    ):
        """
        Provision a service instance

        Answers 201 for a new instance and 200 when an identical instance
        already exists.
        """
        logger.info(f"Provisioning instance: {instance_id}")

        spec = await broker.provision(instance_id, details, async_allowed=accepts_incomplete)

        body = ProvisionResponse(dashboard_url=spec.dashboard_url, operation=spec.operation_data)
        return JSONResponse(
            status_code=200 if spec.already_exists else 201,
            content=body.model_dump(exclude_none=True),
        )

    @app.delete("/v2/service_instances/{instance_id}", tags=["Instances"])
    async def deprovision_instance(
        instance_id: str,
        service_id: str = Query(default=""),
        plan_id: str = Query(default=""),
        accepts_incomplete: bool = Query(default=False),
        broker: VolumeBroker = Depends(get_broker)
    ):
        """
        Deprovision a service instance

        Answers 410 Gone when the instance does not exist.
        """
        logger.info(f"Deprovisioning instance: {instance_id}")

        details = DeprovisionDetails(service_id=service_id, plan_id=plan_id)
        try:
            await broker.deprovision(instance_id, details, async_allowed=accepts_incomplete)
        except InstanceNotFoundError:
            logger.info(f"Instance {instance_id} is already gone")
            return JSONResponse(status_code=410, content={})
        return JSONResponse(status_code=200, content={})

    @app.patch("/v2/service_instances/{instance_id}", tags=["Instances"])
    async def update_instance(
        instance_id: str,
        details: UpdateDetails,
        accepts_incomplete: bool = Query(default=False),
        broker: VolumeBroker = Depends(get_broker)
    ):
        """Update a service instance (not supported)"""
        return await broker.update(instance_id, details, async_allowed=accepts_incomplete)

    @app.get("/v2/service_instances/{instance_id}/last_operation", tags=["Instances"])
    async def get_last_operation(
        instance_id: str,
        operation: Optional[str] = Query(default=None),
        broker: VolumeBroker = Depends(get_broker)
    ):
        """Poll an asynchronous operation (not supported)"""
        return await broker.last_operation(instance_id, operation)

    # =========================================================================
    # Service Bindings
    # =========================================================================

    @app.put(
        "/v2/service_instances/{instance_id}/service_bindings/{binding_id}",
        tags=["Bindings"]
    )
    async def bind_instance(
        instance_id: str,
        binding_id: str,
        details: BindDetails,
        broker: VolumeBroker = Depends(get_broker)
    ):
        """
        Create a service binding

        Returns the volume mount for the instance.
        """
        logger.info(f"Binding {binding_id} to instance {instance_id}")

        binding = await broker.bind(instance_id, binding_id, details)

        return JSONResponse(
            status_code=200 if binding.already_exists else 201,
            content=binding.model_dump(exclude={"already_exists"}),
        )

    @app.delete(
        "/v2/service_instances/{instance_id}/service_bindings/{binding_id}",
        tags=["Bindings"]
    )
    async def unbind_instance(
        instance_id: str,
        binding_id: str,
        service_id: str = Query(default=""),
        plan_id: str = Query(default=""),
        broker: VolumeBroker = Depends(get_broker)
    ):
        """
        Delete a service binding

        Answers 410 Gone when the binding does not exist.
        """
        logger.info(f"Unbinding {binding_id} from instance {instance_id}")

        details = UnbindDetails(service_id=service_id, plan_id=plan_id)
        await broker.unbind(instance_id, binding_id, details)
        return JSONResponse(status_code=200, content={})

    # =========================================================================
    # Root Endpoint
    # =========================================================================

    @app.get("/", tags=["Root"])
    async def root(broker: VolumeBroker = Depends(get_broker)):
        """
        API root endpoint

        Returns basic broker information.
        """
        instances, bindings = broker.counts()
        return {
            "name": "volume-broker API",
            "version": __version__,
            "service": broker.static.service_name,
            "instances": instances,
            "bindings": bindings,
            "catalog": "/v2/catalog",
        }


# =============================================================================
# Entry Point
# =============================================================================

def main():
    """CLI entry point for volume-broker command."""
    import argparse
    import uvicorn

    from volume_broker.utils.logger import configure_logging

    parser = argparse.ArgumentParser(
        description="volume-broker API server",
        prog="volume-broker"
    )
    parser.add_argument(
        "--config",
        default=None,
        help="YAML or JSON configuration file (default: BROKER_* environment variables)"
    )
    parser.add_argument(
        "--host",
        default=None,
        help="Host to bind to (default: from config or 0.0.0.0)"
    )
    parser.add_argument(
        "--port",
        type=int,
        default=None,
        help="Port to bind to (default: from config or 8999)"
    )
    parser.add_argument(
        "--log-level",
        default=None,
        choices=["debug", "info", "warning", "error"],
        help="Logging level (default: from config or info)"
    )

    args = parser.parse_args()

    config = BrokerConfig.from_file(args.config) if args.config else BrokerConfig.from_env()
    log_level = args.log_level or config.log_level

    configure_logging(level=getattr(logging, log_level.upper(), logging.INFO))

    uvicorn.run(
        create_app(config),
        host=args.host or config.api_host,
        port=args.port or config.api_port,
        log_level=log_level,
    )


if __name__ == "__main__":
    main()
