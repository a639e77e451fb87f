"""
volume-broker type definitions

Request, response and state models shared by the broker core,
the provisioners and the REST layer.
"""

from pydantic import BaseModel, ConfigDict, Field
from typing import List, Optional, Dict, Any

__all__ = [
    "ServicePlan",
    "Service",
    "Catalog",
    "ProvisionDetails",
    "DeprovisionDetails",
    "BindResource",
    "BindDetails",
    "UnbindDetails",
    "UpdateDetails",
    "ProvisionedServiceSpec",
    "DeprovisionServiceSpec",
    "SharedDevice",
    "VolumeMount",
    "Binding",
    "DynamicState",
    "CreateRequest",
    "RemoveRequest",
    "ErrorResponse",
]


# =============================================================================
# Catalog
# =============================================================================

class ServicePlan(BaseModel):
    """Plan offered by the service"""

    id: str = Field(..., description="Plan ID")
    name: str = Field(..., description="Plan name")
    description: str = Field(default="", description="Plan description")


class Service(BaseModel):
    """Service offering advertised in the catalog"""

    id: str = Field(..., description="Service ID")
    name: str = Field(..., description="Service name")
    description: str = Field(default="", description="Service description")
    bindable: bool = Field(default=True, description="Whether instances can be bound")
    plan_updateable: bool = Field(default=False, description="Whether plans can be changed")
    tags: List[str] = Field(default_factory=list, description="Service tags")
    requires: List[str] = Field(
        default_factory=list,
        description="Permissions the platform must grant (e.g. volume_mount)"
    )
    plans: List[ServicePlan] = Field(default_factory=list, description="Service plans")


class Catalog(BaseModel):
    """Catalog response"""

    services: List[Service] = Field(default_factory=list)


# =============================================================================
# Requests
# =============================================================================

class ProvisionDetails(BaseModel):
    """
    Parameters supplied when provisioning an instance.

    The broker does not interpret most of these fields. Unknown fields
    are kept so the request can be stored and echoed back as received;
    two requests are the same iff their JSON forms match.
    """

    model_config = ConfigDict(extra="allow")

    service_id: Optional[str] = Field(default="", description="Service ID")
    plan_id: Optional[str] = Field(default="", description="Plan ID")
    organization_guid: Optional[str] = Field(default="", description="Organization GUID")
    space_guid: Optional[str] = Field(default="", description="Space GUID")
    context: Optional[Dict[str, Any]] = Field(None, description="Platform context")
    parameters: Optional[Dict[str, Any]] = Field(None, description="Raw provision parameters")


class DeprovisionDetails(BaseModel):
    """Parameters supplied when deprovisioning an instance"""

    service_id: str = Field(default="", description="Service ID")
    plan_id: str = Field(default="", description="Plan ID")


class BindResource(BaseModel):
    """Resource the binding is created for"""

    model_config = ConfigDict(extra="allow")

    app_guid: Optional[str] = Field(None, description="Application GUID")
    route: Optional[str] = Field(None, description="Route URL")


class BindDetails(BaseModel):
    """
    Parameters supplied when binding an application to an instance.

    Stored verbatim like ProvisionDetails; ``parameters`` may carry
    ``readonly`` (bool) and ``mount`` (container path).
    """

    model_config = ConfigDict(extra="allow")

    service_id: Optional[str] = Field(default="", description="Service ID")
    plan_id: Optional[str] = Field(default="", description="Plan ID")
    app_guid: Optional[str] = Field(None, description="Application GUID")
    bind_resource: Optional[BindResource] = Field(None, description="Bound resource")
    context: Optional[Dict[str, Any]] = Field(None, description="Platform context")
    parameters: Optional[Dict[str, Any]] = Field(None, description="Raw bind parameters")

    @property
    def application_guid(self) -> Optional[str]:
        """App GUID from the top-level field or from bind_resource"""
        if self.app_guid:
            return self.app_guid
        if self.bind_resource is not None and self.bind_resource.app_guid:
            return self.bind_resource.app_guid
        return None


class UnbindDetails(BaseModel):
    """Parameters supplied when unbinding"""

    service_id: str = Field(default="", description="Service ID")
    plan_id: str = Field(default="", description="Plan ID")


class UpdateDetails(BaseModel):
    """Parameters supplied when updating an instance"""

    model_config = ConfigDict(extra="allow")

    service_id: str = Field(default="", description="Service ID")
    plan_id: Optional[str] = Field(None, description="New plan ID")
    parameters: Optional[Dict[str, Any]] = Field(None, description="Raw update parameters")
    previous_values: Optional[Dict[str, Any]] = Field(None, description="Previous values")


# =============================================================================
# Responses
# =============================================================================

class ProvisionedServiceSpec(BaseModel):
    """Provision result"""

    is_async: bool = Field(default=False, description="Provisioning continues asynchronously")
    dashboard_url: Optional[str] = Field(None, description="Dashboard URL")
    operation_data: Optional[str] = Field(None, description="Async operation token")
    already_exists: bool = Field(
        default=False,
        description="An identical instance was already provisioned"
    )


class DeprovisionServiceSpec(BaseModel):
    """Deprovision result"""

    is_async: bool = Field(default=False)
    operation_data: Optional[str] = Field(None)


class SharedDevice(BaseModel):
    """Shared volume device"""

    volume_id: str = Field(..., description="Volume ID on the driver")
    mount_config: Optional[Dict[str, Any]] = Field(None, description="Driver mount options")


class VolumeMount(BaseModel):
    """Volume mount returned in a binding"""

    driver: str = Field(..., description="Volume driver name")
    container_dir: str = Field(..., description="Mount path inside the container")
    mode: str = Field(..., description="Mount mode: r or rw")
    device_type: str = Field(default="shared", description="Device type")
    device: SharedDevice = Field(..., description="Device descriptor")


class Binding(BaseModel):
    """Bind result"""

    # The platform rejects a null credentials object
    credentials: Dict[str, Any] = Field(default_factory=dict)
    volume_mounts: List[VolumeMount] = Field(default_factory=list)
    already_exists: bool = Field(
        default=False,
        description="An identical binding already existed"
    )


# =============================================================================
# Broker state
# =============================================================================

class DynamicState(BaseModel):
    """Instances and bindings currently known to the broker"""

    model_config = ConfigDict(populate_by_name=True)

    instances: Dict[str, ProvisionDetails] = Field(
        default_factory=dict,
        alias="InstanceMap",
        description="Instance ID -> request that created it"
    )
    bindings: Dict[str, BindDetails] = Field(
        default_factory=dict,
        alias="BindingMap",
        description="Binding ID -> request that created it"
    )


# =============================================================================
# Volume provisioner wire format
# =============================================================================

class CreateRequest(BaseModel):
    """Volume create request"""

    model_config = ConfigDict(populate_by_name=True)

    name: str = Field(..., alias="Name", description="Volume name (instance ID)")
    opts: Dict[str, Any] = Field(default_factory=dict, alias="Opts", description="Create options")


class RemoveRequest(BaseModel):
    """Volume remove request"""

    model_config = ConfigDict(populate_by_name=True)

    name: str = Field(..., alias="Name", description="Volume name (instance ID)")


class ErrorResponse(BaseModel):
    """Provisioner reply; an empty ``err`` means success"""

    model_config = ConfigDict(populate_by_name=True)

    err: str = Field(default="", alias="Err", description="Error message")

    @property
    def failed(self) -> bool:
        return bool(self.err)
