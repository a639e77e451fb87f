"""
volume-broker: Open Service Broker for shared storage volumes

Provisions volumes through a volume driver, hands out volume mounts
on bind, and keeps its instances and bindings in a JSON state file.
"""

__version__ = "1.0.0"

from volume_broker.broker import VolumeBroker, canonical_json, has_conflict
from volume_broker.config import BrokerConfig, StaticConfig
from volume_broker.provisioner import Provisioner, HttpProvisioner, LocalProvisioner
from volume_broker.storage import FileSystem, LocalFileSystem, StateStore
from volume_broker.types import (
    ProvisionDetails,
    DeprovisionDetails,
    BindDetails,
    UnbindDetails,
    UpdateDetails,
    Service,
    ServicePlan,
    Catalog,
    Binding,
    VolumeMount,
    SharedDevice,
    DynamicState,
    ProvisionedServiceSpec,
    DeprovisionServiceSpec,
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
    PersistenceError,
    UnsupportedOperationError,
)

# Re-export core classes
__all__ = [
    "VolumeBroker",
    "has_conflict",
    "canonical_json",
    "BrokerConfig",
    "StaticConfig",
    # Collaborators
    "Provisioner",
    "HttpProvisioner",
    "LocalProvisioner",
    "FileSystem",
    "LocalFileSystem",
    "StateStore",
    # Models
    "ProvisionDetails",
    "DeprovisionDetails",
    "BindDetails",
    "UnbindDetails",
    "UpdateDetails",
    "Service",
    "ServicePlan",
    "Catalog",
    "Binding",
    "VolumeMount",
    "SharedDevice",
    "DynamicState",
    "ProvisionedServiceSpec",
    "DeprovisionServiceSpec",
    # Exception classes
    "BrokerError",
    "InstanceAlreadyExistsError",
    "InstanceNotFoundError",
    "BindingAlreadyExistsError",
    "BindingNotFoundError",
    "MissingApplicationReferenceError",
    "InvalidParametersError",
    "ProvisionerFailureError",
    "PersistenceError",
    "UnsupportedOperationError",
]
