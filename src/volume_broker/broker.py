"""
volume-broker core

VolumeBroker owns the broker state (provisioned instances and active
bindings), serializes every mutation behind one lock and writes the
whole state to disk after each of them.
"""

import asyncio
import json
import logging
import posixpath
from typing import Any, Dict, List, Mapping, Optional, Tuple

from pydantic import BaseModel

from volume_broker.config import BrokerConfig, StaticConfig
from volume_broker.errors import (
    BindingAlreadyExistsError,
    BindingNotFoundError,
    InstanceAlreadyExistsError,
    InstanceNotFoundError,
    InvalidParametersError,
    MissingApplicationReferenceError,
    PersistenceError,
    ProvisionerFailureError,
    UnsupportedOperationError,
)
from volume_broker.provisioner import HttpProvisioner, LocalProvisioner, Provisioner
from volume_broker.storage import FileSystem, StateStore
from volume_broker.types import (
    BindDetails,
    Binding,
    CreateRequest,
    DeprovisionDetails,
    DeprovisionServiceSpec,
    DynamicState,
    ProvisionDetails,
    ProvisionedServiceSpec,
    RemoveRequest,
    Service,
    ServicePlan,
    SharedDevice,
    UnbindDetails,
    UpdateDetails,
    VolumeMount,
)

logger = logging.getLogger(__name__)

PERMISSION_VOLUME_MOUNT = "volume_mount"
DEFAULT_CONTAINER_PATH = "/var/vcap/data"
DEFAULT_DRIVER_NAME = "localdriver"

MODE_READ_ONLY = "r"
MODE_READ_WRITE = "rw"


def canonical_json(value: Any) -> str:
    """
    JSON text of a request value with sorted keys.

    Models are dumped with only the fields the client set. Values that
    Python considers equal but JSON keeps apart (``true``, ``1``, ``1.0``)
    produce different text.
    """
    if isinstance(value, BaseModel):
        value = value.model_dump(mode="json", exclude_unset=True)
    return json.dumps(value, sort_keys=True)


def has_conflict(mapping: Mapping[str, Any], key: str, candidate: Any) -> bool:
    """True iff ``key`` is present and maps to a value whose JSON differs from ``candidate``."""
    if key in mapping:
        return canonical_json(mapping[key]) != canonical_json(candidate)
    return False


def evaluate_mode(parameters: Optional[Dict[str, Any]]) -> str:
    """
    Mount mode for a bind request.

    ``readonly`` must be a JSON boolean when present; it defaults to
    read-write.
    """
    parameters = parameters or {}
    if "readonly" not in parameters:
        return MODE_READ_WRITE

    readonly = parameters["readonly"]
    if not isinstance(readonly, bool):
        raise InvalidParametersError(
            field="readonly",
            value=readonly,
            reason="must be a boolean",
        )
    return MODE_READ_ONLY if readonly else MODE_READ_WRITE


def evaluate_container_path(
    parameters: Optional[Dict[str, Any]],
    volume_id: str,
    base_path: str = DEFAULT_CONTAINER_PATH
) -> str:
    """Container mount path: the ``mount`` parameter, or <base_path>/<volume_id>."""
    parameters = parameters or {}
    mount = parameters.get("mount")
    if mount is None or mount == "":
        return posixpath.join(base_path, volume_id)

    if not isinstance(mount, str):
        raise InvalidParametersError(
            field="mount",
            value=mount,
            reason="must be a string",
        )
    return mount


class VolumeBroker:
    """
    Service broker for a single volume service and plan.

    Provision, deprovision, bind and unbind run one at a time: each holds
    the broker lock for its whole duration, provisioner call and state
    write included. The state is written on every exit path of those
    operations; a failed write is logged and never fails the request.
    """

    def __init__(
        self,
        static: StaticConfig,
        provisioner: Provisioner,
        data_dir: str,
        file_system: Optional[FileSystem] = None,
        spec_version: str = "1.0.0",
        driver_name: str = DEFAULT_DRIVER_NAME,
        default_container_path: str = DEFAULT_CONTAINER_PATH,
        service_description: str = "",
        service_tags: Optional[List[str]] = None,
    ):
        """
        Initialize the broker and restore any persisted state.

        Args:
            static: Service and plan identity
            provisioner: Volume provisioner used for create/remove
            data_dir: Directory holding the state file
            file_system: File access for the state file (default: local disk)
            spec_version: Protocol version sent in create options
            driver_name: Volume driver named in binding mounts
            default_container_path: Base path for mounts without 'mount'
            service_description: Catalog description
            service_tags: Catalog tags
        """
        self.static = static
        self.provisioner = provisioner
        self.spec_version = spec_version
        self.driver_name = driver_name
        self.default_container_path = default_container_path
        self.service_description = service_description
        self.service_tags = list(service_tags) if service_tags is not None else ["local"]

        self._store = StateStore(static.service_name, data_dir, file_system)
        self._lock = asyncio.Lock()
        self._state = DynamicState(instances={}, bindings={})

        self._restore_state()

        logger.info(
            f"VolumeBroker initialized: service={static.service_name}, "
            f"state_file={self._store.state_file}"
        )

    @classmethod
    def from_config(
        cls,
        config: BrokerConfig,
        provisioner: Optional[Provisioner] = None,
        file_system: Optional[FileSystem] = None,
    ) -> "VolumeBroker":
        """
        Build a broker from configuration.

        Uses the remote provisioner when ``provisioner_url`` is set and the
        local one otherwise, unless a provisioner is passed in.
        """
        if provisioner is None:
            if config.provisioner_url:
                provisioner = HttpProvisioner(
                    config.provisioner_url,
                    timeout_sec=config.provisioner_timeout_sec,
                )
            else:
                provisioner = LocalProvisioner(config.local_volume_dir)

        return cls(
            static=config.static_config(),
            provisioner=provisioner,
            data_dir=config.data_dir,
            file_system=file_system,
            spec_version=config.spec_version,
            driver_name=config.driver_name,
            default_container_path=config.default_container_path,
            service_description=config.service_description,
            service_tags=config.service_tags,
        )

    @property
    def state_file(self) -> str:
        return self._store.state_file

    @property
    def state(self) -> DynamicState:
        """Snapshot of the current state"""
        return self._state.model_copy(deep=True)

    # =========================================================================
    # Catalog
    # =========================================================================

    def services(self) -> List[Service]:
        """Catalog entry for the one service and plan this broker offers."""
        logger.debug("Listing services")
        return [
            Service(
                id=self.static.service_id,
                name=self.static.service_name,
                description=self.service_description,
                bindable=True,
                plan_updateable=False,
                tags=list(self.service_tags),
                requires=[PERMISSION_VOLUME_MOUNT],
                plans=[
                    ServicePlan(
                        id=self.static.plan_id,
                        name=self.static.plan_name,
                        description=self.static.plan_desc,
                    )
                ],
            )
        ]

    # =========================================================================
    # Instances
    # =========================================================================

    async def provision(
        self,
        instance_id: str,
        details: ProvisionDetails,
        async_allowed: bool = False,
        timeout: Optional[float] = None,
    ) -> ProvisionedServiceSpec:
        """
        Provision an instance.

        Re-provisioning an existing instance with identical details is
        accepted and calls the provisioner again; different details are
        a conflict. The request stored first is kept.

        Raises:
            InstanceAlreadyExistsError: Instance exists with other details
            ProvisionerFailureError: The provisioner reported an error
        """
        logger.info(f"provision start: instance={instance_id}")
        async with self._lock:
            try:
                if has_conflict(self._state.instances, instance_id, details):
                    logger.error(f"provision: instance {instance_id} already exists")
                    raise InstanceAlreadyExistsError(instance_id)

                already_exists = instance_id in self._state.instances

                response = await self.provisioner.create(
                    CreateRequest(
                        name=instance_id,
                        opts={"version": self.spec_version, "volume_capability": "mount"},
                    ),
                    timeout=timeout,
                )
                if response.failed:
                    logger.error(f"provision: provisioner create failed for {instance_id}: {response.err}")
                    raise ProvisionerFailureError("create", instance_id, response.err)

                if not already_exists:
                    self._state.instances[instance_id] = details.model_copy(deep=True)
                return ProvisionedServiceSpec(already_exists=already_exists)
            finally:
                self._save_state()
                logger.info(f"provision end: instance={instance_id}")

    async def deprovision(
        self,
        instance_id: str,
        details: Optional[DeprovisionDetails] = None,
        async_allowed: bool = False,
        timeout: Optional[float] = None,
    ) -> DeprovisionServiceSpec:
        """
        Deprovision an instance and remove its volume.

        Raises:
            InstanceNotFoundError: Instance is not provisioned
            ProvisionerFailureError: The provisioner reported an error
        """
        logger.info(f"deprovision start: instance={instance_id}")
        async with self._lock:
            try:
                if instance_id not in self._state.instances:
                    raise InstanceNotFoundError(instance_id)

                response = await self.provisioner.remove(
                    RemoveRequest(name=instance_id),
                    timeout=timeout,
                )
                if response.failed:
                    logger.error(f"deprovision: provisioner remove failed for {instance_id}: {response.err}")
                    raise ProvisionerFailureError("remove", instance_id, response.err)

                del self._state.instances[instance_id]
                return DeprovisionServiceSpec()
            finally:
                self._save_state()
                logger.info(f"deprovision end: instance={instance_id}")

    async def update(
        self,
        instance_id: str,
        details: UpdateDetails,
        async_allowed: bool = False,
    ):
        raise UnsupportedOperationError("update")

    async def last_operation(self, instance_id: str, operation_data: Optional[str] = None):
        raise UnsupportedOperationError("last_operation")

    # =========================================================================
    # Bindings
    # =========================================================================

    async def bind(
        self,
        instance_id: str,
        binding_id: str,
        details: BindDetails,
    ) -> Binding:
        """
        Bind an application to an instance.

        Returns a single shared volume mount for the instance. The mode
        comes from the ``readonly`` parameter and the container path from
        ``mount``.

        Raises:
            InstanceNotFoundError: Instance is not provisioned
            MissingApplicationReferenceError: No app GUID in the request
            InvalidParametersError: Malformed ``readonly`` or ``mount``
            BindingAlreadyExistsError: Binding exists with other details
        """
        logger.info(f"bind start: instance={instance_id}, binding={binding_id}")
        async with self._lock:
            try:
                if instance_id not in self._state.instances:
                    raise InstanceNotFoundError(instance_id)

                if not details.application_guid:
                    raise MissingApplicationReferenceError(binding_id)

                mode = evaluate_mode(details.parameters)
                container_dir = evaluate_container_path(
                    details.parameters, instance_id, self.default_container_path
                )

                if has_conflict(self._state.bindings, binding_id, details):
                    logger.error(f"bind: binding {binding_id} already exists")
                    raise BindingAlreadyExistsError(binding_id)

                already_exists = binding_id in self._state.bindings
                if not already_exists:
                    self._state.bindings[binding_id] = details.model_copy(deep=True)

                return Binding(
                    credentials={},
                    volume_mounts=[
                        VolumeMount(
                            driver=self.driver_name,
                            container_dir=container_dir,
                            mode=mode,
                            device_type="shared",
                            device=SharedDevice(volume_id=instance_id),
                        )
                    ],
                    already_exists=already_exists,
                )
            finally:
                self._save_state()
                logger.info(f"bind end: instance={instance_id}, binding={binding_id}")

    async def unbind(
        self,
        instance_id: str,
        binding_id: str,
        details: Optional[UnbindDetails] = None,
    ) -> None:
        """
        Remove a binding.

        Raises:
            InstanceNotFoundError: Instance is not provisioned
            BindingNotFoundError: Binding does not exist
        """
        logger.info(f"unbind start: instance={instance_id}, binding={binding_id}")
        async with self._lock:
            try:
                if instance_id not in self._state.instances:
                    raise InstanceNotFoundError(instance_id)

                if binding_id not in self._state.bindings:
                    raise BindingNotFoundError(binding_id)

                del self._state.bindings[binding_id]
            finally:
                self._save_state()
                logger.info(f"unbind end: instance={instance_id}, binding={binding_id}")

    # =========================================================================
    # Persistence
    # =========================================================================

    def _save_state(self) -> None:
        try:
            self._store.save(self._state)
        except PersistenceError as e:
            logger.error(f"Failed to save broker state: {e}")
            return
        logger.info(f"State saved to {self._store.state_file}")

    def _restore_state(self) -> None:
        try:
            restored = self._store.load()
        except PersistenceError as e:
            logger.warning(f"Starting with empty state: {e}")
            return
        self._state = restored
        logger.info(
            f"State restored from {self._store.state_file}: "
            f"{len(restored.instances)} instances, {len(restored.bindings)} bindings"
        )

    def counts(self) -> Tuple[int, int]:
        """Number of (instances, bindings) currently held"""
        return len(self._state.instances), len(self._state.bindings)
