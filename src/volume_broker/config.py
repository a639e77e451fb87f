from pydantic import BaseModel, ConfigDict, Field
from typing import List


class StaticConfig(BaseModel):
    """Identity of the single service and plan this broker advertises"""

    model_config = ConfigDict(frozen=True)

    service_name: str
    service_id: str
    plan_name: str
    plan_id: str
    plan_desc: str = ""


class BrokerConfig(BaseModel):
    """
    Runtime configuration for volume-broker.

    This configuration is loaded from either:
    1. Environment variables (BROKER_*), see from_env
    2. A YAML/JSON configuration file, see from_file

    Anything not set falls back to the defaults below.
    """

    # Service identity
    service_name: str = Field(
        default="localvolume",
        min_length=1,
        description="Service name advertised in the catalog (also names the state file)"
    )

    service_id: str = Field(
        default="localvolume-service-guid",
        min_length=1,
        description="Service ID advertised in the catalog"
    )

    plan_name: str = Field(
        default="free",
        min_length=1,
        description="Name of the single plan"
    )

    plan_id: str = Field(
        default="free-plan-guid",
        min_length=1,
        description="ID of the single plan"
    )

    plan_desc: str = Field(
        default="free local filesystem",
        description="Description of the single plan"
    )

    service_description: str = Field(
        default="Local volume service docs: https://github.com/cloudfoundry-incubator/local-volume-release/",
        description="Service description shown in the catalog"
    )

    service_tags: List[str] = Field(
        default_factory=lambda: ["local"],
        description="Service tags shown in the catalog"
    )

    # State persistence
    data_dir: str = Field(
        default="/var/vcap/data/volume-broker",
        description="Directory holding <service_name>-services.json"
    )

    # Volume provisioning
    spec_version: str = Field(
        default="1.0.0",
        description="Volume driver protocol version sent with create requests"
    )

    driver_name: str = Field(
        default="localdriver",
        description="Volume driver named in binding volume mounts"
    )

    default_container_path: str = Field(
        default="/var/vcap/data",
        description="Base container path for mounts without an explicit 'mount' parameter"
    )

    provisioner_url: str = Field(
        default="",
        description="Remote volume driver URL (e.g., http://127.0.0.1:9750). If empty, use the local provisioner."
    )

    provisioner_timeout_sec: int = Field(
        default=30,
        ge=1,
        le=3600,
        description="Default timeout for remote provisioner calls (seconds)"
    )

    local_volume_dir: str = Field(
        default="/var/vcap/data/volumes",
        description="Root directory for volumes created by the local provisioner"
    )

    # API server
    api_host: str = Field(
        default="0.0.0.0",
        description="API server host"
    )

    api_port: int = Field(
        default=8999,
        ge=1,
        le=65535,
        description="API server port"
    )

    log_level: str = Field(
        default="info",
        description="Logging level (debug/info/warning/error)"
    )

    def static_config(self) -> StaticConfig:
        """Build the immutable service/plan identity"""
        return StaticConfig(
            service_name=self.service_name,
            service_id=self.service_id,
            plan_name=self.plan_name,
            plan_id=self.plan_id,
            plan_desc=self.plan_desc,
        )

    @classmethod
    def from_env(cls) -> "BrokerConfig":
        """
        Load configuration from environment variables.

        Environment variables (BROKER_*) override defaults:

        - BROKER_SERVICE_NAME / BROKER_SERVICE_ID: Service identity
        - BROKER_PLAN_NAME / BROKER_PLAN_ID / BROKER_PLAN_DESC: Plan identity
        - BROKER_SERVICE_TAGS: Comma-separated list of catalog tags
        - BROKER_DATA_DIR: Directory for the state file
        - BROKER_SPEC_VERSION: Volume driver protocol version
        - BROKER_DRIVER_NAME: Volume driver named in bindings
        - BROKER_DEFAULT_CONTAINER_PATH: Base container path for mounts
        - BROKER_PROVISIONER_URL: Remote volume driver URL
        - BROKER_PROVISIONER_TIMEOUT: Remote provisioner timeout in seconds
        - BROKER_LOCAL_VOLUME_DIR: Root directory for the local provisioner
        - BROKER_API_HOST / BROKER_API_PORT: API server address
        - BROKER_LOG_LEVEL: Logging level
        """
        import os

        kwargs = {}

        # Identity
        for field_name in (
            "service_name",
            "service_id",
            "plan_name",
            "plan_id",
            "plan_desc",
            "service_description",
        ):
            env_name = f"BROKER_{field_name.upper()}"
            if env_name in os.environ:
                kwargs[field_name] = os.environ[env_name]
        if "BROKER_SERVICE_TAGS" in os.environ:
            tags = os.environ["BROKER_SERVICE_TAGS"]
            kwargs["service_tags"] = [item.strip() for item in tags.split(",") if item.strip()]

        # State
        if "BROKER_DATA_DIR" in os.environ:
            kwargs["data_dir"] = os.environ["BROKER_DATA_DIR"]

        # Provisioning
        if "BROKER_SPEC_VERSION" in os.environ:
            kwargs["spec_version"] = os.environ["BROKER_SPEC_VERSION"]
        if "BROKER_DRIVER_NAME" in os.environ:
            kwargs["driver_name"] = os.environ["BROKER_DRIVER_NAME"]
        if "BROKER_DEFAULT_CONTAINER_PATH" in os.environ:
            kwargs["default_container_path"] = os.environ["BROKER_DEFAULT_CONTAINER_PATH"]
        if "BROKER_PROVISIONER_URL" in os.environ:
            kwargs["provisioner_url"] = os.environ["BROKER_PROVISIONER_URL"]
        if "BROKER_PROVISIONER_TIMEOUT" in os.environ:
            kwargs["provisioner_timeout_sec"] = int(os.environ["BROKER_PROVISIONER_TIMEOUT"])
        if "BROKER_LOCAL_VOLUME_DIR" in os.environ:
            kwargs["local_volume_dir"] = os.environ["BROKER_LOCAL_VOLUME_DIR"]

        # API server
        if "BROKER_API_HOST" in os.environ:
            kwargs["api_host"] = os.environ["BROKER_API_HOST"]
        if "BROKER_API_PORT" in os.environ:
            kwargs["api_port"] = int(os.environ["BROKER_API_PORT"])
        if "BROKER_LOG_LEVEL" in os.environ:
            kwargs["log_level"] = os.environ["BROKER_LOG_LEVEL"]

        return cls(**kwargs)

    @classmethod
    def from_file(cls, config_path: str) -> "BrokerConfig":
        """
        Load configuration from a YAML or JSON file.

        Supported formats: .yaml, .yml, .json
        """
        import yaml

        with open(config_path, "r") as f:
            if config_path.endswith((".yaml", ".yml")):
                data = yaml.safe_load(f)
            elif config_path.endswith(".json"):
                import json
                data = json.load(f)
            else:
                raise ValueError(f"Unsupported config format: {config_path}")

        return cls(**(data or {}))
