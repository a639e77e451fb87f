"""
volume-broker error definitions

Standard exceptions raised by the broker core and mapped to HTTP
responses by the REST layer.
"""

from typing import Optional, Dict, Any


class BrokerError(Exception):
    """Base exception for all broker request errors"""

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code or "UNKNOWN"
        self.details = details or {}

    def __str__(self) -> str:
        return f"[{self.error_code}] {self.message}"


class InstanceAlreadyExistsError(BrokerError):
    """Instance exists with different provision details"""

    def __init__(self, instance_id: str):
        super().__init__(
            message=f"Instance '{instance_id}' already exists with different details",
            error_code="INSTANCE_EXISTS"
        )
        self.instance_id = instance_id


class InstanceNotFoundError(BrokerError):
    """Instance does not exist"""

    def __init__(self, instance_id: str):
        super().__init__(
            message=f"Instance '{instance_id}' does not exist",
            error_code="INSTANCE_NOT_FOUND"
        )
        self.instance_id = instance_id


class BindingAlreadyExistsError(BrokerError):
    """Binding exists with different bind details"""

    def __init__(self, binding_id: str):
        super().__init__(
            message=f"Binding '{binding_id}' already exists with different details",
            error_code="BINDING_EXISTS"
        )
        self.binding_id = binding_id


class BindingNotFoundError(BrokerError):
    """Binding does not exist"""

    def __init__(self, binding_id: str):
        super().__init__(
            message=f"Binding '{binding_id}' does not exist",
            error_code="BINDING_NOT_FOUND"
        )
        self.binding_id = binding_id


class MissingApplicationReferenceError(BrokerError):
    """Bind request carries no application GUID"""

    def __init__(self, binding_id: str):
        super().__init__(
            message=f"Binding '{binding_id}' requires an app_guid",
            error_code="REQUIRES_APP"
        )
        self.binding_id = binding_id


class InvalidParametersError(BrokerError):
    """Invalid request parameters"""

    def __init__(self, field: str, value: Any, reason: str):
        super().__init__(
            message=f"Invalid parameter '{field}': {reason}",
            error_code="INVALID_PARAMETERS",
            details={"field": field}
        )
        self.field = field
        self.value = value
        self.reason = reason


class ProvisionerFailureError(BrokerError):
    """Volume provisioner reported an error

    The provisioner's text is passed through unchanged as the message.
    """

    def __init__(self, operation: str, instance_id: str, reason: str):
        super().__init__(
            message=reason,
            error_code="PROVISIONER_FAILED",
            details={"operation": operation, "instance_id": instance_id}
        )
        self.operation = operation
        self.instance_id = instance_id
        self.reason = reason


class PersistenceError(BrokerError):
    """State file could not be read, parsed or written"""

    def __init__(self, path: str, reason: str):
        super().__init__(
            message=f"State file '{path}': {reason}",
            error_code="PERSISTENCE_FAILED",
            details={"path": path}
        )
        self.path = path
        self.reason = reason


class UnsupportedOperationError(NotImplementedError):
    """Operation is outside the broker's capability set"""

    def __init__(self, operation: str):
        super().__init__(f"{operation} is not implemented by this broker")
        self.operation = operation


# Error codes
ERROR_CODES = {
    # Instance errors
    "INSTANCE_EXISTS": "Instance already exists with different details",
    "INSTANCE_NOT_FOUND": "Instance does not exist",

    # Binding errors
    "BINDING_EXISTS": "Binding already exists with different details",
    "BINDING_NOT_FOUND": "Binding does not exist",
    "REQUIRES_APP": "Bind request has no application GUID",

    # Request errors
    "INVALID_PARAMETERS": "Invalid request parameter",

    # Collaborator errors
    "PROVISIONER_FAILED": "Volume provisioner failed",
    "PERSISTENCE_FAILED": "State file could not be read or written",
}
