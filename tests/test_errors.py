"""
Unit tests for broker error types.
"""

import pytest

from volume_broker.errors import (
    ERROR_CODES,
    BindingAlreadyExistsError,
    BindingNotFoundError,
    BrokerError,
    InstanceAlreadyExistsError,
    InstanceNotFoundError,
    InvalidParametersError,
    MissingApplicationReferenceError,
    PersistenceError,
    ProvisionerFailureError,
    UnsupportedOperationError,
)


class TestBrokerError:
    """Tests for the base error."""

    def test_str_includes_code(self):
        error = BrokerError("something broke", error_code="BROKEN")

        assert str(error) == "[BROKEN] something broke"

    def test_defaults(self):
        error = BrokerError("something broke")

        assert error.error_code == "UNKNOWN"
        assert error.details == {}


class TestErrorCodes:
    """Every concrete error carries a documented code."""

    @pytest.mark.parametrize(
        "error",
        [
            InstanceAlreadyExistsError("vol-1"),
            InstanceNotFoundError("vol-1"),
            BindingAlreadyExistsError("bind-1"),
            BindingNotFoundError("bind-1"),
            MissingApplicationReferenceError("bind-1"),
            InvalidParametersError("readonly", "yes", "must be a boolean"),
            ProvisionerFailureError("create", "vol-1", "driver offline"),
            PersistenceError("/state/localvolume-services.json", "failed to write state file"),
        ],
    )
    def test_code_is_documented(self, error):
        assert isinstance(error, BrokerError)
        assert error.error_code in ERROR_CODES

    def test_provisioner_message_is_verbatim(self):
        error = ProvisionerFailureError("remove", "vol-1", "Volume 'vol-1' not found")

        assert error.message == "Volume 'vol-1' not found"
        assert error.details == {"operation": "remove", "instance_id": "vol-1"}

    def test_invalid_parameters_details(self):
        error = InvalidParametersError("mount", 42, "must be a string")

        assert error.details == {"field": "mount"}
        assert "must be a string" in error.message

    def test_unsupported_is_not_a_broker_error(self):
        error = UnsupportedOperationError("update")

        assert isinstance(error, NotImplementedError)
        assert not isinstance(error, BrokerError)
        assert error.operation == "update"
