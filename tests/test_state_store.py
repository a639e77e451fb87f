"""
Unit tests for StateStore.

Tests the state file location and format, restoring saved state and
the errors raised for unreadable or unwritable files.
"""

import json

import pytest

from volume_broker.broker import canonical_json
from volume_broker.errors import PersistenceError
from volume_broker.storage import LocalFileSystem, StateStore, state_file_path
from volume_broker.types import BindDetails, BindResource, DynamicState, ProvisionDetails

from conftest import MemoryFileSystem


@pytest.fixture
def sample_state() -> DynamicState:
    return DynamicState(
        instances={
            "vol-1": ProvisionDetails(
                service_id="service-guid",
                plan_id="plan-guid",
                organization_guid="org",
                space_guid="space",
                parameters={
                    "size": "1G",
                    "nested": {"uid": 1000, "list": [1, "two", None]},
                    "flags": {"enabled": True, "count": 1, "ratio": 1.0, "off": 0, "no": False},
                },
            ),
            "vol-2": ProvisionDetails(
                service_id="service-guid",
                context={"platform": "cloudfoundry"},
                maintenance_info={"version": "2.0"},
            ),
        },
        bindings={
            "bind-1": BindDetails(
                app_guid="app-guid",
                bind_resource=BindResource(app_guid="app-guid"),
                parameters={"readonly": True, "mount": "/data"},
            ),
        },
    )


class TestStateFilePath:
    """Tests for the state file location."""

    def test_path_derived_from_service_name(self):
        assert state_file_path("/var/data", "localvolume") == "/var/data/localvolume-services.json"

    def test_store_uses_derived_path(self, memory_fs):
        store = StateStore("nfs", "/state", memory_fs)

        assert store.state_file == "/state/nfs-services.json"


class TestRoundTrip:
    """Tests for saving and loading state."""

    def test_empty_state_round_trip(self, memory_fs):
        store = StateStore("localvolume", "/state", memory_fs)
        state = DynamicState(instances={}, bindings={})

        store.save(state)

        assert store.load() == state

    def test_populated_state_round_trip(self, memory_fs, sample_state):
        store = StateStore("localvolume", "/state", memory_fs)

        store.save(sample_state)
        restored = store.load()

        assert restored == sample_state
        assert restored.instances["vol-2"].model_extra == {"maintenance_info": {"version": "2.0"}}

    def test_round_trip_keeps_json_types(self, memory_fs, sample_state):
        store = StateStore("localvolume", "/state", memory_fs)

        store.save(sample_state)
        restored = store.load()

        for instance_id, details in sample_state.instances.items():
            assert canonical_json(restored.instances[instance_id]) == canonical_json(details)
        assert canonical_json(restored.bindings["bind-1"]) == canonical_json(sample_state.bindings["bind-1"])
        flags = restored.instances["vol-1"].parameters["flags"]
        assert [type(flags[key]) for key in ("enabled", "count", "ratio", "off", "no")] == [
            bool, int, float, int, bool
        ]

    def test_round_trip_on_local_disk(self, temp_dir, sample_state):
        store = StateStore("localvolume", temp_dir / "nested" / "dir", LocalFileSystem())

        store.save(sample_state)

        assert (temp_dir / "nested" / "dir" / "localvolume-services.json").exists()
        assert store.load() == sample_state

    def test_save_replaces_previous_contents(self, memory_fs, sample_state):
        store = StateStore("localvolume", "/state", memory_fs)
        store.save(sample_state)

        store.save(DynamicState(instances={}, bindings={}))

        assert store.load().instances == {}


class TestFileFormat:
    """Tests for the JSON layout of the state file."""

    def test_requests_are_stored_as_received(self, memory_fs, sample_state):
        store = StateStore("localvolume", "/state", memory_fs)

        store.save(sample_state)
        data = json.loads(memory_fs.files[store.state_file])

        assert set(data) == {"InstanceMap", "BindingMap"}
        assert data["InstanceMap"]["vol-2"] == {
            "service_id": "service-guid",
            "context": {"platform": "cloudfoundry"},
            "maintenance_info": {"version": "2.0"},
        }
        assert data["BindingMap"]["bind-1"] == {
            "app_guid": "app-guid",
            "bind_resource": {"app_guid": "app-guid"},
            "parameters": {"readonly": True, "mount": "/data"},
        }

    def test_missing_maps_load_as_empty(self, memory_fs):
        store = StateStore("localvolume", "/state", memory_fs)
        memory_fs.files[store.state_file] = b"{}"

        state = store.load()

        assert state.instances == {}
        assert state.bindings == {}


class TestErrors:
    """Tests for persistence failures."""

    def test_load_missing_file(self, memory_fs):
        store = StateStore("localvolume", "/state", memory_fs)

        with pytest.raises(PersistenceError) as exc_info:
            store.load()

        assert exc_info.value.path == "/state/localvolume-services.json"
        assert "failed to read" in exc_info.value.reason

    @pytest.mark.parametrize("contents", [b"{broken", b"[1, 2]", b'{"InstanceMap": {"vol-1": 3}}'])
    def test_load_unparsable_file(self, memory_fs, contents):
        store = StateStore("localvolume", "/state", memory_fs)
        memory_fs.files[store.state_file] = contents

        with pytest.raises(PersistenceError) as exc_info:
            store.load()

        assert "failed to unmarshal" in exc_info.value.reason

    def test_save_write_failure(self, sample_state):
        file_system = MemoryFileSystem()
        file_system.fail_writes = True
        store = StateStore("localvolume", "/state", file_system)

        with pytest.raises(PersistenceError) as exc_info:
            store.save(sample_state)

        assert exc_info.value.error_code == "PERSISTENCE_FAILED"
        assert file_system.files == {}
