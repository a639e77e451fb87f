"""
Pytest configuration and fixtures for volume-broker tests.

This module provides shared fixtures and configuration for all tests.
"""

import asyncio
import sys
import tempfile
from pathlib import Path
from typing import Dict, Generator, List, Optional

import pytest

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from volume_broker.broker import VolumeBroker  # noqa: E402
from volume_broker.config import BrokerConfig, StaticConfig  # noqa: E402
from volume_broker.provisioner import Provisioner  # noqa: E402
from volume_broker.storage import FileSystem  # noqa: E402
from volume_broker.types import CreateRequest, ErrorResponse, RemoveRequest  # noqa: E402


# =============================================================================
# Pytest Configuration
# =============================================================================

def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line(
        "markers", "unit: Unit tests (fast, isolated)"
    )
    config.addinivalue_line(
        "markers", "api: API endpoint tests"
    )


# =============================================================================
# Test Doubles
# =============================================================================

class MemoryFileSystem(FileSystem):
    """In-memory FileSystem that can be told to fail."""

    def __init__(self):
        self.files: Dict[str, bytes] = {}
        self.writes: List[str] = []
        self.fail_reads = False
        self.fail_writes = False

    def read_bytes(self, path: str) -> bytes:
        if self.fail_reads:
            raise PermissionError(f"read denied: {path}")
        if path not in self.files:
            raise FileNotFoundError(path)
        return self.files[path]

    def write_bytes(self, path: str, data: bytes) -> None:
        if self.fail_writes:
            raise OSError(30, "Read-only file system", path)
        self.files[path] = data
        self.writes.append(path)


class FakeProvisioner(Provisioner):
    """Provisioner that records calls and returns scripted errors."""

    def __init__(self, delay: float = 0.0):
        self.delay = delay
        self.create_error = ""
        self.remove_error = ""
        self.created: List[CreateRequest] = []
        self.removed: List[RemoveRequest] = []
        self.timeouts: List[Optional[float]] = []
        self.in_flight = 0
        self.max_in_flight = 0

    async def _enter(self, timeout: Optional[float]) -> None:
        self.timeouts.append(timeout)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        await asyncio.sleep(self.delay)
        self.in_flight -= 1

    async def create(self, request: CreateRequest, timeout: Optional[float] = None) -> ErrorResponse:
        await self._enter(timeout)
        self.created.append(request)
        return ErrorResponse(err=self.create_error)

    async def remove(self, request: RemoveRequest, timeout: Optional[float] = None) -> ErrorResponse:
        await self._enter(timeout)
        self.removed.append(request)
        return ErrorResponse(err=self.remove_error)


# =============================================================================
# Temporary Directories
# =============================================================================

@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for tests."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def data_dir(temp_dir) -> Path:
    """Create a temporary state directory."""
    path = temp_dir / "data"
    path.mkdir(parents=True)
    return path


# =============================================================================
# Broker Fixtures
# =============================================================================

@pytest.fixture
def static_config() -> StaticConfig:
    """Service identity used by test brokers."""
    return StaticConfig(
        service_name="localvolume",
        service_id="service-guid",
        plan_name="free",
        plan_id="plan-guid",
        plan_desc="free local filesystem",
    )


@pytest.fixture
def memory_fs() -> MemoryFileSystem:
    return MemoryFileSystem()


@pytest.fixture
def fake_provisioner() -> FakeProvisioner:
    return FakeProvisioner()


@pytest.fixture
def broker(static_config, fake_provisioner, memory_fs) -> VolumeBroker:
    """Broker with in-memory state file and fake provisioner."""
    return VolumeBroker(
        static=static_config,
        provisioner=fake_provisioner,
        data_dir="/state",
        file_system=memory_fs,
        spec_version="1.0.0",
    )


@pytest.fixture
def broker_config(data_dir, temp_dir) -> BrokerConfig:
    """Broker configuration rooted in a temporary directory."""
    return BrokerConfig(
        service_name="localvolume",
        service_id="service-guid",
        plan_name="free",
        plan_id="plan-guid",
        plan_desc="free local filesystem",
        data_dir=str(data_dir),
        local_volume_dir=str(temp_dir / "volumes"),
    )
