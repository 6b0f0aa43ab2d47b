"""Shared fixtures: a deterministic in-memory probe."""

import pytest

from sysinfo_server.config import Settings
from sysinfo_server.models import CpuCore, CpuInfo, MemoryInfo, ProcessInfo, SystemOverview
from sysinfo_server.monitor import SnapshotService


class FakeProbe:
    """Probe double with fixed readings; counts refreshes."""

    def __init__(self, processes: list[ProcessInfo] | None = None, cores: int = 4) -> None:
        self._processes = list(processes or [])
        self._cores = cores
        self.refreshes = 0
        self.fail_with: Exception | None = None

    def refresh(self) -> None:
        if self.fail_with is not None:
            raise self.fail_with
        self.refreshes += 1

    def overview(self) -> SystemOverview:
        return SystemOverview(
            name="TestOS",
            kernel_version="6.1.0",
            os_version="12",
            host_name="testhost",
            uptime=3600,
            boot_time=1_700_000_000,
        )

    def cpu(self) -> CpuInfo:
        return CpuInfo(
            global_usage=12.5,
            cores=tuple(CpuCore(name=f"cpu{i}", usage=10.0 * i, frequency=2400) for i in range(self._cores)),
            physical_core_count=self._cores // 2,
        )

    def memory(self) -> MemoryInfo:
        return MemoryInfo(
            total=16 * 1024**3,
            available=8 * 1024**3,
            used=7 * 1024**3,
            free=1024**3,
            swap_total=2 * 1024**3,
            swap_used=0,
            swap_free=2 * 1024**3,
        )

    def processes(self) -> list[ProcessInfo]:
        return list(self._processes)


def make_processes(count: int) -> list[ProcessInfo]:
    """Processes whose cpu usage rises and memory falls with pid."""
    return [
        ProcessInfo(pid=i + 1, name=f"proc{i + 1}", cpu_usage=float(i), memory=(count - i) * 1024)
        for i in range(count)
    ]


@pytest.fixture
def fake_probe() -> FakeProbe:
    return FakeProbe(make_processes(80))


@pytest.fixture
def service(fake_probe: FakeProbe) -> SnapshotService:
    return SnapshotService(fake_probe)


@pytest.fixture
def settings() -> Settings:
    return Settings(
        server_host="127.0.0.1",
        server_port=0,
        mcp_port=0,
        auth_username="admin",
        auth_password="s3cret",
        rate_limit=100,
        mcp_mode="both",
        _env_file=None,
    )


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, now: float = 1000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds
