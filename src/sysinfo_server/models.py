"""Data models for sysinfo-server."""

from dataclasses import dataclass
from datetime import datetime


@dataclass(slots=True, frozen=True)
class ProcessInfo:
    """Immutable view of one process at snapshot time."""

    pid: int
    name: str
    cpu_usage: float  # 0.0 - 100.0 * core_count
    memory: int  # RSS bytes


@dataclass(slots=True, frozen=True)
class ProcessSummary:
    """Ranked process views; total_count is taken before truncation."""

    total_count: int
    top_cpu_processes: tuple[ProcessInfo, ...]
    top_memory_processes: tuple[ProcessInfo, ...]


@dataclass(slots=True, frozen=True)
class CpuCore:
    name: str
    usage: float
    frequency: int  # MHz


@dataclass(slots=True, frozen=True)
class CpuInfo:
    global_usage: float
    cores: tuple[CpuCore, ...]
    physical_core_count: int | None


@dataclass(slots=True, frozen=True)
class MemoryInfo:
    """RAM and swap figures in bytes, as reported by the probe."""

    total: int
    available: int
    used: int
    free: int
    swap_total: int
    swap_used: int
    swap_free: int


@dataclass(slots=True, frozen=True)
class SystemOverview:
    """OS identity and uptime facts."""

    name: str | None
    kernel_version: str | None
    os_version: str | None
    host_name: str | None
    uptime: int  # Seconds
    boot_time: int  # Epoch seconds


@dataclass(slots=True, frozen=True)
class SystemSnapshot:
    """One complete, internally consistent telemetry reading."""

    timestamp: datetime
    overview: SystemOverview
    cpu: CpuInfo
    memory: MemoryInfo
    processes: ProcessSummary
