"""Snapshot service: the single owner of the OS probe."""

import platform
import socket
import threading
import time
from datetime import datetime, timezone
from typing import Protocol

import psutil

from sysinfo_server.errors import ProbeError
from sysinfo_server.logs import get_logger
from sysinfo_server.models import (
    CpuCore,
    CpuInfo,
    MemoryInfo,
    ProcessInfo,
    ProcessSummary,
    SystemOverview,
    SystemSnapshot,
)

DEFAULT_PROCESS_LIMIT = 10
MAX_PROCESS_LIMIT = 50

logger = get_logger("monitor")


def clamp_limit(limit: int | None) -> int:
    """Resolve a requested ranking length: None -> default, else clamp into [0, max]."""
    if limit is None:
        return DEFAULT_PROCESS_LIMIT
    return max(0, min(int(limit), MAX_PROCESS_LIMIT))


def rank_processes(processes: list[ProcessInfo], limit: int | None = None) -> ProcessSummary:
    """
    Build the two ranked views of a process set.

    Both sorts are stable, so equal values keep the probe's enumeration order.
    """
    n = clamp_limit(limit)
    by_cpu = sorted(processes, key=lambda p: p.cpu_usage, reverse=True)
    by_memory = sorted(processes, key=lambda p: p.memory, reverse=True)
    return ProcessSummary(
        total_count=len(processes),
        top_cpu_processes=tuple(by_cpu[:n]),
        top_memory_processes=tuple(by_memory[:n]),
    )


class Probe(Protocol):
    """Stateful metrics source. refresh() must run before the readers."""

    def refresh(self) -> None: ...

    def overview(self) -> SystemOverview: ...

    def cpu(self) -> CpuInfo: ...

    def memory(self) -> MemoryInfo: ...

    def processes(self) -> list[ProcessInfo]: ...


class PsutilProbe:
    """
    Probe backed by psutil.

    psutil measures CPU percentages against the previous call, so the
    constructor primes the baselines and every refresh() re-reads all
    categories in one pass. Not thread-safe: SnapshotService serializes access.
    """

    def __init__(self) -> None:
        self._cpu: CpuInfo | None = None
        self._memory: MemoryInfo | None = None
        self._processes: list[ProcessInfo] = []
        self._overview: SystemOverview | None = None
        self._os_identity = _os_identity()
        # Initialize CPU percent (first call returns 0.0)
        psutil.cpu_percent()
        psutil.cpu_percent(percpu=True)
        self._collect_processes()

    def refresh(self) -> None:
        self._cpu = self._collect_cpu()
        self._memory = self._collect_memory()
        self._processes = self._collect_processes()
        self._overview = self._collect_overview()

    def overview(self) -> SystemOverview:
        return self._require(self._overview)

    def cpu(self) -> CpuInfo:
        return self._require(self._cpu)

    def memory(self) -> MemoryInfo:
        return self._require(self._memory)

    def processes(self) -> list[ProcessInfo]:
        return list(self._processes)

    @staticmethod
    def _require(value):
        if value is None:
            raise ProbeError("probe read before refresh")
        return value

    def _collect_cpu(self) -> CpuInfo:
        global_usage = psutil.cpu_percent()
        per_core = psutil.cpu_percent(percpu=True)
        freqs = _core_frequencies(len(per_core))
        cores = tuple(
            CpuCore(name=f"cpu{i}", usage=usage, frequency=freqs[i])
            for i, usage in enumerate(per_core)
        )
        return CpuInfo(
            global_usage=global_usage,
            cores=cores,
            physical_core_count=psutil.cpu_count(logical=False),
        )

    def _collect_memory(self) -> MemoryInfo:
        mem = psutil.virtual_memory()
        swap = psutil.swap_memory()
        return MemoryInfo(
            total=mem.total,
            available=mem.available,
            used=mem.used,
            free=mem.free,
            swap_total=swap.total,
            swap_used=swap.used,
            swap_free=swap.free,
        )

    def _collect_overview(self) -> SystemOverview:
        boot_time = psutil.boot_time()
        name, kernel_version, os_version = self._os_identity
        return SystemOverview(
            name=name,
            kernel_version=kernel_version,
            os_version=os_version,
            host_name=socket.gethostname() or None,
            uptime=max(0, int(time.time() - boot_time)),
            boot_time=int(boot_time),
        )

    def _collect_processes(self) -> list[ProcessInfo]:
        """
        Collect all running processes in enumeration order.

        psutil.process_iter() caches Process objects between calls, which is
        what makes per-process cpu_percent meaningful after the first pass.
        """
        processes: list[ProcessInfo] = []

        for proc in psutil.process_iter(attrs=["pid", "name", "cpu_percent", "memory_info"]):
            try:
                info = proc.info
                mem_info = info.get("memory_info")
                processes.append(
                    ProcessInfo(
                        pid=info.get("pid", proc.pid),
                        name=info.get("name") or "",
                        cpu_usage=info.get("cpu_percent") or 0.0,
                        memory=mem_info.rss if mem_info else 0,
                    )
                )
            except (psutil.NoSuchProcess, psutil.AccessDenied, psutil.ZombieProcess):
                # Process died mid-poll or is off limits
                continue

        return processes


def _core_frequencies(core_count: int) -> list[int]:
    """Per-core MHz, falling back to the shared reading or 0 where unsupported."""
    try:
        freqs = psutil.cpu_freq(percpu=True) or []
    except (NotImplementedError, OSError):
        freqs = []
    if len(freqs) == core_count:
        return [int(f.current) for f in freqs]
    shared = int(freqs[0].current) if freqs else 0
    return [shared] * core_count


def _os_identity() -> tuple[str | None, str | None, str | None]:
    """(name, kernel_version, os_version); these do not change while running."""
    system = platform.system() or None
    kernel = platform.release() or None
    if system == "Linux":
        try:
            release = platform.freedesktop_os_release()
        except OSError:
            return system, kernel, None
        return release.get("NAME", system), kernel, release.get("VERSION_ID")
    if system == "Darwin":
        return "Darwin", kernel, platform.mac_ver()[0] or None
    return system, kernel, platform.version() or None


class SnapshotService:
    """
    Produces SystemSnapshots from a single probe handle.

    refresh + read run as one critical section, so concurrent callers queue
    rather than observe each other's half-refreshed state.
    """

    def __init__(self, probe: Probe | None = None) -> None:
        """
        Initialize the SnapshotService.

        Args:
            probe: Metrics source to own. Defaults to a PsutilProbe.
        """
        self._probe: Probe = probe if probe is not None else PsutilProbe()
        self._lock = threading.Lock()

    def capture(self, limit: int | None = None) -> SystemSnapshot:
        """
        Refresh the probe and compose a fresh snapshot.

        Args:
            limit: Length of each ranked process list (default 10, max 50).

        Raises:
            ProbeError: If any probe category could not be refreshed or read.
        """
        with self._lock:
            try:
                self._probe.refresh()
                overview = self._probe.overview()
                cpu = self._probe.cpu()
                memory = self._probe.memory()
                processes = self._probe.processes()
                timestamp = datetime.now(timezone.utc)
            except ProbeError:
                raise
            except (psutil.Error, OSError, RuntimeError, ValueError) as exc:
                logger.warning("probe_refresh_failed", error=str(exc))
                raise ProbeError(f"failed to read system metrics: {exc}") from exc

        return SystemSnapshot(
            timestamp=timestamp,
            overview=overview,
            cpu=cpu,
            memory=memory,
            processes=rank_processes(processes, limit),
        )
