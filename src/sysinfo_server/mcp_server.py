"""MCP front end: FastMCP tools over the shared SnapshotService."""

import asyncio
from datetime import datetime, timezone
from typing import Annotated, Any, Literal

from mcp.server.fastmcp import FastMCP
from mcp.server.fastmcp.exceptions import ToolError
from pydantic import Field

from sysinfo_server.config import Settings
from sysinfo_server.encoding import dumps
from sysinfo_server.errors import ProbeError, SerializationError
from sysinfo_server.logs import get_logger
from sysinfo_server.models import SystemSnapshot
from sysinfo_server.monitor import MAX_PROCESS_LIMIT, SnapshotService

SERVER_NAME = "sysinfo"
INSTRUCTIONS = (
    "This server provides system information monitoring tools. You can get "
    "comprehensive system data including CPU usage, memory usage, running "
    "processes, and system overview information. Use the tools to monitor "
    "system performance and resource utilization."
)

logger = get_logger("mcp")


class SysinfoTools:
    """Tool implementations; each returns pretty-printed JSON text."""

    def __init__(self, service: SnapshotService) -> None:
        self._service = service

    async def _capture(self, what: str, limit: int | None = None) -> SystemSnapshot:
        try:
            return await asyncio.to_thread(self._service.capture, limit)
        except ProbeError as exc:
            logger.error("tool_failed", tool=what, error=str(exc))
            raise ToolError(f"Failed to get {what}: {exc}") from exc

    @staticmethod
    def _encode(payload: Any) -> str:
        try:
            return dumps(payload)
        except SerializationError as exc:
            raise ToolError(str(exc)) from exc

    async def get_system_info(self) -> str:
        """Get complete system information including CPU, memory, and processes"""
        return self._encode(await self._capture("system info"))

    async def get_system_overview(self) -> str:
        """Get system overview information (OS, kernel, uptime, etc.)"""
        return self._encode((await self._capture("system overview")).overview)

    async def get_cpu_info(self) -> str:
        """Get CPU information including usage and core details"""
        return self._encode((await self._capture("CPU info")).cpu)

    async def get_memory_info(self) -> str:
        """Get memory information including RAM and swap usage"""
        return self._encode((await self._capture("memory info")).memory)

    async def get_processes(
        self,
        limit: Annotated[
            int | None,
            Field(description=f"Number of top processes to return (default: 10, max: {MAX_PROCESS_LIMIT})"),
        ] = None,
        sort_by: Annotated[
            Literal["cpu", "memory"],
            Field(description="'cpu' or 'memory' (default: cpu); both rankings are always returned"),
        ] = "cpu",
    ) -> str:
        """Get process information with top CPU and memory consumers.

        Both the CPU and memory rankings are always returned; sort_by only
        accepts 'cpu' or 'memory' and does not change the payload.
        """
        summary = (await self._capture("process info", limit)).processes
        logger.debug("processes_listed", limit=limit, sort_by=sort_by, total=summary.total_count)
        return self._encode(summary)

    async def get_timestamp(self) -> str:
        """Get current system timestamp"""
        return datetime.now(timezone.utc).isoformat()

    def register(self, mcp: FastMCP) -> None:
        for tool in (
            self.get_system_info,
            self.get_system_overview,
            self.get_cpu_info,
            self.get_memory_info,
            self.get_processes,
            self.get_timestamp,
        ):
            mcp.add_tool(tool, name=tool.__name__, description=tool.__doc__)


def create_mcp_server(service: SnapshotService, settings: Settings) -> FastMCP:
    """Build the FastMCP server; transports are chosen later by the orchestrator."""
    mcp = FastMCP(
        SERVER_NAME,
        instructions=INSTRUCTIONS,
        host=settings.server_host,
        port=settings.mcp_port,
    )
    SysinfoTools(service).register(mcp)
    return mcp
