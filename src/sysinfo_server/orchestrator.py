"""Mode orchestration: which listeners run, and how they are supervised."""

import asyncio
import contextlib
import signal
import socket
from collections.abc import Iterator

import uvicorn
from mcp.server.fastmcp import FastMCP

from sysinfo_server.api import create_app
from sysinfo_server.config import Mode, Settings
from sysinfo_server.errors import BindError
from sysinfo_server.logs import get_logger
from sysinfo_server.mcp_server import create_mcp_server
from sysinfo_server.monitor import SnapshotService

logger = get_logger("orchestrator")


class _EmbeddedServer(uvicorn.Server):
    """uvicorn server that leaves signal handling to the Supervisor."""

    def install_signal_handlers(self) -> None:
        pass

    @contextlib.contextmanager
    def capture_signals(self) -> Iterator[None]:
        yield


class Unit:
    """One independently supervised listener."""

    name: str = "unit"

    def bind(self) -> None:
        """Acquire any listening resources. Called for every unit before any run()."""

    async def run(self) -> None:
        raise NotImplementedError

    def release(self) -> None:
        """Give back anything bind() acquired without running."""

    def stop(self) -> None:
        """Ask run() to return soon. Must be safe to call more than once."""


class HttpUnit(Unit):
    """An ASGI app served by uvicorn on a pre-bound socket."""

    def __init__(self, name: str, app, host: str, port: int, grace_seconds: float = 5.0) -> None:
        self.name = name
        self.host = host
        self.port = port
        self._app = app
        self._grace_seconds = grace_seconds
        self._socket: socket.socket | None = None
        self._server: uvicorn.Server | None = None
        self._stop_requested = False

    @property
    def bound_port(self) -> int | None:
        return self._socket.getsockname()[1] if self._socket else None

    def bind(self) -> None:
        family = socket.AF_INET6 if ":" in self.host else socket.AF_INET
        sock = socket.socket(family, socket.SOCK_STREAM)
        try:
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            sock.bind((self.host, self.port))
            # Listen now: with SO_REUSEADDR a bound-only socket does not hold the port.
            sock.listen(2048)
        except OSError as exc:
            sock.close()
            raise BindError(f"{self.name}: cannot bind {self.host}:{self.port}: {exc}") from exc
        sock.set_inheritable(True)
        self._socket = sock
        logger.info("listener_bound", unit=self.name, host=self.host, port=self.bound_port)

    def release(self) -> None:
        if self._socket is not None:
            self._socket.close()
            self._socket = None

    async def run(self) -> None:
        if self._socket is None:
            self.bind()
        config = uvicorn.Config(
            self._app,
            log_config=None,
            access_log=False,
            timeout_graceful_shutdown=self._grace_seconds,
        )
        self._server = _EmbeddedServer(config)
        self._server.should_exit = self._stop_requested
        try:
            await self._server.serve(sockets=[self._socket])
        finally:
            self.release()
        logger.info("listener_stopped", unit=self.name)

    def stop(self) -> None:
        self._stop_requested = True
        if self._server is not None:
            self._server.should_exit = True


class StdioUnit(Unit):
    """MCP over stdin/stdout; returns when stdin closes."""

    name = "mcp-stdio"

    def __init__(self, mcp: FastMCP) -> None:
        self._mcp = mcp
        self._task: asyncio.Task | None = None

    async def run(self) -> None:
        self._task = asyncio.current_task()
        logger.info("stdio_session_started")
        await self._mcp.run_stdio_async()
        logger.info("stdio_session_ended")

    def stop(self) -> None:
        if self._task is not None and not self._task.done():
            self._task.cancel()


def _rest_unit(service: SnapshotService, settings: Settings) -> HttpUnit:
    return HttpUnit(
        "rest",
        create_app(service, settings),
        settings.server_host,
        settings.server_port,
        settings.shutdown_grace_seconds,
    )


def _mcp_http_unit(service: SnapshotService, settings: Settings) -> HttpUnit:
    mcp = create_mcp_server(service, settings)
    return HttpUnit(
        "mcp-http",
        mcp.streamable_http_app(),
        settings.server_host,
        settings.mcp_port,
        settings.shutdown_grace_seconds,
    )


def plan_units(mode: Mode, service: SnapshotService, settings: Settings) -> list[Unit]:
    """The listeners to run for a mode, all sharing one SnapshotService."""
    if mode is Mode.STDIO:
        return [StdioUnit(create_mcp_server(service, settings))]
    if mode is Mode.HTTP:
        return [_mcp_http_unit(service, settings)]
    if mode is Mode.REST_ONLY:
        return [_rest_unit(service, settings)]
    return [_rest_unit(service, settings), _mcp_http_unit(service, settings)]


class Supervisor:
    """
    Runs units side by side. The first unit to finish ends the run: the
    others are asked to stop, and the first error (if any) is re-raised.
    """

    def __init__(self, units: list[Unit], grace_seconds: float = 5.0) -> None:
        self.units = units
        self._grace_seconds = grace_seconds
        self._stopping = False

    def shutdown(self) -> None:
        """Stop every unit; used for SIGINT/SIGTERM and cross-cancellation."""
        if not self._stopping:
            logger.info("shutdown_requested")
        self._stopping = True
        for unit in self.units:
            unit.stop()

    async def run(self, handle_signals: bool = True) -> None:
        # Bind everything first so a bind failure aborts before serving starts.
        try:
            for unit in self.units:
                unit.bind()
        except BindError:
            for unit in self.units:
                unit.release()
            raise

        if handle_signals:
            self._install_signal_handlers()

        tasks = {asyncio.create_task(unit.run(), name=unit.name): unit for unit in self.units}
        try:
            done, pending = await asyncio.wait(tasks, return_when=asyncio.FIRST_COMPLETED)
            first_error = self._first_error(done)
            if pending:
                self.shutdown()
                finished, still_running = await asyncio.wait(pending, timeout=self._grace_seconds)
                for task in still_running:
                    task.cancel()
                await asyncio.gather(*still_running, return_exceptions=True)
                first_error = first_error or self._first_error(finished)
        finally:
            for task in tasks:
                if not task.done():
                    task.cancel()
            if handle_signals:
                self._remove_signal_handlers()

        if first_error is not None:
            raise first_error

    def _first_error(self, done: set[asyncio.Task]) -> BaseException | None:
        for task in done:
            if task.cancelled():
                continue
            exc = task.exception()
            if exc is not None:
                logger.error("unit_failed", unit=task.get_name(), error=str(exc))
                return exc
            logger.info("unit_finished", unit=task.get_name())
        return None

    def _install_signal_handlers(self) -> None:
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            with contextlib.suppress(NotImplementedError, RuntimeError):
                loop.add_signal_handler(sig, self.shutdown)

    def _remove_signal_handlers(self) -> None:
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            with contextlib.suppress(NotImplementedError, RuntimeError):
                loop.remove_signal_handler(sig)


async def run_mode(settings: Settings, service: SnapshotService | None = None) -> None:
    """Run the configured mode until its listeners finish or are interrupted."""
    mode = settings.mode
    service = service or SnapshotService()
    units = plan_units(mode, service, settings)
    logger.info("starting", mode=mode.value, units=[unit.name for unit in units])
    # Stdio ends only when its input stream closes.
    await Supervisor(units, settings.shutdown_grace_seconds).run(handle_signals=mode is not Mode.STDIO)
