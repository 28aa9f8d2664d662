"""systemd service manager access via systemctl."""

import asyncio
import logging
import re
import shutil
from dataclasses import dataclass
from typing import Protocol

from wgddns.errors import ServiceManagerError
from wgddns.models import UnitInfo

ACTIVE_STATE = "active"
JOB_DONE = "done"

# systemctl's messages for the terminal job results it reports
_JOB_RESULT_PATTERNS = [
    (re.compile(r"A dependency job for \S+ failed"), "dependency"),
    (re.compile(r"Job for \S+ canceled"), "canceled"),
    (re.compile(r"Job for \S+ timed out"), "timeout"),
    (re.compile(r"Job for \S+ failed"), "failed"),
]


class CommandExecutorProtocol(Protocol):
    """Protocol for running external commands."""

    async def run(
        self, *args: str, check: bool = True, timeout: float | None = None
    ) -> tuple[bytes, bytes, int]:
        ...


class ServiceManagerProtocol(Protocol):
    """Protocol for the service manager the monitor talks to."""

    async def list_units(self) -> list[UnitInfo]:
        ...

    async def restart_unit(self, unit: str, mode: str = "replace") -> str:
        """Restart a unit and return the terminal job result ("done" on success)."""
        ...


@dataclass(frozen=True)
class ServiceNaming:
    """Naming convention mapping interfaces to service units.

    ``unit_for`` and ``interface_for`` are exact inverses.
    """

    prefix: str = "wg-quick@"
    suffix: str = ".service"

    def unit_for(self, interface: str) -> str:
        return f"{self.prefix}{interface}{self.suffix}"

    def interface_for(self, unit: str) -> str | None:
        """Interface name of a unit, or None if the unit does not match."""
        if not (unit.startswith(self.prefix) and unit.endswith(self.suffix)):
            return None
        name = unit[len(self.prefix):len(unit) - len(self.suffix)]
        return name or None


class AsyncCommandExecutor:
    """Execute commands asynchronously, tracking the ones in flight."""

    def __init__(self):
        self._procs: set[asyncio.subprocess.Process] = set()

    async def run(
        self, *args: str, check: bool = True, timeout: float | None = None
    ) -> tuple[bytes, bytes, int]:
        """Run command and return (stdout, stderr, returncode).

        Args:
            *args: Command and arguments to run.
            check: If True, raise ServiceManagerError on non-zero exit.
            timeout: Seconds to wait before killing the command.

        Raises:
            ServiceManagerError: If the command cannot be started, or
                check=True and it fails.
            TimeoutError: If the command outlives timeout (it is killed).
        """
        try:
            proc = await asyncio.create_subprocess_exec(
                *args,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            raise ServiceManagerError(f"Failed to run {args[0]}: {e}") from e

        self._procs.add(proc)
        try:
            async with asyncio.timeout(timeout):
                stdout, stderr = await proc.communicate()
        except BaseException:
            if proc.returncode is None:
                proc.kill()
                await proc.wait()
            raise
        finally:
            self._procs.discard(proc)

        returncode = proc.returncode or 0

        if check and returncode != 0:
            raise ServiceManagerError(
                f"Command failed: {stderr.decode(errors='replace').strip()}"
            )

        return stdout, stderr, returncode

    async def kill_all(self) -> None:
        """Kill every command still running."""
        for proc in list(self._procs):
            if proc.returncode is None:
                proc.kill()
        for proc in list(self._procs):
            await proc.wait()


def parse_job_result(stderr: str) -> str:
    """Map systemctl's failure message to a job result name."""
    for pattern, result in _JOB_RESULT_PATTERNS:
        if pattern.search(stderr):
            return result
    return "failed"


def parse_units(output: str) -> list[UnitInfo]:
    """Parse ``systemctl list-units --plain --no-legend`` output.

    Columns: UNIT LOAD ACTIVE SUB DESCRIPTION.
    """
    units = []
    for line in output.splitlines():
        fields = line.split(None, 4)
        if len(fields) < 4:
            continue
        # Older systemctl versions prefix failed units with a marker
        if fields[0] in ("●", "*"):
            fields = line.split(None, 5)[1:]
            if len(fields) < 4:
                continue
        units.append(UnitInfo(name=fields[0], active_state=fields[2]))
    return units


class SystemdManager:
    """Service manager backed by systemctl.

    Acquired once at startup and released on shutdown; usable as an
    async context manager.
    """

    DEFAULT_RESTART_TIMEOUT = 90.0
    DEFAULT_QUERY_TIMEOUT = 30.0

    def __init__(
        self,
        executor: CommandExecutorProtocol | None = None,
        systemctl_path: str = "systemctl",
        restart_timeout: float = DEFAULT_RESTART_TIMEOUT,
        query_timeout: float = DEFAULT_QUERY_TIMEOUT,
        logger: logging.Logger | None = None,
    ):
        """Initialize SystemdManager.

        Args:
            executor: Command executor. Defaults to AsyncCommandExecutor.
            systemctl_path: Path to the systemctl binary.
            restart_timeout: Upper bound for waiting on a restart job.
            query_timeout: Upper bound for listing units.
            logger: Logger to use. Defaults to the module logger.
        """
        self._executor = executor or AsyncCommandExecutor()
        self._systemctl = systemctl_path
        self._restart_timeout = restart_timeout
        self._query_timeout = query_timeout
        self._log = logger or logging.getLogger(__name__)
        self._connected = False

    @property
    def is_connected(self) -> bool:
        return self._connected

    async def connect(self) -> None:
        """Verify systemctl is usable.

        Raises:
            ServiceManagerError: If systemctl is missing or not working.
        """
        if self._connected:
            return
        if shutil.which(self._systemctl) is None:
            raise ServiceManagerError(
                f"failed to connect to systemd: {self._systemctl} not found"
            )
        try:
            stdout, _, _ = await self._executor.run(
                self._systemctl, "--version", timeout=self._query_timeout
            )
        except (ServiceManagerError, TimeoutError) as e:
            raise ServiceManagerError(f"failed to connect to systemd: {e}") from e

        version = stdout.decode(errors="replace").splitlines()[:1]
        self._log.debug(f"Connected to {version[0] if version else 'systemd'}")
        self._connected = True

    async def close(self) -> None:
        """Release the manager, killing any command still running."""
        kill_all = getattr(self._executor, "kill_all", None)
        if kill_all is not None:
            await kill_all()
        self._connected = False

    async def __aenter__(self) -> "SystemdManager":
        await self.connect()
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    async def list_units(self) -> list[UnitInfo]:
        """List all service units with their active state.

        Raises:
            ServiceManagerError: If the listing fails.
        """
        try:
            stdout, _, _ = await self._executor.run(
                self._systemctl,
                "list-units",
                "--type=service",
                "--all",
                "--plain",
                "--no-legend",
                "--no-pager",
                timeout=self._query_timeout,
            )
        except TimeoutError:
            raise ServiceManagerError(
                f"failed to list systemd units: timeout after {self._query_timeout}s"
            ) from None
        except ServiceManagerError as e:
            raise ServiceManagerError(f"failed to list systemd units: {e}") from e

        return parse_units(stdout.decode(errors="replace"))

    async def restart_unit(self, unit: str, mode: str = "replace") -> str:
        """Restart a unit and wait for the job to finish.

        Returns:
            Terminal job result: "done" on success, otherwise "failed",
            "canceled", "timeout" or "dependency".

        Raises:
            ServiceManagerError: If the restart job could not be submitted.
        """
        try:
            _, stderr, returncode = await self._executor.run(
                self._systemctl,
                "restart",
                f"--job-mode={mode}",
                unit,
                check=False,
                timeout=self._restart_timeout,
            )
        except TimeoutError:
            self._log.debug(f"Restart of {unit} timed out after {self._restart_timeout}s")
            return "timeout"

        if returncode == 0:
            return JOB_DONE

        message = stderr.decode(errors="replace").strip()
        self._log.debug(f"systemctl restart {unit} exited {returncode}: {message}")
        if not message.startswith(("Job for", "A dependency job")):
            raise ServiceManagerError(message or f"systemctl exited with {returncode}")
        return parse_job_result(message)
