"""Test doubles shared across test modules."""

from collections import deque

from wgddns.errors import ResolutionError
from wgddns.models import UnitInfo


class FakeResolver:
    """Resolver returning scripted answers per hostname.

    Each hostname maps to a value or a list of values; lists are consumed
    in order and the last value repeats. Exceptions are raised as
    ResolutionError.
    """

    def __init__(self, answers: dict | None = None):
        self.answers: dict[str, deque] = {}
        self.calls: list[str] = []
        for hostname, answer in (answers or {}).items():
            self.set(hostname, answer)

    def set(self, hostname: str, answer) -> None:
        values = answer if isinstance(answer, list) else [answer]
        self.answers[hostname] = deque(values)

    async def resolve(self, hostname: str) -> str:
        self.calls.append(hostname)
        queue = self.answers.get(hostname)
        if not queue:
            raise ResolutionError(f"lookup {hostname}: no such host")
        value = queue.popleft() if len(queue) > 1 else queue[0]
        if isinstance(value, Exception):
            raise ResolutionError(f"lookup {hostname}: {value}")
        return value


class FakeServiceManager:
    """In-memory service manager recording restarts."""

    def __init__(self, units: list[tuple[str, str]] | None = None, result: str = "done"):
        self.units = [UnitInfo(name, state) for name, state in (units or [])]
        self.result = result
        self.restarts: list[tuple[str, str]] = []
        self.list_error: Exception | None = None
        self.restart_error: Exception | None = None
        self.connected = False
        self.closed = False

    async def connect(self) -> None:
        self.connected = True

    async def close(self) -> None:
        self.closed = True
        self.connected = False

    async def __aenter__(self) -> "FakeServiceManager":
        await self.connect()
        return self

    async def __aexit__(self, *exc) -> None:
        await self.close()

    async def list_units(self) -> list[UnitInfo]:
        if self.list_error:
            raise self.list_error
        return list(self.units)

    async def restart_unit(self, unit: str, mode: str = "replace") -> str:
        self.restarts.append((unit, mode))
        if self.restart_error:
            raise self.restart_error
        return self.result


def write_wg_config(directory, interface: str, endpoint: str | None) -> None:
    """Write a minimal wg-quick config with an optional peer endpoint."""
    lines = [
        "[Interface]",
        "PrivateKey = aGVsbG8gd29ybGQgaGVsbG8gd29ybGQgaGVsbG8gd28=",
        "Address = 10.8.0.2/24",
        "",
        "[Peer]",
        "PublicKey = d29ybGQgaGVsbG8gd29ybGQgaGVsbG8gd29ybGQgaGU=",
        "AllowedIPs = 10.8.0.0/24",
    ]
    if endpoint is not None:
        lines.append(f"Endpoint = {endpoint}")
    lines.append("PersistentKeepalive = 25")
    (directory / f"{interface}.conf").write_text("\n".join(lines) + "\n")
