"""IPv4 hostname resolution through the platform resolver."""

import asyncio
import socket
from typing import Protocol

from wgddns.errors import ResolutionError


class ResolverProtocol(Protocol):
    """Protocol for hostname resolvers."""

    async def resolve(self, hostname: str) -> str:
        """Returns one IPv4 address. Raises ResolutionError on failure."""
        ...


class Resolver:
    """Resolves hostnames to IPv4 addresses via getaddrinfo.

    No caching: every call asks the system resolver again.
    """

    DEFAULT_TIMEOUT = 10.0

    def __init__(self, timeout: float = DEFAULT_TIMEOUT):
        """Initialize resolver.

        Args:
            timeout: Upper bound in seconds for a single lookup.
        """
        self.timeout = timeout

    async def resolve(self, hostname: str) -> str:
        """Resolve hostname to its first IPv4 address.

        Raises:
            ResolutionError: On lookup failure, timeout or no IPv4 result.
        """
        loop = asyncio.get_running_loop()
        try:
            async with asyncio.timeout(self.timeout):
                infos = await loop.getaddrinfo(
                    hostname,
                    None,
                    family=socket.AF_INET,
                    type=socket.SOCK_STREAM,
                )
        except TimeoutError:
            raise ResolutionError(
                f"lookup {hostname}: timeout after {self.timeout}s"
            ) from None
        except (socket.gaierror, UnicodeError, OSError) as e:
            raise ResolutionError(f"lookup {hostname}: {e}") from e

        for family, _, _, _, sockaddr in infos:
            if family == socket.AF_INET:
                return sockaddr[0]

        raise ResolutionError(f"lookup {hostname}: no IPv4 address found")
