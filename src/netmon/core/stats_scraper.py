"""
Nodes stats scraper for collecting telemetry of network nodes.
"""

import abc
import json
import logging
from typing import Optional

import aiohttp

from netmon.core.nodes import NodeSet

DEFAULT_MAX_RESPONSE_SIZE = 128 * 1024
DEFAULT_TIMEOUT = 10.0


class ScrapeError(RuntimeError):
    """Nodes stats could not be fetched or parsed."""


class NodesStatsScraper(abc.ABC):
    """Source of current telemetry of all known nodes."""

    @abc.abstractmethod
    async def scrape_node_stats(self) -> NodeSet:
        """
        Fetch current nodes stats.

        Raises:
            Exception: Any failure is treated as transient by the monitor
        """


class HTTPNodesStatsScraper(NodesStatsScraper):
    """Scrapes nodes stats JSON document over HTTP."""

    def __init__(self, stats_url: str,
                 max_response_size: int = DEFAULT_MAX_RESPONSE_SIZE,
                 timeout: float = DEFAULT_TIMEOUT):
        """
        Initialize scraper.

        Args:
            stats_url: URL of the nodes stats document
            max_response_size: Maximum amount of response bytes to read
            timeout: Total request timeout in seconds
        """
        if max_response_size < 1:
            raise ValueError("max_response_size should be greater than zero")
        if timeout <= 0:
            raise ValueError("timeout should be greater than zero")

        self.stats_url = stats_url
        self.max_response_size = max_response_size
        self.timeout = timeout
        self.logger = logging.getLogger('stats_scraper')

        self.session: Optional[aiohttp.ClientSession] = None

    async def start(self):
        """Start the scraper HTTP session."""
        if self.session is None or self.session.closed:
            self.session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.timeout)
            )

    async def stop(self):
        """Stop the scraper HTTP session."""
        if self.session:
            await self.session.close()
            self.session = None

    async def __aenter__(self) -> 'HTTPNodesStatsScraper':
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.stop()

    async def scrape_node_stats(self) -> NodeSet:
        """
        Fetch and parse nodes stats document.

        Returns:
            NodeSet with stats of all nodes from the document

        Raises:
            ScrapeError: On bad HTTP status or malformed document
            aiohttp.ClientError: On transport failure
            asyncio.TimeoutError: If request timed out
        """
        if self.session is not None and not self.session.closed:
            return await self._scrape(self.session)

        # one-shot session when the scraper wasn't started
        async with aiohttp.ClientSession(timeout=aiohttp.ClientTimeout(total=self.timeout)) as session:
            return await self._scrape(session)

    async def _scrape(self, session: aiohttp.ClientSession) -> NodeSet:
        async with session.get(self.stats_url) as response:
            body = await self._read_body(response)

            if response.status != 200:
                self.logger.error(
                    f"Stats service returned HTTP {response.status} {response.reason!r}, "
                    f"response is {body[:1024]!r}"
                )
                raise ScrapeError(
                    f"Failed to get nodes stats from {self.stats_url!r}, "
                    f"HTTP code ({response.status}) {response.reason!r}"
                )

        try:
            document = json.loads(body)
        except (UnicodeDecodeError, ValueError) as e:
            raise ScrapeError(f"Malformed nodes stats document from {self.stats_url!r}: {e}") from e

        try:
            nodes = NodeSet.from_json(document)
        except ValueError as e:
            raise ScrapeError(f"Invalid nodes stats document from {self.stats_url!r}: {e}") from e

        self.logger.debug(f"Stats of {len(nodes)} nodes successfully received from {self.stats_url!r}")
        return nodes

    async def _read_body(self, response: aiohttp.ClientResponse) -> bytes:
        """Read response body, at most max_response_size bytes."""
        chunks = []
        size = 0
        while size < self.max_response_size:
            chunk = await response.content.read(self.max_response_size - size)
            if not chunk:
                break
            chunks.append(chunk)
            size += len(chunk)
        return b''.join(chunks)
