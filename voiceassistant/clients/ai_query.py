"""Client for the remote AI query endpoint."""

import asyncio
import logging

import aiohttp

from ..errors import RequestFailure

logger = logging.getLogger(__name__)


class AiQueryClient:
    """Sends a transcript to the AI endpoint and returns its plain-text answer."""

    def __init__(self, url: str, timeout_seconds: float = 15.0):
        """Initialize the AI query client.

        Args:
            url: AI endpoint accepting a JSON body ``{"query": <text>}``
            timeout_seconds: Total request timeout
        """
        self.url = url
        self.timeout = aiohttp.ClientTimeout(total=timeout_seconds)

        logger.info(f"AiQueryClient initialized with url: {url}")

    async def query(self, text: str) -> str:
        """Send ``text`` and return the stripped response body.

        Raises:
            RequestFailure: on transport errors, timeouts or non-success status
        """
        headers = {"Content-Type": "application/json; charset=utf-8"}
        data = {"query": text}

        try:
            async with aiohttp.ClientSession(timeout=self.timeout) as session:
                async with session.post(self.url, headers=headers, json=data) as response:
                    body = await response.text()
                    if response.status >= 300:
                        raise RequestFailure(
                            f"AI endpoint error: {response.status} - {body[:200]}",
                            status=response.status,
                        )
                    return body.strip()
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise RequestFailure(f"AI request failed: {e!r}") from e
