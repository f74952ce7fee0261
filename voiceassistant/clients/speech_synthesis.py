"""Client for the remote text-to-speech endpoint."""

import asyncio
import logging

import aiohttp

from ..errors import RequestFailure

logger = logging.getLogger(__name__)


class SpeechSynthesisClient:
    """Fetches synthesized audio bytes for a piece of text."""

    def __init__(self, url: str, timeout_seconds: float = 15.0):
        self.url = url
        self.timeout = aiohttp.ClientTimeout(total=timeout_seconds)

    async def synthesize(self, text: str) -> bytes:
        """Return the audio bytes for ``text``.

        Raises:
            RequestFailure: on transport errors, timeouts, non-success status
                or an empty body
        """
        try:
            async with aiohttp.ClientSession(timeout=self.timeout) as session:
                async with session.get(self.url, params={"text": text}) as response:
                    if response.status >= 300:
                        error_text = await response.text()
                        raise RequestFailure(
                            f"TTS endpoint error: {response.status} - {error_text[:200]}",
                            status=response.status,
                        )
                    audio = await response.read()
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise RequestFailure(f"TTS request failed: {e!r}") from e

        if not audio:
            raise RequestFailure("TTS endpoint returned no audio")
        logger.debug(f"Synthesized {len(audio)} bytes for {len(text)} characters")
        return audio
