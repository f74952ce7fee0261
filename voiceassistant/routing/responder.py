"""Turns an intent into the sentence the assistant should speak."""

import asyncio
import logging
from datetime import datetime
from typing import Callable

from ..clients.ai_query import AiQueryClient
from ..errors import RequestFailure
from ..models.intents import (
    IntentResult,
    TimeIntent,
    DateIntent,
    LocationIntent,
    OpenAppIntent,
    AiQueryIntent,
)
from ..collaborators import LocationProvider, AppLauncher

logger = logging.getLogger(__name__)

AI_ERROR_PHRASE = "I encountered an error while fetching response"
AI_EMPTY_PHRASE = "I couldn't get a response"


def format_time(now: datetime) -> str:
    return f"The time is {now:%I:%M %p}"


def format_date(now: datetime) -> str:
    return f"Today is {now:%A, %B} {now.day}, {now.year}"


class IntentResponder:
    """Executes local intents and falls back to the AI service."""

    def __init__(self,
                 ai_client: AiQueryClient,
                 location_provider: LocationProvider,
                 app_launcher: AppLauncher,
                 clock: Callable[[], datetime] = datetime.now):
        self.ai_client = ai_client
        self.location_provider = location_provider
        self.app_launcher = app_launcher
        self._clock = clock

    async def respond(self, intent: IntentResult) -> str:
        if isinstance(intent, TimeIntent):
            return format_time(self._clock())
        if isinstance(intent, DateIntent):
            return format_date(self._clock())
        if isinstance(intent, LocationIntent):
            return await asyncio.to_thread(self.location_provider.describe)
        if isinstance(intent, OpenAppIntent):
            await asyncio.to_thread(self.app_launcher.open, intent.identifier)
            return f"Opening {intent.name}"
        if isinstance(intent, AiQueryIntent):
            return await self.ask_ai(intent.text)
        raise TypeError(f"Unknown intent: {intent!r}")

    async def ask_ai(self, text: str) -> str:
        """Never raises: failures become the fixed apology phrase."""
        try:
            answer = await self.ai_client.query(text)
        except RequestFailure as e:
            logger.error(f"[RequestFailure] Error calling AI: {e}")
            return AI_ERROR_PHRASE
        return answer or AI_EMPTY_PHRASE
