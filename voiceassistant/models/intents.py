"""Intent results produced by the transcript router."""

from dataclasses import dataclass
from typing import Union


@dataclass(frozen=True)
class TimeIntent:
    """Speak the current time."""


@dataclass(frozen=True)
class DateIntent:
    """Speak the current date."""


@dataclass(frozen=True)
class LocationIntent:
    """Speak the current location."""


@dataclass(frozen=True)
class OpenAppIntent:
    """Open a known application."""
    name: str
    identifier: str


@dataclass(frozen=True)
class AiQueryIntent:
    """Forward the transcript to the remote AI service."""
    text: str


IntentResult = Union[TimeIntent, DateIntent, LocationIntent, OpenAppIntent, AiQueryIntent]
