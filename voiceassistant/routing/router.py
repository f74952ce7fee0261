"""Classifies a finished transcript into a local intent or an AI query."""

import logging
from typing import Dict, Optional

from ..models.intents import (
    IntentResult,
    TimeIntent,
    DateIntent,
    LocationIntent,
    OpenAppIntent,
    AiQueryIntent,
)

logger = logging.getLogger(__name__)

TIME_KEYWORDS = ("time", "clock", "hour")
DATE_KEYWORDS = ("date", "day", "today")
LOCATION_KEYWORDS = ("location", "where am i", "position", "place")
OPEN_KEYWORD = "open"

# Spoken name -> application identifier
APP_IDENTIFIERS: Dict[str, str] = {
    "chrome": "com.android.chrome",
    "youtube": "com.google.android.youtube",
    "gmail": "com.google.android.gm",
    "maps": "com.google.android.apps.maps",
}


class TranscriptRouter:
    """First-match-wins keyword router.

    Checks run in a fixed order on the lower-cased transcript: time, date,
    location, open-app, then the AI query fallback. A transcript mentioning
    both "time" and "date" is therefore a time request.
    """

    def __init__(self, apps: Optional[Dict[str, str]] = None):
        self.apps = dict(APP_IDENTIFIERS if apps is None else apps)

    def classify(self, transcript: str) -> IntentResult:
        lower = transcript.lower()

        if any(keyword in lower for keyword in TIME_KEYWORDS):
            intent = TimeIntent()
        elif any(keyword in lower for keyword in DATE_KEYWORDS):
            intent = DateIntent()
        elif any(keyword in lower for keyword in LOCATION_KEYWORDS):
            intent = LocationIntent()
        elif OPEN_KEYWORD in lower:
            intent = self.resolve_app(lower) or AiQueryIntent(transcript)
        else:
            intent = AiQueryIntent(transcript)

        logger.info(f"Transcript '{transcript}' -> {type(intent).__name__}")
        return intent

    def resolve_app(self, lower: str) -> Optional[OpenAppIntent]:
        """Exact match of the words after "open", with spaces removed."""
        spoken_app = lower.split(OPEN_KEYWORD, 1)[1].strip().replace(" ", "")
        for name, identifier in self.apps.items():
            if name.replace(" ", "") == spoken_app:
                return OpenAppIntent(name=spoken_app, identifier=identifier)
        logger.debug(f"No application named '{spoken_app}'")
        return None
