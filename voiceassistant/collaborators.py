"""Platform collaborators: location, app launching and the listening indicator.

These are thin I/O wrappers around the host system. The pipeline only talks
to them through the small interfaces defined here.
"""

import logging
import webbrowser
from abc import ABC, abstractmethod
from typing import Dict, Optional

from pubsub import pub
from rich.console import Console
from rich.panel import Panel
from rich.text import Text

from .models.events import INDICATOR_TOPIC

logger = logging.getLogger(__name__)

UNKNOWN_LOCATION = "unknown"


class LocationProvider(ABC):
    """Describes where the device is."""

    @abstractmethod
    def describe(self) -> str:
        """Human-readable place, raw coordinates, or "unknown"."""


class ConfiguredLocationProvider(LocationProvider):
    """Location taken from configuration instead of a positioning service."""

    def __init__(self,
                 description: Optional[str] = None,
                 latitude: Optional[float] = None,
                 longitude: Optional[float] = None):
        self.description = description
        self.latitude = latitude
        self.longitude = longitude

    def describe(self) -> str:
        if self.description:
            return f"You are near {self.description}"
        if self.latitude is not None and self.longitude is not None:
            return f"Your coordinates are {self.latitude}, {self.longitude}"
        return UNKNOWN_LOCATION


class AppLauncher(ABC):
    """Opens an application by identifier."""

    @abstractmethod
    def open(self, identifier: str) -> bool:
        """Open the application; returns False (no-op) if it is not available."""


class BrowserAppLauncher(AppLauncher):
    """Maps application identifiers to URLs and opens them in the browser."""

    def __init__(self, launch_urls: Optional[Dict[str, str]] = None):
        self.launch_urls = dict(launch_urls or {})

    def open(self, identifier: str) -> bool:
        url = self.launch_urls.get(identifier)
        if not url:
            logger.info(f"No launcher configured for {identifier}")
            return False
        logger.info(f"Launching {identifier} via {url}")
        return webbrowser.open(url)


class ConsoleIndicator:
    """Renders the listening indicator on the terminal.

    Subscribes to the indicator topic; it never references the pipeline.
    """

    def __init__(self, console: Optional[Console] = None, topic: str = INDICATOR_TOPIC):
        self.console = console or Console(stderr=True)
        self.topic = topic
        self.visible = False

    def attach(self) -> None:
        pub.subscribe(self.on_indicator, self.topic)

    def detach(self) -> None:
        if pub.isSubscribed(self.on_indicator, self.topic):
            pub.unsubscribe(self.on_indicator, self.topic)

    def on_indicator(self, visible: bool) -> None:
        self.visible = visible
        if visible:
            self.console.print(Text("🎙  Listening...", style="bold green"))
        else:
            self.console.print(Text("   Done listening", style="dim"))


def announce_running(console: Optional[Console] = None, wake_marker: str = "wake word") -> None:
    """Persistent notice shown once at startup."""
    console = console or Console(stderr=True)
    console.print(Panel(
        Text(f"Say the wake phrase ('{wake_marker}') to start talking.", justify="center"),
        title="Voice Assistant Running",
        border_style="blue",
    ))
