"""Services layer: the voice pipeline and its status notifications."""

from .orchestrator import VoicePipelineOrchestrator
from .reconnect import ReconnectPolicy
from .status_publisher import StatusPublisher

__all__ = [
    "VoicePipelineOrchestrator",
    "ReconnectPolicy",
    "StatusPublisher",
]
