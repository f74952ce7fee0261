"""Publishes pipeline status using pubsub.pub."""

import logging

from pubsub import pub

from ..models.events import STATE_TOPIC, INDICATOR_TOPIC
from ..models.session import PipelineState

logger = logging.getLogger(__name__)


class StatusPublisher:
    """Publishes state transitions and listening-indicator changes."""

    def __init__(self, state_topic: str = STATE_TOPIC, indicator_topic: str = INDICATOR_TOPIC):
        """Initialize status publisher.

        Args:
            state_topic: Topic receiving ``state`` and ``previous`` on every transition
            indicator_topic: Topic receiving ``visible`` when the indicator changes
        """
        self.state_topic = state_topic
        self.indicator_topic = indicator_topic
        self.indicator_visible = False
        logger.info(f"StatusPublisher initialized with topics: {state_topic}, {indicator_topic}")

    def publish_state(self, state: PipelineState, previous: PipelineState) -> None:
        pub.sendMessage(self.state_topic, state=state, previous=previous)

    def publish_indicator(self, visible: bool) -> None:
        """Show or hide the listening indicator. Repeated hides are collapsed."""
        if visible == self.indicator_visible:
            return
        self.indicator_visible = visible
        pub.sendMessage(self.indicator_topic, visible=visible)
