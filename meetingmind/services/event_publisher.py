"""Publishes session, transcript and insight events using pubsub.pub."""

import logging
from typing import Optional

from pubsub import pub

from ..models.events import (
    TOPIC_INSIGHTS,
    TOPIC_SESSION_STATE,
    TOPIC_STATUS,
    TOPIC_TRANSCRIPT,
    InsightUpdateEvent,
    SessionStateEvent,
    StatusEvent,
    TranscriptUpdateEvent,
)
from ..models.insights import InsightBundle
from ..models.session import SessionState

logger = logging.getLogger(__name__)


class SessionEventPublisher:
    """Push notifications for presentation layers.

    Every topic carries a single ``event`` keyword argument, so a listener is
    any callable accepting ``event``.
    """

    def __init__(self, topic_prefix: str = ""):
        """Initialize the publisher.

        Args:
            topic_prefix: Prepended to every topic name, e.g. to isolate two
                          controllers in one process
        """
        self.topic_prefix = topic_prefix

    def topic(self, name: str) -> str:
        return f"{self.topic_prefix}{name}"

    def publish_state(self, session_id: Optional[str], old_state: SessionState,
                      new_state: SessionState, error: Optional[str] = None) -> None:
        event = SessionStateEvent(session_id, old_state, new_state, error)
        pub.sendMessage(self.topic(TOPIC_SESSION_STATE), event=event)
        logger.debug(f"Published state change {old_state.value} -> {new_state.value} for {session_id}")

    def publish_status(self, session_id: Optional[str], message: str, level: str = "info") -> None:
        pub.sendMessage(self.topic(TOPIC_STATUS), event=StatusEvent(session_id, message, level))
        logger.debug(f"Published status [{level}]: {message}")

    def publish_transcript(self, session_id: str, text: str, resolved_sequences: int,
                           is_final: bool = False) -> None:
        event = TranscriptUpdateEvent(session_id, text, resolved_sequences, is_final)
        pub.sendMessage(self.topic(TOPIC_TRANSCRIPT), event=event)
        logger.debug(f"Published transcript update ({len(text)} chars, {resolved_sequences} chunks)")

    def publish_insights(self, session_id: str, bundle: InsightBundle) -> None:
        pub.sendMessage(self.topic(TOPIC_INSIGHTS), event=InsightUpdateEvent(session_id, bundle))
        logger.debug(f"Published insight bundle #{bundle.generation} ({bundle.status.value})")
