"""Rich console view that listens to session events."""

import logging
from typing import Optional

from pubsub import pub
from rich.console import Console
from rich.panel import Panel
from rich.text import Text

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
from ..models.session import Session, SessionState

logger = logging.getLogger(__name__)

STATE_STYLES = {
    SessionState.IDLE: ("⏹️  IDLE", "bold yellow"),
    SessionState.RECORDING: ("🔴 RECORDING", "bold red"),
    SessionState.PROCESSING: ("⏳ PROCESSING", "bold blue"),
    SessionState.COMPLETED: ("✅ COMPLETED", "bold green"),
    SessionState.FAILED: ("❌ FAILED", "bold red"),
}

STATUS_STYLES = {"debug": "dim", "info": "cyan", "warning": "yellow", "error": "bold red"}


class ConsoleView:
    """Prints transcript growth, insight bundles and status lines as they arrive."""

    def __init__(self, console: Optional[Console] = None, topic_prefix: str = "", show_debug: bool = False):
        self.console = console or Console()
        self.topic_prefix = topic_prefix
        self.show_debug = show_debug
        self._printed_chars = 0

    def attach(self) -> None:
        pub.subscribe(self.on_state, f"{self.topic_prefix}{TOPIC_SESSION_STATE}")
        pub.subscribe(self.on_status, f"{self.topic_prefix}{TOPIC_STATUS}")
        pub.subscribe(self.on_transcript, f"{self.topic_prefix}{TOPIC_TRANSCRIPT}")
        pub.subscribe(self.on_insights, f"{self.topic_prefix}{TOPIC_INSIGHTS}")

    def detach(self) -> None:
        pub.unsubscribe(self.on_state, f"{self.topic_prefix}{TOPIC_SESSION_STATE}")
        pub.unsubscribe(self.on_status, f"{self.topic_prefix}{TOPIC_STATUS}")
        pub.unsubscribe(self.on_transcript, f"{self.topic_prefix}{TOPIC_TRANSCRIPT}")
        pub.unsubscribe(self.on_insights, f"{self.topic_prefix}{TOPIC_INSIGHTS}")

    def on_state(self, event: SessionStateEvent) -> None:
        label, style = STATE_STYLES[event.new_state]
        if event.new_state is SessionState.RECORDING:
            self._printed_chars = 0
        suffix = f" ({event.error})" if event.error else ""
        self.console.print(Text(f"{label} session {event.session_id}{suffix}", style=style))

    def on_status(self, event: StatusEvent) -> None:
        if event.level == "debug" and not self.show_debug:
            return
        # Status messages carry exception text, never markup
        self.console.print(Text(f"  · {event.message}", style=STATUS_STYLES.get(event.level, "white")))

    def on_transcript(self, event: TranscriptUpdateEvent) -> None:
        if event.is_final:
            return
        # The visible transcript only grows at the end, so print the new tail
        new_text = event.text[self._printed_chars:].strip()
        if new_text:
            self.console.print(Text(f"📝 {new_text}"))
        self._printed_chars = len(event.text)

    def on_insights(self, event: InsightUpdateEvent) -> None:
        bundle = event.bundle
        if bundle.is_degraded:
            return  # announced through the status topic
        self.console.print(self.render_bundle(bundle))

    def render_bundle(self, bundle: InsightBundle) -> Panel:
        sections = [
            ("Summary", bundle.summary),
            ("Key points", bundle.key_points),
            ("Decisions", bundle.decisions),
            ("Action items", bundle.action_items),
            ("Follow-ups", bundle.follow_ups),
            ("Open questions", bundle.open_questions),
            ("Suggested questions", bundle.suggested_questions),
            ("Insights", bundle.meeting_insights),
        ]
        body = Text()
        for title, items in sections:
            if not items:
                continue
            if body:
                body.append("\n")
            body.append(title, style="bold")
            for item in items:
                body.append(f"\n  • {item}")
        if not body:
            body = Text("(nothing yet)", style="dim")
        title = "🧠 Meeting summary" if bundle.is_final else f"💡 Live insights #{bundle.generation}"
        return Panel(body, title=title, border_style="magenta")

    def print_session(self, session: Session) -> None:
        self.console.print()
        self.console.print(Panel(Text(session.transcript or "(no speech transcribed)"),
                                 title=f"Transcript {session.session_id}", border_style="blue"))
        if session.insights is not None:
            if session.insights.is_degraded:
                self.console.print(Text(f"⚠️  {session.insights.status_message}", style="yellow"))
            else:
                self.console.print(self.render_bundle(session.insights))
