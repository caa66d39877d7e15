"""Terminal transcript screen with live status display."""

import time
import logging
from typing import Callable, Optional

from rich.align import Align
from rich.console import Console
from rich.layout import Layout
from rich.live import Live
from rich.panel import Panel
from rich.text import Text

from ..models.session import RecordingState
from ..transcription.aggregator import TranscriptAggregator


logger = logging.getLogger(__name__)

PLACEHOLDER = "Start speaking. Your words will appear here in real-time..."


def format_duration(seconds: int) -> str:
    """Format whole seconds as MM:SS."""
    mins, secs = divmod(max(int(seconds), 0), 60)
    return f"{mins:02d}:{secs:02d}"


def render_status(state: RecordingState) -> Text:
    """One-line session status: error, recording timer, or ready."""
    if state.error:
        return Text(f"⚠ {state.error}", style="bold red")
    if state.is_recording:
        return Text.assemble(
            ("● ", "bold red"),
            ("Recording", "bold white"),
            "  ",
            (format_duration(state.duration), "dim white"),
        )
    return Text("✔ Ready to record", style="bold green")


def render_transcript(aggregator: TranscriptAggregator) -> Panel:
    """Final text in full, followed by the in-progress interim text."""
    final_text = aggregator.final_text()
    interim_text = aggregator.interim_text()

    if not final_text and not interim_text:
        body = Text(PLACEHOLDER, style="dim white italic")
    else:
        body = Text(final_text, style="white")
        if interim_text:
            if final_text:
                body.append(" ")
            body.append(interim_text, style="cyan italic")

    word_count = aggregator.word_count()
    footer_parts = []
    if word_count:
        footer_parts.append(f"{word_count} word{'s' if word_count != 1 else ''}")
    if final_text:
        footer_parts.append(f"{aggregator.character_count()} characters")
    if interim_text:
        footer_parts.append("Listening...")

    return Panel(
        body,
        title="Live Transcript",
        subtitle="  ".join(footer_parts) or None,
        border_style="bright_blue",
    )


class TranscriptScreen:
    """Renders a session's status and transcript until told to stop."""

    def __init__(self,
                 state_provider: Callable[[], RecordingState],
                 aggregator: TranscriptAggregator,
                 console: Optional[Console] = None,
                 refresh_per_second: float = 4.0):
        """Initialize transcript screen.

        Args:
            state_provider: Returns a snapshot of the session state
            aggregator: Transcript to display
            console: Rich console to draw on
            refresh_per_second: Redraw rate
        """
        self.state_provider = state_provider
        self.aggregator = aggregator
        self.console = console or Console()
        self.refresh_per_second = refresh_per_second

    def create_layout(self) -> Layout:
        layout = Layout()
        layout.split_column(
            Layout(name="header", size=3),
            Layout(name="transcript", ratio=1),
        )
        return layout

    def render(self) -> Layout:
        layout = self.create_layout()
        title = Text("🎙️  StreamScribe - Live Transcription", style="bold blue")
        layout["header"].update(Panel(
            Align.center(Text.assemble(title, "  |  ", render_status(self.state_provider()))),
            style="bright_blue",
        ))
        layout["transcript"].update(render_transcript(self.aggregator))
        return layout

    def run(self, should_continue: Callable[[], bool]) -> None:
        """Redraw until should_continue() returns False."""
        interval = 1.0 / self.refresh_per_second
        with Live(self.render(), console=self.console,
                  refresh_per_second=self.refresh_per_second, screen=False) as live:
            while should_continue():
                time.sleep(interval)
                live.update(self.render())
        logger.debug("Transcript screen closed")
