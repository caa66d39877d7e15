"""Main application entry point for StreamScribe."""

import sys
import time
import argparse
import logging
from pathlib import Path
from typing import Optional

from rich.console import Console
from rich.panel import Panel
from rich.text import Text

from . import __version__
from .config import StreamScribeConfig, resolve_credential
from .services.session_controller import SessionController
from .ui.transcript_screen import TranscriptScreen

logger = logging.getLogger(__name__)

EXIT_MISSING_CREDENTIAL = 2


class App:
    """Wires configuration, the session controller and the live screen."""

    def __init__(self, config_path: Optional[str], log_level: Optional[str] = None,
                 console: Optional[Console] = None):
        self.config = StreamScribeConfig(config_path)
        setup_logging(self.config, log_level or self.config.get('logging.level', 'INFO'))
        self.console = console or Console()
        self.controller: Optional[SessionController] = None
        self.should_exit = False

    def init(self) -> bool:
        """Resolve the credential and build the controller.

        Returns:
            False when no credential is configured
        """
        credential = resolve_credential(self.config)
        self.controller = SessionController.from_config(self.config, credential)
        if credential is None:
            show_setup_prompt(self.console, self.config.get('deepgram.api_key_env'))
            return False
        return True

    def run(self, duration: int) -> None:
        """Record until duration seconds pass (0 means until interrupted)."""
        if not self.controller.start():
            self.console.print(Text(self.controller.state.error or "Failed to start", style="bold red"))
            return

        deadline = time.monotonic() + duration if duration else None
        screen = TranscriptScreen(lambda: self.controller.state, self.controller.aggregator,
                                  console=self.console)

        def should_continue() -> bool:
            if self.should_exit:
                return False
            if deadline is not None and time.monotonic() >= deadline:
                return False
            # Keep drawing until the session ends on its own (error or remote close)
            return self.controller.is_active

        try:
            screen.run(should_continue)
        finally:
            self.controller.stop()

        state = self.controller.state
        if state.error:
            self.console.print(Text(state.error, style="bold red"))

    def report(self, export: bool = False, directory: Optional[str] = None) -> Optional[Path]:
        """Print the final transcript and optionally save it."""
        final_text = self.controller.final_text()
        if final_text:
            self.console.print(Panel(final_text, title="Final Transcript"))
        if export:
            return self.export(directory)
        return None

    def export(self, directory: Optional[str] = None) -> Optional[Path]:
        path = self.controller.export(directory=directory)
        if path is None:
            self.console.print("No finalized transcript to export")
        else:
            self.console.print(f"Transcript saved to {path}")
        return path

    def cleanup(self) -> None:
        if self.controller is not None:
            self.controller.shutdown()


def show_setup_prompt(console: Console, env_var: str) -> None:
    """Explain how to configure the missing API key."""
    body = Text.assemble(
        "To use StreamScribe you need a Deepgram API key.\n\n",
        ("Setup Instructions:\n", "bold"),
        "  1. Create a free account at https://deepgram.com/signup\n",
        "  2. Get your API key from the dashboard\n",
        "  3. Export it: ", (f"export {env_var}=your_key_here", "bold yellow"), "\n",
        "  4. Run streamscribe again",
    )
    console.print(Panel(body, title="🔑 Deepgram API Key Required", border_style="yellow"))


def setup_logging(config, level: str = "INFO") -> None:
    """Set up logging configuration from YAML config."""
    log_file_path = config.get('logging.file_path', 'logs/streamscribe.log')
    console_output = config.get('logging.console_output', True)

    log_dir = Path(log_file_path).parent
    log_dir.mkdir(parents=True, exist_ok=True)

    handlers = []

    # File handler - always write to file
    file_handler = logging.FileHandler(log_file_path)
    file_handler.setLevel(logging.DEBUG)
    file_formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(funcName)s:%(lineno)d - %(message)s'
    )
    file_handler.setFormatter(file_formatter)
    handlers.append(file_handler)

    # Console handler - only warnings and above, so the live screen stays readable
    if console_output:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(logging.WARNING)
        console_formatter = logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s')
        console_handler.setFormatter(console_formatter)
        handlers.append(console_handler)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    for handler in handlers:
        root_logger.addHandler(handler)

    logger.info("=" * 50)
    logger.info("StreamScribe starting up")
    logger.info(f"Log file: {log_file_path}")
    logger.info(f"Log level set to: {level}")
    logger.info("=" * 50)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="StreamScribe - live microphone transcription",
        epilog="Press Ctrl+C to stop recording"
    )

    parser.add_argument(
        "--config",
        type=str,
        help="Path to configuration YAML file (default: $STREAMSCRIBE_CONFIG or built-in defaults)"
    )

    parser.add_argument(
        "--log-level",
        type=str,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Set logging level (default: from config, INFO)"
    )

    parser.add_argument(
        "--duration",
        type=int,
        default=0,
        help="Stop recording after this many seconds (default: 0, run until Ctrl+C)"
    )

    parser.add_argument(
        "--export",
        action="store_true",
        help="Save the finalized transcript to transcript-YYYY-MM-DD.txt on exit"
    )

    parser.add_argument(
        "--export-dir",
        type=str,
        help="Directory for the exported transcript (overrides config)"
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"StreamScribe v{__version__}"
    )
    return parser


def main(argv=None) -> None:
    """Main entry point for StreamScribe application."""
    args = build_parser().parse_args(argv)

    app = App(args.config, args.log_level)
    try:
        if not app.init():
            sys.exit(EXIT_MISSING_CREDENTIAL)
        try:
            app.run(args.duration)
        except KeyboardInterrupt:
            app.controller.stop()
            print("\n👋 Stopped")

        app.report(args.export, args.export_dir)
    except Exception as e:
        print(f"❌ Error: {e}")
        logging.error(f"Application error: {e}", exc_info=True)
        sys.exit(1)
    finally:
        app.cleanup()


if __name__ == "__main__":
    main()
