"""Main application entry point for MeetingMind."""

import sys
import time
import functools
import argparse
import logging
from pathlib import Path
from typing import Optional

from meetingmind.audio.replay import ReplayAudioCapture
from meetingmind.errors import MeetingMindError
from meetingmind.services.session_controller import SessionController
from meetingmind.ui.console_view import ConsoleView

from .config import MeetingMindConfig

logger = logging.getLogger(__name__)


class Server:

    def __init__(self, config_path: Optional[str], log_level: Optional[str] = None):
        self.config = MeetingMindConfig(config_path)
        setup_logging(self.config, log_level or self.config.get('logging.level', 'INFO'))
        self.should_exit = False
        self.controller: Optional[SessionController] = None
        self.view = ConsoleView()

    def init(self, replay_path: Optional[str] = None) -> None:
        logger.info("Initializing services...")

        sample_rate = self.config.get('audio.sample_rate', 16000)
        chunk_size = self.config.get('audio.chunk_size', 1024)
        logger.info(f"Audio settings: {sample_rate}Hz, {chunk_size} samples/read")

        capture_factory = None
        if replay_path:
            logger.info(f"Replaying {replay_path} instead of the microphone")
            capture_factory = functools.partial(
                ReplayAudioCapture.from_wav, replay_path,
                sample_rate=sample_rate, chunk_size=chunk_size, realtime=True)

        self.controller = SessionController.from_config(self.config, capture_factory=capture_factory)
        self.view.attach()

    def run(self, duration: Optional[int]) -> None:
        try:
            self.controller.start()
            if duration:
                time.sleep(duration)
            else:
                while not self.should_exit:
                    time.sleep(1)
        finally:
            self.cleanup()

    def cleanup(self) -> None:
        if self.controller is None:
            return
        controller, self.controller = self.controller, None
        controller.close(timeout=controller.config.get('transcription.final_timeout_seconds', 600.0) + 60)
        if controller.session is not None:
            self.view.print_session(controller.session)
        self.view.detach()


def setup_logging(config, level: str = "INFO") -> None:
    """Set up logging configuration from YAML config."""
    log_file_path = config.get('logging.file_path', 'data/logs/meetingmind.log')
    console_output = config.get('logging.console_output', True)

    Path(log_file_path).parent.mkdir(parents=True, exist_ok=True)

    handlers = []

    # File handler - always write to file
    file_handler = logging.FileHandler(log_file_path)
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(funcName)s:%(lineno)d - %(message)s'
    ))
    handlers.append(file_handler)

    # Console handler - only if enabled in config
    if console_output:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(logging.WARNING)  # Only show warnings and above on console
        console_handler.setFormatter(logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s'))
        handlers.append(console_handler)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.setLevel(getattr(logging, level.upper()))
    for handler in handlers:
        root_logger.addHandler(handler)

    logger.info("=" * 50)
    logger.info("MeetingMind application starting up")
    logger.info(f"Log file: {log_file_path}")
    logger.info(f"Log level set to: {level}")
    logger.info("=" * 50)


def main() -> None:
    """Main entry point for MeetingMind application."""
    parser = argparse.ArgumentParser(
        description="MeetingMind - live meeting transcription with AI questions and summaries",
        epilog="Press Ctrl+C to stop recording; the session is then finalized and saved."
    )

    parser.add_argument(
        "--config",
        type=str,
        help="Path to configuration YAML file (default: built-in settings)"
    )

    parser.add_argument(
        "--log-level",
        type=str,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Set logging level (default: logging.level from config)"
    )

    parser.add_argument(
        "--duration",
        type=int,
        help="Record for this many seconds, then stop (default: until Ctrl+C)"
    )

    parser.add_argument(
        "--replay",
        type=str,
        help="Replay a 16kHz mono 16-bit WAV file instead of recording the microphone"
    )

    parser.add_argument(
        "--engine",
        type=str,
        choices=["auto", "local", "google"],
        help="Transcription engine (overrides transcription.engine)"
    )

    parser.add_argument(
        "--version",
        action="version",
        version="MeetingMind v0.1.0"
    )

    args = parser.parse_args()

    server = Server(args.config, args.log_level)
    if args.engine:
        server.config.set('transcription.engine', args.engine)
    try:
        server.init(args.replay)
        server.run(args.duration)
    except KeyboardInterrupt:
        server.cleanup()
        print("\n👋 Goodbye!")
    except MeetingMindError as e:
        server.cleanup()
        print(f"❌ Error: {e}")
        logging.error(f"Application error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
