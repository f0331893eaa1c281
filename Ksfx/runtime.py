"""
Ksfx Runtime

Main application that samples the keyboard in a loop and plays a sound
effect on every key press.
"""

import time
import logging
import argparse
from typing import List, Optional, Sequence

from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from rich.align import Align
from rich.text import Text

from .audio_output import AudioOutput, AudioOutputError
from .config_manager import ConfigError, ConfigManager, DEFAULT_CONFIG_NAME, Settings
from .controller import PlaybackController
from .keyboard_listener import KeyboardSampler, KeyboardSamplerError, key_combination_to_string
from .sound_pack import SoundPack, SoundPackError, load_sound_packs


logger = logging.getLogger(__name__)

FATAL_ERRORS = (ConfigError, SoundPackError, AudioOutputError, KeyboardSamplerError)


class KsfxRuntime:
    """Main runtime application for Ksfx."""

    def __init__(self, config_path: str = DEFAULT_CONFIG_NAME,
                 poll_interval: Optional[float] = None,
                 console: Optional[Console] = None,
                 output=None, sampler=None):
        """
        Initialize the runtime application.

        Args:
            config_path: Path to the config file
            poll_interval: Seconds to sleep between ticks (overrides the config)
            console: Console for status output
            output: Audio sink (defaults to the system output device)
            sampler: Keyboard sampler (defaults to a pynput-backed one)
        """
        self.console = console or Console()
        self.config_path = config_path
        self.poll_interval = poll_interval
        self.output = output
        self.sampler = sampler

        self.settings: Optional[Settings] = None
        self.sound_packs: List[SoundPack] = []
        self.controller: Optional[PlaybackController] = None
        self.running = False

    def print_header(self) -> None:
        """Print the application header."""
        header = Panel(
            Align.center(
                Text("KSFX\nKEYBOARD SOUND EFFECTS", style="bold cyan"),
                vertical="middle"
            ),
            style="cyan",
            height=6
        )
        self.console.print(header)

    def init_config(self) -> None:
        """Load settings, creating a default config file if there is none."""
        config_manager = ConfigManager(self.config_path)
        if config_manager.created_default:
            self.console.print(f"[yellow]Created config file with default settings at {escape(self.config_path)}[/yellow]")

        self.settings = config_manager.get_settings()

        if self.poll_interval is None:
            self.poll_interval = self.settings.poll_interval

    def load_packs(self) -> None:
        """Decode every configured sound pack."""
        with self.console.status("[cyan]Loading sound packs...[/cyan]"):
            self.sound_packs = load_sound_packs(self.settings)

    def display_sound_packs(self) -> None:
        """Show loaded sound packs and shortcuts."""
        table = Table(show_header=True, header_style="bold cyan")
        table.add_column("#", justify="right", style="dim")
        table.add_column("Sound Pack", style="cyan")
        table.add_column("Clips", justify="right")
        table.add_column("Path", style="dim")

        for index, pack in enumerate(self.sound_packs, 1):
            table.add_row(str(index), escape(pack.name), str(len(pack)), escape(pack.settings.path))

        self.console.print(table)

        shortcuts = [
            ("Toggle", self.settings.toggle),
            ("Previous pack", self.settings.previous_sound_pack),
            ("Next pack", self.settings.next_sound_pack),
            ("Terminate", self.settings.terminate),
        ]
        for label, binding in shortcuts:
            if binding:
                self.console.print(f"[yellow]{key_combination_to_string(binding)}[/yellow] - {label}")

    def init_audio(self) -> None:
        """Open the audio output device."""
        if self.output is None:
            self.output = AudioOutput()
            self.console.print(f"[green]OK Audio output: {escape(self.output.device_name)}[/green]")

    def init_keyboard(self) -> None:
        """Start sampling the keyboard."""
        if self.sampler is None:
            self.sampler = KeyboardSampler()
        self.sampler.start()

    def run_loop(self) -> None:
        """Tick the controller until the terminate shortcut is pressed."""
        self.running = True

        while self.running:
            held = self.sampler.sample()
            if not self.controller.tick(held):
                self.running = False
                break

            if self.poll_interval:
                time.sleep(self.poll_interval)

        self.console.print("Program terminated!")

    def start(self) -> int:
        """
        Start the runtime application.

        Returns:
            Process exit code
        """
        try:
            self.init_config()
            self.load_packs()
            self.init_audio()
            self.init_keyboard()
        except FATAL_ERRORS as e:
            self.console.print(f"[red]ERROR {escape(str(e))}[/red]")
            self.stop()
            return 1

        self.controller = PlaybackController(self.settings, self.sound_packs, self.output, console=self.console)

        self.display_sound_packs()
        self.console.print("[dim]Keyboard sound effects active. Press Ctrl+C to stop.[/dim]")

        try:
            self.run_loop()
        except KeyboardSamplerError as e:
            self.console.print(f"[red]ERROR {escape(str(e))}[/red]")
            return 1
        except KeyboardInterrupt:
            self.console.print("\n[yellow]Interrupted by user[/yellow]")
        finally:
            self.stop()

        return 0

    def stop(self) -> None:
        """Stop the runtime application."""
        self.running = False

        if self.sampler:
            self.sampler.stop()

        if self.output:
            self.output.stop()

        if self.controller:
            logger.info("Session stats: %s", self.controller.stats)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Play a sound effect on every key press")
    parser.add_argument("config", nargs="?", default=DEFAULT_CONFIG_NAME,
                        help=f"Path to configuration file (default: {DEFAULT_CONFIG_NAME})")
    parser.add_argument("--poll-interval", type=float, default=None,
                        help="Seconds to wait between keyboard samples (0 polls continuously)")
    parser.add_argument("--log-level", default="WARNING",
                        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
                        help="Diagnostic log level")
    return parser


def configure_logging(level: str, console: Optional[Console] = None) -> None:
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True
    )


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    if args.poll_interval is not None and args.poll_interval < 0:
        build_parser().error("--poll-interval must not be negative")

    console = Console()
    configure_logging(args.log_level, console)

    runtime = KsfxRuntime(args.config, poll_interval=args.poll_interval, console=console)
    runtime.print_header()
    return runtime.start()


if __name__ == "__main__":
    raise SystemExit(main())
