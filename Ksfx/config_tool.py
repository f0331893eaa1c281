"""
Ksfx Configuration Tool

Interactive CLI tool for choosing sound pack folders and assigning the
toggle, terminate and pack-switch keyboard shortcuts.
"""

import os
import sys
import argparse
from typing import List, Optional, Sequence

import questionary
from questionary import Style
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from rich.align import Align
from rich.text import Text

from .config_manager import BINDING_ACTIONS, ConfigError, ConfigManager, DEFAULT_CONFIG_NAME
from .file_scanner import FileScanner, PackCandidate
from .keyboard_listener import KeyboardCapture, KeyboardSamplerError, key_combination_to_string


ACTION_LABELS = {
    'toggle': "Toggle sound effects",
    'terminate': "Terminate",
    'previous_sound_pack': "Previous sound pack",
    'next_sound_pack': "Next sound pack",
}


class KsfxConfig:
    """Configuration tool for Ksfx sound packs and shortcuts."""

    def __init__(self, config_path: str = DEFAULT_CONFIG_NAME):
        """Initialize the configuration tool."""
        self.console = Console()
        self.config_path = config_path
        self.config_manager: Optional[ConfigManager] = None
        self.scanner = FileScanner()

        self.style = Style([
            ('qmark', 'fg:#ff9d00 bold'),
            ('question', 'bold'),
            ('answer', 'fg:#ff9d00 bold'),
            ('pointer', 'fg:#ff9d00 bold'),
            ('highlighted', 'fg:#ff9d00 bold'),
            ('selected', 'fg:#cc5454'),
            ('separator', 'fg:#cc5454'),
            ('instruction', ''),
            ('text', ''),
            ('disabled', 'fg:#858585 italic')
        ])

    def print_header(self) -> None:
        """Print the application header."""
        header = Panel(
            Align.center(
                Text("KSFX\nCONFIG TOOL", style="bold green"),
                vertical="middle"
            ),
            style="green",
            height=6
        )
        self.console.print(header)
        self.console.print()

    def init_config(self) -> bool:
        """Initialize configuration manager."""
        try:
            self.config_manager = ConfigManager(self.config_path, bootstrap=False)
            return True
        except ConfigError as e:
            self.console.print(f"[red]Error initializing configuration: {escape(str(e))}[/red]")
            return False

    def view_configuration(self) -> None:
        """Display configured sound packs and shortcuts."""
        packs = Table(show_header=True, header_style="bold green", title="Sound Packs")
        packs.add_column("#", justify="right", style="dim")
        packs.add_column("Path", style="cyan")
        packs.add_column("Status")

        for index, path in enumerate(self.config_manager.get_sound_pack_paths(), 1):
            status = "[green]OK[/green]" if os.path.isdir(path) else "[red]Folder not found[/red]"
            packs.add_row(str(index), escape(path), status)

        shortcuts = Table(show_header=True, header_style="bold green", title="Shortcuts")
        shortcuts.add_column("Function", style="cyan", no_wrap=True)
        shortcuts.add_column("Shortcut", justify="center")

        for action in BINDING_ACTIONS:
            keys = self.config_manager.get_binding(action)
            shortcut = key_combination_to_string(keys) if keys else "[dim]Not set[/dim]"
            shortcuts.add_row(ACTION_LABELS[action], shortcut)

        self.console.print(packs)
        self.console.print(shortcuts)

        for shortcut, actions in self.config_manager.get_conflicting_bindings().items():
            labels = ", ".join(ACTION_LABELS[a] for a in actions)
            self.console.print(f"[yellow]WARNING Shortcut conflict '{key_combination_to_string(shortcut)}': {labels}[/yellow]")

    def display_scan_results(self, candidates: List[PackCandidate]) -> None:
        """Display discovered sound pack folders."""
        table = Table(show_header=True, header_style="bold green")
        table.add_column("Folder", style="cyan")
        table.add_column("Files", justify="right")
        table.add_column("Size", justify="right")

        for candidate in candidates:
            table.add_row(escape(candidate.name), str(candidate.total_files), f"{candidate.size_kb:.1f} KB")

        self.console.print(table)

    def scan_for_sound_packs(self) -> None:
        """Scan a folder for subfolders of audio files and add the chosen ones."""
        root = questionary.path("Folder containing sound pack folders:", only_directories=True, style=self.style).ask()
        if not root:
            return

        try:
            candidates = list(self.scanner.scan_for_sound_packs(root).values())
        except OSError as e:
            self.console.print(f"[red]{escape(str(e))}[/red]")
            return

        if not candidates:
            self.console.print("[yellow]No folders with audio files found[/yellow]")
            return

        self.display_scan_results(candidates)

        selected = questionary.checkbox(
            "Select sound packs to add:",
            choices=[questionary.Choice(c.name, value=c.path, checked=True) for c in candidates],
            style=self.style
        ).ask()

        for path in selected or []:
            if self.config_manager.add_sound_pack(path):
                self.console.print(f"[green]Added {escape(path)}[/green]")
            else:
                self.console.print(f"[dim]Already configured: {escape(path)}[/dim]")

    def add_sound_pack(self) -> None:
        """Add a single sound pack folder by path."""
        path = questionary.path("Sound pack folder:", only_directories=True, style=self.style).ask()
        if not path:
            return

        if self.scanner.scan_single_directory(path) is None:
            self.console.print("[yellow]WARNING No audio files found in that folder[/yellow]")

        if self.config_manager.add_sound_pack(path):
            self.console.print(f"[green]Added {escape(path)}[/green]")
        else:
            self.console.print("[dim]Sound pack already configured[/dim]")

    def remove_sound_pack(self) -> None:
        """Remove a configured sound pack."""
        paths = self.config_manager.get_sound_pack_paths()
        if not paths:
            self.console.print("[dim]No sound packs configured[/dim]")
            return

        path = questionary.select("Sound pack to remove:", choices=paths + ["Cancel"], style=self.style).ask()
        if path and path != "Cancel":
            self.config_manager.remove_sound_pack(path)
            self.console.print(f"[green]Removed {escape(path)}[/green]")

    def _select_action(self, message: str) -> Optional[str]:
        choices = [questionary.Choice(ACTION_LABELS[a], value=a) for a in BINDING_ACTIONS]
        choices.append(questionary.Choice("Cancel", value=None))
        return questionary.select(message, choices=choices, style=self.style).ask()

    def capture_keyboard_shortcut(self, description: str) -> Optional[List[str]]:
        """
        Capture a key combination from the keyboard.

        Returns:
            Captured keys or None if nothing was captured
        """
        self.console.print(f"\n[bold]Press the keys for '{description}', then press Enter[/bold]")

        try:
            keys = KeyboardCapture().start_capture(timeout=30)
        except KeyboardSamplerError as e:
            self.console.print(f"[red]{escape(str(e))}[/red]")
            return None

        if not keys:
            self.console.print("[yellow]No keys captured[/yellow]")
            return None

        return sorted(keys)

    def assign_shortcut(self) -> None:
        """Capture and store a shortcut for an action."""
        action = self._select_action("Assign shortcut for:")
        if not action:
            return

        keys = self.capture_keyboard_shortcut(ACTION_LABELS[action])
        if not keys:
            return

        self.config_manager.set_binding(action, keys)
        self.console.print(f"[green]{ACTION_LABELS[action]}: {key_combination_to_string(keys)}[/green]")

    def clear_shortcut(self) -> None:
        """Remove the shortcut of an action."""
        action = self._select_action("Clear shortcut for:")
        if action and self.config_manager.clear_binding(action):
            self.console.print(f"[green]Cleared shortcut for {ACTION_LABELS[action]}[/green]")

    def main_menu(self) -> None:
        """Show the main menu until the user exits."""
        actions = {
            "View configuration": self.view_configuration,
            "Scan folder for sound packs": self.scan_for_sound_packs,
            "Add sound pack folder": self.add_sound_pack,
            "Remove sound pack": self.remove_sound_pack,
            "Assign shortcut": self.assign_shortcut,
            "Clear shortcut": self.clear_shortcut,
        }

        while True:
            choice = questionary.select(
                "What would you like to do?",
                choices=list(actions) + ["Save and exit", "Exit without saving"],
                style=self.style
            ).ask()

            if choice is None or choice == "Exit without saving":
                return

            if choice == "Save and exit":
                if self.config_manager.save_config():
                    self.console.print(f"[green]Saved {escape(str(self.config_manager.config_path))}[/green]")
                else:
                    self.console.print("[red]Failed to save configuration[/red]")
                return

            actions[choice]()
            self.console.print()

    def run(self) -> int:
        """Main entry point."""
        self.print_header()

        if not self.init_config():
            return 1

        try:
            self.main_menu()
        except KeyboardInterrupt:
            self.console.print("\n[yellow]Interrupted by user[/yellow]")

        return 0


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Configure Ksfx sound packs and shortcuts")
    parser.add_argument("config", nargs="?", default=DEFAULT_CONFIG_NAME,
                        help=f"Path to configuration file (default: {DEFAULT_CONFIG_NAME})")
    args = parser.parse_args(argv)

    return KsfxConfig(args.config).run()


if __name__ == "__main__":
    sys.exit(main())
