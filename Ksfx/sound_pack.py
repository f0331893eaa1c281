"""
Sound pack loading for Ksfx.

Decodes every clip of every configured sound pack into memory once at
startup so key presses never touch the disk.
"""

import logging
from typing import List, Optional
from dataclasses import dataclass

import numpy as np
import soundfile as sf

from .config_manager import Settings, SoundPackSettings
from .file_scanner import FileScanner


logger = logging.getLogger(__name__)


class SoundPackError(Exception):
    """Raised when a sound pack directory or clip cannot be loaded."""


@dataclass(frozen=True, eq=False)
class AudioClip:
    """A decoded audio file."""
    name: str
    samples: np.ndarray
    sample_rate: int

    @property
    def duration(self) -> float:
        """Get clip length in seconds."""
        return len(self.samples) / self.sample_rate


@dataclass
class SoundPack:
    """The decoded clips of one configured sound pack."""
    settings: SoundPackSettings
    clips: List[AudioClip]

    @property
    def name(self) -> str:
        return self.settings.name

    def __len__(self) -> int:
        return len(self.clips)


def load_clip(file_path: str) -> AudioClip:
    """
    Decode one audio file.

    Raises:
        SoundPackError: If the file cannot be read or decoded
    """
    try:
        data, sample_rate = sf.read(file_path, dtype='float32')
    except (RuntimeError, OSError) as e:
        raise SoundPackError(f'Could not decode sound file "{file_path}": {e}') from e

    return AudioClip(name=file_path, samples=data, sample_rate=sample_rate)


def load_sound_pack(pack_settings: SoundPackSettings,
                    scanner: Optional[FileScanner] = None) -> SoundPack:
    """
    Load every clip of a sound pack directory.

    Args:
        pack_settings: Pack entry from the configuration
        scanner: Directory scanner (defaults to one that skips hidden files)

    Returns:
        SoundPack with clips in directory-enumeration order

    Raises:
        SoundPackError: If the directory is missing, unreadable or empty, or
            any entry cannot be decoded
    """
    scanner = scanner or FileScanner()
    path = pack_settings.path

    try:
        entries = scanner.list_pack_entries(path)
    except OSError as e:
        raise SoundPackError(f'Sound pack folder not found at "{path}"') from e

    if not entries:
        raise SoundPackError(f'Sound pack folder is empty at "{path}"')

    clips = [load_clip(entry) for entry in entries]
    logger.debug("Loaded %d clips from %s", len(clips), path)

    return SoundPack(settings=pack_settings, clips=clips)


def load_sound_packs(settings: Settings) -> List[SoundPack]:
    """Load all configured sound packs in configuration order."""
    scanner = FileScanner()
    return [load_sound_pack(pack, scanner) for pack in settings.sound_packs]
