"""
File Scanner for Ksfx.

Enumerates sound pack directories for the loader and discovers candidate
sound pack folders for the config tool.
"""

import os
from pathlib import Path
from typing import Dict, List, Optional, NamedTuple
from dataclasses import dataclass


class AudioFileInfo(NamedTuple):
    """Information about an audio file."""
    path: str
    name: str
    size: int
    extension: str


@dataclass
class PackCandidate:
    """Information about a folder that could be used as a sound pack."""
    name: str
    path: str
    audio_files: List[AudioFileInfo]

    @property
    def total_files(self) -> int:
        return len(self.audio_files)

    @property
    def total_size(self) -> int:
        return sum(f.size for f in self.audio_files)

    @property
    def size_kb(self) -> float:
        """Get total size in KB."""
        return self.total_size / 1024


class FileScanner:
    """
    Lists sound pack directory entries and finds folders of audio files.

    Hidden entries (names starting with '.') are skipped by default.
    """

    # Formats soundfile can decode
    SUPPORTED_AUDIO_EXTENSIONS = {
        '.wav', '.flac', '.ogg', '.oga', '.opus', '.mp3',
        '.aif', '.aiff', '.au', '.caf'
    }

    def __init__(self, ignore_hidden: bool = True):
        """
        Initialize file scanner.

        Args:
            ignore_hidden: Skip hidden files and directories
        """
        self.ignore_hidden = ignore_hidden

    def _should_skip(self, name: str) -> bool:
        return self.ignore_hidden and name.startswith('.')

    def is_audio_file(self, file_path: str) -> bool:
        """
        Check if a file has a supported audio extension.

        Args:
            file_path: Path to file to check

        Returns:
            True if file is a supported audio format
        """
        if not os.path.isfile(file_path):
            return False

        return Path(file_path).suffix.lower() in self.SUPPORTED_AUDIO_EXTENSIONS

    def list_pack_entries(self, directory_path: str) -> List[str]:
        """
        List every entry of a sound pack directory.

        Entries come back in directory-enumeration order, which depends on
        the platform and filesystem.

        Args:
            directory_path: Sound pack directory

        Returns:
            Full paths of the non-hidden entries

        Raises:
            FileNotFoundError: If the directory doesn't exist
            NotADirectoryError: If the path is not a directory
            PermissionError: If access is denied
        """
        return [
            os.path.join(directory_path, item)
            for item in os.listdir(directory_path)
            if not self._should_skip(item)
        ]

    def scan_for_sound_packs(self, root_path: str) -> Dict[str, PackCandidate]:
        """
        Find subdirectories of root_path that hold audio files.

        Args:
            root_path: Directory to scan

        Returns:
            Dictionary mapping folder names to PackCandidate objects

        Raises:
            FileNotFoundError: If root_path doesn't exist
            NotADirectoryError: If root_path is not a directory
        """
        if not os.path.exists(root_path):
            raise FileNotFoundError(f"Directory not found: {root_path}")

        if not os.path.isdir(root_path):
            raise NotADirectoryError(f"Path is not a directory: {root_path}")

        candidates = {}

        for item in sorted(os.listdir(root_path)):
            item_path = os.path.join(root_path, item)

            if not os.path.isdir(item_path) or self._should_skip(item):
                continue

            candidate = self.scan_single_directory(item_path)
            if candidate:
                candidates[item] = candidate

        return candidates

    def scan_single_directory(self, directory_path: str) -> Optional[PackCandidate]:
        """
        Scan a single directory (non-recursive) for audio files.

        Args:
            directory_path: Directory to scan

        Returns:
            PackCandidate or None if no audio files found
        """
        audio_files = []

        try:
            for item_path in self.list_pack_entries(directory_path):
                if not self.is_audio_file(item_path):
                    continue

                audio_files.append(AudioFileInfo(
                    path=item_path,
                    name=os.path.basename(item_path),
                    size=os.path.getsize(item_path),
                    extension=Path(item_path).suffix.lower()
                ))
        except OSError:
            return None

        if not audio_files:
            return None

        return PackCandidate(
            name=os.path.basename(directory_path),
            path=directory_path,
            audio_files=audio_files
        )
