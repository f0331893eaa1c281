"""
Configuration Manager for Ksfx.

Handles loading, saving, and validation of the JSON (or YAML) configuration
file. Builds the immutable settings used by the playback loop: sound packs,
shortcut bindings and the global pitch/volume defaults.
"""

import os
import json
import logging
from pathlib import Path
from typing import Dict, FrozenSet, List, Any, Optional, Tuple, Union
from dataclasses import dataclass
from collections import defaultdict

import yaml

from .keyboard_listener import normalize_key_name, normalize_key_combination


logger = logging.getLogger(__name__)

DEFAULT_CONFIG_NAME = "ksfx.json"

DEFAULT_VOLUME = 1.0
DEFAULT_PITCH_START = 0.5
DEFAULT_PITCH_RANGE = 0.5
DEFAULT_PITCH_STEPS = 0.005
DEFAULT_FAST_THRESHOLD = 1.0
DEFAULT_POLL_INTERVAL = 0.001

BINDING_ACTIONS = ('previous_sound_pack', 'next_sound_pack', 'terminate', 'toggle')
PARAMETER_FIELDS = ('volume', 'pitch_start', 'pitch_range', 'pitch_steps', 'fast_threshold')

YAML_SUFFIXES = {'.yaml', '.yml'}

Binding = FrozenSet[str]


class ConfigError(Exception):
    """Raised when the configuration file cannot be read or is invalid."""


def display_name(path: str) -> str:
    """Get the text after the last '/' or '\\' of a path, or the whole path."""
    cut = max(path.rfind('/'), path.rfind('\\'))
    return path[cut + 1:] if cut >= 0 else path


@dataclass(frozen=True)
class PackParameters:
    """Resolved playback parameters for one sound pack."""
    volume: float = DEFAULT_VOLUME
    pitch_start: float = DEFAULT_PITCH_START
    pitch_range: float = DEFAULT_PITCH_RANGE
    pitch_steps: float = DEFAULT_PITCH_STEPS
    fast_threshold: float = DEFAULT_FAST_THRESHOLD


@dataclass(frozen=True)
class BasicSoundPack:
    """Sound pack given as a bare directory path."""
    path: str

    @property
    def name(self) -> str:
        return display_name(self.path)

    def to_config(self) -> Any:
        return self.path


@dataclass(frozen=True)
class AdvancedSoundPack:
    """Sound pack given as an object; its "name" field is the directory path."""
    path: str
    volume: Optional[float] = None
    pitch_start: Optional[float] = None
    pitch_range: Optional[float] = None
    pitch_steps: Optional[float] = None
    fast_threshold: Optional[float] = None

    @property
    def name(self) -> str:
        return display_name(self.path)

    def to_config(self) -> Any:
        data = {'name': self.path}
        for key in PARAMETER_FIELDS:
            value = getattr(self, key)
            if value is not None:
                data[key] = value
        return data


SoundPackSettings = Union[BasicSoundPack, AdvancedSoundPack]


@dataclass(frozen=True)
class Settings:
    """Immutable runtime settings built from the configuration file."""
    sound_packs: Tuple[SoundPackSettings, ...]
    previous_sound_pack: Optional[Binding] = None
    next_sound_pack: Optional[Binding] = None
    terminate: Optional[Binding] = None
    toggle: Optional[Binding] = None
    volume: Optional[float] = None
    pitch_start: Optional[float] = None
    pitch_range: Optional[float] = None
    pitch_steps: Optional[float] = None
    fast_threshold: Optional[float] = None
    poll_interval: float = DEFAULT_POLL_INTERVAL

    def pack_parameters(self, index: int) -> PackParameters:
        """
        Resolve playback parameters for a sound pack.

        Each value comes from the pack's own override, else the global
        setting, else the built-in default.

        Args:
            index: Index into sound_packs

        Returns:
            PackParameters for the pack
        """
        pack = self.sound_packs[index]
        resolved = {}

        for key in PARAMETER_FIELDS:
            value = getattr(pack, key, None)
            if value is None:
                value = getattr(self, key)
            if value is None:
                value = getattr(PackParameters, key)
            resolved[key] = value

        return PackParameters(**resolved)


def _get_default_config() -> Dict[str, Any]:
    """Get default configuration structure."""
    return {
        'sound_packs': ['assets'],
        'previous_sound_pack': ['F4'],
        'next_sound_pack': ['F5'],
        'terminate': ['F2'],
        'toggle': ['F3'],
        'volume': DEFAULT_VOLUME,
        'pitch_start': DEFAULT_PITCH_START,
        'pitch_range': DEFAULT_PITCH_RANGE,
        'pitch_steps': DEFAULT_PITCH_STEPS,
        'fast_threshold': DEFAULT_FAST_THRESHOLD
    }


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _parse_number(data: Dict[str, Any], key: str, where: str) -> Optional[float]:
    value = data.get(key)
    if value is None:
        return None
    if not _is_number(value):
        raise ValueError(f"'{where}{key}' must be a number, got {value!r}")
    return float(value)


def _parse_binding(data: Dict[str, Any], key: str) -> Optional[Binding]:
    value = data.get(key)
    if value is None:
        return None
    if not isinstance(value, list) or not all(isinstance(k, str) for k in value):
        raise ValueError(f"'{key}' must be a list of key names, got {value!r}")
    if not value:
        logger.warning("Ignoring empty '%s' shortcut", key)
        return None
    return frozenset(normalize_key_name(k) for k in value)


def _parse_sound_pack(entry: Any, position: int) -> SoundPackSettings:
    if isinstance(entry, str):
        return BasicSoundPack(entry)

    if isinstance(entry, dict):
        name = entry.get('name')
        if not isinstance(name, str):
            raise ValueError(f"'sound_packs[{position}].name' must be a string path")
        where = f"sound_packs[{position}]."
        return AdvancedSoundPack(
            name,
            **{key: _parse_number(entry, key, where) for key in PARAMETER_FIELDS}
        )

    raise ValueError(f"'sound_packs[{position}]' must be a path or an object, got {entry!r}")


def parse_settings(data: Any) -> Settings:
    """
    Build Settings from decoded configuration data.

    Args:
        data: Decoded JSON/YAML document

    Returns:
        Settings instance

    Raises:
        ValueError: If a field is missing or has the wrong shape
    """
    if not isinstance(data, dict):
        raise ValueError("configuration must be an object")

    packs = data.get('sound_packs')
    if not isinstance(packs, list):
        raise ValueError("'sound_packs' must be a list")
    if not packs:
        raise ValueError("'sound_packs' must name at least one sound pack")

    poll_interval = _parse_number(data, 'poll_interval', '')
    if poll_interval is None:
        poll_interval = DEFAULT_POLL_INTERVAL
    elif poll_interval < 0:
        raise ValueError("'poll_interval' must not be negative")

    return Settings(
        sound_packs=tuple(_parse_sound_pack(entry, i) for i, entry in enumerate(packs)),
        poll_interval=poll_interval,
        **{key: _parse_binding(data, key) for key in BINDING_ACTIONS},
        **{key: _parse_number(data, key, '') for key in PARAMETER_FIELDS}
    )


class ConfigManager:
    """
    Manages Ksfx configuration files.

    Loads the file on construction (writing a default one when it does not
    exist), validates it into Settings, and offers the mutation API used by
    the config tool.
    """

    def __init__(self, config_path: Optional[str] = None, bootstrap: bool = True):
        """
        Initialize config manager.

        Args:
            config_path: Path to config file (defaults to ksfx.json in the current directory)
            bootstrap: Write the default config to disk when the file is missing

        Raises:
            ConfigError: If the file exists but cannot be read or parsed
        """
        if config_path is None:
            config_path = os.path.join(os.getcwd(), DEFAULT_CONFIG_NAME)

        self.config_path = Path(config_path)
        self.config_data: Dict[str, Any] = {}
        self.created_default = False
        self._load_config(bootstrap)

    @property
    def is_yaml(self) -> bool:
        return self.config_path.suffix.lower() in YAML_SUFFIXES

    def _load_config(self, bootstrap: bool) -> None:
        """Load configuration from file, or fall back to defaults."""
        try:
            with open(self.config_path, 'r', encoding='utf-8') as file:
                text = file.read()
        except FileNotFoundError:
            logger.warning('Config file not found at path "%s"', self.config_path)
            self.config_data = _get_default_config()
            if bootstrap:
                self.created_default = self.save_config()
                if self.created_default:
                    logger.info("Created config file with default settings")
            return
        except OSError as e:
            raise ConfigError(f'Could not read from config file at "{self.config_path}": {e}') from e

        try:
            if self.is_yaml:
                self.config_data = yaml.safe_load(text)
            else:
                self.config_data = json.loads(text)
        except (yaml.YAMLError, ValueError) as e:
            raise ConfigError(f'Config file invalid at "{self.config_path}": {e}') from e

        logger.debug("Loaded config from %s", self.config_path)

    def save_config(self) -> bool:
        """
        Save configuration to file.

        Returns:
            True if saved successfully
        """
        try:
            self.config_path.parent.mkdir(parents=True, exist_ok=True)

            with open(self.config_path, 'w', encoding='utf-8') as file:
                if self.is_yaml:
                    yaml.dump(self.config_data, file,
                              default_flow_style=False,
                              allow_unicode=True,
                              sort_keys=False,
                              indent=2)
                else:
                    json.dump(self.config_data, file, indent=2)
                    file.write('\n')
            return True
        except (yaml.YAMLError, OSError) as e:
            logger.warning("Could not write config file %s: %s", self.config_path, e)
            return False

    def get_settings(self) -> Settings:
        """
        Validate the configuration into Settings.

        Raises:
            ConfigError: If the configuration has the wrong shape
        """
        try:
            return parse_settings(self.config_data)
        except ValueError as e:
            raise ConfigError(f'Config file invalid at "{self.config_path}": {e}') from e

    # Sound Pack Management

    def get_sound_pack_paths(self) -> List[str]:
        """Get the directory path of every configured sound pack."""
        paths = []
        for entry in self.config_data.get('sound_packs', []):
            if isinstance(entry, dict):
                paths.append(entry.get('name', ''))
            else:
                paths.append(entry)
        return paths

    def add_sound_pack(self, path: str, **overrides: float) -> bool:
        """
        Add a sound pack directory.

        Args:
            path: Directory holding the pack's clips
            **overrides: Optional per-pack volume/pitch parameters

        Returns:
            True if added, False if the path is already configured
        """
        if path in self.get_sound_pack_paths():
            return False

        unknown = set(overrides) - set(PARAMETER_FIELDS)
        if unknown:
            raise ValueError(f"Unknown sound pack parameters: {', '.join(sorted(unknown))}")

        entry: Any = path
        if overrides:
            entry = AdvancedSoundPack(path, **overrides).to_config()

        self.config_data.setdefault('sound_packs', []).append(entry)
        return True

    def remove_sound_pack(self, path: str) -> bool:
        """
        Remove a sound pack by its directory path.

        Returns:
            True if the pack was removed
        """
        paths = self.get_sound_pack_paths()
        if path not in paths:
            return False

        del self.config_data['sound_packs'][paths.index(path)]
        return True

    # Shortcut Management

    def get_binding(self, action: str) -> List[str]:
        """Get the keys bound to an action."""
        self._check_action(action)
        return list(self.config_data.get(action) or [])

    def set_binding(self, action: str, keys: List[str]) -> None:
        """Set the keys bound to an action."""
        self._check_action(action)
        if not keys:
            raise ValueError("Key combination cannot be empty")
        self.config_data[action] = normalize_key_combination(keys)

    def clear_binding(self, action: str) -> bool:
        """
        Remove the shortcut for an action.

        Returns:
            True if a shortcut was configured
        """
        self._check_action(action)
        return self.config_data.pop(action, None) is not None

    def get_conflicting_bindings(self) -> Dict[Tuple[str, ...], List[str]]:
        """
        Find actions that share the same key combination.

        Returns:
            Dictionary mapping shortcut tuples to lists of conflicting actions
        """
        conflicts = defaultdict(list)

        for action in BINDING_ACTIONS:
            keys = self.config_data.get(action)
            if keys:
                conflicts[tuple(normalize_key_combination(keys))].append(action)

        return {k: v for k, v in conflicts.items() if len(v) > 1}

    @staticmethod
    def _check_action(action: str) -> None:
        if action not in BINDING_ACTIONS:
            raise ValueError(f"Unknown action '{action}'")
