"""
Keyboard state for Ksfx using the 'pynput' library.

Provides the held-key sampler polled by the playback loop, interactive
shortcut capture for the config tool, and the key-name normalization shared
by both and by the config loader.
"""

import re
import time
import logging
import threading
from typing import Any, Dict, FrozenSet, Iterable, List, NamedTuple, Optional, Set, Tuple

try:
    from pynput import keyboard as pynput_keyboard
    from pynput.keyboard import Key
    PYNPUT_AVAILABLE = True
except ImportError:
    PYNPUT_AVAILABLE = False
    Key = None
    pynput_keyboard = None


logger = logging.getLogger(__name__)

KEY_ALIASES = {
    'control': 'ctrl', 'ctrl_l': 'ctrl', 'ctrl_r': 'ctrl',
    'lcontrol': 'ctrl', 'rcontrol': 'ctrl',
    'alt_l': 'alt', 'alt_r': 'alt', 'alt_gr': 'alt',
    'lalt': 'alt', 'ralt': 'alt',
    'shift_l': 'shift', 'shift_r': 'shift',
    'lshift': 'shift', 'rshift': 'shift',
    'cmd_l': 'cmd', 'cmd_r': 'cmd', 'windows': 'cmd', 'win': 'cmd',
    'meta': 'cmd', 'super': 'cmd',
    'escape': 'esc', 'return': 'enter',
    'pageup': 'page_up', 'pagedown': 'page_down',
    'capslock': 'caps_lock', 'numlock': 'num_lock', 'scrolllock': 'scroll_lock',
}

MODIFIER_ORDER = ['ctrl', 'alt', 'shift', 'cmd']

# Keys that change which character a key types
LEVEL_KEYS = frozenset(['shift', 'shift_l', 'shift_r', 'alt_gr'])

_NUMBER_KEY = re.compile(r'^key(\d)$')


class KeyboardSamplerError(RuntimeError):
    """Raised when the keyboard state cannot be sampled."""


def normalize_key_name(name: str) -> str:
    """
    Normalize a key name to the identifier used in bindings.

    Case-insensitive; left/right modifier variants collapse to one name and
    number-row names such as 'Key1' become '1'.

    Args:
        name: Key name as written in a config file or reported by the OS

    Returns:
        Normalized key identifier (e.g. 'F2' -> 'f2', 'LControl' -> 'ctrl')
    """
    key = name.strip().lower()
    key = KEY_ALIASES.get(key, key)

    match = _NUMBER_KEY.match(key)
    if match:
        return match.group(1)

    return key


def normalize_key_combination(keys: Iterable[str]) -> List[str]:
    """
    Normalize a list of key names to standard format.

    Args:
        keys: List of key names to normalize

    Returns:
        Normalized list of unique key names, modifiers first, then the rest
        alphabetically
    """
    normalized = []
    for key in keys:
        key = normalize_key_name(key)
        if key and key not in normalized:
            normalized.append(key)

    modifiers = [mod for mod in MODIFIER_ORDER if mod in normalized]
    other_keys = sorted(key for key in normalized if key not in MODIFIER_ORDER)

    return modifiers + other_keys


def key_combination_to_string(keys: Iterable[str]) -> str:
    """
    Convert a key combination to a human-readable string.

    Args:
        keys: List of key names

    Returns:
        Human-readable string (e.g., "F2", "Ctrl+Alt+N")
    """
    formatted_keys = []

    for key in normalize_key_combination(keys):
        if key == 'cmd':
            formatted_keys.append('Win')
        elif key.startswith('f') and key[1:].isdigit():
            formatted_keys.append(key.upper())
        else:
            formatted_keys.append(key.capitalize())

    return '+'.join(formatted_keys)


def _is_special(key: Any) -> bool:
    return Key is not None and isinstance(key, Key)


def _raw_key_name(key: Any) -> Optional[str]:
    """Name a key without merging left/right variants."""
    if _is_special(key):
        return key.name

    char = getattr(key, 'char', None)
    if char and char.strip() and char.isprintable():
        return char.lower()

    vk = getattr(key, 'vk', None)
    if vk:
        try:
            char = chr(vk).lower()
            if char.isalnum():
                return char
        except (ValueError, OverflowError):
            pass
        return f"vk_{vk}"

    return None


def key_to_name(key: Any) -> Optional[str]:
    """
    Name a pynput Key or KeyCode.

    Args:
        key: pynput Key or KeyCode object

    Returns:
        Normalized key name or None if not recognized
    """
    name = _raw_key_name(key)
    return normalize_key_name(name) if name else None


def _key_identity(key: Any, name: str) -> Tuple[str, Any]:
    if _is_special(key):
        return ('key', key.name)

    scan = getattr(key, '_scan', None)
    if scan:
        return ('scan', scan)

    vk = getattr(key, 'vk', None)
    if vk is not None:
        return ('vk', vk)

    return ('name', name)


class _HeldKey(NamedTuple):
    name: str
    is_char: bool
    shifted: bool


class KeyboardSampler:
    """
    Exposes the set of physically held keys to a polling loop.

    A pynput listener thread keeps the held set current; sample() returns a
    snapshot of it at the instant of the call and never blocks on input.
    Left and right modifiers keep their own names (e.g. 'shift_r') so every
    physical key counts once; binding_matches() merges them.
    """

    def __init__(self):
        """Initialize the sampler. Call start() to begin tracking keys."""
        self._held: Dict[Tuple[str, Any], _HeldKey] = {}
        self._lock = threading.Lock()
        self._listener = None

    def _is_shifted(self) -> bool:
        return any(held.name in LEVEL_KEYS for held in self._held.values() if not held.is_char)

    def _on_press(self, key) -> None:
        """Handle key press from the listener thread."""
        name = _raw_key_name(key)
        if not name:
            return

        identity = _key_identity(key, name)
        with self._lock:
            if identity not in self._held:
                self._held[identity] = _HeldKey(name, not _is_special(key), self._is_shifted())

    def _on_release(self, key) -> None:
        """Handle key release from the listener thread."""
        name = _raw_key_name(key)
        if not name:
            return

        with self._lock:
            if self._held.pop(_key_identity(key, name), None) is None and not _is_special(key):
                self._release_unmatched_char(name)

    def _release_unmatched_char(self, name: str) -> None:
        """
        Clear the character key an unmatched release most likely belongs to.

        On X11 a character key is reported by keysym, which follows the shift
        level, so pressing '1' and releasing it with Shift down reports '!'.
        Prefer a held key of the same name, then one pressed at the other
        shift level, then the most recent one. Must be called under the lock.
        """
        chars = [identity for identity, held in self._held.items() if held.is_char]
        if not chars:
            return

        shifted = self._is_shifted()
        for matches in (lambda held: held.name == name,
                        lambda held: held.shifted != shifted):
            for identity in reversed(chars):
                if matches(self._held[identity]):
                    del self._held[identity]
                    return

        del self._held[chars[-1]]

    def start(self) -> None:
        """
        Start tracking keyboard state.

        Raises:
            KeyboardSamplerError: If the keyboard backend is unavailable
        """
        if not PYNPUT_AVAILABLE:
            raise KeyboardSamplerError("pynput library is required for keyboard monitoring")

        if self._listener is not None:
            raise KeyboardSamplerError("Keyboard sampler is already running")

        try:
            self._listener = pynput_keyboard.Listener(
                on_press=self._on_press,
                on_release=self._on_release
            )
            self._listener.start()
            self._listener.wait()
        except Exception as e:
            self._listener = None
            raise KeyboardSamplerError(f"Failed to start keyboard listener: {e}") from e

        logger.debug("Keyboard listener started")

    def stop(self) -> None:
        """Stop tracking keyboard state."""
        if self._listener is None:
            return

        self._listener.stop()
        self._listener = None

        with self._lock:
            self._held.clear()

    def sample(self) -> FrozenSet[str]:
        """
        Get the keys held right now.

        Returns:
            Frozen set of key names, one per physical key

        Raises:
            KeyboardSamplerError: If the listener thread has died
        """
        if self._listener is not None and not self._listener.is_alive():
            raise KeyboardSamplerError("Keyboard listener stopped unexpectedly")

        names = set()
        with self._lock:
            for identity, held in self._held.items():
                name = held.name
                if name in names:
                    # number row and keypad keys share a name
                    name = f"{identity[0]}_{identity[1]}"
                names.add(name)

        return frozenset(names)

    def __enter__(self):
        """Context manager entry."""
        self.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit."""
        self.stop()


class KeyboardCapture:
    """
    Utility class for capturing a key combination during shortcut configuration.

    Keys pressed are collected until Enter is pressed or the timeout expires.
    """

    def __init__(self):
        """Initialize keyboard capture."""
        if not PYNPUT_AVAILABLE:
            raise KeyboardSamplerError("pynput library is required for keyboard capture")

        self.listener = None
        self.captured_keys: Set[str] = set()
        self.capture_active = False
        self._lock = threading.Lock()

    def _on_key_press(self, key) -> None:
        """Handle key press during capture."""
        if not self.capture_active:
            return

        key_name = key_to_name(key)

        if key_name:
            with self._lock:
                self.captured_keys.add(key_name)

    def start_capture(self, timeout: Optional[float] = None) -> Set[str]:
        """
        Start capturing keyboard input.

        Args:
            timeout: Maximum time to wait for input (seconds)

        Returns:
            Set of captured key names
        """
        self.captured_keys.clear()
        self.capture_active = True

        self.listener = pynput_keyboard.Listener(on_press=self._on_key_press)
        self.listener.start()

        # Wait for Enter key or timeout
        start_time = time.time()
        while self.capture_active:
            if timeout and (time.time() - start_time) > timeout:
                break

            with self._lock:
                if 'enter' in self.captured_keys:
                    self.captured_keys.discard('enter')
                    break

            time.sleep(0.01)

        self.stop_capture()
        return self.captured_keys.copy()

    def stop_capture(self) -> None:
        """Stop capturing keyboard input."""
        self.capture_active = False

        if self.listener:
            self.listener.stop()
            self.listener = None
