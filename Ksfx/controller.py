"""
Playback Controller for Ksfx.

Runs one tick of the polling loop: matches the held keys against the
configured shortcuts, switches packs or toggles sound effects, and plays a
random clip with cadence-driven pitch whenever a new key goes down.
"""

import time
import random
import logging
from typing import AbstractSet, Callable, Dict, List, Optional
from dataclasses import dataclass

from rich.console import Console
from rich.markup import escape

from .config_manager import Binding, DEFAULT_PITCH_START, Settings
from .keyboard_listener import normalize_key_name
from .sound_pack import SoundPack


logger = logging.getLogger(__name__)


def binding_matches(binding: Binding, held: AbstractSet[str]) -> bool:
    """
    Check whether exactly the keys of a binding are held.

    Holding extra keys never matches, so a shortcut that is a subset of the
    keys held while typing does not fire. Held names are normalized, so
    'shift_r' matches a 'shift' binding.
    """
    return len(binding) == len(held) and binding <= {normalize_key_name(key) for key in held}


@dataclass
class LoopState:
    """Mutable state of the polling loop, owned by one controller."""
    last_press_time: float
    current_pitch: float
    active: bool = True
    current_pack_index: int = 0
    previous_held_key_count: int = 0
    toggle_consumed_this_press: bool = False
    pack_switch_consumed_this_press: bool = False


class PlaybackController:
    """
    Applies sampled keyboard state to the loop state and the audio output.

    The output only needs a play(clip, speed, volume) method.
    """

    def __init__(self, settings: Settings, sound_packs: List[SoundPack], output,
                 console: Optional[Console] = None,
                 rng: Optional[random.Random] = None,
                 clock: Callable[[], float] = time.monotonic):
        """
        Initialize the controller.

        Args:
            settings: Loaded configuration
            sound_packs: Decoded packs, in the same order as settings.sound_packs
            output: Audio sink
            console: Where status lines are printed
            rng: Random source for clip selection
            clock: Monotonic time source in seconds
        """
        if not sound_packs:
            raise ValueError("At least one sound pack is required")

        self.settings = settings
        self.sound_packs = sound_packs
        self.output = output
        self.console = console or Console()
        self.rng = rng or random.Random()
        self.clock = clock

        pitch_start = settings.pitch_start
        if pitch_start is None:
            pitch_start = DEFAULT_PITCH_START

        self.state = LoopState(last_press_time=clock(), current_pitch=pitch_start)
        self.stats: Dict[str, int] = {
            'sounds_played': 0,
            'toggles': 0,
            'pack_switches': 0
        }

    @property
    def current_pack(self) -> SoundPack:
        return self.sound_packs[self.state.current_pack_index]

    def _matches(self, binding: Optional[Binding], held: AbstractSet[str]) -> bool:
        return binding is not None and binding_matches(binding, held)

    def tick(self, held: AbstractSet[str], now: Optional[float] = None) -> bool:
        """
        Process one sample of the held keys.

        Args:
            held: Keys held at this instant
            now: Current time (defaults to the controller's clock)

        Returns:
            False if the terminate shortcut was pressed, True otherwise
        """
        state = self.state
        settings = self.settings

        if self._matches(settings.terminate, held):
            return False

        if self._matches(settings.toggle, held) and not state.toggle_consumed_this_press:
            state.toggle_consumed_this_press = True
            state.active = not state.active
            self.stats['toggles'] += 1
            status = "[green]on[/green]" if state.active else "[yellow]off[/yellow]"
            self.console.print(f"Toggled keyboard sound effects {status}.")

        if not held:
            state.toggle_consumed_this_press = False
            state.pack_switch_consumed_this_press = False

        if self._matches(settings.previous_sound_pack, held) and not state.pack_switch_consumed_this_press:
            state.pack_switch_consumed_this_press = True
            self._switch_pack(-1)

        if self._matches(settings.next_sound_pack, held) and not state.pack_switch_consumed_this_press:
            state.pack_switch_consumed_this_press = True
            self._switch_pack(1)

        if not state.active:
            return True

        if len(held) > state.previous_held_key_count:
            self._on_key_press(self.clock() if now is None else now)

        state.previous_held_key_count = len(held)
        return True

    def _switch_pack(self, step: int) -> None:
        pack_count = len(self.sound_packs)
        self.state.current_pack_index = (self.state.current_pack_index + step + pack_count) % pack_count
        self.stats['pack_switches'] += 1
        logger.debug("Switched to sound pack %d of %d", self.state.current_pack_index + 1, pack_count)
        self.console.print(f'Changed sound pack to "[cyan]{escape(self.current_pack.name)}[/cyan]"')

    def _on_key_press(self, now: float) -> None:
        state = self.state
        params = self.settings.pack_parameters(state.current_pack_index)

        fast = (now - state.last_press_time) < params.fast_threshold
        # The ceiling is checked before stepping, so pitch may end one step past it.
        if fast and state.current_pitch < params.pitch_start + params.pitch_range:
            state.current_pitch += params.pitch_steps
        elif not fast:
            state.current_pitch = params.pitch_start

        state.last_press_time = now

        pack = self.current_pack
        clip = pack.clips[self.rng.randrange(len(pack))]
        self.output.play(clip, speed=state.current_pitch, volume=params.volume)
        self.stats['sounds_played'] += 1
