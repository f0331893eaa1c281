"""
Audio output for Ksfx.

A single-voice sink on an output device: starting a clip always stops the
one before it. Speed is applied by resampling, so faster playback is also
higher pitched.
"""

import logging
from typing import Optional, Union

import numpy as np

try:
    import sounddevice as sd
    SOUNDDEVICE_AVAILABLE = True
except (ImportError, OSError):
    # OSError: the PortAudio library itself is missing
    SOUNDDEVICE_AVAILABLE = False
    sd = None

from .sound_pack import AudioClip


logger = logging.getLogger(__name__)


class AudioOutputError(Exception):
    """Raised when no audio output device can be opened."""


def apply_speed(samples: np.ndarray, speed: float) -> np.ndarray:
    """
    Resample audio so it plays `speed` times faster at the same sample rate.

    Uses numpy linear interpolation.

    Args:
        samples: Audio data as numpy array (mono or frames x channels)
        speed: Speed factor (>1.0 = faster and higher, <1.0 = slower and lower)

    Returns:
        Resampled audio data as float32
    """
    if speed <= 0:
        raise ValueError(f"Playback speed must be positive, got {speed}")

    if speed == 1.0 or len(samples) == 0:
        return samples.astype(np.float32, copy=False)

    new_length = max(1, int(len(samples) / speed))
    old_indices = np.arange(len(samples))
    new_indices = np.linspace(0, len(samples) - 1, new_length)

    if samples.ndim == 1:
        return np.interp(new_indices, old_indices, samples).astype(np.float32)

    result = np.zeros((new_length, samples.shape[1]), dtype=np.float32)
    for ch in range(samples.shape[1]):
        result[:, ch] = np.interp(new_indices, old_indices, samples[:, ch])
    return result


class AudioOutput:
    """Plays one clip at a time on an output device."""

    def __init__(self, device: Optional[Union[int, str]] = None):
        """
        Resolve the output device.

        Args:
            device: sounddevice device index or name (defaults to the system default)

        Raises:
            AudioOutputError: If the audio backend or the device is unavailable
        """
        if not SOUNDDEVICE_AVAILABLE:
            raise AudioOutputError("sounddevice library (with PortAudio) is required for audio output")

        try:
            info = sd.query_devices(device, kind='output')
        except (sd.PortAudioError, ValueError) as e:
            raise AudioOutputError(f"Could not get default output device: {e}") from e

        self.device = device
        self.device_name = info['name']
        logger.debug("Using audio output device %s", self.device_name)

    def play(self, clip: AudioClip, speed: float = 1.0, volume: float = 1.0) -> None:
        """
        Interrupt any playback and start a clip.

        Args:
            clip: Decoded clip to play
            speed: Playback speed (also scales pitch)
            volume: Linear gain
        """
        sd.stop()

        data = apply_speed(clip.samples, speed) * np.float32(volume)
        sd.play(data, clip.sample_rate, device=self.device)

        logger.debug("Playing %s (speed=%.3f, volume=%.2f)", clip.name, speed, volume)

    def stop(self) -> None:
        """Stop playback."""
        sd.stop()
