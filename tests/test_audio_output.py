import numpy as np
import pytest

from Ksfx import audio_output
from Ksfx.audio_output import AudioOutput, AudioOutputError, apply_speed
from Ksfx.sound_pack import AudioClip


class FakeSoundDevice:
    class PortAudioError(Exception):
        pass

    def __init__(self, fail=False):
        self.fail = fail
        self.calls = []

    def query_devices(self, device=None, kind=None):
        if self.fail:
            raise self.PortAudioError("no default output device")
        return {'name': 'Fake Speakers'}

    def stop(self):
        self.calls.append(('stop',))

    def play(self, data, samplerate, device=None):
        self.calls.append(('play', data, samplerate))


@pytest.fixture
def fake_sd(monkeypatch):
    fake = FakeSoundDevice()
    monkeypatch.setattr(audio_output, 'sd', fake)
    monkeypatch.setattr(audio_output, 'SOUNDDEVICE_AVAILABLE', True)
    return fake


def test_apply_speed_changes_length():
    samples = np.linspace(-1, 1, 1000).astype(np.float32)

    assert len(apply_speed(samples, 1.0)) == 1000
    assert len(apply_speed(samples, 2.0)) == 500
    assert len(apply_speed(samples, 0.5)) == 2000


def test_apply_speed_keeps_channels_and_endpoints():
    left = np.linspace(0, 1, 100, dtype=np.float32)
    stereo = np.column_stack([left, -left])

    result = apply_speed(stereo, 1.25)

    assert result.shape == (80, 2)
    assert result.dtype == np.float32
    assert result[0, 0] == pytest.approx(0.0)
    assert result[-1, 0] == pytest.approx(1.0)
    assert result[-1, 1] == pytest.approx(-1.0)


def test_apply_speed_rejects_non_positive():
    with pytest.raises(ValueError):
        apply_speed(np.zeros(10, dtype=np.float32), 0.0)


def test_play_interrupts_then_plays_scaled_clip(fake_sd):
    output = AudioOutput()
    clip = AudioClip("click.wav", np.ones(100, dtype=np.float32), 8000)

    output.play(clip, speed=0.5, volume=0.25)

    assert output.device_name == 'Fake Speakers'
    assert [c[0] for c in fake_sd.calls] == ['stop', 'play']
    _, data, samplerate = fake_sd.calls[1]
    assert samplerate == 8000
    assert len(data) == 200
    assert np.allclose(data, 0.25)


def test_missing_device_is_fatal(monkeypatch):
    monkeypatch.setattr(audio_output, 'sd', FakeSoundDevice(fail=True))
    monkeypatch.setattr(audio_output, 'SOUNDDEVICE_AVAILABLE', True)

    with pytest.raises(AudioOutputError):
        AudioOutput()


def test_missing_backend_is_fatal(monkeypatch):
    monkeypatch.setattr(audio_output, 'SOUNDDEVICE_AVAILABLE', False)

    with pytest.raises(AudioOutputError):
        AudioOutput()
