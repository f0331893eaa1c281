import json
from pathlib import Path

import pytest
import yaml

from Ksfx.config_manager import (
    AdvancedSoundPack,
    BasicSoundPack,
    ConfigError,
    ConfigManager,
    PackParameters,
    display_name,
    parse_settings,
)


EXPECTED_DEFAULT = {
    'sound_packs': ['assets'],
    'previous_sound_pack': ['F4'],
    'next_sound_pack': ['F5'],
    'terminate': ['F2'],
    'toggle': ['F3'],
    'volume': 1.0,
    'pitch_start': 0.5,
    'pitch_range': 0.5,
    'pitch_steps': 0.005,
    'fast_threshold': 1.0,
}


def write_json(path: Path, data) -> Path:
    path.write_text(json.dumps(data))
    return path


def test_missing_config_writes_and_uses_defaults(tmp_path: Path) -> None:
    path = tmp_path / "ksfx.json"

    manager = ConfigManager(str(path))

    assert manager.created_default
    assert json.loads(path.read_text()) == EXPECTED_DEFAULT

    settings = manager.get_settings()
    assert settings.sound_packs == (BasicSoundPack('assets'),)
    assert settings.previous_sound_pack == frozenset({'f4'})
    assert settings.next_sound_pack == frozenset({'f5'})
    assert settings.terminate == frozenset({'f2'})
    assert settings.toggle == frozenset({'f3'})
    assert settings.volume == 1.0
    assert settings.pitch_start == 0.5
    assert settings.pitch_range == 0.5
    assert settings.pitch_steps == 0.005
    assert settings.fast_threshold == 1.0


def test_missing_config_without_bootstrap_is_not_written(tmp_path: Path) -> None:
    path = tmp_path / "ksfx.json"

    manager = ConfigManager(str(path), bootstrap=False)

    assert not path.exists()
    assert manager.get_settings().sound_packs == (BasicSoundPack('assets'),)


def test_unparsable_config_names_path(tmp_path: Path) -> None:
    path = tmp_path / "broken.json"
    path.write_text("{ not json")

    with pytest.raises(ConfigError) as excinfo:
        ConfigManager(str(path))

    assert str(path) in str(excinfo.value)


@pytest.mark.parametrize("data, fragment", [
    ({}, "sound_packs"),
    ({'sound_packs': 'assets'}, "sound_packs"),
    ({'sound_packs': []}, "at least one"),
    ({'sound_packs': [3]}, "sound_packs[0]"),
    ({'sound_packs': [{'volume': 1.0}]}, "sound_packs[0].name"),
    ({'sound_packs': ['a'], 'volume': "loud"}, "volume"),
    ({'sound_packs': ['a'], 'pitch_steps': True}, "pitch_steps"),
    ({'sound_packs': ['a'], 'toggle': 'F3'}, "toggle"),
    ({'sound_packs': ['a'], 'poll_interval': -1}, "poll_interval"),
])
def test_malformed_config_is_rejected(tmp_path: Path, data, fragment) -> None:
    path = write_json(tmp_path / "ksfx.json", data)

    with pytest.raises(ConfigError) as excinfo:
        ConfigManager(str(path)).get_settings()

    assert fragment in str(excinfo.value)


def test_pack_shapes_and_parameter_resolution() -> None:
    settings = parse_settings({
        'sound_packs': [
            'packs/plain',
            {'name': 'packs/custom', 'volume': 0.3, 'pitch_steps': 0.01},
        ],
        'volume': 0.8,
        'fast_threshold': 0.25,
        'unknown_field': 'ignored',
    })

    plain, custom = settings.sound_packs
    assert plain == BasicSoundPack('packs/plain')
    assert isinstance(custom, AdvancedSoundPack)
    assert custom.path == 'packs/custom'
    assert custom.name == 'custom'

    assert settings.pack_parameters(0) == PackParameters(
        volume=0.8, pitch_start=0.5, pitch_range=0.5, pitch_steps=0.005, fast_threshold=0.25
    )
    assert settings.pack_parameters(1) == PackParameters(
        volume=0.3, pitch_start=0.5, pitch_range=0.5, pitch_steps=0.01, fast_threshold=0.25
    )


@pytest.mark.parametrize("path, expected", [
    ("assets", "assets"),
    ("sounds/typewriter", "typewriter"),
    ("C:\\sounds\\clicky", "clicky"),
    ("mixed/dir\\name", "name"),
    ("trailing/", ""),
])
def test_display_name(path, expected) -> None:
    assert display_name(path) == expected


def test_bindings_are_normalized() -> None:
    settings = parse_settings({
        'sound_packs': ['a'],
        'toggle': ['LControl', 'Key1'],
        'terminate': [],
    })

    assert settings.toggle == frozenset({'ctrl', '1'})
    assert settings.terminate is None
    assert settings.next_sound_pack is None


def test_poll_interval_default_and_override() -> None:
    assert parse_settings({'sound_packs': ['a']}).poll_interval == 0.001
    assert parse_settings({'sound_packs': ['a'], 'poll_interval': 0}).poll_interval == 0.0


def test_yaml_config_round_trip(tmp_path: Path) -> None:
    path = tmp_path / "ksfx.yaml"
    path.write_text(yaml.safe_dump({'sound_packs': ['packs/a'], 'toggle': ['F9']}))

    manager = ConfigManager(str(path))
    manager.add_sound_pack('packs/b', volume=0.5)
    assert manager.save_config()

    reloaded = ConfigManager(str(path)).get_settings()
    assert reloaded.sound_packs == (
        BasicSoundPack('packs/a'),
        AdvancedSoundPack('packs/b', volume=0.5),
    )
    assert reloaded.toggle == frozenset({'f9'})


def test_sound_pack_management(tmp_path: Path) -> None:
    manager = ConfigManager(str(tmp_path / "ksfx.json"))

    assert manager.add_sound_pack('packs/new')
    assert not manager.add_sound_pack('packs/new')
    assert manager.get_sound_pack_paths() == ['assets', 'packs/new']

    assert manager.remove_sound_pack('assets')
    assert not manager.remove_sound_pack('assets')
    assert manager.get_sound_pack_paths() == ['packs/new']

    with pytest.raises(ValueError):
        manager.add_sound_pack('packs/other', loudness=2.0)


def test_binding_management_and_conflicts(tmp_path: Path) -> None:
    manager = ConfigManager(str(tmp_path / "ksfx.json"))

    manager.set_binding('toggle', ['N', 'ctrl_l'])
    assert manager.get_binding('toggle') == ['ctrl', 'n']

    manager.set_binding('terminate', ['F4'])
    assert manager.get_conflicting_bindings() == {
        ('f4',): ['previous_sound_pack', 'terminate']
    }

    assert manager.clear_binding('terminate')
    assert not manager.clear_binding('terminate')
    assert manager.get_conflicting_bindings() == {}

    with pytest.raises(ValueError):
        manager.set_binding('explode', ['F1'])
    with pytest.raises(ValueError):
        manager.set_binding('toggle', [])
