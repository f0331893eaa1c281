import io
import json
from pathlib import Path
from types import SimpleNamespace

from rich.console import Console

from Ksfx import config_tool
from Ksfx.config_tool import KsfxConfig


def answers(*values):
    pending = list(values)
    return lambda *args, **kwargs: SimpleNamespace(ask=lambda: pending.pop(0))


def make_tool(config_path: Path):
    tool = KsfxConfig(str(config_path))
    stream = io.StringIO()
    tool.console = Console(file=stream, width=200)
    assert tool.init_config()
    return tool, stream


def test_view_configuration_lists_packs_and_conflicts(tmp_path: Path) -> None:
    path = tmp_path / "ksfx.json"
    path.write_text(json.dumps({
        'sound_packs': [str(tmp_path)],
        'toggle': ['F3'],
        'terminate': ['F3'],
    }))
    tool, stream = make_tool(path)

    tool.view_configuration()

    output = stream.getvalue()
    assert str(tmp_path) in output
    assert "Toggle sound effects" in output
    assert "Shortcut conflict 'F3'" in output


def test_save_and_exit_writes_new_config(tmp_path: Path, monkeypatch) -> None:
    path = tmp_path / "ksfx.json"
    tool, _ = make_tool(path)
    assert not path.exists()

    monkeypatch.setattr(config_tool.questionary, 'select', answers("Save and exit"))
    tool.main_menu()

    assert json.loads(path.read_text())['sound_packs'] == ['assets']


def test_remove_sound_pack_from_menu(tmp_path: Path, monkeypatch) -> None:
    path = tmp_path / "ksfx.json"
    path.write_text(json.dumps({'sound_packs': ['a', 'b']}))
    tool, _ = make_tool(path)

    monkeypatch.setattr(config_tool.questionary, 'select',
                        answers("Remove sound pack", "a", "Exit without saving"))
    tool.main_menu()

    assert tool.config_manager.get_sound_pack_paths() == ['b']
    assert json.loads(path.read_text())['sound_packs'] == ['a', 'b']


def test_invalid_config_fails_init(tmp_path: Path) -> None:
    path = tmp_path / "ksfx.json"
    path.write_text("{")
    tool = KsfxConfig(str(path))
    tool.console = Console(file=io.StringIO())

    assert not tool.init_config()
