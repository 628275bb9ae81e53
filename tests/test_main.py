import json
import os

import pytest

import config as cfg
import main
import renamer_core as core
from conftest import FakeClient, make_image


def test_no_arguments_prints_help_and_exits(capsys):
    with pytest.raises(SystemExit) as excinfo:
        main.main([])
    assert excinfo.value.code == 2
    assert "usage:" in capsys.readouterr().out


def test_rename_mode_requires_paths():
    with pytest.raises(SystemExit) as excinfo:
        main.main(["--prompt"])
    assert excinfo.value.code == 2


def test_rename_then_revert_through_cli(tmp_path, monkeypatch):
    photos = tmp_path / "photos"
    photos.mkdir()
    make_image(photos / "img1.jpg", exif_date="2023:06:01 09:00:00")
    client = FakeClient(response="Sunset-At-Beach.jpg")
    monkeypatch.setattr(core, "create_client", lambda host, log_callback=None: client)

    main.main([str(photos)])

    renamed = photos / "2023-06-01-Sunset-At-Beach.jpg"
    assert renamed.exists()
    with open(cfg.revert_mappings_path()) as f:
        assert json.load(f) == {str(renamed): str(photos / "img1.jpg")}

    main.main(["--revert", str(renamed)])

    assert (photos / "img1.jpg").exists()
    with open(cfg.revert_mappings_path()) as f:
        assert json.load(f) == {}


def test_cli_overrides_model(tmp_path, monkeypatch):
    make_image(tmp_path / "img1.jpg")
    client = FakeClient(response="Red-Square.jpg")
    monkeypatch.setattr(core, "create_client", lambda host, log_callback=None: client)

    main.main(["--vision-model", "bakllava", "--config", str(tmp_path / "config.json"), str(tmp_path / "img1.jpg")])

    assert client.calls[0]["model"] == "bakllava"


def test_prompt_answers(monkeypatch):
    answers = iter(["maybe", "", "n"])
    monkeypatch.setattr("builtins.input", lambda question: next(answers))
    assert main.ask_yes_no("Rename?") is True
    assert main.ask_yes_no("Rename?") is False


def test_unreachable_ollama_exits_non_zero(tmp_path, monkeypatch):
    make_image(tmp_path / "img1.jpg")
    monkeypatch.setattr(core, "create_client", lambda host, log_callback=None: None)
    with pytest.raises(SystemExit) as excinfo:
        main.main([str(tmp_path / "img1.jpg")])
    assert excinfo.value.code == 1
    assert (tmp_path / "img1.jpg").exists()


def test_unwritable_store_exits_non_zero(tmp_path, monkeypatch, capsys):
    make_image(tmp_path / "img1.jpg")
    monkeypatch.setattr(core, "create_client", lambda host, log_callback=None: FakeClient(response="Red.jpg"))
    monkeypatch.setattr(cfg, "revert_mappings_path", lambda: str(tmp_path / "missing-dir" / "revert-mappings.json"))

    with pytest.raises(SystemExit) as excinfo:
        main.main(["--config", str(tmp_path / "config.json"), str(tmp_path / "img1.jpg")])

    assert excinfo.value.code == 1
    assert "not recorded" in capsys.readouterr().out
    assert [name for name in os.listdir(tmp_path) if name.endswith("-Red.jpg")]


def test_unwritable_store_in_revert_mode_reports_revert(tmp_path, monkeypatch, capsys):
    make_image(tmp_path / "New.jpg")
    store_path = tmp_path / "missing-dir" / "revert-mappings.json"
    monkeypatch.setattr(cfg, "revert_mappings_path", lambda: str(store_path))
    monkeypatch.setattr(main.RevertStore, "load",
                        classmethod(lambda cls, path: cls(path, {str(tmp_path / "New.jpg"): str(tmp_path / "old.jpg")})))

    with pytest.raises(SystemExit) as excinfo:
        main.main(["--revert"])

    out = capsys.readouterr().out
    assert excinfo.value.code == 1
    assert "Files were reverted" in out
    assert "were renamed" not in out
    assert (tmp_path / "old.jpg").exists()
