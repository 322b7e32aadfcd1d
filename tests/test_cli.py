import json

import pytest

from mock_installer import persistent_environment
from mock_installer.commands.mock_installer_cmd import main
from mock_installer.persistent_environment import InMemoryPersistentEnvironment
from mock_installer.version import __version__

DESCRIPTION = {
    "components": [
        {
            "name": "rustc",
            "files": [{"path": "bin/rustc", "content": "rustc", "executable": True}],
        }
    ]
}


@pytest.fixture()
def description_file(tmp_path):
    path = tmp_path / "installer.json"
    path.write_text(json.dumps(DESCRIPTION))
    return path


@pytest.fixture()
def patched_store(monkeypatch, in_memory_environment):
    monkeypatch.setattr(
        persistent_environment,
        "default_persistent_store",
        lambda: in_memory_environment,
    )
    return in_memory_environment


def test_materialize(tmp_path, description_file, reset_logging) -> None:
    root = tmp_path / "root"
    main(["materialize", str(description_file), str(root)])

    assert (root / "components").read_text() == "rustc\n"
    assert (root / "rust-installer-version").read_text() == "3\n"
    assert (root / "rustc" / "manifest.in").read_text() == "file:bin/rustc\n"
    assert (root / "rustc" / "bin" / "rustc").read_bytes() == b"rustc"


def test_materialize_appends_unless_discarding(
    tmp_path, description_file, reset_logging
) -> None:
    root = tmp_path / "root"
    main(["materialize", str(description_file), str(root)])
    main(["materialize", str(description_file), str(root)])
    assert (root / "components").read_text() == "rustc\nrustc\n"

    main(["materialize", "--discard-existing-output", str(description_file), str(root)])
    assert (root / "components").read_text() == "rustc\n"


def test_materialize_invalid_description(tmp_path, reset_logging) -> None:
    bad = tmp_path / "bad.json"
    bad.write_text(json.dumps({"components": "rustc"}))

    with pytest.raises(SystemExit) as e_info:
        main(["materialize", str(bad), str(tmp_path / "root")])
    assert e_info.value.code == 1
    assert not (tmp_path / "root").exists()


def test_materialize_missing_description(tmp_path, reset_logging) -> None:
    with pytest.raises(SystemExit) as e_info:
        main(["materialize", str(tmp_path / "missing.json"), str(tmp_path / "root")])
    assert e_info.value.code == 1


def test_save_and_restore(tmp_path, patched_store, reset_logging) -> None:
    saved = tmp_path / "saved.json"
    original = patched_store.get_value("PATH")

    main(["save-persistent-value", str(saved)])
    assert json.loads(saved.read_text()) == {"name": "PATH", "value": original}

    patched_store.delete_value("PATH")
    main(["restore-persistent-value", str(saved)])

    assert patched_store.get_value("PATH") == original


def test_save_and_restore_absent_value(tmp_path, patched_store, reset_logging) -> None:
    saved = tmp_path / "saved.json"

    main(["save-persistent-value", "--name", "CARGO_HOME", str(saved)])
    assert json.loads(saved.read_text()) == {"name": "CARGO_HOME", "value": None}

    patched_store.set_expandable_value("CARGO_HOME", "set by a test")
    main(["restore-persistent-value", str(saved)])

    assert patched_store.get_value("CARGO_HOME") is None


def test_restore_rejects_foreign_files(tmp_path, patched_store, reset_logging) -> None:
    saved = tmp_path / "saved.json"
    saved.write_text(json.dumps(["not", "a", "saved", "value"]))

    with pytest.raises(SystemExit) as e_info:
        main(["restore-persistent-value", str(saved)])
    assert e_info.value.code == 1


def test_version(capsys, reset_logging) -> None:
    with pytest.raises(SystemExit) as e_info:
        main(["--version"])
    assert e_info.value.code == 0
    assert capsys.readouterr().out.strip() == __version__
