from __future__ import annotations

from pathlib import Path

import pytest
from conftest import FakeRemote, FakeStorageClient

from starli import cli, specs
from starli.config import Config
from starli.specs import SpecsSynchronizer


@pytest.fixture()
def cache_dir(isolated_home: Path, tmp_path: Path, monkeypatch: pytest.MonkeyPatch, remote: FakeRemote) -> Path:
    cache = tmp_path / "cache"
    monkeypatch.setenv("STARLI_CACHE_DIR", str(cache))
    monkeypatch.setattr(specs, "default_client_factory", lambda _cfg: FakeStorageClient(remote))
    return cache


def test_list_installs_cache_on_first_run(cache_dir: Path, remote: FakeRemote, capsys: pytest.CaptureFixture[str]) -> None:
    assert cli.main(["list"]) == 0

    out = capsys.readouterr().out
    assert out.splitlines() == ["CLI", "Web"]
    assert (cache_dir / "specs.etag").read_text(encoding="utf-8") == "abc123"
    assert remote.download_calls == 1


def test_second_run_refreshes_in_background(cache_dir: Path, remote: FakeRemote, monkeypatch: pytest.MonkeyPatch) -> None:
    assert cli.main(["list"]) == 0

    started: list[SpecsSynchronizer] = []
    monkeypatch.setattr(SpecsSynchronizer, "start_background_refresh", lambda self: started.append(self))

    assert cli.main(["list"]) == 0
    assert len(started) == 1
    assert remote.download_calls == 1


def test_install_failure_aborts_command(cache_dir: Path, remote: FakeRemote, capsys: pytest.CaptureFixture[str]) -> None:
    remote.download_error = True

    assert cli.main(["list"]) == 1

    captured = capsys.readouterr()
    assert captured.out == ""
    assert "Error:" in captured.err


def test_generate_with_defaults(cache_dir: Path, tmp_path: Path) -> None:
    out = tmp_path / "projects"

    code = cli.main(["generate", "WEB", "--name", "demo", "--output", str(out), "--defaults"])

    assert code == 0
    project = out / "demo"
    assert (project / "src" / "demo.py").read_text(encoding="utf-8") == 'AUTHOR = "Ada"\n'
    assert (project / "README.md").read_text(encoding="utf-8") == "# demo\n"
    assert (project / "static" / "logo.bin").is_file()


def test_generate_refuses_non_empty_dir(cache_dir: Path, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    project = tmp_path / "projects" / "demo"
    project.mkdir(parents=True)
    (project / "keep.txt").write_text("x", encoding="utf-8")

    code = cli.main(["generate", "web", "--name", "demo", "--output", str(tmp_path / "projects"), "--defaults"])

    assert code == 1
    assert "not empty" in capsys.readouterr().err
    assert not (project / "README.md").exists()


def test_generate_prompts_for_missing_choices(cache_dir: Path, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(cli, "choose_template", lambda names, console: "CLI")
    monkeypatch.setattr(cli, "ask_project_name", lambda default, console: default)

    assert cli.main(["generate", "--output", str(tmp_path / "p"), "--defaults"]) == 0
    assert (tmp_path / "p" / "my-cli-app").is_dir()


def test_generate_unknown_template(cache_dir: Path, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    assert cli.main(["generate", "rails", "--name", "x", "--output", str(tmp_path), "--defaults"]) == 1
    assert "Template not found" in capsys.readouterr().err


def test_update_installs_then_refreshes(cache_dir: Path, remote: FakeRemote, capsys: pytest.CaptureFixture[str]) -> None:
    assert cli.main(["update"]) == 0
    assert remote.download_calls == 1

    remote.etag = "def456"
    assert cli.main(["update"]) == 0

    assert (cache_dir / "specs.etag").read_text(encoding="utf-8") == "def456"
    assert "Specs updated" in capsys.readouterr().err


def test_delete_cache(cache_dir: Path) -> None:
    assert cli.main(["update"]) == 0
    assert cli.main(["delete-cache"]) == 0

    assert not (cache_dir / "templates").exists()
    assert not (cache_dir / "specs.etag").exists()
    assert SpecsSynchronizer(Config(cache_dir=cache_dir)).exists() is False


def test_missing_config_file_is_reported(cache_dir: Path, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    assert cli.main(["--config", str(tmp_path / "nope.yaml"), "list"]) == 1
    assert "Config file does not exist" in capsys.readouterr().err


def test_prepare_specs_installs_when_missing(sync: SpecsSynchronizer, remote: FakeRemote) -> None:
    cli.prepare_specs(sync)
    assert sync.exists() is True
    assert remote.download_calls == 1


def test_unreadable_cache_dir_is_reported(
    isolated_home: Path, tmp_path: Path, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    blocker = tmp_path / "blocker"
    blocker.write_text("not a directory", encoding="utf-8")
    monkeypatch.setenv("STARLI_CACHE_DIR", str(blocker / "cache"))

    assert cli.main(["list"]) == 1
    err = capsys.readouterr().err
    assert "Error:" in err
    assert "Failed to inspect" in err
