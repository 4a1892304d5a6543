"""CLI behaviour tests."""

from __future__ import annotations

import json
from pathlib import Path
from typing import List

import pytest

from cargo_cgp import cli
from cargo_cgp.cli import _build_parser
from cargo_cgp.runner import CargoInvocationError
from tests._fixtures.diagnostics import build_finished_line, compiler_message
from tests._fixtures.scenarios import base_area, type_mismatch


class _FakeRunner:
    instances: List["_FakeRunner"] = []
    lines: List[str] = []
    status = 101
    error: BaseException | None = None

    def __init__(self, cargo: str = "cargo") -> None:
        self.cargo = cargo
        self.args: List[str] = []
        _FakeRunner.instances.append(self)

    def run(self, session, args) -> int:
        self.args = list(args)
        if _FakeRunner.error is not None:
            raise _FakeRunner.error
        for line in _FakeRunner.lines:
            session.feed(line)
        session.finish()
        return _FakeRunner.status


@pytest.fixture
def fake_runner(monkeypatch, tmp_path: Path):
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("CARGO", raising=False)
    monkeypatch.setattr(cli, "CargoRunner", _FakeRunner)
    _FakeRunner.instances = []
    _FakeRunner.lines = [compiler_message(base_area()) + "\n", build_finished_line() + "\n"]
    _FakeRunner.status = 101
    _FakeRunner.error = None
    return _FakeRunner


def test_cli_accepts_verbose_before_command() -> None:
    parser = _build_parser()
    args = parser.parse_args(["--verbose", "check"])
    assert args.verbose is True
    assert args.command == "check"


def test_cli_accepts_verbose_after_command() -> None:
    parser = _build_parser()
    args = parser.parse_args(["render", "--verbose", "cargo.jsonl"])
    assert args.verbose is True
    assert args.command == "render"
    assert args.file == "cargo.jsonl"


def test_cli_accepts_output_options() -> None:
    parser = _build_parser()
    args = parser.parse_args(["check", "--message-format", "json", "--show-original"])
    assert args.message_format == "json"
    assert args.show_original is True


def test_cli_leaves_config_values_alone_without_flags() -> None:
    parser = _build_parser()
    args = parser.parse_args(["render"])
    assert args.message_format is None
    assert args.show_original is None
    assert args.file is None


def test_check_exits_with_cargo_status(fake_runner, capsys) -> None:
    with pytest.raises(SystemExit) as excinfo:
        cli.main(["check", "--", "--all-targets"])

    assert excinfo.value.code == 101
    runner = fake_runner.instances[0]
    assert runner.cargo == "cargo"
    assert runner.args == ["--all-targets"]
    assert "missing field `height` in `Rectangle`" in capsys.readouterr().out


def test_check_accepts_cargo_subcommand_token(fake_runner) -> None:
    with pytest.raises(SystemExit) as excinfo:
        cli.main(["cgp", "check"])

    assert excinfo.value.code == 101
    assert fake_runner.instances[0].args == []


def test_check_prepends_configured_arguments(fake_runner, tmp_path: Path) -> None:
    (tmp_path / ".cargo-cgp.yml").write_text(
        "cargo: cargo-nightly\nextra_args:\n  - --workspace\n", encoding="utf-8"
    )

    with pytest.raises(SystemExit):
        cli.main(["check", "--", "--all-targets"])

    runner = fake_runner.instances[0]
    assert runner.cargo == "cargo-nightly"
    assert runner.args == ["--workspace", "--all-targets"]


def test_check_json_output_from_flag(fake_runner, capsys) -> None:
    with pytest.raises(SystemExit):
        cli.main(["check", "--message-format", "json"])

    lines = capsys.readouterr().out.splitlines()
    assert json.loads(lines[0]) == {"reason": "build-finished", "success": False}
    assert json.loads(lines[1])["cgp"]["summary"] == "missing field `height` in `Rectangle`"


def test_check_reports_spawn_failure(fake_runner, capsys) -> None:
    fake_runner.error = CargoInvocationError("failed to run cargo: not found")

    with pytest.raises(SystemExit) as excinfo:
        cli.main(["check"])

    assert excinfo.value.code == 1
    assert "failed to run cargo" in capsys.readouterr().err


def test_check_interrupt_exits_130(fake_runner) -> None:
    fake_runner.error = KeyboardInterrupt()

    with pytest.raises(SystemExit) as excinfo:
        cli.main(["check"])

    assert excinfo.value.code == 130


def test_invalid_config_exits_2(fake_runner, tmp_path: Path, capsys) -> None:
    config_file = tmp_path / "custom.yml"
    config_file.write_text("message_format: short\n", encoding="utf-8")

    with pytest.raises(SystemExit) as excinfo:
        cli.main(["check", "--config", str(config_file)])

    assert excinfo.value.code == 2
    assert "cargo-cgp:" in capsys.readouterr().err
    assert fake_runner.instances == []


def test_render_rewrites_saved_stream(tmp_path: Path, monkeypatch, capsys) -> None:
    monkeypatch.chdir(tmp_path)
    saved = tmp_path / "cargo.jsonl"
    saved.write_text(
        compiler_message(type_mismatch()) + "\n" + compiler_message(base_area()) + "\n",
        encoding="utf-8",
    )

    cli.main(["render", str(saved), "--show-original"])

    output = capsys.readouterr().out
    assert output.startswith(type_mismatch()["rendered"])
    assert "error[E0277]: missing field `height` in `Rectangle`" in output
    assert "original compiler output:" in output


def test_log_file_receives_debug_records(tmp_path: Path, monkeypatch, capsys) -> None:
    monkeypatch.chdir(tmp_path)
    saved = tmp_path / "cargo.jsonl"
    saved.write_text(compiler_message(base_area()) + "\n", encoding="utf-8")
    log_file = tmp_path / "cargo-cgp.log"

    cli.main(["--log-file", str(log_file), "render", str(saved)])

    assert "missing field `height`" in capsys.readouterr().out
    assert "Collected CGP diagnostic #0" in log_file.read_text(encoding="utf-8")
