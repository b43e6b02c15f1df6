"""Tests for yarndeps CLI entrypoints."""

from __future__ import annotations

import io
import json
import sys
from pathlib import Path
from types import SimpleNamespace

import pytest
from rich.console import Console

import yarndeps.main as main
from yarndeps.cli import resolve as resolve_module
from yarndeps.cli import tree as tree_module
from yarndeps.parsers.yarn.manager import Yarn
from yarndeps.utils.process import ProcessResult

LISTING = [
    {"name": "lodash@4.0.0", "children": [{"name": "isobject@1.0.0", "children": []}], "color": "bold"},
    {"name": "app-utils@2.0.0", "children": [{"name": "helper@1.0.0", "children": [{"name": "lodash"}]}], "color": "bold"},
    {"name": "helper@1.0.0", "children": [{"name": "lodash"}]},
]


def _console() -> Console:
    return Console(file=io.StringIO(), width=200, color_system=None)


def _tree_args(listing: Path, **overrides) -> SimpleNamespace:
    values = dict(listing=str(listing), config=None, declared_only=False, json=False)
    values.update(overrides)
    return SimpleNamespace(**values)


def test_main_dispatches_tree_command(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    """Verify that `main` parses args and dispatches tree_command."""

    monkeypatch.setattr(main, "setup_logging", lambda *a, **k: None)

    captured: dict[str, object] = {}

    def fake_tree_command(args) -> int:
        captured["args"] = args
        return 0

    monkeypatch.setattr(main, "tree_command", fake_tree_command)
    monkeypatch.setattr(sys, "argv", ["yarndeps", "tree", str(tmp_path / "list.json"), "--json"])

    exit_code = main.main()

    assert exit_code == 0
    parsed = captured["args"]
    assert parsed.listing == str(tmp_path / "list.json")
    assert parsed.json is True
    assert parsed.declared_only is False


def test_main_requires_command(
    monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    """Ensure missing subcommands make the CLI print help and fail."""

    monkeypatch.setattr(main, "setup_logging", lambda *a, **k: None)
    monkeypatch.setattr(sys, "argv", ["yarndeps"])

    exit_code = main.main()

    assert exit_code == 1
    assert "Yarndeps" in capsys.readouterr().out


def test_tree_command_prints_reconstructed_json(tmp_path: Path) -> None:
    """Stubs in the saved listing are expanded in the printed tree."""

    listing = tmp_path / "list.json"
    listing.write_text(json.dumps(LISTING), encoding="utf-8")
    console = _console()

    exit_code = tree_module.tree_command(_tree_args(listing, json=True, declared_only=True), console)

    assert exit_code == 0
    data = json.loads(console.file.getvalue())
    assert [entry["id"] for entry in data] == ["lodash@4.0.0", "app-utils@2.0.0"]
    nested_lodash = data[1]["children"][0]["children"][0]
    assert nested_lodash == {
        "id": "lodash@4.0.0",
        "children": [{"id": "isobject@1.0.0", "children": []}],
    }


def test_tree_command_renders_tree(tmp_path: Path) -> None:
    listing = tmp_path / "list.json"
    listing.write_text(json.dumps(LISTING), encoding="utf-8")
    console = _console()

    assert tree_module.tree_command(_tree_args(listing), console) == 0

    output = console.file.getvalue()
    assert "list.json" in output
    assert "isobject@1.0.0" in output
    assert "helper@1.0.0" in output


def test_tree_command_exit_codes(tmp_path: Path) -> None:
    """Unreadable input is a usage error, an unusable listing a failure."""

    malformed = tmp_path / "bad.json"
    malformed.write_text("not json", encoding="utf-8")

    assert tree_module.tree_command(_tree_args(tmp_path / "missing.json"), _console()) == 1
    assert tree_module.tree_command(_tree_args(malformed), _console()) == 2
    assert tree_module.tree_command(_tree_args(malformed, config="[1]"), _console()) == 1


class FakeYarnCommand:
    def run(self, working_dir, *args, check=True) -> ProcessResult:
        if args[0] == "list":
            if working_dir.name == "broken":
                return ProcessResult("garbage", "", 0)
            listing = {"type": "tree", "data": {"trees": [{"name": "a@1.0.0", "children": [], "color": "bold"}]}}
            return ProcessResult(json.dumps(listing), "", 0)
        return ProcessResult("", "", 0)

    def version(self) -> str:
        return "1.22.19"


def _write_project(directory: Path, name: str) -> None:
    (directory / "node_modules" / "a").mkdir(parents=True)
    (directory / "package.json").write_text(json.dumps({"name": name, "version": "1.0.0"}), encoding="utf-8")
    (directory / "node_modules" / "a" / "package.json").write_text(
        json.dumps({"name": "a", "version": "1.0.0"}), encoding="utf-8"
    )


def _resolve_args(project: Path, **overrides) -> SimpleNamespace:
    values = dict(
        project=str(project),
        output=None,
        config=None,
        no_install=True,
        no_cache=True,
        cache_dir=None,
        recursive=False,
    )
    values.update(overrides)
    return SimpleNamespace(**values)


@pytest.fixture
def created(monkeypatch: pytest.MonkeyPatch) -> dict:
    """Replace the Yarn manager with one driving a fake Yarn executable."""

    created: dict = {}

    def fake_yarn(config, cache=None):
        created["config"] = config
        created["cache"] = cache
        return Yarn(config, command=FakeYarnCommand(), cache=cache)

    monkeypatch.setattr(resolve_module, "Yarn", fake_yarn)
    return created


def test_resolve_command_writes_graph(created: dict, tmp_path: Path) -> None:
    """The resolve CLI runs Yarn in the project and exports the graph."""

    project = tmp_path / "app"
    _write_project(project, "app")
    output = tmp_path / "out" / "graph.json"
    args = _resolve_args(project, output=str(output), no_cache=False, cache_dir=str(tmp_path / "cache"))

    exit_code = resolve_module.resolve_command(args, _console())

    assert exit_code == 0
    assert created["config"].install is False
    assert created["cache"].path == tmp_path / "cache" / "cache.sqlite3"
    data = json.loads(output.read_text(encoding="utf-8"))
    assert data["project"] == "Yarn::app:1.0.0"
    assert data["projects"] == ["Yarn::app:1.0.0"]
    assert data["scopes"]["Yarn::app:1.0.0:dependencies"] == ["NPM::a:1.0.0"]


def test_resolve_command_recursive_resolves_nested_projects(created: dict, tmp_path: Path) -> None:
    """Nested projects outside node_modules end up in one graph."""

    _write_project(tmp_path / "mono", "mono")
    _write_project(tmp_path / "mono" / "packages" / "lib", "lib")
    output = tmp_path / "graph.json"

    exit_code = resolve_module.resolve_command(
        _resolve_args(tmp_path / "mono", output=str(output), recursive=True), _console()
    )

    assert exit_code == 0
    data = json.loads(output.read_text(encoding="utf-8"))
    assert data["projects"] == ["Yarn::mono:1.0.0", "Yarn::lib:1.0.0"]
    assert "project" not in data
    assert data["scopes"]["Yarn::lib:1.0.0:dependencies"] == ["NPM::a:1.0.0"]


def test_resolve_command_recursive_reports_failed_project(created: dict, tmp_path: Path) -> None:
    """A project with an unusable listing fails alone and sets the exit code."""

    _write_project(tmp_path / "mono", "mono")
    _write_project(tmp_path / "mono" / "packages" / "broken", "broken")
    output = tmp_path / "graph.json"

    exit_code = resolve_module.resolve_command(
        _resolve_args(tmp_path / "mono", output=str(output), recursive=True), _console()
    )

    assert exit_code == 2
    data = json.loads(output.read_text(encoding="utf-8"))
    assert data["projects"] == ["Yarn::mono:1.0.0"]


def test_resolve_command_without_manifest(tmp_path: Path) -> None:
    assert resolve_module.resolve_command(_resolve_args(tmp_path), _console()) == 1
    assert resolve_module.resolve_command(_resolve_args(tmp_path, recursive=True), _console()) == 1
