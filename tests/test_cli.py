"""Tests for the command-line interface."""

import json

import pytest
from click.testing import CliRunner

from bkup.cli import cli, setup_logging


@pytest.fixture
def invoke(context, clock):
    runner = CliRunner()

    def _invoke(*args):
        return runner.invoke(cli, list(args), obj={'context': context, 'clock': clock})

    return _invoke


def test_no_command_backs_up_cwd(invoke, home):
    result = invoke()

    assert result.exit_code == 0, result.output
    assert result.output.strip().endswith(str(home / ".bkup" / "x_backup" / "x_0"))
    assert (home / ".bkup" / "x_backup" / "x_0" / "a.txt").exists()


def test_list_empty(invoke):
    result = invoke("list")

    assert result.exit_code == 0
    assert "No backups yet" in result.output


def test_list_marks_newest(invoke):
    invoke()
    invoke()

    result = invoke("list")

    assert result.exit_code == 0
    lines = result.output.strip().splitlines()
    assert len(lines) == 2
    assert lines[0].endswith("x_0") and not lines[0].startswith("*")
    assert lines[1].startswith("*") and lines[1].endswith("x_1")
    assert "meta" in lines[1]


def test_list_with_size(invoke):
    invoke()

    result = invoke("list", "--size")

    assert result.exit_code == 0
    assert "B" in result.output


def test_full_hard_cap_reports_error(invoke, home):
    invoke("config", "--max-versions", "1")
    invoke()

    result = invoke()

    assert result.exit_code == 1
    assert "bkup error:" in result.output
    assert "--queue" in result.output


def test_queue_flag_overwrites_oldest(invoke, home):
    invoke("config", "--max-versions", "1")
    invoke()

    result = invoke("--queue")

    assert result.exit_code == 0, result.output
    assert "Overwrote oldest backup (slot 0" in result.output
    assert sorted(p.name for p in (home / ".bkup" / "x_backup").iterdir()) == ["x_0"]


def test_go_print_and_revert_print(invoke, project_dir, home):
    go = invoke("go", "--print")
    assert go.exit_code == 0, go.output
    assert go.output.strip().splitlines()[-1] == str(home / ".bkup" / "x_backup" / "x_0")

    revert = invoke("revert", "--print")
    assert revert.exit_code == 0
    assert revert.output.strip() == str(project_dir)


def test_go_reuses_existing_backup(invoke, home):
    invoke()

    result = invoke("go", "--print")

    assert result.exit_code == 0
    assert "Created backup" not in result.output
    assert sorted(p.name for p in (home / ".bkup" / "x_backup").iterdir()) == ["x_0"]


def test_revert_without_go_fails(invoke):
    result = invoke("revert", "--print")

    assert result.exit_code == 1
    assert "run `bkup go` first" in result.output


def test_pull_restores_and_reports_safety_slot(invoke, project_dir):
    invoke()
    (project_dir / "a.txt").write_text("edited\n")

    result = invoke("pull", "0")

    assert result.exit_code == 0, result.output
    assert "Restored slot 0" in result.output
    assert "saved to slot 1" in result.output
    assert (project_dir / "a.txt").read_text() == "alpha\n"


def test_pull_unknown_slot(invoke):
    result = invoke("pull", "4")

    assert result.exit_code == 1
    assert "Backup slot 4 not found" in result.output


def test_pull_rejects_negative_slot(invoke):
    result = invoke("pull", "-1")

    assert result.exit_code == 2


def test_clean(invoke, home):
    invoke("go", "--print")

    result = invoke("clean")

    assert result.exit_code == 0
    assert "Cleaned 1 item(s). Kept" in result.output
    assert [p.name for p in (home / ".bkup").iterdir()] == ["config.json"]


def test_clean_project_without_config(invoke):
    invoke()

    result = invoke("clean", "--project")

    assert result.exit_code == 0
    assert "Cleaned 1 item(s). (No config.json present to keep.)" in result.output


def test_config_show_and_set(invoke, home):
    result = invoke("config", "--max-versions", "0")

    assert result.exit_code == 0
    assert "max_versions: 0 (unbounded)" in result.output
    assert "prev_path: (not set)" in result.output
    assert json.loads((home / ".bkup" / "config.json").read_text())["max_versions"] == 0


def test_config_edit_revalidates(invoke, home, monkeypatch):
    def fake_edit(filename=None, editor=None, **kwargs):
        with open(filename, "w") as f:
            f.write('{"max_versions": "lots"}')

    monkeypatch.setattr("click.edit", fake_edit)

    result = invoke("config", "--edit")

    assert result.exit_code == 1
    assert "Invalid config file" in result.output


def test_corrupt_config_is_reported(invoke, home):
    (home / ".bkup").mkdir()
    (home / ".bkup" / "config.json").write_text("not json")

    result = invoke("list")

    assert result.exit_code == 1
    assert "bkup error: Invalid config file" in result.output


def test_setup_logging_rejects_unknown_level():
    with pytest.raises(ValueError):
        setup_logging("LOUD")


def test_config_edit_can_repair_corrupt_config(invoke, home, monkeypatch):
    (home / ".bkup").mkdir()
    (home / ".bkup" / "config.json").write_text("{broken")

    def fake_edit(filename=None, editor=None, **kwargs):
        with open(filename, "w") as f:
            f.write('{"max_versions": 4}')

    monkeypatch.setattr("click.edit", fake_edit)

    result = invoke("config", "--edit")

    assert result.exit_code == 0, result.output
    assert "max_versions: 4" in result.output


def test_config_edit_creates_missing_file(invoke, home, monkeypatch):
    seen = {}

    def fake_edit(filename=None, editor=None, **kwargs):
        with open(filename) as f:
            seen["content"] = json.load(f)

    monkeypatch.setattr("click.edit", fake_edit)

    result = invoke("config", "--edit")

    assert result.exit_code == 0, result.output
    assert seen["content"] == {"max_versions": 10, "prev_path": ""}
