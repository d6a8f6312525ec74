"""End-to-end tests for the envstore CLI against a synthetic home directory."""

import json

import pytest
from typer.testing import CliRunner

from envstore.cli import app
from envstore.config import load_config

HOME_DIR_NAME = ".envcli"


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def store_dir(tmp_path, monkeypatch):
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.setenv("ENVSTORE_HOME_DIR", HOME_DIR_NAME)
    monkeypatch.delenv("ENVSTORE_KEY", raising=False)
    monkeypatch.delenv("ENVSTORE_VERBOSE", raising=False)
    return home / HOME_DIR_NAME


def put(store_dir, name, value):
    store_dir.mkdir(parents=True, exist_ok=True)
    (store_dir / f"{name}.json").write_text(json.dumps({"envstore": 1, "plain": value}))


def listed(runner) -> list[str]:
    result = runner.invoke(app, ["--json", "list"])
    assert result.exit_code == 0, result.output
    return json.loads(result.stdout)


class TestShow:

    def test_list_empty(self, runner, store_dir):
        result = runner.invoke(app, ["list"])
        assert result.exit_code == 0
        assert "No environments." in result.output
        assert not store_dir.exists()

    def test_show_missing(self, runner, store_dir):
        result = runner.invoke(app, ["show", "prod"])
        assert result.exit_code == 1
        assert "not found" in result.output

    def test_show_create_then_read(self, runner, store_dir):
        result = runner.invoke(app, ["show", "prod", "--create"], input="USER=admin\nPORT=5432\n\n")
        assert result.exit_code == 0, result.output
        assert "does not exist yet" in result.output
        assert (store_dir / "prod.json").is_file()

        result = runner.invoke(app, ["--json", "show", "prod"])
        assert result.exit_code == 0, result.output
        assert json.loads(result.stdout) == {
            "name": "prod",
            "value": {"USER": "admin", "PORT": "5432"},
        }

    def test_create_rejects_malformed_lines(self, runner, store_dir):
        result = runner.invoke(app, ["show", "dev", "--create"], input="oops\nA=1\n\n")
        assert result.exit_code == 0, result.output
        assert "Expected KEY=VALUE" in result.output
        assert json.loads((store_dir / "dev.json").read_text())["plain"] == {"A": "1"}

    def test_aborted_capture_saves_nothing(self, runner, store_dir):
        result = runner.invoke(app, ["show", "prod", "--create"], input="")
        assert result.exit_code == 1
        assert "failed to enter environment 'prod'" in result.output
        assert not (store_dir / "prod.json").exists()

    def test_invalid_name(self, runner, store_dir):
        result = runner.invoke(app, ["show", "../escape"])
        assert result.exit_code == 1
        assert "invalid characters" in result.output


class TestEncryption:

    def test_key_from_environment(self, runner, store_dir, monkeypatch):
        monkeypatch.setenv("ENVSTORE_KEY", "correct horse")
        result = runner.invoke(app, ["show", "prod", "--create"], input="PASSWORD=hunter2\n\n")
        assert result.exit_code == 0, result.output
        assert "hunter2" not in (store_dir / "prod.json").read_text()

        result = runner.invoke(app, ["show", "prod"])
        assert result.exit_code == 0, result.output
        assert "hunter2" in result.output

        monkeypatch.delenv("ENVSTORE_KEY")
        result = runner.invoke(app, ["show", "prod"])
        assert result.exit_code == 1
        assert "no key" in result.output

    def test_init_writes_config(self, runner, store_dir, monkeypatch):
        result = runner.invoke(app, ["init", "--key-env", "MY_STORE_KEY"])
        assert result.exit_code == 0, result.output
        assert "MY_STORE_KEY" in (store_dir / "envstore.toml").read_text()

        monkeypatch.setenv("MY_STORE_KEY", "pw")
        result = runner.invoke(app, ["show", "prod", "--create"], input="A=secret-value\n\n")
        assert result.exit_code == 0, result.output
        assert "secret-value" not in (store_dir / "prod.json").read_text()
        assert listed(runner) == ["prod"]

    def test_init_keeps_settings_not_given(self, runner, store_dir):
        assert runner.invoke(app, ["init", "--prompt"]).exit_code == 0
        assert runner.invoke(app, ["init", "--key-env", "OTHER_KEY"]).exit_code == 0
        config = load_config(store_dir)
        assert config.crypto.prompt is True
        assert config.crypto.key_env == "OTHER_KEY"

        assert runner.invoke(app, ["init", "--no-prompt"]).exit_code == 0
        config = load_config(store_dir)
        assert config.crypto.prompt is False
        assert config.crypto.key_env == "OTHER_KEY"

    def test_broken_title_format_lists_bare_names(self, runner, store_dir):
        put(store_dir, "prod", {})
        (store_dir / "envstore.toml").write_text('[display]\ntitle_format = "{path.nope}"\n')
        assert listed(runner) == ["prod"]


class TestOrdering:

    def test_most_recent_first(self, runner, store_dir):
        put(store_dir, "a", {"v": "a"})
        put(store_dir, "b", {"v": "b"})
        assert listed(runner) == ["a", "b"]

        assert runner.invoke(app, ["show", "b"]).exit_code == 0
        assert listed(runner) == ["b", "a"]

        assert runner.invoke(app, ["show", "a"]).exit_code == 0
        assert listed(runner) == ["a", "b"]

    def test_pin_freezes_order(self, runner, store_dir):
        put(store_dir, "a", {})
        put(store_dir, "b", {})
        runner.invoke(app, ["show", "a"])

        result = runner.invoke(app, ["order", "pin"])
        assert result.exit_code == 0, result.output
        assert "fixed: yes" in result.output

        runner.invoke(app, ["show", "b"])
        result = runner.invoke(app, ["--json", "order", "show"])
        assert json.loads(result.stdout) == {"fixed": True, "order": ["a.json"]}
        assert listed(runner) == ["a", "b"]

        runner.invoke(app, ["order", "unpin"])
        runner.invoke(app, ["show", "b"])
        assert listed(runner) == ["b", "a"]

    def test_set_order(self, runner, store_dir):
        for name in ["a", "b", "c"]:
            put(store_dir, name, {})
        result = runner.invoke(app, ["order", "set", "c", "a"])
        assert result.exit_code == 0, result.output
        assert listed(runner) == ["c", "a", "b"]

    def test_set_order_accepts_file_names(self, runner, store_dir):
        for name in ["a", "b", "c"]:
            put(store_dir, name, {})
        result = runner.invoke(app, ["order", "set", "c.json", "b"])
        assert result.exit_code == 0, result.output
        assert listed(runner) == ["c", "b", "a"]

    def test_set_order_rejects_invalid_name(self, runner, store_dir):
        result = runner.invoke(app, ["order", "set", "a/b"])
        assert result.exit_code == 1
        assert "invalid characters" in result.output

    def test_delete_and_prune(self, runner, store_dir):
        put(store_dir, "a", {})
        put(store_dir, "b", {})
        runner.invoke(app, ["show", "a"])
        runner.invoke(app, ["show", "b"])

        result = runner.invoke(app, ["delete", "a"])
        assert result.exit_code == 0, result.output
        assert "Deleted a" in result.output
        assert listed(runner) == ["b"]
        order = json.loads((store_dir / "env-order").read_text())
        assert order["order"] == ["b.json", "a.json"]

        result = runner.invoke(app, ["order", "prune"])
        assert "Removed a.json" in result.output
        order = json.loads((store_dir / "env-order").read_text())
        assert order["order"] == ["b.json"]

        result = runner.invoke(app, ["delete", "a"])
        assert result.exit_code == 1
        assert "not found" in result.output


class TestSelect:

    def test_select_empty(self, runner, store_dir):
        result = runner.invoke(app, ["select"])
        assert result.exit_code == 1
        assert "no environments" in result.output

    def test_select_by_number(self, runner, store_dir):
        put(store_dir, "a", {"v": "from-a"})
        put(store_dir, "b", {"v": "from-b"})
        result = runner.invoke(app, ["select"], input="2\n")
        assert result.exit_code == 0, result.output
        assert "Select environment:" in result.output
        assert "2) b" in result.output
        assert "from-b" in result.output
        assert listed(runner) == ["b", "a"]

    def test_select_cancelled(self, runner, store_dir):
        put(store_dir, "a", {})
        result = runner.invoke(app, ["select"], input="")
        assert result.exit_code == 1
        assert "selection cancelled" in result.output
