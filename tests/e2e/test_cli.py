"""End-to-end CLI coverage for the commands exposed by lib_compiled_config.

These tests drive ``compile`` over real files on disk so the merge order,
expansion, secret handling and documentation output match what the library
produces for the same inputs.
"""

from __future__ import annotations

import json
from pathlib import Path

import lib_cli_exit_tools
import yaml
from click.testing import CliRunner

from lib_compiled_config import cli
from tests.support import write_tree

LAYERS = {
    "conf.d/10-base.yaml": "service:\n  port: 80\n  host: localhost\n",
    "conf.d/2-local.json": '{"service": {"host": "db"}}',
    "conf.d/nested/30-deep.yaml": "service:\n  port: 8080\n",
    "conf.d/README.txt": "ignored",
}


def _runner() -> CliRunner:
    """Return a fresh CLI runner so each test starts from a clean state."""

    return CliRunner()


def test_cli_compile_merges_a_directory(tmp_path: Path) -> None:
    root = write_tree(tmp_path, LAYERS)
    result = _runner().invoke(cli.cli, ["compile", str(root / "conf.d")])

    assert result.exit_code == 0, result.output
    # 2-local sorts before 10-base naturally, so the base host wins
    assert yaml.safe_load(result.output) == {"service": {"port": 80, "host": "localhost"}}


def test_cli_compile_lexical_and_recursive(tmp_path: Path) -> None:
    root = write_tree(tmp_path, LAYERS)
    result = _runner().invoke(cli.cli, ["compile", "--lexical", "--recurse", "--format", "json", str(root / "conf.d")])

    assert result.exit_code == 0, result.output
    assert json.loads(result.output) == {"service": {"port": 8080, "host": "db"}}


def test_cli_compile_later_files_override(tmp_path: Path) -> None:
    root = write_tree(tmp_path, {"a.yaml": "x: 1\ny: 1\n", "b.json": '{"y": 2}'})
    result = _runner().invoke(cli.cli, ["compile", "--format", "json", str(root / "a.yaml"), str(root / "b.json")])

    assert result.exit_code == 0, result.output
    assert json.loads(result.output) == {"x": 1, "y": 2}


def test_cli_compile_prints_a_single_key(tmp_path: Path) -> None:
    root = write_tree(tmp_path, LAYERS)
    result = _runner().invoke(cli.cli, ["compile", "--key", "service.host", "--format", "json", str(root / "conf.d")])

    assert result.exit_code == 0, result.output
    assert json.loads(result.output) == "localhost"


def test_cli_compile_redacts_secrets_unless_asked(tmp_path: Path) -> None:
    root = write_tree(tmp_path, {"app.yaml": "password((secret)): hunter2\n"})
    redacted = _runner().invoke(cli.cli, ["compile", str(root / "app.yaml")])
    plain = _runner().invoke(cli.cli, ["compile", "--no-redact", str(root / "app.yaml")])

    assert yaml.safe_load(redacted.output) == {"password": "REDACTED"}
    assert yaml.safe_load(plain.output) == {"password": "hunter2"}


def test_cli_compile_expands_environment(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.setenv("LIB_COMPILED_CONFIG_TEST_HOST", "db.internal")
    root = write_tree(tmp_path, {"app.yaml": "host: ${LIB_COMPILED_CONFIG_TEST_HOST}\n"})
    result = _runner().invoke(cli.cli, ["compile", "--expand-env", str(root / "app.yaml")])

    assert result.exit_code == 0, result.output
    assert yaml.safe_load(result.output) == {"host": "db.internal"}


def test_cli_compile_with_origins(tmp_path: Path) -> None:
    root = write_tree(tmp_path, {"app.yaml": "host: db\n"})
    result = _runner().invoke(cli.cli, ["compile", "--origins", str(root / "app.yaml")])

    assert result.exit_code == 0, result.output
    assert "# app.yaml:1[7]" in result.output


def test_cli_compile_with_documentation(tmp_path: Path) -> None:
    docs = {"Type": "<root>", "Children": {"port": {"Name": "port", "Type": "<int>", "Doc": "listen port"}}}
    root = write_tree(tmp_path, {"app.yaml": "port: 8080\n", "docs.json": json.dumps(docs)})
    result = _runner().invoke(cli.cli, ["compile", "--docs", str(root / "docs.json"), str(root / "app.yaml")])

    assert result.exit_code == 0, result.output
    assert result.output == "---\n# listen port\n# type: <int>\nport: '8080'\n"


def test_cli_compile_reports_broken_files(tmp_path: Path) -> None:
    root = write_tree(tmp_path, {"broken.json": "{nope"})
    result = _runner().invoke(cli.cli, ["compile", str(root / "broken.json")])

    assert result.exit_code != 0
    assert "broken.json" in str(result.exception)


def test_cli_compile_requires_existing_paths(tmp_path: Path) -> None:
    result = _runner().invoke(cli.cli, ["compile", str(tmp_path / "missing.yaml")])

    assert result.exit_code == 2


def test_cli_info_handles_missing_metadata(monkeypatch) -> None:
    def _missing(_name: str):
        raise cli.metadata.PackageNotFoundError

    monkeypatch.setattr(cli.metadata, "metadata", _missing)
    result = _runner().invoke(cli.cli, ["info"])

    assert result.exit_code == 0
    assert "metadata unavailable" in result.output


def test_cli_version_option() -> None:
    result = _runner().invoke(cli.cli, ["--version"])

    assert result.exit_code == 0
    assert result.output.startswith("lib_compiled_config version ")


def test_cli_main_restores_traceback_flag(tmp_path: Path) -> None:
    """`cli.main` should restore lib_cli_exit_tools tracebacks after execution."""

    root = write_tree(tmp_path, {"app.yaml": "a: 1\n"})
    previous_traceback = getattr(lib_cli_exit_tools.config, "traceback", False)

    exit_code = cli.main(["--traceback", "compile", str(root / "app.yaml")])

    assert exit_code == 0
    assert getattr(lib_cli_exit_tools.config, "traceback", False) == previous_traceback


def test_cli_main_returns_nonzero_on_failure(tmp_path: Path) -> None:
    root = write_tree(tmp_path, {"broken.json": "{nope"})

    assert cli.main(["compile", str(root / "broken.json")]) != 0
