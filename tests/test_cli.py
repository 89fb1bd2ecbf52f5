"""Tests for the zgraph command line interface."""

import json
from pathlib import Path

import pytest
from click.testing import CliRunner

from zgraph import __version__
from zgraph.cli import cli
from zgraph.exit_codes import DATA_ERROR, GRAPH_ERROR, NO_PROJECTS_FOUND, VERSION_ERROR


def parse_jsonl(text):
    return [json.loads(line) for line in text.splitlines() if line.strip()]


def write_tree(root: Path, files):
    for rel, text in files.items():
        path = root / rel
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text)


@pytest.fixture(autouse=True)
def isolated_home(tmp_path, monkeypatch):
    """Keep the user's own config out of the way."""
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.delenv("ZGRAPH_CONFIG", raising=False)


@pytest.fixture
def repo(tmp_path):
    root = tmp_path / "repo"
    write_tree(root, {
        "project.yaml": "group: g\nartifact: a\nversion: 1.0.0\nrules: ['**/BUILD.yaml']\n",
        "lib/BUILD.yaml": "targets: [{name: lib}]\n",
        "app/BUILD.yaml": "targets:\n  - name: app\n    dependencies: ['g:a@1.0.0#target::lib']\n",
    })
    return root


class TestResolveCommand:
    """Tests for 'zgraph resolve'."""

    def test_resolve_outputs_targets(self, repo):
        result = CliRunner().invoke(cli, ['resolve', str(repo)])
        assert result.exit_code == 0, result.output
        targets = parse_jsonl(result.stdout)
        assert [t['id'] for t in targets] == ["g:a@1.0.0#target::lib", "g:a@1.0.0#target::app"]
        assert targets[1]['resolved_dependencies'] == ["g:a@1.0.0#target::lib"]
        assert targets[1]['source_file'] == "app/BUILD.yaml"

    def test_resolve_failure_outputs_diagnostics(self, repo):
        write_tree(repo, {"lib/BUILD.yaml": "targets: [{name: lib, dependencies: ['g:a@1.0.0#target::app']}]\n"})
        result = CliRunner().invoke(cli, ['resolve', str(repo)])
        assert result.exit_code == GRAPH_ERROR
        diagnostics = parse_jsonl(result.stdout)
        assert [d['kind'] for d in diagnostics] == ["DependencyCycle"]
        assert diagnostics[0]['related'][0] == diagnostics[0]['related'][-1]

    def test_resolve_pretty(self, repo):
        result = CliRunner().invoke(cli, ['resolve', str(repo), '--pretty'])
        assert result.exit_code == 0
        assert "resolved target(s)" in result.stdout

    def test_no_projects(self, tmp_path):
        empty = tmp_path / "empty"
        empty.mkdir()
        result = CliRunner().invoke(cli, ['resolve', str(empty)])
        assert result.exit_code == NO_PROJECTS_FOUND
        assert parse_jsonl(result.stdout)[0]['type'] == "NoProjectsFoundError"


class TestOrderCommand:
    """Tests for 'zgraph order'."""

    def test_order(self, repo):
        result = CliRunner().invoke(cli, ['order', str(repo)])
        assert result.exit_code == 0
        assert parse_jsonl(result.stdout) == [
            {'position': 1, 'id': "g:a@1.0.0#target::lib"},
            {'position': 2, 'id': "g:a@1.0.0#target::app"},
        ]

    def test_order_unresolved(self, repo):
        write_tree(repo, {"app/BUILD.yaml": "targets: [{name: app, dependencies: ['g:a@1.0.0#target::ghost']}]\n"})
        result = CliRunner().invoke(cli, ['order', str(repo)])
        assert result.exit_code == GRAPH_ERROR
        assert parse_jsonl(result.stdout)[0]['kind'] == "UnresolvedTarget"


class TestCheckVersionCommand:
    """Tests for 'zgraph check-version'."""

    def test_supported(self):
        result = CliRunner().invoke(cli, ['check-version', '0.1.0'])
        assert result.exit_code == 0
        assert parse_jsonl(result.stdout) == [{'running': __version__, 'required': '0.1.0', 'supported': True}]

    def test_unsupported(self):
        result = CliRunner().invoke(cli, ['check-version', '99.0.0'])
        assert result.exit_code == VERSION_ERROR
        assert parse_jsonl(result.stdout)[0]['type'] == "UnsupportedVersion"

    def test_malformed(self):
        result = CliRunner().invoke(cli, ['check-version', 'latest'])
        assert result.exit_code == DATA_ERROR
        assert parse_jsonl(result.stdout)[0]['type'] == "MalformedVersion"


def test_version_option():
    result = CliRunner().invoke(cli, ['--version'])
    assert result.exit_code == 0
    assert __version__ in result.output
