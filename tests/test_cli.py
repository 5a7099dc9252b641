"""
CLI commands, run through Click's test runner.
"""

import json

import pytest
from click.testing import CliRunner

from wardline.cli.__main__ import cli


@pytest.fixture
def project(standard_tree, tmp_path, monkeypatch):
    """Working directory with a config file pointing at the handler tree."""
    monkeypatch.chdir(tmp_path)
    (tmp_path / "wardline.yaml").write_text(
        f"handlers:\n"
        f"  dir: {standard_tree.root}\n"
        f"  package: {standard_tree.package}\n"
        f"registry:\n"
        f"  path: .wardline/registry.json\n"
        f"cache:\n"
        f"  path: .wardline/cache.json\n"
    )
    return tmp_path


@pytest.fixture
def runner():
    return CliRunner()


def _invoke(runner, *args):
    return runner.invoke(cli, list(args), obj={})


class TestCompile:

    def test_writes_document(self, runner, project):
        result = _invoke(runner, "compile")
        assert result.exit_code == 0, result.output
        assert "Registry compiled" in result.output
        document = json.loads((project / ".wardline" / "registry.json").read_text())
        assert document["metadata"]["count"] == 4

    def test_malformed_controller(self, runner, project, standard_tree):
        standard_tree.write("broken.py", '''
            from wardline import Controller, Reply

            class Broken(Controller):
                async def serve(self, request):
                    return Reply()
        ''')
        result = _invoke(runner, "compile")
        assert result.exit_code == 1
        assert "handle" in result.output
        assert not (project / ".wardline" / "registry.json").exists()


class TestInspect:

    def test_json(self, runner, project, standard_tree):
        assert _invoke(runner, "compile").exit_code == 0
        result = _invoke(runner, "inspect", "--json")
        assert result.exit_code == 0, result.output

        info = json.loads(result.output)
        assert info["count"] == 4
        assert info["controllers"]["view"]["product"] == standard_tree.identity(
            "shop/product.py", "ProductController"
        )
        assert info["default"] == standard_tree.identity("home.py", "HomeController")

    def test_table(self, runner, project):
        result = _invoke(runner, "inspect")
        assert result.exit_code == 0, result.output
        assert "product" in result.output
        assert "rename" in result.output


class TestCheck:

    def test_without_document(self, runner, project):
        result = _invoke(runner, "check")
        assert result.exit_code == 1
        assert "No registry document" in result.output

    def test_fresh_then_stale(self, runner, project, standard_tree):
        _invoke(runner, "compile")

        result = _invoke(runner, "check")
        assert result.exit_code == 0, result.output
        assert "up to date" in result.output

        standard_tree.touch("shop/product.py")
        result = _invoke(runner, "check")
        assert result.exit_code == 1
        assert "stale" in result.output

    def test_prod_mode_is_still_checked_as_dev(self, runner, project, standard_tree):
        _invoke(runner, "compile")
        standard_tree.touch("home.py")
        result = _invoke(runner, "--mode", "prod", "check")
        assert result.exit_code == 1


class TestClearCache:

    def test_removes_store(self, runner, project):
        store = project / ".wardline" / "cache.json"
        store.parent.mkdir()
        store.write_text(json.dumps({"k": {"value": 1, "expires_at": None}}))

        result = _invoke(runner, "clear-cache")
        assert result.exit_code == 0
        assert "Cleared" in result.output
        assert not store.exists()


class TestConfigErrors:

    def test_invalid_config_exits_2(self, runner, project):
        (project / "wardline.yaml").write_text("mode: staging\n")
        result = _invoke(runner, "compile")
        assert result.exit_code == 2
        assert "Invalid configuration" in result.output

    def test_missing_config_file(self, runner, project):
        result = _invoke(runner, "--config", "nope.yaml", "inspect")
        assert result.exit_code == 2
