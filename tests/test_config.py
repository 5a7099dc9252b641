"""
Configuration loading: file formats, precedence and validation.
"""

import json
import os

import pytest

from wardline import ConfigError, ConfigLoader, WardlineConfig


@pytest.fixture(autouse=True)
def clean_env(monkeypatch, tmp_path):
    for key in list(os.environ):
        if key.startswith("WL_"):
            monkeypatch.delenv(key)
    monkeypatch.chdir(tmp_path)


def _yaml(tmp_path, text, name="wardline.yaml"):
    path = tmp_path / name
    path.write_text(text)
    return str(path)


class TestSources:

    def test_defaults(self):
        config = ConfigLoader.load().to_config()
        assert config == WardlineConfig()
        assert config.is_dev

    def test_yaml_file(self, tmp_path):
        path = _yaml(tmp_path, """
mode: prod
handlers:
  dir: app/handlers
  package: app.handlers
registry:
  path: build/registry.json
  critical_files: [app/boot.py]
guards:
  unknown_policy: error
  token_ttl: 600
""")
        config = ConfigLoader.load(paths=[path]).to_config()
        assert config.mode == "prod"
        assert config.handlers_dir == "app/handlers"
        assert config.handlers_package == "app.handlers"
        assert config.registry_path == "build/registry.json"
        assert config.critical_files == ["app/boot.py"]
        assert config.unknown_guard_policy == "error"
        assert config.token_ttl == 600

    def test_default_file_is_picked_up(self, tmp_path):
        _yaml(tmp_path, "mode: prod\n")
        assert ConfigLoader.load().to_config().mode == "prod"

    def test_empty_yaml(self, tmp_path):
        path = _yaml(tmp_path, "")
        assert ConfigLoader.load(paths=[path]).to_config() == WardlineConfig()

    def test_json_file(self, tmp_path):
        path = tmp_path / "wardline.json"
        path.write_text(json.dumps({"cache": {"path": "var/cache.json", "default_ttl": 60}}))
        config = ConfigLoader.load(paths=[str(path)]).to_config()
        assert config.cache_path == "var/cache.json"
        assert config.default_ttl == 60

    def test_later_files_win(self, tmp_path):
        first = _yaml(tmp_path, "guards:\n  token_ttl: 10\n  reply_ttl: 20\n", "a.yaml")
        second = _yaml(tmp_path, "guards:\n  token_ttl: 30\n", "b.yaml")
        config = ConfigLoader.load(paths=[first, second]).to_config()
        assert config.token_ttl == 30
        assert config.reply_ttl == 20

    def test_flat_keys(self, tmp_path):
        path = _yaml(tmp_path, "handlers_dir: src/handlers\ncache_replies_in_dev: true\n")
        config = ConfigLoader.load(paths=[path]).to_config()
        assert config.handlers_dir == "src/handlers"
        assert config.cache_replies_in_dev is True


class TestPrecedence:

    def test_env_file(self, tmp_path):
        env = tmp_path / ".env"
        env.write_text("WL_GUARDS__TOKEN_SECRET=from-dotenv\nOTHER=ignored\n")
        config = ConfigLoader.load(env_file=str(env)).to_config()
        assert config.token_secret == "from-dotenv"

    def test_environment_beats_files(self, tmp_path, monkeypatch):
        path = _yaml(tmp_path, "mode: prod\ncache:\n  default_ttl: 10\n")
        env = tmp_path / ".env"
        env.write_text("WL_CACHE__DEFAULT_TTL=20\n")
        monkeypatch.setenv("WL_CACHE__DEFAULT_TTL", "30")

        config = ConfigLoader.load(paths=[path], env_file=str(env)).to_config()
        assert config.default_ttl == 30
        assert config.mode == "prod"

    def test_overrides_win(self, monkeypatch):
        monkeypatch.setenv("WL_MODE", "prod")
        config = ConfigLoader.load(overrides={"mode": "dev"}).to_config()
        assert config.mode == "dev"

    def test_env_values_are_parsed(self, monkeypatch):
        monkeypatch.setenv("WL_GUARDS__CACHE_REPLIES_IN_DEV", "yes")
        monkeypatch.setenv("WL_REGISTRY__CRITICAL_FILES", '["a.py", "b.py"]')
        config = ConfigLoader.load().to_config()
        assert config.cache_replies_in_dev is True
        assert config.critical_files == ["a.py", "b.py"]

    def test_get_by_path(self, monkeypatch):
        monkeypatch.setenv("WL_HANDLERS__DIR", "pages")
        loader = ConfigLoader.load()
        assert loader.get("handlers.dir") == "pages"
        assert loader.get("handlers.missing", "fallback") == "fallback"


class TestValidation:

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigError, match="not found"):
            ConfigLoader.load(paths=[str(tmp_path / "nope.yaml")])

    def test_invalid_yaml(self, tmp_path):
        path = _yaml(tmp_path, "mode: [unclosed\n")
        with pytest.raises(ConfigError, match="Invalid YAML"):
            ConfigLoader.load(paths=[path])

    def test_non_mapping(self, tmp_path):
        path = _yaml(tmp_path, "- a\n- b\n")
        with pytest.raises(ConfigError, match="mapping"):
            ConfigLoader.load(paths=[path])

    def test_unknown_mode(self):
        with pytest.raises(ConfigError) as exc_info:
            ConfigLoader.load(overrides={"mode": "staging"}).to_config()
        assert exc_info.value.key == "mode"

    def test_unknown_guard_policy(self):
        with pytest.raises(ConfigError, match="guard policy"):
            ConfigLoader.load(overrides={"guards": {"unknown_policy": "loud"}}).to_config()

    @pytest.mark.parametrize("overrides", [
        {"cache": {"default_ttl": "soon"}},
        {"guards": {"token_ttl": True}},
        {"registry": {"critical_files": "boot.py"}},
        {"handlers": {"package": 5}},
    ])
    def test_mistyped_fields(self, overrides):
        with pytest.raises(ConfigError, match="expected"):
            ConfigLoader.load(overrides=overrides).to_config()

    def test_optional_package_accepts_none(self):
        config = ConfigLoader.load(overrides={"handlers": {"package": None}}).to_config()
        assert config.handlers_package is None
