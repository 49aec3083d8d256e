"""Tests for config: AtlasConfig and load_config."""

import pytest

from call_atlas.config import AtlasConfig, load_config
from call_atlas.exceptions import ConfigurationError, InvalidConfigError


@pytest.fixture(autouse=True)
def isolated_env(tmp_path, monkeypatch):
    """No global or project config files, no CALL_ATLAS_* variables."""
    home = tmp_path / "home"
    home.mkdir()
    project = tmp_path / "project"
    project.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.chdir(project)
    for field_name in AtlasConfig.__dataclass_fields__:
        monkeypatch.delenv(f"CALL_ATLAS_{field_name.upper()}", raising=False)
    return home, project


class TestAtlasConfig:
    def test_defaults(self):
        config = AtlasConfig()
        assert config.port == 8080
        assert config.per_page == 100
        assert config.verbosity == "normal"
        assert not config.verbose
        assert not config.quiet

    @pytest.mark.parametrize(
        "field_name, value",
        [("port", 0), ("port", 70000), ("per_page", 0), ("verbosity", "loud")],
    )
    def test_validation(self, field_name, value):
        with pytest.raises(InvalidConfigError) as exc_info:
            AtlasConfig(**{field_name: value})
        assert exc_info.value.key == field_name

    def test_frozen(self):
        with pytest.raises(AttributeError):
            AtlasConfig().port = 1


class TestLoadConfig:
    def test_defaults_without_sources(self):
        assert load_config() == AtlasConfig()

    def test_project_file(self, isolated_env):
        _, project = isolated_env
        (project / "call-atlas.toml").write_text('port = 9000\nhost = "0.0.0.0"\n')
        config = load_config()
        assert config.port == 9000
        assert config.host == "0.0.0.0"

    def test_project_overrides_global(self, isolated_env):
        home, project = isolated_env
        (home / ".call-atlas.toml").write_text("port = 9000\nper_page = 5\n")
        (project / "call-atlas.toml").write_text("port = 9100\n")
        config = load_config()
        assert config.port == 9100
        assert config.per_page == 5

    def test_section_table(self, tmp_path):
        path = tmp_path / "explicit.toml"
        path.write_text('[call-atlas]\ncompound = true\nmodule_store_path = "m.json"\n')
        config = load_config(config_file=path)
        assert config.compound is True
        assert config.module_store_path == "m.json"

    def test_env_overrides_files(self, isolated_env, monkeypatch):
        _, project = isolated_env
        (project / "call-atlas.toml").write_text("port = 9000\n")
        monkeypatch.setenv("CALL_ATLAS_PORT", "9200")
        monkeypatch.setenv("CALL_ATLAS_ONLY_MODULE", "yes")
        monkeypatch.setenv("CALL_ATLAS_DEFINITION_DIR", "/srv/traces")
        config = load_config()
        assert config.port == 9200
        assert config.only_module is True
        assert config.definition_dir == "/srv/traces"

    def test_bad_env_value(self, monkeypatch):
        monkeypatch.setenv("CALL_ATLAS_COMPOUND", "maybe")
        with pytest.raises(InvalidConfigError, match="compound"):
            load_config()

    def test_overrides_win_and_none_is_ignored(self, monkeypatch):
        monkeypatch.setenv("CALL_ATLAS_PORT", "9200")
        config = load_config(port=9300, host=None)
        assert config.port == 9300
        assert config.host == "127.0.0.1"

    def test_verbosity_flags(self):
        assert load_config(verbose=True).verbose
        assert load_config(quiet=True).quiet
        assert load_config(verbose=False).verbosity == "normal"

    def test_missing_explicit_file(self, tmp_path):
        with pytest.raises(ConfigurationError, match="not found"):
            load_config(config_file=tmp_path / "missing.toml")

    def test_invalid_toml(self, tmp_path):
        path = tmp_path / "broken.toml"
        path.write_text("port = = 1")
        with pytest.raises(ConfigurationError, match="Invalid config file"):
            load_config(config_file=path)

    def test_unknown_key(self, tmp_path):
        path = tmp_path / "unknown.toml"
        path.write_text("colour = 'blue'\n")
        with pytest.raises(ConfigurationError, match="Invalid configuration"):
            load_config(config_file=path)
