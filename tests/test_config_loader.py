"""Tests for config_loader.py: discovery, !include, env interpolation, merging."""

import pytest

from docsync.config_loader import (
    discover_config_files,
    expand_env_references,
    load_hierarchical_config,
    load_yaml_file,
)


@pytest.fixture
def isolated(tmp_path, monkeypatch):
    """Run with an empty CWD and HOME and no DOCSYNC_CONFIG."""
    home = tmp_path / "home"
    work = tmp_path / "work"
    home.mkdir()
    work.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.delenv("DOCSYNC_CONFIG", raising=False)
    monkeypatch.chdir(work)
    return work, home


class TestExpandEnvReferences:
    def test_set_variable(self, monkeypatch):
        monkeypatch.setenv("DOCS_HOST", "docs.example.com")
        assert expand_env_references("https://${DOCS_HOST}") == "https://docs.example.com"

    def test_default_used_when_unset(self, monkeypatch):
        monkeypatch.delenv("DOCS_MISSING", raising=False)
        assert expand_env_references("${DOCS_MISSING:-fallback}") == "fallback"

    def test_unset_without_default_is_empty(self, monkeypatch):
        monkeypatch.delenv("DOCS_MISSING", raising=False)
        assert expand_env_references("a${DOCS_MISSING}b") == "ab"


class TestLoadYamlFile:
    def test_include_relative(self, tmp_path):
        (tmp_path / "server.yml").write_text("url: https://docs.example.com\n")
        main = tmp_path / "config.yml"
        main.write_text("server: !include server.yml\n")
        assert load_yaml_file(main) == {"server": {"url": "https://docs.example.com"}}

    def test_missing_include_raises(self, tmp_path):
        main = tmp_path / "config.yml"
        main.write_text("server: !include nope.yml\n")
        with pytest.raises(FileNotFoundError, match="Include file not found"):
            load_yaml_file(main)

    def test_circular_include_raises(self, tmp_path):
        (tmp_path / "a.yml").write_text("b: !include b.yml\n")
        (tmp_path / "b.yml").write_text("a: !include a.yml\n")
        with pytest.raises(ValueError, match="Circular include"):
            load_yaml_file(tmp_path / "a.yml")


class TestDiscovery:
    def test_nothing_found(self, isolated):
        assert discover_config_files() == []
        assert load_hierarchical_config() == {}

    def test_project_wins_over_global(self, isolated):
        work, home = isolated
        global_dir = home / ".config" / "docsync"
        global_dir.mkdir(parents=True)
        (global_dir / "config.yml").write_text(
            "server:\n  url: https://global.example.com\nlogging:\n  level: DEBUG\n"
        )
        project_dir = work / ".docsync"
        project_dir.mkdir()
        (project_dir / "config.yml").write_text(
            "server:\n  url: https://project.example.com\n"
        )

        merged = load_hierarchical_config()
        assert merged["server"] == {"url": "https://project.example.com"}
        assert merged["logging"] == {"level": "DEBUG"}

    def test_explicit_file_first(self, isolated, monkeypatch):
        work, _ = isolated
        explicit = work / "custom.yml"
        explicit.write_text("sync:\n  prompt: true\n")
        monkeypatch.setenv("DOCSYNC_CONFIG", str(explicit))
        assert discover_config_files()[0] == explicit.resolve()

    def test_env_references_expanded(self, isolated, monkeypatch):
        work, _ = isolated
        monkeypatch.setenv("DOCS_USER", "alice")
        (work / ".docsync").mkdir()
        (work / ".docsync" / "config.yaml").write_text(
            "server:\n  username: ${DOCS_USER}\n  password: ${DOCS_PASS:-changeme}\n"
        )
        monkeypatch.delenv("DOCS_PASS", raising=False)
        merged = load_hierarchical_config()
        assert merged["server"] == {"username": "alice", "password": "changeme"}

    def test_non_dict_root_skipped(self, isolated):
        work, _ = isolated
        (work / ".docsync").mkdir()
        (work / ".docsync" / "config.yml").write_text("- just\n- a list\n")
        assert load_hierarchical_config() == {}
