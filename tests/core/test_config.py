"""Tests for core configuration classes."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from agentsync.core.config import (
    AppConfig,
    SyncPaths,
    load_config,
    require_initialized,
    save_config,
)
from agentsync.core.errors import NotInitializedError


class TestSyncPaths:
    """Tests for SyncPaths."""

    def test_default_uses_home(self, monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
        """Without overrides, both roots live in the home directory."""
        monkeypatch.delenv("AGENTSYNC_HOME", raising=False)
        monkeypatch.delenv("AGENTSYNC_CLAUDE_DIR", raising=False)
        monkeypatch.setattr(Path, "home", lambda: tmp_path)

        paths = SyncPaths.default()

        assert paths.claude_dir == tmp_path / ".claude"
        assert paths.config_dir == tmp_path / ".agentsync"

    def test_environment_overrides(self, monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
        """AGENTSYNC_HOME and AGENTSYNC_CLAUDE_DIR should override the roots."""
        monkeypatch.setenv("AGENTSYNC_HOME", str(tmp_path / "cfg"))
        monkeypatch.setenv("AGENTSYNC_CLAUDE_DIR", str(tmp_path / "editor"))

        paths = SyncPaths.default()

        assert paths.config_dir == tmp_path / "cfg"
        assert paths.claude_dir == tmp_path / "editor"

    def test_derived_locations(self, paths: SyncPaths) -> None:
        assert paths.projects_dir == paths.claude_dir / "projects"
        assert paths.agents_dir == paths.claude_dir / "agents"
        assert paths.settings_file == paths.claude_dir / "settings.json"
        assert paths.state_file == paths.config_dir / "sync-state.json"
        assert paths.keyfile == paths.config_dir / "keyfile.json"
        assert paths.repo_dir == paths.config_dir / "repo"


class TestAppConfig:
    """Tests for AppConfig persistence."""

    def test_rejects_unknown_backend(self) -> None:
        with pytest.raises(ValueError, match="Unknown backend"):
            AppConfig(backend="ftp")

    def test_save_and_load(self, paths: SyncPaths) -> None:
        """A saved config should load back identically."""
        config = AppConfig(
            backend="s3",
            backend_config={"bucket": "b", "region": "auto"},
            initialized=True,
        )
        save_config(paths, config)

        loaded = load_config(paths)

        assert loaded == config

    def test_load_missing_returns_none(self, paths: SyncPaths) -> None:
        assert load_config(paths) is None

    def test_load_corrupt_returns_none(self, paths: SyncPaths) -> None:
        """An unparsable config means "not initialized", not a crash."""
        paths.config_dir.mkdir(parents=True)
        paths.config_file.write_text("{not json")
        assert load_config(paths) is None

    def test_load_unknown_backend_returns_none(self, paths: SyncPaths) -> None:
        paths.config_dir.mkdir(parents=True)
        paths.config_file.write_text(json.dumps({"backend": "ftp"}))
        assert load_config(paths) is None

    def test_require_initialized(self, paths: SyncPaths) -> None:
        with pytest.raises(NotInitializedError):
            require_initialized(paths)

        save_config(paths, AppConfig(backend="git", backend_config={"url": "u"}))
        with pytest.raises(NotInitializedError):
            require_initialized(paths)

        save_config(paths, AppConfig(backend="git", backend_config={"url": "u"}, initialized=True))
        assert require_initialized(paths).backend_config == {"url": "u"}
