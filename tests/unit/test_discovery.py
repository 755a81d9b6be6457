"""Unit tests for config/discovery.py — nearest-config lookup and grouping."""
from __future__ import annotations

from pathlib import Path

import pytest

from rufio.config.discovery import (
    CONFIG_FILENAME,
    find_config_path,
    find_nearest_config,
    group_files_by_config,
)
from rufio.config.errors import MissingNameError
from rufio.config.loader import ConfigLoader
from rufio.config.presets import PresetResolver


def _config(directory: Path, name: str = "biome", pattern: str = "**/*.ts") -> Path:
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / CONFIG_FILENAME
    path.write_text(
        f"""\
checks:
  - name: {name}
    when:
      paths_changed: "{pattern}"
    then:
      ensure_commands:
        - {name} check
""",
        encoding="utf-8",
    )
    return path


@pytest.fixture()
def loader(tmp_path: Path) -> ConfigLoader:
    return ConfigLoader(PresetResolver(tmp_path / "no-presets"))


@pytest.fixture()
def repo(tmp_path: Path) -> Path:
    root = tmp_path / "repo"
    root.mkdir()
    return root


class TestFindNearestConfig:
    def test_finds_config_in_same_directory(self, repo: Path, loader: ConfigLoader) -> None:
        config_path = _config(repo)
        loaded = find_nearest_config(repo / "file.ts", repo, loader)
        assert loaded is not None
        assert loaded.config_path == config_path
        assert loaded.config_dir == repo
        assert loaded.config.checks[0].name == "biome"

    def test_finds_config_in_parent_directory(self, repo: Path, loader: ConfigLoader) -> None:
        config_path = _config(repo)
        loaded = find_nearest_config(repo / "src" / "deep" / "file.ts", repo, loader)
        assert loaded is not None
        assert loaded.config_path == config_path

    def test_nearest_config_wins(self, repo: Path, loader: ConfigLoader) -> None:
        _config(repo, name="root")
        nested = _config(repo / "packages" / "app", name="app")
        loaded = find_nearest_config(repo / "packages" / "app" / "src" / "x.ts", repo, loader)
        assert loaded is not None
        assert loaded.config_path == nested
        assert loaded.config.checks[0].name == "app"

    def test_does_not_look_above_repo_root(self, tmp_path: Path, repo: Path, loader: ConfigLoader) -> None:
        _config(tmp_path)
        assert find_nearest_config(repo / "file.ts", repo, loader) is None

    def test_returns_none_when_no_config(self, repo: Path, loader: ConfigLoader) -> None:
        assert find_nearest_config(repo / "file.ts", repo, loader) is None

    def test_relative_file_path_resolves_against_root(self, repo: Path, loader: ConfigLoader) -> None:
        config_path = _config(repo / "pkg")
        loaded = find_nearest_config("pkg/src/file.ts", repo, loader)
        assert loaded is not None
        assert loaded.config_path == config_path

    def test_file_outside_root_has_no_config(self, tmp_path: Path, repo: Path) -> None:
        _config(tmp_path / "elsewhere")
        assert find_config_path(tmp_path / "elsewhere" / "a.ts", repo) is None

    def test_sibling_directory_sharing_prefix_is_outside(self, tmp_path: Path, repo: Path) -> None:
        sibling = tmp_path / "repo2"
        _config(sibling)
        assert find_config_path(sibling / "a.ts", repo) is None

    def test_invalid_config_propagates(self, repo: Path, loader: ConfigLoader) -> None:
        (repo / CONFIG_FILENAME).write_text(
            "checks:\n  - when:\n      paths_changed: '*'\n    then:\n      ensure_commands: [x]\n",
            encoding="utf-8",
        )
        with pytest.raises(MissingNameError):
            find_nearest_config(repo / "a.ts", repo, loader)


class TestGroupFilesByConfig:
    def test_groups_by_nearest_config(self, repo: Path, loader: ConfigLoader) -> None:
        a = _config(repo / "pkgA", name="a")
        b = _config(repo / "pkgB", name="b")
        groups = group_files_by_config(
            ["pkgA/x.ts", "pkgB/y.ts", "pkgA/z.ts"], repo, loader
        )
        assert list(groups) == [a, b]
        assert groups[a].files == ["pkgA/x.ts", "pkgA/z.ts"]
        assert groups[b].files == ["pkgB/y.ts"]

    def test_files_without_config_are_dropped(self, repo: Path, loader: ConfigLoader) -> None:
        a = _config(repo / "pkgA")
        groups = group_files_by_config(["pkgA/x.ts", "README.md"], repo, loader)
        assert list(groups) == [a]
        assert groups[a].files == ["pkgA/x.ts"]

    def test_no_files_gives_no_groups(self, repo: Path, loader: ConfigLoader) -> None:
        _config(repo)
        assert group_files_by_config([], repo, loader) == {}

    def test_group_order_follows_first_file(self, repo: Path, loader: ConfigLoader) -> None:
        root_config = _config(repo, name="root")
        nested = _config(repo / "pkg", name="pkg")
        groups = group_files_by_config(["pkg/a.ts", "b.ts"], repo, loader)
        assert list(groups) == [nested, root_config]
