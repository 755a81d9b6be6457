"""Unit tests for checks/runner.py — CheckRunner, run_checks and evaluate."""
from __future__ import annotations

import textwrap
from pathlib import Path

import pytest

from rufio.checks.runner import CheckResult, CheckRunner, evaluate, run_checks
from rufio.config.discovery import CONFIG_FILENAME
from rufio.config.errors import PresetNotFoundError
from rufio.config.loader import ConfigLoader
from rufio.config.presets import PresetResolver
from rufio.transcript import EventKind, ToolEvent


# ---------------------------------------------------------------------------
# Fixtures and helpers
# ---------------------------------------------------------------------------

BIOME_YAML = """\
checks:
  - name: biome
    when:
      paths_changed: "**/*.ts"
    then:
      ensure_commands:
        - biome check
"""

MULTI_COMMAND_YAML = """\
checks:
  - name: pnpm
    when:
      paths_changed: "**/*.ts"
    then:
      ensure_commands:
        - pnpm lint
        - pnpm typecheck
        - pnpm test
"""

VERSION_BUMP_YAML = """\
checks:
  - name: version-bump
    when:
      paths_changed: "**/*.rs"
      path_exists: package.marker
    then:
      ensure_changed:
        - version.toml
        - Cargo.toml
"""


@pytest.fixture()
def repo(tmp_path: Path) -> Path:
    root = tmp_path / "repo"
    root.mkdir()
    return root


@pytest.fixture()
def loader(tmp_path: Path) -> ConfigLoader:
    return ConfigLoader(PresetResolver(tmp_path / "no-presets"))


@pytest.fixture()
def runner(loader: ConfigLoader) -> CheckRunner:
    return CheckRunner(loader)


def _write_config(directory: Path, content: str) -> Path:
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / CONFIG_FILENAME
    path.write_text(textwrap.dedent(content), encoding="utf-8")
    return path


class _Log:
    """Builds a chronologically indexed event list."""

    def __init__(self) -> None:
        self.events: list[ToolEvent] = []

    def edit(self, path: str | Path) -> "_Log":
        self.events.append(
            ToolEvent(index=len(self.events), kind=EventKind.EDIT, tool_name="Edit", file_path=str(path))
        )
        return self

    def write(self, path: str | Path) -> "_Log":
        self.events.append(
            ToolEvent(index=len(self.events), kind=EventKind.WRITE, tool_name="Write", file_path=str(path))
        )
        return self

    def run(self, command: str) -> "_Log":
        self.events.append(
            ToolEvent(index=len(self.events), kind=EventKind.COMMAND, tool_name="Bash", command=command)
        )
        return self

    def other(self, name: str = "Read") -> "_Log":
        self.events.append(ToolEvent(index=len(self.events), kind=EventKind.OTHER, tool_name=name))
        return self


# ---------------------------------------------------------------------------
# Applicability
# ---------------------------------------------------------------------------


class TestApplicability:
    def test_no_config_passes(self, runner: CheckRunner, repo: Path) -> None:
        log = _Log().edit(repo / "file.ts")
        assert runner.run(["file.ts"], log.events, repo).passed

    def test_no_changed_files_passes(self, runner: CheckRunner, repo: Path) -> None:
        _write_config(repo, BIOME_YAML)
        assert runner.run([], _Log().edit(repo / "file.ts").events, repo).passed

    def test_no_files_match_glob(self, runner: CheckRunner, repo: Path) -> None:
        _write_config(repo, BIOME_YAML)
        log = _Log().edit(repo / "README.md")
        assert runner.run(["README.md"], log.events, repo).passed

    def test_matching_file_not_edited_in_session(self, runner: CheckRunner, repo: Path) -> None:
        _write_config(repo, BIOME_YAML)
        log = _Log().edit(repo / "README.md").run("ls")
        assert runner.run(["file.ts"], log.events, repo).passed

    def test_edit_in_dot_directory_does_not_trigger(self, runner: CheckRunner, repo: Path) -> None:
        _write_config(repo, BIOME_YAML)
        log = _Log().edit(repo / ".github" / "x.ts")
        assert runner.run([".github/x.ts"], log.events, repo).passed

    def test_explicit_dot_directory_glob_triggers(self, runner: CheckRunner, repo: Path) -> None:
        _write_config(repo, BIOME_YAML.replace("**/*.ts", ".github/**/*.ts"))
        log = _Log().edit(repo / ".github" / "x.ts")
        result = runner.run([".github/x.ts"], log.events, repo)
        assert result.check_name == "biome"

    def test_path_exists_absent_never_fails(self, runner: CheckRunner, repo: Path) -> None:
        _write_config(repo, VERSION_BUMP_YAML)
        log = _Log().edit(repo / "src" / "main.rs")
        assert runner.run(["src/main.rs"], log.events, repo).passed

    def test_path_exists_present_enforces_check(self, runner: CheckRunner, repo: Path) -> None:
        _write_config(repo, VERSION_BUMP_YAML)
        (repo / "package.marker").write_text("", encoding="utf-8")
        log = _Log().edit(repo / "src" / "main.rs")
        result = runner.run(["src/main.rs"], log.events, repo)
        assert result.check_name == "version-bump"
        assert "version.toml, Cargo.toml" in str(result.error)


# ---------------------------------------------------------------------------
# ensure_commands
# ---------------------------------------------------------------------------


class TestEnsureCommands:
    def test_fails_when_command_not_run(self, runner: CheckRunner, repo: Path) -> None:
        _write_config(repo, BIOME_YAML)
        result = runner.run(["file.ts"], _Log().edit(repo / "file.ts").events, repo)
        assert result == CheckResult(
            error="Check 'biome' failed: these commands must run after editing **/*.ts: biome check",
            check_name="biome",
        )

    def test_passes_when_command_runs_after_edit(self, runner: CheckRunner, repo: Path) -> None:
        _write_config(repo, BIOME_YAML)
        log = _Log().edit(repo / "file.ts").run("biome check")
        assert runner.run(["file.ts"], log.events, repo).passed

    def test_command_before_edit_does_not_count(self, runner: CheckRunner, repo: Path) -> None:
        _write_config(repo, BIOME_YAML)
        log = _Log().run("biome check").edit(repo / "file.ts")
        assert not runner.run(["file.ts"], log.events, repo).passed

    def test_only_the_last_edit_counts(self, runner: CheckRunner, repo: Path) -> None:
        _write_config(repo, BIOME_YAML)
        log = _Log().edit(repo / "a.ts").run("biome check").write(repo / "b.ts")
        assert not runner.run(["a.ts", "b.ts"], log.events, repo).passed

    def test_substring_match(self, runner: CheckRunner, repo: Path) -> None:
        _write_config(repo, BIOME_YAML)
        log = _Log().edit(repo / "file.ts").run("npx biome check --write .")
        assert runner.run(["file.ts"], log.events, repo).passed

    def test_lists_every_missing_command(self, runner: CheckRunner, repo: Path) -> None:
        _write_config(repo, MULTI_COMMAND_YAML)
        log = _Log().edit(repo / "file.ts").run("pnpm typecheck")
        result = runner.run(["file.ts"], log.events, repo)
        assert str(result.error).endswith(": pnpm lint, pnpm test")

    def test_unrecognised_tools_keep_ordering(self, runner: CheckRunner, repo: Path) -> None:
        _write_config(repo, BIOME_YAML)
        log = _Log().edit(repo / "file.ts").other().run("biome check")
        assert runner.run(["file.ts"], log.events, repo).passed

    def test_relative_event_paths_resolve_against_root(self, runner: CheckRunner, repo: Path) -> None:
        _write_config(repo, BIOME_YAML)
        log = _Log().edit("src/file.ts")
        assert not runner.run(["src/file.ts"], log.events, repo).passed


# ---------------------------------------------------------------------------
# ensure_changed
# ---------------------------------------------------------------------------


class TestEnsureChanged:
    @pytest.fixture(autouse=True)
    def _marker(self, repo: Path) -> None:
        _write_config(repo, VERSION_BUMP_YAML)
        (repo / "package.marker").write_text("", encoding="utf-8")

    def test_passes_when_required_file_edited(self, runner: CheckRunner, repo: Path) -> None:
        log = _Log().edit(repo / "src" / "main.rs").edit(repo / "version.toml")
        assert runner.run(["src/main.rs"], log.events, repo).passed

    def test_order_does_not_matter(self, runner: CheckRunner, repo: Path) -> None:
        log = _Log().write(repo / "version.toml").edit(repo / "src" / "main.rs")
        assert runner.run(["src/main.rs"], log.events, repo).passed

    def test_any_one_candidate_suffices(self, runner: CheckRunner, repo: Path) -> None:
        log = _Log().edit(repo / "src" / "main.rs").edit(repo / "Cargo.toml")
        assert runner.run(["src/main.rs"], log.events, repo).passed

    def test_fails_naming_all_candidates(self, runner: CheckRunner, repo: Path) -> None:
        log = _Log().edit(repo / "src" / "main.rs")
        result = runner.run(["src/main.rs"], log.events, repo)
        assert result.error == (
            "Check 'version-bump' failed: one of these files must be changed when editing "
            "**/*.rs: version.toml, Cargo.toml"
        )

    def test_same_name_in_other_directory_does_not_count(self, runner: CheckRunner, repo: Path) -> None:
        log = _Log().edit(repo / "src" / "main.rs").edit(repo / "src" / "version.toml")
        assert not runner.run(["src/main.rs"], log.events, repo).passed


# ---------------------------------------------------------------------------
# Ordering, monorepos and errors
# ---------------------------------------------------------------------------


class TestEvaluationOrder:
    def test_first_failing_check_in_document_order(self, runner: CheckRunner, repo: Path) -> None:
        _write_config(
            repo,
            """\
            checks:
              - name: first
                when:
                  paths_changed: "**/*.ts"
                then:
                  ensure_commands: [lint]
              - name: second
                when:
                  paths_changed: "**/*.ts"
                then:
                  ensure_commands: [test]
            """,
        )
        result = runner.run(["a.ts"], _Log().edit(repo / "a.ts").events, repo)
        assert result.check_name == "first"

    def test_preset_checks_run_before_local_checks(
        self, runner: CheckRunner, repo: Path
    ) -> None:
        _write_config(repo, "presets: [pnpm]\n" + BIOME_YAML)
        result = runner.run(["a.ts"], _Log().edit(repo / "a.ts").events, repo)
        assert result.check_name == "pnpm-checks"

    def test_idempotent(self, runner: CheckRunner, repo: Path) -> None:
        _write_config(repo, BIOME_YAML)
        log = _Log().edit(repo / "file.ts")
        assert runner.run(["file.ts"], log.events, repo) == runner.run(["file.ts"], log.events, repo)

    def test_config_error_propagates(self, runner: CheckRunner, repo: Path) -> None:
        _write_config(repo, "presets: [nonexistent]\n")
        with pytest.raises(PresetNotFoundError):
            runner.run(["a.ts"], _Log().edit(repo / "a.ts").events, repo)


class TestMonorepo:
    @pytest.fixture(autouse=True)
    def _packages(self, repo: Path) -> None:
        _write_config(repo / "pkgA", BIOME_YAML)
        _write_config(
            repo / "pkgB",
            """\
            checks:
              - name: cargo
                when:
                  paths_changed: "**/*.rs"
                then:
                  ensure_commands: [cargo test]
            """,
        )

    def test_edit_in_other_package_does_not_trigger(self, runner: CheckRunner, repo: Path) -> None:
        # pkgA has a dirty .ts file, but the session only edited pkgB.
        log = _Log().edit(repo / "pkgB" / "x.ts").edit(repo / "pkgB" / "lib.rs").run("cargo test")
        assert runner.run(["pkgA/old.ts", "pkgB/lib.rs"], log.events, repo).passed

    def test_failing_package_is_reported(self, runner: CheckRunner, repo: Path) -> None:
        log = _Log().edit(repo / "pkgB" / "lib.rs").run("cargo test").edit(repo / "pkgA" / "a.ts")
        result = runner.run(["pkgB/lib.rs", "pkgA/a.ts"], log.events, repo)
        assert result.check_name == "biome"

    def test_groups_are_checked_in_first_seen_order(self, runner: CheckRunner, repo: Path) -> None:
        log = _Log().edit(repo / "pkgA" / "a.ts").edit(repo / "pkgB" / "lib.rs")
        result = runner.run(["pkgB/lib.rs", "pkgA/a.ts"], log.events, repo)
        assert result.check_name == "cargo"

    def test_nested_config_globs_are_relative_to_its_directory(
        self, runner: CheckRunner, repo: Path
    ) -> None:
        _write_config(
            repo / "pkgC",
            """\
            checks:
              - name: src-only
                when:
                  paths_changed: "src/*.py"
                then:
                  ensure_commands: [pytest]
            """,
        )
        log = _Log().edit(repo / "pkgC" / "src" / "mod.py")
        result = runner.run(["pkgC/src/mod.py"], log.events, repo)
        assert result.check_name == "src-only"


# ---------------------------------------------------------------------------
# Entry points
# ---------------------------------------------------------------------------


def _tool(tool: str, **tool_input: object) -> dict[str, object]:
    return {"type": "tool", "tool": tool, "state": {"status": "completed", "input": tool_input}}


class TestEntryPoints:
    def test_run_checks_returns_message(self, loader: ConfigLoader, repo: Path) -> None:
        _write_config(repo, BIOME_YAML)
        message = run_checks(["file.ts"], _Log().edit(repo / "file.ts").events, repo, loader)
        assert message is not None
        assert "Check 'biome' failed" in message
        assert "biome check" in message

    def test_evaluate_fails_without_command(self, loader: ConfigLoader, repo: Path) -> None:
        _write_config(repo, BIOME_YAML)
        messages = [{"parts": [_tool("edit", filePath=str(repo / "file.ts"))]}]
        message = evaluate(["file.ts"], messages, repo, loader)
        assert message is not None
        assert "Check 'biome' failed" in message

    def test_evaluate_passes_with_command(self, loader: ConfigLoader, repo: Path) -> None:
        _write_config(repo, BIOME_YAML)
        messages = [
            {"parts": [_tool("edit", filePath=str(repo / "file.ts"))]},
            {"parts": [_tool("mcp_bash", command="biome check")]},
        ]
        assert evaluate(["file.ts"], messages, repo, loader) is None

    def test_evaluate_with_no_changed_files(self, loader: ConfigLoader, repo: Path) -> None:
        _write_config(repo, BIOME_YAML)
        assert evaluate([], [], repo, loader) is None
