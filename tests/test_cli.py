"""Tests for lazy_bump.cli."""

from __future__ import annotations

import json
from pathlib import Path
from unittest.mock import MagicMock, patch

from click.testing import CliRunner

from lazy_bump.cli import cli
from lazy_bump.errors import FetchError
from lazy_bump.models import OverrideFile, PackageFailure, ReleasePlan, UpdatedDep, VersionBump
from lazy_bump.overrides import read_override_files
from lazy_bump.pipeline import PlanRun

PLAN = ReleasePlan(
    bumps=[
        VersionBump(package="core", current_version="1.0.0", new_version="1.1.0", release_type="minor"),
        VersionBump(
            package="web",
            current_version="2.0.0",
            new_version="2.0.1",
            release_type="patch",
            updated_deps=[UpdatedDep(name="core", version="1.1.0")],
        ),
    ]
)


def plan_run(plan: ReleasePlan = PLAN, overrides: list[OverrideFile] | None = None) -> PlanRun:
    return PlanRun(
        plan=plan,
        repo_root=Path("/repo"),
        packages=[],
        overrides=overrides or [],
        monorepo=True,
    )


class TestStatus:
    @patch("lazy_bump.cli.compute_plan")
    def test_prints_plan(self, mock_compute: MagicMock) -> None:
        mock_compute.return_value = plan_run()
        runner = CliRunner()
        with runner.isolated_filesystem():
            result = runner.invoke(cli, ["status"])

        assert result.exit_code == 0, result.output
        assert "core: 1.0.0 → 1.1.0 (minor)" in result.output
        assert "[deps: core@1.1.0]" in result.output

    @patch("lazy_bump.cli.compute_plan")
    def test_json(self, mock_compute: MagicMock) -> None:
        mock_compute.return_value = plan_run()
        runner = CliRunner()
        with runner.isolated_filesystem():
            result = runner.invoke(cli, ["status", "--json"])

        assert result.exit_code == 0
        data = json.loads(result.output)
        assert [b["new_version"] for b in data["bumps"]] == ["1.1.0", "2.0.1"]

    @patch("lazy_bump.cli.compute_plan")
    def test_passes_preid_and_graduate(self, mock_compute: MagicMock) -> None:
        mock_compute.return_value = plan_run()
        runner = CliRunner()
        with runner.isolated_filesystem():
            runner.invoke(cli, ["status", "--preid", "rc", "--graduate"])

        kwargs = mock_compute.call_args.kwargs
        assert kwargs == {"preid": "rc", "graduate": True}

    @patch("lazy_bump.cli.compute_plan")
    def test_failures_exit_nonzero(self, mock_compute: MagicMock) -> None:
        plan = ReleasePlan(failures=[PackageFailure(package="bad", reason="Invalid version: 'x'")])
        mock_compute.return_value = plan_run(plan)
        runner = CliRunner()
        with runner.isolated_filesystem():
            result = runner.invoke(cli, ["status"])

        assert result.exit_code == 1
        assert "bad: Invalid version" in result.output

    @patch("lazy_bump.cli.compute_plan")
    def test_fetch_error(self, mock_compute: MagicMock) -> None:
        mock_compute.side_effect = FetchError("registry down", suggestion="Try again later")
        runner = CliRunner()
        with runner.isolated_filesystem():
            result = runner.invoke(cli, ["status"])

        assert result.exit_code == 1
        assert "registry down" in result.output
        assert "Hint: Try again later" in result.output


class TestBump:
    @patch("lazy_bump.cli.apply_plan")
    @patch("lazy_bump.cli.compute_plan")
    def test_applies_plan(self, mock_compute: MagicMock, mock_apply: MagicMock) -> None:
        override = OverrideFile(id="k3x-ab12", release="minor")
        mock_compute.return_value = plan_run(overrides=[override])
        mock_apply.return_value = [override]
        runner = CliRunner()
        with runner.isolated_filesystem():
            result = runner.invoke(cli, ["bump"])

        assert result.exit_code == 0, result.output
        mock_apply.assert_called_once_with(Path("/repo"), PLAN, [], [override])
        assert "Updated 2 packages" in result.output
        assert "Consumed k3x-ab12.md" in result.output

    @patch("lazy_bump.cli.apply_plan")
    @patch("lazy_bump.cli.compute_plan")
    def test_dry_run(self, mock_compute: MagicMock, mock_apply: MagicMock) -> None:
        mock_compute.return_value = plan_run()
        runner = CliRunner()
        with runner.isolated_filesystem():
            result = runner.invoke(cli, ["bump", "--dry-run"])

        assert result.exit_code == 0
        mock_apply.assert_not_called()
        assert "Dry run" in result.output

    @patch("lazy_bump.cli.apply_plan")
    @patch("lazy_bump.cli.compute_plan")
    def test_nothing_to_release(self, mock_compute: MagicMock, mock_apply: MagicMock) -> None:
        mock_compute.return_value = plan_run(ReleasePlan())
        runner = CliRunner()
        with runner.isolated_filesystem():
            result = runner.invoke(cli, ["bump"])

        assert result.exit_code == 0
        assert "Nothing to release." in result.output
        mock_apply.assert_not_called()


class TestAdd:
    def test_writes_override_file(self) -> None:
        runner = CliRunner()
        with runner.isolated_filesystem():
            result = runner.invoke(
                cli, ["add", "--release", "minor", "-p", "core", "-p", "web", "-m", "New API"]
            )
            overrides = read_override_files(Path.cwd())

        assert result.exit_code == 0, result.output
        assert "Wrote .bump/" in result.output
        assert len(overrides) == 1
        assert overrides[0].packages == ["core", "web"]
        assert overrides[0].content == "New API"

    def test_respects_override_dir(self) -> None:
        runner = CliRunner()
        with runner.isolated_filesystem():
            Path("pyproject.toml").write_text('[tool.lazy-bump]\noverride_dir = "changes"\n')
            result = runner.invoke(cli, ["add", "--release", "patch"])
            written = list(Path("changes").glob("*.md"))

        assert result.exit_code == 0
        assert len(written) == 1

    def test_invalid_release(self) -> None:
        runner = CliRunner()
        with runner.isolated_filesystem():
            result = runner.invoke(cli, ["add", "--release", "gigantic"])

        assert result.exit_code == 1
        assert "Invalid release" in result.output
