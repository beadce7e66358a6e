"""Tests for the d2s command line interface."""

import json
from pathlib import Path

from click.testing import CliRunner

from dbt_to_sigma.__main__ import cli


class TestBuildCommand:
    """Tests for d2s build."""

    def test_build(self, project_dir: Path) -> None:
        runner = CliRunner()
        result = runner.invoke(cli, ["build", "--config", str(project_dir / "sigma.yml")])

        assert result.exit_code == 0, result.output
        assert "Translated 3 models" in result.output
        assert (project_dir / "sigma_output" / "orders.yml").is_file()

    def test_dry_run(self, project_dir: Path) -> None:
        runner = CliRunner()
        result = runner.invoke(
            cli, ["build", "--config", str(project_dir / "sigma.yml"), "--dry-run"]
        )

        assert result.exit_code == 0, result.output
        assert "Would translate 3 models" in result.output
        assert not (project_dir / "sigma_output").exists()

    def test_changed_file_without_models(self, project_dir: Path) -> None:
        runner = CliRunner()
        result = runner.invoke(
            cli,
            [
                "build",
                "--config",
                str(project_dir / "sigma.yml"),
                "--changed",
                "shared_metrics.yml",
            ],
        )

        assert result.exit_code == 1
        assert "Build completed with failures" in result.output

    def test_missing_config(self, tmp_path: Path) -> None:
        runner = CliRunner()
        with runner.isolated_filesystem(temp_dir=tmp_path):
            result = runner.invoke(cli, ["build"])

        assert result.exit_code == 1
        assert "No sigma.yml found" in result.output

    def test_invalid_config(self, tmp_path: Path) -> None:
        config = tmp_path / "sigma.yml"
        config.write_text("input: ./models\nmode: replace\n", encoding="utf-8")
        runner = CliRunner()
        result = runner.invoke(cli, ["build", "--config", str(config)])

        assert result.exit_code == 1
        assert "Config validation error" in result.output

    def test_missing_input_directory(self, tmp_path: Path) -> None:
        config = tmp_path / "sigma.yml"
        config.write_text("input: ./models\n", encoding="utf-8")
        runner = CliRunner()
        result = runner.invoke(cli, ["build", "--config", str(config)])

        assert result.exit_code == 1
        assert "File not found" in result.output


class TestValidateCommand:
    """Tests for d2s validate."""

    def test_validate(self, project_dir: Path) -> None:
        runner = CliRunner()
        result = runner.invoke(cli, ["validate", "--config", str(project_dir / "sigma.yml")])

        assert result.exit_code == 0, result.output
        assert "3 models, 9 metrics" in result.output
        assert "All checks passed" in result.output

    def test_validate_reports_bad_files(self, project_dir: Path) -> None:
        (project_dir / "semantic_models" / "bad.yml").write_text(
            "semantic_models:\n  - name: bad\n    measures:\n      - name: m\n        agg: nope\n",
            encoding="utf-8",
        )
        runner = CliRunner()
        result = runner.invoke(cli, ["validate", "--config", str(project_dir / "sigma.yml")])

        assert result.exit_code == 1
        assert "1 errors found" in result.output


class TestDagCommand:
    """Tests for d2s dag."""

    def test_json(self, project_dir: Path) -> None:
        runner = CliRunner()
        result = runner.invoke(
            cli, ["dag", "--config", str(project_dir / "sigma.yml"), "--json"]
        )

        assert result.exit_code == 0, result.output
        data = json.loads(result.output)
        assert data["totalLayers"] == 3
        assert data["graph"]["orders"]["dependsOn"] == ["customers"]
        assert [layer["models"] for layer in data["layers"]] == [
            ["customers"],
            ["orders"],
            ["order_items"],
        ]

    def test_tree(self, project_dir: Path) -> None:
        runner = CliRunner()
        result = runner.invoke(cli, ["dag", "--config", str(project_dir / "sigma.yml")])

        assert result.exit_code == 0, result.output
        assert "Processing order" in result.output
        assert "order_items" in result.output


class TestTranslateCommand:
    """Tests for d2s translate."""

    def test_case_expression(self) -> None:
        runner = CliRunner()
        result = runner.invoke(
            cli, ["translate", "case when amount > 0 then 'paid' else 'free' end"]
        )

        assert result.exit_code == 0
        assert result.output.strip() == "if([amount] > 0,'paid','free')"

    def test_friendly_names(self) -> None:
        runner = CliRunner()
        result = runner.invoke(
            cli, ["translate", "concat(first_name, ' ', last_name)", "--friendly"]
        )

        assert result.exit_code == 0
        assert result.output.strip() == "[first name] & ' ' & [last name]"


class TestCli:
    """Tests for the command group."""

    def test_help_lists_commands(self) -> None:
        runner = CliRunner()
        result = runner.invoke(cli, ["--help"])

        assert result.exit_code == 0
        for command in ("build", "validate", "dag", "translate"):
            assert command in result.output
