"""Tests for the layered build in core/builder.py."""

import json
from pathlib import Path

import pytest
import yaml

from dbt_to_sigma.config import BuildMode, SigmaConfig
from dbt_to_sigma.core.builder import BuildResult, ModelResult, run_build


@pytest.fixture
def config(project_dir: Path) -> SigmaConfig:
    return SigmaConfig.from_file(project_dir / "sigma.yml")


def load_output(config: SigmaConfig, name: str) -> dict:
    return yaml.safe_load((config.output_path / f"{name}.yml").read_text(encoding="utf-8"))


class TestFullBuild:
    """Tests for a build of the whole corpus."""

    def test_summary(self, config: SigmaConfig) -> None:
        result = run_build(config)

        assert result.summary() == {
            "totalModels": 3,
            "processedModels": 3,
            "successful": 3,
            "failed": 0,
            "totalLayers": 3,
        }
        assert [layer.models for layer in result.layers] == [
            ["customers"],
            ["orders"],
            ["order_items"],
        ]
        assert result.failures == []

    def test_writes_outputs(self, config: SigmaConfig) -> None:
        result = run_build(config)
        output = config.output_path

        for name in ("customers", "orders", "order_items"):
            assert (output / f"{name}.yml").is_file()
            assert (config.store_path / f"{name}.yml").is_file()
        assert (output / "cross_model_metrics.yml").is_file()
        assert result.statistics.files == 6

        results = json.loads((output / "processing_results.json").read_text(encoding="utf-8"))
        assert results["summary"]["successful"] == 3
        assert results["deferredMetrics"] == ["revenue_per_customer", "total_customers"]
        assert results["omittedMetrics"] == ["cumulative_revenue"]

        dag = json.loads((output / "dag.json").read_text(encoding="utf-8"))
        assert dag["order_items"]["dependsOn"] == ["orders"]

    def test_output_uses_warehouse_settings(self, config: SigmaConfig) -> None:
        run_build(config)
        customers = load_output(config, "customers")
        source = customers["pages"][0]["elements"][0]["source"]

        assert source["connectionId"] == "conn-123"
        assert source["path"] == ["ANALYTICS", "GOLD", "CUSTOMER"]

    def test_dependents_join_published_models(self, config: SigmaConfig) -> None:
        run_build(config)
        customers = load_output(config, "customers")
        orders = load_output(config, "orders")

        joined = [e for e in orders["pages"][0]["elements"] if e["id"] == "customer"]
        assert joined[0]["source"]["dataModelId"] == customers["dataModelId"]
        relationship_ids = [
            r["id"] for r in orders["pages"][0]["elements"][0]["relationships"]
        ]
        assert relationship_ids == ["orders__customer", "orders__time_spine_day"]

    def test_deferred_metrics_catalog(self, config: SigmaConfig) -> None:
        result = run_build(config)
        catalog = yaml.safe_load(
            (config.output_path / "cross_model_metrics.yml").read_text(encoding="utf-8")
        )

        assert [m.name for m in result.deferred_metrics] == [
            "revenue_per_customer",
            "total_customers",
        ]
        assert [m["name"] for m in catalog["metrics"]] == [
            "revenue_per_customer",
            "total_customers",
        ]
        assert result.statistics.deferred == 2

    def test_dry_run_writes_nothing(self, config: SigmaConfig) -> None:
        result = run_build(config, dry_run=True)

        assert result.summary()["successful"] == 3
        assert not config.output_path.exists()
        assert not config.store_path.exists()
        assert all(r.data_model_id is None for r in result.results)
        # Nothing is published, so later layers cannot join
        assert result.diagnostics.by_kind("unresolved_entity")

    def test_missing_input(self, tmp_path: Path) -> None:
        config = SigmaConfig(input=str(tmp_path / "missing"), output=str(tmp_path / "out"))
        with pytest.raises(FileNotFoundError):
            run_build(config)


class TestBuildModes:
    """Tests for data model id handling across runs."""

    def ids(self, config: SigmaConfig) -> dict[str, str]:
        return {r.model_name: r.data_model_id for r in run_build(config).results}

    def test_initial_mode_assigns_new_ids(self, config: SigmaConfig) -> None:
        first = self.ids(config)
        second = self.ids(config)
        assert all(first[name] != second[name] for name in first)

    def test_update_mode_keeps_ids(self, config: SigmaConfig) -> None:
        first = self.ids(config)
        second = self.ids(config.model_copy(update={"mode": BuildMode.UPDATE}))
        assert second == first


class TestIncrementalBuild:
    """Tests for --changed builds."""

    def test_changed_file_rebuilds_dependents(self, config: SigmaConfig) -> None:
        run_build(config)
        result = run_build(config, changed_files=["semantic_models/orders.yml"])

        assert [r.model_name for r in result.results] == ["orders", "order_items"]
        assert result.summary()["totalLayers"] == 2
        # customers is out of scope but still published, so the join resolves
        orders = load_output(config, "orders")
        assert orders["pages"][0]["elements"][0]["relationships"][0]["id"] == "orders__customer"

    def test_changed_file_given_by_name(self, config: SigmaConfig) -> None:
        result = run_build(config, changed_files=["order_items"])
        assert [r.model_name for r in result.results] == ["order_items"]

    def test_changed_file_without_models_fails(self, config: SigmaConfig) -> None:
        result = run_build(config, changed_files=["shared_metrics.yml"])

        assert result.failures == [
            ("shared_metrics", "No semantic models found in shared_metrics")
        ]
        assert result.diagnostics.by_kind("no_semantic_model")
        assert result.layers == []


class TestFailures:
    """Tests for per-model failures."""

    def test_unsafe_model_name_fails_alone(self, config: SigmaConfig) -> None:
        (config.input_path / "weird.yml").write_text(
            "semantic_models:\n"
            "  - name: '..'\n"
            "    entities:\n"
            "      - name: weird\n"
            "        type: primary\n",
            encoding="utf-8",
        )
        result = run_build(config)
        failed = [r for r in result.results if not r.success]

        assert [r.model_name for r in failed] == [".."]
        assert result.summary()["successful"] == 3
        assert result.diagnostics.by_kind("model_failed")

    def test_invalid_file_is_reported(self, config: SigmaConfig) -> None:
        (config.input_path / "broken.yml").write_text(
            "semantic_models:\n  - name: broken\n    entities:\n      - type: primary\n",
            encoding="utf-8",
        )
        result = run_build(config)

        assert result.failures[0][0] == "broken"
        assert result.summary()["successful"] == 3

    def test_write_failure_fails_alone(self, config: SigmaConfig) -> None:
        # A directory where the output file should go makes the write fail
        (config.output_path / "order_items.yml").mkdir(parents=True)
        result = run_build(config)

        assert [name for name, _ in result.failures] == ["order_items"]
        assert result.summary()["successful"] == 2
        assert result.diagnostics.by_kind("model_failed")[0].subject == "order_items"
        assert (config.output_path / "processing_results.json").is_file()


class TestSharedModelFiles:
    """Tests for files that declare more than one semantic model."""

    @pytest.fixture
    def pair_config(self, config: SigmaConfig) -> SigmaConfig:
        (config.input_path / "pair.yml").write_text(
            "semantic_models:\n"
            "  - name: alpha\n"
            "    entities:\n"
            "      - name: alpha\n"
            "        type: primary\n"
            "    measures:\n"
            "      - name: m1\n"
            "        agg: sum\n"
            "  - name: beta\n"
            "    entities:\n"
            "      - name: beta\n"
            "        type: primary\n"
            "    measures:\n"
            "      - name: m2\n"
            "        agg: sum\n"
            "metrics:\n"
            "  - name: total_x\n"
            "    type: simple\n"
            "    type_params:\n"
            "      measure: m1\n"
            "  - name: total_z\n"
            "    type: simple\n"
            "    type_params:\n"
            "      measure: m3\n",
            encoding="utf-8",
        )
        return config

    def metric_ids(self, config: SigmaConfig, name: str) -> list[str]:
        output = load_output(config, name)
        return [m["id"] for m in output["pages"][0]["elements"][0]["metrics"]]

    def test_metric_is_placed_on_the_sibling_that_holds_it(
        self, pair_config: SigmaConfig
    ) -> None:
        result = run_build(pair_config)
        catalog = yaml.safe_load(
            (pair_config.output_path / "cross_model_metrics.yml").read_text(encoding="utf-8")
        )

        assert "total_x" in self.metric_ids(pair_config, "alpha")
        assert "total_x" not in self.metric_ids(pair_config, "beta")
        assert "total_x" not in [m.name for m in result.deferred_metrics]
        assert "total_x" not in [m["name"] for m in catalog["metrics"]]

    def test_unplaceable_metric_is_deferred_once(self, pair_config: SigmaConfig) -> None:
        result = run_build(pair_config)
        deferred = [m.name for m in result.deferred_metrics]

        assert deferred.count("total_z") == 1
        assert [i.subject for i in result.diagnostics.by_kind("metric_deferred")].count(
            "total_z"
        ) == 1


class TestBuildResult:
    """Tests for BuildResult serialization."""

    def test_to_dict(self) -> None:
        result = BuildResult(
            results=[
                ModelResult("orders", "orders", True, data_model_id="dm-1"),
                ModelResult("bad", "bad", False, error="boom"),
            ],
            omitted_metrics=["cumulative_revenue"],
        )
        data = result.to_dict()

        assert data["summary"]["failed"] == 1
        assert data["results"][0]["dataModelId"] == "dm-1"
        assert data["results"][1]["error"] == "boom"
        assert data["omittedMetrics"] == ["cumulative_revenue"]
        assert result.failures == [("bad", "boom")]
