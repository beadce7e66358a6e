"""Tests for Sigma data model generation and the published model store."""

from pathlib import Path

import pytest
import yaml

from dbt_to_sigma.adapters.sigma import (
    Column,
    DataModelSpec,
    Element,
    FileModelStore,
    OutputPaths,
    Page,
    WarehouseTableSource,
    merge_cross_model_metrics,
    safe_join,
    sanitize_path,
)
from dbt_to_sigma.adapters.sigma.generator import GeneratorOptions, SigmaModelGenerator
from dbt_to_sigma.adapters.sigma.time_spine import TimeSpineIndex, agg_time_dimensions
from dbt_to_sigma.core.diagnostics import Diagnostics
from dbt_to_sigma.domain import Entity, Metric, SemanticModel
from dbt_to_sigma.errors import UnsafePathError
from dbt_to_sigma.graph import DependencyGraph, EntityIndex
from dbt_to_sigma.ingestion.dbt import Corpus, DbtLoader, load_time_spines
from dbt_to_sigma.translate import DisplayNamePolicy


@pytest.fixture
def corpus(semantic_models_dir: Path) -> Corpus:
    return DbtLoader(semantic_models_dir).load_corpus()


@pytest.fixture
def graph(corpus: Corpus) -> DependencyGraph:
    return DependencyGraph.build(corpus.models, EntityIndex.from_models(corpus.models))


def simple_spec(name: str, element: str = "thing") -> DataModelSpec:
    column_id = f"{name}__{element}"
    source = WarehouseTableSource(
        name=element, connection_id="c", path=["db", "s", element.upper()]
    )
    return DataModelSpec(
        name=name,
        pages=[
            Page(
                name=name,
                elements=[
                    Element(
                        id=element,
                        name=element,
                        source=source,
                        columns=[Column(id=column_id, name=column_id, formula="[id]")],
                    )
                ],
            )
        ],
    )


class TestColumns:
    """Tests for dimension and entity columns."""

    def test_customer_columns(self, corpus: Corpus) -> None:
        model = corpus.get_model("customers")
        columns = {c.id: c for c in SigmaModelGenerator().build_columns(model)}

        assert list(columns) == [
            "customers__customer_name",
            "customers__customer_type",
            "customers__first_ordered_at",
            "customers__customer",
        ]
        assert columns["customers__customer_name"].formula == "[customers/customer_name]"
        assert columns["customers__customer_name"].description == "Synonyms: client name"
        assert (
            columns["customers__first_ordered_at"].formula
            == "DateTrunc('day', [customers/first_ordered_at])"
        )
        assert columns["customers__customer_type"].formula == (
            "if([lifetime_spend] > 1000,'vip','regular')"
        )
        assert columns["customers__customer_type"].description == "Spend tier"

    def test_entity_column_uses_expression(self, corpus: Corpus) -> None:
        model = corpus.get_model("orders")
        columns = {c.id: c for c in SigmaModelGenerator().build_columns(model)}

        assert columns["orders__customer"].name == "orders__customer"
        assert columns["orders__customer"].formula == "[customer_id]"
        assert columns["orders__status"].formula == "[order_status]"

    def test_user_friendly_names(self, corpus: Corpus) -> None:
        generator = SigmaModelGenerator(names=DisplayNamePolicy(user_friendly=True))
        columns = generator.build_columns(corpus.get_model("customers"))

        assert columns[0].name == "customer name"
        assert columns[0].formula == "[customers/customer name]"
        # Entity columns keep their ids as names so relationships can find them
        assert columns[-1].name == "customers__customer"


class TestGenerate:
    """Tests for SigmaModelGenerator.generate."""

    def test_primary_element(self, corpus: Corpus) -> None:
        generator = SigmaModelGenerator(
            GeneratorOptions(connection_id="conn", database="ANALYTICS", schema="GOLD")
        )
        model = corpus.get_model("customers")
        result = generator.generate(model, corpus.metrics_in_file("customers"), corpus.catalog)
        primary = result.spec.primary_element

        assert result.spec.name == "customers"
        assert primary.id == "customer"
        assert primary.source.path == ["ANALYTICS", "GOLD", "CUSTOMER"]
        assert primary.source.connection_id == "conn"
        assert result.column_count == 4

    def test_orders_metrics(self, corpus: Corpus) -> None:
        diagnostics = Diagnostics()
        model = corpus.get_model("orders")
        result = SigmaModelGenerator().generate(
            model, corpus.metrics_in_file("orders"), corpus.catalog, diagnostics
        )
        metrics = {m.id: m for m in result.spec.primary_element.metrics}

        assert list(metrics) == [
            "order_total",
            "median_order",
            "revenue",
            "order_count",
            "completed_revenue",
            "web_completed_revenue",
            "average_order_value",
        ]
        assert metrics["order_total"].formula == "sum([amount])"
        assert metrics["order_total"].description == "Order amount"
        assert metrics["revenue"].description == "Total order revenue"
        assert metrics["completed_revenue"].formula == "sumif([amount],[status] = 'completed')"
        assert [m.name for m in result.deferred_metrics] == ["total_customers"]
        assert result.omitted_metrics == ["cumulative_revenue"]
        assert diagnostics.by_kind("unsupported_metric")

    def test_metric_replaces_measure_of_same_name(self, corpus: Corpus) -> None:
        model = corpus.get_model("orders")
        result = SigmaModelGenerator().generate(
            model, corpus.metrics_in_file("orders"), corpus.catalog
        )
        ids = [m.id for m in result.spec.primary_element.metrics]
        assert ids.count("order_count") == 1

    def test_foreign_entities_without_graph(self, corpus: Corpus) -> None:
        diagnostics = Diagnostics()
        model = corpus.get_model("orders")
        result = SigmaModelGenerator().generate(model, [], corpus.catalog, diagnostics)

        assert result.relationship_count == 0
        assert diagnostics.by_kind("unresolved_entity")

    def test_unpublished_owner_is_skipped(self, corpus: Corpus, graph: DependencyGraph) -> None:
        diagnostics = Diagnostics()
        model = corpus.get_model("orders")
        result = SigmaModelGenerator().generate(
            model,
            [],
            corpus.catalog,
            diagnostics,
            foreign_references=graph["orders"].foreign_references,
        )

        assert result.relationship_count == 0
        assert "customers" in diagnostics.by_kind("unresolved_entity")[0].message

    def test_relationship_to_published_model(
        self, tmp_path: Path, corpus: Corpus, graph: DependencyGraph
    ) -> None:
        store = FileModelStore(tmp_path / "store")
        generator = SigmaModelGenerator(store=store)
        customers = generator.generate(corpus.get_model("customers"), [], corpus.catalog)
        customers_id = store.publish("customers", customers.spec)

        result = generator.generate(
            corpus.get_model("orders"),
            [],
            corpus.catalog,
            foreign_references=graph["orders"].foreign_references,
        )
        spec = result.spec
        [relationship] = spec.primary_element.relationships
        joined = spec.find_element("customer")

        assert relationship.id == "orders__customer"
        assert relationship.target_element_id == "customer"
        assert relationship.keys[0].source_column_id == "orders__customer"
        assert relationship.keys[0].target_column_id == "customers__customer"
        assert joined.source.data_model_id == customers_id
        assert joined.source.element_id == "customer"
        assert len(joined.columns) == 4

    def test_time_spine_relationship(self, corpus: Corpus, semantic_models_dir: Path) -> None:
        spines = TimeSpineIndex(load_time_spines(semantic_models_dir / "_models.yml"))
        generator = SigmaModelGenerator(time_spines=spines)
        result = generator.generate(corpus.get_model("orders"), [], corpus.catalog)
        spec = result.spec

        spine = spec.find_element("time_spine_daily")
        assert spine.id == "time_spine_day"
        assert spine.source.path == ["$db", "$schema", "TIME_SPINE_DAILY"]
        assert spine.columns[0].id == "time_spine_day__date_day"

        relationship = spec.primary_element.relationships[-1]
        assert relationship.id == "orders__time_spine_day"
        assert relationship.keys[0].source_column_id == "orders__ordered_at"
        assert relationship.keys[0].target_column_id == "time_spine_day__date_day"

    def test_missing_time_spine_is_a_warning(self, corpus: Corpus) -> None:
        diagnostics = Diagnostics()
        SigmaModelGenerator().generate(corpus.get_model("orders"), [], corpus.catalog, diagnostics)
        assert diagnostics.by_kind("time_spine")

    def test_model_without_primary_entity(self) -> None:
        diagnostics = Diagnostics()
        model = SemanticModel(
            name="events", entities=[Entity(name="session", type="foreign")]
        )
        result = SigmaModelGenerator().generate(model, [], {}, diagnostics)

        assert result.spec.primary_element.id == "events"
        assert diagnostics.by_kind("missing_primary_entity")

    def test_existing_data_model_id(self, corpus: Corpus) -> None:
        result = SigmaModelGenerator(GeneratorOptions(folder_id="folder-1")).generate(
            corpus.get_model("customers"), [], corpus.catalog, data_model_id="dm-1"
        )
        data = result.spec.to_dict()

        assert data["dataModelId"] == "dm-1"
        assert data["folderId"] == "folder-1"
        assert data["schemaVersion"] == 1

    def test_to_dict_uses_camel_case(self, corpus: Corpus) -> None:
        result = SigmaModelGenerator().generate(corpus.get_model("customers"), [], corpus.catalog)
        data = result.spec.to_dict()
        element = data["pages"][0]["elements"][0]

        assert "dataModelId" not in data
        assert element["source"] == {
            "kind": "warehouse-table",
            "name": "customer",
            "connectionId": "$connectionId",
            "path": ["$db", "$schema", "CUSTOMER"],
        }
        assert element["kind"] == "table"


class TestAggTimeDimensions:
    """Tests for collecting aggregation time dimensions."""

    def test_default_and_measure_dimensions(self) -> None:
        model = SemanticModel.model_validate(
            {
                "name": "orders",
                "default_agg_time_dimension": "ordered_at",
                "measures": [
                    {"name": "a", "agg": "sum", "agg_time_dimension": "shipped_at"},
                    {"name": "b", "agg": "sum", "agg_time_dimension": "ordered_at"},
                ],
            }
        )
        assert agg_time_dimensions(model) == ["ordered_at", "shipped_at"]


class TestFileModelStore:
    """Tests for FileModelStore."""

    def test_publish_assigns_id(self, tmp_path: Path) -> None:
        store = FileModelStore(tmp_path)
        data_model_id = store.publish("orders", simple_spec("orders"))

        assert data_model_id
        assert store.data_model_id("orders") == data_model_id
        saved = yaml.safe_load((tmp_path / "orders.yml").read_text(encoding="utf-8"))
        assert saved["dataModelId"] == data_model_id

    def test_republish_keeps_id(self, tmp_path: Path) -> None:
        store = FileModelStore(tmp_path)
        first = store.publish("orders", simple_spec("orders"))
        assert store.publish("orders", simple_spec("orders")) == first

    def test_republish_with_fresh_id(self, tmp_path: Path) -> None:
        store = FileModelStore(tmp_path)
        first = store.publish("orders", simple_spec("orders"))
        second = store.publish("orders", simple_spec("orders"), keep_existing_id=False)
        assert second != first

    def test_spec_id_wins(self, tmp_path: Path) -> None:
        store = FileModelStore(tmp_path)
        spec = simple_spec("orders").model_copy(update={"data_model_id": "dm-7"})
        assert store.publish("orders", spec) == "dm-7"

    def test_lookup(self, tmp_path: Path) -> None:
        store = FileModelStore(tmp_path)
        data_model_id = store.publish("customers", simple_spec("customers", "customer"))

        found = store.lookup("customers", "customer")
        assert found.data_model_id == data_model_id
        assert found.element_id == "customer"
        assert found.find_column("customers__customer").formula == "[id]"
        assert found.find_column("missing") is None

    def test_lookup_misses(self, tmp_path: Path) -> None:
        store = FileModelStore(tmp_path)
        store.publish("customers", simple_spec("customers", "customer"))

        assert store.lookup("customers", "account") is None
        assert store.lookup("accounts", "account") is None

    def test_unreadable_document(self, tmp_path: Path) -> None:
        (tmp_path / "orders.yml").write_text("pages: [", encoding="utf-8")
        store = FileModelStore(tmp_path)

        assert store.load("orders") is None
        assert store.data_model_id("orders") is None

    def test_unsafe_name(self, tmp_path: Path) -> None:
        with pytest.raises(UnsafePathError):
            FileModelStore(tmp_path).path_for("..")


class TestPaths:
    """Tests for output path helpers."""

    def test_sanitize_path(self) -> None:
        assert sanitize_path("orders") == "orders"
        assert sanitize_path("../../etc/passwd") == "etcpasswd"
        assert sanitize_path('a<b>:c"') == "abc"

    @pytest.mark.parametrize("name", ["", "..", "/", '<>"'])
    def test_sanitize_path_rejects(self, name: str) -> None:
        with pytest.raises(UnsafePathError):
            sanitize_path(name)

    def test_safe_join_stays_inside_base(self, tmp_path: Path) -> None:
        assert safe_join(tmp_path, "../orders", ".yml") == tmp_path.resolve() / "orders.yml"

    def test_output_paths(self, tmp_path: Path) -> None:
        paths = OutputPaths(tmp_path / "out", tmp_path / "store")
        paths.ensure_directories()

        assert paths.store_path.is_dir()
        assert paths.results_path.name == "processing_results.json"
        assert paths.dag_path.name == "dag.json"
        assert paths.model_file_path("orders").name == "orders.yml"


class TestCrossModelMetrics:
    """Tests for the deferred metric catalog."""

    def test_merge_into_new_file(self, tmp_path: Path, corpus: Corpus) -> None:
        path = tmp_path / "cross_model_metrics.yml"
        merged = merge_cross_model_metrics(path, [corpus.catalog["total_customers"]])

        assert [m["name"] for m in merged] == ["total_customers"]
        saved = yaml.safe_load(path.read_text(encoding="utf-8"))
        assert saved["metrics"][0]["type_params"] == {"measure": "customer_count"}

    def test_existing_entry_wins(self, tmp_path: Path) -> None:
        path = tmp_path / "cross_model_metrics.yml"
        path.write_text(
            "metrics:\n  - name: arpu\n    type: ratio\n    label: Kept\n", encoding="utf-8"
        )
        metrics = [
            Metric(name="arpu", type="ratio", raw={"name": "arpu", "label": "New"}),
            Metric(name="churn", type="simple"),
        ]
        merged = merge_cross_model_metrics(path, metrics)

        assert merged[0]["label"] == "Kept"
        assert merged[1] == {"name": "churn", "type": "simple"}
