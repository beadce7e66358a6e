"""Core build logic for dbt-to-sigma.

This module contains the layered build: load the corpus, order the models
by their entity dependencies, and translate each model once everything it
joins to has been published.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any

import yaml
from pydantic import ValidationError
from rich.console import Console
from rich.progress import Progress, SpinnerColumn, TextColumn

from dbt_to_sigma.core.diagnostics import Diagnostics
from dbt_to_sigma.domain import Metric
from dbt_to_sigma.errors import ConversionError, ModelNotFoundError, NoSemanticModelError
from dbt_to_sigma.graph import Layer, layer_summary

if TYPE_CHECKING:
    from dbt_to_sigma.adapters.sigma.generator import SigmaModelGenerator
    from dbt_to_sigma.adapters.sigma.paths import OutputPaths
    from dbt_to_sigma.adapters.sigma.store import FileModelStore
    from dbt_to_sigma.config import SigmaConfig
    from dbt_to_sigma.graph import DependencyRecord
    from dbt_to_sigma.ingestion import Corpus

# Module-level console for output
console = Console()


@dataclass
class BuildStatistics:
    """Statistics collected during a build."""

    models: int = 0
    columns: int = 0
    metrics: int = 0
    relationships: int = 0
    deferred: int = 0
    files: int = 0


@dataclass
class ModelResult:
    """Outcome of translating one semantic model."""

    model_name: str
    file_name: str
    success: bool
    data_model_id: str | None = None
    output_path: Path | None = None
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "modelName": self.model_name,
            "fileName": self.file_name,
            "success": self.success,
            "dataModelId": self.data_model_id,
            "outputPath": str(self.output_path) if self.output_path else None,
            "error": self.error,
        }


@dataclass
class BuildResult:
    """Everything a build produced, successful or not."""

    layers: list[Layer] = field(default_factory=list)
    results: list[ModelResult] = field(default_factory=list)
    diagnostics: Diagnostics = field(default_factory=Diagnostics)
    deferred_metrics: list[Metric] = field(default_factory=list)
    omitted_metrics: list[str] = field(default_factory=list)
    statistics: BuildStatistics = field(default_factory=BuildStatistics)

    @property
    def failures(self) -> list[tuple[str, str]]:
        return [(r.model_name, r.error or "") for r in self.results if not r.success]

    def summary(self) -> dict[str, int]:
        successful = sum(1 for r in self.results if r.success)
        return {
            "totalModels": sum(len(layer) for layer in self.layers),
            "processedModels": len(self.results),
            "successful": successful,
            "failed": len(self.results) - successful,
            "totalLayers": len(self.layers),
        }

    def to_dict(self) -> dict[str, Any]:
        return {
            "summary": self.summary(),
            "layers": layer_summary(self.layers)["layers"],
            "results": [r.to_dict() for r in self.results],
            "deferredMetrics": [m.name for m in self.deferred_metrics],
            "omittedMetrics": self.omitted_metrics,
            "diagnostics": [
                {
                    "severity": issue.severity,
                    "kind": issue.kind,
                    "subject": issue.subject,
                    "message": issue.message,
                }
                for issue in self.diagnostics.issues
            ],
        }


def _file_identity(changed: str | Path) -> str:
    """A changed file may be given as a path or as its bare name."""
    return Path(changed).stem


def assign_file_metrics(corpus: Corpus) -> dict[str, list[Metric]]:
    """Hand each metric of a model file to exactly one model of that file.

    A metric goes to the first model it can be placed on. Metrics no model
    of the file can hold go to the file's first model, which defers them.
    """
    from dbt_to_sigma.metrics import can_add_metric_to_model

    catalog = corpus.catalog
    assigned: dict[str, list[Metric]] = {model.name: [] for model in corpus.models}
    for file_name in dict.fromkeys(model.source_file for model in corpus.models):
        siblings = corpus.models_in_file(file_name)
        for metric in corpus.metrics_in_file(file_name):
            home = next(
                (m for m in siblings if can_add_metric_to_model(metric, m, catalog)),
                siblings[0],
            )
            assigned[home.name].append(metric)
    return assigned


def process_model(
    record: DependencyRecord,
    corpus: Corpus,
    metrics: list[Metric],
    generator: SigmaModelGenerator,
    store: FileModelStore,
    paths: OutputPaths,
    config: SigmaConfig,
    result: BuildResult,
    dry_run: bool = False,
) -> ModelResult:
    """Translate, write and publish a single model.

    ``metrics`` are the file metrics assigned to this model.

    Raises:
        ModelNotFoundError: If the graph names a model the corpus lacks
        ConversionError: For any other per-model conversion failure
    """
    from dbt_to_sigma.config import BuildMode

    model = corpus.get_model(record.model)
    if model is None:
        raise ModelNotFoundError(f"Semantic model '{record.model}' is not loaded")

    update = config.mode == BuildMode.UPDATE
    existing_id = store.data_model_id(model.name) if update else None

    translated = generator.generate(
        model,
        metrics,
        corpus.catalog,
        diagnostics=result.diagnostics,
        foreign_references=record.foreign_references,
        data_model_id=existing_id,
    )

    stats = result.statistics
    stats.models += 1
    stats.columns += translated.column_count
    stats.metrics += translated.metric_count
    stats.relationships += translated.relationship_count
    stats.deferred += len(translated.deferred_metrics)
    result.deferred_metrics.extend(translated.deferred_metrics)
    result.omitted_metrics.extend(translated.omitted_metrics)

    output_path = paths.model_file_path(model.name)
    data_model_id = existing_id
    if not dry_run:
        data_model_id = store.publish(model.name, translated.spec, keep_existing_id=update)
        published = translated.spec.model_copy(update={"data_model_id": data_model_id})
        output_path.write_text(
            yaml.safe_dump(published.to_dict(), sort_keys=False, allow_unicode=True),
            encoding="utf-8",
        )
        stats.files += 1

    return ModelResult(
        model_name=model.name,
        file_name=model.source_file,
        success=True,
        data_model_id=data_model_id,
        output_path=output_path,
    )


def run_build(
    config: SigmaConfig,
    changed_files: list[str] | None = None,
    dry_run: bool = False,
    verbose: bool = False,
) -> BuildResult:
    """Execute the layered build.

    Args:
        config: Parsed SigmaConfig
        changed_files: Restrict the build to models in these files and
            everything that depends on them
        dry_run: If True, don't write files
        verbose: If True, show detailed output

    Returns:
        BuildResult with per-model results, layers and diagnostics

    Raises:
        FileNotFoundError: If the input directory does not exist
    """
    from dbt_to_sigma.adapters.sigma.catalog import merge_cross_model_metrics
    from dbt_to_sigma.adapters.sigma.generator import GeneratorOptions, SigmaModelGenerator
    from dbt_to_sigma.adapters.sigma.paths import OutputPaths
    from dbt_to_sigma.adapters.sigma.store import FileModelStore
    from dbt_to_sigma.adapters.sigma.time_spine import TimeSpineIndex
    from dbt_to_sigma.graph import DependencyGraph, EntityIndex, TopologicalLayerer
    from dbt_to_sigma.ingestion import DbtLoader, load_time_spines
    from dbt_to_sigma.translate import DisplayNamePolicy

    result = BuildResult()
    diagnostics = result.diagnostics
    paths = OutputPaths(base_path=config.output_path, store_path=config.store_path)

    console.print(f"[dim]Input:[/dim]  {config.input_path}")
    console.print(f"[dim]Output:[/dim] {config.output_path}")
    console.print()

    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        console=console,
        transient=True,
    ) as progress:
        task = progress.add_task("Loading semantic models...", total=None)

        loader = DbtLoader(config.input_path, config.time_spine_path.name)
        corpus = loader.load_corpus(diagnostics)
        spines = load_time_spines(config.time_spine_path)

        index = EntityIndex.from_models(corpus.models, diagnostics)
        graph = DependencyGraph.build(corpus.models, index, diagnostics)

        progress.update(task, completed=True)

    for file_name, error in corpus.failures:
        result.results.append(
            ModelResult(model_name=file_name, file_name=file_name, success=False, error=error)
        )

    # Metrics in files without semantic models have no home model
    model_files = {model.source_file for model in corpus.models}
    orphaned = [m for m in corpus.metrics if m.source_file not in model_files]
    result.deferred_metrics.extend(orphaned)
    result.statistics.deferred += len(orphaned)
    assigned = assign_file_metrics(corpus)

    scope = graph
    if changed_files is not None:
        changed = [_file_identity(f) for f in changed_files]
        for file_name in changed:
            if not graph.models_in_files([file_name]):
                error = NoSemanticModelError(f"No semantic models found in {file_name}")
                diagnostics.add_error(file_name, "no_semantic_model", str(error))
                result.results.append(
                    ModelResult(
                        model_name=file_name,
                        file_name=file_name,
                        success=False,
                        error=str(error),
                    )
                )
        scope = graph.subgraph(graph.affected_by(graph.models_in_files(changed)))

    result.layers = TopologicalLayerer(scope.dependency_map(), diagnostics).sort()

    if verbose:
        console.print(
            f"[dim]Models:[/dim]  {len(scope)} semantic models "
            f"in {len(result.layers)} layers"
        )
        for layer in result.layers:
            console.print(
                f"          [cyan]Layer {layer.index}[/cyan] "
                f"[dim]({', '.join(layer.models)})[/dim]"
            )

    store = FileModelStore(config.store_path)
    generator = SigmaModelGenerator(
        options=GeneratorOptions(
            connection_id=config.connection_id,
            database=config.database,
            schema=config.schema_name,
            folder_id=config.folder_id,
        ),
        names=DisplayNamePolicy(user_friendly=config.options.user_friendly_names),
        store=store,
        time_spines=TimeSpineIndex(spines),
        max_passes=config.options.max_passes,
    )

    if not dry_run:
        paths.ensure_directories()

    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        console=console,
        transient=True,
    ) as progress:
        task = progress.add_task("Translating models...", total=len(scope))

        # Layers run in order; a model's dependencies are published first
        for layer in result.layers:
            for name in layer.models:
                record = scope[name]
                try:
                    model_result = process_model(
                        record,
                        corpus,
                        assigned.get(name, []),
                        generator,
                        store,
                        paths,
                        config,
                        result,
                        dry_run,
                    )
                except (ConversionError, ValueError, ValidationError, OSError) as e:
                    diagnostics.add_error(name, "model_failed", str(e))
                    model_result = ModelResult(
                        model_name=name,
                        file_name=record.file_name,
                        success=False,
                        error=str(e),
                    )
                result.results.append(model_result)
                progress.advance(task)

    if not dry_run:
        if result.deferred_metrics:
            merge_cross_model_metrics(paths.cross_model_metrics_path, result.deferred_metrics)
            result.statistics.files += 1
        paths.results_path.write_text(
            json.dumps(result.to_dict(), indent=2), encoding="utf-8"
        )
        paths.dag_path.write_text(json.dumps(graph.to_dict(), indent=2), encoding="utf-8")
        result.statistics.files += 2

    return result
