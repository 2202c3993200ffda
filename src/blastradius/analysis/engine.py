"""End-to-end analysis run for one resource.

Phases run in a fixed order against a freshly reset store:

    ingestion -> resource link -> discovery -> stage 1 -> stage 2
    -> indirect derivation -> stage 3 -> sequential resolution

Each phase logs its counts under the run id bound for the run.
"""

from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path

import structlog

from blastradius.analysis.blast_radius import BlastRadius, compute_blast_radius
from blastradius.analysis.classifier import ClassificationStats, ReferenceClassifier
from blastradius.analysis.discovery import DiscoveryStats, ReferenceDiscovery
from blastradius.analysis.resolution import StructNameInference
from blastradius.analysis.sequential import SequentialResolver, SequentialStats
from blastradius.config.models import BlastRadiusConfig
from blastradius.core.errors import InternalError
from blastradius.core.logging import clear_run_id, set_run_id
from blastradius.ingest import IngestionPipeline, IngestionResult
from blastradius.store import FactStore

logger = structlog.get_logger()


@dataclass
class RunSummary:
    """Result of one engine run."""

    run_id: str
    resource: str
    resource_id: int
    ingestion: IngestionResult
    discovery: DiscoveryStats
    classification: ClassificationStats
    sequential: SequentialStats
    blast_radius: BlastRadius
    statistics: dict[str, int] = field(default_factory=dict)
    duration_ms: int = 0

    @property
    def errors(self) -> list[str]:
        return self.ingestion.errors


class BlastRadiusEngine:
    """Runs every phase for one resource and keeps the populated store.

    Usage::

        engine = BlastRadiusEngine(load_config(repo_root))
        summary = engine.run(repo_root, "azurerm_resource_group")
        engine.store  # classified facts, ready for query or export
    """

    def __init__(
        self,
        config: BlastRadiusConfig | None = None,
        store: FactStore | None = None,
        inference: StructNameInference | None = None,
    ) -> None:
        self.config = config or BlastRadiusConfig()
        self.store = store or FactStore()
        self._inference = inference

    def run(self, repo_root: Path, resource_name: str) -> RunSummary:
        """Analyze a Go source tree."""
        return self._run(resource_name, lambda pipeline: pipeline.ingest_tree(repo_root))

    def run_documents(self, documents: list[Path], resource_name: str) -> RunSummary:
        """Analyze external analyzer documents."""
        return self._run(resource_name, lambda pipeline: pipeline.ingest_documents(documents))

    def _run(
        self,
        resource_name: str,
        ingest: Callable[[IngestionPipeline], IngestionResult],
    ) -> RunSummary:
        run_id = set_run_id()
        start = time.monotonic()
        try:
            return self._phases(run_id, resource_name, ingest, start)
        finally:
            clear_run_id()

    def _phases(
        self,
        run_id: str,
        resource_name: str,
        ingest: Callable[[IngestionPipeline], IngestionResult],
        start: float,
    ) -> RunSummary:
        store = self.store
        store.reset()
        logger.info("run_started", resource=resource_name)

        pipeline = IngestionPipeline(store, self.config)
        ingestion = ingest(pipeline)

        resource_id = store.add_resource(resource_name)
        if resource_id is None:
            raise InternalError.unexpected("resource row rejected", resource=resource_name)
        registration = store.find_resource_registration(resource_name)
        if registration is not None:
            store.set_resource_registration(resource_id, registration.id)
        else:
            logger.warning("resource_registration_missing", resource=resource_name)

        discovery = ReferenceDiscovery(
            store, pipeline.sources, self.config.analysis, self._inference
        ).discover(resource_id)

        classifier = ReferenceClassifier(store, self.config.analysis)
        classifier.classify_steps()
        classifier.sweep()
        classifier.derive_indirect_references(resource_id)
        classifier.classify_service_impact(resource_id)

        sequential = SequentialResolver(store).resolve(pipeline.sources.sequential)

        radius = compute_blast_radius(store, resource_id)
        summary = RunSummary(
            run_id=run_id,
            resource=resource_name,
            resource_id=resource_id,
            ingestion=ingestion,
            discovery=discovery,
            classification=classifier.stats,
            sequential=sequential,
            blast_radius=radius,
            statistics=store.statistics(),
            duration_ms=int((time.monotonic() - start) * 1000),
        )
        logger.info(
            "run_complete",
            resource=resource_name,
            tests=len(radius.tests),
            files=len(radius.files),
            services=len(radius.services),
            duration_ms=summary.duration_ms,
        )
        return summary
