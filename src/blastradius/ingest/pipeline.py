"""Concurrent ingestion: extract in parallel, write serially.

Phase A (worker threads, read-only): the input set is partitioned into N
near-equal chunks; each worker extracts its chunk file by file and hands a
``ChunkBatch`` back through a queue. Workers share no mutable state and
check a cancellation event between files.

Phase B (coordinating thread only): batches are drained in completion
order and written to the fact store (service -> file -> struct ->
registration -> template -> test function). The store is never touched by
a worker, so it needs no locking.

Failure policy:
- A file that cannot be read or parsed is logged and skipped.
- A worker dying, a Phase B write failing, or (when configured) workers
  stalling past ``worker_timeout_sec`` cancels the remaining workers and
  raises ``IngestionError``. Partial state is not usable; rerun.
"""

from __future__ import annotations

import functools
import queue
import threading
import time
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

import structlog

from blastradius.config.models import BlastRadiusConfig
from blastradius.core.errors import IngestionError
from blastradius.ingest.analyzer_json import load_analyzer_document
from blastradius.ingest.discovery import discover_source_files, partition
from blastradius.ingest.go_source import extract_source_file
from blastradius.ingest.models import (
    ChunkBatch,
    FileExtraction,
    FunctionKind,
    FunctionSource,
    IngestionResult,
    SourceIndex,
    WorkerFailure,
)
from blastradius.store import FactStore

logger = structlog.get_logger()

Extractor = Callable[[Path], FileExtraction]


def _extract_one(extract: Extractor, item: Path) -> FileExtraction:
    """Run the extractor on one file; a parse failure skips only that file."""
    try:
        return extract(item)
    except Exception as e:
        return FileExtraction(file_path=item.as_posix(), error=f"{type(e).__name__}: {e}")


def _run_worker(
    worker: int,
    chunk: list[Path],
    extract: Extractor,
    cancel: threading.Event,
    results: queue.Queue[ChunkBatch | WorkerFailure],
) -> None:
    """Extract one chunk and report exactly one item on ``results``."""
    start = time.monotonic()
    try:
        batch = ChunkBatch(worker=worker)
        for item in chunk:
            if cancel.is_set():
                batch.cancelled = True
                break
            batch.extractions.append(_extract_one(extract, item))
    except Exception as e:
        results.put(WorkerFailure(worker=worker, reason=f"{type(e).__name__}: {e}"))
        return
    batch.duration_ms = int((time.monotonic() - start) * 1000)
    results.put(batch)


class FactWriter:
    """Phase B: writes one extraction into the store and the source index."""

    def __init__(self, store: FactStore, sources: SourceIndex) -> None:
        self._store = store
        self._sources = sources

    def write(self, extraction: FileExtraction, result: IngestionResult) -> None:
        """Write all facts of one file.

        Raises:
            IngestionError: If any row the file depends on is rejected.
        """
        try:
            self._write(extraction, result)
        except IngestionError:
            raise
        except Exception as e:
            raise IngestionError.write_failed(extraction.file_path, f"{type(e).__name__}: {e}") from e

    def _require(self, row_id: int | None, extraction: FileExtraction, what: str) -> int:
        if row_id is None:
            raise IngestionError.write_failed(extraction.file_path, f"{what} row rejected")
        return row_id

    def _write(self, extraction: FileExtraction, result: IngestionResult) -> None:
        store = self._store
        path = extraction.file_path

        service_id = None
        if extraction.service:
            before = len(store.services)
            service_id = store.add_service(extraction.service)
            result.services_written += len(store.services) - before
        file_id = self._require(store.add_file(path, service_id), extraction, "file")

        for struct in extraction.structs:
            self._require(store.add_struct(struct.name, file_id, struct.line), extraction, "struct")
            result.structs_written += 1

        for registration in extraction.registrations:
            if service_id is None:
                logger.warning("registration_without_service", path=path, name=registration.name)
                continue
            if store.add_resource_registration(registration.name, service_id) is not None:
                result.registrations_written += 1

        self._sources.constructors.update(extraction.constructors)

        for fn in extraction.functions:
            if fn.kind not in (FunctionKind.TEMPLATE, FunctionKind.HELPER):
                continue
            struct_id = None
            if fn.receiver_type:
                struct_id = self._require(store.add_struct(fn.receiver_type), extraction, "struct")
            template_id = self._require(
                store.add_template_function(fn.name, file_id, struct_id=struct_id, line=fn.line),
                extraction,
                "template function",
            )
            result.template_functions_written += 1
            self._sources.templates.append(
                FunctionSource(
                    record_id=template_id,
                    name=fn.name,
                    kind=fn.kind,
                    file_id=file_id,
                    path=path,
                    line=fn.line,
                    body=fn.body,
                    body_line=fn.body_line,
                    receiver_var=fn.receiver_var,
                    receiver_type=fn.receiver_type,
                )
            )

        for fn in extraction.functions:
            if fn.kind is not FunctionKind.TEST:
                continue
            struct_id = None
            if fn.struct_hint:
                struct_id = self._require(store.add_struct(fn.struct_hint), extraction, "struct")
            test_id = self._require(
                store.add_test_function(
                    fn.name, file_id, struct_id=struct_id, prefix=fn.prefix, line=fn.line
                ),
                extraction,
                "test function",
            )
            result.test_functions_written += 1
            self._sources.tests.append(
                FunctionSource(
                    record_id=test_id,
                    name=fn.name,
                    kind=fn.kind,
                    file_id=file_id,
                    path=path,
                    line=fn.line,
                    body=fn.body,
                    body_line=fn.body_line,
                )
            )

        for fact in extraction.sequential:
            entry = store.find_test_function(file_id, fact.entry_point)
            if entry is None:
                logger.warning(
                    "sequential_entry_point_unknown", path=path, entry_point=fact.entry_point
                )
                continue
            self._sources.sequential.append((entry.id, fact))

        if extraction.precomputed:
            self._sources.precomputed.append((file_id, extraction))


class IngestionPipeline:
    """Populates a fact store from a source tree or analyzer documents.

    Usage::

        pipeline = IngestionPipeline(store, config)
        result = pipeline.ingest_tree(repo_root)
        pipeline.sources  # bodies for discovery and sequential resolution
    """

    def __init__(self, store: FactStore, config: BlastRadiusConfig | None = None) -> None:
        self._store = store
        self._config = config or BlastRadiusConfig()
        self.sources = SourceIndex()

    def ingest_tree(self, root: Path) -> IngestionResult:
        """Discover and ingest every source file under ``root``."""
        paths = discover_source_files(root, self._config.ingestion)
        extract = functools.partial(
            extract_source_file,
            root=root,
            analysis=self._config.analysis,
            service_marker=self._config.ingestion.service_marker,
        )
        return self._run(paths, extract)

    def ingest_documents(self, documents: list[Path]) -> IngestionResult:
        """Ingest analyzer JSON documents, one per source file."""
        extract = functools.partial(
            load_analyzer_document,
            analysis=self._config.analysis,
            service_marker=self._config.ingestion.service_marker,
        )
        return self._run(sorted(documents), extract)

    def _run(self, items: list[Path], extract: Extractor) -> IngestionResult:
        start = time.monotonic()
        result = IngestionResult()
        chunks = partition(items, self._config.ingestion.max_workers)
        logger.info("ingestion_started", files=len(items), workers=len(chunks))

        cancel = threading.Event()
        results: queue.Queue[ChunkBatch | WorkerFailure] = queue.Queue()
        writer = FactWriter(self._store, self.sources)
        executor = ThreadPoolExecutor(
            max_workers=max(1, len(chunks)), thread_name_prefix="blastradius-extract"
        )
        try:
            for worker, chunk in enumerate(chunks):
                executor.submit(_run_worker, worker, chunk, extract, cancel, results)
            self._drain(len(chunks), results, writer, result)
        except BaseException:
            cancel.set()
            executor.shutdown(wait=False, cancel_futures=True)
            raise
        executor.shutdown(wait=True)

        result.duration_ms = int((time.monotonic() - start) * 1000)
        logger.info(
            "ingestion_complete",
            files=result.files_processed,
            failed=result.files_failed,
            structs=result.structs_written,
            tests=result.test_functions_written,
            templates=result.template_functions_written,
            duration_ms=result.duration_ms,
        )
        return result

    def _drain(
        self,
        pending: int,
        results: queue.Queue[ChunkBatch | WorkerFailure],
        writer: FactWriter,
        result: IngestionResult,
    ) -> None:
        """Phase B: apply batches in completion order until every worker reported."""
        timeout = self._config.ingestion.worker_timeout_sec
        poll = self._config.ingestion.poll_interval_sec
        last_report = time.monotonic()
        while pending:
            try:
                item = results.get(timeout=poll)
            except queue.Empty:
                if timeout is not None and time.monotonic() - last_report > timeout:
                    logger.error("ingestion_worker_timeout", timeout_sec=timeout, pending=pending)
                    raise IngestionError.worker_timeout(timeout, pending) from None
                continue
            last_report = time.monotonic()
            pending -= 1

            if isinstance(item, WorkerFailure):
                logger.error("ingestion_worker_failed", worker=item.worker, reason=item.reason)
                raise IngestionError.worker_failed(item.worker, item.reason)

            result.batches += 1
            for extraction in item.extractions:
                if extraction.error:
                    result.files_failed += 1
                    result.errors.append(f"{extraction.file_path}: {extraction.error}")
                    logger.warning(
                        "file_extraction_failed", path=extraction.file_path, error=extraction.error
                    )
                    continue
                writer.write(extraction, result)
                result.files_processed += 1
