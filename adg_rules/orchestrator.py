"""Run orchestrator wiring sink, router, filter and worker pool together."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Callable

import structlog

from .config import AppConfig
from .engine import (
    Classifier,
    DeduplicationFilter,
    Fetcher,
    IngestionWorker,
    OutputFile,
    OutputSink,
    RuleClassifier,
    RuleSource,
    RuleSourceResolver,
    Transport,
    TypeRouter,
    WorkerPool,
    WorkerResult,
)
from .logging_conf import get_logger, new_run_id


class RunState(str, Enum):
    INITIALIZING = "initializing"
    DISPATCHING = "dispatching"
    AWAITING_COMPLETION = "awaiting_completion"
    DONE = "done"


@dataclass
class RunSummary:
    """Outcome of one run; per-source failures do not make the run fail."""

    elapsed_ms: int
    results: list[WorkerResult] = field(default_factory=list)
    outputs: dict[str, int] = field(default_factory=dict)

    @property
    def sources(self) -> int:
        return len(self.results)

    @property
    def failed(self) -> int:
        return sum(1 for result in self.results if result.failed)

    @property
    def accepted(self) -> int:
        return sum(result.accepted for result in self.results)

    @property
    def duplicates(self) -> int:
        return sum(result.duplicates for result in self.results)


class Orchestrator:
    """Central coordinator for a single merge run."""

    def __init__(
        self,
        config: AppConfig,
        base_dir: Path,
        classifier: Classifier | None = None,
        transport: Transport | None = None,
        clock: Callable[[], datetime] = datetime.now,
        logger: structlog.BoundLogger | None = None,
    ) -> None:
        self.config = config
        self.base_dir = Path(base_dir)
        self.classifier = classifier or RuleClassifier()
        self._owns_transport = transport is None
        self.transport = transport
        self.clock = clock
        self.run_id = new_run_id()
        self.logger = (logger or get_logger("orchestrator")).bind(run_id=self.run_id)
        self.state = RunState.INITIALIZING
        self.sink: OutputSink | None = None
        self.router: TypeRouter | None = None
        self.dedup_filter: DeduplicationFilter | None = None

    # ------------------------------------------------------------------
    def run(self) -> RunSummary:
        started = time.perf_counter()
        self.state = RunState.INITIALIZING
        self.logger.info("run_started")
        try:
            self._initialise()
            sources = self.resolve_sources()
            self.state = RunState.DISPATCHING
            pool = WorkerPool(self.config.pipeline.max_workers, self.config.pipeline.queue_size)
            try:
                for source in sources:
                    pool.submit(self._worker_for(source).run)
                self.state = RunState.AWAITING_COMPLETION
                outcomes = pool.join()
            finally:
                pool.shutdown()
            results = [self._collect(source, outcome) for source, outcome in zip(sources, outcomes)]
        finally:
            self._release()

        elapsed_ms = int((time.perf_counter() - started) * 1000)
        self.state = RunState.DONE
        summary = RunSummary(
            elapsed_ms=elapsed_ms,
            results=results,
            outputs={output.name: output.line_count for output in self.sink.files},
        )
        self.logger.info(
            "run_finished",
            elapsed_ms=elapsed_ms,
            sources=summary.sources,
            failed=summary.failed,
            accepted=summary.accepted,
            duplicates=summary.duplicates,
            caller_runs=pool.caller_runs,
        )
        return summary

    def resolve_sources(self) -> list[RuleSource]:
        rule = self.config.rule
        resolver = RuleSourceResolver(rule.resolved_local_dir(self.base_dir))
        return resolver.resolve(rule.remote, rule.local)

    # ------------------------------------------------------------------
    def _initialise(self) -> None:
        output_cfg = self.config.output
        sink = OutputSink(output_cfg.resolved_path(self.base_dir), logger=get_logger("sink", run_id=self.run_id))
        self.sink = sink
        timestamp = self.clock()
        outputs: dict[OutputFile, list] = {}
        for file_name, categories in output_cfg.files.items():
            output = sink.create(file_name)
            sink.write_header(output, file_name, timestamp, output_cfg.provenance)
            outputs.setdefault(output, []).extend(categories)
        self.router = TypeRouter.from_outputs(outputs, logger=get_logger("router", run_id=self.run_id))
        pipeline = self.config.pipeline
        self.dedup_filter = DeduplicationFilter(pipeline.expected_lines, pipeline.false_positive_rate)
        if self.transport is None:
            self.transport = Fetcher(
                timeout=pipeline.fetch_timeout,
                user_agent=pipeline.user_agent,
                logger=get_logger("fetcher", run_id=self.run_id),
            )
        self.logger.debug(
            "initialised",
            outputs=[output.name for output in outputs],
            filter_bits=self.dedup_filter.bit_size,
            filter_hashes=self.dedup_filter.hash_count,
        )

    def _worker_for(self, source: RuleSource) -> IngestionWorker:
        return IngestionWorker(
            source,
            transport=self.transport,
            classifier=self.classifier,
            dedup_filter=self.dedup_filter,
            router=self.router,
            sink=self.sink,
            logger=get_logger("worker", run_id=self.run_id),
        )

    def _collect(self, source: RuleSource, outcome: object) -> WorkerResult:
        if isinstance(outcome, WorkerResult):
            return outcome
        self.logger.error("worker_crashed", source=source.location, error=str(outcome))
        return WorkerResult(source, status="failed", error=str(outcome))

    def _release(self) -> None:
        try:
            if self.sink is not None:
                self.sink.close()
        finally:
            if self._owns_transport and self.transport is not None:
                close = getattr(self.transport, "close", None)
                self.transport = None
                if callable(close):
                    close()


__all__ = ["Orchestrator", "RunState", "RunSummary"]
