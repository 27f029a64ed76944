"""Per-source ingestion: fetch, split, classify, dedup, fan out."""

from __future__ import annotations

import re
from dataclasses import dataclass

import structlog

from ..errors import FetchError
from ..logging_conf import get_logger
from .classifier import Classifier, is_comment_line
from .dedup import DeduplicationFilter
from .fetcher import Transport
from .resolver import RuleSource
from .router import TypeRouter
from .sink import OutputSink

# only CR, LF and CRLF end a line; form feeds, NEL and U+2028 stay inside it
_LINE_BREAK_RE = re.compile(r"\r\n|\r|\n")


def split_lines(content: str) -> list[str]:
    return _LINE_BREAK_RE.split(content)


@dataclass
class WorkerResult:
    source: RuleSource
    status: str = "finished"
    lines: int = 0
    unclassified: int = 0
    duplicates: int = 0
    accepted: int = 0
    written: int = 0
    error: str | None = None

    @property
    def failed(self) -> bool:
        return self.status == "failed"


class IngestionWorker:
    """Process one rule source from fetch to write.

    Fetch failures finish this unit only; they are logged and never raised.
    Lines are written in the order they appear in the source.
    """

    def __init__(
        self,
        source: RuleSource,
        transport: Transport,
        classifier: Classifier,
        dedup_filter: DeduplicationFilter,
        router: TypeRouter,
        sink: OutputSink,
        logger: structlog.BoundLogger | None = None,
    ) -> None:
        self.source = source
        self.transport = transport
        self.classifier = classifier
        self.dedup_filter = dedup_filter
        self.router = router
        self.sink = sink
        base = logger or get_logger("worker")
        self.logger = base.bind(source=source.location, kind=source.kind.value)

    def run(self) -> WorkerResult:
        result = WorkerResult(self.source)
        try:
            content = self._fetch()
        except FetchError as exc:
            self.logger.error("source_failed", error=exc.reason)
            result.status = "failed"
            result.error = exc.reason
            return result
        self.logger.info("source_fetched", size=len(content))

        for raw in split_lines(content):
            line = raw.strip()
            if not line or is_comment_line(line):
                continue
            result.lines += 1
            categories = self.classifier.classify(line)
            if not categories:
                result.unclassified += 1
                continue
            if not self.dedup_filter.test_and_add(line):
                result.duplicates += 1
                continue
            result.accepted += 1
            for output in self.router.route_all(categories):
                self.sink.append_line(output, line)
                result.written += 1

        self.logger.info(
            "source_finished",
            lines=result.lines,
            accepted=result.accepted,
            duplicates=result.duplicates,
            unclassified=result.unclassified,
        )
        return result

    def _fetch(self) -> str:
        if self.source.is_remote:
            return self.transport.fetch_remote(self.source.location)
        return self.transport.read_local(self.source.location)


__all__ = ["IngestionWorker", "WorkerResult", "split_lines"]
