"""Engine components: resolve -> fetch -> classify -> dedup -> write."""

from .classifier import Classifier, RuleClassifier, is_comment_line
from .dedup import DeduplicationFilter
from .fetcher import Fetcher, Transport
from .resolver import RuleSource, RuleSourceResolver
from .router import TypeRouter
from .sink import OutputFile, OutputSink
from .thread_pool import WorkerPool
from .worker import IngestionWorker, WorkerResult

__all__ = [
    "Classifier",
    "DeduplicationFilter",
    "Fetcher",
    "IngestionWorker",
    "OutputFile",
    "OutputSink",
    "RuleClassifier",
    "RuleSource",
    "RuleSourceResolver",
    "Transport",
    "TypeRouter",
    "WorkerPool",
    "WorkerResult",
    "is_comment_line",
]
