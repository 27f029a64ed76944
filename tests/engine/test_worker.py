from __future__ import annotations

from pathlib import Path

import pytest

from adg_rules.config import RuleCategory, SourceKind
from adg_rules.engine import DeduplicationFilter, IngestionWorker, OutputSink, RuleSource, TypeRouter
from adg_rules.engine.worker import split_lines


@pytest.fixture
def pipeline(tmp_path: Path):
    sink = OutputSink(tmp_path)
    first = sink.create("first.txt")
    second = sink.create("second.txt")
    for output in (first, second):
        sink.write_header(output, output.name, "2024-01-01 00:00:00", "test")
    router = TypeRouter.from_outputs(
        {first: [RuleCategory.DOMAIN, RuleCategory.REGEX], second: [RuleCategory.REGEX]}
    )
    dedup = DeduplicationFilter(expected_insertions=10_000, false_positive_rate=0.0001)
    yield sink, router, dedup
    sink.close()


def _worker(source, transport, classifier, pipeline) -> IngestionWorker:
    sink, router, dedup = pipeline
    return IngestionWorker(source, transport, classifier, dedup, router, sink)


def test_worker_filters_comments_blanks_and_duplicates(
    pipeline, tmp_path, fake_transport, fake_classifier, read_rules
) -> None:
    source = RuleSource(SourceKind.REMOTE, "https://a.example/list")
    transport = fake_transport(
        remote={source.location: ["rule1", "! comment", "", "   rule2  ", "# other", "rule1", "junk"]}
    )
    result = _worker(source, transport, fake_classifier(), pipeline).run()
    pipeline[0].close()

    assert result.status == "finished"
    assert result.lines == 4
    assert result.accepted == 2
    assert result.duplicates == 1
    assert result.unclassified == 1
    assert result.written == 2
    assert read_rules(tmp_path / "first.txt") == ["rule1", "rule2"]
    assert read_rules(tmp_path / "second.txt") == []


def test_worker_unclassified_lines_do_not_touch_filter(pipeline, fake_transport, fake_classifier) -> None:
    source = RuleSource(SourceKind.LOCAL, "/rules/local.txt")
    transport = fake_transport(local={source.location: "junk-a\njunk-b\n"})
    result = _worker(source, transport, fake_classifier(), pipeline).run()
    _, _, dedup = pipeline
    assert result.unclassified == 2
    assert dedup.approximate_count == 0
    assert transport.calls == ["/rules/local.txt"]


def test_worker_fans_out_multi_category_lines_once_per_file(
    pipeline, tmp_path, fake_transport, fake_classifier, read_rules
) -> None:
    source = RuleSource(SourceKind.REMOTE, "https://b.example/list")
    transport = fake_transport(remote={source.location: ["both-1", "rule-only"]})
    classifier = fake_classifier(
        {
            "both": {RuleCategory.DOMAIN, RuleCategory.REGEX},
            "rule": {RuleCategory.DOMAIN},
        }
    )
    result = _worker(source, transport, classifier, pipeline).run()
    pipeline[0].close()

    # "both-1" routes DOMAIN->first and REGEX->first+second: first gets it once
    assert result.written == 3
    assert read_rules(tmp_path / "first.txt") == ["both-1", "rule-only"]
    assert read_rules(tmp_path / "second.txt") == ["both-1"]


def test_worker_fetch_failure_finishes_quietly(pipeline, fake_transport, fake_classifier) -> None:
    source = RuleSource(SourceKind.REMOTE, "https://down.example/list")
    transport = fake_transport(remote={source.location: ConnectionError("unreachable")})
    result = _worker(source, transport, fake_classifier(), pipeline).run()
    assert result.failed
    assert result.error == "unreachable"
    assert result.accepted == 0


def test_worker_missing_local_file(pipeline, fake_transport, fake_classifier) -> None:
    source = RuleSource(SourceKind.LOCAL, "/does/not/exist.txt")
    result = _worker(source, fake_transport(), fake_classifier(), pipeline).run()
    assert result.failed
    assert result.error == "not found"


def test_worker_keeps_unicode_separators_inside_a_line(pipeline, tmp_path, fake_transport, fake_classifier) -> None:
    source = RuleSource(SourceKind.REMOTE, "https://c.example/list")
    transport = fake_transport(remote={source.location: "rule-a\x85tail\r\nrule-b\x0crule-c\rrule-d\n"})
    result = _worker(source, transport, fake_classifier(), pipeline).run()
    pipeline[0].close()

    assert result.lines == 3
    assert result.accepted == 3
    body = (tmp_path / "first.txt").read_text(encoding="utf-8").split("\n")[3:]
    assert body == ["rule-a\x85tail", "rule-b\x0crule-c", "rule-d", ""]


@pytest.mark.parametrize(
    ("content", "expected"),
    [
        ("a\nb", ["a", "b"]),
        ("a\r\nb\r\n", ["a", "b", ""]),
        ("a\rb", ["a", "b"]),
        ("a b\x1cc", ["a b\x1cc"]),
    ],
)
def test_split_lines_breaks_on_cr_and_lf_only(content: str, expected: list[str]) -> None:
    assert split_lines(content) == expected
