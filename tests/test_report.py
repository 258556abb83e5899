"""Tests for report aggregation and rendering."""

import json
import random

from doccheck.models import DiagnosticKind, FileDiagnostic, ViolationKind, ViolationRecord
from doccheck.report import aggregate, render_json, render_text


def _violation(path="src/a.ts", line=1, kind=ViolationKind.MISSING_BLOCK, name="f", tag=None):
    return ViolationRecord(
        path=path,
        line=line,
        name=name,
        construct="Function",
        kind=kind,
        message=f"Function '{name}' problem",
        tag=tag,
    )


VIOLATIONS = [
    _violation("src/b.ts", 3),
    _violation("src/a.ts", 10, ViolationKind.STALE_OWNERSHIP),
    _violation("src/a.ts", 10, ViolationKind.MISSING_REQUIRED_TAG, tag="@returns"),
    _violation("src/a.ts", 10, ViolationKind.MISSING_REQUIRED_TAG, tag="@description"),
    _violation("src/a.ts", 2),
]


class TestAggregate:
    def test_sorted_by_path_line_kind(self):
        report = aggregate(VIOLATIONS)
        assert [(v.path, v.line, v.kind.value, v.tag) for v in report.violations] == [
            ("src/a.ts", 2, "MissingBlock", None),
            ("src/a.ts", 10, "MissingRequiredTag", "@description"),
            ("src/a.ts", 10, "MissingRequiredTag", "@returns"),
            ("src/a.ts", 10, "StaleOwnership", None),
            ("src/b.ts", 3, "MissingBlock", None),
        ]

    def test_input_order_irrelevant(self):
        shuffled = list(VIOLATIONS)
        random.Random(7).shuffle(shuffled)
        assert aggregate(shuffled) == aggregate(VIOLATIONS)
        assert aggregate(reversed(VIOLATIONS)) == aggregate(VIOLATIONS)

    def test_duplicates_dropped(self):
        report = aggregate(VIOLATIONS + VIOLATIONS[:2])
        assert report.total == len(VIOLATIONS)

    def test_counts(self):
        report = aggregate(VIOLATIONS, files_checked=4)
        assert report.by_kind == {
            "MissingBlock": 2,
            "MissingRequiredTag": 2,
            "EmptyRequiredTag": 0,
            "InvalidTagValue": 0,
            "StaleOwnership": 1,
        }
        assert report.by_file == {"src/a.ts": 4, "src/b.ts": 1}
        assert report.files_checked == 4

    def test_empty(self):
        report = aggregate([])
        assert report.total == 0
        assert set(report.by_kind.values()) == {0}
        assert report.by_file == {}


class TestExitCode:
    def test_fail_on_kind_present(self):
        report = aggregate(VIOLATIONS)
        assert report.exit_code({ViolationKind.STALE_OWNERSHIP}) == 1

    def test_fail_on_kind_absent(self):
        report = aggregate(VIOLATIONS)
        assert report.exit_code({ViolationKind.INVALID_TAG_VALUE}) == 0
        assert report.exit_code(frozenset()) == 0

    def test_diagnostics_do_not_fail(self):
        report = aggregate([], [FileDiagnostic("bin.ts", DiagnosticKind.UNREADABLE_FILE, "binary")])
        assert report.exit_code(frozenset(ViolationKind)) == 0


class TestRenderText:
    def test_lines_and_summary(self):
        output = render_text(aggregate(VIOLATIONS, files_checked=2))
        lines = output.splitlines()
        assert lines[0] == "src/a.ts:2: [MissingBlock] Function 'f' problem"
        assert len(lines) == len(VIOLATIONS) + 1
        assert lines[-1].startswith("Found 5 violations in 2 files")
        assert output.endswith("\n")

    def test_clean(self):
        assert render_text(aggregate([], files_checked=3)) == "No violations in 3 files\n"

    def test_diagnostics_listed(self):
        report = aggregate([], [FileDiagnostic("bin.ts", DiagnosticKind.UNREADABLE_FILE, "binary")], files_checked=1)
        lines = render_text(report).splitlines()
        assert lines[0] == "bin.ts: [UnreadableFile] binary"
        assert "1 files could not be processed" in lines[-1]


class TestRenderJson:
    def test_structure(self):
        data = json.loads(render_json(aggregate(VIOLATIONS, files_checked=2, files_skipped=1)))
        assert data["summary"]["total"] == 5
        assert data["summary"]["files_checked"] == 2
        assert data["summary"]["files_skipped"] == 1
        assert data["summary"]["by_file"] == {"src/a.ts": 4, "src/b.ts": 1}
        assert data["violations"][0] == {
            "path": "src/a.ts",
            "line": 2,
            "construct": "Function",
            "name": "f",
            "kind": "MissingBlock",
            "tag": None,
            "message": "Function 'f' problem",
        }
        assert data["diagnostics"] == []

    def test_byte_identical_for_same_input(self):
        shuffled = list(reversed(VIOLATIONS))
        assert render_json(aggregate(shuffled)) == render_json(aggregate(VIOLATIONS))
