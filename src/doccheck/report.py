"""Report aggregation and rendering."""

from __future__ import annotations

import json
from collections import Counter
from typing import Iterable

from .models import FileDiagnostic, Report, ViolationKind, ViolationRecord


def aggregate(
    violations: Iterable[ViolationRecord],
    diagnostics: Iterable[FileDiagnostic] = (),
    files_checked: int = 0,
    files_skipped: int = 0,
) -> Report:
    """Build a deterministic report from violations in any order.

    Duplicates are dropped. Violations are sorted by file path, line and
    violation kind (then name, tag and message so ties are stable too).
    """
    unique = sorted(set(violations), key=lambda v: v.sort_key)
    by_kind_counts = Counter(v.kind for v in unique)
    by_file_counts = Counter(v.path for v in unique)

    return Report(
        violations=unique,
        diagnostics=sorted(set(diagnostics), key=lambda d: (d.path, d.kind.value, d.message)),
        by_kind={kind.value: by_kind_counts.get(kind, 0) for kind in ViolationKind},
        by_file={path: by_file_counts[path] for path in sorted(by_file_counts)},
        files_checked=files_checked,
        files_skipped=files_skipped,
    )


def summary_line(report: Report) -> str:
    if not report.violations:
        text = f"No violations in {report.files_checked} files"
    else:
        counts = ", ".join(f"{kind}: {count}" for kind, count in report.by_kind.items() if count)
        text = (
            f"Found {report.total} violations in {len(report.by_file)} files "
            f"({counts}); {report.files_checked} files checked"
        )
    if report.diagnostics:
        text += f"; {len(report.diagnostics)} files could not be processed"
    if report.files_skipped:
        text += f"; {report.files_skipped} files skipped (fail-fast)"
    return text


def render_text(report: Report) -> str:
    """One ``path:line: [Kind] message`` line per violation, then a summary."""
    lines = [v.format() for v in report.violations]
    lines.extend(d.format() for d in report.diagnostics)
    lines.append(summary_line(report))
    return "\n".join(lines) + "\n"


def render_json(report: Report) -> str:
    payload = {
        "violations": [v.to_dict() for v in report.violations],
        "diagnostics": [d.to_dict() for d in report.diagnostics],
        "summary": {
            "total": report.total,
            "files_checked": report.files_checked,
            "files_skipped": report.files_skipped,
            "by_kind": report.by_kind,
            "by_file": report.by_file,
        },
    }
    return json.dumps(payload, indent=2) + "\n"


RENDERERS = {
    "text": render_text,
    "json": render_json,
}
