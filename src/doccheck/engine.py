"""Run orchestration: a bounded worker pool over source files.

Each file is scanned, associated and validated by one worker into a private
FileResult. Results are merged only after all workers finish, and the
aggregator re-sorts them, so worker completion order never shows in a report.
"""

from __future__ import annotations

import logging
import os
import threading
from concurrent.futures import ThreadPoolExecutor
from itertools import chain
from pathlib import Path

from .associator import associate
from .config import CheckConfig
from .errors import UnreadableFileError
from .models import DiagnosticKind, FileDiagnostic, FileResult, Report, SourceFile, ViolationRecord
from .report import aggregate
from .scanner import scan
from .schema import SchemaRegistry
from .sources import SourceRef, discover, read_source
from .validator import validate

log = logging.getLogger(__name__)


def check_source(source: SourceFile, registry: SchemaRegistry) -> list[ViolationRecord]:
    """Scan one source file and validate every declaration that has a rule.

    A comment block shared by two declarations (a file header directly
    above the first declaration) has its TODOs reported once, for the
    first declaration in scan order.
    """
    violations: list[ViolationRecord] = []
    todo_blocks: set[int] = set()
    for declaration in scan(source):
        rule = registry.schema_for(declaration.kind)
        if rule is None:
            continue
        block = associate(declaration)
        seen = block is not None and block.start_line in todo_blocks
        violations.extend(validate(declaration, block, rule, check_todos=not seen))
        if block is not None and rule.check_todos:
            todo_blocks.add(block.start_line)
    return violations


def check_file(ref: SourceRef, config: CheckConfig, stop: threading.Event | None = None) -> FileResult:
    """Check one file. Never raises: failures become diagnostics.

    When ``stop`` is set before the file is started, the file is skipped.
    A file that yields a fail-on violation sets ``stop``.
    """
    result = FileResult(path=ref.display)
    if stop is not None and stop.is_set():
        result.skipped = True
        return result

    try:
        source = read_source(ref, config.max_file_bytes)
    except UnreadableFileError as e:
        log.warning("Skipping %s: %s", e.path, e)
        result.diagnostics.append(FileDiagnostic(ref.display, DiagnosticKind.UNREADABLE_FILE, str(e)))
        return result

    try:
        result.violations = check_source(source, config.registry)
    except Exception as e:
        log.exception("Failed to check %s", ref.display)
        result.diagnostics.append(
            FileDiagnostic(ref.display, DiagnosticKind.PROCESSING_FAILED, f"{e.__class__.__name__}: {e}")
        )
        return result

    if stop is not None and any(v.kind in config.fail_on for v in result.violations):
        log.info("Fail-fast triggered by %s", ref.display)
        stop.set()
    return result


def run(
    paths: list[Path],
    config: CheckConfig,
    workers: int | None = None,
    fail_fast: bool = False,
) -> Report:
    """Check all supported files under the given paths.

    Args:
        paths: Root directories or explicit files
        config: Rules, fail-on kinds, excludes and size limit
        workers: Worker pool bound (default: host core count)
        fail_fast: Stop starting new files after the first fail-on violation

    Returns:
        The aggregated report

    Raises:
        ConfigError: If a root path does not exist or is unreadable
    """
    refs = discover(paths, config.exclude)
    stop = threading.Event() if fail_fast else None
    pool_size = max(1, min(workers or os.cpu_count() or 1, len(refs) or 1))
    log.info("Checking %d files with %d workers", len(refs), pool_size)

    with ThreadPoolExecutor(max_workers=pool_size, thread_name_prefix="doccheck") as pool:
        results = list(pool.map(lambda ref: check_file(ref, config, stop), refs))

    processed = [r for r in results if not r.skipped]
    return aggregate(
        chain.from_iterable(r.violations for r in processed),
        chain.from_iterable(r.diagnostics for r in processed),
        files_checked=sum(1 for r in processed if not r.diagnostics),
        files_skipped=len(results) - len(processed),
    )
